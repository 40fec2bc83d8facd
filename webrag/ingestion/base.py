from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from webrag.core.models import PageContent, PageMetadata


@dataclass
class ExtractedPage:
    url: str
    title: str
    description: str
    main_text: str

    def to_content(self, metadata: PageMetadata) -> PageContent:
        return PageContent(
            title=self.title,
            description=self.description,
            main_text=self.main_text,
            metadata=metadata,
        )


@runtime_checkable
class ContentExtractor(Protocol):
    """Turns a URL into an ExtractedPage. Raises ExtractionFailed."""

    def extract(self, url: str) -> ExtractedPage:
        ...
