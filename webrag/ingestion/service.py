import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from webrag.core.models import StoreResult
from webrag.core.vector_store import VectorStore
from webrag.ingestion.analyzer import PageAnalyzer
from webrag.ingestion.base import ContentExtractor

logger = logging.getLogger(__name__)


@dataclass
class SummaryResult:
    url: str
    title: str
    summary: str
    cleaned_text: str
    indexed: StoreResult = field(default_factory=StoreResult)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "summary": self.summary,
            "cleanedText": self.cleaned_text,
            "indexed": self.indexed.as_dict(),
        }


class IngestionService:
    """extract -> analyze -> summarize -> index.

    Indexing is a side channel: its outcome is reported in the result but
    never turns a successful summary into a failed request.
    """

    def __init__(self, extractor: ContentExtractor, analyzer: PageAnalyzer, vector_store: VectorStore):
        self.extractor = extractor
        self.analyzer = analyzer
        self.vector_store = vector_store

    def summarize_url(self, url: str) -> SummaryResult:
        page = self.extractor.extract(url)
        summary = self.analyzer.summarize(page.url, page.title, page.main_text)
        metadata = self.analyzer.facets(page.main_text)

        indexed = self.vector_store.store_content(page.url, page.to_content(metadata))
        if not indexed.ok:
            logger.warning("[Ingest] Vector storage degraded for %s (continuing anyway): %s", page.url, indexed.reason)

        return SummaryResult(
            url=page.url,
            title=page.title,
            summary=summary,
            cleaned_text=page.main_text,
            indexed=indexed,
        )
