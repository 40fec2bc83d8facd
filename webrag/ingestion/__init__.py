from webrag.ingestion.base import ContentExtractor, ExtractedPage
from webrag.ingestion.website import WebsiteExtractor
from webrag.ingestion.analyzer import PageAnalyzer
from webrag.ingestion.service import IngestionService, SummaryResult

__all__ = [
    "ContentExtractor",
    "ExtractedPage",
    "WebsiteExtractor",
    "PageAnalyzer",
    "IngestionService",
    "SummaryResult",
]
