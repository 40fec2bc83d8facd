import json
import logging
from typing import Any, List, Optional

from webrag.config import ANALYSIS
from webrag.core.models import PageMetadata

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = """Summarize this webpage content concisely:

URL: {url}
Title: {title}

Content:
{text}

Create a brief, informative summary that captures the main points. Format in markdown."""

FACETS_PROMPT = """Analyze the webpage content below and describe it.

Content:
{text}

Reply in this EXACT JSON format (no markdown, no explanation):
{{"topics": ["..."], "keyPoints": ["..."], "sentiment": "positive|negative|neutral|mixed", "entities": ["..."]}}

Use empty lists or an empty string for anything the content does not support."""


def _strip_code_fence(response: str) -> str:
    response = response.strip()
    if response.startswith("```"):
        response = response.split("\n", 1)[1] if "\n" in response else response
        response = response.rsplit("```", 1)[0] if "```" in response else response
    return response.strip()


def _string_list(value: Any) -> Optional[List[str]]:
    if not isinstance(value, list):
        return None
    items = [str(v).strip() for v in value if str(v).strip()]
    return items or None


def parse_facets(response: str) -> PageMetadata:
    """Parse the facet JSON reply. Missing or malformed fields become absent."""
    data = json.loads(_strip_code_fence(response))
    if not isinstance(data, dict):
        raise ValueError("Facet reply is not a JSON object")
    sentiment = data.get("sentiment")
    return PageMetadata(
        topics=_string_list(data.get("topics")),
        key_points=_string_list(data.get("keyPoints")),
        sentiment=(sentiment.strip() or None) if isinstance(sentiment, str) else None,
        entities=_string_list(data.get("entities")),
    )


class PageAnalyzer:
    """Summary and metadata facets for a page, produced by the completion service."""

    def __init__(self, llm: Any, facets_enabled: Optional[bool] = None):
        self.llm = llm
        self.summary_input_chars = ANALYSIS["summary_input_chars"]
        self.facet_input_chars = ANALYSIS["facet_input_chars"]
        if facets_enabled is None:
            facets_enabled = ANALYSIS["facets_enabled"]
        self.facets_enabled = facets_enabled

    def summarize(self, url: str, title: str, text: str) -> str:
        """Raises CompletionFailed; a page without a summary is a failed request."""
        prompt = SUMMARY_PROMPT.format(url=url, title=title, text=text[: self.summary_input_chars])
        return self.llm.complete(prompt)

    def facets(self, text: str) -> PageMetadata:
        """Best effort: any failure yields an all-absent PageMetadata."""
        if not self.facets_enabled or not text.strip():
            return PageMetadata()
        try:
            response = self.llm.complete(FACETS_PROMPT.format(text=text[: self.facet_input_chars]))
            return parse_facets(response)
        except Exception as e:
            logger.warning("[Analyzer] Facet extraction failed, storing without facets: %s: %s", type(e).__name__, e)
            return PageMetadata()
