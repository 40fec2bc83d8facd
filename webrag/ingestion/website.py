"""
Website Extractor
=================
Fetches a single web page and turns it into clean, chunk-ready text.

Strategy:
1. Normalise the URL (bare domains get https://) and fetch it with httpx
2. Pull the title (<title>, falling back to the first <h1>) and the
   description meta tag from the raw HTML
3. Convert HTML to text with html2text, ignoring links, images and emphasis
4. Strip markdown/HTML residue and noise lines while keeping paragraph
   breaks, which the chunker splits on
"""

import html
import logging
import re
import unicodedata
from typing import Optional
from urllib.parse import urlparse

import html2text
import httpx

from webrag.config import SOURCES
from webrag.core.exceptions import ExtractionFailed
from webrag.ingestion.base import ExtractedPage

logger = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.S | re.I)
_H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", re.S | re.I)
_META_RE = re.compile(r"<meta\b[^>]*>", re.I)
_ATTR_RE = re.compile(r"([\w:-]+)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")
_DROP_BLOCKS_RE = re.compile(
    r"<(script|style|nav|header|footer|aside|noscript)[^>]*>.*?</\1>", re.S | re.I
)

# Lines matching these patterns are pure noise - discard entirely
_NOISE_LINE_PATTERNS = [
    re.compile(r"^(home|menu|nav|skip to|toggle|search|close|open|back|next|previous)\b", re.I),
    re.compile(r"^\s*(cookie|accept all|accept cookies|privacy policy|terms of service|copyright|all rights reserved)\s*$", re.I),
    re.compile(r"^\s*[\|\-\*\_\=\#\~]{3,}\s*$"),
    re.compile(r"^\s*\[.*?\]\s*$"),
    re.compile(r"^https?://\S+$"),
    re.compile(r"^(\s*[>\*\-\+]\s*){1,3}$"),
    re.compile(r"^\s*\d+\s*$"),
]


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("URL is required")
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    parsed = urlparse(url)
    if not parsed.netloc or ("." not in parsed.netloc and parsed.netloc != "localhost"):
        raise ValueError("Invalid URL format. Please provide a valid URL.")
    return url


def _strip_tags(fragment: str) -> str:
    return re.sub(r"\s+", " ", html.unescape(re.sub(r"<[^>]+>", " ", fragment))).strip()


def extract_title(raw_html: str) -> str:
    for pattern in (_TITLE_RE, _H1_RE):
        match = pattern.search(raw_html)
        if match:
            title = _strip_tags(match.group(1))
            if title:
                return title
    return ""


def extract_description(raw_html: str) -> str:
    for tag in _META_RE.findall(raw_html):
        attrs = {
            m.group(1).lower(): m.group(2) if m.group(2) is not None else m.group(3)
            for m in _ATTR_RE.finditer(tag)
        }
        key = (attrs.get("name") or attrs.get("property") or "").lower()
        if key in ("description", "og:description") and "content" in attrs:
            return html.unescape(attrs["content"]).strip()
    return ""


def html_to_text(raw_html: str) -> str:
    """Convert raw HTML to plain text with no markdown artifacts."""
    h = html2text.HTML2Text()
    h.ignore_links = True
    h.ignore_images = True
    h.ignore_emphasis = True
    h.ignore_tables = False
    h.body_width = 0
    h.skip_internal_links = True
    return h.handle(_DROP_BLOCKS_RE.sub(" ", raw_html))


def clean_text(raw: str) -> str:
    """
    Clean html2text output into prose, keeping blank lines between paragraphs.
    Order matters: each step assumes previous steps have run.
    """
    text = unicodedata.normalize("NFC", raw)

    # Markdown images and links -> their label only
    text = re.sub(r"!\[([^\]]*)\]\([^)]*\)", r"\1", text)
    text = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", text)
    text = re.sub(r"\[([^\]]+)\]\[[^\]]*\]", r"\1", text)

    # Headers, bold/italic, inline code
    text = re.sub(r"^#{1,6}[ \t]+", "", text, flags=re.M)
    text = re.sub(r"\*{2,3}([^*]+)\*{2,3}", r"\1", text)
    text = re.sub(r"`([^`\n]+)`", r"\1", text)

    # Fenced code blocks are dropped
    text = re.sub(r"```[\s\S]*?```", "", text)

    # Blockquotes and list markers
    text = re.sub(r"^>[ \t]?", "", text, flags=re.M)
    text = re.sub(r"^[ \t]*[-*+][ \t]+", "", text, flags=re.M)

    # Bare URLs, residual tags and entities
    text = re.sub(r"https?://[^\s\)\"\'<>]+", "", text)
    text = re.sub(r"<[^>]{0,200}>", " ", text)
    text = html.unescape(text)

    # html2text backslash-escapes markdown characters
    text = re.sub(r"\\([\\`*_{}\[\]()#+\-.!])", r"\1", text)

    lines = []
    for line in text.split("\n"):
        stripped = re.sub(r"[ \t]{2,}", " ", line.strip())
        # Only short lines can be navigation noise
        if stripped and len(stripped.split()) <= 4 and any(p.search(stripped) for p in _NOISE_LINE_PATTERNS):
            continue
        lines.append(stripped)

    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class WebsiteExtractor:
    """Fetch one URL and return its title, description and main text."""

    def __init__(self, http_client: Optional[httpx.Client] = None):
        self._http = http_client or httpx.Client(
            timeout=SOURCES["request_timeout_s"],
            follow_redirects=True,
            headers={"User-Agent": SOURCES["user_agent"]},
        )
        self.max_page_bytes = SOURCES["max_page_bytes"]

    def close(self) -> None:
        self._http.close()

    def fetch(self, url: str) -> str:
        try:
            resp = self._http.get(url)
        except httpx.HTTPError as e:
            raise ExtractionFailed(f"Error fetching content: {e}") from e
        if resp.status_code != 200:
            raise ExtractionFailed(f"Failed to fetch webpage: HTTP {resp.status_code}")
        ct = resp.headers.get("content-type", "")
        if ct and "text/html" not in ct and "text/plain" not in ct:
            raise ExtractionFailed(f"Unsupported content-type: {ct}")
        if len(resp.content) > self.max_page_bytes:
            raise ExtractionFailed(f"Page is larger than {self.max_page_bytes} bytes")
        return resp.text

    def extract(self, url: str) -> ExtractedPage:
        url = normalize_url(url)
        raw_html = self.fetch(url)
        main_text = clean_text(html_to_text(raw_html))
        if not main_text:
            raise ExtractionFailed(f"No readable text found at {url}")

        page = ExtractedPage(
            url=url,
            title=extract_title(raw_html),
            description=extract_description(raw_html),
            main_text=main_text,
        )
        logger.info("[Website] Extracted %s: title=%r, %d chars", url, page.title[:80], len(main_text))
        return page
