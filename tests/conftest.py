"""
Shared test fixtures.

Provides: a deterministic bag-of-words embedder, an InMemoryIndex-backed
VectorStore and a completion client that records its prompts. Nothing here
touches the network.
"""

import re
import zlib
from typing import List

import pytest

from webrag.config import EMBEDDING
from webrag.core.index import InMemoryIndex
from webrag.core.models import PageContent, PageMetadata
from webrag.core.vector_store import VectorStore


class FakeEmbedder:
    """Hashes words into buckets; texts sharing words get similar vectors."""

    def __init__(self, dimensions: int = EMBEDDING["dimensions"]):
        self.dimensions = dimensions
        self.calls: List[str] = []
        self.fail_on: set = set()

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimensions
        if not text or not text.strip() or text in self.fail_on:
            return vector
        for word in re.findall(r"\w+", text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % self.dimensions] += 1.0
        return vector


class FakeLLM:
    def __init__(self, reply: str = "generated answer"):
        self.reply = reply
        self.prompts: List[str] = []
        self.error: Exception = None

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def index() -> InMemoryIndex:
    return InMemoryIndex(name="test-index")


@pytest.fixture
def store(index, embedder) -> VectorStore:
    return VectorStore(index=index, embedder=embedder, chunk_size=500, max_concurrency=4)


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def page() -> PageContent:
    paragraphs = [
        "Solar panels convert sunlight into electricity using photovoltaic cells. " * 3,
        "Wind turbines capture kinetic energy from moving air. " * 4,
        "Battery storage smooths out the supply from intermittent sources. " * 3,
    ]
    return PageContent(
        title="Renewable Energy Basics",
        description="An overview of renewable energy",
        main_text="\n\n".join(p.strip() for p in paragraphs),
        metadata=PageMetadata(
            topics=["solar", "wind"],
            key_points=["Panels make electricity", "Turbines use wind"],
            sentiment="positive",
            entities=["Photovoltaic cell"],
        ),
    )
