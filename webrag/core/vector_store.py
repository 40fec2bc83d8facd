import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from webrag.config import CHUNKING, EMBEDDING, RETRIEVAL, VECTOR_DB
from webrag.core.chunker import split_text_into_chunks
from webrag.core.embedder import is_zero_vector
from webrag.core.exceptions import IndexUnavailable
from webrag.core.index import VectorIndex
from webrag.core.models import (
    MAIN_SECTION,
    Chunk,
    IndexRecord,
    PageContent,
    ScoredMatch,
    StoreResult,
)

logger = logging.getLogger(__name__)


class VectorStore:
    """Chunked page content in a vector index.

    One instance is built at process start and shared by every request. It
    holds no per-request state; the only shared mutable resource is the index
    backend, whose upsert is atomic per record id.
    """

    def __init__(
        self,
        index: VectorIndex,
        embedder: Any,
        chunk_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        replace_on_reingest: Optional[bool] = None,
    ):
        self.index = index
        self.embedder = embedder
        self.dimensions = VECTOR_DB["dimensions"]
        self.metric = VECTOR_DB["metric"]
        self.ready_timeout_s = VECTOR_DB["ready_timeout_s"]
        self.max_text_chars = VECTOR_DB["max_text_chars"]
        self.chunk_size = chunk_size or CHUNKING["main"]["size"]
        self.max_concurrency = max_concurrency or EMBEDDING["max_concurrency"]
        if replace_on_reingest is None:
            replace_on_reingest = VECTOR_DB["replace_on_reingest"]
        self.replace_on_reingest = replace_on_reingest
        self._ready = False
        self._init_lock = threading.Lock()

    def initialize(self) -> None:
        """Create the index if it is missing and wait until it accepts writes.

        Safe to call repeatedly. Backend failures are raised as IndexUnavailable.
        """
        if self._ready:
            return
        with self._init_lock:
            if self._ready:
                return
            try:
                if not self.index.exists():
                    logger.info("[VectorStore] Creating index %s", getattr(self.index, "name", "?"))
                    self.index.create(dimension=self.dimensions, metric=self.metric)
                    logger.info("[VectorStore] Waiting for index to initialize...")
                self.index.wait_until_ready(self.ready_timeout_s)
            except IndexUnavailable:
                raise
            except Exception as e:
                raise IndexUnavailable(f"Index initialization failed: {e}") from e
            self._ready = True

    def _embed_all(self, texts: List[str]) -> List[List[float]]:
        if len(texts) <= 1 or self.max_concurrency <= 1:
            return [self.embedder.embed(t) for t in texts]
        with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
            return list(pool.map(self.embedder.embed, texts))

    def _build_chunks(self, source_id: str, content: PageContent) -> List[Chunk]:
        chunks = [
            Chunk(source_id=source_id, section=MAIN_SECTION, text=text, ordinal=i)
            for i, text in enumerate(split_text_into_chunks(content.main_text, self.chunk_size))
        ]
        for section, text in content.metadata.facet_texts().items():
            chunks.append(Chunk(source_id=source_id, section=section, text=text))
        return chunks

    def _to_record(self, chunk: Chunk, content: PageContent) -> IndexRecord:
        metadata: Dict[str, Any] = {
            "url": chunk.source_id,
            "title": content.title,
            "description": content.description,
            "type": "content" if chunk.section == MAIN_SECTION else "metadata",
            "section": chunk.section,
            "text": chunk.text[: self.max_text_chars],
        }
        if chunk.section == MAIN_SECTION:
            metadata["chunk_index"] = chunk.ordinal
        return IndexRecord(id=chunk.id, vector=chunk.vector, metadata=metadata)

    def store_content(self, source_id: str, content: PageContent) -> StoreResult:
        """Chunk, embed and upsert a page plus its present metadata facets.

        Best effort: a failure is logged and reported as a degraded result,
        never raised.
        """
        try:
            self.initialize()
            chunks = self._build_chunks(source_id, content)

            vectors = self._embed_all([c.text for c in chunks])
            degraded = 0
            for chunk, vector in zip(chunks, vectors):
                if is_zero_vector(vector):
                    degraded += 1
                chunk.vector = vector

            records = [self._to_record(c, content) for c in chunks]
            self.index.upsert(records)

            if self.replace_on_reingest:
                self.index.delete_stale(source_id, [r.id for r in records])
        except Exception as e:
            logger.error("[VectorStore] Error storing content for %s: %s: %s", source_id, type(e).__name__, e)
            return StoreResult.degraded(f"{type(e).__name__}: {e}")

        main_count = sum(1 for c in chunks if c.section == MAIN_SECTION)
        result = StoreResult(
            chunks_stored=main_count,
            facets_stored=len(chunks) - main_count,
            degraded_embeddings=degraded,
        )
        if degraded:
            logger.warning("[VectorStore] %d of %d embeddings for %s fell back to zero vectors", degraded, len(chunks), source_id)
        logger.info(
            "[VectorStore] Stored %s: %d chunks, %d facets",
            source_id, result.chunks_stored, result.facets_stored,
        )
        return result

    def query_content(self, query: str, top_k: Optional[int] = None) -> List[ScoredMatch]:
        """Return up to top_k matches for query, best first. Empty index -> []."""
        if top_k is None:
            top_k = RETRIEVAL["top_k"]
        self.initialize()
        query_embedding = self.embedder.embed(query)
        matches = self.index.query(query_embedding, top_k)
        logger.debug("[VectorStore] Query returned %d matches", len(matches))
        return matches

    def delete_source(self, source_id: str) -> None:
        self.initialize()
        self.index.delete_source(source_id)
        logger.info("[VectorStore] Deleted records for %s", source_id)

    def count_source(self, source_id: str) -> int:
        self.initialize()
        return self.index.count_source(source_id)

    def list_sources(self) -> List[str]:
        self.initialize()
        return self.index.list_sources()
