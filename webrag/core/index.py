import logging
import os
import threading
import time
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import numpy as np
from pymilvus import MilvusClient

from webrag.config import VECTOR_DB
from webrag.core.exceptions import IndexUnavailable, StorageWriteFailed
from webrag.core.models import IndexRecord, ScoredMatch

logger = logging.getLogger(__name__)

# Metadata fields stored with every record
METADATA_FIELDS = ["url", "title", "description", "type", "section", "text", "chunk_index"]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


@runtime_checkable
class VectorIndex(Protocol):
    """Backend holding vectors keyed by record id.

    upsert must overwrite records with an existing id. query returns matches
    with a cosine similarity score, best first.
    """

    def exists(self) -> bool:
        ...

    def create(self, dimension: int, metric: str) -> None:
        ...

    def wait_until_ready(self, timeout_s: float) -> None:
        ...

    def upsert(self, records: List[IndexRecord]) -> None:
        ...

    def query(self, vector: List[float], top_k: int) -> List[ScoredMatch]:
        ...

    def delete_source(self, url: str) -> None:
        ...

    def delete_stale(self, url: str, keep_ids: List[str]) -> None:
        ...

    def count_source(self, url: str) -> int:
        ...

    def list_sources(self) -> List[str]:
        ...


class MilvusIndex:
    """Milvus / Zilliz Cloud collection used as the vector index."""

    def __init__(self, name: Optional[str] = None, client: Optional[MilvusClient] = None):
        self.name = name or VECTOR_DB["index_name"]
        if client is None:
            client = MilvusClient(uri=os.getenv("ZILLIZ_URI"), token=os.getenv("ZILLIZ_TOKEN"))
        self.client = client
        self.page_size = VECTOR_DB["page_size"]

    def exists(self) -> bool:
        try:
            return self.name in self.client.list_collections()
        except Exception as e:
            raise IndexUnavailable(f"Could not list collections: {e}") from e

    def create(self, dimension: int, metric: str) -> None:
        logger.info("[Milvus] Creating collection %s (dim=%d, metric=%s)", self.name, dimension, metric)
        try:
            self.client.create_collection(
                collection_name=self.name,
                dimension=dimension,
                metric_type=metric,
                id_type="str",
                auto_id=False,
                max_length=65535,
                enable_dynamic_field=True,
            )
        except Exception as e:
            raise IndexUnavailable(f"Could not create collection {self.name}: {e}") from e

    def wait_until_ready(self, timeout_s: float) -> None:
        deadline = time.monotonic() + timeout_s
        try:
            self.client.load_collection(self.name)
            while True:
                state = self.client.get_load_state(collection_name=self.name).get("state")
                if getattr(state, "name", str(state)) == "Loaded":
                    return
                if time.monotonic() >= deadline:
                    break
                time.sleep(1.0)
        except Exception as e:
            raise IndexUnavailable(f"Could not load collection {self.name}: {e}") from e
        raise IndexUnavailable(f"Collection {self.name} not ready after {timeout_s:.0f}s")

    def upsert(self, records: List[IndexRecord]) -> None:
        if not records:
            return
        data = [{"id": r.id, "vector": r.vector, **r.metadata} for r in records]
        try:
            self.client.upsert(collection_name=self.name, data=data)
        except Exception as e:
            raise StorageWriteFailed(f"Upsert of {len(data)} records failed: {e}") from e

    def query(self, vector: List[float], top_k: int) -> List[ScoredMatch]:
        results = self.client.search(
            collection_name=self.name,
            data=[vector],
            limit=top_k,
            output_fields=METADATA_FIELDS,
            search_params={"metric_type": VECTOR_DB["metric"]},
        )
        if not results:
            return []

        matches: List[ScoredMatch] = []
        for hit in results[0]:
            # Hits expose fields via hit["entity"] or directly on the hit dict
            entity = hit.get("entity") if isinstance(hit.get("entity"), dict) else hit
            metadata = {k: entity[k] for k in METADATA_FIELDS if entity.get(k) is not None}
            matches.append(ScoredMatch(score=float(hit.get("distance", 0.0)), metadata=metadata))
        return matches

    def delete_source(self, url: str) -> None:
        try:
            self.client.delete(collection_name=self.name, filter=f'url == "{_escape(url)}"')
        except Exception as e:
            raise StorageWriteFailed(f"Delete of {url} failed: {e}") from e

    def delete_stale(self, url: str, keep_ids: List[str]) -> None:
        """Delete records of url whose id is not in keep_ids."""
        if not keep_ids:
            self.delete_source(url)
            return
        ids = ", ".join(f'"{_escape(i)}"' for i in keep_ids)
        try:
            self.client.delete(
                collection_name=self.name,
                filter=f'url == "{_escape(url)}" and id not in [{ids}]',
            )
        except Exception as e:
            raise StorageWriteFailed(f"Stale record cleanup for {url} failed: {e}") from e

    def _iter_rows(self, filter: str, output_fields: List[str]):
        # offset + limit is capped at 16384 for plain queries; the iterator is not
        iterator = self.client.query_iterator(
            collection_name=self.name,
            batch_size=self.page_size,
            filter=filter,
            output_fields=output_fields,
        )
        try:
            while True:
                rows = iterator.next()
                if not rows:
                    return
                yield from rows
        finally:
            iterator.close()

    def count_source(self, url: str) -> int:
        return sum(1 for _ in self._iter_rows(f'url == "{_escape(url)}"', ["id"]))

    def list_sources(self) -> List[str]:
        return sorted({row["url"] for row in self._iter_rows("", ["url"]) if row.get("url")})


class InMemoryIndex:
    """Brute-force cosine similarity over an in-process mapping."""

    def __init__(self, name: Optional[str] = None):
        self.name = name or VECTOR_DB["index_name"]
        self.dimension: Optional[int] = None
        self.metric: Optional[str] = None
        self._records: Dict[str, IndexRecord] = {}
        self._created = False
        self._lock = threading.Lock()
        self.create_calls = 0

    def exists(self) -> bool:
        return self._created

    def create(self, dimension: int, metric: str) -> None:
        with self._lock:
            self.create_calls += 1
            self.dimension = dimension
            self.metric = metric
            self._created = True

    def wait_until_ready(self, timeout_s: float) -> None:
        if not self._created:
            raise IndexUnavailable(f"Index {self.name} does not exist")

    def upsert(self, records: List[IndexRecord]) -> None:
        with self._lock:
            for record in records:
                if self.dimension is not None and len(record.vector) != self.dimension:
                    raise StorageWriteFailed(
                        f"Record {record.id} has {len(record.vector)} dimensions, expected {self.dimension}"
                    )
                self._records[record.id] = IndexRecord(
                    id=record.id, vector=list(record.vector), metadata=dict(record.metadata)
                )

    def query(self, vector: List[float], top_k: int) -> List[ScoredMatch]:
        with self._lock:
            records = list(self._records.values())
        if not records or top_k <= 0:
            return []

        query_vec = np.asarray(vector, dtype=np.float32)
        matrix = np.asarray([r.vector for r in records], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query_vec)
        dots = matrix @ query_vec
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        order = np.argsort(-scores, kind="stable")[:top_k]
        return [
            ScoredMatch(score=float(scores[i]), metadata=dict(records[i].metadata))
            for i in order
        ]

    def delete_source(self, url: str) -> None:
        with self._lock:
            for key in [k for k, r in self._records.items() if r.metadata.get("url") == url]:
                del self._records[key]

    def delete_stale(self, url: str, keep_ids: List[str]) -> None:
        keep = set(keep_ids)
        with self._lock:
            for key in [
                k for k, r in self._records.items()
                if r.metadata.get("url") == url and k not in keep
            ]:
                del self._records[key]

    def count_source(self, url: str) -> int:
        with self._lock:
            return sum(1 for r in self._records.values() if r.metadata.get("url") == url)

    def list_sources(self) -> List[str]:
        with self._lock:
            return sorted({r.metadata["url"] for r in self._records.values() if r.metadata.get("url")})

    def ids(self) -> List[str]:
        with self._lock:
            return sorted(self._records)

    def get(self, record_id: str) -> Optional[IndexRecord]:
        with self._lock:
            return self._records.get(record_id)


def get_index(backend: Optional[str] = None) -> Any:
    """Build the index backend named by VECTOR_BACKEND (milvus | memory)."""
    backend = (backend or os.getenv("VECTOR_BACKEND", "milvus")).lower()
    if backend == "memory":
        return InMemoryIndex()
    if backend == "milvus":
        return MilvusIndex()
    raise ValueError(f"Unknown vector backend: {backend}")
