from unittest.mock import MagicMock

import pytest

from webrag.config import EMBEDDING
from webrag.core.chunker import split_text_into_chunks
from webrag.core.exceptions import IndexUnavailable, StorageWriteFailed
from webrag.core.index import InMemoryIndex
from webrag.core.models import PageContent, PageMetadata
from webrag.core.vector_store import VectorStore

URL = "https://energy.example/basics"


class TestInitialize:
    def test_creates_index_once(self, store, index):
        store.initialize()
        store.initialize()
        store.initialize()
        assert index.create_calls == 1
        assert index.dimension == EMBEDDING["dimensions"]
        assert index.metric == "COSINE"

    def test_existing_index_is_not_recreated(self, embedder):
        index = MagicMock()
        index.exists.return_value = True
        VectorStore(index=index, embedder=embedder).initialize()
        index.create.assert_not_called()
        index.wait_until_ready.assert_called_once()

    def test_creation_failure_propagates(self, embedder):
        index = MagicMock()
        index.exists.return_value = False
        index.create.side_effect = IndexUnavailable("no quota")
        store = VectorStore(index=index, embedder=embedder)
        with pytest.raises(IndexUnavailable):
            store.initialize()
        # a later call tries again instead of pretending to be ready
        with pytest.raises(IndexUnavailable):
            store.initialize()
        assert index.create.call_count == 2

    def test_unexpected_backend_error_is_wrapped(self, embedder):
        index = MagicMock()
        index.exists.side_effect = ConnectionError("refused")
        with pytest.raises(IndexUnavailable):
            VectorStore(index=index, embedder=embedder).initialize()


class TestStoreContent:
    def test_stores_main_chunks_and_facets(self, store, index, page):
        result = store.store_content(URL, page)

        expected_chunks = split_text_into_chunks(page.main_text, 500)
        assert result.ok
        assert result.chunks_stored == len(expected_chunks)
        assert result.facets_stored == 4
        assert index.ids() == sorted(
            [f"{URL}-main-{i}" for i in range(len(expected_chunks))]
            + [f"{URL}-topics", f"{URL}-keypoints", f"{URL}-sentiment", f"{URL}-entities"]
        )

    def test_records_carry_denormalized_metadata(self, store, index, page):
        store.store_content(URL, page)
        main = index.get(f"{URL}-main-0").metadata
        assert main["title"] == "Renewable Energy Basics"
        assert main["description"] == "An overview of renewable energy"
        assert main["type"] == "content"
        assert main["section"] == "main"
        assert main["chunk_index"] == 0

        topics = index.get(f"{URL}-topics").metadata
        assert topics["type"] == "metadata"
        assert topics["text"] == "solar, wind"
        assert "chunk_index" not in topics
        assert index.get(f"{URL}-keypoints").metadata["text"] == "Panels make electricity, Turbines use wind"
        assert index.get(f"{URL}-sentiment").metadata["text"] == "positive"

    def test_every_vector_has_index_dimensionality(self, store, index, page):
        store.store_content(URL, page)
        for rid in index.ids():
            assert len(index.get(rid).vector) == EMBEDDING["dimensions"]

    def test_empty_facets_are_skipped(self, store, index, page):
        content = page.model_copy(update={
            "metadata": PageMetadata(topics=[], key_points=[], sentiment="", entities=[]),
        })
        result = store.store_content(URL, content)
        assert result.facets_stored == 0
        assert all("-main-" in rid for rid in index.ids())

    def test_absent_facets_are_skipped(self, store, index, page):
        content = page.model_copy(update={"metadata": PageMetadata(sentiment="neutral")})
        store.store_content(URL, content)
        facet_ids = [rid for rid in index.ids() if "-main-" not in rid]
        assert facet_ids == [f"{URL}-sentiment"]

    def test_placeholder_like_text_is_stored_as_content(self, store, index, page):
        content = page.model_copy(update={"metadata": PageMetadata(topics=["No topics available"])})
        store.store_content(URL, content)
        assert index.get(f"{URL}-topics").metadata["text"] == "No topics available"

    def test_reingesting_same_content_keeps_key_set(self, store, index, page):
        store.store_content(URL, page)
        first = index.ids()
        store.store_content(URL, page)
        assert index.ids() == first

    def test_reingesting_shorter_page_removes_stale_chunks(self, store, index, page):
        store.store_content(URL, page)
        assert index.count_source(URL) > 2
        shorter = PageContent(title="Short", main_text="Only one paragraph now.")
        store.store_content(URL, shorter)
        assert index.ids() == [f"{URL}-main-0"]

    def test_without_replace_stale_chunks_survive(self, index, embedder, page):
        store = VectorStore(index=index, embedder=embedder, replace_on_reingest=False)
        store.store_content(URL, page)
        store.store_content(URL, PageContent(main_text="Only one paragraph now."))
        assert f"{URL}-main-1" in index.ids()

    def test_other_sources_are_untouched(self, store, index, page):
        store.store_content("https://other.example", page)
        store.store_content(URL, page)
        store.store_content(URL, PageContent(main_text="Replaced."))
        assert index.count_source("https://other.example") == len(
            split_text_into_chunks(page.main_text, 500)
        ) + 4

    def test_failed_embedding_stores_zero_vector(self, store, index, embedder, page):
        embedder.fail_on.add("positive")
        result = store.store_content(URL, page)
        assert result.ok
        assert result.degraded_embeddings == 1
        assert not any(index.get(f"{URL}-sentiment").vector)

    def test_storage_failure_is_swallowed_and_reported(self, embedder, page):
        index = InMemoryIndex()
        index.upsert = MagicMock(side_effect=StorageWriteFailed("disk full"))
        result = VectorStore(index=index, embedder=embedder).store_content(URL, page)
        assert not result.ok
        assert result.status == "degraded"
        assert "disk full" in result.reason

    def test_failed_reingest_keeps_previous_records(self, store, index, page):
        store.store_content(URL, page)
        before = index.ids()
        index.upsert = MagicMock(side_effect=StorageWriteFailed("transient"))

        result = store.store_content(URL, PageContent(main_text="Only one paragraph now."))

        assert result.status == "degraded"
        assert index.ids() == before

    def test_new_records_are_written_before_stale_cleanup(self, embedder, page):
        index = MagicMock()
        VectorStore(index=index, embedder=embedder).store_content(URL, page)
        calls = [name for name, _, _ in index.mock_calls if name in ("upsert", "delete_stale", "delete_source")]
        assert calls == ["upsert", "delete_stale"]
        kept = index.delete_stale.call_args.args[1]
        assert f"{URL}-main-0" in kept and f"{URL}-topics" in kept

    def test_index_unavailable_is_swallowed_and_reported(self, embedder, page):
        index = MagicMock()
        index.exists.side_effect = RuntimeError("listing failed")
        result = VectorStore(index=index, embedder=embedder).store_content(URL, page)
        assert result.status == "degraded"
        index.upsert.assert_not_called()

    def test_embeds_every_chunk_once(self, store, embedder, page):
        store.store_content(URL, page)
        chunks = split_text_into_chunks(page.main_text, 500)
        assert sorted(embedder.calls) == sorted(
            chunks + ["solar, wind", "Panels make electricity, Turbines use wind", "positive", "Photovoltaic cell"]
        )


class TestQueryContent:
    def test_empty_store_returns_no_matches(self, store):
        assert store.query_content("anything", 5) == []

    def test_returns_best_match_first(self, store, page):
        store.store_content(URL, page)
        store.store_content("https://cooking.example", PageContent(
            title="Pasta", main_text="Boil the pasta in salted water for ten minutes."
        ))
        matches = store.query_content("how do wind turbines capture energy", 3)
        assert len(matches) == 3
        assert matches[0].url == URL
        scores = [m.score for m in matches]
        assert scores == sorted(scores, reverse=True)

    def test_top_k_limits_results(self, store, page):
        store.store_content(URL, page)
        assert len(store.query_content("solar", 2)) == 2

    def test_explicit_zero_top_k_returns_nothing(self, store, page):
        store.store_content(URL, page)
        assert store.query_content("solar", 0) == []

    def test_default_top_k(self, store, page):
        store.store_content(URL, page)
        assert len(store.query_content("solar")) == 5
