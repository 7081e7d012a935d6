"""
Tests for ChromaVectorStore against an in-process Chroma client

Tests:
1. Add / get / delete by metadata filter
2. Empty query text lists chunks by filter
3. Similarity query honours the filter
4. Duplicate-free deletes and empty inputs
"""

import uuid

import chromadb
import pytest

from editor_rag.core.vector_store import build_where
from editor_rag.storage.chroma import ChromaVectorStore


@pytest.fixture
def store(hash_embedder):
    client = chromadb.EphemeralClient()
    return ChromaVectorStore(
        hash_embedder,
        collection_name=f"test-{uuid.uuid4().hex[:12]}",
        client=client,
    )


def metadata(source, user="default-user"):
    return {"source": source, "userId": user, "language": "js", "timestamp": "t0"}


class TestBuildWhere:

    def test_single_clause(self):
        assert build_where({"source": "/p/a.ts"}) == {"source": "/p/a.ts"}

    def test_several_clauses(self):
        assert build_where({"userId": "u", "source": "/p/a.ts"}) == {
            "$and": [{"userId": "u"}, {"source": "/p/a.ts"}]
        }

    def test_empty(self):
        assert build_where(None) is None
        assert build_where({"source": None}) is None


class TestChromaVectorStore:

    def test_add_and_get_by_source(self, store):
        store.add(
            ["a.ts-chunk-0", "a.ts-chunk-1", "b.ts-chunk-0"],
            [metadata("/p/a.ts"), metadata("/p/a.ts"), metadata("/p/b.ts")],
            ["alpha", "beta", "gamma"],
        )

        listing = store.get(where=build_where({"userId": "default-user", "source": "/p/a.ts"}))

        assert sorted(listing["ids"]) == ["a.ts-chunk-0", "a.ts-chunk-1"]
        assert sorted(listing["documents"]) == ["alpha", "beta"]
        assert store.count() == 3

    def test_empty_query_is_filter_listing(self, store):
        store.add(["a.ts-chunk-0"], [metadata("/p/a.ts")], ["alpha"])

        found = store.query([""], 1, where=build_where({"userId": "default-user", "source": "/p/a.ts"}))
        missing = store.query([""], 1, where=build_where({"userId": "default-user", "source": "/p/zzz.ts"}))

        assert found["ids"] == [["a.ts-chunk-0"]]
        assert missing["ids"] == [[]]

    def test_similarity_query_with_filter(self, store):
        store.add(
            ["a.ts-chunk-0", "b.ts-chunk-0"],
            [metadata("/p/a.ts"), metadata("/p/b.ts", user="someone-else")],
            ["alpha", "beta"],
        )

        results = store.query(["alpha"], 5, where={"userId": "default-user"})

        assert results["ids"] == [["a.ts-chunk-0"]]
        assert results["documents"] == [["alpha"]]
        assert len(results["distances"][0]) == 1

    def test_delete(self, store):
        store.add(["a.ts-chunk-0", "a.ts-chunk-1"], [metadata("/p/a.ts")] * 2, ["alpha", "beta"])

        store.delete(["a.ts-chunk-0"])
        store.delete([])

        assert store.get()["ids"] == ["a.ts-chunk-1"]

    def test_add_rejects_stored_ids(self, store):
        store.add(["a.ts-chunk-0"], [metadata("/p/src/a.ts")], ["alpha"])

        with pytest.raises(ValueError, match="a.ts-chunk-0"):
            store.add(["a.ts-chunk-0"], [metadata("/p/lib/a.ts")], ["other"])

        listing = store.get()
        assert listing["ids"] == ["a.ts-chunk-0"]
        assert listing["documents"] == ["alpha"]

    def test_clear_collection(self, store):
        store.add(["a.ts-chunk-0"], [metadata("/p/a.ts")], ["alpha"])
        store.clear_collection()

        info = store.get_collection_info()
        assert info["document_count"] == 0
        assert info["is_persistent"] is False
