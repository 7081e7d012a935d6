"""
Shared fixtures: an in-memory vector store that records every write, and a
deterministic embedder for the Chroma tests.
"""

import hashlib
import os
import sys
from typing import Any, Dict, List, Optional

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from editor_rag.core.embedder import Embedder
from editor_rag.core.vector_store import VectorStore


def matches(metadata: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
    if not where:
        return True
    if "$and" in where:
        return all(matches(metadata, clause) for clause in where["$and"])
    return all(metadata.get(key) == value for key, value in where.items())


class InMemoryVectorStore(VectorStore):
    """Dictionary-backed store with the same result layout as Chroma"""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.add_calls: List[List[str]] = []
        self.delete_calls: List[List[str]] = []
        self.fail_next_get = False

    def add(self, ids, metadatas, documents):
        for chunk_id in ids:
            if chunk_id in self.rows:
                raise ValueError(f"Duplicate id: {chunk_id}")
        for chunk_id, metadata, document in zip(ids, metadatas, documents):
            self.rows[chunk_id] = {"metadata": dict(metadata), "document": document}
        self.add_calls.append(list(ids))

    def _select(self, where, limit=None):
        selected = [(i, r) for i, r in self.rows.items() if matches(r["metadata"], where)]
        return selected[:limit] if limit else selected

    def query(self, query_texts, n_results, where=None):
        selected = self._select(where, n_results)
        return {
            "ids": [[i for i, _ in selected] for _ in query_texts],
            "documents": [[r["document"] for _, r in selected] for _ in query_texts],
            "metadatas": [[r["metadata"] for _, r in selected] for _ in query_texts],
            "distances": [[0.0] * len(selected) for _ in query_texts],
        }

    def get(self, where=None, limit=None):
        if self.fail_next_get:
            self.fail_next_get = False
            raise RuntimeError("store unavailable")
        selected = self._select(where, limit)
        return {
            "ids": [i for i, _ in selected],
            "documents": [r["document"] for _, r in selected],
            "metadatas": [r["metadata"] for _, r in selected],
        }

    def delete(self, ids):
        for chunk_id in ids:
            self.rows.pop(chunk_id, None)
        self.delete_calls.append(list(ids))

    def documents_for(self, source: str) -> Dict[str, str]:
        return {i: r["document"] for i, r in self.rows.items() if r["metadata"].get("source") == source}


class HashEmbedder(Embedder):
    """Deterministic 8-dimensional vectors derived from a SHA-256 digest"""

    def generate(self, text):
        digest = hashlib.sha256(text.encode('utf-8')).digest()
        return [b / 255.0 for b in digest[:8]]

    def generate_batch(self, texts):
        return [self.generate(t) for t in texts]

    def get_dimension(self):
        return 8


@pytest.fixture
def memory_store():
    return InMemoryVectorStore()


@pytest.fixture
def hash_embedder():
    return HashEmbedder()
