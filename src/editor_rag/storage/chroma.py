"""
Chroma Vector Store Implementation

Stores file chunks keyed by positional id with {source, userId, language,
timestamp} metadata. Embeddings are computed by the configured Embedder
before anything reaches Chroma.
"""

import os
import logging
from typing import Any, Dict, List, Optional

import chromadb

from ..core.embedder import Embedder
from ..core.vector_store import VectorStore

logger = logging.getLogger(__name__)


class ChromaVectorStore(VectorStore):
    """
    Chroma-based implementation of VectorStore for persistent vector storage
    and efficient similarity search.
    """

    def __init__(self,
                 embedder: Embedder,
                 collection_name: str = "vector-store",
                 persist_directory: Optional[str] = None,
                 host: Optional[str] = None,
                 port: Optional[int] = None,
                 client: Optional[Any] = None):
        """
        Initialize Chroma vector store

        Args:
            embedder: Embedder used for documents and query texts
            collection_name: Name of the Chroma collection
            persist_directory: Directory for persistent storage (local mode)
            host: Chroma server host (client mode)
            port: Chroma server port (client mode)
            client: Pre-built Chroma client (takes precedence over host/persistence)
        """
        self.embedder = embedder
        self.collection_name = collection_name

        if client is not None:
            self.client = client
            self.is_persistent = False
        elif host and port:
            # Client mode - connect to Chroma server
            self.client = chromadb.HttpClient(host=host, port=port)
            self.is_persistent = False
        else:
            # Local mode with persistence
            persist_dir = persist_directory or "./data/chroma"
            os.makedirs(persist_dir, exist_ok=True)

            self.client = chromadb.PersistentClient(path=persist_dir)
            self.is_persistent = True

        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            embedding_function=None,
        )
        logger.info(f"Using Chroma collection: {collection_name}")

    def add(self, ids: List[str], metadatas: List[Dict[str, Any]], documents: List[str]) -> None:
        """
        Embed and append chunks

        Args:
            ids: Unique chunk ids
            metadatas: One metadata dict per chunk
            documents: Chunk text

        Raises:
            ValueError: if any id is already stored (Chroma would skip it silently)
        """
        if not ids:
            return
        existing = self.collection.get(ids=ids, include=[])["ids"]
        if existing:
            logger.error(f"Refusing to add chunk(s) with existing ids to {self.collection_name}: {existing}")
            raise ValueError(f"Chunk ids already stored: {', '.join(existing)}")
        embeddings = self.embedder.generate_batch(documents)
        self.collection.add(
            ids=ids,
            embeddings=embeddings,
            metadatas=metadatas,
            documents=documents
        )
        logger.debug(f"Added {len(ids)} chunk(s) to {self.collection_name}")

    def query(self, query_texts: List[str], n_results: int,
              where: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Nearest-match query

        A query made only of empty strings is a metadata listing: it returns
        up to ``n_results`` chunks matching ``where`` without any similarity
        ranking (distances are None).
        """
        if all(not text for text in query_texts):
            listing = self.get(where=where, limit=n_results)
            return {
                "ids": [listing["ids"] for _ in query_texts],
                "documents": [listing["documents"] for _ in query_texts],
                "metadatas": [listing["metadatas"] for _ in query_texts],
                "distances": [[None] * len(listing["ids"]) for _ in query_texts],
            }

        query_embeddings = self.embedder.generate_batch(query_texts)
        results = self.collection.query(
            query_embeddings=query_embeddings,
            n_results=n_results,
            where=where,
            include=["metadatas", "documents", "distances"]
        )
        return {
            "ids": results.get("ids") or [[] for _ in query_texts],
            "documents": results.get("documents") or [[] for _ in query_texts],
            "metadatas": results.get("metadatas") or [[] for _ in query_texts],
            "distances": results.get("distances") or [[] for _ in query_texts],
        }

    def get(self, where: Optional[Dict[str, Any]] = None,
            limit: Optional[int] = None) -> Dict[str, Any]:
        """List chunks matching a metadata filter"""
        result = self.collection.get(
            where=where,
            limit=limit,
            include=["metadatas", "documents"]
        )
        return {
            "ids": list(result.get("ids") or []),
            "documents": list(result.get("documents") or []),
            "metadatas": list(result.get("metadatas") or []),
        }

    def delete(self, ids: List[str]) -> None:
        """
        Delete chunks by id

        Args:
            ids: Chunk ids to delete
        """
        if not ids:
            return
        self.collection.delete(ids=ids)
        logger.debug(f"Deleted {len(ids)} chunk(s) from {self.collection_name}")

    def count(self) -> int:
        return self.collection.count()

    def get_collection_info(self) -> Dict[str, Any]:
        """
        Get information about the collection

        Returns:
            Dictionary with collection statistics
        """
        return {
            "collection_name": self.collection_name,
            "document_count": self.count(),
            "is_persistent": self.is_persistent,
        }

    def clear_collection(self) -> None:
        """
        Clear all documents from the collection (for testing/reset)
        """
        all_ids = self.collection.get()["ids"]
        if all_ids:
            self.collection.delete(ids=all_ids)
            logger.info(f"Cleared {len(all_ids)} documents from collection")
