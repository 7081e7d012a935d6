"""
Vector Store Interface consumed by the embedding pipeline
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


def build_where(filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Build a conjunctive metadata filter from equality clauses.

    A single clause is passed through as-is; several clauses are combined
    with ``$and`` since the store only accepts one operator per level.
    """
    if not filters:
        return None
    clauses = [{key: value} for key, value in filters.items() if value is not None]
    if not clauses:
        return None
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class VectorStore(ABC):
    """
    Abstract interface over a content-addressable vector database.

    Result dictionaries follow the column layout of Chroma: ``query`` returns
    one list per query text under ``ids``, ``documents``, ``metadatas`` and
    ``distances``; ``get`` returns flat lists under ``ids``, ``documents``
    and ``metadatas``.
    """

    @abstractmethod
    def add(self, ids: List[str], metadatas: List[Dict[str, Any]], documents: List[str]) -> None:
        """Append chunks. Ids must not already exist in the store."""
        pass

    @abstractmethod
    def query(self, query_texts: List[str], n_results: int,
              where: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Nearest-match query, optionally restricted by a metadata filter"""
        pass

    @abstractmethod
    def get(self, where: Optional[Dict[str, Any]] = None,
            limit: Optional[int] = None) -> Dict[str, Any]:
        """List stored chunks matching a metadata filter"""
        pass

    @abstractmethod
    def delete(self, ids: List[str]) -> None:
        """Remove chunks by id"""
        pass
