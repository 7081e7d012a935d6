"""
Embedder Interface used by the vector store to turn chunk text into vectors
"""

from abc import ABC, abstractmethod
from typing import List


class Embedder(ABC):
    """
    Produces fixed-size vectors for chunk text.

    Implementations are synchronous and may be slow (model inference or a
    remote call); callers on the event loop run them in an executor.
    """

    @abstractmethod
    def generate(self, text: str) -> List[float]:
        """Embed a single query or chunk"""
        pass

    @abstractmethod
    def generate_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several chunks, preserving input order"""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Length of every vector this embedder returns"""
        pass
