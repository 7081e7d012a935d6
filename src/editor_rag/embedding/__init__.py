"""Embedding implementations for editor-rag"""

from .sentence_transformer import SentenceTransformerEmbedder

__all__ = ["SentenceTransformerEmbedder"]
