"""Chunking for editor-rag"""

from .chunking import ChunkingManager, chunk_id, chunk_index, utc_timestamp

__all__ = ["ChunkingManager", "chunk_id", "chunk_index", "utc_timestamp"]
