"""Core interfaces, event bus and data models for editor-rag"""

from .models import (
    FileChangeType, FileChange, ProjectEvent, EventKind, FileState,
    Chunk, ChunkMetadata, ShadowWorkspaceInfo,
    IndexResult, ExistenceResult, RetrievalResult, RetrievedChunk,
    RagResponse, SourceRef, ShadowToolResult, FileContent, RecentProject,
)
from .vector_store import VectorStore, build_where
from .embedder import Embedder
from .events import ChangeEventBus, Subscription

__all__ = [
    "FileChangeType", "FileChange", "ProjectEvent", "EventKind", "FileState",
    "Chunk", "ChunkMetadata", "ShadowWorkspaceInfo",
    "IndexResult", "ExistenceResult", "RetrievalResult", "RetrievedChunk",
    "RagResponse", "SourceRef", "ShadowToolResult", "FileContent", "RecentProject",
    "VectorStore", "build_where", "Embedder",
    "ChangeEventBus", "Subscription",
]
