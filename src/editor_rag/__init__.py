"""
Editor RAG - incremental code embedding and shadow workspaces for a code editor

This package provides:
- A file watcher feeding a debounced, concurrency-bounded embedding pipeline
- Smart chunk-level updates of a Chroma vector store
- Retrieval-augmented answers over the embedded code
- Shadow workspaces: live mirrors of opened projects for safe automated edits
- An MCP stdio server exposing the above as tools

Quick Start:
    from editor_rag import AppConfig, get_editor_services

    EditorServices = get_editor_services()
    services = EditorServices(AppConfig.create_default())
    await services.start()
    await services.open_project("/path/to/project")
    response = await services.query("where is the config loaded?")
"""

from typing import TYPE_CHECKING

# Core types - lightweight, always available
from .core.models import (
    FileChange, FileChangeType, EventKind, FileState,
    ShadowWorkspaceInfo, IndexResult, RagResponse,
)
from .core.vector_store import VectorStore
from .core.embedder import Embedder
from .core.events import ChangeEventBus

# Configuration
from .config.vector_db import VectorDBConfig
from .config.policy import EmbeddingPolicy
from .config.app import AppConfig

# Type hints only - not imported at runtime for faster startup
if TYPE_CHECKING:
    from .service.app_services import EditorServices
    from .storage.chroma import ChromaVectorStore
    from .embedding.sentence_transformer import SentenceTransformerEmbedder


# Lazy loaders for heavy modules
def get_editor_services():
    """Lazy import of EditorServices (pulls in watchdog and the text splitters)"""
    from .service.app_services import EditorServices
    return EditorServices


def get_chroma_vector_store():
    """Lazy import of ChromaVectorStore"""
    from .storage.chroma import ChromaVectorStore
    return ChromaVectorStore


def get_sentence_transformer_embedder():
    """Lazy import of SentenceTransformerEmbedder (loads torch)"""
    from .embedding.sentence_transformer import SentenceTransformerEmbedder
    return SentenceTransformerEmbedder


_LAZY_ATTRIBUTES = {
    "EditorServices": get_editor_services,
    "ChromaVectorStore": get_chroma_vector_store,
    "SentenceTransformerEmbedder": get_sentence_transformer_embedder,
}


def __getattr__(name):
    """Module-level __getattr__ for lazy loading"""
    loader = _LAZY_ATTRIBUTES.get(name)
    if loader is not None:
        return loader()
    raise AttributeError(f"module 'editor_rag' has no attribute '{name}'")


__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",

    # Core types
    "FileChange", "FileChangeType", "EventKind", "FileState",
    "ShadowWorkspaceInfo", "IndexResult", "RagResponse",
    "VectorStore", "Embedder", "ChangeEventBus",

    # Configuration
    "VectorDBConfig", "EmbeddingPolicy", "AppConfig",

    # Lazy-loaded (use get_* functions for explicit loading)
    "get_editor_services",
    "get_chroma_vector_store",
    "get_sentence_transformer_embedder",
    "EditorServices", "ChromaVectorStore", "SentenceTransformerEmbedder",
]
