"""Storage implementations for editor-rag"""

from typing import TYPE_CHECKING

from .state_store import (
    JsonStateStore,
    add_to_recent_projects,
    get_recent_projects,
    get_expanded_dirs,
    save_expanded_dirs,
    get_workspace_root,
    set_workspace_root,
)

if TYPE_CHECKING:
    from .chroma import ChromaVectorStore


def __getattr__(name):
    """ChromaVectorStore is loaded on first use (imports chromadb)"""
    if name == "ChromaVectorStore":
        from .chroma import ChromaVectorStore
        return ChromaVectorStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ChromaVectorStore",
    "JsonStateStore",
    "add_to_recent_projects", "get_recent_projects",
    "get_expanded_dirs", "save_expanded_dirs",
    "get_workspace_root", "set_workspace_root",
]
