"""
Data models for the file-change driven embedding pipeline and shadow workspaces
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class FileChangeType(str, Enum):
    """Kind of filesystem mutation carried by a FileChange"""
    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"


class EventKind(str, Enum):
    """
    Event kinds carried on the ChangeEventBus.

    - FILE_CHANGE: normalized filesystem mutation (payload: FileChange)
    - PROJECT_OPENED: a project root was opened in the editor (payload: ProjectEvent)
    """
    FILE_CHANGE = "file-change"
    PROJECT_OPENED = "project-opened"


class FileState(str, Enum):
    """Per-path state of the embedding pipeline"""
    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"


@dataclass(frozen=True)
class FileChange:
    """A normalized filesystem change for a single absolute path"""
    path: str
    type: FileChangeType


@dataclass(frozen=True)
class ProjectEvent:
    """Lifecycle event for a project root"""
    path: str


@dataclass
class ChunkMetadata:
    """Metadata stored alongside every embedded chunk"""
    source: str
    user_id: str
    language: str
    timestamp: str

    def to_store(self) -> Dict[str, Any]:
        """Metadata in the key layout the vector store filters on"""
        return {
            "source": self.source,
            "userId": self.user_id,
            "language": self.language,
            "timestamp": self.timestamp,
        }


@dataclass
class Chunk:
    """A positional slice of a file's content"""
    id: str
    index: int
    text: str
    metadata: ChunkMetadata


@dataclass(frozen=True)
class ShadowWorkspaceInfo:
    """Record of one project's shadow mirror"""
    original_path: str
    shadow_path: str

    def to_dict(self) -> Dict[str, str]:
        return {"originalPath": self.original_path, "shadowPath": self.shadow_path}


# ─────────────────────────────────────────────────────────────────────────────
# Result types returned across the service boundary
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class IndexResult:
    """Outcome of an embedding, deletion or smart-update operation"""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    chunks_count: int = 0
    changed_chunks: int = 0

    @classmethod
    def ok(cls, message: str, chunks_count: int = 0, changed_chunks: int = 0) -> 'IndexResult':
        return cls(success=True, message=message, chunks_count=chunks_count, changed_chunks=changed_chunks)

    @classmethod
    def failed(cls, error: str) -> 'IndexResult':
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.message is not None:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error
        if self.chunks_count:
            data["chunksCount"] = self.chunks_count
        return data


@dataclass
class ExistenceResult:
    """Outcome of a vector store existence check"""
    success: bool
    exists: bool
    error: Optional[str] = None


@dataclass
class RetrievedChunk:
    """A chunk returned by a semantic query"""
    id: str
    content: str
    metadata: Dict[str, Any]
    score: Optional[float] = None


@dataclass
class RetrievalResult:
    """Outcome of a vector store query"""
    success: bool
    results: List[RetrievedChunk] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.results)


@dataclass
class SourceRef:
    """Reference to a chunk used to ground a RAG answer"""
    id: str
    source: Optional[str]
    score: Optional[float] = None


@dataclass
class RagResponse:
    """Answer produced by retrieval-augmented generation"""
    success: bool
    response: str
    sources: List[SourceRef] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "response": self.response,
            "sources": [asdict(s) for s in self.sources],
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ShadowToolResult:
    """Outcome of an AI tool write into the shadow tree"""
    success: bool
    shadow_path: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "shadowPath": self.shadow_path, "message": self.message}


@dataclass
class FileContent:
    """File content as presented to the editor"""
    content: str
    language: str


@dataclass
class RecentProject:
    """Entry of the recently opened projects list"""
    path: str
    name: str
    last_opened: int

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "name": self.name, "lastOpened": self.last_opened}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecentProject':
        return cls(path=data["path"], name=data["name"], last_opened=int(data["lastOpened"]))
