"""
Configuration for the Chroma vector database and the embedding model
"""

import os
from typing import Any, Dict, Optional
from dataclasses import dataclass


@dataclass
class VectorDBConfig:
    """Configuration for vector database connection"""
    # Chroma settings
    chroma_host: Optional[str] = None
    chroma_port: Optional[int] = None
    chroma_persist_directory: str = "./data/chroma"
    chroma_collection_name: str = "vector-store"

    # Embedding model settings
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_device: Optional[str] = None  # Auto-detect
    embedding_cache_dir: Optional[str] = None

    def __post_init__(self):
        self.chroma_persist_directory = os.path.abspath(os.path.expanduser(self.chroma_persist_directory))

    @classmethod
    def from_env(cls) -> 'VectorDBConfig':
        """Create config from environment variables"""
        return cls(
            chroma_host=os.getenv("CHROMA_HOST"),
            chroma_port=int(os.getenv("CHROMA_PORT", "8000")) if os.getenv("CHROMA_PORT") else None,
            chroma_persist_directory=os.getenv("CHROMA_PERSIST_DIR", "./data/chroma"),
            chroma_collection_name=os.getenv("CHROMA_COLLECTION", "vector-store"),
            embedding_model=os.getenv("EMBEDDING_MODEL", "all-MiniLM-L6-v2"),
            embedding_device=os.getenv("EMBEDDING_DEVICE"),
            embedding_cache_dir=os.getenv("EMBEDDING_CACHE_DIR")
        )

    def is_server_mode(self) -> bool:
        """Check if running in server/client mode vs local persistence"""
        return self.chroma_host is not None and self.chroma_port is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chroma_host': self.chroma_host,
            'chroma_port': self.chroma_port,
            'chroma_persist_directory': self.chroma_persist_directory,
            'chroma_collection_name': self.chroma_collection_name,
            'embedding_model': self.embedding_model,
            'embedding_device': self.embedding_device,
            'embedding_cache_dir': self.embedding_cache_dir,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VectorDBConfig':
        return cls(
            chroma_host=data.get('chroma_host'),
            chroma_port=data.get('chroma_port'),
            chroma_persist_directory=data.get('chroma_persist_directory', './data/chroma'),
            chroma_collection_name=data.get('chroma_collection_name', 'vector-store'),
            embedding_model=data.get('embedding_model', 'all-MiniLM-L6-v2'),
            embedding_device=data.get('embedding_device'),
            embedding_cache_dir=data.get('embedding_cache_dir'),
        )
