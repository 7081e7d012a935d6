"""
Embedding policy - which files are tracked, how bursts are debounced and how
many files may be embedded at once.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Dict, List, Set

logger = logging.getLogger(__name__)


DEFAULT_EXTENSIONS = [
    '.js', '.jsx', '.ts', '.tsx', '.mjs',
    '.py', '.java', '.cpp', '.c', '.go',
    '.rb', '.rs', '.php', '.md', '.html',
    '.css', '.sol', '.json',
]

DEFAULT_IGNORED_DIRECTORIES = [
    'node_modules', '.git', 'dist', 'build', '.next', 'coverage',
]

# Splitter language per extension; unknown extensions split as "js"
EMBEDDING_LANGUAGE_MAP: Dict[str, str] = {
    '.js': 'js',
    '.jsx': 'js',
    '.ts': 'js',
    '.tsx': 'js',
    '.mjs': 'js',
    '.py': 'python',
    '.java': 'java',
    '.cpp': 'cpp',
    '.c': 'cpp',
    '.go': 'go',
    '.rb': 'ruby',
    '.rs': 'rust',
    '.php': 'php',
    '.md': 'markdown',
    '.html': 'html',
    '.sol': 'sol',
}

DEFAULT_EMBEDDING_LANGUAGE = 'js'

# Editor display language per extension
UI_LANGUAGE_MAP: Dict[str, str] = {
    '.js': 'javascript',
    '.jsx': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'typescript',
    '.mjs': 'javascript',
    '.html': 'html',
    '.css': 'css',
    '.json': 'json',
    '.md': 'markdown',
    '.py': 'python',
    '.java': 'java',
    '.c': 'c',
    '.cpp': 'cpp',
    '.go': 'go',
    '.rs': 'rust',
    '.rb': 'ruby',
    '.php': 'php',
    '.sh': 'shell',
    '.yaml': 'yaml',
    '.yml': 'yaml',
    '.xml': 'xml',
}


def _normalize_extension(extension: str) -> str:
    ext = extension if extension.startswith('.') else f'.{extension}'
    return ext.lower()


def _extension_of(path: str) -> str:
    return os.path.splitext(path)[1].lower()


def ui_language_for(path: str) -> str:
    """Display language for the editor, 'plaintext' when unknown"""
    return UI_LANGUAGE_MAP.get(_extension_of(path), 'plaintext')


@dataclass
class EmbeddingPolicy:
    """Process-wide embedding configuration, mutable at runtime"""

    # File extensions to embed
    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))

    # Directory names whose contents are never embedded
    ignored_directories: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORED_DIRECTORIES))

    # Quiet period a path needs before it is processed
    debounce_seconds: float = 5.0

    # Files embedded simultaneously, process-wide
    max_concurrency: int = 1

    # Splitter settings
    chunk_size: int = 1000
    chunk_overlap: int = 100

    # Fraction of changed chunks above which a smart update re-embeds everything
    smart_update_threshold: float = 0.5

    def __post_init__(self):
        self.extensions = list(dict.fromkeys(_normalize_extension(e) for e in self.extensions))
        self.ignored_directories = list(dict.fromkeys(self.ignored_directories))
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {self.debounce_seconds}")
        if self.max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")

    def get_extension_set(self) -> Set[str]:
        return set(self.extensions)

    def add_extension(self, extension: str) -> None:
        ext = _normalize_extension(extension)
        if ext not in self.extensions:
            self.extensions.append(ext)

    def remove_extension(self, extension: str) -> bool:
        ext = _normalize_extension(extension)
        if ext in self.extensions:
            self.extensions.remove(ext)
            return True
        return False

    def add_ignored_directory(self, name: str) -> None:
        if name not in self.ignored_directories:
            self.ignored_directories.append(name)

    def remove_ignored_directory(self, name: str) -> bool:
        if name in self.ignored_directories:
            self.ignored_directories.remove(name)
            return True
        return False

    def is_trackable(self, path: str) -> bool:
        """True if the file extension is on the allow-list"""
        return _extension_of(path) in self.get_extension_set()

    def in_ignored_directory(self, path: str) -> bool:
        """True if any component of the path is an ignored directory name"""
        parts = PurePath(path).parts
        for name in self.ignored_directories:
            if name in parts:
                logger.debug(f"Ignoring '{path}' - inside ignored directory '{name}'")
                return True
        return False

    def should_ignore(self, path: str) -> bool:
        return self.in_ignored_directory(path) or not self.is_trackable(path)

    def language_for(self, path: str) -> str:
        return EMBEDDING_LANGUAGE_MAP.get(_extension_of(path), DEFAULT_EMBEDDING_LANGUAGE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'extensions': self.extensions,
            'ignored_directories': self.ignored_directories,
            'debounce_seconds': self.debounce_seconds,
            'max_concurrency': self.max_concurrency,
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
            'smart_update_threshold': self.smart_update_threshold,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmbeddingPolicy':
        defaults = cls.__dataclass_fields__
        return cls(
            extensions=data.get('extensions', defaults['extensions'].default_factory()),
            ignored_directories=data.get('ignored_directories', defaults['ignored_directories'].default_factory()),
            debounce_seconds=float(data.get('debounce_seconds', 5.0)),
            max_concurrency=int(data.get('max_concurrency', 1)),
            chunk_size=int(data.get('chunk_size', 1000)),
            chunk_overlap=int(data.get('chunk_overlap', 100)),
            smart_update_threshold=float(data.get('smart_update_threshold', 0.5)),
        )
