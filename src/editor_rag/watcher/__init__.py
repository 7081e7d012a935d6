"""Filesystem watching for editor-rag"""

from .file_watcher import FileSystemWatcher, is_hidden, normalize_dir

__all__ = ["FileSystemWatcher", "is_hidden", "normalize_dir"]
