"""
Persisted editor state: recently opened projects, expanded directories and
the last workspace root, stored as a single JSON document.
"""

import json
import logging
import os
import tempfile
import threading
import time
from typing import Any, Dict, List, Optional

from ..core.models import RecentProject

logger = logging.getLogger(__name__)

RECENT_PROJECTS_KEY = "recentProjects"
EXPANDED_DIRS_KEY = "expandedDirs"
WORKSPACE_ROOT_KEY = "workspaceRoot"

MAX_RECENT_PROJECTS = 10


class JsonStateStore:
    """
    Small key-value store backed by a JSON file.

    Every ``set`` rewrites the file through a temporary file in the same
    directory followed by ``os.replace``, so a crash never leaves a torn file.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(os.path.expanduser(path))
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read state file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring state file {self.path}: top level is not an object")
            return {}
        return data

    def _flush(self) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".state-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def delete(self, key: str) -> bool:
        with self._lock:
            if key not in self._data:
                return False
            del self._data[key]
            self._flush()
            return True


def add_to_recent_projects(store: JsonStateStore, project_path: str,
                           now_ms: Optional[int] = None) -> List[RecentProject]:
    """
    Record ``project_path`` as the most recently opened project.

    The list is most-recent-first, holds each path once and keeps at most
    ``MAX_RECENT_PROJECTS`` entries.
    """
    entry = RecentProject(
        path=project_path,
        name=os.path.basename(os.path.normpath(project_path)),
        last_opened=now_ms if now_ms is not None else int(time.time() * 1000),
    )
    existing = [p for p in get_recent_projects(store) if p.path != project_path]
    projects = [entry] + existing
    projects = projects[:MAX_RECENT_PROJECTS]
    store.set(RECENT_PROJECTS_KEY, [p.to_dict() for p in projects])
    return projects


def get_recent_projects(store: JsonStateStore) -> List[RecentProject]:
    projects = []
    for raw in store.get(RECENT_PROJECTS_KEY, []) or []:
        try:
            projects.append(RecentProject.from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed recent project entry {raw!r}: {e}")
    return projects


def get_expanded_dirs(store: JsonStateStore, root_path: str) -> List[str]:
    """Directories expanded in the file tree for a project root"""
    all_dirs = store.get(EXPANDED_DIRS_KEY, {}) or {}
    return list(all_dirs.get(root_path, []))


def save_expanded_dirs(store: JsonStateStore, root_path: str, dirs: List[str]) -> None:
    all_dirs = dict(store.get(EXPANDED_DIRS_KEY, {}) or {})
    all_dirs[root_path] = list(dirs)
    store.set(EXPANDED_DIRS_KEY, all_dirs)


def get_workspace_root(store: JsonStateStore) -> Optional[str]:
    return store.get(WORKSPACE_ROOT_KEY)


def set_workspace_root(store: JsonStateStore, root_path: str) -> None:
    store.set(WORKSPACE_ROOT_KEY, root_path)
