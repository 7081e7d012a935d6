"""
WorkspaceRegistry - original project roots mapped to their shadow mirrors.
"""

import logging
import os
from typing import Dict, List, Optional

from ..core.models import ShadowWorkspaceInfo

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


def is_within(path: str, root: str) -> bool:
    """True if ``path`` is ``root`` or lies below it (component-wise)"""
    if path == root:
        return True
    return path.startswith(root.rstrip(os.sep) + os.sep)


class WorkspaceRegistry:
    """
    One entry per original root. Registering a root again replaces its
    entry; the caller is responsible for the shadow directory it replaced.
    """

    def __init__(self):
        self._workspaces: Dict[str, ShadowWorkspaceInfo] = {}

    def register(self, original_path: str, info: ShadowWorkspaceInfo) -> Optional[ShadowWorkspaceInfo]:
        """Store ``info`` for ``original_path``; returns the entry it replaced, if any"""
        key = normalize_path(original_path)
        previous = self._workspaces.get(key)
        self._workspaces[key] = info
        if previous is not None and previous.shadow_path != info.shadow_path:
            logger.warning(f"[WorkspaceRegistry] Replaced shadow workspace for {key}: {previous.shadow_path}")
        return previous

    def unregister(self, original_path: str) -> Optional[ShadowWorkspaceInfo]:
        return self._workspaces.pop(normalize_path(original_path), None)

    def lookup_exact(self, path: str) -> Optional[ShadowWorkspaceInfo]:
        return self._workspaces.get(normalize_path(path))

    def lookup_by_prefix(self, path: str) -> Optional[ShadowWorkspaceInfo]:
        """The workspace with the longest registered root containing ``path``"""
        path = normalize_path(path)
        best_root = None
        for root in self._workspaces:
            if is_within(path, root) and (best_root is None or len(root) > len(best_root)):
                best_root = root
        return self._workspaces[best_root] if best_root is not None else None

    def translate(self, path: str) -> Optional[str]:
        """Shadow coordinates of ``path``, or None outside every workspace"""
        info = self.lookup_by_prefix(path)
        if info is None:
            return None
        relative = os.path.relpath(normalize_path(path), normalize_path(info.original_path))
        if relative == os.curdir:
            return info.shadow_path
        return os.path.join(info.shadow_path, relative)

    def entries(self) -> List[ShadowWorkspaceInfo]:
        return list(self._workspaces.values())

    def __len__(self) -> int:
        return len(self._workspaces)

    def __contains__(self, original_path: str) -> bool:
        return normalize_path(original_path) in self._workspaces
