"""
ShadowWorkspaceMirror - keeps an isolated copy of each opened project under
a cache root, as a safe target for automated edits.

The original tree is only ever read. Whole-project clones go through the
platform's native copy tools first and fall back to a Python walk that
produces the same tree.
"""

import asyncio
import functools
import logging
import os
import secrets
import shutil
import subprocess
import sys
import time
from typing import List, Optional

from ..core.events import ChangeEventBus, Subscription
from ..core.models import EventKind, FileChange, FileChangeType, ShadowWorkspaceInfo
from .workspace_registry import WorkspaceRegistry, normalize_path

logger = logging.getLogger(__name__)


def shadow_dir_name(project_path: str) -> str:
    """``{basename}-{16 hex chars}-{epoch ms}``"""
    root_name = os.path.basename(os.path.normpath(project_path))
    return f"{root_name}-{secrets.token_hex(8)}-{int(time.time() * 1000)}"


# ─────────────────────────────────────────────────────────────────────────
# Copy strategies
# ─────────────────────────────────────────────────────────────────────────


def native_copy_tree(source: str, destination: str) -> None:
    """Full copy with the platform copy tool; raises on any failure"""
    if sys.platform == "win32":
        subprocess.run(
            ["xcopy", source, destination, "/E", "/I", "/H", "/Y"],
            check=True, capture_output=True,
        )
    else:
        subprocess.run(
            ["cp", "-R", os.path.join(source, "."), destination],
            check=True, capture_output=True,
        )


def native_copy_structure(source: str, destination: str) -> None:
    """Directory-only copy with the platform tools; raises on any failure"""
    if sys.platform == "win32":
        result = subprocess.run(
            ["robocopy", source, destination, "/E", "/XF", "*", "/R:0", "/W:0"],
            capture_output=True,
        )
        # robocopy reports success with exit codes below 8
        if result.returncode >= 8:
            raise subprocess.CalledProcessError(result.returncode, result.args, result.stdout, result.stderr)
    else:
        subprocess.run(
            ["find", ".", "-type", "d", "-exec", "mkdir", "-p", os.path.join(destination, "{}"), ";"],
            cwd=source, check=True, capture_output=True,
        )


def manual_copy_tree(source: str, destination: str) -> None:
    shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)


def manual_copy_structure(source: str, destination: str) -> None:
    for root, dirnames, _ in os.walk(source):
        # Symlinked directories are not directories to `find -type d`
        dirnames[:] = [d for d in dirnames if not os.path.islink(os.path.join(root, d))]
        relative = os.path.relpath(root, source)
        os.makedirs(os.path.join(destination, relative), exist_ok=True)


def clone_project(source: str, destination: str, copy_files: bool) -> str:
    """
    Clone ``source`` into ``destination``.

    Returns the strategy that produced the tree: "native" or "manual".
    """
    native = native_copy_tree if copy_files else native_copy_structure
    manual = manual_copy_tree if copy_files else manual_copy_structure
    try:
        native(source, destination)
        return "native"
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"[ShadowWorkspace] Native copy failed ({e}), falling back to manual copy")
        manual(source, destination)
        return "manual"


def remove_path(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.unlink(path)


class ShadowWorkspaceMirror:
    """
    Creates, syncs and removes shadow workspaces.

    All blocking filesystem work runs in the default executor.
    """

    def __init__(self, registry: WorkspaceRegistry, shadow_root: str):
        self.registry = registry
        self.shadow_root = normalize_path(shadow_root)
        os.makedirs(self.shadow_root, exist_ok=True)
        self._subscription: Optional[Subscription] = None

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    def attach(self, bus: ChangeEventBus) -> None:
        self._subscription = bus.subscribe(EventKind.FILE_CHANGE, self.handle_file_change, name="shadow-mirror")

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    async def create_shadow_workspace(self, project_path: str, copy_files: bool = False) -> ShadowWorkspaceInfo:
        """
        Allocate a fresh shadow directory for ``project_path`` and clone it.

        An existing shadow workspace for the same root is removed first.
        """
        project_path = normalize_path(project_path)
        if not os.path.isdir(project_path):
            raise NotADirectoryError(f"Not a directory: {project_path}")

        if project_path in self.registry:
            logger.info(f"[ShadowWorkspace] Replacing existing shadow workspace for {project_path}")
            await self.cleanup_shadow_workspace(project_path)

        shadow_path = os.path.join(self.shadow_root, shadow_dir_name(project_path))
        os.makedirs(shadow_path)
        try:
            strategy = await self._run(clone_project, project_path, shadow_path, copy_files)
        except Exception:
            await self._run(shutil.rmtree, shadow_path, True)
            raise

        info = ShadowWorkspaceInfo(original_path=project_path, shadow_path=shadow_path)
        self.registry.register(project_path, info)
        logger.info(
            f"[ShadowWorkspace] Created shadow workspace {shadow_path} for {project_path} "
            f"({'full copy' if copy_files else 'structure only'}, {strategy})"
        )
        return info

    def get_shadow_workspace(self, original_path: str) -> Optional[ShadowWorkspaceInfo]:
        return self.registry.lookup_exact(original_path)

    def get_shadow_path(self, original_path: str) -> Optional[str]:
        """Translate a path inside a mirrored project into shadow coordinates"""
        return self.registry.translate(original_path)

    async def cleanup_shadow_workspace(self, original_path: str) -> bool:
        """Delete the shadow directory and forget the mapping"""
        info = self.registry.lookup_exact(original_path)
        if info is None:
            return False
        try:
            if os.path.exists(info.shadow_path):
                await self._run(shutil.rmtree, info.shadow_path)
        except OSError as e:
            logger.error(f"[ShadowWorkspace] Error cleaning up shadow workspace for {original_path}: {e}")
            return False
        self.registry.unregister(original_path)
        logger.info(f"[ShadowWorkspace] Cleaned up shadow workspace for {info.original_path}")
        return True

    async def cleanup_all(self) -> List[str]:
        """Best-effort removal of every shadow workspace; returns the roots cleaned"""
        cleaned = []
        for info in self.registry.entries():
            if await self.cleanup_shadow_workspace(info.original_path):
                cleaned.append(info.original_path)
        return cleaned

    # ─────────────────────────────────────────────────────────────────────
    # File level sync
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _copy_file(source: str, destination: str) -> None:
        os.makedirs(os.path.dirname(destination), exist_ok=True)
        shutil.copy2(source, destination)

    async def copy_file_to_shadow_workspace(self, original_file_path: str) -> Optional[str]:
        """Copy one file into its workspace's shadow tree; None if no workspace owns it"""
        shadow_file_path = self.registry.translate(original_file_path)
        if shadow_file_path is None:
            logger.error(f"[ShadowWorkspace] No shadow workspace found for file: {original_file_path}")
            return None
        try:
            await self._run(self._copy_file, normalize_path(original_file_path), shadow_file_path)
        except OSError as e:
            logger.error(f"[ShadowWorkspace] Error copying file to shadow workspace: {original_file_path}: {e}")
            return None
        return shadow_file_path

    @staticmethod
    def _sync(change: FileChange, shadow_path: str) -> None:
        if change.type == FileChangeType.DELETED:
            if os.path.lexists(shadow_path):
                remove_path(shadow_path)
                logger.info(f"[ShadowWorkspace] Deleted from shadow workspace: {shadow_path}")
            return

        if os.path.isdir(change.path):
            os.makedirs(shadow_path, exist_ok=True)
        elif os.path.exists(change.path):
            ShadowWorkspaceMirror._copy_file(change.path, shadow_path)
            logger.info(f"[ShadowWorkspace] Synced file to shadow workspace: {shadow_path}")

    async def handle_file_change(self, change: FileChange) -> None:
        """Mirror one real change into the owning shadow tree"""
        info = self.registry.lookup_by_prefix(change.path)
        if info is None:
            return
        shadow_path = self.registry.translate(change.path)
        if shadow_path is None or shadow_path == info.shadow_path:
            return
        logger.debug(f"[ShadowWorkspace] Syncing {change.type.value}: {change.path} -> {shadow_path}")
        try:
            await self._run(self._sync, change, shadow_path)
        except OSError as e:
            logger.error(f"[ShadowWorkspace] Error syncing {change.path} with shadow workspace: {e}")
