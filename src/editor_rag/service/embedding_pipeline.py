"""
EmbeddingPipeline - turns file-change events into vector store updates.

Per path the pipeline moves Idle -> Pending -> Processing -> Idle:

- every accepted event (re)starts a debounce timer for its path and records
  the latest change type, so a burst collapses to one action;
- when a timer fires the path becomes ready, and is dispatched as soon as a
  concurrency slot is free and the path is not already being processed;
- processing always releases its slot, whatever the outcome, and then
  promotes the next ready path.
"""

import asyncio
import logging
import os
from collections import OrderedDict
from typing import Dict, List, Optional, Set

from ..config.policy import EmbeddingPolicy
from ..core.events import ChangeEventBus, Subscription
from ..core.models import EventKind, FileChange, FileChangeType, FileState, ProjectEvent
from ..watcher.file_watcher import FileSystemWatcher, normalize_dir
from .rag_service import RagService

logger = logging.getLogger(__name__)

EMBEDDING_SUBSCRIBER_ID = "embedding-service"


class EmbeddingPipeline:
    """Debounced, concurrency-bounded embedding of watched project files"""

    def __init__(self,
                 rag: RagService,
                 policy: EmbeddingPolicy,
                 watcher: Optional[FileSystemWatcher] = None):
        self.rag = rag
        self.policy = policy
        self.watcher = watcher

        self._watched_paths: Set[str] = set()

        # path -> latest unprocessed change type
        self._pending: Dict[str, FileChangeType] = {}
        # path -> debounce timer
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        # paths whose debounce elapsed, in the order they became ready
        self._ready: "OrderedDict[str, None]" = OrderedDict()

        self._processing: Set[str] = set()
        self._active = 0
        self._tasks: Set[asyncio.Task] = set()
        self._slot_freed: Optional[asyncio.Condition] = None
        self._subscriptions: List[Subscription] = []

    # ─────────────────────────────────────────────────────────────────────
    # Bus wiring
    # ─────────────────────────────────────────────────────────────────────

    def attach(self, bus: ChangeEventBus) -> None:
        self._subscriptions = [
            bus.subscribe(EventKind.FILE_CHANGE, self.on_file_change, name="embedding-pipeline"),
            bus.subscribe(EventKind.PROJECT_OPENED, self.on_project_opened, name="embedding-pipeline-scan"),
        ]

    def detach(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def on_file_change(self, change: FileChange) -> None:
        if not self.is_watched(change.path):
            return
        self.handle_file_change(change.path, change.type)

    async def on_project_opened(self, event: ProjectEvent) -> None:
        self.watch_path_for_embedding(event.path)
        await self.scan_directory(event.path)

    # ─────────────────────────────────────────────────────────────────────
    # Watched paths
    # ─────────────────────────────────────────────────────────────────────

    def watch_path_for_embedding(self, dir_path: str) -> bool:
        """Embed changes below ``dir_path`` and make sure the watcher observes it"""
        normalized = normalize_dir(dir_path)
        self._watched_paths.add(normalized)
        if self.watcher is not None:
            watch_result = self.watcher.watch(normalized, EMBEDDING_SUBSCRIBER_ID)
            logger.info(f"[EmbeddingPipeline] Directory {normalized} watch result: {watch_result}")
            return watch_result
        return True

    def unwatch_path_for_embedding(self, dir_path: str) -> bool:
        normalized = normalize_dir(dir_path)
        self._watched_paths.discard(normalized)
        if self.watcher is not None:
            return self.watcher.unwatch(normalized, EMBEDDING_SUBSCRIBER_ID)
        return True

    def get_watched_paths(self) -> List[str]:
        return sorted(self._watched_paths)

    def is_watched(self, file_path: str) -> bool:
        for watched in self._watched_paths:
            if file_path == watched or file_path.startswith(watched.rstrip(os.sep) + os.sep):
                return True
        return False

    # ─────────────────────────────────────────────────────────────────────
    # Policy management
    # ─────────────────────────────────────────────────────────────────────

    def set_debounce_seconds(self, seconds: float) -> None:
        """Applies to events arriving after the change; running timers keep their deadline"""
        if seconds < 0:
            raise ValueError(f"debounce_seconds must be >= 0, got {seconds}")
        self.policy.debounce_seconds = seconds

    def set_max_concurrency(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.policy.max_concurrency = max_concurrency
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._dispatch_ready()
        task = loop.create_task(self._notify_slot_freed())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def add_ignored_directory(self, name: str) -> None:
        self.policy.add_ignored_directory(name)

    def remove_ignored_directory(self, name: str) -> bool:
        return self.policy.remove_ignored_directory(name)

    def get_ignored_directories(self) -> List[str]:
        return list(self.policy.ignored_directories)

    def add_file_extension(self, extension: str) -> None:
        self.policy.add_extension(extension)

    def remove_file_extension(self, extension: str) -> bool:
        return self.policy.remove_extension(extension)

    def get_file_extensions(self) -> List[str]:
        return list(self.policy.extensions)

    # ─────────────────────────────────────────────────────────────────────
    # Observation
    # ─────────────────────────────────────────────────────────────────────

    def get_state(self, file_path: str) -> FileState:
        if file_path in self._processing:
            return FileState.PROCESSING
        if file_path in self._pending:
            return FileState.PENDING
        return FileState.IDLE

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def active_count(self) -> int:
        return self._active

    # ─────────────────────────────────────────────────────────────────────
    # Debounce
    # ─────────────────────────────────────────────────────────────────────

    def handle_file_change(self, file_path: str, change_type: FileChangeType) -> bool:
        """
        Queue a change behind the debounce timer.

        Returns False when the policy ignores the path. Deletions of paths
        without a trackable extension are kept, since they may be directories
        whose files are stored.
        """
        if self.policy.in_ignored_directory(file_path):
            return False
        if change_type != FileChangeType.DELETED and not self.policy.is_trackable(file_path):
            return False

        loop = asyncio.get_running_loop()
        self._pending[file_path] = change_type
        self._ready.pop(file_path, None)

        timer = self._timers.pop(file_path, None)
        if timer is not None:
            timer.cancel()
        self._timers[file_path] = loop.call_later(
            self.policy.debounce_seconds, self._on_debounce_elapsed, file_path
        )
        logger.debug(f"[EmbeddingPipeline] Pending {change_type.value}: {file_path}")
        return True

    def _on_debounce_elapsed(self, file_path: str) -> None:
        self._timers.pop(file_path, None)
        if file_path in self._pending:
            self._ready[file_path] = None
            self._dispatch_ready()

    # ─────────────────────────────────────────────────────────────────────
    # Processing
    # ─────────────────────────────────────────────────────────────────────

    def _has_free_slot(self) -> bool:
        return self._active < self.policy.max_concurrency

    def _dispatch_ready(self) -> None:
        for file_path in list(self._ready):
            if not self._has_free_slot():
                break
            if file_path in self._processing:
                continue
            del self._ready[file_path]
            change_type = self._pending.pop(file_path)
            self._spawn(file_path, change_type)

    def _spawn(self, file_path: str, change_type: FileChangeType) -> asyncio.Task:
        # Slot is claimed synchronously, before the task first yields
        self._active += 1
        self._processing.add(file_path)
        task = asyncio.get_running_loop().create_task(self._process(file_path, change_type))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _process(self, file_path: str, change_type: FileChangeType) -> None:
        logger.info(f"[EmbeddingPipeline] Handling {change_type.value} for {file_path}")
        try:
            result = await self.rag.handle_file_change(file_path, change_type)
            if result.success:
                logger.info(f"[EmbeddingPipeline] Updated embeddings for {file_path}: {result.message}")
            else:
                logger.error(f"[EmbeddingPipeline] Failed to update embeddings for {file_path}: {result.error}")
        except Exception as e:
            logger.error(f"[EmbeddingPipeline] Error handling file change for {file_path}: {e}")
        finally:
            self._active -= 1
            self._processing.discard(file_path)
            self._dispatch_ready()
            await self._notify_slot_freed()

    def _condition(self) -> asyncio.Condition:
        if self._slot_freed is None:
            self._slot_freed = asyncio.Condition()
        return self._slot_freed

    async def _notify_slot_freed(self) -> None:
        condition = self._condition()
        async with condition:
            condition.notify_all()

    async def _wait_for_slot(self, file_path: str) -> None:
        condition = self._condition()
        async with condition:
            await condition.wait_for(
                lambda: self._has_free_slot() and file_path not in self._processing
            )

    # ─────────────────────────────────────────────────────────────────────
    # Bulk scan
    # ─────────────────────────────────────────────────────────────────────

    def _collect_files(self, dir_path: str) -> List[str]:
        files = []
        for root, dirnames, filenames in os.walk(dir_path):
            skipped = [d for d in dirnames if d in self.policy.ignored_directories]
            for name in skipped:
                logger.debug(f"[EmbeddingPipeline] Skipping ignored directory: {os.path.join(root, name)}")
            dirnames[:] = sorted(d for d in dirnames if d not in self.policy.ignored_directories)
            for name in sorted(filenames):
                full_path = os.path.join(root, name)
                if self.policy.is_trackable(full_path):
                    files.append(full_path)
        return files

    async def scan_directory(self, dir_path: str) -> int:
        """
        Reconcile the store with every trackable file below ``dir_path``.

        Files without stored chunks are embedded, the rest go through the
        update path. Returns the number of files submitted.
        """
        dir_path = normalize_dir(dir_path)
        logger.info(f"[EmbeddingPipeline] Scanning directory for indexing: {dir_path}")
        loop = asyncio.get_running_loop()
        try:
            files = await loop.run_in_executor(None, self._collect_files, dir_path)
        except Exception as e:
            logger.error(f"[EmbeddingPipeline] Error scanning directory {dir_path}: {e}")
            return 0

        scan_tasks = []
        for file_path in files:
            existing = await self.rag.check_file_exists(file_path)
            change_type = FileChangeType.UPDATED if existing.exists else FileChangeType.ADDED
            await self._wait_for_slot(file_path)
            scan_tasks.append(self._spawn(file_path, change_type))

        if scan_tasks:
            await asyncio.gather(*scan_tasks, return_exceptions=True)
        logger.info(f"[EmbeddingPipeline] Completed scanning directory: {dir_path} ({len(files)} files)")
        return len(files)

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    async def join(self) -> None:
        """Wait for every in-flight file to finish processing"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def stop(self) -> None:
        """Cancel all debounce timers and forget pending changes"""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._ready.clear()
        self._pending.clear()
        logger.info("[EmbeddingPipeline] Stopped")
