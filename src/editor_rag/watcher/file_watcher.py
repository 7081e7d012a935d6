"""
FileSystemWatcher - reference-counted watchdog observers that normalize OS
notifications into FileChange events.

Observer callbacks run on watchdog threads; every event hops onto the event
loop before it touches the bus or any subscriber state.
"""

import asyncio
import logging
import os
from pathlib import PurePath
from typing import Callable, Dict, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..core.events import ChangeEventBus
from ..core.models import EventKind, FileChange, FileChangeType, ProjectEvent

logger = logging.getLogger(__name__)

Sink = Callable[[FileChange], None]
ObserverFactory = Callable[[], Observer]


def normalize_dir(path: str) -> str:
    return os.path.normpath(os.path.abspath(os.path.expanduser(path)))


def is_hidden(root: str, path: str) -> bool:
    """True if any component of ``path`` below ``root`` starts with a dot"""
    try:
        relative = os.path.relpath(path, root)
    except ValueError:
        return False
    if relative == os.curdir:
        return False
    return any(part.startswith('.') and part not in (os.curdir, os.pardir)
               for part in PurePath(relative).parts)


class _DirectoryEventHandler(FileSystemEventHandler):
    """Translates watchdog callbacks for one watched root"""

    def __init__(self, watcher: 'FileSystemWatcher', root: str):
        super().__init__()
        self.watcher = watcher
        self.root = root

    def on_created(self, event: FileSystemEvent) -> None:
        self.watcher._on_os_event(self.root, os.fsdecode(event.src_path), FileChangeType.ADDED,
                                  event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes accompany every child event
        if event.is_directory:
            return
        self.watcher._on_os_event(self.root, os.fsdecode(event.src_path), FileChangeType.UPDATED, False)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self.watcher._on_os_event(self.root, os.fsdecode(event.src_path), FileChangeType.DELETED,
                                  event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        self.watcher._on_os_event(self.root, os.fsdecode(event.src_path), FileChangeType.DELETED,
                                  event.is_directory)
        self.watcher._on_os_event(self.root, os.fsdecode(event.dest_path), FileChangeType.ADDED,
                                  event.is_directory)


class FileSystemWatcher:
    """
    Watches directories on behalf of named subscribers.

    A directory has at most one observer no matter how many subscribers ask
    for it; the observer is stopped when the last subscriber leaves. Every
    event is published on the bus for internal services, and handed to the
    sinks of the subscribers registered for the directory it came from.
    """

    def __init__(self,
                 bus: ChangeEventBus,
                 observer_factory: Optional[ObserverFactory] = None,
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self.bus = bus
        self._observer_factory = observer_factory or Observer
        self._loop = loop
        self._observers: Dict[str, Observer] = {}
        self._subscribers: Dict[str, Set[str]] = {}
        self._sinks: Dict[str, Sink] = {}

    def _capture_loop(self) -> None:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                pass
            else:
                self.bus.bind_loop(self._loop)

    # ─────────────────────────────────────────────────────────────────────
    # Subscriptions
    # ─────────────────────────────────────────────────────────────────────

    def watch(self, dir_path: str, subscriber_id: str) -> bool:
        """Ensure ``dir_path`` is observed and record ``subscriber_id`` as interested"""
        dir_path = normalize_dir(dir_path)
        self._capture_loop()
        try:
            if dir_path not in self._observers:
                if not os.path.isdir(dir_path):
                    raise NotADirectoryError(f"Not a directory: {dir_path}")
                observer = self._observer_factory()
                observer.schedule(_DirectoryEventHandler(self, dir_path), dir_path, recursive=True)
                observer.start()
                self._observers[dir_path] = observer
                logger.info(f"[FileWatcher] Watching {dir_path}")
            self._subscribers.setdefault(dir_path, set()).add(subscriber_id)
            return True
        except Exception as e:
            logger.error(f"[FileWatcher] Error watching directory {dir_path}: {e}")
            return False

    def unwatch(self, dir_path: str, subscriber_id: str) -> bool:
        """Drop ``subscriber_id``'s interest; stop the observer when nobody is left"""
        dir_path = normalize_dir(dir_path)
        try:
            subscribers = self._subscribers.get(dir_path)
            if subscribers is None:
                return True
            subscribers.discard(subscriber_id)
            if not subscribers:
                del self._subscribers[dir_path]
                observer = self._observers.pop(dir_path, None)
                if observer is not None:
                    self._stop_observer(observer)
                    logger.info(f"[FileWatcher] Stopped watching {dir_path}")
            return True
        except Exception as e:
            logger.error(f"[FileWatcher] Error unwatching directory {dir_path}: {e}")
            return False

    def cleanup(self, subscriber_id: str) -> None:
        """Remove ``subscriber_id`` from every directory it watches"""
        for dir_path, subscribers in list(self._subscribers.items()):
            if subscriber_id in subscribers:
                self.unwatch(dir_path, subscriber_id)
        self._sinks.pop(subscriber_id, None)

    def register_sink(self, subscriber_id: str, sink: Sink) -> None:
        """Attach a direct delivery callback (a UI surface) for ``subscriber_id``"""
        self._sinks[subscriber_id] = sink

    def unregister_sink(self, subscriber_id: str) -> None:
        self._sinks.pop(subscriber_id, None)

    def watched_directories(self) -> List[str]:
        return sorted(self._observers)

    def subscribers_of(self, dir_path: str) -> Set[str]:
        return set(self._subscribers.get(normalize_dir(dir_path), set()))

    def notify_project_open(self, project_path: str) -> None:
        self._capture_loop()
        self.bus.publish(EventKind.PROJECT_OPENED, ProjectEvent(normalize_dir(project_path)))

    @staticmethod
    def _stop_observer(observer: Observer) -> None:
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=2.0)

    def close(self) -> None:
        """Stop every observer and forget all subscriptions"""
        for dir_path, observer in list(self._observers.items()):
            try:
                self._stop_observer(observer)
            except Exception as e:
                logger.warning(f"[FileWatcher] Error stopping observer for {dir_path}: {e}")
        self._observers.clear()
        self._subscribers.clear()
        self._sinks.clear()

    # ─────────────────────────────────────────────────────────────────────
    # Event handling
    # ─────────────────────────────────────────────────────────────────────

    def _on_os_event(self, root: str, path: str, change_type: FileChangeType, is_directory: bool) -> None:
        """Observer thread: filter, stat, then hand over to the loop"""
        if is_hidden(root, path):
            return

        if change_type != FileChangeType.DELETED:
            try:
                os.stat(path)
            except OSError as e:
                logger.warning(f"[FileWatcher] Dropping {change_type.value} event for {path}: {e}")
                return

        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"[FileWatcher] No event loop, dropping event for {path}")
            return
        try:
            loop.call_soon_threadsafe(self._dispatch, root, FileChange(path=path, type=change_type))
        except RuntimeError as e:
            logger.debug(f"[FileWatcher] Event loop unavailable, dropping event for {path}: {e}")

    def _dispatch(self, root: str, change: FileChange) -> None:
        subscribers = self._subscribers.get(root)
        if not subscribers:
            return

        logger.debug(f"[FileWatcher] {change.type.value}: {change.path}")
        self.bus.publish(EventKind.FILE_CHANGE, change)

        for subscriber_id in list(subscribers):
            sink = self._sinks.get(subscriber_id)
            if sink is None:
                continue
            try:
                sink(change)
            except Exception as e:
                logger.error(f"[FileWatcher] Sink for '{subscriber_id}' failed on {change.path}: {e}")
