"""
Tests for FileSystemWatcher

A fake observer captures the scheduled handler so the tests can feed it
watchdog events directly, without depending on OS notification timing.
"""

import asyncio
import os
import shutil
import tempfile

import pytest
from watchdog.events import (
    DirModifiedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent,
)

from editor_rag.core.events import ChangeEventBus
from editor_rag.core.models import EventKind, FileChange, FileChangeType, ProjectEvent
from editor_rag.watcher.file_watcher import FileSystemWatcher, is_hidden


class FakeObserver:
    instances = []

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False
        FakeObserver.instances.append(self)

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def is_alive(self):
        return False

    def join(self, timeout=None):
        pass


@pytest.fixture
def project():
    path = tempfile.mkdtemp()
    yield os.path.realpath(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def bus():
    return ChangeEventBus()


@pytest.fixture
def watcher(bus):
    FakeObserver.instances = []
    return FileSystemWatcher(bus, observer_factory=FakeObserver)


def touch(path, content="x"):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)


async def settle(bus):
    # Let call_soon_threadsafe callbacks run, then wait for subscribers
    for _ in range(3):
        await asyncio.sleep(0)
    await bus.drain()


class TestIsHidden:

    def test_dot_components(self):
        assert is_hidden("/proj", "/proj/.git/config")
        assert is_hidden("/proj", "/proj/src/.env")
        assert not is_hidden("/proj", "/proj/src/app.ts")
        assert not is_hidden("/proj", "/proj")

    def test_hidden_root_itself_is_allowed(self):
        assert not is_hidden("/home/u/.config/proj", "/home/u/.config/proj/a.ts")


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_one_observer_per_directory(self, watcher, project):
        assert watcher.watch(project, "editor")
        assert watcher.watch(project, "embedding-service")

        assert len(FakeObserver.instances) == 1
        observer = FakeObserver.instances[0]
        assert observer.started
        assert observer.scheduled[0][1] == project
        assert observer.scheduled[0][2] is True
        assert watcher.subscribers_of(project) == {"editor", "embedding-service"}

        watcher.unwatch(project, "editor")
        assert not observer.stopped
        watcher.unwatch(project, "embedding-service")
        assert observer.stopped
        assert watcher.watched_directories() == []

    @pytest.mark.asyncio
    async def test_watch_missing_directory_fails(self, watcher, project):
        assert watcher.watch(os.path.join(project, "missing"), "editor") is False
        assert FakeObserver.instances == []

    @pytest.mark.asyncio
    async def test_cleanup_subscriber(self, watcher, project):
        other = tempfile.mkdtemp()
        try:
            watcher.watch(project, "editor")
            watcher.watch(other, "editor")
            watcher.watch(other, "embedding-service")

            watcher.cleanup("editor")

            assert watcher.watched_directories() == [os.path.normpath(os.path.abspath(other))]
            assert watcher.subscribers_of(other) == {"embedding-service"}
        finally:
            shutil.rmtree(other, ignore_errors=True)


class TestEventTranslation:

    def _handler(self):
        return FakeObserver.instances[0].scheduled[0][0]

    @pytest.mark.asyncio
    async def test_created_modified_deleted(self, watcher, bus, project):
        received = []
        bus.subscribe(EventKind.FILE_CHANGE, received.append)
        watcher.watch(project, "editor")
        handler = self._handler()

        path = os.path.join(project, "a.ts")
        touch(path)
        handler.dispatch(FileCreatedEvent(path))
        handler.dispatch(FileModifiedEvent(path))
        handler.dispatch(DirModifiedEvent(project))
        os.remove(path)
        handler.dispatch(FileDeletedEvent(path))
        await settle(bus)

        assert received == [
            FileChange(path, FileChangeType.ADDED),
            FileChange(path, FileChangeType.UPDATED),
            FileChange(path, FileChangeType.DELETED),
        ]
        await bus.close()

    @pytest.mark.asyncio
    async def test_move_is_delete_then_add(self, watcher, bus, project):
        received = []
        bus.subscribe(EventKind.FILE_CHANGE, received.append)
        watcher.watch(project, "editor")

        old = os.path.join(project, "old.ts")
        new = os.path.join(project, "new.ts")
        touch(new)
        self._handler().dispatch(FileMovedEvent(old, new))
        await settle(bus)

        assert received == [
            FileChange(old, FileChangeType.DELETED),
            FileChange(new, FileChangeType.ADDED),
        ]
        await bus.close()

    @pytest.mark.asyncio
    async def test_hidden_and_vanished_paths_dropped(self, watcher, bus, project):
        received = []
        bus.subscribe(EventKind.FILE_CHANGE, received.append)
        watcher.watch(project, "editor")
        handler = self._handler()

        hidden = os.path.join(project, ".git", "index")
        touch(hidden)
        handler.dispatch(FileModifiedEvent(hidden))
        handler.dispatch(FileCreatedEvent(os.path.join(project, "gone.ts")))
        await settle(bus)

        assert received == []
        await bus.close()

    @pytest.mark.asyncio
    async def test_sinks_receive_changes(self, watcher, bus, project):
        delivered = []
        watcher.register_sink("editor", delivered.append)
        watcher.watch(project, "editor")

        path = os.path.join(project, "a.ts")
        touch(path)
        self._handler().dispatch(FileCreatedEvent(path))
        await settle(bus)

        assert delivered == [FileChange(path, FileChangeType.ADDED)]

        watcher.unregister_sink("editor")
        self._handler().dispatch(FileModifiedEvent(path))
        await settle(bus)
        assert len(delivered) == 1
        await bus.close()

    @pytest.mark.asyncio
    async def test_events_after_unwatch_are_dropped(self, watcher, bus, project):
        received = []
        bus.subscribe(EventKind.FILE_CHANGE, received.append)
        watcher.watch(project, "editor")
        handler = self._handler()
        watcher.unwatch(project, "editor")

        path = os.path.join(project, "a.ts")
        touch(path)
        handler.dispatch(FileCreatedEvent(path))
        await settle(bus)

        assert received == []
        await bus.close()

    @pytest.mark.asyncio
    async def test_notify_project_open(self, watcher, bus, project):
        opened = []
        bus.subscribe(EventKind.PROJECT_OPENED, opened.append)

        watcher.notify_project_open(project)
        await bus.drain()

        assert opened == [ProjectEvent(project)]
        await bus.close()
