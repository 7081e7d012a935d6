"""
EditorServices - the long-lived services of one editor process, built once
and wired together by reference.

This is also the boundary the editor UI and the AI tool layer talk to: every
method returns a plain value or a result object and logs its own failures.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from ..config.app import AppConfig
from ..config.policy import ui_language_for
from ..core.embedder import Embedder
from ..core.events import ChangeEventBus
from ..core.models import FileContent, IndexResult, RagResponse, RecentProject, ShadowToolResult
from ..core.vector_store import VectorStore
from ..llm.base import LLMClient
from ..search.chunking import ChunkingManager
from ..storage.state_store import (
    JsonStateStore,
    add_to_recent_projects,
    get_expanded_dirs,
    get_recent_projects,
    get_workspace_root,
    save_expanded_dirs,
    set_workspace_root,
)
from ..tools.shadow_files import append_to_shadow_file, write_to_shadow_file
from ..watcher.file_watcher import FileSystemWatcher
from .embedding_pipeline import EmbeddingPipeline
from .rag_service import RagService
from .shadow_workspace import ShadowWorkspaceMirror
from .workspace_registry import WorkspaceRegistry, normalize_path

logger = logging.getLogger(__name__)

EDITOR_SUBSCRIBER_ID = "editor"
SHADOW_SUBSCRIBER_ID = "shadow-mirror"


class EditorServices:
    """
    Service container and external facade.

    Heavy collaborators (embedding model, Chroma client, LLM client) are
    only constructed when they are not injected.
    """

    def __init__(self,
                 config: AppConfig,
                 vector_store: Optional[VectorStore] = None,
                 embedder: Optional[Embedder] = None,
                 llm_client: Optional[LLMClient] = None,
                 chunker: Optional[ChunkingManager] = None,
                 watcher: Optional[FileSystemWatcher] = None,
                 state_store: Optional[JsonStateStore] = None,
                 bus: Optional[ChangeEventBus] = None):
        self.config = config
        self.bus = bus or ChangeEventBus()
        self.watcher = watcher or FileSystemWatcher(self.bus)

        if vector_store is None:
            vector_store = self._create_vector_store(config, embedder)
        self.vector_store = vector_store

        if llm_client is None and config.llm.enabled:
            from ..llm.ollama_client import OllamaClient
            llm_client = OllamaClient(
                base_url=config.llm.base_url,
                model=config.llm.model,
                timeout=config.llm.timeout_seconds,
            )
        self.llm_client = llm_client

        policy = config.policy
        self.chunker = chunker or ChunkingManager(policy.chunk_size, policy.chunk_overlap)
        self.rag = RagService(
            vector_store=self.vector_store,
            chunker=self.chunker,
            policy=policy,
            llm_client=self.llm_client,
            llm_config=config.llm,
            user_id=config.user_id,
        )
        self.pipeline = EmbeddingPipeline(self.rag, policy, self.watcher)
        self.registry = WorkspaceRegistry()
        self.mirror = ShadowWorkspaceMirror(self.registry, config.shadow_root)
        self.state = state_store or JsonStateStore(config.state_file)
        self._started = False

    @staticmethod
    def _create_vector_store(config: AppConfig, embedder: Optional[Embedder]) -> VectorStore:
        from ..storage.chroma import ChromaVectorStore

        if embedder is None:
            from ..embedding.sentence_transformer import SentenceTransformerEmbedder
            embedder = SentenceTransformerEmbedder(
                model_name=config.vector_db.embedding_model,
                device=config.vector_db.embedding_device,
                cache_folder=config.vector_db.embedding_cache_dir,
            )

        db = config.vector_db
        if db.is_server_mode():
            return ChromaVectorStore(
                embedder,
                collection_name=db.chroma_collection_name,
                host=db.chroma_host,
                port=db.chroma_port,
            )
        return ChromaVectorStore(
            embedder,
            collection_name=db.chroma_collection_name,
            persist_directory=db.chroma_persist_directory,
        )

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Subscribe the pipeline and the mirror to the event bus"""
        if self._started:
            return
        self.bus.bind_loop(asyncio.get_running_loop())
        self.pipeline.attach(self.bus)
        self.mirror.attach(self.bus)
        self._started = True
        logger.info("Editor services started")

    async def shutdown(self) -> None:
        """Stop timers and watchers, remove every shadow workspace, close the bus"""
        self.pipeline.stop()
        await self.pipeline.join()
        self.pipeline.detach()
        self.mirror.detach()
        self.watcher.close()
        cleaned = await self.mirror.cleanup_all()
        logger.info(f"Shadow workspace cleanup completed ({len(cleaned)} removed)")
        await self.bus.close()
        if self.llm_client is not None:
            await self.llm_client.close()
        self._started = False

    async def open_project(self, project_path: str, copy_files: Optional[bool] = None) -> Dict[str, Any]:
        """
        Open a project root: mirror it, remember it, and announce it so the
        pipeline watches and reconciles it.
        """
        project_path = normalize_path(project_path)
        if not os.path.isdir(project_path):
            return {"success": False, "error": f"Not a directory: {project_path}"}

        set_workspace_root(self.state, project_path)

        shadow_path = None
        try:
            info = await self.mirror.create_shadow_workspace(
                project_path,
                self.config.copy_files_on_open if copy_files is None else copy_files,
            )
            shadow_path = info.shadow_path
            # Mirror keeps its own reference on the watch
            self.watcher.watch(project_path, SHADOW_SUBSCRIBER_ID)
        except Exception as e:
            # Not critical; the project still opens without a mirror
            logger.error(f"Error creating shadow workspace for {project_path}: {e}")

        self.watcher.notify_project_open(project_path)
        add_to_recent_projects(self.state, project_path)

        return {
            "success": True,
            "path": project_path,
            "name": os.path.basename(project_path),
            "shadowPath": shadow_path,
        }

    async def open_recent_project(self, project_path: str) -> Dict[str, Any]:
        """Directories are opened as projects; files are only recorded as recent"""
        if os.path.isdir(project_path):
            return await self.open_project(project_path)

        if not os.path.isfile(project_path):
            logger.error(f"Error opening recent project {project_path}: no such file or directory")
            return {"success": False, "error": f"No such file or directory: {project_path}"}

        add_to_recent_projects(self.state, project_path)
        return {"success": True, "path": project_path, "name": os.path.basename(project_path)}

    # ─────────────────────────────────────────────────────────────────────
    # Filesystem facade
    # ─────────────────────────────────────────────────────────────────────

    def watch_directory(self, dir_path: str, subscriber_id: str = EDITOR_SUBSCRIBER_ID) -> bool:
        return self.watcher.watch(dir_path, subscriber_id)

    def unwatch_directory(self, dir_path: str, subscriber_id: str = EDITOR_SUBSCRIBER_ID) -> bool:
        return self.watcher.unwatch(dir_path, subscriber_id)

    def cleanup_watchers(self, subscriber_id: str = EDITOR_SUBSCRIBER_ID) -> None:
        self.watcher.cleanup(subscriber_id)

    def read_file(self, file_path: str) -> FileContent:
        if not os.path.exists(file_path):
            logger.error(f"File does not exist: {file_path}")
            return FileContent(content=f"Error: File does not exist: {file_path}", language="plaintext")
        if os.path.isdir(file_path):
            return FileContent(content=f"Selected path is a directory: {file_path}", language="plaintext")
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read file {file_path}: {e}")
            return FileContent(content=f"Error: Failed to read file: {e}", language="plaintext")
        return FileContent(content=content, language=ui_language_for(file_path))

    def write_file(self, file_path: str, content: str) -> bool:
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                f.write(content)
            return True
        except OSError as e:
            logger.error(f"Failed to write file {file_path}: {e}")
            return False

    def list_directory(self, dir_path: str) -> List[Dict[str, Any]]:
        try:
            with os.scandir(dir_path) as entries:
                return [
                    {"name": entry.name, "isDirectory": entry.is_dir(), "path": os.path.join(dir_path, entry.name)}
                    for entry in entries
                ]
        except OSError as e:
            logger.error(f"Failed to list directory {dir_path}: {e}")
            return []

    def read_directory_tree(self, dir_path: str) -> Dict[str, Any]:
        """Recursive listing, directories first, then files, each alphabetical"""
        children = []
        with os.scandir(dir_path) as entries:
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    children.append(self.read_directory_tree(entry.path))
                else:
                    children.append({"name": entry.name, "path": entry.path, "type": "file"})
        children.sort(key=lambda c: (c["type"] != "directory", c["name"]))
        return {
            "name": os.path.basename(os.path.normpath(dir_path)),
            "path": dir_path,
            "type": "directory",
            "children": children,
        }

    # ─────────────────────────────────────────────────────────────────────
    # Embedding facade
    # ─────────────────────────────────────────────────────────────────────

    async def index_file(self, file_path: str) -> IndexResult:
        return await self.rag.index_file(normalize_path(file_path))

    async def query(self, text: str, file_path: Optional[str] = None) -> RagResponse:
        return await self.rag.generate_rag_response(
            text, file_path=normalize_path(file_path) if file_path else None
        )

    def toggle_watch_path(self, dir_path: str, should_watch: bool) -> bool:
        if should_watch:
            return self.pipeline.watch_path_for_embedding(dir_path)
        return self.pipeline.unwatch_path_for_embedding(dir_path)

    def get_watched_paths(self) -> List[str]:
        return self.pipeline.get_watched_paths()

    def get_ignored_directories(self) -> List[str]:
        return self.pipeline.get_ignored_directories()

    def add_ignored_directory(self, name: str) -> bool:
        self.pipeline.add_ignored_directory(name)
        return True

    def remove_ignored_directory(self, name: str) -> bool:
        return self.pipeline.remove_ignored_directory(name)

    # ─────────────────────────────────────────────────────────────────────
    # Shadow workspace facade
    # ─────────────────────────────────────────────────────────────────────

    def get_shadow_workspace_path(self, original_path: str) -> Optional[str]:
        return self.mirror.get_shadow_path(original_path)

    async def cleanup_shadow_workspace(self, original_path: str) -> bool:
        self.watcher.unwatch(original_path, SHADOW_SUBSCRIBER_ID)
        return await self.mirror.cleanup_shadow_workspace(original_path)

    async def copy_file_to_shadow_workspace(self, original_file_path: str) -> Optional[str]:
        return await self.mirror.copy_file_to_shadow_workspace(original_file_path)

    def write_to_shadow_file(self, original_file_path: str, content: str) -> ShadowToolResult:
        return write_to_shadow_file(self.mirror, original_file_path, content)

    def append_to_shadow_file(self, original_file_path: str, content_to_append: str) -> ShadowToolResult:
        return append_to_shadow_file(self.mirror, original_file_path, content_to_append)

    # ─────────────────────────────────────────────────────────────────────
    # Persisted UI state
    # ─────────────────────────────────────────────────────────────────────

    def get_recent_projects(self) -> List[RecentProject]:
        return get_recent_projects(self.state)

    def get_workspace_root(self) -> str:
        return get_workspace_root(self.state) or ""

    def get_expanded_dirs(self, root_path: str) -> List[str]:
        return get_expanded_dirs(self.state, root_path)

    def save_expanded_dirs(self, root_path: str, dirs: List[str]) -> bool:
        try:
            save_expanded_dirs(self.state, root_path, dirs)
            return True
        except OSError as e:
            logger.error(f"Error saving expanded directories: {e}")
            return False
