"""
RagService - keeps a file's chunks in the vector store consistent with its
content, and answers questions from the stored chunks.

Every vector store call and file read is blocking, so they run in the
default executor; the service itself is only ever awaited from the loop.
"""

import asyncio
import functools
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config.app import TEMPORARY_USER_ID
from ..config.llm import LLMConfig
from ..config.policy import EmbeddingPolicy
from ..core.models import (
    Chunk, ExistenceResult, FileChangeType, IndexResult,
    RagResponse, RetrievalResult, RetrievedChunk, SourceRef,
)
from ..core.vector_store import VectorStore, build_where
from ..llm.base import LLMClient, LLMError
from ..search.chunking import ChunkingManager, chunk_index

logger = logging.getLogger(__name__)

RAG_ERROR_RESPONSE = "I encountered an error trying to answer your question."

RAG_PROMPT_TEMPLATE = """
You are given several chunks of code and a question. Use the code context to answer the question.

CODE CONTEXT:
{context}

QUESTION: {question}

Provide a clear, accurate response based on the code context. If the context doesn't contain the information needed, acknowledge this limitation, then provide a answer based on your knowledge.
"""


@dataclass
class StoredChunk:
    """A chunk as currently held by the vector store"""
    id: str
    index: int
    text: str


class RagService:
    """
    Vector store protocol for file-derived chunks.

    Chunks are owned by the ``{userId, source}`` pair; this service is the
    only writer of those chunks.
    """

    def __init__(self,
                 vector_store: VectorStore,
                 chunker: Optional[ChunkingManager] = None,
                 policy: Optional[EmbeddingPolicy] = None,
                 llm_client: Optional[LLMClient] = None,
                 llm_config: Optional[LLMConfig] = None,
                 user_id: str = TEMPORARY_USER_ID):
        self.vector_store = vector_store
        self.policy = policy or EmbeddingPolicy()
        self.chunker = chunker or ChunkingManager(self.policy.chunk_size, self.policy.chunk_overlap)
        self.llm_client = llm_client
        self.llm_config = llm_config or LLMConfig()
        self.user_id = user_id

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    @staticmethod
    def _read_text(file_path: str) -> str:
        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read()

    def _source_filter(self, file_path: str) -> Dict[str, Any]:
        return build_where({"userId": self.user_id, "source": file_path})

    # ─────────────────────────────────────────────────────────────────────
    # Existence
    # ─────────────────────────────────────────────────────────────────────

    async def check_file_exists(self, file_path: str) -> ExistenceResult:
        """
        True if at least one chunk of ``file_path`` is stored.

        Uses an empty query text restricted to the file's metadata so the
        store answers from the filter alone.
        """
        try:
            results = await self._run(
                self.vector_store.query,
                [""],
                1,
                where=self._source_filter(file_path),
            )
            ids = results.get("ids") or [[]]
            return ExistenceResult(success=True, exists=bool(ids and ids[0]))
        except Exception as e:
            logger.error(f"Error checking if {file_path} exists in vector store: {e}")
            return ExistenceResult(success=False, exists=False, error=str(e))

    # ─────────────────────────────────────────────────────────────────────
    # Added / Deleted
    # ─────────────────────────────────────────────────────────────────────

    async def _chunk_file(self, file_path: str) -> List[Chunk]:
        content = await self._run(self._read_text, file_path)
        return self.chunker.chunk_file(
            file_path,
            content,
            self.policy.language_for(file_path),
            self.user_id,
        )

    async def _add_chunks(self, chunks: List[Chunk], extra_metadata: Optional[Dict[str, Any]] = None) -> None:
        if not chunks:
            return
        metadatas = []
        for chunk in chunks:
            metadata = chunk.metadata.to_store()
            if extra_metadata:
                metadata.update(extra_metadata)
            metadatas.append(metadata)
        await self._run(
            self.vector_store.add,
            [c.id for c in chunks],
            metadatas,
            [c.text for c in chunks],
        )

    async def _embed(self, file_path: str, metadata: Optional[Dict[str, Any]] = None) -> int:
        chunks = await self._chunk_file(file_path)
        await self._add_chunks(chunks, metadata)
        return len(chunks)

    async def embed_file(self, file_path: str, metadata: Optional[Dict[str, Any]] = None) -> IndexResult:
        """Split the whole file and add every chunk"""
        try:
            count = await self._embed(file_path, metadata)
        except Exception as e:
            logger.error(f"Error embedding {file_path}: {e}")
            return IndexResult.failed(str(e))
        logger.info(f"Embedded {file_path}: {count} chunk(s)")
        return IndexResult.ok(
            f"Successfully processed {file_path} and added {count} chunks to vector store",
            chunks_count=count,
        )

    async def _stored_chunks(self, file_path: str) -> List[StoredChunk]:
        listing = await self._run(self.vector_store.get, where=self._source_filter(file_path))
        stored = []
        for position, chunk_id_value in enumerate(listing.get("ids") or []):
            documents = listing.get("documents") or []
            text = documents[position] if position < len(documents) else ""
            index = chunk_index(chunk_id_value)
            stored.append(StoredChunk(chunk_id_value, index if index is not None else position, text or ""))
        stored.sort(key=lambda c: c.index)
        return stored

    async def _delete_source(self, file_path: str) -> int:
        listing = await self._run(self.vector_store.get, where=self._source_filter(file_path))
        ids = list(listing.get("ids") or [])
        if ids:
            await self._run(self.vector_store.delete, ids)
        return len(ids)

    async def delete_file_embeddings(self, file_path: str) -> IndexResult:
        """Remove every chunk owned by ``file_path``"""
        try:
            count = await self._delete_source(file_path)
        except Exception as e:
            logger.error(f"Error deleting embeddings for {file_path}: {e}")
            return IndexResult.failed(str(e))
        logger.info(f"Deleted {count} chunk(s) for {file_path}")
        return IndexResult.ok(f"Deleted {count} chunks for {file_path}", chunks_count=count)

    async def delete_directory_embeddings(self, dir_path: str) -> IndexResult:
        """
        Remove the chunks of every stored source below ``dir_path``.

        A directory that leaves the project is reported as a single deletion,
        so its files are found through the stored metadata instead.
        """
        prefix = dir_path.rstrip(os.sep) + os.sep
        try:
            listing = await self._run(self.vector_store.get, where=build_where({"userId": self.user_id}))
            ids = []
            sources = set()
            for chunk_id_value, metadata in zip(listing.get("ids") or [], listing.get("metadatas") or []):
                source = (metadata or {}).get("source") or ""
                if source.startswith(prefix):
                    ids.append(chunk_id_value)
                    sources.add(source)
            if ids:
                await self._run(self.vector_store.delete, ids)
        except Exception as e:
            logger.error(f"Error deleting embeddings below {dir_path}: {e}")
            return IndexResult.failed(str(e))
        if sources:
            logger.info(f"Deleted {len(ids)} chunk(s) of {len(sources)} file(s) below {dir_path}")
        return IndexResult.ok(
            f"Deleted {len(ids)} chunks for {len(sources)} files below {dir_path}",
            chunks_count=len(ids),
        )

    # ─────────────────────────────────────────────────────────────────────
    # Updated
    # ─────────────────────────────────────────────────────────────────────

    async def _replace_all(self, old: List[StoredChunk], new: List[Chunk]) -> None:
        if old:
            await self._run(self.vector_store.delete, [c.id for c in old])
        await self._add_chunks(new)

    async def smart_update(self, file_path: str) -> IndexResult:
        """
        Re-split the file and replace only the chunks whose text changed.

        A different chunk count, or more than ``smart_update_threshold`` of
        the chunks changed, replaces everything. Any unexpected failure falls
        back to deleting all chunks and embedding the file from scratch.
        """
        try:
            new_chunks = await self._chunk_file(file_path)
            old_chunks = await self._stored_chunks(file_path)

            if not old_chunks:
                await self._add_chunks(new_chunks)
                return IndexResult.ok(
                    f"Embedded {file_path} ({len(new_chunks)} chunks, nothing stored before)",
                    chunks_count=len(new_chunks),
                    changed_chunks=len(new_chunks),
                )

            if len(old_chunks) != len(new_chunks):
                logger.info(
                    f"Chunk count changed for {file_path} ({len(old_chunks)} -> {len(new_chunks)}), re-embedding"
                )
                await self._replace_all(old_chunks, new_chunks)
                return IndexResult.ok(
                    f"Re-embedded {file_path}: chunk count changed",
                    chunks_count=len(new_chunks),
                    changed_chunks=len(new_chunks),
                )

            changed = [new for old, new in zip(old_chunks, new_chunks) if old.text != new.text]
            if not changed:
                logger.debug(f"No chunk changes for {file_path}")
                return IndexResult.ok("No changes detected", chunks_count=len(new_chunks))

            ratio = len(changed) / len(new_chunks)
            if ratio > self.policy.smart_update_threshold:
                logger.info(f"{len(changed)}/{len(new_chunks)} chunks changed in {file_path}, re-embedding")
                await self._replace_all(old_chunks, new_chunks)
            else:
                await self._run(self.vector_store.delete, [c.id for c in changed])
                await self._add_chunks(changed)
                logger.info(f"Updated {len(changed)}/{len(new_chunks)} chunk(s) in {file_path}")

            return IndexResult.ok(
                f"Updated {len(changed)} of {len(new_chunks)} chunks for {file_path}",
                chunks_count=len(new_chunks),
                changed_chunks=len(changed),
            )

        except Exception as e:
            logger.warning(f"Smart update failed for {file_path}: {e}. Falling back to full re-embed")
            try:
                await self._delete_source(file_path)
                count = await self._embed(file_path)
            except Exception as fallback_error:
                logger.error(f"Full re-embed of {file_path} failed: {fallback_error}")
                return IndexResult.failed(str(fallback_error))
            return IndexResult.ok(
                f"Re-embedded {file_path} after failed update",
                chunks_count=count,
                changed_chunks=count,
            )

    async def handle_file_change(self, file_path: str, change_type: FileChangeType) -> IndexResult:
        """Apply one debounced change to the vector store"""
        if change_type == FileChangeType.DELETED:
            if not self.policy.is_trackable(file_path):
                return await self.delete_directory_embeddings(file_path)
            return await self.delete_file_embeddings(file_path)

        if change_type == FileChangeType.ADDED:
            existing = await self.check_file_exists(file_path)
            if not existing.success:
                return IndexResult.failed(existing.error or "existence check failed")
            if not existing.exists:
                return await self.embed_file(file_path)
            logger.debug(f"{file_path} is already stored, updating instead of adding")

        return await self.smart_update(file_path)

    async def index_file(self, file_path: str) -> IndexResult:
        """Embed a file unless it already has stored chunks"""
        existing = await self.check_file_exists(file_path)
        if not existing.success:
            return IndexResult.failed(existing.error or "existence check failed")
        if existing.exists:
            return IndexResult.ok("File already indexed")
        return await self.embed_file(file_path)

    # ─────────────────────────────────────────────────────────────────────
    # Retrieval
    # ─────────────────────────────────────────────────────────────────────

    async def query_vector_store(self, query: str, limit: int = 5,
                                 filters: Optional[Dict[str, Any]] = None) -> RetrievalResult:
        """Semantic query restricted to this user's chunks"""
        where_filters = {"userId": self.user_id}
        if filters:
            where_filters.update(filters)
        try:
            results = await self._run(
                self.vector_store.query,
                [query],
                limit,
                where=build_where(where_filters),
            )
        except Exception as e:
            logger.error(f"Error querying vector store: {e}")
            return RetrievalResult(success=False, error=str(e))

        documents = (results.get("documents") or [[]])[0] or []
        metadatas = (results.get("metadatas") or [[]])[0] or []
        ids = (results.get("ids") or [[]])[0] or []
        distances = (results.get("distances") or [[]])[0] or []

        retrieved = []
        for i, document in enumerate(documents):
            retrieved.append(RetrievedChunk(
                id=ids[i] if i < len(ids) else "",
                content=document,
                metadata=(metadatas[i] if i < len(metadatas) else None) or {},
                score=distances[i] if i < len(distances) else None,
            ))
        return RetrievalResult(success=True, results=retrieved)

    @staticmethod
    def build_context(results: List[RetrievedChunk]) -> str:
        return "\n\n".join(
            f"CHUNK (from {r.metadata.get('source') or 'unknown source'}):\n{r.content}"
            for r in results
        )

    async def generate_rag_response(self, query: str, file_path: Optional[str] = None,
                                    chunk_limit: Optional[int] = None) -> RagResponse:
        """
        Answer ``query`` from the most relevant stored chunks.

        ``file_path`` narrows retrieval to one file. Failures come back as an
        unsuccessful response carrying a generic apology, never as exceptions.
        """
        try:
            if self.llm_client is None:
                raise LLMError("No LLM client configured")

            retrieval = await self.query_vector_store(
                query,
                limit=chunk_limit or self.llm_config.chunk_limit,
                filters={"source": file_path} if file_path else None,
            )
            if not retrieval.success:
                raise RuntimeError(f"Failed to retrieve chunks: {retrieval.error}")

            prompt = RAG_PROMPT_TEMPLATE.format(
                context=self.build_context(retrieval.results),
                question=query,
            )
            answer = await self.llm_client.generate(
                prompt,
                system_prompt=self.llm_config.system_prompt,
                temperature=self.llm_config.temperature,
                max_tokens=self.llm_config.max_response_tokens,
            )
        except Exception as e:
            logger.error(f"Error in RAG response generation: {e}")
            return RagResponse(success=False, response=RAG_ERROR_RESPONSE, error=str(e))

        return RagResponse(
            success=True,
            response=answer.content,
            sources=[
                SourceRef(id=r.id, source=r.metadata.get("source"), score=r.score)
                for r in retrieval.results
            ],
        )
