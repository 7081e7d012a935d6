"""
Language-aware chunking of file content into positional chunks
"""

import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from langchain_text_splitters import Language, RecursiveCharacterTextSplitter

from ..core.models import Chunk, ChunkMetadata

logger = logging.getLogger(__name__)


def chunk_id(file_path: str, index: int) -> str:
    """Positional chunk id: ``{basename}-chunk-{index}``"""
    return f"{os.path.basename(file_path)}-chunk-{index}"


def chunk_index(chunk_id_value: str) -> Optional[int]:
    """Recover the positional index from a chunk id, None if malformed"""
    _, sep, tail = chunk_id_value.rpartition("-chunk-")
    if not sep or not tail.isdigit():
        return None
    return int(tail)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChunkingManager:
    """
    Splits file content with a recursive character splitter tuned per language.

    For a given text, language and size configuration the chunk sequence is
    deterministic, which the positional smart-update diff relies on.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 100):
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitters: Dict[str, RecursiveCharacterTextSplitter] = {}

    def _get_splitter(self, language: str) -> RecursiveCharacterTextSplitter:
        splitter = self._splitters.get(language)
        if splitter is None:
            try:
                splitter = RecursiveCharacterTextSplitter.from_language(
                    Language(language),
                    chunk_size=self.chunk_size,
                    chunk_overlap=self.chunk_overlap,
                )
            except ValueError:
                logger.warning(f"No splitter rules for language '{language}', using generic separators")
                splitter = RecursiveCharacterTextSplitter(
                    chunk_size=self.chunk_size,
                    chunk_overlap=self.chunk_overlap,
                )
            self._splitters[language] = splitter
        return splitter

    def split_text(self, text: str, language: str) -> List[str]:
        """Split raw text into ordered chunk strings"""
        if text.startswith('\ufeff'):
            text = text[1:]
        return self._get_splitter(language).split_text(text)

    def chunk_file(self, file_path: str, text: str, language: str, user_id: str,
                   timestamp: Optional[str] = None) -> List[Chunk]:
        """Split a file's content and attach positional ids and metadata"""
        stamp = timestamp or utc_timestamp()
        chunks = []
        for index, piece in enumerate(self.split_text(text, language)):
            chunks.append(Chunk(
                id=chunk_id(file_path, index),
                index=index,
                text=piece,
                metadata=ChunkMetadata(
                    source=file_path,
                    user_id=user_id,
                    language=language,
                    timestamp=stamp,
                ),
            ))
        return chunks
