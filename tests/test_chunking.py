"""
Tests for ChunkingManager

Tests:
1. Positional chunk ids and metadata
2. Deterministic splitting
3. Chunk size limits
4. Leading byte order mark is dropped
5. Unknown languages fall back to generic separators
"""

import pytest

from editor_rag.search.chunking import ChunkingManager, chunk_id, chunk_index


class TestChunkIds:

    def test_chunk_id_uses_basename(self):
        assert chunk_id("/proj/src/a.ts", 0) == "a.ts-chunk-0"
        assert chunk_id("/proj/src/a.ts", 12) == "a.ts-chunk-12"

    def test_chunk_index(self):
        assert chunk_index("a.ts-chunk-3") == 3
        assert chunk_index("my-chunk-file.py-chunk-10") == 10
        assert chunk_index("a.ts") is None
        assert chunk_index("a.ts-chunk-x") is None


class TestChunkingManager:

    @pytest.fixture
    def chunker(self):
        return ChunkingManager(chunk_size=200, chunk_overlap=20)

    def _source(self, functions=12):
        return "\n\n".join(
            f"function f{i}(a, b) {{\n  const total = a + b + {i};\n  return total * {i};\n}}"
            for i in range(functions)
        )

    def test_small_file_is_one_chunk(self, chunker):
        chunks = chunker.chunk_file("/proj/a.ts", "x", "js", "default-user", timestamp="t0")

        assert len(chunks) == 1
        chunk = chunks[0]
        assert chunk.id == "a.ts-chunk-0"
        assert chunk.index == 0
        assert chunk.text == "x"
        assert chunk.metadata.to_store() == {
            "source": "/proj/a.ts",
            "userId": "default-user",
            "language": "js",
            "timestamp": "t0",
        }

    def test_split_is_deterministic(self, chunker):
        text = self._source()
        first = chunker.split_text(text, "js")
        second = ChunkingManager(chunk_size=200, chunk_overlap=20).split_text(text, "js")

        assert len(first) > 1
        assert first == second

    def test_chunks_respect_size(self, chunker):
        for piece in chunker.split_text(self._source(), "js"):
            assert len(piece) <= 200

    def test_ids_are_sequential(self, chunker):
        chunks = chunker.chunk_file("/proj/big.js", self._source(), "js", "u")
        assert [c.index for c in chunks] == list(range(len(chunks)))
        assert [c.id for c in chunks] == [f"big.js-chunk-{i}" for i in range(len(chunks))]

    def test_byte_order_mark_dropped(self, chunker):
        chunks = chunker.split_text("\ufeffconst a = 1;", "js")
        assert chunks == ["const a = 1;"]

    def test_empty_text_has_no_chunks(self, chunker):
        assert chunker.chunk_file("/proj/empty.ts", "", "js", "u") == []

    def test_unknown_language_falls_back(self, chunker):
        chunks = chunker.split_text("alpha beta gamma", "not-a-language")
        assert chunks == ["alpha beta gamma"]
