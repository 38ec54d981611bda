"""Unit tests for SQLiteEmbeddingStore against a temporary database."""

from __future__ import annotations

from pathlib import Path

import aiosqlite
import numpy as np
import pytest

from docsearch.models.embedding import NewChunk
from docsearch.providers.vector_store.sqlite_embedding_store import (
    EMBEDDINGS_TABLE,
    SQLiteEmbeddingStore,
    decode_vector,
    encode_vector,
)
from docsearch.services.chunker import content_hash


def _chunk(index: int, vector: list[float], text: str | None = None, model: str = "test-embed") -> NewChunk:
    text = text or f"chunk {index}"
    return NewChunk(
        chunk_index=index,
        chunk_start=index * 10,
        chunk_length=len(text),
        text=text,
        content_hash=content_hash(text),
        embedding=vector,
        model_name=model,
        model_dimensions=len(vector),
    )


class TestSchema:
    @pytest.mark.asyncio
    async def test_table_missing_before_initialize(self, tmp_path: Path) -> None:
        store = SQLiteEmbeddingStore(db_path=tmp_path / "fresh.db")
        assert await store.table_exists() is False
        # Checking must not create the database file.
        assert not (tmp_path / "fresh.db").exists()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, tmp_path: Path) -> None:
        store = SQLiteEmbeddingStore(db_path=tmp_path / "nested" / "db.sqlite")
        await store.initialize()
        await store.initialize()
        assert await store.table_exists() is True


class TestVectorCodec:
    def test_float32_blob(self) -> None:
        blob = encode_vector([1.0, -2.5, 0.25])
        assert len(blob) == 12
        np.testing.assert_allclose(decode_vector(blob), [1.0, -2.5, 0.25])


class TestReplaceAndDelete:
    @pytest.mark.asyncio
    async def test_replace_swaps_all_chunks(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks(
            "doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1]), _chunk(1, [2, 0, 1]), _chunk(2, [3, 0, 1])]
        )
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1])])

        counts = await embedding_store.chunk_counts_by_document(["doc-deploy"], "ws1")
        assert counts == {"doc-deploy": 1}

    @pytest.mark.asyncio
    async def test_replace_with_empty_list_clears(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1])])
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [])
        assert await embedding_store.count_chunks("ws1") == 0

    @pytest.mark.asyncio
    async def test_failed_replace_keeps_previous_chunks(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks(
            "doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1]), _chunk(1, [2, 0, 1])]
        )
        duplicate = [_chunk(0, [5, 0, 1]), _chunk(0, [6, 0, 1])]

        with pytest.raises(aiosqlite.IntegrityError):
            await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", duplicate)

        counts = await embedding_store.chunk_counts_by_document(["doc-deploy"], "ws1")
        assert counts == {"doc-deploy": 2}

    @pytest.mark.asyncio
    async def test_delete_document_and_workspace(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1])])
        await embedding_store.replace_document_chunks(
            "doc-billing", "ws1", "sp2", [_chunk(0, [0, 1, 1]), _chunk(1, [0, 2, 1])]
        )

        assert await embedding_store.delete_document_chunks(["doc-deploy"], "ws1") == 1
        assert await embedding_store.delete_document_chunks(["doc-deploy"], "ws1") == 0
        assert await embedding_store.delete_document_chunks([], "ws1") == 0
        assert await embedding_store.delete_workspace_chunks("ws1") == 2
        assert await embedding_store.count_chunks("ws1") == 0

    @pytest.mark.asyncio
    async def test_chunk_text_and_hash_persisted(self, settings, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks(
            "doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1], text="deploy steps")]
        )
        async with aiosqlite.connect(settings.database_path) as db:
            cursor = await db.execute(
                f"SELECT chunk_text, content_hash, model_dimensions FROM {EMBEDDINGS_TABLE}"
            )
            row = await cursor.fetchone()
        assert row == ("deploy steps", content_hash("deploy steps"), 3)


class TestNearestNeighbors:
    async def _index_both(self, store) -> None:
        await store.replace_document_chunks(
            "doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1], "deploy a"), _chunk(1, [3, 0, 1], "deploy b")]
        )
        await store.replace_document_chunks("doc-billing", "ws1", "sp2", [_chunk(0, [0, 1, 1], "billing a")])

    @pytest.mark.asyncio
    async def test_orders_by_distance(self, embedding_store, seeded_documents) -> None:
        await self._index_both(embedding_store)

        rows = await embedding_store.nearest_neighbors([1, 0, 1], "ws1", limit=3)

        assert [(r.document_id, r.chunk_index) for r in rows] == [
            ("doc-deploy", 0),
            ("doc-billing", 0),
            ("doc-deploy", 1),
        ]
        assert rows[0].distance == pytest.approx(0.0)
        assert rows[1].distance == pytest.approx(np.sqrt(2))
        assert rows[0].title == "Deploying"
        assert rows[0].slug_id == "deploy-abc"
        assert rows[0].space_slug == "engineering"
        assert rows[0].chunk_text == "deploy a"

    @pytest.mark.asyncio
    async def test_limit_and_space_filter(self, embedding_store, seeded_documents) -> None:
        await self._index_both(embedding_store)

        limited = await embedding_store.nearest_neighbors([1, 0, 1], "ws1", limit=1)
        in_space = await embedding_store.nearest_neighbors([1, 0, 1], "ws1", space_id="sp2", limit=5)

        assert len(limited) == 1
        assert {r.document_id for r in in_space} == {"doc-billing"}

    @pytest.mark.asyncio
    async def test_excludes_soft_deleted_documents(self, embedding_store, seeded_documents) -> None:
        await self._index_both(embedding_store)
        await seeded_documents.soft_delete_document("doc-deploy")

        rows = await embedding_store.nearest_neighbors([1, 0, 1], "ws1", limit=5)

        assert {r.document_id for r in rows} == {"doc-billing"}
        assert await embedding_store.count_chunks("ws1") == 1
        assert await embedding_store.count_indexed_documents("ws1") == 1

    @pytest.mark.asyncio
    async def test_other_workspace_and_model_excluded(self, embedding_store, seeded_documents) -> None:
        await self._index_both(embedding_store)
        await embedding_store.replace_document_chunks(
            "doc-billing", "ws1", "sp2", [_chunk(0, [0, 1, 1], model="old-model")]
        )

        other_ws = await embedding_store.nearest_neighbors([1, 0, 1], "ws2", limit=5)
        current_model = await embedding_store.nearest_neighbors(
            [1, 0, 1], "ws1", limit=5, model_name="test-embed"
        )

        assert other_ws == []
        assert {r.document_id for r in current_model} == {"doc-deploy"}

    @pytest.mark.asyncio
    async def test_document_text_only_loaded_for_rows_without_chunk_text(
        self, settings, embedding_store, seeded_documents
    ) -> None:
        await self._index_both(embedding_store)
        async with aiosqlite.connect(settings.database_path) as db:
            await db.execute(
                f"UPDATE {EMBEDDINGS_TABLE} SET chunk_text = NULL WHERE document_id = 'doc-billing'"
            )
            await db.commit()

        rows = await embedding_store.nearest_neighbors([1, 0, 1], "ws1", limit=3)
        by_doc = {(r.document_id, r.chunk_index): r for r in rows}

        legacy = by_doc[("doc-billing", 0)]
        assert legacy.chunk_text is None
        assert legacy.text_content.startswith("Billing runs nightly.")
        assert by_doc[("doc-deploy", 0)].chunk_text == "deploy a"
        assert by_doc[("doc-deploy", 0)].text_content == ""

    @pytest.mark.asyncio
    async def test_skips_vectors_of_other_dimension(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0])])
        assert await embedding_store.nearest_neighbors([1, 0, 1], "ws1") == []


class TestStatusQueries:
    @pytest.mark.asyncio
    async def test_recent_chunks_newest_first(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks("doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1])])
        await embedding_store.replace_document_chunks(
            "doc-billing", "ws1", "sp2", [_chunk(0, [0, 1, 1]), _chunk(1, [0, 2, 1])]
        )

        recent = await embedding_store.recent_chunks("ws1", limit=2)

        assert len(recent) == 2
        assert all(r.document_id == "doc-billing" for r in recent)
        assert recent[0].space_slug == "finance"
        assert recent[0].created_at

    @pytest.mark.asyncio
    async def test_counts(self, embedding_store, seeded_documents) -> None:
        await embedding_store.replace_document_chunks(
            "doc-deploy", "ws1", "sp1", [_chunk(0, [1, 0, 1]), _chunk(1, [2, 0, 1])]
        )
        assert await embedding_store.count_chunks("ws1") == 2
        assert await embedding_store.count_indexed_documents("ws1") == 1
        assert await embedding_store.chunk_counts_by_document(["doc-deploy", "doc-billing"], "ws1") == {
            "doc-deploy": 2
        }
