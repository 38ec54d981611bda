"""SQLite-backed chunk embedding store.

Stores one row per document chunk in ``document_embeddings``, in the same
database file as the ``documents`` and ``spaces`` tables so searches can
filter on document soft-delete state and return titles and slugs.

Vectors are stored as little-endian float32 blobs.  Nearest-neighbour
search loads the candidate rows for one workspace (and optionally one
space and model) and ranks them by Euclidean distance with numpy.  This
is a brute-force scan; it suits workspaces of thousands of chunks, not a
general-purpose vector database.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Sequence
from pathlib import Path

import aiosqlite
import numpy as np
import structlog

from docsearch.interfaces.embedding_store import IEmbeddingStore
from docsearch.models.embedding import NeighborRow, NewChunk, RecentChunk

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docsearch.db")

EMBEDDINGS_TABLE = "document_embeddings"

_CREATE_TABLE_SQL = f"""\
CREATE TABLE IF NOT EXISTS {EMBEDDINGS_TABLE} (
    id                TEXT    PRIMARY KEY,
    document_id       TEXT    NOT NULL,
    workspace_id      TEXT    NOT NULL,
    space_id          TEXT,
    model_name        TEXT    NOT NULL,
    model_dimensions  INTEGER NOT NULL,
    embedding         BLOB    NOT NULL,
    chunk_index       INTEGER NOT NULL,
    chunk_start       INTEGER NOT NULL DEFAULT 0,
    chunk_length      INTEGER NOT NULL DEFAULT 0,
    chunk_text        TEXT,
    content_hash      TEXT,
    metadata          TEXT    NOT NULL DEFAULT '{{}}',
    created_at        TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at        TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    deleted_at        TEXT
);
"""

_CREATE_INDICES_SQL = [
    f"CREATE UNIQUE INDEX IF NOT EXISTS idx_embeddings_document_chunk "
    f"ON {EMBEDDINGS_TABLE}(workspace_id, document_id, chunk_index);",
    f"CREATE INDEX IF NOT EXISTS idx_embeddings_workspace ON {EMBEDDINGS_TABLE}(workspace_id);",
    f"CREATE INDEX IF NOT EXISTS idx_embeddings_space ON {EMBEDDINGS_TABLE}(space_id);",
    f"CREATE INDEX IF NOT EXISTS idx_embeddings_created ON {EMBEDDINGS_TABLE}(created_at);",
]

_INSERT_SQL = f"""\
INSERT INTO {EMBEDDINGS_TABLE} (
    id, document_id, workspace_id, space_id, model_name, model_dimensions,
    embedding, chunk_index, chunk_start, chunk_length, chunk_text,
    content_hash, metadata
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_CANDIDATES_SQL = f"""\
SELECT e.document_id, e.space_id, e.chunk_index, e.chunk_text, e.embedding,
       d.title, d.slug_id, s.slug AS space_slug
FROM {EMBEDDINGS_TABLE} e
JOIN documents d ON d.id = e.document_id
LEFT JOIN spaces s ON s.id = d.space_id
WHERE e.workspace_id = ?
  AND e.deleted_at IS NULL
  AND d.deleted_at IS NULL
"""

# Rows without stored chunk text fall back to the document body.
_SELECT_DOCUMENT_TEXT_SQL = "SELECT id, text_content FROM documents WHERE id IN ({ids})"

_SELECT_RECENT_SQL = f"""\
SELECT e.document_id, e.chunk_index, e.created_at, d.title, d.slug_id,
       s.slug AS space_slug
FROM {EMBEDDINGS_TABLE} e
JOIN documents d ON d.id = e.document_id
LEFT JOIN spaces s ON s.id = d.space_id
WHERE e.workspace_id = ?
  AND e.deleted_at IS NULL
  AND d.deleted_at IS NULL
ORDER BY e.created_at DESC, e.rowid DESC
LIMIT ?
"""


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


def encode_vector(vector: Sequence[float]) -> bytes:
    """Serialise a vector as float32 bytes."""
    return np.asarray(vector, dtype="<f4").tobytes()


def decode_vector(blob: bytes) -> np.ndarray:
    """Inverse of :func:`encode_vector`."""
    return np.frombuffer(blob, dtype="<f4")


class SQLiteEmbeddingStore(IEmbeddingStore):
    """Chunk embedding persistence and brute-force L2 search on SQLite."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the embedding table and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("embeddings_table_initialized", path=str(self._db_path), table=EMBEDDINGS_TABLE)

    async def table_exists(self) -> bool:
        if not self._db_path.exists():
            return False
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
                (EMBEDDINGS_TABLE,),
            )
            row = await cursor.fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def replace_document_chunks(
        self,
        document_id: str,
        workspace_id: str,
        space_id: str | None,
        chunks: Sequence[NewChunk],
    ) -> None:
        rows = [
            (
                str(uuid.uuid4()),
                document_id,
                workspace_id,
                space_id,
                chunk.model_name,
                chunk.model_dimensions,
                encode_vector(chunk.embedding),
                chunk.chunk_index,
                chunk.chunk_start,
                chunk.chunk_length,
                chunk.text,
                chunk.content_hash,
                json.dumps(chunk.metadata),
            )
            for chunk in chunks
        ]

        async with aiosqlite.connect(str(self._db_path)) as db:
            try:
                await db.execute("BEGIN IMMEDIATE")
                await db.execute(
                    f"DELETE FROM {EMBEDDINGS_TABLE} WHERE document_id = ? AND workspace_id = ?",
                    (document_id, workspace_id),
                )
                if rows:
                    await db.executemany(_INSERT_SQL, rows)
                await db.commit()
            except BaseException:
                await db.rollback()
                raise

        logger.info(
            "document_chunks_replaced",
            document_id=document_id,
            workspace_id=workspace_id,
            chunks=len(rows),
        )

    async def delete_document_chunks(self, document_ids: Sequence[str], workspace_id: str) -> int:
        if not document_ids:
            return 0
        ids = list(document_ids)
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"DELETE FROM {EMBEDDINGS_TABLE} "
                f"WHERE workspace_id = ? AND document_id IN ({_placeholders(len(ids))})",
                (workspace_id, *ids),
            )
            await db.commit()
            removed = cursor.rowcount
        logger.info("document_chunks_deleted", documents=len(ids), workspace_id=workspace_id, rows=removed)
        return removed

    async def delete_workspace_chunks(self, workspace_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"DELETE FROM {EMBEDDINGS_TABLE} WHERE workspace_id = ?",
                (workspace_id,),
            )
            await db.commit()
            removed = cursor.rowcount
        logger.info("workspace_chunks_deleted", workspace_id=workspace_id, rows=removed)
        return removed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def nearest_neighbors(
        self,
        query_vector: Sequence[float],
        workspace_id: str,
        space_id: str | None = None,
        limit: int = 8,
        model_name: str | None = None,
    ) -> list[NeighborRow]:
        if limit <= 0:
            return []

        sql = _SELECT_CANDIDATES_SQL
        params: list[object] = [workspace_id]
        if space_id:
            sql += "  AND e.space_id = ?\n"
            params.append(space_id)
        if model_name:
            sql += "  AND e.model_name = ?\n"
            params.append(model_name)
        sql += "ORDER BY e.document_id, e.chunk_index"

        query = np.asarray(query_vector, dtype=np.float32)
        candidates = []
        vectors = []
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
            for row in rows:
                vector = decode_vector(row["embedding"])
                if vector.shape != query.shape:
                    continue
                candidates.append(row)
                vectors.append(vector)

            if not candidates:
                return []

            distances = np.linalg.norm(np.vstack(vectors) - query, axis=1)
            order = np.argsort(distances, kind="stable")[:limit]

            legacy_ids = list(
                dict.fromkeys(
                    candidates[i]["document_id"] for i in order if candidates[i]["chunk_text"] is None
                )
            )
            texts: dict[str, str] = {}
            if legacy_ids:
                cursor = await db.execute(
                    _SELECT_DOCUMENT_TEXT_SQL.format(ids=_placeholders(len(legacy_ids))),
                    legacy_ids,
                )
                texts = {r["id"]: r["text_content"] or "" for r in await cursor.fetchall()}

        return [
            NeighborRow(
                document_id=candidates[i]["document_id"],
                space_id=candidates[i]["space_id"],
                chunk_index=candidates[i]["chunk_index"],
                distance=float(distances[i]),
                title=candidates[i]["title"],
                slug_id=candidates[i]["slug_id"],
                space_slug=candidates[i]["space_slug"],
                text_content=texts.get(candidates[i]["document_id"], ""),
                chunk_text=candidates[i]["chunk_text"],
            )
            for i in order
        ]

    async def chunk_counts_by_document(
        self,
        document_ids: Sequence[str],
        workspace_id: str,
    ) -> dict[str, int]:
        if not document_ids:
            return {}
        ids = list(dict.fromkeys(document_ids))
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT document_id, COUNT(*) FROM {EMBEDDINGS_TABLE} "
                f"WHERE workspace_id = ? AND deleted_at IS NULL "
                f"AND document_id IN ({_placeholders(len(ids))}) "
                f"GROUP BY document_id",
                (workspace_id, *ids),
            )
            rows = await cursor.fetchall()
        return {r[0]: int(r[1]) for r in rows}

    async def count_chunks(self, workspace_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT COUNT(*) FROM {EMBEDDINGS_TABLE} e "
                f"JOIN documents d ON d.id = e.document_id "
                f"WHERE e.workspace_id = ? AND e.deleted_at IS NULL AND d.deleted_at IS NULL",
                (workspace_id,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def count_indexed_documents(self, workspace_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                f"SELECT COUNT(DISTINCT e.document_id) FROM {EMBEDDINGS_TABLE} e "
                f"JOIN documents d ON d.id = e.document_id "
                f"WHERE e.workspace_id = ? AND e.deleted_at IS NULL AND d.deleted_at IS NULL",
                (workspace_id,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def recent_chunks(self, workspace_id: str, limit: int = 3) -> list[RecentChunk]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_RECENT_SQL, (workspace_id, limit))
            rows = await cursor.fetchall()
        return [RecentChunk(**dict(r)) for r in rows]

    def get_provider_name(self) -> str:
        return "sqlite_embeddings"
