"""SQLite-backed document provider.

Stands in for the external document store: ``spaces`` and ``documents``
tables in the same database file as the embedding table, so chunk
queries can join document titles, slugs and soft-delete state.

Only the read methods belong to :class:`IDocumentProvider`.  The upsert
and soft-delete helpers exist for seeding, the CLI and tests.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import aiosqlite
import structlog

from docsearch.interfaces.document_provider import IDocumentProvider
from docsearch.models.document import Document

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docsearch.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS spaces (
    id            TEXT PRIMARY KEY,
    workspace_id  TEXT NOT NULL,
    slug          TEXT,
    name          TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS documents (
    id            TEXT PRIMARY KEY,
    workspace_id  TEXT NOT NULL,
    space_id      TEXT,
    slug_id       TEXT,
    title         TEXT,
    text_content  TEXT NOT NULL DEFAULT '',
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    deleted_at    TEXT
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_documents_workspace ON documents(workspace_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_space ON documents(space_id);",
    "CREATE INDEX IF NOT EXISTS idx_spaces_workspace ON spaces(workspace_id);",
]

_SELECT_DOCUMENT_COLUMNS = """\
SELECT d.id, d.workspace_id, d.space_id, d.slug_id, d.title, d.text_content,
       d.created_at, d.updated_at, d.deleted_at, s.slug AS space_slug
FROM documents d
LEFT JOIN spaces s ON s.id = d.space_id
"""

_UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents (id, workspace_id, space_id, slug_id, title, text_content)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET workspace_id = excluded.workspace_id,
              space_id     = excluded.space_id,
              slug_id      = excluded.slug_id,
              title        = excluded.title,
              text_content = excluded.text_content,
              deleted_at   = NULL,
              updated_at   = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_UPSERT_SPACE_SQL = """\
INSERT INTO spaces (id, workspace_id, slug, name)
VALUES (?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET workspace_id = excluded.workspace_id,
              slug         = excluded.slug,
              name         = excluded.name;
"""


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class SQLiteDocumentProvider(IDocumentProvider):
    """SQLite document storage with soft-delete support."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the spaces and documents tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("documents_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # IDocumentProvider implementation
    # ------------------------------------------------------------------

    async def get_documents(self, document_ids: Sequence[str], workspace_id: str) -> list[Document]:
        if not document_ids:
            return []
        ids = list(document_ids)
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                _SELECT_DOCUMENT_COLUMNS
                + f"WHERE d.workspace_id = ? AND d.id IN ({_placeholders(len(ids))})",
                (workspace_id, *ids),
            )
            rows = await cursor.fetchall()
        return [Document(**dict(r)) for r in rows]

    async def list_document_ids(self, workspace_id: str) -> list[str]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT id FROM documents WHERE workspace_id = ? AND deleted_at IS NULL "
                "ORDER BY created_at, id",
                (workspace_id,),
            )
            rows = await cursor.fetchall()
        return [r[0] for r in rows]

    async def count_documents(self, workspace_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM documents WHERE workspace_id = ? AND deleted_at IS NULL",
                (workspace_id,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    def get_provider_name(self) -> str:
        return "sqlite_documents"

    # ------------------------------------------------------------------
    # Write helpers (seeding / CLI / tests)
    # ------------------------------------------------------------------

    async def upsert_space(
        self,
        space_id: str,
        workspace_id: str,
        slug: str | None = None,
        name: str | None = None,
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_SPACE_SQL, (space_id, workspace_id, slug, name))
            await db.commit()

    async def upsert_document(
        self,
        document_id: str,
        workspace_id: str,
        text_content: str,
        title: str | None = None,
        space_id: str | None = None,
        slug_id: str | None = None,
    ) -> None:
        """Insert or replace a document; an upsert also clears soft-delete."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_DOCUMENT_SQL,
                (document_id, workspace_id, space_id, slug_id, title, text_content),
            )
            await db.commit()
        logger.debug("document_upserted", document_id=document_id, workspace_id=workspace_id)

    async def soft_delete_document(self, document_id: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "UPDATE documents SET deleted_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now') "
                "WHERE id = ?",
                (document_id,),
            )
            await db.commit()
