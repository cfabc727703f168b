import json
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import aiosqlite
import numpy as np

from notesearch.logging import get_logger
from notesearch.search.types import NoteSearchRecord, PendingEmbedding
from notesearch.utils import ensure_utc, utc_now

_logger = get_logger(__name__)


def serialize_embedding(embedding: np.ndarray | list[float] | None) -> bytes | None:
    if embedding is None:
        return None
    arr = embedding if isinstance(embedding, np.ndarray) else np.array(embedding)
    return arr.astype(np.float32).tobytes()


def deserialize_embedding(data: bytes | None) -> np.ndarray | None:
    if data is None:
        return None
    return np.frombuffer(data, dtype=np.float32).astype(np.float64)


def _format_dt(dt: datetime | None) -> str | None:
    return ensure_utc(dt).isoformat() if dt else None


def _parse_dt(value: str | None) -> datetime | None:
    return ensure_utc(datetime.fromisoformat(value)) if value else None


class NoteStore:
    """SQLite note storage; the persistence side of semantic search.

    Editing a note's title, body or tags bumps ``content_modified_at``, which is
    what makes its cached embedding stale on the next search.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self.db_path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.execute("PRAGMA synchronous=NORMAL;")
        await self._conn.execute("PRAGMA busy_timeout=30000;")
        await self._init_schema()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("NoteStore not connected")
        return self._conn

    async def _init_schema(self) -> None:
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                body TEXT NOT NULL DEFAULT '',
                tags TEXT NOT NULL DEFAULT '[]',
                folder_id TEXT,
                embedding BLOB,
                embedding_generated_at TEXT,
                content_modified_at TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_notes_folder ON notes(folder_id);
        """)
        await self.conn.commit()

    def _row_to_record(self, row: aiosqlite.Row) -> NoteSearchRecord:
        return NoteSearchRecord(
            id=row["id"],
            title=row["title"],
            body_markup=row["body"],
            tag_names=json.loads(row["tags"]),
            folder_id=row["folder_id"],
            embedding=deserialize_embedding(row["embedding"]),
            embedding_generated_at=_parse_dt(row["embedding_generated_at"]),
            content_modified_at=_parse_dt(row["content_modified_at"]),
        )

    async def upsert_note(
        self,
        note_id: str,
        title: str,
        body: str = "",
        tag_names: list[str] | None = None,
        folder_id: str | None = None,
    ) -> bool:
        """Create or update a note. Returns True when its searchable content changed."""
        tags_json = json.dumps(tag_names or [])
        now = _format_dt(utc_now())

        rows = await self.conn.execute_fetchall(
            "SELECT title, body, tags FROM notes WHERE id = ?",
            (note_id,),
        )

        if not rows:
            await self.conn.execute(
                """
                INSERT INTO notes (id, title, body, tags, folder_id, content_modified_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (note_id, title, body, tags_json, folder_id, now, now),
            )
            await self.conn.commit()
            return True

        existing = rows[0]
        changed = (existing["title"], existing["body"], existing["tags"]) != (title, body, tags_json)
        if changed:
            await self.conn.execute(
                "UPDATE notes SET title = ?, body = ?, tags = ?, folder_id = ?, content_modified_at = ? WHERE id = ?",
                (title, body, tags_json, folder_id, now, note_id),
            )
        else:
            await self.conn.execute("UPDATE notes SET folder_id = ? WHERE id = ?", (folder_id, note_id))
        await self.conn.commit()
        return changed

    async def get_note(self, note_id: str) -> NoteSearchRecord | None:
        rows = await self.conn.execute_fetchall("SELECT * FROM notes WHERE id = ?", (note_id,))
        return self._row_to_record(rows[0]) if rows else None

    async def list_notes(self, folder_id: str | None = None) -> list[NoteSearchRecord]:
        if folder_id is None:
            rows = await self.conn.execute_fetchall("SELECT * FROM notes ORDER BY created_at, id")
        else:
            rows = await self.conn.execute_fetchall(
                "SELECT * FROM notes WHERE folder_id = ? ORDER BY created_at, id",
                (folder_id,),
            )
        return [self._row_to_record(row) for row in rows]

    async def delete_note(self, note_id: str) -> bool:
        cursor = await self.conn.execute("DELETE FROM notes WHERE id = ?", (note_id,))
        await self.conn.commit()
        return cursor.rowcount > 0

    async def save_embeddings(self, pending: Iterable[PendingEmbedding]) -> int:
        """Keyed upsert of exactly the embedding and its timestamp. Unknown ids are skipped."""
        saved = 0
        for entry in pending:
            cursor = await self.conn.execute(
                "UPDATE notes SET embedding = ?, embedding_generated_at = ? WHERE id = ?",
                (serialize_embedding(entry.embedding), _format_dt(entry.embedding_generated_at), entry.id),
            )
            saved += cursor.rowcount
        await self.conn.commit()
        return saved

    async def mark_all_stale(self) -> int:
        """Bump every note's content timestamp so all embeddings regenerate on the next search."""
        cursor = await self.conn.execute("UPDATE notes SET content_modified_at = ?", (_format_dt(utc_now()),))
        await self.conn.commit()
        _logger.info("Marked %d notes stale", cursor.rowcount)
        return cursor.rowcount
