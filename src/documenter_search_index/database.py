"""SQLite FTS5 database operations for Documenter search index entries."""

import re
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from documenter_search_index.models import Category, IndexEntry, SearchResult


class EntryDatabase:
    """Manages the SQLite FTS5 database for index entry search."""

    def __init__(self, db_path: Path) -> None:
        """Initialise database with the given path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._initialise_schema()

    @staticmethod
    def _sanitise_query(query: str) -> str:
        """Sanitise user query for FTS5 MATCH clause.

        Queries containing anything other than words and whitespace, or an
        FTS5 operator, are wrapped in double quotes so they are matched as a
        literal phrase.

        Args:
            query: Raw user query string.

        Returns:
            Sanitised query string safe for FTS5 MATCH.
        """
        # Julia signatures carry . ( ) { } = * and friends
        fts5_special_chars = r"[^\w\s]"
        fts5_operators = re.compile(r"\b(AND|OR|NOT|NEAR)\b", re.IGNORECASE)

        if re.search(fts5_special_chars, query) or fts5_operators.search(query):
            query = query.replace('"', '""')
            return f'"{query}"'

        return query

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections.

        Yields:
            SQLite connection with Row factory enabled.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialise_schema(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    position INTEGER NOT NULL,
                    location TEXT NOT NULL,
                    page TEXT NOT NULL,
                    title TEXT NOT NULL,
                    text TEXT NOT NULL,
                    category TEXT NOT NULL
                );

                CREATE VIRTUAL TABLE IF NOT EXISTS entries_fts USING fts5(
                    title,
                    page,
                    text,
                    content='entries',
                    content_rowid='id',
                    tokenize='porter unicode61'
                );

                CREATE TRIGGER IF NOT EXISTS entries_ai AFTER INSERT ON entries BEGIN
                    INSERT INTO entries_fts(rowid, title, page, text)
                    VALUES (new.id, new.title, new.page, new.text);
                END;

                CREATE TRIGGER IF NOT EXISTS entries_ad AFTER DELETE ON entries BEGIN
                    INSERT INTO entries_fts(entries_fts, rowid, title, page, text)
                    VALUES ('delete', old.id, old.title, old.page, old.text);
                END;

                CREATE INDEX IF NOT EXISTS idx_entries_location ON entries(location);
                CREATE INDEX IF NOT EXISTS idx_entries_category ON entries(category);
            """)
            conn.commit()

    def replace_entries(self, entries: Iterable[IndexEntry]) -> int:
        """Replace the stored index with a new sequence of entries.

        The delete and the inserts share one transaction, so readers see
        either the old index or the new one.

        Args:
            entries: Entries in index order.

        Returns:
            Number of entries stored.
        """
        rows = [
            (position, entry.location, entry.page, entry.title, entry.text, entry.category.value)
            for position, entry in enumerate(entries)
        ]
        with self._get_connection() as conn:
            conn.execute("DELETE FROM entries")
            conn.executemany(
                """
                INSERT INTO entries (position, location, page, title, text, category)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
        return len(rows)

    def search(self, query: str, category: Category | None = None, limit: int = 10) -> list[SearchResult]:
        """Search entries using FTS5.

        Args:
            query: Search query string.
            category: Optional category filter.
            limit: Maximum number of results.

        Returns:
            List of SearchResult instances ordered by relevance.
        """
        # SQLite rejects NUL inside an FTS5 query string
        query = query.replace("\x00", "")
        if not query.strip():
            return []
        sanitised_query = self._sanitise_query(query)

        with self._get_connection() as conn:
            sql = """
                SELECT
                    e.location,
                    e.page,
                    e.title,
                    e.category,
                    snippet(entries_fts, -1, '<mark>', '</mark>', '...', 64) as snippet,
                    bm25(entries_fts, 5.0, 2.0, 1.0) as score
                FROM entries_fts
                JOIN entries e ON entries_fts.rowid = e.id
                WHERE entries_fts MATCH ?
            """
            params: list[str | int] = [sanitised_query]

            if category:
                sql += " AND e.category = ?"
                params.append(category.value)

            sql += " ORDER BY score, e.position LIMIT ?"
            params.append(limit)

            cursor = conn.execute(sql, params)
            return [
                SearchResult(
                    location=row["location"],
                    page=row["page"],
                    title=row["title"],
                    category=Category(row["category"]),
                    snippet=row["snippet"],
                    score=abs(row["score"]),  # BM25 returns negative scores
                )
                for row in cursor.fetchall()
            ]

    def get_entries(self, location: str) -> list[IndexEntry]:
        """Retrieve all entries anchored at a location.

        Args:
            location: URL fragment of the entry.

        Returns:
            Matching entries in index order, empty if none.
        """
        with self._get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM entries WHERE location = ? ORDER BY position",
                (location,),
            )
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def get_all_entries(self) -> tuple[IndexEntry, ...]:
        """Return every stored entry in index order."""
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT * FROM entries ORDER BY position")
            return tuple(self._row_to_entry(row) for row in cursor.fetchall())

    def clear(self) -> None:
        """Clear all entries from the database."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM entries")
            conn.commit()

    def get_entry_count(self) -> int:
        """Return the total number of stored entries.

        Returns:
            Count of entries in the database.
        """
        with self._get_connection() as conn:
            cursor = conn.execute("SELECT COUNT(*) FROM entries")
            result = cursor.fetchone()
            return int(result[0]) if result else 0

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> IndexEntry:
        return IndexEntry(
            location=row["location"],
            page=row["page"],
            title=row["title"],
            text=row["text"],
            category=Category(row["category"]),
        )
