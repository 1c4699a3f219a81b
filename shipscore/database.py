"""
Gallery store — where scanned apps live after the request is over.

Uses SQLite: one file, one `gallery` table, one row per app.
The row is keyed by the app id (unique per store listing); the slug used for
report URLs is derived from the display name and only has to be unique too.

Concurrent upserts are safe: each one runs inside a BEGIN IMMEDIATE
transaction, so the slug check and the write happen as one atomic step.
"""

import json
import os
import re
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from shipscore.config import DATABASE_PATH
from shipscore.models import GalleryEntry


def to_slug(name: str) -> str:
    """'My App: Pro!' -> 'my-app-pro'"""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


class GalleryStore:
    """Append, look up and list gallery entries in a SQLite file."""

    def __init__(self, db_path: str = DATABASE_PATH):
        self.db_path = db_path
        self.initialize()

    def _get_connection(self) -> sqlite3.Connection:
        """
        Open a connection to the gallery database.

        isolation_level=None means we manage transactions ourselves
        (BEGIN IMMEDIATE ... COMMIT) instead of letting sqlite3 open them.
        """
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=30, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the table. Safe to call multiple times."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS gallery (
                    app_id           TEXT PRIMARY KEY,
                    slug             TEXT NOT NULL UNIQUE,
                    platform         TEXT NOT NULL,
                    app_name         TEXT NOT NULL,
                    app_icon         TEXT,
                    developer        TEXT,
                    overall_score    INTEGER NOT NULL,
                    grade            TEXT NOT NULL,
                    dimensions       TEXT NOT NULL,
                    top_improvements TEXT NOT NULL,
                    store_url        TEXT,
                    average_rating   REAL,
                    rating_count     INTEGER,
                    primary_genre    TEXT,
                    scanned_at       TEXT NOT NULL
                )
            """)
        finally:
            conn.close()

    def _resolve_slug(self, cursor: sqlite3.Cursor, app_id: str, app_name: str) -> str:
        """
        Slug for this app. If another app already owns the name's slug,
        suffix ours with the app id rather than taking theirs.
        """
        slug = to_slug(app_name) or to_slug(app_id)
        cursor.execute("SELECT app_id FROM gallery WHERE slug = ?", (slug,))
        owner = cursor.fetchone()
        if owner is None or owner["app_id"] == app_id:
            return slug
        return f"{slug}-{to_slug(app_id)}"

    def upsert_entry(self, app_id: str, app_name: str, app_icon: str, developer: str,
                     overall_score: int, grade: str, dimensions: list[dict],
                     top_improvements: list[str], store_url: str,
                     platform: str = "app_store",
                     average_rating: Optional[float] = None,
                     rating_count: Optional[int] = None,
                     primary_genre: Optional[str] = None) -> GalleryEntry:
        """
        Insert or replace the entry for `app_id`.
        The slug lookup and the write share one transaction.
        """
        scanned_at = datetime.now(timezone.utc).isoformat()
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            cursor.execute("BEGIN IMMEDIATE")
            slug = self._resolve_slug(cursor, app_id, app_name)
            cursor.execute("""
                INSERT INTO gallery
                (app_id, slug, platform, app_name, app_icon, developer, overall_score, grade,
                 dimensions, top_improvements, store_url, average_rating, rating_count,
                 primary_genre, scanned_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(app_id) DO UPDATE SET
                    slug = excluded.slug,
                    platform = excluded.platform,
                    app_name = excluded.app_name,
                    app_icon = excluded.app_icon,
                    developer = excluded.developer,
                    overall_score = excluded.overall_score,
                    grade = excluded.grade,
                    dimensions = excluded.dimensions,
                    top_improvements = excluded.top_improvements,
                    store_url = excluded.store_url,
                    average_rating = excluded.average_rating,
                    rating_count = excluded.rating_count,
                    primary_genre = excluded.primary_genre,
                    scanned_at = excluded.scanned_at
            """, (
                app_id, slug, platform, app_name, app_icon, developer, overall_score, grade,
                # SQLite only stores simple types, so lists go in as JSON text
                json.dumps(dimensions), json.dumps(top_improvements),
                store_url, average_rating, rating_count, primary_genre, scanned_at,
            ))
            cursor.execute("COMMIT")
        except sqlite3.Error:
            if conn.in_transaction:
                cursor.execute("ROLLBACK")
            raise
        finally:
            conn.close()

        return GalleryEntry(
            app_id=app_id, app_name=app_name, app_icon=app_icon, developer=developer,
            overall_score=overall_score, grade=grade, dimensions=dimensions,
            top_improvements=top_improvements, scanned_at=scanned_at, slug=slug,
            store_url=store_url, platform=platform, average_rating=average_rating,
            rating_count=rating_count, primary_genre=primary_genre,
        )

    def find_by_app_id(self, app_id: str) -> Optional[GalleryEntry]:
        return self._find_one("SELECT * FROM gallery WHERE app_id = ?", (app_id,))

    def find_by_slug(self, slug: str) -> Optional[GalleryEntry]:
        return self._find_one("SELECT * FROM gallery WHERE slug = ?", (slug,))

    def list_entries(self) -> list[GalleryEntry]:
        """Every entry, most recently scanned first."""
        conn = self._get_connection()
        try:
            rows = conn.execute("SELECT * FROM gallery ORDER BY scanned_at DESC").fetchall()
        finally:
            conn.close()
        return [_row_to_entry(row) for row in rows]

    def _find_one(self, query: str, params: tuple) -> Optional[GalleryEntry]:
        conn = self._get_connection()
        try:
            row = conn.execute(query, params).fetchone()
        finally:
            conn.close()
        return _row_to_entry(row) if row else None


def _row_to_entry(row: sqlite3.Row) -> GalleryEntry:
    data = dict(row)
    data["dimensions"] = json.loads(data["dimensions"])
    data["top_improvements"] = json.loads(data["top_improvements"])
    return GalleryEntry(**data)
