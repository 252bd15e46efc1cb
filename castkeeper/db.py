"""SQLite feed store for castkeeper."""

import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from .config import DEFAULT_DB_PATH
from .models import FeedConfig, SeenItem


class Database:
    """SQLite database interface for castkeeper."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection.

        Args:
            db_path: Path to the SQLite database file. Defaults to ~/.castkeeper/castkeeper.db
        """
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS feeds (
                url TEXT PRIMARY KEY,
                last_fetched TIMESTAMP,
                flags INTEGER NOT NULL DEFAULT 0,
                etag TEXT,
                since DATE,
                title TEXT
            );

            CREATE TABLE IF NOT EXISTS items (
                guid TEXT PRIMARY KEY,
                url TEXT,
                title TEXT,
                feed_title TEXT,
                downloaded_at TIMESTAMP
            );
        """)
        conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    # Feed operations

    def add_feed(self, feed: FeedConfig) -> FeedConfig:
        """Add a new feed to track.

        Args:
            feed: FeedConfig to insert

        Returns:
            The same FeedConfig

        Raises:
            sqlite3.IntegrityError: If a feed with the same URL exists
        """
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO feeds (url, last_fetched, flags, etag, since, title)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                feed.url,
                _isoformat(feed.last_fetched),
                feed.flags,
                feed.etag,
                _isoformat(feed.since),
                feed.title,
            ),
        )
        conn.commit()
        return feed

    def get_feed(self, url: str) -> Optional[FeedConfig]:
        """Get a feed by URL.

        Args:
            url: The feed's URL

        Returns:
            FeedConfig or None if not found
        """
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM feeds WHERE url = ?", (url,)).fetchone()
        return self._row_to_feed(row) if row else None

    def list_feeds(self) -> list[FeedConfig]:
        """List all feeds, including disabled ones, ordered by URL."""
        conn = self._get_conn()
        rows = conn.execute("SELECT * FROM feeds ORDER BY url").fetchall()
        return [self._row_to_feed(row) for row in rows]

    def list_enabled_feeds(self) -> list[FeedConfig]:
        """List feeds eligible for sync (flags > 0), ordered by URL."""
        conn = self._get_conn()
        rows = conn.execute(
            "SELECT * FROM feeds WHERE flags > 0 ORDER BY url"
        ).fetchall()
        return [self._row_to_feed(row) for row in rows]

    def update_feed_state(
        self,
        url: str,
        last_fetched: datetime,
        etag: Optional[str],
        title: Optional[str],
    ) -> None:
        """Record the outcome of a successful fetch.

        Args:
            url: The feed's URL
            last_fetched: Time the fetch started
            etag: ETag returned by the server, if any
            title: Channel title found in the document
        """
        conn = self._get_conn()
        conn.execute(
            "UPDATE feeds SET last_fetched = ?, etag = ?, title = ? WHERE url = ?",
            (_isoformat(last_fetched), etag, title, url),
        )
        conn.commit()

    def mark_feed_dead(self, url: str) -> None:
        """Disable a feed that is permanently gone."""
        self.set_feed_flags(url, 0)

    def move_feed(self, old_url: str, new_url: str) -> bool:
        """Rewrite a feed's URL in place, keeping the rest of its row.

        If new_url is already tracked, the old row is disabled instead.

        Returns:
            True if the row was moved, False if it was disabled
        """
        conn = self._get_conn()
        if conn.execute("SELECT 1 FROM feeds WHERE url = ?", (new_url,)).fetchone():
            conn.execute("UPDATE feeds SET flags = 0 WHERE url = ?", (old_url,))
            conn.commit()
            return False
        conn.execute("UPDATE feeds SET url = ? WHERE url = ?", (new_url, old_url))
        conn.commit()
        return True

    def set_feed_flags(self, url: str, flags: int) -> bool:
        """Set a feed's flags.

        Returns:
            True if the feed was updated, False if not found
        """
        conn = self._get_conn()
        cursor = conn.execute("UPDATE feeds SET flags = ? WHERE url = ?", (flags, url))
        conn.commit()
        return cursor.rowcount > 0

    def remove_feed(self, url: str) -> bool:
        """Remove a feed. Items already seen are kept.

        Returns:
            True if feed was removed, False if not found
        """
        conn = self._get_conn()
        cursor = conn.execute("DELETE FROM feeds WHERE url = ?", (url,))
        conn.commit()
        return cursor.rowcount > 0

    def _row_to_feed(self, row: sqlite3.Row) -> FeedConfig:
        """Convert a database row to a FeedConfig object."""
        since = self._parse_datetime(row["since"])
        return FeedConfig(
            url=row["url"],
            last_fetched=self._parse_datetime(row["last_fetched"]),
            flags=row["flags"],
            etag=row["etag"],
            since=since.date() if since else None,
            title=row["title"],
        )

    # Seen item operations

    def has_seen(self, guid: str) -> bool:
        """Check if an item with the given guid was already processed."""
        conn = self._get_conn()
        row = conn.execute("SELECT 1 FROM items WHERE guid = ?", (guid,)).fetchone()
        return row is not None

    def record_seen(
        self,
        guid: str,
        url: str,
        title: str,
        feed_title: Optional[str],
    ) -> SeenItem:
        """Record an item as processed.

        Args:
            guid: Feed-assigned item identifier
            url: Enclosure URL
            title: Item title
            feed_title: Channel title

        Returns:
            The stored SeenItem

        Raises:
            sqlite3.IntegrityError: If the guid is already recorded
        """
        item = SeenItem(
            guid=guid,
            url=url,
            title=title,
            feed_title=feed_title,
            downloaded_at=datetime.now(),
        )
        conn = self._get_conn()
        conn.execute(
            """
            INSERT INTO items (guid, url, title, feed_title, downloaded_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (item.guid, item.url, item.title, item.feed_title, _isoformat(item.downloaded_at)),
        )
        conn.commit()
        return item

    def get_seen_item(self, guid: str) -> Optional[SeenItem]:
        """Get a seen item by guid."""
        conn = self._get_conn()
        row = conn.execute("SELECT * FROM items WHERE guid = ?", (guid,)).fetchone()
        return self._row_to_item(row) if row else None

    def list_seen_items(
        self, feed_title: Optional[str] = None, limit: Optional[int] = None
    ) -> list[SeenItem]:
        """List seen items, most recent first.

        Args:
            feed_title: If provided, only return items from this feed
            limit: Maximum number of items to return

        Returns:
            List of SeenItem objects
        """
        conn = self._get_conn()
        query = "SELECT * FROM items WHERE 1=1"
        params: list = []

        if feed_title is not None:
            query += " AND feed_title = ?"
            params.append(feed_title)

        query += " ORDER BY downloaded_at DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = conn.execute(query, params).fetchall()
        return [self._row_to_item(row) for row in rows]

    def _row_to_item(self, row: sqlite3.Row) -> SeenItem:
        """Convert a database row to a SeenItem object."""
        return SeenItem(
            guid=row["guid"],
            url=row["url"],
            title=row["title"],
            feed_title=row["feed_title"],
            downloaded_at=self._parse_datetime(row["downloaded_at"]),
        )

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        """Parse a datetime string from the database."""
        if value is None:
            return None
        try:
            return datetime.fromisoformat(value)
        except (ValueError, TypeError):
            return None


def _isoformat(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None
