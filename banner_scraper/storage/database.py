"""
Result Database
===============

Append-only SQLite sink for raw extraction results.
"""

import sqlite3
import json
import threading
from typing import Dict, List, Optional
from pathlib import Path

from banner_scraper.errors import PersistenceFailure
from banner_scraper.logger import get_logger

log = get_logger('database')


class ResultDatabase:
    """Stores one row per successful extraction"""

    def __init__(self, db_path: str = "scraped_data/scraped_data.db"):
        """
        Initialize ResultDatabase

        Args:
            db_path: Path to SQLite database file (":memory:" for tests)
        """
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row  # Return rows as dicts
        self._lock = threading.Lock()
        self._create_tables()

    def _create_tables(self):
        """Create tables if they don't exist"""
        schema_path = Path(__file__).parent / "schema.sql"

        with open(schema_path, 'r') as f:
            schema_sql = f.read()

        self.conn.executescript(schema_sql)
        self.conn.commit()

    def _dict_from_row(self, row: sqlite3.Row) -> Optional[Dict]:
        """Convert sqlite3.Row to dict"""
        return dict(row) if row else None

    def insert(self, url: str, content: List[dict]) -> int:
        """
        Append a raw result.

        Returns:
            Row id of the new record

        Raises:
            PersistenceFailure: the row could not be written
        """
        try:
            with self._lock:
                cursor = self.conn.execute(
                    "INSERT INTO scraped_data (url, content) VALUES (?, ?)",
                    (url, json.dumps(content, ensure_ascii=False)),
                )
                self.conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Database error for {url}: {e}") from e

        log.info(f"Data saved to database for {url}")
        return cursor.lastrowid

    def recent(self, limit: int = 20, url: Optional[str] = None) -> List[Dict]:
        """Newest results first, optionally for one URL."""
        query = "SELECT * FROM scraped_data"
        params: tuple = ()
        if url:
            query += " WHERE url = ?"
            params = (url,)
        query += " ORDER BY id DESC LIMIT ?"
        params += (limit,)

        with self._lock:
            rows = self.conn.execute(query, params).fetchall()

        results = []
        for row in rows:
            record = self._dict_from_row(row)
            record["content"] = json.loads(record["content"])
            results.append(record)
        return results

    def close(self):
        self.conn.close()
