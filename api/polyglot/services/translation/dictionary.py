"""SQLite dictionary store for curated translation overrides.

Dictionary entries take precedence over cached provider output. They never
expire and are only written through the admin endpoint.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class DictionaryStore(Protocol):
    def find_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> Optional[str]: ...

    def save(
        self, text: str, translation: str, source_lang: str, target_lang: str
    ) -> None: ...


class SQLiteDictionaryStore:
    """Curated translations keyed by exact text and language pair."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path, timeout=10)

    def _init_db(self) -> None:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS dictionary_entries (
                    source_text TEXT NOT NULL,
                    source_lang TEXT NOT NULL,
                    target_lang TEXT NOT NULL,
                    translation TEXT NOT NULL,
                    updated_at INTEGER NOT NULL,
                    PRIMARY KEY (source_text, source_lang, target_lang)
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def find_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> Optional[str]:
        conn = self._connect()
        try:
            cursor = conn.execute(
                """
                SELECT translation FROM dictionary_entries
                WHERE source_text = ? AND source_lang = ? AND target_lang = ?
                """,
                (text, source_lang.lower(), target_lang.lower()),
            )
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def save(
        self, text: str, translation: str, source_lang: str, target_lang: str
    ) -> None:
        """Insert or replace a curated translation.

        Args:
            text: Source text, matched exactly.
            translation: Curated translation.
            source_lang: Source language code.
            target_lang: Target language code.
        """
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO dictionary_entries
                (source_text, source_lang, target_lang, translation, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    text,
                    source_lang.lower(),
                    target_lang.lower(),
                    translation,
                    int(time.time()),
                ),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info(
            f"Saved dictionary entry {source_lang.lower()}->{target_lang.lower()}"
        )

    def count(self) -> int:
        conn = self._connect()
        try:
            return conn.execute("SELECT COUNT(*) FROM dictionary_entries").fetchone()[0]
        finally:
            conn.close()
