"""
Durable key/value storage on SQLite.
Each key holds one serialized JSON document.
"""
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from core.config import get_settings
from core.exceptions import PersistenceError
from core.logger import setup_logger

logger = setup_logger(__name__)


class Database:
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_settings().database_path
        self.init_db()

    def get_connection(self) -> sqlite3.Connection:
        """Create a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Initialize database tables."""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()
            logger.debug(f"Database ready at {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Database initialization failed: {e}")
            raise PersistenceError("Database initialization failed", details={"db_path": self.db_path, "error": str(e)})
        finally:
            conn.close()

    def get_value(self, key: str) -> Optional[str]:
        """
        Read the document stored under a key.

        Returns:
            Stored text, or None if the key is absent

        Raises:
            PersistenceError: If the database cannot be read
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
            return row["value"] if row else None
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to read key {key}", details={"key": key, "error": str(e)})
        finally:
            conn.close()

    def set_value(self, key: str, value: str) -> None:
        """
        Store a document under a key, replacing any previous one.

        Raises:
            PersistenceError: If the database cannot be written
        """
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            now = datetime.now(timezone.utc).isoformat()
            cursor.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, now)
            )
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to write key {key}", details={"key": key, "error": str(e)})
        finally:
            conn.close()
