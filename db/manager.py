"""Database manager for SQLite connections, transactions and path management."""

import sqlite3
import threading
from contextlib import contextmanager
from config import Config, get_migrations_dir
from errors import StorageError


class DatabaseManager:
    """Manages database connections and paths.

    Connections opened with connect() commit when the block exits cleanly and
    roll back otherwise. Inside a transaction() block every connect() on the
    same thread reuses the transaction's connection, so a sequence of service
    calls reads one snapshot and commits as a unit.

    Args:
        config: Application configuration object.
    """

    def __init__(self, config: Config):
        """Initialize the database manager.

        Args:
            config: Config object containing database configuration.
        """
        self.config = config
        self._local = threading.local()

    def _open(self) -> sqlite3.Connection:
        db_path = self.config.db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path)
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as e:
            raise StorageError(f"Could not open database {db_path}: {e}") from e
        return conn

    def _active_connection(self):
        return getattr(self._local, "conn", None)

    @contextmanager
    def connect(self):
        """Get a database connection with automatic commit and cleanup.

        Yields:
            sqlite3.Connection: Database connection.

        Raises:
            StorageError: If a database error occurs inside the block.
        """
        active = self._active_connection()
        if active is not None:
            # Part of an enclosing transaction; it owns commit and close.
            try:
                yield active
            except sqlite3.Error as e:
                raise StorageError(str(e)) from e
            return

        conn = self._open()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        """Run a block inside a single IMMEDIATE transaction.

        Nested calls join the outer transaction.

        Yields:
            sqlite3.Connection: The transaction's connection.

        Raises:
            StorageError: If a database error occurs inside the block.
        """
        active = self._active_connection()
        if active is not None:
            yield active
            return

        conn = self._open()
        self._local.conn = conn
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            conn.close()

    def get_db_path(self):
        """Get the current database path.

        Returns:
            Path: Path to the database file.
        """
        return self.config.db_path

    def get_migrations_dir(self):
        """Get the migrations directory path.

        Returns:
            Path: Path to the migrations directory.
        """
        return get_migrations_dir()
