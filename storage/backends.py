"""
Raw key/value backends behind KeyedStore.

Every backend stores opaque text per key and knows nothing about JSON.
``write_many`` takes a mapping of key -> text, where ``None`` deletes the key.
"""

import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from mysql.connector import Error

from config import Config
from storage.connection import get_db_connection

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r'^[A-Za-z0-9_.-]+$')


class StorageError(Exception):
    """Raised when a backend cannot persist a write."""


def _check_name(name: str, what: str = "key") -> str:
    if not name or not _SAFE_NAME.match(name) or name in ('.', '..'):
        raise ValueError(f"Invalid storage {what}: {name!r}")
    return name


class MemoryBackend:
    """Process-local backend, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write_many(self, items: Dict[str, Optional[str]]) -> None:
        for key, text in items.items():
            if text is None:
                self._data.pop(key, None)
            else:
                self._data[key] = text

    def keys(self) -> List[str]:
        return sorted(self._data)


class FileBackend:
    """One file per key inside a directory, the on-disk "browser profile".

    Several processes pointed at the same directory share state the way
    tabs of one browser share local storage.
    """

    def __init__(self, directory=None):
        self.directory = Path(directory or Config.STORAGE_DIR)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / _check_name(key)

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding='utf-8')
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logger.warning(f"Storage key '{key}' is not valid UTF-8, treating as missing: {e}")
            return None
        except OSError as e:
            logger.error(f"Error reading storage key '{key}': {e}")
            return None

    def write_many(self, items: Dict[str, Optional[str]]) -> None:
        for key, text in items.items():
            path = self._path(key)
            if text is None:
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    raise StorageError(f"Could not delete '{key}': {e}") from e
                continue

            # Replace atomically so a polling reader never sees half a file
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f'.{key}.', suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(text)
                os.replace(tmp_name, path)
            except OSError as e:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
                raise StorageError(f"Could not write '{key}': {e}") from e

    def keys(self) -> List[str]:
        return sorted(
            p.name for p in self.directory.iterdir()
            if p.is_file() and not p.name.startswith('.')
        )


class MySQLBackend:
    """Key/value rows in a single MySQL table.

    A multi-key ``write_many`` runs inside one database transaction.
    """

    def __init__(self, table=None, connect=get_db_connection):
        self.table = _check_name(table or Config.MYSQL_STORAGE_TABLE, "table")
        self.connect = connect

    def ensure_table(self) -> bool:
        """Create the storage table if it does not exist"""
        conn = self.connect()
        if conn is None:
            return False

        cursor = conn.cursor()
        try:
            cursor.execute(f'''
                CREATE TABLE IF NOT EXISTS {self.table} (
                    storage_key VARCHAR(255) PRIMARY KEY,
                    storage_value LONGTEXT NOT NULL,
                    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            ''')
            conn.commit()
            return True
        except Error as e:
            logger.error(f"Error creating storage table: {e}")
            return False
        finally:
            cursor.close()
            conn.close()

    def read(self, key: str) -> Optional[str]:
        conn = self.connect()
        if conn is None:
            return None

        cursor = conn.cursor()
        try:
            cursor.execute(
                f'SELECT storage_value FROM {self.table} WHERE storage_key = %s',
                (key,)
            )
            row = cursor.fetchone()
            return row[0] if row else None
        except Error as e:
            logger.error(f"Error reading storage key '{key}': {e}")
            return None
        finally:
            cursor.close()
            conn.close()

    def write_many(self, items: Dict[str, Optional[str]]) -> None:
        if not items:
            return
        conn = self.connect()
        if conn is None:
            raise StorageError("No database connection")

        cursor = conn.cursor()
        try:
            now = datetime.now()
            for key, text in items.items():
                if text is None:
                    cursor.execute(f'DELETE FROM {self.table} WHERE storage_key = %s', (key,))
                else:
                    cursor.execute(f'''
                        INSERT INTO {self.table} (storage_key, storage_value, updated_at)
                        VALUES (%s, %s, %s)
                        ON DUPLICATE KEY UPDATE
                            storage_value = VALUES(storage_value),
                            updated_at = VALUES(updated_at)
                    ''', (key, text, now))
            conn.commit()
        except Error as e:
            conn.rollback()
            logger.error(f"Error writing storage keys {sorted(items)}: {e}")
            raise StorageError(str(e)) from e
        finally:
            cursor.close()
            conn.close()

    def keys(self) -> List[str]:
        conn = self.connect()
        if conn is None:
            return []

        cursor = conn.cursor()
        try:
            cursor.execute(f'SELECT storage_key FROM {self.table} ORDER BY storage_key')
            return [row[0] for row in cursor.fetchall()]
        except Error as e:
            logger.error(f"Error listing storage keys: {e}")
            return []
        finally:
            cursor.close()
            conn.close()
