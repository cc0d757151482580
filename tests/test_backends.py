# tests/test_backends.py
from unittest.mock import MagicMock

import pytest
from mysql.connector import Error

from storage.backends import FileBackend, MySQLBackend, StorageError
from storage.keyed_store import KeyedStore


class TestFileBackend:

    def test_read_missing(self, tmp_path):
        assert FileBackend(tmp_path).read("tickets") is None

    def test_write_read_delete(self, tmp_path):
        backend = FileBackend(tmp_path)
        backend.write_many({"tickets": "[]", "language": "en"})
        assert backend.read("tickets") == "[]"
        assert backend.keys() == ["language", "tickets"]

        backend.write_many({"language": None, "missing": None})
        assert backend.keys() == ["tickets"]

    def test_no_temp_files_left_behind(self, tmp_path):
        backend = FileBackend(tmp_path)
        backend.write_many({"tickets": "[1]"})
        backend.write_many({"tickets": "[1, 2]"})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["tickets"]

    def test_rejects_path_like_keys(self, tmp_path):
        backend = FileBackend(tmp_path)
        with pytest.raises(ValueError):
            backend.read("../escape")
        with pytest.raises(ValueError):
            backend.write_many({"a/b": "x"})

    def test_two_stores_share_one_directory(self, tmp_path):
        first = KeyedStore(FileBackend(tmp_path))
        second = KeyedStore(FileBackend(tmp_path))
        first.save("tickets", [{"id": "TKT-1"}])
        assert second.load("tickets") == [{"id": "TKT-1"}]


def _mysql(rows=None, fail=False):
    cursor = MagicMock()
    cursor.fetchone.return_value = rows[0] if rows else None
    cursor.fetchall.return_value = rows or []
    if fail:
        cursor.execute.side_effect = Error("lost connection")
    conn = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


class TestMySQLBackend:

    def test_rejects_unsafe_table_name(self):
        with pytest.raises(ValueError):
            MySQLBackend(table="kv; DROP TABLE users", connect=MagicMock())

    def test_read_returns_value(self):
        conn, cursor = _mysql(rows=[("[]",)])
        backend = MySQLBackend(table="kv", connect=lambda: conn)
        assert backend.read("tickets") == "[]"
        assert cursor.execute.call_args[0][1] == ("tickets",)
        conn.close.assert_called_once()

    def test_read_without_connection(self):
        assert MySQLBackend(table="kv", connect=lambda: None).read("tickets") is None

    def test_write_many_commits_once(self):
        conn, cursor = _mysql()
        backend = MySQLBackend(table="kv", connect=lambda: conn)
        backend.write_many({"tickets": "[]", "language": None})
        assert cursor.execute.call_count == 2
        assert "DELETE" in cursor.execute.call_args_list[1][0][0]
        conn.commit.assert_called_once()

    def test_write_failure_rolls_back(self):
        conn, _ = _mysql(fail=True)
        backend = MySQLBackend(table="kv", connect=lambda: conn)
        with pytest.raises(StorageError):
            backend.write_many({"tickets": "[]"})
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_write_without_connection(self):
        with pytest.raises(StorageError):
            MySQLBackend(table="kv", connect=lambda: None).write_many({"a": "1"})

    def test_keys(self):
        conn, _ = _mysql(rows=[("language",), ("tickets",)])
        assert MySQLBackend(table="kv", connect=lambda: conn).keys() == ["language", "tickets"]

    def test_ensure_table(self):
        conn, cursor = _mysql()
        assert MySQLBackend(table="kv", connect=lambda: conn).ensure_table() is True
        assert "CREATE TABLE IF NOT EXISTS kv" in cursor.execute.call_args[0][0]
