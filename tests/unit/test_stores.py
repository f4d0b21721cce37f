"""Unit tests for MemoryStore and SqliteStore."""

import sqlite3
from pathlib import Path

import pytest

from stand_migrations.core.exceptions import DocumentNotFoundError, StoreError
from stand_migrations.stores import DocumentStore, MemoryStore, SqliteStore, create_database

STANDS = [
    {"_id": "a", "pulse": "garbage", "tags": ["built"]},
    {"_id": "b", "pulse": "x", "coordinates": {"owner": "o", "rule": "r", "scheduled": "s"}},
    {"_id": "c", "tags": None},
]


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> DocumentStore:
    if request.param == "memory":
        return MemoryStore(STANDS)
    sqlite_store = SqliteStore(tmp_path / "stands.sqlite", create=True)
    sqlite_store.insert(STANDS)
    request.addfinalizer(sqlite_store.close)
    return sqlite_store


class TestDocumentStore:
    """両ストア共通の振る舞い."""

    def test_find_exists_and_absent(self, store: DocumentStore) -> None:
        found = store.find({"coordinates": False, "pulse": True})

        assert [d["_id"] for d in found] == ["a"]

    def test_null_field_counts_as_present(self, store: DocumentStore) -> None:
        """値が null のフィールドも存在扱い（$exists 互換）."""
        found = store.find({"tags": True})

        assert [d["_id"] for d in found] == ["a", "c"]

    def test_find_without_predicate_returns_all(self, store: DocumentStore) -> None:
        assert len(store.find({})) == 3

    def test_update_sets_only_named_fields(self, store: DocumentStore) -> None:
        store.update("a", {"tags": [{"label": "built", "attributes": {}}]})

        [doc] = [d for d in store.all() if d["_id"] == "a"]
        assert doc == {
            "_id": "a",
            "pulse": "garbage",
            "tags": [{"label": "built", "attributes": {}}],
        }

    def test_update_adds_field(self, store: DocumentStore) -> None:
        coords = {"owner": "urn:test:1", "rule": "r", "scheduled": "t"}

        store.update("a", {"coordinates": coords})

        assert [d["_id"] for d in store.find({"coordinates": True})] == ["a", "b"]

    def test_update_unknown_id(self, store: DocumentStore) -> None:
        with pytest.raises(DocumentNotFoundError, match="Stand not found"):
            store.update("missing", {"tags": []})

    def test_update_id_is_rejected(self, store: DocumentStore) -> None:
        with pytest.raises(StoreError, match="immutable"):
            store.update("a", {"_id": "z"})

    def test_invalid_field_name(self, store: DocumentStore) -> None:
        with pytest.raises(ValueError, match="Invalid field name"):
            store.find({"tags') IS NULL OR ('": True})

    def test_duplicate_insert(self, store: DocumentStore) -> None:
        with pytest.raises(StoreError):
            store.insert([{"_id": "a"}])

    def test_returned_documents_are_copies(self, store: DocumentStore) -> None:
        doc = store.find({"pulse": True})[0]
        doc["tags"].append("mutated")

        assert store.find({"pulse": True})[0]["tags"] == ["built"]

    def test_count(self, store: DocumentStore) -> None:
        assert store.count() == 3


class TestMemoryStore:
    def test_assigns_ids(self) -> None:
        store = MemoryStore([{"pulse": "x"}, {"pulse": "y"}])

        assert [d["_id"] for d in store.all()] == ["1", "2"]

    def test_get(self) -> None:
        store = MemoryStore(STANDS)

        assert store.get("b")["pulse"] == "x"
        with pytest.raises(DocumentNotFoundError):
            store.get("missing")


class TestSqliteStore:
    def test_missing_database(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Database does not exist"):
            SqliteStore(tmp_path / "missing.sqlite")

    def test_create_database_schema(self, tmp_path: Path) -> None:
        db_path = tmp_path / "stands.sqlite"
        create_database(db_path)

        conn = sqlite3.connect(db_path)
        try:
            tables = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table';")}
            page_size = conn.execute("PRAGMA page_size;").fetchone()[0]
        finally:
            conn.close()

        assert "STANDS" in tables
        assert page_size == 4096

    def test_create_database_already_exists(self, tmp_path: Path) -> None:
        """既存DBに対する作成は警告のみで内容を変えないこと."""
        db_path = tmp_path / "stands.sqlite"
        with SqliteStore(db_path, create=True) as store:
            store.insert([{"_id": "a"}])

        create_database(db_path)

        with SqliteStore(db_path) as store:
            assert store.count() == 1

    def test_insert_requires_id(self, tmp_path: Path) -> None:
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            with pytest.raises(StoreError, match="without _id"):
                store.insert([{"pulse": "x"}])

    def test_integer_ids(self, tmp_path: Path) -> None:
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            store.insert([{"_id": 7, "tags": []}])
            store.update(7, {"tags": ["x"]})

            assert store.all() == [{"_id": 7, "tags": ["x"]}]

    def test_unicode_round_trip(self, tmp_path: Path) -> None:
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            store.insert([{"_id": "a"}])
            store.update("a", {"tags": [{"label": "ci", "markdown": "ビルド成功"}]})

            assert store.all()[0]["tags"][0]["markdown"] == "ビルド成功"

    def test_lone_surrogate_round_trip(self, tmp_path: Path) -> None:
        """孤立サロゲートを含む値も書き込み・読み戻しできること."""
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            store.insert([{"_id": "a", "pulse": "\ud800"}])
            store.update("a", {"tags": [{"label": "ci", "attributes": {"a": "\udc00"}}]})

            [doc] = store.all()

        assert doc["pulse"] == "\ud800"
        assert doc["tags"][0]["attributes"] == {"a": "\udc00"}

    def test_unserializable_value_is_store_error(self, tmp_path: Path) -> None:
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            store.insert([{"_id": "a", "tags": []}])

            with pytest.raises(StoreError, match="Failed to update stand 'a'"):
                store.update("a", {"tags": [object()]})
            with pytest.raises(StoreError, match="Failed to insert stands"):
                store.insert([{"_id": "b", "tags": {1, 2}}])

            assert store.all() == [{"_id": "a", "tags": []}]

    def test_ids_keep_their_type(self, tmp_path: Path) -> None:
        """_id の 1 と "1" は別の stand として扱うこと."""
        with SqliteStore(tmp_path / "stands.sqlite", create=True) as store:
            store.insert([{"_id": 1, "tags": []}, {"_id": "1", "tags": []}])
            store.update(1, {"tags": ["int"]})

            assert store.all() == [{"_id": 1, "tags": ["int"]}, {"_id": "1", "tags": []}]
            with pytest.raises(DocumentNotFoundError):
                store.update(2, {"tags": []})
