"""SqliteStore: SQLite ファイル上のドキュメントストア.

1 stand = 1行（JSON本文）として STANDS テーブルに保持します。
存在条件の検索は JSON1 の json_type()、部分更新は json_set() で行います。

注意:
    json_type() はパスが存在しないときだけ NULL を返し、JSON の null 値には 'null' を返します。
    そのため「値が null のフィールド」も存在扱いになります（MongoDB の $exists と同じ）。
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from loguru import logger

from stand_migrations.core.exceptions import DocumentNotFoundError, StoreError

from .base_store import ID_FIELD, Document, DocumentStore, validate_field_name

# 接続ごとの設定（DBファイルには永続化されない）
CONNECTION_PRAGMAS = [
    "PRAGMA cache_size = -64000;",  # 64MB cache
    "PRAGMA temp_store = MEMORY;",
]

SCHEMA_SQL = [
    """
    CREATE TABLE IF NOT EXISTS STANDS (
        id TEXT NOT NULL PRIMARY KEY,
        body TEXT NOT NULL CHECK (json_valid(body)),
        created_at DATETIME DEFAULT (CURRENT_TIMESTAMP),
        updated_at DATETIME DEFAULT (CURRENT_TIMESTAMP)
    );
    """,
]


def create_database(db_path: Path | str) -> None:
    """ストア用のデータベースファイルを新規作成する.

    Args:
        db_path: 作成するデータベースファイルパス

    Note:
        page_size はDB作成前にのみ有効です。既存ファイルは変更しません。
    """
    db_path = Path(db_path)

    if db_path.exists():
        logger.warning(f"Database already exists: {db_path}")
        return

    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Creating database: {db_path}")

    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA page_size = 4096;")
        conn.execute("PRAGMA journal_mode = WAL;")
        for stmt in SCHEMA_SQL:
            conn.executescript(stmt)
        conn.commit()
        logger.info("Database created successfully")

    except Exception as e:
        logger.error(f"Failed to create database: {e}")
        raise
    finally:
        conn.close()


def _document_key(doc_id: Any) -> str:
    """主キー列の値. 型ごと JSON で保持し、1 と "1" を別の stand として扱う."""
    return json.dumps(doc_id, sort_keys=True)


def _dump(value: Any) -> str:
    # ASCII エスケープにすると孤立サロゲートも "\ud800" のまま往復できる
    return json.dumps(value)


class SqliteStore(DocumentStore):
    """SQLite ファイル上の stand ドキュメントストア.

    Args:
        db_path: データベースファイルパス
        create: ファイルが無ければ作成するか

    Raises:
        FileNotFoundError: create=False でファイルが存在しない場合
    """

    def __init__(self, db_path: Path | str, *, create: bool = False) -> None:
        self.db_path = Path(db_path)
        if not self.db_path.exists():
            if not create:
                raise FileNotFoundError(f"Database does not exist: {self.db_path}")
            create_database(self.db_path)

        self._conn = sqlite3.connect(self.db_path)
        for pragma in CONNECTION_PRAGMAS:
            self._conn.execute(pragma)
        # 既存ファイルにテーブルが無い場合に備えて毎回流す（IF NOT EXISTS）
        for stmt in SCHEMA_SQL:
            self._conn.executescript(stmt)
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SqliteStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def find(self, exists: Mapping[str, bool]) -> list[Document]:
        clauses = []
        for name, present in exists.items():
            path = f"$.{validate_field_name(name)}"
            op = "IS NOT NULL" if present else "IS NULL"
            clauses.append(f"json_type(body, '{path}') {op}")
        where = " AND ".join(clauses) if clauses else "1 = 1"

        rows = self._conn.execute(
            f"SELECT body FROM STANDS WHERE {where} ORDER BY rowid;"
        ).fetchall()
        return [json.loads(r[0]) for r in rows]

    def update(self, doc_id: Any, fields: Mapping[str, Any]) -> None:
        if not fields:
            return

        args: list[str] = []
        for name in fields:
            if validate_field_name(name) == ID_FIELD:
                raise StoreError(f"{ID_FIELD} is immutable (stand {doc_id!r})")
            args.append(f"'$.{name}', json(?)")

        sql = (
            f"UPDATE STANDS SET body = json_set(body, {', '.join(args)}), "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?;"
        )
        try:
            params = [_dump(value) for value in fields.values()]
            cur = self._conn.execute(sql, [*params, _document_key(doc_id)])
            if cur.rowcount == 0:
                self._conn.rollback()
                raise DocumentNotFoundError(doc_id)
            self._conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as e:
            # ValueError には UnicodeError（バインド時のエンコード失敗）も含まれる
            self._conn.rollback()
            raise StoreError(f"Failed to update stand {doc_id!r}: {e}") from e

    def insert(self, documents: Iterable[Document]) -> int:
        rows: list[tuple[str, str]] = []
        try:
            for document in documents:
                if ID_FIELD not in document:
                    raise StoreError(f"Stand without {ID_FIELD}: {document!r}")
                rows.append((_document_key(document[ID_FIELD]), _dump(document)))

            self._conn.executemany("INSERT INTO STANDS (id, body) VALUES (?, ?);", rows)
            self._conn.commit()
        except (sqlite3.Error, TypeError, ValueError) as e:
            self._conn.rollback()
            raise StoreError(f"Failed to insert stands: {e}") from e

        return len(rows)

    def all(self) -> list[Document]:
        rows = self._conn.execute("SELECT body FROM STANDS ORDER BY rowid;").fetchall()
        return [json.loads(r[0]) for r in rows]

    def count(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM STANDS;").fetchone()[0]
