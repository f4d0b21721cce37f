"""stand ドキュメントの取り込み・書き出し.

mongoexport の出力（JSON Lines、または --jsonArray の JSON 配列）を SQLite ストアに取り込み、
マイグレーション後の内容を JSON Lines として書き出します。
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from loguru import logger

from stand_migrations.stores.base_store import ID_FIELD, Document, DocumentStore
from stand_migrations.stores.sqlite_store import SqliteStore


def _flatten_id(document: Document) -> Document:
    """Extended JSON の `{"$oid": "..."}` 形式の _id を文字列にする."""
    doc_id = document.get(ID_FIELD)
    if isinstance(doc_id, dict) and "$oid" in doc_id:
        return {**document, ID_FIELD: str(doc_id["$oid"])}
    return document


def read_stands(file_path: Path | str) -> Iterator[Document]:
    """JSON 配列または JSON Lines のファイルから stand を読み込む.

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: JSON として読めない、またはオブジェクト以外の要素がある場合
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Stands file not found: {file_path}")

    text = file_path.read_text(encoding="utf-8")
    if text.lstrip().startswith("["):
        try:
            items: list[Any] = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to read JSON: {file_path}") from e
    else:
        items = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                items.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise ValueError(f"Failed to read JSON Lines: {file_path}:{lineno}") from e

    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Stand must be a JSON object, got {type(item).__name__}: {file_path}")
        yield _flatten_id(item)


def import_stands(store: DocumentStore, file_path: Path | str) -> int:
    """ファイルの stand をストアに追加する.

    Returns:
        追加した件数
    """
    inserted = store.insert(read_stands(file_path))
    logger.info(f"Imported {inserted} stands from {file_path}")
    return inserted


def export_stands(store: DocumentStore, output_path: Path | str) -> int:
    """ストアの全 stand を JSON Lines として書き出す.

    Returns:
        書き出した件数
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    documents = store.all()
    with open(output_path, "w", encoding="utf-8") as f:
        for document in documents:
            f.write(json.dumps(document))
            f.write("\n")

    logger.info(f"Exported {len(documents)} stands to {output_path}")
    return len(documents)


def main() -> None:
    parser = argparse.ArgumentParser(description="Import stands into a SQLite stand store.")
    parser.add_argument("--db", type=Path, required=True, help="SQLite stand store (created if missing)")
    parser.add_argument("--input", type=Path, required=True, help="mongoexport output (JSON Lines or array)")
    args = parser.parse_args()

    with SqliteStore(args.db, create=True) as store:
        import_stands(store, args.input)


def export_main() -> None:
    parser = argparse.ArgumentParser(description="Export stands from a SQLite stand store.")
    parser.add_argument("--db", type=Path, required=True, help="SQLite stand store")
    parser.add_argument("--output", type=Path, required=True, help="Output JSON Lines path")
    args = parser.parse_args()

    with SqliteStore(args.db) as store:
        export_stands(store, args.output)


if __name__ == "__main__":
    main()
