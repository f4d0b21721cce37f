"""MemoryStore: dict ベースのドキュメントストア."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from stand_migrations.core.exceptions import DocumentNotFoundError, StoreError

from .base_store import ID_FIELD, Document, DocumentStore, matches, validate_field_name


class MemoryStore(DocumentStore):
    """メモリ上のドキュメントストア.

    返すドキュメントは常にコピーなので、呼び出し側で変更してもストアには反映されません。

    Args:
        documents: 初期ドキュメント（_id が無いものには連番を振る）
    """

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self._documents: dict[Any, Document] = {}
        self._next_id = 1
        self.insert(documents)

    def find(self, exists: Mapping[str, bool]) -> list[Document]:
        for name in exists:
            validate_field_name(name)
        return [copy.deepcopy(d) for d in self._documents.values() if matches(d, exists)]

    def update(self, doc_id: Any, fields: Mapping[str, Any]) -> None:
        if doc_id not in self._documents:
            raise DocumentNotFoundError(doc_id)
        for name in fields:
            if validate_field_name(name) == ID_FIELD:
                raise StoreError(f"{ID_FIELD} is immutable (stand {doc_id!r})")
        self._documents[doc_id].update(copy.deepcopy(dict(fields)))

    def insert(self, documents: Iterable[Document]) -> int:
        inserted = 0
        for document in documents:
            doc = copy.deepcopy(dict(document))
            if ID_FIELD not in doc:
                doc[ID_FIELD] = str(self._next_id)
                self._next_id += 1
            if doc[ID_FIELD] in self._documents:
                raise StoreError(f"Duplicate stand id: {doc[ID_FIELD]!r}")
            self._documents[doc[ID_FIELD]] = doc
            inserted += 1
        return inserted

    def all(self) -> list[Document]:
        return [copy.deepcopy(d) for d in self._documents.values()]

    def get(self, doc_id: Any) -> Document:
        """1ドキュメントを返す（テスト・デバッグ用）."""
        if doc_id not in self._documents:
            raise DocumentNotFoundError(doc_id)
        return copy.deepcopy(self._documents[doc_id])
