"""stand ドキュメントストア（基底クラス）.

マイグレーションはストアに対して「フィールド存在条件での検索」と
「ドキュメント単位の部分更新」しか行いません。削除やスキーマ変更はしません。
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

Document = dict[str, Any]

# ドキュメントIDのフィールド名（mongoexport 互換）
ID_FIELD = "_id"

_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_field_name(name: str) -> str:
    """トップレベルのフィールド名として安全か検証する.

    Raises:
        ValueError: 英数字とアンダースコア以外を含む場合
    """
    if not _FIELD_NAME.match(name):
        raise ValueError(f"Invalid field name: {name!r}")
    return name


def matches(document: Mapping[str, Any], exists: Mapping[str, bool]) -> bool:
    """ドキュメントがフィールド存在条件を満たすか判定する.

    値が None のフィールドも「存在する」と扱う（MongoDB の $exists と同じ）。
    """
    return all((name in document) == present for name, present in exists.items())


class DocumentStore(ABC):
    """stand ドキュメントストアの基底クラス.

    全てのストアはこのクラスを継承し、find()/update()/insert()/all() を実装します。
    """

    @abstractmethod
    def find(self, exists: Mapping[str, bool]) -> list[Document]:
        """フィールド存在条件に一致する全ドキュメントを返す.

        Args:
            exists: フィールド名 → 存在すべきか（True）/ 存在すべきでないか（False）

        Returns:
            一致したドキュメントのリスト（挿入順）
        """
        ...

    @abstractmethod
    def update(self, doc_id: Any, fields: Mapping[str, Any]) -> None:
        """1ドキュメントの指定フィールドを上書きする.

        Raises:
            DocumentNotFoundError: doc_id のドキュメントが存在しない場合
        """
        ...

    @abstractmethod
    def insert(self, documents: Iterable[Document]) -> int:
        """ドキュメントを追加する（取り込み・テスト用）.

        Returns:
            追加した件数
        """
        ...

    @abstractmethod
    def all(self) -> list[Document]:
        """全ドキュメントを返す（エクスポート・健全性チェック用）."""
        ...

    def count(self) -> int:
        return len(self.all())
