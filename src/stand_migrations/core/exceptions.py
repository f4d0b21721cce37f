"""Stand migrations exceptions.

マイグレーションとドキュメントストアで使うカスタム例外クラスを定義します。
"""


class MigrationError(Exception):
    """ドキュメント単位の変換に失敗したことを示す例外.

    ドライバはこの例外をドキュメント単位で捕捉し、パス全体は継続します。

    Attributes:
        doc_id: 対象ドキュメントのID
        reason: 失敗理由
    """

    def __init__(self, doc_id: object, reason: str) -> None:
        """例外初期化.

        Args:
            doc_id: 対象ドキュメントのID
            reason: 失敗理由
        """
        self.doc_id = doc_id
        self.reason = reason
        super().__init__(f"Cannot migrate stand {doc_id!r}: {reason}")


class StoreError(Exception):
    """ドキュメントストアの操作に失敗した場合の例外."""


class DocumentNotFoundError(StoreError, KeyError):
    """更新対象のドキュメントが存在しない場合の例外."""

    def __init__(self, doc_id: object) -> None:
        self.doc_id = doc_id
        super().__init__(f"Stand not found: {doc_id!r}")

    def __str__(self) -> str:
        # KeyError は repr() を返すため、メッセージをそのまま返す
        return str(self.args[0])


class ConfigError(ValueError):
    """マイグレーション設定（YAML）が不正な場合の例外."""
