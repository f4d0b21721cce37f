"""マイグレーションランナー（オーケストレーター）.

ドキュメントストアに対して、登録順にマイグレーションを1パスずつ適用する。
各パスは「選択条件で検索 → 1ドキュメントずつ 変換 → 書き戻し」の単純な直列処理で、
失敗の単位は常に1ドキュメント（パス全体は止めない）。ロールバックは行わない。
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from pathlib import Path

from loguru import logger

from stand_migrations.config import MigrationConfig, load_config
from stand_migrations.core.exceptions import MigrationError, StoreError
from stand_migrations.core.tags import MERGE_MODES
from stand_migrations.migrations import Migration, build_migrations
from stand_migrations.report import write_migration_report
from stand_migrations.stores.base_store import ID_FIELD, DocumentStore
from stand_migrations.stores.memory_store import MemoryStore
from stand_migrations.stores.sqlite_store import SqliteStore


@dataclass
class MigrationResult:
    """1パス分の実行結果."""

    name: str
    matched: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    dry_run: bool = False
    # (doc_id, status, reason)
    issues: list[tuple[str, str, str]] = field(default_factory=list)

    def as_row(self) -> dict[str, object]:
        return {
            "migration": self.name,
            "matched": self.matched,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "failed": self.failed,
            "dry_run": self.dry_run,
        }


def run_migration(
    store: DocumentStore,
    migration: Migration,
    *,
    dry_run: bool = False,
) -> MigrationResult:
    """1つのマイグレーションをストア全体に適用する.

    Args:
        store: 対象ストア
        migration: 適用するマイグレーション
        dry_run: True なら変換だけ行い書き戻さない

    Returns:
        実行結果
    """
    result = MigrationResult(name=migration.name, dry_run=dry_run)
    documents = store.find(migration.exists)
    result.matched = len(documents)
    logger.info(f"[{migration.name}] {migration.description}: {result.matched} stand(s) matched")

    for document in documents:
        doc_id = document.get(ID_FIELD)

        try:
            fields = migration.transform(document)
        except MigrationError as e:
            result.failed += 1
            result.issues.append((str(doc_id), "failed", e.reason))
            logger.error(f"[{migration.name}] {e}")
            continue
        except Exception as e:
            result.failed += 1
            result.issues.append((str(doc_id), "failed", repr(e)))
            logger.exception(f"[{migration.name}] Unexpected error on stand {doc_id!r}: {e}")
            continue

        if fields is None:
            reason = migration.skip_reason(document)
            result.skipped += 1
            result.issues.append((str(doc_id), "skipped", reason))
            logger.warning(f"[{migration.name}] Skip stand {doc_id!r}: {reason}")
            continue

        if all(document.get(name) == value for name, value in fields.items()):
            result.unchanged += 1
            logger.debug(f"[{migration.name}] Unchanged: stand {doc_id!r}")
            continue

        if dry_run:
            result.updated += 1
            logger.info(f"[{migration.name}] Would update stand {doc_id!r}: {sorted(fields)}")
            continue

        try:
            store.update(doc_id, fields)
        except StoreError as e:
            result.failed += 1
            result.issues.append((str(doc_id), "failed", str(e)))
            logger.error(f"[{migration.name}] Write failed for stand {doc_id!r}: {e}")
            continue
        except Exception as e:
            result.failed += 1
            result.issues.append((str(doc_id), "failed", repr(e)))
            logger.exception(f"[{migration.name}] Unexpected write error on stand {doc_id!r}: {e}")
            continue

        result.updated += 1
        logger.info(f"[{migration.name}] Updated stand {doc_id!r}: {sorted(fields)}")

    logger.info(
        f"[{migration.name}] done (updated={result.updated}, unchanged={result.unchanged}, "
        f"skipped={result.skipped}, failed={result.failed})"
    )
    return result


def run_migrations(
    store: DocumentStore,
    config: MigrationConfig | None = None,
    *,
    only: Sequence[str] | None = None,
    dry_run: bool = False,
) -> list[MigrationResult]:
    """登録順に全マイグレーションを適用する.

    Args:
        store: 対象ストア
        config: 設定（None なら既定値）
        only: 指定した名前のマイグレーションだけを実行する
        dry_run: True なら書き戻さない. 全ドキュメントのメモリ上の複製に適用するので、
            後続パスは前段の変換結果を見る（本実行と同じ件数になる）

    Returns:
        マイグレーションごとの実行結果

    Raises:
        ValueError: only に未知の名前が含まれる場合
    """
    migrations = build_migrations(config)
    if only:
        known = {m.name for m in migrations}
        unknown = [name for name in only if name not in known]
        if unknown:
            raise ValueError(f"Unknown migration(s): {unknown}. Available: {sorted(known)}")
        migrations = [m for m in migrations if m.name in only]

    if dry_run:
        store = MemoryStore(store.all())
        logger.info(f"[DryRun] Applying to an in-memory copy of {store.count()} stand(s)")

    results = []
    for migration in migrations:
        result = run_migration(store, migration)
        result.dry_run = dry_run
        results.append(result)

    failed = sum(r.failed for r in results)
    if failed:
        logger.warning(f"Migration finished with {failed} failed stand update(s)")
    else:
        logger.info(f"Migration finished: {len(results)} pass(es)")
    return results


def main() -> None:
    """CLI エントリポイント."""
    parser = argparse.ArgumentParser(description="Apply stand document migrations")
    parser.add_argument("--db", type=Path, required=True, help="Stand store (SQLite) path")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional migrations.yml (merge pairs, merge mode, tag defaults)",
    )
    parser.add_argument(
        "--only",
        action="append",
        default=None,
        help="Run only the named migration (repeatable). Example: 001_coordinates",
    )
    parser.add_argument(
        "--merge-mode",
        choices=MERGE_MODES,
        default=None,
        help="Override merge_mode from the config file",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Transform and report, but do not write back",
    )
    parser.add_argument(
        "--report-dir",
        type=Path,
        default=None,
        help="Optional report output directory (migration_summary.csv, skipped_documents.tsv)",
    )
    args = parser.parse_args()

    config = load_config(args.config)
    if args.merge_mode is not None:
        config = replace(config, merge_mode=args.merge_mode)

    with SqliteStore(args.db) as store:
        results = run_migrations(store, config, only=args.only, dry_run=args.dry_run)

    if args.report_dir is not None:
        write_migration_report(results, args.report_dir)


if __name__ == "__main__":
    main()
