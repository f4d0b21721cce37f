"""マイグレーション結果の出力（レポート）.

パスごとの件数を CSV、スキップ/失敗したドキュメントを TSV として出力します。
"""

from __future__ import annotations

import csv
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import polars as pl
from loguru import logger

if TYPE_CHECKING:
    from stand_migrations.runner import MigrationResult

SUMMARY_SCHEMA = {
    "migration": pl.String,
    "matched": pl.Int64,
    "updated": pl.Int64,
    "unchanged": pl.Int64,
    "skipped": pl.Int64,
    "failed": pl.Int64,
    "dry_run": pl.Boolean,
}


def summarize_results(results: Sequence[MigrationResult]) -> pl.DataFrame:
    """実行結果を1パス1行の DataFrame にまとめる."""
    return pl.DataFrame([r.as_row() for r in results], schema=SUMMARY_SCHEMA)


def _write_issues_tsv(path: Path, results: Sequence[MigrationResult]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=["migration", "stand_id", "status", "reason"], delimiter="\t"
        )
        writer.writeheader()
        for r in results:
            for doc_id, status, reason in r.issues:
                writer.writerow(
                    {"migration": r.name, "stand_id": doc_id, "status": status, "reason": reason}
                )
                count += 1
    return count


def write_migration_report(
    results: Sequence[MigrationResult],
    output_dir: Path | str,
) -> dict[str, Path]:
    """マイグレーションレポートを出力する.

    Args:
        results: run_migrations() の戻り値
        output_dir: 出力ディレクトリ

    Returns:
        出力したファイルのパス
        - "summary": migration_summary.csv
        - "issues": skipped_documents.tsv（前回分が残ると紛らわしいので常に上書き）
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    summary_path = output_dir / "migration_summary.csv"
    summarize_results(results).write_csv(summary_path)

    issues_path = output_dir / "skipped_documents.tsv"
    issue_count = _write_issues_tsv(issues_path, results)

    logger.info(f"Migration report: {summary_path} ({issue_count} skipped/failed stands)")
    return {"summary": summary_path, "issues": issues_path}
