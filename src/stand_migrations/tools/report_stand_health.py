"""マイグレーション後の stand の健全性チェックを行い、TSVレポートを出力する。"""

from __future__ import annotations

import argparse
import csv
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from stand_migrations.config import DEFAULT_MERGE_PAIRS, load_config
from stand_migrations.stores.base_store import ID_FIELD, Document, DocumentStore
from stand_migrations.stores.sqlite_store import SqliteStore

# stand のタグモデルが受け付けるラベル/属性名
_LABEL = re.compile(r"[a-z][a-z0-9-]+")
_ATTRIBUTE_NAME = re.compile(r"[a-zA-Z]+")

CHECK_HEADERS: dict[str, list[str]] = {
    "missing_coordinates": ["stand_id", "pulse"],
    "string_tags": ["stand_id", "position", "tag"],
    "tags_with_data": ["stand_id", "position", "label"],
    "non_map_attributes": ["stand_id", "position", "label", "type"],
    "merge_pair_collisions": ["stand_id", "left", "right"],
    "invalid_labels": ["stand_id", "position", "label"],
    "invalid_attribute_names": ["stand_id", "position", "label", "attribute"],
    "incomplete_tags": ["stand_id", "position", "label", "missing"],
}


def _write_tsv(path: Path, header: Sequence[str], rows: Iterable[Sequence[object]]) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter="\t")
        writer.writerow(list(header))
        count = 0
        for r in rows:
            writer.writerow(["" if v is None else v for v in r])
            count += 1
    return count


def _has_coordinates(document: Mapping[str, Any]) -> bool:
    coords = document.get("coordinates")
    if not isinstance(coords, Mapping):
        return False
    return all(coords.get(k) for k in ("owner", "rule", "scheduled"))


def collect_health_issues(
    documents: Iterable[Document],
    merge_pairs: Sequence[tuple[str, str]] = DEFAULT_MERGE_PAIRS,
) -> dict[str, list[tuple[object, ...]]]:
    """全 stand を走査し、チェックごとの問題行を集める.

    Returns:
        チェック名 → 問題行のリスト（列は CHECK_HEADERS に対応）
    """
    issues: dict[str, list[tuple[object, ...]]] = {name: [] for name in CHECK_HEADERS}

    for document in documents:
        doc_id = document.get(ID_FIELD)

        if not _has_coordinates(document):
            issues["missing_coordinates"].append((doc_id, document.get("pulse")))

        tags = document.get("tags")
        if not isinstance(tags, list):
            continue

        labels: set[str] = set()
        for pos, tag in enumerate(tags):
            if not isinstance(tag, Mapping):
                issues["string_tags"].append((doc_id, pos, tag))
                continue

            label = tag.get("label")
            labels.add(str(label))
            if "data" in tag:
                issues["tags_with_data"].append((doc_id, pos, label))

            attributes = tag.get("attributes", {})
            if not isinstance(attributes, Mapping):
                issues["non_map_attributes"].append(
                    (doc_id, pos, label, type(attributes).__name__)
                )
            else:
                for name in attributes:
                    if not _ATTRIBUTE_NAME.fullmatch(str(name)):
                        issues["invalid_attribute_names"].append((doc_id, pos, label, name))

            if not isinstance(label, str) or not _LABEL.fullmatch(label):
                issues["invalid_labels"].append((doc_id, pos, label))

            missing = [k for k in ("label", "level", "markdown") if k not in tag]
            if missing:
                issues["incomplete_tags"].append((doc_id, pos, label, ",".join(missing)))

        for left, right in merge_pairs:
            if left in labels and right in labels:
                issues["merge_pair_collisions"].append((doc_id, left, right))

    return issues


def run_health_checks(
    store: DocumentStore,
    out_dir: Path,
    merge_pairs: Sequence[tuple[str, str]] = DEFAULT_MERGE_PAIRS,
) -> Path:
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    documents = store.all()
    issues = collect_health_issues(documents, merge_pairs)

    summary_rows: list[tuple[object, object]] = [("total_stands", len(documents))]
    for name, header in CHECK_HEADERS.items():
        count = _write_tsv(out_dir / f"{name}.tsv", header, issues[name])
        summary_rows.append((name, count))

    summary_out = out_dir / "stand_health_summary.tsv"
    _write_tsv(summary_out, ["metric", "value"], summary_rows)
    return summary_out


def main() -> None:
    p = argparse.ArgumentParser(description="Check migrated stands and write TSV reports.")
    p.add_argument("--db", type=Path, required=True, help="Path to stand store (SQLite)")
    p.add_argument("--out-dir", type=Path, required=True, help="Output directory for TSV reports")
    p.add_argument("--config", type=Path, default=None, help="Optional migrations.yml (merge pairs)")
    args = p.parse_args()

    config = load_config(args.config)
    with SqliteStore(args.db) as store:
        summary = run_health_checks(store, args.out_dir, config.merge_pairs)
    print(f"Wrote health reports: {summary.parent}")


if __name__ == "__main__":
    main()
