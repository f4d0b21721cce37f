"""stand マイグレーションの定義（登録順 = 実行順）.

各マイグレーションは「選択条件（フィールド存在条件）」と
「1ドキュメント → 書き込むフィールド」の変換関数の組です。
変換関数は None を返すとそのドキュメントをスキップします。

    001_coordinates     pulse → coordinates
    002_tag_objects     文字列タグ → タグオブジェクト
    003_tag_attributes  data → attributes
    004_merge_<l>_<r>   マージペアごとに1つ
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from typing import Any

from stand_migrations.config import MigrationConfig
from stand_migrations.core.coordinates import extract_coordinates
from stand_migrations.core.exceptions import MigrationError
from stand_migrations.core.tags import MergeMode, TagDefaults, merge_tags, normalize_tags, promote_attributes
from stand_migrations.stores.base_store import ID_FIELD, Document

Transform = Callable[[Document], dict[str, Any] | None]


@dataclass(frozen=True)
class Migration:
    name: str
    description: str
    exists: Mapping[str, bool]
    transform: Transform
    # 変換関数が None を返したときのスキップ理由
    skip_reason: Callable[[Document], str] = lambda document: "nothing to migrate"


def _tags_of(document: Document) -> list[Any]:
    tags = document.get("tags")
    if not isinstance(tags, list):
        raise MigrationError(
            document.get(ID_FIELD), f"tags must be a list, got {type(tags).__name__}"
        )
    return tags


def tag_objects(document: Document, defaults: TagDefaults | None = None) -> dict[str, Any]:
    return {"tags": normalize_tags(_tags_of(document), defaults)}


def tag_attributes(document: Document) -> dict[str, Any]:
    return {"tags": promote_attributes(_tags_of(document))}


def merged_tags(document: Document, left: str, right: str, mode: MergeMode) -> dict[str, Any]:
    tags = _tags_of(document)
    if not all(isinstance(t, Mapping) for t in tags):
        raise MigrationError(
            document.get(ID_FIELD), "tags contain plain strings, run 002_tag_objects first"
        )
    return {"tags": merge_tags(tags, left, right, mode=mode)}


def merge_migration_name(left: str, right: str) -> str:
    return f"004_merge_{left}_{right}"


def build_migrations(config: MigrationConfig | None = None) -> list[Migration]:
    """設定から実行順のマイグレーション一覧を作る."""
    config = config or MigrationConfig()

    migrations = [
        Migration(
            name="001_coordinates",
            description="Extract coordinates from legacy pulse strings",
            exists={"coordinates": False, "pulse": True},
            transform=extract_coordinates,
            skip_reason=lambda document: f"unrecognized pulse format: {document.get('pulse')!r}",
        ),
        Migration(
            name="002_tag_objects",
            description="Wrap plain string tags into tag objects",
            exists={"tags": True},
            transform=partial(tag_objects, defaults=config.tag_defaults),
        ),
        Migration(
            name="003_tag_attributes",
            description="Promote JSON data strings to attributes maps",
            exists={"tags": True},
            transform=tag_attributes,
        ),
    ]
    for left, right in config.merge_pairs:
        migrations.append(
            Migration(
                name=merge_migration_name(left, right),
                description=f"Merge '{right}' tags into '{left}' tags ({config.merge_mode})",
                exists={"tags": True},
                transform=partial(merged_tags, left=left, right=right, mode=config.merge_mode),
            )
        )

    return [m for m in migrations if m.name not in config.disabled]
