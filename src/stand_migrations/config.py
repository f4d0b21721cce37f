"""マイグレーション設定（migrations.yml）の読み込み.

YAML形式:
    merge_mode: intended
    merge_pairs:
      - {left: on-pull-request, right: merge}
      - {left: ci, right: on-commit}
    default_tag:
      level: INFO
      markdown: ""
      data: "{}"
    disabled: []

ファイルに無いキーは既定値を使います。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from stand_migrations.core.exceptions import ConfigError
from stand_migrations.core.tags import MERGE_MODES, TagDefaults

DEFAULT_MERGE_PAIRS: tuple[tuple[str, str], ...] = (
    ("on-pull-request", "merge"),
    ("ci", "on-commit"),
)


@dataclass(frozen=True)
class MigrationConfig:
    """マイグレーション全体の設定."""

    merge_mode: str = "intended"
    merge_pairs: tuple[tuple[str, str], ...] = DEFAULT_MERGE_PAIRS
    tag_defaults: TagDefaults = field(default_factory=TagDefaults)
    disabled: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.merge_mode not in MERGE_MODES:
            raise ConfigError(
                f"Invalid merge_mode '{self.merge_mode}'. Valid modes: {', '.join(MERGE_MODES)}"
            )
        for left, right in self.merge_pairs:
            if not left or not right or left == right:
                raise ConfigError(f"Invalid merge pair: ({left!r}, {right!r})")


def _parse_merge_pairs(raw: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(raw, list):
        raise ConfigError(f"merge_pairs must be a list, got {type(raw).__name__}")

    pairs: list[tuple[str, str]] = []
    for item in raw:
        if isinstance(item, dict) and {"left", "right"} <= item.keys():
            pairs.append((str(item["left"]), str(item["right"])))
        elif isinstance(item, list) and len(item) == 2:
            pairs.append((str(item[0]), str(item[1])))
        else:
            raise ConfigError(f"Invalid merge pair entry: {item!r}")
    return tuple(pairs)


def _parse_tag_defaults(raw: Any) -> TagDefaults:
    if not isinstance(raw, dict):
        raise ConfigError(f"default_tag must be a mapping, got {type(raw).__name__}")

    unknown = set(raw) - {"level", "markdown", "data"}
    if unknown:
        raise ConfigError(f"Unknown default_tag keys: {sorted(unknown)}")

    base = TagDefaults()
    return TagDefaults(
        level=str(raw.get("level", base.level)),
        markdown=str(raw.get("markdown", base.markdown)),
        data=str(raw.get("data", base.data)),
    )


def config_from_dict(raw: dict[str, Any]) -> MigrationConfig:
    """辞書（YAMLのパース結果）から MigrationConfig を作る.

    Raises:
        ConfigError: 値が不正な場合
    """
    kwargs: dict[str, Any] = {}
    if "merge_mode" in raw:
        kwargs["merge_mode"] = str(raw["merge_mode"])
    if "merge_pairs" in raw:
        kwargs["merge_pairs"] = _parse_merge_pairs(raw["merge_pairs"])
    if "default_tag" in raw:
        kwargs["tag_defaults"] = _parse_tag_defaults(raw["default_tag"])
    if "disabled" in raw:
        disabled = raw["disabled"] or []
        if not isinstance(disabled, list):
            raise ConfigError(f"disabled must be a list, got {type(disabled).__name__}")
        kwargs["disabled"] = frozenset(str(d) for d in disabled)

    return MigrationConfig(**kwargs)


def load_config(config_path: Path | str | None) -> MigrationConfig:
    """migrations.yml を読み込む.

    Args:
        config_path: 設定ファイルパス（None なら既定値）

    Returns:
        MigrationConfig

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ConfigError: YAML が不正、または値が不正な場合
    """
    if config_path is None:
        return MigrationConfig()

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    config = config_from_dict(raw)
    logger.info(
        f"Loaded config from {config_path} "
        f"(merge_mode={config.merge_mode}, merge_pairs={len(config.merge_pairs)})"
    )
    return config
