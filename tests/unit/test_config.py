"""Unit tests for migrations.yml loading."""

from pathlib import Path

import pytest

from stand_migrations.config import DEFAULT_MERGE_PAIRS, MigrationConfig, config_from_dict, load_config
from stand_migrations.core.exceptions import ConfigError
from stand_migrations.core.tags import TagDefaults


class TestLoadConfig:
    def test_none_returns_defaults(self) -> None:
        config = load_config(None)

        assert config == MigrationConfig()
        assert config.merge_mode == "intended"
        assert config.merge_pairs == (("on-pull-request", "merge"), ("ci", "on-commit"))

    def test_load_yaml(self, tmp_path: Path) -> None:
        """YAMLファイルから設定を読み込めること."""
        config_file = tmp_path / "migrations.yml"
        config_file.write_text(
            "\n".join(
                [
                    "merge_mode: literal",
                    "merge_pairs:",
                    "  - {left: ci, right: on-commit}",
                    "  - [deploy, release]",
                    "default_tag:",
                    "  level: FINE",
                    "disabled:",
                    "  - 001_coordinates",
                ]
            ),
            encoding="utf-8",
        )

        config = load_config(config_file)

        assert config.merge_mode == "literal"
        assert config.merge_pairs == (("ci", "on-commit"), ("deploy", "release"))
        assert config.tag_defaults == TagDefaults(level="FINE")
        assert config.disabled == frozenset({"001_coordinates"})

    def test_empty_file_returns_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "migrations.yml"
        config_file.write_text("", encoding="utf-8")

        assert load_config(config_file).merge_pairs == DEFAULT_MERGE_PAIRS

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_config(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "migrations.yml"
        config_file.write_text("merge_pairs: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(config_file)

    def test_root_must_be_mapping(self, tmp_path: Path) -> None:
        config_file = tmp_path / "migrations.yml"
        config_file.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError, match="must be a mapping"):
            load_config(config_file)


class TestConfigFromDict:
    def test_invalid_merge_mode(self) -> None:
        with pytest.raises(ConfigError, match="Invalid merge_mode"):
            config_from_dict({"merge_mode": "fuzzy"})

    def test_invalid_merge_pair(self) -> None:
        with pytest.raises(ConfigError, match="Invalid merge pair"):
            config_from_dict({"merge_pairs": [{"left": "ci"}]})

    def test_same_label_pair(self) -> None:
        with pytest.raises(ConfigError, match="Invalid merge pair"):
            config_from_dict({"merge_pairs": [["ci", "ci"]]})

    def test_unknown_default_tag_key(self) -> None:
        with pytest.raises(ConfigError, match="Unknown default_tag keys"):
            config_from_dict({"default_tag": {"colour": "red"}})

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            config_from_dict({"disabled": "001_coordinates"})
