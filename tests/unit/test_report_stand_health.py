"""Unit tests for stand health checks."""

import csv
from pathlib import Path

from stand_migrations.stores import MemoryStore
from stand_migrations.tools.report_stand_health import collect_health_issues, run_health_checks

COORDS = {"owner": "urn:facebook:1", "rule": "r", "scheduled": "2013-08-28T18:05:00Z"}


class TestCollectHealthIssues:
    def test_clean_stand(self) -> None:
        stands = [
            {
                "_id": "ok",
                "coordinates": COORDS,
                "tags": [{"label": "ci", "level": "INFO", "markdown": "", "attributes": {"sha": "1"}}],
            }
        ]

        issues = collect_health_issues(stands)

        assert all(rows == [] for rows in issues.values())

    def test_detects_unmigrated_shapes(self) -> None:
        stands = [
            {
                "_id": "bad",
                "pulse": "garbage",
                "tags": [
                    "built",
                    {"label": "ci", "level": "INFO", "markdown": "", "data": "{}"},
                    {"label": "on-commit", "level": "INFO", "markdown": "", "attributes": []},
                ],
            }
        ]

        issues = collect_health_issues(stands)

        assert issues["missing_coordinates"] == [("bad", "garbage")]
        assert issues["string_tags"] == [("bad", 0, "built")]
        assert issues["tags_with_data"] == [("bad", 1, "ci")]
        assert issues["non_map_attributes"] == [("bad", 2, "on-commit", "list")]
        assert issues["merge_pair_collisions"] == [("bad", "ci", "on-commit")]

    def test_tag_model_constraints(self) -> None:
        stands = [
            {
                "_id": "s",
                "coordinates": COORDS,
                "tags": [
                    {"label": "Built", "level": "INFO", "markdown": "", "attributes": {}},
                    {"label": "ci", "attributes": {"commit-sha": "1"}},
                ],
            }
        ]

        issues = collect_health_issues(stands)

        assert issues["invalid_labels"] == [("s", 0, "Built")]
        assert issues["invalid_attribute_names"] == [("s", 1, "ci", "commit-sha")]
        assert issues["incomplete_tags"] == [("s", 1, "ci", "level,markdown")]

    def test_empty_coordinate_field(self) -> None:
        stands = [{"_id": "s", "coordinates": {**COORDS, "rule": ""}}]

        assert collect_health_issues(stands)["missing_coordinates"] == [("s", None)]


class TestRunHealthChecks:
    def test_writes_summary(self, tmp_path: Path) -> None:
        store = MemoryStore([{"_id": "a", "pulse": "garbage"}, {"_id": "b", "coordinates": COORDS}])

        summary = run_health_checks(store, tmp_path)

        with open(summary, encoding="utf-8", newline="") as f:
            metrics = {r["metric"]: r["value"] for r in csv.DictReader(f, delimiter="\t")}
        assert metrics["total_stands"] == "2"
        assert metrics["missing_coordinates"] == "1"
        assert metrics["string_tags"] == "0"
        assert (tmp_path / "missing_coordinates.tsv").exists()
