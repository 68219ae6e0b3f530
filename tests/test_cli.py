"""Tests for the tagrules CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner, Result

from tagrules import __version__
from tagrules.cli import main

if TYPE_CHECKING:
    from pathlib import Path


def _invoke(*args: str) -> Result:
    return CliRunner().invoke(main, list(args))


def _set_config(project: Path, extra: str) -> None:
    config = project / ".tagrules" / "config.yml"
    config.write_text(
        "version: 1\nrule_files:\n  - rules/animals.rules\n" + extra, encoding="utf-8"
    )


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_porcelain_when_piped(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "dog", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "missing\thair\tmammal -> hair" in result.output
        assert "suggested\ttail\tmammal -> tail" in result.output

    def test_json(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "kitty", "--format", "json", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["normalized_tags"] == ["cat"]
        assert "whiskers" in [s["tag"] for s in data["suggested_tags"]]

    def test_rich(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "cat", "--format", "rich", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "Tag Analysis" in result.output

    def test_conflict_without_strict(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "cat", "dog", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "conflict\tcat !> dog" in result.output

    def test_conflict_with_strict(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "cat", "dog", "--strict", "--project", str(tmp_project))
        assert result.exit_code == 1

    def test_strict_clean(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "cat", "--strict", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output

    def test_reject_option(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "cat", "--reject", "tail", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "tail" not in result.output

    def test_rejected_from_config(self, tmp_project: Path) -> None:
        _set_config(tmp_project, "rejected: [mammal]\n")
        result = _invoke("analyze", "cat", "--strict", "--project", str(tmp_project))
        assert result.exit_code == 1
        assert "rejected\tcat" in result.output

    def test_format_from_config(self, tmp_project: Path) -> None:
        _set_config(tmp_project, "format: json\n")
        result = _invoke("analyze", "dog", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["normalized_tags"] == ["dog"]

    def test_format_flag_overrides_config(self, tmp_project: Path) -> None:
        _set_config(tmp_project, "format: json\n")
        result = _invoke(
            "analyze", "dog", "--format", "porcelain", "--project", str(tmp_project)
        )
        assert result.output.startswith("missing\t")

    def test_rules_option(self, tmp_path: Path, rules_file: Path) -> None:
        result = _invoke(
            "analyze", "whale", "--rules", str(rules_file), "--project", str(tmp_path)
        )
        assert result.exit_code == 0, result.output
        assert "suggested\twhiskers\twhale ~> whiskers" in result.output

    def test_no_rule_files(self, tmp_path: Path) -> None:
        result = _invoke("analyze", "cat", "--project", str(tmp_path))
        assert result.exit_code == 2
        assert "No rule files" in result.output

    def test_bad_rule_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.rules"
        bad.write_text("cat :: mammal\ncat -> -> dog\n", encoding="utf-8")
        result = _invoke("analyze", "cat", "--rules", str(bad), "--project", str(tmp_path))
        assert result.exit_code == 2
        assert "Error:" in result.output
        assert "bad.rules:2" in result.output

    def test_bad_config(self, tmp_project: Path) -> None:
        _set_config(tmp_project, "format: xml\n")
        result = _invoke("analyze", "cat", "--project", str(tmp_project))
        assert result.exit_code == 2
        assert "invalid format" in result.output

    def test_requires_tags(self, tmp_project: Path) -> None:
        result = _invoke("analyze", "--project", str(tmp_project))
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# info / tags / check
# ---------------------------------------------------------------------------


class TestInfo:
    def test_json(self, tmp_project: Path) -> None:
        result = _invoke("info", "kitty", "--json", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["tag"] == "cat"
        assert data["parents"] == ["mammal"]
        assert data["inherited_properties"] == ["warm-blooded"]

    def test_rich(self, tmp_project: Path) -> None:
        result = _invoke("info", "mammal", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "mammal" in result.output
        assert "whale" in result.output

    def test_unknown_tag_warns(self, tmp_project: Path) -> None:
        result = _invoke("info", "zebra", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "not mentioned by any rule" in result.output


class TestTags:
    def test_canonical(self, tmp_project: Path) -> None:
        result = _invoke("tags", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        tags = result.output.splitlines()
        assert "cat" in tags
        assert "feline" not in tags
        assert tags == sorted(tags)

    def test_raw(self, tmp_project: Path) -> None:
        result = _invoke("tags", "--raw", "--project", str(tmp_project))
        assert {"feline", "kitty"} <= set(result.output.splitlines())


class TestCheck:
    def test_summary(self, tmp_project: Path) -> None:
        result = _invoke("check", "--project", str(tmp_project))
        assert result.exit_code == 0, result.output
        assert "Rules: 21 loaded, 22 compiled" in result.output
        assert "2 aliases, 2 abstract" in result.output
        assert "Rule set compiles" in result.output

    def test_broken_rules(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.rules"
        bad.write_text("a & b => c\n", encoding="utf-8")
        result = _invoke("check", "--rules", str(bad), "--project", str(tmp_path))
        assert result.exit_code == 2
        assert "single tag" in result.output


def test_version() -> None:
    result = _invoke("--version")
    assert result.exit_code == 0
    assert __version__ in result.output
