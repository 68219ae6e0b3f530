"""Tests for tagrules.parser: rule text syntax and rule-file loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tagrules.errors import ConfigError, RuleSyntaxError
from tagrules.model import TagOperator, TagRule
from tagrules.parser import load_rule_files, load_rules, parse_rule, parse_rules

if TYPE_CHECKING:
    from pathlib import Path


# ---------------------------------------------------------------------------
# Single rules
# ---------------------------------------------------------------------------


class TestParseRule:
    @pytest.mark.parametrize(
        ("text", "operator"),
        [
            ("feline => cat", TagOperator.DEFINITION),
            ("mammal -> hair", TagOperator.IMPLICATION),
            ("a <-> b", TagOperator.BIDIRECTIONAL_IMPLICATION),
            ("whale ~> whiskers", TagOperator.SUGGESTION),
            ("a <~> b", TagOperator.BIDIRECTIONAL_SUGGESTION),
            ("a !> b", TagOperator.EXCLUSION),
            ("cat <!> dog", TagOperator.MUTUAL_EXCLUSION),
            ("cat :: mammal", TagOperator.SPECIALIZATION),
        ],
    )
    def test_operators(self, text: str, operator: TagOperator) -> None:
        (rule,) = parse_rule(text)
        assert rule.operator is operator

    def test_tag_sets(self) -> None:
        (rule,) = parse_rule("a & b -> x | y")
        assert rule == TagRule({"a", "b"}, TagOperator.IMPLICATION, {"x", "y"})

    def test_either_separator_on_either_side(self) -> None:
        (rule,) = parse_rule("a | b !> x & y")
        assert rule == TagRule({"a", "b"}, TagOperator.EXCLUSION, {"x", "y"})

    def test_no_whitespace_needed(self) -> None:
        (rule,) = parse_rule("a&b->c")
        assert rule == TagRule({"a", "b"}, TagOperator.IMPLICATION, "c")

    def test_property_rule(self) -> None:
        (rule,) = parse_rule("mammal [abstract, warm-blooded]")
        assert rule.operator is TagOperator.PROPERTY
        assert rule.left == frozenset({"mammal"})
        assert rule.right == frozenset({"abstract", "warm-blooded"})

    def test_property_values_are_free_text(self) -> None:
        (rule,) = parse_rule("whale [lives in water]")
        assert rule.right == frozenset({"lives in water"})

    def test_composite_specialization_with_properties(self) -> None:
        spec, prop = parse_rule("whale :: mammal [aquatic]")
        assert spec == TagRule("whale", TagOperator.SPECIALIZATION, "mammal")
        assert prop == TagRule("whale", TagOperator.PROPERTY, "aquatic")

    def test_str_round_trip(self) -> None:
        for text in ("a & b -> x | y", "a !> b & c", "cat :: mammal", "mammal [abstract]"):
            (rule,) = parse_rule(text)
            assert parse_rule(str(rule)) == [rule]


class TestParseRuleErrors:
    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("", "empty rule"),
            ("cat mammal", "expected an operator"),
            ("a -> b -> c", "single operator"),
            ("-> b", "missing tag on the left"),
            ("a ->", "missing tag on the right"),
            ("a & -> b", "missing tag on the left"),
            ("a -> b c", "invalid tag 'b c'"),
            ("a [x] -> b", "property brackets"),
            ("a [x", "property brackets"),
            ("a [x, ]", "empty property"),
        ],
    )
    def test_malformed(self, text: str, message: str) -> None:
        with pytest.raises(RuleSyntaxError, match=message):
            parse_rule(text)

    def test_location_in_message(self) -> None:
        with pytest.raises(RuleSyntaxError) as exc_info:
            parse_rule("a ->", source="animals.rules", line=7)
        assert str(exc_info.value).startswith("animals.rules:7: ")
        assert exc_info.value.line == 7
        assert exc_info.value.source == "animals.rules"

    def test_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_rule("nonsense")


# ---------------------------------------------------------------------------
# Rule text
# ---------------------------------------------------------------------------


class TestParseRules:
    def test_comments_and_blank_lines(self) -> None:
        rules = parse_rules("# heading\n\ncat :: mammal  # trailing\n   \nmammal -> hair\n")
        assert rules == [
            TagRule("cat", TagOperator.SPECIALIZATION, "mammal"),
            TagRule("mammal", TagOperator.IMPLICATION, "hair"),
        ]

    def test_error_reports_line_number(self) -> None:
        with pytest.raises(RuleSyntaxError) as exc_info:
            parse_rules("cat :: mammal\n\nbroken\n", source="x.rules")
        assert exc_info.value.line == 3

    def test_animal_fixture_parses(self, animal_rules: list[TagRule]) -> None:
        # 16 rule lines, 5 of them composite.
        assert len(animal_rules) == 21


# ---------------------------------------------------------------------------
# Rule files
# ---------------------------------------------------------------------------


class TestLoadRules:
    def test_text_file(self, rules_file: Path) -> None:
        rules = load_rules(rules_file)
        assert TagRule("cat", TagOperator.MUTUAL_EXCLUSION, "dog") in rules

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text(
            'version: 1\nrules:\n  - "cat :: mammal [small]"\n  - mammal -> hair\n',
            encoding="utf-8",
        )
        rules = load_rules(path)
        assert rules == [
            TagRule("cat", TagOperator.SPECIALIZATION, "mammal"),
            TagRule("cat", TagOperator.PROPERTY, "small"),
            TagRule("mammal", TagOperator.IMPLICATION, "hair"),
        ]

    def test_yaml_error_names_entry(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text(
            'version: 1\nrules:\n  - "cat :: mammal"\n  - broken\n', encoding="utf-8"
        )
        with pytest.raises(RuleSyntaxError, match=r"rules\.yaml\[1\]:1"):
            load_rules(path)

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("- a -> b\n", "must be a YAML mapping"),
            ("rules: []\n", "missing required 'version'"),
            ("version: 2\nrules: []\n", "unsupported version 2"),
            ("version: 1\nrules: a -> b\n", "'rules' must be a list"),
            ("version: 1\nrules:\n  - 42\n", "index 0 must be a string"),
            ("version: 1\nrules:\n  - cat :: mammal\n", "quote rules that contain"),
            ("version: 1\nrules: [\n", "invalid YAML"),
        ],
    )
    def test_yaml_layout_errors(self, tmp_path: Path, content: str, message: str) -> None:
        path = tmp_path / "rules.yml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError, match=message):
            load_rules(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read rule file"):
            load_rules(tmp_path / "nope.rules")

    def test_load_rule_files_preserves_order(self, tmp_path: Path) -> None:
        first = tmp_path / "a.rules"
        first.write_text("a -> b\n", encoding="utf-8")
        second = tmp_path / "b.rules"
        second.write_text("c -> d\n", encoding="utf-8")
        rules = load_rule_files([second, first])
        assert [str(rule) for rule in rules] == ["c -> d", "a -> b"]
