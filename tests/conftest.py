"""Shared test fixtures for tagrules."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tagrules.engine import TagRuleEngine
from tagrules.parser import parse_rules

if TYPE_CHECKING:
    from pathlib import Path

    from tagrules.model import TagRule

ANIMAL_RULES = """\
# A small animal taxonomy.
animal :: object [abstract]
mammal :: animal [abstract, warm-blooded]
cat :: mammal [small]
dog :: mammal
whale :: mammal [aquatic]
dolphin :: mammal [aquatic]
fur :: hair

feline => cat
kitty => feline

mammal -> hair
hair -> fur
mammal -> tail
tail -> animal
cat -> whiskers
whale ~> whiskers

cat <!> dog
"""


@pytest.fixture()
def animal_rules() -> list[TagRule]:
    """The animal rule set, parsed."""
    return parse_rules(ANIMAL_RULES, source="animals.rules")


@pytest.fixture()
def engine(animal_rules: list[TagRule]) -> TagRuleEngine:
    """An engine compiled from the animal rule set."""
    return TagRuleEngine(animal_rules)


@pytest.fixture()
def rules_file(tmp_path: Path) -> Path:
    """Write the animal rule set to a rule file and return its path."""
    path = tmp_path / "animals.rules"
    path.write_text(ANIMAL_RULES, encoding="utf-8")
    return path


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """Create a project whose config points at the animal rule set.

    Layout:
    - rules/animals.rules
    - .tagrules/config.yml listing the rule file
    """
    project = tmp_path / "proj"
    (project / "rules").mkdir(parents=True)
    (project / "rules" / "animals.rules").write_text(ANIMAL_RULES, encoding="utf-8")
    (project / ".tagrules").mkdir()
    (project / ".tagrules" / "config.yml").write_text(
        "version: 1\nrule_files:\n  - rules/animals.rules\n", encoding="utf-8"
    )
    return project
