"""Rule language parser and rule-file loading.

Rule text holds one rule per line::

    # comments run to the end of the line
    cat & dog :: mammal          # specialization
    mammal [abstract]            # properties
    whale :: mammal [aquatic]    # specialization plus properties
    mammal -> hair               # implication
    feline => cat                # alias definition
    cat <!> dog                  # mutual exclusion

Either ``&`` or ``|`` separates tags on both sides; the operator decides
whether the set is read as a conjunction or a choice.

Rule files ending in ``.yml``/``.yaml`` wrap the same lines in YAML::

    version: 1
    rules:
      - "cat :: mammal"     # quote rules that contain ": "
      - mammal -> hair
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import yaml

from tagrules.errors import ConfigError, RuleSyntaxError
from tagrules.model import TagOperator, TagRule, is_valid_tag

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SUPPORTED_RULE_FILE_VERSIONS: frozenset[int] = frozenset({1})
YAML_SUFFIXES: frozenset[str] = frozenset({".yml", ".yaml"})

# Longest symbols first so "<->" is never read as "<" followed by "->".
_OPERATOR_RE = re.compile(r"<->|<~>|<!>|->|~>|!>|=>|::")
_PROPERTIES_RE = re.compile(r"\[([^\[\]]*)\]\s*$")
_TAG_SEPARATOR_RE = re.compile(r"[&|]")


# ---------------------------------------------------------------------------
# Text parsing
# ---------------------------------------------------------------------------


def parse_rules(text: str, *, source: str = "<string>") -> list[TagRule]:
    """Parse rule text into rules, in source order.

    Raises ``RuleSyntaxError`` (with the 1-based line number) on the first
    malformed line.
    """
    rules: list[TagRule] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.split("#", 1)[0].strip()
        if not line:
            continue
        rules.extend(parse_rule(line, source=source, line=lineno))
    return rules


def parse_rule(text: str, *, source: str = "<string>", line: int | None = None) -> list[TagRule]:
    """Parse a single rule line.

    A composite line such as ``a :: b [c]`` yields two rules: the
    specialization followed by the property rule.
    """
    body = text.strip()
    if not body:
        msg = "empty rule"
        raise RuleSyntaxError(msg, source=source, line=line)

    properties: list[str] | None = None
    prop_match = _PROPERTIES_RE.search(body)
    if prop_match is not None:
        properties = _parse_properties(prop_match.group(1), source=source, line=line)
        body = body[: prop_match.start()].rstrip()
    if "[" in body or "]" in body:
        msg = f"unbalanced or misplaced property brackets in '{text.strip()}'"
        raise RuleSyntaxError(msg, source=source, line=line)

    matches = list(_OPERATOR_RE.finditer(body))
    if len(matches) > 1:
        symbols = ", ".join(f"'{m.group(0)}'" for m in matches)
        msg = f"expected a single operator, found {symbols}"
        raise RuleSyntaxError(msg, source=source, line=line)

    if not matches:
        if properties is None:
            msg = f"expected an operator or a property list in '{body}'"
            raise RuleSyntaxError(msg, source=source, line=line)
        left = _parse_tags(body, "left", source=source, line=line)
        return [TagRule(left, TagOperator.PROPERTY, properties)]

    match = matches[0]
    operator = TagOperator.from_symbol(match.group(0))
    left = _parse_tags(body[: match.start()], "left", source=source, line=line)
    right = _parse_tags(body[match.end() :], "right", source=source, line=line)

    rules = [TagRule(left, operator, right)]
    if properties is not None:
        rules.append(TagRule(left, TagOperator.PROPERTY, properties))
    return rules


def _parse_tags(text: str, side: str, *, source: str, line: int | None) -> list[str]:
    tags: list[str] = []
    for part in _TAG_SEPARATOR_RE.split(text):
        tag = part.strip()
        if not tag:
            msg = f"missing tag on the {side} hand side"
            raise RuleSyntaxError(msg, source=source, line=line)
        if not is_valid_tag(tag):
            msg = f"invalid tag '{tag}' on the {side} hand side"
            raise RuleSyntaxError(msg, source=source, line=line)
        tags.append(tag)
    return tags


def _parse_properties(text: str, *, source: str, line: int | None) -> list[str]:
    properties = [p.strip() for p in text.split(",")]
    if any(not p for p in properties):
        msg = f"empty property in '[{text}]'"
        raise RuleSyntaxError(msg, source=source, line=line)
    return properties


# ---------------------------------------------------------------------------
# Rule files
# ---------------------------------------------------------------------------


def load_rules(path: Path) -> list[TagRule]:
    """Load rules from a rule-text file or a YAML rule file.

    Raises ``ConfigError`` when the file cannot be read or the YAML layout
    is wrong, and ``RuleSyntaxError`` for malformed rule lines.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read rule file {path}: {exc}"
        raise ConfigError(msg) from exc

    if path.suffix.lower() in YAML_SUFFIXES:
        rules = _parse_yaml_rules(text, source=str(path))
    else:
        rules = parse_rules(text, source=str(path))
    logger.debug("Loaded %d rules from %s", len(rules), path)
    return rules


def load_rule_files(paths: Iterable[Path]) -> list[TagRule]:
    """Load and concatenate rules from several files, preserving file order."""
    rules: list[TagRule] = []
    for path in paths:
        rules.extend(load_rules(path))
    return rules


def _parse_yaml_rules(text: str, *, source: str) -> list[TagRule]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"{source}: invalid YAML: {exc}"
        raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"{source}: rule file must be a YAML mapping"
        raise ConfigError(msg)

    version = data.get("version")
    if version is None:
        msg = f"{source}: missing required 'version' field"
        raise ConfigError(msg)
    if version not in SUPPORTED_RULE_FILE_VERSIONS:
        expected = sorted(SUPPORTED_RULE_FILE_VERSIONS)
        msg = f"{source}: unsupported version {version}, expected one of {expected}"
        raise ConfigError(msg)

    entries = data.get("rules", [])
    if not isinstance(entries, list):
        msg = f"{source}: 'rules' must be a list"
        raise ConfigError(msg)

    rules: list[TagRule] = []
    for idx, entry in enumerate(entries):
        # An unquoted "a :: b" reads as the mapping {"a :": "b"}.
        if isinstance(entry, dict):
            msg = (
                f"{source}: rule at index {idx} was read as a YAML mapping; "
                f'quote rules that contain ": ", e.g. - "cat :: mammal"'
            )
            raise ConfigError(msg)
        if not isinstance(entry, str):
            msg = f"{source}: rule at index {idx} must be a string"
            raise ConfigError(msg)
        rules.extend(parse_rules(entry, source=f"{source}[{idx}]"))
    return rules
