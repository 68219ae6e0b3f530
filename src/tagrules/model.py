"""Rule model: tags, operators, rules, and the immutable results built from them."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import ClassVar, Generic, TypeVar

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

ABSTRACT_PROPERTY = "abstract"

# Word characters (Unicode aware), dots and dashes; never a leading dot/dash.
TAG_PATTERN: re.Pattern[str] = re.compile(r"^\w[\w.\-]*$")

T = TypeVar("T")


def is_valid_tag(tag: object) -> bool:
    """Return True if *tag* is a non-empty string matching the tag grammar."""
    return isinstance(tag, str) and TAG_PATTERN.match(tag) is not None


def _as_frozenset(value: str | Iterable[str]) -> frozenset[str]:
    if isinstance(value, str):
        return frozenset({value})
    return frozenset(value)


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class TagOperator(enum.Enum):
    """Operators that relate a left and a right set of tags."""

    DEFINITION = "definition"
    MUTUAL_EXCLUSION = "mutual_exclusion"
    EXCLUSION = "exclusion"
    BIDIRECTIONAL_IMPLICATION = "bidirectional_implication"
    IMPLICATION = "implication"
    BIDIRECTIONAL_SUGGESTION = "bidirectional_suggestion"
    SUGGESTION = "suggestion"
    SPECIALIZATION = "specialization"
    PROPERTY = "property"

    @property
    def symbol(self) -> str | None:
        """Infix symbol of the operator, or None for ``PROPERTY``."""
        return _OPERATOR_SYMBOLS.get(self)

    @property
    def directed(self) -> TagOperator | None:
        """The one-way operator a bidirectional operator expands into."""
        return _DIRECTED_OPERATORS.get(self)

    @property
    def is_bidirectional(self) -> bool:
        """True for operators that compile into rules in both directions."""
        return self in _DIRECTED_OPERATORS

    @classmethod
    def from_symbol(cls, symbol: str) -> TagOperator:
        """Look up an operator by its infix symbol.

        Raises ``ValueError`` for unknown symbols.
        """
        try:
            return _SYMBOL_OPERATORS[symbol]
        except KeyError:
            msg = f"Unknown operator symbol '{symbol}', expected one of {sorted(_SYMBOL_OPERATORS)}"
            raise ValueError(msg) from None


_OPERATOR_SYMBOLS: dict[TagOperator, str] = {
    TagOperator.DEFINITION: "=>",
    TagOperator.IMPLICATION: "->",
    TagOperator.BIDIRECTIONAL_IMPLICATION: "<->",
    TagOperator.SUGGESTION: "~>",
    TagOperator.BIDIRECTIONAL_SUGGESTION: "<~>",
    TagOperator.EXCLUSION: "!>",
    TagOperator.MUTUAL_EXCLUSION: "<!>",
    TagOperator.SPECIALIZATION: "::",
}

_SYMBOL_OPERATORS: dict[str, TagOperator] = {v: k for k, v in _OPERATOR_SYMBOLS.items()}

_DIRECTED_OPERATORS: dict[TagOperator, TagOperator] = {
    TagOperator.MUTUAL_EXCLUSION: TagOperator.EXCLUSION,
    TagOperator.BIDIRECTIONAL_IMPLICATION: TagOperator.IMPLICATION,
    TagOperator.BIDIRECTIONAL_SUGGESTION: TagOperator.SUGGESTION,
}

# Exclusions forbid the whole right-hand side together, so it reads as a conjunction.
_CONJUNCTIVE_RIGHT: frozenset[TagOperator] = frozenset(
    {TagOperator.EXCLUSION, TagOperator.MUTUAL_EXCLUSION}
)


class HierarchyRelation(enum.Flag):
    """Relationship between a tag and its relatives in the specialization tree.

    ``NONE`` is not a meaningful relation and selects nothing.
    """

    NONE = 0
    ANCESTOR = 1
    SELF = 2
    DESCENDANT = 4
    SELF_OR_ANCESTOR = SELF | ANCESTOR
    SELF_OR_DESCENDANT = SELF | DESCENDANT
    RELATED = ANCESTOR | DESCENDANT
    SELF_OR_RELATED = SELF | ANCESTOR | DESCENDANT


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TagRule:
    """A single rule ``left <operator> right``.

    Either side may be given as one string or any iterable of strings; both
    are stored as frozensets.  For ``PROPERTY`` rules the right-hand side
    holds opaque property strings rather than tags.
    """

    left: frozenset[str]
    operator: TagOperator
    right: frozenset[str]

    def __post_init__(self) -> None:
        object.__setattr__(self, "left", _as_frozenset(self.left))
        object.__setattr__(self, "right", _as_frozenset(self.right))

    def __str__(self) -> str:
        left = " & ".join(sorted(self.left))
        if self.operator is TagOperator.PROPERTY:
            return f"{left} [{', '.join(sorted(self.right))}]"
        joiner = " & " if self.operator in _CONJUNCTIVE_RIGHT else " | "
        return f"{left} {self.operator.symbol} {joiner.join(sorted(self.right))}"

    @property
    def tags(self) -> frozenset[str]:
        """Every tag the rule mentions (property strings excluded)."""
        if self.operator is TagOperator.PROPERTY:
            return self.left
        return self.left | self.right


@dataclass(frozen=True)
class RuleResult(Generic[T]):
    """A result together with the chain of rules that produced it."""

    rules: tuple[TagRule, ...]
    result: T

    @staticmethod
    def merge_rules(*chains: Iterable[TagRule]) -> tuple[TagRule, ...]:
        """Concatenate provenance chains, dropping repeated rules."""
        merged: dict[TagRule, None] = {}
        for chain in chains:
            for rule in chain:
                merged.setdefault(rule, None)
        return tuple(merged)

    @property
    def rule(self) -> TagRule | None:
        """The rule that produced the result directly (last in the chain)."""
        return self.rules[-1] if self.rules else None


@dataclass(frozen=True)
class TagInfo:
    """Read-only snapshot of everything the engine knows about one canonical tag."""

    tag: str
    is_abstract: bool = False
    aliases: frozenset[str] = frozenset()
    properties: tuple[str, ...] = ()
    parents: frozenset[str] = frozenset()
    children: frozenset[str] = frozenset()
    ancestors: frozenset[str] = frozenset()
    descendants: frozenset[str] = frozenset()

    def related_tags(self, relation: HierarchyRelation) -> frozenset[str]:
        """Return the tags selected by *relation* (flags combine as a union)."""
        tags: set[str] = set()
        if relation & HierarchyRelation.ANCESTOR:
            tags.update(self.ancestors)
        if relation & HierarchyRelation.SELF:
            tags.add(self.tag)
        if relation & HierarchyRelation.DESCENDANT:
            tags.update(self.descendants)
        return frozenset(tags)


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of analyzing one set of tags against a compiled rule set."""

    EMPTY: ClassVar[AnalysisResult]

    normalized_tags: frozenset[str] = frozenset()
    effective_tags: frozenset[str] = frozenset()
    existing_rejected_tags: frozenset[str] = frozenset()
    violated_exclusions: tuple[TagRule, ...] = ()
    missing_tag_sets: tuple[RuleResult[frozenset[str]], ...] = field(default=())
    suggested_tags: tuple[RuleResult[str], ...] = field(default=())

    @property
    def suggested_tag_names(self) -> frozenset[str]:
        """The distinct suggested tags, without provenance."""
        return frozenset(s.result for s in self.suggested_tags)

    @property
    def has_conflicts(self) -> bool:
        """Return True if the input violates an exclusion or contains a rejected tag."""
        return bool(self.violated_exclusions or self.existing_rejected_tags)


AnalysisResult.EMPTY = AnalysisResult()
