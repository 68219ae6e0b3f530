"""Tag rule engine: compile a flat rule list into lookup indices and answer queries."""

from __future__ import annotations

import logging
from collections import deque
from types import MappingProxyType
from typing import TYPE_CHECKING

from tagrules.engine.analysis import analyze as _analyze
from tagrules.engine.canonical import Canonicalizer
from tagrules.engine.hierarchy import SpecializationIndex
from tagrules.model import ABSTRACT_PROPERTY, AnalysisResult, TagInfo, TagOperator, TagRule

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)


class TagRuleEngine:
    """Compiled, immutable view of a rule set.

    Construction resolves aliases, rewrites every rule to canonical tags,
    splits bidirectional operators into one-way rules, and indexes the
    specialization hierarchy.  After that the engine is read-only and may
    be shared freely; :meth:`analyze` allocates all of its working state.

    Raises ``RuleConstructionError`` when a definition or specialization
    rule has the wrong number of tags on a side.
    """

    def __init__(self, rules: Iterable[TagRule]) -> None:
        if rules is None:
            msg = "rules must be an iterable of TagRule, not None"
            raise TypeError(msg)

        self._source_rules: tuple[TagRule, ...] = tuple(rules)
        self._canonicalizer = Canonicalizer.from_rules(self._source_rules)

        compiled = tuple(self._simplify_rules(self._source_rules))
        grouped: dict[TagOperator, list[TagRule]] = {op: [] for op in TagOperator}
        for rule in compiled:
            grouped[rule.operator].append(rule)
        self._rules: tuple[TagRule, ...] = compiled
        self._rules_by_operator: Mapping[TagOperator, tuple[TagRule, ...]] = MappingProxyType(
            {op: tuple(group) for op, group in grouped.items()}
        )

        self._hierarchy = SpecializationIndex.from_rules(
            self._rules_by_operator[TagOperator.SPECIALIZATION]
        )

        abstract: set[str] = set()
        for rule in self._rules_by_operator[TagOperator.PROPERTY]:
            if ABSTRACT_PROPERTY in rule.right:
                abstract.update(rule.left)
        self._abstract_tags: frozenset[str] = frozenset(abstract)

        logger.debug(
            "Compiled %d rules into %d (aliases=%d, abstract=%d, hierarchy tags=%d)",
            len(self._source_rules),
            len(self._rules),
            len(self._canonicalizer),
            len(self._abstract_tags),
            len(self._hierarchy.tags),
        )

    # -- compilation ----------------------------------------------------------

    def _simplify_rules(self, rules: Iterable[TagRule]) -> Iterator[TagRule]:
        """Rewrite *rules* to canonical tags and expand bidirectional operators."""
        rename = self._canonicalizer.rename
        for source in rules:
            if source.operator is TagOperator.DEFINITION:
                yield source
                continue

            rule = source
            if source.operator is TagOperator.PROPERTY:
                if any(tag in self._canonicalizer for tag in source.left):
                    rule = TagRule({rename(t) for t in source.left}, source.operator, source.right)
            elif any(tag in self._canonicalizer for tag in source.tags):
                rule = TagRule(
                    {rename(t) for t in source.left},
                    source.operator,
                    {rename(t) for t in source.right},
                )

            directed = rule.operator.directed
            if directed is None:
                yield rule
                continue

            yield TagRule(rule.left, directed, rule.right)
            for new_left in sorted(rule.right):
                for new_right in sorted(rule.left):
                    yield TagRule(new_left, directed, new_right)

    # -- rule access ----------------------------------------------------------

    @property
    def source_rules(self) -> tuple[TagRule, ...]:
        """The rules exactly as given to the constructor."""
        return self._source_rules

    @property
    def rules(self) -> tuple[TagRule, ...]:
        """The compiled rules: canonical tags, bidirectional operators expanded."""
        return self._rules

    def rules_for(self, operator: TagOperator) -> tuple[TagRule, ...]:
        """Compiled rules that use *operator*, in compilation order."""
        return self._rules_by_operator[operator]

    @property
    def hierarchy(self) -> SpecializationIndex:
        return self._hierarchy

    @property
    def abstract_tags(self) -> frozenset[str]:
        return self._abstract_tags

    # -- tag normalization ----------------------------------------------------

    def rename(self, tag: str) -> str:
        """Return the canonical form of *tag*."""
        return self._canonicalizer.rename(tag)

    def canonicalize(self, tags: Iterable[str]) -> frozenset[str]:
        """Return the canonical forms of *tags*."""
        if isinstance(tags, str):
            tags = (tags,)
        return frozenset(self._canonicalizer.rename(tag) for tag in tags)

    def tags_and_ancestors(self, tags: Iterable[str]) -> frozenset[str]:
        """Return *tags* plus every specialization ancestor of each (no renaming)."""
        result = set(tags)
        for tag in tuple(result):
            result.update(self._hierarchy.ancestors(tag))
        return frozenset(result)

    def tags_and_descendants(self, tags: Iterable[str]) -> frozenset[str]:
        """Return *tags* plus every specialization descendant of each (no renaming)."""
        result = set(tags)
        for tag in tuple(result):
            result.update(self._hierarchy.descendants(tag))
        return frozenset(result)

    def is_abstract(self, tag: str) -> bool:
        return self.rename(tag) in self._abstract_tags

    # -- queries --------------------------------------------------------------

    def __getitem__(self, tag: str) -> TagInfo:
        if not tag:
            msg = "tag must be a non-empty string"
            raise ValueError(msg)

        tag = self.rename(tag)
        return TagInfo(
            tag=tag,
            is_abstract=tag in self._abstract_tags,
            aliases=self._canonicalizer.aliases(tag),
            properties=self.get_tag_properties(tag),
            parents=self._hierarchy.parents(tag),
            children=self._hierarchy.children(tag),
            ancestors=self._hierarchy.ancestors(tag),
            descendants=self._hierarchy.descendants(tag),
        )

    def get_tag_aliases(self, tag: str) -> frozenset[str]:
        return self._canonicalizer.aliases(tag)

    def get_tag_parents(self, tag: str) -> frozenset[str]:
        return self._hierarchy.parents(self.rename(tag))

    def get_tag_children(self, tag: str) -> frozenset[str]:
        return self._hierarchy.children(self.rename(tag))

    def get_tag_ancestors(self, tag: str) -> frozenset[str]:
        return self._hierarchy.ancestors(self.rename(tag))

    def get_tag_descendants(self, tag: str) -> frozenset[str]:
        return self._hierarchy.descendants(self.rename(tag))

    def get_tag_properties(self, tag: str) -> tuple[str, ...]:
        """Properties declared directly on *tag*, in rule order."""
        tag = self.rename(tag)
        properties: list[str] = []
        for rule in self._rules_by_operator[TagOperator.PROPERTY]:
            if tag in rule.left:
                properties.extend(sorted(rule.right))
        return tuple(properties)

    def get_inherited_tag_properties(self, tag: str) -> tuple[str, ...]:
        """Properties of every strict ancestor of *tag*, nearest first.

        The ``abstract`` marker is not inherited.  A property reachable along
        several ancestor paths is reported once per declaring ancestor.
        """
        tag = self.rename(tag)
        visited: set[str] = {tag}
        queue: deque[str] = deque()
        for parent in sorted(self._hierarchy.parents(tag)):
            if parent not in visited:
                visited.add(parent)
                queue.append(parent)

        properties: list[str] = []
        while queue:
            current = queue.popleft()
            properties.extend(p for p in self.get_tag_properties(current) if p != ABSTRACT_PROPERTY)
            for parent in sorted(self._hierarchy.parents(current)):
                if parent not in visited:
                    visited.add(parent)
                    queue.append(parent)
        return tuple(properties)

    def get_all_tag_properties(self, tag: str) -> tuple[str, ...]:
        """Own properties followed by inherited ones."""
        return self.get_tag_properties(tag) + self.get_inherited_tag_properties(tag)

    def tag_sets_that_suggest(self, target: str) -> list[frozenset[str]]:
        """Left-hand sides of every suggestion rule whose right-hand side contains *target*."""
        target = self.rename(target)
        return [
            rule.left
            for rule in self._rules_by_operator[TagOperator.SUGGESTION]
            if target in rule.right
        ]

    def get_known_tags(self, *, canonicalize: bool = True) -> list[str]:
        """Every tag mentioned by any rule, sorted.

        With *canonicalize* (the default) aliases are folded into their
        canonical tags; otherwise tags are reported as written.
        """
        known: set[str] = set()
        for rule in self._source_rules:
            known.update(rule.tags)
        if canonicalize:
            known = {self.rename(tag) for tag in known}
        return sorted(known)

    # -- analysis -------------------------------------------------------------

    def analyze(self, tags: Iterable[str], rejected: Iterable[str] = ()) -> AnalysisResult:
        """Infer the effective tags, conflicts, and suggestions for *tags*.

        *rejected* lists tags the caller has ruled out; they and their
        descendants are never suggested.
        """
        return _analyze(self, tags, rejected)
