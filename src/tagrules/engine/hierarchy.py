"""Specialization index: direct parents/children plus their transitive closures."""

from __future__ import annotations

import logging
from collections import deque
from types import MappingProxyType
from typing import TYPE_CHECKING

from tagrules.errors import RuleConstructionError
from tagrules.model import TagOperator

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from tagrules.model import TagRule

logger = logging.getLogger(__name__)

_EMPTY: frozenset[str] = frozenset()


class SpecializationIndex:
    """Index over ``child :: parent`` rules.

    Four maps are kept: direct parents (with the rule that declared each
    edge), direct children, all ancestors, and all descendants.  The two
    closures are maintained incrementally as edges are added, so they are
    exact whatever order the rules arrive in.

    Cycles are not rejected.  Each propagation visits a node at most once
    and never records a tag as its own ancestor or descendant.
    """

    def __init__(self) -> None:
        self._parent_rules: dict[str, dict[str, TagRule]] = {}
        self._children: dict[str, set[str]] = {}
        self._ancestors: dict[str, set[str]] = {}
        self._descendants: dict[str, set[str]] = {}
        self._frozen = False

    @classmethod
    def from_rules(cls, rules: Iterable[TagRule]) -> SpecializationIndex:
        """Build a frozen index from the specialization rules among *rules*.

        Raises ``RuleConstructionError`` for a specialization rule that does
        not name exactly one parent.
        """
        index = cls()
        edges = 0
        for rule in rules:
            if rule.operator is not TagOperator.SPECIALIZATION:
                continue
            if len(rule.right) != 1 or not rule.left:
                msg = (
                    f"The operator '{rule.operator.name}' requires a single tag on the "
                    f"right hand side in rule '{rule}'"
                )
                raise RuleConstructionError(msg, rule)
            (parent,) = rule.right
            for child in sorted(rule.left):
                index.add_edge(child, parent, rule)
                edges += 1
        index.freeze()
        logger.debug("Indexed %d specialization edges over %d tags", edges, len(index.tags))
        return index

    # -- construction -------------------------------------------------------

    def add_edge(self, child: str, parent: str, rule: TagRule) -> None:
        """Record that *child* specializes *parent*, updating both closures."""
        if self._frozen:
            msg = "SpecializationIndex is frozen"
            raise RuntimeError(msg)

        self._parent_rules.setdefault(child, {}).setdefault(parent, rule)
        self._children.setdefault(parent, set()).add(child)

        if parent in self._descendants.get(child, _EMPTY):
            logger.debug("Specialization cycle through '%s' and '%s'", child, parent)

        # Ancestors flow down to the child and everything below it.
        inherited = {parent} | self._ancestors.get(parent, _EMPTY)
        _propagate(child, inherited, self._ancestors, self._children)

        # Descendants flow up to the parent and everything above it.
        acquired = {child} | self._descendants.get(child, _EMPTY)
        _propagate(parent, acquired, self._descendants, self._parent_rules)

    def freeze(self) -> None:
        """Convert every map to immutable structures; no edges may be added afterwards."""
        self._parent_rules = MappingProxyType(  # type: ignore[assignment]
            {child: MappingProxyType(dict(rules)) for child, rules in self._parent_rules.items()}
        )
        self._children = MappingProxyType(  # type: ignore[assignment]
            {tag: frozenset(tags) for tag, tags in self._children.items()}
        )
        self._ancestors = MappingProxyType(  # type: ignore[assignment]
            {tag: frozenset(tags) for tag, tags in self._ancestors.items()}
        )
        self._descendants = MappingProxyType(  # type: ignore[assignment]
            {tag: frozenset(tags) for tag, tags in self._descendants.items()}
        )
        self._frozen = True

    # -- queries ------------------------------------------------------------

    @property
    def tags(self) -> frozenset[str]:
        """Every tag that takes part in at least one specialization edge."""
        return frozenset(self._parent_rules) | frozenset(self._children)

    def parent_rules(self, tag: str) -> Mapping[str, TagRule]:
        """Direct parents of *tag* mapped to the rule declaring each edge."""
        return self._parent_rules.get(tag, MappingProxyType({}))

    def parents(self, tag: str) -> frozenset[str]:
        return frozenset(self._parent_rules.get(tag, ()))

    def children(self, tag: str) -> frozenset[str]:
        return frozenset(self._children.get(tag, _EMPTY))

    def ancestors(self, tag: str) -> frozenset[str]:
        return frozenset(self._ancestors.get(tag, _EMPTY))

    def descendants(self, tag: str) -> frozenset[str]:
        return frozenset(self._descendants.get(tag, _EMPTY))


def _propagate(
    start: str,
    additions: set[str],
    closure: dict[str, set[str]],
    links: Mapping[str, Iterable[str]],
) -> None:
    """Union *additions* into the closure of *start* and every node reachable through *links*."""
    seen: set[str] = set()
    queue: deque[str] = deque([start])
    while queue:
        current = queue.popleft()
        if current in seen:
            continue
        seen.add(current)
        closure.setdefault(current, set()).update(additions - {current})
        queue.extend(links.get(current, ()))
