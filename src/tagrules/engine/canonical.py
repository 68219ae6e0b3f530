"""Canonical tag resolution from definition (alias) rules."""

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


class Canonicalizer:
    """Maps every aliased tag to the canonical tag of its alias group.

    Built once from ``a => b`` definition rules.  The canonical tag of a
    group is the lexicographically smallest terminal tag reachable through
    definitions; when the chain only loops back on itself, the smallest tag
    visited is used instead.
    """

    def __init__(self, renames: Mapping[str, str]) -> None:
        self._renames: Mapping[str, str] = MappingProxyType(dict(renames))
        aliases: dict[str, set[str]] = {}
        for alias, canonical in self._renames.items():
            aliases.setdefault(canonical, set()).add(alias)
        self._aliases: Mapping[str, frozenset[str]] = MappingProxyType(
            {canonical: frozenset(group) for canonical, group in aliases.items()}
        )

    @classmethod
    def from_rules(cls, rules: Iterable[TagRule]) -> Canonicalizer:
        """Resolve the definition rules among *rules*.

        Raises ``RuleConstructionError`` if a definition rule does not have
        exactly one tag on each side.
        """
        edges: dict[str, list[str]] = {}
        for rule in rules:
            if rule.operator is not TagOperator.DEFINITION:
                continue
            if len(rule.left) != 1 or len(rule.right) != 1:
                msg = (
                    f"The operator '{rule.operator.name}' requires a single tag on both "
                    f"the left and right hand sides in rule '{rule}'"
                )
                raise RuleConstructionError(msg, rule)
            (from_tag,) = rule.left
            (to_tag,) = rule.right
            targets = edges.setdefault(from_tag, [])
            if to_tag not in targets:
                targets.append(to_tag)

        renames: dict[str, str] = {}
        for from_tag, targets in edges.items():
            canonical = _resolve(from_tag, targets, edges)
            if canonical != from_tag:
                renames[from_tag] = canonical

        logger.debug(
            "Resolved %d aliases into %d canonical tags", len(renames), len(set(renames.values()))
        )
        return cls(renames)

    def rename(self, tag: str) -> str:
        """Return the canonical form of *tag* (the tag itself when it is not an alias)."""
        return self._renames.get(tag, tag)

    def aliases(self, tag: str) -> frozenset[str]:
        """Return the aliases that resolve to the canonical form of *tag*."""
        return self._aliases.get(self.rename(tag), frozenset())

    @property
    def renames(self) -> Mapping[str, str]:
        return self._renames

    def __len__(self) -> int:
        return len(self._renames)

    def __contains__(self, tag: object) -> bool:
        return tag in self._renames


def _resolve(source: str, targets: list[str], edges: dict[str, list[str]]) -> str:
    """Breadth-first walk from *source* collecting the terminal tags of its chain."""
    terminals: set[str] = set()
    seen: set[str] = {source}
    queue: deque[str] = deque(targets)
    while queue:
        tag = queue.popleft()
        if tag in seen:
            continue
        seen.add(tag)
        following = edges.get(tag)
        if following is None:
            terminals.add(tag)
        else:
            queue.extend(following)
    return min(terminals or seen)
