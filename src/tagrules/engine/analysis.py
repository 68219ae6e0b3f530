"""Analysis pipeline: closure, exclusions, unit propagation, and suggestions.

The pipeline runs in a fixed order:

1. Canonicalize the input and add every specialization ancestor
   (the *effective* tags).
2. Expand rejected tags with their descendants.
3. Scan exclusion rules.  A fully present exclusion is a conflict; an
   exclusion missing exactly one tag forbids that tag.
4. Run implication rules to a fixpoint.  Rules with a single remaining
   candidate are applied first, one at a time, restarting the scan after
   each addition (unit propagation).  Rules with several candidates are
   only reported once nothing can be propagated.
5. Collect suggestions from missing sets, suggestion rules, and the
   specialization hierarchy, then replace abstract suggestions with their
   concrete descendants.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from tagrules.model import AnalysisResult, RuleResult, TagOperator

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from tagrules.engine.rule_engine import TagRuleEngine
    from tagrules.model import TagRule

logger = logging.getLogger(__name__)

Chain = tuple["TagRule", ...]


def analyze(
    engine: TagRuleEngine,
    tags: Iterable[str],
    rejected: Iterable[str] = (),
) -> AnalysisResult:
    """Analyze *tags* against *engine*, treating *rejected* tags as ruled out.

    Never raises for string input; unknown tags simply match no rule.
    """
    normalized = engine.canonicalize(tags)
    effective = engine.tags_and_ancestors(normalized)
    if not effective:
        return AnalysisResult.EMPTY

    effective_rejected = engine.tags_and_descendants(engine.canonicalize(rejected))
    existing_rejected = normalized & effective_rejected

    violated, single_excluded = _scan_exclusions(engine, effective)
    excluded = engine.tags_and_descendants(single_excluded) | effective_rejected

    known = set(effective)
    provenance: dict[str, Chain] = {}
    missing = _propagate_implications(engine, known, excluded, provenance)

    suggestions: list[RuleResult[str]] = []
    for missing_set in missing:
        for tag in sorted(missing_set.result):
            suggestions.append(RuleResult(missing_set.rules, tag))
    suggestions.extend(_suggestion_rules(engine, known, excluded, provenance))
    suggestions.extend(_specialization_suggestions(engine, known, excluded, provenance))

    suggested = _unique(_expand_abstract(engine, suggestions, excluded))

    logger.debug(
        "Analyzed %d tags: %d effective, %d missing sets, %d suggestions, %d conflicts",
        len(normalized),
        len(effective),
        len(missing),
        len(suggested),
        len(violated),
    )
    return AnalysisResult(
        normalized_tags=normalized,
        effective_tags=effective,
        existing_rejected_tags=existing_rejected,
        violated_exclusions=tuple(violated),
        missing_tag_sets=tuple(missing),
        suggested_tags=tuple(suggested),
    )


# ---------------------------------------------------------------------------
# Exclusions
# ---------------------------------------------------------------------------


def _scan_exclusions(
    engine: TagRuleEngine, effective: frozenset[str]
) -> tuple[list[TagRule], set[str]]:
    """Return violated exclusion rules and the tags that would complete an exclusion."""
    violated: list[TagRule] = []
    single_excluded: set[str] = set()
    for rule in engine.rules_for(TagOperator.EXCLUSION):
        if not rule.left <= effective:
            continue
        absent = rule.right - effective
        if not absent:
            violated.append(rule)
        elif len(absent) == 1:
            single_excluded.update(absent)
    return violated, single_excluded


# ---------------------------------------------------------------------------
# Implications
# ---------------------------------------------------------------------------


def _propagate_implications(
    engine: TagRuleEngine,
    known: set[str],
    excluded: frozenset[str],
    provenance: dict[str, Chain],
) -> list[RuleResult[frozenset[str]]]:
    """Run implication rules to a fixpoint, growing *known* and *provenance* in place."""
    implications = engine.rules_for(TagOperator.IMPLICATION)
    missing: list[RuleResult[frozenset[str]]] = []
    rounds = 0
    while True:
        rounds += 1
        resolved: list[tuple[TagRule, frozenset[str]]] = []
        ambiguous: list[tuple[TagRule, frozenset[str]]] = []
        for rule in implications:
            if not rule.left <= known or not rule.right.isdisjoint(known):
                continue
            options = rule.right - excluded
            if not options:
                continue
            (resolved if len(options) == 1 else ambiguous).append((rule, options))

        group = resolved or ambiguous
        if not group:
            break

        added = False
        for rule, options in group:
            chain = RuleResult.merge_rules(_chain_for(rule.left, provenance), (rule,))
            missing.append(RuleResult(chain, options))
            if len(options) == 1:
                (tag,) = options
                if tag not in known:
                    for implied in sorted(engine.tags_and_ancestors((tag,)) - known):
                        provenance[implied] = chain
                        known.add(implied)
                    added = True
                    break

        if not added:
            break

    logger.debug("Implication fixpoint reached after %d rounds", rounds)
    return missing


def _chain_for(tags: Iterable[str], provenance: Mapping[str, Chain]) -> Chain:
    """Provenance of the derived tags among *tags*, merged in tag order."""
    return RuleResult.merge_rules(*(provenance.get(tag, ()) for tag in sorted(tags)))


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------


def _suggestion_rules(
    engine: TagRuleEngine,
    known: set[str],
    excluded: frozenset[str],
    provenance: Mapping[str, Chain],
) -> Iterator[RuleResult[str]]:
    for rule in engine.rules_for(TagOperator.SUGGESTION):
        if not rule.left <= known or not rule.right.isdisjoint(known):
            continue
        chain = RuleResult.merge_rules(_chain_for(rule.left, provenance), (rule,))
        for tag in sorted(rule.right - excluded):
            yield RuleResult(chain, tag)


def _specialization_suggestions(
    engine: TagRuleEngine,
    known: set[str],
    excluded: frozenset[str],
    provenance: Mapping[str, Chain],
) -> Iterator[RuleResult[str]]:
    """Suggest concrete subtypes for known tags that have none of their descendants yet."""
    hierarchy = engine.hierarchy
    for tag in sorted(known):
        if tag in engine.abstract_tags:
            continue
        descendants = hierarchy.descendants(tag)
        if not descendants or not descendants.isdisjoint(known):
            continue
        origin = provenance.get(tag, ())
        for child in sorted(descendants):
            if child in engine.abstract_tags or child in excluded:
                continue
            for parent, edge in sorted(hierarchy.parent_rules(child).items()):
                # Only edges that lie underneath the tag being refined.
                if parent == tag or tag in hierarchy.ancestors(parent):
                    yield RuleResult(RuleResult.merge_rules(origin, (edge,)), child)


def _expand_abstract(
    engine: TagRuleEngine,
    suggestions: Iterable[RuleResult[str]],
    excluded: frozenset[str],
) -> Iterator[RuleResult[str]]:
    """Replace abstract suggestions with every concrete descendant.

    The walk continues below concrete children so nested subtypes are
    suggested too, each with the full chain of specialization edges.
    """
    hierarchy = engine.hierarchy
    for suggestion in suggestions:
        if suggestion.result not in engine.abstract_tags:
            yield suggestion
            continue

        seen: set[str] = {suggestion.result}
        queue: deque[tuple[str, Chain]] = deque([(suggestion.result, suggestion.rules)])
        while queue:
            tag, chain = queue.popleft()
            for child in sorted(hierarchy.children(tag)):
                if child in seen:
                    continue
                seen.add(child)
                child_chain = RuleResult.merge_rules(chain, (hierarchy.parent_rules(child)[tag],))
                queue.append((child, child_chain))
                if child not in engine.abstract_tags and child not in excluded:
                    yield RuleResult(child_chain, child)


def _unique(results: Iterable[RuleResult[str]]) -> list[RuleResult[str]]:
    return list(dict.fromkeys(results))
