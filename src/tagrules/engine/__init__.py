"""Engine domain: alias resolution, specialization index, rule engine, analysis."""

from tagrules.engine.analysis import analyze
from tagrules.engine.canonical import Canonicalizer
from tagrules.engine.hierarchy import SpecializationIndex
from tagrules.engine.rule_engine import TagRuleEngine

__all__ = [
    "Canonicalizer",
    "SpecializationIndex",
    "TagRuleEngine",
    "analyze",
]
