"""tagrules - rule-based inference over a vocabulary of tags."""

__version__ = "0.1.0"

from tagrules.engine import TagRuleEngine  # noqa: E402
from tagrules.errors import (  # noqa: E402
    ConfigError,
    RuleConstructionError,
    RuleSyntaxError,
    TagRulesError,
)
from tagrules.model import (  # noqa: E402
    ABSTRACT_PROPERTY,
    AnalysisResult,
    HierarchyRelation,
    RuleResult,
    TagInfo,
    TagOperator,
    TagRule,
    is_valid_tag,
)
from tagrules.parser import load_rule_files, load_rules, parse_rule, parse_rules  # noqa: E402

__all__ = [
    "ABSTRACT_PROPERTY",
    "AnalysisResult",
    "ConfigError",
    "HierarchyRelation",
    "RuleConstructionError",
    "RuleResult",
    "RuleSyntaxError",
    "TagInfo",
    "TagOperator",
    "TagRule",
    "TagRuleEngine",
    "TagRulesError",
    "__version__",
    "is_valid_tag",
    "load_rule_files",
    "load_rules",
    "parse_rule",
    "parse_rules",
]
