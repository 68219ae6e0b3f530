"""Exception taxonomy shared by the engine, the rule parser, and the CLI."""

from __future__ import annotations


class TagRulesError(Exception):
    """Base class for every error raised by tagrules."""


class RuleConstructionError(TagRulesError, ValueError):
    """Raised when a rule set cannot be compiled into an engine.

    Only structural problems are reported here: a definition rule without
    exactly one tag on each side, or a specialization rule without exactly
    one tag on the right.
    """

    def __init__(self, message: str, rule: object | None = None) -> None:
        super().__init__(message)
        self.rule = rule


class RuleSyntaxError(TagRulesError, ValueError):
    """Raised when rule text cannot be parsed."""

    def __init__(self, message: str, *, source: str = "<string>", line: int | None = None) -> None:
        location = source if line is None else f"{source}:{line}"
        super().__init__(f"{location}: {message}")
        self.source = source
        self.line = line


class ConfigError(TagRulesError):
    """Raised when a configuration or YAML rule file is unreadable or malformed."""
