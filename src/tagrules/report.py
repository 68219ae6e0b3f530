"""Formatters for analysis results and tag information: Rich, JSON, and porcelain."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rich.console import Console

    from tagrules.model import AnalysisResult, RuleResult, TagInfo, TagRule


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _rules_to_list(rules: Iterable[TagRule]) -> list[str]:
    return [str(rule) for rule in rules]


def result_to_dict(result: AnalysisResult) -> dict[str, object]:
    """Serialize an AnalysisResult to a JSON-compatible dict.

    Tag sets are emitted as sorted lists; provenance chains as lists of
    rule strings in the order they were applied.
    """
    return {
        "normalized_tags": sorted(result.normalized_tags),
        "effective_tags": sorted(result.effective_tags),
        "existing_rejected_tags": sorted(result.existing_rejected_tags),
        "violated_exclusions": _rules_to_list(result.violated_exclusions),
        "missing_tag_sets": [
            {"tags": sorted(m.result), "rules": _rules_to_list(m.rules)}
            for m in result.missing_tag_sets
        ],
        "suggested_tags": [
            {"tag": s.result, "rules": _rules_to_list(s.rules)} for s in result.suggested_tags
        ],
    }


def tag_info_to_dict(info: TagInfo, inherited: Iterable[str] = ()) -> dict[str, object]:
    """Serialize a TagInfo (plus optional inherited properties) to a dict."""
    return {
        "tag": info.tag,
        "is_abstract": info.is_abstract,
        "aliases": sorted(info.aliases),
        "properties": list(info.properties),
        "inherited_properties": list(inherited),
        "parents": sorted(info.parents),
        "children": sorted(info.children),
        "ancestors": sorted(info.ancestors),
        "descendants": sorted(info.descendants),
    }


def format_json(result: AnalysisResult) -> str:
    """Format an AnalysisResult as indented JSON."""
    return json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)


def format_porcelain(result: AnalysisResult) -> str:
    """Format an AnalysisResult as TAB-separated lines, one finding per line.

    Line kinds::

        conflict<TAB><rule>
        rejected<TAB><tag>
        missing<TAB><tag>|<tag>...<TAB><rule>
        suggested<TAB><tag><TAB><rule>

    ``<rule>`` is the rule that produced the finding directly.  Returns an
    empty string when there is nothing to report.
    """
    lines: list[str] = []
    for rule in result.violated_exclusions:
        lines.append(f"conflict\t{rule}")
    for tag in sorted(result.existing_rejected_tags):
        lines.append(f"rejected\t{tag}")
    for missing in result.missing_tag_sets:
        lines.append(f"missing\t{'|'.join(sorted(missing.result))}\t{_direct_rule(missing)}")
    for suggestion in result.suggested_tags:
        lines.append(f"suggested\t{suggestion.result}\t{_direct_rule(suggestion)}")
    return "\n".join(lines)


def _direct_rule(result: RuleResult[object]) -> str:
    return "" if result.rule is None else str(result.rule)


# ---------------------------------------------------------------------------
# Rich rendering
# ---------------------------------------------------------------------------


def _chain_label(rules: Iterable[TagRule]) -> str:
    from rich.markup import escape

    return escape(" → ".join(str(rule) for rule in rules))


def render_analysis(result: AnalysisResult, console: Console) -> None:
    """Render an AnalysisResult using Rich panels, trees, and tables."""
    from rich.panel import Panel
    from rich.table import Table
    from rich.tree import Tree

    header = (
        f"[bold]Tags:[/] {', '.join(sorted(result.normalized_tags)) or '-'}\n"
        f"[bold]Effective:[/] {', '.join(sorted(result.effective_tags)) or '-'}"
    )
    console.print(Panel(header, title="Tag Analysis", border_style="blue"))

    if result.has_conflicts:
        conflicts = Tree("[bold red]Conflicts[/]")
        for rule in result.violated_exclusions:
            conflicts.add(f"✗ {_chain_label((rule,))}")
        for tag in sorted(result.existing_rejected_tags):
            conflicts.add(f"✗ {tag} is rejected")
        console.print(conflicts)
    else:
        console.print("[green]✓ No conflicts.[/]")
    console.print()

    if result.missing_tag_sets:
        missing = Tree("[bold yellow]Missing (one of each set)[/]")
        for entry in result.missing_tag_sets:
            node = missing.add(f"[bold]{' | '.join(sorted(entry.result))}[/]")
            node.add(f"[dim]{_chain_label(entry.rules)}[/]")
        console.print(missing)
    else:
        console.print("[dim]Nothing missing.[/]")
    console.print()

    if result.suggested_tags:
        table = Table(title="Suggested tags")
        table.add_column("Tag", style="cyan")
        table.add_column("Because")
        for suggestion in result.suggested_tags:
            table.add_row(suggestion.result, _chain_label(suggestion.rules))
        console.print(table)
    else:
        console.print("[dim]No suggestions.[/]")


def render_tag_info(info: TagInfo, console: Console, inherited: Iterable[str] = ()) -> None:
    """Render a TagInfo as a Rich panel."""
    from rich.markup import escape
    from rich.panel import Panel

    def _join(values: Iterable[str]) -> str:
        return escape(", ".join(values)) or "-"

    lines = [
        f"[bold]Abstract:[/]    {'yes' if info.is_abstract else 'no'}",
        f"[bold]Aliases:[/]     {_join(sorted(info.aliases))}",
        f"[bold]Properties:[/]  {_join(info.properties)}",
        f"[bold]Inherited:[/]   {_join(inherited)}",
        f"[bold]Parents:[/]     {_join(sorted(info.parents))}",
        f"[bold]Children:[/]    {_join(sorted(info.children))}",
        f"[bold]Ancestors:[/]   {_join(sorted(info.ancestors))}",
        f"[bold]Descendants:[/] {_join(sorted(info.descendants))}",
    ]
    console.print(Panel("\n".join(lines), title=escape(info.tag), border_style="blue"))
