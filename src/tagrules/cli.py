"""tagrules CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click

from tagrules import __version__
from tagrules.config import OUTPUT_FORMATS, TagRulesConfig, load_config
from tagrules.engine import TagRuleEngine
from tagrules.errors import ConfigError, TagRulesError
from tagrules.parser import load_rule_files

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="tagrules")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """tagrules - infer, check, and complete tag sets from a rule file."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_engine(
    project_root: Path, rule_paths: tuple[Path, ...]
) -> tuple[TagRuleEngine, TagRulesConfig]:
    """Read the project config and compile the rule files it (or --rules) names."""
    config = load_config(project_root)
    paths = rule_paths or config.rule_files
    if not paths:
        msg = "No rule files given; pass --rules or set 'rule_files' in .tagrules/config.yml"
        raise ConfigError(msg)
    rules = load_rule_files(paths)
    logger.info("Compiling %d rules from %d files", len(rules), len(paths))
    return TagRuleEngine(rules), config


def _fail(exc: Exception) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(2)


@main.command()
@click.argument("tags", nargs=-1, required=True)
@click.option("--reject", "rejected", multiple=True, help="Tag to rule out (repeatable).")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(list(OUTPUT_FORMATS)),
    default=None,
    help="Output format (default: config, else rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if the tags violate an exclusion or contain a rejected tag.",
)
@click.option(
    "--rules",
    "rule_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file (repeatable; default: rule_files from config).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def analyze(
    *,
    tags: tuple[str, ...],
    rejected: tuple[str, ...],
    fmt: str | None,
    strict: bool,
    rule_paths: tuple[Path, ...],
    project: Path | None,
) -> None:
    """Analyze TAGS: effective tags, conflicts, missing tags, and suggestions.

    Exit codes: 0 = analyzed (conflicts without --strict), 1 = conflicts
    with --strict, 2 = configuration or rule error.
    """
    from tagrules.report import format_json, format_porcelain, render_analysis

    project_root = project or Path.cwd()
    try:
        engine, config = _load_engine(project_root, rule_paths)
    except TagRulesError as exc:
        _fail(exc)
        return

    result = engine.analyze(tags, rejected=(*config.rejected, *rejected))

    # Resolve output format: explicit flag > config > TTY detection.
    if fmt is None:
        fmt = config.output_format or ("rich" if sys.stdout.isatty() else "porcelain")

    if fmt == "rich":
        from rich.console import Console

        render_analysis(result, Console())
    else:
        formatters = {"json": format_json, "porcelain": format_porcelain}
        output = formatters[fmt](result)
        if output:
            click.echo(output)

    if strict and result.has_conflicts:
        sys.exit(1)


@main.command()
@click.argument("tag")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--rules",
    "rule_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file (repeatable; default: rule_files from config).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def info(
    *, tag: str, output_json: bool, rule_paths: tuple[Path, ...], project: Path | None
) -> None:
    """Show aliases, properties, and hierarchy for TAG."""
    from tagrules.report import render_tag_info, tag_info_to_dict

    project_root = project or Path.cwd()
    try:
        engine, _config = _load_engine(project_root, rule_paths)
        tag_info = engine[tag]
    except (TagRulesError, ValueError) as exc:
        _fail(exc)
        return

    if tag_info.tag not in engine.get_known_tags():
        click.echo(f"Warning: '{tag}' is not mentioned by any rule", err=True)

    inherited = engine.get_inherited_tag_properties(tag_info.tag)
    if output_json:
        click.echo(json.dumps(tag_info_to_dict(tag_info, inherited), indent=2))
    else:
        from rich.console import Console

        render_tag_info(tag_info, Console(), inherited)


@main.command("tags")
@click.option("--raw", is_flag=True, help="List tags as written, without folding aliases.")
@click.option(
    "--rules",
    "rule_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file (repeatable; default: rule_files from config).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def tags_command(*, raw: bool, rule_paths: tuple[Path, ...], project: Path | None) -> None:
    """List every tag the rules mention."""
    project_root = project or Path.cwd()
    try:
        engine, _config = _load_engine(project_root, rule_paths)
    except TagRulesError as exc:
        _fail(exc)
        return

    for tag in engine.get_known_tags(canonicalize=not raw):
        click.echo(tag)


@main.command()
@click.option(
    "--rules",
    "rule_paths",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Rule file (repeatable; default: rule_files from config).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def check(*, rule_paths: tuple[Path, ...], project: Path | None) -> None:
    """Compile the rules and report what they define.

    Exit codes: 0 = rules compile, 2 = configuration or rule error.
    """
    project_root = project or Path.cwd()
    try:
        engine, _config = _load_engine(project_root, rule_paths)
    except TagRulesError as exc:
        _fail(exc)
        return

    aliases = len(engine.get_known_tags(canonicalize=False)) - len(engine.get_known_tags())
    click.echo(f"Rules: {len(engine.source_rules)} loaded, {len(engine.rules)} compiled")
    click.echo(
        f"Tags: {len(engine.get_known_tags())} known, {aliases} aliases, "
        f"{len(engine.abstract_tags)} abstract"
    )
    click.echo("✓ Rule set compiles")
