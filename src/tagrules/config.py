"""Project configuration: ``.tagrules/config.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

from tagrules.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = ".tagrules"
CONFIG_FILE = "config.yml"
SUPPORTED_CONFIG_VERSIONS: frozenset[int] = frozenset({1})
OUTPUT_FORMATS: tuple[str, ...] = ("rich", "json", "porcelain")


@dataclass(frozen=True)
class TagRulesConfig:
    """Settings read from the project configuration file.

    ``rule_files`` are resolved against the project root.
    """

    rule_files: tuple[Path, ...] = ()
    rejected: tuple[str, ...] = ()
    output_format: str | None = None


def config_path(project_root: Path) -> Path:
    return project_root / CONFIG_DIR / CONFIG_FILE


def load_config(project_root: Path) -> TagRulesConfig:
    """Load ``<project_root>/.tagrules/config.yml``.

    Returns the defaults when the file does not exist.  Raises
    ``ConfigError`` when it exists but cannot be read or is malformed.

    Example::

        version: 1
        rule_files: [rules/animals.rules]
        rejected: [reptile]
        format: json
    """
    path = config_path(project_root)
    if not path.is_file():
        logger.debug("No configuration at %s, using defaults", path)
        return TagRulesConfig()

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError) as exc:
        msg = f"Failed to read {path}: {exc}"
        raise ConfigError(msg) from exc

    if data is None:
        return TagRulesConfig()
    if not isinstance(data, dict):
        msg = f"{path}: configuration must be a YAML mapping"
        raise ConfigError(msg)

    version = data.get("version", 1)
    if version not in SUPPORTED_CONFIG_VERSIONS:
        expected = sorted(SUPPORTED_CONFIG_VERSIONS)
        msg = f"{path}: unsupported version {version}, expected one of {expected}"
        raise ConfigError(msg)

    rule_files = tuple(project_root / name for name in _string_list(data, "rule_files", path))
    rejected = tuple(_string_list(data, "rejected", path))

    output_format = data.get("format")
    if output_format is not None and output_format not in OUTPUT_FORMATS:
        msg = f"{path}: invalid format '{output_format}', must be one of {list(OUTPUT_FORMATS)}"
        raise ConfigError(msg)

    logger.info("Loaded configuration from %s (%d rule files)", path, len(rule_files))
    return TagRulesConfig(rule_files=rule_files, rejected=rejected, output_format=output_format)


def _string_list(data: dict[str, object], key: str, path: Path) -> list[str]:
    raw = data.get(key, [])
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        msg = f"{path}: '{key}' must be a string or a list of strings"
        raise ConfigError(msg)
    return list(raw)
