"""Load rule files.

A rule file is a JSON or YAML array of
``{name, enabled, urlPattern, tagName, downloadCover, script}`` entries,
or a mapping with such an array under ``rules``. ``script`` is either a
list of source lines or a single block of text.
"""

from __future__ import annotations

import functools
import json
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from blockmeta.core.exceptions import RuleConfigError
from blockmeta.core.types import Rule

DEFAULT_RULES_RESOURCE = "default.yaml"


def parse_rules(data: Any, origin: str = "<rules>") -> list[Rule]:
    """Turn decoded rule data into Rule objects.

    Raises:
        RuleConfigError: If the data is not a list of valid entries or a
            rule name repeats.
    """
    if isinstance(data, dict) and "rules" in data:
        data = data["rules"]
    if not isinstance(data, list):
        raise RuleConfigError(f"{origin}: expected a list of rules")

    rules: list[Rule] = []
    seen: set[str] = set()
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise RuleConfigError(f"{origin}: rule #{i} is not a mapping")
        try:
            rule = Rule.from_dict(entry)
        except ValueError as e:
            raise RuleConfigError(f"{origin}: rule #{i}: {e}") from e
        if rule.name in seen:
            raise RuleConfigError(f"{origin}: duplicate rule name '{rule.name}'")
        seen.add(rule.name)
        rules.append(rule)
    return rules


def _decode(text: str, suffix: str, origin: str) -> Any:
    try:
        if suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RuleConfigError(f"{origin}: {e}") from e


def load_rules(path: Path | str) -> list[Rule]:
    """Load rules from a ``.json``, ``.yaml`` or ``.yml`` file.

    Raises:
        RuleConfigError: If the file is unreadable or malformed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RuleConfigError(f"Cannot read rule file {path}: {e}") from e

    rules = parse_rules(_decode(text, path.suffix.lower(), str(path)), str(path))
    logger.debug(f"Loaded {len(rules)} rules from {path}")
    return rules


@functools.lru_cache(maxsize=1)
def _default_rules() -> tuple[Rule, ...]:
    text = (
        resources.files("blockmeta.extraction")
        .joinpath("rules", DEFAULT_RULES_RESOURCE)
        .read_text(encoding="utf-8")
    )
    return tuple(
        parse_rules(_decode(text, ".yaml", DEFAULT_RULES_RESOURCE), DEFAULT_RULES_RESOURCE)
    )


def load_default_rules() -> list[Rule]:
    """Load the built-in rule set shipped with the package."""
    return list(_default_rules())
