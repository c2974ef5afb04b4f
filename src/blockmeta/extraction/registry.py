"""Rule registry and URL matching.

Rules are kept in list order and the first enabled rule whose pattern
matches a URL wins, so specific rules must come before catch-all rules
such as ``.*``.

URL patterns come in two textual forms:
- a bare regex body, matched case-insensitively (``book\\.douban\\.com``)
- a ``/body/flags`` literal (``/^https?:\\/\\/book\\.douban\\.com/i``)
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from loguru import logger

from blockmeta.core.exceptions import NoMatchingRuleError
from blockmeta.core.types import Rule

LITERAL_PATTERN = re.compile(r"^/(.*)/([A-Za-z]*)$", re.DOTALL)

# ``g`` and ``y`` only affect stateful JS matching; ``u`` is the default here.
FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": 0,
    "g": 0,
    "y": 0,
}


def compile_url_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a rule's URL pattern.

    Args:
        pattern: Bare regex body or ``/body/flags`` literal.

    Returns:
        Compiled pattern.

    Raises:
        re.error: If the literal is unterminated, has unknown flags, or the
            regex itself is invalid.
    """
    if not isinstance(pattern, str):
        raise re.error(f"URL pattern must be a string, got {type(pattern).__name__}")

    if pattern.startswith("/") and len(pattern) > 1:
        literal = LITERAL_PATTERN.match(pattern)
        if literal is None:
            raise re.error(f"unterminated regex literal: {pattern}")
        body, flag_chars = literal.groups()
        flags = 0
        for char in flag_chars:
            if char not in FLAG_MAP:
                raise re.error(f"unknown regex flag '{char}' in {pattern}")
            flags |= FLAG_MAP[char]
        return re.compile(body, flags)

    return re.compile(pattern, re.IGNORECASE)


def match_rule(url: str, rules: Iterable[Rule]) -> Rule | None:
    """Return the first enabled rule whose pattern matches ``url``.

    Rules with a pattern that fails to compile are skipped.

    Raises:
        ValueError: If two rules share a name.
    """
    return RuleRegistry(rules).match(url)


class RuleRegistry:
    """Ordered collection of extraction rules.

    Order encodes priority. Compiled patterns are cached per rule name and
    invalidated whenever the rule is replaced.
    """

    def __init__(self, rules: Iterable[Rule] | None = None) -> None:
        """Initialize a registry, optionally pre-populated in order."""
        self._rules: list[Rule] = []
        self._compiled: dict[str, re.Pattern[str] | None] = {}
        for rule in rules or []:
            self.register(rule)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self):
        return iter(list(self._rules))

    def register(
        self,
        rule: Rule,
        *,
        index: int | None = None,
        override: bool = False,
    ) -> None:
        """Add a rule.

        Args:
            rule: Rule to add.
            index: Position to insert at; appended when None.
            override: Replace an existing rule of the same name in place.

        Raises:
            ValueError: If the name is taken and ``override`` is False.
        """
        existing = self._position(rule.name)
        if existing is not None:
            if not override:
                raise ValueError(
                    f"Rule '{rule.name}' is already registered. "
                    f"Use override=True to replace."
                )
            self._rules[existing] = rule
        elif index is None:
            self._rules.append(rule)
        else:
            self._rules.insert(index, rule)
        self._compiled.pop(rule.name, None)

    def unregister(self, name: str) -> bool:
        """Remove a rule by name."""
        position = self._position(name)
        if position is None:
            return False
        del self._rules[position]
        self._compiled.pop(name, None)
        return True

    def get(self, name: str) -> Rule | None:
        """Get a rule by name."""
        position = self._position(name)
        return self._rules[position] if position is not None else None

    def list_rules(self) -> list[Rule]:
        """All rules in priority order."""
        return list(self._rules)

    def _position(self, name: str) -> int | None:
        for i, rule in enumerate(self._rules):
            if rule.name == name:
                return i
        return None

    def _pattern(self, rule: Rule) -> re.Pattern[str] | None:
        if rule.name not in self._compiled:
            try:
                self._compiled[rule.name] = compile_url_pattern(rule.url_pattern)
            except re.error as e:
                logger.warning(f"Skipping rule '{rule.name}': invalid URL pattern ({e})")
                self._compiled[rule.name] = None
        return self._compiled[rule.name]

    def match(self, url: str) -> Rule | None:
        """First enabled rule matching ``url``, or None."""
        for rule in self._rules:
            if not rule.enabled:
                continue
            pattern = self._pattern(rule)
            if pattern is not None and pattern.search(url):
                return rule
        return None

    def match_or_raise(self, url: str) -> Rule:
        """Like ``match`` but raises NoMatchingRuleError when nothing matches."""
        rule = self.match(url)
        if rule is None:
            raise NoMatchingRuleError(url)
        logger.debug(f"Rule '{rule.name}' matches {url}")
        return rule

    @classmethod
    def from_file(cls, path: Path | str) -> "RuleRegistry":
        """Build a registry from a JSON or YAML rule file."""
        from .loader import load_rules

        return cls(load_rules(path))


# =============================================================================
# Default Registry
# =============================================================================


def get_default_rule_registry() -> RuleRegistry:
    """Build a registry holding the built-in rules.

    Each call returns a new registry, so registering or overriding rules
    on one never affects another pipeline.
    """
    from .loader import load_default_rules

    return RuleRegistry(load_default_rules())
