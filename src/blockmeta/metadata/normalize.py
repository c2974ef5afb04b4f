"""Coerce extracted property values to their declared types."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable

from loguru import logger

from blockmeta.core.types import Choice, Property, PropertyType

TRUE_STRINGS = frozenset({"true", "yes", "1", "ok"})

MULTI_SUBTYPE = "multi"
DATETIME_SUBTYPE = "datetime"

# 2010, 2010-8, 2010-8-1, 2010/8/1, 2010年8月, 2010年8月1日
PARTIAL_DATE_PATTERN = re.compile(
    r"^(\d{4})(?:[-/.年](\d{1,2})(?:[-/.月](\d{1,2})日?)?月?)?$"
)


def to_datetime(value: Any) -> datetime | None:
    """Parse a date-like value, returning None when it is not a date."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass

    match = PARTIAL_DATE_PATTERN.match(text)
    if match is None:
        return None
    year, month, day = (int(part) if part else 1 for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def to_number(value: Any) -> float:
    """Parse a float; invalid input yields NaN."""
    if isinstance(value, bool):
        return float(value)
    try:
        return float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return math.nan


def to_boolean(value: Any) -> bool:
    """Strings are true only when they spell one of TRUE_STRINGS."""
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def to_choices(value: Any) -> list[str]:
    """Ordered, de-duplicated, non-empty choice names.

    Strings are split on whitespace; other iterables are taken as-is.
    """
    if value is None:
        items: Iterable[Any] = []
    elif isinstance(value, str):
        items = value.split()
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        items = [value]

    choices: list[str] = []
    for item in items:
        text = str(item).strip() if item is not None else ""
        if text and text not in choices:
            choices.append(text)
    return choices


def format_property(prop: Property) -> Property:
    """Return a normalized copy of one property."""
    type_args = dict(prop.type_args)
    value = prop.value

    if prop.type == PropertyType.DATE_TIME:
        parsed = to_datetime(value)
        if parsed is not None:
            value = parsed
        elif "subType" not in type_args:
            type_args["subType"] = DATETIME_SUBTYPE

    elif prop.type == PropertyType.NUMBER:
        value = to_number(value)
        if math.isnan(value):
            logger.debug(f"Property '{prop.name}': {prop.value!r} is not a number")

    elif prop.type == PropertyType.BOOLEAN:
        value = to_boolean(value)

    elif prop.type == PropertyType.TEXT_CHOICES:
        value = to_choices(value)
        # Choices already known to the tag are merged by the schema reconciler.
        type_args["choices"] = [Choice(name).to_dict() for name in value]
        type_args["subType"] = MULTI_SUBTYPE

    return Property(name=prop.name, type=prop.type, value=value, type_args=type_args)


def format_properties(properties: Iterable[Property]) -> list[Property]:
    """Normalize extracted properties for commit."""
    return [format_property(prop) for prop in properties]
