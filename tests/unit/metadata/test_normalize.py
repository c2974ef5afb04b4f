"""Tests for property normalization."""

import math
from datetime import datetime

import pytest

from blockmeta.core.types import Property, PropertyType
from blockmeta.metadata import (
    format_properties,
    format_property,
    to_boolean,
    to_choices,
    to_datetime,
    to_number,
)


class TestScalars:
    """Tests for the scalar coercions."""

    @pytest.mark.parametrize(
        "value,expected",
        [("9.1", 9.1), (" 42 ", 42.0), (7, 7.0), (True, 1.0)],
    )
    def test_to_number(self, value, expected):
        """Numeric strings and numbers become floats."""
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", ["abc", "", None, [1]])
    def test_to_number_invalid(self, value):
        """Invalid input yields NaN."""
        assert math.isnan(to_number(value))

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("true", True), ("Yes", True), ("1", True), ("OK", True),
            ("false", False), ("no", False), ("", False), ("0", False),
            (1, True), (0, False), (None, False), ([1], True),
        ],
    )
    def test_to_boolean(self, value, expected):
        """Strings must spell a true word; other values use truthiness."""
        assert to_boolean(value) is expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2010-8-1", datetime(2010, 8, 1)),
            ("2010-08-01T12:30:00", datetime(2010, 8, 1, 12, 30)),
            ("2010/8", datetime(2010, 8, 1)),
            ("2010年8月", datetime(2010, 8, 1)),
            ("2010年8月15日", datetime(2010, 8, 15)),
            ("2010", datetime(2010, 1, 1)),
        ],
    )
    def test_to_datetime(self, value, expected):
        """ISO and partial dates parse."""
        assert to_datetime(value) == expected

    def test_to_datetime_invalid(self):
        """Non-dates yield None."""
        assert to_datetime("2010-13-1") is None
        assert to_datetime("not a date") is None
        assert to_datetime(None) is None

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("fiction  nonfiction fiction", ["fiction", "nonfiction"]),
            (["[法] 阿尔贝·加缪", " ", "[法] 阿尔贝·加缪"], ["[法] 阿尔贝·加缪"]),
            (None, []),
            (5, ["5"]),
        ],
    )
    def test_to_choices(self, value, expected):
        """Choices are ordered, unique and non-empty."""
        assert to_choices(value) == expected


class TestFormatProperty:
    """Tests for format_property."""

    def test_text_unchanged(self):
        """Text values pass through."""
        prop = Property("title", PropertyType.TEXT, "局外人")
        assert format_property(prop) == prop

    def test_date_parsed(self):
        """DateTime values become datetimes."""
        prop = format_property(Property("publishDate", PropertyType.DATE_TIME, "2010-8-1"))
        assert prop.value == datetime(2010, 8, 1)
        assert prop.type_args == {}

    def test_unparseable_date_kept_with_subtype(self):
        """Unparseable dates keep their value and gain a datetime subtype."""
        prop = format_property(Property("publishDate", PropertyType.DATE_TIME, "sometime"))
        assert prop.value == "sometime"
        assert prop.type_args == {"subType": "datetime"}

    def test_number(self):
        """Number values become floats, NaN when invalid."""
        assert format_property(Property("rating", PropertyType.NUMBER, "9.1")).value == 9.1
        assert math.isnan(format_property(Property("rating", PropertyType.NUMBER, "n/a")).value)

    def test_boolean(self):
        """Boolean values follow to_boolean."""
        assert format_property(Property("read", PropertyType.BOOLEAN, "yes")).value is True

    def test_text_choices(self):
        """TextChoices carry their choices and the multi subtype."""
        prop = format_property(Property("genre", PropertyType.TEXT_CHOICES, "fiction nonfiction"))
        assert prop.value == ["fiction", "nonfiction"]
        assert prop.type_args == {
            "choices": [{"name": "fiction", "color": ""}, {"name": "nonfiction", "color": ""}],
            "subType": "multi",
        }

    def test_input_not_mutated(self):
        """The original property is left untouched."""
        original = Property("genre", PropertyType.TEXT_CHOICES, "a b", {"subType": "single"})
        format_property(original)
        assert original.value == "a b"
        assert original.type_args == {"subType": "single"}

    def test_idempotent(self):
        """Normalizing twice gives the same result."""
        props = [
            Property("genre", PropertyType.TEXT_CHOICES, "fiction fiction nonfiction"),
            Property("publishDate", PropertyType.DATE_TIME, "2010-8-1"),
            Property("rating", PropertyType.NUMBER, "9.1"),
            Property("read", PropertyType.BOOLEAN, "ok"),
        ]
        once = format_properties(props)
        assert format_properties(once) == once
