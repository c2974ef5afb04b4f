"""Type definitions for blockmeta."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Mapping


class PropertyType(IntEnum):
    """Property types understood by the host application.

    Values are the wire representation and must not change.
    """

    JSON = 0
    TEXT = 1
    BLOCK_REFS = 2
    NUMBER = 3
    BOOLEAN = 4
    DATE_TIME = 5
    TEXT_CHOICES = 6

    @classmethod
    def coerce(cls, value: Any) -> "PropertyType":
        """Resolve a wire value or a member name to a PropertyType.

        Accepts ``3``, ``"3"``, ``"NUMBER"``, ``"Number"`` and ``"TextChoices"``.

        Raises:
            ValueError: If the value names no member.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown property type: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls(int(text))
            key = text.replace("_", "").lower()
            for member in cls:
                if member.name.replace("_", "").lower() == key:
                    return member
        raise ValueError(f"Unknown property type: {value!r}")


@dataclass(frozen=True)
class Choice:
    """A selectable option of a TextChoices property."""

    name: str
    color: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "color": self.color}


@dataclass
class Property:
    """A single named, typed value attached to a block through a tag.

    Attributes:
        name: Property name, unique within one property set.
        type: Declared property type.
        value: Runtime value; its shape matches ``type`` after normalization.
        type_args: Extra type arguments (``subType``, ``choices``, ...).
    """

    name: str
    type: PropertyType
    value: Any = None
    type_args: dict[str, Any] = field(default_factory=dict)

    @property
    def sub_type(self) -> str | None:
        """The ``subType`` type argument, if any."""
        return self.type_args.get("subType")

    def choice_names(self) -> list[str]:
        """Names of the choices carried in ``type_args``."""
        names = []
        for choice in self.type_args.get("choices") or []:
            if isinstance(choice, Mapping):
                name = choice.get("name")
            else:
                name = getattr(choice, "name", choice)
            if name:
                names.append(str(name))
        return names

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted wire shape."""
        data: dict[str, Any] = {
            "name": self.name,
            "type": int(self.type),
            "value": self.value,
        }
        if self.type_args:
            data["typeArgs"] = self.type_args
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Property":
        """Create a Property from its wire shape.

        Raises:
            ValueError: If the mapping lacks a name or carries an unknown type.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Expected a mapping, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Property is missing a name: {dict(data)!r}")
        if "type" not in data:
            raise ValueError(f"Property '{name}' is missing a type")

        type_args = data.get("typeArgs", data.get("type_args")) or {}
        if not isinstance(type_args, Mapping):
            raise ValueError(f"Property '{name}' has non-mapping typeArgs")

        return cls(
            name=name,
            type=PropertyType.coerce(data["type"]),
            value=data.get("value"),
            type_args=dict(type_args),
        )


@dataclass(frozen=True)
class Rule:
    """Configuration pairing a URL pattern with an extraction script.

    Attributes:
        name: Human-readable rule name.
        enabled: Disabled rules never match.
        url_pattern: Regex source, or a ``/pattern/flags`` literal.
        tag_name: Tag applied to the target block.
        download_cover: Whether image properties are uploaded as assets.
        script: Extraction script, one source line per entry.
        title_property: Property whose value becomes the block's text.
    """

    name: str
    url_pattern: str
    tag_name: str
    enabled: bool = True
    download_cover: bool = False
    script: tuple[str, ...] = ()
    title_property: str = "title"

    @property
    def source(self) -> str:
        """The script lines joined into a function body."""
        return "\n".join(self.script)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Create a Rule from a config entry (camelCase or snake_case keys).

        Raises:
            ValueError: If a required key is missing.
        """
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        name = pick("name")
        url_pattern = pick("urlPattern", "url_pattern")
        tag_name = pick("tagName", "tag_name")
        for key, value in (("name", name), ("urlPattern", url_pattern), ("tagName", tag_name)):
            if not isinstance(value, str) or not value:
                raise ValueError(f"Rule entry is missing '{key}': {dict(data)!r}")

        script = pick("script", default=())
        if isinstance(script, str):
            lines = tuple(script.splitlines())
        else:
            lines = tuple(str(line) for line in script or ())

        return cls(
            name=name,
            url_pattern=url_pattern,
            tag_name=tag_name,
            enabled=bool(pick("enabled", default=True)),
            download_cover=bool(pick("downloadCover", "download_cover", default=False)),
            script=lines,
            title_property=pick("titleProperty", "title_property", default="title"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "urlPattern": self.url_pattern,
            "tagName": self.tag_name,
            "downloadCover": self.download_cover,
            "titleProperty": self.title_property,
            "script": list(self.script),
        }


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction invocation."""

    url: str
    metadata: tuple[Property, ...]
    rule: Rule

    def get(self, name: str) -> Property | None:
        """Return the property called ``name``, if extracted."""
        for prop in self.metadata:
            if prop.name == name:
                return prop
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "rule": self.rule.name,
            "tagName": self.rule.tag_name,
            "metadata": [prop.to_dict() for prop in self.metadata],
        }


@dataclass(frozen=True)
class ContentItem:
    """One inline fragment of a block's content.

    ``t == "a"`` marks a link item carrying ``url``; ``t == "t"`` is plain text.
    """

    t: str
    v: str | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"t": self.t}
        if self.v is not None:
            data["v"] = self.v
        if self.url is not None:
            data["url"] = self.url
        return data


@dataclass
class Block:
    """A host block as seen by the pipeline.

    Tag blocks carry their property schema in ``properties``.
    """

    id: int | str
    content: list[ContentItem] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)
