"""Post-extraction property handling.

- normalize: coerce values to their declared PropertyType
- assets: upload image properties and keep originals on failure
- schema: grow a tag's property schema without losing existing choices
"""

from .assets import (
    AssetResolution,
    AssetResolver,
    decode_data_uri,
    is_image_candidate,
)
from .normalize import (
    TRUE_STRINGS,
    format_properties,
    format_property,
    to_boolean,
    to_choices,
    to_datetime,
    to_number,
)
from .schema import SchemaReconciler, plan_schema_changes

__all__ = [
    "format_properties",
    "format_property",
    "to_boolean",
    "to_choices",
    "to_datetime",
    "to_number",
    "TRUE_STRINGS",
    "AssetResolution",
    "AssetResolver",
    "decode_data_uri",
    "is_image_candidate",
    "SchemaReconciler",
    "plan_schema_changes",
]
