"""Core types, configuration and errors for blockmeta."""

from .config import ApplierConfig, AssetConfig, Config, HTTPConfig
from .exceptions import (
    FATAL_ERRORS,
    AssetResolutionError,
    BlockMetaError,
    FetchError,
    InvalidUrlError,
    NoMatchingRuleError,
    RuleConfigError,
    SchemaSyncError,
    ScriptExecutionError,
    SessionClosedError,
)
from .types import (
    Block,
    Choice,
    ContentItem,
    ExtractionResult,
    Property,
    PropertyType,
    Rule,
)

__all__ = [
    "Config",
    "HTTPConfig",
    "AssetConfig",
    "ApplierConfig",
    "BlockMetaError",
    "InvalidUrlError",
    "NoMatchingRuleError",
    "FetchError",
    "ScriptExecutionError",
    "AssetResolutionError",
    "SchemaSyncError",
    "RuleConfigError",
    "SessionClosedError",
    "FATAL_ERRORS",
    "PropertyType",
    "Choice",
    "Property",
    "Rule",
    "ExtractionResult",
    "ContentItem",
    "Block",
]
