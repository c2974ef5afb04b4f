"""blockmeta - extract web page metadata into tagged block properties.

Example:
    from blockmeta import Config, ExtractionPipeline

    async with ExtractionPipeline(Config.from_env(), host=my_host) as pipeline:
        outcome = await pipeline.extract_into_block(block_id)
"""

from .core import (
    Config,
    ExtractionResult,
    Property,
    PropertyType,
    Rule,
)
from .extraction import RuleRegistry, get_default_rule_registry
from .services import ExtractionOutcome, ExtractionPipeline, ServiceContainer

__version__ = "0.1.0"

__all__ = [
    "Config",
    "ExtractionResult",
    "Property",
    "PropertyType",
    "Rule",
    "RuleRegistry",
    "get_default_rule_registry",
    "ExtractionOutcome",
    "ExtractionPipeline",
    "ServiceContainer",
]
