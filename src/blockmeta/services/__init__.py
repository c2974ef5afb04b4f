"""Service layer for blockmeta.

- ExtractionPipeline: URL -> properties -> block, with terminal notification
- BlockApplier: tag insertion, schema reconciliation and title rewrite
- ServiceContainer: shared HTTP client and lazily built services
"""

from .applier import ApplyResult, BlockApplier, find_title
from .container import ServiceContainer
from .pipeline import ExtractionOutcome, ExtractionPipeline

__all__ = [
    "ApplyResult",
    "BlockApplier",
    "find_title",
    "ExtractionOutcome",
    "ExtractionPipeline",
    "ServiceContainer",
]
