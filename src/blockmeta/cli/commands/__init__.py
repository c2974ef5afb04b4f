"""Command implementations for blockmeta CLI."""

from .extract import add_extract_arguments, handle_extract
from .rules import handle_match, handle_rules
from .search import handle_search

__all__ = [
    "add_extract_arguments",
    "handle_extract",
    "handle_match",
    "handle_rules",
    "handle_search",
]
