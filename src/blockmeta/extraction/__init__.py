"""Rule-driven metadata extraction.

Provides:
- RuleRegistry / match_rule: choose the rule for a URL (first match wins)
- run_script: execute a rule's script against a parsed page
- base_meta / clean_url: generic page metadata available to every script
- load_rules / load_default_rules: read rule files
"""

from .generic import base_meta, clean_url, extract_cover, extract_title
from .loader import load_default_rules, load_rules, parse_rules
from .registry import (
    RuleRegistry,
    compile_url_pattern,
    get_default_rule_registry,
    match_rule,
)
from .sandbox import compile_script, run_script

__all__ = [
    "RuleRegistry",
    "compile_url_pattern",
    "match_rule",
    "get_default_rule_registry",
    "load_rules",
    "load_default_rules",
    "parse_rules",
    "run_script",
    "compile_script",
    "base_meta",
    "clean_url",
    "extract_title",
    "extract_cover",
]
