"""Rule inspection commands for blockmeta CLI."""

from ...core.config import Config
from ...extraction.registry import RuleRegistry, get_default_rule_registry
from ._output import print_json


def _load_registry(config: Config) -> RuleRegistry:
    if config.rules_path is not None:
        return RuleRegistry.from_file(config.rules_path)
    return get_default_rule_registry()


def handle_rules(args, config: Config) -> None:
    """List rules in priority order.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    registry = _load_registry(config)
    print(f"Rules ({len(registry)}):")
    for i, rule in enumerate(registry.list_rules(), start=1):
        state = "" if rule.enabled else " [disabled]"
        print(f"  {i}. {rule.name}{state}")
        print(f"     pattern: {rule.url_pattern}")
        print(f"     tag: {rule.tag_name}  download cover: {rule.download_cover}")


def handle_match(args, config: Config) -> None:
    """Show which rule a URL matches.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    rule = _load_registry(config).match_or_raise(args.url)
    print_json({"url": args.url, "rule": rule.name, "tagName": rule.tag_name})
