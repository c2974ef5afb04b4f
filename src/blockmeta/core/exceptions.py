"""Custom exceptions for blockmeta."""


class BlockMetaError(Exception):
    """Base exception for all blockmeta errors."""

    pass


class InvalidUrlError(BlockMetaError):
    """URL is empty or malformed."""

    def __init__(self, url: str, reason: str = "malformed URL"):
        """Initialize exception with the offending URL.

        Args:
            url: The URL that failed validation.
            reason: Why the URL was rejected.
        """
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class NoMatchingRuleError(BlockMetaError):
    """No enabled rule matches the URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"No enabled rule matches {url}")


class FetchError(BlockMetaError):
    """Fetching a page failed (network error or non-2xx response)."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ScriptExecutionError(BlockMetaError):
    """A rule script raised or returned malformed data."""

    def __init__(self, rule_name: str, reason: str):
        self.rule_name = rule_name
        self.reason = reason
        super().__init__(f"Script for rule '{rule_name}' failed: {reason}")


class AssetResolutionError(BlockMetaError):
    """An image asset could not be resolved to a local reference.

    Never escapes the asset resolver.
    """

    pass


class SchemaSyncError(BlockMetaError):
    """Updating a tag schema failed.

    Logged by the block applier; the extraction still succeeds.
    """

    def __init__(self, tag_block_id: int | str, reason: str):
        self.tag_block_id = tag_block_id
        self.reason = reason
        super().__init__(f"Failed to sync schema of tag block {tag_block_id}: {reason}")


class RuleConfigError(BlockMetaError):
    """A rule file or rule entry could not be loaded."""

    pass


class SessionClosedError(BlockMetaError):
    """The interactive session was closed before a page was captured."""

    pass


# Errors that abort an extraction and are reported to the user.
FATAL_ERRORS = (
    InvalidUrlError,
    NoMatchingRuleError,
    FetchError,
    ScriptExecutionError,
)
