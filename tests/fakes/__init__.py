"""Test fakes for testing without a real host application.

Example:
    from tests.fakes import RecordingHost

    host = RecordingHost(fail_upload_by_url=True)
    pipeline = ExtractionPipeline(Config(), host=host, rules=rules)
"""

from .host import RecordingHost, StaticPageSource

__all__ = [
    "RecordingHost",
    "StaticPageSource",
]
