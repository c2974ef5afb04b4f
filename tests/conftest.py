"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from blockmeta.core.config import Config
from blockmeta.core.types import Rule
from blockmeta.extraction.loader import load_default_rules
from blockmeta.extraction.registry import RuleRegistry
from tests.fakes import RecordingHost

DOUBAN_URL = "https://book.douban.com/subject/4908885/"


@pytest.fixture
def fixtures_dir() -> Path:
    """Provide path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def douban_html(fixtures_dir: Path) -> str:
    """HTML of a Douban book subject page."""
    return (fixtures_dir / "douban_subject.html").read_text(encoding="utf-8")


@pytest.fixture
def generic_html(fixtures_dir: Path) -> str:
    """HTML of a page with only generic meta tags."""
    return (fixtures_dir / "generic_page.html").read_text(encoding="utf-8")


@pytest.fixture
def config() -> Config:
    """Provide a default Config."""
    return Config()


@pytest.fixture
def default_rules() -> list[Rule]:
    """Built-in rules, freshly loaded."""
    return load_default_rules()


@pytest.fixture
def registry(default_rules: list[Rule]) -> RuleRegistry:
    """Registry holding the built-in rules."""
    return RuleRegistry(default_rules)


@pytest.fixture
def host() -> RecordingHost:
    """In-memory host that records every call."""
    return RecordingHost()
