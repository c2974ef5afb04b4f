"""Tests for ExtractionPipeline."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
import respx

from blockmeta.core.exceptions import FetchError, NoMatchingRuleError
from blockmeta.core.types import ContentItem, PropertyType, Rule
from blockmeta.services import ExtractionPipeline
from blockmeta.sources import CapturedSession, ProvidedDocumentSource
from tests.conftest import DOUBAN_URL
from tests.fakes import StaticPageSource

GENERIC_URL = "https://example.com/post"


@pytest.fixture
def source(douban_html, generic_html):
    return StaticPageSource({DOUBAN_URL: douban_html, GENERIC_URL: generic_html})


@pytest.fixture
def pipeline(config, host, registry, source):
    return ExtractionPipeline(config, host=host, rules=registry, source=source)


def link_block(host, url=DOUBAN_URL):
    return host.add_block([ContentItem(t="a", v="link", url=url)]).id


class TestExtract:
    """Tests for ExtractionPipeline.extract."""

    @pytest.mark.asyncio
    async def test_douban_page(self, pipeline):
        """A Douban page yields normalized book properties."""
        result = await pipeline.extract(DOUBAN_URL)

        assert result.rule.name == "Douban Book"
        assert result.get("title").value == "局外人"
        assert result.get("publishDate").value == datetime(2010, 8, 1)
        assert result.get("rating").value == 9.1
        assert result.get("ratingCount").value == 123456.0
        assert result.get("author").type_args["subType"] == "multi"
        assert result.get("cover").value.startswith("assets/")

    @pytest.mark.asyncio
    async def test_without_assets(self, pipeline, host):
        """Asset resolution can be skipped."""
        result = await pipeline.extract(DOUBAN_URL, resolve_assets=False)
        assert result.get("cover").value.startswith("https://img1.doubanio.com/")
        assert host.assets == {}

    @pytest.mark.asyncio
    async def test_generic_page(self, pipeline, host):
        """Other pages fall through to the generic rule without uploads."""
        result = await pipeline.extract(GENERIC_URL)
        assert result.rule.tag_name == "Link"
        assert result.get("title").value == "Example Article"
        assert result.get("cover").value == "https://example.com/images/cover.png"
        assert host.assets == {}

    @pytest.mark.asyncio
    async def test_errors_raise(self, config, host, source):
        """extract raises fatal errors to the caller."""
        pipeline = ExtractionPipeline(config, host=host, rules=[], source=source)
        with pytest.raises(NoMatchingRuleError):
            await pipeline.extract(DOUBAN_URL)

        pipeline = ExtractionPipeline(
            config, host=host, rules=[Rule("Any", ".*", "Any")], source=source
        )
        with pytest.raises(FetchError):
            await pipeline.extract("https://example.com/missing")


class TestExtractIntoBlock:
    """Tests for ExtractionPipeline.extract_into_block."""

    @pytest.mark.asyncio
    async def test_success(self, pipeline, host):
        """Metadata is applied and one success notification is sent."""
        block_id = link_block(host)

        outcome = await pipeline.extract_into_block(block_id)

        assert outcome.success
        assert outcome.reason is None
        assert outcome.message == "Added Book metadata for 《局外人》"
        assert [(n.level, n.message) for n in host.notifications] == [("success", outcome.message)]
        assert host.blocks[block_id].content == [ContentItem(t="t", v="《局外人》")]
        schema = {p.name: p for p in host.tag_schema("Book")}
        assert schema["author"].choice_names() == ["[法] 阿尔贝·加缪"]
        assert schema["rating"].type == PropertyType.NUMBER
        assert len(outcome.resolutions) == 1 and outcome.resolutions[0].resolved

    @pytest.mark.asyncio
    async def test_url_in_text(self, pipeline, host):
        """A URL in plain text is found too."""
        block_id = host.add_block([{"t": "t", "v": f"想读 {DOUBAN_URL}"}]).id
        outcome = await pipeline.extract_into_block(block_id)
        assert outcome.success
        assert outcome.url == DOUBAN_URL

    @pytest.mark.asyncio
    async def test_second_extraction_leaves_schema(self, pipeline, host):
        """Extracting the same book again writes no schema changes."""
        await pipeline.extract_into_block(link_block(host))
        outcome = await pipeline.extract_into_block(link_block(host))

        assert outcome.success
        assert outcome.applied.schema_changes == []
        assert len(host.calls_to("set_block_properties")) == 1

    @pytest.mark.asyncio
    async def test_no_url(self, pipeline, host, source):
        """A block without a URL fails before any fetch."""
        block_id = host.add_block([{"t": "t", "v": "just a note"}]).id

        outcome = await pipeline.extract_into_block(block_id)

        assert not outcome.success
        assert outcome.reason == "invalid_url"
        assert source.fetched == []
        assert [n.level for n in host.notifications] == ["error"]

    @pytest.mark.asyncio
    async def test_missing_block(self, pipeline, host):
        """An unknown block id is reported as having no URL."""
        outcome = await pipeline.extract_into_block(999999)
        assert outcome.reason == "invalid_url"

    @pytest.mark.asyncio
    async def test_block_read_failure(self, pipeline, host, source):
        """A failing block read is reported, not raised."""
        block_id = link_block(host)
        host.fail_get_block = True

        outcome = await pipeline.extract_into_block(block_id)

        assert outcome.reason == "block"
        assert source.fetched == []
        assert [n.level for n in host.notifications] == ["error"]

    @pytest.mark.asyncio
    async def test_fetch_failure_writes_nothing(self, pipeline, host):
        """A failed fetch notifies once and leaves the block alone."""
        block_id = link_block(host, "https://book.douban.com/subject/1/")

        outcome = await pipeline.extract_into_block(block_id)

        assert not outcome.success
        assert outcome.reason == "fetch"
        assert "HTTP 404" in outcome.message
        assert host.calls_to("insert_tag") == []
        assert host.calls_to("set_block_content") == []
        assert len(host.notifications) == 1

    @pytest.mark.asyncio
    async def test_script_failure(self, config, host, source):
        """A failing script is reported with reason ``script``."""
        rules = [Rule("Broken", ".*", "Broken", script=("return 'oops'",))]
        pipeline = ExtractionPipeline(config, host=host, rules=rules, source=source)

        outcome = await pipeline.extract_into_block(link_block(host))

        assert outcome.reason == "script"
        assert host.calls_to("insert_tag") == []

    @pytest.mark.asyncio
    async def test_no_rule(self, config, host, source):
        """No matching rule is reported with reason ``no_rule``."""
        rules = [Rule("Off", ".*", "Off", enabled=False)]
        pipeline = ExtractionPipeline(config, host=host, rules=rules, source=source)

        outcome = await pipeline.extract_into_block(link_block(host))

        assert outcome.reason == "no_rule"
        assert source.fetched == []

    @pytest.mark.asyncio
    async def test_apply_failure(self, pipeline, host):
        """A failing tag insertion is reported, not raised."""
        host.fail_insert_tag = True

        outcome = await pipeline.extract_into_block(link_block(host))

        assert not outcome.success
        assert outcome.reason == "apply"
        assert outcome.message.startswith("Failed to apply metadata")
        assert len(host.notifications) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_degraded_cover_still_succeeds(self, pipeline, host):
        """A cover that cannot be uploaded keeps its URL and extraction succeeds."""
        host.fail_upload_by_url = True
        respx.get(url__startswith="https://img1.doubanio.com/").respond(403)

        outcome = await pipeline.extract_into_block(link_block(host))

        assert outcome.success
        assert outcome.result.get("cover").value.startswith("https://img1.doubanio.com/")
        assert not outcome.resolutions[0].resolved

    @pytest.mark.asyncio
    async def test_notify_failure_is_swallowed(self, pipeline, host):
        """A failing notification does not change the outcome."""
        host.notify = AsyncMock(side_effect=RuntimeError("toast unavailable"))

        outcome = await pipeline.extract_into_block(link_block(host))

        assert outcome.success
        host.notify.assert_awaited_once()


class TestExtractUrlIntoBlock:
    """Tests for ExtractionPipeline.extract_url_into_block."""

    @pytest.mark.asyncio
    async def test_invalid_url(self, pipeline, host, source):
        """Malformed URLs fail with reason ``invalid_url``."""
        outcome = await pipeline.extract_url_into_block(host.add_block([]).id, "ftp://example.com/x")
        assert outcome.reason == "invalid_url"
        assert source.fetched == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["http://example.com:abc/", "https://example.com:70000/"])
    async def test_bad_port(self, pipeline, host, source, url):
        """A URL with an unusable port fails with one error notification."""
        outcome = await pipeline.extract_url_into_block(host.add_block([]).id, url)

        assert not outcome.success
        assert outcome.reason == "invalid_url"
        assert source.fetched == []
        assert [n.level for n in host.notifications] == ["error"]

    @pytest.mark.asyncio
    async def test_source_without_document(self, config, host, registry):
        """A source that has no page for the URL yields a fetch failure."""
        pipeline = ExtractionPipeline(
            config, host=host, rules=registry, source=ProvidedDocumentSource()
        )

        outcome = await pipeline.extract_url_into_block(host.add_block([]).id, GENERIC_URL)

        assert outcome.reason == "fetch"
        assert "no document provided" in outcome.message
        assert [n.level for n in host.notifications] == ["error"]
        assert host.calls_to("insert_tag") == []

    @pytest.mark.asyncio
    async def test_explicit_url(self, pipeline, host):
        """The given URL is used regardless of the block content."""
        block_id = host.add_block([{"t": "t", "v": "notes"}]).id
        outcome = await pipeline.extract_url_into_block(block_id, GENERIC_URL)
        assert outcome.success
        assert host.blocks[block_id].content == [ContentItem(t="t", v="《Example Article》")]


class TestExtractInteractive:
    """Tests for ExtractionPipeline.extract_interactive."""

    @pytest.mark.asyncio
    async def test_captured_page_is_not_fetched(self, pipeline, host, source, douban_html):
        """The captured document is used as is."""
        session = CapturedSession()
        block_id = host.add_block([]).id

        task = asyncio.create_task(pipeline.extract_interactive(block_id, session))
        await asyncio.sleep(0)
        session.capture(DOUBAN_URL, douban_html)
        outcome = await task

        assert outcome.success
        assert source.fetched == []
        assert outcome.result.get("title").value == "局外人"

    @pytest.mark.asyncio
    async def test_closed_session(self, pipeline, host):
        """Closing the session is a failed outcome, not an exception."""
        session = CapturedSession()
        block_id = host.add_block([]).id
        session.close()

        outcome = await pipeline.extract_interactive(block_id, session)

        assert not outcome.success
        assert outcome.reason == "closed"
        assert outcome.message.startswith("Extraction cancelled")
        assert [n.level for n in host.notifications] == ["error"]
        assert host.calls_to("insert_tag") == []

