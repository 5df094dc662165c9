"""
Tests for the template extraction method (scoring and self-healing).

============================================================
TEST SCENARIOS
============================================================
1. No stored template → generate, save, extract, label template-v1
2. Stored template succeeds → success counter bumped
3. Stored template fails below threshold → fail counter bumped, no regeneration
4. 3 successes + 5 fails, then another failure → regenerate and retry once
5. Template XPath fills in when CSS selectors miss
============================================================
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from news_crawler.extraction.html_utils import parse_html
from news_crawler.extraction.methods import TemplateMethod, extract_with_template, needs_regeneration
from news_crawler.extraction.models import ExtractionTemplate
from news_crawler.extraction.service import ExtractionService


URL = "https://cointelegraph.com/news/bitcoin-etf-inflows"

HTML = """
<html><body>
  <h1 class="headline">Bitcoin ETF inflows hit a monthly record</h1>
  <div class="story">
    <p>Spot bitcoin exchange-traded funds recorded their largest monthly inflows yet.</p>
    <p>Issuers reported steady demand from advisers and institutional allocators.</p>
    <p>Analysts said the trend could continue if macro conditions remain stable.</p>
  </div>
</body></html>
"""


def _template(**overrides) -> ExtractionTemplate:
    values = {
        "source": "cointelegraph",
        "title_selector": "h1.headline",
        "content_selector": "div.story",
    }
    values.update(overrides)
    return ExtractionTemplate(**values)


@pytest.fixture
def store():
    mock = MagicMock()
    mock.get_template = AsyncMock(return_value=None)
    mock.save_template = AsyncMock()
    mock.increment_success = AsyncMock()
    mock.increment_fail = AsyncMock()
    mock.regenerate_template = AsyncMock()
    return mock


@pytest.fixture
def generator():
    mock = MagicMock()
    mock.generate_template = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def context(store):
    return ExtractionService(store).build_context(URL, HTML, "cointelegraph")


# ============================================================
# TEST: REGENERATION THRESHOLD
# ============================================================

class TestNeedsRegeneration:

    @pytest.mark.parametrize(
        "success, fail, expected",
        [
            (3, 5, True),
            (0, 5, True),
            (5, 5, False),
            (0, 4, False),
            (10, 6, False),
        ],
    )
    def test_threshold(self, success, fail, expected):
        template = _template(success_count=success, fail_count=fail)

        assert needs_regeneration(template) is expected


# ============================================================
# TEST: TEMPLATE METHOD
# ============================================================

class TestTemplateMethod:

    @pytest.mark.asyncio
    async def test_generates_template_when_missing(self, store, generator, context):
        generator.generate_template.return_value = _template()

        result = await TemplateMethod(store, generator).execute(context)

        assert result.title == "Bitcoin ETF inflows hit a monthly record"
        assert context.used_strategy == "template-v1"
        store.save_template.assert_awaited_once()
        store.increment_success.assert_awaited_once_with("cointelegraph")

    @pytest.mark.asyncio
    async def test_generation_failure_yields(self, store, generator, context):
        result = await TemplateMethod(store, generator).execute(context)

        assert result is None
        store.save_template.assert_not_awaited()
        store.increment_fail.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_template_success(self, store, generator, context):
        store.get_template.return_value = _template(version=4, success_count=10)

        result = await TemplateMethod(store, generator).execute(context)

        assert result is not None
        assert context.used_strategy == "template-v4"
        generator.generate_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_below_threshold_does_not_regenerate(self, store, generator, context):
        store.get_template.return_value = _template(
            content_selector="div.missing", success_count=3, fail_count=4
        )

        result = await TemplateMethod(store, generator).execute(context)

        assert result is None
        store.increment_fail.assert_awaited_once_with("cointelegraph")
        generator.generate_template.assert_not_awaited()
        store.regenerate_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_above_threshold_regenerates_and_retries(self, store, generator, context):
        store.get_template.return_value = _template(
            content_selector="div.missing", success_count=3, fail_count=5
        )
        candidate = _template()
        generator.generate_template.return_value = candidate
        store.regenerate_template.return_value = _template(version=2)

        result = await TemplateMethod(store, generator).execute(context)

        assert result is not None
        assert context.used_strategy == "template-v2"
        store.increment_fail.assert_awaited_once_with("cointelegraph")
        store.regenerate_template.assert_awaited_once_with("cointelegraph", candidate)
        store.increment_success.assert_awaited_once_with("cointelegraph")

    @pytest.mark.asyncio
    async def test_regeneration_failure_yields(self, store, generator, context):
        store.get_template.return_value = _template(
            content_selector="div.missing", success_count=0, fail_count=7
        )

        result = await TemplateMethod(store, generator).execute(context)

        assert result is None
        generator.generate_template.assert_awaited_once()
        store.regenerate_template.assert_not_awaited()


# ============================================================
# TEST: TEMPLATE APPLICATION
# ============================================================

class TestExtractWithTemplate:

    def test_css_selectors(self):
        result = extract_with_template(parse_html(HTML), _template())

        assert result.full_text.count("\n\n") == 2

    def test_xpath_fallback(self, context):
        template = _template(
            title_selector="h1.gone",
            content_selector="div.gone",
            xpath_title="//h1",
            xpath_content="//div[@class='story']",
        )

        result = extract_with_template(context.doc, template, context)

        assert result.title == "Bitcoin ETF inflows hit a monthly record"
        assert result.full_text.startswith("Spot bitcoin exchange-traded funds")

    def test_unclean_title_is_skipped(self):
        html = HTML.replace(
            "Bitcoin ETF inflows hit a monthly record", "Markets | Cointelegraph"
        )

        assert extract_with_template(parse_html(html), _template()) is None
