"""
Tests for LLM template generation and validation.

============================================================
TEST SCENARIOS
============================================================
1. Valid selectors → template version 1 with cleaned selector lists
2. Title-only ("title") selector → rejected
3. Content element with fewer than 3 paragraphs → rejected
4. LLM disabled or non-article URL → None without calling the LLM
5. Missing selectors / unusable response → None
============================================================
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from news_crawler.crawler.exceptions import TemplateValidationError
from news_crawler.extraction.html_utils import parse_html
from news_crawler.extraction.template_generator import (
    TemplateGenerator,
    clean_title_selector,
    extract_sample_structure,
    validate_template,
)


ARTICLE_URL = "https://cointelegraph.com/news/bitcoin-etf-inflows"

ARTICLE_HTML = """
<html><head><title>Bitcoin ETF inflows | Cointelegraph</title></head><body>
  <h1 class="post__title">Bitcoin ETF inflows hit a monthly record</h1>
  <div class="post__text">
    <p>Spot bitcoin exchange-traded funds recorded their largest monthly inflows yet.</p>
    <p>Issuers reported steady demand from advisers and institutional allocators.</p>
    <p>Analysts said the trend could continue if macro conditions remain stable.</p>
  </div>
  <div class="teaser"><p>One paragraph only in this teaser block here.</p></div>
</body></html>
"""


@pytest.fixture
def llm():
    mock = MagicMock()
    mock.is_enabled = True
    mock.generate_selectors = AsyncMock(
        return_value={
            "titleSelector": "title, .post__title, h1",
            "summarySelector": ".post__lead",
            "contentSelector": ".post__text, article",
            "publishTimeSelector": "time[datetime]",
            "xpathTitle": "//h1",
            "xpathContent": "//div[@class='post__text']",
        }
    )
    return mock


@pytest.fixture
def generator(llm):
    return TemplateGenerator(llm)


# ============================================================
# TEST: VALIDATION
# ============================================================

class TestValidateTemplate:

    def test_accepts_clean_title_and_multi_paragraph_body(self):
        validate_template(parse_html(ARTICLE_HTML), ".post__title", ".post__text")

    def test_rejects_page_title_selector(self):
        with pytest.raises(TemplateValidationError, match="title"):
            validate_template(parse_html(ARTICLE_HTML), "title", ".post__text")

    def test_rejects_content_with_fewer_than_three_paragraphs(self):
        with pytest.raises(TemplateValidationError, match="content"):
            validate_template(parse_html(ARTICLE_HTML), ".post__title", ".teaser")

    def test_rejects_site_suffixed_title(self):
        html = ARTICLE_HTML.replace(
            "Bitcoin ETF inflows hit a monthly record", "Bitcoin ETF inflows | Cointelegraph"
        )
        with pytest.raises(TemplateValidationError):
            validate_template(parse_html(html), ".post__title", ".post__text")

    def test_clean_title_selector(self):
        assert clean_title_selector("title, head > title, h1.headline") == "h1.headline"
        assert clean_title_selector("title") == ""

    def test_sample_structure_lists_candidates(self):
        sample = extract_sample_structure(parse_html(ARTICLE_HTML))

        assert 'Title candidate: <h1 class="post__title">' in sample
        assert 'Content candidate: <div class="post__text"> (3 paragraphs)' in sample

    def test_sample_structure_without_candidates(self):
        assert extract_sample_structure(parse_html("<p>x</p>")) == "No obvious article structure found"


# ============================================================
# TEST: GENERATION
# ============================================================

class TestGenerateTemplate:

    @pytest.mark.asyncio
    async def test_generates_validated_template(self, generator, llm):
        template = await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL)

        assert template is not None
        assert template.version == 1
        assert template.source == "cointelegraph"
        assert template.title_selector == ".post__title, h1"
        assert template.content_selector == ".post__text, article"
        assert template.xpath_title == "//h1"
        assert template.success_count == 0 and template.fail_count == 0
        kwargs = llm.generate_selectors.await_args.kwargs
        assert "post__title" in kwargs["reference_hints"]

    @pytest.mark.asyncio
    async def test_reference_hints_can_be_disabled(self, generator, llm):
        await generator.generate_template(
            "cointelegraph", ARTICLE_HTML, ARTICLE_URL, use_reference_hints=False
        )

        assert llm.generate_selectors.await_args.kwargs["reference_hints"] == ""

    @pytest.mark.asyncio
    async def test_title_only_selector_rejected(self, generator, llm):
        llm.generate_selectors.return_value = {
            "titleSelector": "title",
            "contentSelector": ".post__text",
        }

        assert await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL) is None

    @pytest.mark.asyncio
    async def test_thin_content_rejected(self, generator, llm):
        llm.generate_selectors.return_value = {
            "titleSelector": ".post__title",
            "contentSelector": ".teaser",
        }

        assert await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL) is None

    @pytest.mark.asyncio
    async def test_missing_selectors_rejected(self, generator, llm):
        llm.generate_selectors.return_value = {"titleSelector": ".post__title"}

        assert await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL) is None

    @pytest.mark.asyncio
    async def test_unusable_response(self, generator, llm):
        llm.generate_selectors.return_value = None

        assert await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL) is None

    @pytest.mark.asyncio
    async def test_listing_page_skipped(self, generator, llm):
        result = await generator.generate_template(
            "cointelegraph", ARTICLE_HTML, "https://cointelegraph.com/tags/bitcoin/"
        )

        assert result is None
        llm.generate_selectors.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_without_llm(self):
        generator = TemplateGenerator(None)

        assert generator.is_enabled is False
        assert await generator.generate_template("cointelegraph", ARTICLE_HTML, ARTICLE_URL) is None
