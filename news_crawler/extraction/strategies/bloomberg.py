"""Bloomberg article pages (client-rendered, fetched through the browser)."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class BloombergStrategy(SelectorStrategy):
    name = "bloomberg"

    title_selectors = ("h1", '[data-module="Article"] h1')
    summary_selectors = (".article-summary", '[data-module="Article"] .summary')
    content_selectors = (
        '[data-module="Article"] .body-copy',
        ".article-body",
        ".body-content",
    )
    time_selectors = ("time[datetime]", '[data-module="Article"] time')

    xpath_title = ("//h1", "//*[@data-module='Article']//h1")
    xpath_summary = ("//*[contains(@class, 'article-summary')]",)
    xpath_content = (
        "//*[@data-module='Article']//*[contains(@class, 'body-copy')]",
        "//*[contains(@class, 'article-body')]",
    )
    xpath_time = (
        "//time/@datetime",
        "//*[@data-module='Article']//time/@datetime",
    )
