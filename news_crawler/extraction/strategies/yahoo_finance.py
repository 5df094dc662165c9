"""Yahoo Finance article pages (``caas-body`` content module)."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class YahooFinanceStrategy(SelectorStrategy):
    name = "yahoo-finance"

    title_selectors = ("h1", '[data-module="Article"] h1')
    summary_selectors = (".caas-body p",)
    content_selectors = (".caas-body p",)
    time_selectors = ("time[datetime]", '[data-module="Article"] time')

    xpath_title = ("//h1",)
    xpath_summary = ("//*[contains(@class, 'caas-body')]//p",)
    xpath_content = ("//*[contains(@class, 'caas-body')]//p",)
