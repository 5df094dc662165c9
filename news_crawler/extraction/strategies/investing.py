"""Investing.com article pages."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class InvestingStrategy(SelectorStrategy):
    name = "investing"

    title_selectors = ("h1.articleHeader", "article h1")
    summary_selectors = (".articleSummary",)
    content_selectors = (".articlePage p",)
    time_selectors = ("time[datetime]", ".articleDate")

    xpath_title = ("//h1[contains(@class, 'articleHeader')]", "//article//h1")
    xpath_summary = ("//*[contains(@class, 'articleSummary')]",)
    xpath_content = ("//*[contains(@class, 'articlePage')]//p",)
    xpath_time = ("//time/@datetime", "//*[contains(@class, 'articleDate')]/@datetime")
