"""CNBC cryptocurrency section article pages."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class CnbcCryptoStrategy(SelectorStrategy):
    name = "cnbc-crypto"

    title_selectors = ("h1.ArticleHeader-headline", "h1")
    summary_selectors = (".ArticleHeader-description",)
    content_selectors = (".ArticleBody-articleBody p", ".group p")
    time_selectors = ("time[datetime]", ".ArticleHeader-time")

    xpath_title = ("//h1[contains(@class, 'ArticleHeader-headline')]", "//h1")
    xpath_summary = ("//*[contains(@class, 'ArticleHeader-description')]",)
    xpath_content = ("//*[contains(@class, 'ArticleBody-articleBody')]//p",)
    xpath_time = (
        "//time/@datetime",
        "//*[contains(@class, 'ArticleHeader-time')]/@datetime",
    )
