"""Reuters article pages (client-rendered, ``data-testid`` attributes)."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class ReutersStrategy(SelectorStrategy):
    name = "reuters"

    title_selectors = ('h1[data-testid="Text"]', 'h1[data-testid="Heading"]', "article h1")
    summary_selectors = ('[data-testid="ArticleBody"] p',)
    content_selectors = (
        '[data-testid="ArticleBody"] p',
        "article .article-body__content",
    )
    time_selectors = ("time[datetime]", '[data-testid="Timestamp"]')

    xpath_title = ("//h1[@data-testid='Text']", "//article//h1")
    xpath_summary = ("//*[@data-testid='ArticleBody']//p",)
    xpath_content = ("//*[@data-testid='ArticleBody']//p",)
    xpath_time = ("//time/@datetime", "//*[@data-testid='Timestamp']/@datetime")
