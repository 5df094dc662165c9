"""Cointelegraph article pages (BEM class names: ``post__title``, ``post__text``)."""

from news_crawler.extraction.strategies.base import SelectorStrategy


class CointelegraphStrategy(SelectorStrategy):
    name = "cointelegraph"

    title_selectors = (
        ".post__title",
        "h1.post__title",
        "article h1",
        "h1",
        '[itemprop="headline"]',
        ".article-title",
    )
    summary_selectors = (
        ".post__lead",
        ".article-lead",
        ".summary",
        "article > p:first-of-type",
        '[itemprop="description"]',
    )
    content_selectors = (
        ".post__text",
        ".post-content",
        ".article-content",
        "article .content",
        '[itemprop="articleBody"]',
        "article",
    )
    time_selectors = ("time[datetime]", ".post__date")

    xpath_title = (
        "//*[contains(concat(' ', normalize-space(@class), ' '), ' post__title ')]",
        "//article//h1",
        "//h1",
    )
    xpath_summary = (
        "//*[contains(concat(' ', normalize-space(@class), ' '), ' post__lead ')]",
    )
    xpath_content = (
        "//*[contains(concat(' ', normalize-space(@class), ' '), ' post__text ')]",
        "//*[contains(concat(' ', normalize-space(@class), ' '), ' post-content ')]",
        "//*[@itemprop='articleBody']",
        "//article",
    )
    xpath_time = (
        "//time/@datetime",
        "//*[contains(@class, 'post__date')]/@datetime",
    )
