"""Per-source extraction strategies and the static source → strategy mapping."""

from news_crawler.crawler.sources_config import NewsSource
from news_crawler.extraction.strategies.base import SelectorStrategy
from news_crawler.extraction.strategies.bloomberg import BloombergStrategy
from news_crawler.extraction.strategies.cnbc_crypto import CnbcCryptoStrategy
from news_crawler.extraction.strategies.cointelegraph import CointelegraphStrategy
from news_crawler.extraction.strategies.generic import GenericStrategy
from news_crawler.extraction.strategies.investing import InvestingStrategy
from news_crawler.extraction.strategies.reuters import ReutersStrategy
from news_crawler.extraction.strategies.yahoo_finance import YahooFinanceStrategy

GENERIC_STRATEGY = GenericStrategy()

STRATEGIES: dict[NewsSource, SelectorStrategy] = {
    NewsSource.BLOOMBERG: BloombergStrategy(),
    NewsSource.REUTERS: ReutersStrategy(),
    NewsSource.COINTELEGRAPH: CointelegraphStrategy(),
    NewsSource.CNBC_CRYPTO: CnbcCryptoStrategy(),
    NewsSource.YAHOO_FINANCE: YahooFinanceStrategy(),
    NewsSource.INVESTING: InvestingStrategy(),
}


def get_strategy(source: str) -> SelectorStrategy:
    """Strategy for a source key; unknown sources get the generic strategy."""
    news_source = NewsSource.from_key(source)
    if news_source is None:
        return GENERIC_STRATEGY
    return STRATEGIES.get(news_source, GENERIC_STRATEGY)


__all__ = [
    "GENERIC_STRATEGY",
    "STRATEGIES",
    "GenericStrategy",
    "SelectorStrategy",
    "get_strategy",
]
