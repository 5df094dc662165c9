"""유틸리티 모듈 패키지."""
from news_crawler.utils.config import Settings, get_settings
from news_crawler.utils.logger import get_logger, setup_logging
from news_crawler.utils.ticker_mapping import extract_tickers

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "extract_tickers",
]
