"""
암호화폐 티커 어휘집과 텍스트 기반 티커 추출.

뉴스 제목/본문에서 심볼(BTC), 거래쌍(BTCUSDT, ETH/USD, BTC-USDT),
코인 이름(Bitcoin, Ethereum)을 찾아 USDT 거래쌍 형식으로 정규화한다.
"""

import re

from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 추적 대상 심볼
KNOWN_TICKERS: list[str] = [
    "BTC", "ETH", "SOL", "BNB", "ADA", "XRP", "DOGE", "DOT", "MATIC", "AVAX",
    "LINK", "UNI", "LTC", "ATOM", "ETC", "XLM", "ALGO", "VET", "ICP", "FIL",
    "TRX", "NEAR", "APT", "OP", "ARB", "INJ", "TIA", "SUI", "SEI", "WLD",
    "PEPE", "SHIB", "FLOKI", "BONK", "FET", "RENDER", "RUNE", "THETA", "FTM",
    "SAND", "MANA", "AXS", "ENJ", "GALA", "CHZ", "FLOW", "IMX", "GMT", "APE",
]

_KNOWN_TICKER_SET: frozenset[str] = frozenset(KNOWN_TICKERS)

# 코인 이름 → 심볼
# 일반 영단어와 겹치는 이름(Flow, Sand, Render, Gala 등)은 대문자 심볼로만 잡는다.
COIN_NAME_TO_TICKER: dict[str, str] = {
    "BITCOIN": "BTC",
    "ETHEREUM": "ETH",
    "SOLANA": "SOL",
    "BINANCE COIN": "BNB",
    "CARDANO": "ADA",
    "RIPPLE": "XRP",
    "DOGECOIN": "DOGE",
    "POLKADOT": "DOT",
    "POLYGON": "MATIC",
    "AVALANCHE": "AVAX",
    "CHAINLINK": "LINK",
    "UNISWAP": "UNI",
    "LITECOIN": "LTC",
    "COSMOS": "ATOM",
    "ETHEREUM CLASSIC": "ETC",
    "STELLAR": "XLM",
    "ALGORAND": "ALGO",
    "VECHAIN": "VET",
    "INTERNET COMPUTER": "ICP",
    "FILECOIN": "FIL",
    "TRON": "TRX",
    "NEAR PROTOCOL": "NEAR",
    "APTOS": "APT",
    "OPTIMISM": "OP",
    "ARBITRUM": "ARB",
    "INJECTIVE": "INJ",
    "CELESTIA": "TIA",
    "WORLDCOIN": "WLD",
    "PEPE": "PEPE",
    "SHIBA INU": "SHIB",
    "FLOKI": "FLOKI",
    "BONK": "BONK",
    "FETCH.AI": "FET",
    "THORCHAIN": "RUNE",
    "FANTOM": "FTM",
    "DECENTRALAND": "MANA",
    "AXIE INFINITY": "AXS",
    "ENJIN": "ENJ",
    "CHILIZ": "CHZ",
    "IMMUTABLE X": "IMX",
    "STEPN": "GMT",
    "APECOIN": "APE",
}

QUOTE_CURRENCIES: tuple[str, ...] = ("USDT", "USD", "EUR", "GBP", "JPY")

# BTCUSDT, ETH/USD, BTC-USDT 형태의 거래쌍
_PAIR_PATTERN = re.compile(
    r"\b([A-Z]{2,10}?)[/-]?(?:USDT|USD|EUR|GBP|JPY)\b",
    re.IGNORECASE,
)

_STANDALONE_PATTERNS: dict[str, re.Pattern[str]] = {
    ticker: re.compile(rf"(?<![A-Za-z0-9]){ticker}(?![A-Za-z0-9])")
    for ticker in KNOWN_TICKERS
}

_NAME_PATTERNS: dict[str, re.Pattern[str]] = {
    name: re.compile(
        r"\b" + r"\s+".join(re.escape(part) for part in name.split()) + r"\b",
        re.IGNORECASE,
    )
    for name in COIN_NAME_TO_TICKER
}


def to_usdt_pair(ticker: str) -> str:
    """심볼을 USDT 거래쌍으로 정규화한다. 이미 거래쌍이면 그대로 둔다."""
    upper = ticker.upper()
    if upper.endswith(QUOTE_CURRENCIES):
        return upper
    return f"{upper}USDT"


def extract_tickers(text: str) -> list[str]:
    """텍스트에서 암호화폐 티커를 추출한다.

    1. 거래쌍 패턴 (기초 심볼이 어휘집에 있을 때만)
    2. 대문자 단독 심볼
    3. 코인 이름 (대소문자 무시)

    Args:
        text: 제목과 본문을 합친 텍스트.

    Returns:
        발견 순서대로 정렬된 USDT 거래쌍 목록 (중복 제거).
    """
    if not text:
        return []

    found: dict[str, None] = {}

    for match in _PAIR_PATTERN.finditer(text):
        base = match.group(1).upper()
        if base in _KNOWN_TICKER_SET:
            found[base] = None

    for ticker, pattern in _STANDALONE_PATTERNS.items():
        if pattern.search(text):
            found[ticker] = None

    for name, pattern in _NAME_PATTERNS.items():
        if pattern.search(text):
            found[COIN_NAME_TO_TICKER[name]] = None

    return [to_usdt_pair(t) for t in found]
