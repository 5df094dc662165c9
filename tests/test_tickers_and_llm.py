"""
Tests for ticker extraction (vocabulary + LLM fallback) and the Claude client wrappers.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from news_crawler.analysis.claude_client import ClaudeClient
from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.utils.ticker_mapping import extract_tickers, to_usdt_pair


def _message(text: str):
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=120, output_tokens=30),
    )


@pytest.fixture
def client():
    return ClaudeClient(api_key="test-key", max_retries=2)


@pytest.fixture
def enabled_llm():
    mock_client = MagicMock()
    mock_client.is_enabled = True
    mock_client.call_json = AsyncMock()
    return LLMExtractor(mock_client)


# ============================================================
# TEST: VOCABULARY MATCHING
# ============================================================

class TestExtractTickers:

    def test_coin_name_in_headline(self):
        assert extract_tickers("Bitcoin price surges past $70k") == ["BTCUSDT"]

    def test_trading_pairs(self):
        tickers = extract_tickers("ETH/USD slipped while BTC-USDT held and SOLUSDT rallied")

        assert tickers == ["ETHUSDT", "BTCUSDT", "SOLUSDT"]

    def test_names_are_case_insensitive(self):
        assert set(extract_tickers("solana and Cardano lead the altcoin rally")) == {
            "SOLUSDT",
            "ADAUSDT",
        }

    def test_symbols_inside_words_are_ignored(self):
        assert extract_tickers("OPENAI and DOTCOM stocks climbed") == []

    def test_unknown_pair_base_is_ignored(self):
        assert extract_tickers("The EUR/USD pair moved higher") == []

    def test_duplicates_removed(self):
        assert extract_tickers("BTC, Bitcoin and BTCUSDT") == ["BTCUSDT"]

    def test_empty_text(self):
        assert extract_tickers("") == []

    def test_to_usdt_pair(self):
        assert to_usdt_pair("eth") == "ETHUSDT"
        assert to_usdt_pair("BTCUSDT") == "BTCUSDT"


# ============================================================
# TEST: LLM EXTRACTOR
# ============================================================

class TestLLMExtractor:

    @pytest.mark.asyncio
    async def test_ticker_filter(self, enabled_llm):
        enabled_llm.client.call_json.return_value = [
            "btcusdt",
            "ETHUSDT",
            "BTCUSDT",
            "USDT",
            "ETH",
            "AVERYLONGNAMEUSDT",
            42,
        ]

        tickers = await enabled_llm.extract_tickers("Title", "Content")

        assert tickers == ["BTCUSDT", "ETHUSDT"]

    @pytest.mark.asyncio
    async def test_ticker_non_list_response(self, enabled_llm):
        enabled_llm.client.call_json.return_value = {"tickers": ["BTCUSDT"]}

        assert await enabled_llm.extract_tickers("Title", "Content") == []

    @pytest.mark.asyncio
    async def test_invalid_json_is_swallowed(self, enabled_llm):
        enabled_llm.client.call_json.side_effect = ValueError("no json")

        assert await enabled_llm.extract_tickers("Title", "Content") == []
        assert await enabled_llm.extract_from_html("https://x.com/a", "<html/>") is None

    @pytest.mark.asyncio
    async def test_extract_from_html(self, enabled_llm):
        enabled_llm.client.call_json.return_value = {
            "title": "  Bitcoin   hits a record  ",
            "summary": "Short summary",
            "fullText": "First paragraph.\n\nSecond paragraph.",
            "publishTime": "2026-10-19T08:30:00Z",
        }

        content = await enabled_llm.extract_from_html("https://x.com/a", "<html/>")

        assert content.title == "Bitcoin hits a record"
        assert content.full_text == "First paragraph.\n\nSecond paragraph."
        assert content.publish_time.year == 2026

    @pytest.mark.asyncio
    async def test_extract_requires_title_and_body(self, enabled_llm):
        enabled_llm.client.call_json.return_value = {"title": "Only a title", "fullText": ""}

        assert await enabled_llm.extract_from_html("https://x.com/a", "<html/>") is None

    @pytest.mark.asyncio
    async def test_disabled_client_returns_nothing(self):
        llm = LLMExtractor(ClaudeClient(api_key=""))

        assert llm.is_enabled is False
        assert await llm.extract_tickers("Title", "Content") == []
        assert await llm.generate_selectors("cointelegraph", "u", "<html/>", "") is None


# ============================================================
# TEST: CLAUDE CLIENT
# ============================================================

class TestClaudeClient:

    @pytest.mark.asyncio
    async def test_call_without_key_raises(self):
        with pytest.raises(RuntimeError):
            await ClaudeClient(api_key="").call("prompt", "ticker_extraction")

    @pytest.mark.asyncio
    async def test_call_json_and_cache(self, client):
        create = AsyncMock(return_value=_message('```json\n["BTCUSDT"]\n```'))
        with patch.object(client.client.messages, "create", create):
            first = await client.call_json("prompt", "ticker_extraction")
            second = await client.call_json("prompt", "ticker_extraction")

        assert first == ["BTCUSDT"]
        assert second == ["BTCUSDT"]
        assert create.await_count == 1
        assert create.await_args.kwargs["max_tokens"] == 256
        assert client.get_usage_stats()["calls"] == 1

    @pytest.mark.asyncio
    async def test_cache_can_be_bypassed(self, client):
        create = AsyncMock(return_value=_message('{"titleSelector": "h1"}'))
        with patch.object(client.client.messages, "create", create):
            await client.call_json("prompt", "template_generation", use_cache=False)
            await client.call_json("prompt", "template_generation", use_cache=False)

        assert create.await_count == 2

    @pytest.mark.parametrize(
        "text, expected",
        [
            ('{"a": 1}', {"a": 1}),
            ('Here you go:\n```json\n{"a": 1}\n```', {"a": 1}),
            ('Result: ["BTCUSDT", "ETHUSDT"] done', ["BTCUSDT", "ETHUSDT"]),
            ('Template follows {"titleSelector": "h1"} as requested', {"titleSelector": "h1"}),
        ],
    )
    def test_extract_json(self, text, expected):
        assert ClaudeClient._extract_json(text) == expected

    def test_extract_json_failure(self):
        with pytest.raises(ValueError):
            ClaudeClient._extract_json("no json here")
