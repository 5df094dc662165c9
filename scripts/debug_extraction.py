#!/usr/bin/env python3
"""
기사 URL 하나에 대해 추출 체인을 실행해 각 단계의 결과를 출력하는 디버그 스크립트.

DB/Redis 없이 동작하도록 템플릿 단계는 건너뛴다.

사용법:
    .venv/bin/python scripts/debug_extraction.py cointelegraph https://cointelegraph.com/news/...
    # 리스트 페이지의 기사 링크만 확인:
    .venv/bin/python scripts/debug_extraction.py cointelegraph --links
"""

from __future__ import annotations

import argparse
import asyncio

from dotenv import load_dotenv

load_dotenv()

from news_crawler.analysis.claude_client import ClaudeClient
from news_crawler.analysis.llm_extractor import LLMExtractor
from news_crawler.crawler.fetcher import Fetcher
from news_crawler.crawler.link_extractor import extract_article_links
from news_crawler.crawler.sources_config import get_source_config
from news_crawler.extraction.chain import ExtractionChain
from news_crawler.extraction.html_utils import parse_html
from news_crawler.extraction.methods import (
    CssSelectorMethod,
    GenericCssMethod,
    LlmMethod,
    ReadabilityMethod,
    XPathMethod,
)
from news_crawler.extraction.service import ExtractionService
from news_crawler.utils.logger import setup_logging
from news_crawler.utils.ticker_mapping import extract_tickers


async def debug_links(fetcher: Fetcher, source: str) -> None:
    config = get_source_config(source)
    if config is None:
        raise SystemExit(f"Unknown source: {source}")
    listing_url = config["listing_url"]
    print(f"Fetching listing page {listing_url}...")
    html = await fetcher.fetch(listing_url, source)
    print(f"HTML length: {len(html)} chars\n")

    links = extract_article_links(parse_html(html), source, listing_url)
    print(f"Found {len(links)} article links:")
    for i, link in enumerate(links, 1):
        print(f"{i:3d}. {link}")


async def debug_article(fetcher: Fetcher, source: str, url: str) -> None:
    client = ClaudeClient()
    llm = LLMExtractor(client) if client.is_enabled else None

    print(f"Fetching {url}...")
    html = await fetcher.fetch(url, source)
    print(f"HTML length: {len(html)} chars\n")

    methods = [CssSelectorMethod(), XPathMethod(), GenericCssMethod(), ReadabilityMethod(), LlmMethod()]
    service = ExtractionService(store=None, llm=llm, chain=ExtractionChain(methods))  # type: ignore[arg-type]

    print("=" * 80)
    print("PER-METHOD RESULTS:")
    print("=" * 80)
    for method in service.chain.methods:
        context = service.build_context(url, html, source)
        if not method.can_execute(context):
            print(f"[{method.priority}] {method.name}: skipped")
            continue
        content = await method.execute(context)
        if content is None:
            print(f"[{method.priority}] {method.name}: no result")
            continue
        print(
            f"[{method.priority}] {method.name}: title={content.title[:70]!r} "
            f"chars={len(content.full_text)} complete={content.is_complete}"
        )

    result = await service.extract(url, html, source)
    print("\n" + "=" * 80)
    if result is None:
        print("ALL METHODS FAILED")
        return
    content = result.content
    print(f"WINNER: {result.used_strategy}")
    print(f"TITLE: {content.title}")
    print(f"PUBLISHED: {content.publish_time}")
    print(f"TICKERS: {extract_tickers(content.title + chr(10) + content.full_text)}")
    print(f"\n{content.full_text[:1500]}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Debug article extraction for one source")
    parser.add_argument("source", help="source key, e.g. cointelegraph")
    parser.add_argument("url", nargs="?", help="article URL")
    parser.add_argument("--links", action="store_true", help="list article links on the listing page")
    parser.add_argument("--verbose", action="store_true", help="show DEBUG logs from every chain method")
    args = parser.parse_args()

    setup_logging(level="DEBUG" if args.verbose else "WARNING")

    fetcher = Fetcher()
    try:
        if args.links or not args.url:
            await debug_links(fetcher, args.source)
        else:
            await debug_article(fetcher, args.source, args.url)
    finally:
        await fetcher.close()


if __name__ == "__main__":
    asyncio.run(main())
