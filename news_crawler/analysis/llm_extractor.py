"""
LLM 기반 추출기
- HTML에서 기사 필드(title, summary, fullText, publishTime) 직접 추출
- 기사 본문에서 관련 암호화폐 티커 추론
- 추출 템플릿(셀렉터) 생성용 원시 JSON 응답

모든 메서드는 실패 시 None 또는 빈 리스트를 반환하고 예외를 전파하지 않는다.
LLM은 항상 최후의 폴백이므로 호출 실패가 크롤링을 중단시키면 안 된다.
"""
import anthropic

from news_crawler.analysis.claude_client import ClaudeClient
from news_crawler.analysis.prompts import (
    build_article_extraction_prompt,
    build_template_generation_prompt,
    build_ticker_extraction_prompt,
    get_system_prompt,
)
from news_crawler.extraction.html_utils import clean_text, normalize_inline, parse_publish_time
from news_crawler.extraction.models import ExtractedContent
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# LLM 티커 응답에서 허용하는 길이 (USDT 포함, 양 끝 제외)
_MIN_TICKER_LEN: int = 4
_MAX_TICKER_LEN: int = 15

_LLM_ERRORS = (anthropic.APIError, ValueError, RuntimeError)


class LLMExtractor:
    """ClaudeClient 위에서 동작하는 추출 전용 래퍼."""

    def __init__(self, client: ClaudeClient) -> None:
        self.client = client

    @property
    def is_enabled(self) -> bool:
        return self.client.is_enabled

    async def extract_from_html(self, url: str, html: str) -> ExtractedContent | None:
        """HTML 앞부분을 LLM에 보내 기사 필드를 추출한다.

        title과 fullText가 모두 있어야 결과로 인정한다.
        """
        if not self.is_enabled:
            return None

        try:
            parsed = await self.client.call_json(
                prompt=build_article_extraction_prompt(url, html),
                task_type="article_extraction",
                system_prompt=get_system_prompt("article_extraction"),
            )
        except _LLM_ERRORS as exc:
            logger.error("LLM 본문 추출 실패 | url=%s | %s", url, exc)
            return None

        if not isinstance(parsed, dict):
            logger.warning("LLM 본문 추출 응답이 객체가 아님 | url=%s", url)
            return None

        title = normalize_inline(str(parsed.get("title") or ""))
        full_text = clean_text(str(parsed.get("fullText") or ""))
        if not title or not full_text:
            logger.warning("LLM 본문 추출 필수 필드 누락 | url=%s", url)
            return None

        summary = normalize_inline(str(parsed.get("summary") or "")) or None
        publish_raw = parsed.get("publishTime")
        publish_time = (
            parse_publish_time(publish_raw) if isinstance(publish_raw, str) else None
        )

        return ExtractedContent(
            title=title,
            full_text=full_text,
            summary=summary,
            publish_time=publish_time,
        )

    async def extract_tickers(self, title: str, content: str) -> list[str]:
        """기사에서 관련 티커를 추론한다. ``XXXUSDT`` 형식만 반환한다."""
        if not self.is_enabled:
            logger.debug("LLM 비활성화 상태, 티커 추론 생략")
            return []

        try:
            parsed = await self.client.call_json(
                prompt=build_ticker_extraction_prompt(title, content),
                task_type="ticker_extraction",
                system_prompt=get_system_prompt("ticker_extraction"),
            )
        except _LLM_ERRORS as exc:
            logger.error("LLM 티커 추출 실패 | title=%s | %s", title[:60], exc)
            return []

        if not isinstance(parsed, list):
            logger.warning("LLM 티커 응답이 배열이 아님 | title=%s", title[:60])
            return []

        tickers: list[str] = []
        for item in parsed:
            if not isinstance(item, str):
                continue
            ticker = item.strip().upper()
            if (
                ticker.endswith("USDT")
                and _MIN_TICKER_LEN < len(ticker) < _MAX_TICKER_LEN
                and ticker not in tickers
            ):
                tickers.append(ticker)

        if tickers:
            logger.info("LLM 티커 %d개 추출: %s", len(tickers), ", ".join(tickers))
        return tickers

    async def generate_selectors(
        self,
        source: str,
        url: str,
        html: str,
        sample_structure: str,
        reference_hints: str = "",
    ) -> dict | None:
        """템플릿 셀렉터 JSON을 요청한다. 검증은 호출하는 쪽에서 한다."""
        if not self.is_enabled:
            return None

        try:
            parsed = await self.client.call_json(
                prompt=build_template_generation_prompt(
                    source=source,
                    url=url,
                    html=html,
                    sample_structure=sample_structure,
                    reference_hints=reference_hints,
                ),
                task_type="template_generation",
                system_prompt=get_system_prompt("template_generation"),
                use_cache=False,
            )
        except _LLM_ERRORS as exc:
            logger.error("LLM 템플릿 생성 호출 실패 | source=%s | %s", source, exc)
            return None

        if not isinstance(parsed, dict):
            logger.warning("LLM 템플릿 응답이 객체가 아님 | source=%s", source)
            return None
        return parsed
