"""
Claude 클라이언트
- Anthropic API 비동기 호출 (async/await)
- 태스크별 출력 토큰 한도
- 에러 핸들링 + 지수 백오프 재시도
- 토큰 사용량 추적
- 응답 캐싱 (동일 HTML에 대한 중복 호출 방지)
- JSON 응답 파싱
"""
import asyncio
import hashlib
import json
import re
import time
from collections import OrderedDict

import anthropic

from news_crawler.utils.config import get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)


# 태스크별 최대 출력 토큰
TASK_MAX_TOKENS: dict[str, int] = {
    "template_generation": 1024,
    "article_extraction": 4096,
    "ticker_extraction": 256,
}

# 재시도 대상 HTTP 상태 코드
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 529}

_DEFAULT_MAX_TOKENS: int = 2048

_DEFAULT_BASE_DELAY = 1.0  # 초

_DEFAULT_CACHE_MAX_SIZE = 128
_DEFAULT_CACHE_TTL = 300  # 5분

# JSON 코드블록 패턴: ```json ... ``` 또는 ``` ... ```
_JSON_BLOCK_PATTERN = re.compile(
    r"```(?:json)?\s*\n?([\s\S]*?)\n?```",
    re.DOTALL,
)


class _LRUCache:
    """TTL 기반 LRU 캐시."""

    def __init__(self, max_size: int = _DEFAULT_CACHE_MAX_SIZE, ttl: int = _DEFAULT_CACHE_TTL) -> None:
        self._cache: OrderedDict[str, tuple[float, dict]] = OrderedDict()
        self._max_size = max_size
        self._ttl = ttl

    def get(self, key: str) -> dict | None:
        if key not in self._cache:
            return None
        ts, value = self._cache[key]
        if time.monotonic() - ts > self._ttl:
            del self._cache[key]
            return None
        self._cache.move_to_end(key)
        return value

    def put(self, key: str, value: dict) -> None:
        if key in self._cache:
            self._cache.move_to_end(key)
        self._cache[key] = (time.monotonic(), value)
        while len(self._cache) > self._max_size:
            self._cache.popitem(last=False)

    @property
    def size(self) -> int:
        return len(self._cache)


class ClaudeClient:
    """Anthropic SDK 비동기 클라이언트 래퍼.

    API 키가 없으면 ``is_enabled`` 가 False 이고, 호출하는 쪽에서
    LLM 단계를 건너뛰어야 한다. 키 없이 ``call`` 을 호출하면 RuntimeError.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_retries: int | None = None,
        cache_max_size: int = _DEFAULT_CACHE_MAX_SIZE,
        cache_ttl: int = _DEFAULT_CACHE_TTL,
    ) -> None:
        settings = get_settings()
        resolved_key = api_key if api_key is not None else settings.anthropic_api_key
        self.model = model or settings.llm_model
        self._max_retries = (
            max_retries if max_retries is not None else settings.llm_max_retries
        )
        self._cache = _LRUCache(max_size=cache_max_size, ttl=cache_ttl)
        self._usage = {"input_tokens": 0, "output_tokens": 0, "calls": 0}

        if resolved_key:
            self.client: anthropic.AsyncAnthropic | None = anthropic.AsyncAnthropic(
                api_key=resolved_key
            )
        else:
            self.client = None

        logger.info(
            "ClaudeClient 초기화 완료 | enabled=%s | model=%s | max_retries=%d",
            self.is_enabled,
            self.model,
            self._max_retries,
        )

    @property
    def is_enabled(self) -> bool:
        """API 키가 설정되어 호출 가능한지 여부."""
        return self.client is not None

    async def call(
        self,
        prompt: str,
        task_type: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.1,
        use_cache: bool = True,
    ) -> dict:
        """Claude를 호출하고 결과를 반환한다.

        Returns:
            ``{"content", "model", "input_tokens", "output_tokens", "cached"}`` 딕셔너리.

        Raises:
            RuntimeError: API 키가 설정되지 않은 경우.
            anthropic.APIError: 재시도 횟수 초과 후에도 실패한 경우.
        """
        if self.client is None:
            raise RuntimeError("anthropic_api_key가 설정되지 않아 LLM을 호출할 수 없다.")

        cache_key = ""
        if use_cache:
            cache_key = self._make_cache_key(prompt, task_type, system_prompt, temperature)
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.info("캐시 히트 | task=%s", task_type)
                return {**cached, "cached": True}

        kwargs: dict = {
            "model": self.model,
            "max_tokens": max_tokens or TASK_MAX_TOKENS.get(task_type, _DEFAULT_MAX_TOKENS),
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        logger.info("Claude 호출 시작 | task=%s | model=%s", task_type, self.model)
        response = await self._call_with_retry(kwargs, task_type)

        input_tokens = response.usage.input_tokens
        output_tokens = response.usage.output_tokens
        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

        self._usage["input_tokens"] += input_tokens
        self._usage["output_tokens"] += output_tokens
        self._usage["calls"] += 1

        logger.info(
            "Claude 호출 완료 | task=%s | in=%d out=%d tokens",
            task_type,
            input_tokens,
            output_tokens,
        )

        result = {
            "content": content,
            "model": self.model,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cached": False,
        }
        if use_cache and cache_key:
            self._cache.put(cache_key, result)
        return result

    async def call_json(
        self,
        prompt: str,
        task_type: str,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        use_cache: bool = True,
    ) -> dict | list:
        """JSON 응답을 기대하는 Claude 호출.

        Raises:
            ValueError: 응답에서 유효한 JSON을 찾지 못한 경우.
        """
        result = await self.call(
            prompt=prompt,
            task_type=task_type,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=0.1,
            use_cache=use_cache,
        )
        return self._extract_json(result["content"])

    async def _call_with_retry(self, kwargs: dict, task_type: str) -> anthropic.types.Message:
        """지수 백오프로 Anthropic API를 호출한다.

        rate limit(429), 서버 에러(500/502/503), overloaded(529), 연결 실패에 대해 재시도한다.
        """
        last_exception: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                return await self.client.messages.create(**kwargs)
            except anthropic.APIStatusError as exc:
                last_exception = exc
                if exc.status_code not in _RETRYABLE_STATUS_CODES:
                    logger.error(
                        "Claude API 비재시도 에러 | task=%s | status=%d | %s",
                        task_type,
                        exc.status_code,
                        exc.message,
                    )
                    raise
                if attempt >= self._max_retries:
                    break

                delay = _DEFAULT_BASE_DELAY * (2 ** attempt)
                if exc.status_code == 429:
                    retry_after = exc.response.headers.get("retry-after")
                    if retry_after and retry_after.replace(".", "", 1).isdigit():
                        delay = max(delay, float(retry_after))

                logger.warning(
                    "Claude API 재시도 예정 | task=%s | attempt=%d/%d | status=%d | delay=%.1fs",
                    task_type,
                    attempt + 1,
                    self._max_retries,
                    exc.status_code,
                    delay,
                )
                await asyncio.sleep(delay)
            except anthropic.APIConnectionError as exc:
                last_exception = exc
                if attempt >= self._max_retries:
                    break
                delay = _DEFAULT_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "Claude API 연결 실패 재시도 | task=%s | attempt=%d/%d | delay=%.1fs | %s",
                    task_type,
                    attempt + 1,
                    self._max_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

        logger.error(
            "Claude API 최대 재시도 횟수 초과 | task=%s | retries=%d",
            task_type,
            self._max_retries,
        )
        raise last_exception  # type: ignore[misc]

    def get_usage_stats(self) -> dict:
        """누적 토큰 사용량을 반환한다."""
        return {**self._usage, "model": self.model, "cache_size": self._cache.size}

    @staticmethod
    def _make_cache_key(
        prompt: str,
        task_type: str,
        system_prompt: str | None,
        temperature: float,
    ) -> str:
        raw = f"{task_type}|{temperature}|{system_prompt or ''}|{prompt}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    @staticmethod
    def _extract_json(text: str) -> dict | list:
        """텍스트에서 JSON 객체 또는 배열을 추출한다.

        우선순위:
          1. ```json ... ``` 코드블록 내부
          2. 텍스트 전체를 직접 파싱
          3. 첫 번째 ``{`` 또는 ``[`` 부터 마지막 ``}`` 또는 ``]`` 까지 추출

        Raises:
            ValueError: 유효한 JSON을 찾지 못한 경우.
        """
        match = _JSON_BLOCK_PATTERN.search(text)
        if match:
            try:
                return json.loads(match.group(1).strip())
            except json.JSONDecodeError:
                logger.debug("JSON 코드블록 파싱 실패, 다음 단계 시도")

        stripped = text.strip()
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            logger.debug("전체 텍스트 JSON 파싱 실패, 다음 단계 시도")

        start_obj = stripped.find("{")
        start_arr = stripped.find("[")
        if start_obj == -1 and start_arr == -1:
            raise ValueError(f"JSON을 찾을 수 없습니다: {text[:200]}")

        if start_arr == -1 or (start_obj != -1 and start_obj < start_arr):
            start = start_obj
            end = stripped.rfind("}") + 1
        else:
            start = start_arr
            end = stripped.rfind("]") + 1

        if end <= start:
            raise ValueError(f"JSON을 찾을 수 없습니다: {text[:200]}")

        try:
            return json.loads(stripped[start:end])
        except json.JSONDecodeError as exc:
            raise ValueError(f"JSON 파싱 실패: {exc}. 원문: {text[:300]}") from exc
