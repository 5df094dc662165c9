"""
LLM 모듈 (Claude API 클라이언트 + 프롬프트 템플릿 + 셀렉터 생성/본문/티커 추출)
"""
from news_crawler.analysis.claude_client import ClaudeClient
from news_crawler.analysis.llm_extractor import LLMExtractor

__all__ = [
    "ClaudeClient",
    "LLMExtractor",
]
