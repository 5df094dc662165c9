"""
LLM 프롬프트 템플릿

각 함수는 특정 추출 태스크에 맞는 프롬프트 문자열을 생성한다.
대상 기사가 영문이므로 프롬프트 본문은 영어로 작성한다.
"""

# 템플릿 생성 시 LLM에 넘기는 HTML 최대 길이
TEMPLATE_HTML_LIMIT: int = 10000
# 본문 직접 추출 시 HTML 최대 길이
ARTICLE_HTML_LIMIT: int = 6000
# 티커 추출 시 본문 최대 길이
TICKER_CONTENT_LIMIT: int = 3000

# ═══════════════════════════════════════════════════════════════════
# 시스템 프롬프트
# ═══════════════════════════════════════════════════════════════════

TEMPLATE_SYSTEM_PROMPT = "You are a web scraping expert. Return only valid JSON."

ARTICLE_SYSTEM_PROMPT = "Extract structured article content as JSON."

TICKER_SYSTEM_PROMPT = "Extract cryptocurrency tickers as JSON array."


def get_system_prompt(task_type: str) -> str:
    """태스크 유형에 따른 시스템 프롬프트를 반환한다."""
    _SYSTEM_PROMPTS: dict[str, str] = {
        "template_generation": TEMPLATE_SYSTEM_PROMPT,
        "article_extraction": ARTICLE_SYSTEM_PROMPT,
        "ticker_extraction": TICKER_SYSTEM_PROMPT,
    }
    return _SYSTEM_PROMPTS.get(task_type, ARTICLE_SYSTEM_PROMPT)


# 소스별로 알려진 셀렉터 힌트 (수동 전략과 동일한 값)
REFERENCE_HINTS: dict[str, str] = {
    "cointelegraph": """Known working selectors for Cointelegraph:
- Title: .post__title, h1.post__title, article h1
- Content: .post__text, .post-content (extract <p> tags inside)
- Summary: .post__lead, .article-lead
- Publish time: time[datetime], .post__date
Note: Cointelegraph uses BEM naming (double underscores: __)""",
    "bloomberg": """Known working selectors for Bloomberg:
- Title: [data-module="Article"] h1, h1
- Content: [data-module="Article"] .body-copy, .article-body
- Summary: .article-summary, [data-module="Article"] .summary""",
    "reuters": """Known working selectors for Reuters:
- Title: article h1, h1, [data-testid="Heading"]
- Content: article .article-body__content, [data-testid="ArticleBody"]""",
    "cnbc-crypto": """Known working selectors for CNBC Crypto:
- Title: h1.ArticleHeader-headline, h1
- Content: .ArticleBody-articleBody p (extract paragraphs)
- Summary: .ArticleHeader-description""",
}


def build_template_generation_prompt(
    source: str,
    url: str,
    html: str,
    sample_structure: str,
    reference_hints: str = "",
) -> str:
    """추출 템플릿(CSS/XPath 셀렉터) 생성 프롬프트.

    Args:
        source: 뉴스 소스 이름.
        url: 샘플 기사 URL.
        html: 샘플 기사 HTML. 앞부분 ``TEMPLATE_HTML_LIMIT`` 자만 사용한다.
        sample_structure: 제목/본문 후보 요소 요약.
        reference_hints: 소스별 알려진 셀렉터 힌트. 없으면 빈 문자열.

    Returns:
        Claude에 전달할 프롬프트 문자열.
    """
    hints_block = ""
    if reference_hints:
        hints_block = (
            f"Reference selectors for {source} "
            f"(use as hints, but verify against actual HTML):\n{reference_hints}\n"
        )

    return f"""You are an expert web scraping analyst specializing in news article extraction. Analyze the HTML structure and generate PRECISE CSS selectors.

IMPORTANT: This is an ARTICLE PAGE (not category/home page). Extract selectors that work specifically for article pages.

Source: {source}
URL: {url}

{hints_block}
HTML Structure Sample:
{sample_structure}

Full HTML (first {TEMPLATE_HTML_LIMIT} characters):
{html[:TEMPLATE_HTML_LIMIT]}

CRITICAL REQUIREMENTS:
1. Title selector: Must extract the ARTICLE TITLE (not page title like "Latest News | Site Name")
   - Avoid: "title" tag (usually page title, not article title)
   - Prefer: Specific article title classes (e.g., ".post__title", "h1.article-title")
   - Must return meaningful text (>10 chars, no "|" or " - " separators)

2. Content selector: Must extract MAIN ARTICLE BODY TEXT
   - Must contain multiple paragraphs (<p> tags)
   - Should exclude: nav, footer, ads, sidebars, social share buttons
   - Must return substantial content (>200 chars)

3. Summary selector: Extract article lead/summary if available

4. Publish time selector: Look for <time datetime=""> or date elements

Return ONLY a JSON object in this exact format:
{{
  "titleSelector": "CSS selectors separated by commas, most specific first",
  "summarySelector": "CSS selectors for summary or empty string",
  "contentSelector": "CSS selectors for main content",
  "publishTimeSelector": "CSS selectors for publish time or empty string",
  "xpathTitle": "XPath for title (e.g., '//h1')",
  "xpathContent": "XPath for content (e.g., '//article//p')"
}}

Rules:
- Provide multiple CSS selectors separated by commas (fallback options, most specific first)
- Title selector MUST NOT be just "title" tag
- Content selector MUST target elements with <p> tags
- If unsure, use empty string "" for optional fields
- Do not include any other text, only the JSON object"""


def build_article_extraction_prompt(url: str, html: str) -> str:
    """HTML에서 기사 필드를 직접 추출하는 프롬프트."""
    return f"""You are an expert content extractor for news articles.
Given the raw HTML, extract:
- title (string, required)
- summary (string, optional, concise <= 2 sentences)
- fullText (string, required, clean article body, no ads/nav)
- publishTime (ISO string or empty if unknown)

Return ONLY JSON in the format:
{{"title": "...", "summary": "...", "fullText": "...", "publishTime": "2024-01-01T00:00:00Z"}}

If publish time is missing, set publishTime to empty string.
Do not include any other text.
URL: {url}
HTML:
{html[:ARTICLE_HTML_LIMIT]}"""


def build_ticker_extraction_prompt(title: str, content: str) -> str:
    """기사에서 관련 암호화폐 티커를 추론하는 프롬프트."""
    return f"""You are a cryptocurrency market analyst. Analyze the following news article and extract all cryptocurrency tickers that are mentioned or relevant to the content.

News Title: {title}
News Content: {content[:TICKER_CONTENT_LIMIT]}

Identify all cryptocurrency tickers (e.g., BTC, ETH, SOL) that are:
1. Explicitly mentioned in the article
2. Implied or relevant based on the context
3. Related to companies/projects mentioned (e.g., "Binance" implies BNB)

Return ONLY a JSON array of ticker symbols in USDT pair format (e.g., ["BTCUSDT", "ETHUSDT"]).
If no tickers are found or the article is not related to cryptocurrency, return [].

Examples:
- "Bitcoin price surges" -> ["BTCUSDT"]
- "Ethereum DeFi protocol launches" -> ["ETHUSDT", "UNIUSDT"]

Respond ONLY with the JSON array, no other text."""
