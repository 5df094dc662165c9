"""
Data models shared by the extraction subsystem.

- ``ExtractedContent``: the structured fields pulled out of one article page.
- ``ExtractionTemplate``: a versioned, source-scoped selector set.
- ``ExtractionContext``: the per-URL bundle threaded through the chain.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict, field_validator

from news_crawler.extraction.html_utils import to_lxml_tree

if TYPE_CHECKING:
    from news_crawler.analysis.llm_extractor import LLMExtractor
    from news_crawler.extraction.strategies.base import SelectorStrategy


@dataclass
class ExtractedContent:
    """Article fields produced by an extraction method.

    Attributes:
        title: Article headline.
        full_text: Whitespace-normalized body text.
        summary: Lead paragraph or standfirst, if any.
        publish_time: Publication timestamp, if found.
    """

    title: str
    full_text: str
    summary: str | None = None
    publish_time: datetime | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.title and self.title.strip() and self.full_text and self.full_text.strip())


class ExtractionTemplate(BaseModel):
    """Selector template for one source.

    Selector fields hold comma-separated fallback lists, most specific first.
    """

    model_config = ConfigDict(from_attributes=True)

    source: str
    version: int = 1
    title_selector: str
    summary_selector: str = ""
    content_selector: str
    publish_time_selector: str = ""
    xpath_title: str = ""
    xpath_content: str = ""
    is_active: bool = True
    success_count: int = 0
    fail_count: int = 0
    last_used_at: datetime | None = None

    @field_validator(
        "title_selector",
        "summary_selector",
        "content_selector",
        "publish_time_selector",
        "xpath_title",
        "xpath_content",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def total_uses(self) -> int:
        return self.success_count + self.fail_count

    @property
    def fail_ratio(self) -> float:
        total = self.total_uses
        return self.fail_count / total if total else 0.0


@dataclass
class ExtractionContext:
    """Everything one chain run needs for a single URL.

    ``used_strategy`` is the only field methods are allowed to change.
    """

    doc: BeautifulSoup
    url: str
    html: str
    source: str
    source_strategy: SelectorStrategy
    generic_strategy: SelectorStrategy
    llm: LLMExtractor | None = None
    used_strategy: str | None = None
    _tree: Any = field(default=None, init=False, repr=False)

    @property
    def source_strategy_name(self) -> str:
        return self.source_strategy.name

    @property
    def has_source_strategy(self) -> bool:
        return self.source_strategy is not self.generic_strategy

    @property
    def tree(self) -> Any:
        """lxml tree of the raw HTML, parsed on first XPath use."""
        if self._tree is None:
            self._tree = to_lxml_tree(self.html)
        return self._tree
