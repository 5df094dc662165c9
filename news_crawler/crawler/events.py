"""
``news_created`` pub/sub event consumed by the downstream analysis service.
"""

from datetime import datetime

import redis.asyncio as aioredis
from pydantic import BaseModel, ConfigDict, Field

from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

NEWS_CREATED_CHANNEL: str = "news_created"


class NewsCreated(BaseModel):
    """Serialized with camelCase keys: newsId, title, tickers, publishTime, source."""

    model_config = ConfigDict(populate_by_name=True)

    news_id: int = Field(alias="newsId")
    title: str
    tickers: list[str] = Field(default_factory=list)
    publish_time: datetime = Field(alias="publishTime")
    source: str

    def to_message(self) -> str:
        return self.model_dump_json(by_alias=True)


async def publish_news_created(redis: aioredis.Redis, event: NewsCreated) -> int:
    """Publish ``event``; returns the number of subscribers that received it."""
    receivers = await redis.publish(NEWS_CREATED_CHANNEL, event.to_message())
    logger.debug("Published news_created for news %d to %d subscribers", event.news_id, receivers)
    return receivers
