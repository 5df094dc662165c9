"""
Redis-backed durable job queue.

Layout per queue ``name`` (all keys under ``{prefix}:{name}:``):

- ``wait``      list of pending jobs (pushed left, consumed right)
- ``active``    list of jobs currently held by a worker
- ``delayed``   sorted set of jobs waiting for a retry, scored by due time
- ``completed`` / ``failed``  finished jobs, newest first, trimmed by retention
- ``id``        job id counter

A job that fails is retried with exponential backoff until ``attempts`` is
used up, then moved to ``failed``. Jobs left in ``active`` by a crashed
process are put back on ``wait`` by ``requeue_active`` at startup.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass, field
from typing import Any

import redis.asyncio as aioredis

from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

CRAWL_QUEUE_NAME: str = "crawl-news"
_KEY_PREFIX: str = "queue"

# 완료/실패 작업 보존 정책 (초, 개수)
DEFAULT_REMOVE_ON_COMPLETE: dict[str, int] = {"age": 3600, "count": 50}
DEFAULT_REMOVE_ON_FAIL: dict[str, int] = {"age": 86400, "count": 20}


@dataclass
class Job:
    """One queued unit of work."""

    id: str
    name: str
    data: dict[str, Any]
    attempts: int = 3
    backoff_seconds: float = 2.0
    attempts_made: int = 0
    remove_on_complete: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_REMOVE_ON_COMPLETE)
    )
    remove_on_fail: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_REMOVE_ON_FAIL))
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    failed_reason: str | None = None

    def to_json(self) -> str:
        return json.dumps(asdict(self), sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> Job:
        return cls(**json.loads(raw))

    def next_delay(self) -> float:
        """Backoff before the next attempt: base * 2^(attempts_made - 1)."""
        return self.backoff_seconds * (2 ** max(self.attempts_made - 1, 0))


class JobQueue:
    def __init__(self, redis: aioredis.Redis, name: str = CRAWL_QUEUE_NAME) -> None:
        self._redis = redis
        self.name = name
        base = f"{_KEY_PREFIX}:{name}"
        self.wait_key = f"{base}:wait"
        self.active_key = f"{base}:active"
        self.delayed_key = f"{base}:delayed"
        self.completed_key = f"{base}:completed"
        self.failed_key = f"{base}:failed"
        self.id_key = f"{base}:id"

    async def add(
        self,
        job_name: str,
        data: dict[str, Any],
        attempts: int = 3,
        backoff_seconds: float = 2.0,
        remove_on_complete: dict[str, int] | None = None,
        remove_on_fail: dict[str, int] | None = None,
    ) -> Job:
        """Enqueue a job and return it."""
        job_id = await self._redis.incr(self.id_key)
        job = Job(
            id=str(job_id),
            name=job_name,
            data=data,
            attempts=attempts,
            backoff_seconds=backoff_seconds,
            remove_on_complete=dict(remove_on_complete or DEFAULT_REMOVE_ON_COMPLETE),
            remove_on_fail=dict(remove_on_fail or DEFAULT_REMOVE_ON_FAIL),
        )
        await self._redis.lpush(self.wait_key, job.to_json())
        logger.debug("Enqueued job %s (%s) %s", job.id, job_name, data)
        return job

    async def fetch_next(self, timeout: float = 1.0) -> tuple[Job, str] | None:
        """Move the next due job to ``active`` and return it with its raw payload.

        Blocks up to ``timeout`` seconds when nothing is waiting.
        """
        await self.promote_delayed()
        raw = await self._redis.blmove(
            self.wait_key, self.active_key, timeout, src="RIGHT", dest="LEFT"
        )
        if raw is None:
            return None
        return Job.from_json(raw), raw

    async def complete(self, job: Job, raw: str) -> None:
        await self._redis.lrem(self.active_key, 1, raw)
        job.finished_at = time.time()
        await self._redis.lpush(self.completed_key, job.to_json())
        await self._trim(self.completed_key, job.remove_on_complete)

    async def fail(self, job: Job, raw: str, reason: str) -> bool:
        """Record a failed attempt.

        Returns True when the job was scheduled for another attempt, False
        when it has used all its attempts and was moved to ``failed``.
        """
        await self._redis.lrem(self.active_key, 1, raw)
        job.attempts_made += 1
        job.failed_reason = reason

        if job.attempts_made < job.attempts:
            delay = job.next_delay()
            await self._redis.zadd(self.delayed_key, {job.to_json(): time.time() + delay})
            logger.warning(
                "Job %s failed (attempt %d/%d), retrying in %.1fs: %s",
                job.id,
                job.attempts_made,
                job.attempts,
                delay,
                reason,
            )
            return True

        job.finished_at = time.time()
        await self._redis.lpush(self.failed_key, job.to_json())
        await self._trim(self.failed_key, job.remove_on_fail)
        logger.error("Job %s failed permanently after %d attempts: %s", job.id, job.attempts_made, reason)
        return False

    async def promote_delayed(self) -> int:
        """Move retry jobs whose backoff has elapsed back to ``wait``."""
        due = await self._redis.zrangebyscore(self.delayed_key, 0, time.time())
        moved = 0
        for raw in due:
            # zrem 결과로 다른 워커와의 중복 이동을 막는다
            if await self._redis.zrem(self.delayed_key, raw):
                await self._redis.lpush(self.wait_key, raw)
                moved += 1
        return moved

    async def requeue_active(self) -> int:
        """Put jobs abandoned in ``active`` back on ``wait``."""
        moved = 0
        while await self._redis.lmove(self.active_key, self.wait_key, src="RIGHT", dest="LEFT"):
            moved += 1
        if moved:
            logger.warning("Requeued %d stalled jobs on %s", moved, self.name)
        return moved

    async def counts(self) -> dict[str, int]:
        return {
            "wait": await self._redis.llen(self.wait_key),
            "active": await self._redis.llen(self.active_key),
            "delayed": await self._redis.zcard(self.delayed_key),
            "completed": await self._redis.llen(self.completed_key),
            "failed": await self._redis.llen(self.failed_key),
        }

    async def _trim(self, key: str, retention: dict[str, int]) -> None:
        count = retention.get("count")
        if count is not None:
            await self._redis.ltrim(key, 0, count - 1)

        age = retention.get("age")
        if age is None:
            return
        cutoff = time.time() - age
        for raw in await self._redis.lrange(key, 0, -1):
            finished = json.loads(raw).get("finished_at") or 0
            if finished < cutoff:
                await self._redis.lrem(key, 1, raw)
