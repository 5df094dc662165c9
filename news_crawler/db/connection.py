"""
DB/Redis 연결 관리

- PostgreSQL(asyncpg) 비동기 엔진 + 세션 팩토리 싱글턴
- 템플릿 캐시, 작업 큐, news_created 이벤트가 함께 쓰는 Redis 클라이언트 싱글턴
- 기동 시 연결 확인 및 테이블 생성, 종료 시 정리
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from news_crawler.db.models import Base
from news_crawler.utils.config import get_settings
from news_crawler.utils.logger import get_logger

logger = get_logger(__name__)

# 워커 1개당 동시에 잡는 커넥션 수 (중복 확인 + 저장 + 템플릿 카운터)
_CONNECTIONS_PER_WORKER = 2

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_redis_client: aioredis.Redis | None = None


def _build_database_url() -> str:
    settings = get_settings()
    if not settings.db_password:
        raise RuntimeError(
            "DB_PASSWORD 환경변수가 설정되지 않았습니다. "
            ".env 파일에 DB_PASSWORD를 반드시 설정하세요."
        )
    return settings.database_url


def get_engine() -> AsyncEngine:
    """엔진 싱글턴. 풀 크기는 워커 수에 맞춘다."""
    global _engine
    if _engine is None:
        settings = get_settings()
        pool_size = max(5, settings.worker_concurrency * _CONNECTIONS_PER_WORKER)
        _engine = create_async_engine(
            _build_database_url(),
            echo=settings.db_echo,
            pool_size=pool_size,
            max_overflow=pool_size,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """``factory`` 로 세션을 열고, 정상 종료 시 commit / 예외 시 rollback 한다.

    템플릿 저장소와 뉴스 수집기는 세션 팩토리를 주입받으므로
    테스트에서는 SQLite 팩토리를 그대로 넘길 수 있다.
    """
    session = factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


def get_redis() -> aioredis.Redis:
    """Redis 클라이언트 싱글턴 (문자열 응답)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
            health_check_interval=30,
        )
    return _redis_client


async def init_db() -> None:
    """DB/Redis 연결을 확인하고 누락된 테이블을 생성한다."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)
    await get_redis().ping()
    logger.info("DB/Redis 연결 확인 완료")


async def close_db() -> None:
    """엔진과 Redis 연결을 닫는다. 여러 번 호출해도 안전하다."""
    global _engine, _session_factory, _redis_client
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
    logger.info("DB/Redis 연결 종료")
