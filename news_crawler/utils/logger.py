"""
크롤러 로깅 설정

- stdout 콘솔 핸들러
- crawler.log: 자정 로테이션, 30일 보관
- crawler-error.log: WARNING 이상만 별도 기록 (차단/인증서 만료 소스 추적용)
"""
import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from news_crawler.utils.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 크롤링 중 요청마다 로그를 남기는 외부 라이브러리
QUIET_LOGGERS: tuple[str, ...] = (
    "aiohttp",
    "asyncio",
    "anthropic",
    "playwright",
    "sqlalchemy.engine",
)

ERROR_HANDLER_NAME = "crawler-error"

_initialized: bool = False


def _resolve_log_dir(log_dir: str | Path | None) -> Path:
    path = Path(log_dir if log_dir is not None else get_settings().log_dir)
    if not path.is_absolute():
        path = Path.cwd() / path
    path.mkdir(parents=True, exist_ok=True)
    return path


def _rotating_handler(path: Path, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        filename=path,
        when="midnight",
        backupCount=30,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _set_level(level: int) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        # 에러 전용 파일은 WARNING 고정
        if handler.get_name() != ERROR_HANDLER_NAME:
            handler.setLevel(level)


def setup_logging(level: str | None = None, log_dir: str | Path | None = None) -> None:
    """루트 로거에 콘솔/파일 핸들러를 붙인다.

    핸들러는 최초 호출에서만 붙는다. 이후 호출에서 ``level`` 을 주면
    루트 로거와 콘솔/일반 파일 핸들러의 레벨만 바꾼다 (디버그 스크립트의 ``--verbose``).
    """
    global _initialized
    level_name = (level or get_settings().log_level).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    if _initialized:
        if level is not None:
            _set_level(numeric_level)
        return
    _initialized = True

    directory = _resolve_log_dir(log_dir)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_handler(directory / "crawler.log", numeric_level))
    error_handler = _rotating_handler(directory / "crawler-error.log", logging.WARNING)
    error_handler.set_name(ERROR_HANDLER_NAME)
    root_logger.addHandler(error_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """모듈 로거. 처음 호출될 때 로깅을 초기화한다."""
    setup_logging()
    return logging.getLogger(name)
