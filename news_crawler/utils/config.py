"""
프로젝트 설정 관리
.env 파일에서 환경변수를 로드하여 타입-안전한 설정 객체 제공
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """크롤러 서비스 전체 설정을 관리하는 클래스."""

    # Database
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "crypto_user"
    db_password: str = ""
    db_name: str = "crypto_main"
    # true로 설정하면 모든 SQL 쿼리를 로그에 출력한다 (프로덕션에서는 false)
    db_echo: bool = False

    # Redis (캐시 + Pub/Sub + 작업 큐 공용)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str = ""

    # LLM (템플릿 생성, 본문 추출, 티커 추출)
    # 키가 비어 있으면 LLM 관련 단계는 모두 건너뛴다.
    anthropic_api_key: str = ""
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_max_retries: int = 3

    # Crawl schedule
    crawl_interval_seconds: int = 300
    worker_concurrency: int = 2
    max_articles_per_crawl: int = 10
    article_delay_seconds: float = 1.0

    # Fetcher
    http_timeout_seconds: float = 30.0
    http_max_redirects: int = 5
    fetch_max_attempts: int = 3
    fetch_backoff_seconds: float = 2.0
    browser_navigation_timeout_seconds: float = 60.0
    # 인증서가 깨진 것으로 알려진 호스트만 TLS 검증을 끈다 (쉼표 구분)
    insecure_tls_hosts: str = "cryptonews.io"

    # Job queue
    job_max_attempts: int = 3
    job_backoff_seconds: float = 2.0

    # Template cache (Redis TTL, 7일)
    template_cache_ttl_seconds: int = 7 * 24 * 3600

    log_level: str = "INFO"
    log_dir: str = "logs"

    @property
    def insecure_tls_host_list(self) -> list[str]:
        """TLS 검증 예외 호스트 목록을 반환한다."""
        return [
            h.strip().lower() for h in self.insecure_tls_hosts.split(",") if h.strip()
        ]

    @property
    def llm_enabled(self) -> bool:
        """LLM API 키 설정 여부를 반환한다."""
        return bool(self.anthropic_api_key)

    @property
    def database_url(self) -> str:
        """비동기 SQLAlchemy용 PostgreSQL URL (asyncpg 드라이버)."""
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def redis_url(self) -> str:
        """Redis 연결 URL."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}"
        return f"redis://{self.redis_host}:{self.redis_port}"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings 싱글톤 인스턴스를 반환한다."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
