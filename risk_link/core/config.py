from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from risk_link.core.errors import ConfigurationError


class Settings(BaseSettings):
    """환경 변수에서 애플리케이션 설정을 로드"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    environment: Literal["local", "dev", "prod"] = "local"
    version: str = "0.1.0"
    log_level: str = "INFO"
    api_key: str = ""
    api_base_url: str = ""
    page_limit: int = 5
    max_attempts: int = 5
    base_delay: float = 1.0
    rate_limit_multiplier: float = 2.0
    inter_page_delay: float = 0.5
    request_timeout: float = 30.0
    duckdb_path: str = "data/telemetry.duckdb"
    telemetry_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    """캐시된 설정 인스턴스를 반환"""
    return Settings()


def require_api_credentials(settings: Settings) -> tuple[str, str]:
    """API 키와 기본 URL을 검증

    Args:
        settings: 애플리케이션 설정

    Returns:
        API 키, 끝의 슬래시를 제거한 기본 URL

    Raises:
        ConfigurationError: 키 또는 URL이 비어 있을 때
    """
    api_key = settings.api_key.strip()
    base_url = settings.api_base_url.strip().rstrip("/")
    if not api_key or not base_url:
        raise ConfigurationError(has_api_key=bool(api_key), has_base_url=bool(base_url))
    return api_key, base_url
