"""
애플리케이션 설정 관리

Pydantic Settings를 사용하여 환경 변수를 로드합니다.
.env 파일 또는 시스템 환경 변수에서 설정을 읽어옵니다.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정 클래스"""

    # 데이터베이스 설정
    database_url: str = "sqlite:///./catalog.db"

    # Redis 설정 (다중 프로세스 배포 시 상품별 락에 사용)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str = ""

    # 상품별 임계 영역(락) 설정
    lock_backend: Literal["local", "redis"] = "local"
    lock_timeout_seconds: int = 10
    lock_retry_attempts: int = 3
    lock_retry_delay_ms: int = 100

    # 캐시 리전 설정 (TTL 단위: 초)
    cache_product_max_entries: int = 10_000
    cache_product_ttl_seconds: float = 600.0
    cache_photo_max_entries: int = 256
    cache_photo_ttl_seconds: float = 300.0
    cache_listing_max_entries: int = 512
    cache_listing_ttl_seconds: float = 30.0

    # 사진 저장소 설정
    storage_backend: Literal["local", "azure"] = "local"
    storage_local_root: str = "./photos"
    azure_storage_connection_string: str = ""
    azure_storage_container_name: str = "product-photos"

    # 협력 서비스(좋아요, 댓글) 설정
    like_service_url: str = "http://localhost:8081"
    comment_service_url: str = "http://localhost:8082"
    collaborator_timeout_seconds: float = 2.0
    details_comment_limit: int = 5

    # 애플리케이션 설정
    app_env: str = "development"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # 정의되지 않은 환경 변수 무시
    )

    @property
    def redis_url(self) -> str:
        """
        Redis 연결 URL 생성

        비밀번호가 있는 경우: redis://:password@host:port/db
        비밀번호가 없는 경우: redis://host:port/db
        """
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


def get_settings() -> Settings:
    """
    Settings 인스턴스를 반환하는 팩토리 함수
    """
    return Settings()
