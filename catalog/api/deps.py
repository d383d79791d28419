"""
FastAPI 의존성 주입 함수들

데이터베이스 세션과 프로세스 전역에서 공유하는 캐시, 사진 저장소, 락,
협력 서비스 클라이언트를 제공합니다.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Header

from catalog.core.config import get_settings
from catalog.db.database import get_db
from catalog.db.redis_client import create_redis_client
from catalog.services.cache_coordinator import CacheCoordinator
from catalog.services.collaborators import (
    CommentClient,
    HttpCommentClient,
    HttpLikeClient,
    LikeClient,
)
from catalog.services.lock_service import (
    LocalProductLockManager,
    ProductLockManager,
    RedisProductLockManager,
)
from catalog.services.photo_storage import PhotoStorage, create_photo_storage

__all__ = [
    "get_db",
    "get_cache_coordinator",
    "get_photo_storage",
    "get_lock_manager",
    "get_like_client",
    "get_comment_client",
    "get_current_user_id",
]


@lru_cache
def get_cache_coordinator() -> CacheCoordinator:
    """프로세스 전역 캐시 코디네이터 (모든 요청이 공유)"""
    return CacheCoordinator.from_settings(get_settings())


@lru_cache
def get_photo_storage() -> PhotoStorage:
    return create_photo_storage(get_settings())


@lru_cache
def get_lock_manager() -> ProductLockManager:
    """
    상품별 락 관리자

    lock_backend가 redis면 여러 워커 프로세스가 공유하는 Redis 락을 사용합니다.
    """
    settings = get_settings()
    if settings.lock_backend == "redis":
        return RedisProductLockManager(create_redis_client(settings), settings)
    return LocalProductLockManager.from_settings(settings)


@lru_cache
def get_like_client() -> LikeClient:
    return HttpLikeClient.from_settings(get_settings())


@lru_cache
def get_comment_client() -> CommentClient:
    return HttpCommentClient.from_settings(get_settings())


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="호출자 사용자 ID (선택)"),
) -> Optional[str]:
    """
    호출자 식별자를 X-User-Id 헤더에서 읽습니다.

    인증은 이 서비스 앞단(게이트웨이)에서 처리된다고 가정합니다.
    """
    return x_user_id or None
