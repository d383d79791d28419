"""
상품 상세 집계 서비스

상품 레코드에 좋아요 서비스의 좋아요 수/여부와 댓글 서비스의 최신 댓글을
합쳐 상세 화면용 뷰를 만듭니다.
"""

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Optional

from sqlalchemy.orm import Session

from catalog.core.config import Settings
from catalog.schemas.product import CommentResponse, ProductDetailsResponse
from catalog.services.cache_coordinator import CacheCoordinator
from catalog.services.collaborators import PRODUCT_ENTITY_TYPE, CommentClient, LikeClient
from catalog.services.product_service import ProductService

logger = logging.getLogger(__name__)

# 협력 서비스 호출 전용 스레드 풀 (요청 처리 스레드와 분리)
_collaborator_pool = ThreadPoolExecutor(
    max_workers=32, thread_name_prefix="collaborator"
)


def _collect(
    future: Optional[Future],
    what: str,
    default: Any,
    product_id: str,
    deadline: float,
) -> Any:
    """
    하위 조회 결과를 기다립니다.

    시간 초과나 실패 시 조회를 취소하고 경고를 남긴 뒤 기본값을 반환합니다.
    """
    if future is None:
        return default
    try:
        return future.result(timeout=max(0.0, deadline - time.monotonic()))
    except FuturesTimeoutError:
        future.cancel()
        logger.warning(
            "%s lookup for product %s timed out; using default", what, product_id
        )
    except Exception as e:
        logger.warning(
            "%s lookup for product %s failed: %s; using default", what, product_id, e
        )
    return default


class ProductAggregator:
    """상품 상세(집계) 뷰 생성 서비스."""

    @staticmethod
    def build_details(
        product_id: str,
        caller_id: Optional[str],
        db: Session,
        cache: CacheCoordinator,
        like_client: LikeClient,
        comment_client: CommentClient,
        settings: Settings,
    ) -> ProductDetailsResponse:
        """
        상품 상세 뷰를 생성합니다.

        좋아요 수, 좋아요 여부(caller_id가 있을 때만), 댓글 조회는 서로 독립적으로
        병렬 실행됩니다. 상품 조회는 그 전에 요청 스레드에서 cache-aside로
        처리하므로, 상품이 없으면 협력 서비스는 호출되지 않습니다.
        협력 서비스가 실패하거나 제한 시간을 넘기면 기본값
        (likes_count=0, liked_by_current_user=False, recent_comments=[])으로
        대체하고 경고를 남깁니다. 상품이 존재하는 것만이 필수 조건입니다.

        Args:
            product_id: 상품 ID
            caller_id: 현재 사용자 ID (선택)
            db: DB 세션
            cache: 캐시 코디네이터
            like_client: 좋아요 서비스 클라이언트
            comment_client: 댓글 서비스 클라이언트
            settings: 애플리케이션 설정 (제한 시간, 댓글 개수)

        Returns:
            ProductDetailsResponse: 상품 필드 + 좋아요 수/여부 + 최신 댓글

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """
        product = ProductService.get_product(product_id, db, cache)

        likes_future = _collaborator_pool.submit(
            like_client.get_likes_count, product_id, PRODUCT_ENTITY_TYPE
        )
        liked_future = None
        if caller_id is not None:
            liked_future = _collaborator_pool.submit(
                like_client.check_if_liked, product_id, PRODUCT_ENTITY_TYPE, caller_id
            )
        comments_future = _collaborator_pool.submit(
            comment_client.get_comments_for_entity, product_id, PRODUCT_ENTITY_TYPE
        )
        futures = [f for f in (likes_future, liked_future, comments_future) if f]

        try:
            deadline = time.monotonic() + settings.collaborator_timeout_seconds
            likes_count = _collect(likes_future, "Likes count", 0, product_id, deadline)
            liked = _collect(liked_future, "Liked flag", False, product_id, deadline)
            comments = _collect(comments_future, "Comments", [], product_id, deadline)
        finally:
            # 요청이 중단되면 남은 하위 조회를 취소
            for future in futures:
                future.cancel()

        recent = list(comments)[: settings.details_comment_limit]
        return ProductDetailsResponse(
            **product.model_dump(),
            likes_count=max(0, int(likes_count)),
            liked_by_current_user=bool(liked),
            recent_comments=[CommentResponse.model_validate(c) for c in recent],
        )
