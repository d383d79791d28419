"""조건부 UPDATE를 이용한 재고 관리 서비스."""

import logging

from sqlalchemy.orm import Session

from catalog.core.exceptions import (
    InsufficientStockException,
    ProductNotFoundException,
)
from catalog.repositories import ProductRepository
from catalog.services.cache_coordinator import CacheCoordinator

logger = logging.getLogger(__name__)


class StockLedger:
    """재고 수량이 항상 0 이상으로 유지되도록 하는 재고 조정 서비스."""

    @staticmethod
    def adjust(
        product_id: str, delta: int, db: Session, cache: CacheCoordinator
    ) -> int:
        """
        재고를 delta만큼 조정합니다.

        애플리케이션에서 읽고-검사하고-쓰는 대신, 저장소 수준의 조건부 UPDATE
        (stock_quantity + delta >= 0) 한 번으로 처리합니다.

        ❌ 읽은 뒤 쓰는 방식의 문제점:
        T1: 요청 A가 재고 조회 → 5
        T2: 요청 B가 재고 조회 → 5
        T3: 요청 A가 (5 - 4 >= 0) 확인 후 저장 → 1
        T4: 요청 B가 (5 - 3 >= 0) 확인 후 저장 → 2 (A의 차감이 사라짐)

        Args:
            product_id: 상품 ID
            delta: 재고 변경량 (음수면 차감)
            db: DB 세션
            cache: 캐시 코디네이터 (성공 시 상품 캐시 무효화)

        Returns:
            조정 후 재고 수량

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            InsufficientStockException: 조정 결과가 음수가 되는 경우
        """
        new_quantity = ProductRepository.adjust_stock_if_available(
            product_id, delta, db
        )

        if new_quantity is None:
            # 반영된 행이 없음: 상품이 없거나 조건(재고 충분)이 거짓
            available = ProductRepository.current_stock(product_id, db)
            if available is None:
                raise ProductNotFoundException(product_id)
            logger.info(
                "Rejected stock change %d for product %s (available %d)",
                delta,
                product_id,
                available,
            )
            raise InsufficientStockException(product_id, delta, available)

        cache.invalidate(product_id)
        logger.debug(
            "Adjusted stock for product %s by %d -> %d", product_id, delta, new_quantity
        )
        return new_quantity
