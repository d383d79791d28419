"""
상품 관리 서비스

상품 저장소, 사진 저장소, 재고 원장, 캐시 코디네이터를 묶어
생성/조회/수정/삭제/사진 작업의 순서와 캐시 일관성 규칙을 책임집니다.

모든 쓰기는 커밋 이후 반드시 cache.invalidate(product_id)를 거칩니다.
"""

import logging
import re
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from catalog.core.exceptions import (
    PhotoNotFoundException,
    ProductNotFoundException,
    StorageFailureException,
    ValidationFailureException,
)
from catalog.models import Product
from catalog.repositories import Page, ProductRepository
from catalog.repositories.product_repository import DEFAULT_SORT
from catalog.schemas.product import (
    PaidProductResponse,
    ProductPageResponse,
    ProductResponse,
)
from catalog.services.cache_coordinator import (
    LIST_REGION,
    PHOTO_REGION,
    PRODUCT_REGION,
    SEARCH_REGION,
    CacheCoordinator,
)
from catalog.services.collaborators import PRODUCT_ENTITY_TYPE, Comment, CommentClient
from catalog.services.lock_service import ProductLockManager
from catalog.services.photo_storage import (
    PhotoStorage,
    media_type_for,
    photo_extension,
    photo_key,
)
from catalog.services.stock_ledger import StockLedger

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "description", "price", "sku", "digital_content")

_PHOTO_TIMESTAMP = re.compile(r"_(\d+)\.[^./]*$")


@dataclass(frozen=True)
class ProductPhoto:
    """상품 사진 내용과 저장 경로"""

    content: bytes
    path: str

    @property
    def media_type(self) -> str:
        return media_type_for(self.path)


def _validate_fields(fields: dict[str, Any]) -> None:
    """서비스 계층까지 도달한 잘못된 입력을 거부합니다."""
    if "name" in fields and (fields["name"] is None or not fields["name"].strip()):
        raise ValidationFailureException("name", "must not be empty")
    if "sku" in fields and (fields["sku"] is None or not fields["sku"].strip()):
        raise ValidationFailureException("sku", "must not be empty")
    if "price" in fields:
        if fields["price"] is None or Decimal(fields["price"]) < 0:
            raise ValidationFailureException("price", "must be >= 0")
    if "stock_quantity" in fields and fields["stock_quantity"] < 0:
        raise ValidationFailureException("stock_quantity", "must be >= 0")


def _next_photo_timestamp(previous_path: Optional[str]) -> int:
    """
    새 사진 키에 넣을 밀리초 타임스탬프

    같은 밀리초에 연속 교체되어도 이전 키와 겹치지 않도록 이전 값보다 크게 만듭니다.
    """
    now_ms = time.time_ns() // 1_000_000
    match = _PHOTO_TIMESTAMP.search(previous_path or "")
    if match:
        now_ms = max(now_ms, int(match.group(1)) + 1)
    return now_ms


def _to_page_response(page: Page) -> ProductPageResponse:
    return ProductPageResponse(
        items=[ProductResponse.model_validate(p) for p in page.items],
        total=page.total,
        page=page.page,
        size=page.size,
    )


class ProductService:
    """상품 카탈로그 오케스트레이션 서비스."""

    @staticmethod
    def _publish(product: Product, db: Session, cache: CacheCoordinator) -> ProductResponse:
        """
        커밋된 쓰기를 캐시에 반영합니다.

        무효화로 버전을 올린 뒤 저장소에서 다시 읽은 값을 그 버전으로만 기록하므로,
        그 사이 다른 쓰기가 무효화했다면 이전 값이 남지 않습니다.
        """
        version = cache.invalidate(product.id)
        db.refresh(product)
        projection = ProductResponse.model_validate(product)
        cache.put(PRODUCT_REGION, product.id, projection, version=version)
        return projection

    @staticmethod
    def create_product(
        fields: dict[str, Any], db: Session, cache: CacheCoordinator
    ) -> ProductResponse:
        """
        상품을 생성합니다.

        새 ID이므로 ID 기반 캐시는 비울 것이 없고, 목록/검색 리전만 비웁니다.

        Args:
            fields: 상품 필드 (name, price, sku 필수)
            db: DB 세션
            cache: 캐시 코디네이터

        Returns:
            생성된 상품 정보

        Raises:
            ValidationFailureException: 필드 값이 올바르지 않은 경우
            ProductAlreadyExistsException: SKU가 중복된 경우
        """
        for required in ("name", "price", "sku"):
            if required not in fields:
                raise ValidationFailureException(required, "is required")
        _validate_fields(fields)

        product = ProductRepository.create(fields, db)
        cache.invalidate_listings()
        logger.info("Created product %s (sku=%s)", product.id, product.sku)
        return ProductResponse.model_validate(product)

    @staticmethod
    def get_product(
        product_id: str, db: Session, cache: CacheCoordinator
    ) -> ProductResponse:
        """
        상품 ID로 상품을 조회합니다 (cache-aside).

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """

        def load() -> ProductResponse:
            return ProductResponse.model_validate(ProductRepository.get(product_id, db))

        return cache.get_or_load(PRODUCT_REGION, product_id, load)

    @staticmethod
    def list_products(
        db: Session,
        cache: CacheCoordinator,
        page: int = 0,
        size: int = 20,
        sort: str = DEFAULT_SORT,
    ) -> ProductPageResponse:
        """상품 목록을 페이지 단위로 조회합니다 (cache-aside)."""

        def load() -> ProductPageResponse:
            return _to_page_response(
                ProductRepository.list(db, page=page, size=size, sort=sort)
            )

        return cache.get_or_load(LIST_REGION, (page, size, sort), load)

    @staticmethod
    def search_products(
        db: Session,
        cache: CacheCoordinator,
        name: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        is_active: Optional[bool] = None,
        page: int = 0,
        size: int = 20,
        sort: str = DEFAULT_SORT,
    ) -> ProductPageResponse:
        """조건으로 상품을 검색합니다 (cache-aside)."""
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationFailureException("min_price", "must be <= max_price")

        def load() -> ProductPageResponse:
            return _to_page_response(
                ProductRepository.find_by_filters(
                    db,
                    name=name,
                    min_price=min_price,
                    max_price=max_price,
                    is_active=is_active,
                    page=page,
                    size=size,
                    sort=sort,
                )
            )

        key = (
            name.lower() if name else None,
            min_price,
            max_price,
            is_active,
            page,
            size,
            sort,
        )
        return cache.get_or_load(SEARCH_REGION, key, load)

    @staticmethod
    def update_product(
        product_id: str,
        changes: dict[str, Any],
        db: Session,
        cache: CacheCoordinator,
        locks: ProductLockManager,
    ) -> ProductResponse:
        """
        상품 필드를 수정합니다.

        저장소 갱신 후 invalidate → 새 프로젝션 put 순서로 처리하여
        이전 값이 보이지 않게 합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            ValidationFailureException: 수정할 수 없는 필드이거나 값이 올바르지 않은 경우
            ProductAlreadyExistsException: 변경할 SKU가 이미 사용 중인 경우
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationFailureException(
                ", ".join(sorted(unknown)), "cannot be changed by update"
            )
        _validate_fields(changes)

        with locks.hold(product_id):
            if not changes:
                product = ProductRepository.get(product_id, db)
            else:
                product = ProductRepository.update(product_id, changes, db)
            return ProductService._publish(product, db, cache)

    @staticmethod
    def set_active_status(
        product_id: str,
        is_active: bool,
        db: Session,
        cache: CacheCoordinator,
        locks: ProductLockManager,
    ) -> ProductResponse:
        """상품의 판매 활성화 여부를 변경합니다."""
        with locks.hold(product_id):
            product = ProductRepository.update(product_id, {"is_active": is_active}, db)
            return ProductService._publish(product, db, cache)

    @staticmethod
    def adjust_stock(
        product_id: str, delta: int, db: Session, cache: CacheCoordinator
    ) -> ProductResponse:
        """
        재고를 조정하고 최신 상품 정보를 반환합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            InsufficientStockException: 조정 결과가 음수가 되는 경우
        """
        StockLedger.adjust(product_id, delta, db, cache)
        return ProductService.get_product(product_id, db, cache)

    @staticmethod
    def replace_photo(
        product_id: str,
        content: bytes,
        filename: Optional[str],
        db: Session,
        cache: CacheCoordinator,
        storage: PhotoStorage,
        locks: ProductLockManager,
    ) -> ProductResponse:
        """
        상품 사진을 교체합니다.

        플로우 (상품별 임계 영역 안에서 실행):
        1. 새 키로 새 사진 업로드
        2. 성공 시 상품의 photo_path를 새 경로로 갱신
        3. 이전 사진 삭제

        새 사진을 먼저 올리므로 업로드가 실패해도 기존 사진은 그대로 남습니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            StorageFailureException: 업로드 실패 (상품 레코드는 변경되지 않음)
            LockAcquisitionException: 상품 락을 얻지 못한 경우
        """
        extension = photo_extension(filename)

        with locks.hold(product_id):
            product = ProductRepository.get(product_id, db)
            old_path = product.photo_path
            key = photo_key(product_id, _next_photo_timestamp(old_path), extension)

            try:
                new_path = storage.upload(content, key)
            except StorageFailureException:
                logger.error("Photo upload failed for product %s (key=%s)", product_id, key)
                raise
            except Exception as e:
                logger.error("Photo upload failed for product %s (key=%s)", product_id, key)
                raise StorageFailureException("upload", key, str(e)) from e

            try:
                product = ProductRepository.update(product_id, {"photo_path": new_path}, db)
            except Exception:
                # 참조되지 않는 새 사진 정리
                ProductService._discard_photo(storage, new_path, product_id)
                raise

            version = cache.invalidate(product_id)
            db.refresh(product)
            projection = ProductResponse.model_validate(product)
            cache.put(PRODUCT_REGION, product_id, projection, version=version)
            cache.put(
                PHOTO_REGION,
                product_id,
                ProductPhoto(content=content, path=new_path),
                version=version,
            )

            if old_path and old_path != new_path:
                ProductService._discard_photo(storage, old_path, product_id)

            logger.info(
                "Replaced photo for product %s: %s -> %s", product_id, old_path, new_path
            )
            return projection

    @staticmethod
    def _discard_photo(storage: PhotoStorage, path: str, product_id: str) -> None:
        """
        더 이상 참조되지 않는 사진을 삭제합니다.

        실패해도 상품 상태에는 영향이 없으므로 경고만 남깁니다 (고아 사진은 정리 작업 대상).
        """
        try:
            storage.delete(path)
        except StorageFailureException as e:
            logger.warning(
                "Could not delete unreferenced photo %s of product %s: %s",
                path,
                product_id,
                e,
            )

    @staticmethod
    def delete_photo(
        product_id: str,
        db: Session,
        cache: CacheCoordinator,
        storage: PhotoStorage,
        locks: ProductLockManager,
    ) -> ProductResponse:
        """
        상품 사진을 삭제합니다.

        사진이 없으면 아무것도 하지 않고 현재 상품 정보를 반환합니다.
        사진 저장소 삭제가 실패하면 참조는 그대로 둡니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            StorageFailureException: 사진 삭제 실패 (photo_path 유지)
        """
        with locks.hold(product_id):
            product = ProductRepository.get(product_id, db)
            if not product.photo_path:
                return ProductResponse.model_validate(product)

            storage.delete(product.photo_path)
            logger.info("Deleted photo %s of product %s", product.photo_path, product_id)

            product = ProductRepository.update(product_id, {"photo_path": None}, db)
            return ProductService._publish(product, db, cache)

    @staticmethod
    def get_product_photo(
        product_id: str,
        db: Session,
        cache: CacheCoordinator,
        storage: PhotoStorage,
    ) -> ProductPhoto:
        """
        상품의 현재 사진을 조회합니다 (cache-aside).

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            PhotoNotFoundException: 상품에 사진이 없는 경우
            StorageFailureException: 사진 저장소 조회 실패
        """

        def load() -> ProductPhoto:
            path = ProductRepository.get(product_id, db).photo_path
            while path:
                try:
                    return ProductPhoto(content=storage.fetch(path), path=path)
                except PhotoNotFoundException:
                    # 읽는 도중 사진이 교체되어 이전 사진이 삭제된 경우 새 경로로 재시도
                    current = ProductRepository.get(product_id, db).photo_path
                    if current == path:
                        raise
                    logger.debug(
                        "Photo of product %s moved from %s to %s during fetch",
                        product_id,
                        path,
                        current,
                    )
                    path = current
            raise PhotoNotFoundException(product_id)

        return cache.get_or_load(PHOTO_REGION, product_id, load)

    @staticmethod
    def delete_product(
        product_id: str,
        db: Session,
        cache: CacheCoordinator,
        storage: PhotoStorage,
        locks: ProductLockManager,
    ) -> None:
        """
        상품과 상품이 소유한 사진을 삭제합니다.

        사진 삭제는 최선 시도이며, 실패해도 상품 삭제는 계속 진행합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """
        with locks.hold(product_id):
            product = ProductRepository.get(product_id, db)
            if product.photo_path:
                ProductService._discard_photo(storage, product.photo_path, product_id)

            ProductRepository.delete(product_id, db)
            cache.invalidate(product_id)
            logger.info("Deleted product %s", product_id)

    @staticmethod
    def get_product_for_paid(product_id: str, db: Session) -> PaidProductResponse:
        """
        결제/주문 처리용 상품 정보를 조회합니다 (digital_content 포함, 캐시하지 않음).

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """
        product = ProductRepository.get(product_id, db)
        return PaidProductResponse.model_validate(product)

    @staticmethod
    def add_comment_to_product(
        product_id: str,
        user_id: str,
        content: str,
        db: Session,
        comment_client: CommentClient,
    ) -> Comment:
        """
        상품에 댓글을 작성합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            CollaboratorException: 댓글 서비스 호출 실패
        """
        if not ProductRepository.exists(product_id, db):
            raise ProductNotFoundException(product_id)
        return comment_client.add_comment(
            product_id, PRODUCT_ENTITY_TYPE, user_id, content
        )
