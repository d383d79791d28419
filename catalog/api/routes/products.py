"""
상품 카탈로그 API 엔드포인트

상품 생성, 조회, 검색, 수정, 삭제, 재고 조정, 사진 관리,
상세(집계) 조회, 댓글 작성 기능을 제공합니다.
"""

from decimal import Decimal
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session

from catalog.api.deps import (
    get_cache_coordinator,
    get_comment_client,
    get_current_user_id,
    get_db,
    get_like_client,
    get_lock_manager,
    get_photo_storage,
)
from catalog.core.config import Settings, get_settings
from catalog.core.exceptions import (
    CollaboratorException,
    InsufficientStockException,
    LockAcquisitionException,
    PhotoNotFoundException,
    ProductAlreadyExistsException,
    ProductNotFoundException,
    StorageFailureException,
    ValidationFailureException,
)
from catalog.schemas.product import (
    ActiveStatusRequest,
    CommentCreateRequest,
    CommentResponse,
    PaidProductResponse,
    ProductCreateRequest,
    ProductDetailsResponse,
    ProductPageResponse,
    ProductResponse,
    ProductUpdateRequest,
    StockAdjustRequest,
)
from catalog.services.aggregator import ProductAggregator
from catalog.services.cache_coordinator import CacheCoordinator
from catalog.services.collaborators import CommentClient, LikeClient
from catalog.services.lock_service import ProductLockManager
from catalog.services.photo_storage import PhotoStorage
from catalog.services.product_service import ProductService

router = APIRouter()


# 서비스 예외 → HTTP 상태 코드
ERROR_STATUS_CODES = {
    ProductNotFoundException: status.HTTP_404_NOT_FOUND,
    PhotoNotFoundException: status.HTTP_404_NOT_FOUND,
    InsufficientStockException: status.HTTP_409_CONFLICT,
    ProductAlreadyExistsException: status.HTTP_409_CONFLICT,
    LockAcquisitionException: status.HTTP_409_CONFLICT,
    ValidationFailureException: 422,
    StorageFailureException: status.HTTP_502_BAD_GATEWAY,
    CollaboratorException: status.HTTP_502_BAD_GATEWAY,
}

CATALOG_ERRORS = tuple(ERROR_STATUS_CODES)


def _http_error(e: Exception) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS_CODES[type(e)], detail=str(e))


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    product_data: ProductCreateRequest,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    """
    새 상품을 생성합니다.

    Example:
        Request:
        ```json
        {
            "name": "Windows 11 Pro Key",
            "price": "199.00",
            "stock_quantity": 10,
            "sku": "WIN11-PRO"
        }
        ```
    """
    try:
        return ProductService.create_product(product_data.model_dump(), db, cache)
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get("", response_model=ProductPageResponse)
def list_products(
    page: int = Query(0, ge=0, description="페이지 번호 (0부터 시작)"),
    size: int = Query(20, ge=1, le=100, description="페이지 크기"),
    sort: str = Query("created_at", description="정렬 키, '-' 접두사는 내림차순"),
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    """상품 목록을 페이지 단위로 조회합니다."""
    try:
        return ProductService.list_products(db, cache, page=page, size=size, sort=sort)
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get("/search", response_model=ProductPageResponse)
def search_products(
    name: Optional[str] = Query(None, description="상품명 부분 문자열 (대소문자 무시)"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    is_active: Optional[bool] = Query(None),
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=100),
    sort: str = Query("created_at"),
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    """
    조건으로 상품을 검색합니다.

    전달된 조건만 AND로 적용합니다.
    """
    try:
        return ProductService.search_products(
            db,
            cache,
            name=name,
            min_price=min_price,
            max_price=max_price,
            is_active=is_active,
            page=page,
            size=size,
            sort=sort,
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    """
    특정 상품의 정보를 조회합니다.

    Raises:
        HTTPException 404: 상품을 찾을 수 없는 경우
    """
    try:
        return ProductService.get_product(product_id, db, cache)
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.put("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    update_data: ProductUpdateRequest,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    locks: ProductLockManager = Depends(get_lock_manager),
):
    """상품 정보를 수정합니다 (전달된 필드만 반영)."""
    try:
        return ProductService.update_product(
            product_id, update_data.model_dump(exclude_unset=True), db, cache, locks
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    storage: PhotoStorage = Depends(get_photo_storage),
    locks: ProductLockManager = Depends(get_lock_manager),
):
    """상품과 상품 사진을 삭제합니다."""
    try:
        ProductService.delete_product(product_id, db, cache, storage, locks)
    except CATALOG_ERRORS as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{product_id}/active", response_model=ProductResponse)
def set_active_status(
    product_id: str,
    status_data: ActiveStatusRequest,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    locks: ProductLockManager = Depends(get_lock_manager),
):
    """상품의 판매 활성화 여부를 변경합니다."""
    try:
        return ProductService.set_active_status(
            product_id, status_data.is_active, db, cache, locks
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.patch("/{product_id}/stock", response_model=ProductResponse)
def adjust_stock(
    product_id: str,
    stock_data: StockAdjustRequest,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
):
    """
    재고를 조정합니다.

    Raises:
        HTTPException 404: 상품을 찾을 수 없는 경우
        HTTPException 409: 조정 결과 재고가 음수가 되는 경우
    """
    try:
        return ProductService.adjust_stock(product_id, stock_data.delta, db, cache)
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.put("/{product_id}/photo", response_model=ProductResponse)
def upload_photo(
    product_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    storage: PhotoStorage = Depends(get_photo_storage),
    locks: ProductLockManager = Depends(get_lock_manager),
):
    """
    상품 사진을 업로드(교체)합니다.

    Raises:
        HTTPException 404: 상품을 찾을 수 없는 경우
        HTTPException 502: 사진 저장소 업로드 실패 (기존 사진 유지)
    """
    content = file.file.read()
    try:
        return ProductService.replace_photo(
            product_id, content, file.filename, db, cache, storage, locks
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get(
    "/{product_id}/photo",
    response_class=Response,
    responses={200: {"content": {"image/*": {}}}},
)
def get_photo(
    product_id: str,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    storage: PhotoStorage = Depends(get_photo_storage),
):
    """상품의 현재 사진을 반환합니다."""
    try:
        photo = ProductService.get_product_photo(product_id, db, cache, storage)
    except CATALOG_ERRORS as e:
        raise _http_error(e)
    return Response(content=photo.content, media_type=photo.media_type)


@router.delete("/{product_id}/photo", response_model=ProductResponse)
def delete_photo(
    product_id: str,
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    storage: PhotoStorage = Depends(get_photo_storage),
    locks: ProductLockManager = Depends(get_lock_manager),
):
    """상품 사진을 삭제합니다 (사진이 없으면 변경 없음)."""
    try:
        return ProductService.delete_photo(product_id, db, cache, storage, locks)
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get("/{product_id}/details", response_model=ProductDetailsResponse)
def get_product_details(
    product_id: str,
    caller_id: Optional[str] = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    cache: CacheCoordinator = Depends(get_cache_coordinator),
    like_client: LikeClient = Depends(get_like_client),
    comment_client: CommentClient = Depends(get_comment_client),
    settings: Settings = Depends(get_settings),
):
    """
    상품 상세 정보를 조회합니다 (좋아요 수, 좋아요 여부, 최신 댓글 5개 포함).

    좋아요/댓글 서비스 장애 시에도 상품 정보는 기본값과 함께 반환됩니다.
    """
    try:
        return ProductAggregator.build_details(
            product_id, caller_id, db, cache, like_client, comment_client, settings
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.post(
    "/{product_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    product_id: str,
    comment_data: CommentCreateRequest,
    db: Session = Depends(get_db),
    comment_client: CommentClient = Depends(get_comment_client),
):
    """상품에 댓글을 작성합니다."""
    try:
        return ProductService.add_comment_to_product(
            product_id, comment_data.user_id, comment_data.content, db, comment_client
        )
    except CATALOG_ERRORS as e:
        raise _http_error(e)


@router.get("/{product_id}/paid", response_model=PaidProductResponse)
def get_product_for_paid(product_id: str, db: Session = Depends(get_db)):
    """결제/주문 처리용 상품 정보를 조회합니다 (digital_content 포함)."""
    try:
        return ProductService.get_product_for_paid(product_id, db)
    except CATALOG_ERRORS as e:
        raise _http_error(e)
