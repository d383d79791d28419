"""
상품 카탈로그 관련 Pydantic 스키마

API 요청/응답 모델과 캐시에 저장되는 읽기 전용 프로젝션을 정의합니다.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ProductCreateRequest(BaseModel):
    """
    상품 생성 요청 스키마

    Example:
        {
            "name": "Windows 11 Pro Key",
            "price": "199.00",
            "stock_quantity": 10,
            "sku": "WIN11-PRO"
        }
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="상품명",
        examples=["Windows 11 Pro Key"],
    )
    description: str | None = Field(None, description="상품 설명 (선택)")
    price: Decimal = Field(
        ...,
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="상품 가격 (0 이상)",
        examples=["199.00"],
    )
    stock_quantity: int = Field(
        0,
        ge=0,
        description="초기 재고 수량 (0 이상)",
        examples=[10],
    )
    sku: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="재고 관리 코드 (고유)",
        examples=["WIN11-PRO"],
    )
    is_active: bool = Field(True, description="판매 활성화 여부")
    digital_content: str | None = Field(
        None, description="구매 후 전달되는 디지털 콘텐츠 (선택)"
    )


class ProductUpdateRequest(BaseModel):
    """
    상품 수정 요청 스키마 (전달된 필드만 반영)

    재고는 /stock, 활성화 상태는 /active, 사진은 /photo 엔드포인트로 변경합니다.
    """

    name: str | None = Field(None, min_length=1, max_length=200, description="상품명")
    description: str | None = Field(None, description="상품 설명")
    price: Decimal | None = Field(
        None, ge=0, max_digits=12, decimal_places=2, description="상품 가격"
    )
    sku: str | None = Field(None, min_length=1, max_length=64, description="SKU")
    digital_content: str | None = Field(None, description="디지털 콘텐츠")


class ActiveStatusRequest(BaseModel):
    """활성화 상태 변경 요청 스키마"""

    is_active: bool = Field(..., description="판매 활성화 여부")


class StockAdjustRequest(BaseModel):
    """
    재고 조정 요청 스키마

    Example:
        {"delta": -2}
    """

    delta: int = Field(..., description="재고 변경량 (음수면 차감)", examples=[-2])


class CommentCreateRequest(BaseModel):
    """상품 댓글 작성 요청 스키마"""

    user_id: str = Field(..., min_length=1, description="작성자 사용자 ID")
    content: str = Field(..., min_length=1, max_length=2000, description="댓글 내용")


class ProductResponse(BaseModel):
    """
    상품 정보 응답 스키마

    캐시에 저장되는 읽기 프로젝션이므로 불변(frozen)입니다.
    digital_content는 포함하지 않습니다.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str = Field(..., description="상품 ID")
    name: str = Field(..., description="상품명")
    description: str | None = Field(None, description="상품 설명")
    price: Decimal = Field(..., description="상품 가격")
    stock_quantity: int = Field(..., description="재고 수량")
    sku: str = Field(..., description="SKU")
    photo_path: str | None = Field(None, description="현재 사진 경로")
    is_active: bool = Field(..., description="판매 활성화 여부")
    created_at: datetime = Field(..., description="상품 생성 일시")
    updated_at: datetime = Field(..., description="상품 수정 일시")


class ProductPageResponse(BaseModel):
    """페이지 단위 상품 목록 응답 스키마"""

    model_config = ConfigDict(frozen=True)

    items: list[ProductResponse] = Field(..., description="현재 페이지의 상품 목록")
    total: int = Field(..., description="조건에 맞는 전체 상품 수")
    page: int = Field(..., description="페이지 번호 (0부터 시작)")
    size: int = Field(..., description="페이지 크기")


class PaidProductResponse(BaseModel):
    """
    결제/주문 처리용 상품 응답 스키마

    구매 후 전달할 digital_content를 포함하며 캐시하지 않습니다.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    price: Decimal
    stock_quantity: int
    sku: str
    photo_path: str | None = None
    is_active: bool
    digital_content: str | None = None


class CommentResponse(BaseModel):
    """댓글 응답 스키마"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_id: str
    entity_type: str
    user_id: str
    content: str
    created_at: datetime


class ProductDetailsResponse(ProductResponse):
    """
    상품 상세(집계) 응답 스키마

    상품 필드에 좋아요 수, 현재 사용자의 좋아요 여부, 최신 댓글을 더합니다.
    """

    likes_count: int = Field(0, ge=0, description="좋아요 수")
    liked_by_current_user: bool = Field(
        False, description="현재 사용자가 좋아요를 눌렀는지 여부"
    )
    recent_comments: list[CommentResponse] = Field(
        default_factory=list, description="최신 댓글 (최신순, 최대 5개)"
    )
