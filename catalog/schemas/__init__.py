"""
Pydantic 스키마 모듈
"""

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

__all__ = [
    "ActiveStatusRequest",
    "CommentCreateRequest",
    "CommentResponse",
    "PaidProductResponse",
    "ProductCreateRequest",
    "ProductDetailsResponse",
    "ProductPageResponse",
    "ProductResponse",
    "ProductUpdateRequest",
    "StockAdjustRequest",
]
