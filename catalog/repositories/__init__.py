"""데이터 저장소 접근 계층."""

from catalog.repositories.product_repository import Page, ProductRepository

__all__ = ["Page", "ProductRepository"]
