"""비즈니스 로직 서비스."""

from catalog.services.aggregator import ProductAggregator
from catalog.services.cache_coordinator import CacheCoordinator
from catalog.services.product_service import ProductPhoto, ProductService
from catalog.services.stock_ledger import StockLedger

__all__ = [
    "CacheCoordinator",
    "ProductAggregator",
    "ProductPhoto",
    "ProductService",
    "StockLedger",
]
