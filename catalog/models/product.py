"""
Product 모델
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
)

from catalog.db.database import Base


def utcnow() -> datetime:
    """타임존 정보 없는 현재 UTC 시각"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_product_id() -> str:
    return str(uuid.uuid4())


class Product(Base):
    """
    판매 가능한 디지털 상품 모델

    Attributes:
        id: 상품 고유 ID (UUID 문자열, Primary Key)
        name: 상품명 (Not Null)
        description: 상품 설명 (Nullable)
        price: 가격 (고정 소수점, 0 이상)
        stock_quantity: 현재 재고 수량 (항상 0 이상, DB 제약조건으로 보장)
        sku: 재고 관리 코드 (Unique)
        photo_path: 사진 저장소의 현재 사진 경로 (Nullable)
        is_active: 판매 활성화 여부
        digital_content: 구매 후 전달되는 디지털 콘텐츠 (Nullable)
        created_at: 생성 일시 (자동 설정)
        updated_at: 수정 일시 (상품별로 감소하지 않음)
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=new_product_id)
    name = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)
    sku = Column(String(64), unique=True, nullable=False, index=True)
    photo_path = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    digital_content = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        """Product 객체의 문자열 표현"""
        return f"<Product(id={self.id}, sku='{self.sku}', price={self.price})>"

    def __str__(self) -> str:
        return f"Product: {self.name}"
