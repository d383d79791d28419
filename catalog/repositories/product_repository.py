"""
상품 저장소 (ProductStore)

상품 레코드의 유일한 원천 저장소에 대한 접근을 담당합니다.
모든 변경은 단일 UPDATE/DELETE 문으로 실행되어 상품 ID 단위로 원자적이며,
동시에 읽는 쪽에서 일부 필드만 반영된 상태를 볼 수 없습니다.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog.core.exceptions import (
    ProductAlreadyExistsException,
    ProductNotFoundException,
    ValidationFailureException,
)
from catalog.models import Product
from catalog.models.product import utcnow

SORTABLE_FIELDS = {
    "name": Product.name,
    "price": Product.price,
    "stock_quantity": Product.stock_quantity,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}

DEFAULT_SORT = "created_at"


@dataclass
class Page:
    """페이지 조회 결과 (현재 페이지 항목 + 조건에 맞는 전체 개수)"""

    items: list[Product]
    total: int
    page: int
    size: int


def _order_by(sort: str):
    """
    "price" 또는 "-price" 형식의 정렬 키를 ORDER BY 절로 변환합니다.

    동일 값끼리는 id로 정렬하여 페이지 간 순서를 고정합니다.
    """
    descending = sort.startswith("-")
    field = sort[1:] if descending else sort
    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise ValidationFailureException(
            "sort", f"unsupported sort field '{field}'"
        )
    return [column.desc() if descending else column.asc(), Product.id.asc()]


def _check_paging(page: int, size: int) -> None:
    if page < 0:
        raise ValidationFailureException("page", "must be >= 0")
    if size < 1:
        raise ValidationFailureException("size", "must be >= 1")


def _touch(now):
    # updated_at은 상품별로 감소하지 않아야 함
    return case((Product.updated_at > now, Product.updated_at), else_=now)


class ProductRepository:
    """상품 레코드 CRUD 및 조건부 재고 갱신"""

    @staticmethod
    def create(fields: dict[str, Any], db: Session) -> Product:
        """
        상품을 생성합니다.

        Raises:
            ProductAlreadyExistsException: SKU가 이미 존재하는 경우
        """
        product = Product(**fields)
        db.add(product)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if ProductRepository.sku_taken(fields["sku"], db):
                raise ProductAlreadyExistsException(fields["sku"])
            raise
        db.refresh(product)
        return product

    @staticmethod
    def find(product_id: str, db: Session) -> Optional[Product]:
        """
        상품 ID로 상품을 조회합니다 (세션 캐시가 아닌 DB의 최신 상태).

        Returns:
            Product 객체 또는 None
        """
        stmt = (
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def get(product_id: str, db: Session) -> Product:
        """
        상품 ID로 상품을 조회합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """
        product = ProductRepository.find(product_id, db)
        if product is None:
            raise ProductNotFoundException(product_id)
        return product

    @staticmethod
    def exists(product_id: str, db: Session) -> bool:
        stmt = select(Product.id).where(Product.id == product_id).limit(1)
        return db.execute(stmt).scalar_one_or_none() is not None

    @staticmethod
    def sku_taken(sku: str, db: Session) -> bool:
        stmt = select(Product.id).where(Product.sku == sku).limit(1)
        return db.execute(stmt).scalar_one_or_none() is not None

    @staticmethod
    def list(db: Session, page: int = 0, size: int = 20, sort: str = DEFAULT_SORT) -> Page:
        """전체 상품을 페이지 단위로 조회합니다."""
        return ProductRepository.find_by_filters(db, page=page, size=size, sort=sort)

    @staticmethod
    def find_by_filters(
        db: Session,
        name: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        is_active: Optional[bool] = None,
        page: int = 0,
        size: int = 20,
        sort: str = DEFAULT_SORT,
    ) -> Page:
        """
        전달된 조건을 모두 만족하는 상품을 페이지 단위로 조회합니다.

        전달되지 않은 조건은 무시하며, name은 대소문자를 구분하지 않는
        부분 문자열 일치입니다.

        Args:
            db: DB 세션
            name: 상품명 부분 문자열
            min_price: 최소 가격 (이상)
            max_price: 최대 가격 (이하)
            is_active: 활성화 여부
            page: 페이지 번호 (0부터 시작)
            size: 페이지 크기
            sort: 정렬 키 ("-" 접두사는 내림차순)

        Returns:
            Page: 현재 페이지 항목과 전체 개수
        """
        _check_paging(page, size)
        order_by = _order_by(sort)

        conditions = []
        if name:
            conditions.append(Product.name.icontains(name, autoescape=True))
        if min_price is not None:
            conditions.append(Product.price >= min_price)
        if max_price is not None:
            conditions.append(Product.price <= max_price)
        if is_active is not None:
            conditions.append(Product.is_active == is_active)

        total = db.execute(
            select(func.count()).select_from(Product).where(*conditions)
        ).scalar_one()
        items = (
            db.execute(
                select(Product)
                .where(*conditions)
                .order_by(*order_by)
                .offset(page * size)
                .limit(size)
            )
            .scalars()
            .all()
        )
        return Page(items=list(items), total=total, page=page, size=size)

    @staticmethod
    def update(product_id: str, changes: dict[str, Any], db: Session) -> Product:
        """
        전달된 필드를 단일 UPDATE 문으로 반영합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
            ProductAlreadyExistsException: 변경할 SKU가 이미 사용 중인 경우
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(**changes, updated_at=_touch(utcnow()))
            .execution_options(synchronize_session=False)
        )
        try:
            result = db.execute(stmt)
            if result.rowcount == 0:
                db.rollback()
                raise ProductNotFoundException(product_id)
            db.commit()
        except IntegrityError:
            db.rollback()
            if "sku" in changes and ProductRepository.sku_taken(changes["sku"], db):
                raise ProductAlreadyExistsException(changes["sku"])
            raise
        return ProductRepository.get(product_id, db)

    @staticmethod
    def delete(product_id: str, db: Session) -> None:
        """
        상품을 삭제합니다.

        Raises:
            ProductNotFoundException: 상품이 없는 경우
        """
        # 기본 synchronize_session으로 세션에 로드된 인스턴스도 삭제 상태로 분리
        result = db.execute(delete(Product).where(Product.id == product_id))
        if result.rowcount == 0:
            db.rollback()
            raise ProductNotFoundException(product_id)
        db.commit()

    @staticmethod
    def adjust_stock_if_available(
        product_id: str, delta: int, db: Session
    ) -> Optional[int]:
        """
        조건부 UPDATE로 재고를 원자적으로 조정합니다.

        UPDATE products SET stock_quantity = stock_quantity + :delta
        WHERE id = :id AND stock_quantity + :delta >= 0

        조건 평가와 쓰기가 하나의 문장에서 실행되므로, 각자 스냅샷 검사를
        통과한 두 차감이 모두 성공해 재고가 음수가 되는 일이 없습니다.
        조정 후 수량은 같은 트랜잭션 안에서 읽으므로 다른 쓰기가 끼어들 수 없습니다.

        Returns:
            조정 후 재고 수량, 조건이 거짓이거나 상품이 없어 반영되지 않았으면 None
        """
        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.stock_quantity + delta >= 0,
            )
            .values(
                stock_quantity=Product.stock_quantity + delta,
                updated_at=_touch(utcnow()),
            )
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        if result.rowcount == 0:
            db.rollback()
            return None

        new_quantity = db.execute(
            select(Product.stock_quantity).where(Product.id == product_id)
        ).scalar_one()
        db.commit()
        return new_quantity

    @staticmethod
    def current_stock(product_id: str, db: Session) -> Optional[int]:
        stmt = select(Product.stock_quantity).where(Product.id == product_id)
        return db.execute(stmt).scalar_one_or_none()
