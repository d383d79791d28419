"""
pytest 픽스처 정의
"""

import itertools
import os

# catalog.db.database가 import 시점에 만드는 기본 엔진이 작업 디렉터리에 파일을 만들지 않도록 함
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from sqlalchemy.orm import Session, sessionmaker

from catalog.core.config import Settings
from catalog.db.database import create_db_engine, init_db
from catalog.services.cache_coordinator import CacheCoordinator
from catalog.services.lock_service import LocalProductLockManager
from catalog.services.photo_storage import LocalPhotoStorage
from catalog.services.product_service import ProductService
from tests.fakes import FakeCommentClient, FakeLikeClient


@pytest.fixture(scope="session")
def settings():
    """테스트용 설정 객체 픽스처"""
    return Settings(
        database_url="sqlite:///:memory:",
        lock_backend="local",
        lock_timeout_seconds=5,
        lock_retry_attempts=3,
        lock_retry_delay_ms=10,
        cache_product_max_entries=100,
        cache_product_ttl_seconds=60,
        cache_photo_max_entries=10,
        cache_photo_ttl_seconds=60,
        cache_listing_max_entries=50,
        cache_listing_ttl_seconds=30,
        storage_backend="local",
        collaborator_timeout_seconds=1.0,
        details_comment_limit=5,
    )


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """
    테스트마다 새 SQLite 파일 데이터베이스 엔진

    여러 스레드가 각자 세션으로 접근하는 동시성 테스트를 위해 파일 DB를 사용합니다.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def test_db(session_factory) -> Session:
    """테스트용 데이터베이스 세션 픽스처"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def cache(settings):
    """테스트마다 비어 있는 캐시 코디네이터"""
    return CacheCoordinator.from_settings(settings)


@pytest.fixture(scope="function")
def locks():
    return LocalProductLockManager(timeout_seconds=5)


@pytest.fixture(scope="function")
def photo_storage(tmp_path):
    return LocalPhotoStorage(tmp_path / "photos")


@pytest.fixture(scope="function")
def like_client():
    return FakeLikeClient()


@pytest.fixture(scope="function")
def comment_client():
    return FakeCommentClient()


@pytest.fixture(scope="function")
def make_product(test_db, cache):
    """기본값으로 상품을 생성하는 팩토리 픽스처 (SKU는 자동 증가)"""
    counter = itertools.count(1)

    def _make(**overrides):
        fields = {
            "name": "Test Product",
            "price": "10.00",
            "stock_quantity": 10,
            "sku": f"SKU-{next(counter):04d}",
        }
        fields.update(overrides)
        return ProductService.create_product(fields, test_db, cache)

    return _make
