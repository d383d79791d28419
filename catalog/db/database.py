"""
SQLAlchemy 데이터베이스 설정

SQLAlchemy 엔진, 세션, Base 클래스를 정의합니다.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from catalog.core.config import get_settings

Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """
    데이터베이스 URL로 엔진을 생성합니다.

    SQLite는 요청 처리 스레드 간 커넥션 공유를 허용하고,
    쓰기 락 대기 시간을 늘려 동시 재고 조정이 대기 후 직렬화되도록 합니다.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(
        database_url,
        pool_size=20,
        max_overflow=40,
        pool_timeout=60,
        pool_pre_ping=True,  # connection 유효성 자동 체크
        pool_recycle=3600,  # 1시간마다 connection 재생성
    )


engine = create_db_engine(get_settings().database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """모든 테이블을 생성합니다 (이미 존재하면 무시)."""
    # 모델을 Base.metadata에 등록
    import catalog.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    FastAPI 의존성 주입용 데이터베이스 세션 제너레이터

    사용 예:
        @router.get("/products/{product_id}")
        def read_product(product_id: str, db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
