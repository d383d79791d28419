from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog.api.routes import products
from catalog.core.config import get_settings
from catalog.core.logging_config import configure_logging
from catalog.db.database import init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_settings())
    init_db()
    yield


app = FastAPI(
    title="Digital Product Catalog API",
    description="캐시 일관성을 유지하는 디지털 상품 카탈로그 및 사진 관리 서비스",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(products.router, prefix="/api/products", tags=["products"])


@app.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "message": "Digital Product Catalog API",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """헬스체크 엔드포인트 (Docker 헬스체크용)"""
    return {"status": "healthy"}
