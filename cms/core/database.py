# cms/core/database.py

"""
애플리케이션의 데이터베이스 연결 및 세션 관리를 담당하는 모듈입니다.

- SQLModel의 비동기 엔진을 설정합니다.
- 비동기 세션 생성을 위한 유틸리티 함수를 제공합니다.
- 애플리케이션 시작 시 데이터베이스 테이블을 생성하는 함수를 포함합니다 (개발용).

모든 도메인 모델은 순환 import를 피하기 위해 main.py에서 임포트합니다.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.config import settings

logger = logging.getLogger(__name__)


def engine_options(url: str) -> Dict[str, Any]:
    """커넥션 풀 옵션. SQLite(테스트/로컬)는 풀 크기 옵션을 지원하지 않으므로 제외합니다."""
    options: Dict[str, Any] = {"echo": settings.DEBUG_MODE, "future": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_recycle=3600,  # 1시간마다 연결 재활용
            pool_size=10,
            max_overflow=20,
        )
    return options


_database_url = settings.DATABASE_URL.get_secret_value()
engine: AsyncEngine = create_async_engine(_database_url, **engine_options(_database_url))

# 비동기 세션을 생성하는 '세션 공장'
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

metadata = SQLModel.metadata


# =============================================================================
# 데이터베이스 초기화 및 테이블 생성 함수
# =============================================================================
async def create_db_and_tables(bind: AsyncEngine = None) -> None:
    """
    등록된 모든 SQLModel 테이블을 생성합니다. 기존 테이블은 삭제하지 않습니다.
    플러그인 모델도 Loader가 임포트한 뒤 호출해야 함께 생성됩니다.
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables are ready (%d tables)", len(SQLModel.metadata.tables))


# =============================================================================
# 비동기 데이터베이스 세션 의존성 주입
# =============================================================================
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 의존성 주입을 위한 비동기 데이터베이스 세션 제너레이터입니다.
    요청마다 새로운 세션을 생성하고, 요청 처리 후 세션을 자동으로 닫습니다.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    ARQ Task, CLI 스크립트 등 요청 바깥에서 사용할 독립적인 비동기 DB 세션입니다.
    블록이 정상 종료되면 commit, 예외가 나면 rollback 합니다.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
