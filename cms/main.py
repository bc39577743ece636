# cms/main.py

"""
FastAPI 애플리케이션 생성 모듈입니다.

create_app()이 로깅, 예외 처리기, 라우터, 라우트 권한 레지스트리, 플러그인, 정적 파일을
한 번에 구성합니다. 모든 도메인 모델은 테이블 생성을 위해 이곳에서 임포트합니다.

    uvicorn cms.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from arq.connections import RedisSettings, create_pool
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms import API_PREFIX, APP_VERSION
from cms.core.config import Config, config, settings
from cms.core.database import create_db_and_tables, engine, get_session
from cms.core.exceptions import UnknownException, register_exception_handlers
from cms.core.logging_config import RequestLoggingMiddleware, setup_logging
from cms.core.permissions import RoutePermissionRegistry
from cms.core.plugin import Loader

# 태스크 모듈 임포트
from cms.core import tasks as core_tasks
from cms.domains.log import tasks as log_tasks

# 테이블 생성을 위해 모든 도메인 모델을 임포트합니다.
from cms.domains.usr import models as usr_models  # noqa: F401
from cms.domains.log import models as log_models  # noqa: F401
from cms.domains.file import models as file_models  # noqa: F401

from cms.domains.usr.routers import admin_router, router as user_router
from cms.domains.log.routers import router as log_router
from cms.domains.log.services import OperationLogMiddleware
from cms.domains.file.routers import router as file_router

logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    log_tasks.purge_old_logs_task,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    jobs = [
        {
            'name': 'daily_db_health_check',
            'function': 'cms.core.tasks.health_check_database_task',
            'cron': '0 0 * * *',
            'timeout': 300,
            'keep_result': 600,
        },
        {
            'name': 'weekly_operation_log_purge',
            'function': 'cms.domains.log.tasks.purge_old_logs_task',
            'cron': '0 2 * * 0',  # 매주 일요일 02:00
            'timeout': 1800,
            'keep_result': 3600,
        },
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """데이터베이스 테이블과 (선택적으로) ARQ Redis 커넥션 풀의 수명 주기를 관리합니다."""
    logger.info("Starting %s", settings.APP_NAME)
    await create_db_and_tables()
    app.state.redis = None
    if settings.ARQ_ENABLED:
        app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
        logger.info("ARQ redis pool created (%s:%s)", settings.REDIS_HOST, settings.REDIS_PORT)

    yield

    logger.info("Shutting down %s", settings.APP_NAME)
    if app.state.redis is not None:
        await app.state.redis.close()
    await engine.dispose()


def create_app(app_config: Optional[Config] = None, load_plugins: bool = True) -> FastAPI:
    app_config = app_config or config
    setup_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description="CMS backend API: JWT authentication, group permissions, operation logs and file uploads.",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # -- 미들웨어 / 예외 처리기 --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(OperationLogMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    # -- 라우터 및 라우트 권한 레지스트리 --
    registry = RoutePermissionRegistry()
    app.state.config = app_config
    app.state.route_registry = registry
    routers = [
        (user_router, f"{API_PREFIX}/user"),
        (admin_router, f"{API_PREFIX}/admin"),
        (log_router, f"{API_PREFIX}/log"),
        (file_router, f"{API_PREFIX}/file"),
    ]
    for router, prefix in routers:
        app.include_router(router, prefix=prefix)
        registry.include_router(router, prefix=prefix)

    # -- 플러그인 --
    if load_plugins:
        loader = Loader(app_config.get_item("plugin_path", {}), app_config)
        loader.load_plugins()
        loader.mount(app, registry)
        app.state.plugins = loader.plugins
    logger.info("Registered %d route permissions", len(registry))

    # -- 업로드 파일 정적 제공 --
    app.mount(
        "/assets",
        StaticFiles(directory=app_config.get_item("file.store_dir"), check_dir=False),
        name="assets",
    )

    @app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
    async def read_root():
        return {"message": f"Welcome to {settings.APP_NAME}. Visit /docs for interactive API documentation."}

    @app.get("/health-check", summary="Health Check",
             response_description="Status of the application and database connection.")
    async def health_check(session: AsyncSession = Depends(get_session)):
        """데이터베이스에 간단한 쿼리를 실행해 연결 상태를 확인합니다."""
        result = await session.execute(select(1))
        if result.scalar_one_or_none() != 1:
            raise UnknownException(message="Database health check failed: No result from test query")
        return {"status": "ok", "database_connection": "successful"}

    return app


app = create_app()
