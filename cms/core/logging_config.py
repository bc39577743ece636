# cms/core/logging_config.py

"""
애플리케이션 로깅 설정과 요청 로깅 미들웨어를 정의하는 모듈입니다.

- setup_logging(): dictConfig로 콘솔 핸들러와 (LOG_DIR이 있으면) 회전 파일 핸들러를 구성합니다.
- RequestLoggingMiddleware: 요청마다 메서드, 경로, 상태 코드, 처리 시간을 한 줄로 남깁니다.
"""

import logging
import logging.config
import os
import time
from typing import Any, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from cms.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "cms.log"

# 외부 라이브러리 로그는 경고 이상만 남깁니다.
QUIET_LOGGERS = ("asyncpg", "aiosqlite", "sqlalchemy.engine", "passlib", "arq")

request_logger = logging.getLogger("cms.request")


def build_logging_config(level: str = "INFO", log_dir: Optional[str] = None) -> Dict[str, Any]:
    level = level.upper()
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    }
    if log_dir:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "default",
            "filename": os.path.join(log_dir, LOG_FILE_NAME),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def setup_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
    level = level or ("DEBUG" if settings.DEBUG_MODE else settings.LOG_LEVEL)
    log_dir = log_dir or settings.LOG_DIR
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(level, log_dir))
    logging.getLogger(__name__).debug("Logging configured: level=%s, log_dir=%s", level, log_dir)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        request_logger.info(
            "%s %s -> %d (%.1f ms)", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response
