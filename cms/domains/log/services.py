# cms/domains/log/services.py

"""
작업 로그(operation log) 기록 서비스입니다.

operation_log(template)는 FastAPI 의존성을 만들어 줍니다. 의존성은 요청 상태에 로그를 예약만 하고,
OperationLogMiddleware가 응답 상태 코드가 확정된 뒤 템플릿을 렌더링해 cms_log 테이블에 한 줄을 기록합니다.
응답이 400 이상이면 (핸들러가 예외로 끝났으면) 기록하지 않습니다.

    @router.put("/", dependencies=[Depends(operation_log("{user.username} updated the profile"))])

템플릿 자리표시자: {user.<속성>}, {request.<속성>}, {response.<속성>}
    request: method, path, url, query, client
    response: status_code (실제 응답 상태 코드)
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from fastapi import Request
from sqlmodel.ext.asyncio.session import AsyncSession
from starlette.middleware.base import BaseHTTPMiddleware

from cms.core.database import AsyncSessionLocal
from cms.core.dependencies import current_route_path, get_route_registry

from .models import Log

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
PENDING_STATE_KEY = "operation_log"


def _request_values(request: Request) -> dict:
    return {
        "method": request.method,
        "path": request.url.path,
        "url": str(request.url),
        "query": request.url.query,
        "client": request.client.host if request.client else "",
    }


def render_template(template: str, user: Any = None, request: Optional[Request] = None,
                    status_code: Optional[int] = None) -> str:
    """
    템플릿의 {대상.속성} 자리표시자를 값으로 바꿉니다.
    값이 없으면 빈 문자열, '.'이 없는 자리표시자는 ValueError 입니다.
    """
    def replace(match: "re.Match[str]") -> str:
        item = match.group(1)
        if "." not in item:
            raise ValueError(f"placeholder {{{item}}} must contain a '.'")
        target, prop = item.rsplit(".", 1)
        if target == "user":
            value = getattr(user, prop, "") if user is not None else ""
        elif target == "request":
            value = _request_values(request).get(prop, "") if request is not None else ""
        elif target == "response":
            value = status_code if prop == "status_code" and status_code is not None else ""
        else:
            value = ""
        return "" if value is None else str(value)

    return PLACEHOLDER.sub(replace, template)


@dataclass
class PendingLog:
    """핸들러 실행 전에 예약해 둔 작업 로그. 응답 상태가 확정된 뒤 기록됩니다."""
    template: str
    permission: Optional[str] = None


async def write_log(db: AsyncSession, request: Request, pending: PendingLog, status_code: int) -> Optional[Log]:
    user = getattr(request.state, "current_user", None)
    if user is None:
        logger.debug("Skip operation log for %s %s: no current user", request.method, request.url.path)
        return None

    entry = Log(
        message=render_template(pending.template, user, request, status_code),
        user_id=user.id,
        username=user.username,
        status_code=status_code,
        method=request.method,
        path=request.url.path,
        permission=pending.permission,
    )
    db.add(entry)
    await db.commit()
    return entry


def operation_log(template: str):
    """작업 로그를 예약하는 의존성을 만듭니다. 기록은 OperationLogMiddleware가 합니다."""
    # 템플릿 형식 오류는 라우트 선언 시점에 드러나도록 미리 렌더링해 봅니다.
    render_template(template)

    async def dependency(request: Request) -> None:
        meta = get_route_registry(request).get(request.method, current_route_path(request))
        setattr(request.state, PENDING_STATE_KEY, PendingLog(template, meta.permission if meta else None))

    return dependency


class OperationLogMiddleware(BaseHTTPMiddleware):
    """
    예약된 작업 로그를 실제 응답 상태 코드와 함께 기록합니다.
    상태 코드가 400 이상이면 (핸들러가 예외로 끝났으면) 기록하지 않습니다.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        pending = getattr(request.state, PENDING_STATE_KEY, None)
        if pending is not None and response.status_code < 400:
            async with AsyncSessionLocal() as db:
                await write_log(db, request, pending, response.status_code)
        return response
