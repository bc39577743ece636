# cms/domains/log/routers.py

"""
'log' 도메인(작업 로그 조회)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
모든 엔드포인트는 group_required 가드와 'log' 모듈 권한으로 보호됩니다.
"""

from datetime import UTC

from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core import dependencies as deps
from cms.core.checks import Coerced, to_datetime
from cms.core.database import get_session
from cms.core.permissions import PermissionRouter
from cms.core.validator import Rule, Validator, custom_validator, validated
from cms.utils.pagination import Page, paginate

from . import crud as log_crud
from .models import LogRead

router = PermissionRouter(
    tags=["Log (작업 로그)"],
    responses={404: {"description": "Not found"}},
)

LOG_MODULE = "log"


# =============================================================================
# 요청 검증기
# =============================================================================
def as_utc_time(value) -> Coerced:
    """isDate와 같은 형식을 해석하고 UTC 기준 aware datetime으로 맞춥니다. 시간대가 없으면 UTC로 봅니다."""
    parsed = to_datetime(value)
    if parsed is None:
        return Coerced(False)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return Coerced(True, parsed.astimezone(UTC))


class LogFindValidator(Validator):
    name = Rule("isOptional")
    start = [Rule("isOptional"), Rule(as_utc_time, "start must be a date, e.g. 2026-01-01 00:00:00")]
    end = [Rule("isOptional"), Rule(as_utc_time, "end must be a date, e.g. 2026-01-01 23:59:59")]

    @custom_validator(key="start")
    def validate_time_range(self):
        start, end = self.get("query.start"), self.get("query.end")
        if not start or not end or any(error.key in ("start", "end") for error in self.errors):
            return True
        return start <= end, "start must be earlier than end"


class LogSearchValidator(LogFindValidator):
    keyword = Rule("isNotEmpty", "keyword is required")


# =============================================================================
# 엔드포인트
# =============================================================================
@router.permission_get(
    "/", permission="query all logs", module=LOG_MODULE, mount=True,
    response_model=Page[LogRead], summary="작업 로그 조회",
)
async def get_logs(
    request: Request,
    current_user=Depends(deps.group_required),
    v: LogFindValidator = Depends(validated(LogFindValidator)),
    db: AsyncSession = Depends(get_session),
):
    start, count = paginate(request)
    items, total = await log_crud.log.get_logs(
        db,
        username=v.get("query.name"),
        start=v.get("query.start"),
        end=v.get("query.end"),
        skip=start,
        limit=count,
    )
    return Page.build(items, total, start, count)


@router.permission_get(
    "/search", permission="search logs", module=LOG_MODULE, mount=True,
    response_model=Page[LogRead], summary="키워드로 작업 로그 검색",
)
async def search_logs(
    request: Request,
    current_user=Depends(deps.group_required),
    v: LogSearchValidator = Depends(validated(LogSearchValidator)),
    db: AsyncSession = Depends(get_session),
):
    start, count = paginate(request)
    items, total = await log_crud.log.get_logs(
        db,
        username=v.get("query.name"),
        start=v.get("query.start"),
        end=v.get("query.end"),
        keyword=v.get("query.keyword"),
        skip=start,
        limit=count,
    )
    return Page.build(items, total, start, count)


@router.permission_get(
    "/users", permission="query logged users", module=LOG_MODULE, mount=True,
    response_model=Page[str], summary="로그를 남긴 사용자 목록",
)
async def get_logged_users(
    request: Request,
    current_user=Depends(deps.group_required),
    db: AsyncSession = Depends(get_session),
):
    start, count = paginate(request)
    names, total = await log_crud.log.get_usernames(db, skip=start, limit=count)
    return Page.build(names, total, start, count)
