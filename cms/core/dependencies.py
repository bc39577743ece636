# cms/core/dependencies.py

"""
FastAPI 애플리케이션의 의존성 주입(Dependency Injection)을 정의하는 모듈입니다.

- 인가 가드 구성 (get_auth_guard): 토큰 서비스, 앱 소유의 라우트 권한 레지스트리, 세션 기반 조회 어댑터.
- 라우터에서 사용하는 가드 의존성: login_required, group_required, admin_required,
  refresh_token_required, refresh_token_required_with_unify_exception.

가드를 통과한 사용자는 request.state.current_user에 저장됩니다.

    @router.get("/information")
    async def information(current_user: User = Depends(login_required)):
        ...
"""

from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import APIKeyHeader
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.database import get_session
from cms.core.guards import AuthGuard
from cms.core.permissions import RoutePermissionRegistry
from cms.core.security import token_service
from cms.core.token import TokenService
from cms.domains.usr.crud import SessionPermissionLookup, SessionUserLookup
from cms.domains.usr.models import User

# OpenAPI 문서에 Authorization 헤더를 노출합니다. 헤더 형식 검사는 가드가 합니다.
authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# --- 인가 가드 구성 ---
def get_token_service() -> TokenService:
    return token_service


def get_route_registry(request: Request) -> RoutePermissionRegistry:
    registry = getattr(request.app.state, "route_registry", None)
    if registry is None:
        registry = RoutePermissionRegistry()
        request.app.state.route_registry = registry
    return registry


def get_auth_guard(
    db: AsyncSession = Depends(get_session),
    service: TokenService = Depends(get_token_service),
    registry: RoutePermissionRegistry = Depends(get_route_registry),
) -> AuthGuard:
    return AuthGuard(service, registry, SessionUserLookup(db), SessionPermissionLookup(db))


def current_route_path(request: Request) -> Optional[str]:
    """라우터가 매칭한 라우트의 전체 경로 템플릿 (예: "/cms/log/search"). 매칭되지 않았으면 None."""
    route = request.scope.get("route")
    return getattr(route, "path", None)


def _remember(request: Request, user: Optional[User]) -> Optional[User]:
    request.state.current_user = user
    return user


# --- 인증/인가 의존성 ---
async def login_required(
    request: Request,
    authorization: Optional[str] = Security(authorization_header),
    guard: AuthGuard = Depends(get_auth_guard),
) -> Optional[User]:
    return _remember(request, await guard.login_required(request.method, authorization))


async def group_required(
    request: Request,
    authorization: Optional[str] = Security(authorization_header),
    guard: AuthGuard = Depends(get_auth_guard),
) -> Optional[User]:
    user = await guard.group_required(request.method, authorization, current_route_path(request))
    return _remember(request, user)


async def admin_required(
    request: Request,
    authorization: Optional[str] = Security(authorization_header),
    guard: AuthGuard = Depends(get_auth_guard),
) -> Optional[User]:
    return _remember(request, await guard.admin_required(request.method, authorization))


async def refresh_token_required(
    request: Request,
    authorization: Optional[str] = Security(authorization_header),
    guard: AuthGuard = Depends(get_auth_guard),
) -> Optional[User]:
    return _remember(request, await guard.refresh_token_required(request.method, authorization))


async def refresh_token_required_with_unify_exception(
    request: Request,
    authorization: Optional[str] = Security(authorization_header),
    guard: AuthGuard = Depends(get_auth_guard),
) -> Optional[User]:
    user = await guard.refresh_token_required_with_unify_exception(request.method, authorization)
    return _remember(request, user)
