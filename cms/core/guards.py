# cms/core/guards.py

"""
요청 단위 인가 가드(AuthGuard)를 정의하는 모듈입니다.

상태 흐름:
    UNAUTHENTICATED -> HEADER_PARSED -> TYPE_VALIDATED -> USER_RESOLVED -> ACTIVE_CHECKED
        -> AUTHORIZED | ADMIN_BYPASS | GROUP_CHECKED

가드는 HTTP 프레임워크와 독립적입니다. 메서드, Authorization 헤더 값, 라우트 경로만 입력으로 받고,
사용자/권한 조회는 주입된 lookup 객체에 위임합니다. FastAPI와의 연결은 dependencies.py에서 합니다.
"""

import logging
from typing import Any, Optional, Protocol

from cms.core.exceptions import AuthFailed, HttpException, NotFound, RefreshException
from cms.core.permissions import RoutePermissionRegistry
from cms.core.token import TokenService, TokenType

logger = logging.getLogger(__name__)

BEARER = "bearer"


class UserLike(Protocol):
    id: Any
    group_id: Optional[int]

    @property
    def is_active(self) -> bool: ...

    @property
    def is_admin(self) -> bool: ...


class UserLookup(Protocol):
    async def find_by_id(self, identity: Any) -> Optional[UserLike]: ...


class PermissionLookup(Protocol):
    async def find_one(self, permission: str, module: str, group_id: int) -> Optional[Any]: ...


class AuthGuard:
    def __init__(
        self,
        token_service: TokenService,
        registry: RoutePermissionRegistry,
        user_lookup: UserLookup,
        permission_lookup: Optional[PermissionLookup] = None,
    ):
        self.token_service = token_service
        self.registry = registry
        self.user_lookup = user_lookup
        self.permission_lookup = permission_lookup

    @staticmethod
    def is_preflight(method: str) -> bool:
        return method.upper() == "OPTIONS"

    async def parse_header(self, authorization: Optional[str], token_type: TokenType = TokenType.ACCESS) -> UserLike:
        """'Bearer <token>' 헤더를 검증하고 토큰의 identity에 해당하는 사용자를 반환합니다."""
        if not authorization:
            raise AuthFailed(10013)
        parts = authorization.split(" ")
        if len(parts) != 2 or parts[0].lower() != BEARER or not parts[1]:
            raise AuthFailed(10012)

        claims = self.token_service.verify_token(parts[1], token_type)
        user = await self.user_lookup.find_by_id(claims.get("identity"))
        if user is None:
            raise NotFound(10021)
        return user

    @staticmethod
    def check_active(user: UserLike) -> None:
        if not user.is_active:
            raise AuthFailed(10071)

    # -------------------------------------------------------------------------
    async def login_required(self, method: str, authorization: Optional[str]) -> Optional[UserLike]:
        if self.is_preflight(method):
            return None
        user = await self.parse_header(authorization)
        self.check_active(user)
        return user

    async def group_required(self, method: str, authorization: Optional[str],
                             route_path: Optional[str]) -> Optional[UserLike]:
        if self.is_preflight(method):
            return None
        user = await self.parse_header(authorization)
        self.check_active(user)
        if user.is_admin:
            return user

        if not user.group_id:
            raise AuthFailed(10073)
        meta = self.registry.get(method, route_path)
        if meta is None:
            logger.debug("No permission metadata for %s %s", method, route_path)
            raise AuthFailed(10001)
        if self.permission_lookup is None:
            raise RuntimeError("permission lookup is not configured")
        entry = await self.permission_lookup.find_one(meta.permission, meta.module, user.group_id)
        if entry is None:
            raise AuthFailed(10001)
        return user

    async def admin_required(self, method: str, authorization: Optional[str]) -> Optional[UserLike]:
        if self.is_preflight(method):
            return None
        user = await self.parse_header(authorization)
        self.check_active(user)
        if not user.is_admin:
            raise AuthFailed(10074)
        return user

    async def refresh_token_required(self, method: str, authorization: Optional[str]) -> Optional[UserLike]:
        if self.is_preflight(method):
            return None
        return await self.parse_header(authorization, TokenType.REFRESH)

    async def refresh_token_required_with_unify_exception(
        self, method: str, authorization: Optional[str]
    ) -> Optional[UserLike]:
        """refresh 엔드포인트용. 어떤 검사가 실패했는지 드러내지 않도록 RefreshException 하나로 통일합니다."""
        if self.is_preflight(method):
            return None
        try:
            return await self.parse_header(authorization, TokenType.REFRESH)
        except HttpException as e:
            logger.debug("Refresh token rejected: %s (%s)", type(e).__name__, e.code)
            raise RefreshException() from None
