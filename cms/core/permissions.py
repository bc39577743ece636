# cms/core/permissions.py

"""
라우트 권한 메타 정보(RouteMeta)와 이를 모아 두는 레지스트리를 정의하는 모듈입니다.

PermissionRouter로 라우트를 선언하면 (HTTP 메서드, 경로 템플릿, RouteMeta)가 라우터에 기록되고,
create_app()이 라우터를 포함할 때 prefix를 붙인 전체 경로로 앱 소유의
RoutePermissionRegistry(app.state.route_registry)에 복사됩니다. 함수 이름은 모듈과 플러그인 사이에서
겹칠 수 있으므로 키로 쓰지 않습니다. 요청 처리 중에는 그룹 가드가 레지스트리를 읽기만 합니다.

    router = PermissionRouter()

    @router.permission_get("/", permission="view logs", module="log", mount=True)
    async def get_logs(...):
        ...
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from fastapi import APIRouter

# 레지스트리 키: "<METHOD> <full path template>", 예: "GET /cms/log/search"
RouteKey = str


@dataclass(frozen=True)
class RouteMeta:
    permission: str
    module: str
    mount: bool = True


def make_key(method: str, route_path: str) -> RouteKey:
    return f"{method.upper()} {route_path}"


class RoutePermissionRegistry:
    """(HTTP 메서드, 전체 경로 템플릿) -> RouteMeta 매핑. 앱 생성 시에만 기록됩니다."""

    def __init__(self) -> None:
        self._entries: "OrderedDict[RouteKey, RouteMeta]" = OrderedDict()

    def register(self, method: str, route_path: str, meta: RouteMeta) -> None:
        key = make_key(method, route_path)
        existing = self._entries.get(key)
        if existing is not None and existing != meta:
            raise ValueError(f"route {key!r} is already registered with {existing}")
        self._entries[key] = meta

    def include_router(self, router: APIRouter, prefix: str = "") -> None:
        """
        PermissionRouter에 기록된 메타 정보를 모두 등록합니다. 일반 APIRouter는 무시합니다.
        prefix는 app.include_router()에 넘긴 값과 같아야 요청 시의 라우트 경로와 일치합니다.
        """
        for method, path, meta in getattr(router, "permission_metas", ()):
            self.register(method, prefix + path, meta)

    def get(self, method: str, route_path: Optional[str]) -> Optional[RouteMeta]:
        if not route_path:
            return None
        return self._entries.get(make_key(method, route_path))

    def find_by_permission(self, permission: str, module: Optional[str] = None) -> Optional[RouteMeta]:
        for meta in self._entries.values():
            if meta.permission == permission and (module is None or meta.module == module):
                return meta
        return None

    def grouped_by_module(self, mounted_only: bool = True) -> Dict[str, List[str]]:
        """{module: [permission, ...]} 형태로 정리합니다. 권한 이름은 중복 없이 등록 순서를 유지합니다."""
        grouped: Dict[str, List[str]] = {}
        for meta in self._entries.values():
            if mounted_only and not meta.mount:
                continue
            permissions = grouped.setdefault(meta.module, [])
            if meta.permission not in permissions:
                permissions.append(meta.permission)
        return grouped

    def items(self) -> Iterator[Tuple[RouteKey, RouteMeta]]:
        return iter(self._entries.items())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PermissionRouter(APIRouter):
    """
    권한 메타 정보를 함께 선언할 수 있는 APIRouter 입니다.
    mount=True 인 라우트만 권한 레지스트리에 기록됩니다.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.permission_metas: List[Tuple[str, str, RouteMeta]] = []

    def permission_route(
        self,
        method: str,
        path: str,
        *,
        permission: Optional[str] = None,
        module: Optional[str] = None,
        mount: bool = False,
        **kwargs: Any,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        if mount:
            assert permission and module, "permission and module must not be empty, if you want to mount"
        method = method.upper()

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add_api_route(path, func, methods=[method], **kwargs)
            if mount:
                self.permission_metas.append((method, self.prefix + path, RouteMeta(permission, module, mount)))
            return func

        return decorator

    def permission_get(self, path: str, **kwargs: Any):
        return self.permission_route("GET", path, **kwargs)

    def permission_post(self, path: str, **kwargs: Any):
        return self.permission_route("POST", path, **kwargs)

    def permission_put(self, path: str, **kwargs: Any):
        return self.permission_route("PUT", path, **kwargs)

    def permission_patch(self, path: str, **kwargs: Any):
        return self.permission_route("PATCH", path, **kwargs)

    def permission_delete(self, path: str, **kwargs: Any):
        return self.permission_route("DELETE", path, **kwargs)

    def permission_head(self, path: str, **kwargs: Any):
        return self.permission_route("HEAD", path, **kwargs)

    def permission_options(self, path: str, **kwargs: Any):
        return self.permission_route("OPTIONS", path, **kwargs)

    def include_router(self, router: APIRouter, *args: Any, prefix: str = "", **kwargs: Any) -> None:
        super().include_router(router, *args, prefix=prefix, **kwargs)
        self.permission_metas.extend(
            (method, self.prefix + prefix + path, meta)
            for method, path, meta in getattr(router, "permission_metas", ())
        )
