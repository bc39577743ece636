# cms/domains/usr/routers.py

"""
'usr' 도메인 (사용자, 그룹, 권한 관리)과 관련된 API 엔드포인트를 정의하는 모듈입니다.

- router: 로그인, 토큰 갱신, 내 정보/비밀번호/권한 조회 (/cms/user)
- admin_router: 최고 관리자 전용 사용자/그룹/권한 관리 (/cms/admin)

prefix는 main.py에서 관리합니다.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core import dependencies as deps
from cms.core.database import get_session
from cms.core.exceptions import AuthFailed, NotFound, ParameterException, success_response
from cms.core.limiter import RateLimiter
from cms.core.permissions import RoutePermissionRegistry
from cms.core.security import verify_password
from cms.core.token import get_tokens
from cms.core.validator import validated
from cms.domains.log.services import operation_log
from cms.utils.pagination import Page, paginate

from . import crud as usr_crud
from . import models as usr_models
from . import schemas as usr_schemas
from . import validators as usr_validators

router = APIRouter(
    tags=["User (사용자 인증 및 내 정보)"],
    responses={404: {"description": "Not found"}},
)

admin_router = APIRouter(
    tags=["Admin (사용자/그룹/권한 관리)"],
    responses={404: {"description": "Not found"}},
)


async def _group_name(db: AsyncSession, group_id: Optional[int]) -> Optional[str]:
    if not group_id:
        return None
    found = await usr_crud.group.get(db, group_id)
    return found.name if found else None


def _tokens(user: usr_models.User) -> usr_schemas.Tokens:
    access_token, refresh_token = get_tokens(user)
    return usr_schemas.Tokens(access_token=access_token, refresh_token=refresh_token)


# =============================================================================
# 1. 인증 (Authentication) 엔드포인트
# =============================================================================
@router.post("/login", response_model=usr_schemas.Tokens, summary="로그인 (Access/Refresh Token 발급)",
             dependencies=[Depends(RateLimiter(endpoint="login"))])
async def login(
    v: usr_validators.LoginValidator = Depends(validated(usr_validators.LoginValidator)),
    db: AsyncSession = Depends(get_session),
):
    user = await usr_crud.user.authenticate(db, username=v.get("body.username"), password=v.get("body.password"))
    if not user.is_active:
        raise AuthFailed(10071)
    return _tokens(user)


@router.get("/refresh", response_model=usr_schemas.Tokens, summary="Refresh Token으로 토큰 재발급")
async def refresh(current_user: usr_models.User = Depends(deps.refresh_token_required_with_unify_exception)):
    return _tokens(current_user)


@router.post("/register", summary="새 사용자 등록 (관리자 전용)",
             dependencies=[Depends(operation_log("{user.username} registered a new user"))])
async def register(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.RegisterValidator = Depends(validated(usr_validators.RegisterValidator)),
    db: AsyncSession = Depends(get_session),
):
    user_in = usr_schemas.UserCreate(
        username=v.get("body.username"),
        password=v.get("body.password"),
        nickname=v.get("body.nickname"),
        email=v.get("body.email"),
        group_id=v.get("body.group_id"),
    )
    await usr_crud.user.create(db, obj_in=user_in)
    return success_response(request, 1, "user registered")


# =============================================================================
# 2. 내 정보 엔드포인트
# =============================================================================
@router.get("/information", response_model=usr_schemas.UserRead, summary="현재 사용자 정보 조회")
async def get_information(
    current_user: usr_models.User = Depends(deps.login_required),
    db: AsyncSession = Depends(get_session),
):
    return usr_schemas.UserRead.from_user(current_user, await _group_name(db, current_user.group_id))


@router.put("/", summary="현재 사용자 정보 수정",
            dependencies=[Depends(operation_log("{user.username} updated the profile"))])
async def update_information(
    request: Request,
    current_user: usr_models.User = Depends(deps.login_required),
    v: usr_validators.UpdateInfoValidator = Depends(validated(usr_validators.UpdateInfoValidator)),
    db: AsyncSession = Depends(get_session),
):
    # 전달된 필드만 수정합니다.
    changes = {
        name: v.get(f"body.{name}")
        for name in ("email", "nickname", "avatar")
        if v.get(f"body.{name}") is not None
    }
    await usr_crud.user.update(db, db_obj=current_user, obj_in=usr_schemas.UserUpdate(**changes))
    return success_response(request, 2, "profile updated")


@router.put("/change_password", summary="현재 사용자 비밀번호 변경",
            dependencies=[Depends(operation_log("{user.username} changed the password"))])
async def change_password(
    request: Request,
    current_user: usr_models.User = Depends(deps.login_required),
    v: usr_validators.ChangePasswordValidator = Depends(validated(usr_validators.ChangePasswordValidator)),
    db: AsyncSession = Depends(get_session),
):
    if not verify_password(v.get("body.old_password"), current_user.password_hash):
        raise ParameterException(10031, message="old password is incorrect")
    await usr_crud.user.change_password(db, db_obj=current_user, new_password=v.get("body.new_password"))
    return success_response(request, 2, "password changed")


@router.get("/permissions", response_model=usr_schemas.UserPermissions, summary="현재 사용자의 권한 목록")
async def get_permissions(
    current_user: usr_models.User = Depends(deps.login_required),
    db: AsyncSession = Depends(get_session),
):
    user_read = usr_schemas.UserRead.from_user(current_user, await _group_name(db, current_user.group_id))
    if current_user.is_admin or not current_user.group_id:
        # 최고 관리자는 모든 권한을 가지므로 목록 대신 admin 플래그로 표시합니다.
        return usr_schemas.UserPermissions(**user_read.model_dump(), permissions=[])
    entries = await usr_crud.permission.get_by_group(db, group_id=current_user.group_id)
    return usr_schemas.UserPermissions(**user_read.model_dump(), permissions=usr_crud.group_by_module(entries))


# =============================================================================
# 3. 관리자: 권한 / 사용자
# =============================================================================
def _ensure_registered(registry: RoutePermissionRegistry, items: List[usr_schemas.PermissionItem]) -> None:
    for item in items:
        if registry.find_by_permission(item.permission, item.module) is None:
            raise NotFound(10076, message=f"permission '{item.permission}' of module '{item.module}' is not registered")


async def _ensure_group(db: AsyncSession, group_id: int) -> usr_models.Group:
    found = await usr_crud.group.get(db, group_id)
    if not found:
        raise NotFound(10024)
    return found


async def _ensure_user(db: AsyncSession, user_id: int) -> usr_models.User:
    found = await usr_crud.user.get(db, user_id)
    if not found or found.delete_time is not None:
        raise NotFound(10021)
    return found


@admin_router.get("/permission", response_model=Dict[str, List[str]], summary="등록된 라우트 권한 목록 (모듈별)")
async def get_all_permissions(
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    registry: RoutePermissionRegistry = Depends(deps.get_route_registry),
):
    return registry.grouped_by_module()


@admin_router.get("/users", response_model=Page[usr_schemas.UserRead], summary="사용자 목록 조회 (관리자 제외)")
async def get_users(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.UserListValidator = Depends(validated(usr_validators.UserListValidator)),
    db: AsyncSession = Depends(get_session),
):
    start, count = paginate(request)
    users, total = await usr_crud.user.get_page(db, group_id=v.get("query.group_id"), skip=start, limit=count)
    names = {group.id: group.name for group in await usr_crud.group.get_all(db)}
    items = [usr_schemas.UserRead.from_user(u, names.get(u.group_id)) for u in users]
    return Page.build(items, total, start, count)


@admin_router.put("/user/{id}/password", summary="사용자 비밀번호 재설정",
                  dependencies=[Depends(operation_log("{user.username} reset a user's password"))])
async def reset_user_password(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.ResetUserPasswordValidator = Depends(validated(usr_validators.ResetUserPasswordValidator)),
    db: AsyncSession = Depends(get_session),
):
    target = await _ensure_user(db, v.get("path.id"))
    await usr_crud.user.change_password(db, db_obj=target, new_password=v.get("body.new_password"))
    return success_response(request, 2, "password reset")


@admin_router.delete("/user/{id}", summary="사용자 삭제",
                     dependencies=[Depends(operation_log("{user.username} deleted a user"))])
async def delete_user(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.PositiveIdValidator = Depends(validated(usr_validators.PositiveIdValidator)),
    db: AsyncSession = Depends(get_session),
):
    await usr_crud.user.remove(db, id=v.get("path.id"))
    return success_response(request, 3, "user deleted")


@admin_router.put("/user/{id}", summary="사용자 소속 그룹 변경",
                  dependencies=[Depends(operation_log("{user.username} changed a user's group"))])
async def update_user_group(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.UpdateUserGroupValidator = Depends(validated(usr_validators.UpdateUserGroupValidator)),
    db: AsyncSession = Depends(get_session),
):
    target = await _ensure_user(db, v.get("path.id"))
    await usr_crud.user.update(db, db_obj=target, obj_in=usr_schemas.UserUpdate(group_id=v.get("body.group_id")))
    return success_response(request, 2, "user group updated")


# =============================================================================
# 4. 관리자: 그룹
# =============================================================================
@admin_router.get("/group/all", response_model=List[usr_schemas.GroupRead], summary="모든 그룹 조회")
async def get_all_groups(
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    db: AsyncSession = Depends(get_session),
):
    return await usr_crud.group.get_all(db)


@admin_router.get("/group/{id}", response_model=usr_schemas.GroupDetail, summary="그룹 상세 조회 (권한 포함)")
async def get_group(
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.PositiveIdValidator = Depends(validated(usr_validators.PositiveIdValidator)),
    db: AsyncSession = Depends(get_session),
):
    found = await _ensure_group(db, v.get("path.id"))
    entries = await usr_crud.permission.get_by_group(db, group_id=found.id)
    return usr_schemas.GroupDetail(
        id=found.id,
        name=found.name,
        info=found.info,
        permissions=[usr_schemas.PermissionItem(permission=e.permission, module=e.module) for e in entries],
    )


@admin_router.post("/group", status_code=status.HTTP_201_CREATED, summary="새 그룹 생성 (권한 부여 포함)",
                   dependencies=[Depends(operation_log("{user.username} created a group"))])
async def create_group(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.NewGroupValidator = Depends(validated(usr_validators.NewGroupValidator)),
    registry: RoutePermissionRegistry = Depends(deps.get_route_registry),
    db: AsyncSession = Depends(get_session),
):
    items = v.get("body.permissions", default=[])
    _ensure_registered(registry, items)
    created = await usr_crud.group.create(
        db, obj_in=usr_schemas.GroupCreate(name=v.get("body.name"), info=v.get("body.info"))
    )
    if items:
        await usr_crud.permission.dispatch(db, group_id=created.id, items=items)
    return success_response(request, 1, "group created")


@admin_router.put("/group/{id}", summary="그룹 정보 수정",
                  dependencies=[Depends(operation_log("{user.username} updated a group"))])
async def update_group(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.UpdateGroupValidator = Depends(validated(usr_validators.UpdateGroupValidator)),
    db: AsyncSession = Depends(get_session),
):
    found = await _ensure_group(db, v.get("path.id"))
    await usr_crud.group.update(
        db, db_obj=found, obj_in=usr_schemas.GroupUpdate(name=v.get("body.name"), info=v.get("body.info"))
    )
    return success_response(request, 2, "group updated")


@admin_router.delete("/group/{id}", summary="그룹 삭제",
                     dependencies=[Depends(operation_log("{user.username} deleted a group"))])
async def delete_group(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.PositiveIdValidator = Depends(validated(usr_validators.PositiveIdValidator)),
    db: AsyncSession = Depends(get_session),
):
    await usr_crud.group.remove(db, id=v.get("path.id"))
    return success_response(request, 3, "group deleted")


# =============================================================================
# 5. 관리자: 그룹 권한 부여 / 회수
# =============================================================================
@admin_router.post("/permission/dispatch", status_code=status.HTTP_201_CREATED, summary="그룹에 권한 하나 부여",
                   dependencies=[Depends(operation_log("{user.username} dispatched a permission"))])
async def dispatch_permission(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.DispatchPermissionValidator = Depends(validated(usr_validators.DispatchPermissionValidator)),
    registry: RoutePermissionRegistry = Depends(deps.get_route_registry),
    db: AsyncSession = Depends(get_session),
):
    group_id = v.get("body.group_id")
    await _ensure_group(db, group_id)
    items = [usr_schemas.PermissionItem(permission=v.get("body.permission"), module=v.get("body.module"))]
    _ensure_registered(registry, items)
    await usr_crud.permission.dispatch(db, group_id=group_id, items=items)
    return success_response(request, 1, "permission dispatched")


@admin_router.post("/permission/dispatch/batch", status_code=status.HTTP_201_CREATED, summary="그룹에 여러 권한 부여",
                   dependencies=[Depends(operation_log("{user.username} dispatched permissions"))])
async def dispatch_permissions(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.DispatchPermissionsValidator = Depends(validated(usr_validators.DispatchPermissionsValidator)),
    registry: RoutePermissionRegistry = Depends(deps.get_route_registry),
    db: AsyncSession = Depends(get_session),
):
    group_id = v.get("body.group_id")
    await _ensure_group(db, group_id)
    items = v.get("body.permissions")
    _ensure_registered(registry, items)
    await usr_crud.permission.dispatch(db, group_id=group_id, items=items)
    return success_response(request, 1, "permissions dispatched")


@admin_router.post("/permission/remove", summary="그룹의 권한 회수",
                   dependencies=[Depends(operation_log("{user.username} removed permissions"))])
async def remove_permissions(
    request: Request,
    current_admin_user: usr_models.User = Depends(deps.admin_required),
    v: usr_validators.DispatchPermissionsValidator = Depends(validated(usr_validators.DispatchPermissionsValidator)),
    db: AsyncSession = Depends(get_session),
):
    group_id = v.get("body.group_id")
    await _ensure_group(db, group_id)
    items = v.get("body.permissions")
    await usr_crud.permission.remove_many(db, group_id=group_id, items=items)
    return success_response(request, 3, "permissions removed")
