# tests/domains/test_admin.py

"""
최고 관리자 전용 API 엔드포인트 (/cms/admin)에 대한 통합 테스트 모듈입니다.

- 등록된 라우트 권한 목록
- 사용자 목록 / 비밀번호 재설정 / 삭제 / 그룹 변경
- 그룹 CRUD
- 그룹 권한 부여 / 회수
"""

import pytest
from httpx import AsyncClient
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.security import verify_password
from cms.domains.usr import models as usr_models

ADMIN_URL = "/cms/admin"


async def group_permissions(db: AsyncSession, group_id: int):
    result = await db.exec(
        select(usr_models.Permission).where(usr_models.Permission.group_id == group_id)
    )
    return sorted((entry.module, entry.permission) for entry in result.all())


# =============================================================================
# 1. 권한 / 접근 제어
# =============================================================================
@pytest.mark.asyncio
async def test_list_registered_permissions(admin_client: AsyncClient):
    response = await admin_client.get(f"{ADMIN_URL}/permission")

    assert response.status_code == 200
    assert response.json() == {"log": ["query all logs", "search logs", "query logged users"]}


@pytest.mark.asyncio
async def test_admin_routes_reject_non_admin(authorized_client: AsyncClient):
    response = await authorized_client.get(f"{ADMIN_URL}/group/all")

    assert response.status_code == 401
    assert response.json()["code"] == 10074


@pytest.mark.asyncio
async def test_admin_routes_require_token(client: AsyncClient):
    response = await client.get(f"{ADMIN_URL}/users")
    assert response.status_code == 401
    assert response.json()["code"] == 10013


# =============================================================================
# 2. 사용자 관리
# =============================================================================
@pytest.mark.asyncio
async def test_list_users_excludes_admins(
    admin_client: AsyncClient, test_user: usr_models.User, test_user_without_group: usr_models.User
):
    response = await admin_client.get(f"{ADMIN_URL}/users", params={"count": 1})

    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 2
    assert page["count"] == 1
    assert page["total_page"] == 2
    assert [user["username"] for user in page["items"]] == ["editor"]
    assert page["items"][0]["group_name"] == "editors"


@pytest.mark.asyncio
async def test_list_users_by_group(
    admin_client: AsyncClient, test_user: usr_models.User, test_user_without_group: usr_models.User
):
    response = await admin_client.get(f"{ADMIN_URL}/users", params={"group_id": test_user.group_id})

    assert [user["username"] for user in response.json()["items"]] == ["editor"]


@pytest.mark.asyncio
async def test_reset_user_password(admin_client: AsyncClient, test_user: usr_models.User, db_session: AsyncSession):
    response = await admin_client.put(
        f"{ADMIN_URL}/user/{test_user.id}/password",
        json={"new_password": "resetpass1", "confirm_password": "resetpass1"},
    )

    assert response.status_code == 201
    await db_session.refresh(test_user)
    assert verify_password("resetpass1", test_user.password_hash)


@pytest.mark.asyncio
async def test_reset_password_of_unknown_user(admin_client: AsyncClient):
    response = await admin_client.put(
        f"{ADMIN_URL}/user/999/password",
        json={"new_password": "resetpass1", "confirm_password": "resetpass1"},
    )
    assert response.status_code == 404
    assert response.json()["code"] == 10021


@pytest.mark.asyncio
async def test_invalid_path_id(admin_client: AsyncClient):
    response = await admin_client.delete(f"{ADMIN_URL}/user/0")

    assert response.status_code == 400
    assert response.json()["message"] == "id must be a positive integer"


@pytest.mark.asyncio
async def test_delete_user(admin_client: AsyncClient, test_user: usr_models.User, db_session: AsyncSession):
    response = await admin_client.delete(f"{ADMIN_URL}/user/{test_user.id}")

    assert response.status_code == 201
    assert response.json()["code"] == 3
    remaining = await db_session.exec(select(usr_models.User).where(usr_models.User.id == test_user.id))
    assert remaining.first() is None


@pytest.mark.asyncio
async def test_admin_cannot_be_deleted(admin_client: AsyncClient, test_admin_user: usr_models.User):
    response = await admin_client.delete(f"{ADMIN_URL}/user/{test_admin_user.id}")

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_change_user_group(
    admin_client: AsyncClient, test_user_without_group: usr_models.User,
    test_group: usr_models.Group, db_session: AsyncSession,
):
    response = await admin_client.put(
        f"{ADMIN_URL}/user/{test_user_without_group.id}", json={"group_id": test_group.id}
    )

    assert response.status_code == 201
    await db_session.refresh(test_user_without_group)
    assert test_user_without_group.group_id == test_group.id


@pytest.mark.asyncio
async def test_change_user_group_to_unknown_group(admin_client: AsyncClient, test_user: usr_models.User):
    response = await admin_client.put(f"{ADMIN_URL}/user/{test_user.id}", json={"group_id": 999})

    assert response.status_code == 404
    assert response.json()["code"] == 10024


# =============================================================================
# 3. 그룹 관리
# =============================================================================
@pytest.mark.asyncio
async def test_create_group_with_permissions(admin_client: AsyncClient, db_session: AsyncSession):
    payload = {
        "name": "auditors",
        "info": "감사 그룹",
        "permissions": [
            {"permission": "search logs", "module": "log"},
            {"permission": "query logged users", "module": "log"},
        ],
    }
    response = await admin_client.post(f"{ADMIN_URL}/group", json=payload)

    assert response.status_code == 201
    assert response.json()["code"] == 1

    created = (await db_session.exec(select(usr_models.Group).where(usr_models.Group.name == "auditors"))).one()
    assert await group_permissions(db_session, created.id) == [
        ("log", "query logged users"),
        ("log", "search logs"),
    ]


@pytest.mark.asyncio
async def test_create_group_with_unregistered_permission(admin_client: AsyncClient, db_session: AsyncSession):
    payload = {"name": "auditors", "permissions": [{"permission": "fly", "module": "log"}]}
    response = await admin_client.post(f"{ADMIN_URL}/group", json=payload)

    assert response.status_code == 404
    assert response.json()["code"] == 10076
    assert (await db_session.exec(select(usr_models.Group))).all() == []


@pytest.mark.asyncio
async def test_create_duplicate_group(admin_client: AsyncClient, test_group: usr_models.Group):
    response = await admin_client.post(f"{ADMIN_URL}/group", json={"name": "editors"})

    assert response.status_code == 400
    assert response.json()["code"] == 10060


@pytest.mark.asyncio
async def test_get_groups(admin_client: AsyncClient, test_group: usr_models.Group):
    all_groups = await admin_client.get(f"{ADMIN_URL}/group/all")
    assert [group["name"] for group in all_groups.json()] == ["editors"]

    detail = await admin_client.get(f"{ADMIN_URL}/group/{test_group.id}")
    assert detail.status_code == 200
    assert detail.json() == {
        "id": test_group.id,
        "name": "editors",
        "info": "편집자 그룹",
        "permissions": [{"permission": "query all logs", "module": "log"}],
    }


@pytest.mark.asyncio
async def test_get_unknown_group(admin_client: AsyncClient):
    response = await admin_client.get(f"{ADMIN_URL}/group/999")
    assert response.status_code == 404
    assert response.json()["code"] == 10024


@pytest.mark.asyncio
async def test_update_group(admin_client: AsyncClient, test_group: usr_models.Group, db_session: AsyncSession):
    response = await admin_client.put(f"{ADMIN_URL}/group/{test_group.id}", json={"name": "writers", "info": "작성자"})

    assert response.status_code == 201
    await db_session.refresh(test_group)
    assert (test_group.name, test_group.info) == ("writers", "작성자")


@pytest.mark.asyncio
async def test_delete_group_with_users_is_forbidden(admin_client: AsyncClient, test_user: usr_models.User):
    response = await admin_client.delete(f"{ADMIN_URL}/group/{test_user.group_id}")

    assert response.status_code == 403
    assert response.json()["code"] == 10075


@pytest.mark.asyncio
async def test_delete_empty_group_removes_permissions(
    admin_client: AsyncClient, test_group: usr_models.Group, db_session: AsyncSession
):
    response = await admin_client.delete(f"{ADMIN_URL}/group/{test_group.id}")

    assert response.status_code == 201
    remaining = await db_session.exec(select(usr_models.Group).where(usr_models.Group.id == test_group.id))
    assert remaining.first() is None
    assert await group_permissions(db_session, test_group.id) == []


# =============================================================================
# 4. 그룹 권한 부여 / 회수
# =============================================================================
@pytest.mark.asyncio
async def test_dispatch_permission(admin_client: AsyncClient, test_group: usr_models.Group, db_session: AsyncSession):
    payload = {"group_id": test_group.id, "permission": "search logs", "module": "log"}
    response = await admin_client.post(f"{ADMIN_URL}/permission/dispatch", json=payload)

    assert response.status_code == 201
    assert ("log", "search logs") in await group_permissions(db_session, test_group.id)

    # 이미 부여된 권한은 중복 생성되지 않습니다.
    await admin_client.post(f"{ADMIN_URL}/permission/dispatch", json=payload)
    assert len(await group_permissions(db_session, test_group.id)) == 2


@pytest.mark.asyncio
async def test_dispatch_unregistered_permission(admin_client: AsyncClient, test_group: usr_models.Group):
    payload = {"group_id": test_group.id, "permission": "delete everything", "module": "log"}
    response = await admin_client.post(f"{ADMIN_URL}/permission/dispatch", json=payload)

    assert response.status_code == 404
    assert response.json()["code"] == 10076


@pytest.mark.asyncio
async def test_dispatch_to_unknown_group(admin_client: AsyncClient):
    payload = {"group_id": 999, "permission": "search logs", "module": "log"}
    response = await admin_client.post(f"{ADMIN_URL}/permission/dispatch", json=payload)

    assert response.status_code == 404
    assert response.json()["code"] == 10024


@pytest.mark.asyncio
async def test_dispatch_and_remove_permissions_in_batch(
    admin_client: AsyncClient, test_group: usr_models.Group, db_session: AsyncSession
):
    permissions = [
        {"permission": "search logs", "module": "log"},
        {"permission": "query logged users", "module": "log"},
    ]
    response = await admin_client.post(
        f"{ADMIN_URL}/permission/dispatch/batch", json={"group_id": test_group.id, "permissions": permissions}
    )
    assert response.status_code == 201
    assert len(await group_permissions(db_session, test_group.id)) == 3

    response = await admin_client.post(
        f"{ADMIN_URL}/permission/remove",
        json={"group_id": test_group.id, "permissions": permissions + [{"permission": "query all logs", "module": "log"}]},
    )
    assert response.status_code == 201
    assert response.json()["code"] == 3
    assert await group_permissions(db_session, test_group.id) == []


@pytest.mark.asyncio
async def test_batch_dispatch_requires_permission_list(admin_client: AsyncClient, test_group: usr_models.Group):
    response = await admin_client.post(
        f"{ADMIN_URL}/permission/dispatch/batch", json={"group_id": test_group.id, "permissions": "all"}
    )
    assert response.status_code == 400

    response = await admin_client.post(
        f"{ADMIN_URL}/permission/dispatch/batch", json={"group_id": test_group.id, "permissions": []}
    )
    assert response.status_code == 400
    assert response.json()["message"] == "permissions must not be empty"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "permissions",
    [
        [{"permission": 1, "module": "log"}],
        [{"permission": "search logs", "module": ""}],
        [{"permission": "search logs"}],
        [{"permission": ["search logs"], "module": "log"}],
    ],
)
async def test_malformed_permission_entries_are_parameter_errors(
    admin_client: AsyncClient, test_group: usr_models.Group, permissions
):
    for url in (f"{ADMIN_URL}/permission/dispatch/batch", f"{ADMIN_URL}/permission/remove"):
        response = await admin_client.post(url, json={"group_id": test_group.id, "permissions": permissions})
        assert response.status_code == 400
        assert response.json()["code"] == 10030
        assert response.json()["message"] == "permissions must be a list of {permission, module}"

    response = await admin_client.post(f"{ADMIN_URL}/group", json={"name": "auditors", "permissions": permissions})
    assert response.status_code == 400
