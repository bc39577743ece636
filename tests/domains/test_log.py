# tests/domains/test_log.py

"""
'log' 도메인 API 엔드포인트 (/cms/log)와 작업 로그 기록에 대한 통합 테스트 모듈입니다.

- 작업 로그 기록 (operation_log 의존성)
- group_required 가드를 통한 로그 조회 권한
- 로그 검색 / 사용자 목록
- 오래된 로그 정리 태스크
"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.domains.log import services as log_services
from cms.domains.log import tasks as log_tasks
from cms.domains.log.models import Log
from cms.domains.usr import models as usr_models

LOG_URL = "/cms/log"


async def add_log(db: AsyncSession, message: str, username: str, time: datetime = None) -> Log:
    entry = Log(message=message, username=username, user_id=1, status_code=200, method="GET", path="/")
    if time is not None:
        entry.time = time
    db.add(entry)
    await db.commit()
    return entry


# =============================================================================
# 1. 작업 로그 기록
# =============================================================================
@pytest.mark.asyncio
async def test_operation_log_is_written_after_success(
    client: AsyncClient, test_user: usr_models.User, auth_headers, db_session: AsyncSession
):
    response = await client.put("/cms/user/", json={"nickname": "Kim"}, headers=auth_headers(test_user))
    assert response.status_code == 201

    entries = (await db_session.exec(select(Log))).all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.message == "editor updated the profile"
    assert entry.username == "editor"
    assert entry.user_id == test_user.id
    assert entry.method == "PUT"
    assert entry.path == "/cms/user/"
    assert entry.status_code == 201


@pytest.mark.asyncio
async def test_operation_log_is_skipped_on_failure(
    client: AsyncClient, test_user: usr_models.User, auth_headers, db_session: AsyncSession
):
    response = await client.put("/cms/user/", json={"email": "broken"}, headers=auth_headers(test_user))
    assert response.status_code == 400

    assert (await db_session.exec(select(Log))).all() == []


def test_render_template():
    user = usr_models.User(id=1, username="kim", password_hash="x")
    assert log_services.render_template("{user.username} logged in", user) == "kim logged in"
    assert log_services.render_template("{user.missing}!", user) == "!"
    assert log_services.render_template("{response.status_code}", status_code=201) == "201"
    assert log_services.render_template("{other.value}x") == "x"

    with pytest.raises(ValueError):
        log_services.render_template("{username}")


def test_operation_log_rejects_bad_template_at_declaration():
    with pytest.raises(ValueError):
        log_services.operation_log("{username} did something")


@pytest.mark.asyncio
async def test_operation_log_records_the_status_actually_sent(db_session: AsyncSession):
    app = FastAPI()
    app.add_middleware(log_services.OperationLogMiddleware)
    user = usr_models.User(id=42, username="kim", password_hash="x")

    async def signed_in(request: Request):
        request.state.current_user = user

    job_log = log_services.operation_log("{user.username} got {response.status_code}")

    @app.post("/jobs", dependencies=[Depends(signed_in), Depends(job_log)])
    async def accept_job():
        return JSONResponse({"queued": True}, status_code=202)

    @app.post("/broken", dependencies=[Depends(signed_in), Depends(log_services.operation_log("never"))])
    async def broken():
        return JSONResponse({"ok": False}, status_code=409)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        assert (await ac.post("/jobs")).status_code == 202
        assert (await ac.post("/broken")).status_code == 409

    entries = (await db_session.exec(select(Log))).all()
    assert [(entry.message, entry.status_code, entry.path) for entry in entries] == [("kim got 202", 202, "/jobs")]


# =============================================================================
# 2. 로그 조회 권한
# =============================================================================
@pytest.mark.asyncio
async def test_group_member_with_permission_can_query_logs(
    client: AsyncClient, test_user: usr_models.User, auth_headers, db_session: AsyncSession
):
    await add_log(db_session, "first", "editor", datetime.now(UTC) - timedelta(minutes=5))
    await add_log(db_session, "second", "root")

    response = await client.get(f"{LOG_URL}/", headers=auth_headers(test_user))

    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 2
    assert [item["message"] for item in page["items"]] == ["second", "first"]


@pytest.mark.asyncio
async def test_group_member_without_permission_is_rejected(
    client: AsyncClient, test_user: usr_models.User, auth_headers
):
    response = await client.get(f"{LOG_URL}/search", params={"keyword": "x"}, headers=auth_headers(test_user))

    assert response.status_code == 401
    assert response.json()["code"] == 10001


@pytest.mark.asyncio
async def test_user_without_group_is_rejected(
    client: AsyncClient, test_user_without_group: usr_models.User, auth_headers
):
    response = await client.get(f"{LOG_URL}/", headers=auth_headers(test_user_without_group))

    assert response.status_code == 401
    assert response.json()["code"] == 10073


@pytest.mark.asyncio
async def test_inactive_user_is_rejected(client: AsyncClient, user_factory, test_group, auth_headers):
    sleeper = await user_factory(
        "sleeper", "sleeperpass1", group_id=test_group.id, active=usr_models.UserActive.NOT_ACTIVE
    )
    response = await client.get(f"{LOG_URL}/", headers=auth_headers(sleeper))

    assert response.status_code == 401
    assert response.json()["code"] == 10071


# =============================================================================
# 3. 검색 / 필터
# =============================================================================
@pytest.mark.asyncio
async def test_filter_logs_by_name_and_time(admin_client: AsyncClient, db_session: AsyncSession):
    await add_log(db_session, "old entry", "kim", datetime(2020, 1, 1, tzinfo=UTC))
    await add_log(db_session, "new entry", "kim")
    await add_log(db_session, "other user", "lee")

    by_name = await admin_client.get(f"{LOG_URL}/", params={"name": "kim"})
    assert {item["message"] for item in by_name.json()["items"]} == {"old entry", "new entry"}

    by_time = await admin_client.get(f"{LOG_URL}/", params={"start": "2019-12-01", "end": "2020-02-01"})
    assert [item["message"] for item in by_time.json()["items"]] == ["old entry"]


@pytest.mark.asyncio
async def test_invalid_time_range(admin_client: AsyncClient):
    response = await admin_client.get(f"{LOG_URL}/", params={"start": "2020-02-01", "end": "2020-01-01"})

    assert response.status_code == 400
    assert response.json()["message"] == "start must be earlier than end"

    response = await admin_client.get(f"{LOG_URL}/", params={"start": "yesterday"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_time_range_accepts_slashes_and_offsets(admin_client: AsyncClient, db_session: AsyncSession):
    await add_log(db_session, "old entry", "kim", datetime(2020, 1, 10, tzinfo=UTC))
    await add_log(db_session, "new entry", "kim")

    by_slashes = await admin_client.get(f"{LOG_URL}/", params={"start": "2020/1/5", "end": "2020/2/5"})
    assert by_slashes.status_code == 200
    assert [item["message"] for item in by_slashes.json()["items"]] == ["old entry"]

    mixed = await admin_client.get(
        f"{LOG_URL}/", params={"start": "2020-01-01T00:00:00+00:00", "end": "2020-02-01"}
    )
    assert mixed.status_code == 200
    assert [item["message"] for item in mixed.json()["items"]] == ["old entry"]

    # 09:00+09:00 은 UTC 00:00 과 같은 시각입니다.
    reversed_range = await admin_client.get(
        f"{LOG_URL}/", params={"start": "2020-02-01T09:00:00+09:00", "end": "2020-01-01"}
    )
    assert reversed_range.status_code == 400
    assert reversed_range.json()["message"] == "start must be earlier than end"


@pytest.mark.asyncio
async def test_search_requires_keyword(admin_client: AsyncClient):
    response = await admin_client.get(f"{LOG_URL}/search")

    assert response.status_code == 400
    assert response.json()["message"] == "keyword is required"


@pytest.mark.asyncio
async def test_search_by_keyword(admin_client: AsyncClient, db_session: AsyncSession):
    await add_log(db_session, "root created a group", "root")
    await add_log(db_session, "root deleted a user", "root")

    response = await admin_client.get(f"{LOG_URL}/search", params={"keyword": "group"})

    assert [item["message"] for item in response.json()["items"]] == ["root created a group"]


@pytest.mark.asyncio
async def test_logged_users(admin_client: AsyncClient, db_session: AsyncSession):
    for name in ("lee", "kim", "kim", "park"):
        await add_log(db_session, "entry", name)

    response = await admin_client.get(f"{LOG_URL}/users")

    assert response.status_code == 200
    assert response.json()["items"] == ["kim", "lee", "park"]
    assert response.json()["total"] == 3


# =============================================================================
# 4. 정리 태스크
# =============================================================================
@pytest.mark.asyncio
async def test_purge_old_logs_task(db_session: AsyncSession):
    await add_log(db_session, "ancient", "kim", datetime.now(UTC) - timedelta(days=400))
    await add_log(db_session, "recent", "kim")

    result = await log_tasks.purge_old_logs_task({}, retention_days=180)

    assert result == {"status": "success", "removed": 1}
    remaining = (await db_session.exec(select(Log.message))).all()
    assert remaining == ["recent"]
