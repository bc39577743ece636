# tests/conftest.py

import os
import tempfile
from typing import AsyncGenerator, Awaitable, Callable, Dict, Optional

# --- 테스트 환경 변수 ---
# cms 패키지는 임포트 시점에 설정을 읽으므로, 반드시 cms 임포트보다 먼저 지정해야 합니다.
_TEST_DIR = tempfile.mkdtemp(prefix="cms-test-")
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test_cms.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-for-cms"
os.environ["UPLOAD_DIR"] = os.path.join(_TEST_DIR, "uploads")
os.environ["SITE_DOMAIN"] = "http://test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402
from sqlmodel.ext.asyncio.session import AsyncSession  # noqa: E402

from cms.main import app as main_app  # noqa: E402
from cms.core.database import AsyncSessionLocal, engine  # noqa: E402
from cms.core.security import get_password_hash  # noqa: E402
from cms.core.token import get_tokens  # noqa: E402
from cms.domains.usr import models as usr_models  # noqa: E402


# --- 데이터베이스 픽스처 ---
@pytest_asyncio.fixture(scope="function", autouse=True)
async def setup_database():
    """
    테스트 함수마다 모든 테이블을 새로 만들고, 끝나면 삭제합니다.
    이벤트 루프가 테스트마다 바뀌므로 커넥션 풀도 함께 정리합니다.
    """
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """인증 헤더가 없는 클라이언트."""
    transport = ASGITransport(app=main_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# --- 그룹 / 사용자 팩토리 ---
@pytest.fixture
def group_factory(db_session: AsyncSession) -> Callable[..., Awaitable[usr_models.Group]]:
    async def _create_group(name: str, info: Optional[str] = None,
                            permissions: Optional[list] = None) -> usr_models.Group:
        group = usr_models.Group(name=name, info=info)
        db_session.add(group)
        await db_session.commit()
        await db_session.refresh(group)
        for permission, module in permissions or []:
            db_session.add(usr_models.Permission(group_id=group.id, permission=permission, module=module))
        await db_session.commit()
        return group
    return _create_group


@pytest.fixture
def user_factory(db_session: AsyncSession) -> Callable[..., Awaitable[usr_models.User]]:
    """
    사용자명과 비밀번호로 테스트 사용자를 생성하는 팩토리 함수를 반환합니다.
    나머지 속성(admin, active, group_id, ...)은 kwargs로 전달합니다.
    """
    async def _create_user(username: str, password: str, **kwargs) -> usr_models.User:
        user_data = {
            "username": username,
            "nickname": username,
            "password_hash": get_password_hash(password),
            **kwargs,
        }
        user = usr_models.User(**user_data)
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create_user


@pytest_asyncio.fixture(scope="function")
async def test_group(group_factory: Callable) -> usr_models.Group:
    """작업 로그 조회 권한 하나를 가진 그룹."""
    return await group_factory("editors", "편집자 그룹", permissions=[("query all logs", "log")])


@pytest_asyncio.fixture(scope="function")
async def test_admin_user(user_factory: Callable) -> usr_models.User:
    """최고 관리자(ADMIN) 사용자를 생성합니다."""
    return await user_factory("root", "rootpass123", admin=usr_models.UserAdmin.ADMIN)


@pytest_asyncio.fixture(scope="function")
async def test_user(user_factory: Callable, test_group: usr_models.Group) -> usr_models.User:
    """test_group에 속한 일반 사용자를 생성합니다."""
    return await user_factory("editor", "editorpass123", group_id=test_group.id, email="editor@example.com")


@pytest_asyncio.fixture(scope="function")
async def test_user_without_group(user_factory: Callable) -> usr_models.User:
    return await user_factory("loner", "lonerpass123")


# --- 인증 헤더 ---
def bearer(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[usr_models.User], Dict[str, str]]:
    """사용자의 access token으로 Authorization 헤더를 만드는 함수를 반환합니다."""
    def _headers(user: usr_models.User) -> Dict[str, str]:
        access_token, _ = get_tokens(user)
        return bearer(access_token)
    return _headers


@pytest_asyncio.fixture(scope="function")
async def admin_client(client: AsyncClient, test_admin_user: usr_models.User, auth_headers) -> AsyncClient:
    """최고 관리자로 인증된 클라이언트를 반환합니다."""
    client.headers.update(auth_headers(test_admin_user))
    return client


@pytest_asyncio.fixture(scope="function")
async def authorized_client(client: AsyncClient, test_user: usr_models.User, auth_headers) -> AsyncClient:
    """test_group에 속한 일반 사용자로 인증된 클라이언트를 반환합니다."""
    client.headers.update(auth_headers(test_user))
    return client
