# cms/domains/usr/crud.py

"""
'usr' 도메인의 CRUD 작업과 인가 가드용 조회 어댑터(UserLookup/PermissionLookup)를 담당하는 모듈입니다.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.crud_base import CRUDBase
from cms.core.exceptions import Forbidden, NotFound, ParameterException, RepeatException
from cms.core.security import get_password_hash, verify_password

from . import models as usr_models
from . import schemas as usr_schemas


# =============================================================================
# 1. cms_group 테이블 CRUD
# =============================================================================
class CRUDGroup(CRUDBase[usr_models.Group, usr_schemas.GroupCreate, usr_schemas.GroupUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.Group)

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[usr_models.Group]:
        return await self.get_by_attribute(db, attribute="name", value=name)

    async def get_all(self, db: AsyncSession) -> List[usr_models.Group]:
        result = await db.execute(select(usr_models.Group).order_by(usr_models.Group.id))
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.GroupCreate) -> usr_models.Group:
        if await self.get_by_name(db, name=obj_in.name):
            raise RepeatException(message="group name already exists")
        return await super().create(db, obj_in=obj_in)

    async def update(self, db: AsyncSession, *, db_obj: usr_models.Group,
                     obj_in: usr_schemas.GroupUpdate) -> usr_models.Group:
        if obj_in.name and obj_in.name != db_obj.name and await self.get_by_name(db, name=obj_in.name):
            raise RepeatException(message="group name already exists")
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.Group:
        """그룹을 삭제합니다. 소속 사용자가 있으면 거부하고, 그룹의 권한은 함께 삭제합니다."""
        group = await self.get(db, id)
        if not group:
            raise NotFound(10024)
        users = await db.execute(
            select(func.count()).select_from(usr_models.User).where(usr_models.User.group_id == id)
        )
        if users.scalar_one():
            raise Forbidden(10075)
        await db.execute(sa_delete(usr_models.Permission).where(usr_models.Permission.group_id == id))
        return await super().delete(db, id=id)


group = CRUDGroup()


# =============================================================================
# 2. cms_user 테이블 CRUD
# =============================================================================
class CRUDUser(CRUDBase[usr_models.User, usr_schemas.UserCreate, usr_schemas.UserUpdate]):
    def __init__(self):
        super().__init__(model=usr_models.User)

    async def get_by_username(self, db: AsyncSession, *, username: str) -> Optional[usr_models.User]:
        return await self.get_by_attribute(db, attribute="username", value=username)

    async def get_by_email(self, db: AsyncSession, *, email: str) -> Optional[usr_models.User]:
        return await self.get_by_attribute(db, attribute="email", value=email)

    async def create(self, db: AsyncSession, *, obj_in: usr_schemas.UserCreate) -> usr_models.User:
        """새로운 사용자를 생성하며 비밀번호를 해싱하고 중복을 검사합니다."""
        if await self.get_by_username(db, username=obj_in.username):
            raise RepeatException(message="username already exists")
        if obj_in.email and await self.get_by_email(db, email=obj_in.email):
            raise RepeatException(message="email already exists")
        if obj_in.group_id is not None and not await group.get(db, obj_in.group_id):
            raise NotFound(10024)

        user_data = obj_in.model_dump(exclude={"password"})
        db_user = usr_models.User(**user_data, password_hash=get_password_hash(obj_in.password))
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        return db_user

    async def authenticate(self, db: AsyncSession, *, username: str, password: str) -> usr_models.User:
        """사용자명과 비밀번호로 인증합니다. 없는 사용자는 NotFound, 비밀번호 불일치는 ParameterException."""
        user = await self.get_by_username(db, username=username)
        if not user:
            raise NotFound(10021)
        if not verify_password(password, user.password_hash):
            raise ParameterException(10031)
        return user

    async def update(self, db: AsyncSession, *, db_obj: usr_models.User,
                     obj_in: usr_schemas.UserUpdate) -> usr_models.User:
        if obj_in.email and obj_in.email != db_obj.email:
            if await self.get_by_email(db, email=obj_in.email):
                raise RepeatException(message="email already exists")
        if obj_in.group_id is not None and not await group.get(db, obj_in.group_id):
            raise NotFound(10024)
        return await super().update(db, db_obj=db_obj, obj_in=obj_in)

    async def change_password(self, db: AsyncSession, *, db_obj: usr_models.User, new_password: str) -> usr_models.User:
        return await super().update(db, db_obj=db_obj, obj_in={"password_hash": get_password_hash(new_password)})

    async def remove(self, db: AsyncSession, *, id: int) -> usr_models.User:
        """사용자를 삭제합니다. 최고 관리자 계정은 삭제를 허용하지 않습니다."""
        user_to_delete = await self.get(db, id)
        if not user_to_delete:
            raise NotFound(10021)
        if user_to_delete.is_admin:
            raise Forbidden(message="cannot delete the super administrator")
        return await super().delete(db, id=id)

    async def get_page(self, db: AsyncSession, *, group_id: Optional[int] = None,
                       skip: int = 0, limit: int = 10) -> Tuple[List[usr_models.User], int]:
        """관리자를 제외한 사용자 목록 (선택적으로 그룹 필터)."""
        filters: Dict[str, Any] = {"admin": usr_models.UserAdmin.COMMON}
        if group_id is not None:
            filters["group_id"] = group_id
        return await self.get_filtered(db, filters=filters, order_desc=False, skip=skip, limit=limit)


user = CRUDUser()


# =============================================================================
# 3. cms_permission 테이블 CRUD
# =============================================================================
class CRUDPermission(CRUDBase[usr_models.Permission, usr_schemas.PermissionItem, usr_schemas.PermissionItem]):
    def __init__(self):
        super().__init__(model=usr_models.Permission)

    async def find_one(self, db: AsyncSession, *, permission: str, module: str,
                       group_id: int) -> Optional[usr_models.Permission]:
        statement = select(usr_models.Permission).where(
            usr_models.Permission.permission == permission,
            usr_models.Permission.module == module,
            usr_models.Permission.group_id == group_id,
        )
        result = await db.execute(statement)
        return result.scalars().first()

    async def get_by_group(self, db: AsyncSession, *, group_id: int) -> List[usr_models.Permission]:
        statement = (
            select(usr_models.Permission)
            .where(usr_models.Permission.group_id == group_id)
            .order_by(usr_models.Permission.id)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def dispatch(self, db: AsyncSession, *, group_id: int,
                       items: Iterable[usr_schemas.PermissionItem]) -> List[usr_models.Permission]:
        """그룹에 권한을 부여합니다. 이미 부여된 권한은 건너뜁니다."""
        created = []
        for item in items:
            if await self.find_one(db, permission=item.permission, module=item.module, group_id=group_id):
                continue
            db_obj = usr_models.Permission(group_id=group_id, permission=item.permission, module=item.module)
            db.add(db_obj)
            created.append(db_obj)
        await db.commit()
        for db_obj in created:
            await db.refresh(db_obj)
        return created

    async def remove_many(self, db: AsyncSession, *, group_id: int,
                          items: Iterable[usr_schemas.PermissionItem]) -> int:
        removed = 0
        for item in items:
            result = await db.execute(
                sa_delete(usr_models.Permission).where(
                    usr_models.Permission.group_id == group_id,
                    usr_models.Permission.permission == item.permission,
                    usr_models.Permission.module == item.module,
                )
            )
            removed += result.rowcount or 0
        await db.commit()
        return removed


permission = CRUDPermission()


def group_by_module(entries: Iterable[Any]) -> List[Dict[str, List[usr_schemas.PermissionItem]]]:
    """(permission, module) 목록을 [{module: [PermissionItem, ...]}] 형태로 묶습니다."""
    grouped: Dict[str, List[usr_schemas.PermissionItem]] = {}
    for entry in entries:
        grouped.setdefault(entry.module, []).append(
            usr_schemas.PermissionItem(permission=entry.permission, module=entry.module)
        )
    return [{module: items} for module, items in grouped.items()]


# =============================================================================
# 4. 인가 가드용 조회 어댑터
# =============================================================================
class SessionUserLookup:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, identity: Any) -> Optional[usr_models.User]:
        if identity is None or isinstance(identity, bool):
            return None
        try:
            user_id = int(identity)
        except (TypeError, ValueError):
            return None
        found = await user.get(self.db, user_id)
        if found is not None and found.delete_time is not None:
            return None
        return found


class SessionPermissionLookup:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.crud = permission

    async def find_one(self, permission: str, module: str, group_id: int) -> Optional[usr_models.Permission]:
        return await self.crud.find_one(self.db, permission=permission, module=module, group_id=group_id)
