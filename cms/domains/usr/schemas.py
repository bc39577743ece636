# cms/domains/usr/schemas.py

"""
'usr' 도메인(사용자, 그룹, 권한)의 API 응답 데이터 전송 객체(DTO)를 정의하는 모듈입니다.

요청 본문 검증은 validators.py의 Validator 클래스가 담당하며,
여기의 스키마는 CRUD 입력과 응답 직렬화에 사용됩니다.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr
from sqlmodel import Field, SQLModel

from . import models as usr_models


# =============================================================================
# 1. 토큰 스키마
# =============================================================================
class Tokens(BaseModel):
    access_token: str
    refresh_token: str


# =============================================================================
# 2. 그룹 / 권한 스키마
# =============================================================================
class GroupCreate(usr_models.GroupBase):
    pass


class GroupUpdate(SQLModel):
    name: Optional[str] = Field(None, max_length=60)
    info: Optional[str] = Field(None, max_length=255)


class GroupRead(usr_models.GroupBase):
    id: int


class PermissionItem(BaseModel):
    permission: str
    module: str


class PermissionRead(PermissionItem):
    id: int
    group_id: int


class GroupDetail(GroupRead):
    permissions: List[PermissionItem] = []


# =============================================================================
# 3. 사용자 스키마
# =============================================================================
class UserCreate(SQLModel):
    """사용자 생성을 위한 스키마 (비밀번호는 평문으로 받아 CRUD에서 해싱합니다)"""
    username: str = Field(..., max_length=24)
    password: str = Field(..., min_length=6)
    nickname: Optional[str] = Field(None, max_length=24)
    email: Optional[EmailStr] = Field(None, max_length=100)
    group_id: Optional[int] = None
    admin: usr_models.UserAdmin = usr_models.UserAdmin.COMMON
    active: usr_models.UserActive = usr_models.UserActive.ACTIVE


class UserUpdate(SQLModel):
    nickname: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = None
    group_id: Optional[int] = None
    active: Optional[usr_models.UserActive] = None


class UserRead(SQLModel):
    """사용자 조회 응답. 비밀번호 해시는 포함하지 않습니다."""
    id: int
    username: str
    nickname: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    admin: bool
    active: bool
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    create_time: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: usr_models.User, group_name: Optional[str] = None) -> "UserRead":
        return cls(
            id=user.id,
            username=user.username,
            nickname=user.nickname,
            email=user.email,
            avatar=user.avatar,
            admin=user.is_admin,
            active=user.is_active,
            group_id=user.group_id,
            group_name=group_name,
            create_time=user.create_time,
        )


class UserPermissions(UserRead):
    """로그인 사용자의 권한 목록. [{module: [{permission, module}, ...]}, ...]"""
    permissions: List[Dict[str, List[PermissionItem]]] = []
