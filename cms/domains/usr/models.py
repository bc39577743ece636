# cms/domains/usr/models.py

"""
'usr' 도메인(사용자, 권한 그룹, 그룹 권한)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- cms_user: 로그인 사용자. admin/active 플래그와 소속 그룹(group_id)을 가집니다.
- cms_group: 권한 그룹.
- cms_permission: 그룹에 부여된 (permission, module) 쌍. 라우트 권한 레지스트리의 항목과 대응합니다.
"""

from datetime import UTC, datetime
from enum import IntEnum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Column, Field, SQLModel


class UserAdmin(IntEnum):
    COMMON = 1  # 일반 사용자
    ADMIN = 2   # 최고 관리자


class UserActive(IntEnum):
    ACTIVE = 1
    NOT_ACTIVE = 2


# =============================================================================
# 1. cms_group 테이블 모델
# =============================================================================
class GroupBase(SQLModel):
    name: str = Field(max_length=60, sa_column_kwargs={"unique": True}, description="그룹 이름")
    info: Optional[str] = Field(default=None, max_length=255, description="그룹 설명")


class Group(GroupBase, table=True):
    __tablename__ = "cms_group"

    id: Optional[int] = Field(default=None, primary_key=True, description="그룹 고유 ID")


# =============================================================================
# 2. cms_user 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    username: str = Field(max_length=24, sa_column_kwargs={"unique": True}, description="로그인 사용자명")
    nickname: Optional[str] = Field(default=None, max_length=24, description="표시 이름")
    email: Optional[str] = Field(default=None, max_length=100, sa_column_kwargs={"unique": True}, description="이메일")
    avatar: Optional[str] = Field(default=None, max_length=500, description="아바타 이미지 경로")
    admin: UserAdmin = Field(default=UserAdmin.COMMON, description="최고 관리자 여부 (1: 일반, 2: 관리자)")
    active: UserActive = Field(default=UserActive.ACTIVE, description="활성 여부 (1: 활성, 2: 비활성)")
    group_id: Optional[int] = Field(default=None, foreign_key="cms_group.id", description="소속 그룹 ID (FK)")


class User(UserBase, table=True):
    __tablename__ = "cms_user"

    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    password_hash: str = Field(max_length=255, description="해싱된 비밀번호")

    create_time: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    update_time: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )
    delete_time: Optional[datetime] = Field(
        default=None,
        sa_column=Column(TIMESTAMP(timezone=True), nullable=True),
        description="삭제 일시"
    )

    @property
    def is_admin(self) -> bool:
        return self.admin == UserAdmin.ADMIN

    @property
    def is_active(self) -> bool:
        return self.active == UserActive.ACTIVE


# =============================================================================
# 3. cms_permission 테이블 모델
# =============================================================================
class Permission(SQLModel, table=True):
    __tablename__ = "cms_permission"
    __table_args__ = (UniqueConstraint("group_id", "permission", "module", name="uq_cms_permission"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="cms_group.id", index=True, description="그룹 ID (FK)")
    permission: str = Field(max_length=100, description="권한 이름")
    module: str = Field(max_length=50, description="권한이 속한 모듈")
