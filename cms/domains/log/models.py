# cms/domains/log/models.py

"""
'log' 도메인(사용자 작업 로그)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
"""

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Column, Field, SQLModel


class LogBase(SQLModel):
    message: Optional[str] = Field(default=None, max_length=450, description="로그 메시지")
    user_id: Optional[int] = Field(default=None, index=True, description="작업 사용자 ID")
    username: Optional[str] = Field(default=None, max_length=24, index=True, description="작업 사용자명")
    status_code: Optional[int] = Field(default=None, description="응답 상태 코드")
    method: Optional[str] = Field(default=None, max_length=20, description="요청 메서드")
    path: Optional[str] = Field(default=None, max_length=100, description="요청 경로")
    permission: Optional[str] = Field(default=None, max_length=100, description="요청에 대응하는 권한 이름")


class Log(LogBase, table=True):
    __tablename__ = "cms_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    time: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
        description="기록 일시"
    )


class LogRead(LogBase):
    id: int
    time: Optional[datetime] = None
