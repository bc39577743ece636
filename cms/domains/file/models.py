# cms/domains/file/models.py

"""
'file' 도메인(업로드 파일 메타데이터)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
같은 내용(md5)의 파일은 한 번만 저장됩니다.
"""

import enum
from datetime import UTC, datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Column, Field, SQLModel


class FileType(str, enum.Enum):
    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class File(SQLModel, table=True):
    __tablename__ = "cms_file"

    id: Optional[int] = Field(default=None, primary_key=True)
    path: str = Field(max_length=500, description="저장 경로 (업로드 디렉토리 기준 상대 경로)")
    type: FileType = Field(default=FileType.LOCAL, description="저장 위치 유형")
    name: str = Field(max_length=100, description="저장된 파일 이름")
    extension: Optional[str] = Field(default=None, max_length=50, description="확장자")
    size: Optional[int] = Field(default=None, description="파일 크기 (bytes)")
    md5: str = Field(max_length=40, sa_column_kwargs={"unique": True}, description="파일 내용의 md5")
    create_time: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )


class UploadResult(BaseModel):
    """업로드 응답 항목. key는 폼 필드 이름입니다."""
    key: str
    id: int
    path: str
    url: str
