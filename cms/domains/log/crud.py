# cms/domains/log/crud.py

"""
'log' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.crud_base import CRUDBase

from .models import Log, LogBase


class CRUDLog(CRUDBase[Log, LogBase, LogBase]):
    def __init__(self):
        super().__init__(model=Log)

    async def get_logs(
        self,
        db: AsyncSession,
        *,
        username: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        keyword: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Log], int]:
        """사용자명/기간/키워드 조건으로 로그를 최신순 조회합니다."""
        conditions: List[Any] = []
        if keyword:
            conditions.append(Log.message.like(f"%{keyword}%"))
        return await self.get_filtered(
            db,
            filters={"username": username} if username else None,
            conditions=conditions,
            date_range_field="time",
            start_date=start,
            end_date=end,
            order_by_field="time",
            order_desc=True,
            skip=skip,
            limit=limit,
        )

    async def get_usernames(self, db: AsyncSession, *, skip: int = 0, limit: int = 10) -> Tuple[List[str], int]:
        """로그를 남긴 사용자명 목록 (중복 제거)."""
        names = select(Log.username).where(Log.username.is_not(None)).distinct()
        total = (await db.execute(select(func.count()).select_from(names.subquery()))).scalar_one()
        result = await db.execute(names.order_by(Log.username).offset(skip).limit(limit))
        return [row[0] for row in result.all()], total

    async def purge_before(self, db: AsyncSession, *, before: datetime) -> int:
        result = await db.execute(sa_delete(Log).where(Log.time < before))
        await db.commit()
        return result.rowcount or 0


log = CRUDLog()
