# cms/domains/file/crud.py

"""
'file' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.crud_base import CRUDBase

from .models import File


class CRUDFile(CRUDBase[File, File, File]):
    def __init__(self):
        super().__init__(model=File)

    async def get_by_md5(self, db: AsyncSession, *, md5: str) -> Optional[File]:
        return await self.get_by_attribute(db, attribute="md5", value=md5)


file = CRUDFile()
