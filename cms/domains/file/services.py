# cms/domains/file/services.py

"""
업로드 파일을 로컬 디스크에 저장하고 cms_file 테이블에 기록하는 서비스입니다.

저장 위치: <file.store_dir>/<YYYY>/<MM>/<DD>/<uuid><확장자>
같은 md5의 파일이 이미 있으면 다시 저장하지 않고 기존 레코드를 돌려줍니다.
"""

import hashlib
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

import aiofiles
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.config import config
from cms.core.uploads import UploadedFile

from . import crud as file_crud
from .models import File, FileType, UploadResult

logger = logging.getLogger(__name__)


class LocalUploader:
    def __init__(self, store_dir: Optional[str] = None, site_domain: Optional[str] = None):
        self.store_dir = Path(store_dir or config.get_item("file.store_dir"))
        self.site_domain = (site_domain or config.get_item("site_domain", "")).rstrip("/")

    @staticmethod
    def generate_md5(data: bytes) -> str:
        return hashlib.md5(data).hexdigest()

    def _relative_dir(self) -> Path:
        today = datetime.now()
        return Path(f"{today:%Y}", f"{today:%m}", f"{today:%d}")

    def url_for(self, path: str) -> str:
        return f"{self.site_domain}/assets/{path}"

    async def _write(self, relative_path: Path, data: bytes) -> None:
        target = self.store_dir / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(target, "wb") as f:
            await f.write(data)

    async def upload(self, db: AsyncSession, files: Sequence[UploadedFile]) -> List[UploadResult]:
        results = []
        for item in files:
            md5 = self.generate_md5(item.data)
            exists = await file_crud.file.get_by_md5(db, md5=md5)
            if exists is None:
                name = f"{uuid.uuid4().hex}{item.extension}"
                relative_path = self._relative_dir() / name
                await self._write(relative_path, item.data)
                exists = File(
                    path=relative_path.as_posix(),
                    type=FileType.LOCAL,
                    name=name,
                    extension=item.extension,
                    size=item.size,
                    md5=md5,
                )
                db.add(exists)
                await db.commit()
                await db.refresh(exists)
                logger.info("Stored upload %s as %s (%d bytes)", item.filename, exists.path, item.size)
            results.append(UploadResult(key=item.field, id=exists.id, path=exists.path, url=self.url_for(exists.path)))
        return results
