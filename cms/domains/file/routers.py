# cms/domains/file/routers.py

"""
파일 업로드 API 엔드포인트를 정의하는 모듈입니다.
multipart/form-data의 모든 파일 필드를 받아 제한 검사 후 로컬에 저장합니다.
"""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlmodel.ext.asyncio.session import AsyncSession
from starlette.datastructures import UploadFile

from cms.core import dependencies as deps
from cms.core.database import get_session
from cms.core.exceptions import ParameterException
from cms.core.uploads import check_files, read_files

from .models import UploadResult
from .services import LocalUploader

router = APIRouter(
    tags=["File (파일 업로드)"],
    responses={404: {"description": "Not found"}},
)


@router.post("/", response_model=List[UploadResult], status_code=status.HTTP_201_CREATED, summary="파일 업로드")
async def upload_files(
    request: Request,
    current_user=Depends(deps.login_required),
    db: AsyncSession = Depends(get_session),
):
    if not request.headers.get("content-type", "").startswith("multipart/"):
        raise ParameterException(message="Content-Type must be multipart/form-data")
    form = await request.form()
    uploads = [(name, value) for name, value in form.multi_items() if isinstance(value, UploadFile)]
    files = await read_files(uploads)
    check_files(files)
    return await LocalUploader().upload(db, files)
