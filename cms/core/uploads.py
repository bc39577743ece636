# cms/core/uploads.py

"""
업로드 파일의 확장자, 크기, 개수 제한을 검사하는 모듈입니다.

제한 값은 호출마다 UploadOptions로 덮어쓸 수 있고, 없으면 설정 저장소의
file.include / file.exclude / file.single_limit / file.total_limit / file.nums 값을 사용합니다.
한도와 같은 크기(개수)는 허용합니다.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from starlette.datastructures import UploadFile

from cms.core.config import config
from cms.core.exceptions import FileExtensionException, FileTooLargeException, FileTooManyException, ParameterException


@dataclass
class UploadOptions:
    include: Optional[Sequence[str]] = None
    exclude: Optional[Sequence[str]] = None
    single_limit: Optional[int] = None
    total_limit: Optional[int] = None
    nums: Optional[int] = None


@dataclass
class UploadedFile:
    """메모리로 읽어 들인 업로드 파일."""
    field: str
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()


READ_CHUNK_SIZE = 64 * 1024


def _limits(opts: UploadOptions) -> Tuple[int, int, int]:
    single_limit = opts.single_limit or config.get_item("file.single_limit", 1024 * 1024 * 2)
    total_limit = opts.total_limit or config.get_item("file.total_limit", 1024 * 1024 * 20)
    nums = opts.nums or config.get_item("file.nums", 10)
    return single_limit, total_limit, nums


async def _read_limited(upload: UploadFile, single_limit: int, total_left: int, total_limit: int) -> bytes:
    if upload.size is not None and upload.size > single_limit:
        raise FileTooLargeException(message=f"{upload.filename} must not exceed {single_limit} bytes")
    if upload.size is not None and upload.size > total_left:
        raise FileTooLargeException(message=f"total file size must not exceed {total_limit} bytes")

    chunks = []
    size = 0
    while True:
        chunk = await upload.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        size += len(chunk)
        # size 정보가 없는 업로드도 한도를 넘는 즉시 읽기를 멈춥니다.
        if size > single_limit:
            raise FileTooLargeException(message=f"{upload.filename} must not exceed {single_limit} bytes")
        if size > total_left:
            raise FileTooLargeException(message=f"total file size must not exceed {total_limit} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_files(uploads: Sequence[Tuple[str, UploadFile]],
                     opts: Optional[UploadOptions] = None) -> List[UploadedFile]:
    """
    (폼 필드 이름, UploadFile) 목록을 읽습니다. 파일 이름이 없는 항목은 건너뜁니다.

    개수, 확장자, 선언된 크기는 내용을 읽기 전에 검사하고, 내용은 조각 단위로 읽으면서
    단일/전체 크기 한도를 넘는 순간 FileTooLargeException을 던집니다.
    어떤 경우든 모든 UploadFile은 닫힙니다.
    """
    opts = opts or UploadOptions()
    single_limit, total_limit, nums = _limits(opts)
    named = [(field, upload) for field, upload in uploads if upload.filename]

    files = []
    try:
        if len(named) > nums:
            raise FileTooManyException(message=f"number of files must not exceed {nums}")
        total_left = total_limit
        for field, upload in named:
            extension = os.path.splitext(upload.filename)[1].lower()
            if not check_extension(extension, opts.include, opts.exclude):
                raise FileExtensionException(message=f"file type {extension or '(none)'} is not supported")
            data = await _read_limited(upload, single_limit, total_left, total_limit)
            total_left -= len(data)
            files.append(UploadedFile(field=field, filename=upload.filename,
                                      content_type=upload.content_type, data=data))
    finally:
        for _, upload in uploads:
            await upload.close()
    return files


def _as_list(value, name: str) -> Optional[List[str]]:
    if value is None:
        return None
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"{name} must be a list of extensions")
    return [ext.lower() for ext in value]


def check_extension(extension: str, include: Optional[Sequence[str]] = None,
                    exclude: Optional[Sequence[str]] = None) -> bool:
    """include가 있으면 include만 허용(exclude는 무시), exclude만 있으면 exclude를 거부합니다."""
    include = _as_list(include if include is not None else config.get_item("file.include"), "file.include")
    exclude = _as_list(exclude if exclude is not None else config.get_item("file.exclude"), "file.exclude")
    extension = extension.lower()
    if include:
        return extension in include
    if exclude:
        return extension not in exclude
    return True


def check_files(files: Sequence[UploadedFile], opts: Optional[UploadOptions] = None) -> None:
    opts = opts or UploadOptions()
    single_limit, total_limit, nums = _limits(opts)

    if not files:
        raise ParameterException(message="no file was uploaded")

    total_size = 0
    for file in files:
        if not check_extension(file.extension, opts.include, opts.exclude):
            raise FileExtensionException(message=f"file type {file.extension or '(none)'} is not supported")
        if file.size > single_limit:
            raise FileTooLargeException(message=f"{file.filename} must not exceed {single_limit} bytes")
        total_size += file.size

    if len(files) > nums:
        raise FileTooManyException(message=f"number of files must not exceed {nums}")
    if total_size > total_limit:
        raise FileTooLargeException(message=f"total file size must not exceed {total_limit} bytes")
