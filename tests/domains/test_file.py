# tests/domains/test_file.py

"""
'file' 도메인 업로드 API 엔드포인트 (/cms/file)에 대한 통합 테스트 모듈입니다.
"""

from pathlib import Path

import pytest
from httpx import AsyncClient
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from cms.core.config import config
from cms.core.uploads import UploadedFile
from cms.domains.file.models import File
from cms.domains.file.services import LocalUploader
from cms.domains.usr import models as usr_models

FILE_URL = "/cms/file/"


@pytest.mark.asyncio
async def test_upload_files(client: AsyncClient, test_user: usr_models.User, auth_headers, db_session: AsyncSession):
    files = [
        ("avatar", ("me.png", b"png-bytes", "image/png")),
        ("resume", ("cv.txt", b"text-bytes", "text/plain")),
    ]
    response = await client.post(FILE_URL, files=files, headers=auth_headers(test_user))

    assert response.status_code == 201
    results = response.json()
    assert [item["key"] for item in results] == ["avatar", "resume"]
    assert results[0]["path"].endswith(".png")
    assert results[0]["url"] == f"http://test/assets/{results[0]['path']}"

    stored = Path(config.get_item("file.store_dir")) / results[1]["path"]
    assert stored.read_bytes() == b"text-bytes"

    records = (await db_session.exec(select(File))).all()
    assert {record.size for record in records} == {9, 10}


@pytest.mark.asyncio
async def test_same_content_is_stored_once(
    client: AsyncClient, test_user: usr_models.User, auth_headers, db_session: AsyncSession
):
    headers = auth_headers(test_user)
    first = await client.post(FILE_URL, files={"file": ("a.txt", b"same", "text/plain")}, headers=headers)
    second = await client.post(FILE_URL, files={"file": ("b.txt", b"same", "text/plain")}, headers=headers)

    assert first.json()[0]["id"] == second.json()[0]["id"]
    assert len((await db_session.exec(select(File))).all()) == 1


@pytest.mark.asyncio
async def test_upload_requires_login(client: AsyncClient):
    response = await client.post(FILE_URL, files={"file": ("a.txt", b"data", "text/plain")})

    assert response.status_code == 401
    assert response.json()["code"] == 10013


@pytest.mark.asyncio
async def test_upload_requires_multipart(client: AsyncClient, test_user: usr_models.User, auth_headers):
    response = await client.post(FILE_URL, json={"file": "data"}, headers=auth_headers(test_user))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_over_single_limit(
    client: AsyncClient, test_user: usr_models.User, auth_headers, monkeypatch
):
    monkeypatch.setitem(config.get_item("file"), "single_limit", 4)
    response = await client.post(
        FILE_URL, files={"file": ("big.txt", b"12345", "text/plain")}, headers=auth_headers(test_user)
    )

    assert response.status_code == 413
    assert response.json()["code"] == 10110


@pytest.mark.asyncio
async def test_local_uploader_builds_dated_paths(tmp_path, db_session: AsyncSession):
    uploader = LocalUploader(store_dir=str(tmp_path), site_domain="http://cdn.example.com/")
    [result] = await uploader.upload(db_session, [UploadedFile("img", "photo.JPG", "image/jpeg", b"jpeg")])

    year, month, day, name = result.path.split("/")
    assert len(year) == 4 and len(month) == 2 and len(day) == 2
    assert name.endswith(".jpg")
    assert result.url == f"http://cdn.example.com/assets/{result.path}"
    assert (tmp_path / result.path).read_bytes() == b"jpeg"
