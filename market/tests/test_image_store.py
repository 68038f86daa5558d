"""
이미지 저장소 어댑터 테스트 (Cloudinary 는 httpx.MockTransport 로 대체)
"""
import asyncio
import hashlib

import httpx
import pytest

from service.image_store import (
    CloudinaryImageStore, ImageStoreError, InMemoryImageStore, sign_params, to_image_reference,
)

UPLOAD_RESPONSE = {
    "public_id": "vinted/offers/abc/photo",
    "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/vinted/offers/abc/photo.jpg",
    "format": "jpg",
    "width": 800,
    "height": 600,
    "bytes": 12345,
    "version": 1700000000,
}


def _store(handler) -> CloudinaryImageStore:
    return CloudinaryImageStore(
        cloud_name="demo", api_key="key", api_secret="secret",
        transport=httpx.MockTransport(handler),
    )


def test_서명_계산():
    params = {"timestamp": 1, "folder": "x", "use_filename": "true", "unique_filename": "false"}
    expected = hashlib.sha1(
        b"folder=x&timestamp=1&unique_filename=false&use_filename=true" + b"secret"
    ).hexdigest()
    assert sign_params(params, "secret") == expected


def test_업로드_응답_변환():
    assert to_image_reference(UPLOAD_RESPONSE) == {
        "external_id": "vinted/offers/abc/photo",
        "url": UPLOAD_RESPONSE["secure_url"],
        "format": "jpg",
        "width": 800,
        "height": 600,
        "size_bytes": 12345,
        "store_version": 1700000000,
    }


def test_cloudinary_업로드_요청():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json=UPLOAD_RESPONSE)

    async def run():
        store = _store(handler)
        try:
            return await store.upload(b"bytes", "image/jpeg", "vinted/offers/abc", "photo.jpg")
        finally:
            await store.close()

    reference = asyncio.run(run())
    assert reference["external_id"] == "vinted/offers/abc/photo"
    assert seen["method"] == "POST"
    assert seen["path"] == "/v1_1/demo/image/upload"
    assert b'name="signature"' in seen["body"]
    assert b"vinted/offers/abc" in seen["body"]
    assert b'name="unique_filename"\r\n\r\ntrue' in seen["body"]


def test_cloudinary_일괄_삭제와_폴더_삭제():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"deleted": {}})

    async def run():
        store = _store(handler)
        try:
            await store.delete_images(["a", "b"])
            await store.delete_images([])          # 빈 목록은 호출하지 않음
            await store.delete_folder("vinted/offers/abc")
        finally:
            await store.close()

    asyncio.run(run())
    assert len(requests) == 2
    bulk, folder = requests
    assert bulk.method == "DELETE"
    assert bulk.url.path == "/v1_1/demo/resources/image/upload"
    assert bulk.url.params.get_list("public_ids[]") == ["a", "b"]
    assert bulk.headers["Authorization"].startswith("Basic ")
    assert folder.url.path == "/v1_1/demo/folders/vinted/offers/abc"


def test_cloudinary_오류_응답():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": {"message": "Folder is not empty"}})

    async def run():
        store = _store(handler)
        try:
            await store.delete_folder("vinted/offers/abc")
        finally:
            await store.close()

    with pytest.raises(ImageStoreError, match="Folder is not empty"):
        asyncio.run(run())


def test_인메모리_폴더는_비어야_삭제():
    store = InMemoryImageStore()

    async def run():
        ref = await store.upload(b"x", "image/png", "vinted/offers/1", "a.png")
        with pytest.raises(ImageStoreError):
            await store.delete_folder("vinted/offers/1")
        await store.delete_images([ref["external_id"]])
        await store.delete_folder("vinted/offers/1")

    asyncio.run(run())
    assert store.deleted_folders == ["vinted/offers/1"]
    assert store.objects == {}


def test_인메모리_같은_파일명도_id가_다름():
    store = InMemoryImageStore()

    async def run():
        first = await store.upload(b"a", "image/jpeg", "vinted/offers/abc", "photo.jpg")
        second = await store.upload(b"b", "image/jpeg", "vinted/offers/abc", "photo.jpg")
        return first, second

    first, second = asyncio.run(run())
    assert first["external_id"] != second["external_id"]
    assert first["external_id"].startswith("vinted/offers/abc/photo_")
    assert len(store.in_folder("vinted/offers/abc")) == 2
