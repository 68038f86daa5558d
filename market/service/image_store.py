"""
이미지 저장소 어댑터

- ImageStore: 서비스 계층이 필요로 하는 연산만 정의한 프로토콜
- CloudinaryImageStore: Cloudinary REST API (httpx.AsyncClient)
- InMemoryImageStore: 로컬 개발/테스트용 대체 구현

업로드 결과는 아래 형태의 "이미지 참조" dict 로 통일:
    {"external_id", "url", "format", "width", "height", "size_bytes", "store_version"}
"""
import hashlib
import time
import uuid
from typing import Protocol

import httpx
from fastapi import HTTPException, UploadFile, status

ALLOWED_MEDIA_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
})


class ImageStoreError(Exception):
    """이미지 저장소 호출 실패 (응답 코드 2xx 아님)"""


class ImageStore(Protocol):

    async def upload(self, data: bytes, media_type: str, folder: str, filename: str) -> dict:
        ...

    async def delete_images(self, external_ids: list[str]) -> None:
        ...

    async def delete_folder(self, folder: str) -> None:
        ...

    async def close(self) -> None:
        ...


def sign_params(params: dict, api_secret: str) -> str:
    """
    Cloudinary 서명: 파라미터를 키 순으로 정렬해 "k=v&k=v" 로 잇고
    API secret 을 붙여 SHA-1 hex
    """
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def to_image_reference(payload: dict) -> dict:
    """Cloudinary 업로드 응답 → 이미지 참조"""
    return {
        "external_id": payload["public_id"],
        "url": payload["secure_url"],
        "format": payload.get("format"),
        "width": payload.get("width"),
        "height": payload.get("height"),
        "size_bytes": payload.get("bytes"),
        "store_version": payload.get("version"),
    }


class CloudinaryImageStore:
    """Cloudinary Upload API + Admin API"""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str,
                 base_url: str = "https://api.cloudinary.com/v1_1", timeout: float = 30.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self._api_key = api_key
        self._api_secret = api_secret
        self._auth = httpx.BasicAuth(api_key, api_secret)   # Admin API 는 Basic 인증
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/{cloud_name}",
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _check(response: httpx.Response, action: str) -> dict:
        if response.is_success:
            return response.json()
        try:
            message = response.json().get("error", {}).get("message", response.text)
        except ValueError:
            message = response.text
        raise ImageStoreError(f"{action} 실패 ({response.status_code}): {message}")

    async def upload(self, data: bytes, media_type: str, folder: str, filename: str) -> dict:
        params = {
            "folder": folder,
            "timestamp": int(time.time()),
            "unique_filename": "true",     # 같은 파일명이어도 public_id 가 겹치지 않도록
            "use_filename": "true",
        }
        form = {
            **{k: str(v) for k, v in params.items()},
            "api_key": self._api_key,
            "signature": sign_params(params, self._api_secret),
        }
        response = await self._client.post(
            "/image/upload",
            data=form,
            files={"file": (filename, data, media_type)},
        )
        return to_image_reference(self._check(response, "이미지 업로드"))

    async def delete_images(self, external_ids: list[str]) -> None:
        if not external_ids:
            return
        response = await self._client.delete(
            "/resources/image/upload",
            params=[("public_ids[]", external_id) for external_id in external_ids],
            auth=self._auth,
        )
        self._check(response, "이미지 삭제")

    async def delete_folder(self, folder: str) -> None:
        """폴더 삭제: 폴더가 비어 있지 않으면 Cloudinary 가 거부함"""
        response = await self._client.delete(f"/folders/{folder}", auth=self._auth)
        self._check(response, "폴더 삭제")

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryImageStore:
    """Cloudinary 와 같은 규칙으로 동작하는 메모리 저장소"""

    base_url = "https://images.example.test"

    def __init__(self):
        self.objects: dict[str, dict] = {}       # external_id → {"folder", "data", "reference"}
        self.deleted_ids: list[str] = []
        self.deleted_folders: list[str] = []
        self._counter = 0

    async def upload(self, data: bytes, media_type: str, folder: str, filename: str) -> dict:
        self._counter += 1
        # Cloudinary unique_filename=true 처럼 파일명 뒤에 임의 접미사
        stem = filename.rsplit(".", 1)[0] or "image"
        external_id = f"{folder}/{stem}_{uuid.uuid4().hex[:6]}"
        reference = {
            "external_id": external_id,
            "url": f"{self.base_url}/{external_id}",
            "format": media_type.split("/")[-1],
            "width": None,
            "height": None,
            "size_bytes": len(data),
            "store_version": self._counter,
        }
        self.objects[external_id] = {"folder": folder, "data": data, "reference": reference}
        return reference

    async def delete_images(self, external_ids: list[str]) -> None:
        for external_id in external_ids:
            self.objects.pop(external_id, None)
            self.deleted_ids.append(external_id)

    async def delete_folder(self, folder: str) -> None:
        if any(obj["folder"] == folder for obj in self.objects.values()):
            raise ImageStoreError(f"폴더 삭제 실패: '{folder}' 폴더가 비어 있지 않습니다")
        self.deleted_folders.append(folder)

    async def close(self) -> None:
        return None

    def in_folder(self, folder: str) -> list[str]:
        return [key for key, obj in self.objects.items() if obj["folder"] == folder]


def collect_pictures(*candidates: list[UploadFile] | None) -> list[UploadFile]:
    """
    picture / pictures / image 중 처음으로 비어 있지 않은 필드의 파일 목록
    (순서 유지, 파일명이 없는 빈 파트는 제외)
    """
    for files in candidates:
        chosen = [f for f in files or [] if f is not None and f.filename]
        if chosen:
            return chosen
    return []


async def upload_image(store: ImageStore, file: UploadFile, folder: str, unsupported_detail: str) -> dict:
    """미디어 타입 검사 후 업로드: 허용되지 않은 타입이면 415"""
    if file.content_type not in ALLOWED_MEDIA_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=unsupported_detail,
        )
    data = await file.read()
    return await store.upload(data, file.content_type, folder, file.filename or "image")
