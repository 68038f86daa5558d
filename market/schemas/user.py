from typing import Optional
from pydantic import BaseModel


class ImageReference(BaseModel):
    """이미지 저장소가 업로드 시 돌려준 메타데이터"""
    external_id: str
    url: str
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    size_bytes: Optional[int] = None
    store_version: Optional[int] = None


class Account(BaseModel):
    """공개 계정 정보"""
    username: str
    avatar: Optional[ImageReference] = None

    model_config = {"from_attributes": True}


class SignupForm(BaseModel):
    """회원가입 요청 (multipart/form-data): 빈 값 검사는 서비스에서 400 으로 처리"""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    newsletter: bool = False


class LoginRequest(BaseModel):
    """로그인 요청"""
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    """회원가입/로그인 성공 시 돌려줄 데이터 (해시/솔트 제외!)"""
    id: str
    token: str
    account: Account

    model_config = {"from_attributes": True}
