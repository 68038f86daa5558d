from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.dependencies import get_image_store
from schemas.user import AuthResponse, LoginRequest, SignupForm
from service import user_service
from service.image_store import ImageStore

router = APIRouter()

TRUTHY = {"true", "1", "on", "yes"}


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    newsletter: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """새로운 사용자를 등록하고 Bearer 토큰을 발급합니다."""
    form = SignupForm(
        username=username,
        email=email,
        password=password,
        newsletter=(newsletter or "").strip().lower() in TRUTHY,
    )
    return await user_service.signup(db, store, form, avatar)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    """이메일/비밀번호를 확인하고 가입 시 발급된 토큰을 돌려줍니다."""
    return await user_service.login(db, credentials)
