from fastapi import HTTPException, UploadFile, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logger import get_logger
from core.security import generate_salt, generate_token, hash_password, verify_password
from models.users import User
from repository import user_repo
from schemas.user import LoginRequest, SignupForm
from service.image_store import ImageStore, upload_image

logger = get_logger("user")

EMAIL_EXISTS = "이미 존재하는 이메일입니다."


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_blank(value: str | None) -> bool:
    return value is None or value.strip() == ""


async def signup(
    db: AsyncSession,
    store: ImageStore,
    form: SignupForm,
    avatar: UploadFile | None = None,
) -> User:
    """회원가입 비즈니스 로직"""

    # 1. 필수값 확인 (username → email → password 순서, 첫 실패만 보고)
    if _is_blank(form.username):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="username 은 필수입니다.")
    if _is_blank(form.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="email 은 필수입니다.")
    if _is_blank(form.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="password 는 필수입니다.")

    # 2. 이메일 정규화 + 중복 확인
    email = normalize_email(form.email)
    if await user_repo.find_by_email(db, email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_EXISTS)

    # 3. 솔트/토큰 발급 + 해싱
    salt = generate_salt()
    user = User(
        email=email,
        username=form.username.strip(),
        newsletter=form.newsletter,
        token=generate_token(),
        hash=hash_password(form.password, salt),
        salt=salt,
    )

    # 4. 아바타 (선택)
    if avatar is not None and avatar.filename:
        user.avatar = await upload_image(
            store, avatar, settings.users_folder,
            unsupported_detail="지원하지 않는 아바타 파일 형식입니다.",
        )

    # 5. 저장: 동시 가입으로 유니크 제약에 걸리면 409
    try:
        user = await user_repo.create(db, user)
    except IntegrityError:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=EMAIL_EXISTS)

    logger.info("회원가입 완료", extra={"extra_data": {"user_id": user.id}})
    return user


async def login(db: AsyncSession, credentials: LoginRequest) -> User:
    """로그인 검증 비즈니스 로직: 세션을 만들지 않고 가입 시 발급된 토큰을 돌려줌"""
    if _is_blank(credentials.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="email 은 필수입니다.")
    if _is_blank(credentials.password):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="password 는 필수입니다.")

    user = await user_repo.find_by_email(db, normalize_email(credentials.email))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="해당 이메일로 가입된 사용자가 없습니다. 회원가입을 진행해주세요.",
        )

    if not verify_password(credentials.password, user.salt, user.hash):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="비밀번호가 올바르지 않습니다.")

    return user
