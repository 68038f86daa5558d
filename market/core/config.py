from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

class Settings(BaseSettings):
    # Database (postgresql+asyncpg://... 또는 sqlite+aiosqlite:///...)
    database_url: str
    database_echo: bool = False

    # Cloudinary 이미지 저장소
    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    cloudinary_base_url: str = "https://api.cloudinary.com/v1_1"

    # 이미지 폴더 루트: 아바타는 <root>/users, 상품 이미지는 <root>/offers/<id>
    image_root_folder: str = "vinted"

    # 자격 증명이 없거나 True면 인메모리 저장소 사용 (로컬 개발/테스트)
    use_in_memory_image_store: bool = False

    # 상품 검색 페이지 크기 (고정)
    offers_page_size: int = 10

    # 상품 필드 제약
    title_max_length: int = 50
    description_max_length: int = 500
    price_min: float = 0
    price_max: float = 100000

    model_config = SettingsConfigDict(
        # config.py -> core -> market -> 루트 아래의 .env 찾기
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,     # 환경변수 대소문자 무시
        extra="ignore",
    )

    @property
    def users_folder(self) -> str:
        return f"{self.image_root_folder}/users"

    def offer_folder(self, offer_id: str) -> str:
        return f"{self.image_root_folder}/offers/{offer_id}"


# 싱글톤 인스턴스: 앱 어디서든 import해서 사용
settings = Settings()
