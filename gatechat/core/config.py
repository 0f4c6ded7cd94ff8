"""
Application settings.
Loaded from environment variables and an optional .env file.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # AWS
    AWS_REGION: str = "us-east-1"

    # Database
    DATABASE_URL: str = "sqlite:///./gatechat.db"
    CREATE_TABLES: bool = True  # use Alembic migrations in production

    # S3 (when set, uploaded chat files are stored in S3)
    S3_BUCKET_NAME: Optional[str] = None
    S3_REGION: Optional[str] = None  # defaults to AWS_REGION

    # Local uploads fallback when S3_BUCKET_NAME is not set
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"
    UPLOAD_MAX_BYTES: int = 25 * 1024 * 1024

    # Passphrases
    BCRYPT_ROUNDS: int = 10

    # Chat
    HISTORY_LIMIT: int = 200
    MAX_NAME_LENGTH: int = 20
    MAX_TEXT_LENGTH: int = 4000
    OUTBOX_SIZE: int = 256  # queued events per connection before drops

    # Optional
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PROJECT_NAME: str = "Gatechat"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @property
    def use_s3(self) -> bool:
        return bool(self.S3_BUCKET_NAME)

    @property
    def s3_region(self) -> str:
        return self.S3_REGION or self.AWS_REGION

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
