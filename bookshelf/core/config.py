"""
Application settings
"""

from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv


"""env loading precedence
1) OS environment variables
2) .env at the repository root
3) .env in the current working directory (read by pydantic-settings)
"""

# Preload .env without overriding the OS environment
_here = Path(__file__).resolve()
_repo_root_env = _here.parents[2] / ".env"
try:
    if _repo_root_env.exists():
        load_dotenv(dotenv_path=str(_repo_root_env), override=False)
except OSError:
    pass


class Settings(BaseSettings):
    """Application settings"""
    ENVIRONMENT: str = "development"

    # Publishing
    PUBLISH_PASSWORD: Optional[str] = None
    SESSION_TTL_MINUTES: int = 20
    PUBLIC_BASE_URL: str = ""

    # Key-value store: redis | memory
    KV_BACKEND: str = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Blob storage: local | s3 | memory
    STORAGE_BACKEND: str = "local"
    UPLOAD_DIRECTORY: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    S3_ACCESS_KEY_ID: Optional[str] = None
    S3_SECRET_ACCESS_KEY: Optional[str] = None
    S3_BUCKET: Optional[str] = None
    S3_REGION: Optional[str] = None
    S3_ADDRESSING_STYLE: str = "path"

    # Reader
    CHARS_PER_PAGE: int = 1600

    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = 'ignore'

settings = Settings()


def validate_settings(current: Settings = settings):
    """Validate settings for the current environment"""
    if current.ENVIRONMENT == "production":
        if not current.PUBLISH_PASSWORD:
            raise ValueError("PUBLISH_PASSWORD must be set in production.")
        if current.KV_BACKEND == "memory":
            raise ValueError("The memory KV backend loses sessions and books on restart; use redis in production.")
    if current.CHARS_PER_PAGE < 1:
        raise ValueError("CHARS_PER_PAGE must be a positive integer.")
    return True


validate_settings()
