# app/config.py
from pathlib import Path
from pydantic_settings import BaseSettings

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Root directory: explicit override wins over the privilege-based default
    FILES_DIR: Path | None = None
    FILES_FALLBACK_DIR: Path = PACKAGE_DIR / "files"

    # HTTP server
    HTTP_HOST: str = "127.0.0.1"
    HTTP_PORT: int = 3000
    CORS_ALLOWED_ORIGINS: str = "*"
    STATIC_DIR: Path = PACKAGE_DIR / "public"   # served at / when present

    # Directory tree listing
    TREE_MAX_DEPTH: int = 20   # used when the caller omits maxDepth; clamped to 20

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
