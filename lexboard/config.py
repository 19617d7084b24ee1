"""
Configuration for Lexboard
==========================

Environment variables (case-insensitive, also read from `.env`):
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./lexboard.db)
- JWT_SECRET_KEY / JWT_ALGORITHM / JWT_EXPIRE_MINUTES: session token signing
- QUEUE_BACKEND: rq|inline (default: rq, falls back to inline if Redis is down)
- REDIS_URL: Redis for RQ and rate limiting
- STORAGE_PATH: base directory of the local blob store
- MAX_UPLOAD_BYTES: case document upload limit (default: 5 MiB)
- CORS_ALLOW_ORIGINS: comma separated list of allowed origins
- RATE_LIMIT_ENABLED / RATE_LIMIT_PER_MINUTE: optional per-IP rate limit
"""

from typing import List
from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_JWT_SECRET = "dev-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Database
    database_url: str = "sqlite:///./lexboard.db"
    sql_echo: bool = False

    # Session tokens (7 days)
    jwt_secret_key: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # Report jobs
    queue_backend: str = "rq"  # rq | inline
    redis_url: str = "redis://localhost:6379/0"
    report_queue_name: str = "reports"
    report_job_timeout: int = 600
    report_stale_after_minutes: int = 30

    # Blob storage
    storage_path: str = "./storage"
    max_upload_bytes: int = 5 * 1024 * 1024

    # HTTP
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    enforce_https: bool = False
    hsts_max_age: int = 31536000
    rate_limit_enabled: bool = False
    rate_limit_per_minute: int = 120

    # Service info
    service_version: str = "1.0.0"
    log_level: str = "INFO"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    def validate_config(self) -> List[str]:
        """Validate configuration, return list of warnings"""
        warnings = []

        if self.jwt_secret_key == DEFAULT_JWT_SECRET:
            warnings.append("JWT_SECRET_KEY is the development default; set a real secret in production")

        if self.queue_backend not in ("rq", "inline"):
            warnings.append(f"QUEUE_BACKEND={self.queue_backend!r} is unknown, using inline execution")

        if self.jwt_expire_minutes <= 0:
            warnings.append("JWT_EXPIRE_MINUTES must be positive")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
