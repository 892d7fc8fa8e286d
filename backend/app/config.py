from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "tradejournal-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Trading Journal Challenge")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/tradejournal_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_screenshots: str = os.getenv("S3_BUCKET_SCREENSHOTS", "trade-screenshots-dev")
    s3_bucket_charts: str = os.getenv("S3_BUCKET_CHARTS", "trade-charts-dev")
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    # Campaign status cache refresh (0 disables the interval job)
    status_refresh_seconds: int = int(os.getenv("STATUS_REFRESH_SECONDS", "60"))

    # Change feed: redis|local|off
    realtime_backend: str = os.getenv("REALTIME_BACKEND", "redis")
    realtime_channel: str = os.getenv("REALTIME_CHANNEL", "tradejournal:changes")
    refresh_debounce_ms: int = int(os.getenv("REFRESH_DEBOUNCE_MS", "500"))

    # Background jobs (RQ)
    enable_jobs: bool = os.getenv("ENABLE_JOBS", "1") == "1"

    winners_default_k: int = int(os.getenv("WINNERS_DEFAULT_K", "7"))

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_ttl_min: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d
    # accounts registered with these emails get the admin role
    admin_emails: list[str] = [e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()]

settings = Settings()
