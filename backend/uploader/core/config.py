from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(default="development", validation_alias="APP_ENV")

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias="REDIS_URL",
    )

    cors_allow_origins: str = Field(default="http://localhost:3000", validation_alias="CORS_ALLOW_ORIGINS")
    trust_proxy_headers: bool = Field(default=False, validation_alias="TRUST_PROXY_HEADERS")

    s3_endpoint_url: str | None = Field(default=None, validation_alias="S3_ENDPOINT_URL")
    s3_access_key_id: str = Field(default="minio", validation_alias="S3_ACCESS_KEY_ID")
    s3_secret_access_key: str = Field(default="minio12345", validation_alias="S3_SECRET_ACCESS_KEY")
    s3_region_name: str = Field(default="ap-south-1", validation_alias="S3_REGION_NAME")

    s3_connect_timeout_seconds: float = Field(default=3.0, validation_alias="S3_CONNECT_TIMEOUT_SECONDS")
    s3_read_timeout_seconds: float = Field(default=60.0, validation_alias="S3_READ_TIMEOUT_SECONDS")
    s3_max_attempts: int = Field(default=5, validation_alias="S3_MAX_ATTEMPTS")
    s3_max_pool_connections: int = Field(default=50, validation_alias="S3_MAX_POOL_CONNECTIONS")
    s3_addressing_style: str = Field(default="path", validation_alias="S3_ADDRESSING_STYLE")

    upload_bucket: str = Field(default="superapp-upload-services", validation_alias="UPLOAD_BUCKET")
    upload_max_file_size: int = Field(default=4 * 1024 * 1024, validation_alias="UPLOAD_MAX_FILE_SIZE")
    upload_max_files: int = Field(default=10, validation_alias="UPLOAD_MAX_FILES")
    upload_file_concurrency: int = Field(default=1, validation_alias="UPLOAD_FILE_CONCURRENCY")
    upload_wait_for_remote: bool = Field(default=False, validation_alias="UPLOAD_WAIT_FOR_REMOTE")
    upload_report_outcomes: bool = Field(default=False, validation_alias="UPLOAD_REPORT_OUTCOMES")
    upload_rate_limit_per_minute: int = Field(default=30, validation_alias="UPLOAD_RATE_LIMIT_PER_MINUTE")

    filename_hmac_secret: str = Field(default="change-me", validation_alias="FILENAME_HMAC_SECRET")

    # It's good practice to keep uploads outside the web root.
    local_upload_enable: bool = Field(default=True, validation_alias="LOCAL_UPLOAD_ENABLE")
    local_upload_dir_users: str = Field(default="uploads/users", validation_alias="LOCAL_UPLOAD_DIR_USERS")
    local_upload_dir_services: str = Field(default="uploads/service", validation_alias="LOCAL_UPLOAD_DIR_SERVICES")
    log_dir: str | None = Field(default=None, validation_alias="LOG_DIR")


settings = Settings()


def _is_prod() -> bool:
    return (settings.app_env or "").strip().lower() in {"prod", "production"}


if _is_prod():
    if (settings.s3_access_key_id or "").strip().lower() in {"minio", "change-me", "your-access-key"}:
        raise RuntimeError("S3_ACCESS_KEY_ID must be set to a non-default value in production")
    if (settings.s3_secret_access_key or "").strip() in {"minio12345", "change-me", "your-secret-key"}:
        raise RuntimeError("S3_SECRET_ACCESS_KEY must be set to a non-default value in production")
    if not settings.filename_hmac_secret or settings.filename_hmac_secret.strip().lower() in {"change-me", "secret"}:
        raise RuntimeError("FILENAME_HMAC_SECRET must be set to a strong value in production")
