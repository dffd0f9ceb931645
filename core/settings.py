from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from core.config import DEFAULT_CORS_ORIGIN_REGEX


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_float(name: str, default: float) -> float:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class StorageSettings:
    """
    Storage provider configuration.

    provider:
      - "local"  -> LocalFilesStorageProvider
      - "s3"     -> S3StorageProvider (boto3)
      - "minio"  -> MinioStorageProvider
    """
    provider: str

    # Local
    local_dir: str = "./data"

    # AWS S3
    s3_bucket: str = ""
    s3_prefix: str = ""
    s3_region: str = ""

    # MinIO
    minio_endpoint: str = "http://minio:9000"
    minio_bucket: str = "birds"
    minio_access_key: str = ""
    minio_secret_key: str = ""


@dataclass(frozen=True)
class QuotaSettings:
    max_bucket_bytes: int
    max_files: int
    soft_size_fraction: float
    soft_count_fraction: float
    cleanup_target_fraction: float
    listing_ceiling_factor: int
    list_page_size: int


@dataclass(frozen=True)
class UploadSettings:
    max_file_bytes: int
    max_request_bytes: int
    key_prefix: str
    recent_images_limit: int


@dataclass(frozen=True)
class RateLimitSettings:
    requests: int
    window_seconds: float


@dataclass(frozen=True)
class SmsSettings:
    account_sid: str
    auth_token: str
    from_number: str
    allowed_recipient: str
    api_base: str
    timeout_seconds: float
    default_message: str

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)


@dataclass(frozen=True)
class CorsSettings:
    allow_origin_regex: str


@dataclass(frozen=True)
class Settings:
    storage: StorageSettings
    quota: QuotaSettings
    upload: UploadSettings
    rate_limit: RateLimitSettings
    sms: SmsSettings
    cors: CorsSettings
    log_level: str


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _normalize_storage_provider(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("s3", "aws", "aws_s3"):
        return "s3"
    if v in ("minio", "object_store", "objectstore"):
        return "minio"
    if v in ("local", "file", "files", "filesystem"):
        return "local"
    return "local"


def _load_storage_settings() -> StorageSettings:
    """
    Storage precedence (DO NOT break this):
      1) STORAGE_MODE (deployment/runtime truth)  <-- must win
      2) STORAGE_PROVIDER (legacy override)
      3) default local
    """
    raw_mode = (_env("STORAGE_MODE", "") or "").strip()
    raw_provider = (_env("STORAGE_PROVIDER", "") or "").strip()
    provider = _normalize_storage_provider(raw_mode or raw_provider or "local")

    local_dir = (_env("STORAGE_LOCAL_DIR", "") or _env("LOCAL_STORAGE_DIR", "") or "./data").strip()

    s3_bucket = (_env("S3_BUCKET", "") or "").strip()
    s3_prefix = (_env("S3_PREFIX", "") or "").strip()
    s3_region = (_env("AWS_REGION", "") or _env("AWS_DEFAULT_REGION", "") or "").strip()

    minio_endpoint = (_env("MINIO_ENDPOINT", "") or "http://minio:9000").strip().rstrip("/")
    minio_bucket = (_env("MINIO_BUCKET", "") or "birds").strip()
    minio_access_key = (_env("MINIO_ACCESS_KEY", "") or "").strip()
    minio_secret_key = (_env("MINIO_SECRET_KEY", "") or "").strip()

    return StorageSettings(
        provider=provider,
        local_dir=local_dir,
        s3_bucket=s3_bucket,
        s3_prefix=s3_prefix,
        s3_region=s3_region,
        minio_endpoint=minio_endpoint,
        minio_bucket=minio_bucket,
        minio_access_key=minio_access_key,
        minio_secret_key=minio_secret_key,
    )


def _load_quota_settings() -> QuotaSettings:
    # R2 free tier is 10GB; keep 1GB of headroom
    max_bucket_bytes = _env_int("QUOTA_MAX_BUCKET_BYTES", 9 * 1024 * 1024 * 1024)
    max_files = _env_int("QUOTA_MAX_FILES", 500)

    return QuotaSettings(
        max_bucket_bytes=max_bucket_bytes,
        max_files=max_files,
        soft_size_fraction=_env_float("QUOTA_SOFT_SIZE_FRACTION", 0.85),
        soft_count_fraction=_env_float("QUOTA_SOFT_COUNT_FRACTION", 1.0),
        cleanup_target_fraction=_env_float("QUOTA_CLEANUP_TARGET_FRACTION", 0.8),
        listing_ceiling_factor=max(1, _env_int("QUOTA_LISTING_CEILING_FACTOR", 2)),
        list_page_size=max(1, min(_env_int("QUOTA_LIST_PAGE_SIZE", 1000), 1000)),
    )


def _load_upload_settings() -> UploadSettings:
    max_file_bytes = _env_int("UPLOAD_MAX_FILE_BYTES", 10 * 1024 * 1024)
    # base64 is ~33% larger than the decoded payload
    max_request_bytes = _env_int("UPLOAD_MAX_REQUEST_BYTES", 15 * 1024 * 1024)
    key_prefix = (_env("UPLOAD_KEY_PREFIX", "") or "bird-").strip()
    recent = _env_int("RECENT_IMAGES_LIMIT", 4)

    return UploadSettings(
        max_file_bytes=max(1, max_file_bytes),
        max_request_bytes=max(1, max_request_bytes),
        key_prefix=key_prefix,
        recent_images_limit=max(1, recent),
    )


def _load_rate_limit_settings() -> RateLimitSettings:
    return RateLimitSettings(
        requests=max(1, _env_int("RATE_LIMIT_REQUESTS", 20)),
        window_seconds=max(1.0, _env_float("RATE_LIMIT_WINDOW_SECONDS", 60.0)),
    )


def _load_sms_settings() -> SmsSettings:
    return SmsSettings(
        account_sid=(_env("TWILIO_ACCOUNT_SID", "") or "").strip(),
        auth_token=(_env("TWILIO_AUTH_TOKEN", "") or "").strip(),
        from_number=(_env("TWILIO_PHONE_NUMBER", "") or "").strip(),
        allowed_recipient=(_env("SMS_ALLOWED_RECIPIENT", "") or "").strip(),
        api_base=(_env("TWILIO_API_BASE", "") or "https://api.twilio.com").strip().rstrip("/"),
        timeout_seconds=max(1.0, _env_float("TWILIO_TIMEOUT_SECONDS", 15.0)),
        default_message=(_env("SMS_DEFAULT_MESSAGE", "") or "Check out this little beauty!"),
    )


def _load_cors_settings() -> CorsSettings:
    regex = (_env("CORS_ALLOW_ORIGIN_REGEX", "") or DEFAULT_CORS_ORIGIN_REGEX).strip()
    return CorsSettings(allow_origin_regex=regex)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        storage=_load_storage_settings(),
        quota=_load_quota_settings(),
        upload=_load_upload_settings(),
        rate_limit=_load_rate_limit_settings(),
        sms=_load_sms_settings(),
        cors=_load_cors_settings(),
        log_level=(_env("LOG_LEVEL", "") or "INFO").strip().upper(),
    )
