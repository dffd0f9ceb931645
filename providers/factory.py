from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.settings import Settings, StorageSettings, get_settings
from providers.impl.ratelimit_memory import InMemoryRateLimitStore
from providers.impl.storage_local_files import LocalFilesStorageProvider
from providers.messaging import MessagingProvider
from providers.storage import StorageProvider
from quota.models import QuotaPolicy
from ratelimit.limiter import RateLimiter

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Providers:
    """
    Central container for providers, attached to app.state at startup.
    """
    settings: Settings
    storage: StorageProvider
    quota_policy: QuotaPolicy
    rate_limiter: RateLimiter
    messaging: Optional[MessagingProvider]


def build_storage(s: StorageSettings) -> StorageProvider:
    if s.provider == "s3":
        from providers.impl.storage_s3 import S3StorageProvider

        return S3StorageProvider(bucket=s.s3_bucket, prefix=s.s3_prefix, region=s.s3_region or None)

    if s.provider == "minio":
        from providers.impl.storage_minio import MinioStorageProvider

        if not s.minio_access_key or not s.minio_secret_key:
            raise RuntimeError("MINIO_ACCESS_KEY / MINIO_SECRET_KEY not set")
        return MinioStorageProvider(
            endpoint=s.minio_endpoint,
            bucket=s.minio_bucket,
            access_key=s.minio_access_key,
            secret_key=s.minio_secret_key,
            secure=s.minio_endpoint.lower().startswith("https://"),
        )

    return LocalFilesStorageProvider(root_dir=s.local_dir)


def build_messaging(settings: Settings) -> Optional[MessagingProvider]:
    if not settings.sms.configured:
        log.warning("[sms] Twilio credentials not configured; /sms will fail")
        return None

    from providers.impl.messaging_twilio import TwilioMessagingProvider

    return TwilioMessagingProvider.from_settings(settings.sms)


def build_providers(settings: Optional[Settings] = None) -> Providers:
    settings = settings or get_settings()
    policy = QuotaPolicy.from_settings(settings.quota)
    storage = build_storage(settings.storage)
    log.info(
        "[storage] provider=%s hard_limit_bytes=%s max_files=%s",
        settings.storage.provider,
        policy.hard_size_limit,
        policy.hard_count_limit,
    )
    return Providers(
        settings=settings,
        storage=storage,
        quota_policy=policy,
        rate_limiter=RateLimiter(
            store=InMemoryRateLimitStore(),
            max_requests=settings.rate_limit.requests,
            window_seconds=settings.rate_limit.window_seconds,
        ),
        messaging=build_messaging(settings),
    )
