from core.settings import get_settings


def test_storage_mode_wins_over_storage_provider(monkeypatch):
    monkeypatch.setenv("STORAGE_MODE", "s3")
    monkeypatch.setenv("STORAGE_PROVIDER", "local")

    get_settings.cache_clear()
    s = get_settings()
    assert s.storage.provider == "s3"


def test_storage_provider_used_when_mode_missing(monkeypatch):
    monkeypatch.delenv("STORAGE_MODE", raising=False)
    monkeypatch.setenv("STORAGE_PROVIDER", "minio")

    get_settings.cache_clear()
    s = get_settings()
    assert s.storage.provider == "minio"


def test_storage_defaults_to_local(monkeypatch):
    monkeypatch.delenv("STORAGE_MODE", raising=False)
    monkeypatch.delenv("STORAGE_PROVIDER", raising=False)

    get_settings.cache_clear()
    s = get_settings()
    assert s.storage.provider == "local"


def test_upload_and_rate_limit_defaults(monkeypatch):
    for name in ("UPLOAD_MAX_FILE_BYTES", "UPLOAD_MAX_REQUEST_BYTES", "RATE_LIMIT_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS"):
        monkeypatch.delenv(name, raising=False)

    get_settings.cache_clear()
    s = get_settings()
    assert s.upload.max_file_bytes == 10 * 1024 * 1024
    assert s.upload.max_request_bytes == 15 * 1024 * 1024
    assert s.upload.key_prefix == "bird-"
    assert s.rate_limit.requests == 20
    assert s.rate_limit.window_seconds == 60.0


def test_sms_configured_only_with_all_credentials(monkeypatch):
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "tok")
    monkeypatch.delenv("TWILIO_PHONE_NUMBER", raising=False)

    get_settings.cache_clear()
    assert not get_settings().sms.configured

    monkeypatch.setenv("TWILIO_PHONE_NUMBER", "+15550001111")
    get_settings.cache_clear()
    assert get_settings().sms.configured
    get_settings.cache_clear()
