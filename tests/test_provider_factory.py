from core.settings import get_settings
from providers.factory import build_providers
from providers.impl.storage_local_files import LocalFilesStorageProvider


def test_local_providers_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_MODE", "local")
    monkeypatch.setenv("STORAGE_LOCAL_DIR", str(tmp_path))
    monkeypatch.setenv("QUOTA_MAX_FILES", "25")
    monkeypatch.delenv("TWILIO_ACCOUNT_SID", raising=False)

    get_settings.cache_clear()
    p = build_providers()

    assert isinstance(p.storage, LocalFilesStorageProvider)
    assert p.storage.root_dir == str(tmp_path)
    assert p.quota_policy.hard_count_limit == 25
    assert p.messaging is None
    assert p.rate_limiter.max_requests == get_settings().rate_limit.requests
    get_settings.cache_clear()


def test_twilio_wired_when_configured(monkeypatch, tmp_path):
    monkeypatch.setenv("STORAGE_LOCAL_DIR", str(tmp_path))
    monkeypatch.setenv("TWILIO_ACCOUNT_SID", "AC1")
    monkeypatch.setenv("TWILIO_AUTH_TOKEN", "tok")
    monkeypatch.setenv("TWILIO_PHONE_NUMBER", "+15550000000")

    get_settings.cache_clear()
    p = build_providers()

    assert p.messaging is not None
    assert p.messaging.account_sid == "AC1"
    get_settings.cache_clear()
