import base64
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from conftest import FakeStorage, obj
from core.settings import get_settings
from main import create_app
from providers.factory import Providers
from providers.impl.ratelimit_memory import InMemoryRateLimitStore
from providers.messaging import MessageResult, MessagingError
from quota.models import QuotaPolicy
from ratelimit.limiter import RateLimiter

RECIPIENT = "+15550001111"
PNG = base64.b64encode(b"\x89PNG fake image bytes").decode()


class FakeMessaging:
    def __init__(self, error=None):
        self.sent = []
        self.error = error

    async def send_mms(self, to, body, media_url):
        if self.error:
            raise self.error
        self.sent.append((to, body, media_url))
        return MessageResult(sid="SM123", status="queued")


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setenv("SMS_ALLOWED_RECIPIENT", RECIPIENT)
    monkeypatch.setenv("UPLOAD_MAX_FILE_BYTES", "1024")
    get_settings.cache_clear()
    s = get_settings()
    yield s
    get_settings.cache_clear()


def _client(settings, storage, policy=None, messaging=None, max_requests=100):
    providers = Providers(
        settings=settings,
        storage=storage,
        quota_policy=policy or QuotaPolicy(hard_size_limit=1000, hard_count_limit=100),
        rate_limiter=RateLimiter(InMemoryRateLimitStore(), max_requests=max_requests, window_seconds=60),
        messaging=messaging,
    )
    return TestClient(create_app(providers))


# ---------------------------------------------------------------------
# /upload
# ---------------------------------------------------------------------

def test_upload_accepts_and_stores(settings):
    storage = FakeStorage()
    client = _client(settings, storage)

    r = client.post("/upload", json={"fileName": "robin.png", "fileData": PNG, "contentType": "image/png"})

    assert r.status_code == 200, r.text
    body = r.json()
    assert body["success"] is True
    assert body["fileName"].startswith("bird-") and body["fileName"].endswith(".png")
    assert storage.blobs[body["fileName"]] == b"\x89PNG fake image bytes"
    assert storage.content_types[body["fileName"]] == "image/png"


def test_upload_rejected_when_bucket_full(settings):
    storage = FakeStorage([obj("old", 990, 1)])
    client = _client(settings, storage)

    r = client.post("/upload", json={"fileName": "robin.png", "fileData": PNG, "contentType": "image/png"})

    assert r.status_code == 507
    detail = r.json()["detail"]
    assert "limit reached" in detail["error"]
    assert detail["maxSize"].endswith("GB")
    assert list(storage.objects) == ["old"]


def test_upload_cleans_up_before_writing(settings):
    storage = FakeStorage([obj(f"k{i}", 100, i) for i in range(8)])
    client = _client(settings, storage)

    r = client.post("/upload", json={"fileName": "robin.png", "fileData": base64.b64encode(b"x" * 100).decode()})

    assert r.status_code == 200
    assert r.json()["evicted"] == 2
    assert storage.deleted == ["k0", "k1"]


def test_upload_storage_down_is_distinct_from_full(settings):
    storage = FakeStorage()
    storage.fail_list = True
    client = _client(settings, storage)

    r = client.post("/upload", json={"fileName": "robin.png", "fileData": PNG})

    assert r.status_code == 503
    assert storage.blobs == {}


@pytest.mark.parametrize(
    "payload,status",
    [
        ({"fileData": PNG}, 400),
        ({"fileName": "x.png"}, 400),
        ({"fileName": "doc.pdf", "fileData": PNG, "contentType": "application/pdf"}, 400),
        ({"fileName": "x.png", "fileData": "%%%not-base64%%%"}, 400),
        ({"fileName": "x.png", "fileData": base64.b64encode(b"x" * 2048).decode()}, 413),
    ],
)
def test_upload_validation(settings, payload, status):
    storage = FakeStorage()
    client = _client(settings, storage)

    r = client.post("/upload", json=payload)

    assert r.status_code == status
    assert storage.list_calls == 0


def test_upload_put_failure_is_500(settings):
    storage = FakeStorage()
    storage.fail_put = True
    client = _client(settings, storage)

    r = client.post("/upload", json={"fileName": "robin.png", "fileData": PNG})

    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to upload image"


# ---------------------------------------------------------------------
# /list + /image
# ---------------------------------------------------------------------

def test_list_returns_newest_first(settings):
    storage = FakeStorage([obj(f"bird-{i}.jpg", 1, i) for i in range(6)], page_size=2)
    client = _client(settings, storage)

    r = client.get("/list")

    assert r.status_code == 200
    keys = [i["Key"] for i in r.json()["images"]]
    assert keys == ["bird-5.jpg", "bird-4.jpg", "bird-3.jpg", "bird-2.jpg"]
    assert r.json()["images"][0]["LastModified"].endswith("Z")


def test_list_storage_failure(settings):
    storage = FakeStorage()
    storage.fail_list = True

    r = _client(settings, storage).get("/list")

    assert r.status_code == 503


def test_serve_image(settings):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!", content_type="image/png")
    client = _client(settings, storage)

    r = client.get("/image/bird-1.png")

    assert r.status_code == 200
    assert r.content == b"png!"
    assert r.headers["content-type"] == "image/png"
    assert "max-age=31536000" in r.headers["cache-control"]

    assert client.get("/image/nope.png").status_code == 404


def test_image_route_is_not_rate_limited(settings):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!", content_type="image/png")
    client = _client(settings, storage, max_requests=1)

    assert client.get("/list").status_code == 200
    assert client.get("/list").status_code == 429
    assert all(client.get("/image/bird-1.png").status_code == 200 for _ in range(3))


# ---------------------------------------------------------------------
# /sms
# ---------------------------------------------------------------------

def _sms(client, **overrides):
    payload = {"recipientPhoneNumber": RECIPIENT, "mediaUrl": "https://w.example.dev/image/bird-1.png"}
    payload.update(overrides)
    return client.post("/sms", json=payload)


def test_sms_relays_message(settings):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!")
    messaging = FakeMessaging()

    r = _sms(_client(settings, storage, messaging=messaging))

    assert r.status_code == 200
    assert r.json() == {"success": True, "messageSid": "SM123"}
    assert messaging.sent == [(RECIPIENT, "Check out this little beauty!", "https://w.example.dev/image/bird-1.png")]


@pytest.mark.parametrize(
    "overrides,status",
    [
        ({"recipientPhoneNumber": None}, 400),
        ({"recipientPhoneNumber": "+19999999999"}, 403),
        ({"mediaUrl": "not a url"}, 400),
        ({"mediaUrl": "https://w.example.dev/files/bird-1.png"}, 400),
        ({"mediaUrl": "https://w.example.dev/image/missing.png"}, 404),
    ],
)
def test_sms_validation(settings, overrides, status):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!")
    messaging = FakeMessaging()

    r = _sms(_client(settings, storage, messaging=messaging), **overrides)

    assert r.status_code == status
    assert messaging.sent == []


def test_sms_without_credentials(settings):
    r = _sms(_client(settings, FakeStorage(), messaging=None))
    assert r.status_code == 500


def test_sms_provider_error_passes_status_through(settings):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!")
    messaging = FakeMessaging(error=MessagingError("Failed to send SMS", status_code=400, details="bad To"))

    r = _sms(_client(settings, storage, messaging=messaging))

    assert r.status_code == 400
    assert r.json()["detail"] == {"error": "Failed to send SMS", "details": "bad To"}


def test_sms_rejects_everyone_when_no_recipient_configured(settings):
    storage = FakeStorage()
    storage.put_object("bird-1.png", b"png!")
    unset = replace(settings, sms=replace(settings.sms, allowed_recipient=""))

    r = _sms(_client(unset, storage, messaging=FakeMessaging()))

    assert r.status_code == 403


# ---------------------------------------------------------------------
# health + CORS
# ---------------------------------------------------------------------

def test_health_storage(settings):
    storage = FakeStorage([obj("a", 10, 1), obj("b", 5, 2)])
    body = _client(settings, storage).get("/health/storage").json()

    assert body["ok"] is True
    assert body["objectCount"] == 2
    assert body["totalSize"] == 15


def test_cors_allows_pages_dev_origin(settings):
    client = _client(settings, FakeStorage())

    r = client.options(
        "/upload",
        headers={"Origin": "https://bird.pages.dev", "Access-Control-Request-Method": "POST"},
    )

    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "https://bird.pages.dev"
