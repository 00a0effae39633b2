import json

import httpx
import pytest

from crafthub.catalog.errors import AuthorizationError, BackendError
from crafthub.catalog.supabase_service import SupabaseService


URL = "https://hub.example.supabase.co"


def _service(handler) -> SupabaseService:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseService(URL, "anon-key", timeout=2.0, client=client)


def test_select_builds_filters_and_order():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json=[{"id": "1", "title": "Pack"}])

    rows = _service(handler).select("content", match={"id": "1"}, order=("downloads", True))

    request = seen["request"]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/content"
    assert request.url.params["id"] == "eq.1"
    assert request.url.params["order"] == "downloads.desc"
    assert request.url.params["select"] == "*"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"
    assert rows == [{"id": "1", "title": "Pack"}]


def test_insert_asks_for_representation_with_user_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(201, json=[{"id": "9"}])

    rows = _service(handler).insert("comments", [{"text": "hi"}], access_token="user-token")

    request = seen["request"]
    assert request.method == "POST"
    assert request.headers["prefer"] == "return=representation"
    assert request.headers["authorization"] == "Bearer user-token"
    assert json.loads(request.content) == [{"text": "hi"}]
    assert rows == [{"id": "9"}]


def test_insert_with_empty_body_returns_no_rows():
    service = _service(lambda request: httpx.Response(201))
    assert service.insert("comments", [{"text": "hi"}]) == []


def test_update_and_delete_filter_by_id():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    service = _service(handler)
    service.update("content", {"downloads": 2}, match={"id": "abc"})
    service.delete("content", match={"id": "abc"})

    assert [r.method for r in seen] == ["PATCH", "DELETE"]
    assert all(r.url.params["id"] == "eq.abc" for r in seen)
    assert json.loads(seen[0].content) == {"downloads": 2}


def test_error_status_becomes_backend_error():
    service = _service(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(BackendError) as excinfo:
        service.select("content")
    assert excinfo.value.remote_status == 500


def test_transport_failure_becomes_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(BackendError) as excinfo:
        _service(handler).select("content")
    assert excinfo.value.remote_status is None


def test_upload_overrides_content_type():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, json={"Key": "content-files/content/x-page.html"})

    service = _service(handler)
    service.upload("content/x-page.html", b"<html>", "application/octet-stream", access_token="t")

    request = seen["request"]
    assert request.url.path == "/storage/v1/object/content-files/content/x-page.html"
    assert request.headers["content-type"] == "application/octet-stream"
    assert request.headers["cache-control"] == "max-age=3600"
    assert request.content == b"<html>"
    assert service.public_url("content/x-page.html") == (
        f"{URL}/storage/v1/object/public/content-files/content/x-page.html"
    )


def test_fetch_file_returns_bytes():
    service = _service(lambda request: httpx.Response(200, content=b"\x00\x01"))
    assert service.fetch_file("https://files.example/pack.zip") == b"\x00\x01"


def test_fetch_file_failure():
    service = _service(lambda request: httpx.Response(404))
    with pytest.raises(BackendError):
        service.fetch_file("https://files.example/missing.zip")


def test_sign_in_returns_session():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["grant_type"] == "password"
        return httpx.Response(
            200,
            json={"access_token": "jwt", "expires_in": 3600, "user": {"email": "admin@admin.com"}},
        )

    session = _service(handler).sign_in("admin@admin.com", "secret")

    assert session.access_token == "jwt"
    assert session.email == "admin@admin.com"
    assert session.expires_at is not None


def test_sign_in_bad_credentials():
    service = _service(lambda request: httpx.Response(400, json={"error": "invalid_grant"}))
    with pytest.raises(AuthorizationError):
        service.sign_in("admin@admin.com", "wrong")


def test_get_user_rejected_token_is_none():
    service = _service(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    assert service.get_user("stale") is None
