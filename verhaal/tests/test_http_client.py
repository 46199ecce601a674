from __future__ import annotations

import asyncio
import http.client
import json
from urllib.error import URLError

import pytest

from verhaal.client import AdminApiClient, HttpCategoryDirectory, HttpRecordStore, HttpResponse
from verhaal.client import http as http_mod
from verhaal.core.errors import CategoryFetchError, SaveError
from verhaal.core.forms import Attachment, Category, RecordKind
from verhaal.core.forms import messages
from verhaal.core.settings import ClientSettings


class _Recorder:
    """Stands in for _do_request and remembers every Request it was given."""

    def __init__(self, status: int = 200, body=None) -> None:
        self.status = status
        self.body = body
        self.requests = []
        self.timeouts = []

    def __call__(self, req, *, timeout=None):
        self.requests.append(req)
        self.timeouts.append(timeout)
        raw = self.body if isinstance(self.body, bytes) else json.dumps(self.body).encode("utf-8")
        return HttpResponse(status=self.status, headers={}, body_bytes=raw)


def _install(monkeypatch, **kwargs) -> _Recorder:
    recorder = _Recorder(**kwargs)
    monkeypatch.setattr(http_mod, "_do_request", recorder)
    return recorder


def test_list_categories_parses_rows(monkeypatch):
    rec = _install(
        monkeypatch,
        body=[{"id": 3, "naam": "Sprookjes"}, {"id": "4", "name": "Fabels"}, {"id": "x"}, "junk"],
    )
    client = AdminApiClient("https://example.org/api", token="secret")

    assert client.list_categories() == [Category(3, "Sprookjes"), Category(4, "Fabels")]

    req = rec.requests[0]
    assert req.full_url == "https://example.org/api/admin/categories/"
    assert req.get_method() == "GET"
    assert req.get_header("Authorization") == "Bearer secret"


def test_list_categories_failures(monkeypatch):
    _install(monkeypatch, status=500, body={"detail": "database offline"})
    with pytest.raises(CategoryFetchError, match="database offline"):
        AdminApiClient("https://example.org/api/").list_categories()

    _install(monkeypatch, body={"not": "a list"})
    with pytest.raises(CategoryFetchError):
        AdminApiClient("https://example.org/api/").list_categories()


def test_network_error_becomes_category_fetch_error(monkeypatch):
    def refuse(req, context=None, timeout=None):
        raise URLError("connection refused")

    monkeypatch.setattr(http_mod, "urlopen", refuse)
    with pytest.raises(CategoryFetchError, match="network error"):
        AdminApiClient("http://127.0.0.1:9/").list_categories()


def test_create_record_posts_multipart(monkeypatch):
    rec = _install(monkeypatch, status=201, body={"id": 17})
    client = AdminApiClient("https://example.org/api/")
    payload = {
        "titel": "De vos",
        "categorie": 3,
        "is_onzichtbaar": False,
        "cover_image": Attachment('co"ver.png', b"\x89PNG", "image/png"),
        "word_file": None,
    }

    assert client.create_record(RecordKind.STORY, payload) == {"id": 17}

    req = rec.requests[0]
    assert req.full_url == "https://example.org/api/admin/verhalen/"
    assert req.get_header("Content-type").startswith("multipart/form-data; boundary=----verhaal-")
    body = req.data
    assert b'name="titel"\r\n\r\nDe vos\r\n' in body
    assert b'name="is_onzichtbaar"\r\n\r\nfalse\r\n' in body
    assert b'filename="co\'ver.png"' in body
    assert b"word_file" not in body


def test_create_record_surfaces_server_message(monkeypatch):
    _install(monkeypatch, status=400, body={"detail": "Titel bestaat al"})
    with pytest.raises(SaveError, match="Titel bestaat al"):
        AdminApiClient("https://example.org/api/").create_record(RecordKind.CATEGORY, {"naam": "x"})

    _install(monkeypatch, status=500, body=b"<html>oops</html>")
    with pytest.raises(SaveError) as exc:
        AdminApiClient("https://example.org/api/").create_record(RecordKind.CATEGORY, {"naam": "x"})
    assert str(exc.value) == messages.SAVE_FAILED


def test_create_record_without_json_body_still_succeeds(monkeypatch):
    _install(monkeypatch, status=204, body=b"")
    assert AdminApiClient("https://example.org/api/").create_record("category", {"naam": "x"}) == {"ok": True}


def test_upload_cap_is_enforced_before_sending(monkeypatch):
    rec = _install(monkeypatch)
    client = AdminApiClient("https://example.org/api/", max_upload_bytes=4)
    with pytest.raises(SaveError, match="too large"):
        client.create_record(RecordKind.STORY, {"cover_image": Attachment("big.png", b"123456")})
    assert rec.requests == []


def test_split_payload():
    att = Attachment("a.docx", b"PK")
    fields, files = http_mod.split_payload({"a": True, "b": None, "c": 5, "d": att})
    assert fields == {"a": "true", "c": "5"}
    assert files == [("d", att)]


def test_async_adapters_run_client_calls(monkeypatch):
    _install(monkeypatch, body=[{"id": 1, "naam": "Een"}])
    client = AdminApiClient.from_settings(ClientSettings(base_url="https://example.org/api/"))

    async def scenario():
        categories = await HttpCategoryDirectory(client).list_all()
        saved = await HttpRecordStore(client).save(RecordKind.CATEGORY, {"naam": "x"})
        return categories, saved

    categories, saved = asyncio.run(scenario())
    assert categories == [Category(1, "Een")]
    assert saved == {"ok": True}


@pytest.mark.parametrize(
    "failure",
    [
        ConnectionResetError(104, "peer reset"),
        TimeoutError("timed out"),
        http.client.IncompleteRead(b"partial"),
    ],
)
def test_connection_failures_map_to_form_errors(monkeypatch, failure):
    def broken(req, context=None, timeout=None):
        raise failure

    monkeypatch.setattr(http_mod, "urlopen", broken)
    client = AdminApiClient("https://example.org/api/")

    with pytest.raises(CategoryFetchError, match="network error"):
        client.list_categories()
    with pytest.raises(SaveError, match="network error"):
        client.create_record(RecordKind.CATEGORY, {"naam": "x"})

    async def scenario():
        with pytest.raises(CategoryFetchError):
            await HttpCategoryDirectory(client).list_all()
        with pytest.raises(SaveError):
            await HttpRecordStore(client).save(RecordKind.CATEGORY, {"naam": "x"})

    asyncio.run(scenario())


def test_requests_are_bounded_by_timeout(monkeypatch):
    seen = []

    class _Resp:
        status = 200
        headers = {}

        def read(self):
            return b"[]"

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

    def fake_urlopen(req, context=None, timeout=None):
        seen.append(timeout)
        return _Resp()

    monkeypatch.setattr(http_mod, "urlopen", fake_urlopen)
    client = AdminApiClient.from_settings(ClientSettings(base_url="https://example.org/api/", timeout_seconds=7.5))

    assert client.list_categories() == []
    client.create_record(RecordKind.CATEGORY, {"naam": "x"})
    assert seen == [7.5, 7.5]


def test_client_timeout_default_is_finite(monkeypatch):
    rec = _install(monkeypatch, body=[])
    AdminApiClient("https://example.org/api/").list_categories()
    assert rec.timeouts == [30.0]
