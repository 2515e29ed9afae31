"""API integration tests."""

from __future__ import annotations

import pytest
import requests
from fastapi.testclient import TestClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from readlater.anchors import AnchorCodec, parse_document
from readlater.api import dependencies as deps
from readlater.app import app
from readlater.client.api import ApiClient
from readlater.client.extract import extract_article_info
from readlater.core.errors import ClientError

USER_HEADERS = {"Authorization": "Bearer user-1"}
PAGE = "<html><body><p>Alpha beta gamma.</p><p>Closing words.</p></body></html>"


@pytest.fixture
def client() -> TestClient:
    with TestClient(app) as test_client:
        yield test_client


class AppTransport(BaseAdapter):
    """Route ``requests`` calls into the ASGI app instead of the network."""

    def __init__(self, test_client: TestClient) -> None:
        super().__init__()
        self.test_client = test_client

    def send(self, request, **kwargs) -> requests.Response:
        resp = self.test_client.request(
            request.method,
            request.url,
            headers=dict(request.headers),
            content=request.body,
        )
        response = requests.Response()
        response.status_code = resp.status_code
        response.reason = resp.reason_phrase
        response.headers = CaseInsensitiveDict(resp.headers.items())
        response._content = resp.content
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def api(client: TestClient) -> ApiClient:
    session = requests.Session()
    session.mount("http://testserver", AppTransport(client))
    return ApiClient(host="http://testserver", token="user-1", session=session)


def _save(client: TestClient, path: str = "a", **extra) -> dict:
    body = {"url": f"https://example.com/{path}", "title": f"Article {path}", **extra}
    resp = client.post("/articles", json=body, headers=USER_HEADERS)
    assert resp.status_code in (200, 201), resp.text
    return resp.json()["article"]


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_identity_header_is_required(client: TestClient) -> None:
    resp = client.get("/articles")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_identity_without_bearer_prefix(client: TestClient) -> None:
    _save(client)
    resp = client.get("/articles", headers={"Authorization": "user-1"})
    assert resp.json()["pagination"]["total"] == 1


def test_save_is_created_then_updated(client: TestClient) -> None:
    first = client.post(
        "/articles",
        json={"url": "https://example.com/a", "title": "First", "wordCount": 400},
        headers=USER_HEADERS,
    )
    assert first.status_code == 201
    article = first.json()["article"]
    assert article["domain"] == "example.com"
    assert article["estimatedReadingTimeMinutes"] == 2
    assert article["status"] == "unread"

    second = client.post(
        "/articles",
        json={"url": "https://example.com/a", "title": "Renamed"},
        headers=USER_HEADERS,
    )
    assert second.status_code == 200
    assert second.json()["article"]["id"] == article["id"]
    assert second.json()["article"]["title"] == "Renamed"


def test_validation_errors_use_error_shape(client: TestClient) -> None:
    resp = client.post("/articles", json={"url": "https://example.com/a"}, headers=USER_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation Error"


def test_missing_article_is_404(client: TestClient) -> None:
    resp = client.get("/articles/art_missing", headers=USER_HEADERS)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Article not found"


def test_articles_are_private_per_user(client: TestClient) -> None:
    article = _save(client)
    resp = client.get(f"/articles/{article['id']}", headers={"Authorization": "Bearer user-2"})
    assert resp.status_code == 404


def test_progress_and_tags(client: TestClient) -> None:
    article = _save(client)

    resp = client.put(
        f"/articles/{article['id']}/progress",
        json={"progressPercent": 75, "scrollPosition": {"type": "percent", "value": 75}},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 200
    updated = resp.json()["article"]
    assert updated["status"] == "in-progress"
    assert updated["scrollPosition"] == {"type": "percent", "value": 75.0}

    resp = client.put(f"/articles/{article['id']}/tags", json={"tags": ["python", "db"]}, headers=USER_HEADERS)
    assert resp.json()["article"]["tags"] == ["python", "db"]

    listed = client.get("/articles", params={"tag": "db", "status": "in-progress"}, headers=USER_HEADERS).json()
    assert [a["id"] for a in listed["articles"]] == [article["id"]]


def test_progress_out_of_range_is_rejected(client: TestClient) -> None:
    article = _save(client)
    resp = client.put(f"/articles/{article['id']}/progress", json={"progressPercent": 140}, headers=USER_HEADERS)
    assert resp.status_code == 400


def test_partial_update(client: TestClient) -> None:
    article = _save(client)
    resp = client.put(f"/articles/{article['id']}", json={"status": "archived"}, headers=USER_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["article"]["status"] == "archived"
    assert resp.json()["article"]["title"] == article["title"]


def test_list_pagination(client: TestClient) -> None:
    for index in range(3):
        _save(client, f"p{index}")
    resp = client.get("/articles", params={"limit": 2, "page": 2, "sort": "title-asc"}, headers=USER_HEADERS)
    payload = resp.json()
    assert payload["pagination"] == {"total": 3, "page": 2, "limit": 2, "pages": 2}
    assert [a["title"] for a in payload["articles"]] == ["Article p2"]


def test_sync_merges_and_is_idempotent(client: TestClient) -> None:
    remote = _save(client, "remote-only")
    local = [
        {"url": "https://example.com/offline", "title": "Saved offline", "updatedAt": "2024-01-01T00:00:00Z"},
    ]

    first = client.post("/articles/sync", json={"articles": local}, headers=USER_HEADERS)
    assert first.status_code == 200
    payload = first.json()
    assert payload["failures"] == []
    urls = [a["url"] for a in payload["syncedArticles"]]
    assert urls == ["https://example.com/offline", remote["url"]]

    second = client.post(
        "/articles/sync",
        json={"articles": payload["syncedArticles"]},
        headers=USER_HEADERS,
    )
    assert second.json()["syncedArticles"] == payload["syncedArticles"]
    listed = client.get("/articles", headers=USER_HEADERS).json()
    assert listed["pagination"]["total"] == 2


def test_sync_keeps_newer_remote_copy(client: TestClient) -> None:
    created = client.post(
        "/articles",
        json={"url": "u1", "title": "New", "domain": "example.com"},
        headers=USER_HEADERS,
    )
    remote = created.json()["article"]

    resp = client.post(
        "/articles/sync",
        json={"articles": [{"url": "u1", "title": "Old", "updatedAt": "2024-01-01T00:00:00Z"}]},
        headers=USER_HEADERS,
    )

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["failures"] == []
    assert payload["syncedArticles"] == [remote]
    assert payload["syncedArticles"][0]["title"] == "New"


def test_sync_reports_invalid_items_per_article(client: TestClient) -> None:
    local = [
        {"url": "https://example.com/good", "title": "Good"},
        {"url": "https://example.com/bad", "title": ""},
    ]

    resp = client.post("/articles/sync", json={"articles": local}, headers=USER_HEADERS)

    assert resp.status_code == 200
    payload = resp.json()
    assert payload["message"] == "Articles synced with errors"
    assert [(f["url"], f["operation"], f["kind"]) for f in payload["failures"]] == [
        ("https://example.com/bad", "create", "error")
    ]
    listed = client.get("/articles", headers=USER_HEADERS).json()
    assert [a["url"] for a in listed["articles"]] == ["https://example.com/good"]


def test_highlights_notes_and_cascade(client: TestClient) -> None:
    article = _save(client)
    root = parse_document(PAGE)
    codec = AnchorCodec()
    selector = codec.encode(codec.select_text(root, "beta"), root)

    created = client.post(
        f"/highlights/article/{article['id']}",
        json={"selectedText": "beta", "selectorInfo": selector.to_wire(), "color": "pink"},
        headers=USER_HEADERS,
    )
    assert created.status_code == 201
    highlight = created.json()["highlight"]
    assert highlight["selectorInfo"]["type"] == "range"

    note = client.post(
        f"/notes/article/{article['id']}",
        json={"noteText": "Check this", "highlightId": highlight["id"]},
        headers=USER_HEADERS,
    )
    assert note.status_code == 201

    listed = client.get(f"/highlights/article/{article['id']}", headers=USER_HEADERS).json()
    assert [h["id"] for h in listed["highlights"]] == [highlight["id"]]

    deleted = client.delete(f"/articles/{article['id']}", headers=USER_HEADERS)
    assert deleted.status_code == 200
    assert client.put(f"/highlights/{highlight['id']}", json={"color": "blue"}, headers=USER_HEADERS).status_code == 404
    assert client.delete(f"/notes/{note.json()['note']['id']}", headers=USER_HEADERS).status_code == 404


def test_resolve_reports_broken_anchors(client: TestClient) -> None:
    article = _save(client)
    root = parse_document(PAGE)
    codec = AnchorCodec()
    selector = codec.encode(codec.select_text(root, "Closing"), root)
    good = client.post(
        f"/highlights/article/{article['id']}",
        json={"selectedText": "Closing", "selectorInfo": selector.to_wire()},
        headers=USER_HEADERS,
    ).json()["highlight"]
    broken = client.post(
        f"/highlights/article/{article['id']}",
        json={
            "selectedText": "gone",
            "selectorInfo": {"type": "range", "startPath": [7, 0], "startOffset": 0, "endPath": [7, 0], "endOffset": 2},
        },
        headers=USER_HEADERS,
    ).json()["highlight"]

    resp = client.post(
        f"/highlights/article/{article['id']}/resolve",
        json={"html": PAGE},
        headers=USER_HEADERS,
    )
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["resolved"] == [{"highlightId": good["id"], "text": "Closing", "textMatches": True}]
    assert [f["highlightId"] for f in payload["failures"]] == [broken["id"]]


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "readlater_requests_total" in resp.text


def test_identity_header_is_configurable(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RLP_USER_HEADER", "X-User-Id")
    deps.reset_state()

    assert client.get("/articles", headers={"X-User-Id": "user-9"}).status_code == 200
    assert client.get("/articles", headers=USER_HEADERS).status_code == 401


def test_api_client_against_bundled_server(api: ApiClient) -> None:
    saved = api.save_article(extract_article_info("https://example.com/a", PAGE))
    assert saved.id.startswith("art_")

    listed = api.list_articles(limit=10)
    assert [a["id"] for a in listed["articles"]] == [saved.id]

    progressed = api.update_progress(saved.id, 50)
    assert progressed.status.value == "in-progress"

    root = parse_document(PAGE)
    codec = AnchorCodec()
    selector = codec.encode(codec.select_text(root, "gamma"), root)
    highlight = api.create_highlight(saved.id, "gamma", selector)
    note = api.create_note(saved.id, "Remember", highlight["id"])
    assert note["highlightId"] == highlight["id"]

    report = api.resolve_anchors(saved.id, PAGE)
    assert report["resolved"] == [{"highlightId": highlight["id"], "text": "gamma", "textMatches": True}]
    assert report["failures"] == []

    stale = saved.model_copy(update={"title": "Stale copy", "updated_at": None})
    synced = api.sync([stale])
    assert synced["failures"] == []
    assert [a["title"] for a in synced["syncedArticles"]] == [saved.title]


def test_api_client_without_token_is_rejected(api: ApiClient) -> None:
    api.token = None

    with pytest.raises(ClientError) as excinfo:
        api.list_articles()
    assert excinfo.value.http_status == 401
