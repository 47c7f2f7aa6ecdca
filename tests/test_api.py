import re

import pytest
from fastapi.testclient import TestClient

from contact_api.api import create_app, cors_options
from contact_api.config import CorsSettings, Environment, Settings, StoreSettings
from contact_api.notifier import NotificationError, NotificationResult
from contact_api.pipelines.ingest import SubmissionWorkflow
from tests.conftest import ADA, RecordingNotifier, disabled_email

ISO_MS = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def test_submit_then_list_round_trip(client: TestClient) -> None:
    response = client.post("/api/contact", json=ADA)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Submission saved successfully"
    data = body["data"]
    assert isinstance(data["id"], int)
    assert ISO_MS.match(data["timestamp"])
    assert data["name"] == "Ada"
    assert {k: data[k] for k in ADA} == ADA

    listing = client.get("/api/contact")
    assert listing.status_code == 200
    assert listing.json()["success"] is True
    assert listing.json()["data"][-1] == data


def test_list_on_empty_store(client: TestClient) -> None:
    response = client.get("/api/contact")
    assert response.status_code == 200
    assert response.json() == {"success": True, "data": []}


def test_submissions_listed_oldest_first(client: TestClient) -> None:
    ids = [client.post("/api/contact", json={**ADA, "name": f"c{i}"}).json()["data"]["id"] for i in range(3)]
    listed = client.get("/api/contact").json()["data"]
    assert [item["id"] for item in listed] == ids
    assert ids == sorted(ids)


def test_store_write_failure_returns_500(client: TestClient, json_store, notifier, monkeypatch) -> None:
    def disk_full(data):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(json_store, "_write_sync", disk_full)
    response = client.post("/api/contact", json=ADA)

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Error saving submission"}
    assert notifier.calls == []

    monkeypatch.undo()
    assert client.get("/api/contact").json()["data"] == []


def test_store_read_failure_returns_500(client: TestClient, store_path) -> None:
    store_path.write_text("{broken", encoding="utf-8")
    response = client.get("/api/contact")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Error reading submissions"}


def test_notification_failure_still_succeeds(test_settings: Settings, json_store) -> None:
    notifier = RecordingNotifier(result=NotificationResult.failed(NotificationError("smtp down")))
    app = create_app(test_settings, workflow=SubmissionWorkflow(json_store, notifier))
    with TestClient(app) as c:
        response = c.post("/api/contact", json=ADA)
        assert response.status_code == 200
        assert c.get("/api/contact").json()["data"] == [response.json()["data"]]
    assert len(notifier.calls) == 1


def test_malformed_payload_returns_400(client: TestClient) -> None:
    response = client.post("/api/contact", json=["not", "an", "object"])
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid submission payload"}
    assert client.get("/api/contact").json()["data"] == []


@pytest.mark.parametrize(
    "fields",
    [
        {"message": 12345},
        {"name": 123, "email": "ada@x.com"},
        {"service": ["web", "seo"], "message": {"text": "hi"}},
        {"email": True, "name": None},
    ],
)
def test_non_string_values_are_stored_as_sent(client: TestClient, fields) -> None:
    response = client.post("/api/contact", json={**ADA, **fields})

    assert response.status_code == 200
    data = response.json()["data"]
    for key, value in fields.items():
        assert data[key] == value
    assert client.get("/api/contact").json()["data"] == [data]


def test_non_json_body_returns_400(client: TestClient) -> None:
    response = client.post("/api/contact", content=b"name=Ada", headers={"Content-Type": "text/plain"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_client_cannot_choose_id(client: TestClient) -> None:
    data = client.post("/api/contact", json={**ADA, "id": 1, "timestamp": "2000-01-01T00:00:00.000Z"}).json()["data"]
    assert data["id"] != 1
    assert data["timestamp"] != "2000-01-01T00:00:00.000Z"


def test_health_and_root(client: TestClient, test_settings: Settings) -> None:
    assert client.get("/health").json() == {"status": "ok", "version": test_settings.version}
    root = client.get("/").json()
    assert root["endpoints"]["submit_contact"] == "POST /api/contact"


def test_app_builds_workflow_from_settings(test_settings: Settings, store_path) -> None:
    app = create_app(test_settings)
    with TestClient(app) as c:
        assert store_path.exists()
        response = c.post("/api/contact", json=ADA)
        assert response.status_code == 200
    assert ADA["message"] in store_path.read_text(encoding="utf-8")


def production_client(tmp_path, **cors) -> TestClient:
    config = Settings(
        environment=Environment.PRODUCTION,
        store=StoreSettings(path=str(tmp_path / "subs.json")),
        email=disabled_email(),
        cors=CorsSettings(**cors),
    )
    return TestClient(create_app(config))


def test_production_cors_allows_configured_origins(tmp_path) -> None:
    with production_client(tmp_path, frontend_url="https://agency.example.com/") as c:
        for origin in ("https://agency.example.com", "http://localhost:5173", "https://preview.site.pages.dev"):
            response = c.get("/api/contact", headers={"Origin": origin})
            assert response.headers.get("access-control-allow-origin") == origin


def test_production_cors_rejects_unknown_origins(tmp_path) -> None:
    with production_client(tmp_path) as c:
        response = c.get("/api/contact", headers={"Origin": "https://evil.example.com"})
        assert "access-control-allow-origin" not in response.headers

        preflight = c.options(
            "/api/contact",
            headers={"Origin": "https://evil.example.com", "Access-Control-Request-Method": "POST"},
        )
        assert preflight.status_code == 400


def test_development_cors_allows_any_origin(client: TestClient) -> None:
    response = client.get("/api/contact", headers={"Origin": "http://127.0.0.1:5173"})
    assert response.headers["access-control-allow-origin"] == "http://127.0.0.1:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_cors_options_production_shape() -> None:
    options = cors_options(CorsSettings(frontend_url="https://a.example"), production=True)
    assert options["allow_origins"] == ["http://localhost:5173", "http://localhost:3000", "https://a.example"]
    assert options["allow_origin_regex"] == r"https?://.*\.pages\.dev"
    assert options["allow_credentials"] is True
