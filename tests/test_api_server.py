import threading
from io import BytesIO

import pytest
import requests

import api_server
from api_server import app, session_service
from models.scan_result import ScanResult, STATUS_NOT_FOUND


@pytest.fixture
def client():
    """Flask test client."""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def upload(client, data: bytes, name: str = "qr.png"):
    return client.post(
        "/api/scan",
        data={"image": (BytesIO(data), name)},
        content_type="multipart/form-data",
    )


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_scan_upload_decodes_and_offers_download(client, qr_png_bytes, payload):
    response = upload(client, qr_png_bytes)
    body = response.get_json()

    assert response.status_code == 200
    assert body["status"] == "decoded"
    assert body["payload"] == payload
    assert body["message"] == "QR code detected"
    assert body["qr_image"].startswith("data:image/png;base64,")

    download = client.get(body["download_url"])
    assert download.status_code == 200
    assert download.mimetype == "image/png"
    assert "qrcode.png" in download.headers["Content-Disposition"]


def test_scan_upload_without_code(client, blank_png_bytes):
    body = upload(client, blank_png_bytes).get_json()

    assert body["status"] == "not_found"
    assert body["message"] == "No QR code detected"
    assert body["qr_image"] is None
    assert client.get(f"/api/qr/{body['session_id']}").status_code == 404


def test_scan_upload_that_is_not_an_image(client):
    body = upload(client, b"not an image").get_json()

    assert body["status"] == "load_failed"
    assert body["message"] == "Image failed to load, cannot detect QR code"


def test_scan_rejects_disallowed_extension(client, qr_png_bytes):
    assert upload(client, qr_png_bytes, name="qr.exe").status_code == 400


def test_scan_requires_file_or_url(client):
    assert client.post("/api/scan", json={}).status_code == 400


def test_scan_url(client, monkeypatch, qr_png_bytes, payload):
    class Response:
        status_code = 200
        content = qr_png_bytes

    monkeypatch.setattr(requests, "get", lambda url, timeout: Response())

    body = client.post("/api/scan", json={"url": "https://example.com/qr.png"}).get_json()

    assert body["payload"] == payload
    assert body["image_url"] == "https://example.com/qr.png"


def test_scan_url_that_fails_to_load(client, monkeypatch):
    class Response:
        status_code = 500
        content = b""

    monkeypatch.setattr(requests, "get", lambda url, timeout: Response())

    body = client.post("/api/scan", json={"url": "https://example.com/qr.png"}).get_json()

    assert body["status"] == "load_failed"


def test_new_scan_replaces_previous_session(client, qr_png_bytes):
    first = upload(client, qr_png_bytes).get_json()
    second = upload(client, qr_png_bytes).get_json()

    assert client.get(f"/api/qr/{first['session_id']}").status_code == 404
    assert client.get(f"/api/qr/{second['session_id']}").status_code == 200
    assert session_service.current.session_id == second["session_id"]


def test_close_session(client, qr_png_bytes):
    session_id = upload(client, qr_png_bytes).get_json()["session_id"]

    closed = client.post("/api/close-session", json={"session_id": session_id})
    assert closed.status_code == 200
    assert client.get(f"/api/qr/{session_id}").status_code == 404
    assert client.post("/api/close-session", json={"session_id": session_id}).status_code == 404


def test_encode(client):
    body = client.post("/api/encode", json={"text": "hello"}).get_json()
    assert body["success"]
    assert body["qr_image"].startswith("data:image/png;base64,")


def test_encode_requires_text(client):
    assert client.post("/api/encode", json={}).status_code == 400


def test_overlapping_scans_answer_the_replaced_one_with_conflict(monkeypatch):
    first_inside = threading.Event()
    second_done = threading.Event()

    def slow_first_relay(url, **kwargs):
        if url.endswith("first.png"):
            first_inside.set()
            assert second_done.wait(timeout=10)
        return ScanResult(source=url, status=STATUS_NOT_FOUND)

    monkeypatch.setattr(api_server, "relay_source", slow_first_relay)

    responses = {}

    def scan(name):
        response = app.test_client().post("/api/scan", json={"url": f"https://example.com/{name}.png"})
        responses[name] = (response.status_code, response.get_json())

    first = threading.Thread(target=scan, args=("first",))
    first.start()
    assert first_inside.wait(timeout=10)
    scan("second")
    second_done.set()
    first.join(timeout=10)

    second_status, second_body = responses["second"]
    first_status, first_body = responses["first"]
    assert second_status == 200
    assert second_body["status"] == "not_found"
    assert first_status == 409
    assert first_body["status"] == "superseded"
    assert session_service.current.session_id == second_body["session_id"]
