import cv2
import pytest
from fastapi.testclient import TestClient

from main_production import app


@pytest.fixture
def client():
    return TestClient(app)


def encode_png(image_rgb):
    ok, buf = cv2.imencode(".png", cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR))
    assert ok
    return buf.tobytes()


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "operational"
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["components"]["locator"] == "FaceRegionLocator"


def test_analyze_returns_season(client, face_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("face.png", encode_png(face_image), "image/png")},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["season"] in {"spring", "summer", "autumn", "winter"}
    assert 0 <= body["seasonConfidence"] <= 0.95
    assert body["diagnostics"]["method"] == "heuristic"
    assert "processing_time_seconds" in body["metadata"]


def test_analyze_with_face_box(client, skin_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("face.png", encode_png(skin_image), "image/png")},
        data={"x": "10", "y": "10", "width": "150", "height": "150"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["diagnostics"]["method"] == "provided"
    assert body["diagnostics"]["faceBox"] == {"x": 10, "y": 10, "width": 150, "height": 150}


def test_analyze_with_normalized_face_box(client, skin_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("face.png", encode_png(skin_image), "image/png")},
        data={"x": "0.1", "y": "0.1", "width": "0.5", "height": "0.5", "normalized": "true"},
    )
    assert resp.status_code == 200
    assert resp.json()["diagnostics"]["method"] == "normalized"


def test_partial_face_box_is_rejected(client, skin_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("face.png", encode_png(skin_image), "image/png")},
        data={"x": "10"},
    )
    assert resp.status_code == 400


def test_face_not_detected(client, blue_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("blue.png", encode_png(blue_image), "image/png")},
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "FACE_NOT_DETECTED"
    assert body["needsConfirmation"] is True
    assert "zones" in body["diagnostics"]


def test_undecodable_upload(client):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("junk.png", b"not an image", "image/png")},
    )
    assert resp.status_code == 400
    assert "Invalid image" in resp.json()["detail"]


def test_analyze_cropped_face(client, skin_image):
    resp = client.post(
        "/analyze-skin-tone",
        files={"file": ("face.png", encode_png(skin_image), "image/png")},
        data={"cropped": "true"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["diagnostics"]["method"] == "cropped"
    assert body["diagnostics"]["faceBox"] == {"x": 0, "y": 0, "width": 200, "height": 200}
    assert body["diagnostics"]["labValues"]["raw"] is not None
