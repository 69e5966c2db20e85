"""Settings parsing and settings-driven app assembly."""
import pytest
from fastapi.testclient import TestClient

from core.config import Settings
from main import create_app


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('["http://a.test", "http://b.test"]', ["http://a.test", "http://b.test"]),
        ("http://a.test, http://b.test", ["http://a.test", "http://b.test"]),
        ("http://a.test", ["http://a.test"]),
        ("[not json]", ["[not json]"]),
        (["http://a.test"], ["http://a.test"]),
    ],
)
def test_cors_origins_parsing(raw, expected):
    assert Settings(CORS_ORIGINS=raw).CORS_ORIGINS == expected


def test_static_ui_is_mounted_when_configured(tmp_path):
    (tmp_path / "index.html").write_text("<h1>proctor dashboard</h1>", encoding="utf-8")
    app = create_app(Settings(STATIC_DIR=str(tmp_path)))
    with TestClient(app) as client:
        resp = client.get("/app/")
        assert resp.status_code == 200
        assert "proctor dashboard" in resp.text


def test_static_ui_is_absent_by_default():
    app = create_app(Settings(STATIC_DIR=None))
    with TestClient(app) as client:
        assert client.get("/app/").status_code == 404


def test_missing_static_dir_is_skipped(tmp_path):
    app = create_app(Settings(STATIC_DIR=str(tmp_path / "missing")))
    with TestClient(app) as client:
        assert client.get("/app/").status_code == 404
        assert client.get("/health").status_code == 200
