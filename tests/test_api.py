from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from api.app import create_app

from conftest import FakeTypst


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("MDT_ENABLE_LOCAL_API", "1")
    config = tmp_path / "config.toml"
    config.write_text(f'[runtime]\noutput_dir = "{(tmp_path / "runs").as_posix()}"\nmax_file_size_mb = 1\n')
    return TestClient(create_app(config))


def test_api_disabled_by_default(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MDT_ENABLE_LOCAL_API", raising=False)
    with pytest.raises(RuntimeError):
        create_app(tmp_path / "absent.toml")


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": "0.1.0"}


def test_render_typst(client: TestClient) -> None:
    response = client.post("/render/typst", json={"markdown": "# Hi\n\nthere"})
    assert response.status_code == 200
    assert "= Hi <hi>\n\nthere" in response.json()["markup"]


def test_render_svg(client: TestClient, fake_typst: FakeTypst) -> None:
    fake_typst.pages = 2
    response = client.post("/render/svg", json={"markdown": "# Hi"})
    assert response.status_code == 200
    payload = response.json()
    assert len(payload["pages"]) == 2
    assert payload["width_pt"] == pytest.approx(595.2756)


def test_render_pdf(client: TestClient, fake_typst: FakeTypst) -> None:
    response = client.post("/render/pdf", json={"markdown": "# Hi"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content == b"%PDF-1.7 fake"


def test_render_compile_error(client: TestClient, fake_typst: FakeTypst) -> None:
    fake_typst.error = "error: label does not exist"
    response = client.post("/render/pdf", json={"markdown": "[x](#nowhere)"})
    assert response.status_code == 422
    assert "label does not exist" in response.json()["detail"]


def test_render_size_limit(client: TestClient) -> None:
    response = client.post("/render/typst", json={"markdown": "x" * (1024 * 1024 + 1)})
    assert response.status_code == 413
