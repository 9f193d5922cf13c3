"""Tests for the FastAPI service mode."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from bookcheck.checker import LinkChecker
from bookcheck.config import LinkcheckConfig
from bookcheck.service import create_app
from tests._fixtures.book_builder import BookBuilder


class _RecordingFactory:
    def __init__(self) -> None:
        self.configs: list[LinkcheckConfig] = []

    def __call__(self, config: LinkcheckConfig) -> LinkChecker:
        self.configs.append(config)
        return LinkChecker(config, fetch=lambda url: 404)


@pytest.fixture
def factory() -> _RecordingFactory:
    return _RecordingFactory()


@pytest.fixture
def client(factory: _RecordingFactory) -> TestClient:
    return TestClient(create_app(factory))


def _write_book(book_builder: BookBuilder) -> Path:
    book_builder.write(
        {
            "SUMMARY.md": "- [Intro](intro.md)\n",
            "intro.md": "# Intro\n\n[gone](gone.md) [web](https://example.com/gone)\n",
        }
    )
    return book_builder.path()


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_check_endpoint_reports_failures(
    client: TestClient, factory: _RecordingFactory, book_builder: BookBuilder
) -> None:
    root = _write_book(book_builder)

    response = client.post("/check", json={"path": str(root)})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "broken"
    assert data["links"] == 2
    assert data["failures"] == [
        {
            "url": "gone.md",
            "chapter": "intro.md",
            "line": 3,
            "kind": "unresolved",
            "reason": "reference not found",
            "message": '"gone.md" in intro.md#3: reference not found',
        }
    ]
    assert factory.configs[0].follow_web_links is False


def test_check_endpoint_can_follow_web_links(
    client: TestClient, factory: _RecordingFactory, book_builder: BookBuilder
) -> None:
    root = _write_book(book_builder)

    response = client.post("/check", json={"path": str(root), "follow_web_links": True})

    data = response.json()
    assert [failure["kind"] for failure in data["failures"]] == ["unresolved", "status"]
    assert data["failures"][1]["reason"] == "HTTP 404"
    assert factory.configs[0].follow_web_links is True


def test_check_endpoint_returns_ok_for_valid_book(client: TestClient, book_builder: BookBuilder) -> None:
    book_builder.write({"intro.md": "# Intro\n\n[self](#intro)\n"})

    response = client.post("/check", json={"path": str(book_builder.path())})

    assert response.json() == {"status": "ok", "links": 1, "failures": []}


def test_check_endpoint_maps_missing_book_to_404(client: TestClient, tmp_path: Path) -> None:
    response = client.post("/check", json={"path": str(tmp_path / "missing")})

    assert response.status_code == 404
    assert "Book not found" in response.json()["detail"]


def test_check_endpoint_maps_config_errors_to_400(client: TestClient, book_builder: BookBuilder) -> None:
    book_builder.write({"intro.md": "# Intro\n"})
    book_builder.write_config("linkcheck:\n  exclude: ['(']\n")

    response = client.post("/check", json={"path": str(book_builder.path())})

    assert response.status_code == 400


def test_run_service_hands_app_to_uvicorn(monkeypatch) -> None:
    import uvicorn
    from fastapi import FastAPI

    from bookcheck.service.app import run_service

    calls: list[tuple[object, str, int]] = []
    monkeypatch.setattr(uvicorn, "run", lambda app, host, port: calls.append((app, host, port)))

    run_service(port=9001)

    app, host, port = calls[0]
    assert isinstance(app, FastAPI)
    assert (host, port) == ("127.0.0.1", 9001)
