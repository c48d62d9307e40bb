"""
tests/test_server.py
Tests for the FastAPI surface in scaffoldgen.server, using the stub
scanner from conftest so no database is needed.
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from scaffoldgen import __version__
from scaffoldgen.config import Settings
from scaffoldgen.generator import ScaffoldGenerator
from scaffoldgen.server import create_app


@pytest.fixture()
def settings(tmp_path: pathlib.Path) -> Settings:
    return Settings(
        _env_file=None,
        DB_HOST="db.local",
        DB_USERNAME="app",
        DB_NAME="shop",
        PROJECT_DIR=str(tmp_path / "apis"),
        TEMPLATES_DIR=str(tmp_path / "templates"),
    )


@pytest.fixture()
def make_client(settings: Settings,
                make_generator: Callable[..., ScaffoldGenerator]) -> Callable[..., TestClient]:
    def _make(app_settings: Settings = settings, **scanner_kwargs: Any) -> TestClient:
        return TestClient(create_app(app_settings, make_generator(**scanner_kwargs)))

    return _make


class TestMetaRoutes:

    def test_health(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    def test_templates(self, make_client: Callable[..., TestClient], tmp_path: pathlib.Path) -> None:
        response = make_client().get("/api/templates")
        assert response.status_code == 200
        body = response.json()
        assert body["templates_dir"] == str(tmp_path / "templates")
        assert body["templates"] == [
            "entity_delete", "entity_get", "entity_list", "entity_new", "entity_update",
        ]


class TestIntrospectRoute:

    def test_introspect_selected_tables(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post("/api/introspect", json={"tables": "users, roles"})
        assert response.status_code == 200
        body = response.json()
        assert body["schema"] == "public"
        assert [t["name"] for t in body["tables"]] == ["roles", "users"]

    def test_introspect_with_relations(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post(
            "/api/introspect", json={"tables": ["users"], "include_relations": True}
        )
        assert response.status_code == 200
        relations = response.json()["tables"][0]["relations"]
        assert [r["name"] for r in relations] == ["posts", "user_roles", "roles"]
        assert relations[2]["through_table"] == "user_roles"

    def test_unknown_table_is_404(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post("/api/introspect", json={"tables": ["ghosts"]})
        assert response.status_code == 404
        assert response.json()["detail"] == "Table 'ghosts' not found"

    def test_unreadable_table_is_skipped(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client(failing=["posts"]).post(
            "/api/introspect", json={"tables": ["users", "posts"]}
        )
        assert response.status_code == 200
        body = response.json()
        assert [t["name"] for t in body["tables"]] == ["users"]
        assert len(body["warnings"]) == 1


class TestGenerateRoute:

    def test_dry_run(self, make_client: Callable[..., TestClient], tmp_path: pathlib.Path) -> None:
        response = make_client().post("/api/generate", json={"tables": "users", "dry_run": True})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["dry_run"] is True
        assert [r["status"] for r in body["results"]] == ["skipped"] * 5
        assert not (tmp_path / "apis").exists()

    def test_generate_writes_files(self, make_client: Callable[..., TestClient],
                                   tmp_path: pathlib.Path) -> None:
        response = make_client().post(
            "/api/generate", json={"tables": ["posts"], "relations": "*", "file_type": "json"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["tables_generated"] == 1
        assert (tmp_path / "apis" / "posts" / "post_list.json").is_file()

    def test_partial_failure_is_still_200(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post("/api/generate", json={"tables": "roles,ghosts", "dry_run": True})
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert {"file": "", "status": "error", "message": "table not found in database"} in body["results"]

    def test_unreachable_backend_is_502(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client(unreachable=True).post("/api/generate", json={})
        assert response.status_code == 502

    def test_bad_dialect_is_400(self, make_client: Callable[..., TestClient], settings: Settings) -> None:
        broken = settings.model_copy(update={"DB_DRIVER": "oracle"})
        response = make_client(broken).post("/api/generate", json={})
        assert response.status_code == 400
        assert "Unsupported database dialect" in response.json()["detail"]

    def test_invalid_request_is_400(self, make_client: Callable[..., TestClient]) -> None:
        response = make_client().post("/api/generate", json={"output_dir": ""})
        assert response.status_code == 400
