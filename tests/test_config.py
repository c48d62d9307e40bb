"""
tests/test_config.py
Unit tests for scaffoldgen.config: environment and .env loading.
"""

from __future__ import annotations

import pathlib

import pytest

from scaffoldgen.config import Settings, load_settings
from scaffoldgen.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
    """Run from an empty directory with no scaffoldgen keys in the environment."""
    for key in Settings.model_fields:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoadSettings:

    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings.DB_DRIVER == "postgres"
        assert settings.DB_PORT == 5432
        assert settings.PROJECT_SCHEMA == "public"
        assert settings.table_list == ["*"]
        assert settings.relation_list == []
        assert settings.API_PORT == 8000

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_DRIVER", "mysql")
        monkeypatch.setenv("DB_PORT", "3307")
        monkeypatch.setenv("PROJECT_TABLES", "users, posts")
        monkeypatch.setenv("PROJECT_RELATIONS", "*")
        settings = load_settings()
        assert settings.DB_DRIVER == "mysql"
        assert settings.DB_PORT == 3307
        assert settings.table_list == ["users", "posts"]
        assert settings.relation_list == ["*"]

    def test_env_file(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / "prod.env"
        env_file.write_text(
            "DB_HOST=db.internal\nDB_NAME=shop\nPROJECT_DIR=/srv/apis\nUNRELATED=1\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("DB_NAME", "from_env")
        settings = load_settings(env_file)
        assert settings.DB_HOST == "db.internal"
        assert settings.PROJECT_DIR == "/srv/apis"
        # Real environment variables win over the file.
        assert settings.DB_NAME == "from_env"

    def test_dotenv_in_working_directory(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / ".env").write_text("DB_USERNAME=app\n", encoding="utf-8")
        assert load_settings().DB_USERNAME == "app"

    def test_missing_env_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "nope.env")

    def test_invalid_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not-a-port")
        with pytest.raises(ConfigurationError):
            load_settings()


class TestDerivedModels:

    def test_connection_config(self) -> None:
        settings = load_settings(DB_HOST="db", DB_USERNAME="app", DB_PASSWORD="pw", DB_NAME="shop")
        config = settings.connection_config()
        assert config.dialect == "postgres"
        assert (config.host, config.port, config.database) == ("db", 5432, "shop")
        assert "pw" not in repr(config)

    def test_out_of_range_port(self) -> None:
        settings = load_settings(DB_PORT=70000)
        with pytest.raises(ConfigurationError):
            settings.connection_config()

    def test_generation_request_overrides(self) -> None:
        settings = load_settings(PROJECT_TABLES="users", PROJECT_FILE_TYPES="yml")
        request = settings.generation_request(tables="users,posts", relations=None, dry_run=True)
        assert request.tables == ["users", "posts"]
        assert request.relations == []
        assert request.extension == "yaml"
        assert request.dry_run is True

    def test_generation_request_validation(self) -> None:
        settings = load_settings()
        with pytest.raises(ConfigurationError):
            settings.generation_request(output_dir="")
