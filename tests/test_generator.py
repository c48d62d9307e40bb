"""
tests/test_generator.py
Integration tests for scaffoldgen.generator.ScaffoldGenerator and the
template-data builder.

Tests cover:
- End-to-end generation against a real SQLite file
- Backup-on-overwrite across consecutive runs
- Dry-run mode
- Unknown tables, skipped tables and schema-listing failures
- Per-(table, template) failure isolation for syntax, render, path and
  write errors
- Fatal configuration and connection errors
- Introspection payloads
"""

from __future__ import annotations

import pathlib
from typing import Any, Callable, Dict, List

import pytest
import yaml

from scaffoldgen.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    MetadataQueryError,
    TableNotFoundError,
)
from scaffoldgen.generator import (
    TABLE_NOT_FOUND_MESSAGE,
    GenerationReport,
    ScaffoldGenerator,
    build_template_data,
    soft_delete_clauses,
)
from scaffoldgen.models import (
    ArtifactSpec,
    Column,
    ConnectionConfig,
    GenerationRequest,
    Table,
)
from scaffoldgen.scanner import MetadataScanner

GeneratorFactory = Callable[..., ScaffoldGenerator]
RequestFactory = Callable[..., GenerationRequest]


# ===========================================================================
# Helpers
# ===========================================================================


def _by_status(report: GenerationReport) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for result in report.results:
        counts[result.status] = counts.get(result.status, 0) + 1
    return counts


def _load(path: pathlib.Path) -> Dict[str, Any]:
    return yaml.safe_load(path.read_text(encoding="utf-8"))


# ===========================================================================
# Template-data builder
# ===========================================================================


class TestBuildTemplateData:

    def test_users(self, users_table: Table, sample_tables: List[Table]) -> None:
        data = build_template_data(users_table, sample_tables)
        assert data.table_name == "users"
        assert data.entity_name == "user"
        assert data.entity_name_title == "User"
        assert data.entity_name_plural == "users"
        assert data.primary_key == "id"
        assert data.primary_key_type == "int"
        assert data.has_audit_fields is True
        assert data.has_soft_delete is True
        assert data.soft_delete_filter == "activo = true"
        assert data.includes == ()

    def test_relations_only_when_enabled(self, users_table: Table, sample_tables: List[Table]) -> None:
        data = build_template_data(users_table, sample_tables, include_relations=True)
        assert [r.name for r in data.includes] == ["posts", "user_roles", "roles"]

    def test_posts_soft_delete_markers(self, posts_table: Table, sample_tables: List[Table]) -> None:
        data = build_template_data(posts_table, sample_tables, project={"name": "blog"})
        assert data.primary_key_type == "int64"
        assert data.soft_delete_filter == "deleted_at IS NULL"
        assert data.soft_delete_assignments == ("deleted_at = NOW()", "status = 'deleted'")
        assert data.has_audit_fields is False
        assert data.project == {"name": "blog"}

    def test_plain_table(self, roles_table: Table, user_roles_table: Table,
                         sample_tables: List[Table]) -> None:
        roles = build_template_data(roles_table, sample_tables)
        assert roles.has_soft_delete is False
        assert roles.soft_delete_filter is None
        join = build_template_data(user_roles_table, sample_tables)
        assert join.entity_name == "user_role"
        assert join.entity_name_plural == "user_roles"
        assert join.primary_keys == ("user_id", "role_id")
        assert join.primary_key == "user_id"

    @pytest.mark.parametrize(
        "table_name, entity",
        [("courses", "course"), ("houses", "house"), ("licenses", "license"),
         ("purchases", "purchase"), ("sizes", "size"), ("branches", "branch")],
    )
    def test_entity_name_keeps_trailing_e(self, table_name: str, entity: str) -> None:
        table = Table(name=table_name, columns=(Column(name="id", data_type="integer"),),
                      primary_keys=("id",))
        data = build_template_data(table, [table])
        assert data.entity_name == entity
        assert data.entity_name_plural == table_name

    def test_dialect_is_exposed(self, users_table: Table, sample_tables: List[Table]) -> None:
        assert build_template_data(users_table, sample_tables).dialect == "postgres"
        assert build_template_data(users_table, sample_tables, dialect="mysql").dialect == "mysql"

    def test_table_without_primary_key_defaults_to_id(self) -> None:
        table = Table(name="logs", columns=(Column(name="message", data_type="text"),))
        data = build_template_data(table, [table])
        assert data.primary_key == "id"
        assert data.primary_key_type == "int"

    def test_filter_less_marker_only_assigns(self) -> None:
        table = Table(name="notes", columns=(
            Column(name="id", data_type="integer"),
            Column(name="deleted_by", data_type="integer"),
        ))
        assert soft_delete_clauses(table) == (None, ("deleted_by = :user_id",))


# ===========================================================================
# End-to-end against SQLite
# ===========================================================================


class TestGenerateSQLite:

    def test_full_run(self, sqlite_config: ConnectionConfig, make_request: RequestFactory,
                      tmp_path: pathlib.Path) -> None:
        request = make_request(schema_name="main", relations="*")
        report = ScaffoldGenerator().generate(sqlite_config, request)

        assert report.success, report.summary()
        assert report.tables_scanned == 4
        assert report.tables_generated == 4
        assert _by_status(report) == {"ok": 20}
        assert report.total_bytes > 0

        root = tmp_path / "apis"
        assert sorted(p.name for p in (root / "users").iterdir()) == [
            "user_delete.yaml", "user_get.yaml", "user_list.yaml", "user_new.yaml", "user_update.yaml",
        ]
        listing = _load(root / "users" / "user_list.yaml")
        assert [i["relation"] for i in listing["includes"]] == ["posts", "user_roles", "roles"]

        new_user = _load(root / "users" / "user_new.yaml")
        body = {p["name"]: p for p in new_user["params"]["body"]}
        assert body["activo"]["default"] is True
        assert body["username"]["required"] is True

        delete_post = _load(root / "posts" / "post_delete.yaml")
        assert "deleted_at = NOW()" in delete_post["commands"][-1]["sql"]

        assert (tmp_path / "templates" / "entity_new.tpl").is_file()

    def test_second_run_backs_up(self, sqlite_config: ConnectionConfig, make_request: RequestFactory,
                                 tmp_path: pathlib.Path) -> None:
        request = make_request(schema_name="main", tables="roles")
        ScaffoldGenerator().generate(sqlite_config, request)
        report = ScaffoldGenerator().generate(sqlite_config, request)

        assert report.success
        assert all("previous version saved as" in r.message for r in report.results)
        assert len(list((tmp_path / "apis" / "roles").glob("role_new.yaml.*.bak"))) == 1

    def test_relations_scan_whole_schema(self, sqlite_config: ConnectionConfig,
                                         make_request: RequestFactory, tmp_path: pathlib.Path) -> None:
        request = make_request(schema_name="main", tables="users", relations="users")
        report = ScaffoldGenerator().generate(sqlite_config, request)
        assert report.tables_scanned == 4
        assert report.tables_generated == 1
        listing = _load(tmp_path / "apis" / "users" / "user_list.yaml")
        assert "roles" in [i["relation"] for i in listing["includes"]]


# ===========================================================================
# Run modes & partial failures (stub scanner)
# ===========================================================================


class TestGenerate:

    def test_dry_run_writes_nothing(self, make_generator: GeneratorFactory, make_request: RequestFactory,
                                    connection_config: ConnectionConfig, tmp_path: pathlib.Path) -> None:
        report = make_generator().generate(connection_config, make_request(dry_run=True))
        assert _by_status(report) == {"skipped": 20}
        assert report.success
        assert not (tmp_path / "apis").exists()
        assert report.results[0].file.endswith(".yaml")

    def test_file_type_selects_extension(self, make_generator: GeneratorFactory,
                                         make_request: RequestFactory,
                                         connection_config: ConnectionConfig,
                                         tmp_path: pathlib.Path) -> None:
        report = make_generator().generate(connection_config, make_request(tables="roles", file_type="json"))
        assert report.success
        assert (tmp_path / "apis" / "roles" / "role_get.json").is_file()

    def test_unknown_table_is_reported(self, make_generator: GeneratorFactory,
                                       make_request: RequestFactory,
                                       connection_config: ConnectionConfig) -> None:
        report = make_generator().generate(connection_config, make_request(tables="users, ghosts"))
        errors = report.failed
        assert len(errors) == 1
        assert errors[0].table == "ghosts"
        assert errors[0].file == ""
        assert errors[0].message == TABLE_NOT_FOUND_MESSAGE
        assert len(report.written) == 5
        assert not report.success

    def test_failing_table_is_skipped_with_warning(self, make_generator: GeneratorFactory,
                                                   make_request: RequestFactory,
                                                   connection_config: ConnectionConfig) -> None:
        report = make_generator(failing=["posts"]).generate(connection_config, make_request())
        assert report.tables_scanned == 3
        assert report.tables_generated == 3
        assert len(report.warnings) == 1
        assert "posts" in report.warnings[0]
        assert report.success

    def test_schema_listing_failure_is_an_error(self, make_request: RequestFactory,
                                                connection_config: ConnectionConfig) -> None:
        class BrokenListingScanner(MetadataScanner):
            def connect(self, config: ConnectionConfig) -> None:
                return None

            def list_table_names(self, schema: str, table_filter: Any = "*") -> List[str]:
                raise MetadataQueryError(f"listing tables of schema {schema!r} failed: permission denied")

        generator = ScaffoldGenerator(scanner_factory=BrokenListingScanner)
        report = generator.generate(connection_config, make_request(tables="users"))
        assert report.errors == ["listing tables of schema 'public' failed: permission denied"]
        assert report.results == []
        assert report.tables_scanned == 0
        assert not report.success

    def test_template_syntax_error_is_isolated(self, make_generator: GeneratorFactory,
                                              make_request: RequestFactory,
                                              connection_config: ConnectionConfig,
                                              tmp_path: pathlib.Path) -> None:
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "entity_new.tpl").write_text("ok\n{% for %}\n", encoding="utf-8")

        report = make_generator().generate(connection_config, make_request(tables="users,posts"))
        failed = report.failed
        assert [(r.table, r.template) for r in failed] == [("posts", "entity_new"), ("users", "entity_new")]
        assert all("(line 2)" in r.message for r in failed)
        assert len(report.written) == 8
        assert not (tmp_path / "apis" / "users" / "user_new.yaml").exists()
        assert (tmp_path / "apis" / "users" / "user_get.yaml").exists()

    def test_render_error_is_isolated(self, make_generator: GeneratorFactory,
                                      make_request: RequestFactory,
                                      connection_config: ConnectionConfig,
                                      tmp_path: pathlib.Path) -> None:
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "entity_get.tpl").write_text("{{ missing_value }}", encoding="utf-8")

        report = make_generator().generate(connection_config, make_request(tables="roles"))
        assert [r.template for r in report.failed] == ["entity_get"]
        assert report.failed[0].file.endswith("role_get.yaml")
        assert len(report.written) == 4

    def test_write_error_is_isolated(self, make_generator: GeneratorFactory,
                                     make_request: RequestFactory,
                                     connection_config: ConnectionConfig,
                                     tmp_path: pathlib.Path) -> None:
        (tmp_path / "apis" / "roles" / "role_new.yaml").mkdir(parents=True)

        report = make_generator().generate(connection_config, make_request(tables="roles"))
        assert [r.template for r in report.failed] == ["entity_new"]
        assert "not a regular file" in report.failed[0].message
        assert len(report.written) == 4

    def test_escaping_artifact_path_is_rejected(self, make_generator: GeneratorFactory,
                                                make_request: RequestFactory,
                                                connection_config: ConnectionConfig,
                                                tmp_path: pathlib.Path) -> None:
        artifacts = [
            ArtifactSpec(template="entity_get", path="[rootprj]/../[entity].[ext]"),
            ArtifactSpec(template="entity_list"),
        ]
        report = make_generator().generate(
            connection_config, make_request(tables="roles", artifacts=artifacts)
        )
        assert [r.template for r in report.failed] == ["entity_get"]
        assert "escapes root directory" in report.failed[0].message
        assert not (tmp_path / "role.yaml").exists()
        assert len(report.written) == 1

    def test_custom_template_sees_project_values(self, make_generator: GeneratorFactory,
                                                 make_request: RequestFactory,
                                                 connection_config: ConnectionConfig,
                                                 tmp_path: pathlib.Path) -> None:
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "entity_readme.tpl").write_text(
            "{{ project.name }}: {{ entity_name_title }} ({{ fields | length }} fields)\n",
            encoding="utf-8",
        )
        request = make_request(
            tables="posts",
            file_type="md",
            artifacts=[ArtifactSpec(template="entity_readme")],
            project={"name": "blog"},
        )
        report = make_generator().generate(connection_config, request)
        assert report.success
        output = tmp_path / "apis" / "posts" / "post_readme.md"
        assert output.read_text(encoding="utf-8") == "blog: Post (7 fields)\n"

    def test_unsupported_dialect_is_fatal(self, make_generator: GeneratorFactory,
                                          make_request: RequestFactory) -> None:
        config = ConnectionConfig(dialect="oracle", host="h", username="u", database="d")
        with pytest.raises(ConfigurationError):
            make_generator().generate(config, make_request())

    def test_unreachable_backend_is_fatal(self, make_generator: GeneratorFactory,
                                          make_request: RequestFactory,
                                          connection_config: ConnectionConfig,
                                          tmp_path: pathlib.Path) -> None:
        with pytest.raises(DatabaseConnectionError):
            make_generator(unreachable=True).generate(connection_config, make_request())
        assert not (tmp_path / "templates").exists()


# ===========================================================================
# Report
# ===========================================================================


class TestGenerationReport:

    def test_to_dict_and_summary(self, make_generator: GeneratorFactory,
                                 make_request: RequestFactory,
                                 connection_config: ConnectionConfig) -> None:
        report = make_generator().generate(connection_config, make_request(tables="roles,ghosts"))
        payload = report.to_dict()
        assert payload["success"] is False
        assert payload["tables_generated"] == 1
        assert {"file": "", "status": "error", "message": TABLE_NOT_FOUND_MESSAGE} in payload["results"]
        assert all(set(r) == {"file", "status", "message"} for r in payload["results"])

        summary = report.summary()
        assert "Generation Report" in summary
        assert "ghosts" in summary
        assert "Scan schema" in summary


# ===========================================================================
# Introspection
# ===========================================================================


class TestIntrospect:

    def test_selected_tables(self, make_generator: GeneratorFactory,
                             connection_config: ConnectionConfig) -> None:
        payload = make_generator().introspect(connection_config, "public", ["users"])
        assert payload["schema"] == "public"
        assert payload["warnings"] == []
        tables = payload["tables"]
        assert [t["name"] for t in tables] == ["users"]
        email = next(f for f in tables[0]["fields"] if f["name"] == "email")
        assert email["type"] == "string"
        assert email["validation"]["email"] is True
        assert "relations" not in tables[0]

    def test_with_relations(self, make_generator: GeneratorFactory,
                            connection_config: ConnectionConfig) -> None:
        tables = make_generator().introspect(
            connection_config, "public", ["posts"], include_relations=True
        )["tables"]
        assert [r["name"] for r in tables[0]["relations"]] == ["user"]
        assert tables[0]["relations"][0]["predicate"] == "id = :user_id"

    def test_unknown_table(self, make_generator: GeneratorFactory,
                           connection_config: ConnectionConfig) -> None:
        with pytest.raises(TableNotFoundError) as exc_info:
            make_generator().introspect(connection_config, "public", ["ghosts"])
        assert exc_info.value.table == "ghosts"
        assert isinstance(exc_info.value, MetadataQueryError)

    def test_unreadable_table_is_a_warning_not_missing(self, make_generator: GeneratorFactory,
                                                       connection_config: ConnectionConfig) -> None:
        payload = make_generator(failing=["posts"]).introspect(
            connection_config, "public", ["users", "posts"]
        )
        assert [t["name"] for t in payload["tables"]] == ["users"]
        assert len(payload["warnings"]) == 1
        assert "posts" in payload["warnings"][0]
