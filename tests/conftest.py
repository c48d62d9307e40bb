"""
tests/conftest.py
Shared fixtures for the scaffoldgen test suite.

Two kinds of schema source are provided:

- In-memory ``Table`` snapshots (``users``, ``posts``, ``roles``,
  ``user_roles``) for the pure builders and for a stub scanner.
- A real SQLite database file with the same four tables, scanned through
  ``SQLiteTestDialect``, a test-only adapter registered in
  ``scaffoldgen.scanner.DIALECTS`` exactly like the production adapters.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixtures.
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL

from scaffoldgen.errors import ConfigurationError, DatabaseConnectionError, MetadataQueryError
from scaffoldgen.generator import ScaffoldGenerator
from scaffoldgen.models import Column, ConnectionConfig, ForeignKey, GenerationRequest, Table
from scaffoldgen.scanner import DIALECTS, DialectAdapter, MetadataScanner, matches_filter, resolve_dialect


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_scaffoldgen_logger() -> Iterable[None]:
    """CLI tests reconfigure the package logger; restore it after each test."""
    yield
    root_logger = logging.getLogger("scaffoldgen")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True
    logging.disable(logging.NOTSET)


# ---------------------------------------------------------------------------
# In-memory table snapshots
# ---------------------------------------------------------------------------


def _col(name: str, data_type: str, nullable: bool = True, default: Optional[str] = None,
         max_length: Optional[int] = None, comment: str = "") -> Column:
    return Column(
        name=name,
        data_type=data_type,
        is_nullable=nullable,
        default=default,
        max_length=max_length,
        comment=comment,
    )


@pytest.fixture()
def users_table() -> Table:
    return Table(
        name="users",
        schema_name="public",
        columns=(
            _col("id", "integer", nullable=False, default="nextval('users_id_seq'::regclass)"),
            _col("username", "character varying", nullable=False, max_length=50),
            _col("email", "character varying", nullable=False, max_length=120),
            _col("password", "character varying", nullable=False, max_length=255),
            _col("activo", "boolean", nullable=False, default="true"),
            _col("created_at", "timestamp without time zone", default="now()"),
            _col("updated_at", "timestamp without time zone"),
        ),
        primary_keys=("id",),
        comment="Application accounts",
    )


@pytest.fixture()
def posts_table() -> Table:
    return Table(
        name="posts",
        schema_name="public",
        columns=(
            _col("id", "bigint", nullable=False, default="nextval('posts_id_seq'::regclass)"),
            _col("user_id", "integer", nullable=False),
            _col("title", "character varying", nullable=False, max_length=200, comment="Headline"),
            _col("body", "text"),
            _col("views", "integer", nullable=False, default="0"),
            _col("status", "character varying", default="'draft'::character varying", max_length=20),
            _col("deleted_at", "timestamp without time zone"),
        ),
        primary_keys=("id",),
        foreign_keys=(ForeignKey(column_name="user_id", referenced_table="users",
                                 referenced_column="id", constraint_name="posts_user_id_fkey"),),
    )


@pytest.fixture()
def roles_table() -> Table:
    return Table(
        name="roles",
        schema_name="public",
        columns=(
            _col("id", "integer", nullable=False),
            _col("name", "character varying", nullable=False, max_length=50),
        ),
        primary_keys=("id",),
    )


@pytest.fixture()
def user_roles_table() -> Table:
    return Table(
        name="user_roles",
        schema_name="public",
        columns=(
            _col("user_id", "integer", nullable=False),
            _col("role_id", "integer", nullable=False),
        ),
        primary_keys=("user_id", "role_id"),
        foreign_keys=(
            ForeignKey(column_name="user_id", referenced_table="users",
                       referenced_column="id", constraint_name="user_roles_user_id_fkey"),
            ForeignKey(column_name="role_id", referenced_table="roles",
                       referenced_column="id", constraint_name="user_roles_role_id_fkey"),
        ),
    )


@pytest.fixture()
def sample_tables(users_table: Table, posts_table: Table, roles_table: Table,
                  user_roles_table: Table) -> List[Table]:
    """The four sample tables in backend (alphabetical) order."""
    return [posts_table, roles_table, user_roles_table, users_table]


# ---------------------------------------------------------------------------
# Stub scanner
# ---------------------------------------------------------------------------


class InMemoryScanner(MetadataScanner):
    """
    ``MetadataScanner`` over a fixed table list.

    ``failing`` tables raise ``MetadataQueryError`` from ``describe_table``;
    ``unreachable`` makes ``connect`` raise ``DatabaseConnectionError``.
    """

    def __init__(self, tables: Sequence[Table], failing: Iterable[str] = (),
                 unreachable: bool = False) -> None:
        super().__init__()
        self._tables: Dict[str, Table] = {t.name: t for t in tables}
        self._failing = set(failing)
        self._unreachable = unreachable
        self.connected_with: Optional[ConnectionConfig] = None

    def connect(self, config: ConnectionConfig) -> Any:
        resolve_dialect(config.dialect).validate(config)
        if self._unreachable:
            raise DatabaseConnectionError(f"Could not connect to {config.host}")
        self.connected_with = config
        return None

    def list_table_names(self, schema: str, table_filter: Any = "*") -> List[str]:
        return [name for name in self._tables if matches_filter(name, table_filter)]

    def describe_table(self, schema: str, table: str) -> Table:
        if table in self._failing:
            raise MetadataQueryError("permission denied for relation", table=table)
        return self._tables[table]


@pytest.fixture()
def connection_config() -> ConnectionConfig:
    return ConnectionConfig(host="db.local", username="app", password="secret", database="shop")


@pytest.fixture()
def make_generator(sample_tables: List[Table]) -> Callable[..., ScaffoldGenerator]:
    """Factory: a ScaffoldGenerator whose scans are served from ``sample_tables``."""

    def _make(tables: Optional[Sequence[Table]] = None, **scanner_kwargs: Any) -> ScaffoldGenerator:
        source: Sequence[Table] = sample_tables if tables is None else tables
        return ScaffoldGenerator(scanner_factory=lambda: InMemoryScanner(source, **scanner_kwargs))

    return _make


@pytest.fixture()
def make_request(tmp_path: pathlib.Path) -> Callable[..., GenerationRequest]:
    """Factory: a GenerationRequest rooted in tmp_path."""

    def _make(**overrides: Any) -> GenerationRequest:
        values: Dict[str, Any] = {
            "output_dir": str(tmp_path / "apis"),
            "templates_dir": str(tmp_path / "templates"),
        }
        values.update(overrides)
        return GenerationRequest(**values)

    return _make


# ---------------------------------------------------------------------------
# SQLite test dialect
# ---------------------------------------------------------------------------


class SQLiteTestDialect(DialectAdapter):
    """
    Test-only adapter over a SQLite file.

    SQLite has no schemas; ``:schema`` is still bound in every query so the
    parameter set matches the production adapters.
    """

    name = "sqlite"
    drivername = "sqlite"

    TABLES_SQL = """
        SELECT name FROM sqlite_master
        WHERE type = 'table' AND name NOT LIKE 'sqlite_%' AND :schema IS NOT NULL
        ORDER BY name
    """

    COLUMNS_SQL = """
        SELECT name,
               type,
               CASE WHEN "notnull" = 1 THEN 'NO' ELSE 'YES' END,
               dflt_value,
               NULL,
               ''
        FROM pragma_table_info(:table)
        WHERE :schema IS NOT NULL
        ORDER BY cid
    """

    PRIMARY_KEYS_SQL = """
        SELECT name FROM pragma_table_info(:table)
        WHERE pk > 0 AND :schema IS NOT NULL
        ORDER BY pk
    """

    FOREIGN_KEYS_SQL = """
        SELECT "from", "table", "to", 'fk_' || :table || '_' || id
        FROM pragma_foreign_key_list(:table)
        WHERE :schema IS NOT NULL
        ORDER BY id, seq
    """

    def validate(self, config: ConnectionConfig) -> None:
        if not config.database:
            raise ConfigurationError("sqlite connection is missing required field(s): database")

    def build_url(self, config: ConnectionConfig) -> URL:
        return URL.create(drivername=self.drivername, database=config.database)


SQLITE_DDL: List[str] = [
    """
    CREATE TABLE users (
        id INTEGER PRIMARY KEY,
        username VARCHAR(50) NOT NULL,
        email VARCHAR(120) NOT NULL,
        password VARCHAR(255) NOT NULL,
        activo BOOLEAN NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE posts (
        id INTEGER PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        title VARCHAR(200) NOT NULL,
        body TEXT,
        status VARCHAR(20) DEFAULT 'draft',
        deleted_at TIMESTAMP
    )
    """,
    """
    CREATE TABLE roles (
        id INTEGER PRIMARY KEY,
        name VARCHAR(50) NOT NULL
    )
    """,
    """
    CREATE TABLE user_roles (
        user_id INTEGER NOT NULL REFERENCES users(id),
        role_id INTEGER NOT NULL REFERENCES roles(id),
        PRIMARY KEY (user_id, role_id)
    )
    """,
]


@pytest.fixture()
def sqlite_dialect(monkeypatch: pytest.MonkeyPatch) -> type:
    """Register ``sqlite`` in the dialect registry for the duration of one test."""
    monkeypatch.setitem(DIALECTS, "sqlite", SQLiteTestDialect)
    return SQLiteTestDialect


@pytest.fixture()
def sqlite_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """A SQLite file holding the four sample tables."""
    path = tmp_path / "shop.db"
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        for statement in SQLITE_DDL:
            conn.execute(text(statement))
    engine.dispose()
    return path


@pytest.fixture()
def sqlite_config(sqlite_dialect: type, sqlite_path: pathlib.Path) -> ConnectionConfig:
    return ConnectionConfig(dialect="sqlite", database=str(sqlite_path))
