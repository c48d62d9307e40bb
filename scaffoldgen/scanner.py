# File: scaffoldgen/scanner.py
"""
ScaffoldGen - Metadata Scanner
===============================
Connects to one relational backend through SQLAlchemy and extracts a
read-only snapshot of tables, columns, primary keys and foreign keys.

Two dialect adapters ship with the package:

    PostgresDialect   information_schema + pg_catalog queries, psycopg2
    MySQLDialect      information_schema queries, PyMySQL

Adapters only differ in their metadata SQL and connection URL; the
``Table``/``Column``/``ForeignKey`` values they produce are identical in
shape.  Every metadata query takes the bound parameters ``:schema`` and
``:table`` and returns positional columns, so a new backend is a new
subclass with five SQL strings.

Failure policy:
    - unknown dialect / missing fields -> ConfigurationError, no I/O
    - connect or ping failure          -> DatabaseConnectionError
    - one table's columns/keys failing -> MetadataQueryError(table=...)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import (
    ArgumentError,
    InterfaceError,
    NoSuchModuleError,
    OperationalError,
    SQLAlchemyError,
)

from scaffoldgen.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    MetadataQueryError,
)
from scaffoldgen.models import WILDCARD, Column, ConnectionConfig, ForeignKey, Table
from scaffoldgen.utils import Timer

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.scanner")

TableFilter = Union[str, Iterable[str], None]


# ---------------------------------------------------------------------------
# Dialect adapters
# ---------------------------------------------------------------------------


class DialectAdapter:
    """
    Base class for backend adapters.

    Subclasses provide the SQLAlchemy driver name, a default port and the
    metadata SQL.  ``TABLE_COMMENT_SQL`` is optional.
    """

    name: str = ""
    drivername: str = ""
    default_port: Optional[int] = None

    TABLES_SQL: str = ""
    COLUMNS_SQL: str = ""
    PRIMARY_KEYS_SQL: str = ""
    FOREIGN_KEYS_SQL: str = ""
    TABLE_COMMENT_SQL: Optional[str] = None

    # -----------------------------------------------------------------
    # Connection
    # -----------------------------------------------------------------

    def validate(self, config: ConnectionConfig) -> None:
        """Raise ``ConfigurationError`` for missing required fields."""
        missing: List[str] = [
            label
            for label, value in (
                ("host", config.host),
                ("database", config.database),
                ("username", config.username),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"{self.name} connection is missing required field(s): {', '.join(missing)}"
            )

    def build_url(self, config: ConnectionConfig) -> URL:
        return URL.create(
            drivername=self.drivername,
            username=config.username,
            password=config.password or None,
            host=config.host,
            port=config.port or self.default_port,
            database=config.database,
        )

    def connect_args(self, config: ConnectionConfig) -> Dict[str, Any]:
        return {}

    # -----------------------------------------------------------------
    # Metadata queries
    # -----------------------------------------------------------------

    @staticmethod
    def _params(schema: str, table: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"schema": schema}
        if table is not None:
            params["table"] = table
        return params

    def table_names(self, conn: Connection, schema: str) -> List[str]:
        rows = conn.execute(text(self.TABLES_SQL), self._params(schema))
        return [str(row[0]) for row in rows]

    def columns(self, conn: Connection, schema: str, table: str) -> List[Column]:
        rows = conn.execute(text(self.COLUMNS_SQL), self._params(schema, table))
        return [self._column_from_row(row) for row in rows]

    def primary_keys(self, conn: Connection, schema: str, table: str) -> List[str]:
        rows = conn.execute(text(self.PRIMARY_KEYS_SQL), self._params(schema, table))
        return [str(row[0]) for row in rows]

    def foreign_keys(self, conn: Connection, schema: str, table: str) -> List[ForeignKey]:
        rows = conn.execute(text(self.FOREIGN_KEYS_SQL), self._params(schema, table))
        return [
            ForeignKey(
                column_name=str(row[0]),
                referenced_table=str(row[1]),
                referenced_column=str(row[2]),
                constraint_name=str(row[3] or ""),
            )
            for row in rows
        ]

    def table_comment(self, conn: Connection, schema: str, table: str) -> str:
        if not self.TABLE_COMMENT_SQL:
            return ""
        value = conn.execute(
            text(self.TABLE_COMMENT_SQL), self._params(schema, table)
        ).scalar()
        return str(value or "")

    @staticmethod
    def _column_from_row(row: Sequence[Any]) -> Column:
        """Row layout: name, data_type, is_nullable, default, max_length, comment."""
        max_length: Optional[int] = int(row[4]) if row[4] is not None else None
        return Column(
            name=str(row[0]),
            data_type=str(row[1] or ""),
            is_nullable=str(row[2]).upper() in ("YES", "TRUE", "1"),
            default=None if row[3] is None else str(row[3]),
            max_length=max_length,
            comment=str(row[5] or ""),
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PostgresDialect(DialectAdapter):
    """PostgreSQL via psycopg2."""

    name = "postgres"
    drivername = "postgresql+psycopg2"
    default_port = 5432

    TABLES_SQL = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = :schema AND table_type = 'BASE TABLE'
        ORDER BY table_name
    """

    COLUMNS_SQL = """
        SELECT c.column_name,
               c.data_type,
               c.is_nullable,
               c.column_default,
               c.character_maximum_length,
               pgd.description
        FROM information_schema.columns c
        LEFT JOIN pg_catalog.pg_statio_all_tables st
               ON st.schemaname = c.table_schema AND st.relname = c.table_name
        LEFT JOIN pg_catalog.pg_description pgd
               ON pgd.objoid = st.relid AND pgd.objsubid = c.ordinal_position
        WHERE c.table_schema = :schema AND c.table_name = :table
        ORDER BY c.ordinal_position
    """

    PRIMARY_KEYS_SQL = """
        SELECT a.attname
        FROM pg_index i
        JOIN pg_attribute a
          ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
        WHERE i.indrelid = CAST(quote_ident(:schema) || '.' || quote_ident(:table) AS regclass)
          AND i.indisprimary
        ORDER BY array_position(i.indkey::int2[], a.attnum)
    """

    FOREIGN_KEYS_SQL = """
        SELECT kcu.column_name,
               ccu.table_name AS referenced_table,
               ccu.column_name AS referenced_column,
               tc.constraint_name
        FROM information_schema.table_constraints tc
        JOIN information_schema.key_column_usage kcu
          ON tc.constraint_name = kcu.constraint_name
         AND tc.table_schema = kcu.table_schema
        JOIN information_schema.constraint_column_usage ccu
          ON ccu.constraint_name = tc.constraint_name
         AND ccu.table_schema = tc.table_schema
        WHERE tc.constraint_type = 'FOREIGN KEY'
          AND tc.table_schema = :schema
          AND tc.table_name = :table
        ORDER BY tc.constraint_name, kcu.ordinal_position
    """

    TABLE_COMMENT_SQL = """
        SELECT obj_description(
            CAST(quote_ident(:schema) || '.' || quote_ident(:table) AS regclass),
            'pg_class'
        )
    """

    def build_url(self, config: ConnectionConfig) -> URL:
        return super().build_url(config).update_query_dict({"sslmode": config.ssl_mode})

    def connect_args(self, config: ConnectionConfig) -> Dict[str, Any]:
        return {"options": f"-c timezone={config.timezone}"} if config.timezone else {}


class MySQLDialect(DialectAdapter):
    """MySQL / MariaDB via PyMySQL."""

    name = "mysql"
    drivername = "mysql+pymysql"
    default_port = 3306

    TABLES_SQL = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = :schema AND table_type = 'BASE TABLE'
        ORDER BY table_name
    """

    COLUMNS_SQL = """
        SELECT column_name,
               data_type,
               is_nullable,
               column_default,
               character_maximum_length,
               column_comment
        FROM information_schema.columns
        WHERE table_schema = :schema AND table_name = :table
        ORDER BY ordinal_position
    """

    PRIMARY_KEYS_SQL = """
        SELECT column_name
        FROM information_schema.key_column_usage
        WHERE table_schema = :schema
          AND table_name = :table
          AND constraint_name = 'PRIMARY'
        ORDER BY ordinal_position
    """

    FOREIGN_KEYS_SQL = """
        SELECT column_name,
               referenced_table_name,
               referenced_column_name,
               constraint_name
        FROM information_schema.key_column_usage
        WHERE constraint_schema = :schema
          AND table_name = :table
          AND referenced_table_name IS NOT NULL
        ORDER BY constraint_name, ordinal_position
    """

    TABLE_COMMENT_SQL = """
        SELECT table_comment
        FROM information_schema.tables
        WHERE table_schema = :schema AND table_name = :table
    """

    def build_url(self, config: ConnectionConfig) -> URL:
        return super().build_url(config).update_query_dict({"charset": "utf8mb4"})

    def connect_args(self, config: ConnectionConfig) -> Dict[str, Any]:
        if not config.timezone:
            return {}
        zone: str = "+00:00" if config.timezone.upper() == "UTC" else config.timezone
        return {"init_command": "SET time_zone = '%s'" % zone.replace("'", "")}


DIALECTS: Dict[str, Type[DialectAdapter]] = {
    "postgres": PostgresDialect,
    "postgresql": PostgresDialect,
    "mysql": MySQLDialect,
}


def register_dialect(identifier: str, adapter: Type[DialectAdapter]) -> None:
    """Make *adapter* available under *identifier* (case-insensitive)."""
    DIALECTS[identifier.lower()] = adapter
    logger.debug("Registered dialect %r -> %s.", identifier, adapter.__name__)


def resolve_dialect(identifier: str) -> DialectAdapter:
    """Instantiate the adapter for *identifier* or raise ``ConfigurationError``."""
    adapter_cls: Optional[Type[DialectAdapter]] = DIALECTS.get((identifier or "").strip().lower())
    if adapter_cls is None:
        raise ConfigurationError(
            f"Unsupported database dialect {identifier!r}; "
            f"expected one of: {', '.join(sorted(DIALECTS))}"
        )
    return adapter_cls()


# ---------------------------------------------------------------------------
# Table filter
# ---------------------------------------------------------------------------


def matches_filter(table_name: str, table_filter: TableFilter) -> bool:
    """
    True when *table_name* is selected by *table_filter*.

    ``None``, ``"*"`` or any collection containing ``"*"`` selects every
    table; otherwise names are compared case-insensitively.
    """
    if table_filter is None:
        return True
    names: List[str] = (
        [table_filter] if isinstance(table_filter, str) else list(table_filter)
    )
    wanted = {n.strip().lower() for n in names if n and n.strip()}
    if WILDCARD in wanted:
        return True
    return table_name.lower() in wanted


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class MetadataScanner:
    """
    Owns one SQLAlchemy engine for the duration of a scan.

    Usage::

        with MetadataScanner() as scanner:
            scanner.connect(config)
            tables = scanner.list_tables("public", "*")

    ``warnings`` collects the tables skipped by ``list_tables(skip_failed=True)``.
    """

    def __init__(self) -> None:
        self._engine: Optional[Engine] = None
        self._dialect: Optional[DialectAdapter] = None
        self.warnings: List[str] = []

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._engine is not None

    @property
    def dialect(self) -> Optional[DialectAdapter]:
        return self._dialect

    def connect(self, config: ConnectionConfig) -> Engine:
        """Open and ping the backend described by *config*."""
        dialect: DialectAdapter = resolve_dialect(config.dialect)
        dialect.validate(config)
        url: URL = dialect.build_url(config)

        try:
            engine: Engine = create_engine(
                url,
                pool_pre_ping=True,
                connect_args=dialect.connect_args(config),
            )
        except (ArgumentError, NoSuchModuleError, ImportError) as exc:
            raise ConfigurationError(
                f"Cannot build a {dialect.name} engine: {exc}"
            ) from exc

        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (OperationalError, InterfaceError) as exc:
            engine.dispose()
            raise DatabaseConnectionError(
                f"Could not connect to {dialect.name} database "
                f"{config.database!r} at {config.host}: {exc.orig or exc}"
            ) from exc
        except SQLAlchemyError as exc:
            engine.dispose()
            raise DatabaseConnectionError(f"Database ping failed: {exc}") from exc

        self.disconnect()
        self._engine = engine
        self._dialect = dialect
        logger.info(
            "Connected to %s database %r (%s).",
            dialect.name,
            config.database,
            url.render_as_string(hide_password=True),
        )
        return engine

    def disconnect(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.debug("Disposed %s engine.", self._dialect.name if self._dialect else "?")
        self._engine = None
        self._dialect = None

    def __enter__(self) -> "MetadataScanner":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.disconnect()

    def _require_engine(self) -> Engine:
        if self._engine is None or self._dialect is None:
            raise DatabaseConnectionError("Scanner is not connected; call connect() first.")
        return self._engine

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def list_table_names(self, schema: str, table_filter: TableFilter = WILDCARD) -> List[str]:
        """Base-table names of *schema* selected by *table_filter*, sorted by the backend."""
        engine: Engine = self._require_engine()
        try:
            with engine.connect() as conn:
                names: List[str] = self._dialect.table_names(conn, schema)
        except SQLAlchemyError as exc:
            raise MetadataQueryError(f"listing tables of schema {schema!r} failed: {exc}") from exc
        selected: List[str] = [n for n in names if matches_filter(n, table_filter)]
        logger.info(
            "Schema %r: %d table(s), %d selected.", schema, len(names), len(selected)
        )
        return selected

    def describe_table(self, schema: str, table: str) -> Table:
        """Resolve columns, primary keys and foreign keys of one table, in that order."""
        engine: Engine = self._require_engine()
        try:
            with engine.connect() as conn:
                columns: List[Column] = self._dialect.columns(conn, schema, table)
                primary_keys: List[str] = self._dialect.primary_keys(conn, schema, table)
                foreign_keys: List[ForeignKey] = self._dialect.foreign_keys(conn, schema, table)
                comment: str = self._dialect.table_comment(conn, schema, table)
        except SQLAlchemyError as exc:
            raise MetadataQueryError(str(exc), table=table) from exc

        logger.debug(
            "Scanned %s.%s: %d columns, pk=%s, %d foreign key(s).",
            schema,
            table,
            len(columns),
            primary_keys,
            len(foreign_keys),
        )
        return Table(
            name=table,
            schema_name=schema,
            columns=tuple(columns),
            primary_keys=tuple(primary_keys),
            foreign_keys=tuple(foreign_keys),
            comment=comment,
        )

    def list_tables(
        self,
        schema: str,
        table_filter: TableFilter = WILDCARD,
        *,
        skip_failed: bool = False,
    ) -> List[Table]:
        """
        Scan every selected table of *schema*.

        With ``skip_failed`` a table whose metadata cannot be resolved is
        left out and recorded in ``warnings``; otherwise the
        ``MetadataQueryError`` propagates.
        """
        tables: List[Table] = []
        with Timer(f"scan {schema}"):
            for name in self.list_table_names(schema, table_filter):
                try:
                    tables.append(self.describe_table(schema, name))
                except MetadataQueryError as exc:
                    if not skip_failed:
                        raise
                    self.warnings.append(str(exc))
                    logger.warning("Skipping table %s: %s", name, exc)
        return tables

    def foreign_keys(self, schema: str, table: str) -> List[ForeignKey]:
        """Foreign keys owned by *table*, in scan order."""
        engine: Engine = self._require_engine()
        try:
            with engine.connect() as conn:
                return self._dialect.foreign_keys(conn, schema, table)
        except SQLAlchemyError as exc:
            raise MetadataQueryError(str(exc), table=table) from exc


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DialectAdapter",
    "PostgresDialect",
    "MySQLDialect",
    "DIALECTS",
    "register_dialect",
    "resolve_dialect",
    "matches_filter",
    "MetadataScanner",
]

logger.debug("scaffoldgen.scanner loaded — dialects: %s.", ", ".join(sorted(DIALECTS)))
