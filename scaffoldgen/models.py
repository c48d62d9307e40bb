# File: scaffoldgen/models.py
"""
ScaffoldGen - Core Data Models
===============================
Pydantic V2 models for every value that flows through a generation run:

    Scan snapshot     Column, ForeignKey, Table
    Derived views     FieldDescriptor, RelationDescriptor, TemplateData
    Run inputs        ConnectionConfig, ArtifactSpec, GenerationRequest
    Run outputs       ArtifactResult

Snapshot and derived models are frozen: the scanned table set is built
once per run and shared read-only between the field builder, the relation
inferencer and the template engine.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.models")

# Table / relation selector meaning "everything"
WILDCARD: str = "*"

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class LogicalType(str, Enum):
    """Logical field types exposed to templates."""

    STRING = "string"
    INT = "int"
    INT64 = "int64"
    BOOL = "bool"
    FLOAT = "float"
    OBJECT = "object"


class Cardinality(str, Enum):
    """Shape of a relation's payload."""

    OBJECT = "object"
    ARRAY = "array"


class RelationKind(str, Enum):
    """How a relation was discovered."""

    BELONGS_TO = "belongs_to"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"


class ArtifactStatus(str, Enum):
    """Outcome of one (table, template) pair."""

    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    frozen=True,
    populate_by_name=True,
    use_enum_values=True,
    extra="forbid",
)

_INPUT_CONFIG: ConfigDict = ConfigDict(
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Scan snapshot
# ---------------------------------------------------------------------------


class Column(BaseModel):
    """One physical column as reported by the backend."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Column name.")
    data_type: str = Field(..., description="Raw data-type string, e.g. 'character varying'.")
    is_nullable: bool = Field(default=True, description="Whether NULL is allowed.")
    default: Optional[str] = Field(default=None, description="Raw default literal or expression.")
    max_length: Optional[int] = Field(default=None, description="Declared maximum length.")
    comment: str = Field(default="", description="Free-text column comment.")

    def __repr__(self) -> str:
        return f"<Column {self.name} {self.data_type}>"


class ForeignKey(BaseModel):
    """Directional edge ``owner.column_name -> referenced_table.referenced_column``."""

    model_config = _FROZEN_CONFIG

    column_name: str = Field(..., min_length=1)
    referenced_table: str = Field(..., min_length=1)
    referenced_column: str = Field(..., min_length=1)
    constraint_name: str = Field(default="")


class Table(BaseModel):
    """A base table with its columns and keys, immutable once scanned."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Table name as stored by the backend.")
    schema_name: str = Field(default="", description="Owning schema / database.")
    columns: Tuple[Column, ...] = Field(default=(), description="Columns in physical order.")
    primary_keys: Tuple[str, ...] = Field(default=(), description="Primary-key column names.")
    foreign_keys: Tuple[ForeignKey, ...] = Field(default=(), description="Foreign keys in scan order.")
    comment: str = Field(default="")

    def column(self, name: str) -> Optional[Column]:
        """Look up a column by name (case-insensitive)."""
        wanted: str = name.lower()
        for col in self.columns:
            if col.name.lower() == wanted:
                return col
        return None

    def has_column(self, name: str) -> bool:
        return self.column(name) is not None

    def is_primary_key(self, column_name: str) -> bool:
        wanted: str = column_name.lower()
        return any(pk.lower() == wanted for pk in self.primary_keys)

    def foreign_key_for(self, column_name: str) -> Optional[ForeignKey]:
        wanted: str = column_name.lower()
        for fk in self.foreign_keys:
            if fk.column_name.lower() == wanted:
                return fk
        return None

    def __repr__(self) -> str:
        return f"<Table {self.schema_name}.{self.name} ({len(self.columns)} columns)>"


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class FieldDescriptor(BaseModel):
    """Typed, validated view of one column, used as template input."""

    model_config = _FROZEN_CONFIG

    name: str
    name_snake: str
    name_camel: str
    name_pascal: str
    type: LogicalType
    db_type: str
    is_required: bool = False
    is_primary_key: bool = False
    is_foreign_key: bool = False
    validation: Dict[str, Any] = Field(default_factory=dict)
    default: Any = None
    max_length: Optional[int] = None
    comment: str = ""


class RelationDescriptor(BaseModel):
    """
    One inferred association of the table under inspection.

    ``local_column`` is bound as a named parameter in the predicate,
    ``referenced_column`` lives in ``referenced_table`` (or, for
    many-to-many, in ``through_table``).
    """

    model_config = _FROZEN_CONFIG

    name: str
    kind: RelationKind
    cardinality: Cardinality
    referenced_table: str
    local_column: str
    referenced_column: str
    through_table: Optional[str] = None
    through_column: Optional[str] = None
    target_key: str = "id"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def predicate(self) -> str:
        """Join predicate, e.g. ``user_id = :id``."""
        if self.through_table:
            return f"jt.{self.referenced_column} = :{self.local_column}"
        return f"{self.referenced_column} = :{self.local_column}"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def query(self) -> str:
        """Complete SELECT statement a template can embed."""
        if self.through_table:
            return (
                f"SELECT t.* FROM {self.referenced_table} t "
                f"JOIN {self.through_table} jt ON t.{self.target_key} = jt.{self.through_column} "
                f"WHERE {self.predicate}"
            )
        return f"SELECT * FROM {self.referenced_table} WHERE {self.predicate}"


class TemplateData(BaseModel):
    """Read-only data model handed to every template render."""

    model_config = _FROZEN_CONFIG

    table_name: str
    table_name_lower: str
    entity_name: str
    entity_name_title: str
    entity_name_lower: str
    entity_name_plural: str
    schema_name: str
    dialect: str = "postgres"
    table_comment: str = ""
    fields: Tuple[FieldDescriptor, ...] = ()
    primary_keys: Tuple[str, ...] = ()
    primary_key: str = "id"
    primary_key_type: str = "int"
    foreign_keys: Tuple[ForeignKey, ...] = ()
    has_audit_fields: bool = False
    has_soft_delete: bool = False
    soft_delete_filter: Optional[str] = None
    soft_delete_assignments: Tuple[str, ...] = ()
    includes: Tuple[RelationDescriptor, ...] = ()
    project: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Run inputs
# ---------------------------------------------------------------------------


class ConnectionConfig(BaseModel):
    """Resolved connection descriptor for one backend."""

    model_config = _INPUT_CONFIG

    dialect: str = Field(default="postgres", description="'postgres', 'postgresql' or 'mysql'.")
    host: str = Field(default="localhost")
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    username: str = Field(default="")
    password: str = Field(default="", repr=False)
    database: str = Field(default="")
    ssl_mode: str = Field(default="disable")
    timezone: str = Field(default="UTC")


class ArtifactSpec(BaseModel):
    """A template to render per table, and where its output goes."""

    model_config = _INPUT_CONFIG

    template: str = Field(..., min_length=1, description="Template base name, e.g. 'entity_new'.")
    path: Optional[str] = Field(
        default=None,
        description="Output path template using [rootprj], [table], [entity] and [ext].",
    )

    def path_template(self) -> str:
        """The explicit path template, or the default derived from the template name."""
        if self.path:
            return self.path
        if self.template.startswith("entity"):
            stem: str = "[entity]" + self.template[len("entity"):]
        else:
            stem = f"[entity]_{self.template}"
        return f"[rootprj]/[table]/{stem}.[ext]"


DEFAULT_ARTIFACTS: Tuple[str, ...] = (
    "entity_new",
    "entity_update",
    "entity_delete",
    "entity_list",
    "entity_get",
)

_FILE_TYPE_EXTENSIONS: Dict[str, str] = {
    "yaml": "yaml",
    "yml": "yaml",
    "json": "json",
    "api": "api",
}


class GenerationRequest(BaseModel):
    """What to generate and where."""

    model_config = _INPUT_CONFIG

    schema_name: str = Field(default="public", min_length=1)
    tables: List[str] = Field(default_factory=lambda: [WILDCARD])
    relations: List[str] = Field(default_factory=list)
    output_dir: str = Field(default="./apis/", min_length=1)
    file_type: str = Field(default="yaml", min_length=1)
    templates_dir: str = Field(default="templates", min_length=1)
    artifacts: List[ArtifactSpec] = Field(
        default_factory=lambda: [ArtifactSpec(template=name) for name in DEFAULT_ARTIFACTS],
    )
    dry_run: bool = False
    project: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("tables", "relations", mode="before")
    @classmethod
    def _split_selection(cls, v: Any) -> Any:
        """Accept "a, b" as well as ["a", "b"]."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def extension(self) -> str:
        """File extension (without the dot) for the configured file type."""
        kind: str = self.file_type.strip().lstrip(".").lower()
        return _FILE_TYPE_EXTENSIONS.get(kind, kind)

    def selects_all_tables(self) -> bool:
        return WILDCARD in self.tables


# ---------------------------------------------------------------------------
# Run outputs
# ---------------------------------------------------------------------------


class ArtifactResult(BaseModel):
    """Outcome of rendering one template for one table."""

    model_config = _FROZEN_CONFIG

    file: str
    table: str
    template: str = ""
    status: ArtifactStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ArtifactStatus.OK.value

    def to_report(self) -> Dict[str, str]:
        """Public ``{file, status, message}`` shape."""
        return {"file": self.file, "status": self.status, "message": self.message}


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "WILDCARD",
    "DEFAULT_ARTIFACTS",
    "LogicalType",
    "Cardinality",
    "RelationKind",
    "ArtifactStatus",
    "Column",
    "ForeignKey",
    "Table",
    "FieldDescriptor",
    "RelationDescriptor",
    "TemplateData",
    "ConnectionConfig",
    "ArtifactSpec",
    "GenerationRequest",
    "ArtifactResult",
]

logger.debug("scaffoldgen.models loaded.")
