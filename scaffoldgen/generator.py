# File: scaffoldgen/generator.py
"""
ScaffoldGen - Generation Pipeline (Orchestrator)
=================================================

Connects every phase of one run together:

    Scan → Field descriptors + Relations → TemplateData → Render → Write

Workflow::

    1. Connect to the backend (configuration and connection errors are
       fatal and propagate to the caller).
    2. Scan the schema once.  When relation inclusion is enabled for any
       table the whole schema is scanned, since the relation inferencer
       needs every table; otherwise only the selected tables.
    3. Disconnect.  Everything after this point works on the immutable
       snapshot.
    4. For each selected table build ``TemplateData``; for each artifact
       resolve its output path, compile (cached per run), render and write.
    5. Return a ``GenerationReport`` with one ``ArtifactResult`` per
       (table, template) pair.

Error handling strategy:
    - One table whose metadata cannot be resolved is skipped with a warning.
    - One (table, template) pair failing to compile, render or write is
      recorded as an ``error`` result; its siblings continue.
    - Nothing already written is rolled back.

Complexity: O(T × (C + A) + T × F) where T = tables, C = columns,
A = artifacts per table, F = foreign keys per table.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from scaffoldgen.errors import (
    ArtifactWriteError,
    MetadataQueryError,
    TableNotFoundError,
    TemplateError,
)
from scaffoldgen.exporters import ArtifactWriter, WriteResult, resolve_output_path
from scaffoldgen.fields import build_fields
from scaffoldgen.models import (
    WILDCARD,
    ArtifactResult,
    ArtifactSpec,
    ArtifactStatus,
    ConnectionConfig,
    FieldDescriptor,
    GenerationRequest,
    LogicalType,
    Table,
    TemplateData,
)
from scaffoldgen.relations import includes_relations, infer_relations
from scaffoldgen.scanner import MetadataScanner, TableFilter, matches_filter, resolve_dialect
from scaffoldgen.templates import CompiledTemplate, TemplateEngine, TemplateStore
from scaffoldgen.utils import Timer, plural_name, singularize, title_first

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.generator")

TABLE_NOT_FOUND_MESSAGE: str = "table not found in database"


# ---------------------------------------------------------------------------
# Audit & soft-delete markers
# ---------------------------------------------------------------------------

AUDIT_FIELDS: Tuple[str, ...] = ("created_at", "created_by", "updated_at", "updated_by")


@dataclass(frozen=True, slots=True)
class SoftDeleteMarker:
    """A column that marks a row as logically deleted."""

    column: str
    read_filter: Optional[str]
    assignment: str


# Priority order: the first present marker with a filter supplies the read filter.
SOFT_DELETE_MARKERS: Tuple[SoftDeleteMarker, ...] = (
    SoftDeleteMarker("deleted_at", "deleted_at IS NULL", "deleted_at = NOW()"),
    SoftDeleteMarker("activo", "activo = true", "activo = false"),
    SoftDeleteMarker("is_active", "is_active = true", "is_active = false"),
    SoftDeleteMarker("deleted", "deleted = false", "deleted = true"),
    SoftDeleteMarker("status", "status <> 'deleted'", "status = 'deleted'"),
    SoftDeleteMarker("deleted_by", None, "deleted_by = :user_id"),
)


def soft_delete_clauses(table: Table) -> Tuple[Optional[str], Tuple[str, ...]]:
    """Return ``(read_filter, assignments)`` for the markers present on *table*."""
    present: List[SoftDeleteMarker] = [m for m in SOFT_DELETE_MARKERS if table.has_column(m.column)]
    read_filter: Optional[str] = next((m.read_filter for m in present if m.read_filter), None)
    return read_filter, tuple(m.assignment for m in present)


# ---------------------------------------------------------------------------
# Data-model builder
# ---------------------------------------------------------------------------


def build_template_data(
    table: Table,
    all_tables: Sequence[Table],
    include_relations: bool = False,
    project: Optional[Dict[str, Any]] = None,
    dialect: str = "postgres",
) -> TemplateData:
    """
    Assemble the read-only data model handed to every template for *table*.

    *dialect* is the canonical adapter name (``postgres`` or ``mysql``) so
    templates can emit backend-specific SQL.
    """
    fields: Tuple[FieldDescriptor, ...] = build_fields(table)
    entity: str = singularize(table.name.lower())
    primary_key: str = table.primary_keys[0] if table.primary_keys else "id"
    pk_field: Optional[FieldDescriptor] = next(
        (f for f in fields if f.name == primary_key), None
    )
    read_filter, assignments = soft_delete_clauses(table)

    return TemplateData(
        table_name=table.name,
        table_name_lower=table.name.lower(),
        entity_name=entity,
        entity_name_title=title_first(entity),
        entity_name_lower=entity.lower(),
        entity_name_plural=plural_name(entity),
        schema_name=table.schema_name,
        dialect=dialect,
        table_comment=table.comment,
        fields=fields,
        primary_keys=table.primary_keys,
        primary_key=primary_key,
        primary_key_type=pk_field.type if pk_field is not None else LogicalType.INT.value,
        foreign_keys=table.foreign_keys,
        has_audit_fields=any(table.has_column(name) for name in AUDIT_FIELDS),
        has_soft_delete=bool(assignments),
        soft_delete_filter=read_filter,
        soft_delete_assignments=assignments,
        includes=tuple(infer_relations(table, all_tables)) if include_relations else (),
        project=dict(project or {}),
    )


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Outcome of ``ScaffoldGenerator.generate()``.

    ``results`` holds one entry per (table, template) pair plus one
    ``error`` entry per explicitly requested table that does not exist.
    """

    schema_name: str = ""
    output_directory: str = ""
    dry_run: bool = False

    tables_scanned: int = 0
    tables_generated: int = 0
    total_bytes: int = 0
    total_elapsed_seconds: float = 0.0

    results: List[ArtifactResult] = field(default_factory=list)
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def written(self) -> List[ArtifactResult]:
        return [r for r in self.results if r.status == ArtifactStatus.OK.value]

    @property
    def skipped(self) -> List[ArtifactResult]:
        return [r for r in self.results if r.status == ArtifactStatus.SKIPPED.value]

    @property
    def failed(self) -> List[ArtifactResult]:
        return [r for r in self.results if r.status == ArtifactStatus.ERROR.value]

    @property
    def success(self) -> bool:
        return not self.errors and not self.failed

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serialisable view used by the HTTP surface."""
        return {
            "success": self.success,
            "schema": self.schema_name,
            "output_directory": self.output_directory,
            "dry_run": self.dry_run,
            "tables_scanned": self.tables_scanned,
            "tables_generated": self.tables_generated,
            "elapsed_seconds": round(self.total_elapsed_seconds, 4),
            "results": [r.to_report() for r in self.results],
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  ScaffoldGen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}{'  (dry run)' if self.dry_run else ''}")
        lines.append(f"  Schema:           {self.schema_name}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Tables scanned:   {self.tables_scanned}")
        lines.append(f"  Tables generated: {self.tables_generated}")
        lines.append(f"  Files written:    {len(self.written)}")
        lines.append(f"  Files skipped:    {len(self.skipped)}")
        lines.append(f"  Failures:         {len(self.failed)}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.failed:
            lines.append(f"{'─'*60}")
            lines.append(f"  Failed Artifacts ({len(self.failed)}):")
            for result in self.failed:
                lines.append(f"    ✗ {result.table}/{result.template or '-'}: {result.message}")

        if self.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        if self.warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ⚠ {warn}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class ScaffoldGenerator:
    """
    Run orchestrator.

    Usage::

        generator = ScaffoldGenerator()
        report = generator.generate(connection, GenerationRequest(tables="users,posts"))
        print(report.summary())

    A fresh ``MetadataScanner`` is created per run through
    *scanner_factory*; the engine and writer are stateless and shared.
    """

    def __init__(
        self,
        scanner_factory: Optional[Callable[[], MetadataScanner]] = None,
        engine: Optional[TemplateEngine] = None,
        writer: Optional[ArtifactWriter] = None,
    ) -> None:
        self._scanner_factory: Callable[[], MetadataScanner] = scanner_factory or MetadataScanner
        self._engine: TemplateEngine = engine or TemplateEngine()
        self._writer: ArtifactWriter = writer or ArtifactWriter()

    # -----------------------------------------------------------------
    # Public: generate
    # -----------------------------------------------------------------

    def generate(self, connection: ConnectionConfig, request: GenerationRequest) -> GenerationReport:
        """
        Full pipeline: connect → scan → disconnect → render → write.

        Raises:
            ConfigurationError: unsupported dialect or missing connection fields.
            DatabaseConnectionError: the backend cannot be opened or pinged.
        """
        report: GenerationReport = GenerationReport(
            schema_name=request.schema_name,
            output_directory=str(Path(request.output_dir).resolve()),
            dry_run=request.dry_run,
        )
        pipeline_start: float = time.perf_counter()

        tables, listed = self._step_scan(connection, request, report)
        selected: List[Table] = [t for t in tables if matches_filter(t.name, request.tables)]
        self._report_unknown_tables(request, listed, report)
        self._step_render(tables, selected, request, report, resolve_dialect(connection.dialect).name)

        report.total_elapsed_seconds = time.perf_counter() - pipeline_start
        logger.info(
            "Generation finished: %d written, %d skipped, %d failed in %.3fs.",
            len(report.written),
            len(report.skipped),
            len(report.failed),
            report.total_elapsed_seconds,
        )
        return report

    # -----------------------------------------------------------------
    # Public: introspect
    # -----------------------------------------------------------------

    def introspect(
        self,
        connection: ConnectionConfig,
        schema_name: str = "public",
        tables: TableFilter = WILDCARD,
        *,
        include_relations: bool = False,
    ) -> Dict[str, Any]:
        """
        Scan *schema_name* and return the selected tables with their derived
        field descriptors (and relations, on request) as plain dicts::

            {"schema": ..., "tables": [...], "warnings": [...]}

        A table whose metadata cannot be read is left out and reported under
        ``warnings``, the same way ``generate`` skips it.

        Raises:
            TableNotFoundError: an explicitly named table is not in the schema.
        """
        scanned: List[Table] = []
        warnings: List[str] = []
        scanner: MetadataScanner = self._scanner_factory()
        with scanner:
            scanner.connect(connection)
            scope: TableFilter = WILDCARD if include_relations else tables
            listed: List[str] = scanner.list_table_names(schema_name, scope)

            requested: List[str] = [tables] if isinstance(tables, str) else list(tables or [WILDCARD])
            known = {name.lower() for name in listed}
            for name in requested:
                if name != WILDCARD and name.lower() not in known:
                    raise TableNotFoundError(TABLE_NOT_FOUND_MESSAGE, table=name)

            for name in listed:
                try:
                    scanned.append(scanner.describe_table(schema_name, name))
                except MetadataQueryError as exc:
                    warnings.append(str(exc))
                    logger.warning("Skipping table %s: %s", name, exc)

        payload: List[Dict[str, Any]] = []
        for table in scanned:
            if not matches_filter(table.name, tables):
                continue
            entry: Dict[str, Any] = {
                "name": table.name,
                "schema": table.schema_name,
                "comment": table.comment,
                "primary_keys": list(table.primary_keys),
                "foreign_keys": [fk.model_dump() for fk in table.foreign_keys],
                "fields": [f.model_dump() for f in build_fields(table)],
            }
            if include_relations:
                entry["relations"] = [r.model_dump() for r in infer_relations(table, scanned)]
            payload.append(entry)
        return {"schema": schema_name, "tables": payload, "warnings": warnings}

    # -----------------------------------------------------------------
    # Pipeline step: scan
    # -----------------------------------------------------------------

    def _step_scan(
        self,
        connection: ConnectionConfig,
        request: GenerationRequest,
        report: GenerationReport,
    ) -> Tuple[List[Table], List[str]]:
        """Return the scanned snapshot and the names the backend listed."""
        scope: TableFilter = WILDCARD if request.relations else request.tables
        tables: List[Table] = []
        listed: List[str] = []

        scanner: MetadataScanner = self._scanner_factory()
        with Timer("scan") as t:
            with scanner:
                scanner.connect(connection)
                try:
                    listed = scanner.list_table_names(request.schema_name, scope)
                except MetadataQueryError as exc:
                    report.errors.append(str(exc))
                    logger.error("Cannot list tables of %s: %s", request.schema_name, exc)
                for name in listed:
                    try:
                        tables.append(scanner.describe_table(request.schema_name, name))
                    except MetadataQueryError as exc:
                        report.warnings.append(str(exc))
                        logger.warning("Skipping table %s: %s", name, exc)

        report.tables_scanned = len(tables)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Scan schema",
            success=not report.errors,
            elapsed_seconds=t.elapsed,
            detail=f"{len(tables)} table(s), {len(report.warnings)} skipped",
        ))
        return tables, listed

    def _report_unknown_tables(
        self,
        request: GenerationRequest,
        listed: Sequence[str],
        report: GenerationReport,
    ) -> None:
        if request.selects_all_tables() or report.errors:
            return
        known = {name.lower() for name in listed}
        for name in request.tables:
            if name.lower() in known:
                continue
            logger.error("Requested table %s not found in schema %s.", name, request.schema_name)
            report.results.append(ArtifactResult(
                file="",
                table=name,
                status=ArtifactStatus.ERROR,
                message=TABLE_NOT_FOUND_MESSAGE,
            ))

    # -----------------------------------------------------------------
    # Pipeline step: render & write
    # -----------------------------------------------------------------

    def _step_render(
        self,
        all_tables: Sequence[Table],
        selected: Sequence[Table],
        request: GenerationRequest,
        report: GenerationReport,
        dialect: str,
    ) -> None:
        store: TemplateStore = TemplateStore(request.templates_dir)
        compiled: Dict[str, Union[CompiledTemplate, TemplateError]] = {}
        root: Path = Path(request.output_dir)

        with Timer("render") as t:
            for table in selected:
                data: TemplateData = build_template_data(
                    table,
                    all_tables,
                    include_relations=includes_relations(table.name, request.relations),
                    project=request.project,
                    dialect=dialect,
                )
                for artifact in request.artifacts:
                    result: ArtifactResult = self._render_artifact(
                        store, compiled, root, table, data, artifact, request, report
                    )
                    report.results.append(result)
                report.tables_generated += 1

        failures: int = len(report.failed)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Render & write" if not request.dry_run else "Render (dry run)",
            success=failures == 0,
            elapsed_seconds=t.elapsed,
            detail=f"{len(selected)} table(s) × {len(request.artifacts)} template(s), {failures} failure(s)",
        ))

    def _compile(
        self,
        store: TemplateStore,
        cache: Dict[str, Union[CompiledTemplate, TemplateError]],
        name: str,
    ) -> CompiledTemplate:
        """Compile *name* once per run; a failure is cached and re-raised for every table."""
        cached: Optional[Union[CompiledTemplate, TemplateError]] = cache.get(name)
        if cached is None:
            try:
                cached = self._engine.compile(store.load(name), name)
            except TemplateError as exc:
                cached = exc
            cache[name] = cached
        if isinstance(cached, TemplateError):
            raise cached
        return cached

    def _render_artifact(
        self,
        store: TemplateStore,
        cache: Dict[str, Union[CompiledTemplate, TemplateError]],
        root: Path,
        table: Table,
        data: TemplateData,
        artifact: ArtifactSpec,
        request: GenerationRequest,
        report: GenerationReport,
    ) -> ArtifactResult:
        target: str = artifact.path_template()
        try:
            path: Path = resolve_output_path(
                target, root, table.name, data.entity_name, request.extension
            )
            target = str(path)
            content: str = self._engine.render(self._compile(store, cache, artifact.template), data)
            if request.dry_run:
                return ArtifactResult(
                    file=target,
                    table=table.name,
                    template=artifact.template,
                    status=ArtifactStatus.SKIPPED,
                    message="dry run",
                )
            written: WriteResult = self._writer.write(path, content)
        except (TemplateError, ArtifactWriteError) as exc:
            logger.error(
                "Artifact %s for table %s failed (%s): %s",
                artifact.template,
                table.name,
                target,
                exc,
            )
            return ArtifactResult(
                file=target,
                table=table.name,
                template=artifact.template,
                status=ArtifactStatus.ERROR,
                message=str(exc),
            )

        report.total_bytes += written.size_bytes
        message: str = "written"
        if written.backup_path:
            message = f"written (previous version saved as {Path(written.backup_path).name})"
        return ArtifactResult(
            file=target,
            table=table.name,
            template=artifact.template,
            status=ArtifactStatus.OK,
            message=message,
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "AUDIT_FIELDS",
    "SOFT_DELETE_MARKERS",
    "SoftDeleteMarker",
    "soft_delete_clauses",
    "build_template_data",
    "GenerationStepMetric",
    "GenerationReport",
    "ScaffoldGenerator",
]

logger.debug("scaffoldgen.generator loaded.")
