# File: scaffoldgen/__init__.py
"""
ScaffoldGen — Schema Introspection & Template-Driven Generation
================================================================

Reads a relational schema's metadata, infers belongs-to / has-many /
many-to-many associations from foreign keys, and renders one set of
API-definition artifacts per table through Jinja2 templates.

Architecture overview::

    ┌──────────────┐     ┌──────────────────┐     ┌──────────────────┐
    │  CLI / HTTP  │────▶│ ScaffoldGenerator│────▶│  TemplateEngine  │
    │ (cli/server) │     │  (generator.py)  │     │  (templates.py)  │
    └──────────────┘     └────────┬─────────┘     └──────────────────┘
                                  │
              ┌───────────────────┼───────────────────┬──────────────┐
              ▼                   ▼                   ▼              ▼
        ┌───────────┐      ┌────────────┐      ┌────────────┐  ┌───────────┐
        │  scanner  │      │   fields   │      │ relations  │  │ exporters │
        │   (.py)   │      │   (.py)    │      │   (.py)    │  │   (.py)   │
        └───────────┘      └────────────┘      └────────────┘  └───────────┘

Usage::

    # As a library
    from scaffoldgen import ConnectionConfig, GenerationRequest, ScaffoldGenerator
    report = ScaffoldGenerator().generate(
        ConnectionConfig(host="localhost", username="app", database="shop"),
        GenerationRequest(tables="users,orders", relations="*"),
    )
    print(report.summary())

    # From the command line
    python -m scaffoldgen --tables users,orders --relations '*' -v

Public API:
    - ScaffoldGenerator  — Run orchestrator
    - MetadataScanner    — Database metadata snapshot
    - infer_relations    — Relationship inference
    - build_field        — Field descriptor builder
    - TemplateEngine     — Jinja2 rendering with the helper library
    - ArtifactWriter     — Backup-then-write file writer
"""

from __future__ import annotations

__version__: str = "1.0.0"
__license__: str = "MIT"

from scaffoldgen.errors import (
    ArtifactWriteError,
    ConfigurationError,
    DatabaseConnectionError,
    MetadataQueryError,
    PathTraversalError,
    RenderError,
    ScaffoldError,
    TableNotFoundError,
    TemplateError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from scaffoldgen.exporters import ArtifactWriter, WriteResult, resolve_output_path
from scaffoldgen.fields import build_field, build_fields, format_type, get_validation
from scaffoldgen.generator import GenerationReport, ScaffoldGenerator, build_template_data
from scaffoldgen.models import (
    ArtifactResult,
    ArtifactSpec,
    Column,
    ConnectionConfig,
    FieldDescriptor,
    ForeignKey,
    GenerationRequest,
    RelationDescriptor,
    Table,
    TemplateData,
)
from scaffoldgen.relations import includes_relations, infer_relations
from scaffoldgen.scanner import MetadataScanner, register_dialect
from scaffoldgen.templates import CompiledTemplate, TemplateEngine, TemplateStore

__all__: list[str] = [
    "__version__",
    # Errors
    "ScaffoldError",
    "ConfigurationError",
    "DatabaseConnectionError",
    "MetadataQueryError",
    "TableNotFoundError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateSyntaxError",
    "RenderError",
    "ArtifactWriteError",
    "PathTraversalError",
    # Models
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
    # Pipeline
    "MetadataScanner",
    "register_dialect",
    "format_type",
    "get_validation",
    "build_field",
    "build_fields",
    "infer_relations",
    "includes_relations",
    "TemplateEngine",
    "TemplateStore",
    "CompiledTemplate",
    "ArtifactWriter",
    "WriteResult",
    "resolve_output_path",
    "build_template_data",
    "GenerationReport",
    "ScaffoldGenerator",
]
