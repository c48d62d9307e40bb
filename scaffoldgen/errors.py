# File: scaffoldgen/errors.py
"""
ScaffoldGen - Error Taxonomy
=============================

Every failure the engine can raise derives from ``ScaffoldError``.

Severity is encoded in the class, not in a flag:

    ConfigurationError       fatal, raised before any I/O
    DatabaseConnectionError  fatal for the run
    MetadataQueryError       one table is skipped, the run continues
    TableNotFoundError       a requested table is absent from the schema
    TemplateError family     one (table, template) pair fails
    ArtifactWriteError       one artifact fails

Callers that only care about "did the engine fail" can catch
``ScaffoldError``; the orchestrator catches the recoverable classes at
their seams and turns them into warnings or failed results.
"""

from __future__ import annotations

import logging
from typing import List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.errors")


class ScaffoldError(Exception):
    """Base exception for all scaffoldgen errors."""


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------


class ConfigurationError(ScaffoldError):
    """Unsupported dialect or missing required connection/request fields."""


class DatabaseConnectionError(ScaffoldError):
    """The backend could not be opened or did not answer the ping."""


# ---------------------------------------------------------------------------
# Recoverable errors
# ---------------------------------------------------------------------------


class MetadataQueryError(ScaffoldError):
    """Resolving tables, columns or keys failed."""

    def __init__(self, message: str, table: Optional[str] = None) -> None:
        self.table: Optional[str] = table
        if table:
            message = f"table {table!r}: {message}"
        super().__init__(message)


class TableNotFoundError(MetadataQueryError):
    """An explicitly requested table does not exist in the scanned schema."""


class TemplateError(ScaffoldError):
    """Base class for template lookup, compile and render failures."""

    def __init__(self, message: str, template: Optional[str] = None) -> None:
        self.template: Optional[str] = template
        super().__init__(message)


class TemplateNotFoundError(TemplateError):
    """No template file exists and no built-in default matches the name."""


class TemplateSyntaxError(TemplateError):
    """The template source could not be compiled."""

    def __init__(
        self,
        message: str,
        template: Optional[str] = None,
        lineno: Optional[int] = None,
    ) -> None:
        self.lineno: Optional[int] = lineno
        if lineno is not None:
            message = f"{message} (line {lineno})"
        super().__init__(message, template)


class RenderError(TemplateError):
    """The compiled template failed while rendering a data model."""


class ArtifactWriteError(ScaffoldError):
    """Writing (or backing up) one output artifact failed."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path: Optional[str] = path
        super().__init__(message)


class PathTraversalError(ArtifactWriteError):
    """A resolved output path escapes the configured root directory."""


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
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
]

logger.debug("scaffoldgen.errors loaded.")
