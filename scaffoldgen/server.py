# File: scaffoldgen/server.py
"""
ScaffoldGen - HTTP Surface
===========================
Thin FastAPI application exposing generation and introspection as JSON
endpoints.  The connection always comes from ``Settings``; request bodies
only override project values (schema, tables, output directory...).

    GET  /api/health       liveness and version
    GET  /api/templates    template names available to a run
    POST /api/introspect   scanned tables with their field descriptors
    POST /api/generate     run the pipeline, return the report

Run with ``scaffoldgen --serve`` or
``uvicorn scaffoldgen.server:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

import uvicorn
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from scaffoldgen import __version__
from scaffoldgen.config import Settings, load_settings
from scaffoldgen.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    ScaffoldError,
    TableNotFoundError,
)
from scaffoldgen.generator import GenerationReport, ScaffoldGenerator
from scaffoldgen.templates import TemplateStore

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.server")

router = APIRouter()


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


class IntrospectBody(BaseModel):
    schema_name: Optional[str] = None
    tables: Optional[Union[List[str], str]] = None
    include_relations: bool = False


class GenerateBody(BaseModel):
    schema_name: Optional[str] = None
    tables: Optional[Union[List[str], str]] = None
    relations: Optional[Union[List[str], str]] = None
    output_dir: Optional[str] = None
    file_type: Optional[str] = None
    templates_dir: Optional[str] = None
    dry_run: bool = False
    project: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def _http_error(exc: ScaffoldError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(400, detail=str(exc))
    if isinstance(exc, DatabaseConnectionError):
        return HTTPException(502, detail=str(exc))
    if isinstance(exc, TableNotFoundError):
        return HTTPException(404, detail=f"Table '{exc.table}' not found")
    return HTTPException(500, detail=str(exc))


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _generator(request: Request) -> ScaffoldGenerator:
    return request.app.state.generator


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/health")
def health_check() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/templates")
def list_templates(request: Request) -> Dict[str, Any]:
    settings: Settings = _settings(request)
    store: TemplateStore = TemplateStore(settings.TEMPLATES_DIR)
    return {"templates_dir": settings.TEMPLATES_DIR, "templates": store.available()}


@router.post("/introspect")
def introspect(body: IntrospectBody, request: Request) -> Dict[str, Any]:
    settings: Settings = _settings(request)
    schema_name: str = body.schema_name or settings.PROJECT_SCHEMA
    tables: Union[List[str], str] = body.tables if body.tables is not None else settings.table_list
    if isinstance(tables, str):
        tables = [t.strip() for t in tables.split(",") if t.strip()]
    try:
        payload: Dict[str, Any] = _generator(request).introspect(
            settings.connection_config(),
            schema_name,
            tables,
            include_relations=body.include_relations,
        )
    except ScaffoldError as exc:
        logger.warning("Introspection of %s failed: %s", schema_name, exc)
        raise _http_error(exc) from exc
    return payload


@router.post("/generate")
def generate(body: GenerateBody, request: Request) -> Dict[str, Any]:
    settings: Settings = _settings(request)
    overrides: Dict[str, Any] = body.model_dump(exclude={"dry_run", "project"})
    try:
        generation_request = settings.generation_request(
            dry_run=body.dry_run, project=body.project, **overrides
        )
        report: GenerationReport = _generator(request).generate(
            settings.connection_config(), generation_request
        )
    except ScaffoldError as exc:
        logger.warning("Generation failed: %s", exc)
        raise _http_error(exc) from exc
    return report.to_dict()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Optional[Settings] = None,
    generator: Optional[ScaffoldGenerator] = None,
) -> FastAPI:
    """Build the application; settings are loaded from the environment when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("ScaffoldGen API starting up…")
        yield
        logger.info("ScaffoldGen API shutting down.")

    app = FastAPI(
        title="ScaffoldGen",
        description="Schema introspection and template-driven API-definition generation.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or load_settings()
    app.state.generator = generator or ScaffoldGenerator()
    app.include_router(router, prefix="/api")
    return app


def serve(settings: Settings) -> None:
    """Configure logging from ``LOG_LEVEL`` and run the app under uvicorn."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    logger.info("Serving on http://%s:%d", settings.API_HOST, settings.API_PORT)
    uvicorn.run(
        create_app(settings),
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "router",
    "create_app",
    "serve",
]

logger.debug("scaffoldgen.server loaded.")
