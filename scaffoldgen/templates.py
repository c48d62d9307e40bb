# File: scaffoldgen/templates.py
"""
ScaffoldGen - Template Rendering Engine
========================================
Compiles named templates on Jinja2 and renders them against a
``TemplateData`` model.

Three pieces live here:

    HELPERS          the fixed, pure helper library exposed to every
                     template (as globals, and as filters where a pipe
                     reads naturally: ``{{ name | to_pascal_case }}``)
    TemplateEngine   compile / render with error mapping onto
                     ``scaffoldgen.errors``
    TemplateStore    ``<templates_dir>/<name>.tpl`` lookup with lazy,
                     idempotent copy-out of the built-in defaults

**Safety contract:**
    - Templates run inside ``ImmutableSandboxedEnvironment``: no attribute
      access to dunders and no in-place mutation of lists or dicts.
    - ``StrictUndefined`` turns a reference to an unknown variable into a
      render failure instead of an empty string.
    - Compiled templates are immutable and may be rendered concurrently.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import jinja2
from jinja2.sandbox import ImmutableSandboxedEnvironment

from scaffoldgen.default_templates import DEFAULT_TEMPLATES
from scaffoldgen.errors import (
    RenderError,
    TemplateNotFoundError,
    TemplateSyntaxError,
)
from scaffoldgen.fields import format_type, get_default, get_validation
from scaffoldgen.models import FieldDescriptor, TemplateData
from scaffoldgen.utils import (
    coalesce,
    indent_text,
    is_empty,
    pluralize,
    quote,
    singularize,
    to_camel_case,
    to_literal,
    to_pascal_case,
    to_snake_case,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.templates")

TEMPLATE_EXTENSION: str = ".tpl"

_AUDIT_FIELDS: frozenset = frozenset({
    "created_at", "created_by",
    "updated_at", "updated_by",
    "deleted_at", "deleted_by",
})


# ---------------------------------------------------------------------------
# Helper library
# ---------------------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    if isinstance(value, jinja2.Undefined):
        return True
    return is_empty(value)


def _default(value: Any, fallback: Any) -> Any:
    """``value`` unless it is empty, else ``fallback``."""
    return fallback if _is_empty(value) else value


def _field_name(field: Union[FieldDescriptor, Mapping[str, Any], str]) -> str:
    if isinstance(field, FieldDescriptor):
        return field.name_snake
    if isinstance(field, Mapping):
        return str(field.get("name_snake") or field.get("name") or "")
    return str(field)


def has_field(fields: Iterable[Any], name: str) -> bool:
    """True when any field's snake-case name equals *name*."""
    return any(_field_name(f) == name for f in fields)


def is_audit_field(name: str) -> bool:
    return name.lower() in _AUDIT_FIELDS


def should_include_in_update(field: Union[FieldDescriptor, str]) -> bool:
    """A field is updatable unless it is a primary key or an audit column."""
    if isinstance(field, FieldDescriptor):
        if field.is_primary_key:
            return False
        name: str = field.name
    else:
        name = str(field)
    return name.lower() != "id" and not is_audit_field(name)


def _append(items: Iterable[Any], item: Any) -> List[Any]:
    """Return a new list; the sandbox forbids ``list.append``."""
    return [*items, item]


def _join(items: Iterable[Any], separator: str = ", ") -> str:
    return separator.join(str(i) for i in items)


def _split(text: str, separator: str = ",") -> List[str]:
    return [part.strip() for part in str(text).split(separator)]


HELPERS: Mapping[str, Callable[..., Any]] = {
    # case
    "to_snake_case": to_snake_case,
    "to_camel_case": to_camel_case,
    "to_pascal_case": to_pascal_case,
    "to_upper_case": lambda s: str(s).upper(),
    "to_lower_case": lambda s: str(s).lower(),
    "pluralize": pluralize,
    "singularize": singularize,
    # field metadata
    "format_type": lambda data_type: format_type(data_type).value,
    "get_validation": get_validation,
    "get_default": get_default,
    "has_field": has_field,
    "is_audit_field": is_audit_field,
    "should_include_in_update": should_include_in_update,
    # strings
    "contains": lambda s, sub: sub in str(s),
    "has_prefix": lambda s, prefix: str(s).startswith(prefix),
    "has_suffix": lambda s, suffix: str(s).endswith(suffix),
    "replace": lambda s, old, new: str(s).replace(old, new),
    "trim": lambda s: str(s).strip(),
    "join": _join,
    "split": _split,
    "quote": quote,
    "to_string": to_literal,
    "indent": indent_text,
    # lists & numbers
    "list": lambda *items: list(items),
    "append": _append,
    "gt": lambda a, b: a > b,
    "add": lambda a, b: a + b,
    # emptiness
    "coalesce": coalesce,
    "default": _default,
    "empty": _is_empty,
}

# Helpers that also read well as ``value | name``
_FILTERS: tuple = (
    "to_snake_case", "to_camel_case", "to_pascal_case",
    "to_upper_case", "to_lower_case",
    "pluralize", "singularize",
    "quote", "to_string", "indent", "trim",
    "default",
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CompiledTemplate:
    """A parsed template, reusable across renders."""

    name: str
    source: str
    template: jinja2.Template


def _build_environment() -> jinja2.Environment:
    env: jinja2.Environment = ImmutableSandboxedEnvironment(
        undefined=jinja2.StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.globals.update(HELPERS)
    for name in _FILTERS:
        env.filters[name] = HELPERS[name]
    env.tests["empty"] = _is_empty
    return env


class TemplateEngine:
    """
    Compile template sources and render them against ``TemplateData``.

    Every field of the data model is available as a top-level variable
    (``{{ entity_name }}``); the model itself is also bound as ``data``.
    """

    def __init__(self) -> None:
        self._env: jinja2.Environment = _build_environment()

    def compile(self, source: str, name: str = "<string>") -> CompiledTemplate:
        """
        Parse *source*.

        Raises:
            TemplateSyntaxError: the source is not a valid template.
        """
        try:
            template: jinja2.Template = self._env.from_string(source)
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateSyntaxError(exc.message or str(exc), template=name, lineno=exc.lineno) from exc
        logger.debug("Compiled template %s (%d chars).", name, len(source))
        return CompiledTemplate(name=name, source=source, template=template)

    def render(self, compiled: CompiledTemplate, data: TemplateData) -> str:
        """
        Render *compiled* against *data*.

        Raises:
            RenderError: a helper failed, an unknown variable was referenced
                or the sandbox rejected an operation.
        """
        context: Dict[str, Any] = {name: getattr(data, name) for name in TemplateData.model_fields}
        context["data"] = data
        try:
            return compiled.template.render(context)
        except (jinja2.TemplateError, TypeError, ValueError, ArithmeticError) as exc:
            raise RenderError(f"{compiled.name}: {exc}", template=compiled.name) from exc

    def render_string(self, source: str, data: TemplateData, name: str = "<string>") -> str:
        """Compile and render in one step."""
        return self.render(self.compile(source, name), data)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class TemplateStore:
    """
    File-backed template lookup.

    ``ensure(name)`` materialises the built-in default for *name* when the
    file does not exist yet.  The copy uses exclusive creation, so two runs
    racing on the same directory never clobber each other or a
    user-edited file.
    """

    def __init__(
        self,
        templates_dir: Union[str, Path],
        extension: str = TEMPLATE_EXTENSION,
        defaults: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.templates_dir: Path = Path(templates_dir)
        self.extension: str = extension
        self._defaults: Mapping[str, str] = DEFAULT_TEMPLATES if defaults is None else defaults
        self._lock: threading.Lock = threading.Lock()

    def path_for(self, name: str) -> Path:
        return self.templates_dir / f"{name}{self.extension}"

    def ensure(self, name: str) -> Path:
        """
        Return the template file for *name*, creating it from the built-in
        default when missing.

        Raises:
            TemplateNotFoundError: no file exists and there is no default.
        """
        path: Path = self.path_for(name)
        if path.is_file():
            return path
        source: Optional[str] = self._defaults.get(name)
        if source is None:
            raise TemplateNotFoundError(
                f"template {name!r} not found in {self.templates_dir}", template=name
            )
        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "x", encoding="utf-8") as fh:
                    fh.write(source)
                logger.info("Created default template %s", path)
            except FileExistsError:
                logger.debug("Template %s appeared concurrently; keeping it.", path)
            except OSError as exc:
                raise TemplateNotFoundError(
                    f"cannot create default template {path}: {exc}", template=name
                ) from exc
        return path

    def load(self, name: str) -> str:
        """Read the source of *name*, materialising the default first if needed."""
        path: Path = self.ensure(name)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateNotFoundError(f"cannot read template {path}: {exc}", template=name) from exc

    def available(self) -> List[str]:
        """Names of templates on disk plus the built-in defaults, sorted."""
        names: set = set(self._defaults)
        if self.templates_dir.is_dir():
            names.update(p.stem for p in self.templates_dir.glob(f"*{self.extension}") if p.is_file())
        return sorted(names)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TEMPLATE_EXTENSION",
    "HELPERS",
    "has_field",
    "is_audit_field",
    "should_include_in_update",
    "CompiledTemplate",
    "TemplateEngine",
    "TemplateStore",
]

logger.debug("scaffoldgen.templates loaded — %d helpers.", len(HELPERS))
