# File: scaffoldgen/fields.py
"""
ScaffoldGen - Field Descriptor Builder
=======================================
Turns one scanned ``Column`` (plus its owning ``Table``) into a
``FieldDescriptor``: logical type, required flag, validation rule,
coerced default and name-case variants.

Everything here is pure and deterministic.  The name-driven validation
catalogue is a static ordered table (``NAME_PATTERNS``); the first entry
whose predicate matches the lower-cased column name supplies the rule.

Predicates come in two flavours:

    contains   substring test, for words long enough to be unambiguous
               ("email", "telefono", "passport")
    tokens     whole ``_``-separated segment, for short abbreviations that
               would otherwise fire inside unrelated words ("ip" inside
               "description", "rut" inside "ruta", "tag" inside "stage")
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from scaffoldgen.models import Column, FieldDescriptor, LogicalType, Table
from scaffoldgen.utils import to_camel_case, to_pascal_case, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.fields")


# ---------------------------------------------------------------------------
# Logical type mapping
# ---------------------------------------------------------------------------

# Checked in order; the first family whose marker occurs in the raw type wins.
_TYPE_FAMILIES: Tuple[Tuple[Tuple[str, ...], LogicalType], ...] = (
    (("bool",), LogicalType.BOOL),
    (("float", "double", "decimal", "numeric", "real", "money"), LogicalType.FLOAT),
    (("timestamp", "datetime", "date"), LogicalType.STRING),
    (("json",), LogicalType.OBJECT),
    (("uuid",), LogicalType.STRING),
)


def format_type(data_type: str) -> LogicalType:
    """
    Map a raw database type name to a logical type.

    Integer family first (``big`` variants become ``int64``), then boolean,
    floating/decimal, temporal (``string``), JSON-like (``object``), UUID
    (``string``) and finally ``string`` for everything else.
    """
    raw: str = (data_type or "").lower()
    if "int" in raw:
        return LogicalType.INT64 if "big" in raw else LogicalType.INT
    for markers, logical in _TYPE_FAMILIES:
        if any(marker in raw for marker in markers):
            return logical
    return LogicalType.STRING


# ---------------------------------------------------------------------------
# Name-driven validation catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NamePattern:
    """One (name-predicate, rule) row of the validation catalogue."""

    label: str
    rule: Mapping[str, Any]
    contains: Tuple[str, ...] = ()
    tokens: Tuple[str, ...] = ()
    requires: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        if any(word in name for word in self.excludes):
            return False
        if not all(word in name for word in self.requires):
            return False
        segments: Tuple[str, ...] = tuple(name.split("_"))
        return any(word in name for word in self.contains) or any(
            token in segments for token in self.tokens
        )


def _pattern(regex: str) -> Mapping[str, Any]:
    return {"pattern": regex}


_UUID_RULE: Mapping[str, Any] = _pattern(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)


NAME_PATTERNS: Tuple[NamePattern, ...] = (
    # contact
    NamePattern("email", {"email": True}, contains=("email", "correo")),
    NamePattern("url", _pattern(r"^https?:\/\/[^\s/$.?#].[^\s]*$"),
                contains=("url", "website", "sitio")),
    NamePattern("phone", _pattern(r"^[0-9+\-\s\(\)]{7,20}$"),
                contains=("telefono", "phone", "celular", "movil")),
    # national identifiers
    NamePattern("cuit", _pattern(r"^(20|23|24|27|30|33|34)-?\d{8}-?\d$"), contains=("cuit",)),
    NamePattern("cuil", _pattern(r"^(20|23|24|27)-?\d{8}-?\d$"), contains=("cuil",)),
    NamePattern("cbu", _pattern(r"^\d{22}$"), contains=("cbu",)),
    NamePattern("cvu", _pattern(r"^\d{22}$"), contains=("cvu",)),
    NamePattern("bank_alias", _pattern(r"^[a-z0-9.]{6,20}$"),
                requires=("alias",), contains=("bancario",)),
    NamePattern("dni", _pattern(r"^\d{7,8}$"), tokens=("dni",), contains=("documento",)),
    NamePattern("passport", _pattern(r"^[A-Z]{3}\d{6}$"), contains=("pasaporte", "passport")),
    NamePattern("ruc", _pattern(r"^\d{11}$"), tokens=("ruc",)),
    NamePattern("rfc", _pattern(r"^[A-ZÑ&]{3,4}\d{6}[A-Z0-9]{3}$"), tokens=("rfc",)),
    NamePattern("curp", _pattern(r"^[A-Z]{4}\d{6}[HM][A-Z]{5}[0-9A-Z]\d$"), contains=("curp",)),
    NamePattern("cpf", _pattern(r"^\d{3}\.\d{3}\.\d{3}-\d{2}$|^\d{11}$"), tokens=("cpf",)),
    NamePattern("cnpj", _pattern(r"^\d{2}\.\d{3}\.\d{3}\/\d{4}-\d{2}$|^\d{14}$"), contains=("cnpj",)),
    NamePattern("rut", _pattern(r"^\d{1,2}\.\d{3}\.\d{3}-[\dkK]$|^\d{7,8}-[\dkK]$"), tokens=("rut",)),
    NamePattern("postal_code", _pattern(r"^([A-Z]\d{4}[A-Z]{3}|\d{4,5})$"),
                contains=("codigo_postal", "postal", "zip")),
    # accounts
    NamePattern("username", _pattern(r"^[a-zA-Z0-9._-]{4,20}$"),
                contains=("username", "usuario", "login")),
    NamePattern("person_name", _pattern(r"^[\p{L}\s]+$"),
                contains=("nombre", "apellido", "name")),
    NamePattern("password", _pattern(r"^[A-Za-z0-9@$!%*?&#+._-]{8,}$"),
                contains=("password", "clave", "contrasena")),
    NamePattern("uuid", _UUID_RULE, contains=("uuid", "guid")),
    # network
    NamePattern("ipv4", _pattern(
        r"^(25[0-5]|2[0-4]\d|[01]?\d\d?)\.((25[0-5]|2[0-4]\d|[01]?\d\d?)\.){2}(25[0-5]|2[0-4]\d|[01]?\d\d?)$"
    ), tokens=("ip", "ipv4")),
    NamePattern("ipv6", _pattern(
        r"^(([0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}|::([0-9a-fA-F]{1,4}:){0,6}[0-9a-fA-F]{1,4})$"
    ), contains=("ipv6",)),
    NamePattern("mac_address", _pattern(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$"),
                tokens=("mac",), requires=("address",)),
    # vehicles
    NamePattern("license_plate", _pattern(r"^([A-Z]{3}\d{3}|[A-Z]{2}\d{3}[A-Z]{2})$"),
                contains=("patente", "dominio")),
    NamePattern("vin", _pattern(r"^[A-HJ-NPR-Z0-9]{17}$"), tokens=("vin",), contains=("chasis",)),
    NamePattern("hex_color", _pattern(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$"),
                contains=("color",), excludes=("nombre",)),
    # financial
    NamePattern("card_number", _pattern(r"^\d{13,19}$"), contains=("tarjeta", "card")),
    NamePattern("card_cvv", _pattern(r"^\d{3,4}$"), contains=("cvv", "cvc")),
    NamePattern("iban", _pattern(r"^[A-Z]{2}\d{2}[A-Z0-9]{1,30}$"), contains=("iban",)),
    NamePattern("swift", _pattern(r"^[A-Z]{6}[A-Z0-9]{2}([A-Z0-9]{3})?$"),
                contains=("swift",), tokens=("bic",)),
    NamePattern("isbn", _pattern(r"^(97[89])?\d{9}[\dX]$"), contains=("isbn",)),
    NamePattern("slug", _pattern(r"^[a-z0-9]+(?:-[a-z0-9]+)*$"), contains=("slug",)),
    # geographic
    NamePattern("latitude", _pattern(r"^-?([0-8]?\d(\.\d+)?|90(\.0+)?)$"),
                contains=("latitud",), tokens=("lat",)),
    NamePattern("longitude", _pattern(r"^-?(1[0-7]\d(\.\d+)?|180(\.0+)?|\d{1,2}(\.\d+)?)$"),
                contains=("longitud",), tokens=("lng", "lon")),
    # social / media
    NamePattern("hashtag", _pattern(r"^#[A-Za-z0-9_]+$"), contains=("hashtag",), tokens=("tag", "tags")),
    NamePattern("social_handle", _pattern(r"^@?[A-Za-z0-9_]{1,15}$"),
                contains=("handle", "twitter", "instagram")),
    NamePattern("semver", _pattern(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$"), contains=("version",)),
    # locale
    NamePattern("currency", _pattern(r"^[A-Z]{3}$"), contains=("moneda", "currency")),
    NamePattern("language", _pattern(r"^[a-z]{2}(-[A-Z]{2})?$"),
                contains=("idioma", "language"), tokens=("lang",)),
    NamePattern("country", _pattern(r"^[A-Z]{2}$"), contains=("pais", "country")),
    NamePattern("clock_time", _pattern(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$"),
                contains=("hora",), tokens=("time",)),
    # business codes
    NamePattern("order_number", _pattern(r"^[A-Z0-9]{5,20}$"),
                requires=("numero",), contains=("orden", "factura", "invoice")),
    NamePattern("enrollment", _pattern(r"^[A-Z0-9]{5,15}$"), contains=("matricula", "legajo")),
    NamePattern("barcode", _pattern(r"^\d{13}$"), contains=("codigo_barras", "barcode"), tokens=("ean",)),
    NamePattern("batch", _pattern(r"^[A-Z0-9]{6,20}$"), contains=("lote", "batch")),
    # files
    NamePattern("file_extension", _pattern(r"^\.[a-z0-9]{2,5}$"), contains=("extension",)),
    NamePattern("mime_type", _pattern(r"^[a-z]+\/[a-z0-9\-\+\.]+$"), contains=("mime",)),
    NamePattern("tweet_id", _pattern(r"^\d{15,20}$"), requires=("tweet",), tokens=("id",)),
    NamePattern("youtube_id", _pattern(r"^[A-Za-z0-9_-]{11}$"), requires=("youtube",), tokens=("id",)),
)

GENERIC_STRING_RULE: Mapping[str, Any] = _pattern(r"^.{1,255}$")

# Format rules keyed by the raw (not logical) type: temporal values are
# carried as strings but still get a shape check.
_RAW_TYPE_RULES: Tuple[Tuple[Tuple[str, ...], Mapping[str, Any]], ...] = (
    (("timestamp", "datetime"),
     _pattern(r"^\d{4}-\d{2}-\d{2}T([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")),
    (("date",), _pattern(r"^\d{4}-\d{2}-\d{2}$")),
    (("time",), _pattern(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")),
    (("year",), {"pattern": r"^\d{4}$", "min": 1900, "max": 2100}),
    (("uuid",), _UUID_RULE),
)

_LOGICAL_TYPE_RULES: Dict[str, Mapping[str, Any]] = {
    LogicalType.INT.value: {"min": -2147483648, "max": 2147483647},
    LogicalType.INT64.value: {"min": -9223372036854775808, "max": 9223372036854775807},
    LogicalType.FLOAT.value: {"min": -1e12, "max": 1e12},
    LogicalType.BOOL.value: {"type": "boolean"},
}

_PASSWORD_WORDS: Tuple[str, ...] = ("password", "clave", "contrasena")
_PASSWORD_MIN_LENGTH: int = 8


def match_name_pattern(column_name: str) -> Optional[NamePattern]:
    """Return the first catalogue row matching *column_name*, if any."""
    name: str = column_name.lower()
    for entry in NAME_PATTERNS:
        if entry.matches(name):
            return entry
    return None


def _raw_type_rule(data_type: str) -> Optional[Mapping[str, Any]]:
    raw: str = data_type.lower()
    for markers, rule in _RAW_TYPE_RULES:
        if any(marker in raw for marker in markers):
            return rule
    return None


def get_validation(
    column_name: str,
    data_type: str,
    max_length: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Build the validation rule for one column.

    String-like columns get a length window when the backend declares a
    maximum length, plus either a raw-type format rule (dates, times,
    UUIDs) or the first matching name pattern.  Numeric and boolean
    columns get a range/type rule keyed by their logical type.
    """
    logical: LogicalType = format_type(data_type)
    name: str = column_name.lower()
    rule: Dict[str, Any] = {}

    if logical == LogicalType.STRING:
        if max_length is not None and max_length > 0:
            rule["min_length"] = min(2, max_length)
            rule["max_length"] = max_length
        type_rule: Optional[Mapping[str, Any]] = _raw_type_rule(data_type)
        if type_rule is not None:
            rule.update(type_rule)
        else:
            entry: Optional[NamePattern] = match_name_pattern(name)
            rule.update(entry.rule if entry is not None else GENERIC_STRING_RULE)
    else:
        rule.update(_LOGICAL_TYPE_RULES.get(logical.value, {}))

    if any(word in name for word in _PASSWORD_WORDS):
        rule["min_length"] = _PASSWORD_MIN_LENGTH

    return rule


# ---------------------------------------------------------------------------
# Default-literal resolution
# ---------------------------------------------------------------------------

# Server-side expressions the artifact has to compute itself
_GENERATED_DEFAULT_MARKERS: Tuple[str, ...] = (
    "nextval",
    "now()",
    "current_timestamp",
    "current_date",
    "current_time",
    "localtimestamp",
    "localtime",
    "uuid_generate",
    "gen_random_uuid",
    "uuid()",
    "newid()",
    "sysdate",
    "auto_increment",
)
_FUNCTION_CALL_RE: re.Pattern[str] = re.compile(r"^[a-z_][a-z0-9_.]*\s*\(.*\)$", re.IGNORECASE)
_CAST_SUFFIX_RE: re.Pattern[str] = re.compile(r"^(.*?)::[a-z_][a-z0-9_ \[\]\"().]*$", re.IGNORECASE | re.DOTALL)

_TRUE_LITERALS: Tuple[str, ...] = ("true", "t", "1", "yes", "y", "on", "b'1'")
_FALSE_LITERALS: Tuple[str, ...] = ("false", "f", "0", "no", "n", "off", "b'0'")


def is_generated_default(raw_default: str) -> bool:
    """True when the default is a generator call, timestamp function or sequence."""
    lowered: str = raw_default.strip().lower()
    if any(marker in lowered for marker in _GENERATED_DEFAULT_MARKERS):
        return True
    return bool(_FUNCTION_CALL_RE.match(lowered))


def resolve_default(raw_default: Optional[str], logical_type: str) -> Any:
    """
    Turn a raw default into a literal of the field's logical type.

    Returns ``None`` for absent, NULL and server-generated defaults, and
    for literals that cannot be coerced.
    """
    if raw_default is None:
        return None
    if is_generated_default(raw_default):
        return None

    literal: str = raw_default.strip()
    cast_match: Optional[re.Match[str]] = _CAST_SUFFIX_RE.match(literal)
    if cast_match:
        literal = cast_match.group(1).strip()
    if literal.startswith("(") and literal.endswith(")"):
        literal = literal[1:-1].strip()
    if literal.upper() == "NULL":
        return None
    if len(literal) >= 2 and literal[0] == literal[-1] == "'":
        literal = literal[1:-1]

    try:
        if logical_type == LogicalType.BOOL.value:
            lowered: str = literal.lower()
            if lowered in _TRUE_LITERALS:
                return True
            if lowered in _FALSE_LITERALS:
                return False
            raise ValueError(f"not a boolean literal: {literal!r}")
        if logical_type in (LogicalType.INT.value, LogicalType.INT64.value):
            return int(literal)
        if logical_type == LogicalType.FLOAT.value:
            return float(literal)
        if logical_type == LogicalType.OBJECT.value:
            return json.loads(literal)
    except ValueError as exc:
        logger.debug("Dropping default %r (%s): %s", raw_default, logical_type, exc)
        return None
    return literal


def get_default(raw_default: Optional[str], data_type: str) -> Any:
    """Resolve *raw_default* against the logical type of *data_type*."""
    return resolve_default(raw_default, format_type(data_type).value)


# ---------------------------------------------------------------------------
# Descriptor builder
# ---------------------------------------------------------------------------


def build_field(column: Column, table: Table) -> FieldDescriptor:
    """Derive the ``FieldDescriptor`` for *column* of *table*."""
    logical: LogicalType = format_type(column.data_type)
    snake: str = to_snake_case(column.name)
    return FieldDescriptor(
        name=column.name,
        name_snake=snake,
        name_camel=to_camel_case(snake),
        name_pascal=to_pascal_case(snake),
        type=logical,
        db_type=column.data_type,
        is_required=not column.is_nullable and column.default is None,
        is_primary_key=table.is_primary_key(column.name),
        is_foreign_key=table.foreign_key_for(column.name) is not None,
        validation=get_validation(column.name, column.data_type, column.max_length),
        default=resolve_default(column.default, logical.value),
        max_length=column.max_length,
        comment=column.comment,
    )


def build_fields(table: Table) -> Tuple[FieldDescriptor, ...]:
    """Descriptors for every column of *table*, in physical order."""
    return tuple(build_field(col, table) for col in table.columns)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "NamePattern",
    "NAME_PATTERNS",
    "GENERIC_STRING_RULE",
    "format_type",
    "match_name_pattern",
    "get_validation",
    "is_generated_default",
    "resolve_default",
    "get_default",
    "build_field",
    "build_fields",
]

logger.debug("scaffoldgen.fields loaded — %d name patterns.", len(NAME_PATTERNS))
