# File: scaffoldgen/utils.py
"""
ScaffoldGen - Utility Functions & Helpers
==========================================
String transformation, literal formatting and timing utilities shared by
the field builder, the relation inferencer and the template helper library.

- Case and plural conversions are decorated with ``@lru_cache(maxsize=None)``:
  the same column and table names are converted once per field, per
  relation and per template, so repeated calls are amortised to O(1).
- All helpers are pure; none of them touch the filesystem or the database.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import time
from typing import Any, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.utils")

# Suffixes that take "+es" in the plural form
_SIBILANT_SUFFIXES: Tuple[str, ...] = ("s", "x", "z", "ch", "sh")
# Stems that lose "es" again in the singular; "courses" and "sizes" only lose "s"
_ES_STEMS: Tuple[str, ...] = ("ss", "zz", "x", "ch", "sh")


# ---------------------------------------------------------------------------
# Cached case conversion functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def to_snake_case(name: str) -> str:
    """
    Convert a name to snake_case.

    An underscore is inserted before every internal upper-case character,
    then the whole string is lower-cased.  Already snake-cased input is
    returned unchanged.

    Examples:
        >>> to_snake_case("UserProfile")
        'user_profile'
        >>> to_snake_case("created_at")
        'created_at'
    """
    if not name:
        return ""
    chars: List[str] = []
    for i, ch in enumerate(name):
        if i > 0 and ch.isupper() and name[i - 1] != "_":
            chars.append("_")
        chars.append(ch)
    return "".join(chars).lower()


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert a snake_case name to camelCase.

    Examples:
        >>> to_camel_case("user_profile")
        'userProfile'
    """
    if not name:
        return ""
    parts: List[str] = name.lower().split("_")
    return parts[0] + "".join(p[:1].upper() + p[1:] for p in parts[1:])


@functools.lru_cache(maxsize=None)
def to_pascal_case(name: str) -> str:
    """
    Convert a snake_case name to PascalCase.

    Examples:
        >>> to_pascal_case("user_profile")
        'UserProfile'
    """
    if not name:
        return ""
    return "".join(p[:1].upper() + p[1:] for p in name.lower().split("_"))


def title_first(name: str) -> str:
    """Upper-case the first character only ("user" -> "User")."""
    return name[:1].upper() + name[1:]


# ---------------------------------------------------------------------------
# Pluralisation
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def pluralize(word: str) -> str:
    """
    Naive English pluralisation sufficient for table and relation names.

    Rules, in order:
        ``y``                      -> ``ies``   (category -> categories)
        ``s x z ch sh`` endings    -> ``+es``   (box -> boxes)
        anything else              -> ``+s``    (invoice -> invoices)
    """
    if not word:
        return ""
    lower: str = word.lower()
    if lower.endswith("y"):
        return word[:-1] + "ies"
    if lower.endswith(_SIBILANT_SUFFIXES):
        return word + "es"
    return word + "s"


@functools.lru_cache(maxsize=None)
def singularize(word: str) -> str:
    """
    Naive English singularisation, the inverse of :func:`pluralize`.

    Examples:
        >>> singularize("categories")
        'category'
        >>> singularize("boxes")
        'box'
        >>> singularize("roles")
        'role'
        >>> singularize("courses")
        'course'
    """
    if not word:
        return ""
    lower: str = word.lower()
    if lower.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower.endswith("es") and lower[:-2].endswith(_ES_STEMS):
        return word[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return word[:-1]
    return word


@functools.lru_cache(maxsize=None)
def plural_name(word: str) -> str:
    """
    Plural form of a table-like name that may already be plural.

    ``posts`` stays ``posts`` and ``user_role`` becomes ``user_roles``.
    """
    return pluralize(singularize(word))


# ---------------------------------------------------------------------------
# Literal formatting helpers
# ---------------------------------------------------------------------------


def quote(value: Any) -> str:
    """Double-quote *value* with JSON escaping (backslashes, quotes, control chars)."""
    return json.dumps(str(value), ensure_ascii=False)


def to_literal(value: Any) -> str:
    """
    Render *value* as a YAML/JSON-compatible scalar.

    Strings are quoted, booleans become ``true``/``false`` and ``None``
    becomes ``null``.  Numbers are rendered as-is.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return quote(value)
    return json.dumps(value, ensure_ascii=False, default=str)


def indent_text(text: Any, spaces: int = 2) -> str:
    """Pad every line after the first with *spaces* spaces."""
    pad: str = " " * spaces
    return str(text).replace("\n", "\n" + pad)


def is_empty(value: Any) -> bool:
    """
    Return True for ``None``, ``""``, numeric zero, ``False`` and empty
    collections.
    """
    if value is None:
        return True
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def coalesce(*values: Any) -> Any:
    """Return the first non-empty argument, or ``None``."""
    for value in values:
        if not is_empty(value):
            return value
    return None


def split_csv(raw: Optional[str]) -> List[str]:
    """Split a comma-separated value, trimming blanks ("a, b,," -> ["a", "b"])."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string. O(n)."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline phases.

    Usage:
        with Timer("scan") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.info(
            "Timer [%s]: %.4f seconds",
            self.label,
            self.elapsed,
        )

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "to_snake_case",
    "to_camel_case",
    "to_pascal_case",
    "title_first",
    "pluralize",
    "singularize",
    "plural_name",
    "quote",
    "to_literal",
    "indent_text",
    "is_empty",
    "coalesce",
    "split_csv",
    "sha256_hex",
    "Timer",
]

logger.debug("scaffoldgen.utils loaded — %d public symbols.", len(__all__))
