# File: scaffoldgen/exporters.py
"""
ScaffoldGen - Artifact Writer
==============================

Responsible for:
    1. Resolving output path templates (``[rootprj]``, ``[table]``,
       ``[entity]``, ``[ext]``) and rejecting paths that escape the root.
    2. Backing up an existing file to ``<path>.<YYYYMMDDhhmmss>.bak``
       before it is replaced.
    3. Writing the new content atomically (write-to-temp then rename).

Each artifact is written independently: a failure on one path never
touches files written before it.  The backup-then-write sequence for a
given path runs under a per-path lock, so concurrent writers targeting
the same file are serialised.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from scaffoldgen.errors import ArtifactWriteError, PathTraversalError
from scaffoldgen.utils import sha256_hex

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.exporters")

BACKUP_SUFFIX: str = ".bak"
BACKUP_TIMESTAMP_FORMAT: str = "%Y%m%d%H%M%S"

ROOT_TOKEN: str = "[rootprj]"
TABLE_TOKEN: str = "[table]"
ENTITY_TOKEN: str = "[entity]"
EXT_TOKEN: str = "[ext]"


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def resolve_output_path(
    path_template: str,
    root: Union[str, Path],
    table: str,
    entity: str,
    extension: str,
) -> Path:
    """
    Substitute the path tokens and anchor the result under *root*.

    Relative results are taken relative to *root*.  The resolved path must
    stay inside the resolved root.

    Raises:
        PathTraversalError: the path escapes *root*.
    """
    root_path: Path = Path(root).resolve()
    substituted: str = (
        path_template
        .replace(ROOT_TOKEN, str(root_path))
        .replace(TABLE_TOKEN, table.lower())
        .replace(ENTITY_TOKEN, entity)
        .replace(EXT_TOKEN, extension.lstrip("."))
    )
    candidate: Path = Path(substituted)
    if not candidate.is_absolute():
        candidate = root_path / candidate
    resolved: Path = candidate.resolve()
    try:
        resolved.relative_to(root_path)
    except ValueError:
        raise PathTraversalError(
            f"output path {substituted!r} escapes root directory {str(root_path)!r}",
            path=str(resolved),
        ) from None
    if resolved == root_path:
        raise PathTraversalError(
            f"output path {substituted!r} resolves to the root directory itself",
            path=str(resolved),
        )
    return resolved


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Immutable record of one written artifact."""

    path: str
    backup_path: Optional[str]
    size_bytes: int
    sha256: str


def backup_path_for(path: Path, now: Optional[datetime] = None) -> Path:
    """
    First free ``<path>.<timestamp>.bak`` name.

    When that name is taken a counter is inserted before the suffix:
    ``<path>.<timestamp>.1.bak``, ``<path>.<timestamp>.2.bak`` and so on.
    """
    stamp: str = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    candidate: Path = path.with_name(f"{path.name}.{stamp}{BACKUP_SUFFIX}")
    counter: int = 0
    while candidate.exists():
        counter += 1
        candidate = path.with_name(f"{path.name}.{stamp}.{counter}{BACKUP_SUFFIX}")
    return candidate


class ArtifactWriter:
    """Backup-then-write file writer with per-path serialisation."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding: str = encoding
        # path -> [lock, number of writers holding or waiting on it]
        self._locks: Dict[str, List[Any]] = {}
        self._locks_guard: threading.Lock = threading.Lock()

    @contextmanager
    def _path_lock(self, path: Path) -> Iterator[None]:
        """Serialise writers of one path; the entry is dropped when the last one leaves."""
        key: str = str(path)
        with self._locks_guard:
            entry: List[Any] = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def write(self, path: Union[str, Path], content: str) -> WriteResult:
        """
        Write *content* to *path*, creating parent directories and backing
        up any existing file first.

        Raises:
            ArtifactWriteError: directory creation, backup or write failed.
        """
        target: Path = Path(path)
        data: bytes = content.encode(self._encoding)
        backup: Optional[Path] = None

        with self._path_lock(target):
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                if target.exists():
                    if not target.is_file():
                        raise ArtifactWriteError(
                            f"{target} exists and is not a regular file", path=str(target)
                        )
                    backup = backup_path_for(target)
                    os.rename(target, backup)
                    logger.info("Backed up %s -> %s", target, backup.name)
                self._atomic_write(target, data)
            except OSError as exc:
                raise ArtifactWriteError(f"cannot write {target}: {exc}", path=str(target)) from exc

        logger.debug("Wrote %s (%d bytes).", target, len(data))
        return WriteResult(
            path=str(target),
            backup_path=str(backup) if backup is not None else None,
            size_bytes=len(data),
            sha256=sha256_hex(content),
        )

    @staticmethod
    def _atomic_write(target_path: Path, data: bytes) -> None:
        """
        Write data to target_path through a temporary file in the same
        directory, then ``os.replace`` it into place.
        """
        fd, tmp_path = tempfile.mkstemp(
            dir=str(target_path.parent),
            prefix=f".{target_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, target_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BACKUP_SUFFIX",
    "ROOT_TOKEN",
    "TABLE_TOKEN",
    "ENTITY_TOKEN",
    "EXT_TOKEN",
    "resolve_output_path",
    "backup_path_for",
    "WriteResult",
    "ArtifactWriter",
]

logger.debug("scaffoldgen.exporters loaded.")
