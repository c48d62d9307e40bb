# File: scaffoldgen/relations.py
"""
ScaffoldGen - Relationship Inferencer
======================================
Reconstructs associations purely from foreign-key metadata.

For the table under inspection ``T``:

    1. belongs-to     every FK owned by T            -> ``object`` relation
    2. has-many       every other table O with an FK -> ``array`` relation
                      pointing at T
    3. many-to-many   when O owns more than one FK, every other FK of O
                      pointing at some R != T        -> ``array`` relation
                      through O

Relation names are unique per table and the first relation to claim a
name keeps it.  Later candidates with the same derived name are dropped,
even when they are more specific.

Complexity: O(T × F) where T = scanned tables, F = foreign keys per table.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from scaffoldgen.models import (
    WILDCARD,
    Cardinality,
    ForeignKey,
    RelationDescriptor,
    RelationKind,
    Table,
)
from scaffoldgen.utils import plural_name, singularize

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("scaffoldgen.relations")

_DEFAULT_KEY: str = "id"


def _same_table(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def _find_table(name: str, tables: Sequence[Table]) -> Optional[Table]:
    for table in tables:
        if _same_table(table.name, name):
            return table
    return None


class _RelationSet:
    """Ordered relation list enforcing first-writer-wins naming."""

    def __init__(self, owner: str) -> None:
        self.owner: str = owner
        self.relations: List[RelationDescriptor] = []
        self._names: Set[str] = set()

    def add(self, relation: RelationDescriptor) -> None:
        if relation.name in self._names:
            logger.debug(
                "Relation %r on %s already taken; dropping %s via %s.",
                relation.name,
                self.owner,
                relation.kind,
                relation.through_table or relation.referenced_table,
            )
            return
        self._names.add(relation.name)
        self.relations.append(relation)


def _belongs_to(fk: ForeignKey) -> RelationDescriptor:
    return RelationDescriptor(
        name=singularize(fk.referenced_table.lower()),
        kind=RelationKind.BELONGS_TO,
        cardinality=Cardinality.OBJECT,
        referenced_table=fk.referenced_table,
        local_column=fk.column_name,
        referenced_column=fk.referenced_column,
    )


def _has_many(other: Table, fk: ForeignKey) -> RelationDescriptor:
    return RelationDescriptor(
        name=plural_name(other.name.lower()),
        kind=RelationKind.HAS_MANY,
        cardinality=Cardinality.ARRAY,
        referenced_table=other.name,
        local_column=_DEFAULT_KEY,
        referenced_column=fk.column_name,
    )


def _many_to_many(
    join_table: Table,
    fk_to_owner: ForeignKey,
    fk_to_target: ForeignKey,
    all_tables: Sequence[Table],
) -> RelationDescriptor:
    target: Optional[Table] = _find_table(fk_to_target.referenced_table, all_tables)
    target_key: str = (
        target.primary_keys[0] if target is not None and target.primary_keys else _DEFAULT_KEY
    )
    return RelationDescriptor(
        name=plural_name(fk_to_target.referenced_table.lower()),
        kind=RelationKind.MANY_TO_MANY,
        cardinality=Cardinality.ARRAY,
        referenced_table=fk_to_target.referenced_table,
        local_column=_DEFAULT_KEY,
        referenced_column=fk_to_owner.column_name,
        through_table=join_table.name,
        through_column=fk_to_target.column_name,
        target_key=target_key,
    )


def infer_relations(table: Table, all_tables: Sequence[Table]) -> List[RelationDescriptor]:
    """
    Infer every relation of *table* from the complete scanned set.

    Order: outbound relations in FK scan order, then, per other table in
    scan order, its has-many relation followed by its many-to-many ones.
    """
    found: _RelationSet = _RelationSet(table.name)

    for fk in table.foreign_keys:
        found.add(_belongs_to(fk))

    for other in all_tables:
        if _same_table(other.name, table.name):
            continue
        for fk in other.foreign_keys:
            if not _same_table(fk.referenced_table, table.name):
                continue
            found.add(_has_many(other, fk))

            if len(other.foreign_keys) < 2:
                continue
            for other_fk in other.foreign_keys:
                if other_fk.column_name == fk.column_name:
                    continue
                if _same_table(other_fk.referenced_table, table.name):
                    continue
                found.add(_many_to_many(other, fk, other_fk, all_tables))

    logger.debug(
        "Inferred %d relation(s) for %s: %s",
        len(found.relations),
        table.name,
        ", ".join(r.name for r in found.relations) or "-",
    )
    return found.relations


# ---------------------------------------------------------------------------
# Relation-inclusion selection
# ---------------------------------------------------------------------------


def includes_relations(table_name: str, selection: Iterable[str]) -> bool:
    """
    Whether relations should be rendered for *table_name*.

    An empty selection disables relations, the wildcard enables them for
    every table, otherwise names are matched case-insensitively.
    """
    wanted: List[str] = [s.strip().lower() for s in selection if s and s.strip()]
    if not wanted:
        return False
    if WILDCARD in wanted:
        return True
    return table_name.lower() in wanted


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "infer_relations",
    "includes_relations",
]

logger.debug("scaffoldgen.relations loaded.")
