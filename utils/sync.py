"""
Tree synchronisation for learning templates.

A template owns options, an option owns ordered phases and a phase owns
ordered metrics. `reconcile_children` makes the stored children of one parent
match a submitted list and recurses into every kept or created child:

* a submitted child updates the stored child with the same id under the same
  parent; placeholder ids ("temp-...") and unknown ids are creates;
* stored children whose id is not submitted are deleted, computed from the
  rows present before any write of this pass (cascades remove descendants);
* phases and metrics are renumbered 1..N in submission order.

A child whose own list is omitted (None) keeps its stored children.
Callers run the whole pass inside one transaction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from models.template import persisted_id
from utils.validation import metric_fields, option_fields, order_by_sequence, phase_fields

logger = logging.getLogger(__name__)


@dataclass
class SyncStats:
    inserted: Dict[str, int] = field(default_factory=dict)
    updated: Dict[str, int] = field(default_factory=dict)
    deleted: Dict[str, int] = field(default_factory=dict)

    def count(self, bucket: Dict[str, int], level: str, amount: int = 1) -> None:
        bucket[level] = bucket.get(level, 0) + amount

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.deleted)

    def summary(self) -> str:
        parts = []
        for label, bucket in (("inserted", self.inserted), ("updated", self.updated), ("deleted", self.deleted)):
            detail = ", ".join(f"{level}={amount}" for level, amount in sorted(bucket.items()))
            parts.append(f"{label}[{detail}]")
        return " ".join(parts)


@dataclass(frozen=True)
class Level:
    name: str
    table: str
    parent_column: str
    sequenced: bool
    build_fields: Callable
    children_attr: Optional[str] = None
    child: Optional["Level"] = None

    def fields_for(self, node, sequence_number: Optional[int]) -> dict:
        if self.sequenced:
            return self.build_fields(node, sequence_number)
        return self.build_fields(node)

    def children_of(self, node):
        if not self.children_attr:
            return None
        return getattr(node, self.children_attr)


METRIC_LEVEL = Level("metric", "phase_metrics", "phase_id", True, metric_fields)
PHASE_LEVEL = Level("phase", "learning_phases", "option_id", True, phase_fields, "metrics", METRIC_LEVEL)
OPTION_LEVEL = Level("option", "learning_options", "template_id", False, option_fields, "phases", PHASE_LEVEL)


def read_child_ids(conn, level: Level, parent_id: int) -> List[int]:
    order = "sequence_number, id" if level.sequenced else "id"
    cursor = conn.cursor()
    cursor.execute(
        f"SELECT id FROM {level.table} WHERE {level.parent_column} = ? ORDER BY {order}",
        (parent_id,),
    )
    return [row[0] for row in cursor.fetchall()]


def insert_row(conn, level: Level, parent_id: int, values: dict) -> int:
    columns = [level.parent_column, *values.keys()]
    placeholders = ", ".join("?" for _ in columns)
    cursor = conn.cursor()
    cursor.execute(
        f"INSERT INTO {level.table} ({', '.join(columns)}) VALUES ({placeholders})",
        (parent_id, *values.values()),
    )
    return cursor.lastrowid


def update_row(conn, level: Level, row_id: int, values: dict) -> None:
    assignments = ", ".join(f"{column} = ?" for column in values)
    conn.execute(
        f"UPDATE {level.table} SET {assignments}, updated_at = datetime('now') WHERE id = ?",
        (*values.values(), row_id),
    )


def delete_rows(conn, level: Level, row_ids: Sequence[int]) -> None:
    if not row_ids:
        return
    placeholders = ",".join("?" for _ in row_ids)
    conn.execute(f"DELETE FROM {level.table} WHERE id IN ({placeholders})", list(row_ids))


def reconcile_children(
    conn,
    parent_id: int,
    persisted_ids: Sequence[int],
    submitted: Sequence,
    level: Level,
    stats: Optional[SyncStats] = None,
) -> SyncStats:
    """Make the stored children of `parent_id` at `level` match `submitted`."""
    stats = stats if stats is not None else SyncStats()
    persisted = set(persisted_ids)
    children = order_by_sequence(submitted) if level.sequenced else list(submitted)

    kept = set()
    for node in children:
        node_id = persisted_id(node.id)
        if node_id is not None and node_id in persisted:
            kept.add(node_id)
    stale = [row_id for row_id in persisted_ids if row_id not in kept]
    if stale:
        delete_rows(conn, level, stale)
        stats.count(stats.deleted, level.name, len(stale))

    for position, node in enumerate(children, 1):
        values = level.fields_for(node, position)
        node_id = persisted_id(node.id)
        grandchildren = level.children_of(node)
        if node_id is not None and node_id in persisted:
            update_row(conn, level, node_id, values)
            stats.count(stats.updated, level.name)
            if level.child is not None and grandchildren is not None:
                reconcile_children(
                    conn,
                    node_id,
                    read_child_ids(conn, level.child, node_id),
                    grandchildren,
                    level.child,
                    stats,
                )
        else:
            new_id = insert_row(conn, level, parent_id, values)
            stats.count(stats.inserted, level.name)
            if level.child is not None and grandchildren:
                reconcile_children(conn, new_id, [], grandchildren, level.child, stats)
    return stats


def sync_options(conn, template_id: int, options: Sequence, stats: Optional[SyncStats] = None) -> SyncStats:
    """Reconcile a template's options (and everything below them) against `options`."""
    stats = reconcile_children(
        conn,
        template_id,
        read_child_ids(conn, OPTION_LEVEL, template_id),
        options,
        OPTION_LEVEL,
        stats,
    )
    if stats.changed:
        logger.info("Template %s synced: %s", template_id, stats.summary())
    else:
        logger.debug("Template %s synced without structural changes: %s", template_id, stats.summary())
    return stats


def renumber(conn, level: Level, ordered_ids: Sequence[int]) -> None:
    """Write sequence numbers 1..N following `ordered_ids`."""
    conn.executemany(
        f"UPDATE {level.table} SET sequence_number = ?, updated_at = datetime('now') WHERE id = ?",
        [(position, row_id) for position, row_id in enumerate(ordered_ids, 1)],
    )
