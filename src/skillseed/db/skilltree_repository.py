"""Repository functions for the skill tree tables.

Provides record types for skilltrees, domains, topics and nodes, three
generic primitives (filtered select, insert with a conflict mode, patched
update) and the entity-level functions the seeder calls.

Every function takes an open connection; committing is left to the
connection's mode (see get_db).
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Literal, Mapping, Sequence

import structlog

from skillseed.core.templates import (
    QuestionTemplate,
    templates_from_json,
    templates_to_json,
)

logger = structlog.get_logger(__name__)

# Allowed tables and their columns. Identifiers are interpolated into SQL,
# so nothing outside this map may reach a query.
_TABLES: dict[str, frozenset[str]] = {
    "skilltrees": frozenset({"id", "name", "tier_bases"}),
    "domains": frozenset(
        {"id", "skilltree_id", "name", "tier", "description", "prerequisites", "display_order"}
    ),
    "topics": frozenset(
        {"id", "domain_id", "name", "complexity_weight", "display_order", "retired_at"}
    ),
    "nodes": frozenset(
        {"id", "domain_id", "topic_id", "concept", "difficulty", "question_templates", "retired_at"}
    ),
}

ConflictMode = Literal["nothing", "update"]


# =============================================================================
# RECORDS
# =============================================================================


@dataclass
class SkillTreeRecord:
    """Skill tree record from database."""

    id: str
    name: str
    tier_bases: dict[int, float]


@dataclass
class DomainRecord:
    """Domain record from database."""

    id: str
    skilltree_id: str
    name: str
    tier: int
    description: str
    prerequisites: list[str]
    display_order: int


@dataclass
class TopicRecord:
    """Topic record from database."""

    id: str
    domain_id: str
    name: str
    complexity_weight: float
    display_order: int
    retired_at: datetime | None = None

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None


@dataclass
class NodeRecord:
    """Node record from database."""

    id: str
    domain_id: str
    topic_id: str
    concept: str
    difficulty: float
    question_templates: list[QuestionTemplate]
    retired_at: datetime | None = None

    @property
    def is_retired(self) -> bool:
        return self.retired_at is not None


# =============================================================================
# GENERIC PRIMITIVES
# =============================================================================


def _check_columns(table: str, columns: Iterable[str]) -> None:
    allowed = _TABLES.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = set(columns) - allowed
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")


def _where_clause(table: str, where: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Build a WHERE clause from a filter mapping.

    A None value means IS NULL, a list/tuple/set/frozenset means IN, anything
    else means equality. An empty membership list matches nothing.
    """
    _check_columns(table, where)
    if not where:
        return "", []

    parts: list[str] = []
    params: list[Any] = []
    for column, value in where.items():
        if value is None:
            parts.append(f"{column} IS NULL")
        elif isinstance(value, (list, tuple, set, frozenset)):
            values = list(value)
            if not values:
                parts.append("0")
                continue
            parts.append(f"{column} IN ({', '.join('?' for _ in values)})")
            params.extend(values)
        else:
            parts.append(f"{column} = ?")
            params.append(value)

    return " WHERE " + " AND ".join(parts), params


def select_rows(
    conn: sqlite3.Connection,
    table: str,
    where: Mapping[str, Any] | None = None,
) -> list[sqlite3.Row]:
    """Select rows from a table matching a filter, in insertion order."""
    clause, params = _where_clause(table, where or {})
    return conn.execute(
        f"SELECT * FROM {table}{clause} ORDER BY rowid", params
    ).fetchall()


def insert_row(
    conn: sqlite3.Connection,
    table: str,
    values: Mapping[str, Any],
    conflict_target: Sequence[str],
    on_conflict: ConflictMode = "nothing",
    update: Mapping[str, Any] | None = None,
) -> bool:
    """Insert a row, resolving a unique-key conflict.

    Args:
        conn: Open connection
        table: Table name
        values: Column values for the new row
        conflict_target: Columns of the unique key
        on_conflict: "nothing" keeps the existing row untouched, "update"
            applies ``update`` to it (its id is preserved)
        update: Patch applied on conflict when on_conflict is "update"

    Returns:
        True if a new row was inserted, False if the key already existed.
    """
    update = update or {}
    _check_columns(table, [*values, *conflict_target, *update])

    columns = list(values)
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)}) "
        f"ON CONFLICT ({', '.join(conflict_target)}) "
    )
    params = [values[c] for c in columns]

    if on_conflict == "update" and update:
        sql += "DO UPDATE SET " + ", ".join(f"{c} = ?" for c in update)
        params.extend(update.values())
    else:
        sql += "DO NOTHING"

    existed = conn.execute(
        f"SELECT 1 FROM {table} WHERE "
        + " AND ".join(f"{c} = ?" for c in conflict_target),
        [values[c] for c in conflict_target],
    ).fetchone()
    conn.execute(sql, params)
    return existed is None


def update_rows(
    conn: sqlite3.Connection,
    table: str,
    patch: Mapping[str, Any],
    where: Mapping[str, Any],
) -> int:
    """Apply a field patch to every row matching a filter.

    Returns:
        Number of rows changed.
    """
    if not patch:
        return 0
    _check_columns(table, patch)
    clause, params = _where_clause(table, where)
    cursor = conn.execute(
        f"UPDATE {table} SET {', '.join(f'{c} = ?' for c in patch)}{clause}",
        [*patch.values(), *params],
    )
    return cursor.rowcount


# =============================================================================
# SKILLTREES
# =============================================================================


def upsert_skilltree(
    conn: sqlite3.Connection, skilltree_id: str, name: str, tier_bases: Mapping[int, float]
) -> bool:
    """Insert the tree or refresh its name and tier bases.

    Returns:
        True if the tree was created.
    """
    encoded = json.dumps({str(k): v for k, v in tier_bases.items()})
    created = insert_row(
        conn,
        "skilltrees",
        {"id": skilltree_id, "name": name, "tier_bases": encoded},
        conflict_target=("id",),
        on_conflict="update",
        update={"name": name, "tier_bases": encoded},
    )
    logger.debug("skilltrees.upserted", skilltree_id=skilltree_id, created=created)
    return created


def get_skilltree(conn: sqlite3.Connection, skilltree_id: str) -> SkillTreeRecord | None:
    """Get skill tree by id."""
    rows = select_rows(conn, "skilltrees", {"id": skilltree_id})
    return _row_to_skilltree(rows[0]) if rows else None


def list_skilltrees(conn: sqlite3.Connection) -> list[SkillTreeRecord]:
    """Get all skill trees."""
    return [_row_to_skilltree(row) for row in select_rows(conn, "skilltrees")]


# =============================================================================
# DOMAINS
# =============================================================================


def get_domain(conn: sqlite3.Connection, skilltree_id: str, name: str) -> DomainRecord | None:
    """Get domain by its unique key (skilltree_id, name)."""
    rows = select_rows(conn, "domains", {"skilltree_id": skilltree_id, "name": name})
    return _row_to_domain(rows[0]) if rows else None


def list_domains(conn: sqlite3.Connection, skilltree_id: str) -> list[DomainRecord]:
    """Get all domains of a tree ordered by display order."""
    rows = select_rows(conn, "domains", {"skilltree_id": skilltree_id})
    return sorted((_row_to_domain(r) for r in rows), key=lambda d: d.display_order)


def upsert_domain(
    conn: sqlite3.Connection,
    skilltree_id: str,
    name: str,
    tier: int,
    description: str,
    display_order: int,
) -> tuple[DomainRecord, bool]:
    """Insert a domain or refresh tier, description and display order.

    Prerequisites are left alone on an existing row.

    Returns:
        Tuple of (domain record, created flag).
    """
    created = insert_row(
        conn,
        "domains",
        {
            "id": _new_id(),
            "skilltree_id": skilltree_id,
            "name": name,
            "tier": tier,
            "description": description,
            "prerequisites": "[]",
            "display_order": display_order,
        },
        conflict_target=("skilltree_id", "name"),
        on_conflict="update",
        update={"tier": tier, "description": description, "display_order": display_order},
    )
    domain = get_domain(conn, skilltree_id, name)
    if domain is None:
        raise sqlite3.DatabaseError(f"Domain not found after upsert: {skilltree_id}/{name}")
    return domain, created


def insert_domain_if_absent(
    conn: sqlite3.Connection,
    skilltree_id: str,
    name: str,
    tier: int,
    description: str,
    display_order: int,
) -> bool:
    """Insert a domain with no prerequisites unless one with that name exists.

    Returns:
        True if inserted.
    """
    return insert_row(
        conn,
        "domains",
        {
            "id": _new_id(),
            "skilltree_id": skilltree_id,
            "name": name,
            "tier": tier,
            "description": description,
            "prerequisites": "[]",
            "display_order": display_order,
        },
        conflict_target=("skilltree_id", "name"),
        on_conflict="nothing",
    )


def set_domain_prerequisites(
    conn: sqlite3.Connection, domain_id: str, prerequisites: Sequence[str]
) -> None:
    """Overwrite a domain's prerequisite names."""
    update_rows(
        conn, "domains", {"prerequisites": json.dumps(list(prerequisites))}, {"id": domain_id}
    )


# =============================================================================
# TOPICS
# =============================================================================


def upsert_topic(
    conn: sqlite3.Connection,
    domain_id: str,
    name: str,
    complexity_weight: float,
    display_order: int,
) -> tuple[TopicRecord, bool]:
    """Insert a topic, or refresh weight and order and reactivate it.

    Returns:
        Tuple of (topic record, created flag).
    """
    created = insert_row(
        conn,
        "topics",
        {
            "id": _new_id(),
            "domain_id": domain_id,
            "name": name,
            "complexity_weight": complexity_weight,
            "display_order": display_order,
            "retired_at": None,
        },
        conflict_target=("domain_id", "name"),
        on_conflict="update",
        update={
            "complexity_weight": complexity_weight,
            "display_order": display_order,
            "retired_at": None,
        },
    )
    rows = select_rows(conn, "topics", {"domain_id": domain_id, "name": name})
    if not rows:
        raise sqlite3.DatabaseError(f"Topic not found after upsert: {domain_id}/{name}")
    return _row_to_topic(rows[0]), created


def list_topics(
    conn: sqlite3.Connection, domain_id: str, active_only: bool = False
) -> list[TopicRecord]:
    """Get topics of a domain."""
    where: dict[str, Any] = {"domain_id": domain_id}
    if active_only:
        where["retired_at"] = None
    return [_row_to_topic(r) for r in select_rows(conn, "topics", where)]


def retire_topics(conn: sqlite3.Connection, topic_ids: Sequence[str], now: datetime) -> int:
    """Stamp retired_at on the given topics that are still active."""
    return update_rows(
        conn,
        "topics",
        {"retired_at": now.isoformat()},
        {"id": list(topic_ids), "retired_at": None},
    )


# =============================================================================
# NODES
# =============================================================================


def get_node(
    conn: sqlite3.Connection, domain_id: str, topic_id: str, concept: str
) -> NodeRecord | None:
    """Get node by its unique key (domain_id, topic_id, concept)."""
    rows = select_rows(
        conn, "nodes", {"domain_id": domain_id, "topic_id": topic_id, "concept": concept}
    )
    return _row_to_node(rows[0]) if rows else None


def find_active_node_by_concept(
    conn: sqlite3.Connection, domain_id: str, concept: str
) -> NodeRecord | None:
    """Get the first active node in a domain with the given concept."""
    rows = select_rows(
        conn, "nodes", {"domain_id": domain_id, "concept": concept, "retired_at": None}
    )
    return _row_to_node(rows[0]) if rows else None


def list_nodes(
    conn: sqlite3.Connection,
    domain_id: str,
    topic_ids: Sequence[str] | None = None,
    active_only: bool = False,
) -> list[NodeRecord]:
    """Get nodes of a domain, optionally limited to some topics."""
    where: dict[str, Any] = {"domain_id": domain_id}
    if topic_ids is not None:
        where["topic_id"] = list(topic_ids)
    if active_only:
        where["retired_at"] = None
    return [_row_to_node(r) for r in select_rows(conn, "nodes", where)]


def insert_node(
    conn: sqlite3.Connection,
    domain_id: str,
    topic_id: str,
    concept: str,
    difficulty: float,
    question_templates: Sequence[QuestionTemplate],
) -> str:
    """Insert a new active node.

    Returns:
        The new node id.

    Raises:
        sqlite3.IntegrityError: If (domain_id, topic_id, concept) already exists
    """
    node_id = _new_id()
    conn.execute(
        """
        INSERT INTO nodes (
            id, domain_id, topic_id, concept, difficulty, question_templates, retired_at
        ) VALUES (?, ?, ?, ?, ?, ?, NULL)
        """,
        (node_id, domain_id, topic_id, concept, difficulty, templates_to_json(question_templates)),
    )
    return node_id


def update_node(
    conn: sqlite3.Connection,
    node_id: str,
    difficulty: float,
    question_templates: Sequence[QuestionTemplate],
) -> None:
    """Refresh difficulty and templates of a node and reactivate it."""
    update_rows(
        conn,
        "nodes",
        {
            "difficulty": difficulty,
            "question_templates": templates_to_json(question_templates),
            "retired_at": None,
        },
        {"id": node_id},
    )


def set_node_templates(
    conn: sqlite3.Connection, node_id: str, question_templates: Sequence[QuestionTemplate]
) -> None:
    """Overwrite the templates of a node, nothing else."""
    update_rows(
        conn,
        "nodes",
        {"question_templates": templates_to_json(question_templates)},
        {"id": node_id},
    )


def retire_nodes(conn: sqlite3.Connection, node_ids: Sequence[str], now: datetime) -> int:
    """Stamp retired_at on the given nodes that are still active."""
    return update_rows(
        conn,
        "nodes",
        {"retired_at": now.isoformat()},
        {"id": list(node_ids), "retired_at": None},
    )


# =============================================================================
# ROW CONVERSION
# =============================================================================


def _new_id() -> str:
    return str(uuid.uuid4())


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _row_to_skilltree(row: sqlite3.Row) -> SkillTreeRecord:
    """Convert database row to SkillTreeRecord."""
    raw = json.loads(row["tier_bases"]) if row["tier_bases"] else {}
    return SkillTreeRecord(
        id=row["id"],
        name=row["name"],
        tier_bases={int(k): float(v) for k, v in raw.items()},
    )


def _row_to_domain(row: sqlite3.Row) -> DomainRecord:
    """Convert database row to DomainRecord."""
    return DomainRecord(
        id=row["id"],
        skilltree_id=row["skilltree_id"],
        name=row["name"],
        tier=row["tier"],
        description=row["description"],
        prerequisites=json.loads(row["prerequisites"]) if row["prerequisites"] else [],
        display_order=row["display_order"],
    )


def _row_to_topic(row: sqlite3.Row) -> TopicRecord:
    """Convert database row to TopicRecord."""
    return TopicRecord(
        id=row["id"],
        domain_id=row["domain_id"],
        name=row["name"],
        complexity_weight=row["complexity_weight"],
        display_order=row["display_order"],
        retired_at=_parse_timestamp(row["retired_at"]),
    )


def _row_to_node(row: sqlite3.Row) -> NodeRecord:
    """Convert database row to NodeRecord."""
    return NodeRecord(
        id=row["id"],
        domain_id=row["domain_id"],
        topic_id=row["topic_id"],
        concept=row["concept"],
        difficulty=row["difficulty"],
        question_templates=templates_from_json(row["question_templates"]),
        retired_at=_parse_timestamp(row["retired_at"]),
    )
