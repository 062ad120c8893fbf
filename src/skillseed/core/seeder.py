"""Skill tree seeder.

Reconciles stored skilltrees/domains/topics/nodes toward a SkillTreeDef.
Running it any number of times, from any prior state, converges to the same
result:

- rows are created the first time their key is seen
- rows seen again are refreshed and reactivated
- rows whose key is absent are soft-retired (retired_at stamped once)
- retiring a topic retires every active node under it

Each repository call is atomic on its own; there is no run-wide transaction.
A run interrupted by a storage error can simply be started again.

Usage:
    from skillseed.core.seeder import seed_skill_tree

    with get_db(autocommit=True) as conn:
        seed_skill_tree(conn, tree)
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping

import structlog

from skillseed.core.definitions import (
    SeedData,
    SkillTreeDef,
    TopicMap,
    TopicRef,
    topic_key,
)
from skillseed.core.templates import merge_templates
from skillseed.db.skilltree_repository import (
    DomainRecord,
    find_active_node_by_concept,
    get_domain,
    get_node,
    insert_domain_if_absent,
    insert_node,
    list_nodes,
    list_topics,
    retire_nodes,
    retire_topics,
    set_domain_prerequisites,
    set_node_templates,
    update_node,
    upsert_domain,
    upsert_skilltree,
    upsert_topic,
)

logger = structlog.get_logger(__name__)


@dataclass
class DomainSeedResult:
    """Outcome of seeding one domain."""

    domain_row: DomainRecord
    created: int = 0
    updated: int = 0
    retired: int = 0
    skipped: list[str] = field(default_factory=list)


def compute_difficulty(
    tier_bases: Mapping[int, float], tier: int, complexity_weight: float
) -> float:
    """Difficulty of a node from its domain tier and topic weight.

    A tier missing from tier_bases counts as base 0.0.
    """
    return tier_bases.get(tier, 0.0) + (complexity_weight - 1.0) * 2


def seed_domain(
    conn: sqlite3.Connection,
    skilltree_id: str,
    prefix: str,
    seed_data: SeedData,
    tier_bases: Mapping[int, float],
    topic_map: TopicMap,
) -> DomainSeedResult:
    """Reconcile one domain, its topics and its nodes.

    Args:
        conn: Open connection
        skilltree_id: Tree the domain belongs to
        prefix: Namespace for topic lookups in topic_map
        seed_data: Domain, topics and nodes as authored
        tier_bases: Base difficulty per tier
        topic_map: Run-wide topic lookup, filled in by this call

    Returns:
        DomainSeedResult with created/updated/retired node and topic counts.
    """
    domain = seed_data.domain
    domain_row, _ = upsert_domain(
        conn,
        skilltree_id,
        name=domain.name,
        tier=domain.tier,
        description=domain.description,
        display_order=domain.display_order,
    )
    result = DomainSeedResult(domain_row=domain_row)

    # Topics
    active_topic_ids: set[str] = set()
    for seed_topic in seed_data.topics:
        topic_row, _ = upsert_topic(
            conn,
            domain_row.id,
            name=seed_topic.name,
            complexity_weight=seed_topic.complexity_weight,
            display_order=seed_topic.display_order,
        )
        topic_map[topic_key(prefix, seed_topic.name)] = TopicRef(
            id=topic_row.id,
            domain_id=domain_row.id,
            complexity_weight=seed_topic.complexity_weight,
        )
        active_topic_ids.add(topic_row.id)

    # Nodes
    active_node_ids: set[str] = set()
    for seed_node in seed_data.nodes:
        key = topic_key(prefix, seed_node.topic_name)
        topic = topic_map.get(key)
        if topic is None or topic.domain_id != domain_row.id:
            logger.warning(
                "seed.topic_not_found",
                message=f"Topic not found: {key}",
                domain=domain.name,
                concept=seed_node.concept,
            )
            result.skipped.append(seed_node.concept)
            continue

        difficulty = compute_difficulty(tier_bases, domain.tier, topic.complexity_weight)
        existing = get_node(conn, domain_row.id, topic.id, seed_node.concept)
        if existing is None:
            node_id = insert_node(
                conn,
                domain_row.id,
                topic.id,
                seed_node.concept,
                difficulty,
                seed_node.question_templates,
            )
            result.created += 1
        else:
            update_node(
                conn,
                existing.id,
                difficulty,
                merge_templates(existing.question_templates, seed_node.question_templates),
            )
            node_id = existing.id
            result.updated += 1
        active_node_ids.add(node_id)

    result.retired = _retire_absent(conn, domain_row.id, active_topic_ids, active_node_ids)

    logger.info(
        "seed.domain_seeded",
        domain=domain.name,
        created=result.created,
        updated=result.updated,
        retired=result.retired,
        skipped=len(result.skipped),
    )
    return result


def _retire_absent(
    conn: sqlite3.Connection,
    domain_id: str,
    active_topic_ids: set[str],
    active_node_ids: set[str],
) -> int:
    """Soft-retire topics and nodes not seen in this run.

    A topic not seen in this run takes all its active nodes with it, whether
    or not they were seen, including a topic retired by an earlier run that
    stopped before reaching its nodes. Other unseen nodes are retired one by
    one under the topics seen in this run. Rows already retired are left
    alone.

    Nodes are retired before their topics, so a run stopped between the two
    leaves the topic active and the next run finishes the cascade.

    Returns:
        Number of rows retired.
    """
    now = datetime.now(timezone.utc)
    retired = 0

    topics = list_topics(conn, domain_id)
    gone_topic_ids = [t.id for t in topics if t.id not in active_topic_ids]
    if gone_topic_ids:
        retired += retire_nodes(
            conn,
            [
                n.id
                for n in list_nodes(conn, domain_id, topic_ids=gone_topic_ids, active_only=True)
            ],
            now,
        )
        retired += retire_topics(conn, gone_topic_ids, now)

    orphaned = [
        n.id
        for n in list_nodes(conn, domain_id, topic_ids=list(active_topic_ids), active_only=True)
        if n.id not in active_node_ids
    ]
    if orphaned:
        retired += retire_nodes(conn, orphaned, now)

    return retired


def seed_skill_tree(conn: sqlite3.Connection, skilltree: SkillTreeDef) -> None:
    """Reconcile a whole skill tree.

    Upserts the tree row, seeds every domain in order with one shared topic
    map, wires prerequisites by domain name and inserts placeholder domains
    that don't exist yet.
    """
    logger.info("seed.skilltree_started", skilltree_id=skilltree.id, name=skilltree.name)

    upsert_skilltree(conn, skilltree.id, skilltree.name, skilltree.tier_bases)

    topic_map: TopicMap = {}
    totals = {"created": 0, "updated": 0, "retired": 0}

    for entry in skilltree.domains:
        result = seed_domain(
            conn,
            skilltree.id,
            entry.prefix,
            entry.data,
            skilltree.tier_bases,
            topic_map,
        )
        totals["created"] += result.created
        totals["updated"] += result.updated
        totals["retired"] += result.retired

    logger.info(
        "seed.domains_seeded",
        skilltree_id=skilltree.id,
        domains=len(skilltree.domains),
        **totals,
    )

    # Prerequisites are stored as names, verbatim
    for domain_name, prereq_names in skilltree.prerequisites.items():
        domain_row = get_domain(conn, skilltree.id, domain_name)
        if domain_row is None:
            logger.warning(
                "seed.prerequisite_domain_not_found",
                skilltree_id=skilltree.id,
                domain=domain_name,
            )
            continue
        set_domain_prerequisites(conn, domain_row.id, prereq_names)

    placeholders_created = 0
    for placeholder in skilltree.placeholder_domains:
        if insert_domain_if_absent(
            conn,
            skilltree.id,
            name=placeholder.name,
            tier=placeholder.tier,
            description=placeholder.description,
            display_order=placeholder.display_order,
        ):
            placeholders_created += 1

    logger.info(
        "seed.placeholders_seeded",
        skilltree_id=skilltree.id,
        created=placeholders_created,
        existing=len(skilltree.placeholder_domains) - placeholders_created,
    )


def update_templates_for_skill_tree(conn: sqlite3.Connection, skilltree: SkillTreeDef) -> None:
    """Backfill new question template types onto existing nodes.

    Matches nodes by concept within each domain of this tree only. Does not
    create, retire or recompute anything; nodes without new template types
    are not written.
    """
    logger.info("templates.update_started", skilltree_id=skilltree.id, name=skilltree.name)

    updated_count = 0

    for entry in skilltree.domains:
        domain_row = get_domain(conn, skilltree.id, entry.domain.name)
        if domain_row is None:
            logger.info(
                "templates.domain_not_found",
                skilltree_id=skilltree.id,
                domain=entry.domain.name,
            )
            continue

        for seed_node in entry.nodes:
            existing = find_active_node_by_concept(conn, domain_row.id, seed_node.concept)
            if existing is None:
                continue

            merged = merge_templates(existing.question_templates, seed_node.question_templates)
            if merged == existing.question_templates:
                continue

            set_node_templates(conn, existing.id, merged)
            updated_count += 1

        logger.info("templates.domain_checked", domain=entry.domain.name, nodes=len(entry.nodes))

    logger.info("templates.updated", skilltree_id=skilltree.id, nodes=updated_count)
