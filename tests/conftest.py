"""Shared fixtures: a fresh SQLite database per test and seed definition builders."""

from pathlib import Path
from typing import Any

import pytest

from skillseed.core.definitions import (
    DomainEntry,
    PlaceholderDomain,
    SeedData,
    SeedDomain,
    SeedNode,
    SeedTopic,
    SkillTreeDef,
)
from skillseed.core.templates import QuestionTemplate, parse_templates
from skillseed.db.database import get_db, init_db

TIER_BASES = {1: 0.3, 2: 1.0}


def _template(
    type_: str = "recognition",
    prompt: str = "What?",
    answer: str = "A",
    **extra: Any,
) -> QuestionTemplate:
    return parse_templates(
        [
            {
                "type": type_,
                "prompt": prompt,
                "correctAnswer": answer,
                "explanation": "Because",
                **extra,
            }
        ]
    )[0]


def _seed_data(
    name: str = "Test Domain",
    tier: int = 1,
    topics: list[tuple[str, float]] | None = None,
    nodes: list[tuple[str, str]] | None = None,
    description: str = "Test description",
    display_order: int = 1,
) -> SeedData:
    """Build SeedData from (topic, weight) and (topic, concept) pairs."""
    if topics is None:
        topics = [("Topic A", 1.0)]
    if nodes is None:
        nodes = [("Topic A", "Concept 1")]
    return SeedData(
        domain=SeedDomain(
            name=name, tier=tier, description=description, display_order=display_order
        ),
        topics=[
            SeedTopic(name=t, complexity_weight=w, display_order=i)
            for i, (t, w) in enumerate(topics)
        ],
        nodes=[
            SeedNode(topic_name=t, concept=c, question_templates=[_template()])
            for t, c in nodes
        ],
    )


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialize a test database and return its path."""
    path = tmp_path / "db" / "test.db"
    init_db(path)
    return path


@pytest.fixture
def conn(db_path):
    """Autocommit connection to the test database."""
    with get_db(autocommit=True) as connection:
        yield connection


@pytest.fixture
def tier_bases() -> dict[int, float]:
    return dict(TIER_BASES)


@pytest.fixture
def make_template():
    """Factory for question templates."""
    return _template


@pytest.fixture
def make_seed_data():
    """Factory for SeedData."""
    return _seed_data


@pytest.fixture
def make_tree():
    """Factory for a SkillTreeDef from (prefix, SeedData) pairs."""

    def _make(
        domains: list[tuple[str, SeedData]],
        tree_id: str = "test-tree",
        name: str = "Test Tree",
        prerequisites: dict[str, list[str]] | None = None,
        placeholders: list[PlaceholderDomain] | None = None,
    ) -> SkillTreeDef:
        return SkillTreeDef(
            id=tree_id,
            name=name,
            tier_bases=dict(TIER_BASES),
            domains=[
                DomainEntry(prefix=prefix, domain=d.domain, topics=d.topics, nodes=d.nodes)
                for prefix, d in domains
            ],
            prerequisites=prerequisites or {},
            placeholder_domains=placeholders or [],
        )

    return _make
