"""Seed definition types.

A skill tree definition is the declarative, authored description of a tree:
its domains, the topics inside each domain and the learning nodes inside each
topic. The seeder reconciles stored rows toward it.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from skillseed.core.templates import QuestionTemplate


@dataclass
class SeedDomain:
    """Domain attributes as authored."""

    name: str
    tier: int
    description: str
    display_order: int = 0


@dataclass
class SeedTopic:
    """Topic attributes as authored."""

    name: str
    complexity_weight: float = 1.0
    display_order: int = 0


@dataclass
class SeedNode:
    """A learning node: concept plus its question templates."""

    topic_name: str
    concept: str
    question_templates: list[QuestionTemplate] = field(default_factory=list)


@dataclass
class SeedData:
    """A domain with its topics and nodes."""

    domain: SeedDomain
    topics: list[SeedTopic] = field(default_factory=list)
    nodes: list[SeedNode] = field(default_factory=list)


@dataclass
class DomainEntry:
    """One domain of a tree with its topics and nodes.

    ``prefix`` scopes topic lookups during a run and is never persisted.
    """

    prefix: str
    domain: SeedDomain
    topics: list[SeedTopic] = field(default_factory=list)
    nodes: list[SeedNode] = field(default_factory=list)

    @property
    def data(self) -> SeedData:
        return SeedData(domain=self.domain, topics=self.topics, nodes=self.nodes)

    @property
    def label(self) -> str:
        """Human readable label used in validation messages."""
        return f'domain "{self.domain.name}" ({self.prefix})'


@dataclass
class PlaceholderDomain:
    """Domain shown on the tree map before it has any content."""

    name: str
    tier: int
    description: str
    display_order: int = 0


@dataclass
class SkillTreeDef:
    """Complete seed definition of one skill tree."""

    id: str
    name: str
    tier_bases: dict[int, float] = field(default_factory=dict)
    domains: list[DomainEntry] = field(default_factory=list)
    prerequisites: dict[str, list[str]] = field(default_factory=dict)
    placeholder_domains: list[PlaceholderDomain] = field(default_factory=list)


@dataclass(frozen=True)
class TopicRef:
    """Topic row as seen by the current run."""

    id: str
    domain_id: str
    complexity_weight: float


# Prefix-scoped topic lookup, keyed by topic_key(prefix, name). One instance
# lives for the duration of a single seed_skill_tree call.
TopicMap = dict[str, TopicRef]


def topic_key(prefix: str, topic_name: str) -> str:
    """Build the prefix-scoped topic lookup key."""
    return f"{prefix}:{topic_name}"
