"""YAML content loader.

A skill tree lives in its own directory under the content dir:

    content/<tree-slug>/skilltree.yaml
    content/<tree-slug>/domains/<domain-slug>.yaml

skilltree.yaml lists domain slugs in order; each slug names a domain file and
becomes that domain's topic-lookup prefix. Prerequisites are written with
slugs and resolved to domain names here.

Usage:
    from skillseed.core.loader import load_skill_tree, discover_skill_trees

    for slug in discover_skill_trees(Path("content")):
        tree = load_skill_tree(Path("content") / slug)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from skillseed.core.definitions import (
    DomainEntry,
    PlaceholderDomain,
    SeedDomain,
    SeedNode,
    SeedTopic,
    SkillTreeDef,
)
from skillseed.core.templates import QuestionTemplate, parse_templates
from skillseed.core.validator import SkillTreeValidationError, validate_skill_tree_def

logger = structlog.get_logger(__name__)

SKILLTREE_FILE = "skilltree.yaml"
DOMAINS_DIR = "domains"

# YAML question key -> template field alias
_QUESTION_KEYS = {
    "type": "type",
    "prompt": "prompt",
    "answer": "correctAnswer",
    "explanation": "explanation",
    "choices": "choices",
    "acceptableAnswers": "acceptableAnswers",
    "hints": "hints",
    "rubric": "rubric",
    "keyPoints": "keyPoints",
}


class ContentLoadError(Exception):
    """Raised when skill tree content can't be read or parsed."""

    pass


class SkillTreeNotFoundError(ContentLoadError):
    """Raised when a requested skill tree slug has no directory."""

    def __init__(self, slug: str, available: list[str]):
        self.slug = slug
        self.available = available
        super().__init__(
            f'Skill tree "{slug}" not found. Available: {", ".join(available) or "none"}'
        )


def discover_skill_trees(content_dir: Path) -> list[str]:
    """List tree slugs (directories holding a skilltree.yaml), sorted.

    Raises:
        ContentLoadError: If content_dir doesn't exist
    """
    if not content_dir.is_dir():
        raise ContentLoadError(f"No content directory found at {content_dir}")

    return sorted(
        d.name
        for d in content_dir.iterdir()
        if d.is_dir() and not d.name.startswith(".") and (d / SKILLTREE_FILE).exists()
    )


def resolve_skill_tree_dirs(content_dir: Path, slug: str | None = None) -> list[Path]:
    """Directories to load: every tree, or only the requested one.

    Raises:
        SkillTreeNotFoundError: If slug is given but not available
    """
    available = discover_skill_trees(content_dir)
    if slug is None:
        return [content_dir / s for s in available]
    if slug not in available:
        raise SkillTreeNotFoundError(slug, available)
    return [content_dir / slug]


def load_skill_tree(skilltree_dir: Path) -> SkillTreeDef:
    """Load and validate a skill tree directory.

    Args:
        skilltree_dir: Directory containing skilltree.yaml and domains/

    Returns:
        Validated SkillTreeDef

    Raises:
        ContentLoadError: If a file is missing or malformed
        SkillTreeValidationError: If the definition is structurally invalid
    """
    source = skilltree_dir / SKILLTREE_FILE
    data = _read_yaml(source)

    slug_to_name: dict[str, str] = {}
    entries: list[DomainEntry] = []

    for index, slug in enumerate(_as_list(data.get("domains"), f"{source}: domains")):
        if not isinstance(slug, str):
            raise ContentLoadError(f"{source}: domain entry {index} is not a slug")
        domain_data = _read_yaml(skilltree_dir / DOMAINS_DIR / f"{slug}.yaml")
        entry = _parse_domain(slug, index, domain_data)
        slug_to_name[slug] = entry.domain.name
        entries.append(entry)

    # Prerequisites: slug keys and values -> domain names, unknown slugs dropped
    prerequisites: dict[str, list[str]] = {}
    raw_prerequisites = _as_mapping(data.get("prerequisites"), f"{source}: prerequisites")
    for slug, prereq_slugs in raw_prerequisites.items():
        domain_name = slug_to_name.get(slug)
        if domain_name is None:
            logger.warning("loader.unknown_prerequisite_slug", slug=slug)
            continue
        prerequisites[domain_name] = [
            slug_to_name[p]
            for p in _as_list(prereq_slugs, f"{source}: prerequisites of {slug}")
            if isinstance(p, str) and p in slug_to_name
        ]

    tree = SkillTreeDef(
        id=str(data.get("id") or ""),
        name=str(data.get("name") or ""),
        tier_bases=_parse_tier_bases(source, data.get("tierBases")),
        domains=entries,
        prerequisites=prerequisites,
        placeholder_domains=_parse_placeholders(source, data.get("placeholders")),
    )

    validate_skill_tree_def(tree)

    logger.debug(
        "loader.skilltree_loaded",
        skilltree_id=tree.id,
        domains=len(tree.domains),
        placeholders=len(tree.placeholder_domains),
    )
    return tree


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    if not path.exists():
        raise ContentLoadError(f"File not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ContentLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ContentLoadError(f"Expected a mapping at top level of {path}")
    return data


def _as_mapping(value: Any, where: str) -> dict[Any, Any]:
    """An optional YAML mapping; None becomes {}."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ContentLoadError(f"{where}: expected a mapping")
    return value


def _as_list(value: Any, where: str) -> list[Any]:
    """An optional YAML list; None becomes []."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ContentLoadError(f"{where}: expected a list")
    return value


def _parse_tier_bases(source: Path, value: Any) -> dict[int, float]:
    """Build the tier -> base difficulty map."""
    raw = _as_mapping(value, f"{source}: tierBases")
    try:
        return {int(k): float(v) for k, v in raw.items()}
    except (TypeError, ValueError) as e:
        raise ContentLoadError(f"{source}: invalid tierBases entry: {e}") from e


def _parse_placeholders(source: Path, value: Any) -> list[PlaceholderDomain]:
    """Build placeholder domains from the skilltree.yaml list."""
    placeholders = []
    for index, p in enumerate(_as_list(value, f"{source}: placeholders")):
        try:
            placeholders.append(
                PlaceholderDomain(
                    name=p["name"],
                    tier=int(p["tier"]),
                    description=p.get("description", ""),
                    display_order=int(p.get("displayOrder", 0)),
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ContentLoadError(
                f"{source}: placeholder {index}: missing or invalid field {e}"
            ) from e
    return placeholders


def _parse_domain(slug: str, index: int, data: dict[str, Any]) -> DomainEntry:
    """Build a DomainEntry from a domain YAML file."""
    try:
        domain = SeedDomain(
            name=data["name"],
            tier=int(data["tier"]),
            description=data.get("description", ""),
            display_order=int(data.get("displayOrder", index)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ContentLoadError(f"Domain file {slug}.yaml: missing or invalid field {e}") from e

    entry = DomainEntry(prefix=slug, domain=domain)
    where = f"Domain file {slug}.yaml"

    for topic_index, topic_data in enumerate(_as_list(data.get("topics"), f"{where}: topics")):
        if not isinstance(topic_data, dict) or "name" not in topic_data:
            raise ContentLoadError(f"{where}: topic {topic_index} has no name")
        topic_name = topic_data["name"]
        try:
            complexity_weight = float(topic_data.get("complexityWeight", 1.0))
        except (TypeError, ValueError) as e:
            raise ContentLoadError(
                f'{where}: invalid complexityWeight for topic "{topic_name}": {e}'
            ) from e
        entry.topics.append(
            SeedTopic(
                name=topic_name,
                complexity_weight=complexity_weight,
                display_order=topic_index,
            )
        )

        nodes = _as_list(topic_data.get("nodes"), f'{where}: nodes of topic "{topic_name}"')
        for node_data in nodes:
            if not isinstance(node_data, dict) or "concept" not in node_data:
                raise ContentLoadError(
                    f'{where}: node without concept in topic "{topic_name}"'
                )
            concept = node_data["concept"]
            questions = _as_list(
                node_data.get("questions"), f'{where}: questions of node "{concept}"'
            )
            entry.nodes.append(
                SeedNode(
                    topic_name=topic_name,
                    concept=concept,
                    question_templates=_parse_questions(entry, concept, questions),
                )
            )

    return entry


def _parse_questions(
    entry: DomainEntry, concept: str, questions: list[Any]
) -> list[QuestionTemplate]:
    """Convert YAML questions into template models."""
    for index, q in enumerate(questions):
        if not isinstance(q, dict):
            raise ContentLoadError(
                f'{entry.label}, node "{concept}": question {index} is not a mapping'
            )
    raw = [
        {field: q[key] for key, field in _QUESTION_KEYS.items() if key in q}
        for q in questions
    ]
    try:
        return parse_templates(raw)
    except ValidationError as e:
        raise SkillTreeValidationError(
            f'{entry.label}, node "{concept}": invalid question template: '
            + "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
        ) from e
