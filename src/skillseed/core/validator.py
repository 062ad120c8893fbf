"""Skill tree definition validation.

Structural checks run on every loaded definition before it reaches the
seeder. Template fields (type, prompt, correctAnswer, explanation) are not
checked here: the template models reject an unknown type or a blank field
when the YAML is parsed, so no invalid template reaches a SkillTreeDef.

Functions:
- validate_skill_tree_def(tree) -> None: raise on the first problem found
- detect_prerequisite_cycles(prerequisites) -> list[str]: first cycle or []
"""

from __future__ import annotations

from typing import Mapping, Sequence

from skillseed.core.definitions import SkillTreeDef


class SkillTreeValidationError(Exception):
    """Raised when a skill tree definition is structurally invalid."""

    pass


def validate_skill_tree_def(tree: SkillTreeDef) -> None:
    """Validate a SkillTreeDef.

    Args:
        tree: Definition to check

    Raises:
        SkillTreeValidationError: With a message naming the offending domain
            where there is one
    """
    if not tree.name or not tree.name.strip():
        raise SkillTreeValidationError("Skill tree name is required")

    if not tree.id or not tree.id.strip():
        raise SkillTreeValidationError("Skill tree id is required")

    seen_prefixes: set[str] = set()
    for entry in tree.domains:
        label = entry.label

        if entry.prefix in seen_prefixes:
            raise SkillTreeValidationError(f"{label}: prefix is used by another domain")
        seen_prefixes.add(entry.prefix)

        if not entry.topics:
            raise SkillTreeValidationError(f"{label} must have at least one topics entry")

        if not entry.nodes:
            raise SkillTreeValidationError(f"{label} must have at least one nodes entry")

    cycle = detect_prerequisite_cycles(tree.prerequisites)
    if cycle:
        raise SkillTreeValidationError(f"Prerequisite cycle detected: {' → '.join(cycle)}")


def detect_prerequisite_cycles(prerequisites: Mapping[str, Sequence[str]]) -> list[str]:
    """Detect a cycle in a prerequisite graph (depth-first search).

    Args:
        prerequisites: Domain name -> names it depends on

    Returns:
        The first cycle found as [dependency, dependent], or [] if acyclic.
    """
    # 0 = unvisited, 1 = on current path, 2 = done
    color: dict[str, int] = {}
    for name, deps in prerequisites.items():
        color.setdefault(name, 0)
        for dep in deps:
            color.setdefault(dep, 0)

    def visit(name: str) -> list[str]:
        color[name] = 1
        for dep in prerequisites.get(name, ()):
            if color[dep] == 1:
                return [dep, name]
            if color[dep] == 0:
                cycle = visit(dep)
                if cycle:
                    return cycle
        color[name] = 2
        return []

    for name in list(color):
        if color[name] == 0:
            cycle = visit(name)
            if cycle:
                return cycle

    return []
