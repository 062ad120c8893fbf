"""Core seeding logic.

Modules:
- templates: question template variants and merge_templates
- definitions: seed definition types and the topic lookup map
- seeder: seed_domain, seed_skill_tree, update_templates_for_skill_tree
- loader: YAML content loader
- validator: structural checks on definitions
"""

__all__ = [
    "templates",
    "definitions",
    "seeder",
    "loader",
    "validator",
]
