"""Skill tree content seeder."""

__version__ = "0.1.0"
