"""Database module for SQLite persistence.

Provides:
- Database connection management
- Schema initialization for skilltrees, domains, topics and nodes
- Repository functions used by the seeder
"""

from skillseed.db.database import get_db, init_db

__all__ = ["get_db", "init_db"]
