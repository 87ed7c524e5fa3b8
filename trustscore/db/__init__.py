"""
TrustScore Database Layer
=========================

Async SQLAlchemy 2.0 persistence for accounts and security events.

This module provides:
    - Database: engine and session lifecycle
    - Base model class for all database entities
    - AccountDB / SecurityEventDB table models

Author: TrustScore Team
Version: 1.0.0
"""

from trustscore.db.base import Base
from trustscore.db.models import AccountDB, SecurityEventDB
from trustscore.db.session import Database

__all__ = [
    "AccountDB",
    "Base",
    "Database",
    "SecurityEventDB",
]
