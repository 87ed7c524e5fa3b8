"""
Trust Score Core Package
========================

Per-account trust scoring driven by security events.

This package contains:
    - scoring/: Rule catalog, scoring engine and risk classifier
    - stores/: Event Store and Account Store interfaces and backends
    - db/: SQLAlchemy async persistence wiring
    - container: Service lifecycle (open at start, close at shutdown)

Author: TrustScore Team
Version: 1.0.0
"""

__version__ = "1.0.0"
