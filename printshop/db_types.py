"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from typing import Dict

from sqlalchemy import JSON, String, Uuid
from sqlalchemy.types import TypeDecorator

from printshop.core.enum_utils import get_enum_value, normalize_legacy

# Use JSON instead of JSONB for cross-database compatibility
# JSONB is PostgreSQL-specific, JSON works with both SQLite and PostgreSQL
JSONType = JSON

# Generic UUID: native uuid on PostgreSQL, CHAR(32) on SQLite
UUIDType = Uuid


class StatusType(TypeDecorator):
    """
    VARCHAR status column that maps legacy spellings onto canonical values.

    Rows are normalized when loaded, so service code only ever compares
    against canonical enum values. Bound parameters are written as given,
    which lets ``IN (...)`` filters still match unmigrated legacy rows.
    """

    impl = String(50)
    cache_ok = True

    def __init__(self, aliases: Dict[str, str], length: int = 50):
        super().__init__(length)
        # Tuple form is hashable and becomes part of the statement cache key
        self.aliases = tuple(sorted(aliases.items()))
        self._alias_map = dict(aliases)

    def process_bind_param(self, value, dialect):
        return get_enum_value(value)

    def process_result_value(self, value, dialect):
        return normalize_legacy(value, self._alias_map)
