"""Database-agnostic type definitions for SQLAlchemy models.

This module provides type definitions that work with both SQLite and PostgreSQL.
"""
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# UUID type that works with both databases (CHAR(32) on SQLite)
UUIDType = PG_UUID

# Opaque owner identifiers: user UUIDs or client-generated guest ids
OWNER_ID_LENGTH = 64

# Normalized plate text is at most 7 glyphs; the heart glyph is a single code point
PLATE_TEXT_LENGTH = 16
