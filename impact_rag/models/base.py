"""
SQLAlchemy Base Models

Provides the declarative base shared by all ORM models, so that Alembic
sees every table in one metadata registry.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base class for all SQLAlchemy ORM models."""

    pass
