"""
SQLAlchemy Base for DraftPulse.

Usage:
    from draftpulse.models.base import Base

    class MyModel(Base):
        __tablename__ = "my_table"
        ...
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for all DraftPulse tables."""


__all__ = ["Base"]
