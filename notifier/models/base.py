"""Declarative base and shared column mixins"""

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.sql import func
import uuid

class Base(DeclarativeBase):
    pass

def generate_id() -> str:
    return str(uuid.uuid4())

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            onupdate=func.now()
        )

class UUIDModel:
    """Mixin for a string UUID primary key, portable across SQLite and PostgreSQL"""

    @declared_attr
    def id(cls):
        return Column(
            String(36),
            primary_key=True,
            default=generate_id,
            nullable=False
        )

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id!r})>"

__all__ = [
    'Base',
    'TimestampedModel',
    'UUIDModel',
    'generate_id'
]
