"""
Model Mixins

Column sets shared by models served through a BuilderService: creation/update
timestamps and the soft delete flag used by `soft_delete`.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, inspect


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class SoftDeleteMixin:
    is_deleted = Column(Integer, default=0, nullable=False)
    deleted_at = Column(DateTime, nullable=True)


def to_dict(instance: Any) -> Dict[str, Any]:
    """Column values of a mapped instance, datetimes as ISO strings"""
    result = {}
    for attr in inspect(instance).mapper.column_attrs:
        value = getattr(instance, attr.key)
        result[attr.key] = value.isoformat() if isinstance(value, datetime) else value
    return result
