"""
Soft Delete ORM Utilities

Query filtering and marking for soft-deleted records using SQLAlchemy.
Models opt in by carrying the `is_deleted` / `deleted_at` columns of SoftDeleteMixin.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Query


def is_soft_deletable(model: Any) -> bool:
    cls = model if isinstance(model, type) else type(model)
    return hasattr(cls, "is_deleted") and hasattr(cls, "deleted_at")


def filter_deleted(query: Query, model: Any) -> Query:
    """Filter out soft-deleted records from query"""
    return query.filter(model.is_deleted == 0)


def only_deleted(query: Query, model: Any) -> Query:
    """Filter to show only soft-deleted records"""
    return query.filter(model.is_deleted == 1)


def mark_deleted(instance: Any) -> None:
    instance.is_deleted = 1
    instance.deleted_at = datetime.utcnow()
