"""
builder-services: allow-listed query modifiers and validation-gated CRUD over SQLAlchemy.
"""

from .builder_service import BuilderService, CreatedBatch, SkippedItem
from .exceptions import (
    BuilderServiceError,
    InvalidModifierValue,
    NotFound,
    UnexpectedInputType,
    UnknownModifierKey,
    ValidationFailed,
)
from .handlers import ServiceHandler
from .modifiers import Filter, Modifiers, Sort
from .pagination import PaginationResult
from .resolvers import UnknownKeyPolicy, between, equals, in_list, is_null, operator, order_by
from .validation import Validator

__version__ = "0.1.0"

__all__ = [
    "BuilderService",
    "BuilderServiceError",
    "CreatedBatch",
    "Filter",
    "InvalidModifierValue",
    "Modifiers",
    "NotFound",
    "PaginationResult",
    "ServiceHandler",
    "SkippedItem",
    "Sort",
    "UnexpectedInputType",
    "UnknownKeyPolicy",
    "UnknownModifierKey",
    "ValidationFailed",
    "Validator",
    "between",
    "equals",
    "in_list",
    "is_null",
    "operator",
    "order_by",
]
