"""
Filter and Sort Allow-List Resolvers

Each allow-list maps a public key to a resolver capability:

    filters: (value, query) -> query
    sort:    (direction, query) -> query

Keys that are not in an allow-list never reach the query. They are either
skipped or rejected depending on the UnknownKeyPolicy.
"""

from enum import Enum
import logging
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.orm import Query

from . import config
from .exceptions import InvalidModifierValue, UnknownModifierKey

logger = logging.getLogger(__name__)

FilterResolver = Callable[[Any, Query], Query]
SortResolver = Callable[[str, Query], Query]
AllowList = Dict[str, Callable[[Any, Query], Query]]

# Maps operator names to SQLAlchemy column methods.
# For example, operator(Model.age, "gte") calls `Model.age.__ge__(value)`.
OPERATOR_MAP = {
    "eq": "__eq__",
    "neq": "__ne__",
    "gt": "__gt__",
    "gte": "__ge__",
    "lt": "__lt__",
    "lte": "__le__",
    "like": "like",
    "ilike": "ilike",
    "in": "in_",
    "notin": "not_in",
    "isnull": "is_",
}

# Operators that expect a list of values, comma-separated strings are split.
LIST_OPERATORS = {"in", "notin"}

_LIST_TYPES = (list, tuple, set, frozenset)


class UnknownKeyPolicy(str, Enum):
    IGNORE = "ignore"
    REJECT = "reject"

    @classmethod
    def coerce(cls, value: Union["UnknownKeyPolicy", str, None]) -> "UnknownKeyPolicy":
        if value is None:
            value = config.UNKNOWN_KEYS
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidModifierValue(f"Unknown key policy must be 'ignore' or 'reject', got {value!r}")


def _as_list(value: Any) -> list:
    if isinstance(value, _LIST_TYPES):
        return list(value)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [value]


def equals(column) -> FilterResolver:
    """`column = value`, or `column IN (...)` when the value is a list"""

    def resolver(value: Any, query: Query) -> Query:
        if isinstance(value, _LIST_TYPES):
            return query.filter(column.in_(list(value)))
        return query.filter(column == value)

    return resolver


def operator(column, op: str) -> FilterResolver:
    """Apply one of the OPERATOR_MAP comparisons on a column"""
    if op not in OPERATOR_MAP:
        raise InvalidModifierValue(f"Unsupported operator: {op}")
    method = OPERATOR_MAP[op]

    def resolver(value: Any, query: Query) -> Query:
        if op in LIST_OPERATORS:
            value = _as_list(value)
        elif op == "isnull":
            return query.filter(column.is_(None) if _truthy(value) else column.is_not(None))
        return query.filter(getattr(column, method)(value))

    return resolver


def in_list(column) -> FilterResolver:
    return operator(column, "in")


def is_null(column) -> FilterResolver:
    return operator(column, "isnull")


def between(column) -> FilterResolver:
    """Inclusive range; the value is a two element sequence or "low,high" string"""

    def resolver(value: Any, query: Query) -> Query:
        bounds = _as_list(value)
        if len(bounds) != 2:
            raise InvalidModifierValue(f"Range filter expects two bounds, got {value!r}")
        low, high = bounds
        if low is not None and low != "":
            query = query.filter(column >= low)
        if high is not None and high != "":
            query = query.filter(column <= high)
        return query

    return resolver


def order_by(column) -> SortResolver:
    def resolver(direction: str, query: Query) -> Query:
        return query.order_by(column.desc() if direction == "desc" else column.asc())

    return resolver


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def resolve(
    allow_list: AllowList,
    key: str,
    kind: str = "filter",
    on_unknown: Union[UnknownKeyPolicy, str, None] = None,
) -> Optional[Callable[[Any, Query], Query]]:
    """
    Look up the resolver registered for a key

    Returns None when the key is unknown and the policy is IGNORE.

    Raises:
        UnknownModifierKey: the key is unknown and the policy is REJECT
    """
    resolver = allow_list.get(key)
    if resolver is not None:
        return resolver

    policy = UnknownKeyPolicy.coerce(on_unknown)
    if policy is UnknownKeyPolicy.REJECT:
        raise UnknownModifierKey(kind, key)

    logger.debug(f"Ignoring unknown {kind} key: {key}")
    return None
