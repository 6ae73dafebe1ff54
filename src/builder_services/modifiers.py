"""
Query Modifiers

An ordered, cloneable set of filter, sort and pagination directives that can be
applied to any SQLAlchemy ORM query through filter and sort allow-lists.
"""

import copy
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional, Tuple, Union

from sqlalchemy.orm import Query

from .exceptions import InvalidModifierValue
from .resolvers import AllowList, UnknownKeyPolicy, resolve

SORT_DIRECTIONS = ("asc", "desc")


class Filter(NamedTuple):
    key: str
    value: Any


class Sort(NamedTuple):
    field: str
    direction: str = "asc"


def _non_negative_int(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidModifierValue(f"{name} must be a non-negative integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidModifierValue(f"{name} must be a non-negative integer, got {value!r}")
    if number < 0:
        raise InvalidModifierValue(f"{name} must be a non-negative integer, got {value!r}")
    return number


def parse_sort(raw: str) -> Sort:
    """
    Parse a sort expression

    Accepted forms: "field", "-field", "field:asc", "field:desc"
    """
    raw = str(raw).strip()
    if not raw:
        raise InvalidModifierValue("Sort expression is empty")
    if raw.startswith("-"):
        return Sort(raw[1:], "desc")
    if ":" in raw:
        field, direction = raw.split(":", 1)
        return Sort(field.strip(), direction.strip().lower())
    return Sort(raw, "asc")


class Modifiers:
    """Filters, sort, limit and offset to apply to a query"""

    def __init__(self, data: Optional[Mapping[str, Any]] = None):
        self._filters: List[Filter] = []
        self._sort: Optional[Sort] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

        if data:
            self.fill(data)

    def fill(self, data: Mapping[str, Any]) -> "Modifiers":
        """Load a raw key/value mapping, reserved keys set pagination and sort"""
        for key, value in data.items():
            if key == "limit":
                self.limit(value)
            elif key == "offset":
                self.offset(value)
            elif key == "sort":
                if value is None or value == "":
                    self._sort = None
                else:
                    sort = parse_sort(value)
                    self.sort(sort.field, sort.direction)
            else:
                self.add_filter(key, value)
        return self

    # Filters

    def filters(self, filters: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]) -> "Modifiers":
        items = filters.items() if isinstance(filters, Mapping) else filters
        for key, value in items:
            self.add_filter(key, value)
        return self

    def add_filter(self, key: str, value: Any) -> "Modifiers":
        self._filters.append(Filter(key, value))
        return self

    def remove_filter(self, key: str) -> "Modifiers":
        self._filters = [f for f in self._filters if f.key != key]
        return self

    def get_filters(self) -> List[Filter]:
        return list(self._filters)

    # Sort / pagination

    def sort(self, field: str, direction: str = "asc") -> "Modifiers":
        direction = (direction or "asc").lower()
        if direction not in SORT_DIRECTIONS:
            raise InvalidModifierValue(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
        self._sort = Sort(field, direction)
        return self

    def limit(self, limit: Optional[Any]) -> "Modifiers":
        self._limit = _non_negative_int("limit", limit)
        return self

    def offset(self, offset: Optional[Any]) -> "Modifiers":
        self._offset = _non_negative_int("offset", offset)
        return self

    def get_sort(self) -> Optional[Sort]:
        return self._sort

    def get_limit(self) -> Optional[int]:
        return self._limit

    def get_offset(self) -> Optional[int]:
        return self._offset

    # Application

    def apply_to_query(
        self,
        query: Query,
        filter_allow_list: Optional[AllowList] = None,
        sort_allow_list: Optional[AllowList] = None,
        on_unknown: Union[UnknownKeyPolicy, str, None] = None,
    ) -> Query:
        """
        Apply filters (in order), then sort, then limit/offset

        Only keys registered in the allow-lists can constrain the query.

        Raises:
            UnknownModifierKey: a key is not allowed and the policy is REJECT
        """
        filter_allow_list = filter_allow_list or {}
        sort_allow_list = sort_allow_list or {}

        for key, value in self._filters:
            resolver = resolve(filter_allow_list, key, "filter", on_unknown)
            if resolver is not None:
                query = resolver(value, query)

        if self._sort is not None:
            resolver = resolve(sort_allow_list, self._sort.field, "sort", on_unknown)
            if resolver is not None:
                query = resolver(self._sort.direction, query)

        if self._limit is not None:
            query = query.limit(self._limit)
        if self._offset is not None:
            query = query.offset(self._offset)

        return query

    # Cloning

    def copy(self) -> "Modifiers":
        clone = Modifiers()
        clone._filters = copy.deepcopy(self._filters)
        clone._sort = self._sort
        clone._limit = self._limit
        clone._offset = self._offset
        return clone

    __copy__ = copy

    def __repr__(self) -> str:
        return (
            f"Modifiers(filters={self._filters!r}, sort={self._sort!r}, "
            f"limit={self._limit!r}, offset={self._offset!r})"
        )
