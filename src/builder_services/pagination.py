"""
Pagination Result

Page of items plus the total count, limit and offset used to fetch it.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class PaginationResult:
    items: List[Any] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total

    @property
    def current_page(self) -> int:
        if not self.limit:
            return 1
        return self.offset // self.limit + 1

    @property
    def last_page(self) -> int:
        if not self.limit:
            return 1
        return max(1, math.ceil(self.total / self.limit))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def to_dict(self, serializer: Optional[Callable[[Any], Any]] = None) -> Dict[str, Any]:
        """Serialize for API responses, items are passed through `serializer` when given"""
        items = [serializer(item) for item in self.items] if serializer else list(self.items)
        return {
            "items": items,
            "total": self.total,
            "limit": self.limit,
            "offset": self.offset,
            "has_more": self.has_more,
            "current_page": self.current_page,
            "last_page": self.last_page,
        }
