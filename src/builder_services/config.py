"""
Builder Service Configuration

Environment-driven defaults for pagination, limit clamping and unknown-key handling.
"""

import os
from typing import Optional


def _optional_int(name: str, default: Optional[str]) -> Optional[int]:
    raw = os.getenv(name, default)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


DEFAULT_PER_PAGE = int(os.getenv("BUILDER_SERVICE_PER_PAGE", "15"))
LIMIT_DEFAULT = _optional_int("BUILDER_SERVICE_LIMIT_DEFAULT", "15")
LIMIT_MAX = _optional_int("BUILDER_SERVICE_LIMIT_MAX", "100")
UNKNOWN_KEYS = os.getenv("BUILDER_SERVICE_UNKNOWN_KEYS", "reject").lower()
