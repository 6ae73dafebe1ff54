"""
Builder Service Exceptions

Error kinds raised by modifiers, allow-list resolution, validation and lookups.
"""

from typing import Any, Dict, Iterable, List, Optional


class BuilderServiceError(Exception):
    """Base class for all builder service errors"""


class ValidationFailed(BuilderServiceError):
    """Input data did not satisfy a validation rule set"""

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message or "The given data was invalid.")

    def to_dict(self) -> Dict[str, Any]:
        return {"message": str(self), "errors": self.errors}


class UnexpectedInputType(BuilderServiceError):
    """Raw input was none of the accepted types"""

    def __init__(self, value: Any, expected: Iterable[type]):
        self.value = value
        self.expected = list(expected)
        names = ", ".join(t.__name__ for t in self.expected)
        super().__init__(f"Unexpected input of type {type(value).__name__}, expected one of: {names}")


class UnknownModifierKey(BuilderServiceError):
    """A filter or sort key is not in the service allow-list"""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"Unknown {kind} key: {key}")


class InvalidModifierValue(BuilderServiceError, ValueError):
    """A limit, offset, sort direction or key value is malformed"""


class NotFound(BuilderServiceError):
    """Lookup by id/key returned nothing"""

    def __init__(self, model: Any = None, id: Any = None):
        self.model = model
        self.id = id
        name = getattr(model, "__name__", None) or "Resource"
        if id is None:
            super().__init__(f"{name} not found")
        else:
            super().__init__(f"{name} {id!r} not found")
