"""
Service Handlers

Turns raw caller input (a mapping, an HTTP request or ready-made Modifiers) into
Modifiers and forwards it to a BuilderService. The `limit` key is bounded server
side: it falls back to `limit_default` when missing or above `limit_max`.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import Request

from . import config
from .builder_service import BuilderService
from .exceptions import NotFound, UnexpectedInputType
from .modifiers import Modifiers
from .pagination import PaginationResult

logger = logging.getLogger(__name__)


def request_inputs(request: Request) -> Dict[str, Any]:
    """
    Query parameters of a request, repeated keys collected into lists

    The body is not read: modifiers only come from the query string, which keeps
    this usable from sync dependencies.
    """
    inputs: Dict[str, Any] = {}
    for key in request.query_params.keys():
        values = request.query_params.getlist(key)
        inputs[key] = values[0] if len(values) == 1 else values
    return inputs


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ServiceHandler:
    """Mixin for controllers/routers that serve BuilderService results"""

    limit_max: Optional[int] = config.LIMIT_MAX
    limit_default: Optional[int] = config.LIMIT_DEFAULT

    def make_modifiers(self, data: Any = None) -> Optional[Modifiers]:
        """
        Build Modifiers from raw input

        Raises:
            UnexpectedInputType: data is not None, Modifiers, a mapping or a Request
        """
        if data is None or isinstance(data, Modifiers):
            return data

        if isinstance(data, Request):
            inputs = request_inputs(data)
        elif isinstance(data, Mapping):
            inputs = dict(data)
        else:
            raise UnexpectedInputType(data, [Modifiers, Request, dict])

        limit = inputs.get("limit")
        requested = _as_int(limit)
        if limit is None or (self.limit_max is not None and requested is not None and requested > self.limit_max):
            logger.debug(f"Replacing limit {limit!r} with default {self.limit_default!r}")
            inputs["limit"] = self.limit_default

        return Modifiers(inputs)

    def get_from_service(self, service: BuilderService, modifiers: Any = None):
        return service.get(self.make_modifiers(modifiers))

    def count_from_service(self, service: BuilderService, modifiers: Any = None) -> int:
        return service.count(self.make_modifiers(modifiers))

    def paginate_from_service(
        self, service: BuilderService, modifiers: Any = None, per_page: Optional[int] = None
    ) -> PaginationResult:
        return service.paginate(self.make_modifiers(modifiers), per_page)

    def find_from_service(self, service: BuilderService, id: Any, modifiers: Any = None):
        return service.find(id, modifiers=self.make_modifiers(modifiers))

    def find_or_fail_from_service(self, service: BuilderService, id: Any, modifiers: Any = None):
        """
        Raises:
            NotFound: nothing matched id
        """
        item = self.find_from_service(service, id, modifiers)
        if item is None:
            raise NotFound(service.model, id)
        return item
