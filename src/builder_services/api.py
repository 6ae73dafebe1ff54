"""
FastAPI Integration

Exception handlers translating builder service errors into HTTP responses, and a
dependency producing Modifiers from the request query string.
"""

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .exceptions import (
    InvalidModifierValue,
    NotFound,
    UnexpectedInputType,
    UnknownModifierKey,
    ValidationFailed,
)
from .handlers import ServiceHandler
from .modifiers import Modifiers

logger = logging.getLogger(__name__)


async def validation_failed_handler(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "errors": exc.errors},
    )


async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def bad_modifier_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning(f"Rejected query modifiers on {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def unexpected_input_handler(request: Request, exc: UnexpectedInputType) -> JSONResponse:
    logger.error(f"Unexpected input type on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationFailed, validation_failed_handler)
    app.add_exception_handler(NotFound, not_found_handler)
    app.add_exception_handler(UnknownModifierKey, bad_modifier_handler)
    app.add_exception_handler(InvalidModifierValue, bad_modifier_handler)
    app.add_exception_handler(UnexpectedInputType, unexpected_input_handler)


def modifiers_dependency(handler: Optional[ServiceHandler] = None) -> Callable[[Request], Modifiers]:
    """
    Build a FastAPI dependency returning Modifiers for the current request

        @app.get("/templates")
        def list_templates(modifiers: Modifiers = Depends(modifiers_dependency())):
            ...
    """
    handler = handler or ServiceHandler()

    def dependency(request: Request) -> Modifiers:
        return handler.make_modifiers(request)

    return dependency
