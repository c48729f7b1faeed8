"""JSON response envelope and the exception handlers that produce it.

Every endpoint answers with ``{success, message?, data?, errors?}``;
``204`` responses carry no body.
"""

import logging
from typing import Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.routing import Match

from .errors import NotFoundError, PhonebookError

logger = logging.getLogger(__name__)


def api_response(
    status_code: int,
    data: Any = None,
    message: str = "",
    errors: list | None = None,
    headers: dict[str, str] | None = None,
) -> Response:
    """
    Build an enveloped JSON response.

    Args:
        status_code (int): HTTP status code.
        data (Any): Payload; pydantic models are serialised.
        message (str): Optional human readable message.
        errors (list | None): Optional list of error details.
        headers (dict | None): Extra response headers.

    Returns:
        Response: ``JSONResponse``, or an empty response for ``204``.
    """
    if status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status_code, headers=headers)

    body: dict[str, Any] = {"success": 200 <= status_code < 300}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if errors:
        body["errors"] = errors
    return JSONResponse(
        status_code=status_code, content=jsonable_encoder(body), headers=headers
    )


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        location, *field = error["loc"] or ("body",)
        errors.append(
            {
                "location": str(location),
                "field": ".".join(str(part) for part in field),
                "message": error["msg"],
            }
        )
    return errors


async def phonebook_error_handler(request: Request, exc: PhonebookError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    elif isinstance(exc, NotFoundError) and request.method != "GET":
        logger.warning("%s %s: %s", request.method, request.url, exc.message)
    return api_response(exc.status_code, message=exc.message, errors=exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return api_response(
        status.HTTP_400_BAD_REQUEST,
        message="Validation error",
        errors=_validation_errors(exc),
    )


def include_resource(app: FastAPI, router: APIRouter) -> None:
    """
    Include a resource router and record the methods each of its paths
    accepts, for the ``Allow`` header of ``405`` responses.

    Args:
        app (FastAPI): Application to extend.
        router (APIRouter): Router whose routes share its prefix.
    """
    app.include_router(router)
    if not hasattr(app.state, "allowed_methods"):
        app.state.allowed_methods = {}
    allowed = app.state.allowed_methods
    for route in router.routes:
        path = getattr(route, "path", "")
        if not path.startswith(router.prefix):
            path = router.prefix + path
        allowed.setdefault(path, set()).update(getattr(route, "methods", None) or ())


def _allowed_methods(request: Request) -> str:
    allowed = getattr(request.app.state, "allowed_methods", {})
    methods = set(allowed.get(request.url.path, ()))
    # Routes declared on the app itself, e.g. ``/health``
    for route in request.app.router.routes:
        if not getattr(route, "methods", None):
            continue
        match, _ = route.matches(request.scope)
        if match != Match.NONE:
            methods.update(route.methods)
    return ", ".join(sorted(methods))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    headers = getattr(exc, "headers", None)
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        # Starlette only reports the first route sharing the path
        message = f"Method {request.method} Not Allowed"
        headers = {**(headers or {}), "Allow": _allowed_methods(request)}
    return api_response(exc.status_code, message=message, headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return api_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, message="Internal Server Error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the envelope-rendering exception handlers to ``app``."""
    app.add_exception_handler(PhonebookError, phonebook_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
