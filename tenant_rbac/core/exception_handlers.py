"""Exception handlers for FastAPI hosts.

Register with register_exception_handlers(app). Maps RbacException (and
subclasses) to JSON responses using the exception's status hint, so a host can
let service errors bubble out of its route handlers.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tenant_rbac.domain.exceptions import FatalException, RbacException

logger = logging.getLogger(__name__)


def _rbac_exception_handler(request: Request, exc: RbacException) -> JSONResponse:
    """Return JSON from RbacException.to_dict() with the exception's status code."""
    if isinstance(exc, FatalException):
        logger.error("RBAC storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register the RBAC exception handler on the FastAPI app.

    Call once after creating the app. Host-specific handlers (request
    validation, generic 500) stay with the host.
    """
    app.add_exception_handler(RbacException, _rbac_exception_handler)
