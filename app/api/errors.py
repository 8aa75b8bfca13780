"""Map domain errors to HTTP responses.

    NotFoundError            404
    ForbiddenError           403
    InvalidTransitionError   409
    ConflictError            409
    ValidationError          422
    TransactionFailure       500 (generic message, cause stays in the log)

Bodies carry ``detail``, a stable ``code`` and the ``requestId`` of the
request so a client report can be matched to the server log.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    MarketplaceError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from app.middleware.request_context import current_request_id

logger = logging.getLogger(__name__)

STATUS_FOR_ERROR: dict[type[MarketplaceError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    InvalidTransitionError: 409,
    ConflictError: 409,
    ValidationError: 422,
    TransactionFailure: 500,
}


def status_for(exc: MarketplaceError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_FOR_ERROR:
            return STATUS_FOR_ERROR[cls]
    return 400


def _payload(exc: MarketplaceError) -> dict[str, object]:
    payload: dict[str, object] = {"detail": exc.message, "code": exc.code}
    request_id = current_request_id()
    if request_id != "-":
        payload["requestId"] = request_id
    return payload


async def marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            "Workflow failure path=%s code=%s", request.url.path, exc.code, exc_info=exc
        )
    else:
        logger.info(
            "Request refused path=%s code=%s detail=%s",
            request.url.path,
            exc.code,
            exc.message,
        )
    return JSONResponse(status_code=status_code, content=_payload(exc))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, marketplace_error_handler)  # type: ignore[arg-type]
