"""
Map budget errors to HTTP responses.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.exceptions import (
    AuthenticationRequiredError,
    BudgetError,
    NotFoundError,
    ReadOnlyProfileError,
    TransientBackendError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationRequiredError, 401),
    (ReadOnlyProfileError, 403),
    (NotFoundError, 404),
    (TransientBackendError, 503),
)


def status_for(exc: BudgetError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def budget_error_handler(request: Request, exc: BudgetError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("Backend unavailable for %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BudgetError, budget_error_handler)
