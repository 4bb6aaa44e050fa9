"""Typed failures raised by the store, lifecycle and reference services.

Every error carries the HTTP status it maps to; ``register_error_handlers``
turns them into the same ``{"detail": ...}`` body FastAPI uses for
``HTTPException``.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..logging_config import get_logger

logger = get_logger(__name__)


class ExpenseFlowError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(ExpenseFlowError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ExpenseFlowError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ExpenseFlowError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ExpenseFlowError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ExpenseFlowError):
    status_code = status.HTTP_409_CONFLICT


class PersistenceError(ExpenseFlowError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ConversionError(ExpenseFlowError):
    status_code = status.HTTP_502_BAD_GATEWAY


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ExpenseFlowError)
    async def _handle_expenseflow_error(request: Request, exc: ExpenseFlowError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.detail)
        headers = None
        if isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=headers,
        )
