"""
Inventory ledger error taxonomy.

Every failure that crosses the ledger boundary is one of these, carrying a
stable `kind` and a human readable message, so routers can map outcomes to
HTTP responses deterministically.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from core.logging import get_logger

logger = get_logger(__name__)


class LedgerError(Exception):
    kind = "ledger_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.message}


class NotFoundError(LedgerError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(LedgerError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InsufficientAvailableError(LedgerError):
    kind = "insufficient_available"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, available: int, requested: int):
        super().__init__(message)
        self.available = available
        self.requested = requested

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["available"] = self.available
        out["requested"] = self.requested
        return out


class InvalidArgumentError(LedgerError):
    kind = "invalid_argument"
    status_code = status.HTTP_400_BAD_REQUEST


class StorageError(LedgerError):
    """Lock timeout or database failure; the transaction was rolled back."""

    kind = "storage_error"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error("Ledger storage failure", path=request.url.path, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", path=request.url.path, error=repr(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"kind": "internal_error", "detail": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
