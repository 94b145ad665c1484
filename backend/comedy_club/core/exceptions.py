"""
Error taxonomy for the booking core.

Services raise these instead of leaking driver or HTTP-client errors. Each
carries a message that is safe to show to an end user and the HTTP status the
API answers with; the raw collaborator error is only logged.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from comedy_club.core.logging import get_logger

logger = get_logger(__name__)


class ComedyClubError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidRequestError(ComedyClubError):
    status_code = status.HTTP_400_BAD_REQUEST


class BookingValidationError(InvalidRequestError):
    """Malformed booking draft (email, phone, seat count, amount)."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ComedyClubError):
    status_code = status.HTTP_404_NOT_FOUND


class BookingUnavailable(ComedyClubError):
    """Capacity or per-booking limit would be exceeded."""

    status_code = status.HTTP_409_CONFLICT


class PaymentInitiationFailed(ComedyClubError):
    status_code = status.HTTP_502_BAD_GATEWAY


class ReconciliationFailed(ComedyClubError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class StorageError(ComedyClubError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def comedy_club_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, ComedyClubError) else ComedyClubError(str(exc))
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_storage_error", error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage temporarily unavailable, please try again"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ComedyClubError, comedy_club_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
