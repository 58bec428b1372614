import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from services.exceptions import (
    DatabaseQueryError,
    ExportRequestError,
    TripNotFoundError,
    TripValidationError,
)

logger = logging.getLogger(__name__)


async def validation_exception_handler(request: Request, exc: TripValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "message": exc.message,
            "field": exc.field,
        },
    )


async def not_found_exception_handler(request: Request, exc: TripNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"error": "not_found", "message": str(exc)},
    )


async def export_request_exception_handler(request: Request, exc: ExportRequestError):
    return JSONResponse(
        status_code=400,
        content={"error": "bad_request", "message": str(exc)},
    )


async def transaction_failure_handler(request: Request, exc: DatabaseQueryError):
    # details stay in the logs, callers get a generic failure
    logger.error(f"Transaction failed on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "transaction_failure", "message": "The operation could not be completed."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TripValidationError, validation_exception_handler)
    app.add_exception_handler(TripNotFoundError, not_found_exception_handler)
    app.add_exception_handler(ExportRequestError, export_request_exception_handler)
    app.add_exception_handler(DatabaseQueryError, transaction_failure_handler)
