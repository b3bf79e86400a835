"""
Error taxonomy for the prices service and the FastAPI handlers that render it.

Input-format errors map to 4xx, transaction / aggregation / export errors to
5xx. Row-level problems never surface here; they are logged and skipped.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class PriceServiceError(Exception):
    """Base exception for the prices service."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[dict] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Input-format errors
# ---------------------------------------------------------------------------

class UploadFormatError(PriceServiceError):
    """The request does not carry a ZIP upload in the ``file`` field."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class UploadTooLargeError(PriceServiceError):
    def __init__(self, limit: int):
        super().__init__(
            f"Upload exceeds {limit} bytes",
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            {"limit": limit},
        )


class ArchiveFormatError(PriceServiceError):
    """The upload is not a readable ZIP archive."""

    def __init__(self, message: str = "Upload is not a valid ZIP archive", details: Optional[dict] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)


class EntryNotFoundError(PriceServiceError):
    """No archive entry name ends with the expected data file name."""

    def __init__(self, suffix: str):
        super().__init__(
            f"{suffix} not found in archive",
            status.HTTP_400_BAD_REQUEST,
            {"expected_suffix": suffix},
        )


# ---------------------------------------------------------------------------
# Store errors
# ---------------------------------------------------------------------------

class IngestionTransactionError(PriceServiceError):
    """The import transaction failed as a whole and was rolled back."""

    def __init__(self, message: str):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class TransactionSetupError(IngestionTransactionError):
    def __init__(self):
        super().__init__("Could not open the import transaction")


class CommitError(IngestionTransactionError):
    def __init__(self):
        super().__init__("Could not commit the import transaction")


class AggregationQueryError(PriceServiceError):
    """Summary queries failed; the imported rows remain committed."""

    def __init__(self, query: str):
        super().__init__(
            f"Summary query failed: {query}",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"query": query},
        )


class ExportError(PriceServiceError):
    def __init__(self):
        super().__init__("Could not read prices for export", status.HTTP_500_INTERNAL_SERVER_ERROR)


def _error_body(message: str, error_type: str, details: Optional[dict] = None) -> dict:
    return {"error": {"message": message, "type": error_type, "details": details or {}}}


def setup_error_handlers(app: FastAPI) -> None:
    """Register the service's exception handlers on ``app``."""

    @app.exception_handler(PriceServiceError)
    async def price_service_error_handler(request: Request, exc: PriceServiceError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
            # Server-side detail stays in the log
            body = _error_body("Internal Server Error", type(exc).__name__)
        else:
            logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
            body = _error_body(exc.message, type(exc).__name__, exc.details)
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error("Unexpected error on %s: %s", request.url.path, exc, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal Server Error", "InternalServerError"),
        )
