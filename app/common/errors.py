# app/common/errors.py

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class HapienError(Exception):
    status_code = 500
    detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class Unauthorized(HapienError):
    status_code = 401
    detail = "Unauthorized"


class ValidationFailed(HapienError):
    status_code = 400
    detail = "Invalid request"


class InvalidAmount(ValidationFailed):
    detail = "Invalid amount"


class InvalidPaymentType(ValidationFailed):
    detail = "Invalid payment type"


class MissingFields(ValidationFailed):
    detail = "Missing payment verification data"


class MissingMessage(ValidationFailed):
    detail = "Message is required"


class InvalidSignature(ValidationFailed):
    detail = "Invalid payment signature"


class NotFound(HapienError):
    status_code = 404
    detail = "Not found"


class ExternalServiceFailure(HapienError):
    status_code = 502
    detail = "Upstream service failed"


class PersistenceFailure(HapienError):
    status_code = 500
    detail = "Failed to save changes"


class UpdateFailed(PersistenceFailure):
    detail = "Failed to update payment status"


class ServiceNotConfigured(HapienError):
    status_code = 503
    detail = "Service is not configured"


async def hapien_error_handler(request: Request, exc: HapienError):
    if exc.status_code >= 500:
        log.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    else:
        log.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HapienError, hapien_error_handler)
