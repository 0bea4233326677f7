"""
Error kinds and the handlers that render them as ``{code, message}`` bodies.
"""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from payment_service.logger import get_logger

logger = get_logger(__name__)


class ErrorCode:
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    BUSINESS_RULE = "BUSINESS_RULE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PaymentServiceError(Exception):
    code = ErrorCode.INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationFailed(PaymentServiceError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class NotFound(PaymentServiceError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class BusinessRuleViolation(PaymentServiceError):
    code = ErrorCode.BUSINESS_RULE
    status_code = 400


class InternalError(PaymentServiceError):
    code = ErrorCode.INTERNAL_ERROR
    status_code = 500


def error_response(code: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message})


async def payment_error_handler(request: Request, exc: PaymentServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return error_response(exc.code, exc.message, exc.status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first_error = exc.errors()[0]
    if first_error.get("type") == "json_invalid":
        return error_response(ErrorCode.VALIDATION_ERROR, "Request body is not valid JSON", 400)
    # drop the "body"/"query" prefix FastAPI puts on every location
    location = [str(part) for part in first_error.get("loc", ())][1:]
    field = ".".join(location)
    message = first_error.get("msg", "Invalid request")
    if field:
        message = f"Invalid value for '{field}': {message}"
    logger.warning(f"{request.method} {request.url.path} rejected: {message}")
    return error_response(ErrorCode.VALIDATION_ERROR, message, 400)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # a known path with the wrong method is still an unmatched route
    if exc.status_code in (404, 405):
        return error_response(ErrorCode.NOT_FOUND, "Endpoint not found", 404)
    code = ErrorCode.VALIDATION_ERROR if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR
    return error_response(code, str(exc.detail), exc.status_code)


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(ErrorCode.INTERNAL_ERROR, str(exc) or "Internal server error", 500)


def add_error_handlers(app):
    app.add_exception_handler(PaymentServiceError, payment_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
