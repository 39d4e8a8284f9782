import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

MISSING_AUTH = "MISSING_AUTH"
INVALID_TOKEN = "INVALID_TOKEN"
MISSING_API_KEY = "MISSING_API_KEY"
INVALID_API_KEY = "INVALID_API_KEY"
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
ADMIN_REQUIRED = "ADMIN_REQUIRED"
VALIDATION_ERROR = "VALIDATION_ERROR"
MISSING_CONTENT_TYPE = "MISSING_CONTENT_TYPE"
INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
INVALID_FILE = "INVALID_FILE"
NOT_FOUND = "NOT_FOUND"
EMAIL_IN_USE = "EMAIL_IN_USE"
INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str, details: Optional[List[dict]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


def not_found(what: str) -> ApiError:
    return ApiError(404, NOT_FOUND, f"{what} not found")


def validation_failed(details: List[dict], message: str = "Validation failed") -> ApiError:
    return ApiError(400, VALIDATION_ERROR, message, details)


def error_body(code: str, message: str, details: Optional[List[dict]] = None) -> dict:
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def error_response(status_code: int, code: str, message: str, details: Optional[List[dict]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, details))


def field_errors(errors: List[Any]) -> List[dict]:
    """Flatten pydantic errors into [{field, message}], dropping the body/query prefix."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        details.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return details


async def api_error_handler(request: Request, exc: ApiError):
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(400, VALIDATION_ERROR, "Validation failed", field_errors(exc.errors()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = NOT_FOUND if exc.status_code == 404 else "HTTP_ERROR"
    return error_response(exc.status_code, code, str(exc.detail))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, INTERNAL_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
