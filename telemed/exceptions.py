import logging
from typing import Dict, Type

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .application.errors import (
    BookingRejected,
    InvalidTransition,
    LifecycleError,
    NotAuthorized,
    RecordNotFound,
    StoreConflict,
)

logger = logging.getLogger(__name__)

LIFECYCLE_STATUS_CODES: Dict[Type[LifecycleError], int] = {
    RecordNotFound: 404,
    NotAuthorized: 403,
    InvalidTransition: 409,
    StoreConflict: 409,
    BookingRejected: 400,
}

def create_error_response(error_message: str, code: str = None) -> dict:
    """Create a standardized error response"""
    body = {
        "success": False,
        "data": None,
        "error": error_message
    }
    if code:
        body["code"] = code
    return body

async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # Convert 403 from HTTPBearer to 401 for missing authentication
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required")
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail))
    )

async def lifecycle_exception_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    """Map typed lifecycle failures to HTTP statuses; none of them are server errors."""
    status_code = 400
    for error_type, code in LIFECYCLE_STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    logger.info(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=create_error_response(exc.message, code=type(exc).__name__)
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{location}: {first.get('msg', 'Invalid request')}" if location else first.get("msg", "Invalid request")
    return JSONResponse(status_code=422, content=create_error_response(message))
