import json
from typing import Dict, List

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from logger import logger
from utils.response_handler import build_api_response, build_error_response
from utils.result import EngineError


# request locations fastapi prepends to every loc
REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def field_name(loc) -> str:
    """("body", "details", "pickup_address", "lat") -> "details.pickup_address.lat" """
    parts = [str(part) for part in loc]
    if parts and parts[0] in REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "Unknown"


# group validation messages per field
def format_validation_errors(errors: List[dict]) -> Dict:
    formatted_errors: Dict[str, List[str]] = {}

    for error in errors:
        formatted_errors.setdefault(field_name(error["loc"]), []).append(error["msg"])

    return {
        "data": {"fields": formatted_errors},
        "message": "Validation error occurred.",
        "status": False,
    }


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content=format_validation_errors(exc.errors()))


# invalid request bodies, echoed back so the caller can see what was received
async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    raw = (await request.body()).decode("utf-8", "ignore")
    logger.error(f"422 on {request.url.path}\nBody: {raw}\nErrors: {exc.errors()}")

    try:
        body = json.loads(raw) if raw else None
    except json.JSONDecodeError:
        body = raw

    content = format_validation_errors(exc.errors())
    content["data"]["body"] = body
    return JSONResponse(status_code=422, content=content)


# an engine error that escaped a Result (e.g. through .unwrap())
async def handle_engine_error(request: Request, exc: EngineError) -> JSONResponse:
    logger.warning(f"Unhandled {exc!r} on {request.url.path}")
    return build_api_response(build_error_response(exc))


# Custom internal server error handler
async def custom_http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    if exc.status_code == 500:
        logger.error(f"Internal server error: {exc.detail}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred. Please try again later."
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
