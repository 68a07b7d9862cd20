"""
Exception handlers rendering every failure into the response envelope.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from interview_core.core.errors import InterviewError, ValidationFailed
from interview_core.models.responses import ApiResponse

logger = logging.getLogger(__name__)


def envelope_response(status_code: int, body: ApiResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def interview_error_handler(request: Request, exc: InterviewError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return envelope_response(
        exc.status_code,
        ApiResponse.failure(exc.kind, exc.message, exc.detail),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return envelope_response(
        status.HTTP_400_BAD_REQUEST,
        ApiResponse.failure(ValidationFailed.kind, "Invalid request", errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return envelope_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ApiResponse.failure("internal", "An unexpected error occurred"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InterviewError, interview_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
