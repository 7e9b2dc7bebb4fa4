"""Exception handlers rendering the error taxonomy as JSON."""

from typing import Any, Dict, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from chat.errors import ChatError, ErrorKind
from utils.logging import logger


def error_response(status_code: int, payload: dict) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": payload})


def describe_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """One-line summary of the first pydantic error, prefixed with its field."""
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChatError)
    async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.kind.value}: {exc.message}")
        return error_response(exc.status_code, exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = describe_validation_errors(exc.errors())
        return error_response(status.HTTP_400_BAD_REQUEST, {"kind": ErrorKind.VALIDATION_ERROR.value, "message": message})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unexpected error on {request.method} {request.url.path}: {str(exc)}", exc_info=True)
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"kind": ErrorKind.INTERNAL_ERROR.value, "message": "Internal server error"},
        )
