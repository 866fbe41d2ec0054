"""Error responses for the restocache HTTP API.

Maps the domain error taxonomy onto status codes and a Result/Message
body so every failing endpoint answers in the same shape.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from restocache.core.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    RestoError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """Single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    success: bool = False
    messages: list[Message]


STATUS_CODES: dict[type[RestoError], int] = {
    NotFoundError: 404,
    AlreadyExistsError: 409,
    InvalidArgumentError: 400,
    StoreUnavailableError: 500,
}


def status_code_for(exc: RestoError) -> int:
    for error_type, status_code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


def to_result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


async def resto_exception_handler(request: Request, exc: RestoError) -> ORJSONResponse:
    """Exception handler for domain errors."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        # Store details stay in the log
        logger.error(f"{request.method} {request.url.path} failed: {exc.text}")
        result = to_result("InternalServerError", "Internal Server Error", MessageType.EXCEPTION)
    else:
        result = to_result(exc.code, exc.text)
    return ORJSONResponse(status_code=status_code, content=result.model_dump(by_alias=True))


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"{request.method} {request.url.path} raised an unexpected error")
    return ORJSONResponse(
        status_code=500,
        content=to_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Malformed request bodies and parameters are invalid arguments."""
    errors = exc.errors()
    text = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in errors
    )
    return ORJSONResponse(
        status_code=400,
        content=to_result(InvalidArgumentError.code, text or "Invalid request").model_dump(
            by_alias=True
        ),
    )
