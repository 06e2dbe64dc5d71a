"""
HTTP integration: ErrorCode to status mapping and the FastAPI response builder.

    return build_fastapi_response(handlers.get_application(cache, application_id))

Success values go through FastAPI's jsonable_encoder, so dataclasses,
enums, tuples and datetimes serialize without a response model.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, TypeVar

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")


class HttpStatusMapper:
    _CODE_TO_STATUS: dict[ErrorCode, int] = {
        ErrorCode.VALIDATION_ERROR: 400,
        ErrorCode.NOT_FOUND: 404,
        ErrorCode.TECHNICAL_ERROR: 500,
        ErrorCode.DATABASE_ERROR: 500,
    }

    @classmethod
    def map_failure(cls, failure: FailureDescription) -> int:
        return cls._CODE_TO_STATUS.get(failure.code, 500)


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    """
    Error body returned for every failed request.

        {
            "error_code": "NOT_FOUND",
            "message": "application app9 not found",
            "timestamp": "2026-02-17T10:30:00+00:00"
        }
    """

    error_code: str
    message: str
    timestamp: str

    @staticmethod
    def from_failure(failure: FailureDescription) -> ErrorResponse:
        return ErrorResponse(
            error_code=failure.code.value,
            message=failure.message,
            timestamp=failure.timestamp.isoformat(),
        )


def build_response(result: Result[T], success_status: int = 200) -> tuple[Any, int]:
    """Build a JSON-ready (body, status_code) tuple from a Result."""
    return result.either(
        on_success=lambda value: (jsonable_encoder(value), success_status),
        on_failure=lambda error: (
            asdict(ErrorResponse.from_failure(error)),
            HttpStatusMapper.map_failure(error),
        ),
    )


def build_fastapi_response(result: Result[T], success_status: int = 200) -> JSONResponse:
    body, status = build_response(result, success_status)
    return JSONResponse(content=body, status_code=status)
