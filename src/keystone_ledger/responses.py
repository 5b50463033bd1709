"""JSON response envelope.

Every JSON document the CLI writes uses the same {data, error, meta} envelope
so success and failure parse the same way.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from .models import FailureKind


class MetaInfo(BaseModel):
    """Metadata for API responses."""

    timestamp: str = Field(..., description="ISO-8601 timestamp")
    run_id: str | None = Field(None, description="Pipeline run identifier")

    @classmethod
    def now(cls, run_id: str | None = None) -> MetaInfo:
        return cls(timestamp=datetime.now(UTC).isoformat(), run_id=run_id)


class ErrorDetails(BaseModel):
    """Detailed error context."""

    field: str | None = Field(None, description="Field name if validation error")
    provided: str | None = Field(None, description="Value that was provided")
    valid_options: list[str] | None = Field(
        None, description="Valid values if applicable"
    )


class ErrorResponse(BaseModel):
    code: str = Field(..., description="Error code (e.g., FETCH_001, IO_001)")
    message: str = Field(..., description="Human-readable error message")
    details: ErrorDetails | None = Field(None, description="Additional error context")


class APIResponse[T](BaseModel):
    """Generic response envelope. Either data or error is set, never both.

    Success example:
        {
            "data": {"reports": [...], "failures": [...]},
            "error": null,
            "meta": {"timestamp": "2026-01-23T12:00:00Z", "run_id": "abc123"}
        }
    """

    data: T | None = Field(None, description="Success payload, null on error")
    error: ErrorResponse | None = Field(
        None, description="Error information, null on success"
    )
    meta: MetaInfo = Field(..., description="Response metadata")

    @classmethod
    def success(cls, data: T, *, run_id: str | None = None) -> APIResponse[T]:
        return cls(data=data, error=None, meta=MetaInfo.now(run_id))

    @classmethod
    def failure(
        cls,
        code: str,
        message: str,
        *,
        run_id: str | None = None,
        field: str | None = None,
        provided: str | None = None,
        valid_options: list[str] | None = None,
    ) -> APIResponse[T]:
        details = None
        if field or provided or valid_options:
            details = ErrorDetails(
                field=field, provided=provided, valid_options=valid_options
            )
        return cls(
            data=None,
            error=ErrorResponse(code=code, message=message, details=details),
            meta=MetaInfo.now(run_id),
        )


class ErrorCodes:
    """Standard error codes for responses and failure records."""

    # Validation errors (VAL_xxx)
    VAL_001 = "VAL_001"  # Invalid configuration
    VAL_002 = "VAL_002"  # Invalid roster

    # IO errors (IO_xxx)
    IO_001 = "IO_001"  # File not found
    IO_002 = "IO_002"  # Invalid JSON

    # Fetch errors (FETCH_xxx)
    FETCH_001 = "FETCH_001"  # Character not found
    FETCH_002 = "FETCH_002"  # Service unavailable, timeout or bad status
    FETCH_003 = "FETCH_003"  # Malformed profile

    # Aggregation errors (AGG_xxx)
    AGG_001 = "AGG_001"  # Run matrix contract violation


FAILURE_CODES: dict[FailureKind, str] = {
    "NotFound": ErrorCodes.FETCH_001,
    "ServiceError": ErrorCodes.FETCH_002,
    "MalformedResponse": ErrorCodes.FETCH_003,
    "ContractViolation": ErrorCodes.AGG_001,
}


def failure_code(kind: FailureKind) -> str:
    return FAILURE_CODES[kind]
