"""Error response schema shared by every endpoint."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Body of ``detail`` for service errors."""

    error: str = Field(
        ...,
        description="Error type identifier",
        examples=["validation_error", "permission_denied", "conflict"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["required_quantity must be greater than 0"],
    )
    field: Optional[str] = Field(
        None,
        description="Offending input field for validation errors",
        examples=["required_quantity"],
    )


class ErrorResponse(BaseModel):
    """Standard error response schema (4xx, 5xx)."""

    detail: ErrorDetail

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "detail": {
                        "error": "validation_error",
                        "message": "description must be between 20 and 1000 characters",
                        "field": "description",
                    }
                },
                {
                    "detail": {
                        "error": "conflict",
                        "message": "Donation is already assigned",
                    }
                },
            ]
        }
    )
