"""Pydantic models for calculator evaluation requests and results."""
from pydantic import BaseModel, Field

# Text shown on the calculator display when an expression cannot be evaluated
ERROR_INDICATOR = "Error"


class OperationRequest(BaseModel):
    """Represents a single expression sent by the calculator page."""

    expression: str = Field(..., min_length=1, max_length=256, description="Arithmetic expression as a string")


class OperationResult(BaseModel):
    """Represents the result of an evaluated expression."""

    expression: str = Field(..., description="Original arithmetic expression")
    result: float = Field(..., description="Evaluated numeric result of the expression")
    display: str = Field(..., description="Result formatted for the calculator display")


class OperationError(BaseModel):
    """Represents an expression that could not be evaluated."""

    expression: str = Field(..., description="Original arithmetic expression")
    error: str = Field(..., description="Reason the expression was rejected")
    display: str = Field(default=ERROR_INDICATOR, description="Text shown on the calculator display")
