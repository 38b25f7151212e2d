"""Exceptions raised by the evaluator and the build pipeline."""
from typing import Optional


class ExpressionError(ValueError):
    """Base class for arithmetic expressions that cannot be evaluated."""

    def __init__(self, message: str, expression: Optional[str] = None) -> None:
        super().__init__(message)
        self.expression = expression


class InvalidExpressionError(ExpressionError):
    """Malformed expression: bad token, missing operand, unbalanced parentheses."""


class DivisionByZeroError(ExpressionError):
    """Expression divides by zero."""


class PipelineError(RuntimeError):
    """Base class for build pipeline failures."""


class StageFailedError(PipelineError):
    """A pipeline stage command could not start or exited with a non-zero code."""

    def __init__(self, message: str, returncode: Optional[int] = None) -> None:
        super().__init__(message)
        self.returncode = returncode


class CredentialsError(PipelineError):
    """A credential reference could not be resolved."""
