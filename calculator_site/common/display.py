"""Keypad state of the calculator page."""
from typing import Optional

from pydantic import BaseModel, Field

from calculator_site.common.exceptions import ExpressionError, InvalidExpressionError
from calculator_site.common.logger import logger
from calculator_site.common.operations import ERROR_INDICATOR
from calculator_site.common.parser import GLYPHS, OPERATORS, ExpressionParser

DIGITS = "0123456789"
DECIMAL_POINT = "."
CLEAR = "C"
DELETE = "DEL"
EQUALS = "="


class CalculatorDisplay(BaseModel):
    """
    In-memory state behind the calculator display.

    The state is transient: a new instance corresponds to a freshly loaded page.

    Behaviour:
        - Digits and the decimal point extend the current number.
        - An operator replaces a trailing operator, except "-" after "*" or "/" (a sign).
        - "=" replaces the expression by its result, or shows the error indicator.
        - After a result, a digit starts a new expression and an operator continues it.
        - After an error, any key starts from an empty display.
    """

    expression: str = Field(default="", description="Expression currently typed")
    result: Optional[float] = Field(default=None, description="Value of the last evaluation, until the next key")
    error: bool = Field(default=False, description="Whether the last evaluation failed")

    @property
    def text(self) -> str:
        """Text currently shown on the display."""
        if self.error:
            return ERROR_INDICATOR
        return self.expression or "0"

    def clear(self) -> None:
        """Reset the display to its initial state."""
        self.expression = ""
        self.result = None
        self.error = False

    def press(self, key: str) -> str:
        """
        Apply a single key press and return the new display text.

        :param str key: Digit, ".", operator, "C", "DEL" or "="

        :return: Display text after the key press
        :rtype: str
        :raises InvalidExpressionError: If the key is not on the keypad
        """
        key = GLYPHS.get(key, key)

        if key == CLEAR:
            self.clear()
        elif key == EQUALS:
            self._evaluate()
        elif key == DELETE:
            if self.error or self.result is not None:
                self.clear()
            else:
                self.expression = self.expression[:-1]
        elif (len(key) == 1 and key in DIGITS) or key == DECIMAL_POINT:
            if self.error:
                self.clear()
            self._append_digit(key)
        elif key in OPERATORS:
            if self.error:
                self.clear()
            self._append_operator(key)
        else:
            raise InvalidExpressionError(f"Unknown key: {key!r}")

        return self.text

    def _current_number(self) -> str:
        """Return the trailing number of the expression (may be empty)."""
        number = ""
        for char in reversed(self.expression):
            if char not in DIGITS and char != DECIMAL_POINT:
                break
            number = char + number
        return number

    def _append_digit(self, key: str) -> None:
        if self.result is not None:
            self.expression = ""
            self.result = None

        current = self._current_number()
        if key == DECIMAL_POINT:
            if DECIMAL_POINT in current:
                return
            if not current:
                key = "0."
        elif current == "0":
            # Drop the leading zero instead of producing "05"
            self.expression = self.expression[:-1]

        self.expression += key

    def _append_operator(self, key: str) -> None:
        self.result = None

        if not self.expression or self.expression == "-":
            # Only a sign may start an expression
            self.expression = "-" if key == "-" else ""
            return

        last = self.expression[-1]
        if last in OPERATORS:
            if key == "-" and last in "*/":
                self.expression += key
                return
            self.expression = self.expression.rstrip("".join(OPERATORS))

        self.expression += key

    def _evaluate(self) -> None:
        if self.error or self.result is not None or not self.expression:
            return

        try:
            value = ExpressionParser.evaluate(self.expression)
        except ExpressionError as exc:
            logger.debug(f"🧮❌ Display shows error for {self.expression!r}: {exc}")
            self.error = True
            return

        self.result = value
        self.expression = ExpressionParser.format_result(value)
