"""Parse and evaluate calculator expressions safely."""
import math
import operator
from typing import Callable, Dict, List, Tuple

from calculator_site.common.exceptions import DivisionByZeroError, InvalidExpressionError


# Type alias for binary operator functions (taking two floats, returning a float)
OperatorFn = Callable[[float, float], float]

# Mapping of binary operator symbols to (precedence, function)
OPERATORS: Dict[str, Tuple[int, OperatorFn]] = {
    "+": (1, operator.add),
    "-": (1, operator.sub),
    "*": (2, operator.mul),
    "/": (2, operator.truediv),
}

# Unary sign operators, emitted by to_rpn with a "u" prefix
UNARY_OPERATORS: Dict[str, Callable[[float], float]] = {
    "u-": operator.neg,
    "u+": operator.pos,
}
UNARY_PRECEDENCE = 3

# Keypad glyphs accepted in place of the ASCII operators
GLYPHS: Dict[str, str] = {
    "×": "*",
    "÷": "/",
    "−": "-",
}

PARENTHESES = ("(", ")")


class ExpressionParser:
    """
    Parse and evaluate arithmetic expressions typed on the calculator keypad.

    Design constraints:
        - No eval(), no dynamic code execution
        - Safe, deterministic computation

    Algorithm:
        1. Scan the expression character by character into tokens
        2. Convert to Reverse Polish Notation (RPN) using Shunting-yard
        3. Evaluate RPN using a stack

    Unary signs are told apart from binary operators by position: a "+" or "-"
    at the start, after another operator or after "(" is a sign.

    Examples:
        - Infix expression (keypad input): 3+4×2
        - Corresponding Reverse Polish Notation (RPN): 3 4 2 * +
    """

    @staticmethod
    def tokenize(expr: str) -> List[str]:
        """
        Split an arithmetic expression into tokens.

        Whitespace is optional (e.g. "3+4*2" and "3 + 4 * 2" give the same tokens).

        :param str expr: Arithmetic expression as a string

        :return: List of tokens
        :rtype: List[str]
        :raises InvalidExpressionError: If a character or number is not recognised
        """
        tokens: List[str] = []
        length = len(expr)
        i = 0
        while i < length:
            char = GLYPHS.get(expr[i], expr[i])

            if char.isspace():
                i += 1
                continue

            if char.isdigit() or char == ".":
                start = i
                while i < length and (expr[i].isdigit() or expr[i] == "."):
                    i += 1
                # Optional exponent, as produced when formatting large results
                if i < length and expr[i] in "eE":
                    j = i + 1
                    if j < length and expr[j] in "+-":
                        j += 1
                    if j < length and expr[j].isdigit():
                        i = j
                        while i < length and expr[i].isdigit():
                            i += 1
                number = expr[start:i]
                if not ExpressionParser._is_number(number):
                    raise InvalidExpressionError(f"Invalid number {number!r} in expression: {expr}", expr)
                tokens.append(number)
                continue

            if char in OPERATORS or char in PARENTHESES:
                tokens.append(char)
                i += 1
                continue

            raise InvalidExpressionError(f"Unexpected character {expr[i]!r} in expression: {expr}", expr)

        return tokens

    @staticmethod
    def _is_number(token: str) -> bool:
        """
        Determine if a token represents a finite numeric value.

        :param str token: Token string

        :return: True if token converts to a finite float, else False
        :rtype: bool
        """
        try:
            return math.isfinite(float(token))
        except ValueError:
            return False

    @staticmethod
    def _precedence(token: str) -> int:
        if token in UNARY_OPERATORS:
            return UNARY_PRECEDENCE
        return OPERATORS[token][0]

    @staticmethod
    def to_rpn(tokens: List[str]) -> List[str]:
        """
        Convert a list of tokens into Reverse Polish Notation (RPN) using the Shunting-yard algorithm.

        :param List[str] tokens: List of arithmetic tokens

        :return: List of tokens in RPN order
        :rtype: List[str]
        :raises InvalidExpressionError: On unknown tokens or mismatched parentheses
        """
        output: List[str] = []
        stack: List[str] = []
        previous = None

        for token in tokens:
            if ExpressionParser._is_number(token):
                output.append(token)
            elif token == "(":
                stack.append(token)
            elif token == ")":
                while stack and stack[-1] != "(":
                    output.append(stack.pop())
                if not stack:
                    raise InvalidExpressionError("Mismatched parentheses")
                stack.pop()
            elif token in OPERATORS:
                if token in "+-" and (previous is None or previous in OPERATORS or previous == "("):
                    # Sign operators are right associative: nothing is popped
                    stack.append(f"u{token}")
                else:
                    prec = ExpressionParser._precedence(token)
                    while stack and stack[-1] != "(" and ExpressionParser._precedence(stack[-1]) >= prec:
                        output.append(stack.pop())
                    stack.append(token)
            else:
                raise InvalidExpressionError(f"Unknown token: {token!r}")
            previous = token

        # Append remaining operators in reverse order (stack top first)
        while stack:
            token = stack.pop()
            if token == "(":
                raise InvalidExpressionError("Mismatched parentheses")
            output.append(token)
        return output

    @staticmethod
    def evaluate(expr: str) -> float:
        """
        Evaluate an arithmetic expression safely.

        :param str expr: Arithmetic expression string

        :return: Computed result as float
        :rtype: float
        :raises InvalidExpressionError: If expression is invalid or malformed
        :raises DivisionByZeroError: If the expression divides by zero
        """
        tokens: List[str] = ExpressionParser.tokenize(expr)

        if not tokens:
            raise InvalidExpressionError("Empty expression", expr)

        if tokens[-1] in OPERATORS:
            raise InvalidExpressionError(f"Expression cannot end with an operator: {expr}", expr)

        try:
            rpn: List[str] = ExpressionParser.to_rpn(tokens)
        except InvalidExpressionError as exc:
            raise InvalidExpressionError(f"{exc}: {expr}", expr) from exc

        stack: List[float] = []
        for token in rpn:
            if ExpressionParser._is_number(token):
                stack.append(float(token))
                continue

            if token in UNARY_OPERATORS:
                if not stack:
                    raise InvalidExpressionError(f"Invalid expression (not enough operands): {expr}", expr)
                value = UNARY_OPERATORS[token](stack.pop())
            else:
                # Binary operator requires two operands
                if len(stack) < 2:
                    raise InvalidExpressionError(f"Invalid expression (not enough operands): {expr}", expr)
                b: float = stack.pop()
                a: float = stack.pop()
                if token == "/" and b == 0:
                    raise DivisionByZeroError(f"Division by zero: {expr}", expr)
                value = OPERATORS[token][1](a, b)

            if not math.isfinite(value):
                raise InvalidExpressionError(f"Result out of range: {expr}", expr)
            stack.append(value)

        if not stack:
            raise InvalidExpressionError(f"Invalid expression (no operands): {expr}", expr)
        if len(stack) != 1:
            raise InvalidExpressionError(f"Invalid expression (remaining operands): {expr}", expr)

        return stack[0]

    @staticmethod
    def format_result(value: float) -> str:
        """
        Format a result the way the calculator displays it.

        Integral values lose their decimal part, other values keep
        at most 12 significant digits so float noise is hidden.

        :param float value: Evaluated result

        :return: Display text
        :rtype: str
        """
        if value == 0:
            # Also folds -0.0
            return "0"
        if float(value).is_integer() and abs(value) < 1e15:
            return str(int(value))
        return format(value, ".12g")
