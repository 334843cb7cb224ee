"""
Error types raised by rexpr.

Parse failures are SyntaxErrors carrying a file:line:column location,
quasiquote misuse is a ValueError and unrepresentable literals are
TypeErrors, so callers can catch either the package base class or the
familiar built-in family.
"""

from typing import Optional


class RExprError(Exception):
    """Base class for all rexpr errors."""
    pass


class UnparsableText(RExprError, SyntaxError):
    """Source text could not be tokenized or parsed."""

    def __init__(self, message: str, filename: str = "<input>",
                 line: Optional[int] = None, column: Optional[int] = None):
        if line is not None:
            text = f"{filename}:{line}:{column}: {message}"
        else:
            text = f"{filename}: {message}"
        super().__init__(text)
        self.message = message
        self.source_name = filename
        self.line = line
        self.column = column


class MalformedEscape(RExprError, ValueError):
    """An escape or splice marker was used with the wrong arity or in the wrong place."""
    pass


class UnsupportedLiteral(RExprError, TypeError):
    """A value cannot be represented as a Constant node."""
    pass


class EvaluationError(RExprError):
    """Evaluating a tree failed."""
    pass


class UnboundSymbolError(EvaluationError, NameError):
    """Name lookup found no binding for a symbol."""

    def __init__(self, name: str):
        super().__init__(f"object '{name}' not found")
        self.name = name


class MissingArgumentError(EvaluationError):
    """The missing-argument sentinel was evaluated."""

    def __init__(self, message: str = "argument is missing, with no default"):
        super().__init__(message)
