"""Error classes and helpers"""

__all__ = [
    "TemplateError",
    "ParseError",
    "ExecError",
    "RegistrationError",
    "FuncError",
]


class TemplateError(Exception):
    """Base class for errors raised by stencil."""


class FuncError(TemplateError):
    """Value-level failure raised by a builtin function.

    Raised when a builtin receives operands it cannot handle, such as
    incomparable types or an out of range index.
    """


class RegistrationError(TemplateError, TypeError):
    """A function could not be registered into a scope."""


def _located(message, name, line, column):
    """Prefix a message with the template location."""
    if name is None:
        return f"template: {message}"
    if line is None:
        return f"template: {name}: {message}"
    return f"template: {name}:{line}:{column}: {message}"


class ParseError(TemplateError):
    """Exception raised for parsing errors.

    Args:
        message: (str) Error description
        name: (str | None) Template name
        line: (int | None) Line where the error occurred
        column: (int | None) Column where the error occurred

    Attributes:
        message: (str) Error description without location
        name: (str | None) Template name
        line: (int | None) 1-based line number
        column: (int | None) 1-based column number
    """

    def __init__(self, message, name=None, line=None, column=None):
        self.message = message
        self.name = name
        self.line = line
        self.column = column
        super().__init__(_located(message, name, line, column))


class ExecError(TemplateError):
    """Exception raised while executing a template.

    Attributes:
        message: (str) Error description without location
        name: (str | None) Template name
        line: (int | None) 1-based line of the failing action
        column: (int | None) 1-based column of the failing action
        ident: (str | None) Identifier of the failing call, if any
    """

    def __init__(self, message, name=None, line=None, column=None, ident=None):
        self.message = message
        self.name = name
        self.line = line
        self.column = column
        self.ident = ident
        text = message
        if ident is not None:
            text = f"executing {name!r} at <{ident}>: {message}"
        super().__init__(_located(text, name, line, column))
