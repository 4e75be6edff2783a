"""
Teal Compiler Errors

Defines exception classes for lexing, parsing, code generation and
execution errors. Every failure kind has its own class so callers can tell
them apart.
"""

from typing import Optional


class TealError(Exception):
    """Base exception for all Teal errors."""

    def __init__(self, message: str, line: Optional[int] = None,
                 filename: Optional[str] = None):
        self.message = message
        self.line = line
        self.filename = filename
        super().__init__(self._format_message())

    def set_filename(self, filename: str) -> None:
        """Attach the source file name and refresh the message."""
        self.filename = filename
        self.args = (self._format_message(),)

    def _format_message(self) -> str:
        """Format the error message with location information."""
        parts = []

        if self.filename:
            parts.append(self.filename)

        if self.line is not None:
            if parts:
                parts.append(str(self.line))
            else:
                parts.append(f"line {self.line}")

        if parts:
            return f"{':'.join(parts)}: {self.message}"
        return self.message


class SyntaxError(TealError):
    """Raised for syntax errors during lexing or parsing."""
    pass


# =============================================================================
# Lexical errors
# =============================================================================

class LexError(SyntaxError):
    """Raised by the lexer."""
    pass


class UnexpectedCharError(LexError):
    """Raised for a character that starts no token."""

    def __init__(self, char: str, line: Optional[int] = None):
        self.char = char
        super().__init__(f"Unexpected character: {char!r}", line)


class UnterminatedStringError(LexError):
    """Raised when the input ends inside a string literal."""

    def __init__(self, line: Optional[int] = None):
        super().__init__("Unterminated string", line)


class UnexpectedEOFError(LexError):
    """Raised when the input ends where another character was expected."""

    def __init__(self, line: Optional[int] = None):
        super().__init__("Unexpected end of input", line)


# =============================================================================
# Parse errors
# =============================================================================

class ParseError(SyntaxError):
    """Raised by the parser."""
    pass


class ExpectedTokenError(ParseError):
    """Raised when `expect` finds a different token type."""

    def __init__(self, expected, actual, line: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected.name}, got {actual.name}", line)


class UnexpectedTokenError(ParseError):
    """Raised for a token with no infix rule."""

    def __init__(self, token_type, line: Optional[int] = None):
        self.token_type = token_type
        super().__init__(f"Unexpected token {token_type.name}", line)


class ExpectedPrimaryError(ParseError):
    """Raised for a token that cannot start an expression."""

    def __init__(self, token_type, line: Optional[int] = None):
        self.token_type = token_type
        super().__init__(
            f"Expected primary expression, got {token_type.name}", line)


class ParseEOFError(ParseError):
    """Raised when the parser runs out of tokens."""

    def __init__(self, line: Optional[int] = None):
        super().__init__("Unexpected end of input", line)


# =============================================================================
# Generation errors
# =============================================================================

class CompileError(TealError):
    """Raised for semantic errors during code generation."""
    pass


class NameError(CompileError):
    """Raised for undefined name errors."""
    pass


class CalleeError(CompileError):
    """Raised when a call's callee is not a plain function name."""
    pass


class ArgumentError(CompileError):
    """Raised for function argument errors."""
    pass


class TypeError(CompileError):
    """Raised for type-related errors."""
    pass


# =============================================================================
# Module text and execution errors
# =============================================================================

class ReadError(TealError):
    """Raised when module text cannot be read back."""
    pass


class RuntimeError(TealError):
    """Raised for errors during module execution."""
    pass
