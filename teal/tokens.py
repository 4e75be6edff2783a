"""
Teal Token Definitions

Defines all token types and the Token class for lexical analysis.
"""

from enum import Enum, auto
from dataclasses import dataclass


class TokenType(Enum):
    """All token types in Teal."""

    # Delimiters
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    COMMA = auto()         # ,
    DOT = auto()           # .
    SEMICOLON = auto()     # ;

    # Operators
    MINUS = auto()         # -
    PLUS = auto()          # +
    STAR = auto()          # *
    SLASH = auto()         # /

    BANG = auto()          # !
    BANG_EQUAL = auto()    # !=
    EQUAL = auto()         # =
    EQUAL_EQUAL = auto()   # ==
    LESS = auto()          # <
    LESS_EQUAL = auto()    # <=
    GREATER = auto()       # >
    GREATER_EQUAL = auto() # >=

    # Literals
    STRING = auto()
    NUMBER = auto()
    TRUE = auto()
    FALSE = auto()

    # Keywords
    LET = auto()
    PRINT = auto()
    IF = auto()
    ELSE = auto()
    FUN = auto()
    IDENTIFIER = auto()

    # Special
    EOF = auto()


# Keyword mapping
KEYWORDS = {
    'fun': TokenType.FUN,
    'let': TokenType.LET,
    'print': TokenType.PRINT,
    'if': TokenType.IF,
    'else': TokenType.ELSE,
    'true': TokenType.TRUE,
    'false': TokenType.FALSE,
}


@dataclass(frozen=True)
class Span:
    """Source position of a token: [start, end) offsets and line."""

    start: int
    end: int
    line: int

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Token:
    """Represents a single token from the source code."""

    type: TokenType
    lexeme: str
    span: Span

    def __repr__(self) -> str:
        return (f"Token({self.type.name}, {self.lexeme!r}, "
                f"{self.span.start}..{self.span.end}, line={self.span.line})")

    @property
    def line(self) -> int:
        return self.span.line

    def is_keyword(self) -> bool:
        """Check if this token is a keyword."""
        return self.type in KEYWORDS.values()

    def is_literal(self) -> bool:
        """Check if this token is a literal value."""
        return self.type in (TokenType.NUMBER, TokenType.STRING,
                             TokenType.TRUE, TokenType.FALSE)
