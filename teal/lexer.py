"""
Teal Lexer

Tokenizes Teal source code into a stream of tokens.
"""

from typing import List, Optional
from .tokens import Token, TokenType, Span, KEYWORDS
from .errors import UnexpectedCharError, UnterminatedStringError, UnexpectedEOFError


SINGLE_CHAR_TOKENS = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    ';': TokenType.SEMICOLON,
}

# first char -> (type without '=', type with '=')
TWO_CHAR_TOKENS = {
    '!': (TokenType.BANG, TokenType.BANG_EQUAL),
    '=': (TokenType.EQUAL, TokenType.EQUAL_EQUAL),
    '<': (TokenType.LESS, TokenType.LESS_EQUAL),
    '>': (TokenType.GREATER, TokenType.GREATER_EQUAL),
}

WHITESPACE = ' \t\n\r'


def is_digit(c: str) -> bool:
    return '0' <= c <= '9'


class Lexer:
    """Lexical analyzer for Teal source code."""

    def __init__(self, source: str):
        """
        Initialize the lexer.

        Args:
            source: Teal source code to tokenize
        """
        self.source = source
        self.start = 0      # Start of current token
        self.current = 0    # Current position
        self.line = 1       # Current line number

    def tokenize(self) -> List[Token]:
        """
        Tokenize the entire source code.

        Returns:
            List of tokens, always terminated by a single EOF token
        """
        tokens = []

        while True:
            token = self.read_token()
            if token is None:
                continue
            tokens.append(token)
            if token.type == TokenType.EOF:
                return tokens

    def read_token(self) -> Optional[Token]:
        """
        Scan the next token.

        Returns:
            The next token, the EOF token at the end of the source, or None
            when a comment was skipped instead
        """
        self.skip_whitespace()

        if self.is_at_end():
            return Token(TokenType.EOF, "",
                         Span(len(self.source), len(self.source), self.line))

        self.start = self.current
        c = self.advance()

        if c.isalpha():
            return self.identifier()
        if is_digit(c):
            return self.number()

        if c in SINGLE_CHAR_TOKENS:
            return self.make_token(SINGLE_CHAR_TOKENS[c])

        if c == '/':
            # Line comment
            if self.check('/'):
                while not self.is_at_end() and self.peek() != '\n':
                    self.advance()
                return None
            return self.make_token(TokenType.SLASH)

        if c in TWO_CHAR_TOKENS:
            single, double = TWO_CHAR_TOKENS[c]
            return self.make_token(double if self.match('=') else single)

        if c == '"':
            return self.string()

        raise UnexpectedCharError(c, self.line)

    # =========================================================================
    # Token scanners
    # =========================================================================

    def identifier(self) -> Token:
        """Scan an identifier or keyword."""
        while not self.is_at_end() and self.peek().isalnum():
            self.advance()

        text = self.source[self.start:self.current]
        return self.make_token(KEYWORDS.get(text, TokenType.IDENTIFIER))

    def number(self) -> Token:
        """Scan a number literal."""
        while is_digit(self.peek()):
            self.advance()

        # Fractional part, only when a digit follows the '.'
        if self.peek() == '.' and is_digit(self.peek_next()):
            self.advance()
            while is_digit(self.peek()):
                self.advance()

        return self.make_token(TokenType.NUMBER)

    def string(self) -> Token:
        """Scan a string literal. The token carries the text between the quotes."""
        start = self.current

        while not self.is_at_end() and self.peek() != '"':
            self.advance()

        if self.is_at_end():
            raise UnterminatedStringError(self.line)

        end = self.current
        # Consume closing quote
        self.advance()

        return Token(TokenType.STRING, self.source[start:end],
                     Span(start, end, self.line))

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def make_token(self, type: TokenType) -> Token:
        """Build a token spanning from start to the current position."""
        lexeme = self.source[self.start:self.current]
        return Token(type, lexeme, Span(self.start, self.current, self.line))

    def skip_whitespace(self) -> None:
        while not self.is_at_end() and self.peek() in WHITESPACE:
            self.advance()

    def advance(self) -> str:
        """Consume and return the current character."""
        if self.is_at_end():
            raise UnexpectedEOFError(self.line)

        c = self.source[self.current]
        self.current += 1
        if c == '\n':
            self.line += 1
        return c

    def peek(self) -> str:
        """Return the current character without consuming it."""
        if self.is_at_end():
            return '\0'
        return self.source[self.current]

    def peek_next(self) -> str:
        """Return the next character without consuming it."""
        if self.current + 1 >= len(self.source):
            return '\0'
        return self.source[self.current + 1]

    def check(self, expected: str) -> bool:
        """
        Check the current character against expected.

        A lookahead past the end of the source is an error: an operator can
        never be the last character of a program.
        """
        if self.is_at_end():
            raise UnexpectedEOFError(self.line)
        return self.source[self.current] == expected

    def match(self, expected: str) -> bool:
        """Consume the current character if it matches expected."""
        if not self.check(expected):
            return False
        self.advance()
        return True

    def is_at_end(self) -> bool:
        """Check if we've reached the end of the source."""
        return self.current >= len(self.source)
