"""
Teal Expression Parser

Precedence climbing (Pratt) parser for expressions. Works on the statement
Parser's token cursor and is called back recursively by it.
"""

from enum import IntEnum
from typing import TYPE_CHECKING

from .tokens import TokenType
from .ast import (
    Expr, BinaryExpr, UnaryExpr, LetGetExpr, LetSetExpr, CallExpr, LiteralExpr,
    BinaryOperator, UnaryOperator,
)
from .errors import UnexpectedTokenError, ExpectedPrimaryError, ParseEOFError

if TYPE_CHECKING:
    from .parser import Parser


class Precedence(IntEnum):
    """Binding power, lowest to highest."""
    NONE = 0
    ASSIGN = 1       # =
    OR = 2
    AND = 3
    EQUALITY = 4     # == !=
    COMPARISON = 5   # < <= > >=
    TERM = 6         # + -
    FACTOR = 7       # * /
    UNARY = 8        # ! -
    CALL = 9         # ()
    PRIMARY = 10


PRECEDENCE = {
    TokenType.EQUAL: Precedence.ASSIGN,
    TokenType.EQUAL_EQUAL: Precedence.EQUALITY,
    TokenType.BANG_EQUAL: Precedence.EQUALITY,
    TokenType.LESS: Precedence.COMPARISON,
    TokenType.LESS_EQUAL: Precedence.COMPARISON,
    TokenType.GREATER: Precedence.COMPARISON,
    TokenType.GREATER_EQUAL: Precedence.COMPARISON,
    TokenType.PLUS: Precedence.TERM,
    TokenType.MINUS: Precedence.TERM,
    TokenType.STAR: Precedence.FACTOR,
    TokenType.SLASH: Precedence.FACTOR,
    TokenType.BANG: Precedence.UNARY,
    TokenType.LPAREN: Precedence.CALL,
    TokenType.DOT: Precedence.CALL,
}

BINARY_TOKENS = frozenset({
    TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL,
    TokenType.LESS, TokenType.LESS_EQUAL,
    TokenType.GREATER, TokenType.GREATER_EQUAL,
    TokenType.PLUS, TokenType.MINUS,
    TokenType.STAR, TokenType.SLASH,
})

PRIMARY_TOKENS = frozenset({
    TokenType.NUMBER, TokenType.STRING, TokenType.TRUE, TokenType.FALSE,
    TokenType.IDENTIFIER,
})


def get_precedence(token_type: TokenType) -> Precedence:
    """Get the infix precedence of a token type."""
    return PRECEDENCE.get(token_type, Precedence.NONE)


def parse(parser: 'Parser') -> Expr:
    """Parse a full expression."""
    return parse_expr(parser, Precedence.NONE)


def parse_expr(parser: 'Parser', precedence: Precedence) -> Expr:
    """Parse an expression whose operators all bind tighter than precedence."""
    expr = parse_prefix(parser)

    while not parser.is_at_end():
        if precedence >= get_precedence(parser.peek().type):
            break
        expr = parse_infix(parser, expr)

    return expr


def parse_prefix(parser: 'Parser') -> Expr:
    token = parser.peek()

    if token.type in PRIMARY_TOKENS:
        return parse_primary(parser)
    if token.type in (TokenType.BANG, TokenType.MINUS):
        return parse_unary(parser)
    if token.type == TokenType.EOF:
        raise ParseEOFError(token.line)
    raise ExpectedPrimaryError(token.type, token.line)


def parse_infix(parser: 'Parser', left: Expr) -> Expr:
    token = parser.peek()

    if token.type in BINARY_TOKENS:
        return parse_binary(parser, left)
    if token.type == TokenType.LPAREN:
        return parse_call(parser, left)
    raise UnexpectedTokenError(token.type, token.line)


def parse_primary(parser: 'Parser') -> Expr:
    token = parser.consume()

    if token.type == TokenType.NUMBER:
        return LiteralExpr.number(parse_number(token.lexeme), token.line)
    if token.type == TokenType.STRING:
        return LiteralExpr.string(token.lexeme, token.line)
    if token.type == TokenType.TRUE:
        return LiteralExpr.true(token.line)
    if token.type == TokenType.FALSE:
        return LiteralExpr.false(token.line)
    if token.type == TokenType.IDENTIFIER:
        # Assignment to an existing binding
        if parser.match(TokenType.EQUAL):
            return LetSetExpr(token.lexeme, parser.expression(), token.line)
        return LetGetExpr(token.lexeme, token.line)

    raise ExpectedPrimaryError(token.type, token.line)


def parse_number(lexeme: str):
    """Number lexemes without a fractional part stay integers."""
    if '.' in lexeme:
        return float(lexeme)
    return int(lexeme)


def parse_binary(parser: 'Parser', left: Expr) -> Expr:
    op_token = parser.consume()
    operator = BinaryOperator.from_token(op_token.type, op_token.line)
    # Same precedence on the right keeps the operator left-associative
    right = parse_expr(parser, get_precedence(op_token.type))
    return BinaryExpr(left, operator, right, op_token.line)


def parse_unary(parser: 'Parser') -> Expr:
    op_token = parser.consume()
    operator = UnaryOperator.from_token(op_token.type, op_token.line)
    operand = parse_expr(parser, Precedence.UNARY)
    return UnaryExpr(operator, operand, op_token.line)


def parse_call(parser: 'Parser', callee: Expr) -> Expr:
    """Parse a parenthesized argument list following callee."""
    paren = parser.expect(TokenType.LPAREN)

    arguments = []
    while not parser.check(TokenType.RPAREN) and not parser.is_at_end():
        arguments.append(parser.expression())
        if not parser.match(TokenType.COMMA):
            break

    parser.expect(TokenType.RPAREN)
    return CallExpr(callee, arguments, paren.line)
