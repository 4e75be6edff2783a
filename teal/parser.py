"""
Teal Parser

Recursive descent parser for statements. Expressions are handed to the
precedence climbing parser in expr_parser.
"""

from typing import List

from .tokens import Token, TokenType
from .ast import (
    Expr, Program, BlockExpr, LetAssignExpr, PrintExpr, IfElseExpr,
    FunctionDefExpr, LiteralExpr,
)
from .errors import ExpectedTokenError, ParseEOFError
from . import expr_parser


class Parser:
    """Recursive descent parser for Teal."""

    def __init__(self, tokens: List[Token]):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
        """
        self.tokens = tokens
        self.current = 0

    def parse(self) -> Program:
        """
        Parse the token stream into an AST.

        Returns:
            Program AST node
        """
        statements = []

        while not self.is_at_end():
            statements.append(self.declaration())

        return Program(statements)

    # =========================================================================
    # Declarations
    # =========================================================================

    def declaration(self) -> Expr:
        """Parse one top-level construct."""
        token_type = self.peek().type

        if token_type == TokenType.LET:
            return self.let_declaration()
        if token_type == TokenType.FUN:
            return self.function_declaration()
        if token_type == TokenType.PRINT:
            return self.print_statement()
        if token_type == TokenType.IF:
            return self.if_statement()
        if token_type == TokenType.LBRACE:
            return self.block()
        return self.expression_statement()

    def let_declaration(self) -> LetAssignExpr:
        """Parse a variable declaration; a bare declaration initializes to 0."""
        keyword = self.expect(TokenType.LET)
        name = self.identifier()

        if self.match(TokenType.EQUAL):
            initializer = self.expression_statement()
        else:
            self.expect(TokenType.SEMICOLON)
            initializer = LiteralExpr.number(0, keyword.line)

        return LetAssignExpr(name, initializer, keyword.line)

    def function_declaration(self) -> FunctionDefExpr:
        """Parse a function declaration."""
        keyword = self.expect(TokenType.FUN)
        name = self.identifier()

        self.expect(TokenType.LPAREN)
        params = self.parameters()
        self.expect(TokenType.RPAREN)

        self.expect(TokenType.LBRACE)
        body = self.block_body()

        return FunctionDefExpr(name, params, body, keyword.line)

    def parameters(self) -> List[str]:
        """Parse a comma-separated parameter list."""
        params = []

        while not self.check(TokenType.RPAREN) and not self.is_at_end():
            params.append(self.identifier())
            if not self.match(TokenType.COMMA):
                break

        return params

    # =========================================================================
    # Statements
    # =========================================================================

    def print_statement(self) -> PrintExpr:
        keyword = self.expect(TokenType.PRINT)
        return PrintExpr(self.expression_statement(), keyword.line)

    def if_statement(self) -> IfElseExpr:
        """Parse an if statement."""
        keyword = self.expect(TokenType.IF)

        condition = self.expression()
        then_branch = self.declaration()

        else_branch = None
        if self.match(TokenType.ELSE):
            else_branch = self.declaration()

        return IfElseExpr(condition, then_branch, else_branch, keyword.line)

    def block(self) -> BlockExpr:
        """Parse a bare block of statements."""
        brace = self.expect(TokenType.LBRACE)
        return BlockExpr(self.block_body(), brace.line)

    def block_body(self) -> List[Expr]:
        """Parse declarations up to and including the closing brace."""
        body = []

        while not self.check(TokenType.RBRACE) and not self.is_at_end():
            body.append(self.declaration())

        self.expect(TokenType.RBRACE)
        return body

    def expression_statement(self) -> Expr:
        """Parse an expression with an optional trailing ';'."""
        expr = self.expression()
        self.match(TokenType.SEMICOLON)
        return expr

    def expression(self) -> Expr:
        return expr_parser.parse(self)

    def identifier(self) -> str:
        return self.expect(TokenType.IDENTIFIER).lexeme

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def peek(self) -> Token:
        """Return the current token."""
        if self.current >= len(self.tokens):
            raise ParseEOFError(self.tokens[-1].line if self.tokens else None)
        return self.tokens[self.current]

    def consume(self) -> Token:
        """Consume and return the current token."""
        token = self.peek()
        self.current += 1
        return token

    def check(self, type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self.peek().type == type

    def match(self, type: TokenType) -> bool:
        """Consume the current token if it is of the given type."""
        if not self.check(type):
            return False
        self.consume()
        return True

    def expect(self, type: TokenType) -> Token:
        """Consume a token of the expected type or raise an error."""
        if self.check(type):
            return self.consume()

        token = self.peek()
        raise ExpectedTokenError(type, token.type, token.line)

    def is_at_end(self) -> bool:
        """Check if we've reached the EOF token."""
        return self.check(TokenType.EOF)
