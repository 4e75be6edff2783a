"""
Teal Parser Tests

Tests for the statement parser and the precedence climbing expression
parser.
"""

import pytest
from teal import parse, lex, Parser
from teal.ast import *
from teal.tokens import TokenType
from teal.errors import (
    ParseError, ExpectedTokenError, UnexpectedTokenError,
    ExpectedPrimaryError, ParseEOFError,
)


def num(value):
    return LiteralExpr.number(value)


def var(name):
    return LetGetExpr(name)


def stmt(source):
    """Parse source holding exactly one statement."""
    program = parse(source)
    assert len(program.statements) == 1
    return program.statements[0]


class TestParserLiterals:
    """Primary expression tests."""

    def test_integer(self):
        assert stmt("42;") == num(42)

    def test_float(self):
        node = stmt("2.5;")
        assert node == num(2.5)
        assert isinstance(node.value, float)

    def test_string(self):
        assert stmt('"hi";') == LiteralExpr.string("hi")

    def test_booleans(self):
        assert stmt("true;") == LiteralExpr.true()
        assert stmt("false;") == LiteralExpr.false()

    def test_identifier(self):
        assert stmt("x;") == var("x")

    def test_semicolon_is_optional(self):
        assert parse("1 2").statements == [num(1), num(2)]


class TestParserPrecedence:
    """Operator precedence and associativity tests."""

    def test_factor_binds_tighter_than_term(self):
        assert stmt("2 + 3 * 4;") == BinaryExpr(
            num(2), BinaryOperator.ADD,
            BinaryExpr(num(3), BinaryOperator.MULTIPLY, num(4)))

    def test_left_associative(self):
        assert stmt("1 - 2 - 3;") == BinaryExpr(
            BinaryExpr(num(1), BinaryOperator.SUBTRACT, num(2)),
            BinaryOperator.SUBTRACT, num(3))

    def test_comparison_below_term(self):
        assert stmt("a + 1 < b;") == BinaryExpr(
            BinaryExpr(var("a"), BinaryOperator.ADD, num(1)),
            BinaryOperator.LESS, var("b"))

    def test_equality_below_comparison(self):
        assert stmt("a < b == c > d;") == BinaryExpr(
            BinaryExpr(var("a"), BinaryOperator.LESS, var("b")),
            BinaryOperator.EQUAL,
            BinaryExpr(var("c"), BinaryOperator.GREATER, var("d")))

    def test_unary_binds_tightest(self):
        assert stmt("-a * b;") == BinaryExpr(
            UnaryExpr(UnaryOperator.NEGATE, var("a")),
            BinaryOperator.MULTIPLY, var("b"))

    def test_not(self):
        assert stmt("!x;") == UnaryExpr(UnaryOperator.NOT, var("x"))

    @pytest.mark.parametrize("source,operator", [
        ("a == b;", BinaryOperator.EQUAL),
        ("a != b;", BinaryOperator.NOT_EQUAL),
        ("a < b;", BinaryOperator.LESS),
        ("a <= b;", BinaryOperator.LESS_EQUAL),
        ("a > b;", BinaryOperator.GREATER),
        ("a >= b;", BinaryOperator.GREATER_EQUAL),
        ("a / b;", BinaryOperator.DIVIDE),
    ])
    def test_binary_operators(self, source, operator):
        node = stmt(source)
        assert node == BinaryExpr(var("a"), operator, var("b"))


class TestParserStatements:
    """Statement form tests."""

    def test_let(self):
        assert stmt("let x = 10;") == LetAssignExpr("x", num(10))

    def test_bare_let_defaults_to_zero(self):
        assert stmt("let x;") == LetAssignExpr("x", num(0))

    def test_assignment(self):
        assert stmt("x = x + 1;") == LetSetExpr(
            "x", BinaryExpr(var("x"), BinaryOperator.ADD, num(1)))

    def test_print(self):
        assert stmt("print 1 + 2;") == PrintExpr(
            BinaryExpr(num(1), BinaryOperator.ADD, num(2)))

    def test_block(self):
        assert stmt("{ 1; 2; }") == BlockExpr([num(1), num(2)])

    def test_if_else(self):
        node = stmt("if 2 == 2 { print 1; } else { print 0; }")
        assert node == IfElseExpr(
            BinaryExpr(num(2), BinaryOperator.EQUAL, num(2)),
            BlockExpr([PrintExpr(num(1))]),
            BlockExpr([PrintExpr(num(0))]))

    def test_if_without_else(self):
        node = stmt("if x { print 1; }")
        assert node.else_branch is None

    def test_if_with_statement_branch(self):
        node = stmt("if x print 1; else print 2;")
        assert node.then_branch == PrintExpr(num(1))
        assert node.else_branch == PrintExpr(num(2))

    def test_function(self):
        node = stmt("fun sum(a, b) { a + b; }")
        assert node == FunctionDefExpr(
            "sum", ["a", "b"],
            [BinaryExpr(var("a"), BinaryOperator.ADD, var("b"))])

    def test_function_without_params(self):
        assert stmt("fun f() { 1; }") == FunctionDefExpr("f", [], [num(1)])

    def test_call(self):
        assert stmt("sum(4, 5) + 2;") == BinaryExpr(
            CallExpr(var("sum"), [num(4), num(5)]),
            BinaryOperator.ADD, num(2))

    def test_call_without_arguments(self):
        assert stmt("f();") == CallExpr(var("f"), [])

    def test_lines_recorded(self):
        program = parse("let a = 1;\n\nprint a;")
        assert [s.line for s in program.statements] == [1, 3]


class TestParserErrors:
    """Parse error tests."""

    def test_missing_closing_brace(self):
        with pytest.raises(ExpectedTokenError) as exc_info:
            parse("{ 1;")
        assert exc_info.value.expected == TokenType.RBRACE
        assert exc_info.value.actual == TokenType.EOF

    def test_let_requires_name(self):
        with pytest.raises(ExpectedTokenError):
            parse("let 1 = 2;")

    def test_bare_let_requires_semicolon(self):
        with pytest.raises(ExpectedTokenError):
            parse("let x let y;")

    def test_expression_cannot_start_with_operator(self):
        with pytest.raises(ExpectedPrimaryError):
            parse("* 2;")

    def test_no_parenthesized_grouping(self):
        with pytest.raises(ExpectedPrimaryError):
            parse("(1 + 2) * 3;")

    def test_dot_has_no_infix_rule(self):
        with pytest.raises(UnexpectedTokenError):
            parse("a.b;")

    def test_end_of_input_in_expression(self):
        with pytest.raises(ParseEOFError):
            parse("print")

    def test_errors_are_parse_errors(self):
        with pytest.raises(ParseError):
            parse("fun (a) { }")

    def test_parser_on_raw_tokens(self):
        program = Parser(lex("1;")).parse()
        assert program == Program([num(1)])
