"""
Teal Lexer Tests

Tests for tokenization: token kinds, spans, comments and lexical errors.
"""

import pytest
from teal import Lexer, lex
from teal.tokens import Token, TokenType, Span
from teal.errors import (
    LexError, UnexpectedCharError, UnterminatedStringError, UnexpectedEOFError,
)


def types(source):
    return [t.type for t in lex(source)]


class TestLexerBasics:
    """Basic lexer functionality tests."""

    def test_empty_source(self):
        tokens = Lexer("").tokenize()
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        tokens = Lexer("   \t\n  ").tokenize()
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    @pytest.mark.parametrize("source", ["", "let x = 1;", "print 2 * 3;\n\n", "// only a comment\n"])
    def test_eof_span_is_empty_at_end(self, source):
        eof = lex(source)[-1]
        assert eof.type == TokenType.EOF
        assert eof.span.start == eof.span.end == len(source)
        assert len(eof.span) == 0

    def test_single_eof(self):
        tokens = lex("let a = 1; let b = 2;")
        assert [t.type for t in tokens].count(TokenType.EOF) == 1


class TestLexerTokens:
    """Operator, delimiter and keyword tests."""

    @pytest.mark.parametrize("source,expected", [
        ("(", TokenType.LPAREN),
        (")", TokenType.RPAREN),
        ("[", TokenType.LBRACKET),
        ("]", TokenType.RBRACKET),
        ("{", TokenType.LBRACE),
        ("}", TokenType.RBRACE),
        (",", TokenType.COMMA),
        (".", TokenType.DOT),
        (";", TokenType.SEMICOLON),
        ("+", TokenType.PLUS),
        ("-", TokenType.MINUS),
        ("*", TokenType.STAR),
        ("! ", TokenType.BANG),
        ("!=", TokenType.BANG_EQUAL),
        ("= ", TokenType.EQUAL),
        ("==", TokenType.EQUAL_EQUAL),
        ("< ", TokenType.LESS),
        ("<=", TokenType.LESS_EQUAL),
        ("> ", TokenType.GREATER),
        (">=", TokenType.GREATER_EQUAL),
        ("/ ", TokenType.SLASH),
    ])
    def test_operator(self, source, expected):
        assert types(source)[0] == expected

    @pytest.mark.parametrize("keyword,expected", [
        ("let", TokenType.LET),
        ("print", TokenType.PRINT),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("fun", TokenType.FUN),
        ("true", TokenType.TRUE),
        ("false", TokenType.FALSE),
    ])
    def test_keyword(self, keyword, expected):
        token = lex(keyword)[0]
        assert token.type == expected
        assert token.is_keyword()

    def test_identifier(self):
        token = lex("foo1")[0]
        assert token.type == TokenType.IDENTIFIER
        assert token.lexeme == "foo1"
        assert not token.is_keyword()

    def test_keyword_prefix_is_identifier(self):
        assert lex("letter")[0].type == TokenType.IDENTIFIER

    def test_statement(self):
        assert types("let x = 10;") == [
            TokenType.LET, TokenType.IDENTIFIER, TokenType.EQUAL,
            TokenType.NUMBER, TokenType.SEMICOLON, TokenType.EOF,
        ]


class TestLexerLiterals:
    """Number and string literal tests."""

    def test_integer(self):
        token = lex("42")[0]
        assert token.type == TokenType.NUMBER
        assert token.lexeme == "42"
        assert token.is_literal()

    def test_float(self):
        token = lex("3.14")[0]
        assert token.type == TokenType.NUMBER
        assert token.lexeme == "3.14"

    def test_dot_without_digit_is_not_fraction(self):
        assert types("1.x") == [
            TokenType.NUMBER, TokenType.DOT, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_string_lexeme_excludes_quotes(self):
        token = lex('"hello"')[0]
        assert token.type == TokenType.STRING
        assert token.lexeme == "hello"
        assert token.span == Span(1, 6, 1)

    def test_multiline_string(self):
        tokens = lex('"a\nb" x')
        assert tokens[0].lexeme == "a\nb"
        assert tokens[1].line == 2


class TestLexerSpans:
    """Span and line tracking tests."""

    def test_spans(self):
        tokens = lex("let x")
        assert tokens[0].span == Span(0, 3, 1)
        assert tokens[1].span == Span(4, 5, 1)

    def test_lexeme_matches_span(self):
        source = "fun add(a, b) { a + b; }"
        for token in lex(source)[:-1]:
            assert source[token.span.start:token.span.end] == token.lexeme

    def test_line_numbers(self):
        tokens = lex("a\nb\n\nc")
        assert [t.line for t in tokens[:3]] == [1, 2, 4]


class TestLexerComments:
    """Comment handling tests."""

    def test_line_comment_skipped(self):
        assert types("1 // comment\n2") == [TokenType.NUMBER, TokenType.NUMBER, TokenType.EOF]

    def test_comment_at_end(self):
        assert types("1 // trailing") == [TokenType.NUMBER, TokenType.EOF]


class TestLexerErrors:
    """Lexical error tests."""

    def test_unterminated_string(self):
        with pytest.raises(UnterminatedStringError):
            lex('"abc')

    def test_unexpected_character(self):
        with pytest.raises(UnexpectedCharError) as exc_info:
            lex("let x = 1 @ 2;")
        assert exc_info.value.char == "@"

    @pytest.mark.parametrize("source", ["a /", "a =", "a <", "a >", "!"])
    def test_lookahead_past_end(self, source):
        with pytest.raises(UnexpectedEOFError):
            lex(source)

    def test_errors_are_lex_errors(self):
        with pytest.raises(LexError):
            lex("#")

    def test_error_carries_line(self):
        with pytest.raises(UnexpectedCharError) as exc_info:
            lex("1;\n2;\n$")
        assert exc_info.value.line == 3
        assert "line 3" in str(exc_info.value)
