"""
Lexer tests for the x64 mini-C compiler.

Tests cover:
  - Numbers, identifiers, keywords
  - Greedy two-character comparison operators
  - Whitespace handling and source positions
  - Fatal errors on unknown characters
"""

import pytest
from x64_compiler.lexer import Lexer, LexerError, Token, TokenType, tokenize


def _types(source: str) -> list:
    return [tok.type for tok in tokenize(source)]


class TestLiterals:
    def test_single_digit(self):
        tokens = tokenize("0")
        assert [t.type for t in tokens] == [TokenType.INT_LITERAL, TokenType.EOF]
        assert tokens[0].value == 0

    def test_multi_digit_is_one_token(self):
        tokens = tokenize("12345")
        assert len(tokens) == 2
        assert tokens[0].value == 12345

    def test_no_sign_in_literal(self):
        """'-5' is a MINUS followed by a number, sign is handled by the parser."""
        assert _types("-5") == [TokenType.MINUS, TokenType.INT_LITERAL, TokenType.EOF]

    def test_add(self):
        tokens = tokenize("0+1")
        assert [t.type for t in tokens] == [
            TokenType.INT_LITERAL, TokenType.PLUS, TokenType.INT_LITERAL, TokenType.EOF,
        ]
        assert [t.value for t in tokens[:3]] == [0, "+", 1]


class TestIdentifiers:
    def test_identifier(self):
        tokens = tokenize("abc = 1")
        assert tokens[0] == Token(TokenType.IDENT, "abc", 1, 1)
        assert tokens[1].type == TokenType.ASSIGN
        assert tokens[2].value == 1

    def test_identifier_with_digits_and_underscore(self):
        tokens = tokenize("_tmp2 x_1")
        assert [t.value for t in tokens[:2]] == ["_tmp2", "x_1"]
        assert all(t.type == TokenType.IDENT for t in tokens[:2])

    def test_digit_then_letters_splits(self):
        assert _types("1a") == [TokenType.INT_LITERAL, TokenType.IDENT, TokenType.EOF]

    @pytest.mark.parametrize("word,ttype", [
        ("return", TokenType.KW_RETURN),
        ("if", TokenType.KW_IF),
        ("else", TokenType.KW_ELSE),
        ("while", TokenType.KW_WHILE),
        ("for", TokenType.KW_FOR),
    ])
    def test_keywords(self, word, ttype):
        assert _types(word) == [ttype, TokenType.EOF]

    def test_keyword_prefix_is_identifier(self):
        tokens = tokenize("returns iffy elsewhere")
        assert all(t.type == TokenType.IDENT for t in tokens[:3])


class TestOperators:
    def test_le_is_single_token(self):
        tokens = tokenize("1<=2")
        assert len(tokens) == 4  # number, <=, number, EOF
        assert tokens[1].type == TokenType.LE

    @pytest.mark.parametrize("op,ttype", [
        ("==", TokenType.EQ),
        ("!=", TokenType.NEQ),
        ("<=", TokenType.LE),
        (">=", TokenType.GE),
    ])
    def test_two_char_ops(self, op, ttype):
        assert _types(f"a{op}b") == [TokenType.IDENT, ttype, TokenType.IDENT, TokenType.EOF]

    def test_single_char_fallback(self):
        assert _types("a<b>c=d") == [
            TokenType.IDENT, TokenType.LT, TokenType.IDENT, TokenType.GT,
            TokenType.IDENT, TokenType.ASSIGN, TokenType.IDENT, TokenType.EOF,
        ]

    def test_assign_then_eq(self):
        """'===' lexes as '==' then '='."""
        assert _types("===") == [TokenType.EQ, TokenType.ASSIGN, TokenType.EOF]

    def test_punctuation(self):
        assert _types("(){};,") == [
            TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE,
            TokenType.RBRACE, TokenType.SEMI, TokenType.COMMA, TokenType.EOF,
        ]


class TestWhitespaceAndPositions:
    def test_whitespace_discarded(self):
        assert _types(" \t1 \n+\r\n 2 ") == [
            TokenType.INT_LITERAL, TokenType.PLUS, TokenType.INT_LITERAL, TokenType.EOF,
        ]

    def test_empty_source_is_just_eof(self):
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_exactly_one_eof(self):
        tokens = tokenize("main() { return 0; }")
        assert [t.type for t in tokens].count(TokenType.EOF) == 1
        assert tokens[-1].type == TokenType.EOF

    def test_line_and_column(self):
        tokens = tokenize("a\n  bb")
        assert (tokens[0].line, tokens[0].col) == (1, 1)
        assert (tokens[1].line, tokens[1].col) == (2, 3)


class TestErrors:
    @pytest.mark.parametrize("source", ["1 % 2", "a & b", "x = 'c';", "!", "#"])
    def test_unknown_character_raises(self, source):
        with pytest.raises(LexerError):
            tokenize(source)

    def test_error_position(self):
        with pytest.raises(LexerError) as excinfo:
            Lexer("a = 1;\nb = $;").tokenize()
        assert excinfo.value.line == 2
        assert excinfo.value.col == 5
        assert "L2:5" in str(excinfo.value)

    def test_non_ascii_letter_rejected(self):
        with pytest.raises(LexerError):
            tokenize("é = 1;")
