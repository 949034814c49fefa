"""
Lexer / Tokenizer for the x64 mini-C compiler.

Converts source text into a list of tokens for the parser.
Handles decimal integer literals, identifiers, the reserved keywords
(return, if, else, while, for), comparison operators and punctuation.

There is no preprocessor and no comment syntax. Whitespace (including
newlines, since statements end with ';') is discarded. Any other
character is a fatal LexerError.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import List, Dict

from .errors import CompileError

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    # Literals
    INT_LITERAL = "INT_LITERAL"

    # Identifier
    IDENT = "IDENT"

    # Keywords
    KW_RETURN = "return"
    KW_IF = "if"
    KW_ELSE = "else"
    KW_WHILE = "while"
    KW_FOR = "for"

    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    ASSIGN = "="
    EQ = "=="
    NEQ = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    # Punctuation
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    SEMI = ";"
    COMMA = ","

    # Special
    EOF = "EOF"


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str | int
    line: int
    col: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, L{self.line}:{self.col})"


# ──────────────────────────────────────────────
# Keyword map
# ──────────────────────────────────────────────

KEYWORDS: Dict[str, TokenType] = {
    "return": TokenType.KW_RETURN,
    "if": TokenType.KW_IF,
    "else": TokenType.KW_ELSE,
    "while": TokenType.KW_WHILE,
    "for": TokenType.KW_FOR,
}


# ──────────────────────────────────────────────
# Operator tables (two-char ops are tried first)
# ──────────────────────────────────────────────

MULTI_CHAR_OPS = [
    ("==", TokenType.EQ),
    ("!=", TokenType.NEQ),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
]

SINGLE_CHAR_OPS: Dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "=": TokenType.ASSIGN,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SEMI,
    ",": TokenType.COMMA,
}

WHITESPACE = " \t\r\n"


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class LexerError(CompileError):
    stage = "lexer"

    def __init__(self, message: str, line: int, col: int):
        self.line = line
        self.col = col
        super().__init__(f"Lexer error at L{line}:{col}: {message}")


class Lexer:
    """Tokenizes mini-C source into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _skip_whitespace(self):
        while self.pos < len(self.source) and self.source[self.pos] in WHITESPACE:
            self._advance()

    def _read_number(self) -> Token:
        start_line, start_col = self.line, self.col
        start_pos = self.pos
        while self.pos < len(self.source) and self.source[self.pos] in "0123456789":
            self._advance()
        text = self.source[start_pos:self.pos]
        return Token(TokenType.INT_LITERAL, int(text), start_line, start_col)

    def _read_identifier_or_keyword(self) -> Token:
        start_line, start_col = self.line, self.col
        start_pos = self.pos

        while self.pos < len(self.source) and _is_ident_char(self.source[self.pos]):
            self._advance()

        text = self.source[start_pos:self.pos]
        if text in KEYWORDS:
            return Token(KEYWORDS[text], text, start_line, start_col)
        return Token(TokenType.IDENT, text, start_line, start_col)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens ending in EOF."""
        self.tokens = []

        while self.pos < len(self.source):
            self._skip_whitespace()
            if self.pos >= len(self.source):
                break

            ch = self._peek()

            # Number
            if ch in "0123456789":
                self.tokens.append(self._read_number())
                continue

            # Identifier or keyword
            if _is_ident_start(ch):
                self.tokens.append(self._read_identifier_or_keyword())
                continue

            # Multi-character operators
            matched = False
            for op_str, op_type in MULTI_CHAR_OPS:
                if self.source[self.pos:self.pos + len(op_str)] == op_str:
                    start_line, start_col = self.line, self.col
                    for _ in op_str:
                        self._advance()
                    self.tokens.append(Token(op_type, op_str, start_line, start_col))
                    matched = True
                    break

            if matched:
                continue

            # Single-character operators and punctuation
            if ch in SINGLE_CHAR_OPS:
                start_line, start_col = self.line, self.col
                self._advance()
                self.tokens.append(Token(SINGLE_CHAR_OPS[ch], ch, start_line, start_col))
                continue

            raise LexerError(f"Unexpected character: {ch!r}", self.line, self.col)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.col))
        logger.debug("tokenized %d characters into %d tokens",
                     len(self.source), len(self.tokens))
        return self.tokens


def _is_ident_start(ch: str) -> bool:
    # ASCII only: str.isalpha() would accept non-Latin letters.
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def _is_ident_char(ch: str) -> bool:
    return _is_ident_start(ch) or ch in "0123456789"


def tokenize(source: str) -> List[Token]:
    """Convenience wrapper: ``Lexer(source).tokenize()``."""
    return Lexer(source).tokenize()
