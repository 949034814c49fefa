"""
Recursive-descent parser for the x64 mini-C compiler.

Parses a token stream from the Lexer into an AST defined in ast_nodes,
resolving local-variable stack offsets as it goes:

  - Function definitions: name(a, b, ...) { statements }
  - Statements: return, if/else, while, for, blocks, expression statements
  - Expressions: assignment (right-assoc), ==, !=, <, <=, >, >=, + - * /,
    unary + and -, calls, parenthesized expressions

There are no declarations. A variable comes into existence the first
time its name appears as a primary expression, and gets the next free
8-byte slot in the current function's frame. Parameters are bound first,
in parameter order.
"""

from __future__ import annotations
import logging
from typing import Dict, List, Optional

from .errors import CompileError
from .lexer import Token, TokenType
from .ast_nodes import *

logger = logging.getLogger(__name__)


class ParseError(CompileError):
    stage = "parser"

    def __init__(self, message: str, token: Token):
        self.token = token
        loc = f"L{token.line}:{token.col}"
        super().__init__(f"Parse error at {loc}: {message} (got {token.type.name} = {token.value!r})")


class Parser:
    """Recursive descent parser producing an AST from tokens."""

    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].type != TokenType.EOF:
            raise ValueError("token list must end with an EOF token")
        self.tokens = tokens
        self.pos = 0
        # Per-function state, reset by _begin_function()
        self._locals: List[LocalVar] = []
        self._by_name: Dict[str, LocalVar] = {}

    # ── Helpers ─────────────────────────────

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _at(self, *types: TokenType) -> bool:
        return self._cur().type in types

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, ttype: TokenType, msg: str = "") -> Token:
        if self._cur().type != ttype:
            if not msg:
                msg = f"Expected {ttype.value!r}"
            raise ParseError(msg, self._cur())
        return self._advance()

    def _match(self, *types: TokenType) -> Optional[Token]:
        if self._cur().type in types:
            return self._advance()
        return None

    # ── Local variable table ──────────────────

    def _begin_function(self):
        self._locals = []
        self._by_name = {}

    def _declare(self, tok: Token) -> LocalVar:
        """Allocate the next frame slot for ``tok``'s name."""
        if len(self._locals) >= MAX_LOCALS:
            raise ParseError(f"Too many local variables (frame holds {MAX_LOCALS})", tok)
        name = tok.value
        var = LocalVar(name=name, length=len(name),
                       offset=(len(self._locals) + 1) * SLOT_SIZE)
        self._locals.append(var)
        self._by_name[name] = var
        return var

    def _lookup_or_declare(self, tok: Token) -> LocalVar:
        var = self._by_name.get(tok.value)
        if var is None:
            var = self._declare(tok)
        return var

    # ── Top-level parsing ─────────────────────

    def parse(self) -> Program:
        """Parse the full token stream into a Program of function definitions."""
        prog = Program(line=1, col=1)

        while not self._at(TokenType.EOF):
            prog.functions.append(self._parse_func_def())

        return prog

    def parse_statements(self, name: str = "main") -> Program:
        """Parse a bare statement list as the body of one function ``name``."""
        self._begin_function()
        first = self._cur()
        body = Block(line=first.line, col=first.col)
        while not self._at(TokenType.EOF):
            body.statements.append(self._parse_statement())
        func = self._finish_function(name, [], body, first)
        return Program(functions=[func], line=1, col=1)

    def _parse_func_def(self) -> FuncDecl:
        """Parse function definition: name(params) { body }"""
        self._begin_function()
        name_tok = self._expect(TokenType.IDENT, "Expected function name")
        self._expect(TokenType.LPAREN, "Expected '(' after function name")
        params = self._parse_param_list()
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")
        body = self._parse_block()
        return self._finish_function(name_tok.value, params, body, name_tok)

    def _finish_function(self, name: str, params: List[LocalVar],
                         body: Block, tok: Token) -> FuncDecl:
        func = FuncDecl(
            name=name,
            params=params,
            body=body,
            frame_size=FRAME_SIZE,
            locals=list(self._locals),
            line=tok.line,
            col=tok.col,
        )
        logger.debug("parsed function %s: %d params, %d locals",
                     name, len(params), len(func.locals))
        return func

    def _parse_param_list(self) -> List[LocalVar]:
        """Parse the identifier list between the parentheses."""
        params: List[LocalVar] = []
        if self._at(TokenType.RPAREN):
            return params

        while True:
            tok = self._expect(TokenType.IDENT, "Expected parameter name")
            if tok.value in self._by_name:
                raise ParseError(f"Duplicate parameter {tok.value!r}", tok)
            params.append(self._declare(tok))
            if not self._match(TokenType.COMMA):
                break
        return params

    # ── Statements ────────────────────────────

    def _parse_block(self) -> Block:
        """Parse a compound statement { ... }."""
        tok = self._expect(TokenType.LBRACE, "Expected '{'")
        block = Block(line=tok.line, col=tok.col)

        while not self._at(TokenType.RBRACE, TokenType.EOF):
            block.statements.append(self._parse_statement())

        self._expect(TokenType.RBRACE, "Expected '}'")
        return block

    def _parse_statement(self) -> ASTNode:
        """Parse a single statement."""
        if self._at(TokenType.LBRACE):
            return self._parse_block()
        if self._at(TokenType.KW_RETURN):
            return self._parse_return()
        if self._at(TokenType.KW_IF):
            return self._parse_if()
        if self._at(TokenType.KW_WHILE):
            return self._parse_while()
        if self._at(TokenType.KW_FOR):
            return self._parse_for()
        return self._parse_expr_statement()

    def _parse_return(self) -> ReturnStmt:
        tok = self._advance()  # 'return'
        value = self._parse_expr()
        self._expect(TokenType.SEMI, "Expected ';' after return")
        return ReturnStmt(value=value, line=tok.line, col=tok.col)

    def _parse_if(self) -> IfStmt:
        tok = self._advance()  # 'if'
        self._expect(TokenType.LPAREN, "Expected '(' after 'if'")
        cond = self._parse_expr()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        then_body = self._parse_statement()

        else_body = None
        if self._match(TokenType.KW_ELSE):
            else_body = self._parse_statement()

        return IfStmt(condition=cond, then_body=then_body, else_body=else_body,
                      line=tok.line, col=tok.col)

    def _parse_while(self) -> WhileStmt:
        tok = self._advance()  # 'while'
        self._expect(TokenType.LPAREN, "Expected '(' after 'while'")
        cond = self._parse_expr()
        self._expect(TokenType.RPAREN, "Expected ')' after condition")
        body = self._parse_statement()
        return WhileStmt(condition=cond, body=body, line=tok.line, col=tok.col)

    def _parse_for(self) -> ForStmt:
        tok = self._advance()  # 'for'
        self._expect(TokenType.LPAREN, "Expected '(' after 'for'")

        init = None
        if not self._at(TokenType.SEMI):
            init = self._parse_expr()
        self._expect(TokenType.SEMI)

        cond = None
        if not self._at(TokenType.SEMI):
            cond = self._parse_expr()
        self._expect(TokenType.SEMI)

        update = None
        if not self._at(TokenType.RPAREN):
            update = self._parse_expr()
        self._expect(TokenType.RPAREN)

        body = self._parse_statement()
        return ForStmt(init=init, condition=cond, update=update, body=body,
                       line=tok.line, col=tok.col)

    def _parse_expr_statement(self) -> ExprStatement:
        tok = self._cur()
        expr = self._parse_expr()
        self._expect(TokenType.SEMI, "Expected ';' after expression")
        return ExprStatement(expr=expr, line=tok.line, col=tok.col)

    # ── Expression parsing (precedence climbing) ──

    def _parse_expr(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        """Parse assignment expressions (right-associative)."""
        left = self._parse_equality()
        if self._at(TokenType.ASSIGN):
            tok = self._advance()
            right = self._parse_assignment()
            return Assignment(target=left, value=right, line=tok.line, col=tok.col)
        return left

    def _parse_equality(self) -> Expression:
        left = self._parse_relational()
        while self._at(TokenType.EQ, TokenType.NEQ):
            tok = self._advance()
            right = self._parse_relational()
            left = BinaryOp(op=tok.value, left=left, right=right,
                            line=tok.line, col=tok.col)
        return left

    def _parse_relational(self) -> Expression:
        left = self._parse_additive()
        while self._at(TokenType.LT, TokenType.GT, TokenType.LE, TokenType.GE):
            tok = self._advance()
            right = self._parse_additive()
            if tok.type == TokenType.GT:
                left = BinaryOp(op="<", left=right, right=left,
                                line=tok.line, col=tok.col)
            elif tok.type == TokenType.GE:
                left = BinaryOp(op="<=", left=right, right=left,
                                line=tok.line, col=tok.col)
            else:
                left = BinaryOp(op=tok.value, left=left, right=right,
                                line=tok.line, col=tok.col)
        return left

    def _parse_additive(self) -> Expression:
        left = self._parse_multiplicative()
        while self._at(TokenType.PLUS, TokenType.MINUS):
            tok = self._advance()
            right = self._parse_multiplicative()
            left = BinaryOp(op=tok.value, left=left, right=right,
                            line=tok.line, col=tok.col)
        return left

    def _parse_multiplicative(self) -> Expression:
        left = self._parse_unary()
        while self._at(TokenType.STAR, TokenType.SLASH):
            tok = self._advance()
            right = self._parse_unary()
            left = BinaryOp(op=tok.value, left=left, right=right,
                            line=tok.line, col=tok.col)
        return left

    def _parse_unary(self) -> Expression:
        """Parse an optional leading '+' or '-' before a primary."""
        tok = self._cur()
        if self._match(TokenType.PLUS):
            return self._parse_primary()
        if self._match(TokenType.MINUS):
            operand = self._parse_primary()
            return UnaryOp(op="-", operand=operand, line=tok.line, col=tok.col)
        return self._parse_primary()

    def _parse_arg_list(self) -> List[Expression]:
        """Parse call arguments up to (not including) ')'."""
        args: List[Expression] = []
        if self._at(TokenType.RPAREN):
            return args
        args.append(self._parse_assignment())
        while self._match(TokenType.COMMA):
            args.append(self._parse_assignment())
        return args

    def _parse_primary(self) -> Expression:
        """Parse primary expressions: literals, variables, calls, parenthesized."""
        tok = self._cur()

        if self._at(TokenType.INT_LITERAL):
            self._advance()
            return IntLiteral(value=tok.value, line=tok.line, col=tok.col)

        if self._at(TokenType.IDENT):
            self._advance()
            if self._match(TokenType.LPAREN):
                args = self._parse_arg_list()
                self._expect(TokenType.RPAREN, "Expected ')' after arguments")
                return FuncCall(name=tok.value, args=args, line=tok.line, col=tok.col)
            var = self._lookup_or_declare(tok)
            return VarRef(name=var.name, offset=var.offset, line=tok.line, col=tok.col)

        if self._at(TokenType.LPAREN):
            self._advance()
            expr = self._parse_expr()
            self._expect(TokenType.RPAREN, "Expected ')'")
            return expr

        raise ParseError("Expected expression", tok)
