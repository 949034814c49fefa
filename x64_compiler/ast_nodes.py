"""
AST Node definitions for the x64 mini-C compiler.

Defines the Abstract Syntax Tree produced by the parser and consumed
by the IR generator. Every node owns its children directly; there is
no sharing between subtrees.

Comparison nodes only ever carry "==", "!=", "<" or "<=". The parser
rewrites ``a > b`` as ``b < a`` and ``a >= b`` as ``b <= a``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Union


# Fixed stack frame reserved by every function: 26 eight-byte slots.
SLOT_SIZE = 8
FRAME_SIZE = 208
MAX_LOCALS = FRAME_SIZE // SLOT_SIZE


# ──────────────────────────────────────────────
# Local variable table entry
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class LocalVar:
    """A stack slot owned by one function."""
    name: str
    length: int     # len(name), kept for diagnostics
    offset: int     # bytes below the frame pointer


# ──────────────────────────────────────────────
# Base AST node
# ──────────────────────────────────────────────

@dataclass
class ASTNode:
    """Base class for all AST nodes."""
    line: int = 0
    col: int = 0


# ──────────────────────────────────────────────
# Top-level: Program / functions
# ──────────────────────────────────────────────

@dataclass
class Program(ASTNode):
    """Root node: function definitions in declaration order."""
    functions: List[FuncDecl] = field(default_factory=list)


@dataclass
class FuncDecl(ASTNode):
    """Function definition."""
    name: str = ""
    params: List[LocalVar] = field(default_factory=list)
    body: Optional[Block] = None
    frame_size: int = FRAME_SIZE
    locals: List[LocalVar] = field(default_factory=list)


# ──────────────────────────────────────────────
# Statements
# ──────────────────────────────────────────────

@dataclass
class Block(ASTNode):
    """Compound statement: { ... }"""
    statements: List[ASTNode] = field(default_factory=list)

@dataclass
class ExprStatement(ASTNode):
    """Expression evaluated for its side effects."""
    expr: Expression = None  # type: ignore

@dataclass
class ReturnStmt(ASTNode):
    """return expr;"""
    value: Expression = None  # type: ignore

@dataclass
class IfStmt(ASTNode):
    """if (cond) then_body [else else_body]"""
    condition: Expression = None  # type: ignore
    then_body: ASTNode = None     # type: ignore
    else_body: Optional[ASTNode] = None

@dataclass
class WhileStmt(ASTNode):
    """while (cond) body"""
    condition: Expression = None  # type: ignore
    body: ASTNode = None          # type: ignore

@dataclass
class ForStmt(ASTNode):
    """for (init; cond; update) body"""
    init: Optional[Expression] = None
    condition: Optional[Expression] = None
    update: Optional[Expression] = None
    body: ASTNode = None          # type: ignore


# ──────────────────────────────────────────────
# Expressions
# ──────────────────────────────────────────────

Expression = Union[
    "IntLiteral", "VarRef", "UnaryOp", "BinaryOp",
    "Assignment", "FuncCall",
]

@dataclass
class IntLiteral(ASTNode):
    """Integer constant."""
    value: int = 0

@dataclass
class VarRef(ASTNode):
    """Reference to a local variable's stack slot."""
    name: str = ""
    offset: int = 0

@dataclass
class UnaryOp(ASTNode):
    """Unary negation: -operand."""
    op: str = "-"
    operand: Expression = None  # type: ignore

@dataclass
class BinaryOp(ASTNode):
    """Binary arithmetic or comparison: left op right."""
    op: str = ""
    left: Expression = None   # type: ignore
    right: Expression = None  # type: ignore

@dataclass
class Assignment(ASTNode):
    """Simple assignment: target = value. Evaluates to value."""
    target: Expression = None  # type: ignore
    value: Expression = None   # type: ignore

@dataclass
class FuncCall(ASTNode):
    """Function call: name(args...). Parsed but not lowered."""
    name: str = ""
    args: List[Expression] = field(default_factory=list)
