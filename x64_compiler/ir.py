"""
IR generation for the x64 mini-C compiler.

Flattens each function's AST into a linear list of instructions over
virtual registers. Register ids are handed out in increasing order and
never reused, so the count reached by the end of a function is the
number of physical registers its code needs.

Control flow is expressed with numbered labels:

    if (c) A;            r = c; UNLESS r, E; A; LABEL E
    if (c) A; else B;    r = c; UNLESS r, X; A; JMP E; LABEL X; B; LABEL E

The list is in execution order; nothing downstream reorders it.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import CompileError
from .ast_nodes import *

logger = logging.getLogger(__name__)


class IROp(enum.Enum):
    IMM = "IMM"               # lhs=reg, rhs=value
    BPREL = "BPREL"           # lhs=reg, rhs=frame offset
    LOAD = "LOAD"             # lhs=dst reg, rhs=address reg
    STORE = "STORE"           # lhs=address reg, rhs=src reg
    STORE_ARG = "STORE_ARG"   # lhs=frame offset, rhs=argument index
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    EQ = "EQ"
    NE = "NE"
    LT = "LT"
    LE = "LE"
    LABEL = "LABEL"           # lhs=label
    JMP = "JMP"               # lhs=label
    UNLESS = "UNLESS"         # lhs=reg, rhs=label
    RETURN = "RETURN"         # lhs=reg
    CALL = "CALL"             # reserved, never emitted


BINARY_OPS = {
    "+": IROp.ADD,
    "-": IROp.SUB,
    "*": IROp.MUL,
    "/": IROp.DIV,
    "==": IROp.EQ,
    "!=": IROp.NE,
    "<": IROp.LT,
    "<=": IROp.LE,
}

SIZED_OPS = (IROp.LOAD, IROp.STORE, IROp.STORE_ARG)


@dataclass(frozen=True)
class IR:
    op: IROp
    lhs: Optional[int] = None
    rhs: Optional[int] = None
    size: int = 8             # byte width for LOAD / STORE / STORE_ARG

    def __str__(self) -> str:
        name = self.op.value
        if self.op in SIZED_OPS:
            name = f"{name}{self.size}"

        if self.op == IROp.LABEL:
            return f".L{self.lhs}:"
        if self.op == IROp.JMP:
            return f"  {name} .L{self.lhs}"
        if self.op == IROp.UNLESS:
            return f"  {name} r{self.lhs}, .L{self.rhs}"
        if self.op == IROp.RETURN:
            return f"  {name} r{self.lhs}"
        if self.op in (IROp.IMM, IROp.BPREL):
            return f"  {name} r{self.lhs}, {self.rhs}"
        if self.op == IROp.STORE_ARG:
            return f"  {name} {self.lhs}, {self.rhs}"
        return f"  {name} r{self.lhs}, r{self.rhs}"


@dataclass
class Function:
    """One compiled unit: a function's IR plus what codegen needs to size it."""
    name: str
    code: List[IR] = field(default_factory=list)
    frame_size: int = FRAME_SIZE
    num_regs: int = 0
    num_labels: int = 0
    num_params: int = 0


class IRGenError(CompileError):
    stage = "irgen"

    def __init__(self, message: str, node: ASTNode):
        self.node = node
        super().__init__(f"IR generation error at L{node.line}:{node.col}: {message}")


class IRGenerator:
    """Lowers one FuncDecl into a Function."""

    def __init__(self):
        self.code: List[IR] = []
        self.num_regs = 0
        self.num_labels = 0

    # ── Counters ──────────────────────────────

    def _new_reg(self) -> int:
        r = self.num_regs
        self.num_regs += 1
        return r

    def _new_label(self) -> int:
        x = self.num_labels
        self.num_labels += 1
        return x

    def _add(self, op: IROp, lhs: Optional[int] = None,
             rhs: Optional[int] = None, size: int = 8):
        self.code.append(IR(op, lhs, rhs, size))

    # ── Entry point ───────────────────────────

    def generate(self, func: FuncDecl) -> Function:
        self.code = []
        self.num_regs = 0
        self.num_labels = 0

        for index, param in enumerate(func.params):
            self._add(IROp.STORE_ARG, param.offset, index)

        if func.body is not None:
            self._gen_statement(func.body)

        logger.debug("lowered %s: %d instructions, %d registers, %d labels",
                     func.name, len(self.code), self.num_regs, self.num_labels)
        return Function(
            name=func.name,
            code=self.code,
            frame_size=func.frame_size,
            num_regs=self.num_regs,
            num_labels=self.num_labels,
            num_params=len(func.params),
        )

    # ── Statements ────────────────────────────

    def _gen_statement(self, stmt: ASTNode):
        if isinstance(stmt, ReturnStmt):
            r = self._gen_expr(stmt.value)
            self._add(IROp.RETURN, r)
        elif isinstance(stmt, ExprStatement):
            self._gen_expr(stmt.expr)
        elif isinstance(stmt, Block):
            for s in stmt.statements:
                self._gen_statement(s)
        elif isinstance(stmt, IfStmt):
            self._gen_if(stmt)
        elif isinstance(stmt, (WhileStmt, ForStmt)):
            kind = "while" if isinstance(stmt, WhileStmt) else "for"
            raise IRGenError(f"'{kind}' loops cannot be lowered to IR", stmt)
        else:
            raise IRGenError(f"Unknown statement {type(stmt).__name__}", stmt)

    def _gen_if(self, stmt: IfStmt):
        if stmt.else_body is None:
            end_label = self._new_label()
            r = self._gen_expr(stmt.condition)
            self._add(IROp.UNLESS, r, end_label)
            self._gen_statement(stmt.then_body)
            self._add(IROp.LABEL, end_label)
            return

        else_label = self._new_label()
        end_label = self._new_label()
        r = self._gen_expr(stmt.condition)
        self._add(IROp.UNLESS, r, else_label)
        self._gen_statement(stmt.then_body)
        self._add(IROp.JMP, end_label)
        self._add(IROp.LABEL, else_label)
        self._gen_statement(stmt.else_body)
        self._add(IROp.LABEL, end_label)

    # ── Expressions ───────────────────────────
    # Every case returns the register holding the result.

    def _gen_lval(self, expr: Expression) -> int:
        """Compute the address of an assignable expression."""
        if not isinstance(expr, VarRef):
            raise IRGenError(f"{type(expr).__name__} is not assignable", expr)
        r = self._new_reg()
        self._add(IROp.BPREL, r, expr.offset)
        return r

    def _gen_expr(self, expr: Expression) -> int:
        if isinstance(expr, IntLiteral):
            r = self._new_reg()
            self._add(IROp.IMM, r, expr.value)
            return r

        if isinstance(expr, VarRef):
            r = self._gen_lval(expr)
            self._add(IROp.LOAD, r, r)
            return r

        if isinstance(expr, UnaryOp):
            # -x is lowered as 0 - x
            zero = self._new_reg()
            self._add(IROp.IMM, zero, 0)
            r = self._gen_expr(expr.operand)
            self._add(IROp.SUB, zero, r)
            return zero

        if isinstance(expr, BinaryOp):
            op = BINARY_OPS.get(expr.op)
            if op is None:
                raise IRGenError(f"Unknown binary operator {expr.op!r}", expr)
            lhs = self._gen_expr(expr.left)
            rhs = self._gen_expr(expr.right)
            self._add(op, lhs, rhs)
            return lhs

        if isinstance(expr, Assignment):
            rhs = self._gen_expr(expr.value)
            addr = self._gen_lval(expr.target)
            self._add(IROp.STORE, addr, rhs)
            return rhs

        if isinstance(expr, FuncCall):
            raise IRGenError(f"Call to {expr.name!r} cannot be lowered to IR", expr)

        raise IRGenError(f"Unknown expression {type(expr).__name__}", expr)


def gen_ir(program: Program) -> List[Function]:
    """Lower every function of ``program``, in declaration order."""
    return [IRGenerator().generate(func) for func in program.functions]


def dump_ir(functions: List[Function]) -> str:
    """Render IR as text, one instruction per line."""
    lines: List[str] = []
    for func in functions:
        lines.append(f"{func.name}(): regs={func.num_regs} labels={func.num_labels}"
                     f" frame={func.frame_size}")
        lines.extend(str(ir) for ir in func.code)
    return "\n".join(lines)
