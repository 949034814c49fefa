"""
x86-64 Code Generator for the x64 mini-C compiler.

Translates IR Functions into Intel-syntax GNU assembly.

Register usage convention:
  - r10, r11, rbx, r12, r13, r14, r15: virtual registers 0..6, in order
    (identity mapping; there is no allocator and no spilling)
  - rax: accumulator for MUL/DIV and the return value
  - rdx: clobbered by MUL, and by CQO/IDIV
  - rdi, rsi, rdx, rcx, r8, r9: incoming arguments (System V order)
  - rbp: frame pointer; locals live at [rbp-8], [rbp-16], ...

Every function has the same shape:

    name:
      push rbp
      mov rbp, rsp
      sub rsp, <frame size>
      ...body...
    .L.return.name:
      mov rsp, rbp
      pop rbp
      ret

RETURN jumps to the single epilogue label, so there is exactly one
exit sequence per function however many return statements it has.
"""

from __future__ import annotations
import logging
from typing import List, Optional

from .errors import CompileError
from .ir import IR, IROp, Function

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Register files
# ──────────────────────────────────────────────

REGS = ["r10", "r11", "rbx", "r12", "r13", "r14", "r15"]
REGS8 = ["r10b", "r11b", "bl", "r12b", "r13b", "r14b", "r15b"]
ARGREGS = ["rdi", "rsi", "rdx", "rcx", "r8", "r9"]
ARGREGS8 = ["dil", "sil", "dl", "cl", "r8b", "r9b"]

SETCC = {
    IROp.EQ: "sete",
    IROp.NE: "setne",
    IROp.LT: "setl",
    IROp.LE: "setle",
}

SYNTAX_DIRECTIVE = ".intel_syntax noprefix"


class CodeGenError(CompileError):
    stage = "codegen"

    def __init__(self, message: str, func: Optional[Function] = None,
                 ir: Optional[IR] = None):
        self.func = func
        self.ir = ir
        where = f" in {func.name}" if func is not None else ""
        detail = f" [{str(ir).strip()}]" if ir is not None else ""
        super().__init__(f"Code generation error{where}: {message}{detail}")


class CodeGenerator:
    """Generates x86-64 assembly from IR Functions."""

    def __init__(self):
        self._lines: List[str] = []
        self._func: Optional[Function] = None
        self._ir: Optional[IR] = None

    # ── Output helpers ────────────────────────

    def _emit(self, line: str):
        """Emit one instruction, indented."""
        self._lines.append(f"  {line}")

    def _emit_label(self, label: str):
        self._lines.append(f"{label}:")

    def _error(self, message: str) -> CodeGenError:
        return CodeGenError(message, self._func, self._ir)

    # ── Label naming ──────────────────────────

    def _label(self, n: int) -> str:
        return f".L.{self._func.name}.{n}"

    def _return_label(self) -> str:
        return f".L.return.{self._func.name}"

    # ── Operand helpers ───────────────────────

    def _operand(self, value: Optional[int], what: str) -> int:
        if value is None:
            raise self._error(f"missing {what} operand")
        return value

    def _reg(self, value: Optional[int], what: str = "register") -> str:
        r = self._operand(value, what)
        if not 0 <= r < len(REGS):
            raise self._error(f"virtual register r{r} has no physical register "
                              f"(only {len(REGS)} available)")
        return REGS[r]

    def _reg8(self, value: Optional[int]) -> str:
        self._reg(value)
        return REGS8[value]

    @staticmethod
    def _imm64(value: int) -> int:
        """Wrap to a signed 64-bit immediate (two's complement)."""
        return ((value + 2**63) % 2**64) - 2**63

    def _size(self, ir: IR):
        if ir.size not in (1, 8):
            raise self._error(f"unsupported access width {ir.size}")
        return ir.size

    # ── Main generation entry point ───────────

    def generate(self, functions: List[Function]) -> str:
        """Generate a complete assembly file for ``functions``."""
        self._lines = [SYNTAX_DIRECTIVE]
        for func in functions:
            self._lines.append(f".global {func.name}")
        for func in functions:
            self._gen_function(func)
        return "\n".join(self._lines) + "\n"

    def _gen_function(self, func: Function):
        self._func = func
        self._ir = None
        start = len(self._lines)

        if func.num_regs > len(REGS):
            raise self._error(f"needs {func.num_regs} registers, only "
                              f"{len(REGS)} available (no spilling)")
        if func.num_params > len(ARGREGS):
            raise self._error(f"takes {func.num_params} arguments, only "
                              f"{len(ARGREGS)} argument registers")

        self._emit_label(func.name)
        self._emit("push rbp")
        self._emit("mov rbp, rsp")
        self._emit(f"sub rsp, {func.frame_size}")

        for ir in func.code:
            self._ir = ir
            self._gen_ir(ir)
        self._ir = None

        self._emit_label(self._return_label())
        self._emit("mov rsp, rbp")
        self._emit("pop rbp")
        self._emit("ret")

        logger.debug("emitted %s: %d lines", func.name, len(self._lines) - start)
        self._func = None

    # ── Per-opcode lowering ───────────────────

    def _gen_ir(self, ir: IR):
        op = ir.op

        if op == IROp.IMM:
            value = self._imm64(self._operand(ir.rhs, "immediate"))
            self._emit(f"mov {self._reg(ir.lhs)}, {value}")

        elif op == IROp.ADD:
            self._emit(f"add {self._reg(ir.lhs)}, {self._reg(ir.rhs)}")

        elif op == IROp.SUB:
            self._emit(f"sub {self._reg(ir.lhs)}, {self._reg(ir.rhs)}")

        elif op == IROp.MUL:
            lhs, rhs = self._reg(ir.lhs), self._reg(ir.rhs)
            self._emit(f"mov rax, {rhs}")
            self._emit(f"mul {lhs}")
            self._emit(f"mov {lhs}, rax")

        elif op == IROp.DIV:
            lhs, rhs = self._reg(ir.lhs), self._reg(ir.rhs)
            self._emit(f"mov rax, {lhs}")
            self._emit("cqo")
            self._emit(f"idiv {rhs}")
            self._emit(f"mov {lhs}, rax")

        elif op in SETCC:
            lhs, rhs = self._reg(ir.lhs), self._reg(ir.rhs)
            self._emit(f"cmp {lhs}, {rhs}")
            self._emit(f"{SETCC[op]} {self._reg8(ir.lhs)}")
            self._emit(f"movzx {lhs}, {self._reg8(ir.lhs)}")

        elif op == IROp.LABEL:
            self._emit_label(self._label(self._operand(ir.lhs, "label")))

        elif op == IROp.JMP:
            self._emit(f"jmp {self._label(self._operand(ir.lhs, 'label'))}")

        elif op == IROp.UNLESS:
            reg = self._reg(ir.lhs)
            self._emit(f"cmp {reg}, 0")
            self._emit(f"je {self._label(self._operand(ir.rhs, 'label'))}")

        elif op == IROp.LOAD:
            dst, src = self._reg(ir.lhs), self._reg(ir.rhs)
            if self._size(ir) == 1:
                self._emit(f"movzx {dst}, BYTE PTR [{src}]")
            else:
                self._emit(f"mov {dst}, [{src}]")

        elif op == IROp.STORE:
            dst = self._reg(ir.lhs)
            if self._size(ir) == 1:
                self._emit(f"mov [{dst}], {self._reg8(ir.rhs)}")
            else:
                self._emit(f"mov [{dst}], {self._reg(ir.rhs)}")

        elif op == IROp.BPREL:
            self._emit(f"lea {self._reg(ir.lhs)}, [rbp-{self._operand(ir.rhs, 'offset')}]")

        elif op == IROp.STORE_ARG:
            offset = self._operand(ir.lhs, "offset")
            index = self._operand(ir.rhs, "argument index")
            if not 0 <= index < len(ARGREGS):
                raise self._error(f"argument {index} has no argument register "
                                  f"(only {len(ARGREGS)} supported)")
            argregs = ARGREGS8 if self._size(ir) == 1 else ARGREGS
            self._emit(f"mov [rbp-{offset}], {argregs[index]}")

        elif op == IROp.RETURN:
            self._emit(f"mov rax, {self._reg(ir.lhs)}")
            self._emit(f"jmp {self._return_label()}")

        else:
            raise self._error(f"no lowering for opcode {op.name}")


def gen_x86(functions: List[Function]) -> str:
    """Convenience wrapper: ``CodeGenerator().generate(functions)``."""
    return CodeGenerator().generate(functions)
