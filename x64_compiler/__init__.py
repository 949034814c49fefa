"""
x64cc — a mini-C compiler targeting x86-64
==========================================
Compiles a small C-like language (integer arithmetic, comparisons,
assignment, implicit locals, if/else, functions with parameters) to
Intel-syntax x86-64 assembly for the GNU assembler.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │  Source  │───>│  Lexer   │───>│  Parser  │───>│  IR Gen  │───>│  CodeGen  │
    │  (text)  │    │ (tokens) │    │  (AST)   │    │ (vregs)  │    │ (asm text)│
    └──────────┘    └──────────┘    └──────────┘    └──────────┘    └───────────┘

    - lexer.py:     hand-written scanner, two-char operators matched first
    - parser.py:    recursive descent; assigns stack slots to variables
    - ast_nodes.py: dataclass tree, one node type per construct
    - ir.py:        flattens the tree into virtual-register instructions
    - codegen.py:   identity-maps 7 virtual registers onto x86-64 registers

Every stage raises a CompileError subclass on the first problem it finds.
"""

__version__ = "0.2.0"

from .errors import CompileError
from .lexer import Lexer, LexerError, Token, TokenType
from .ast_nodes import *
from .parser import Parser, ParseError
from .ir import IR, IROp, Function, IRGenerator, IRGenError, gen_ir, dump_ir
from .codegen import CodeGenerator, CodeGenError, gen_x86


def parse_source(source: str, *, as_main: bool = False) -> Program:
    """Lex and parse ``source`` into a Program AST.

    With ``as_main`` the source is a bare statement list, compiled as the
    body of a parameterless function named ``main``.
    """
    tokens = Lexer(source).tokenize()
    parser = Parser(tokens)
    if as_main:
        return parser.parse_statements("main")
    return parser.parse()


def compile_source(source: str, *, as_main: bool = False, output: str = "asm") -> str:
    """Compile source code to x86-64 assembly (or an IR listing).

    Full pipeline: Lexer -> Parser -> AST -> IRGenerator -> CodeGenerator.

    Args:
        source: program text.
        as_main: treat ``source`` as the statements of ``main()`` instead of
            a list of function definitions.
        output: 'asm' (default) for assembly text, 'ir' for the IR dump.

    Returns:
        Assembly or IR text.

    Raises:
        CompileError: on the first lexical, syntax, lowering or codegen error.
        ValueError: on an unknown ``output``.
    """
    if output not in ("asm", "ir"):
        raise ValueError(f"unknown output format {output!r}")

    program = parse_source(source, as_main=as_main)
    functions = gen_ir(program)

    if output == "ir":
        return dump_ir(functions)
    return CodeGenerator().generate(functions)
