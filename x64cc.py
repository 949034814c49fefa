#!/usr/bin/env python3
"""
x64cc — mini-C to x86-64 compiler CLI

Usage:
    python x64cc.py <input.c> [-o output.s] [--main] [--verbose]
    python x64cc.py -e "a = 3; return a * 2;" --main

Examples:
    python x64cc.py prog.c -o prog.s && gcc -o prog prog.s
    python x64cc.py -e "return 1+2*3;" --main          # asm to stdout
    python x64cc.py prog.c --ir                         # dump IR and exit
"""

import argparse
import logging
import sys

from x64_compiler import __version__, compile_source, CompileError
from x64_compiler.lexer import Lexer
from x64_compiler.parser import Parser

log = logging.getLogger("x64cc")


def _read_source(args) -> str:
    if args.expr is not None:
        return args.expr
    if args.input is None:
        raise SystemExit("x64cc: error: an input file or -e SOURCE is required")
    with open(args.input, "r", encoding="utf-8") as f:
        return f.read()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x64cc",
        description="Mini-C compiler producing x86-64 assembly (Intel syntax)",
    )
    parser.add_argument("input", nargs="?", help="Input source file")
    parser.add_argument("-e", "--expr", metavar="SOURCE",
                        help="Compile SOURCE given on the command line")
    parser.add_argument("-o", "--output", help="Output assembly file (default: stdout)")
    parser.add_argument("--main", action="store_true",
                        help="Treat the source as the body of main()")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print compilation details to stderr")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump token stream and exit (debug)")
    parser.add_argument("--ast", action="store_true",
                        help="Dump AST and exit (debug)")
    parser.add_argument("--ir", action="store_true",
                        help="Dump IR instead of assembly (debug)")
    parser.add_argument("--version", action="version",
                        version=f"x64cc {__version__}")
    return parser


def main(argv=None) -> int:
    args = _build_arg_parser().parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr,
                            format="[x64cc] %(message)s")

    try:
        source = _read_source(args)
    except OSError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1

    log.debug("input: %s (%d chars)", args.input or "<-e>", len(source))

    try:
        if args.tokens:
            for tok in Lexer(source).tokenize():
                print(tok)
            return 0

        if args.ast:
            p = Parser(Lexer(source).tokenize())
            ast = p.parse_statements("main") if args.main else p.parse()
            _print_ast(ast)
            return 0

        result = compile_source(source, as_main=args.main,
                                output="ir" if args.ir else "asm")

        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(result)
                if not result.endswith("\n"):
                    f.write("\n")
            log.debug("output: %s", args.output)
        else:
            sys.stdout.write(result if result.endswith("\n") else result + "\n")

        log.debug("generated %d lines", result.count("\n"))

    except CompileError as e:
        print(f"x64cc: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error writing {args.output}: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal compiler error: {e}", file=sys.stderr)
        if args.verbose:
            log.exception("internal compiler error")
        return 2

    return 0


def _print_ast(node, indent=0):
    """Pretty-print an AST node tree (debug helper)."""
    prefix = "  " * indent
    if hasattr(node, '__dataclass_fields__'):
        print(f"{prefix}{type(node).__name__}:")
        for fname in node.__dataclass_fields__:
            val = getattr(node, fname)
            if isinstance(val, list):
                print(f"{prefix}  {fname}:")
                for item in val:
                    _print_ast(item, indent + 2)
            elif hasattr(val, '__dataclass_fields__'):
                print(f"{prefix}  {fname}:")
                _print_ast(val, indent + 2)
            elif val is not None:
                print(f"{prefix}  {fname}: {val}")
    else:
        print(f"{prefix}{node}")


if __name__ == "__main__":
    sys.exit(main())
