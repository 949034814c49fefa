"""
Shared exception base for the x64 mini-C compiler.

Each stage raises its own subclass (LexerError, ParseError, IRGenError,
CodeGenError) so callers can catch one type for "no usable output".
"""


class CompileError(Exception):
    """Base class for every fatal compilation error."""
    stage = "compile"
