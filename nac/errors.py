from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from nac.types import Fault

if TYPE_CHECKING:
    from nac.lexer import Token, TokenKind


class NacError(Exception):
    """Base class for every error raised by the toolchain."""


###############################################################################
# Source errors (lexer and compiler)
###############################################################################


class CompileError(NacError):
    """A problem with the program text. Compilation is aborted."""


class UnexpectedCharacter(CompileError):
    def __init__(self, char: str, line: Optional[int] = None, column: Optional[int] = None):
        where = f" at {line}:{column}" if line is not None else ''
        super().__init__(f"unexpected character {char!r}{where}")
        self.char = char
        self.line = line
        self.column = column


class UnexpectedToken(CompileError):
    def __init__(self, token: 'Token', message: Optional[str] = None):
        if message is None:
            message = f"unexpected token {token.kind.name} {token.data!r} at {token.line}:{token.column}"
        super().__init__(message)
        self.token = token


class UnexpectedTokenExpected(UnexpectedToken):
    def __init__(self, token: 'Token', expected: 'TokenKind'):
        super().__init__(
            token,
            f"expected {expected.name} at {token.line}:{token.column}, got {token.kind.name} {token.data!r}",
        )
        self.expected = expected


class UnexpectedEOF(CompileError):
    def __init__(self, message: str = "unexpected end of input"):
        super().__init__(message)


class UnexpectedEOFExpected(UnexpectedEOF):
    def __init__(self, expected: 'TokenKind'):
        super().__init__(f"unexpected end of input, expected {expected.name}")
        self.expected = expected


class UnsupportedSyntax(CompileError):
    """Syntax that is reserved by the grammar but not implemented."""
    def __init__(self, token: 'Token', what: str):
        super().__init__(f"{what} is not supported (at {token.line}:{token.column})")
        self.token = token


class TooManyArguments(CompileError):
    def __init__(self, token: 'Token', limit: int):
        super().__init__(f"more than {limit} arguments in call at {token.line}:{token.column}")
        self.token = token
        self.limit = limit


###############################################################################
# Runtime errors
###############################################################################


class VmError(NacError):
    """Exception type used to propagate fatal runtime faults."""
    def __init__(self, fault: Fault):
        super().__init__(f"{fault.name}: {fault.message}")
        self.fault = fault


class HeapError(NacError):
    """A heap accessor was used against its precondition (bad address or slot kind)."""


class OutOfMemory(NacError):
    """The collector freed nothing and the program still needs memory."""
    def __init__(self, ip: int, heap_size: int):
        super().__init__(f"heap of {heap_size} slots is full (stuck at instruction {ip})")
        self.ip = ip
        self.heap_size = heap_size
