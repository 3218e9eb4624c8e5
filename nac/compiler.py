"""Single-pass bytecode compiler.

The compiler walks the token list once, left to right, and emits
instructions as it goes; there is no syntax tree. Global slots, field ids
and interned strings are allocated on the runtime the moment a name or
literal is first seen, so a module is only meaningful for the runtime it
was compiled against. Numeric literals go into the module's own constant
table.

Grammar:

    program    := stmt*
    stmt       := ';' | member ';' | if_stmt | while_stmt
    if_stmt    := 'IF' member 'THEN' stmt* ('ELSEIF' member 'THEN' stmt*)*
                  ('ELSE' stmt*)? 'END'
    while_stmt := 'WHILE' member 'DO' stmt* 'END'
    member     := atom ('.' IDENT ('=' member | '(' args? ')' | ))*
    atom       := NUMBER | STRING | 'nil' | 'true' | 'false' | 'ALLOC'
                | IDENT | IDENT '=' member | IDENT '(' args? ')'
    args       := member (',' member)* ','?

Control flow is compiled with forward jumps whose displacement is not known
when they are emitted. Those are pushed as placeholders and patched once the
target address is known. Jump displacements are relative to the instruction
following the jump.
"""

from __future__ import annotations

from typing import List, Optional

from nac.errors import (
    UnexpectedEOF, UnexpectedEOFExpected, UnexpectedToken, UnexpectedTokenExpected,
    UnsupportedSyntax, TooManyArguments,
)
from nac.instructions import (
    Instruction, Module,
    Load, Store, IndexGet, IndexSet, LoadNil, LoadTrue, LoadFalse, LoadConst,
    LoadString, Alloc, Call, Invoke, Jmp, JmpIfFalse, Pop, Halt,
)
from nac.lexer import Token, TokenKind, lex
from nac.runtime import MAX_ARITY, Runtime

# Tokens that close the statement list of an enclosing IF or WHILE.
BLOCK_TERMINATORS = (TokenKind.END, TokenKind.ELSE, TokenKind.ELSEIF)

EXPRESSION_START = (
    TokenKind.NIL, TokenKind.TRUE, TokenKind.FALSE, TokenKind.NUMBER,
    TokenKind.IDENT, TokenKind.STRING, TokenKind.ALLOC,
)

PLACEHOLDER = 0xdead


class Compiler:
    def __init__(self, tokens: List[Token], runtime: Runtime):
        self.tokens = tokens
        self.pos = 0
        self.runtime = runtime
        self.code: List[Instruction] = []
        self.constants: List[float] = []

    # Token helpers

    def peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def advance(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self.pos += 1
        return token

    def match(self, kind: TokenKind) -> bool:
        token = self.peek()
        return token is not None and token.kind == kind

    def consume(self, expected: TokenKind) -> Token:
        token = self.advance()
        if token is None:
            raise UnexpectedEOFExpected(expected)
        if token.kind != expected:
            raise UnexpectedTokenExpected(token, expected)
        return token

    def emit(self, inst: Instruction) -> int:
        self.code.append(inst)
        return len(self.code) - 1

    # Statements

    def compile_program(self) -> Module:
        while self.peek() is not None:
            self.compile_block()
            stray = self.peek()
            if stray is not None:
                raise UnexpectedToken(stray)
        self.emit(Halt())
        return Module(code=tuple(self.code), constants=tuple(self.constants))

    def compile_block(self) -> None:
        """Compile statements up to END, ELSE, ELSEIF or the end of input."""
        while True:
            token = self.peek()
            if token is None or token.kind in BLOCK_TERMINATORS:
                return
            self.compile_statement(token)

    def compile_statement(self, token: Token) -> None:
        if token.kind == TokenKind.SEMICOLON:
            self.advance()
        elif token.kind in EXPRESSION_START:
            self.compile_member()
            self.consume(TokenKind.SEMICOLON)
            self.emit(Pop())
        elif token.kind == TokenKind.IF:
            self.compile_if_stmt()
        elif token.kind == TokenKind.WHILE:
            self.compile_while_stmt()
        elif token.kind == TokenKind.MINUS:
            # Arithmetic goes through natives; '-' is reserved.
            raise UnsupportedSyntax(token, "negation")
        else:
            raise UnexpectedToken(token)

    def compile_while_stmt(self) -> None:
        self.consume(TokenKind.WHILE)

        start = len(self.code)
        self.compile_member()
        exit_jump = self.emit(JmpIfFalse(PLACEHOLDER))

        self.consume(TokenKind.DO)
        self.compile_block()
        self.consume(TokenKind.END)

        end = len(self.code)
        self.emit(Jmp(start - end - 1))
        self.code[exit_jump] = JmpIfFalse(end - exit_jump)

    def compile_if_stmt(self) -> None:
        """Compile an IF chain.

        Layout:

            <cond>
            JmpIfFalse --+          skips to the next arm
            <stmts>      |
            Jmp ---------|-+        every arm jumps past END
            <cond> <-----+ |        ELSEIF
            JmpIfFalse --+ |
            <stmts>      | |
            Jmp ---------|-|-+
            <stmts> <----+ | |      ELSE
            <after END> <--+-+
        """
        self.consume(TokenKind.IF)
        self.compile_member()
        self.consume(TokenKind.THEN)

        last_cond = self.emit(JmpIfFalse(PLACEHOLDER))
        exit_jumps: List[int] = []
        has_else = False

        while True:
            self.compile_block()
            token = self.peek()
            if token is None:
                raise UnexpectedEOFExpected(TokenKind.END)
            if token.kind == TokenKind.END:
                self.advance()
                break
            if has_else:
                raise UnexpectedToken(token)

            self.advance()
            jump = self.emit(Jmp(PLACEHOLDER))
            exit_jumps.append(jump)
            # The previous condition falls through to this arm.
            self.code[last_cond] = JmpIfFalse(jump - last_cond)

            if token.kind == TokenKind.ELSE:
                has_else = True
            else:
                self.compile_member()
                last_cond = self.emit(JmpIfFalse(PLACEHOLDER))
                self.consume(TokenKind.THEN)

        last = len(self.code)
        if not has_else:
            self.code[last_cond] = JmpIfFalse(last - last_cond - 1)
        for jump in exit_jumps:
            self.code[jump] = Jmp(last - jump - 1)

    # Expressions

    def compile_member(self) -> None:
        self.compile_atom()

        while self.match(TokenKind.DOT):
            self.advance()
            name_token = self.advance()
            if name_token is None:
                raise UnexpectedEOFExpected(TokenKind.IDENT)
            if name_token.kind != TokenKind.IDENT:
                raise UnexpectedTokenExpected(name_token, TokenKind.IDENT)
            name = name_token.data

            if self.match(TokenKind.EQUAL):
                self.advance()
                self.compile_member()
                self.emit(IndexSet(self.runtime.get_field_index(name)))
            elif self.match(TokenKind.LPAREN):
                sym = self.runtime.get_field_index(name)
                args = self.compile_args()
                self.emit(Invoke(args, sym))
            else:
                self.emit(IndexGet(self.runtime.get_field_index(name)))

    def compile_args(self) -> int:
        """Compile a parenthesised argument list and return its length."""
        open_paren = self.consume(TokenKind.LPAREN)
        args = 0
        while True:
            token = self.peek()
            if token is None:
                raise UnexpectedEOFExpected(TokenKind.RPAREN)
            if token.kind == TokenKind.RPAREN:
                break
            if args == MAX_ARITY:
                raise TooManyArguments(open_paren, MAX_ARITY)
            args += 1
            self.compile_member()
            # Optional trailing comma.
            if self.match(TokenKind.COMMA):
                self.advance()
            else:
                break
        self.consume(TokenKind.RPAREN)
        return args

    def compile_atom(self) -> None:
        token = self.advance()
        if token is None:
            raise UnexpectedEOF()

        if token.kind == TokenKind.IDENT:
            # An identifier directly followed by '=' is an assignment.
            if self.match(TokenKind.EQUAL):
                self.advance()
                self.compile_member()
                self.emit(Store(self.runtime.get_global_index(token.data)))
                return

            self.emit(Load(self.runtime.get_global_index(token.data)))
            if self.match(TokenKind.LPAREN):
                self.emit(Call(self.compile_args()))
        elif token.kind == TokenKind.STRING:
            text = token.data[1:-1]
            self.emit(LoadString(self.runtime.interner.intern(text)))
        elif token.kind == TokenKind.NUMBER:
            self.emit(LoadConst(self.add_constant(float(token.data))))
        elif token.kind == TokenKind.TRUE:
            self.emit(LoadTrue())
        elif token.kind == TokenKind.FALSE:
            self.emit(LoadFalse())
        elif token.kind == TokenKind.NIL:
            self.emit(LoadNil())
        elif token.kind == TokenKind.ALLOC:
            self.emit(Alloc())
        else:
            raise UnexpectedToken(token)

    def add_constant(self, num: float) -> int:
        try:
            return self.constants.index(num)
        except ValueError:
            self.constants.append(num)
            return len(self.constants) - 1


def compile_tokens(tokens: List[Token], runtime: Runtime) -> Module:
    return Compiler(tokens, runtime).compile_program()


def compile_source(source: str, runtime: Runtime) -> Module:
    """Tokenize and compile `source` against `runtime`."""
    return compile_tokens(lex(source), runtime)
