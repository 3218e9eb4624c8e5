"""Tokenizer for the language.

Tokenization is driven by a Lark basic lexer built from the terminal
definitions in `TOKEN_GRAMMAR`. Keywords are declared as string terminals;
Lark matches them only when a whole identifier spells the keyword, so `IF`
is a keyword while `IFFY` and `if` are identifiers.

Whitespace is limited to spaces, carriage returns and newlines. A `♥` starts
a comment that runs to the end of the line. String literals are delimited by
double quotes and keep their quotes in the token data; the compiler strips
them. Numbers are unsigned runs of ASCII digits.

Lines are 1-based and columns are 0-based.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List

from lark import Lark
from lark.exceptions import UnexpectedCharacters

from nac.errors import UnexpectedCharacter


class TokenKind(Enum):
    NIL = 'NIL'
    TRUE = 'TRUE'
    FALSE = 'FALSE'
    DOT = 'DOT'
    IDENT = 'IDENT'
    STRING = 'STRING'
    NUMBER = 'NUMBER'
    LPAREN = 'LPAREN'
    RPAREN = 'RPAREN'
    COMMA = 'COMMA'
    SEMICOLON = 'SEMICOLON'
    EQUAL = 'EQUAL'
    MINUS = 'MINUS'
    IF = 'IF'
    THEN = 'THEN'
    ELSE = 'ELSE'
    ELSEIF = 'ELSEIF'
    WHILE = 'WHILE'
    DO = 'DO'
    END = 'END'
    ALLOC = 'ALLOC'


@dataclass
class Token:
    kind: TokenKind
    data: str
    line: int
    column: int


TOKEN_GRAMMAR = r"""
    start: token*
    ?token: NIL | TRUE | FALSE | DOT | IDENT | STRING | NUMBER
          | LPAREN | RPAREN | COMMA | SEMICOLON | EQUAL | MINUS
          | IF | THEN | ELSE | ELSEIF | WHILE | DO | END | ALLOC

    NIL: "nil"
    TRUE: "true"
    FALSE: "false"
    IF: "IF"
    THEN: "THEN"
    ELSE: "ELSE"
    ELSEIF: "ELSEIF"
    WHILE: "WHILE"
    DO: "DO"
    END: "END"
    ALLOC: "ALLOC"

    DOT: "."
    LPAREN: "("
    RPAREN: ")"
    COMMA: ","
    SEMICOLON: ";"
    EQUAL: "="
    MINUS: "-"

    IDENT: /[A-Za-z][A-Za-z0-9_]*/
    NUMBER: /[0-9]+/
    STRING: /"[^"]*"/

    WS: /[ \r\n]+/
    COMMENT: /♥[^\n]*/
    %ignore WS
    %ignore COMMENT
"""


TOKEN_LEXER = Lark(
    TOKEN_GRAMMAR,
    parser='lalr',
    lexer='basic',
)


def lex(source: str) -> List[Token]:
    """Convert source text into a list of tokens.

    Raises `UnexpectedCharacter` naming the first character that does not
    start any token.
    """
    tokens: List[Token] = []
    try:
        for tok in TOKEN_LEXER.lex(source):
            tokens.append(Token(TokenKind(tok.type), tok.value, tok.line, tok.column - 1))
    except UnexpectedCharacters as e:
        raise UnexpectedCharacter(e.char, e.line, e.column - 1) from None
    return tokens
