import pytest

from nac.errors import UnexpectedCharacter
from nac.lexer import TokenKind, lex


def kinds(source):
    return [token.kind for token in lex(source)]


def test_assignment_statement():
    tokens = lex('x = 1;')
    assert [(t.kind, t.data) for t in tokens] == [
        (TokenKind.IDENT, 'x'),
        (TokenKind.EQUAL, '='),
        (TokenKind.NUMBER, '1'),
        (TokenKind.SEMICOLON, ';'),
    ]


def test_punctuation():
    assert kinds('. = ; ( ) , -') == [
        TokenKind.DOT, TokenKind.EQUAL, TokenKind.SEMICOLON, TokenKind.LPAREN,
        TokenKind.RPAREN, TokenKind.COMMA, TokenKind.MINUS,
    ]


def test_keywords_are_case_sensitive_whole_words():
    assert kinds('IF if IFFY true True nil NIL ALLOC') == [
        TokenKind.IF, TokenKind.IDENT, TokenKind.IDENT, TokenKind.TRUE,
        TokenKind.IDENT, TokenKind.NIL, TokenKind.IDENT, TokenKind.ALLOC,
    ]


def test_control_flow_keywords():
    assert kinds('IF THEN ELSE ELSEIF WHILE DO END false') == [
        TokenKind.IF, TokenKind.THEN, TokenKind.ELSE, TokenKind.ELSEIF,
        TokenKind.WHILE, TokenKind.DO, TokenKind.END, TokenKind.FALSE,
    ]


def test_identifiers_may_contain_digits_and_underscores():
    tokens = lex('snake_case2 x9')
    assert [t.data for t in tokens] == ['snake_case2', 'x9']
    assert all(t.kind == TokenKind.IDENT for t in tokens)


def test_string_keeps_its_quotes():
    (token,) = lex('"hi there"')
    assert token.kind == TokenKind.STRING
    assert token.data == '"hi there"'


def test_numbers_are_unsigned_digit_runs():
    assert [(t.kind, t.data) for t in lex('123abc 1.5')] == [
        (TokenKind.NUMBER, '123'),
        (TokenKind.IDENT, 'abc'),
        (TokenKind.NUMBER, '1'),
        (TokenKind.DOT, '.'),
        (TokenKind.NUMBER, '5'),
    ]


def test_lines_are_one_based_and_columns_zero_based():
    tokens = lex('x\n  y\r\nz')
    assert [(t.data, t.line, t.column) for t in tokens] == [
        ('x', 1, 0),
        ('y', 2, 2),
        ('z', 3, 0),
    ]


def test_heart_starts_a_line_comment():
    tokens = lex('x ♥ this = is ignored + !\ny')
    assert [t.data for t in tokens] == ['x', 'y']
    assert tokens[1].line == 2


def test_comment_at_end_of_input():
    assert kinds('x; ♥ trailing') == [TokenKind.IDENT, TokenKind.SEMICOLON]


def test_unexpected_character_is_named():
    with pytest.raises(UnexpectedCharacter) as info:
        lex('x + 1')
    assert info.value.char == '+'
    assert (info.value.line, info.value.column) == (1, 2)


def test_tab_is_not_whitespace():
    with pytest.raises(UnexpectedCharacter) as info:
        lex('x\t= 1;')
    assert info.value.char == '\t'


def test_unterminated_string_reports_the_quote():
    with pytest.raises(UnexpectedCharacter) as info:
        lex('print("oops);')
    assert info.value.char == '"'


def test_empty_source():
    assert lex('') == []
    assert lex('  \n\r\n ') == []
