import builtins

import pytest

from nac.__main__ import BANNER, main


def write_program(tmp_path, source, name='program.nac'):
    path = tmp_path / name
    path.write_text(source, encoding='utf-8')
    return str(path)


def test_runs_a_program_file(tmp_path, capsys):
    main([write_program(tmp_path, 'print("Hello World!!");')])
    assert capsys.readouterr().out == 'Hello World!!\n'


def test_missing_file(tmp_path, capsys):
    missing = tmp_path / 'nope.nac'
    with pytest.raises(SystemExit) as info:
        main([str(missing)])
    assert info.value.code == 1
    assert capsys.readouterr().err == f'Error: file {missing} not found\n'


def test_compile_error_goes_to_stderr(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main([write_program(tmp_path, 'x = ;')])
    assert info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ''
    assert captured.err.startswith('Compile error: ')


def test_runtime_error_goes_to_stderr(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main([write_program(tmp_path, 'print("before"); assert_eq(1, 2, "boom");')])
    assert info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == 'before\n'
    assert captured.err == 'Runtime error: AssertionError: boom: expected 2, got 1\n'


def test_out_of_memory(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(builtins, 'input', lambda prompt='': 'all')
    with pytest.raises(SystemExit) as info:
        main(['--heap-size', '1', write_program(tmp_path, 'a = ALLOC; b = ALLOC;')])
    assert info.value.code == 1
    assert capsys.readouterr().err.startswith('Out of memory: ')


def test_heap_size_must_not_be_negative(tmp_path):
    with pytest.raises(SystemExit) as info:
        main(['--heap-size', '-1', write_program(tmp_path, ';')])
    assert info.value.code == 2


def test_disassemble(tmp_path, capsys):
    main(['--disassemble', write_program(tmp_path, 'print("hi");')])
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == f"0000  {'Load gid=0':<24}; print"
    assert lines[1] == f"0001  {'LoadString sid=0':<24}; 'hi'"
    assert lines[-1].endswith('Halt')


def test_disassemble_needs_a_program():
    with pytest.raises(SystemExit) as info:
        main(['--disassemble'])
    assert info.value.code == 2


def test_verbose_writes_debug_file(tmp_path, monkeypatch):
    program = write_program(tmp_path, 'x = 1;')
    monkeypatch.chdir(tmp_path)
    main(['-vv', program])
    trace = (tmp_path / 'debug.txt').read_text(encoding='utf-8')
    assert 'run: 4 instructions' in trace
    assert 'constants: 1' in trace


def test_repl_keeps_state_between_lines(capsys, monkeypatch):
    lines = iter(['x = 2;', 'print(add(x, 1));', 'oops = ;', 'print(nothing());', 'print(x);', ':exit'])
    monkeypatch.setattr(builtins, 'input', lambda prompt='': next(lines))
    main([])
    out = capsys.readouterr().out.splitlines()
    assert out[0] == BANNER
    assert '3' in out
    assert any(line.startswith('Compile error: ') for line in out)
    assert 'Runtime error: TypeError: nil is not callable' in out
    assert out[-2] == '2'
    assert out[-1] == 'bye!'


def test_repl_exits_on_end_of_input(capsys, monkeypatch):
    def closed(prompt=''):
        raise EOFError

    monkeypatch.setattr(builtins, 'input', closed)
    main([])
    assert capsys.readouterr().out.endswith('bye!\n')
