"""CLI entry point for the interpreter.

Usage:
    python -m nac [-v|-vv|-vvv|-vvvv] [--heap-size SLOTS] <program_file>
    python -m nac [-v...] --disassemble <program_file>
    python -m nac [-v...] [--heap-size SLOTS]

Options:
  -v              Increase debug verbosity (can be repeated)
  --heap-size     Number of heap slots available to the program (default 20)
  --disassemble   Compile the program and print its instruction listing

Without a program file an interactive prompt is started; every line is
compiled and run against the same runtime, so globals and heap contents
carry over from one line to the next. Type `:exit` to quit.

Whenever the heap fills up, you are shown its contents and asked which
slots to keep. Debug information is written to `debug.txt` in the current
directory when verbosity is greater than zero.
"""

import argparse
import builtins
import sys
from pathlib import Path

from . import __version__
from .disasm import format_module
from .errors import CompileError, HeapError, OutOfMemory, VmError
from .interpreter import Interpreter
from .runtime import DEFAULT_HEAP_SIZE

BANNER = f"♥ Welcome to Nuclear Alabaster Chainsaw - v{__version__} ♥"


def report(error: Exception, file=None) -> None:
    if isinstance(error, CompileError):
        label = 'Compile error'
    elif isinstance(error, OutOfMemory):
        label = 'Out of memory'
    else:
        label = 'Runtime error'
    print(f"{label}: {error}", file=file)


def repl(interpreter: Interpreter) -> None:
    print(BANNER)
    print("(Type ':exit' to quit)\n")
    while True:
        try:
            line = builtins.input('> ')
        except EOFError:
            print()
            break
        if line.strip() == ':exit':
            break
        try:
            interpreter.run(line)
        except (CompileError, VmError, HeapError, OutOfMemory) as e:
            report(e)
    print("bye!")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Nuclear Alabaster Chainsaw interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--heap-size', type=int, default=DEFAULT_HEAP_SIZE, metavar='SLOTS',
                        help='number of heap slots (default %(default)s)')
    parser.add_argument('--disassemble', action='store_true', help='print the compiled instructions instead of running')
    parser.add_argument('program', nargs='?', help='program file to execute')
    args = parser.parse_args(argv)

    if args.heap_size < 0:
        parser.error('--heap-size must not be negative')
    if args.disassemble and not args.program:
        parser.error('--disassemble needs a program file')

    if args.program:
        program_file = Path(args.program)
        if not program_file.exists():
            print(f"Error: file {program_file} not found", file=sys.stderr)
            sys.exit(1)
        with open(program_file, 'r', encoding='utf-8') as f:
            source = f.read()

    interpreter = Interpreter(debug_level=args.v, heap_size=args.heap_size)
    try:
        if not args.program:
            repl(interpreter)
            return
        try:
            module = interpreter.compile(source)
            if args.disassemble:
                print(format_module(module, interpreter.runtime))
                return
            interpreter.execute(module)
        except (CompileError, VmError, HeapError, OutOfMemory) as e:
            report(e, file=sys.stderr)
            sys.exit(1)
    finally:
        interpreter.close()


if __name__ == '__main__':
    main()
