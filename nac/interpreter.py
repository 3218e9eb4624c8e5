"""Driver for compiling and running programs.

`Interpreter` owns a runtime (with the standard natives registered), a
collector and an optional debug trace. `run` compiles a source text and
steps the VM until it halts. Whenever the VM suspends with a collection
request, the interpreter runs one collection cycle through its collector and
resumes. If a cycle frees nothing and the VM immediately asks again from the
same instruction, the program cannot make progress and `OutOfMemory` is
raised.

Debug information is written to `debug_file` when `debug_level` is greater
than zero:

    1  run start/stop and collection cycles
    2  the compiled module listing
    3  every executed instruction
    4  the value stack after every instruction
"""

from __future__ import annotations

from typing import Optional

from .compiler import compile_source
from .disasm import format_instruction, format_module
from .errors import OutOfMemory
from .gc import Collector, ConsoleCollector, collect
from .instructions import Module
from .runtime import DEFAULT_HEAP_SIZE, Runtime
from .std import register_standard_functions
from .vm import ControlFlow


class Interpreter:
    """Compiles source text and drives the VM through collection cycles."""
    def __init__(self, runtime: Optional[Runtime] = None, collector: Optional[Collector] = None,
                 debug_level: int = 0, debug_file: str = 'debug.txt',
                 heap_size: int = DEFAULT_HEAP_SIZE):
        if runtime is None:
            runtime = Runtime(heap_size)
            register_standard_functions(runtime)
        self.runtime = runtime
        self.collector = collector if collector is not None else ConsoleCollector()
        self.debug_level = debug_level
        self.debug_fp = open(debug_file, 'w', encoding='utf-8') if debug_level > 0 else None

    def __enter__(self) -> 'Interpreter':
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self.debug_fp:
            self.debug_fp.close()
            self.debug_fp = None

    def debug(self, msg: str):
        if self.debug_level > 0:
            if self.debug_fp:
                self.debug_fp.write(msg + '\n')
                self.debug_fp.flush()
            else:
                print(msg)

    def compile(self, source: str) -> Module:
        module = compile_source(source, self.runtime)
        if self.debug_level >= 2:
            self.debug(format_module(module, self.runtime))
        return module

    def run(self, source: str) -> None:
        self.execute(self.compile(source))

    def execute(self, module: Module) -> None:
        """Run `module` to completion. Stack and ip are reset afterwards, even on error."""
        runtime = self.runtime
        vm = runtime.spawn_vm(module)
        starved_at: Optional[int] = None
        if self.debug_level >= 1:
            self.debug(f"run: {len(module)} instructions, heap {runtime.heap.live_count()}/{runtime.heap.size()}")
        try:
            while True:
                if self.debug_level >= 3:
                    self.debug(f"{runtime.ip:04d}  {format_instruction(vm.current_instruction())}")
                flow = vm.step()
                if self.debug_level >= 4:
                    stack = ', '.join(runtime.format_value(v) for v in runtime.stack)
                    self.debug(f"      [{stack}]")

                if flow is ControlFlow.CONTINUE:
                    starved_at = None
                    continue
                if flow is ControlFlow.HALT:
                    break

                if starved_at == runtime.ip:
                    raise OutOfMemory(runtime.ip, runtime.heap.size())
                freed = collect(runtime, self.collector)
                if self.debug_level >= 1:
                    metrics = runtime.gc_metrics
                    self.debug(f"gc: cycle {metrics.total_cycles} at {runtime.ip:04d} freed {freed} "
                               f"(total {metrics.total_garbage_collected})")
                starved_at = runtime.ip if freed == 0 else None
        finally:
            runtime.reset()
        if self.debug_level >= 1:
            self.debug("halt")


def run_program(source: str, collector: Optional[Collector] = None, debug_level: int = 0,
                heap_size: int = DEFAULT_HEAP_SIZE) -> Runtime:
    """Convenience function to compile and run a program, returning its runtime."""
    with Interpreter(collector=collector, debug_level=debug_level, heap_size=heap_size) as interpreter:
        interpreter.run(source)
    return interpreter.runtime


def run_file(file_path: str, collector: Optional[Collector] = None, debug_level: int = 0,
             heap_size: int = DEFAULT_HEAP_SIZE) -> Interpreter:
    """Compile and execute a program file, returning the interpreter instance."""
    with open(file_path, 'r', encoding='utf-8') as f:
        source = f.read()
    interpreter = Interpreter(collector=collector, debug_level=debug_level, heap_size=heap_size)
    try:
        interpreter.run(source)
    finally:
        interpreter.close()
    return interpreter
