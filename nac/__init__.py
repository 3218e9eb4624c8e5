# Nuclear Alabaster Chainsaw language package
# This package provides a bytecode compiler and a virtual machine whose heap
# is garbage collected by hand.
__version__ = '0.0.1'

from .compiler import compile_source
from .errors import NacError, CompileError, VmError, OutOfMemory
from .gc import Collector, CallbackCollector, ConsoleCollector
from .interpreter import Interpreter, run_program
from .runtime import Runtime
from .vm import ControlFlow, Vm

__all__ = [
    'compile_source',
    'NacError',
    'CompileError',
    'VmError',
    'OutOfMemory',
    'Collector',
    'CallbackCollector',
    'ConsoleCollector',
    'Interpreter',
    'run_program',
    'Runtime',
    'ControlFlow',
    'Vm',
]
