from nac.runtime import Runtime
from .core import register_core_functions
from .numeric import register_math_functions


def register_standard_functions(runtime: Runtime) -> None:
    """Register every standard native on `runtime`."""
    register_core_functions(runtime)
    register_math_functions(runtime)


__all__ = [
    'register_core_functions',
    'register_math_functions',
    'register_standard_functions',
]
