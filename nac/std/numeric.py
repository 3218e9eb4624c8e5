"""Arithmetic, comparison and math natives.

The language has no operators, so all arithmetic happens here. Results
follow IEEE-754 double semantics: dividing by zero gives an infinity or NaN
and functions outside their domain return NaN instead of failing. Passing
anything other than numbers is a fatal `TypeError` fault.
"""

import math
from typing import Callable, Dict, List

from nac.errors import VmError
from nac.runtime import NativeCallContext, Runtime
from nac.types import Fault, Value, Bool, Number, type_name


def pop_numbers(name: str, args: NativeCallContext, count: int) -> List[float]:
    """Pop `count` arguments, returning them in call order."""
    values = [args.pop() for _ in range(count)]
    values.reverse()
    for value in values:
        if not isinstance(value, Number):
            got = ', '.join(type_name(v) for v in values)
            raise VmError(Fault('TypeError', f'{name}: invalid arguments ({got})'))
    return [value.value for value in values]


def ieee_div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def ieee_rem(a: float, b: float) -> float:
    """Remainder with the sign of the dividend, like C's fmod."""
    try:
        return math.fmod(a, b)
    except ValueError:
        return math.nan


def round_half_away_from_zero(x: float) -> float:
    if not math.isfinite(x):
        return x
    whole = math.trunc(x)
    if abs(x - whole) >= 0.5:
        whole += 1 if x > 0 else -1
    return float(whole)


def finite_only(fn: Callable[[float], int]) -> Callable[[float], float]:
    """Wrap an integer-valued rounding function so inf and NaN pass through."""
    def apply(x: float) -> float:
        return float(fn(x)) if math.isfinite(x) else x
    return apply


def logarithm(fn: Callable[[float], float]) -> Callable[[float], float]:
    def apply(x: float) -> float:
        if x == 0:
            return -math.inf
        if x < 0:
            return math.nan
        return fn(x)
    return apply


def atanh(x: float) -> float:
    if abs(x) == 1:
        return math.copysign(math.inf, x)
    return math.atanh(x)


def signum(x: float) -> float:
    return x if math.isnan(x) else math.copysign(1.0, x)


def is_normal(x: float) -> bool:
    return math.isfinite(x) and abs(x) >= 2.2250738585072014e-308


NUMBER_FUNCTIONS: Dict[str, Callable[[float], float]] = {
    'abs': math.fabs,
    'acos': math.acos,
    'acosh': math.acosh,
    'asin': math.asin,
    'asinh': math.asinh,
    'atan': math.atan,
    'atanh': atanh,
    'cbrt': math.cbrt,
    'ceil': finite_only(math.ceil),
    'cos': math.cos,
    'cosh': math.cosh,
    'exp': math.exp,
    'exp2': math.exp2,
    'floor': finite_only(math.floor),
    'fract': lambda x: x - math.trunc(x) if math.isfinite(x) else math.nan,
    'ln': logarithm(math.log),
    'log10': logarithm(math.log10),
    'log2': logarithm(math.log2),
    'round': round_half_away_from_zero,
    'signum': signum,
    'sin': math.sin,
    'sinh': math.sinh,
    'sqrt': math.sqrt,
    'tan': math.tan,
    'tanh': math.tanh,
    'to_degrees': math.degrees,
    'to_radians': math.radians,
    'trunc': finite_only(math.trunc),
}

PREDICATES: Dict[str, Callable[[float], bool]] = {
    'is_finite': math.isfinite,
    'is_infinite': math.isinf,
    'is_nan': math.isnan,
    'is_normal': is_normal,
}

BINARY_OPS: Dict[str, Callable[[float, float], float]] = {
    'sub': lambda a, b: a - b,
    'mul': lambda a, b: a * b,
    'div': ieee_div,
    'mod': ieee_rem,
}

COMPARISONS: Dict[str, Callable[[float, float], bool]] = {
    'gt': lambda a, b: a > b,
    'lt': lambda a, b: a < b,
    'lte': lambda a, b: a <= b,
    'gte': lambda a, b: a >= b,
}


def apply_ieee(fn: Callable[[float], float], x: float) -> float:
    try:
        return fn(x)
    except ValueError:
        return math.nan
    except OverflowError:
        # Every overflowing function here is odd or strictly positive.
        return math.copysign(math.inf, x) if fn is math.sinh else math.inf


def register_math_functions(runtime: Runtime) -> None:
    """Register the arithmetic, comparison and one-argument math natives."""

    def binary(name: str, op: Callable[[float, float], float]):
        def native(args: NativeCallContext) -> Value:
            a, b = pop_numbers(name, args, 2)
            return Number(op(a, b))
        return native

    def comparison(name: str, op: Callable[[float, float], bool]):
        def native(args: NativeCallContext) -> Value:
            a, b = pop_numbers(name, args, 2)
            return Bool(op(a, b))
        return native

    def unary(name: str, fn: Callable[[float], float]):
        def native(args: NativeCallContext) -> Value:
            (x,) = pop_numbers(name, args, 1)
            return Number(apply_ieee(fn, x))
        return native

    def predicate(name: str, fn: Callable[[float], bool]):
        def native(args: NativeCallContext) -> Value:
            (x,) = pop_numbers(name, args, 1)
            return Bool(fn(x))
        return native

    for name, op in BINARY_OPS.items():
        runtime.register_function(name, 2, binary(name, op))
    for name, op in COMPARISONS.items():
        runtime.register_function(name, 2, comparison(name, op))
    for name, fn in NUMBER_FUNCTIONS.items():
        runtime.register_function(name, 1, unary(name, fn))
    for name, fn in PREDICATES.items():
        runtime.register_function(name, 1, predicate(name, fn))
