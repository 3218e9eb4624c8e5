import math

import pytest

from nac.errors import VmError
from nac.gc import CallbackCollector
from nac.interpreter import Interpreter
from nac.std.numeric import ieee_div, ieee_rem, round_half_away_from_zero
from nac.types import Object, format_number


def make_interpreter(heap_size=20, keep=lambda addr, slot: True):
    return Interpreter(collector=CallbackCollector(keep), heap_size=heap_size)


def output_of(source, capsys):
    make_interpreter().run(source)
    return capsys.readouterr().out.splitlines()


def test_number_formatting():
    assert format_number(3.0) == '3'
    assert format_number(0.5) == '0.5'
    assert format_number(-0.0) == '-0'
    assert format_number(math.inf) == 'inf'
    assert format_number(-math.inf) == '-inf'
    assert format_number(math.nan) == 'NaN'
    assert format_number(1e21) == '1000000000000000000000'
    assert format_number(1e23) == '100000000000000000000000'
    assert format_number(0.00001) == '0.00001'
    assert format_number(-1.5e-7) == '-0.00000015'
    assert format_number(0.1) == '0.1'
    assert format_number(0.0) == '0'


def test_print_values(capsys):
    assert output_of('print(nil); print(true); print(false); print(42); print("hi"); print(print);', capsys) == [
        'nil', 'true', 'false', '42', 'hi', 'fn<0>',
    ]


def test_print_objects(capsys):
    source = 'o = ALLOC; print(o); o.x = 1; o.self = o; print(o);'
    assert output_of(source, capsys) == ['Object {}', 'Object { x: 1, self: Object<0> }']


def test_print_freed_object(capsys):
    interpreter = make_interpreter()
    interpreter.run('o = ALLOC;')
    interpreter.runtime.heap.free(0)
    interpreter.run('print(o);')
    assert capsys.readouterr().out == 'Object { <oops.__0> }\n'


def test_arithmetic(capsys):
    source = '''
    print(add(1, 2));
    print(sub(1, 3));
    print(mul(3, 4));
    print(div(7, 2));
    print(mod(7, 3));
    print(mod(sub(0, 7), 3));
    '''
    assert output_of(source, capsys) == ['3', '-2', '12', '3.5', '1', '-1']


def test_division_by_zero_follows_ieee(capsys):
    source = 'print(div(1, 0)); print(div(sub(0, 1), 0)); print(div(0, 0)); print(mod(1, 0));'
    assert output_of(source, capsys) == ['inf', '-inf', 'NaN', 'NaN']


def test_ieee_helpers():
    assert ieee_div(1.0, -0.0) == -math.inf
    assert math.isnan(ieee_div(math.nan, 0.0))
    assert ieee_rem(-7.0, 3.0) == -1.0
    assert round_half_away_from_zero(2.5) == 3.0
    assert round_half_away_from_zero(-2.5) == -3.0
    assert round_half_away_from_zero(2.4) == 2.0


def test_comparisons(capsys):
    source = 'print(lt(1, 2)); print(gt(1, 2)); print(lte(2, 2)); print(gte(1, 2));'
    assert output_of(source, capsys) == ['true', 'false', 'true', 'false']


def test_math_functions(capsys):
    source = '''
    print(sqrt(16));
    print(sqrt(sub(0, 1)));
    print(floor(div(7, 2)));
    print(ceil(div(7, 2)));
    print(round(div(5, 2)));
    print(round(sub(0, div(5, 2))));
    print(trunc(sub(0, div(7, 2))));
    print(fract(div(7, 2)));
    print(abs(sub(0, 3)));
    print(ln(0));
    print(log2(8));
    print(exp(1000));
    print(signum(sub(0, 5)));
    print(to_degrees(0));
    '''
    assert output_of(source, capsys) == [
        '4', 'NaN', '3', '4', '3', '-3', '-3', '0.5', '3', '-inf', '3', 'inf', '-1', '0',
    ]


def test_predicates(capsys):
    source = 'print(is_nan(div(0, 0))); print(is_finite(1)); print(is_infinite(div(1, 0))); print(is_normal(0));'
    assert output_of(source, capsys) == ['true', 'true', 'true', 'false']


def test_math_needs_numbers():
    with pytest.raises(VmError) as info:
        make_interpreter().run('sub("a", 1);')
    assert info.value.fault.name == 'TypeError'
    assert info.value.fault.message == 'sub: invalid arguments (string, number)'


def test_add_on_strings(capsys):
    assert output_of('print(add("foo", "bar")); print(add("n", 1)); print(add("x", div(1, 2)));', capsys) == [
        'foobar', 'n1', 'x0.5',
    ]


def test_add_rejects_number_plus_string():
    with pytest.raises(VmError) as info:
        make_interpreter().run('add(1, "a");')
    assert info.value.fault.name == 'TypeError'


def test_len(capsys):
    source = 'o = ALLOC; o.a = 1; o.b = 2; print(len(o)); print(len("héllo")); print(len(""));'
    assert output_of(source, capsys) == ['2', '5', '0']


def test_len_of_number():
    with pytest.raises(VmError) as info:
        make_interpreter().run('len(1);')
    assert info.value.fault.name == 'TypeError'


def test_assert_eq():
    interpreter = make_interpreter()
    interpreter.run('assert_eq(add(1, 1), 2, "math works");')
    with pytest.raises(VmError) as info:
        interpreter.run('assert_eq(1, 2, "boom");')
    assert info.value.fault.name == 'AssertionError'
    assert info.value.fault.message == 'boom: expected 2, got 1'


def test_alloc_native_waits_for_a_collection():
    interpreter = make_interpreter(heap_size=1, keep=lambda addr, slot: False)
    interpreter.run('a = alloc(); a.x = 1; b = alloc();')
    runtime = interpreter.runtime
    assert runtime.get_global('b') == Object(0)
    assert runtime.heap.get(0).data == {}
    assert runtime.gc_metrics.total_cycles == 1


def test_natives_are_registered_once_per_name():
    runtime = make_interpreter().runtime
    names = [f.name for f in runtime.functions]
    assert len(names) == len(set(names))
    assert {'print', 'assert_eq', 'alloc', 'len', 'add', 'sub', 'lt', 'sqrt', 'is_nan'} <= set(names)
    assert runtime.get_global('sqrt') is not None
    assert runtime.get_global('nope') is None


def test_small_fractions_print_without_exponent(capsys):
    assert output_of('print(div(1, 100000));', capsys) == ['0.00001']
