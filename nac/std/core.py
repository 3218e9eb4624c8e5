from nac.errors import VmError
from nac.heap import PlainObject
from nac.runtime import NativeCallContext, Runtime
from nac.types import Fault, Value, NIL, Number, String, Object, format_number, type_name


def register_core_functions(runtime: Runtime) -> None:
    """Register print, assert_eq, alloc, len and add."""

    def std_print(args: NativeCallContext) -> Value:
        value = args.pop()
        print(args.format(value))
        return NIL

    def std_assert_eq(args: NativeCallContext) -> Value:
        msg = args.pop()
        expected = args.pop()
        actual = args.pop()
        if expected != actual:
            raise VmError(Fault(
                'AssertionError',
                f"{args.format(msg)}: expected {args.format(expected)}, got {args.format(actual)}",
            ))
        return NIL

    def std_alloc(args: NativeCallContext) -> Value:
        addr = args.heap.alloc()
        if addr is None:
            # Nothing was popped, so the stack is already in its pre-call state.
            args.request_gc()
            return NIL
        return Object(addr)

    def std_len(args: NativeCallContext) -> Value:
        value = args.pop()
        if isinstance(value, String):
            return Number(float(len(args.strings.get(value.id))))
        if isinstance(value, Object):
            obj = args.heap.slot(value.addr)
            if not isinstance(obj, PlainObject):
                raise VmError(Fault('SegmentationFault', f'len of freed object {value.addr:#x}'))
            return Number(float(len(obj.data)))
        raise VmError(Fault('TypeError', f'len expects a string or an object, got {type_name(value)}'))

    def std_add(args: NativeCallContext) -> Value:
        b = args.pop()
        a = args.pop()
        if isinstance(a, Number) and isinstance(b, Number):
            return Number(a.value + b.value)
        if isinstance(a, String) and isinstance(b, String):
            return String(args.strings.intern(args.strings.get(a.id) + args.strings.get(b.id)))
        if isinstance(a, String) and isinstance(b, Number):
            return String(args.strings.intern(args.strings.get(a.id) + format_number(b.value)))
        raise VmError(Fault('TypeError', f'invalid arguments to add: {type_name(a)} and {type_name(b)}'))

    runtime.register_function('print', 1, std_print)
    runtime.register_function('assert_eq', 3, std_assert_eq)
    runtime.register_function('alloc', 0, std_alloc)
    runtime.register_function('len', 1, std_len)
    runtime.register_function('add', 2, std_add)
