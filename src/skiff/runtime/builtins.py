"""
Native function registry for the skiff interpreter.

``install_builtins`` registers every native into an interpreter's global
environment through ``Interpreter.register``. Natives receive their
arguments as a list of Values. The conversion natives (``int``, ``float``)
fall back to zero instead of failing; the others raise ``NativeError`` on
misuse, which the interpreter reports as a TypeError at the call site.
"""

import math
import re
from typing import List, TYPE_CHECKING

from .values import (
    Value, ValueType, NULL, int_val, float_val, string_val, bool_val, array_val,
    display, values_equal, is_truthy, wrap_int, INT64_MIN, INT64_MAX,
)
from ..errors import NativeError

if TYPE_CHECKING:
    from .interpreter import Interpreter


# Longest numeric prefix accepted by int() and float(), after leading whitespace
_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)


def install_builtins(interpreter: "Interpreter") -> None:
    """Register all native functions."""
    _register_core_functions(interpreter)
    _register_conversion_functions(interpreter)
    _register_numeric_functions(interpreter)
    _register_collection_functions(interpreter)
    _register_string_functions(interpreter)


def _require(value: Value, kind: ValueType, what: str) -> None:
    if value.type != kind:
        raise NativeError(f"{what} must be {kind.value}, found {value.type_name}")


def _require_number(value: Value, what: str) -> None:
    if not value.is_number:
        raise NativeError(f"{what} must be a number, found {value.type_name}")


def _number(x) -> Value:
    """Wrap a Python number, keeping int/float-ness."""
    if isinstance(x, int):
        return int_val(x)
    return float_val(x)


# --- Core ---

def _register_core_functions(interpreter: "Interpreter") -> None:

    def _print(args: List[Value]) -> Value:
        interpreter.stdout.write(" ".join(display(a) for a in args) + "\n")
        return NULL

    def _len(args: List[Value]) -> Value:
        value = args[0]
        if value.type in (ValueType.STRING, ValueType.ARRAY):
            return int_val(len(value.data))
        return NULL

    def _type(args: List[Value]) -> Value:
        return string_val(args[0].type_name)

    interpreter.register("print", None, _print)
    interpreter.register("len", 1, _len)
    interpreter.register("type", 1, _type)


# --- Conversions ---

def parse_int_prefix(text: str) -> int:
    """Parse the leading integer of a string; 0 if there is none or it overflows."""
    match = _INT_PREFIX.match(text)
    if match is None:
        return 0
    n = int(match.group(1))
    if not INT64_MIN <= n <= INT64_MAX:
        return 0
    return n


def parse_float_prefix(text: str) -> float:
    """Parse the leading float of a string; 0.0 if there is none."""
    match = _FLOAT_PREFIX.match(text)
    if match is None:
        return 0.0
    return float(match.group(1))


def _register_conversion_functions(interpreter: "Interpreter") -> None:

    def _str(args: List[Value]) -> Value:
        return string_val(display(args[0]))

    def _int(args: List[Value]) -> Value:
        value = args[0]
        if value.type == ValueType.INT:
            return value
        if value.type == ValueType.FLOAT:
            if math.isnan(value.data) or math.isinf(value.data):
                return int_val(0)
            return int_val(wrap_int(int(value.data)))
        if value.type == ValueType.STRING:
            return int_val(parse_int_prefix(value.data))
        return int_val(0)

    def _float(args: List[Value]) -> Value:
        value = args[0]
        if value.type == ValueType.FLOAT:
            return value
        if value.type == ValueType.INT:
            return float_val(float(value.data))
        if value.type == ValueType.STRING:
            return float_val(parse_float_prefix(value.data))
        return float_val(0.0)

    def _bool(args: List[Value]) -> Value:
        return bool_val(is_truthy(args[0]))

    interpreter.register("str", 1, _str)
    interpreter.register("int", 1, _int)
    interpreter.register("float", 1, _float)
    interpreter.register("bool", 1, _bool)


# --- Numbers ---

def _register_numeric_functions(interpreter: "Interpreter") -> None:

    def _abs(args: List[Value]) -> Value:
        value = args[0]
        if value.type == ValueType.INT:
            return int_val(abs(value.data))
        if value.type == ValueType.FLOAT:
            return float_val(abs(value.data))
        return NULL

    def _numbers_of(args: List[Value], name: str) -> List[Value]:
        # min(a, b, ...) or min(array)
        if len(args) == 1 and args[0].type == ValueType.ARRAY:
            args = args[0].data
        if not args:
            raise NativeError(f"{name} of an empty sequence")
        for arg in args:
            _require_number(arg, "argument")
        return args

    def _min(args: List[Value]) -> Value:
        return min(_numbers_of(args, "min"), key=lambda v: v.data)

    def _max(args: List[Value]) -> Value:
        return max(_numbers_of(args, "max"), key=lambda v: v.data)

    def _pow(args: List[Value]) -> Value:
        base, exponent = args
        _require_number(base, "base")
        _require_number(exponent, "exponent")
        if base.type == ValueType.INT and exponent.type == ValueType.INT and exponent.data >= 0:
            return int_val(pow(base.data, exponent.data, 2 ** 64))
        try:
            return float_val(math.pow(base.data, exponent.data))
        except (OverflowError, ValueError) as e:
            raise NativeError(str(e)) from None

    def _clamp(args: List[Value]) -> Value:
        value, low, high = args
        for arg, what in ((value, "value"), (low, "lower bound"), (high, "upper bound")):
            _require_number(arg, what)
        if value.data < low.data:
            return low
        if value.data > high.data:
            return high
        return value

    interpreter.register("abs", 1, _abs)
    interpreter.register("min", None, _min)
    interpreter.register("max", None, _max)
    interpreter.register("pow", 2, _pow)
    interpreter.register("clamp", 3, _clamp)


# --- Arrays and maps ---

def _register_collection_functions(interpreter: "Interpreter") -> None:

    def _range(args: List[Value]) -> Value:
        if not 1 <= len(args) <= 3:
            raise NativeError(f"expected 1 to 3 arguments, got {len(args)}")
        for arg in args:
            _require(arg, ValueType.INT, "argument")
        bounds = [a.data for a in args]
        if len(bounds) == 1:
            bounds.insert(0, 0)
        if len(bounds) == 3 and bounds[2] == 0:
            raise NativeError("step must not be zero")
        return array_val([int_val(i) for i in range(*bounds)])

    def _sum(args: List[Value]) -> Value:
        items = args[0]
        _require(items, ValueType.ARRAY, "argument")
        total = 0
        for item in items.data:
            _require_number(item, "element")
            total += item.data
        return _number(total)

    def _reverse(args: List[Value]) -> Value:
        value = args[0]
        if value.type == ValueType.ARRAY:
            return array_val(list(reversed(value.data)))
        if value.type == ValueType.STRING:
            return string_val(value.data[::-1])
        raise NativeError(f"argument must be array or string, found {value.type_name}")

    def _sorted(args: List[Value]) -> Value:
        items = args[0]
        _require(items, ValueType.ARRAY, "argument")
        if all(v.is_number for v in items.data):
            return array_val(sorted(items.data, key=lambda v: v.data))
        if all(v.type == ValueType.STRING for v in items.data):
            return array_val(sorted(items.data, key=lambda v: v.data))
        raise NativeError("elements must be all numbers or all strings")

    def _append(args: List[Value]) -> Value:
        if len(args) < 2:
            raise NativeError("expected an array and at least one value")
        _require(args[0], ValueType.ARRAY, "first argument")
        return array_val(args[0].data + args[1:])

    def _contains(args: List[Value]) -> Value:
        container, needle = args
        if container.type == ValueType.ARRAY:
            return bool_val(any(values_equal(v, needle) for v in container.data))
        if container.type == ValueType.STRING:
            _require(needle, ValueType.STRING, "substring")
            return bool_val(needle.data in container.data)
        if container.type == ValueType.MAP:
            _require(needle, ValueType.STRING, "key")
            return bool_val(needle.data in container.data)
        raise NativeError(f"cannot search in {container.type_name}")

    def _keys(args: List[Value]) -> Value:
        _require(args[0], ValueType.MAP, "argument")
        return array_val([string_val(k) for k in sorted(args[0].data)])

    interpreter.register("range", None, _range)
    interpreter.register("sum", 1, _sum)
    interpreter.register("reverse", 1, _reverse)
    interpreter.register("sorted", 1, _sorted)
    interpreter.register("append", None, _append)
    interpreter.register("contains", 2, _contains)
    interpreter.register("keys", 1, _keys)


# --- Strings ---

def _register_string_functions(interpreter: "Interpreter") -> None:

    def _string_op(name, op):
        def impl(args: List[Value]) -> Value:
            _require(args[0], ValueType.STRING, "argument")
            return string_val(op(args[0].data))
        impl.__name__ = f"_{name}"
        return impl

    interpreter.register("upper", 1, _string_op("upper", str.upper))
    interpreter.register("lower", 1, _string_op("lower", str.lower))
    interpreter.register("trim", 1, _string_op("trim", str.strip))
