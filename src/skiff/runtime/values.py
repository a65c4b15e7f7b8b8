"""
Runtime value wrappers for the skiff interpreter.

A ``Value`` pairs raw Python data with its language type tag. Primitives
(int, float, string, bool, null) are immutable Python objects, so copying a
Value copies them by value. Arrays, maps and instances hold mutable Python
containers shared by every alias of the Value.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..ast import FuncDecl
    from .environment import Environment


INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ValueType(Enum):
    """Variant tags; the value is the name reported by ``type()``."""
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BOOL = "bool"
    NULL = "null"
    ARRAY = "array"
    MAP = "map"
    FUNCTION = "function"
    CLASS = "class"
    INSTANCE = "instance"

    def __str__(self) -> str:
        return self.value


NUMERIC_TYPES = (ValueType.INT, ValueType.FLOAT)


# =============================================================================
# Callable and object payloads
# =============================================================================

@dataclass(eq=False)
class NativeFunction:
    """A function implemented in Python. ``arity`` of None means variadic."""
    name: str
    arity: Optional[int]
    impl: Callable[[List["Value"]], "Value"]


@dataclass(eq=False)
class UserFunction:
    """A function declared in source, closing over its defining environment.

    ``receiver`` is set on methods fetched from an instance; the receiver is
    bound as ``this`` when the function runs.
    """
    declaration: "FuncDecl"
    closure: "Environment"
    receiver: Optional["Value"] = None

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def arity(self) -> int:
        return len(self.declaration.parameters)

    def bind(self, instance: "Value") -> "UserFunction":
        return UserFunction(self.declaration, self.closure, instance)


@dataclass(eq=False)
class ClassObject:
    name: str
    methods: Dict[str, UserFunction] = field(default_factory=dict)

    def find_method(self, name: str) -> Optional[UserFunction]:
        return self.methods.get(name)


@dataclass(eq=False)
class Instance:
    klass: ClassObject
    fields: Dict[str, "Value"] = field(default_factory=dict)


# =============================================================================
# Value
# =============================================================================

@dataclass(eq=False)
class Value:
    """
    A runtime value with its type tag.

    The `data` field holds the Python payload:
        INT -> int, FLOAT -> float, STRING -> str, BOOL -> bool, NULL -> None,
        ARRAY -> list of Value, MAP -> dict of str to Value,
        FUNCTION -> NativeFunction or UserFunction, CLASS -> ClassObject,
        INSTANCE -> Instance
    """
    data: Any
    type: ValueType

    def __repr__(self) -> str:
        return f"Value({display(self, nested=True)}, {self.type})"

    def __str__(self) -> str:
        return display(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return values_equal(self, other)

    def __hash__(self) -> int:
        if self.type in (ValueType.ARRAY, ValueType.MAP):
            # Equal containers must hash equal; contents may change
            return hash((self.type, len(self.data)))
        if self.type in (ValueType.FUNCTION, ValueType.CLASS):
            return hash((self.type, self.data.name))
        if self.type == ValueType.INSTANCE:
            return id(self.data)
        return hash((self.type, self.data))

    @property
    def type_name(self) -> str:
        return self.type.value

    def is_truthy(self) -> bool:
        """Only null and false are falsy."""
        return is_truthy(self)

    @property
    def is_number(self) -> bool:
        return self.type in NUMERIC_TYPES


def is_truthy(value: Value) -> bool:
    if value.type == ValueType.NULL:
        return False
    if value.type == ValueType.BOOL:
        return value.data
    return True


# =============================================================================
# Constructors
# =============================================================================

def wrap_int(n: int) -> int:
    """Wrap an arbitrary Python int into the signed 64-bit range."""
    return ((n - INT64_MIN) % (2 ** 64)) + INT64_MIN


def int_val(n: int) -> Value:
    """Create an integer value, wrapping on 64-bit overflow."""
    return Value(wrap_int(int(n)), ValueType.INT)


def float_val(x: float) -> Value:
    return Value(float(x), ValueType.FLOAT)


def string_val(s: str) -> Value:
    return Value(str(s), ValueType.STRING)


def bool_val(b: bool) -> Value:
    return TRUE if b else FALSE


def array_val(items: Optional[List[Value]] = None) -> Value:
    """Create an array value; the list is shared, not copied."""
    return Value(items if items is not None else [], ValueType.ARRAY)


def map_val(entries: Optional[Dict[str, Value]] = None) -> Value:
    """Create a map value; the dict is shared, not copied."""
    return Value(entries if entries is not None else {}, ValueType.MAP)


def native_val(name: str, arity: Optional[int], impl: Callable[[List[Value]], Value]) -> Value:
    return Value(NativeFunction(name, arity, impl), ValueType.FUNCTION)


def function_val(fn: UserFunction) -> Value:
    return Value(fn, ValueType.FUNCTION)


def class_val(klass: ClassObject) -> Value:
    return Value(klass, ValueType.CLASS)


def instance_val(klass: ClassObject) -> Value:
    return Value(Instance(klass), ValueType.INSTANCE)


NULL = Value(None, ValueType.NULL)
TRUE = Value(True, ValueType.BOOL)
FALSE = Value(False, ValueType.BOOL)


def from_python(obj: Any) -> Value:
    """Convert a plain Python object (as returned by a native) into a Value."""
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return bool_val(obj)
    if isinstance(obj, int):
        return int_val(obj)
    if isinstance(obj, float):
        return float_val(obj)
    if isinstance(obj, str):
        return string_val(obj)
    if isinstance(obj, (list, tuple)):
        return array_val([from_python(item) for item in obj])
    if isinstance(obj, dict):
        return map_val({str(k): from_python(v) for k, v in obj.items()})
    raise ValueError(f"cannot convert {type(obj).__name__} to a skiff value")


# =============================================================================
# Equality
# =============================================================================

def values_equal(a: Value, b: Value, _seen: Optional[set] = None) -> bool:
    """
    Language equality.

    Values of different types are never equal (so ``1 == 1.0`` is false).
    Arrays and maps compare structurally; functions and classes by name;
    instances by identity.
    """
    if a.type != b.type:
        return False

    t = a.type
    if t == ValueType.NULL:
        return True
    if t in (ValueType.INT, ValueType.FLOAT, ValueType.STRING, ValueType.BOOL):
        return a.data == b.data
    if t == ValueType.INSTANCE:
        return a.data is b.data
    if t in (ValueType.FUNCTION, ValueType.CLASS):
        return a.data is b.data or a.data.name == b.data.name

    if a.data is b.data:
        return True
    # Pairs already under comparison are assumed equal, which terminates cycles
    if _seen is None:
        _seen = set()
    key = (id(a.data), id(b.data))
    if key in _seen:
        return True
    _seen.add(key)

    if t == ValueType.ARRAY:
        if len(a.data) != len(b.data):
            return False
        return all(values_equal(x, y, _seen) for x, y in zip(a.data, b.data))

    # MAP
    if a.data.keys() != b.data.keys():
        return False
    return all(values_equal(v, b.data[k], _seen) for k, v in a.data.items())


# =============================================================================
# String forms
# =============================================================================

def _quote(text: str) -> str:
    escaped = (text.replace("\\", "\\\\").replace('"', '\\"')
               .replace("\n", "\\n").replace("\t", "\\t"))
    return f'"{escaped}"'


def format_float(x: float) -> str:
    if x != x:
        return "nan"
    if x in (float("inf"), float("-inf")):
        return "inf" if x > 0 else "-inf"
    return repr(x)


def display(value: Value, nested: bool = False, _active: Optional[set] = None) -> str:
    """
    Render a value the way ``print`` and ``str()`` show it.

    Strings are shown raw at the top level and quoted inside containers.
    A container that contains itself renders the inner reference as
    ``[...]`` or ``{...}``.
    """
    t = value.type
    if t == ValueType.STRING:
        return _quote(value.data) if nested else value.data
    if t == ValueType.INT:
        return str(value.data)
    if t == ValueType.FLOAT:
        return format_float(value.data)
    if t == ValueType.BOOL:
        return "true" if value.data else "false"
    if t == ValueType.NULL:
        return "null"
    if t == ValueType.FUNCTION:
        return f"<function {value.data.name}>"
    if t == ValueType.CLASS:
        return f"<class {value.data.name}>"
    if t == ValueType.INSTANCE:
        return f"<{value.data.klass.name} instance>"

    if _active is None:
        _active = set()
    if id(value.data) in _active:
        return "[...]" if t == ValueType.ARRAY else "{...}"
    _active.add(id(value.data))
    try:
        if t == ValueType.ARRAY:
            return "[" + ", ".join(display(v, True, _active) for v in value.data) + "]"
        pairs = [f"{_quote(k)}: {display(v, True, _active)}" for k, v in value.data.items()]
        return "{" + ", ".join(pairs) + "}"
    finally:
        _active.discard(id(value.data))
