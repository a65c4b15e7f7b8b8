"""
Tests for runtime values and the environment chain.
"""

import pytest

from skiff.runtime import (
    Value, ValueType, Environment, ClassObject, NULL, TRUE, FALSE,
    int_val, float_val, string_val, bool_val, array_val, map_val,
    from_python, values_equal, is_truthy, display,
)
from skiff.runtime.values import instance_val, wrap_int, INT64_MAX, INT64_MIN


class TestValues:
    """Test value constructors and type tags."""

    def test_int_value(self):
        v = int_val(42)
        assert v.data == 42
        assert v.type == ValueType.INT
        assert v.type_name == "int"

    def test_int_wraps_at_64_bits(self):
        assert int_val(INT64_MAX + 1).data == INT64_MIN
        assert int_val(INT64_MIN - 1).data == INT64_MAX
        assert wrap_int(-5) == -5

    def test_float_value(self):
        v = float_val(3)
        assert v.data == 3.0
        assert isinstance(v.data, float)

    def test_bool_values_are_shared(self):
        assert bool_val(True) is TRUE
        assert bool_val(False) is FALSE

    def test_from_python(self):
        v = from_python({"xs": [1, 2.0, "s", None, True]})
        assert v.type == ValueType.MAP
        xs = v.data["xs"]
        assert [item.type for item in xs.data] == [
            ValueType.INT, ValueType.FLOAT, ValueType.STRING, ValueType.NULL, ValueType.BOOL,
        ]

    def test_from_python_rejects_unknown(self):
        with pytest.raises(ValueError):
            from_python(object())


class TestTruthiness:
    """Only null and false are falsy."""

    @pytest.mark.parametrize("value", [
        int_val(0), float_val(0.0), string_val(""), array_val([]), map_val({}), TRUE,
    ])
    def test_truthy(self, value):
        assert is_truthy(value)
        assert value.is_truthy()

    @pytest.mark.parametrize("value", [NULL, FALSE])
    def test_falsy(self, value):
        assert not is_truthy(value)


class TestEquality:
    """Value equality across variants."""

    def test_primitives_by_value(self):
        assert values_equal(int_val(3), int_val(3))
        assert values_equal(string_val("a"), string_val("a"))
        assert not values_equal(int_val(3), int_val(4))
        assert values_equal(NULL, NULL)

    def test_different_types_never_equal(self):
        assert not values_equal(int_val(1), float_val(1.0))
        assert not values_equal(int_val(0), FALSE)
        assert not values_equal(NULL, FALSE)

    def test_arrays_structural(self):
        a = array_val([int_val(1), array_val([string_val("x")])])
        b = array_val([int_val(1), array_val([string_val("x")])])
        assert a == b
        assert a != array_val([int_val(1)])

    def test_maps_structural(self):
        a = map_val({"k": int_val(1), "j": int_val(2)})
        b = map_val({"j": int_val(2), "k": int_val(1)})
        assert a == b
        assert a != map_val({"k": int_val(1)})

    def test_instances_by_identity(self):
        klass = ClassObject("P")
        a = instance_val(klass)
        b = instance_val(klass)
        a.data.fields["x"] = int_val(1)
        b.data.fields["x"] = int_val(1)
        assert a == a
        assert a != b

    def test_cyclic_maps_terminate(self):
        a = map_val({})
        a.data["self"] = a
        b = map_val({})
        b.data["self"] = b
        assert values_equal(a, b)

    def test_equal_values_hash_equal(self):
        assert hash(array_val([int_val(1)])) == hash(array_val([int_val(1)]))
        assert hash(string_val("a")) == hash(string_val("a"))


class TestDisplay:
    """String forms used by print and str()."""

    def test_primitives(self):
        assert display(int_val(-3)) == "-3"
        assert display(float_val(2.0)) == "2.0"
        assert display(float_val(0.1)) == "0.1"
        assert display(TRUE) == "true"
        assert display(NULL) == "null"
        assert display(string_val("hi")) == "hi"

    def test_nested_strings_are_quoted(self):
        v = array_val([string_val("a"), int_val(1), NULL])
        assert display(v) == '["a", 1, null]'

    def test_map(self):
        v = map_val({"name": string_val("ada")})
        assert display(v) == '{"name": "ada"}'

    def test_class_and_instance(self):
        klass = ClassObject("Point")
        assert display(Value(klass, ValueType.CLASS)) == "<class Point>"
        assert display(instance_val(klass)) == "<Point instance>"

    def test_self_containing_map(self):
        m = map_val({})
        m.data["me"] = m
        assert display(m) == '{"me": {...}}'


class TestEnvironment:
    """Scope chain behaviour."""

    def test_define_and_get(self):
        env = Environment()
        env.define("x", int_val(1))
        assert env.get("x") == int_val(1)

    def test_undefined_reads_null(self):
        assert Environment().get("missing") is NULL

    def test_lookup_walks_outward(self):
        outer = Environment(name="global")
        outer.define("x", int_val(1))
        inner = Environment(outer)
        assert inner.get("x") == int_val(1)
        assert inner.contains("x")
        assert inner.depth() == 1

    def test_shadowing(self):
        outer = Environment()
        outer.define("x", int_val(1))
        inner = Environment(outer)
        inner.define("x", int_val(2))
        assert inner.get("x") == int_val(2)
        assert outer.get("x") == int_val(1)

    def test_assign_updates_defining_frame(self):
        outer = Environment()
        outer.define("x", int_val(1))
        inner = Environment(outer)
        inner.assign("x", int_val(5))
        assert outer.get("x") == int_val(5)
        assert "x" not in inner.variables

    def test_assign_undefined_declares_in_current_frame(self):
        outer = Environment()
        inner = Environment(outer)
        inner.assign("y", int_val(7))
        assert inner.variables["y"] == int_val(7)
        assert not outer.contains("y")

    def test_null_binding_is_still_defined(self):
        outer = Environment()
        outer.define("x", NULL)
        inner = Environment(outer)
        inner.assign("x", int_val(3))
        assert outer.get("x") == int_val(3)
        assert "x" not in inner.variables
