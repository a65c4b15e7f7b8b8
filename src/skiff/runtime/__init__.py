"""
skiff runtime - tree-walking interpreter.

This module provides:
- Interpreter: Executes parsed programs
- Value: Runtime values tagged with their type
- Environment: Lexical scope chain
- install_builtins: The standard native functions
"""

from .values import (
    Value,
    ValueType,
    NativeFunction,
    UserFunction,
    ClassObject,
    Instance,
    NULL,
    TRUE,
    FALSE,
    int_val,
    float_val,
    string_val,
    bool_val,
    array_val,
    map_val,
    from_python,
    values_equal,
    is_truthy,
    display,
)

from .environment import Environment

from .builtins import install_builtins

from .interpreter import (
    Interpreter,
    ExecutionResult,
    Completion,
    CompletionKind,
    run_source,
)

__all__ = [
    # Values
    "Value",
    "ValueType",
    "NativeFunction",
    "UserFunction",
    "ClassObject",
    "Instance",
    "NULL",
    "TRUE",
    "FALSE",
    "int_val",
    "float_val",
    "string_val",
    "bool_val",
    "array_val",
    "map_val",
    "from_python",
    "values_equal",
    "is_truthy",
    "display",
    # Scopes
    "Environment",
    # Natives
    "install_builtins",
    # Interpreter
    "Interpreter",
    "ExecutionResult",
    "Completion",
    "CompletionKind",
    "run_source",
]
