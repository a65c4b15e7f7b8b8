"""
Tree-walking interpreter for skiff programs.

Statements execute to a ``Completion`` signal; expressions evaluate to a
``Value``. Runtime errors raised while evaluating an expression become an
ERROR completion at the enclosing statement, so ``try`` and ``finally`` see
them the same way they see ``return``.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, List, Optional, TextIO

from .values import (
    Value, ValueType, NativeFunction, UserFunction, ClassObject,
    NULL, int_val, float_val, string_val, bool_val, array_val, map_val,
    native_val, function_val, class_val, instance_val, from_python,
    values_equal, is_truthy,
)
from .environment import Environment
from .builtins import install_builtins

from ..ast import (
    Statement, ExpressionStatement, VarDecl, FuncDecl, ClassDecl, Return,
    If, While, For, Try, Block, Break, Continue,
    Expression, NumberLiteral, StringLiteral, BoolLiteral, NullLiteral,
    Variable, Binary, Unary, Call, ArrayLiteral, MapLiteral, Member, Index, Assign,
)
from ..errors import (
    Diagnostic,
    SkiffError,
    EvalError,
    LexError,
    NativeError,
    ParseFailed,
    error_operand_not_number,
    error_type,
    error_arity,
    error_map_key_not_string,
    error_not_callable,
    error_index_out_of_range,
    error_division_by_zero,
    error_stack_overflow,
)
from ..lexer import tokenize
from ..parser import parse
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)

DEFAULT_RECURSION_LIMIT = 10000

RECEIVER_NAME = "this"
INITIALIZER_NAME = "__init__"

ARITHMETIC_OPS = frozenset({
    TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH, TokenType.PERCENT,
})
COMPARISON_OPS = frozenset({
    TokenType.LESS, TokenType.LESS_EQUAL, TokenType.GREATER, TokenType.GREATER_EQUAL,
})


class CompletionKind(Enum):
    NORMAL = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    ERROR = auto()


@dataclass(frozen=True)
class Completion:
    """The control-flow signal produced by executing a statement."""
    kind: CompletionKind
    value: Value = NULL
    error: Optional[EvalError] = None

    @property
    def is_normal(self) -> bool:
        return self.kind == CompletionKind.NORMAL


NORMAL_COMPLETION = Completion(CompletionKind.NORMAL)
BREAK_COMPLETION = Completion(CompletionKind.BREAK)
CONTINUE_COMPLETION = Completion(CompletionKind.CONTINUE)


@dataclass
class ExecutionResult:
    """Result of running a program."""
    success: bool
    value: Value = NULL
    error: Optional[SkiffError] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return self.error.message


class Interpreter:
    """
    Tree-walking interpreter for skiff.

    One instance holds the state of one program run: the global environment,
    the current environment and the value of the last expression statement.

    Usage:
        interpreter = Interpreter()
        result = interpreter.interpret(parse(tokenize(source)))
    """

    def __init__(self, stdout: Optional[TextIO] = None, source: Optional[str] = None,
                 recursion_limit: int = DEFAULT_RECURSION_LIMIT, natives: bool = True):
        """
        Initialize the interpreter.

        Args:
            stdout: Stream that ``print`` writes to (default: sys.stdout at call time)
            source: Original source code, used for error excerpts
            recursion_limit: Minimum host recursion limit while interpreting
            natives: Install the standard native functions
        """
        self._stdout = stdout
        self.globals = Environment(name="global")
        self.environment = self.globals
        self.last_result = NULL
        self.recursion_limit = recursion_limit
        self._lines = source.splitlines() if source is not None else []
        if natives:
            install_builtins(self)

    @property
    def stdout(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    def register(self, name: str, arity: Optional[int],
                 body: Callable[[List[Value]], Value]) -> None:
        """
        Install a native function into the global environment.

        Args:
            name: Global name of the function
            arity: Exact argument count, or None for variadic
            body: Called with the argument Values; may return a Value or a
                plain Python object (converted with ``from_python``)
        """
        logger.debug("registering native %s/%s", name, "*" if arity is None else arity)
        self.globals.define(name, native_val(name, arity, body))

    def _source_line(self, span: SourceSpan) -> Optional[str]:
        line = span.start.line
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    @contextmanager
    def new_scope(self, name: str = "block"):
        """
        Context manager to run code in a child of the current environment.

        Usage:
            with interpreter.new_scope("catch"):
                interpreter.environment.define("e", message)
        """
        previous = self.environment
        self.environment = Environment(previous, name)
        try:
            yield self.environment
        finally:
            self.environment = previous

    @contextmanager
    def _host_recursion_limit(self):
        old_limit = sys.getrecursionlimit()
        if self.recursion_limit > old_limit:
            sys.setrecursionlimit(self.recursion_limit)
        try:
            yield
        finally:
            sys.setrecursionlimit(old_limit)

    # =========================================================================
    # Program
    # =========================================================================

    def interpret(self, statements: List[Statement]) -> ExecutionResult:
        """
        Execute top-level statements in order.

        Returns:
            ExecutionResult whose value is the value of the last executed
            expression statement. An uncaught runtime error stops the
            program and is reported in the result; it is not raised.
        """
        self.last_result = NULL
        with self._host_recursion_limit():
            for stmt in statements:
                try:
                    completion = self.execute(stmt)
                except RecursionError:
                    completion = Completion(
                        CompletionKind.ERROR,
                        error=error_stack_overflow(stmt.span, self._source_line(stmt.span)),
                    )

                if completion.kind == CompletionKind.ERROR:
                    error = completion.error
                    logger.debug("uncaught runtime error %s: %s", error.diagnostic.code, error.message)
                    return ExecutionResult(success=False, error=error, diagnostics=[error.diagnostic])
                if completion.kind == CompletionKind.RETURN:
                    # A top-level return ends the program with its value
                    return ExecutionResult(success=True, value=completion.value)

        return ExecutionResult(success=True, value=self.last_result)

    # =========================================================================
    # Statement Execution
    # =========================================================================

    def execute(self, stmt: Statement) -> Completion:
        """Execute a statement, turning runtime errors into ERROR completions."""
        try:
            return self._execute_statement(stmt)
        except EvalError as e:
            return Completion(CompletionKind.ERROR, error=e)

    def execute_statements(self, statements: List[Statement]) -> Completion:
        """Execute statements in the current environment until one completes abruptly."""
        for stmt in statements:
            completion = self.execute(stmt)
            if not completion.is_normal:
                return completion
        return NORMAL_COMPLETION

    def execute_block(self, statements: List[Statement], name: str = "block") -> Completion:
        """Execute statements in a fresh child environment."""
        with self.new_scope(name):
            return self.execute_statements(statements)

    def _execute_statement(self, stmt: Statement) -> Completion:
        """Dispatch statement execution."""
        if isinstance(stmt, ExpressionStatement):
            self.last_result = self.evaluate(stmt.expression)
            return NORMAL_COMPLETION
        elif isinstance(stmt, VarDecl):
            return self._execute_var_decl(stmt)
        elif isinstance(stmt, FuncDecl):
            self.environment.define(stmt.name, function_val(UserFunction(stmt, self.environment)))
            return NORMAL_COMPLETION
        elif isinstance(stmt, ClassDecl):
            return self._execute_class_decl(stmt)
        elif isinstance(stmt, Return):
            value = self.evaluate(stmt.value) if stmt.value is not None else NULL
            return Completion(CompletionKind.RETURN, value)
        elif isinstance(stmt, If):
            return self._execute_if(stmt)
        elif isinstance(stmt, While):
            return self._execute_while(stmt)
        elif isinstance(stmt, For):
            return self._execute_for(stmt)
        elif isinstance(stmt, Try):
            return self._execute_try(stmt)
        elif isinstance(stmt, Block):
            return self.execute_block(stmt.statements)
        elif isinstance(stmt, Break):
            return BREAK_COMPLETION
        elif isinstance(stmt, Continue):
            return CONTINUE_COMPLETION
        else:
            raise RuntimeError(f"Unknown statement type: {type(stmt).__name__}")

    def _execute_var_decl(self, stmt: VarDecl) -> Completion:
        value = self.evaluate(stmt.initializer) if stmt.initializer is not None else NULL
        self.environment.define(stmt.name, value)
        return NORMAL_COMPLETION

    def _execute_class_decl(self, stmt: ClassDecl) -> Completion:
        klass = ClassObject(stmt.name)
        for method in stmt.methods:
            klass.methods[method.name] = UserFunction(method, self.environment)
        self.environment.define(stmt.name, class_val(klass))
        return NORMAL_COMPLETION

    def _execute_if(self, stmt: If) -> Completion:
        if is_truthy(self.evaluate(stmt.condition)):
            return self.execute_block(stmt.then_branch, "if-then")
        if stmt.else_branch:
            return self.execute_block(stmt.else_branch, "else")
        return NORMAL_COMPLETION

    def _run_loop_body(self, body: List[Statement], name: str) -> Optional[Completion]:
        """Run one iteration; returns a completion only when the loop must stop."""
        completion = self.execute_block(body, name)
        if completion.kind == CompletionKind.BREAK:
            return NORMAL_COMPLETION
        if completion.kind in (CompletionKind.RETURN, CompletionKind.ERROR):
            return completion
        return None

    def _execute_while(self, stmt: While) -> Completion:
        while is_truthy(self.evaluate(stmt.condition)):
            stop = self._run_loop_body(stmt.body, "while-body")
            if stop is not None:
                return stop
        return NORMAL_COMPLETION

    def _execute_for(self, stmt: For) -> Completion:
        """Execute a for loop; the header gets its own scope around the iterations."""
        with self.new_scope("for-header"):
            if stmt.initializer is not None:
                completion = self.execute(stmt.initializer)
                if not completion.is_normal:
                    return completion

            while stmt.condition is None or is_truthy(self.evaluate(stmt.condition)):
                stop = self._run_loop_body(stmt.body, "for-body")
                if stop is not None:
                    return stop
                if stmt.increment is not None:
                    self.evaluate(stmt.increment)

        return NORMAL_COMPLETION

    def _execute_try(self, stmt: Try) -> Completion:
        """
        Execute try/catch/finally.

        The finally body runs exactly once whatever the outcome. If it
        completes abruptly, its completion replaces the pending one.
        """
        completion = self.execute_block(stmt.body, "try")

        if completion.kind == CompletionKind.ERROR and stmt.has_catch:
            with self.new_scope("catch"):
                self.environment.define(stmt.catch_name, string_val(completion.error.message))
                completion = self.execute_statements(stmt.catch_body)

        if stmt.finally_body:
            finally_completion = self.execute_block(stmt.finally_body, "finally")
            if not finally_completion.is_normal:
                return finally_completion

        return completion

    # =========================================================================
    # Expression Evaluation
    # =========================================================================

    def evaluate(self, expr: Expression) -> Value:
        """Evaluate an expression to a Value."""
        if isinstance(expr, NumberLiteral):
            if isinstance(expr.value, float):
                return float_val(expr.value)
            return int_val(expr.value)
        elif isinstance(expr, StringLiteral):
            return string_val(expr.value)
        elif isinstance(expr, BoolLiteral):
            return bool_val(expr.value)
        elif isinstance(expr, NullLiteral):
            return NULL
        elif isinstance(expr, Variable):
            return self.environment.get(expr.name)
        elif isinstance(expr, Binary):
            return self._eval_binary(expr)
        elif isinstance(expr, Unary):
            return self._eval_unary(expr)
        elif isinstance(expr, Call):
            return self._eval_call(expr)
        elif isinstance(expr, ArrayLiteral):
            return array_val([self.evaluate(e) for e in expr.elements])
        elif isinstance(expr, MapLiteral):
            return self._eval_map_literal(expr)
        elif isinstance(expr, Member):
            return self._eval_member(expr)
        elif isinstance(expr, Index):
            return self._eval_index(expr)
        elif isinstance(expr, Assign):
            return self._eval_assign(expr)
        else:
            raise RuntimeError(f"Unknown expression type: {type(expr).__name__}")

    def _eval_binary(self, expr: Binary) -> Value:
        """Evaluate a binary operation. Both operands are always evaluated, left first."""
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        op = expr.operator

        if op == TokenType.AND:
            return bool_val(is_truthy(left) and is_truthy(right))
        if op == TokenType.OR:
            return bool_val(is_truthy(left) or is_truthy(right))
        if op == TokenType.EQUAL_EQUAL:
            return bool_val(values_equal(left, right))
        if op == TokenType.BANG_EQUAL:
            return bool_val(not values_equal(left, right))
        if op in ARITHMETIC_OPS:
            return self._arithmetic(op, left, right, expr.span)
        if op in COMPARISON_OPS:
            return self._compare(op, left, right, expr.span)

        raise RuntimeError(f"Unknown binary operator: {op}")

    def _arithmetic(self, op: TokenType, left: Value, right: Value, span: SourceSpan) -> Value:
        if op == TokenType.PLUS and left.type == ValueType.STRING and right.type == ValueType.STRING:
            return string_val(left.data + right.data)

        if not (left.is_number and right.is_number):
            raise error_operand_not_number(span, self._source_line(span))

        if op == TokenType.PERCENT:
            if left.type != ValueType.INT or right.type != ValueType.INT:
                raise error_type(
                    f"'%' requires two integers, found '{left.type_name}' and '{right.type_name}'",
                    span, self._source_line(span),
                )
            if right.data == 0:
                raise error_division_by_zero(span, self._source_line(span))
            # Remainder takes the sign of the dividend
            remainder = abs(left.data) % abs(right.data)
            return int_val(-remainder if left.data < 0 else remainder)

        if op == TokenType.SLASH:
            if right.data == 0:
                raise error_division_by_zero(span, self._source_line(span))
            return float_val(float(left.data) / float(right.data))

        a, b = left.data, right.data
        if op == TokenType.PLUS:
            result = a + b
        elif op == TokenType.MINUS:
            result = a - b
        else:
            result = a * b

        if left.type == ValueType.INT and right.type == ValueType.INT:
            return int_val(result)
        return float_val(result)

    def _compare(self, op: TokenType, left: Value, right: Value, span: SourceSpan) -> Value:
        if not (left.is_number and right.is_number):
            raise error_operand_not_number(span, self._source_line(span))
        a, b = left.data, right.data
        # Mixed int/float compares as floats
        if left.type != right.type:
            a, b = float(a), float(b)
        if op == TokenType.LESS:
            return bool_val(a < b)
        if op == TokenType.LESS_EQUAL:
            return bool_val(a <= b)
        if op == TokenType.GREATER:
            return bool_val(a > b)
        return bool_val(a >= b)

    def _eval_unary(self, expr: Unary) -> Value:
        operand = self.evaluate(expr.operand)
        if expr.operator == TokenType.BANG:
            return bool_val(not is_truthy(operand))
        if expr.operator == TokenType.MINUS:
            if operand.type == ValueType.INT:
                return int_val(-operand.data)
            if operand.type == ValueType.FLOAT:
                return float_val(-operand.data)
            raise error_operand_not_number(expr.span, self._source_line(expr.span))
        raise RuntimeError(f"Unknown unary operator: {expr.operator}")

    def _eval_map_literal(self, expr: MapLiteral) -> Value:
        entries = {}
        for key_expr, value_expr in expr.entries:
            key = self.evaluate(key_expr)
            if key.type != ValueType.STRING:
                raise error_map_key_not_string(key.type_name, key_expr.span,
                                               self._source_line(key_expr.span))
            entries[key.data] = self.evaluate(value_expr)
        return map_val(entries)

    def _eval_member(self, expr: Member) -> Value:
        """Property read: instance fields, then bound methods, then null."""
        obj = self.evaluate(expr.object)

        if obj.type == ValueType.INSTANCE:
            instance = obj.data
            if expr.name in instance.fields:
                return instance.fields[expr.name]
            method = instance.klass.find_method(expr.name)
            if method is not None:
                return function_val(method.bind(obj))
            return NULL

        if obj.type == ValueType.MAP:
            return obj.data.get(expr.name, NULL)

        raise error_type(f"cannot read property '{expr.name}' of {obj.type_name}",
                         expr.span, self._source_line(expr.span))

    def _eval_index(self, expr: Index) -> Value:
        collection = self.evaluate(expr.collection)
        index = self.evaluate(expr.index)

        if collection.type == ValueType.ARRAY:
            if index.type != ValueType.INT:
                raise error_type(f"array index must be an int, found '{index.type_name}'",
                                 expr.index.span, self._source_line(expr.span))
            if not 0 <= index.data < len(collection.data):
                raise error_index_out_of_range(index.data, len(collection.data),
                                               expr.span, self._source_line(expr.span))
            return collection.data[index.data]

        if collection.type == ValueType.MAP:
            if index.type != ValueType.STRING:
                raise error_map_key_not_string(index.type_name, expr.index.span,
                                               self._source_line(expr.span))
            return collection.data.get(index.data, NULL)

        raise error_type(f"'{collection.type_name}' is not indexable",
                         expr.span, self._source_line(expr.span))

    def _eval_assign(self, expr: Assign) -> Value:
        target = expr.target

        if isinstance(target, Variable):
            value = self.evaluate(expr.value)
            self.environment.assign(target.name, value)
            return value

        if isinstance(target, Member):
            obj = self.evaluate(target.object)
            value = self.evaluate(expr.value)
            if obj.type == ValueType.INSTANCE:
                obj.data.fields[target.name] = value
            elif obj.type == ValueType.MAP:
                obj.data[target.name] = value
            else:
                raise error_type(f"cannot set property '{target.name}' on {obj.type_name}",
                                 target.span, self._source_line(target.span))
            return value

        raise RuntimeError(f"Invalid assignment target: {type(target).__name__}")

    # =========================================================================
    # Calls
    # =========================================================================

    def _eval_call(self, expr: Call) -> Value:
        callee = self.evaluate(expr.callee)
        args = [self.evaluate(arg) for arg in expr.arguments]
        return self.call(callee, args, expr.span)

    def call(self, callee: Value, args: List[Value], span: SourceSpan) -> Value:
        """Call a function or class value with already-evaluated arguments."""
        if callee.type == ValueType.CLASS:
            return self._instantiate(callee.data, args, span)
        if callee.type != ValueType.FUNCTION:
            raise error_not_callable(callee.type_name, span, self._source_line(span))

        fn = callee.data
        if isinstance(fn, NativeFunction):
            return self._call_native(fn, args, span)
        return self._call_user_function(fn, args, span)

    def _call_native(self, fn: NativeFunction, args: List[Value], span: SourceSpan) -> Value:
        if fn.arity is not None and len(args) != fn.arity:
            raise error_arity(fn.name, fn.arity, len(args), span, self._source_line(span))
        try:
            return from_python(fn.impl(args))
        except NativeError as e:
            raise error_type(f"{fn.name}(): {e}", span, self._source_line(span)) from None

    def _call_user_function(self, fn: UserFunction, args: List[Value], span: SourceSpan,
                            display_name: Optional[str] = None) -> Value:
        """Invoke a declared function in a new frame enclosed by its closure."""
        if len(args) != fn.arity:
            raise error_arity(display_name or fn.name, fn.arity, len(args),
                              span, self._source_line(span))

        frame = Environment(fn.closure, name=fn.name)
        if fn.receiver is not None:
            frame.define(RECEIVER_NAME, fn.receiver)
        for param, arg in zip(fn.declaration.parameters, args):
            frame.define(param, arg)

        previous = self.environment
        self.environment = frame
        try:
            completion = self.execute_statements(fn.declaration.body)
        except RecursionError:
            raise error_stack_overflow(span, self._source_line(span)) from None
        finally:
            self.environment = previous

        if completion.kind == CompletionKind.ERROR:
            raise completion.error
        if completion.kind == CompletionKind.RETURN:
            return completion.value
        return NULL

    def _instantiate(self, klass: ClassObject, args: List[Value], span: SourceSpan) -> Value:
        """Create an instance and run its initializer, discarding the result."""
        instance = instance_val(klass)
        initializer = klass.find_method(INITIALIZER_NAME)
        if initializer is not None:
            self._call_user_function(initializer.bind(instance), args, span, display_name=klass.name)
        elif args:
            raise error_arity(klass.name, 0, len(args), span, self._source_line(span))
        return instance


def run_source(source: str, stdout: Optional[TextIO] = None, filename: Optional[str] = None,
               max_errors: int = 20,
               recursion_limit: int = DEFAULT_RECURSION_LIMIT) -> ExecutionResult:
    """
    Tokenize, parse and run a program.

    Lex and parse errors are reported in the result rather than raised.

    Args:
        source: Program text
        stdout: Stream for ``print`` output (default: sys.stdout)
        filename: Optional filename for error messages
        max_errors: Stop collecting parse errors after this many
        recursion_limit: Minimum host recursion limit while running

    Returns:
        ExecutionResult with the program's final value or its first error
    """
    try:
        tokens = tokenize(source, filename)
    except LexError as e:
        return ExecutionResult(success=False, error=e, diagnostics=[e.diagnostic])

    try:
        statements = parse(tokens, source, max_errors)
    except ParseFailed as e:
        return ExecutionResult(success=False, error=e.errors[0],
                               diagnostics=[err.diagnostic for err in e.errors])

    interpreter = Interpreter(stdout=stdout, source=source, recursion_limit=recursion_limit)
    return interpreter.interpret(statements)
