"""
Unit tests for the skiff parser and AST rendering.
"""

import pytest
from skiff import tokenize, parse, Parser, ParseFailed, ParseError, render
from skiff.ast import (
    ExpressionStatement, VarDecl, FuncDecl, ClassDecl, Return, If, While, For,
    Try, Block, Break, Continue, Binary, Assign, Member, Index, Call,
    MapLiteral, ArrayLiteral, Variable, NumberLiteral, render_program,
)
from skiff.tokens import TokenType


def parse_source(source):
    return parse(tokenize(source), source)


def parse_expr(source):
    """Parse a single expression statement and return its expression."""
    statements = parse_source(source + ";")
    assert len(statements) == 1
    assert isinstance(statements[0], ExpressionStatement)
    return statements[0].expression


def parse_errors(source, max_errors=20):
    with pytest.raises(ParseFailed) as exc_info:
        parse(tokenize(source), source, max_errors)
    return exc_info.value.errors


class TestPrecedence:
    """Operator precedence and associativity."""

    def test_multiplication_binds_tighter(self):
        assert render(parse_expr("1 + 2 * 3")) == "(+ 1 (* 2 3))"

    def test_left_associative_subtraction(self):
        assert render(parse_expr("10 - 4 - 3")) == "(- (- 10 4) 3)"

    def test_left_associative_division(self):
        assert render(parse_expr("8 / 4 / 2")) == "(/ (/ 8 4) 2)"

    def test_grouping(self):
        assert render(parse_expr("(1 + 2) * 3")) == "(* (+ 1 2) 3)"

    def test_logical_levels(self):
        """|| is lowest, then &&, then equality, then comparison."""
        expr = parse_expr("a || b && c == d < e")
        assert render(expr) == "(|| a (&& b (== c (< d e))))"

    def test_comparison_operators(self):
        expr = parse_expr("a <= b >= c > d")
        assert render(expr) == "(> (>= (<= a b) c) d)"

    def test_unary(self):
        assert render(parse_expr("-a * !b")) == "(* (- a) (! b))"
        assert render(parse_expr("!!x")) == "(! (! x))"

    def test_assignment_is_right_associative(self):
        expr = parse_expr("a = b = 3")
        assert isinstance(expr, Assign)
        assert isinstance(expr.value, Assign)
        assert render(expr) == "(= a (= b 3))"

    def test_assignment_lowest(self):
        assert render(parse_expr("x = 1 + 2")) == "(= x (+ 1 2))"

    def test_member_assignment(self):
        expr = parse_expr("p.x = 3")
        assert isinstance(expr, Assign)
        assert isinstance(expr.target, Member)


class TestPostfix:
    """Calls, member access and indexing chain left to right."""

    def test_call_chain(self):
        expr = parse_expr("f()(x).y[0]")
        assert isinstance(expr, Index)
        assert isinstance(expr.collection, Member)
        assert isinstance(expr.collection.object, Call)
        assert isinstance(expr.collection.object.callee, Call)
        assert render(expr) == "(index (. (call (call f) x) y) 0)"

    def test_call_arguments(self):
        expr = parse_expr("max(1, a + b, g(2))")
        assert isinstance(expr, Call)
        assert len(expr.arguments) == 3

    def test_method_call(self):
        assert render(parse_expr("obj.method(1)")) == "(call (. obj method) 1)"


class TestLiterals:
    """Array and map literals."""

    def test_array_literal(self):
        expr = parse_expr("[1, 2.5, \"s\", true, null]")
        assert isinstance(expr, ArrayLiteral)
        assert render(expr) == '[1, 2.5, "s", true, null]'

    def test_empty_array(self):
        assert render(parse_expr("[]")) == "[]"

    def test_map_literal_keys_are_expressions(self):
        expr = parse_source('var m = {"a": 1, k: 2, "x" + "y": 3};')[0].initializer
        assert isinstance(expr, MapLiteral)
        assert len(expr.entries) == 3
        assert isinstance(expr.entries[1][0], Variable)
        assert render(expr) == '{"a": 1, k: 2, (+ "x" "y"): 3}'

    def test_empty_map_in_expression(self):
        statements = parse_source("var m = {};")
        assert isinstance(statements[0].initializer, MapLiteral)

    def test_number_literal_value(self):
        expr = parse_expr("7")
        assert isinstance(expr, NumberLiteral)
        assert expr.value == 7


class TestStatements:
    """Statement forms."""

    def test_var_decl(self):
        stmt = parse_source("var x = 1;")[0]
        assert isinstance(stmt, VarDecl)
        assert stmt.name == "x"
        assert render(stmt) == "(var x 1)"

    def test_var_without_initializer(self):
        stmt = parse_source("var x;")[0]
        assert stmt.initializer is None
        assert render(stmt) == "(var x)"

    def test_func_decl(self):
        stmt = parse_source("func add(a, b) { return a + b; }")[0]
        assert isinstance(stmt, FuncDecl)
        assert stmt.parameters == ["a", "b"]
        assert isinstance(stmt.body[0], Return)
        assert render(stmt) == "(func add (a b) (return (+ a b)))"

    def test_class_decl_with_and_without_func(self):
        source = """
        class Point {
            func __init__(x, y) { this.x = x; this.y = y; }
            sum() { return this.x + this.y; }
        }
        """
        stmt = parse_source(source)[0]
        assert isinstance(stmt, ClassDecl)
        assert [m.name for m in stmt.methods] == ["__init__", "sum"]

    def test_if_else(self):
        stmt = parse_source("if (a) { x = 1; } else { x = 2; }")[0]
        assert isinstance(stmt, If)
        assert len(stmt.then_branch) == 1
        assert len(stmt.else_branch) == 1

    def test_else_if_chain(self):
        stmt = parse_source("if (a) { } else if (b) { } else { x; }")[0]
        assert isinstance(stmt.else_branch[0], If)
        assert len(stmt.else_branch[0].else_branch) == 1

    def test_while(self):
        stmt = parse_source("while (i < 3) { i = i + 1; }")[0]
        assert isinstance(stmt, While)
        assert render(stmt) == "(while (< i 3) (expr (= i (+ i 1))))"

    def test_for_full_header(self):
        stmt = parse_source("for (var i = 0; i < 3; i = i + 1) { print(i); }")[0]
        assert isinstance(stmt, For)
        assert isinstance(stmt.initializer, VarDecl)
        assert isinstance(stmt.condition, Binary)
        assert isinstance(stmt.increment, Assign)

    def test_for_empty_header(self):
        stmt = parse_source("for (;;) { break; }")[0]
        assert stmt.initializer is None
        assert stmt.condition is None
        assert stmt.increment is None
        assert render(stmt) == "(for _ _ _ (break))"

    def test_try_catch_finally(self):
        stmt = parse_source('try { f(); } catch (e) { print(e); } finally { done(); }')[0]
        assert isinstance(stmt, Try)
        assert stmt.catch_name == "e"
        assert len(stmt.finally_body) == 1

    def test_try_finally_without_catch(self):
        stmt = parse_source("try { f(); } finally { g(); }")[0]
        assert not stmt.has_catch
        assert render(stmt) == "(try (body (expr (call f))) (finally (expr (call g))))"

    def test_block(self):
        stmt = parse_source("{ var x = 1; { x; } }")[0]
        assert isinstance(stmt, Block)
        assert isinstance(stmt.statements[1], Block)

    def test_break_continue_in_loops(self):
        stmt = parse_source("while (true) { if (x) { break; } continue; }")[0]
        assert isinstance(stmt.body[0].then_branch[0], Break)
        assert isinstance(stmt.body[1], Continue)

    def test_return_without_value(self):
        stmt = parse_source("func f() { return; }")[0]
        assert stmt.body[0].value is None

    def test_render_program(self):
        text = render_program(parse_source("var a = 1; print(a);"))
        assert text == "(var a 1)\n(expr (call print a))"

    def test_spans_cover_statement(self):
        stmt = parse_source("var x = 1;\nvar y = 2;")[1]
        assert stmt.span.start.line == 2
        assert stmt.span.start.column == 1


class TestParseErrors:
    """Error reporting and recovery."""

    def test_invalid_assignment_target(self):
        errors = parse_errors("1 + 2 = 3;")
        assert errors[0].diagnostic.code == "E103"

    def test_index_is_not_assignable(self):
        errors = parse_errors("a[0] = 1;")
        assert errors[0].diagnostic.code == "E103"

    def test_missing_semicolon(self):
        errors = parse_errors("var x = 1\nvar y = 2;")
        assert len(errors) == 1
        assert errors[0].diagnostic.code == "E101"
        assert "';'" in errors[0].message
        assert errors[0].line == 2

    def test_unexpected_eof(self):
        errors = parse_errors("func f() {")
        assert errors[0].diagnostic.code == "E102"

    def test_recovery_collects_multiple_errors(self):
        source = "var = 1;\nvar ok = 2;\nprint(;\nvar fine = 3;\n) x;"
        errors = parse_errors(source)
        assert len(errors) == 3
        assert [e.line for e in errors] == [1, 3, 5]

    def test_recovery_keeps_good_statements(self):
        parser = Parser(tokenize("var = 1; var ok = 2;"))
        statements = parser.parse()
        assert len(parser.errors) == 1
        assert len(statements) == 1
        assert statements[0].name == "ok"

    def test_error_inside_block_skips_to_closing_brace(self):
        """Recovery resumes after the block, so its closing brace is not reported."""
        parser = Parser(tokenize("func f() { var x = ; }\nprint(1);"))
        statements = parser.parse()
        assert len(parser.errors) == 1
        assert render_program(statements) == "(expr (call print 1))"

    def test_error_in_nested_blocks(self):
        source = "while (true) { if (x) { y = ; } z; }\nvar after = 1;"
        parser = Parser(tokenize(source))
        statements = parser.parse()
        assert len(parser.errors) == 1
        assert [s.name for s in statements] == ["after"]

    def test_max_errors_stops_collection(self):
        source = "\n".join(["var = 1;"] * 10)
        errors = parse_errors(source, max_errors=3)
        assert len(errors) == 3

    def test_break_outside_loop(self):
        errors = parse_errors("break;")
        assert errors[0].diagnostic.code == "E104"

    def test_continue_in_function_inside_loop(self):
        """Loop control does not cross a function boundary."""
        errors = parse_errors("while (true) { func f() { continue; } }")
        assert errors[0].diagnostic.code == "E104"

    def test_try_requires_handler(self):
        errors = parse_errors("try { f(); } g();")
        assert errors[0].diagnostic.code == "E105"

    def test_parse_failed_is_formatted(self):
        with pytest.raises(ParseFailed) as exc_info:
            parse(tokenize("var = 1;"), "var = 1;")
        assert "error[E101]" in str(exc_info.value)
        assert isinstance(exc_info.value.errors[0], ParseError)
