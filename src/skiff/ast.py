"""
Abstract Syntax Tree (AST) node definitions for skiff.

The tree is built once by the parser and is read-only afterwards. Each node
exclusively owns its children. Every node renders to a canonical
parenthesized form (see ``AstPrinter``) used by diagnostics and tests.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Tuple, Union, Any
from abc import ABC
from .tokens import SourceSpan, TokenType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass(frozen=True)
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)

    def __str__(self) -> str:
        return render(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass(frozen=True)
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass(frozen=True)
class NumberLiteral(Expression):
    """An integer or float literal."""
    value: Union[int, float]


@dataclass(frozen=True)
class StringLiteral(Expression):
    value: str


@dataclass(frozen=True)
class BoolLiteral(Expression):
    value: bool


@dataclass(frozen=True)
class NullLiteral(Expression):
    pass


@dataclass(frozen=True)
class Variable(Expression):
    """A variable or function name reference."""
    name: str


@dataclass(frozen=True)
class Binary(Expression):
    """A binary operation (e.g., a + b, x && y)."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass(frozen=True)
class Unary(Expression):
    """A unary operation (!x, -n)."""
    operator: TokenType
    operand: Expression


@dataclass(frozen=True)
class Call(Expression):
    """A call of a function or class value (e.g., f(1, 2))."""
    callee: Expression
    arguments: List[Expression]


@dataclass(frozen=True)
class ArrayLiteral(Expression):
    """An array literal (e.g., [1, 2, 3])."""
    elements: List[Expression]


@dataclass(frozen=True)
class MapLiteral(Expression):
    """A map literal; keys are arbitrary expressions evaluated at runtime."""
    entries: List[Tuple[Expression, Expression]]


@dataclass(frozen=True)
class Member(Expression):
    """Property access (e.g., point.x)."""
    object: Expression
    name: str


@dataclass(frozen=True)
class Index(Expression):
    """Index access (e.g., items[0])."""
    collection: Expression
    index: Expression


@dataclass(frozen=True)
class Assign(Expression):
    """Assignment; the target is a Variable or a Member."""
    target: Expression
    value: Expression


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass(frozen=True)
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    """An expression used as a statement."""
    expression: Expression


@dataclass(frozen=True)
class VarDecl(Statement):
    """A variable declaration: var name = initializer;"""
    name: str
    initializer: Optional[Expression] = None


@dataclass(frozen=True)
class FuncDecl(Statement):
    """A function (or method) declaration.

    Syntax:
        func name(a, b) {
            ...
        }
    """
    name: str
    parameters: List[str]
    body: List[Statement]


@dataclass(frozen=True)
class ClassDecl(Statement):
    """A class declaration holding its methods in source order."""
    name: str
    methods: List[FuncDecl]


@dataclass(frozen=True)
class Return(Statement):
    value: Optional[Expression] = None


@dataclass(frozen=True)
class If(Statement):
    """An if statement; ``else if`` chains nest an If in the else branch."""
    condition: Expression
    then_branch: List[Statement]
    else_branch: List[Statement] = field(default_factory=list)


@dataclass(frozen=True)
class While(Statement):
    condition: Expression
    body: List[Statement]


@dataclass(frozen=True)
class For(Statement):
    """A C-style for loop; every header clause is optional."""
    initializer: Optional[Statement]
    condition: Optional[Expression]
    increment: Optional[Expression]
    body: List[Statement]


@dataclass(frozen=True)
class Try(Statement):
    """A try statement.

    ``catch_name`` is None when there is no catch clause; at least one of
    catch or finally is present.
    """
    body: List[Statement]
    catch_name: Optional[str]
    catch_body: List[Statement] = field(default_factory=list)
    finally_body: List[Statement] = field(default_factory=list)

    @property
    def has_catch(self) -> bool:
        return self.catch_name is not None


@dataclass(frozen=True)
class Block(Statement):
    """A braced block of statements with its own scope."""
    statements: List[Statement]


@dataclass(frozen=True)
class Break(Statement):
    pass


@dataclass(frozen=True)
class Continue(Statement):
    pass


# =============================================================================
# Canonical rendering
# =============================================================================

OPERATOR_SYMBOLS = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.LESS: "<",
    TokenType.LESS_EQUAL: "<=",
    TokenType.GREATER: ">",
    TokenType.GREATER_EQUAL: ">=",
    TokenType.EQUAL_EQUAL: "==",
    TokenType.BANG_EQUAL: "!=",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.BANG: "!",
}


def operator_symbol(op: TokenType) -> str:
    return OPERATOR_SYMBOLS.get(op, op.name)


def _quote(text: str) -> str:
    escaped = (text.replace("\\", "\\\\").replace('"', '\\"')
               .replace("\n", "\\n").replace("\t", "\\t").replace("\r", "\\r"))
    return f'"{escaped}"'


class AstPrinter(AstVisitor):
    """Renders nodes as parenthesized prefix forms, e.g. ``(+ 1 (* 2 3))``."""

    def print(self, node: AstNode) -> str:
        return node.accept(self)

    def _parens(self, head: str, *parts: str) -> str:
        inner = " ".join([head, *[p for p in parts if p != ""]])
        return f"({inner})"

    def _body(self, statements: List[Statement]) -> str:
        return " ".join(self.print(s) for s in statements)

    # --- expressions ---

    def visit_NumberLiteral(self, node: NumberLiteral) -> str:
        return repr(node.value)

    def visit_StringLiteral(self, node: StringLiteral) -> str:
        return _quote(node.value)

    def visit_BoolLiteral(self, node: BoolLiteral) -> str:
        return "true" if node.value else "false"

    def visit_NullLiteral(self, node: NullLiteral) -> str:
        return "null"

    def visit_Variable(self, node: Variable) -> str:
        return node.name

    def visit_Binary(self, node: Binary) -> str:
        return self._parens(operator_symbol(node.operator),
                            self.print(node.left), self.print(node.right))

    def visit_Unary(self, node: Unary) -> str:
        return self._parens(operator_symbol(node.operator), self.print(node.operand))

    def visit_Call(self, node: Call) -> str:
        return self._parens("call", self.print(node.callee),
                            *[self.print(a) for a in node.arguments])

    def visit_ArrayLiteral(self, node: ArrayLiteral) -> str:
        return "[" + ", ".join(self.print(e) for e in node.elements) + "]"

    def visit_MapLiteral(self, node: MapLiteral) -> str:
        pairs = [f"{self.print(k)}: {self.print(v)}" for k, v in node.entries]
        return "{" + ", ".join(pairs) + "}"

    def visit_Member(self, node: Member) -> str:
        return self._parens(".", self.print(node.object), node.name)

    def visit_Index(self, node: Index) -> str:
        return self._parens("index", self.print(node.collection), self.print(node.index))

    def visit_Assign(self, node: Assign) -> str:
        return self._parens("=", self.print(node.target), self.print(node.value))

    # --- statements ---

    def visit_ExpressionStatement(self, node: ExpressionStatement) -> str:
        return self._parens("expr", self.print(node.expression))

    def visit_VarDecl(self, node: VarDecl) -> str:
        init = self.print(node.initializer) if node.initializer is not None else ""
        return self._parens("var", node.name, init)

    def visit_FuncDecl(self, node: FuncDecl) -> str:
        params = "(" + " ".join(node.parameters) + ")"
        return self._parens("func", node.name, params, self._body(node.body))

    def visit_ClassDecl(self, node: ClassDecl) -> str:
        return self._parens("class", node.name, self._body(node.methods))

    def visit_Return(self, node: Return) -> str:
        value = self.print(node.value) if node.value is not None else ""
        return self._parens("return", value)

    def visit_If(self, node: If) -> str:
        parts = [self.print(node.condition), self._parens("then", self._body(node.then_branch))]
        if node.else_branch:
            parts.append(self._parens("else", self._body(node.else_branch)))
        return self._parens("if", *parts)

    def visit_While(self, node: While) -> str:
        return self._parens("while", self.print(node.condition), self._body(node.body))

    def visit_For(self, node: For) -> str:
        header = [
            self.print(node.initializer) if node.initializer is not None else "_",
            self.print(node.condition) if node.condition is not None else "_",
            self.print(node.increment) if node.increment is not None else "_",
        ]
        return self._parens("for", *header, self._body(node.body))

    def visit_Try(self, node: Try) -> str:
        parts = [self._parens("body", self._body(node.body))]
        if node.has_catch:
            parts.append(self._parens("catch", node.catch_name, self._body(node.catch_body)))
        if node.finally_body:
            parts.append(self._parens("finally", self._body(node.finally_body)))
        return self._parens("try", *parts)

    def visit_Block(self, node: Block) -> str:
        return self._parens("block", self._body(node.statements))

    def visit_Break(self, node: Break) -> str:
        return "(break)"

    def visit_Continue(self, node: Continue) -> str:
        return "(continue)"


def render(node: AstNode) -> str:
    """Render an AST node in its canonical textual form."""
    return AstPrinter().print(node)


def render_program(statements: List[Statement]) -> str:
    """Render a program, one top-level statement per line."""
    return "\n".join(render(s) for s in statements)
