"""
skiff - a small dynamically-typed scripting language.

This package provides:
- Lexer: Tokenizes source code
- Parser: Builds an AST from tokens, recovering from errors
- Interpreter: Tree-walking evaluation with closures, classes and try/catch/finally

Usage:
    from skiff import run_source

    result = run_source('''
        func fib(n) {
            if (n < 2) { return n; }
            return fib(n - 1) + fib(n - 2);
        }
        print(fib(10));
    ''')
    if not result.success:
        for diag in result.diagnostics:
            print(diag.format())

Or step by step:
    from skiff import tokenize, parse, Interpreter

    statements = parse(tokenize(source), source)
    result = Interpreter(source=source).interpret(statements)
"""

__version__ = "0.3.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
    is_keyword,
)

from .lexer import (
    Lexer,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    AstVisitor,
    AstPrinter,
    Expression,
    Statement,
    render,
    render_program,
)

from .errors import (
    Diagnostic,
    DiagnosticCollector,
    ErrorSeverity,
    SkiffError,
    LexError,
    ParseError,
    ParseFailed,
    EvalError,
    TypeError,
    ArityError,
    NativeError,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    Value,
    ValueType,
    Environment,
    run_source,
)

__all__ = [
    "__version__",
    # Tokens
    "Token",
    "TokenType",
    "SourceLocation",
    "SourceSpan",
    "KEYWORDS",
    "is_keyword",
    # Lexer
    "Lexer",
    "tokenize",
    # Parser
    "Parser",
    "parse",
    # AST
    "AstNode",
    "AstVisitor",
    "AstPrinter",
    "Expression",
    "Statement",
    "render",
    "render_program",
    # Errors
    "Diagnostic",
    "DiagnosticCollector",
    "ErrorSeverity",
    "SkiffError",
    "LexError",
    "ParseError",
    "ParseFailed",
    "EvalError",
    "TypeError",
    "ArityError",
    "NativeError",
    # Runtime
    "Interpreter",
    "ExecutionResult",
    "Value",
    "ValueType",
    "Environment",
    "run_source",
]
