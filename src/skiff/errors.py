"""
Exceptions and diagnostics for the skiff pipeline.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type and arity errors
- E4xx: Other runtime errors

Note that ``TypeError`` here is the language-level type error and shadows
the builtin inside modules that import it by name.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """How serious a diagnostic is."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def line(self) -> int:
        return self.span.start.line

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        loc = f"{self.span.start}"
        parts.append(f"{loc}: {self.severity.value}[{self.code}]: {self.message}")

        if show_source and self.source_line is not None:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class SkiffError(Exception):
    """Base exception for all skiff errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def message(self) -> str:
        return self.diagnostic.message

    @property
    def line(self) -> int:
        return self.diagnostic.span.start.line

    @property
    def column(self) -> int:
        return self.diagnostic.span.start.column

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexError(SkiffError):
    """Malformed token (E0xx)."""
    pass


class ParseError(SkiffError):
    """Grammar violation (E1xx)."""
    pass


class EvalError(SkiffError):
    """A catchable runtime error raised during evaluation."""
    pass


class TypeError(EvalError):
    """Wrong operand kind to an operator or native (E2xx)."""
    pass


class ArityError(EvalError):
    """Wrong argument count to a function (E202)."""
    pass


class NativeError(Exception):
    """Raised by native function bodies; the interpreter reports it as a
    TypeError at the call site."""
    pass


class ParseFailed(Exception):
    """Raised by ``parse()`` when recovery collected one or more errors."""

    def __init__(self, errors: List[ParseError]):
        self.errors = errors
        super().__init__(f"{len(errors)} parse error(s)")

    def __str__(self) -> str:
        return "\n\n".join(str(e) for e in self.errors)


def _diag(code: str, message: str, span: SourceSpan, source_line: Optional[str] = None,
          hints: Optional[List[str]] = None) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=hints or [],
    )


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E001: Unexpected character."""
    hints = []
    if char in "&|":
        hints.append(f"logical operators are written '{char}{char}'")
    return LexError(_diag("E001", f"unexpected character '{char}'", span, source_line, hints))


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexError:
    """E002: Unterminated string literal."""
    return LexError(_diag(
        "E002", "unterminated string literal", span, source_line,
        ["string literals must be closed with a double quote"],
    ))


def error_invalid_escape_sequence(seq: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E003: Invalid escape sequence in string."""
    return LexError(_diag(
        "E003", f"invalid escape sequence '\\{seq}'", span, source_line,
        ["valid escape sequences: \\n, \\t, \\r, \\\", \\\\, \\0"],
    ))


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E004: Invalid number literal."""
    return LexError(_diag("E004", f"invalid number literal '{text}'", span, source_line))


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParseError:
    """E101: Unexpected token."""
    return ParseError(_diag("E101", f"expected {expected}, found {found}", span, source_line))


def error_unexpected_eof(expected: str, span: SourceSpan, source_line: str = None) -> ParseError:
    """E102: Unexpected end of input."""
    return ParseError(_diag("E102", f"unexpected end of input, expected {expected}", span, source_line))


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParseError:
    """E103: Assignment to something that is not a variable or property."""
    return ParseError(_diag(
        "E103", "invalid assignment target", span, source_line,
        ["only variables and properties (obj.name) can be assigned"],
    ))


def error_loop_control_outside_loop(keyword: str, span: SourceSpan,
                                    source_line: str = None) -> ParseError:
    """E104: break/continue outside of a loop body."""
    return ParseError(_diag("E104", f"'{keyword}' outside of a loop", span, source_line))


def error_try_without_handler(span: SourceSpan, source_line: str = None) -> ParseError:
    """E105: try with neither catch nor finally."""
    return ParseError(_diag("E105", "expected 'catch' or 'finally' after try block", span, source_line))


# --- Type and arity error codes ---

def error_operand_not_number(span: SourceSpan, source_line: str = None) -> TypeError:
    """E201: Arithmetic or comparison on a non-number."""
    return TypeError(_diag("E201", "operand must be a number", span, source_line))


def error_type(message: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E201: Generic type error (used by natives and member access)."""
    return TypeError(_diag("E201", message, span, source_line))


def error_arity(name: str, expected: int, found: int, span: SourceSpan,
                source_line: str = None) -> ArityError:
    """E202: Wrong number of arguments."""
    plural = "" if expected == 1 else "s"
    verb = "was" if found == 1 else "were"
    return ArityError(_diag(
        "E202", f"{name}() takes {expected} argument{plural} but {found} {verb} given",
        span, source_line,
    ))


def error_map_key_not_string(found: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E203: Map keys must be strings."""
    return TypeError(_diag("E203", f"map keys must be strings, found '{found}'", span, source_line))


def error_not_callable(found: str, span: SourceSpan, source_line: str = None) -> TypeError:
    """E204: Calling something that is neither a function nor a class."""
    return TypeError(_diag("E204", f"'{found}' is not callable", span, source_line))


# --- Other runtime error codes ---

def error_index_out_of_range(index: int, size: int, span: SourceSpan,
                             source_line: str = None) -> EvalError:
    """E401: Array index out of range."""
    return EvalError(_diag(
        "E401", f"array index {index} out of range for length {size}", span, source_line,
    ))


def error_division_by_zero(span: SourceSpan, source_line: str = None) -> EvalError:
    """E402: Division or modulo by zero."""
    return EvalError(_diag("E402", "division by zero", span, source_line))


def error_stack_overflow(span: SourceSpan, source_line: str = None) -> EvalError:
    """E403: Call nesting exceeded the host recursion limit."""
    return EvalError(_diag(
        "E403", "maximum call depth exceeded", span, source_line,
        ["raise the limit with --recursion-limit or SKIFF_RECURSION_LIMIT"],
    ))


class DiagnosticCollector:
    """Accumulates diagnostics from one run, up to a cap on errors."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: SkiffError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def should_stop(self) -> bool:
        """True once the error cap is reached."""
        return self._error_count >= self.max_errors

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"{self._error_count} error(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
        }
