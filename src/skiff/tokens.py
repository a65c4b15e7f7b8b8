"""
Token types for the skiff lexer.

Error code ranges used throughout the package:
- E0xx: Lexer errors
- E1xx: Parser errors
- E2xx: Type and arity errors
- E4xx: Other runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.14
    STRING = auto()             # "hello"

    # --- Identifiers ---
    IDENTIFIER = auto()         # user-defined names

    # --- Keywords ---
    CLASS = auto()              # class
    FUNC = auto()               # func
    VAR = auto()                # var
    IF = auto()                 # if
    ELSE = auto()               # else
    WHILE = auto()              # while
    FOR = auto()                # for
    RETURN = auto()             # return
    TRY = auto()                # try
    CATCH = auto()              # catch
    FINALLY = auto()            # finally
    TRUE = auto()               # true
    FALSE = auto()              # false
    NULL = auto()               # null
    BREAK = auto()              # break
    CONTINUE = auto()           # continue

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %

    # --- Comparison operators ---
    LESS = auto()               # <
    LESS_EQUAL = auto()         # <=
    GREATER = auto()            # >
    GREATER_EQUAL = auto()      # >=
    EQUAL_EQUAL = auto()        # ==
    BANG_EQUAL = auto()         # !=

    # --- Logical operators ---
    AND = auto()                # &&
    OR = auto()                 # ||
    BANG = auto()               # !

    # --- Assignment ---
    EQUAL = auto()              # =

    # --- Delimiters ---
    LEFT_PAREN = auto()         # (
    RIGHT_PAREN = auto()        # )
    LEFT_BRACE = auto()         # {
    RIGHT_BRACE = auto()        # }
    LEFT_BRACKET = auto()       # [
    RIGHT_BRACKET = auto()      # ]
    COMMA = auto()              # ,
    DOT = auto()                # .
    SEMICOLON = auto()          # ;
    COLON = auto()              # :

    # --- Special ---
    EOF = auto()                # end of input


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # int/float for NUMBER, str for STRING and IDENTIFIER
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    @property
    def line(self) -> int:
        return self.span.start.line

    @property
    def column(self) -> int:
        return self.span.start.column

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER):
            return f"{self.type.name}({self.lexeme})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "class": TokenType.CLASS,
    "func": TokenType.FUNC,
    "var": TokenType.VAR,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "return": TokenType.RETURN,
    "try": TokenType.TRY,
    "catch": TokenType.CATCH,
    "finally": TokenType.FINALLY,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
}


# Tokens that begin a statement; the parser resynchronizes on these
STATEMENT_KEYWORDS: frozenset[TokenType] = frozenset({
    TokenType.CLASS,
    TokenType.FUNC,
    TokenType.VAR,
    TokenType.FOR,
    TokenType.IF,
    TokenType.WHILE,
    TokenType.RETURN,
    TokenType.TRY,
})


def is_keyword(text: str) -> bool:
    """Check if an identifier-shaped string is a reserved word."""
    return text in KEYWORDS
