"""
Lexer for skiff.

Converts source text into a stream of tokens for the parser in a single
left-to-right pass.
Supports:
- Single-line comments (// to end of line)
- Double-quoted string literals with escape sequences
- Integer literals and digits.digits float literals
- All keywords, operators and delimiters

Malformed input (unterminated strings, stray characters) raises LexError.
"""

from typing import List, Optional, Iterator
from .tokens import Token, TokenType, SourceLocation, SourceSpan, KEYWORDS
from .errors import (
    LexError,
    error_unexpected_character,
    error_unterminated_string,
    error_invalid_escape_sequence,
    error_invalid_number_literal,
)


INT64_MAX = 2 ** 63 - 1

ESCAPE_CHARS = {
    'n': '\n',
    't': '\t',
    'r': '\r',
    '\\': '\\',
    '"': '"',
    '0': '\0',
}

SINGLE_CHAR_TOKENS = {
    '(': TokenType.LEFT_PAREN,
    ')': TokenType.RIGHT_PAREN,
    '{': TokenType.LEFT_BRACE,
    '}': TokenType.RIGHT_BRACE,
    '[': TokenType.LEFT_BRACKET,
    ']': TokenType.RIGHT_BRACKET,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    ';': TokenType.SEMICOLON,
    ':': TokenType.COLON,
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
}

# (first char, second char) -> token type, and the fallback for the first char alone
TWO_CHAR_TOKENS = {
    '=': ('=', TokenType.EQUAL_EQUAL, TokenType.EQUAL),
    '!': ('=', TokenType.BANG_EQUAL, TokenType.BANG),
    '<': ('=', TokenType.LESS_EQUAL, TokenType.LESS),
    '>': ('=', TokenType.GREATER_EQUAL, TokenType.GREATER),
    '&': ('&', TokenType.AND, None),
    '|': ('|', TokenType.OR, None),
}


def _is_ident_start(ch: str) -> bool:
    return ('a' <= ch <= 'z') or ('A' <= ch <= 'Z') or ch == '_'


def _is_digit(ch: str) -> bool:
    return '0' <= ch <= '9'


class Lexer:
    """
    Tokenizer for skiff source text.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or for streaming:
        lexer = Lexer(source_code)
        for token in lexer:
            process(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

    @property
    def lines(self) -> List[str]:
        """Source split into lines, built on first use."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Return source line `line_num` (1-indexed), or None."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Peek ahead by `offset` characters; '\\0' past the end."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume one character, updating line and column."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume the next character only if it is `expected`."""
        if not self._is_at_end() and self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch in ' \t\r\n':
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while not self._is_at_end() and self._peek() != '\n':
                    self._advance()
            else:
                return

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    def _scan_string(self) -> Token:
        """Scan a double-quoted string literal."""
        start = self._location()
        self._advance()  # consume opening quote

        chars = []
        while not self._is_at_end() and self._peek() != '"':
            if self._peek() == '\\':
                esc_start = self._location()
                self._advance()
                if self._is_at_end():
                    break
                ch = self._advance()
                if ch not in ESCAPE_CHARS:
                    raise error_invalid_escape_sequence(
                        ch, self._span(esc_start), self.get_source_line(esc_start.line)
                    )
                chars.append(ESCAPE_CHARS[ch])
            else:
                chars.append(self._advance())

        if self._is_at_end():
            raise error_unterminated_string(
                self._span(start), self.get_source_line(start.line)
            )

        self._advance()  # consume closing quote
        return self._make_token(TokenType.STRING, ''.join(chars), start)

    def _scan_number(self) -> Token:
        """Scan an integer or digits.digits float literal."""
        start = self._location()
        while _is_digit(self._peek()):
            self._advance()

        # A trailing dot is left for the DOT token
        is_float = False
        if self._peek() == '.' and _is_digit(self._peek(1)):
            is_float = True
            self._advance()
            while _is_digit(self._peek()):
                self._advance()

        lexeme = self.source[start.offset:self.pos]
        if is_float:
            return self._make_token(TokenType.NUMBER, float(lexeme), start, lexeme)
        value = int(lexeme)
        if value > INT64_MAX:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER, value, start, lexeme)

    def _scan_identifier_or_keyword(self) -> Token:
        start = self._location()
        while _is_ident_start(self._peek()) or _is_digit(self._peek()):
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        token_type = KEYWORDS.get(lexeme, TokenType.IDENTIFIER)
        return self._make_token(token_type, lexeme, start, lexeme)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        start = self._location()
        if self._is_at_end():
            return self._make_token(TokenType.EOF, None, start, "")

        ch = self._peek()

        if ch == '"':
            return self._scan_string()
        if _is_digit(ch):
            return self._scan_number()
        if _is_ident_start(ch):
            return self._scan_identifier_or_keyword()

        self._advance()

        if ch in TWO_CHAR_TOKENS:
            second, pair_type, single_type = TWO_CHAR_TOKENS[ch]
            if self._match(second):
                return self._make_token(pair_type, None, start)
            if single_type is not None:
                return self._make_token(single_type, None, start)
        elif ch in SINGLE_CHAR_TOKENS:
            return self._make_token(SINGLE_CHAR_TOKENS[ch], None, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def tokenize(self) -> List[Token]:
        """Scan the whole source; the list always ends with an EOF token."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self._scan_token()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Tokenize a complete source string.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, terminated by an EOF token

    Raises:
        LexError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
