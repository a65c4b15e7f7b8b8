"""
Unit tests for the skiff lexer.
"""

import pytest
from skiff import tokenize, Lexer, TokenType, LexError


def types_of(source):
    return [t.type for t in tokenize(source)]


class TestLexerBasics:
    """Test basic lexer functionality."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_and_comments_only(self):
        """Whitespace and comments are discarded."""
        assert types_of("  \t\n// just a comment\n   ") == [TokenType.EOF]

    def test_var_print_program(self):
        """The canonical var/print program tokenizes as expected."""
        tokens = tokenize("var x = 42; print(x);")
        assert [str(t) for t in tokens] == [
            "VAR", "IDENTIFIER(x)", "EQUAL", "NUMBER(42)", "SEMICOLON",
            "IDENTIFIER(print)", "LEFT_PAREN", "IDENTIFIER(x)", "RIGHT_PAREN",
            "SEMICOLON", "EOF",
        ]

    def test_identifier_value(self):
        """Identifier token carries its name."""
        tokens = tokenize("foo_bar123")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "foo_bar123"

    def test_identifier_may_start_with_underscore(self):
        tokens = tokenize("__init__")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].lexeme == "__init__"

    def test_position_tracking(self):
        """Token positions are tracked correctly."""
        tokens = tokenize("var x = 5;")
        assert tokens[0].line == 1
        assert tokens[0].column == 1
        assert tokens[1].column == 5

    def test_multiline_position_tracking(self):
        """Position tracking across lines and comments."""
        tokens = tokenize("var x = 5; // first\n  var y = 10;")
        var_tokens = [t for t in tokens if t.type == TokenType.VAR]
        assert var_tokens[0].line == 1
        assert var_tokens[1].line == 2
        assert var_tokens[1].column == 3

    def test_lexer_is_iterable(self):
        """Lexer can be consumed as a stream."""
        streamed = [t.type for t in Lexer("a + b")]
        assert streamed == [TokenType.IDENTIFIER, TokenType.PLUS, TokenType.IDENTIFIER, TokenType.EOF]

    def test_filename_in_locations(self):
        tokens = tokenize("x", filename="demo.sk")
        assert str(tokens[0].span.start) == "demo.sk:1:1"


class TestKeywords:
    """Test keyword recognition."""

    @pytest.mark.parametrize("word,token_type", [
        ("class", TokenType.CLASS),
        ("func", TokenType.FUNC),
        ("var", TokenType.VAR),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("for", TokenType.FOR),
        ("return", TokenType.RETURN),
        ("try", TokenType.TRY),
        ("catch", TokenType.CATCH),
        ("finally", TokenType.FINALLY),
        ("true", TokenType.TRUE),
        ("false", TokenType.FALSE),
        ("null", TokenType.NULL),
        ("break", TokenType.BREAK),
        ("continue", TokenType.CONTINUE),
    ])
    def test_keyword(self, word, token_type):
        assert types_of(word) == [token_type, TokenType.EOF]

    def test_keyword_prefix_is_identifier(self):
        """Words that merely start with a keyword are identifiers."""
        assert types_of("variable classy iffy") == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF,
        ]


class TestOperators:
    """Test operator and delimiter tokens."""

    def test_two_character_operators(self):
        assert types_of("== != <= >= && ||") == [
            TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL, TokenType.LESS_EQUAL,
            TokenType.GREATER_EQUAL, TokenType.AND, TokenType.OR, TokenType.EOF,
        ]

    def test_single_character_operators(self):
        assert types_of("+ - * / % = ! < >") == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.PERCENT, TokenType.EQUAL, TokenType.BANG, TokenType.LESS,
            TokenType.GREATER, TokenType.EOF,
        ]

    def test_delimiters(self):
        assert types_of("( ) { } [ ] , . ; :") == [
            TokenType.LEFT_PAREN, TokenType.RIGHT_PAREN, TokenType.LEFT_BRACE,
            TokenType.RIGHT_BRACE, TokenType.LEFT_BRACKET, TokenType.RIGHT_BRACKET,
            TokenType.COMMA, TokenType.DOT, TokenType.SEMICOLON, TokenType.COLON,
            TokenType.EOF,
        ]

    def test_adjacent_operators(self):
        """Longest match: '<==' is '<=' then '='."""
        assert types_of("<==") == [TokenType.LESS_EQUAL, TokenType.EQUAL, TokenType.EOF]

    def test_slash_is_not_comment(self):
        assert types_of("a / b") == [
            TokenType.IDENTIFIER, TokenType.SLASH, TokenType.IDENTIFIER, TokenType.EOF,
        ]


class TestLiterals:
    """Test number and string literals."""

    def test_integer(self):
        token = tokenize("42")[0]
        assert token.type == TokenType.NUMBER
        assert token.value == 42
        assert isinstance(token.value, int)

    def test_float(self):
        token = tokenize("3.25")[0]
        assert token.value == 3.25
        assert isinstance(token.value, float)

    def test_trailing_dot_not_consumed(self):
        """'1.' is the number 1 followed by a DOT."""
        tokens = tokenize("1.foo")
        assert tokens[0].value == 1
        assert [t.type for t in tokens] == [
            TokenType.NUMBER, TokenType.DOT, TokenType.IDENTIFIER, TokenType.EOF,
        ]

    def test_negative_number_is_two_tokens(self):
        assert types_of("-7") == [TokenType.MINUS, TokenType.NUMBER, TokenType.EOF]

    def test_integer_too_large(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("99999999999999999999")
        assert exc_info.value.diagnostic.code == "E004"

    def test_string(self):
        token = tokenize('"hello world"')[0]
        assert token.type == TokenType.STRING
        assert token.value == "hello world"
        assert token.lexeme == '"hello world"'

    def test_string_escapes(self):
        token = tokenize(r'"a\nb\t\"q\"\\"')[0]
        assert token.value == 'a\nb\t"q"\\'

    def test_multiline_string_advances_line(self):
        tokens = tokenize('"one\ntwo" x')
        assert tokens[0].value == "one\ntwo"
        assert tokens[1].line == 2


class TestLexErrors:
    """Malformed input fails loudly with a position."""

    def test_unterminated_string(self):
        with pytest.raises(LexError) as exc_info:
            tokenize('var s = "oops;')
        err = exc_info.value
        assert err.diagnostic.code == "E002"
        assert err.line == 1
        assert err.column == 9

    def test_unexpected_character(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("var x = 1;\nx @ 2;")
        err = exc_info.value
        assert err.diagnostic.code == "E001"
        assert err.line == 2
        assert err.column == 3
        assert "'@'" in err.message

    def test_single_ampersand_has_hint(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("a & b")
        assert exc_info.value.diagnostic.hints
        assert "&&" in exc_info.value.diagnostic.hints[0]

    def test_invalid_escape(self):
        with pytest.raises(LexError) as exc_info:
            tokenize(r'"bad \q"')
        assert exc_info.value.diagnostic.code == "E003"

    def test_error_formats_with_source_excerpt(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("x = $;")
        text = str(exc_info.value)
        assert "1:5: error[E001]" in text
        assert "x = $;" in text
        assert "^" in text
