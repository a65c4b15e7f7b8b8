"""
Recursive descent parser for skiff.

Converts a token stream into a list of top-level statements. Malformed
statements are reported and skipped so that several errors can be collected
in one pass.
"""

import logging
from typing import List, Optional

from .tokens import Token, TokenType, SourceSpan, STATEMENT_KEYWORDS
from .ast import (
    # Expressions
    Expression, NumberLiteral, StringLiteral, BoolLiteral, NullLiteral,
    Variable, Binary, Unary, Call, ArrayLiteral, MapLiteral, Member, Index, Assign,
    # Statements
    Statement, ExpressionStatement, VarDecl, FuncDecl, ClassDecl, Return,
    If, While, For, Try, Block, Break, Continue,
)
from .errors import (
    ParseError,
    ParseFailed,
    error_unexpected_token,
    error_unexpected_eof,
    error_invalid_assignment_target,
    error_loop_control_outside_loop,
    error_try_without_handler,
    DiagnosticCollector,
)

logger = logging.getLogger(__name__)


class Parser:
    """
    Recursive descent parser for skiff.

    Usage:
        parser = Parser(tokens)
        statements = parser.parse()
        if parser.diagnostics.has_errors:
            ...

    Expression precedence, lowest to highest:
        Lowest:  =  (right-associative)
                 ||
                 &&
                 == !=
                 < <= > >=
                 + -
                 * / %
                 unary (! -)
        Highest: call / index / member (postfix chain)
    """

    EQUALITY_OPS = (TokenType.EQUAL_EQUAL, TokenType.BANG_EQUAL)
    COMPARISON_OPS = (TokenType.LESS, TokenType.LESS_EQUAL,
                      TokenType.GREATER, TokenType.GREATER_EQUAL)
    ADDITIVE_OPS = (TokenType.PLUS, TokenType.MINUS)
    MULTIPLICATIVE_OPS = (TokenType.STAR, TokenType.SLASH, TokenType.PERCENT)

    def __init__(self, tokens: List[Token], source: Optional[str] = None, max_errors: int = 20):
        self.tokens = tokens
        self.source = source
        self.pos = 0
        self.diagnostics = DiagnosticCollector(max_errors)
        self.errors: List[ParseError] = []
        self._loop_depth = 0
        self._lines = source.splitlines() if source is not None else []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _previous(self) -> Token:
        return self.tokens[max(0, self.pos - 1)]

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        """Check if current token is of given type."""
        return self._current().type == token_type

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _source_line(self, line: int) -> Optional[str]:
        if 1 <= line <= len(self._lines):
            return self._lines[line - 1]
        return None

    def _error(self, expected: str) -> ParseError:
        """Build a parser error at the current token."""
        token = self._current()
        source_line = self._source_line(token.line)
        if token.type == TokenType.EOF:
            return error_unexpected_eof(expected, token.span, source_line)
        return error_unexpected_token(expected, f"'{token.lexeme}'", token.span, source_line)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        return SourceSpan(start.span.start, self._previous().span.end)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_assignment()

    def _parse_assignment(self) -> Expression:
        target = self._parse_or()

        equals = self._match(TokenType.EQUAL)
        if equals is None:
            return target

        value = self._parse_assignment()
        if not isinstance(target, (Variable, Member)):
            raise error_invalid_assignment_target(
                SourceSpan(target.span.start, equals.span.end),
                self._source_line(equals.line),
            )
        return Assign(span=SourceSpan(target.span.start, value.span.end),
                      target=target, value=value)

    def _parse_left_assoc(self, operand, operators) -> Expression:
        """Parse one left-associative binary precedence level."""
        expr = operand()
        while True:
            op = self._match(*operators)
            if op is None:
                return expr
            right = operand()
            expr = Binary(span=SourceSpan(expr.span.start, right.span.end),
                          left=expr, operator=op.type, right=right)

    def _parse_or(self) -> Expression:
        return self._parse_left_assoc(self._parse_and, (TokenType.OR,))

    def _parse_and(self) -> Expression:
        return self._parse_left_assoc(self._parse_equality, (TokenType.AND,))

    def _parse_equality(self) -> Expression:
        return self._parse_left_assoc(self._parse_comparison, self.EQUALITY_OPS)

    def _parse_comparison(self) -> Expression:
        return self._parse_left_assoc(self._parse_additive, self.COMPARISON_OPS)

    def _parse_additive(self) -> Expression:
        return self._parse_left_assoc(self._parse_multiplicative, self.ADDITIVE_OPS)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_left_assoc(self._parse_unary, self.MULTIPLICATIVE_OPS)

    def _parse_unary(self) -> Expression:
        """Parse unary expressions (!, -)."""
        op = self._match(TokenType.BANG, TokenType.MINUS)
        if op is not None:
            operand = self._parse_unary()
            return Unary(span=SourceSpan(op.span.start, operand.span.end),
                         operator=op.type, operand=operand)
        return self._parse_postfix()

    def _parse_postfix(self) -> Expression:
        """Parse postfix expressions (calls, member access, indexing)."""
        expr = self._parse_primary()

        while True:
            if self._match(TokenType.LEFT_PAREN):
                args = self._parse_arguments()
                expr = Call(span=SourceSpan(expr.span.start, self._previous().span.end),
                            callee=expr, arguments=args)
            elif self._match(TokenType.DOT):
                name = self._consume(TokenType.IDENTIFIER, "property name after '.'")
                expr = Member(span=SourceSpan(expr.span.start, name.span.end),
                              object=expr, name=name.value)
            elif self._match(TokenType.LEFT_BRACKET):
                index = self._parse_expression()
                self._consume(TokenType.RIGHT_BRACKET, "']' after index")
                expr = Index(span=SourceSpan(expr.span.start, self._previous().span.end),
                             collection=expr, index=index)
            else:
                return expr

    def _parse_arguments(self) -> List[Expression]:
        """Parse a call argument list; the '(' is already consumed."""
        args = []
        if not self._check(TokenType.RIGHT_PAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                args.append(self._parse_expression())
        self._consume(TokenType.RIGHT_PAREN, "')' after arguments")
        return args

    def _parse_primary(self) -> Expression:
        """Parse primary expressions (literals, names, grouping, arrays, maps)."""
        token = self._current()

        if self._match(TokenType.NUMBER):
            return NumberLiteral(span=token.span, value=token.value)
        if self._match(TokenType.STRING):
            return StringLiteral(span=token.span, value=token.value)
        if self._match(TokenType.TRUE):
            return BoolLiteral(span=token.span, value=True)
        if self._match(TokenType.FALSE):
            return BoolLiteral(span=token.span, value=False)
        if self._match(TokenType.NULL):
            return NullLiteral(span=token.span)
        if self._match(TokenType.IDENTIFIER):
            return Variable(span=token.span, name=token.value)

        if self._match(TokenType.LEFT_PAREN):
            expr = self._parse_expression()
            self._consume(TokenType.RIGHT_PAREN, "')' after expression")
            return expr

        if self._match(TokenType.LEFT_BRACKET):
            elements = []
            if not self._check(TokenType.RIGHT_BRACKET):
                elements.append(self._parse_expression())
                while self._match(TokenType.COMMA):
                    elements.append(self._parse_expression())
            self._consume(TokenType.RIGHT_BRACKET, "']' after array elements")
            return ArrayLiteral(span=self._span_from(token), elements=elements)

        if self._match(TokenType.LEFT_BRACE):
            return self._parse_map_literal(token)

        raise self._error("expression")

    def _parse_map_literal(self, start: Token) -> MapLiteral:
        """Parse {key: value, ...}; the '{' is already consumed."""
        entries = []
        if not self._check(TokenType.RIGHT_BRACE):
            while True:
                key = self._parse_expression()
                self._consume(TokenType.COLON, "':' after map key")
                value = self._parse_expression()
                entries.append((key, value))
                if not self._match(TokenType.COMMA):
                    break
        self._consume(TokenType.RIGHT_BRACE, "'}' after map entries")
        return MapLiteral(span=self._span_from(start), entries=entries)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        token = self._current()

        if token.type == TokenType.VAR:
            return self._parse_var_decl()
        if token.type == TokenType.FUNC:
            self._advance()
            return self._parse_function()
        if token.type == TokenType.CLASS:
            return self._parse_class()
        if token.type == TokenType.IF:
            return self._parse_if()
        if token.type == TokenType.WHILE:
            return self._parse_while()
        if token.type == TokenType.FOR:
            return self._parse_for()
        if token.type == TokenType.RETURN:
            return self._parse_return()
        if token.type == TokenType.TRY:
            return self._parse_try()
        if token.type in (TokenType.BREAK, TokenType.CONTINUE):
            return self._parse_loop_control()
        if token.type == TokenType.LEFT_BRACE:
            self._advance()
            statements = self._parse_block_contents()
            return Block(span=self._span_from(token), statements=statements)

        return self._parse_expression_statement()

    def _parse_expression_statement(self) -> ExpressionStatement:
        start = self._current()
        expr = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after expression")
        return ExpressionStatement(span=self._span_from(start), expression=expr)

    def _parse_var_decl(self) -> VarDecl:
        """Parse: var name = expr;"""
        start = self._advance()  # consume 'var'
        name = self._consume(TokenType.IDENTIFIER, "variable name").value

        initializer = None
        if self._match(TokenType.EQUAL):
            initializer = self._parse_expression()

        self._consume(TokenType.SEMICOLON, "';' after variable declaration")
        return VarDecl(span=self._span_from(start), name=name, initializer=initializer)

    def _parse_function(self) -> FuncDecl:
        """Parse a function or method after an optional 'func' keyword."""
        start = self._previous() if self._previous().type == TokenType.FUNC else self._current()
        name_token = self._consume(TokenType.IDENTIFIER, "function name")

        self._consume(TokenType.LEFT_PAREN, "'(' after function name")
        params = []
        if not self._check(TokenType.RIGHT_PAREN):
            params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
            while self._match(TokenType.COMMA):
                params.append(self._consume(TokenType.IDENTIFIER, "parameter name").value)
        self._consume(TokenType.RIGHT_PAREN, "')' after parameters")

        # break/continue never cross a function boundary
        saved_depth = self._loop_depth
        self._loop_depth = 0
        try:
            body = self._parse_body("function body")
        finally:
            self._loop_depth = saved_depth

        return FuncDecl(span=self._span_from(start), name=name_token.value,
                        parameters=params, body=body)

    def _parse_class(self) -> ClassDecl:
        """Parse: class Name { [func] method(params) { ... } ... }"""
        start = self._advance()  # consume 'class'
        name = self._consume(TokenType.IDENTIFIER, "class name").value
        self._consume(TokenType.LEFT_BRACE, "'{' before class body")

        methods = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
            self._match(TokenType.FUNC)
            methods.append(self._parse_function())

        self._consume(TokenType.RIGHT_BRACE, "'}' after class body")
        return ClassDecl(span=self._span_from(start), name=name, methods=methods)

    def _parse_if(self) -> If:
        """Parse if/else; 'else if' nests another If in the else branch."""
        start = self._advance()  # consume 'if'
        self._consume(TokenType.LEFT_PAREN, "'(' after 'if'")
        condition = self._parse_expression()
        self._consume(TokenType.RIGHT_PAREN, "')' after if condition")
        then_branch = self._parse_body("if body")

        else_branch = []
        if self._match(TokenType.ELSE):
            if self._check(TokenType.IF):
                else_branch = [self._parse_if()]
            else:
                else_branch = self._parse_body("else body")

        return If(span=self._span_from(start), condition=condition,
                  then_branch=then_branch, else_branch=else_branch)

    def _parse_while(self) -> While:
        start = self._advance()  # consume 'while'
        self._consume(TokenType.LEFT_PAREN, "'(' after 'while'")
        condition = self._parse_expression()
        self._consume(TokenType.RIGHT_PAREN, "')' after while condition")
        body = self._parse_loop_body()
        return While(span=self._span_from(start), condition=condition, body=body)

    def _parse_for(self) -> For:
        """Parse: for (init; cond; incr) { ... } with every clause optional."""
        start = self._advance()  # consume 'for'
        self._consume(TokenType.LEFT_PAREN, "'(' after 'for'")

        if self._match(TokenType.SEMICOLON):
            initializer = None
        elif self._check(TokenType.VAR):
            initializer = self._parse_var_decl()
        else:
            initializer = self._parse_expression_statement()

        condition = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after loop condition")

        increment = None
        if not self._check(TokenType.RIGHT_PAREN):
            increment = self._parse_expression()
        self._consume(TokenType.RIGHT_PAREN, "')' after for clauses")

        body = self._parse_loop_body()
        return For(span=self._span_from(start), initializer=initializer,
                   condition=condition, increment=increment, body=body)

    def _parse_return(self) -> Return:
        start = self._advance()  # consume 'return'
        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._consume(TokenType.SEMICOLON, "';' after return value")
        return Return(span=self._span_from(start), value=value)

    def _parse_try(self) -> Try:
        """Parse: try { } [catch (name) { }] [finally { }]"""
        start = self._advance()  # consume 'try'
        body = self._parse_body("try body")

        catch_name = None
        catch_body = []
        if self._match(TokenType.CATCH):
            self._consume(TokenType.LEFT_PAREN, "'(' after 'catch'")
            catch_name = self._consume(TokenType.IDENTIFIER, "exception variable name").value
            self._consume(TokenType.RIGHT_PAREN, "')' after catch variable")
            catch_body = self._parse_body("catch body")

        finally_body = []
        has_finally = self._match(TokenType.FINALLY) is not None
        if has_finally:
            finally_body = self._parse_body("finally body")

        if catch_name is None and not has_finally:
            token = self._current()
            raise error_try_without_handler(token.span, self._source_line(token.line))

        return Try(span=self._span_from(start), body=body, catch_name=catch_name,
                   catch_body=catch_body, finally_body=finally_body)

    def _parse_loop_control(self) -> Statement:
        keyword = self._advance()
        if self._loop_depth == 0:
            raise error_loop_control_outside_loop(
                keyword.lexeme, keyword.span, self._source_line(keyword.line)
            )
        self._consume(TokenType.SEMICOLON, f"';' after '{keyword.lexeme}'")
        if keyword.type == TokenType.BREAK:
            return Break(span=self._span_from(keyword))
        return Continue(span=self._span_from(keyword))

    def _parse_body(self, what: str) -> List[Statement]:
        """Parse a braced statement list."""
        self._consume(TokenType.LEFT_BRACE, f"'{{' before {what}")
        return self._parse_block_contents()

    def _parse_loop_body(self) -> List[Statement]:
        self._loop_depth += 1
        try:
            return self._parse_body("loop body")
        finally:
            self._loop_depth -= 1

    def _parse_block_contents(self) -> List[Statement]:
        """Parse statements up to and including the closing '}'."""
        statements = []
        while not self._check(TokenType.RIGHT_BRACE) and not self._is_at_end():
            statements.append(self._parse_statement())
        self._consume(TokenType.RIGHT_BRACE, "'}' after block")
        return statements

    # =========================================================================
    # Top Level
    # =========================================================================

    def _open_braces(self, start: int) -> int:
        """Count braces left open by the tokens consumed since ``start``."""
        depth = 0
        for token in self.tokens[start:self.pos]:
            if token.type == TokenType.LEFT_BRACE:
                depth += 1
            elif token.type == TokenType.RIGHT_BRACE:
                depth -= 1
        return depth

    def _synchronize(self, statement_start: int) -> None:
        """Discard tokens up to the next statement boundary.

        If the failed statement opened blocks that are still unclosed, the
        boundary is the brace that closes the outermost of them.
        """
        self._loop_depth = 0
        depth = self._open_braces(statement_start)
        if depth > 0:
            while depth > 0 and not self._is_at_end():
                token = self._advance()
                if token.type == TokenType.LEFT_BRACE:
                    depth += 1
                elif token.type == TokenType.RIGHT_BRACE:
                    depth -= 1
            return

        self._advance()
        while not self._is_at_end():
            if self._previous().type == TokenType.SEMICOLON:
                return
            if self._current().type in STATEMENT_KEYWORDS:
                return
            self._advance()

    def parse(self) -> List[Statement]:
        """Parse all top-level statements, collecting errors as they occur.

        Statements that failed to parse are omitted from the result; check
        ``self.errors`` (or ``self.diagnostics``) afterwards.
        """
        statements = []
        while not self._is_at_end():
            start = self.pos
            try:
                statements.append(self._parse_statement())
            except ParseError as e:
                self.errors.append(e)
                self.diagnostics.add_error(e)
                if self.diagnostics.should_stop:
                    logger.debug("parser: stopping after %d errors", self.diagnostics.error_count)
                    break
                logger.debug("parser: recovering from %s at %s", e.diagnostic.code, e.diagnostic.span.start)
                self._synchronize(start)
        return statements


def parse(tokens: List[Token], source: Optional[str] = None, max_errors: int = 20) -> List[Statement]:
    """
    Convenience function to parse tokens into a program.

    Args:
        tokens: List of tokens from the lexer
        source: Optional original source code, used for error excerpts
        max_errors: Stop collecting errors after this many

    Returns:
        Ordered list of top-level statements

    Raises:
        ParseFailed: If any statement failed to parse; carries every error
    """
    parser = Parser(tokens, source, max_errors)
    statements = parser.parse()
    if parser.errors:
        raise ParseFailed(parser.errors)
    return statements
