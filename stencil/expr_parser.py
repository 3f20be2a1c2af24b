#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/expr_parser.py
======================

Precedence-climbing parser for template expressions.

Precedence, lowest to highest::

    ||
    &&
    == != < > <= >=        (left-associative)
    !                      (prefix, right-associative)
    primary                literal | identifier | ( expr )
                           followed by any number of
                           .name  ?.name  .name(args)  ?.name(args)

The parser works directly on the lexer's token list starting at a given
index and stops at the first token that cannot continue the expression
(normally ``EXPR_END``).  Callers decide whether leftover tokens are an
error.
"""

from __future__ import annotations

from typing import List, Sequence

from stencil import ast_nodes as N
from stencil.errors import ParseError, StencilErrorCodes
from stencil.lexer import Lexer
from stencil.tokens import Token, TokenType

__all__ = ["ExpressionParser", "parse_expression"]

_COMPARISON = {
    TokenType.EQ: N.BinaryOperator.EQ,
    TokenType.NEQ: N.BinaryOperator.NEQ,
    TokenType.LT: N.BinaryOperator.LT,
    TokenType.GT: N.BinaryOperator.GT,
    TokenType.LTE: N.BinaryOperator.LTE,
    TokenType.GTE: N.BinaryOperator.GTE,
}

_MEMBER_ACCESS = (TokenType.DOT, TokenType.NULL_SAFE_DOT)


class ExpressionParser:
    """Parse one expression out of a token sequence.

    After any ``parse_*`` call, :attr:`pos` indexes the first unconsumed
    token.
    """

    def __init__(self, tokens: Sequence[Token], pos: int = 0) -> None:
        self.tokens = tokens
        self.pos = pos

    # ── cursor ───────────────────────────────────────────────────

    def _current(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return self.tokens[-1]

    def _check(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens):
            self.pos += 1
        return tok

    def _expect(self, type_: TokenType, what: str) -> Token:
        if not self._check(type_):
            tok = self._current()
            raise ParseError(f"expected {what}, got {_describe(tok)}",
                             tok.location, StencilErrorCodes.UNEXPECTED_TOKEN)
        return self._advance()

    # ── entry points ─────────────────────────────────────────────

    def parse_expression(self) -> N.Expression:
        """Parse a full expression (lowest precedence level)."""
        return self._parse_or()

    def parse_complete(self, terminator: TokenType = TokenType.EXPR_END) -> N.Expression:
        """Parse an expression that must be followed by *terminator*."""
        expr = self.parse_expression()
        if not self._check(terminator):
            tok = self._current()
            raise ParseError(f"unexpected {_describe(tok)} after expression",
                             tok.location, StencilErrorCodes.TRAILING_TOKENS)
        return expr

    def parse_value(self) -> N.Expression:
        """Parse a single parameter value.

        A literal, or an identifier followed by ``.name`` /
        ``.name(args)`` segments.  Never consumes a binary operator.
        """
        return self._parse_postfix()

    # ── precedence levels ────────────────────────────────────────

    def _parse_or(self) -> N.Expression:
        left = self._parse_and()
        while self._check(TokenType.OR):
            op = self._advance()
            right = self._parse_and()
            left = N.BinaryOp(left, N.BinaryOperator.OR, right, op.location)
        return left

    def _parse_and(self) -> N.Expression:
        left = self._parse_comparison()
        while self._check(TokenType.AND):
            op = self._advance()
            right = self._parse_comparison()
            left = N.BinaryOp(left, N.BinaryOperator.AND, right, op.location)
        return left

    def _parse_comparison(self) -> N.Expression:
        left = self._parse_unary()
        while self._current().type in _COMPARISON:
            op = self._advance()
            right = self._parse_unary()
            left = N.BinaryOp(left, _COMPARISON[op.type], right, op.location)
        return left

    def _parse_unary(self) -> N.Expression:
        if self._check(TokenType.NOT):
            op = self._advance()
            return N.UnaryNot(self._parse_unary(), op.location)
        return self._parse_postfix()

    def _parse_postfix(self) -> N.Expression:
        expr = self._parse_primary()
        while self._check(*_MEMBER_ACCESS):
            dot = self._advance()
            null_safe = dot.type is TokenType.NULL_SAFE_DOT
            name = self._expect(TokenType.IDENTIFIER, "member name").value
            if self._check(TokenType.LPAREN):
                self._advance()
                args = self._parse_arguments()
                cls = N.NullSafeMethodCall if null_safe else N.MethodCall
                expr = cls(expr, name, tuple(args), dot.location)
            else:
                cls = N.NullSafePropertyAccess if null_safe else N.PropertyAccess
                expr = cls(expr, name, dot.location)
        return expr

    def _parse_arguments(self) -> List[N.Expression]:
        args: List[N.Expression] = []
        if self._check(TokenType.RPAREN):
            self._advance()
            return args
        args.append(self.parse_expression())
        while self._check(TokenType.COMMA):
            self._advance()
            args.append(self.parse_expression())
        self._expect(TokenType.RPAREN, "')' after arguments")
        return args

    def _parse_primary(self) -> N.Expression:
        tok = self._current()
        if tok.type is TokenType.STRING_LITERAL:
            self._advance()
            return N.StringLiteral(tok.value, tok.location)
        if tok.type is TokenType.NUMBER:
            self._advance()
            return N.NumberLiteral(tok.value, tok.location)
        if tok.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return N.BooleanLiteral(tok.type is TokenType.TRUE, tok.location)
        if tok.type is TokenType.IDENTIFIER:
            self._advance()
            return N.Variable(tok.value, tok.location)
        if tok.type is TokenType.LPAREN:
            self._advance()
            inner = self.parse_expression()
            self._expect(TokenType.RPAREN, "')'")
            return N.Grouped(inner, tok.location)
        code = (StencilErrorCodes.UNEXPECTED_EOF
                if tok.type in (TokenType.EOF, TokenType.EXPR_END)
                else StencilErrorCodes.UNEXPECTED_TOKEN)
        raise ParseError(f"expected expression, got {_describe(tok)}",
                         tok.location, code)


def _describe(tok: Token) -> str:
    if tok.type is TokenType.EOF:
        return "end of input"
    if tok.type is TokenType.EXPR_END:
        return "'}}'"
    return f"{tok.type.name} {tok.value!r}"


def parse_expression(text: str, file_name: str = "<expr>") -> N.Expression:
    """Parse a standalone expression such as ``user?.name == "x"``."""
    tokens = Lexer("{{ " + text + " }}", file_name).tokenize()
    # Skip the synthetic EXPR_START.
    return ExpressionParser(tokens, 1).parse_complete()
