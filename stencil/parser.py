#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/parser.py
=================

Recursive-descent parser turning the lexer's token stream into a
:class:`~stencil.ast_nodes.Body`.

Block constructs (``if``, ``for``, ``switch``, ``block``, ``push``,
``fragment`` and ``slot`` with default content) parse a restricted body
that stops, without consuming, at ``{{ end }}``, ``{{ else }}``,
``{{ case }}`` or ``{{ default }}``.  The construct that opened the body
then consumes whichever terminator it expects.  A terminator missing
before end of input is reported at the opening tag.

``{{ else if c }}`` is desugared into an else-body holding a single
nested ``If``; the nested parse consumes the ``{{ end }}`` the chain
shares.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from stencil import ast_nodes as N
from stencil.errors import ParseError, SourceLocation, StencilErrorCodes
from stencil.expr_parser import ExpressionParser
from stencil.tokens import Token, TokenType

__all__ = ["Parser", "parse_tokens"]

_log = logging.getLogger(__name__)

_TERMINATORS = frozenset({
    TokenType.END, TokenType.ELSE, TokenType.CASE, TokenType.DEFAULT,
})

# Directives that open a body closed by {{ end }}.
_BLOCK_OPENERS = frozenset({
    TokenType.IF, TokenType.FOR, TokenType.SWITCH, TokenType.BLOCK,
    TokenType.PUSH, TokenType.FRAGMENT,
})


class Parser:
    """Parse one template body."""

    def __init__(self, tokens: Sequence[Token], file_name: str = "<template>") -> None:
        if not tokens or tokens[-1].type is not TokenType.EOF:
            raise ValueError("token stream must end with EOF")
        self.tokens = tokens
        self.file_name = file_name
        self.pos = 0

    # ═══════════════════════════════════════════════════════════════════
    #  Public API
    # ═══════════════════════════════════════════════════════════════════

    def parse(self) -> N.Body:
        start = self._current().location
        children = self._parse_nodes()
        if not self._at_end():
            tok = self._peek(1)
            raise ParseError(f"unexpected '{{{{ {tok.value} }}}}' without an open block",
                             tok.location, StencilErrorCodes.UNEXPECTED_TOKEN)
        _log.debug("%s: parsed %d top-level nodes", self.file_name, len(children))
        return N.Body(tuple(children), start)

    # ═══════════════════════════════════════════════════════════════════
    #  Cursor helpers
    # ═══════════════════════════════════════════════════════════════════

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def _at_end(self) -> bool:
        return self._current().type is TokenType.EOF

    def _check(self, type_: TokenType) -> bool:
        return self._current().type is type_

    def _advance(self) -> Token:
        tok = self._current()
        if tok.type is not TokenType.EOF:
            self.pos += 1
        return tok

    def _expect(self, type_: TokenType, what: str) -> Token:
        if not self._check(type_):
            tok = self._current()
            found = "end of input" if tok.type is TokenType.EOF else repr(tok.value)
            raise ParseError(f"expected {what}, got {found}", tok.location,
                             StencilErrorCodes.UNEXPECTED_TOKEN)
        return self._advance()

    def _at_terminator(self) -> bool:
        return self._check(TokenType.EXPR_START) and self._peek(1).type in _TERMINATORS

    def _at_tag(self, type_: TokenType) -> bool:
        return self._check(TokenType.EXPR_START) and self._peek(1).type is type_

    def _expression(self) -> N.Expression:
        parser = ExpressionParser(self.tokens, self.pos)
        expr = parser.parse_complete()
        self.pos = parser.pos
        return expr

    def _close_tag(self) -> None:
        self._expect(TokenType.EXPR_END, "'}}'")

    # ═══════════════════════════════════════════════════════════════════
    #  Bodies
    # ═══════════════════════════════════════════════════════════════════

    def _parse_nodes(self) -> List[N.Node]:
        """Parse nodes until end of input or an unconsumed terminator."""
        nodes: List[N.Node] = []
        while not self._at_end() and not self._at_terminator():
            tok = self._current()
            if tok.type is TokenType.HTML:
                self._advance()
                nodes.append(N.Html(tok.value, tok.location))
            elif tok.type is TokenType.EXPR_START:
                nodes.append(self._parse_tag())
            else:
                raise ParseError(f"unexpected token {tok.value!r}", tok.location,
                                 StencilErrorCodes.UNEXPECTED_TOKEN)
        return nodes

    def _parse_block_body(self, opener: Token) -> N.Body:
        start = self._current().location
        nodes = self._parse_nodes()
        if self._at_end():
            raise ParseError(
                f"unterminated '{opener.value}' (missing '{{{{ end }}}}')",
                opener.location, StencilErrorCodes.UNTERMINATED_BLOCK,
            )
        return N.Body(tuple(nodes), start)

    def _consume_end(self, opener: Token) -> None:
        if not self._at_tag(TokenType.END):
            tok = self._peek(1)
            raise ParseError(
                f"expected '{{{{ end }}}}' to close '{opener.value}', got '{tok.value}'",
                tok.location, StencilErrorCodes.UNEXPECTED_TOKEN,
            )
        self._advance()
        self._advance()
        self._close_tag()

    # ═══════════════════════════════════════════════════════════════════
    #  Tags
    # ═══════════════════════════════════════════════════════════════════

    def _parse_tag(self) -> N.Node:
        self._advance()  # {{
        tok = self._current()
        handler = {
            TokenType.IF: self._parse_if,
            TokenType.FOR: self._parse_for,
            TokenType.RAW: self._parse_raw,
            TokenType.INCLUDE: self._parse_call,
            TokenType.COMPONENT: self._parse_call,
            TokenType.WIDGET: self._parse_call,
            TokenType.CONTENT: self._parse_content,
            TokenType.SET: self._parse_set,
            TokenType.SWITCH: self._parse_switch,
            TokenType.SLOT: self._parse_slot,
            TokenType.BLOCK: self._parse_named_block,
            TokenType.PUSH: self._parse_named_block,
            TokenType.FRAGMENT: self._parse_named_block,
            TokenType.STACK: self._parse_stack,
        }.get(tok.type)
        if handler is not None:
            return handler(self._advance())
        expr = self._expression()
        self._close_tag()
        return N.ExpressionOutput(expr, tok.location)

    def _parse_if(self, opener: Token) -> N.If:
        condition = self._expression()
        self._close_tag()
        then_body = self._parse_block_body(opener)

        if self._at_tag(TokenType.ELSE):
            self._advance()
            else_tok = self._advance()
            if self._check(TokenType.IF):
                nested_opener = self._advance()
                nested = self._parse_if(nested_opener)
                else_body = N.Body((nested,), else_tok.location)
                return N.If(condition, then_body, else_body, opener.location)
            self._close_tag()
            else_body = self._parse_block_body(opener)
            self._consume_end(opener)
            return N.If(condition, then_body, else_body, opener.location)

        self._consume_end(opener)
        return N.If(condition, then_body, None, opener.location)

    def _parse_for(self, opener: Token) -> N.For:
        var = self._expect(TokenType.IDENTIFIER, "loop variable")
        if not self._check(TokenType.IN):
            tok = self._current()
            raise ParseError(f"expected 'in' in for loop, got {tok.value!r}",
                             tok.location, StencilErrorCodes.UNEXPECTED_TOKEN)
        self._advance()
        iterable = self._expression()
        self._close_tag()
        body = self._parse_block_body(opener)
        self._consume_end(opener)
        return N.For(var.value, iterable, body, opener.location)

    def _parse_raw(self, opener: Token) -> N.RawExpressionOutput:
        expr = self._expression()
        self._close_tag()
        return N.RawExpressionOutput(expr, opener.location)

    def _parse_call(self, opener: Token) -> N.Node:
        name = self._expect(TokenType.STRING_LITERAL, f"{opener.value} name").value
        params: List[N.Param] = []
        seen: Dict[str, SourceLocation] = {}
        while self._check(TokenType.IDENTIFIER):
            key = self._advance()
            if key.value in seen:
                raise ParseError(f"duplicate parameter {key.value!r}", key.location,
                                 StencilErrorCodes.UNEXPECTED_TOKEN)
            seen[key.value] = key.location
            self._expect(TokenType.EQUALS_SIGN, "'=' after parameter name")
            value_parser = ExpressionParser(self.tokens, self.pos)
            value = value_parser.parse_value()
            self.pos = value_parser.pos
            params.append(N.Param(key.value, value))
        self._close_tag()
        if opener.type is TokenType.INCLUDE:
            return N.Include(name, tuple(params), opener.location)
        return N.ComponentCall(name, tuple(params), opener.value, opener.location)

    def _parse_content(self, opener: Token) -> N.Content:
        self._close_tag()
        return N.Content(opener.location)

    def _parse_set(self, opener: Token) -> N.Set:
        name = self._expect(TokenType.IDENTIFIER, "variable name").value
        self._expect(TokenType.EQUALS_SIGN, "'='")
        value = self._expression()
        self._close_tag()
        return N.Set(name, value, opener.location)

    def _parse_switch(self, opener: Token) -> N.Switch:
        subject = self._expression()
        self._close_tag()

        while self._check(TokenType.HTML) and not self._current().value.strip():
            self._advance()
        if not self._at_terminator():
            if self._at_end():
                raise ParseError(
                    f"unterminated '{opener.value}' (missing '{{{{ end }}}}')",
                    opener.location, StencilErrorCodes.UNTERMINATED_BLOCK,
                )
            tok = self._current()
            raise ParseError("only whitespace may appear between 'switch' and the first 'case'",
                             tok.location, StencilErrorCodes.UNEXPECTED_TOKEN)

        cases: List[N.SwitchCase] = []
        default: Optional[N.Body] = None
        while True:
            kind = self._peek(1)
            if kind.type is TokenType.END:
                self._consume_end(opener)
                break
            if kind.type is TokenType.CASE and default is None:
                self._advance()
                self._advance()
                value = self._expression()
                self._close_tag()
                cases.append(N.SwitchCase(value, self._parse_block_body(opener), kind.location))
            elif kind.type is TokenType.DEFAULT and default is None:
                self._advance()
                self._advance()
                self._close_tag()
                default = self._parse_block_body(opener)
            else:
                raise ParseError(f"unexpected '{kind.value}' in switch", kind.location,
                                 StencilErrorCodes.UNEXPECTED_TOKEN)
        return N.Switch(subject, tuple(cases), default, opener.location)

    def _parse_slot(self, opener: Token) -> N.Slot:
        name = self._expect(TokenType.STRING_LITERAL, "slot name").value
        self._close_tag()
        if not self._slot_has_body():
            return N.Slot(name, None, opener.location)
        body = self._parse_block_body(opener)
        self._consume_end(opener)
        return N.Slot(name, body, opener.location)

    def _slot_has_body(self) -> bool:
        """Decide whether the slot just opened carries default content.

        Scans ahead for an ``{{ end }}`` at the slot's own nesting depth.
        Reaching another terminator, another slot, or end of input first
        makes the slot self-closing.
        """
        depth = 0
        idx = self.pos
        while idx < len(self.tokens) - 1:
            tok = self.tokens[idx]
            if tok.type is TokenType.EXPR_START:
                kind = self.tokens[idx + 1].type
                if kind in _BLOCK_OPENERS:
                    depth += 1
                elif kind is TokenType.END:
                    if depth == 0:
                        return True
                    depth -= 1
                elif depth == 0 and (kind in _TERMINATORS or kind is TokenType.SLOT):
                    return False
            idx += 1
        return False

    def _parse_named_block(self, opener: Token) -> N.Node:
        name = self._expect(TokenType.STRING_LITERAL, f"{opener.value} name").value
        self._close_tag()
        body = self._parse_block_body(opener)
        self._consume_end(opener)
        if opener.type is TokenType.BLOCK:
            return N.Block(name, body, opener.location)
        if opener.type is TokenType.PUSH:
            return N.Push(name, body, opener.location)
        return N.Fragment(name, body, opener.location)

    def _parse_stack(self, opener: Token) -> N.Stack:
        name = self._expect(TokenType.STRING_LITERAL, "stack name").value
        self._close_tag()
        return N.Stack(name, opener.location)


def parse_tokens(tokens: Sequence[Token], file_name: str = "<template>") -> N.Body:
    """Parse a complete token stream into a body."""
    return Parser(tokens, file_name).parse()
