#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
stencil/lexer.py
================

Tokenizer for template bodies.

The lexer runs in two modes:

* **HTML passthrough** – text is accumulated verbatim until the next
  ``{{`` and emitted as a single ``HTML`` token.
* **Expression mode** – between ``{{`` and ``}}``.  The first identifier
  decides whether the tag is a directive (``if``, ``for``, ``slot`` ...)
  or a plain output expression.

Lexer-level conveniences that never reach the parser:

* ``{{-- comment --}}`` produces no tokens.
* ``{{-`` trims trailing whitespace from the preceding HTML token and
  ``-}}`` trims leading whitespace from the following one.
* ``{{ verbatim }} ... {{ end }}`` emits its content as one HTML token.

All errors are fatal :class:`~stencil.errors.LexError` instances carrying
the location of the offending character.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from stencil.errors import LexError, SourceLocation, StencilErrorCodes
from stencil.tokens import KEYWORDS, Token, TokenType

__all__ = ["Lexer", "tokenize"]

_log = logging.getLogger(__name__)

_WHITESPACE = " \t\r\n"

# Single-character operators that never combine with a following char.
_SIMPLE_OPERATORS: Dict[str, TokenType] = {
    ".": TokenType.DOT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
}

# Operators that may be followed by "=".
_COMPARISON_OPERATORS: Dict[str, tuple] = {
    "=": (TokenType.EQUALS_SIGN, TokenType.EQ),
    "!": (TokenType.NOT, TokenType.NEQ),
    "<": (TokenType.LT, TokenType.LTE),
    ">": (TokenType.GT, TokenType.GTE),
}

_STRING_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "t": "\t"}


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_part(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


class Lexer:
    """Tokenize one template body.

    Parameters
    ----------
    text:
        The template section (already split from the host).
    file_name:
        Used in token locations and error messages.
    start_line:
        Line in the source file where *text* begins.
    """

    def __init__(self, text: str, file_name: str = "<template>",
                 start_line: int = 1) -> None:
        self.text = text
        self.file_name = file_name
        self.pos = 0
        self.line = start_line
        self.col = 1
        self.tokens: List[Token] = []
        self._trim_next_html = False
        self._directives: Dict[str, Callable[[SourceLocation], None]] = {
            "if": self._lex_if,
            "else": self._lex_else,
            "for": self._lex_for,
            "raw": self._lex_keyword_then_expression,
            "set": self._lex_set,
            "switch": self._lex_keyword_then_expression,
            "case": self._lex_keyword_then_expression,
            "include": self._lex_call,
            "component": self._lex_call,
            "widget": self._lex_call,
            "content": self._lex_bare_keyword,
            "default": self._lex_bare_keyword,
            "end": self._lex_bare_keyword,
            "slot": self._lex_named,
            "block": self._lex_named,
            "stack": self._lex_named,
            "push": self._lex_named,
            "fragment": self._lex_named,
        }

    # ═══════════════════════════════════════════════════════════════════
    #  Public API
    # ═══════════════════════════════════════════════════════════════════

    def tokenize(self) -> List[Token]:
        while self.pos < len(self.text):
            if self._looking_at("{{--"):
                self._lex_comment()
            elif self._looking_at("{{"):
                self._lex_tag()
            else:
                self._lex_html()
        self.tokens.append(Token(TokenType.EOF, "", self._loc()))
        _log.debug("%s: %d tokens", self.file_name, len(self.tokens))
        return self.tokens

    # ═══════════════════════════════════════════════════════════════════
    #  Cursor helpers
    # ═══════════════════════════════════════════════════════════════════

    def _loc(self) -> SourceLocation:
        return SourceLocation(self.file_name, self.line, self.col)

    def _error(self, message: str, location: Optional[SourceLocation] = None,
               code=None) -> LexError:
        return LexError(message, location or self._loc(), code)

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        return self.text[idx] if idx < len(self.text) else ""

    def _looking_at(self, s: str) -> bool:
        return self.text.startswith(s, self.pos)

    def _at_close(self) -> bool:
        return self._looking_at("}}") or self._looking_at("-}}")

    def _advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.pos >= len(self.text):
                return
            if self.text[self.pos] == "\n":
                self.line += 1
                self.col = 1
            else:
                self.col += 1
            self.pos += 1

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
            self._advance()

    def _emit(self, type_: TokenType, value: str, location: SourceLocation) -> None:
        self.tokens.append(Token(type_, value, location))

    def _peek_identifier(self) -> str:
        end = self.pos
        while end < len(self.text) and _is_ident_part(self.text[end]):
            end += 1
        return self.text[self.pos:end]

    def _read_identifier(self) -> str:
        if not _is_ident_start(self._peek()):
            found = self._peek() or "end of input"
            raise self._error(f"expected identifier, got {found!r}")
        start = self.pos
        while self.pos < len(self.text) and _is_ident_part(self.text[self.pos]):
            self._advance()
        return self.text[start:self.pos]

    # ═══════════════════════════════════════════════════════════════════
    #  HTML and comments
    # ═══════════════════════════════════════════════════════════════════

    def _lex_html(self) -> None:
        start = self._loc()
        begin = self.pos
        end = self.text.find("{{", self.pos)
        if end < 0:
            end = len(self.text)
        self._advance(end - begin)
        content = self.text[begin:end]
        if self._trim_next_html:
            content = content.lstrip(_WHITESPACE)
            self._trim_next_html = False
        if content:
            self._emit(TokenType.HTML, content, start)

    def _lex_comment(self) -> None:
        start = self._loc()
        end = self.text.find("--}}", self.pos + 4)
        if end < 0:
            raise self._error("unterminated comment (missing '--}}')", start,
                              StencilErrorCodes.UNTERMINATED_COMMENT)
        self._advance(end + 4 - self.pos)

    def _trim_previous_html(self) -> None:
        if self.tokens and self.tokens[-1].type is TokenType.HTML:
            last = self.tokens.pop()
            trimmed = last.value.rstrip(_WHITESPACE)
            if trimmed:
                self.tokens.append(Token(TokenType.HTML, trimmed, last.location))

    # ═══════════════════════════════════════════════════════════════════
    #  Tags
    # ═══════════════════════════════════════════════════════════════════

    def _lex_tag(self) -> None:
        start = self._loc()
        self._advance(2)
        if self._peek() == "-":
            self._advance()
            self._trim_previous_html()
        self._skip_whitespace()

        word = self._peek_identifier()
        if word == "verbatim":
            self._advance(len(word))
            self._close_tag(emit=False)
            self._lex_verbatim(start)
            return

        self._emit(TokenType.EXPR_START, "{{", start)
        if self.pos >= len(self.text) or self._at_close():
            self._close_tag()
            return

        handler = self._directives.get(word)
        if handler is None:
            self._lex_expression_until_close()
        else:
            keyword_loc = self._loc()
            self._advance(len(word))
            self._emit(KEYWORDS[word], word, keyword_loc)
            handler(keyword_loc)
        self._close_tag()

    def _close_tag(self, emit: bool = True) -> None:
        self._skip_whitespace()
        end_loc = self._loc()
        if self._looking_at("-}}"):
            self._advance(3)
            self._trim_next_html = True
        elif self._looking_at("}}"):
            self._advance(2)
        elif self.pos >= len(self.text):
            raise self._error("unterminated tag (missing '}}')", end_loc,
                              StencilErrorCodes.UNTERMINATED_TAG)
        else:
            raise self._error(f"expected '}}}}', got {self._peek()!r}", end_loc,
                              StencilErrorCodes.MALFORMED_DIRECTIVE)
        if emit:
            self._emit(TokenType.EXPR_END, "}}", end_loc)

    def _lex_verbatim(self, start: SourceLocation) -> None:
        content_loc = self._loc()
        begin = self.pos
        search = self.pos
        while True:
            idx = self.text.find("{{", search)
            if idx < 0:
                raise self._error("unterminated verbatim block (missing '{{ end }}')",
                                  start, StencilErrorCodes.UNTERMINATED_VERBATIM)
            probe = idx + 2
            if probe < len(self.text) and self.text[probe] == "-":
                probe += 1
            while probe < len(self.text) and self.text[probe] in _WHITESPACE:
                probe += 1
            if self.text.startswith("end", probe) and not _is_ident_part(
                    self.text[probe + 3:probe + 4] or " "):
                break
            search = idx + 2

        content = self.text[begin:idx]
        if self._trim_next_html:
            content = content.lstrip(_WHITESPACE)
            self._trim_next_html = False
        if content:
            self._emit(TokenType.HTML, content, content_loc)
        self._advance(probe + 3 - self.pos)
        self._close_tag(emit=False)

    # ═══════════════════════════════════════════════════════════════════
    #  Directive sub-lexers
    # ═══════════════════════════════════════════════════════════════════

    def _lex_bare_keyword(self, loc: SourceLocation) -> None:
        pass

    def _lex_keyword_then_expression(self, loc: SourceLocation) -> None:
        self._lex_expression_until_close()

    def _lex_if(self, loc: SourceLocation) -> None:
        self._lex_expression_until_close()

    def _lex_else(self, loc: SourceLocation) -> None:
        self._skip_whitespace()
        if self._peek_identifier() == "if":
            if_loc = self._loc()
            self._advance(2)
            self._emit(TokenType.IF, "if", if_loc)
            self._lex_expression_until_close()

    def _lex_for(self, loc: SourceLocation) -> None:
        self._skip_whitespace()
        var_loc = self._loc()
        self._emit(TokenType.IDENTIFIER, self._read_identifier(), var_loc)
        self._skip_whitespace()
        in_loc = self._loc()
        word = self._peek_identifier()
        if word != "in":
            raise self._error(f"expected 'in' in for loop, got {word or self._peek()!r}",
                              in_loc, StencilErrorCodes.MALFORMED_DIRECTIVE)
        self._advance(2)
        self._emit(TokenType.IN, "in", in_loc)
        self._lex_expression_until_close()

    def _lex_set(self, loc: SourceLocation) -> None:
        self._skip_whitespace()
        name_loc = self._loc()
        self._emit(TokenType.IDENTIFIER, self._read_identifier(), name_loc)
        self._skip_whitespace()
        if self._peek() != "=" or self._peek(1) == "=":
            raise self._error("expected '=' in set directive",
                              code=StencilErrorCodes.MALFORMED_DIRECTIVE)
        self._emit(TokenType.EQUALS_SIGN, "=", self._loc())
        self._advance()
        self._lex_expression_until_close()

    def _lex_named(self, loc: SourceLocation) -> None:
        self._skip_whitespace()
        self.tokens.append(self._read_string())

    def _lex_call(self, loc: SourceLocation) -> None:
        self._skip_whitespace()
        self.tokens.append(self._read_string())
        self._skip_whitespace()
        while self.pos < len(self.text) and not self._at_close():
            key_loc = self._loc()
            self._emit(TokenType.IDENTIFIER, self._read_identifier(), key_loc)
            self._skip_whitespace()
            if self._peek() != "=":
                raise self._error("expected '=' after parameter name",
                                  code=StencilErrorCodes.MALFORMED_DIRECTIVE)
            self._emit(TokenType.EQUALS_SIGN, "=", self._loc())
            self._advance()
            self._skip_whitespace()
            self._lex_single_value()
            self._skip_whitespace()

    # ═══════════════════════════════════════════════════════════════════
    #  Expression tokens
    # ═══════════════════════════════════════════════════════════════════

    def _lex_expression_until_close(self) -> None:
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.text) or self._at_close():
                return
            self._lex_expression_token()

    def _lex_single_value(self) -> None:
        """Lex one parameter value: stops at whitespace or the closing tag."""
        while (self.pos < len(self.text) and not self._at_close()
               and self.text[self.pos] not in _WHITESPACE):
            self._lex_expression_token()

    def _lex_expression_token(self) -> None:
        loc = self._loc()
        ch = self._peek()

        if ch in _SIMPLE_OPERATORS:
            self._advance()
            self._emit(_SIMPLE_OPERATORS[ch], ch, loc)
        elif ch in _COMPARISON_OPERATORS:
            single, double = _COMPARISON_OPERATORS[ch]
            if self._peek(1) == "=":
                self._advance(2)
                self._emit(double, ch + "=", loc)
            else:
                self._advance()
                self._emit(single, ch, loc)
        elif ch == "?":
            if self._peek(1) != ".":
                raise self._error("expected '?.' for null-safe access", loc)
            self._advance(2)
            self._emit(TokenType.NULL_SAFE_DOT, "?.", loc)
        elif ch in ("&", "|"):
            if self._peek(1) != ch:
                raise self._error(f"expected '{ch}{ch}', got single '{ch}'", loc)
            self._advance(2)
            self._emit(TokenType.AND if ch == "&" else TokenType.OR, ch * 2, loc)
        elif ch == '"':
            self.tokens.append(self._read_string())
        elif ch.isdigit():
            self._read_number(loc)
        elif _is_ident_start(ch):
            word = self._read_identifier()
            if word == "true":
                self._emit(TokenType.TRUE, word, loc)
            elif word == "false":
                self._emit(TokenType.FALSE, word, loc)
            else:
                self._emit(TokenType.IDENTIFIER, word, loc)
        else:
            raise self._error(f"unexpected character {ch!r} in expression", loc)

    def _read_string(self) -> Token:
        start = self._loc()
        if self._peek() != '"':
            found = self._peek() or "end of input"
            raise self._error(f"expected string literal, got {found!r}", start,
                              StencilErrorCodes.MALFORMED_DIRECTIVE)
        self._advance()
        chars: List[str] = []
        while True:
            ch = self._peek()
            if not ch:
                raise self._error("unterminated string literal", start,
                                  StencilErrorCodes.UNTERMINATED_STRING)
            if ch == '"':
                self._advance()
                break
            if ch == "\\":
                nxt = self._peek(1)
                if not nxt:
                    raise self._error("unterminated string literal", start,
                                      StencilErrorCodes.UNTERMINATED_STRING)
                chars.append(_STRING_ESCAPES.get(nxt, "\\" + nxt))
                self._advance(2)
                continue
            chars.append(ch)
            self._advance()
        return Token(TokenType.STRING_LITERAL, "".join(chars), start)

    def _read_number(self, loc: SourceLocation) -> None:
        begin = self.pos
        while self._peek().isdigit():
            self._advance()
        if self._peek() == "." and self._peek(1).isdigit():
            self._advance()
            while self._peek().isdigit():
                self._advance()
        self._emit(TokenType.NUMBER, self.text[begin:self.pos], loc)


def tokenize(text: str, file_name: str = "<template>", start_line: int = 1) -> List[Token]:
    """Tokenize *text* and return the token list (terminated by ``EOF``)."""
    return Lexer(text, file_name, start_line).tokenize()
