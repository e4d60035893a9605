# Copyright 2025 Qilimanjaro Quantum Tech
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""
Recursive-descent parser for Dirac notation.

Grammar, from lowest to highest precedence::

    comparison := expr ('==' expr)?
    expr       := term (('+' | '-') term)*
    term       := unary (('*' | '/') unary | juxtaposed dirac atom)*
    unary      := ('-' | '+') unary | power
    power      := postfix (('^' | '**') unary)?
    postfix    := primary ("'" | '†')*
    primary    := NUMBER | STRING | IDENT | IDENT '(' args ')' | '(' comparison ')' | ket | bra | braket
    ket        := '|' labels '>'
    bra        := '<' labels '|'
    braket     := '<' labels '|' labels '>'
    labels     := expr (',' expr)*

A bra followed by an identifier, a number or '(' multiplies everything to its right, so ``<i|A|j>`` reads
``<i| * (A * |j>)``.

Operator definitions have the form ``name | v1, v2, ... > = comparison``.
"""

from __future__ import annotations

from functools import lru_cache

from loguru import logger

from qudirac.core.exceptions import ParseError
from qudirac.settings import get_settings

from .ast import (
    Adjoint,
    BinaryOp,
    BraLiteral,
    Call,
    Compare,
    KetLiteral,
    Name,
    Node,
    NumberLiteral,
    OpDefinition,
    SymbolLiteral,
    UnaryOp,
)
from .lexer import Token, TokenKind, tokenize

_DIRAC_START = {TokenKind.BAR, TokenKind.LANGLE}


class Parser:
    """Parser over the token stream of one source string."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0
        # Inside ket/bra labels only scalar sub-expressions are allowed
        self._in_label = False

    # ------------- Token helpers --------------

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def _accept(self, kind: TokenKind) -> Token | None:
        if self.current.kind is kind:
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, what: str) -> Token:
        token = self._accept(kind)
        if token is None:
            raise ParseError(f"Expected {what}, found {self._describe(self.current)}", self.current.position)
        return token

    @staticmethod
    def _describe(token: Token) -> str:
        if token.kind is TokenKind.EOF:
            return "end of input"
        return repr(str(token.value))

    # ------------- Entry points --------------

    def parse(self) -> Node:
        node = self._comparison()
        if self.current.kind is not TokenKind.EOF:
            raise ParseError(f"Unexpected token {self._describe(self.current)}", self.current.position)
        return node

    def parse_definition(self) -> OpDefinition:
        name = self._expect(TokenKind.IDENT, "an operator name")
        self._expect(TokenKind.BAR, "'|' after the operator name")
        variables = [str(self._expect(TokenKind.IDENT, "a label variable").value)]
        while self._accept(TokenKind.COMMA):
            variables.append(str(self._expect(TokenKind.IDENT, "a label variable").value))
        self._expect(TokenKind.RANGLE, "'>' closing the label variables")
        self._expect(TokenKind.ASSIGN, "'=' after the defined ket")
        if len(set(variables)) != len(variables):
            raise ParseError(f"Repeated label variable in definition of '{name.value}'", name.position)
        body = self.parse()
        return OpDefinition(str(name.value), tuple(variables), body)

    # ------------- Grammar --------------

    def _comparison(self) -> Node:
        left = self._expr()
        if self._accept(TokenKind.EQ):
            return Compare(left, self._expr())
        return left

    def _expr(self) -> Node:
        node = self._term()
        while self.current.kind in {TokenKind.PLUS, TokenKind.MINUS}:
            op = str(self._advance().value)
            node = BinaryOp(op, node, self._term())
        return node

    def _term(self) -> Node:
        node = factor = self._unary()
        while True:
            kind = self.current.kind
            if kind in {TokenKind.STAR, TokenKind.SLASH}:
                op = str(self._advance().value)
                factor = self._unary()
                node = BinaryOp(op, node, factor)
            elif isinstance(factor, NumberLiteral) and kind in {TokenKind.IDENT, TokenKind.LPAREN}:
                # numeric coefficients: 3im, 2pi, 2(n+1)
                factor = self._unary()
                node = BinaryOp("*", node, factor)
            elif self._in_label:
                return node
            elif kind in _DIRAC_START:
                factor = self._unary()
                node = BinaryOp("*", node, factor)
            elif isinstance(factor, BraLiteral) and kind in {TokenKind.IDENT, TokenKind.LPAREN, TokenKind.NUMBER}:
                # <i| A |j> and <i| 2 |j> act on the ket first
                return BinaryOp("*", node, self._term())
            else:
                return node

    def _unary(self) -> Node:
        if self.current.kind in {TokenKind.MINUS, TokenKind.PLUS}:
            op = str(self._advance().value)
            return UnaryOp(op, self._unary())
        return self._power()

    def _power(self) -> Node:
        node = self._postfix()
        if self._accept(TokenKind.CARET):
            return BinaryOp("^", node, self._unary())
        return node

    def _postfix(self) -> Node:
        node = self._primary()
        while self.current.kind in {TokenKind.PRIME, TokenKind.DAGGER}:
            self._advance()
            node = Adjoint(node)
        return node

    def _primary(self) -> Node:
        token = self.current
        if token.kind is TokenKind.NUMBER:
            self._advance()
            return NumberLiteral(token.value)  # type: ignore[arg-type]
        if token.kind is TokenKind.STRING:
            self._advance()
            return SymbolLiteral(str(token.value))
        if token.kind is TokenKind.IDENT:
            self._advance()
            if self._accept(TokenKind.LPAREN):
                return Call(str(token.value), self._arguments())
            return Name(str(token.value))
        if token.kind is TokenKind.LPAREN:
            self._advance()
            node = self._comparison()
            self._expect(TokenKind.RPAREN, "')'")
            return node
        if token.kind is TokenKind.BAR and not self._in_label:
            self._advance()
            labels = self._labels()
            self._expect(TokenKind.RANGLE, "'>' closing the ket")
            return KetLiteral(labels)
        if token.kind is TokenKind.LANGLE and not self._in_label:
            self._advance()
            return self._bra_or_braket()
        raise ParseError(f"Unexpected token {self._describe(token)}", token.position)

    def _arguments(self) -> tuple[Node, ...]:
        args: list[Node] = []
        if self._accept(TokenKind.RPAREN):
            return ()
        outer, self._in_label = self._in_label, False
        try:
            args.append(self._comparison())
            while self._accept(TokenKind.COMMA):
                args.append(self._comparison())
        finally:
            self._in_label = outer
        self._expect(TokenKind.RPAREN, "')' closing the argument list")
        return tuple(args)

    def _labels(self) -> tuple[Node, ...]:
        outer, self._in_label = self._in_label, True
        try:
            labels = [self._expr()]
            while self._accept(TokenKind.COMMA):
                labels.append(self._expr())
        finally:
            self._in_label = outer
        return tuple(labels)

    def _bra_or_braket(self) -> Node:
        bra_labels = self._labels()
        self._expect(TokenKind.BAR, "'|' closing the bra")
        bra = BraLiteral(bra_labels)

        # <i|j> shares the bar between bra and ket; fall back to a plain bra if no ket follows
        checkpoint = self.pos
        try:
            ket_labels = self._labels()
            self._expect(TokenKind.RANGLE, "'>'")
        except ParseError:
            self.pos = checkpoint
            return bra
        return BinaryOp("*", bra, KetLiteral(ket_labels))


@lru_cache(maxsize=get_settings().parse_cache_size)
def parse(source: str) -> Node:
    """
    Parse a Dirac-notation expression.

    Parsed trees are immutable and cached by source string.

    Raises:
        ParseError: If ``source`` is malformed.

    Returns:
        Node: Root of the expression tree.
    """
    logger.debug("Parsing Dirac expression {!r}", source)
    return Parser(source).parse()


@lru_cache(maxsize=get_settings().parse_cache_size)
def parse_definition(source: str) -> OpDefinition:
    """
    Parse an operator definition ``name | v1, ... > = expression``.

    Raises:
        ParseError: If ``source`` is malformed.

    Returns:
        OpDefinition: The definition tree.
    """
    logger.debug("Parsing operator definition {!r}", source)
    return Parser(source).parse_definition()
