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
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from qudirac.core.exceptions import ParseError
from qudirac.core.types import Number


class TokenKind(Enum):
    # Literals
    NUMBER = "NUMBER"
    STRING = "STRING"
    IDENT = "IDENT"
    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    CARET = "^"
    EQ = "=="
    ASSIGN = "="
    PRIME = "'"
    DAGGER = "†"
    # Delimiters
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    BAR = "|"
    LANGLE = "<"
    RANGLE = ">"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str | Number
    position: int


# Order matters: longer patterns first
_NUMBER = r"(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?[jJ]?"
_PATTERNS: list[tuple[str, TokenKind | None]] = [
    (r"\s+", None),
    (_NUMBER, TokenKind.NUMBER),
    (r"[A-Za-z_][A-Za-z_0-9]*", TokenKind.IDENT),
    (r"\*\*|\^", TokenKind.CARET),
    (r"==", TokenKind.EQ),
    (r"=", TokenKind.ASSIGN),
    (r"\+", TokenKind.PLUS),
    (r"-", TokenKind.MINUS),
    (r"\*", TokenKind.STAR),
    (r"/", TokenKind.SLASH),
    (r"†", TokenKind.DAGGER),
    (r"\(", TokenKind.LPAREN),
    (r"\)", TokenKind.RPAREN),
    (r",", TokenKind.COMMA),
    (r"\|", TokenKind.BAR),
    (r"<|⟨", TokenKind.LANGLE),
    (r">|⟩", TokenKind.RANGLE),
]
_MASTER = re.compile("|".join(f"(?P<T{i}>{pattern})" for i, (pattern, _) in enumerate(_PATTERNS)))
_STRING = re.compile(r"""'([^'\\]*)'|"([^"\\]*)\"""")

# A quote right after one of these closes an expression, so it is the adjoint mark
_POSTFIX_CONTEXT = {TokenKind.RPAREN, TokenKind.RANGLE, TokenKind.IDENT, TokenKind.PRIME, TokenKind.DAGGER}


def _number(text: str) -> Number:
    if text[-1] in "jJ":
        return complex(text)
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)


def tokenize(source: str) -> list[Token]:
    """
    Split a Dirac-notation string into tokens.

    A ``'`` directly after ``)``, ``>``, an identifier or another adjoint mark is the conjugate-transpose
    postfix; anywhere else it opens a quoted symbol such as ``'up'``. After the ``|`` closing a bra, a quote with no
    matching closing quote is also the adjoint mark, so ``<2|'`` is ``|2>``.

    Raises:
        ParseError: On characters that start no token, or unterminated symbols.

    Returns:
        list[Token]: The tokens, terminated by an ``EOF`` token.
    """
    tokens: list[Token] = []
    open_bras = 0
    # Index of the last token that was a '|' closing a '<'
    closing_bar = -1
    pos = 0
    while pos < len(source):
        char = source[pos]
        if char in "'\"":
            previous = tokens[-1].kind if tokens else None
            if char == "'" and previous in _POSTFIX_CONTEXT:
                tokens.append(Token(TokenKind.PRIME, char, pos))
                pos += 1
                continue
            string_match = _STRING.match(source, pos)
            if string_match is None and char == "'" and tokens and closing_bar == len(tokens) - 1:
                tokens.append(Token(TokenKind.PRIME, char, pos))
                pos += 1
                continue
            if string_match is None:
                raise ParseError(
                    "Unterminated symbol literal; to take an adjoint, wrap the expression in parentheses, "
                    "e.g. (|1><2|)'",
                    pos,
                )
            value = string_match.group(1) if string_match.group(1) is not None else string_match.group(2)
            tokens.append(Token(TokenKind.STRING, value, pos))
            pos = string_match.end()
            continue

        match = _MASTER.match(source, pos)
        if match is None:
            raise ParseError(f"Unexpected character {char!r}", pos)
        kind = _PATTERNS[int(match.lastgroup[1:])][1]  # type: ignore[index]
        text = match.group()
        if kind is TokenKind.NUMBER:
            tokens.append(Token(kind, _number(text), pos))
        elif kind is TokenKind.LANGLE:
            open_bras += 1
            tokens.append(Token(kind, text, pos))
        elif kind is TokenKind.BAR and open_bras:
            open_bras -= 1
            closing_bar = len(tokens)
            tokens.append(Token(kind, text, pos))
        elif kind is not None:
            tokens.append(Token(kind, text, pos))
        pos = match.end()

    tokens.append(Token(TokenKind.EOF, "", len(source)))
    return tokens
