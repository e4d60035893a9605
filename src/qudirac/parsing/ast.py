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
"""Immutable expression trees produced by the Dirac-notation parser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from qudirac.core.types import Number

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class Node:
    def children(self) -> tuple[Node, ...]:
        return ()

    def walk(self) -> Iterator[Node]:
        """Yield this node and all its descendants, depth first."""
        yield self
        for child in self.children():
            yield from child.walk()

    def names(self) -> set[str]:
        """Identifiers referenced anywhere in the tree, including called functions."""
        found: set[str] = set()
        for node in self.walk():
            if isinstance(node, Name):
                found.add(node.id)
            elif isinstance(node, Call):
                found.add(node.func)
        return found


@dataclass(frozen=True)
class NumberLiteral(Node):
    value: Number


@dataclass(frozen=True)
class SymbolLiteral(Node):
    value: str


@dataclass(frozen=True)
class Name(Node):
    id: str


@dataclass(frozen=True)
class UnaryOp(Node):
    op: str
    operand: Node

    def children(self) -> tuple[Node, ...]:
        return (self.operand,)


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def children(self) -> tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Compare(Node):
    left: Node
    right: Node

    def children(self) -> tuple[Node, ...]:
        return (self.left, self.right)


@dataclass(frozen=True)
class Adjoint(Node):
    operand: Node

    def children(self) -> tuple[Node, ...]:
        return (self.operand,)


@dataclass(frozen=True)
class Call(Node):
    func: str
    args: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return self.args


@dataclass(frozen=True)
class KetLiteral(Node):
    labels: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return self.labels


@dataclass(frozen=True)
class BraLiteral(Node):
    labels: tuple[Node, ...]

    def children(self) -> tuple[Node, ...]:
        return self.labels


@dataclass(frozen=True)
class OpDefinition(Node):
    """``name | v1, v2, ... > = body``"""

    name: str
    variables: tuple[str, ...]
    body: Node

    def children(self) -> tuple[Node, ...]:
        return (self.body,)
