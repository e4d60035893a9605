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

import operator
from typing import Any, Callable, cast

from qudirac.core.dirac import DiracObject, OpFunction, bra, ket
from qudirac.core.exceptions import IncompatibleOperandError, QuDiracError
from qudirac.core.functions import adjoint
from qudirac.core.types import is_scalar

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
    SymbolLiteral,
    UnaryOp,
)
from .context import EvaluationContext
from .parser import parse

_BINARY_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "^": operator.pow,
    "**": operator.pow,
}

_UNARY_OPERATORS: dict[str, Callable[[Any], Any]] = {
    "-": operator.neg,
    "+": operator.pos,
}


def _describe(value: object) -> str:
    return type(value).__name__


class Evaluator:
    """
    Tree-walking interpreter turning parsed Dirac notation into algebra objects.

    Identifiers and calls resolve through the given :class:`EvaluationContext`; every other node maps onto the
    operators of :mod:`qudirac.core`.
    """

    def __init__(self, context: EvaluationContext) -> None:
        self.context = context
        self._handlers: dict[type[Node], Callable[[Node], Any]] = {
            NumberLiteral: lambda n: cast("NumberLiteral", n).value,
            SymbolLiteral: lambda n: cast("SymbolLiteral", n).value,
            Name: lambda n: self.context.lookup(cast("Name", n).id),
            UnaryOp: lambda n: self._unary(cast("UnaryOp", n)),
            BinaryOp: lambda n: self._binary(cast("BinaryOp", n)),
            Compare: lambda n: self._compare(cast("Compare", n)),
            Adjoint: lambda n: adjoint(self.evaluate(cast("Adjoint", n).operand)),
            Call: lambda n: self._call(cast("Call", n)),
            KetLiteral: lambda n: ket(*self._labels(cast("KetLiteral", n).labels)),
            BraLiteral: lambda n: bra(*self._labels(cast("BraLiteral", n).labels)),
        }

    def evaluate(self, node: Node) -> Any:
        try:
            handler = self._handlers[type(node)]
        except KeyError as exc:
            raise NotImplementedError(f"{type(self).__qualname__} cannot evaluate {type(node).__qualname__}") from exc
        return handler(node)

    def _unary(self, node: UnaryOp) -> Any:
        operand = self.evaluate(node.operand)
        if isinstance(operand, str):
            raise IncompatibleOperandError(f"Symbol '{operand}' can only be used as a label.")
        return _UNARY_OPERATORS[node.op](operand)

    def _binary(self, node: BinaryOp) -> Any:
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        for value in (left, right):
            if isinstance(value, str):
                raise IncompatibleOperandError(f"Symbol '{value}' can only be used as a label.")
        try:
            return _BINARY_OPERATORS[node.op](left, right)
        except IncompatibleOperandError:
            raise
        except TypeError as exc:
            # Python-level failures, e.g. a scalar divided by a ket
            raise IncompatibleOperandError(
                f"Invalid operands for '{node.op}': {_describe(left)} and {_describe(right)}."
            ) from exc

    def _compare(self, node: Compare) -> bool:
        left = self.evaluate(node.left)
        right = self.evaluate(node.right)
        return bool(left == right)

    def _call(self, node: Call) -> Any:
        func = self.context.lookup(node.func)
        if not callable(func):
            raise IncompatibleOperandError(f"'{node.func}' is bound to a {_describe(func)}, which is not callable.")
        args = [self.evaluate(arg) for arg in node.args]
        try:
            return func(*args)
        except QuDiracError:
            raise
        except (TypeError, ValueError) as exc:
            # e.g. numpy functions or arity mismatches on Dirac objects
            described = ", ".join(_describe(arg) for arg in args)
            raise IncompatibleOperandError(f"Invalid arguments for '{node.func}': ({described}). {exc}") from exc

    def _labels(self, nodes: tuple[Node, ...]) -> list[Any]:
        values = [self.evaluate(label) for label in nodes]
        for value in values:
            if isinstance(value, (DiracObject, OpFunction)) or not (is_scalar(value) or isinstance(value, str)):
                raise IncompatibleOperandError(f"Label entries must be numbers or symbols, got {_describe(value)}.")
        return values


def d(source: str, context: EvaluationContext | None = None, **bindings: Any) -> Any:
    """
    Evaluate a string written in Dirac notation.

    Args:
        source (str): The expression, e.g. ``"(3+im)|1> + 2<2|'"``.
        context (EvaluationContext, optional): Names visible to the expression. Defaults to a fresh context
            holding only the builtins.
        **bindings: Extra names visible only to this evaluation.

    Raises:
        ParseError: If ``source`` is malformed.
        UnknownIdentifierError: If ``source`` uses an unbound name.
        IncompatibleOperandError: If an operation is applied to mismatched operands.

    Returns:
        Any: A Ket, Bra, OpSum, OpFunction, scalar, or ``bool`` for comparisons.

    Example:
        .. code-block:: python

            from qudirac import d

            k = d("(3+im)*(1+3im)| 1 >")
            d("k' == (3-im)*(1-3im)< 1 |", k=k)  # True
    """
    if context is None:
        context = EvaluationContext()
    if bindings:
        context = context.child(**bindings)
    return Evaluator(context).evaluate(parse(source))
