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
"""Operators defined by their action on basis labels, written in Dirac notation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable

from loguru import logger

from qudirac.core.dirac import Ket, OpFunction, OpSum
from qudirac.core.exceptions import RedefinitionError

from .context import EvaluationContext
from .evaluator import Evaluator
from .parser import parse_definition

if TYPE_CHECKING:
    from qudirac.core.labels import StateLabel
    from qudirac.core.types import LabelValue

    from .ast import OpDefinition


def _scope(context: EvaluationContext | None, bindings: dict[str, Any]) -> EvaluationContext:
    owner = context if context is not None else EvaluationContext()
    return owner.child(**bindings) if bindings else owner


def _build(definition: OpDefinition, scope: EvaluationContext) -> OpFunction:
    def image(label: StateLabel) -> Ket:
        local = scope.child(**dict(zip(definition.variables, label)))
        return Evaluator(local).evaluate(definition.body)

    return OpFunction(image, name=definition.name, arity=len(definition.variables))


def def_op(definition: str, context: EvaluationContext | None = None, **bindings: Any) -> OpFunction:
    """
    Define an operator by its action on a basis ket, ``name | v1, ..., vn > = rhs``.

    The right-hand side is evaluated each time the operator is applied, with ``v1..vn`` bound to the entries of
    the label it acts on; it may refer to ``name`` itself.

    Args:
        definition (str): The definition, e.g. ``"a | n > = sqrt(n) * |n-1>"``.
        context (EvaluationContext, optional): Where the operator is bound under ``name``. When omitted the operator
            is only visible to its own right-hand side.
        **bindings: Extra names visible to the right-hand side.

    Raises:
        ParseError: If ``definition`` is malformed.

    Returns:
        OpFunction: The operator, acting on labels of arity ``n``.
    """
    parsed = parse_definition(definition)
    scope = _scope(context, bindings)
    op = _build(parsed, scope)
    (context if context is not None else scope).bind(parsed.name, op)
    logger.debug("Defined operator '{}' on labels ({})", parsed.name, ", ".join(parsed.variables))
    return op


def repr_op(
    definition: str, basis: Iterable[LabelValue], context: EvaluationContext | None = None, **bindings: Any
) -> OpSum:
    """
    Define an operator like :func:`def_op` and represent it over ``basis``: :math:`\\sum_j f(j) ⟨j|`.

    Example:
        .. code-block:: python

            from qudirac import repr_op

            a = repr_op("a | n > = sqrt(n) * |n-1>", range(1, 11))
            a[2, 3]  # sqrt(3)

    Raises:
        ParseError: If ``definition`` is malformed.
        RedefinitionError: If the right-hand side refers to the operator being defined.

    Returns:
        OpSum: The represented operator, also bound under ``name`` in ``context`` when one is given.
    """
    parsed = parse_definition(definition)
    if parsed.name in parsed.body.names():
        raise RedefinitionError(
            f"'{parsed.name}' cannot be represented in terms of itself; use def_op for recursive definitions."
        )
    scope = _scope(context, bindings)
    op = _build(parsed, scope).represent(basis)
    if context is not None:
        context.bind(parsed.name, op)
    logger.debug("Represented operator '{}' with {} terms", parsed.name, len(op))
    return op
