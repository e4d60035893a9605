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
"""Free-function forms of the Dirac algebra, as used from Python code and from Dirac-notation strings."""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

import numpy as np

from .dirac import Bra, DiracObject, Ket, OpFunction, OpSum, _StateVector, tensor
from .exceptions import IncompatibleOperandError, ZeroNormError
from .labels import OpLabel, StateLabel
from .types import Number, is_scalar

__all__ = [
    "act_on",
    "adjoint",
    "commutator",
    "conj",
    "expect",
    "filternz",
    "inner",
    "mapcoeffs",
    "maplabels",
    "norm",
    "normalize",
    "ptrace",
    "reverse",
    "tensor",
    "trace",
    "xsubspace",
]


def adjoint(obj: Any) -> Any:
    """Conjugate transpose of a Dirac object; plain scalars are complex-conjugated.

    Returns:
        Any: The adjoint.
    """
    if is_scalar(obj):
        return complex(obj).conjugate()
    if isinstance(obj, (DiracObject, OpFunction)):
        return obj.adjoint()
    raise IncompatibleOperandError(f"Cannot take the adjoint of {obj.__class__.__name__}.")


def conj(obj: Any) -> Any:
    """Complex conjugate of a scalar, or of every coefficient of a Dirac object (labels untouched)."""
    if isinstance(obj, DiracObject):
        return obj.conj()
    return np.conj(obj)


def reverse(label: StateLabel | OpLabel) -> StateLabel | OpLabel:
    """Reverse a label: factor order for a :class:`StateLabel`, ket and bra for an :class:`OpLabel`."""
    return label.reverse()


def inner(left: Bra | Ket, right: Ket) -> complex:
    """
    Inner product :math:`⟨left|right⟩`. A ket given on the left is turned into its bra first.

    Returns:
        complex: The inner product.
    """
    if isinstance(left, Ket):
        left = left.adjoint()
    if not isinstance(left, Bra) or not isinstance(right, Ket):
        raise IncompatibleOperandError(
            f"inner expects a bra (or ket) and a ket, got {left.__class__.__name__} and {right.__class__.__name__}."
        )
    return left * right


def norm(obj: DiracObject) -> float:
    if not isinstance(obj, DiracObject):
        raise IncompatibleOperandError(f"Cannot take the norm of {obj.__class__.__name__}.")
    return obj.norm()


def normalize(obj: Ket | Bra) -> Ket | Bra:
    """
    Scale a ket or bra to unit norm.

    Raises:
        IncompatibleOperandError: If ``obj`` is not a ket or a bra.
        ZeroNormError: If ``obj`` has zero norm.

    Returns:
        Ket | Bra: The normalized object.
    """
    if not isinstance(obj, _StateVector):
        raise IncompatibleOperandError(f"Only kets and bras can be normalized, got {obj.__class__.__name__}.")
    return obj.normalize()


def trace(op: OpSum) -> complex:
    if not isinstance(op, OpSum):
        raise IncompatibleOperandError(f"trace expects an OpSum, got {op.__class__.__name__}.")
    return op.trace()


def ptrace(obj: OpSum | Ket | Bra, index: int) -> OpSum:
    """
    Partial trace over the zero-based tensor factor ``index``.

    Kets and bras are replaced by their density operator before tracing.

    Returns:
        OpSum: The reduced operator.
    """
    if not isinstance(obj, (OpSum, _StateVector)):
        raise IncompatibleOperandError(f"ptrace expects an OpSum, Ket or Bra, got {obj.__class__.__name__}.")
    return obj.ptrace(index)


def xsubspace(obj: DiracObject, n: Number | Callable[[StateLabel], bool]) -> DiracObject:
    if not isinstance(obj, DiracObject):
        raise IncompatibleOperandError(f"xsubspace expects a Ket, Bra or OpSum, got {obj.__class__.__name__}.")
    return obj.xsubspace(n)


def maplabels(func: Callable[[Any], Any], obj: DiracObject) -> DiracObject:
    return obj.map_labels(func)


def mapcoeffs(func: Callable[[complex], Number], obj: DiracObject) -> DiracObject:
    return obj.map_coeffs(func)


def filternz(obj: DiracObject, tol: float | None = None) -> DiracObject:
    """In-place removal of (near-)zero terms; returns ``obj``.

    Returns:
        DiracObject: ``obj`` itself.
    """
    return obj.filternz(tol)


def commutator(a: OpSum | OpFunction, b: OpSum | OpFunction) -> OpSum | OpFunction:
    """compute the commutator ``a*b - b*a``.

    Returns:
        OpSum | OpFunction: the commutator.
    """
    return a * b - b * a


def expect(op: OpSum | OpFunction, state: Ket) -> complex:
    """
    Expectation value :math:`⟨ψ|op|ψ⟩ / ⟨ψ|ψ⟩`.

    Raises:
        ZeroNormError: If ``state`` has zero norm.

    Returns:
        complex: The expectation value; real for Hermitian operators.
    """
    if not isinstance(state, Ket):
        raise IncompatibleOperandError(f"expect needs a Ket state, got {state.__class__.__name__}.")
    bra_state = state.adjoint()
    weight = bra_state * state
    if weight == 0:
        raise ZeroNormError("Cannot take an expectation value in a zero-norm state")
    return (bra_state * (op * state)) / weight


def _factor_window(target: _StateVector, index: int, width: int) -> None:
    arity = target.arity
    if arity is not None and not (0 <= index and index + width <= arity):
        raise IncompatibleOperandError(
            f"Cannot act on factors {index}..{index + width - 1} of a {type(target).__name__} of arity {arity}."
        )


def act_on(op: Ket | Bra | OpSum, target: Ket | Bra, index: int) -> Ket | Bra:
    """
    Apply ``op`` to the tensor factor(s) of ``target`` starting at the zero-based ``index``.

    Supported combinations:

    - Bra on Ket: contracts the factor(s) away, :math:`⟨b|_i |k⟩`.
    - OpSum on Ket: replaces the factor(s) by the operator image.
    - Ket on Bra: mirror of Bra on Ket.
    - OpSum on Bra: bra times operator on the factor(s).

    Example:
        .. code-block:: python

            act_on(bra(1), ket("a", 1, "c"), 1)  # |'a','c'⟩

    Raises:
        IncompatibleOperandError: For any other combination, or factors outside the target.

    Returns:
        Ket | Bra: The result, of the same kind as ``target``.
    """
    if isinstance(op, OpSum) and isinstance(target, _StateVector):
        if op.arity is None or target.arity is None:
            return type(target)()
        ket_width, bra_width = op.arity
        contracted, produced = (bra_width, "ket") if isinstance(target, Ket) else (ket_width, "bra")
        _factor_window(target, index, contracted)

        by_label: dict[StateLabel, list[tuple[StateLabel, complex]]] = defaultdict(list)
        for key, coeff in op:
            matched, image = (key.bra, key.ket) if produced == "ket" else (key.ket, key.bra)
            by_label[matched].append((image, coeff))

        elements: dict[StateLabel, complex] = defaultdict(complex)
        for label, coeff in target:
            window = label[index : index + contracted]
            for image, op_coeff in by_label.get(window, ()):
                new_label = label[:index].concat(image, label[index + contracted :])
                elements[new_label] += coeff * op_coeff
        return type(target)(elements)

    pairs = {(Bra, Ket), (Ket, Bra)}
    if (type(op), type(target)) in pairs:
        if op.arity is None or target.arity is None:
            return type(target)()
        width = op.arity
        _factor_window(target, index, width)
        elements = defaultdict(complex)
        for label, coeff in target:
            window = label[index : index + width]
            if window in op:
                elements[label[:index].concat(label[index + width :])] += op[window] * coeff
        return type(target)(elements)

    raise IncompatibleOperandError(
        f"act_on is not defined for {op.__class__.__name__} acting on {target.__class__.__name__}."
    )
