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

from typing import Iterable, NamedTuple

import numpy as np

from .exceptions import IncompatibleOperandError
from .types import LabelValue


def _plain(value: LabelValue) -> LabelValue:
    # NumPy scalars hash like Python scalars but print and serialize differently
    if isinstance(value, np.generic):
        return value.item()
    return value


class StateLabel(tuple):
    """
    Immutable label of one basis state, one entry per tensor factor.

    ``StateLabel((1, 2, 3))`` identifies :math:`|1⟩ ⊗ |2⟩ ⊗ |3⟩`. Two labels are equal iff all their
    entries are equal, and hashing follows tuple hashing.

    Example:
        .. code-block:: python

            from qudirac.core import StateLabel

            label = StateLabel.of(1).concat(StateLabel.of("up"))  # StateLabel((1, 'up'))
    """

    __slots__ = ()

    def __new__(cls, values: Iterable[LabelValue] = ()) -> StateLabel:
        return super().__new__(cls, (_plain(v) for v in values))

    @classmethod
    def of(cls, value: LabelValue | Iterable[LabelValue]) -> StateLabel:
        """
        Promote ``value`` to a label: labels are returned as-is, tuples and lists are unpacked, and any
        other value becomes a one-factor label.

        Returns:
            StateLabel: The promoted label.
        """
        if isinstance(value, StateLabel):
            return value
        if isinstance(value, (tuple, list)):
            return cls(value)
        return cls((value,))

    @property
    def arity(self) -> int:
        """Number of tensor factors the label spans."""
        return len(self)

    def concat(self, *others: StateLabel) -> StateLabel:
        """
        Concatenate labels of separate factor spaces.

        Returns:
            StateLabel: The composite label, of arity equal to the sum of the arities.
        """
        values = list(self)
        for other in others:
            values.extend(other)
        return StateLabel(values)

    def without(self, index: int) -> StateLabel:
        """
        Drop the entry of one tensor factor.

        Args:
            index (int): Zero-based factor index.

        Raises:
            IncompatibleOperandError: If ``index`` is outside the label.

        Returns:
            StateLabel: The reduced label.
        """
        self.check_index(index)
        return StateLabel(self[:index] + self[index + 1 :])

    def replace(self, index: int, values: Iterable[LabelValue]) -> StateLabel:
        """Replace the entry of factor ``index`` by ``values`` (possibly several entries, or none).

        Returns:
            StateLabel: The new label.
        """
        self.check_index(index)
        return StateLabel(self[:index] + tuple(values) + self[index + 1 :])

    def reverse(self) -> StateLabel:
        return StateLabel(reversed(self))

    def check_index(self, index: int) -> None:
        if not 0 <= index < len(self):
            raise IncompatibleOperandError(f"Factor index {index} is out of range for a label of arity {len(self)}.")

    def __add__(self, other: tuple) -> StateLabel:  # type: ignore[override]
        return self.concat(StateLabel.of(other))

    def __getitem__(self, item):  # type: ignore[override]  # noqa: ANN001, ANN204
        result = super().__getitem__(item)
        return StateLabel(result) if isinstance(item, slice) else result

    def __repr__(self) -> str:
        return f"StateLabel({tuple(self)!r})"

    def __str__(self) -> str:
        return ",".join(repr(v) if isinstance(v, str) else str(v) for v in self)


class OpLabel(NamedTuple):
    """Label of one outer-product term :math:`|ket⟩⟨bra|` of an operator."""

    ket: StateLabel
    bra: StateLabel

    @classmethod
    def of(cls, ket: LabelValue, bra: LabelValue) -> OpLabel:
        return cls(StateLabel.of(ket), StateLabel.of(bra))

    def reverse(self) -> OpLabel:
        """Swap ket and bra labels, as conjugate transposition does."""
        return OpLabel(self.bra, self.ket)

    def concat(self, *others: OpLabel) -> OpLabel:
        return OpLabel(
            self.ket.concat(*(o.ket for o in others)),
            self.bra.concat(*(o.bra for o in others)),
        )

    def __str__(self) -> str:
        return f"| {self.ket} ⟩⟨ {self.bra} |"


def klabel(label: OpLabel) -> StateLabel:
    return label.ket


def blabel(label: OpLabel) -> StateLabel:
    return label.bra
