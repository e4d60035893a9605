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

from abc import ABC, abstractmethod
from collections import defaultdict
from functools import reduce
from itertools import product
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Iterable, Mapping

import numpy as np
from loguru import logger
from scipy.sparse import coo_matrix, csr_matrix, issparse, spmatrix

from qudirac.settings import get_settings
from qudirac.yaml import yaml

from .exceptions import IncompatibleOperandError, ZeroNormError
from .labels import OpLabel, StateLabel
from .types import Kind, LabelValue, Number, is_scalar

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ruamel.yaml.nodes import MappingNode


def _format_coeff(c: complex, eps: float = 1e-14) -> str:
    re, im = c.real, c.imag

    # 1) Purely real?
    if abs(im) < eps:
        re_int = np.round(re)
        if abs(re - re_int) < eps:
            return str(int(re_int))
        return str(re)

    # 2) Purely imaginary?
    if abs(re) < eps:
        im_int = np.round(im)
        if abs(im - im_int) < eps:
            return f"{int(im_int)}j"
        return f"{im}j"

    # 3) General complex
    return str(c)


def _kind_name(obj: object) -> str:
    return type(obj).__name__


###############################################################################
# Coefficient map
###############################################################################
class DiracObject(ABC):
    """
    Sparse mapping from basis labels to complex coefficients.

    This is the storage shared by :class:`Ket`, :class:`Bra` and :class:`OpSum`. Every algebraic operation
    returns a new object; the only mutating operations are item assignment, item deletion and
    :meth:`filternz`.
    """

    kind: ClassVar[Kind]
    yaml_tag: ClassVar[str]

    # Let NumPy scalars defer to our reflected operators instead of broadcasting over us
    __array_ufunc__ = None

    def __init__(self, elements: Mapping[Any, Number] | Iterable[tuple[Any, Number]] | None = None) -> None:
        self._elements: dict[Any, complex] = {}
        self._arity: Any = None
        if elements:
            items = elements.items() if isinstance(elements, Mapping) else elements
            for label, coeff in items:
                self._accumulate(self._key(label), coeff)

    # ------------- Label handling --------------

    @staticmethod
    @abstractmethod
    def _key(label: Any) -> Any: ...

    @staticmethod
    @abstractmethod
    def _key_arity(key: Any) -> Any: ...

    @abstractmethod
    def _term_str(self, key: Any) -> str: ...

    def _check_arity(self, key: Any) -> None:
        arity = self._key_arity(key)
        if self._arity is None or not self._elements:
            self._arity = arity
        elif arity != self._arity:
            raise IncompatibleOperandError(
                f"Label {key!s} has arity {arity} but this {type(self).__name__} has arity {self._arity}."
            )

    def _accumulate(self, key: Any, coeff: Number) -> None:
        if not is_scalar(coeff):
            raise IncompatibleOperandError(f"Coefficients must be scalars, got {coeff.__class__.__name__}.")
        self._check_arity(key)
        self._elements[key] = self._elements.get(key, 0j) + complex(coeff)

    @classmethod
    def _from_dict(cls, elements: dict[Any, complex], arity: Any = None) -> DiracObject:
        out = cls.__new__(cls)
        out._elements = elements
        out._arity = arity if elements else None
        return out

    def _new(self, elements: dict[Any, complex]) -> DiracObject:
        return self._from_dict(elements, self._arity)

    # ------------- Properties --------------

    @property
    def arity(self) -> Any:
        """Arity shared by every label, or ``None`` for an empty object."""
        return self._arity if self._elements else None

    @property
    def elements(self) -> dict[Any, complex]:
        """A copy of the label-coefficient mapping."""
        return dict(self._elements)

    def labels(self) -> list[Any]:
        return list(self._elements)

    def coeffs(self) -> list[complex]:
        return list(self._elements.values())

    def items(self) -> list[tuple[Any, complex]]:
        return list(self._elements.items())

    # ------------- Container protocol --------------

    def __getitem__(self, label: Any) -> complex:
        return self._elements.get(self._key(label), 0j)

    def __setitem__(self, label: Any, value: Number) -> None:
        if not is_scalar(value):
            raise IncompatibleOperandError(f"Coefficients must be scalars, got {value.__class__.__name__}.")
        key = self._key(label)
        self._check_arity(key)
        self._elements[key] = complex(value)

    def __delitem__(self, label: Any) -> None:
        del self._elements[self._key(label)]

    def __contains__(self, label: object) -> bool:
        try:
            return self._key(label) in self._elements
        except (TypeError, IncompatibleOperandError):
            return False

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[tuple[Any, complex]]:
        yield from self._elements.items()

    def __copy__(self) -> DiracObject:
        return self._new(dict(self._elements))

    def copy(self) -> DiracObject:
        return self.__copy__()

    # ------------- Mapping & filtering --------------

    def map(self, func: Callable[[Any, complex], tuple[Any, Number]]) -> DiracObject:
        """
        Apply ``func(label, coeff) -> (label, coeff)`` to every term.

        Terms mapped onto the same label are summed.

        Returns:
            DiracObject: A new object of the same kind.
        """
        out = type(self)()
        for key, coeff in self._elements.items():
            new_label, new_coeff = func(key, coeff)
            out._accumulate(out._key(new_label), new_coeff)
        return out

    def map_labels(self, func: Callable[[Any], Any]) -> DiracObject:
        return self.map(lambda label, coeff: (func(label), coeff))

    def map_coeffs(self, func: Callable[[complex], Number]) -> DiracObject:
        return self._new({key: complex(func(coeff)) for key, coeff in self._elements.items()})

    def filter(self, predicate: Callable[[Any, complex], bool]) -> DiracObject:
        """Keep the terms for which ``predicate(label, coeff)`` holds.

        Returns:
            DiracObject: A new object of the same kind.
        """
        return self._new({key: coeff for key, coeff in self._elements.items() if predicate(key, coeff)})

    def filternz(self, tol: float | None = None) -> DiracObject:
        """
        Remove, in place, every term whose coefficient magnitude is at most ``tol``.

        Args:
            tol (float, optional): Tolerance. Defaults to the ``zero_tolerance`` setting.

        Returns:
            DiracObject: ``self``, to allow chaining.
        """
        if tol is None:
            tol = get_settings().zero_tolerance
        for key in [key for key, coeff in self._elements.items() if abs(coeff) <= tol]:
            del self._elements[key]
        return self

    @abstractmethod
    def xsubspace(self, n: Number | Callable[[StateLabel], bool]) -> DiracObject: ...

    @staticmethod
    def _subspace_predicate(n: Number | Callable[[StateLabel], bool]) -> Callable[[StateLabel], bool]:
        if callable(n):
            return n
        return lambda label: sum(label) == n

    # ------------- Norms & comparison --------------

    def norm(self) -> float:
        """
        Returns:
            float: Euclidean norm of the coefficients (Frobenius norm for operators).
        """
        if not self._elements:
            return 0.0
        return float(np.linalg.norm(np.fromiter(self._elements.values(), dtype=complex)))

    def _nonzero(self) -> dict[Any, complex]:
        return {key: coeff for key, coeff in self._elements.items() if coeff != 0}

    def isclose(self, other: DiracObject, atol: float | None = None) -> bool:
        """
        Compare two objects coefficient by coefficient within an absolute tolerance.

        Returns:
            bool: Whether every coefficient differs by at most ``atol``.
        """
        if atol is None:
            atol = get_settings().isclose_atol
        if not isinstance(other, DiracObject) or other.kind is not self.kind:
            return False
        keys = set(self._elements) | set(other._elements)
        return all(abs(self._elements.get(k, 0j) - other._elements.get(k, 0j)) <= atol for k in keys)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DiracObject):
            return other.kind is self.kind and self._nonzero() == other._nonzero()
        if is_scalar(other) and other == 0:
            return not self._nonzero()
        return NotImplemented

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    __hash__ = None  # type: ignore[assignment]

    # ------------- Arithmetic --------------

    def _check_compatible(self, other: DiracObject, operation: str) -> None:
        if self._elements and other._elements and self._arity != other._arity:
            raise IncompatibleOperandError(
                f"Invalid {operation} between {type(self).__name__} of arity {self._arity} "
                f"and {type(other).__name__} of arity {other._arity}."
            )

    def __add__(self, other: DiracObject | Number) -> DiracObject:
        if isinstance(other, DiracObject) and other.kind is self.kind:
            self._check_compatible(other, "addition")
            elements = dict(self._elements)
            for key, coeff in other._elements.items():
                elements[key] = elements.get(key, 0j) + coeff
            return self._from_dict(elements, self._arity if self._elements else other._arity)
        if is_scalar(other) and other == 0:
            return self.copy()
        raise IncompatibleOperandError(f"Invalid addition between {type(self).__name__} and {_kind_name(other)}.")

    def __radd__(self, other: DiracObject | Number) -> DiracObject:
        return self.__add__(other)

    def __neg__(self) -> DiracObject:
        return self._scaled(-1)

    def __pos__(self) -> DiracObject:
        return self.copy()

    def __sub__(self, other: DiracObject | Number) -> DiracObject:
        if isinstance(other, DiracObject) and other.kind is self.kind:
            return self + (-other)
        if is_scalar(other) and other == 0:
            return self.copy()
        raise IncompatibleOperandError(f"Invalid subtraction between {type(self).__name__} and {_kind_name(other)}.")

    def __rsub__(self, other: DiracObject | Number) -> DiracObject:
        return (-self).__add__(other)

    def _scaled(self, factor: Number) -> DiracObject:
        factor = complex(factor)
        return self._new({key: coeff * factor for key, coeff in self._elements.items()})

    def __mul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        return multiply(self, other)

    def __rmul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        raise IncompatibleOperandError(
            f"Invalid multiplication between {_kind_name(other)} and {type(self).__name__}."
        )

    def __truediv__(self, other: Number) -> DiracObject:
        if not is_scalar(other):
            raise IncompatibleOperandError(f"Division by {_kind_name(other)} is not supported.")
        if other == 0:
            raise ZeroDivisionError("Cannot divide by zero.")
        return self._scaled(1 / complex(other))

    @abstractmethod
    def adjoint(self) -> DiracObject: ...

    def dag(self) -> DiracObject:
        """Alias of :meth:`adjoint`."""
        return self.adjoint()

    def conj(self) -> DiracObject:
        """Complex-conjugate every coefficient, leaving labels untouched."""
        return self.map_coeffs(np.conj)

    # ------------- String representation --------------

    def _header(self) -> str:
        return f"{type(self).__name__}(arity={self.arity}, nterms={len(self)})"

    def __repr__(self) -> str:
        return self._header()

    def __str__(self) -> str:
        max_terms = get_settings().display_max_terms
        lines = [self._header()]
        for idx, (key, coeff) in enumerate(self._elements.items()):
            if idx >= max_terms:
                lines.append("  ⁞")
                break
            lines.append(f"  {_format_coeff(coeff)} {self._term_str(key)}")
        return "\n".join(lines)

    # ------------- YAML --------------

    @abstractmethod
    def _key_to_yaml(self, key: Any) -> dict[str, list]: ...

    @classmethod
    @abstractmethod
    def _key_from_yaml(cls, data: dict[str, list]) -> Any: ...

    @classmethod
    def to_yaml(cls, representer, node: DiracObject) -> MappingNode:  # noqa: ANN001
        """
        Method to be called automatically during YAML serialization.

        Returns:
            MappingNode: The YAML mapping node holding the terms.
        """
        terms = [{**node._key_to_yaml(key), "coeff": coeff} for key, coeff in node._elements.items()]
        return representer.represent_mapping(cls.yaml_tag, {"terms": terms})

    @classmethod
    def from_yaml(cls, constructor, node: MappingNode) -> DiracObject:  # noqa: ANN001
        """
        Method to be called automatically during YAML deserialization.

        Returns:
            DiracObject: The object rebuilt from the YAML node.
        """
        mapping = constructor.construct_mapping(node, deep=True)
        return cls((cls._key_from_yaml(term), term["coeff"]) for term in mapping["terms"])


###############################################################################
# States
###############################################################################
class _StateVector(DiracObject):
    """Coefficient map keyed by :class:`StateLabel`, shared by kets and bras."""

    @staticmethod
    def _key(label: LabelValue) -> StateLabel:
        return StateLabel.of(label)

    @staticmethod
    def _key_arity(key: StateLabel) -> int:
        return key.arity

    def _key_to_yaml(self, key: StateLabel) -> dict[str, list]:
        return {"label": list(key)}

    @classmethod
    def _key_from_yaml(cls, data: dict[str, list]) -> StateLabel:
        return StateLabel(data["label"])

    def xsubspace(self, n: Number | Callable[[StateLabel], bool]) -> _StateVector:
        """
        Restrict to the labels whose entries sum to ``n`` (e.g. a fixed total excitation number).

        Args:
            n (Number | Callable[[StateLabel], bool]): Target sum, or a predicate over labels.

        Returns:
            _StateVector: A new object of the same kind.
        """
        predicate = self._subspace_predicate(n)
        return self.filter(lambda label, _: predicate(label))  # type: ignore[return-value]

    def normalize(self) -> _StateVector:
        """
        Scale to unit norm.

        Raises:
            ZeroNormError: If the norm is zero.

        Returns:
            _StateVector: The normalized state.
        """
        norm = self.norm()
        if norm == 0:
            raise ZeroNormError(f"Cannot normalize a zero-norm {type(self).__name__}")
        return self._scaled(1 / norm)  # type: ignore[return-value]

    def tensor(self, *others: _StateVector) -> _StateVector:
        """Tensor product with ``others``; every combination of labels is concatenated.

        Returns:
            _StateVector: The composite state.
        """
        return tensor(self, *others)  # type: ignore[return-value]

    def __pow__(self, n: int) -> _StateVector:
        if not isinstance(n, int) or n < 1:
            raise IncompatibleOperandError("Tensor powers require a positive integer exponent.")
        return tensor(*([self] * n))  # type: ignore[return-value]

    def ptrace(self, index: int) -> OpSum:
        """Partial trace of the density operator of this state over factor ``index``.

        Returns:
            OpSum: The reduced density operator.
        """
        return self.to_density().ptrace(index)

    @abstractmethod
    def to_density(self) -> OpSum: ...

    def to_vector(self, basis: Iterable[LabelValue]) -> np.ndarray:
        """
        Coefficients ordered along ``basis``.

        Raises:
            IncompatibleOperandError: If a label with a nonzero coefficient is missing from ``basis``.

        Returns:
            np.ndarray: 1-D complex array of length ``len(basis)``.
        """
        index = {StateLabel.of(label): i for i, label in enumerate(basis)}
        vector = np.zeros(len(index), dtype=complex)
        for label, coeff in self._elements.items():
            if coeff == 0:
                continue
            if label not in index:
                raise IncompatibleOperandError(f"Label {label!s} is not part of the basis.")
            vector[index[label]] = coeff
        return vector


@yaml.register_class
class Ket(_StateVector):
    """
    A state :math:`\\sum_i c_i |i⟩`, mapping :class:`StateLabel` to complex coefficients.

    Example:
        .. code-block:: python

            from qudirac.core import Ket

            k = Ket({1: 3 + 1j, 2: 1})
            k[3] = 2j
            b = k.adjoint()
    """

    kind: ClassVar[Kind] = Kind.KET
    yaml_tag: ClassVar[str] = "!Ket"

    def _term_str(self, key: StateLabel) -> str:
        return f"| {key} ⟩"

    def adjoint(self) -> Bra:
        """
        Returns:
            Bra: The dual bra, with conjugated coefficients and the same labels.
        """
        return Bra._from_dict({key: coeff.conjugate() for key, coeff in self._elements.items()}, self._arity)  # type: ignore[return-value]

    def to_density(self) -> OpSum:
        return self * self.adjoint()


@yaml.register_class
class Bra(_StateVector):
    """
    The dual of a :class:`Ket`: :math:`\\sum_i c_i ⟨i|`.

    The stored coefficient is the bra coefficient itself, i.e. for ``k.adjoint()`` it is the complex conjugate
    of the ket's.
    """

    kind: ClassVar[Kind] = Kind.BRA
    yaml_tag: ClassVar[str] = "!Bra"

    def _term_str(self, key: StateLabel) -> str:
        return f"⟨ {key} |"

    def adjoint(self) -> Ket:
        return Ket._from_dict({key: coeff.conjugate() for key, coeff in self._elements.items()}, self._arity)  # type: ignore[return-value]

    def to_density(self) -> OpSum:
        return self.adjoint() * self


def ket(*label: LabelValue) -> Ket:
    """Basis ket with unit coefficient, ``ket(1, 2) == |1,2⟩``.

    Returns:
        Ket: The basis ket.
    """
    return Ket({StateLabel(label): 1})


def bra(*label: LabelValue) -> Bra:
    """Basis bra with unit coefficient, ``bra(1, 2) == ⟨1,2|``.

    Returns:
        Bra: The basis bra.
    """
    return Bra({StateLabel(label): 1})


###############################################################################
# Operators
###############################################################################
@yaml.register_class
class OpSum(DiracObject):
    """
    An operator :math:`\\sum_{ij} c_{ij} |i⟩⟨j|`, mapping :class:`OpLabel` pairs to complex coefficients.

    Items are addressed by ``(ket_label, bra_label)``; scalars are promoted to one-factor labels, so
    ``op[2, 1]`` reads the coefficient of :math:`|2⟩⟨1|` and ``op[(3, 1), (1, 2)]`` the one of
    :math:`|3,1⟩⟨1,2|`.

    Example:
        .. code-block:: python

            from qudirac.core import OpSum, ket, bra

            op = ket(1) * bra(2) + 2j * ket(2) * bra(1)
            op[2, 1]  # 2j
    """

    kind: ClassVar[Kind] = Kind.OPSUM
    yaml_tag: ClassVar[str] = "!OpSum"

    @staticmethod
    def _key(label: Any) -> OpLabel:
        if isinstance(label, OpLabel):
            return label
        if isinstance(label, tuple) and len(label) == 2:  # noqa: PLR2004
            return OpLabel.of(*label)
        raise IncompatibleOperandError(f"Operator entries are addressed by (ket, bra) pairs, got {label!r}.")

    @staticmethod
    def _key_arity(key: OpLabel) -> tuple[int, int]:
        return key.ket.arity, key.bra.arity

    def _term_str(self, key: OpLabel) -> str:
        return str(key)

    def _key_to_yaml(self, key: OpLabel) -> dict[str, list]:
        return {"ket": list(key.ket), "bra": list(key.bra)}

    @classmethod
    def _key_from_yaml(cls, data: dict[str, list]) -> OpLabel:
        return OpLabel(StateLabel(data["ket"]), StateLabel(data["bra"]))

    def adjoint(self) -> OpSum:
        """
        Conjugate transpose: every coefficient is conjugated and every ``(ket, bra)`` label reversed.

        Returns:
            OpSum: The adjoint operator.
        """
        arity = None if self._arity is None else tuple(reversed(self._arity))
        return OpSum._from_dict(  # type: ignore[return-value]
            {key.reverse(): coeff.conjugate() for key, coeff in self._elements.items()}, arity
        )

    def trace(self) -> complex:
        return sum((coeff for key, coeff in self._elements.items() if key.ket == key.bra), 0j)

    def ptrace(self, index: int) -> OpSum:
        """
        Partial trace over tensor factor ``index``.

        A term contributes only when its ket and bra labels agree on that factor; the factor is then removed
        from both labels and coinciding reduced labels are summed.

        Args:
            index (int): Zero-based factor to trace out.

        Raises:
            IncompatibleOperandError: If ``index`` is out of range for the operator's labels.

        Returns:
            OpSum: The reduced operator.
        """
        out: dict[OpLabel, complex] = defaultdict(complex)
        for key, coeff in self._elements.items():
            key.ket.check_index(index)
            key.bra.check_index(index)
            if key.ket[index] == key.bra[index]:
                out[OpLabel(key.ket.without(index), key.bra.without(index))] += coeff
        arity = None if self._arity is None else (self._arity[0] - 1, self._arity[1] - 1)
        return OpSum._from_dict(dict(out), arity)  # type: ignore[return-value]

    def xsubspace(self, n: Number | Callable[[StateLabel], bool]) -> OpSum:
        """Keep the terms whose ket and bra labels both sum to ``n`` (or both satisfy the predicate ``n``).

        Returns:
            OpSum: The restricted operator.
        """
        predicate = self._subspace_predicate(n)
        return self.filter(lambda key, _: predicate(key.ket) and predicate(key.bra))  # type: ignore[return-value]

    def is_hermitian(self, tol: float | None = None) -> bool:
        return self.isclose(self.adjoint(), atol=tol)

    def tensor(self, *others: OpSum) -> OpSum:
        return tensor(self, *others)  # type: ignore[return-value]

    def __pow__(self, n: int) -> OpSum:
        if not isinstance(n, int) or n < 1:
            raise IncompatibleOperandError("Operator powers require a positive integer exponent.")
        return reduce(lambda a, b: a * b, [self] * (n - 1), self.copy())

    def to_matrix(self, basis: Iterable[LabelValue], bra_basis: Iterable[LabelValue] | None = None) -> csr_matrix:
        """
        Sparse matrix of the operator in the given (ordered) basis.

        Args:
            basis (Iterable): Ordered row labels.
            bra_basis (Iterable, optional): Ordered column labels. Defaults to ``basis``.

        Raises:
            IncompatibleOperandError: If a nonzero term's label is missing from the basis.

        Returns:
            csr_matrix: Matrix with entry ``[i, j]`` equal to the coefficient of :math:`|basis_i⟩⟨basis_j|`.
        """
        rows_basis = [StateLabel.of(label) for label in basis]
        cols_basis = rows_basis if bra_basis is None else [StateLabel.of(label) for label in bra_basis]
        row_index = {label: i for i, label in enumerate(rows_basis)}
        col_index = {label: j for j, label in enumerate(cols_basis)}

        rows, cols, data = [], [], []
        for key, coeff in self._elements.items():
            if coeff == 0:
                continue
            if key.ket not in row_index or key.bra not in col_index:
                raise IncompatibleOperandError(f"Term {key!s} is not part of the basis.")
            rows.append(row_index[key.ket])
            cols.append(col_index[key.bra])
            data.append(coeff)
        out = coo_matrix(
            (np.asarray(data, dtype=complex), (np.asarray(rows, dtype=int), np.asarray(cols, dtype=int))),
            shape=(len(rows_basis), len(cols_basis)),
        )
        out.sum_duplicates()
        return out.tocsr()

    @classmethod
    def from_matrix(
        cls,
        matrix: np.ndarray | spmatrix,
        basis: Iterable[LabelValue],
        bra_basis: Iterable[LabelValue] | None = None,
    ) -> OpSum:
        """
        Build an operator from a dense or sparse matrix expressed in the given basis.

        Raises:
            IncompatibleOperandError: If the matrix shape does not match the basis sizes.

        Returns:
            OpSum: The operator holding every nonzero matrix entry.
        """
        rows_basis = [StateLabel.of(label) for label in basis]
        cols_basis = rows_basis if bra_basis is None else [StateLabel.of(label) for label in bra_basis]
        data = (matrix if issparse(matrix) else csr_matrix(np.asarray(matrix))).tocoo()
        if data.shape != (len(rows_basis), len(cols_basis)):
            raise IncompatibleOperandError(
                f"Matrix of shape {data.shape} does not match a basis of size {(len(rows_basis), len(cols_basis))}."
            )
        logger.debug("Building OpSum from a {} matrix with {} stored entries", data.shape, data.nnz)
        return cls(
            (OpLabel(rows_basis[i], cols_basis[j]), value)
            for i, j, value in zip(data.row, data.col, data.data)
            if value != 0
        )


###############################################################################
# Operator functions
###############################################################################
class OpFunction:
    """
    An operator given by its action on basis labels, ``f(label) -> Ket``.

    Applying it to a ket distributes over the ket's terms: :math:`f \\sum_i c_i |i⟩ = \\sum_i c_i f(i)`.
    Use :meth:`represent` to materialize it as an :class:`OpSum` over a finite basis.

    Example:
        .. code-block:: python

            import numpy as np
            from qudirac.core import OpFunction, Ket

            lower = OpFunction(lambda label: np.sqrt(label[0]) * Ket({label[0] - 1: 1}), name="a")
            lower * Ket({3: 1})  # sqrt(3) |2⟩
    """

    kind: ClassVar[Kind] = Kind.OPFUNCTION
    __array_ufunc__ = None

    def __init__(self, func: Callable[[StateLabel], Ket | Number], name: str | None = None, arity: int | None = None) -> None:
        self._func = func
        self._name = name
        self._arity = arity

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def arity(self) -> int | None:
        """Label arity the function accepts, or ``None`` if unchecked."""
        return self._arity

    def image(self, label: LabelValue) -> Ket:
        """
        Image of one basis label.

        Raises:
            IncompatibleOperandError: If the label arity does not match, or the function does not return a ket.

        Returns:
            Ket: The image of :math:`|label⟩`.
        """
        label = StateLabel.of(label)
        if self._arity is not None and label.arity != self._arity:
            raise IncompatibleOperandError(
                f"Operator {self} acts on labels of arity {self._arity}, got {label!s} of arity {label.arity}."
            )
        result = self._func(label)
        if isinstance(result, Ket):
            return result
        if is_scalar(result) and result == 0:
            return Ket()
        raise IncompatibleOperandError(f"Operator {self} must map labels to kets, got {_kind_name(result)}.")

    def __call__(self, argument: Any) -> Ket:
        if isinstance(argument, DiracObject):
            return multiply(self, argument)
        return self.image(argument)

    def represent(self, basis: Iterable[LabelValue]) -> OpSum:
        """
        Materialize the operator over a finite basis: :math:`\\sum_{j} f(j) ⟨j|`.

        Returns:
            OpSum: The operator representation.
        """
        elements: dict[OpLabel, complex] = defaultdict(complex)
        count = 0
        for label in basis:
            column = StateLabel.of(label)
            count += 1
            for row, coeff in self.image(column):
                elements[OpLabel(row, column)] += coeff
        logger.debug("Represented operator {} over {} basis labels ({} terms)", self, count, len(elements))
        return OpSum(elements)

    def adjoint(self) -> OpFunction:
        raise IncompatibleOperandError(
            f"The adjoint of operator {self} needs a basis; call represent(...) first and take its adjoint."
        )

    def _scaled(self, factor: Number) -> OpFunction:
        return OpFunction(lambda label: factor * self.image(label), arity=self._arity)

    def __mul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        return multiply(self, other)

    def __rmul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        raise IncompatibleOperandError(f"Invalid multiplication between {_kind_name(other)} and {type(self).__name__}.")

    def __truediv__(self, other: Number) -> OpFunction:
        if not is_scalar(other):
            raise IncompatibleOperandError(f"Division by {_kind_name(other)} is not supported.")
        if other == 0:
            raise ZeroDivisionError("Cannot divide by zero.")
        return self._scaled(1 / complex(other))

    def __add__(self, other: OpFunction) -> OpFunction:
        if isinstance(other, OpFunction):
            return OpFunction(lambda label: self.image(label) + other.image(label), arity=self._arity or other._arity)
        raise IncompatibleOperandError(f"Invalid addition between OpFunction and {_kind_name(other)}.")

    def __sub__(self, other: OpFunction) -> OpFunction:
        if isinstance(other, OpFunction):
            return OpFunction(lambda label: self.image(label) - other.image(label), arity=self._arity or other._arity)
        raise IncompatibleOperandError(f"Invalid subtraction between OpFunction and {_kind_name(other)}.")

    def __neg__(self) -> OpFunction:
        return self._scaled(-1)

    def __pow__(self, n: int) -> OpFunction:
        if not isinstance(n, int) or n < 1:
            raise IncompatibleOperandError("Operator powers require a positive integer exponent.")
        first = OpFunction(self._func, name=self._name, arity=self._arity)
        return reduce(lambda a, b: a * b, [self] * (n - 1), first)

    def __repr__(self) -> str:
        return f"OpFunction({self._name})" if self._name else "OpFunction(<anonymous>)"

    def __str__(self) -> str:
        return self._name or "<anonymous>"


###############################################################################
# Tensor products
###############################################################################
def tensor(*objs: DiracObject) -> DiracObject:
    """
    Tensor product of kets, bras or operators of a single kind.

    Every combination of terms contributes once, with concatenated labels and multiplied coefficients.

    Raises:
        IncompatibleOperandError: If no object is given, kinds are mixed, or an operand is not a Ket, Bra or OpSum.

    Returns:
        DiracObject: The composite object.
    """
    if not objs:
        raise IncompatibleOperandError("tensor requires at least one Ket, Bra or OpSum.")
    first = objs[0]
    for obj in objs:
        if not isinstance(obj, DiracObject):
            raise IncompatibleOperandError(f"Cannot take the tensor product of {_kind_name(obj)}.")
        if obj.kind is not first.kind:
            raise IncompatibleOperandError(
                f"Cannot take the tensor product of {type(first).__name__} and {type(obj).__name__}."
            )

    cls = type(first)
    if any(not obj._elements for obj in objs):  # noqa: SLF001
        return cls()

    elements: dict[Any, complex] = defaultdict(complex)
    for combination in product(*(obj._elements.items() for obj in objs)):  # noqa: SLF001
        keys = [key for key, _ in combination]
        coeff = complex(1)
        for _, c in combination:
            coeff *= c
        elements[keys[0].concat(*keys[1:])] += coeff

    arities = [obj._arity for obj in objs]  # noqa: SLF001
    if first.kind is Kind.OPSUM:
        arity: Any = (sum(a[0] for a in arities), sum(a[1] for a in arities))
    else:
        arity = sum(arities)
    return cls._from_dict(dict(elements), arity)


###############################################################################
# Multiplication dispatch
###############################################################################
def _check_arities(left_arity: Any, right_arity: Any, left: Any, right: Any) -> None:
    if left_arity is not None and right_arity is not None and left_arity != right_arity:
        raise IncompatibleOperandError(
            f"Invalid multiplication between {type(left).__name__} and {type(right).__name__}: "
            f"label arities {left_arity} and {right_arity} do not match."
        )


def _bra_ket(b: Bra, k: Ket) -> complex:
    _check_arities(b.arity, k.arity, b, k)
    small, large = (b._elements, k._elements) if len(b) <= len(k) else (k._elements, b._elements)  # noqa: SLF001
    return sum((coeff * large[label] for label, coeff in small.items() if label in large), 0j)


def _ket_bra(k: Ket, b: Bra) -> OpSum:
    elements = {
        OpLabel(kl, bl): kc * bc
        for kl, kc in k._elements.items()  # noqa: SLF001
        for bl, bc in b._elements.items()  # noqa: SLF001
    }
    arity = (k.arity, b.arity) if elements else None
    return OpSum._from_dict(elements, arity)  # type: ignore[return-value]


def _opsum_ket(op: OpSum, k: Ket) -> Ket:
    _check_arities(None if op.arity is None else op.arity[1], k.arity, op, k)
    elements: dict[StateLabel, complex] = defaultdict(complex)
    for key, coeff in op._elements.items():  # noqa: SLF001
        if key.bra in k._elements:  # noqa: SLF001
            elements[key.ket] += coeff * k._elements[key.bra]  # noqa: SLF001
    return Ket._from_dict(dict(elements), None if op.arity is None else op.arity[0])  # type: ignore[return-value]


def _bra_opsum(b: Bra, op: OpSum) -> Bra:
    _check_arities(b.arity, None if op.arity is None else op.arity[0], b, op)
    elements: dict[StateLabel, complex] = defaultdict(complex)
    for key, coeff in op._elements.items():  # noqa: SLF001
        if key.ket in b._elements:  # noqa: SLF001
            elements[key.bra] += b._elements[key.ket] * coeff  # noqa: SLF001
    return Bra._from_dict(dict(elements), None if op.arity is None else op.arity[1])  # type: ignore[return-value]


def _opsum_opsum(left: OpSum, right: OpSum) -> OpSum:
    _check_arities(
        None if left.arity is None else left.arity[1], None if right.arity is None else right.arity[0], left, right
    )
    by_ket: dict[StateLabel, list[tuple[StateLabel, complex]]] = defaultdict(list)
    for key, coeff in right._elements.items():  # noqa: SLF001
        by_ket[key.ket].append((key.bra, coeff))

    elements: dict[OpLabel, complex] = defaultdict(complex)
    for key, coeff in left._elements.items():  # noqa: SLF001
        for bra_label, other_coeff in by_ket.get(key.bra, ()):
            elements[OpLabel(key.ket, bra_label)] += coeff * other_coeff
    arity = None
    if left.arity is not None and right.arity is not None:
        arity = (left.arity[0], right.arity[1])
    return OpSum._from_dict(dict(elements), arity)  # type: ignore[return-value]


def _opfunction_ket(f: OpFunction, k: Ket) -> Ket:
    elements: dict[StateLabel, complex] = defaultdict(complex)
    for label, coeff in k._elements.items():  # noqa: SLF001
        for image_label, image_coeff in f.image(label):
            elements[image_label] += coeff * image_coeff
    return Ket(elements)


def _opfunction_opsum(f: OpFunction, op: OpSum) -> OpSum:
    elements: dict[OpLabel, complex] = defaultdict(complex)
    for key, coeff in op._elements.items():  # noqa: SLF001
        for row, image_coeff in f.image(key.ket):
            elements[OpLabel(row, key.bra)] += coeff * image_coeff
    return OpSum(elements)


def _opsum_opfunction(op: OpSum, f: OpFunction) -> OpFunction:
    return OpFunction(lambda label: op * f.image(label), arity=f.arity)


def _opfunction_opfunction(f: OpFunction, g: OpFunction) -> OpFunction:
    name = f"{f.name}*{g.name}" if f.name and g.name else None
    return OpFunction(lambda label: f(g.image(label)), name=name, arity=g.arity)


_MULTIPLICATION_TABLE: dict[tuple[Kind, Kind], Callable[[Any, Any], Any]] = {
    (Kind.KET, Kind.KET): tensor,
    (Kind.KET, Kind.BRA): _ket_bra,
    (Kind.BRA, Kind.KET): _bra_ket,
    (Kind.BRA, Kind.BRA): tensor,
    (Kind.BRA, Kind.OPSUM): _bra_opsum,
    (Kind.OPSUM, Kind.KET): _opsum_ket,
    (Kind.OPSUM, Kind.OPSUM): _opsum_opsum,
    (Kind.OPSUM, Kind.OPFUNCTION): _opsum_opfunction,
    (Kind.OPFUNCTION, Kind.KET): _opfunction_ket,
    (Kind.OPFUNCTION, Kind.OPSUM): _opfunction_opsum,
    (Kind.OPFUNCTION, Kind.OPFUNCTION): _opfunction_opfunction,
}


def multiply(left: Any, right: Any) -> Any:
    """
    Multiply two Dirac objects, dispatching on the pair of their kinds.

    Kets times kets (and bras times bras) are tensor products, a bra times a ket is the inner product, a ket
    times a bra the outer product, and operators compose or apply as usual.

    Raises:
        IncompatibleOperandError: If the pair of kinds cannot be multiplied.

    Returns:
        Any: A complex number, Ket, Bra, OpSum or OpFunction depending on the operands.
    """
    left_kind = getattr(left, "kind", None)
    right_kind = getattr(right, "kind", None)
    handler = _MULTIPLICATION_TABLE.get((left_kind, right_kind))  # type: ignore[arg-type]
    if handler is None:
        raise IncompatibleOperandError(
            f"Invalid multiplication between {_kind_name(left)} and {_kind_name(right)}."
        )
    return handler(left, right)
