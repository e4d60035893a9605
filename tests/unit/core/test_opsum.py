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

import numpy as np
import pytest
from scipy.sparse import csr_matrix

from qudirac.core.dirac import Bra, Ket, OpSum, bra, ket
from qudirac.core.exceptions import IncompatibleOperandError
from qudirac.core.labels import OpLabel, StateLabel
from qudirac.core.types import Kind


@pytest.fixture
def op():
    # |k⟩⟨b| with k = |1⟩ + 2|2⟩ + 3|3⟩
    k = Ket({1: 1, 2: 2, 3: 3})
    b = Bra({1: 4 - 2j, 2: 1j, 3: 5})
    return k * b


@pytest.fixture
def x():
    return ket(0) * bra(1) + ket(1) * bra(0)


@pytest.fixture
def z():
    return ket(0) * bra(0) - ket(1) * bra(1)


def test_outer_product_entries(op):
    assert op.kind is Kind.OPSUM
    assert op.arity == (1, 1)
    assert len(op) == 9
    assert op[2, 1] == 8 - 4j
    assert op[3, 3] == 15
    assert op[7, 7] == 0


def test_keys_accept_oplabels_and_pairs(op):
    assert op[OpLabel.of(2, 1)] == op[2, 1]
    assert op[(2,), (1,)] == op[2, 1]
    assert OpLabel.of(1, 1) in op


def test_invalid_keys(op):
    with pytest.raises(IncompatibleOperandError, match=r"\(ket, bra\) pairs"):
        op[1]  # noqa: B018
    assert 1 not in op


def test_setitem(op):
    op_copy = op.copy()
    op_copy[3, 0] = 32 + 1j
    assert op_copy[3, 0] == 32 + 1j
    assert op[3, 0] == 0
    with pytest.raises(IncompatibleOperandError, match=r"arity"):
        op_copy[(1, 2), 1] = 1


def test_tensor_of_operators(op):
    op_copy = op.copy()
    op_copy[3, 0] = 32 + 1j
    assert op_copy.tensor(op_copy.adjoint())[(3, 1), (1, 2)] == 120


def test_adjoint_reverses_labels(op):
    adjoint = op.adjoint()
    assert adjoint[1, 2] == (8 - 4j).conjugate()
    assert adjoint.adjoint() == op
    assert len(adjoint.filter(lambda label, _: label.ket == StateLabel((3,)))) == 3


def test_adjoint_of_products_reverses_order(op):
    assert op.adjoint() * op.adjoint() == (op * op).adjoint()


def test_adjoint_of_rectangular_operator():
    rect = ket(1, 2) * bra(3)
    assert rect.arity == ((2, 1))
    assert rect.adjoint().arity == (1, 2)
    assert rect.adjoint() == ket(3) * bra(1, 2)


def test_linear_combinations(op):
    assert op + op == 2 * op
    assert op - op == 0 * op
    assert op - op + op == op


def test_trace(z, x):
    assert z.trace() == 0
    assert (ket(0) * bra(0) + 2 * ket(1) * bra(1)).trace() == 3
    assert x.trace() == 0


def test_ptrace_bell_state():
    bell = (ket(0, 0) + ket(1, 1)) / np.sqrt(2)
    density = bell * bell.adjoint()
    assert density.ptrace(0) == density.ptrace(1)
    assert density.ptrace(0).isclose(0.5 * (ket(0) * bra(0) + ket(1) * bra(1)))


def test_ptrace_out_of_range():
    with pytest.raises(IncompatibleOperandError, match=r"out of range"):
        (ket(0, 0) * bra(0, 0)).ptrace(2)


def test_xsubspace_and_filternz(op):
    big = op.tensor(op, op)
    reduced = big.xsubspace(3).filternz()
    assert reduced == (16 - 88j) * ket(1, 1, 1) * bra(1, 1, 1)


def test_is_hermitian(x, op):
    assert x.is_hermitian()
    assert (1j * x).is_hermitian() is False
    assert not op.is_hermitian()


def test_composition(x, z):
    assert x * x == ket(0) * bra(0) + ket(1) * bra(1)
    assert x**2 == x * x
    assert x * z == -1 * ket(0) * bra(1) + ket(1) * bra(0)
    with pytest.raises(IncompatibleOperandError, match=r"positive integer"):
        x**0


def test_first_power_is_a_new_operator(op):
    power = op**1
    assert power == op
    assert power is not op
    power[2, 2] = 5
    assert op[2, 2] == 0


def test_composition_arity_mismatch(x):
    with pytest.raises(IncompatibleOperandError, match=r"arities"):
        x * (ket(0, 0) * bra(0, 0))


def test_operator_on_states(x):
    assert x * ket(0) == ket(1)
    assert bra(0) * x == bra(1)
    assert x * Ket() == Ket()


@pytest.mark.parametrize(
    ("left", "right"),
    [
        (ket(0) * bra(0), bra(0)),
        (ket(0), ket(0) * bra(0)),
    ],
)
def test_unsupported_products(left, right):
    with pytest.raises(IncompatibleOperandError, match=r"Invalid multiplication"):
        left * right


def test_to_matrix(x):
    matrix = (x + 2j * ket(1) * bra(1)).to_matrix([0, 1])
    assert isinstance(matrix, csr_matrix)
    np.testing.assert_array_equal(matrix.toarray(), np.array([[0, 1], [1, 2j]]))


def test_to_matrix_rectangular():
    matrix = (ket(0) * bra("a")).to_matrix([0, 1], bra_basis=["a"])
    assert matrix.shape == (2, 1)
    assert matrix[0, 0] == 1


def test_to_matrix_empty_operator():
    assert OpSum().to_matrix([0, 1]).nnz == 0


def test_to_matrix_missing_label(x):
    with pytest.raises(IncompatibleOperandError, match=r"not part of the basis"):
        x.to_matrix([0])


def test_to_matrix_skips_zero_terms_outside_the_basis():
    op = OpSum({((-1,), (0,)): 0, ((0,), (1,)): 1})
    matrix = op.to_matrix([0, 1])
    np.testing.assert_array_equal(matrix.toarray(), np.array([[0, 1], [0, 0]]))


def test_from_matrix(x):
    assert OpSum.from_matrix(np.array([[0, 1], [1, 0]]), [0, 1]) == x
    assert OpSum.from_matrix(csr_matrix(np.array([[0, 1], [1, 0]])), [0, 1]) == x


def test_from_matrix_shape_mismatch():
    with pytest.raises(IncompatibleOperandError, match=r"does not match"):
        OpSum.from_matrix(np.eye(3), [0, 1])


def test_str():
    assert str(2 * ket(1) * bra(2)) == "OpSum(arity=(1, 1), nterms=1)\n  2 | 1 ⟩⟨ 2 |"
