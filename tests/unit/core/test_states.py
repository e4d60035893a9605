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

from copy import copy
from types import SimpleNamespace

import numpy as np
import pytest

from qudirac.core import dirac
from qudirac.core.dirac import Bra, Ket, OpSum, bra, ket
from qudirac.core.exceptions import IncompatibleOperandError, ZeroNormError
from qudirac.core.labels import StateLabel
from qudirac.core.types import Kind


@pytest.fixture
def k():
    return Ket({1: 3 + 1j, 2: 1})


# --- Construction & indexing ---


def test_construction_from_mapping_and_pairs():
    assert Ket({1: 1, 2: 2}) == Ket([(1, 1), (2, 2)])
    assert Ket([(1, 1), (1, 2)])[1] == 3


def test_kind_and_arity(k):
    assert k.kind is Kind.KET
    assert k.adjoint().kind is Kind.BRA
    assert k.arity == 1
    assert Ket({(1, "a"): 1}).arity == 2
    assert Ket().arity is None


def test_mixed_arity_construction():
    with pytest.raises(IncompatibleOperandError, match=r"arity"):
        Ket({1: 1, (1, 2): 1})


def test_non_scalar_coefficient():
    with pytest.raises(IncompatibleOperandError, match=r"Coefficients must be scalars"):
        Ket({1: "a"})


def test_getitem(k):
    assert k[1] == 3 + 1j
    assert k[5] == 0
    assert Ket({(1, 2): 4})[1, 2] == 4


def test_setitem_read_after_write(k):
    k[3] = 2j
    assert k[3] == 2j
    k[1] = 0.5
    assert k[1] == 0.5
    assert len(k) == 3


def test_setitem_wrong_arity(k):
    with pytest.raises(IncompatibleOperandError, match=r"arity"):
        k[1, 2] = 1


def test_setitem_non_scalar(k):
    with pytest.raises(IncompatibleOperandError):
        k[3] = ket(1)


def test_delitem(k):
    del k[1]
    assert 1 not in k
    assert len(k) == 1


def test_container_protocol(k):
    assert 1 in k
    assert 7 not in k
    assert (1, 2) not in k
    assert len(k) == 2
    assert dict(iter(k)) == {StateLabel((1,)): 3 + 1j, StateLabel((2,)): 1}
    assert k.labels() == [StateLabel((1,)), StateLabel((2,))]
    assert k.coeffs() == [3 + 1j, 1]
    assert k.items() == list(k)


def test_copy_is_independent(k):
    clone = k.copy()
    clone[1] = 0
    assert k[1] == 3 + 1j
    assert copy(k) == k
    assert isinstance(copy(k), Ket)


def test_elements_returns_a_copy(k):
    elements = k.elements
    elements[StateLabel((9,))] = 1
    assert 9 not in k


# --- Equality ---


def test_equality_ignores_zero_entries():
    assert Ket({1: 1, 2: 0}) == Ket({1: 1})
    assert Ket({1: 0}) == Ket()
    assert Ket({1: 0}) == 0
    assert Ket({1: 1}) != 0


def test_kets_and_bras_are_never_equal():
    assert Ket({1: 1}) != Bra({1: 1})


def test_objects_are_unhashable(k):
    with pytest.raises(TypeError):
        hash(k)


def test_isclose():
    assert Ket({1: 1}).isclose(Ket({1: 1 + 1e-12}))
    assert not Ket({1: 1}).isclose(Ket({1: 1.1}))
    assert Ket({1: 1}).isclose(Ket({1: 1.05}), atol=0.1)
    assert not Ket({1: 1}).isclose(Bra({1: 1}))


# --- Linear algebra ---


def test_addition_sums_coefficients():
    assert Ket({1: 1, 2: 2}) + Ket({2: 3, 3: 4}) == Ket({1: 1, 2: 5, 3: 4})


def test_add_zero_and_builtin_sum(k):
    assert k + 0 == k
    assert 0 + k == k
    assert sum([ket(1), ket(2), ket(1)]) == Ket({1: 2, 2: 1})


@pytest.mark.parametrize("other", [bra(1), ket(1) * bra(1), 1, "a"])
def test_addition_of_other_kinds(other):
    with pytest.raises(IncompatibleOperandError, match=r"Invalid addition"):
        ket(1) + other


def test_addition_arity_mismatch():
    with pytest.raises(IncompatibleOperandError, match=r"arity"):
        ket(1) + ket(1, 2)


def test_empty_objects_add_to_anything():
    assert Ket() + ket(1, 2) == ket(1, 2)
    assert (Ket() + ket(1, 2)).arity == 2


def test_subtraction():
    a = Ket({1: 2, 2: 1j})
    assert a - a == 0 * a
    assert (a - a).filternz() == Ket()
    assert a - Ket({1: 1}) == Ket({1: 1, 2: 1j})
    with pytest.raises(IncompatibleOperandError, match=r"Invalid subtraction"):
        a - bra(1)


def test_scalar_multiplication_distributes():
    a = Ket({1: 1, 2: 2j})
    b = Ket({2: 3, 3: -1})
    c = 2 - 3j
    assert c * (a + b) == c * a + c * b
    assert (a + b) * c == c * (a + b)


def test_scaling_by_zero_keeps_entries(k):
    scaled = 0 * k
    assert len(scaled) == 2
    assert scaled == 0


def test_numpy_scalars_scale(k):
    assert np.float64(2.0) * k == 2 * k
    assert k * np.complex128(1j) == 1j * k


def test_division(k):
    assert k / 2 == Ket({1: 1.5 + 0.5j, 2: 0.5})
    with pytest.raises(ZeroDivisionError):
        k / 0
    with pytest.raises(IncompatibleOperandError, match=r"Division"):
        k / ket(1)


def test_negation(k):
    assert -k == Ket({1: -3 - 1j, 2: -1})
    assert +k == k


def test_adjoint_conjugates(k):
    b = k.adjoint()
    assert isinstance(b, Bra)
    assert b[1] == 3 - 1j
    assert k.dag() == b


def test_adjoint_is_an_involution(k):
    assert k.adjoint().adjoint() == k
    b = Bra({(1, 2): 1j})
    assert b.adjoint().adjoint() == b


def test_conj_keeps_the_kind(k):
    assert k.conj() == Ket({1: 3 - 1j, 2: 1})


# --- Norms ---


def test_norm():
    assert Ket({1: 3, 2: 4j}).norm() == pytest.approx(5)
    assert Ket().norm() == 0


def test_normalize():
    state = Ket({1: 3, 2: 4j}).normalize()
    assert state.norm() == pytest.approx(1)
    assert state[2] == pytest.approx(0.8j)
    assert bra(1, 1).normalize() == bra(1, 1)


def test_normalize_zero():
    with pytest.raises(ZeroNormError, match=r"zero-norm Ket"):
        Ket({1: 0}).normalize()
    with pytest.raises(ZeroDivisionError):
        Ket().normalize()


# --- Products ---


def test_tensor():
    a = Ket({0: 1, 1: 2})
    b = Ket({"up": 1j})
    product = a.tensor(b)
    assert product == Ket({(0, "up"): 1j, (1, "up"): 2j})
    assert product.arity == 2


def test_tensor_with_empty():
    assert ket(1).tensor(Ket()) == Ket()


def test_tensor_power():
    assert ket(1) ** 3 == ket(1, 1, 1)
    assert (Ket({0: 1, 1: 1}) ** 2).arity == 2
    assert len(Ket({0: 1, 1: 1}) ** 2) == 4
    with pytest.raises(IncompatibleOperandError, match=r"positive integer"):
        ket(1) ** 0


def test_bra_tensor_power_commutes_with_adjoint():
    b = Bra({1: 1j, 2: 2})
    assert b.adjoint() * b.adjoint() * b.adjoint() == (b**3).adjoint()


def test_ptrace_of_ket_uses_density():
    state = ket(0, 1)
    assert state.ptrace(0) == ket(1) * bra(1)
    assert state.to_density() == ket(0, 1) * bra(0, 1)
    assert bra(0, 1).to_density() == ket(0, 1) * bra(0, 1)


# --- Mapping & filtering ---


def test_map_labels_merges_collisions():
    state = Ket({(1, 2): 1, (2, 1): 2})
    assert state.map_labels(lambda label: tuple(sorted(label))) == Ket({(1, 2): 3})


def test_map():
    state = Ket({1: 1, 2: 2})
    assert state.map(lambda label, coeff: (label[0] + 1, coeff * 2)) == Ket({2: 2, 3: 4})


def test_map_coeffs():
    assert Ket({1: 1j}).map_coeffs(lambda c: c * 2) == Ket({1: 2j})


def test_filter():
    state = Ket({1: 1, 2: 2, 3: 3})
    assert state.filter(lambda label, coeff: abs(coeff) > 1) == Ket({2: 2, 3: 3})


def test_filternz_is_in_place():
    state = Ket({1: 1, 2: 0, 3: 1e-16})
    result = state.filternz()
    assert result is state
    assert len(state) == 1
    assert Ket({1: 0.01}).filternz(tol=0.1) == Ket()


def test_xsubspace():
    state = Ket({(0, 1): 1, (1, 0): 2, (1, 1): 3})
    assert state.xsubspace(1) == Ket({(0, 1): 1, (1, 0): 2})
    assert state.xsubspace(lambda label: label[0] == 1) == Ket({(1, 0): 2, (1, 1): 3})


# --- Numeric bridge ---


def test_to_vector():
    vector = Ket({0: 1, 2: 1j}).to_vector([0, 1, 2])
    np.testing.assert_array_equal(vector, np.array([1, 0, 1j]))


def test_to_vector_missing_label():
    with pytest.raises(IncompatibleOperandError, match=r"not part of the basis"):
        Ket({5: 1}).to_vector([0, 1])


def test_to_vector_skips_zero_terms_outside_the_basis():
    vector = Ket({5: 0, 1: 2}).to_vector([0, 1])
    np.testing.assert_array_equal(vector, np.array([0, 2]))


# --- Display ---


def test_repr(k):
    assert repr(k) == "Ket(arity=1, nterms=2)"
    assert repr(Bra()) == "Bra(arity=None, nterms=0)"


def test_str_lists_terms():
    assert str(Ket({1: 2, (2): 1.5j})) == "Ket(arity=1, nterms=2)\n  2 | 1 ⟩\n  1.5j | 2 ⟩"
    assert str(Bra({"a": 1 + 2j})) == "Bra(arity=1, nterms=1)\n  (1+2j) ⟨ 'a' |"


def test_str_truncates(monkeypatch):
    monkeypatch.setattr(dirac, "get_settings", lambda: SimpleNamespace(display_max_terms=2))
    lines = str(Ket({i: 1 for i in range(5)})).splitlines()
    assert len(lines) == 4
    assert lines[-1].strip() == "⁞"


def test_basis_helpers():
    assert ket(1, 2) == Ket({(1, 2): 1})
    assert bra("a") == Bra({"a": 1})
    assert isinstance(ket(1) * bra(1), OpSum)
