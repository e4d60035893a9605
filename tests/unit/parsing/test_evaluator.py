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

from qudirac.core.dirac import Bra, Ket, OpFunction, OpSum, bra, ket
from qudirac.core.exceptions import IncompatibleOperandError, ParseError, UnknownIdentifierError
from qudirac.parsing.ast import OpDefinition
from qudirac.parsing.context import EvaluationContext
from qudirac.parsing.evaluator import Evaluator, d
from qudirac.parsing.parser import parse


@pytest.fixture
def x():
    return ket(0) * bra(1) + ket(1) * bra(0)


# --- Literals & arithmetic ---


def test_states():
    assert d("|1> + 2|2>") == Ket({1: 1, 2: 2})
    assert d("<1| - im<'up'|") == Bra({1: 1, "up": -1j})
    assert d("|1, 'a'>") == ket(1, "a")


def test_scalars():
    assert d("2^3") == 8
    assert d("(-1)^3") == -1
    assert d("1 / 4") == 0.25
    assert d("2pi") == pytest.approx(2 * np.pi)
    assert d("3im") == 3j
    assert d("sqrt(-4)") == 2j


def test_coefficients():
    k = d("(3+im)*(1+3im)| 1 >")
    assert isinstance(k, Ket)
    assert k[1] == 10j


def test_adjoint():
    assert d("k'", k=ket(1)) == bra(1)
    assert d("k†", k=2j * ket(1)) == -2j * bra(1)
    assert d("(|1><2|)'") == ket(2) * bra(1)
    assert d("(1+im)'") == 1 - 1j


def test_products():
    assert d("<1|1>") == 1
    assert d("<1|2>") == 0
    assert isinstance(d("|1><2|"), OpSum)
    assert d("|1>|2>") == ket(1, 2)
    assert d("|1>^2") == ket(1, 1)


def test_matrix_elements(x):
    assert d("<i|A|j>", A=x + 2 * ket(1) * bra(1), i=1, j=1) == 2
    assert d("<1|A|0>", A=x) == 1


def test_trailing_bra_adjoint():
    assert d("<2|'") == ket(2)
    assert d("3<2|'") == 3 * ket(2)
    assert d("(|1><2|)'") == ket(2) * bra(1)


def test_matrix_element_with_a_numeric_factor():
    assert d("<3| 2 |3>") == 2
    assert d("<1| 2 |3>") == 0


def test_comparison():
    assert d("|1> == |1>") is True
    assert d("2 == 3") is False
    assert d("0*|1> == 0") is True


def test_computed_labels():
    assert d("|2*n, 'up'>", n=3) == ket(6, "up")
    assert d("|(-1)^n>", n=3) == ket(-1)
    assert d("|n-1>", n=np.int64(4)) == ket(3)


def test_calls():
    assert d("normalize(|0> + |0>)") == ket(0)
    assert d("ptrace(|0,1><0,1|, 0)") == ket(1) * bra(1)
    assert d("tensor(|1>, |2>, |3>)") == ket(1, 2, 3)
    assert d("f(2)", f=lambda n: n + 1) == 3


def test_operator_functions():
    lower = OpFunction(lambda label: np.sqrt(label[0]) * ket(label[0] - 1), name="a")
    assert d("a|4>", a=lower) == 2 * ket(3)
    assert d("a*a|4>", a=lower) == lower(lower(4))


# --- Errors ---


def test_unknown_identifier():
    with pytest.raises(UnknownIdentifierError, match=r"Unknown identifier 'foo'") as error:
        d("foo|1>")
    assert error.value.name == "foo"


def test_call_of_non_callable():
    with pytest.raises(IncompatibleOperandError, match=r"not callable"):
        d("k(1)", k=ket(1))


def test_symbols_outside_labels():
    with pytest.raises(IncompatibleOperandError, match=r"can only be used as a label"):
        d("'a' + 1")
    with pytest.raises(IncompatibleOperandError, match=r"can only be used as a label"):
        d("-'a'")


def test_dirac_objects_inside_labels():
    with pytest.raises(IncompatibleOperandError, match=r"Label entries must be numbers or symbols"):
        d("|k>", k=ket(1))


@pytest.mark.parametrize("source", ["|1> + <1|", "|1> + 1", "1 / |1>", "(|1><1|)'' * <1|"])
def test_incompatible_operands(source):
    with pytest.raises(IncompatibleOperandError):
        d(source)


@pytest.mark.parametrize("source", ["sqrt(|1>)", "abs(|1>)", "xsubspace(|'a'>, 1)", "a(|1>, |2>)"])
def test_invalid_call_arguments(source):
    a = OpFunction(lambda label: ket(*label), name="a")
    with pytest.raises(IncompatibleOperandError, match=r"Invalid arguments for"):
        d(source, a=a)


def test_errors_from_the_algebra_keep_their_type():
    with pytest.raises(IncompatibleOperandError, match=r"inner expects"):
        d("inner(|1>, <1|)")


def test_parse_errors_propagate():
    with pytest.raises(ParseError):
        d("|1")


def test_unsupported_node():
    with pytest.raises(NotImplementedError, match=r"cannot evaluate OpDefinition"):
        Evaluator(EvaluationContext()).evaluate(OpDefinition("a", ("n",), parse("|n>")))


# --- Contexts ---


def test_explicit_context():
    ctx = EvaluationContext({"k": ket(2)})
    assert d("k'", ctx) == bra(2)
    assert d("k + q", ctx, q=ket(2)) == 2 * ket(2)
    assert "q" not in ctx


def test_fresh_context_per_call():
    d("k", k=ket(1))
    with pytest.raises(UnknownIdentifierError):
        d("k")
