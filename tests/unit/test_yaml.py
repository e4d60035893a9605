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

from qudirac.core.dirac import Bra, Ket, OpSum, bra, ket
from qudirac.yaml import dumps, loads


def dump_load(obj):
    return loads(dumps(obj))


# -----------------------
# Dirac objects
# -----------------------


def test_ket_roundtrip():
    state = Ket({(0, "up"): 1 + 2j, (1, "down"): -0.5})
    loaded = dump_load(state)

    assert isinstance(loaded, Ket)
    assert loaded == state
    assert loaded.arity == 2


def test_bra_roundtrip():
    state = 3j * bra("a", "b")
    loaded = dump_load(state)

    assert isinstance(loaded, Bra)
    assert loaded == state


def test_opsum_roundtrip():
    op = Ket({1: 1, 2: 2}) * Bra({1: 4 - 2j, 3: 5})
    loaded = dump_load(op)

    assert isinstance(loaded, OpSum)
    assert loaded == op
    assert loaded[2, 1] == 8 - 4j


def test_dirac_objects_are_tagged():
    text = dumps(ket(1) * bra(2))
    assert text.startswith("!OpSum")
    assert "!complex" in text
    assert "!Ket" in dumps(ket(1))


def test_empty_ket_roundtrip():
    assert dump_load(Ket()) == Ket()


# -----------------------
# Built-in and NumPy scalars
# -----------------------


def test_complex_roundtrip():
    assert dump_load(1.5 - 2j) == 1.5 - 2j


def test_tuple_roundtrip():
    loaded = dump_load((1, "a", (2, 3)))

    assert isinstance(loaded, tuple)
    assert loaded == (1, "a", (2, 3))


def test_numpy_scalar_roundtrip():
    x = np.complex128(1 + 1j)
    loaded = dump_load(x)

    assert isinstance(loaded, np.complex128)
    assert loaded == x
