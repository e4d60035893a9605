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

from .dirac import Bra, DiracObject, Ket, OpFunction, OpSum, bra, ket, multiply
from .exceptions import (
    IncompatibleOperandError,
    ParseError,
    QuDiracError,
    RedefinitionError,
    UnknownIdentifierError,
    ZeroNormError,
)
from .functions import (
    act_on,
    adjoint,
    commutator,
    conj,
    expect,
    filternz,
    inner,
    mapcoeffs,
    maplabels,
    norm,
    normalize,
    ptrace,
    reverse,
    tensor,
    trace,
    xsubspace,
)
from .labels import OpLabel, StateLabel, blabel, klabel
from .types import Kind

__all__ = [
    "Bra",
    "DiracObject",
    "IncompatibleOperandError",
    "Ket",
    "Kind",
    "OpFunction",
    "OpLabel",
    "OpSum",
    "ParseError",
    "QuDiracError",
    "RedefinitionError",
    "StateLabel",
    "UnknownIdentifierError",
    "ZeroNormError",
    "act_on",
    "adjoint",
    "blabel",
    "bra",
    "commutator",
    "conj",
    "expect",
    "filternz",
    "inner",
    "ket",
    "klabel",
    "mapcoeffs",
    "maplabels",
    "multiply",
    "norm",
    "normalize",
    "ptrace",
    "reverse",
    "tensor",
    "trace",
    "xsubspace",
]
