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

from enum import Enum
from numbers import Number as _AbstractNumber
from typing import Hashable, TypeAlias

import numpy as np

Number: TypeAlias = int | float | complex
RealNumber: TypeAlias = int | float
LabelValue: TypeAlias = Hashable


class Kind(str, Enum):
    """Structural kind of a Dirac object, used to key the multiplication table."""

    KET = "ket"
    BRA = "bra"
    OPSUM = "opsum"
    OPFUNCTION = "opfunction"


def is_scalar(value: object) -> bool:
    """Whether ``value`` behaves as a complex scalar (Python or NumPy number, but not bool)."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (_AbstractNumber, np.number))
