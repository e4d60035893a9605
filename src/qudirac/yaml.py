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

# ruff: noqa: ANN001, ANN201 DOC201

from io import StringIO
from typing import Any

import numpy as np
from ruamel.yaml import YAML


def np_scalar_representer(representer, data: np.generic):
    """Represent any NumPy scalar (e.g. np.int64, np.complex128)."""
    return representer.represent_mapping(
        "!np_scalar",
        {"dtype": str(data.dtype), "value": data.item()},
    )


def np_scalar_constructor(constructor, node):
    """Reconstruct a NumPy scalar."""
    mapping = constructor.construct_mapping(node, deep=True)
    dtype = np.dtype(mapping["dtype"])
    return dtype.type(mapping["value"])


def complex_representer(representer, data: complex):
    value = {"real": data.real, "imag": data.imag}
    return representer.represent_mapping("!complex", value)


def complex_constructor(constructor, node):
    mapping = constructor.construct_mapping(node, deep=True)
    return complex(mapping["real"], mapping["imag"])


def tuple_representer(representer, data: tuple):
    """Representer for built-in Python tuple."""
    # Emit a tuple as a YAML sequence with tag !tuple
    return representer.represent_sequence("!tuple", list(data))


def tuple_constructor(constructor, node):
    """Constructor for built-in Python tuple."""
    seq = constructor.construct_sequence(node, deep=True)
    return tuple(seq)


# Create YAML handler and register all custom types
yaml = YAML(typ="unsafe")

# NumPy scalars
yaml.representer.add_multi_representer(np.generic, np_scalar_representer)
yaml.constructor.add_constructor("!np_scalar", np_scalar_constructor)

# Built-in complex numbers
yaml.representer.add_representer(complex, complex_representer)
yaml.constructor.add_constructor("!complex", complex_constructor)

# Built-in tuples
yaml.representer.add_representer(tuple, tuple_representer)
yaml.constructor.add_constructor("!tuple", tuple_constructor)


def dumps(obj: Any) -> str:
    """Serialize ``obj`` (e.g. a Ket, Bra or OpSum) to a YAML string."""
    buffer = StringIO()
    yaml.dump(obj, buffer)
    return buffer.getvalue()


def loads(text: str) -> Any:
    """Deserialize a YAML string produced by :func:`dumps`."""
    return yaml.load(text)
