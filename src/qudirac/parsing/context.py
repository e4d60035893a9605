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
"""Symbol tables used to resolve identifiers in Dirac-notation strings."""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping

import numpy as np
from loguru import logger

from qudirac.core import functions
from qudirac.core.exceptions import RedefinitionError, UnknownIdentifierError

if TYPE_CHECKING:
    from qudirac.core.dirac import OpFunction, OpSum
    from qudirac.core.types import LabelValue

BUILTINS: Mapping[str, Any] = MappingProxyType(
    {
        # Constants
        "im": 1j,
        "pi": np.pi,
        "e": np.e,
        # Scalar functions; sqrt and log return complex values for negative input
        "sqrt": np.emath.sqrt,
        "exp": np.exp,
        "log": np.emath.log,
        "sin": np.sin,
        "cos": np.cos,
        "tan": np.tan,
        "abs": abs,
        "conj": functions.conj,
        "real": np.real,
        "imag": np.imag,
        # Dirac algebra
        "adjoint": functions.adjoint,
        "tensor": functions.tensor,
        "ptrace": functions.ptrace,
        "xsubspace": functions.xsubspace,
        "act_on": functions.act_on,
        "inner": functions.inner,
        "expect": functions.expect,
        "trace": functions.trace,
        "norm": functions.norm,
        "normalize": functions.normalize,
        "commutator": functions.commutator,
        "maplabels": functions.maplabels,
        "mapcoeffs": functions.mapcoeffs,
        "filternz": functions.filternz,
        "reverse": functions.reverse,
    }
)


class EvaluationContext:
    """
    Explicit, inspectable namespace for Dirac-notation evaluation.

    Lookups walk the local bindings, then the parent context, then the builtins (``im``, ``sqrt``, ``tensor``,
    ``ptrace``...). Contexts live as long as the caller keeps them; nothing is shared between sessions.

    Example:
        .. code-block:: python

            from qudirac import EvaluationContext

            ctx = EvaluationContext()
            ctx.def_op("a | n > = sqrt(n) * |n-1>")
            ctx.d("a * |3>")  # sqrt(3) |2⟩
    """

    def __init__(
        self,
        bindings: Mapping[str, Any] | None = None,
        *,
        parent: EvaluationContext | None = None,
        builtins: bool = True,
    ) -> None:
        self._bindings: dict[str, Any] = {}
        self._parent = parent
        self._builtins: Mapping[str, Any] = BUILTINS if builtins else {}
        for name, value in (bindings or {}).items():
            self._check_name(name)
            self._bindings[name] = value

    @property
    def parent(self) -> EvaluationContext | None:
        return self._parent

    @property
    def bindings(self) -> dict[str, Any]:
        """A copy of the names bound directly in this context."""
        return dict(self._bindings)

    @staticmethod
    def _check_name(name: str) -> None:
        if not isinstance(name, str) or not name.isidentifier():
            raise ValueError(f"'{name}' is not a valid identifier.")

    def bind(self, name: str, value: Any, *, overwrite: bool = True) -> None:
        """
        Bind ``name`` to ``value`` in this context.

        Args:
            name (str): Identifier to bind.
            value (Any): Ket, Bra, OpSum, OpFunction, scalar or callable.
            overwrite (bool, optional): Whether an existing visible binding may be replaced. Defaults to True.

        Raises:
            ValueError: If ``name`` is not a valid identifier.
            RedefinitionError: If ``name`` is already visible and ``overwrite`` is False.
        """
        self._check_name(name)
        if name in self:
            if not overwrite:
                raise RedefinitionError(f"'{name}' is already bound; pass overwrite=True to rebind it.")
            if name in self._bindings:
                logger.warning("Rebinding '{}' in the evaluation context", name)
            else:
                logger.warning("Binding '{}' shadows an existing definition", name)
        self._bindings[name] = value

    def unbind(self, name: str) -> None:
        """
        Remove a name bound directly in this context.

        Raises:
            UnknownIdentifierError: If ``name`` is not bound in this context.
        """
        try:
            del self._bindings[name]
        except KeyError as exc:
            raise UnknownIdentifierError(name) from exc

    def lookup(self, name: str) -> Any:
        """
        Resolve ``name`` through this context, its parents and the builtins.

        Raises:
            UnknownIdentifierError: If ``name`` is not bound anywhere.

        Returns:
            Any: The bound value.
        """
        if name in self._bindings:
            return self._bindings[name]
        if self._parent is not None and name in self._parent:
            return self._parent.lookup(name)
        if name in self._builtins:
            return self._builtins[name]
        raise UnknownIdentifierError(name)

    def __contains__(self, name: object) -> bool:
        return (
            name in self._bindings
            or (self._parent is not None and name in self._parent)
            or name in self._builtins
        )

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.bind(name, value)

    def __delitem__(self, name: str) -> None:
        self.unbind(name)

    def names(self) -> set[str]:
        """Every name visible from this context."""
        visible = set(self._builtins) | set(self._bindings)
        if self._parent is not None:
            visible |= self._parent.names()
        return visible

    def child(self, **bindings: Any) -> EvaluationContext:
        """
        Scoped context that sees every name of this one; names bound in the child never leak back.

        Returns:
            EvaluationContext: The child context.
        """
        return EvaluationContext(bindings, parent=self, builtins=False)

    def __repr__(self) -> str:
        return f"EvaluationContext(bindings={sorted(self._bindings)})"

    # ------------- Entry points --------------

    def d(self, source: str, **bindings: Any) -> Any:
        """Evaluate ``source`` in this context. See :func:`qudirac.parsing.evaluator.d`.

        Returns:
            Any: The evaluated expression.
        """
        from .evaluator import d  # noqa: PLC0415

        return d(source, self, **bindings)

    def def_op(self, definition: str, **bindings: Any) -> OpFunction:
        """Define an operator from its action on a basis label and bind it here. See
        :func:`qudirac.parsing.opdef.def_op`.

        Returns:
            OpFunction: The defined operator.
        """
        from .opdef import def_op  # noqa: PLC0415

        return def_op(definition, self, **bindings)

    def repr_op(self, definition: str, basis: Iterable[LabelValue], **bindings: Any) -> OpSum:
        """Define an operator, represent it over ``basis`` and bind the result here. See
        :func:`qudirac.parsing.opdef.repr_op`.

        Returns:
            OpSum: The represented operator.
        """
        from .opdef import repr_op  # noqa: PLC0415

        return repr_op(definition, basis, self, **bindings)
