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


class QuDiracError(Exception):
    """Base class for every error raised by qudirac."""


class ParseError(QuDiracError, ValueError):
    """Raised when a Dirac-notation string or an operator definition is malformed."""

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)
        self.position = position


class UnknownIdentifierError(QuDiracError, NameError):
    """Raised when an identifier used in an expression has no binding."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown identifier '{name}'")
        self.name = name


class IncompatibleOperandError(QuDiracError, TypeError):
    """Raised when an algebraic operation is applied to mismatched kinds or label arities."""


class RedefinitionError(QuDiracError):
    """Raised when a name cannot be (re)bound, e.g. an operator represented in terms of itself."""


class ZeroNormError(QuDiracError, ZeroDivisionError):
    """Raised when normalizing an object whose norm is zero."""
