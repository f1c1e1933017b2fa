"""Exceptions raised by the inference core.

Hierarchy:
    InferenceError (base)
    ├── InvalidModelState   - chain/provider mismatch, detected before any search
    └── ProviderFailure     - a conditional-probability query failed mid-inference
"""

from __future__ import annotations

from typing import Optional


class InferenceError(Exception):
    """Base class for all inference errors."""


class InvalidModelState(InferenceError, ValueError):
    """The probability chain is inconsistent (length, order or provider count)."""


class ProviderFailure(InferenceError, RuntimeError):
    """A conditional-probability provider raised or returned an invalid value.

    The in-flight inference for the instance is aborted; no partial result is
    returned.
    """

    def __init__(self, message: str, slot: Optional[int] = None) -> None:
        self.slot = slot
        super().__init__(message)
