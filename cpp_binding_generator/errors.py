#!/usr/bin/env python3
"""
Exception hierarchy for the binding generator.

Two families of failures exist:

- Recoverable, per-item failures (`TypeConversionError`). They are raised by the
  conversion synthesizer for a single method and turned into a diagnostic by the
  orchestrator; the run continues without that method.
- Fatal, whole-run failures (everything else). They abort the generation run because
  a partial binding surface would be ABI-inconsistent or unstable across runs.
"""

from __future__ import annotations

from typing import List, Sequence


class BindingGeneratorError(Exception):
    """Base class for all errors raised by the generator."""


class InputFormatError(BindingGeneratorError):
    """The serialized API description could not be decoded."""


class TypeConversionError(BindingGeneratorError):
    """A C++ type occurrence has no FFI-safe representation."""


class InconsistentInputError(BindingGeneratorError):
    """The API description violates a structural invariant (e.g. a non-class base)."""


class InheritanceCycleError(InconsistentInputError):
    """A class is (transitively) its own base."""

    def __init__(self, path: Sequence[str]) -> None:
        self.path: List[str] = list(path)
        super().__init__("inheritance cycle detected: " + " -> ".join(self.path))


class DisambiguationError(BindingGeneratorError):
    """No caption strategy produced unique shim names for a group of overloads."""

    def __init__(self, base_name: str, candidates: Sequence[str], include_file: str = "") -> None:
        self.base_name = base_name
        self.candidates: List[str] = list(candidates)
        self.include_file = include_file
        where = f" in <{include_file}>" if include_file else ""
        listing = "\n".join(f"  {c}" for c in self.candidates)
        super().__init__(
            f"all caption strategies have failed for '{base_name}'{where}. "
            f"Involved functions:\n{listing}"
        )


class ConflictingSettingsError(BindingGeneratorError):
    """Matching build configuration fragments disagree on a single-valued field."""


__all__ = [
    "BindingGeneratorError",
    "InputFormatError",
    "TypeConversionError",
    "InconsistentInputError",
    "InheritanceCycleError",
    "DisambiguationError",
    "ConflictingSettingsError",
]
