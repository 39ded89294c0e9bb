#!/usr/bin/env python3
"""
Shim-layer signatures and the per-header output of the binding orchestrator.

A `CppAndFfiMethod` is the unit handed to the rendering collaborator: the original
C++ method, its fully converted signature (one `CompleteType` per argument and one
for the return value) and the unique C-linkage symbol name it will be exported as.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .diagnostics import Diagnostics
from .host_types import CompleteType
from .models import CppData, CppMethod


class ShimArgumentMeaning(Enum):
    THIS = "this"
    ARGUMENT = "argument"


@dataclass(frozen=True)
class ShimArgument:
    name: str
    argument_type: CompleteType
    meaning: ShimArgumentMeaning
    # position in the C++ argument list, None for `this`
    index: Optional[int] = None

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "name": self.name,
            "meaning": self.meaning.value,
            "index": self.index,
            "type": self.argument_type.to_dict(current_crate),
        }


@dataclass(frozen=True)
class ShimSignature:
    arguments: Tuple[ShimArgument, ...]
    return_type: CompleteType

    def argument_types(self) -> Tuple[CompleteType, ...]:
        return tuple(a.argument_type for a in self.arguments)

    def has_this(self) -> bool:
        return any(a.meaning == ShimArgumentMeaning.THIS for a in self.arguments)

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "arguments": [a.to_dict(current_crate) for a in self.arguments],
            "return_type": self.return_type.to_dict(current_crate),
        }


@dataclass(frozen=True)
class CppAndFfiMethod:
    cpp_method: CppMethod
    signature: ShimSignature
    c_base_name: str
    c_name: str

    def short_text(self) -> str:
        return f"{self.c_name}: {self.cpp_method.short_text()}"

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "c_name": self.c_name,
            "c_base_name": self.c_base_name,
            "cpp": self.cpp_method.short_text(),
            "signature": self.signature.to_dict(current_crate),
        }


@dataclass(frozen=True)
class CppFfiHeaderData:
    include_file: str
    include_file_base_name: str
    methods: Tuple[CppAndFfiMethod, ...] = ()

    def symbol_names(self) -> List[str]:
        return [m.c_name for m in self.methods]

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "include_file": self.include_file,
            "include_file_base_name": self.include_file_base_name,
            "methods": [m.to_dict(current_crate) for m in self.methods],
        }


@dataclass
class CppAndFfiData:
    """
    Result of a whole generation run. Carries the input back so the renderer can
    regenerate include directives from `cpp_data_by_headers`.
    """
    cpp_data: CppData
    cpp_data_by_headers: Dict[str, CppData]
    cpp_ffi_headers: List[CppFfiHeaderData]
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    abstract_classes: Tuple[str, ...] = ()

    def method_count(self) -> int:
        return sum(len(h.methods) for h in self.cpp_ffi_headers)

    def find_header(self, include_file: str) -> Optional[CppFfiHeaderData]:
        for header in self.cpp_ffi_headers:
            if header.include_file == include_file:
                return header
        return None

    def symbol_table(self) -> Dict[str, List[str]]:
        return {h.include_file: h.symbol_names() for h in self.cpp_ffi_headers}

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "library_name": self.cpp_data.library_name,
            "abstract_classes": list(self.abstract_classes),
            "headers": [h.to_dict(current_crate) for h in self.cpp_ffi_headers],
            "diagnostics": self.diagnostics.to_list(),
        }


__all__ = [
    "ShimArgumentMeaning",
    "ShimArgument",
    "ShimSignature",
    "CppAndFfiMethod",
    "CppFfiHeaderData",
    "CppAndFfiData",
]
