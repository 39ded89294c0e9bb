#!/usr/bin/env python3
"""
Host-language side of the type algebra.

The generated wrappers target a memory-safe host language with Rust-like spelling:
paths separated by `::`, raw pointers `*const T` / `*mut T`, borrows `&T` / `&mut T`,
and generic arguments in angle brackets. This module only describes such types;
it never renders whole declarations.

`CompleteType` pairs one C++ type occurrence with its shim (C ABI) representation
and its host API representation, plus the two conversions that connect them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .models import CppType

# --------------------------
# Names and enumerations
# --------------------------


@dataclass(frozen=True)
class HostName:
    """Fully qualified host path, e.g. ("qt_core", "point", "Point")."""
    parts: Tuple[str, ...]

    @staticmethod
    def of(*parts: str) -> HostName:
        return HostName(tuple(parts))

    @property
    def crate_name(self) -> Optional[str]:
        return self.parts[0] if len(self.parts) > 1 else None

    @property
    def last_name(self) -> str:
        return self.parts[-1]

    def full_name(self, current_crate: Optional[str] = None) -> str:
        parts = list(self.parts)
        if current_crate is not None and len(parts) > 1 and parts[0] == current_crate:
            parts[0] = "crate"
        return "::".join(parts)


class HostTypeIndirection(Enum):
    NONE = "none"
    PTR = "ptr"
    REF = "ref"
    PTR_PTR = "ptr_ptr"
    PTR_REF = "ptr_ref"


class IndirectionChange(Enum):
    """How the shim representation of a C++ type differs from the C++ type itself."""
    NO_CHANGE = "no_change"
    VALUE_TO_POINTER = "value_to_pointer"
    REFERENCE_TO_POINTER = "reference_to_pointer"
    FLAGS_TO_INTEGER = "flags_to_integer"


class HostToShimConversion(Enum):
    """How a host API value is turned into its shim representation."""
    NONE = "none"
    REF_TO_PTR = "ref_to_ptr"
    OPTION_REF_TO_PTR = "option_ref_to_ptr"
    CPP_BOX_TO_PTR = "cpp_box_to_ptr"
    FLAGS_TO_UINT = "flags_to_uint"


# --------------------------
# Host type union
# --------------------------

@dataclass(frozen=True)
class HostVoid:
    def to_code(self, current_crate: Optional[str] = None) -> str:
        return host_type_to_code(self, current_crate)


@dataclass(frozen=True)
class HostCommonType:
    base: HostName
    generic_arguments: Optional[Tuple["HostType", ...]] = None
    is_const: bool = False
    is_const2: bool = False
    indirection: HostTypeIndirection = HostTypeIndirection.NONE

    def to_code(self, current_crate: Optional[str] = None) -> str:
        return host_type_to_code(self, current_crate)


@dataclass(frozen=True)
class HostFunctionPointer:
    return_type: "HostType"
    arguments: Tuple["HostType", ...] = ()

    def to_code(self, current_crate: Optional[str] = None) -> str:
        return host_type_to_code(self, current_crate)


HostType = Union[HostVoid, HostCommonType, HostFunctionPointer]


def _ptr(is_const: bool, inner: str) -> str:
    return f"*{'const' if is_const else 'mut'} {inner}"


def _ref(is_const: bool, inner: str) -> str:
    return f"&{'' if is_const else 'mut '}{inner}"


def host_type_to_code(t: HostType, current_crate: Optional[str] = None) -> str:
    """
    Render `t` in host spelling. Paths into `current_crate` are written as `crate::...`.
    """
    if isinstance(t, HostVoid):
        return "()"
    if isinstance(t, HostCommonType):
        code = t.base.full_name(current_crate)
        if t.generic_arguments:
            code += "<" + ", ".join(host_type_to_code(a, current_crate) for a in t.generic_arguments) + ">"
        ind = t.indirection
        if ind == HostTypeIndirection.NONE:
            return code
        if ind == HostTypeIndirection.PTR:
            return _ptr(t.is_const, code)
        if ind == HostTypeIndirection.REF:
            return _ref(t.is_const, code)
        if ind == HostTypeIndirection.PTR_PTR:
            return _ptr(t.is_const2, _ptr(t.is_const, code))
        if ind == HostTypeIndirection.PTR_REF:
            return _ref(t.is_const2, _ptr(t.is_const, code))
        raise TypeError(f"unexpected host indirection: {ind!r}")
    if isinstance(t, HostFunctionPointer):
        args = ", ".join(host_type_to_code(a, current_crate) for a in t.arguments)
        if isinstance(t.return_type, HostVoid):
            return f'extern "C" fn({args})'
        return f'extern "C" fn({args}) -> {host_type_to_code(t.return_type, current_crate)}'
    raise TypeError(f"unexpected host type: {t!r}")


def host_type_with_indirection(t: HostType, indirection: HostTypeIndirection, is_const: bool) -> HostType:
    if not isinstance(t, HostCommonType):
        raise TypeError(f"cannot change indirection of {t!r}")
    return HostCommonType(
        base=t.base,
        generic_arguments=t.generic_arguments,
        is_const=is_const,
        is_const2=t.is_const2,
        indirection=indirection,
    )


def host_type_to_dict(t: HostType) -> Dict:
    if isinstance(t, HostVoid):
        return {"kind": "void"}
    if isinstance(t, HostCommonType):
        return {
            "kind": "common",
            "base": list(t.base.parts),
            "generic_arguments": [host_type_to_dict(a) for a in t.generic_arguments]
            if t.generic_arguments is not None else None,
            "is_const": t.is_const,
            "is_const2": t.is_const2,
            "indirection": t.indirection.value,
        }
    if isinstance(t, HostFunctionPointer):
        return {
            "kind": "function_pointer",
            "return_type": host_type_to_dict(t.return_type),
            "arguments": [host_type_to_dict(a) for a in t.arguments],
        }
    raise TypeError(f"unexpected host type: {t!r}")


# --------------------------
# Complete type
# --------------------------

@dataclass(frozen=True)
class CompleteType:
    """
    One argument or return value occurrence, as seen by every layer.

    When `cpp_to_shim_conversion` is NO_CHANGE, `cpp_shim_type` equals `cpp_type`.
    Other conversions only change indirection or representation, never the class.
    """
    cpp_type: CppType
    cpp_shim_type: CppType
    cpp_to_shim_conversion: IndirectionChange
    host_shim_type: HostType
    host_api_type: HostType
    host_api_to_shim_conversion: HostToShimConversion

    def to_dict(self, current_crate: Optional[str] = None) -> Dict:
        return {
            "cpp_type": self.cpp_type.to_cpp_code(),
            "cpp_shim_type": self.cpp_shim_type.to_cpp_code(),
            "cpp_to_shim_conversion": self.cpp_to_shim_conversion.value,
            "host_shim_type": host_type_to_code(self.host_shim_type, current_crate),
            "host_api_type": host_type_to_code(self.host_api_type, current_crate),
            "host_api_to_shim_conversion": self.host_api_to_shim_conversion.value,
        }


__all__ = [
    "HostName",
    "HostTypeIndirection",
    "IndirectionChange",
    "HostToShimConversion",
    "HostVoid",
    "HostCommonType",
    "HostFunctionPointer",
    "HostType",
    "host_type_to_code",
    "host_type_with_indirection",
    "host_type_to_dict",
    "CompleteType",
]
