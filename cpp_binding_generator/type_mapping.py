#!/usr/bin/env python3
"""
Conversion synthesizer: C++ types to shim (C ABI) types and host API types.

This module analyzes parsed C++ methods (from `models.py`) and computes, for every
argument and return value, a `CompleteType` describing:

- the shim type seen by the generated `extern "C"` function and the indirection
  change between the C++ type and that shim type,
- the host FFI type matching the shim type,
- the host API type offered to users and how it is converted to the shim type.

Typical usage (high level):

    from .type_mapping import TypeMapper, MappingConfig, expand_default_arguments

    mapper = TypeMapper(cpp_data, config=MappingConfig(crate_name="qt_core"))
    for method in expand_default_arguments(methods, diagnostics):
        try:
            signature = mapper.map_method(method)
        except TypeConversionError as e:
            # method has no ABI-safe representation; report and skip it
            ...

Rules, by shape of the C++ type:
- numbers, enums, raw pointers: unchanged
- class by value: passed through a pointer (`const T*` arguments, `T*` returns);
  returned values are owned by a `CppBox<T>` if the class can be deleted
- references: become pointers at the shim, borrows in the host API
- flags wrappers (`QFlags<E>`): an `unsigned int` at the shim, `Flags<E>` in the API
- function pointers: unchanged, provided no contained type needs a conversion

Anything else raises `TypeConversionError`, which only drops the method at hand.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .captions import base_caption
from .diagnostics import DiagnosticKind, Diagnostics
from .errors import TypeConversionError
from .ffi_types import ShimArgument, ShimArgumentMeaning, ShimSignature
from .host_types import (
    CompleteType,
    HostCommonType,
    HostFunctionPointer,
    HostName,
    HostToShimConversion,
    HostType,
    HostTypeIndirection,
    HostVoid,
    IndirectionChange,
    host_type_with_indirection,
)
from .inheritance import InheritanceResolver
from .models import (
    CppBuiltInNumeric,
    CppBuiltInNumericType,
    CppClassType,
    CppData,
    CppEnumType,
    CppFunctionPointer,
    CppMethod,
    CppPointerSizedInteger,
    CppSpecificNumeric,
    CppSpecificNumericKind,
    CppTemplateParameter,
    CppType,
    CppTypeIndirection,
    CppVoid,
    contains_template_parameter,
)
from .utils import camel_to_snake, include_file_base_name, sanitize_identifier, snake_to_class_case


class TypeRole(Enum):
    ARGUMENT = "argument"
    RETURN_VALUE = "return_value"
    THIS = "this"


# --------------------------
# Configuration
# --------------------------

@dataclass
class MappingConfig:
    """
    Settings for the type mapper.
    """
    # Host crate of the library being bound (used when CppData.library_name is empty)
    crate_name: str = "cpp_lib"
    # Class templates treated as bit-flag wrappers around an enum
    flags_class_names: Tuple[str, ...] = ("QFlags",)
    # Crate providing CppBox and Flags in the host language
    utils_crate: str = "cpp_utils"
    # Dependency crates keyed by library name, when they differ from the library name
    crate_names: Dict[str, str] = field(default_factory=dict)

    def crate_for(self, library_name: str) -> str:
        if not library_name:
            return self.crate_name
        return self.crate_names.get(library_name, library_name)

    @property
    def cpp_box_name(self) -> HostName:
        return HostName.of(self.utils_crate, "CppBox")

    @property
    def flags_name(self) -> HostName:
        return HostName.of(self.utils_crate, "Flags")


_OPTION = HostName.of("std", "option", "Option")
_C_VOID = HostName.of("libc", "c_void")

_HOST_INDIRECTION: Dict[CppTypeIndirection, HostTypeIndirection] = {
    CppTypeIndirection.NONE: HostTypeIndirection.NONE,
    CppTypeIndirection.PTR: HostTypeIndirection.PTR,
    CppTypeIndirection.REF: HostTypeIndirection.REF,
    CppTypeIndirection.PTR_PTR: HostTypeIndirection.PTR_PTR,
    CppTypeIndirection.PTR_REF: HostTypeIndirection.PTR_REF,
}


# --------------------------
# Default arguments
# --------------------------

def expand_default_arguments(methods: Sequence[CppMethod], diagnostics: Optional[Diagnostics] = None) -> List[CppMethod]:
    """
    Add one candidate per omissible suffix of defaulted trailing arguments:
    `h(int a, int b = 0)` yields `h(int a, int b)` and `h(int a)`.

    Trimmed variants record the full argument list in `arguments_before_omitting`.
    A variant whose signature matches a declared method or an earlier variant is
    dropped (with a diagnostic).
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics()
    seen = {m.signature_key for m in methods}
    result: List[CppMethod] = []
    for method in methods:
        result.append(method)
        if method.arguments_before_omitting is not None:
            continue
        args = method.arguments
        count = len(args)
        while count > 0 and args[count - 1].has_default_value:
            count -= 1
            variant = replace(method, arguments=args[:count], arguments_before_omitting=args)
            if variant.signature_key in seen:
                diagnostics.info(
                    DiagnosticKind.DUPLICATE_OVERLOAD,
                    "Omitting default arguments duplicates another overload",
                    variant.short_text(),
                    method.include_file or None,
                )
                continue
            seen.add(variant.signature_key)
            result.append(variant)
    return result


def _unique_name(name: str, used: Set[str]) -> str:
    """`name`, or `name_2`, `name_3`, ... if it is already taken."""
    if name not in used:
        return name
    n = 2
    while f"{name}_{n}" in used:
        n += 1
    return f"{name}_{n}"


# --------------------------
# Mapper
# --------------------------

class TypeMapper:
    """
    Computes complete types and shim signatures for one generation run.

    Build with:
      - TypeMapper(cpp_data, config): creates its own inheritance resolver
      - TypeMapper(cpp_data, config, resolver=shared): reuses the orchestrator's resolver
    """

    def __init__(
        self,
        data: CppData,
        config: Optional[MappingConfig] = None,
        resolver: Optional[InheritanceResolver] = None,
    ) -> None:
        self.data = data
        self.config = config or MappingConfig()
        self.resolver = resolver or InheritanceResolver(data)

    # ---- Public API ----

    def map_method(self, method: CppMethod) -> ShimSignature:
        """
        Shim signature of `method`: `this` first (non-static members, destructors),
        then the C++ arguments, plus the return value.
        Raises TypeConversionError if any part cannot cross the boundary.
        """
        if method.allows_variadic_arguments:
            raise TypeConversionError("variadic arguments are not supported")

        arguments: List[ShimArgument] = []
        used_names = {"this_ptr"}
        if method.has_this:
            arguments.append(ShimArgument("this_ptr", self.this_type(method), ShimArgumentMeaning.THIS))

        for i, arg in enumerate(method.arguments):
            if arg.argument_type.is_void:
                raise TypeConversionError(f"argument {i + 1} has type void")
            try:
                complete = self.complete_type(arg.argument_type, TypeRole.ARGUMENT)
            except TypeConversionError as e:
                raise TypeConversionError(f"argument {i + 1} ({arg.argument_type.to_cpp_code()}): {e}") from e
            name = sanitize_identifier(camel_to_snake(arg.name)) if arg.name else f"arg{i + 1}"
            name = _unique_name(name, used_names)
            used_names.add(name)
            arguments.append(ShimArgument(name, complete, ShimArgumentMeaning.ARGUMENT, i))

        if method.is_constructor:
            return_cpp = CppType(base=method.class_membership.class_type)
        elif method.is_destructor:
            return_cpp = CppType.void()
        else:
            return_cpp = method.return_type
        try:
            return_type = self.complete_type(return_cpp, TypeRole.RETURN_VALUE)
        except TypeConversionError as e:
            raise TypeConversionError(f"return type ({return_cpp.to_cpp_code()}): {e}") from e
        return ShimSignature(arguments=tuple(arguments), return_type=return_type)

    def this_type(self, method: CppMethod) -> CompleteType:
        class_type = method.class_membership.class_type
        cpp_type = CppType(base=class_type, indirection=CppTypeIndirection.PTR, is_const=method.is_const)
        host_shim = self.host_ffi_type(cpp_type)
        return CompleteType(
            cpp_type=cpp_type,
            cpp_shim_type=cpp_type,
            cpp_to_shim_conversion=IndirectionChange.NO_CHANGE,
            host_shim_type=host_shim,
            host_api_type=host_type_with_indirection(host_shim, HostTypeIndirection.REF, method.is_const),
            host_api_to_shim_conversion=HostToShimConversion.REF_TO_PTR,
        )

    def complete_type(self, cpp_type: CppType, role: TypeRole) -> CompleteType:
        if role == TypeRole.THIS:
            raise ValueError("use this_type() for the object argument")
        shim_type, change = self.cpp_to_shim(cpp_type, role)
        host_shim = self.host_ffi_type(shim_type)
        host_api, api_conversion = self.host_api_type(cpp_type, shim_type, change, host_shim, role)
        return CompleteType(
            cpp_type=cpp_type,
            cpp_shim_type=shim_type,
            cpp_to_shim_conversion=change,
            host_shim_type=host_shim,
            host_api_type=host_api,
            host_api_to_shim_conversion=api_conversion,
        )

    def is_deletable(self, class_name: str) -> bool:
        return self.resolver.has_public_destructor(class_name)

    # ---- C++ -> shim ----

    def is_flags_type(self, cpp_type: CppType) -> bool:
        base = cpp_type.base
        if not isinstance(base, CppClassType) or base.name not in self.config.flags_class_names:
            return False
        if cpp_type.indirection == CppTypeIndirection.NONE:
            return True
        return cpp_type.indirection == CppTypeIndirection.REF and cpp_type.is_const

    def cpp_to_shim(self, cpp_type: CppType, role: TypeRole) -> Tuple[CppType, IndirectionChange]:
        base = cpp_type.base
        if contains_template_parameter(cpp_type):
            raise TypeConversionError("template parameters cannot be passed through the shim")
        if isinstance(base, CppFunctionPointer):
            if cpp_type.indirection != CppTypeIndirection.NONE:
                raise TypeConversionError("indirection to function pointers is not supported")
            inner = [(base.return_type, TypeRole.RETURN_VALUE)] + [(a, TypeRole.ARGUMENT) for a in base.arguments]
            for t, inner_role in inner:
                _, change = self.cpp_to_shim(t, inner_role)
                if change != IndirectionChange.NO_CHANGE:
                    raise TypeConversionError(
                        "function pointers containing types that need conversion are not supported"
                    )
            return cpp_type, IndirectionChange.NO_CHANGE
        if self.is_flags_type(cpp_type):
            return CppType.builtin(CppBuiltInNumericType.UINT), IndirectionChange.FLAGS_TO_INTEGER

        ind = cpp_type.indirection
        if ind == CppTypeIndirection.NONE:
            if isinstance(base, CppClassType):
                is_const = role == TypeRole.ARGUMENT
                return CppType(base=base, indirection=CppTypeIndirection.PTR, is_const=is_const), \
                    IndirectionChange.VALUE_TO_POINTER
            return cpp_type, IndirectionChange.NO_CHANGE
        if ind in (CppTypeIndirection.PTR, CppTypeIndirection.PTR_PTR):
            return cpp_type, IndirectionChange.NO_CHANGE
        if ind == CppTypeIndirection.REF:
            return cpp_type.with_indirection(CppTypeIndirection.PTR), IndirectionChange.REFERENCE_TO_POINTER
        if ind == CppTypeIndirection.PTR_REF:
            return cpp_type.with_indirection(CppTypeIndirection.PTR_PTR), IndirectionChange.REFERENCE_TO_POINTER
        if ind == CppTypeIndirection.RVALUE_REF:
            raise TypeConversionError("rvalue references are not supported")
        raise TypeError(f"unexpected indirection: {ind!r}")

    # ---- shim -> host FFI ----

    def host_ffi_type(self, shim_type: CppType) -> HostType:
        """
        Host FFI type matching a shim type. References never reach this point.
        """
        base = shim_type.base
        if isinstance(base, CppFunctionPointer):
            return HostFunctionPointer(
                return_type=self.host_ffi_type(base.return_type),
                arguments=tuple(self.host_ffi_type(a) for a in base.arguments),
            )
        if isinstance(base, CppVoid) and shim_type.indirection == CppTypeIndirection.NONE:
            return HostVoid()
        if shim_type.indirection == CppTypeIndirection.RVALUE_REF:
            raise TypeConversionError("rvalue references are not supported")
        return HostCommonType(
            base=self._host_base_name(base),
            is_const=shim_type.is_const,
            is_const2=shim_type.is_const2,
            indirection=_HOST_INDIRECTION[shim_type.indirection],
        )

    def _host_base_name(self, base) -> HostName:
        if isinstance(base, CppVoid):
            return _C_VOID
        if isinstance(base, CppBuiltInNumeric):
            name = base.kind.host_ffi_name
            if name is None:
                raise TypeConversionError(f"{base.kind.cpp_code} has no portable FFI representation")
            return HostName(tuple(name.split("::")))
        if isinstance(base, CppSpecificNumeric):
            if base.kind == CppSpecificNumericKind.FLOATING_POINT:
                if base.bits == 32:
                    return HostName.of("f32")
                if base.bits == 64:
                    return HostName.of("f64")
                raise TypeConversionError(f"unsupported floating point width: {base.bits} ({base.name})")
            prefix = "i" if base.kind == CppSpecificNumericKind.SIGNED_INTEGER else "u"
            return HostName.of(f"{prefix}{base.bits}")
        if isinstance(base, CppPointerSizedInteger):
            return HostName.of("isize" if base.is_signed else "usize")
        if isinstance(base, (CppEnumType, CppClassType)):
            return self.host_name_of(base)
        if isinstance(base, CppTemplateParameter):
            raise TypeConversionError("template parameters cannot be passed through the shim")
        raise TypeError(f"unexpected C++ type base: {base!r}")

    def host_name_of(self, base) -> HostName:
        """
        `[crate, module, TypeName]`: the crate owning the declaration, the snake_case
        base name of its header, and the ClassCase caption of the type.
        """
        owner = self.data.find_type_owner(base.name)
        if owner is None:
            raise TypeConversionError(f"unknown type: {base.name}")
        info = next(t for t in owner.types if t.name == base.name)
        crate = self.config.crate_name if owner is self.data else self.config.crate_for(owner.library_name)
        module = camel_to_snake(include_file_base_name(info.include_file))
        return HostName.of(crate, module, snake_to_class_case(base_caption(base)))

    # ---- shim -> host API ----

    def host_api_type(
        self,
        cpp_type: CppType,
        shim_type: CppType,
        change: IndirectionChange,
        host_shim: HostType,
        role: TypeRole,
    ) -> Tuple[HostType, HostToShimConversion]:
        if change == IndirectionChange.FLAGS_TO_INTEGER:
            return self._flags_api_type(cpp_type), HostToShimConversion.FLAGS_TO_UINT

        if not isinstance(host_shim, HostCommonType):
            return host_shim, HostToShimConversion.NONE

        is_class = isinstance(shim_type.base, CppClassType)
        if change == IndirectionChange.VALUE_TO_POINTER:
            if role == TypeRole.ARGUMENT:
                return host_type_with_indirection(host_shim, HostTypeIndirection.REF, True), \
                    HostToShimConversion.REF_TO_PTR
            if self.is_deletable(shim_type.base.name):
                value = host_type_with_indirection(host_shim, HostTypeIndirection.NONE, False)
                return HostCommonType(base=self.config.cpp_box_name, generic_arguments=(value,)), \
                    HostToShimConversion.CPP_BOX_TO_PTR
            return host_shim, HostToShimConversion.NONE

        if change == IndirectionChange.REFERENCE_TO_POINTER:
            if host_shim.indirection == HostTypeIndirection.PTR:
                return host_type_with_indirection(host_shim, HostTypeIndirection.REF, host_shim.is_const), \
                    HostToShimConversion.REF_TO_PTR
            return HostCommonType(
                base=host_shim.base,
                generic_arguments=host_shim.generic_arguments,
                is_const=host_shim.is_const,
                is_const2=host_shim.is_const2,
                indirection=HostTypeIndirection.PTR_REF,
            ), HostToShimConversion.REF_TO_PTR

        if is_class and role == TypeRole.ARGUMENT and host_shim.indirection == HostTypeIndirection.PTR:
            borrowed = host_type_with_indirection(host_shim, HostTypeIndirection.REF, host_shim.is_const)
            return HostCommonType(base=_OPTION, generic_arguments=(borrowed,)), \
                HostToShimConversion.OPTION_REF_TO_PTR

        return host_shim, HostToShimConversion.NONE

    def _flags_api_type(self, cpp_type: CppType) -> HostType:
        args = cpp_type.base.template_arguments
        if not args or len(args) != 1 or not isinstance(args[0].base, CppEnumType):
            raise TypeConversionError(f"flags type must wrap exactly one enum: {cpp_type.to_cpp_code()}")
        enum_name = self.host_name_of(args[0].base)
        return HostCommonType(base=self.config.flags_name, generic_arguments=(HostCommonType(base=enum_name),))


__all__ = [
    "TypeRole",
    "MappingConfig",
    "TypeMapper",
    "expand_default_arguments",
]
