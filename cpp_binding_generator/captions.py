#!/usr/bin/env python3
"""
Captions and overload disambiguation for shim symbol names.

C has no overloading, so every exported shim function needs a unique name. The name
starts from a base name derived from the method (`QPoint_setX`, `qvector_G_qHash`,
`QPoint_constructor`, ...). When several methods of a header share a base name, a
caption computed from their signatures is appended. Caption strategies are tried in
a fixed order, from the terse to the verbose, and the first one that yields distinct
names for the whole group wins:

    1. argument types (short)             QPoint_setX_int
    2. constness only                     QVector_data / QVector_data_const
    3. constness + argument types (short)
    4. argument types (full)              QPoint_f_const_QPoint_ref
    5. constness + argument types (full)
    6. argument types and names (short)
    7. argument types and names (full)
    8. constness + argument types and names (full)

Names are a pure function of each candidate's signature, so equal input always
produces equal names. If no strategy works the group is reported with
`DisambiguationError` rather than numbered arbitrarily.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Set

from .errors import DisambiguationError
from .ffi_types import CppAndFfiMethod
from .models import (
    CppBuiltInNumeric,
    CppClassType,
    CppEnumType,
    CppFunctionPointer,
    CppMethod,
    CppOperator,
    CppPointerSizedInteger,
    CppSpecificNumeric,
    CppTemplateParameter,
    CppType,
    CppTypeBase,
    CppTypeIndirection,
    CppVoid,
)

# --------------------------
# Type captions
# --------------------------


class TypeCaptionStrategy(Enum):
    SHORT = "short"
    FULL = "full"


_INDIRECTION_SUFFIX: Dict[CppTypeIndirection, str] = {
    CppTypeIndirection.NONE: "",
    CppTypeIndirection.PTR: "_ptr",
    CppTypeIndirection.REF: "_ref",
    CppTypeIndirection.PTR_REF: "_ptr_ref",
    CppTypeIndirection.PTR_PTR: "_ptr_ptr",
    CppTypeIndirection.RVALUE_REF: "_rvalue_ref",
}


def _scoped(name: str) -> str:
    return name.replace("::", "_").replace(" ", "_")


def base_caption(base: CppTypeBase) -> str:
    if isinstance(base, CppVoid):
        return "void"
    if isinstance(base, CppBuiltInNumeric):
        return _scoped(base.kind.cpp_code)
    if isinstance(base, (CppSpecificNumeric, CppPointerSizedInteger, CppEnumType)):
        return _scoped(base.name)
    if isinstance(base, CppClassType):
        caption = _scoped(base.name)
        if base.template_arguments:
            caption += "_" + "_".join(type_caption(a, TypeCaptionStrategy.FULL) for a in base.template_arguments)
        return caption
    if isinstance(base, CppTemplateParameter):
        return f"T{base.nested_level}_{base.index}"
    if isinstance(base, CppFunctionPointer):
        return "func"
    raise TypeError(f"unexpected C++ type base: {base!r}")


def type_caption(t: CppType, strategy: TypeCaptionStrategy = TypeCaptionStrategy.SHORT) -> str:
    """
    SHORT: base type only (`QPoint`, `unsigned_int`, `QVector_int`).
    FULL: constness, base type and indirection (`const_QPoint_ref`).
    """
    caption = base_caption(t.base)
    if strategy == TypeCaptionStrategy.SHORT:
        return caption
    if t.is_const:
        caption = "const_" + caption
    return caption + _INDIRECTION_SUFFIX[t.indirection]


# --------------------------
# Argument and method captions
# --------------------------

@dataclass(frozen=True)
class ArgumentCaptionStrategy:
    type_strategy: TypeCaptionStrategy
    with_names: bool = False

    def caption(self, method: CppMethod) -> str:
        if not method.arguments:
            return "no_args"
        parts: List[str] = []
        for a in method.arguments:
            part = type_caption(a.argument_type, self.type_strategy)
            if self.with_names and a.name:
                part += "_" + a.name
            parts.append(part)
        return "_".join(parts)


@dataclass(frozen=True)
class MethodCaptionStrategy:
    arguments: Optional[ArgumentCaptionStrategy] = None
    with_const: bool = False

    @staticmethod
    def all() -> List[MethodCaptionStrategy]:
        """All strategies, in the order they are tried."""
        short = TypeCaptionStrategy.SHORT
        full = TypeCaptionStrategy.FULL
        return [
            MethodCaptionStrategy(ArgumentCaptionStrategy(short)),
            MethodCaptionStrategy(None, with_const=True),
            MethodCaptionStrategy(ArgumentCaptionStrategy(short), with_const=True),
            MethodCaptionStrategy(ArgumentCaptionStrategy(full)),
            MethodCaptionStrategy(ArgumentCaptionStrategy(full), with_const=True),
            MethodCaptionStrategy(ArgumentCaptionStrategy(short, with_names=True)),
            MethodCaptionStrategy(ArgumentCaptionStrategy(full, with_names=True)),
            MethodCaptionStrategy(ArgumentCaptionStrategy(full, with_names=True), with_const=True),
        ]

    def caption(self, method: CppMethod) -> str:
        const_part = "const" if self.with_const and method.is_const else ""
        if self.arguments is None:
            return const_part
        args_part = self.arguments.caption(method)
        return f"{const_part}_{args_part}" if const_part else args_part


# --------------------------
# Base names
# --------------------------

def c_base_name(method: CppMethod, include_file_base_name: str) -> str:
    """
    Shim base name before disambiguation.
    """
    if method.is_constructor:
        name = "constructor"
    elif method.is_destructor:
        name = "destructor"
    elif method.operator is not None:
        name = f"operator_{method.operator.c_name}"
        if method.operator == CppOperator.CONVERSION:
            name += "_" + type_caption(method.return_type, TypeCaptionStrategy.FULL)
    else:
        name = _scoped(method.name)

    if method.class_membership is not None:
        base = f"{base_caption(method.class_membership.class_type)}_{name}"
    else:
        base = f"{include_file_base_name}_G_{name}"

    if method.template_arguments_values:
        base += "_" + "_".join(type_caption(v, TypeCaptionStrategy.FULL) for v in method.template_arguments_values)
    return base


# --------------------------
# Disambiguation
# --------------------------

def _final_name(base: str, caption: str) -> str:
    return f"{base}_{caption}" if caption else base


class OverloadDisambiguator:
    """
    Assigns final shim names to the candidates of one header.

    Groups are processed in sorted base-name order. A strategy is adopted for a group
    only if it gives every candidate a distinct name and none of those names is the
    base name of another group or a name already assigned to an earlier group.
    """

    def __init__(self, include_file: str = "", strategies: Optional[Sequence[MethodCaptionStrategy]] = None) -> None:
        self.include_file = include_file
        self.strategies = list(strategies) if strategies is not None else MethodCaptionStrategy.all()

    def assign_names(self, groups: Mapping[str, Sequence[CppAndFfiMethod]]) -> List[CppAndFfiMethod]:
        taken: Set[str] = set(groups)
        result: List[CppAndFfiMethod] = []
        for base in sorted(groups):
            candidates = list(groups[base])
            if len(candidates) == 1:
                result.append(replace(candidates[0], c_name=base))
                continue
            names = self._names_for_group(base, candidates, taken)
            taken.update(names)
            result.extend(replace(c, c_name=n) for c, n in zip(candidates, names))
        return result

    def _names_for_group(self, base: str, candidates: List[CppAndFfiMethod], taken: Set[str]) -> List[str]:
        for strategy in self.strategies:
            names = [_final_name(base, strategy.caption(c.cpp_method)) for c in candidates]
            if len(set(names)) != len(names):
                continue
            if any(n != base and n in taken for n in names):
                continue
            return names
        raise DisambiguationError(
            base,
            [c.cpp_method.short_text() for c in candidates],
            include_file=self.include_file,
        )


__all__ = [
    "TypeCaptionStrategy",
    "ArgumentCaptionStrategy",
    "MethodCaptionStrategy",
    "base_caption",
    "type_caption",
    "c_base_name",
    "OverloadDisambiguator",
]
