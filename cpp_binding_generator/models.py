#!/usr/bin/env python3
"""
Data models describing the public surface of a C++ library.

This module provides immutable, hashable value types for:
- C++ types (a closed union of base types plus indirection and constness)
- Functions and class methods (membership, operators, default arguments, templates)
- Type declarations (classes with their base specifiers, enums)
- The aggregate `CppData` produced by the parsing collaborator, including the data
  of linked-against libraries (`dependencies`)
- The generation context of a single command line run

The models are consumed by:
- The inheritance resolver and the method filter (selection only, never mutation)
- The type mapper, which pairs every C++ type occurrence with its FFI shim and host types
- The manifest and report writers, through `to_dict()`

`CppTypeBase` is a `Union` of unrelated frozen dataclasses. Consumers dispatch with
`isinstance` and end with an explicit `TypeError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import InputFormatError

# --------------------------
# Enumerations
# --------------------------


class CppTypeIndirection(Enum):
    NONE = "none"
    PTR = "ptr"
    REF = "ref"
    PTR_REF = "ptr_ref"
    PTR_PTR = "ptr_ptr"
    RVALUE_REF = "rvalue_ref"


class CppBuiltInNumericType(Enum):
    """
    Built-in C++ arithmetic types. The value is the C++ spelling.
    """
    BOOL = "bool"
    CHAR = "char"
    SCHAR = "signed char"
    UCHAR = "unsigned char"
    WCHAR = "wchar_t"
    CHAR16 = "char16_t"
    CHAR32 = "char32_t"
    SHORT = "short"
    USHORT = "unsigned short"
    INT = "int"
    UINT = "unsigned int"
    LONG = "long"
    ULONG = "unsigned long"
    LONG_LONG = "long long"
    ULONG_LONG = "unsigned long long"
    INT128 = "__int128"
    UINT128 = "unsigned __int128"
    FLOAT = "float"
    DOUBLE = "double"
    LONG_DOUBLE = "long double"

    @property
    def cpp_code(self) -> str:
        return self.value

    @property
    def host_ffi_name(self) -> Optional[str]:
        """Host FFI spelling (libc style), None if the type has no portable ABI mapping."""
        return _BUILTIN_HOST_FFI_NAMES.get(self)


_BUILTIN_HOST_FFI_NAMES: Dict[CppBuiltInNumericType, str] = {
    CppBuiltInNumericType.BOOL: "bool",
    CppBuiltInNumericType.CHAR: "libc::c_char",
    CppBuiltInNumericType.SCHAR: "libc::c_schar",
    CppBuiltInNumericType.UCHAR: "libc::c_uchar",
    CppBuiltInNumericType.WCHAR: "libc::wchar_t",
    CppBuiltInNumericType.CHAR16: "u16",
    CppBuiltInNumericType.CHAR32: "u32",
    CppBuiltInNumericType.SHORT: "libc::c_short",
    CppBuiltInNumericType.USHORT: "libc::c_ushort",
    CppBuiltInNumericType.INT: "libc::c_int",
    CppBuiltInNumericType.UINT: "libc::c_uint",
    CppBuiltInNumericType.LONG: "libc::c_long",
    CppBuiltInNumericType.ULONG: "libc::c_ulong",
    CppBuiltInNumericType.LONG_LONG: "libc::c_longlong",
    CppBuiltInNumericType.ULONG_LONG: "libc::c_ulonglong",
    CppBuiltInNumericType.INT128: "i128",
    CppBuiltInNumericType.UINT128: "u128",
    CppBuiltInNumericType.FLOAT: "libc::c_float",
    CppBuiltInNumericType.DOUBLE: "libc::c_double",
}


class CppSpecificNumericKind(Enum):
    SIGNED_INTEGER = "signed"
    UNSIGNED_INTEGER = "unsigned"
    FLOATING_POINT = "float"


class CppVisibility(Enum):
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"


class CppMethodKind(Enum):
    REGULAR = "regular"
    CONSTRUCTOR = "constructor"
    DESTRUCTOR = "destructor"


class CppFieldAccessorType(Enum):
    COPY_GETTER = "copy_getter"
    CONST_REF_GETTER = "const_ref_getter"
    MUT_REF_GETTER = "mut_ref_getter"
    SETTER = "setter"


class CppOperator(Enum):
    """
    Closed set of C++ operators. The value is the identifier used in shim names.
    The target type of a conversion operator is the method's return type.
    """
    CONVERSION = "convert"
    ASSIGNMENT = "assign"
    ADDITION = "add"
    SUBTRACTION = "sub"
    UNARY_PLUS = "unary_plus"
    UNARY_MINUS = "neg"
    MULTIPLICATION = "mul"
    DIVISION = "div"
    MODULO = "rem"
    PREFIX_INCREMENT = "inc"
    POSTFIX_INCREMENT = "inc_postfix"
    PREFIX_DECREMENT = "dec"
    POSTFIX_DECREMENT = "dec_postfix"
    EQUAL_TO = "eq"
    NOT_EQUAL_TO = "neq"
    GREATER_THAN = "gt"
    LESS_THAN = "lt"
    GREATER_THAN_OR_EQUAL_TO = "ge"
    LESS_THAN_OR_EQUAL_TO = "le"
    LOGICAL_NOT = "not"
    LOGICAL_AND = "and"
    LOGICAL_OR = "or"
    BITWISE_NOT = "bit_not"
    BITWISE_AND = "bit_and"
    BITWISE_OR = "bit_or"
    BITWISE_XOR = "bit_xor"
    BITWISE_LEFT_SHIFT = "shl"
    BITWISE_RIGHT_SHIFT = "shr"
    ADDITION_ASSIGNMENT = "add_assign"
    SUBTRACTION_ASSIGNMENT = "sub_assign"
    MULTIPLICATION_ASSIGNMENT = "mul_assign"
    DIVISION_ASSIGNMENT = "div_assign"
    MODULO_ASSIGNMENT = "rem_assign"
    BITWISE_AND_ASSIGNMENT = "bit_and_assign"
    BITWISE_OR_ASSIGNMENT = "bit_or_assign"
    BITWISE_XOR_ASSIGNMENT = "bit_xor_assign"
    BITWISE_LEFT_SHIFT_ASSIGNMENT = "shl_assign"
    BITWISE_RIGHT_SHIFT_ASSIGNMENT = "shr_assign"
    SUBSCRIPT = "index"
    INDIRECTION = "indirection"
    ADDRESS_OF = "address_of"
    STRUCTURE_DEREFERENCE = "struct_deref"
    POINTER_TO_MEMBER = "ptr_to_member"
    FUNCTION_CALL = "call"
    COMMA = "comma"
    NEW = "new"
    NEW_ARRAY = "new_array"
    DELETE = "delete"
    DELETE_ARRAY = "delete_array"

    @property
    def c_name(self) -> str:
        return self.value


# --------------------------
# C++ type model
# --------------------------

@dataclass(frozen=True)
class CppVoid:
    pass


@dataclass(frozen=True)
class CppBuiltInNumeric:
    kind: CppBuiltInNumericType


@dataclass(frozen=True)
class CppSpecificNumeric:
    """Fixed-size numeric typedef, like qint64 or uint8_t."""
    name: str
    bits: int
    kind: CppSpecificNumericKind


@dataclass(frozen=True)
class CppPointerSizedInteger:
    """Pointer-sized integer typedef, like qintptr."""
    name: str
    is_signed: bool


@dataclass(frozen=True)
class CppEnumType:
    name: str


@dataclass(frozen=True)
class CppClassType:
    """
    Class type, optionally with template arguments (`QHash<QString, int>`).
    """
    name: str
    template_arguments: Optional[Tuple["CppType", ...]] = None


@dataclass(frozen=True)
class CppTemplateParameter:
    """
    Template parameter like `T` inside `QVector<T>`. `nested_level` is 0 for the
    outermost template, `index` is the position in its parameter list.
    """
    nested_level: int
    index: int


@dataclass(frozen=True)
class CppFunctionPointer:
    return_type: "CppType"
    arguments: Tuple["CppType", ...] = ()
    allows_variadic_arguments: bool = False


CppTypeBase = Union[
    CppVoid,
    CppBuiltInNumeric,
    CppSpecificNumeric,
    CppPointerSizedInteger,
    CppEnumType,
    CppClassType,
    CppTemplateParameter,
    CppFunctionPointer,
]


@dataclass(frozen=True)
class CppType:
    """
    A C++ type occurrence: base type, indirection and constness.

    `is_const2` is the constness behind the second indirection, e.g. true for `int* const*`.
    Equality and hashing are structural, which lets types act as dictionary keys.
    """
    base: CppTypeBase
    indirection: CppTypeIndirection = CppTypeIndirection.NONE
    is_const: bool = False
    is_const2: bool = False

    @staticmethod
    def void() -> CppType:
        return CppType(base=CppVoid())

    @staticmethod
    def builtin(kind: CppBuiltInNumericType, indirection: CppTypeIndirection = CppTypeIndirection.NONE, is_const: bool = False) -> CppType:
        return CppType(base=CppBuiltInNumeric(kind), indirection=indirection, is_const=is_const)

    @staticmethod
    def of_class(
        name: str,
        indirection: CppTypeIndirection = CppTypeIndirection.NONE,
        is_const: bool = False,
        template_arguments: Optional[Sequence[CppType]] = None,
    ) -> CppType:
        args = tuple(template_arguments) if template_arguments is not None else None
        return CppType(base=CppClassType(name, args), indirection=indirection, is_const=is_const)

    @staticmethod
    def of_enum(name: str, indirection: CppTypeIndirection = CppTypeIndirection.NONE, is_const: bool = False) -> CppType:
        return CppType(base=CppEnumType(name), indirection=indirection, is_const=is_const)

    def with_indirection(self, indirection: CppTypeIndirection, is_const: Optional[bool] = None) -> CppType:
        return replace(self, indirection=indirection, is_const=self.is_const if is_const is None else is_const)

    @property
    def is_class(self) -> bool:
        return isinstance(self.base, CppClassType)

    @property
    def is_void(self) -> bool:
        return isinstance(self.base, CppVoid) and self.indirection == CppTypeIndirection.NONE

    def to_cpp_code(self) -> str:
        """
        C++ spelling of the type, for diagnostics and manifests.
        """
        if isinstance(self.base, CppFunctionPointer):
            fp = self.base
            args = [a.to_cpp_code() for a in fp.arguments]
            if fp.allows_variadic_arguments:
                args.append("...")
            return f"{fp.return_type.to_cpp_code()} (*)({', '.join(args)})"
        code = _base_cpp_code(self.base)
        if self.is_const:
            code = f"const {code}"
        ind = self.indirection
        if ind == CppTypeIndirection.PTR:
            code += "*"
        elif ind == CppTypeIndirection.REF:
            code += "&"
        elif ind == CppTypeIndirection.RVALUE_REF:
            code += "&&"
        elif ind == CppTypeIndirection.PTR_PTR:
            code += "* const*" if self.is_const2 else "**"
        elif ind == CppTypeIndirection.PTR_REF:
            code += "* const&" if self.is_const2 else "*&"
        return code

    def to_dict(self) -> Dict:
        return {
            "base": _base_to_dict(self.base),
            "indirection": self.indirection.value,
            "is_const": self.is_const,
            "is_const2": self.is_const2,
        }

    @staticmethod
    def from_dict(data: Dict) -> CppType:
        try:
            return CppType(
                base=_base_from_dict(data["base"]),
                indirection=CppTypeIndirection(data.get("indirection", "none")),
                is_const=bool(data.get("is_const", False)),
                is_const2=bool(data.get("is_const2", False)),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise InputFormatError(f"invalid C++ type: {data!r}") from e


def _base_cpp_code(base: CppTypeBase) -> str:
    if isinstance(base, CppVoid):
        return "void"
    if isinstance(base, CppBuiltInNumeric):
        return base.kind.cpp_code
    if isinstance(base, (CppSpecificNumeric, CppPointerSizedInteger, CppEnumType)):
        return base.name
    if isinstance(base, CppClassType):
        if base.template_arguments:
            return f"{base.name}<{', '.join(a.to_cpp_code() for a in base.template_arguments)}>"
        return base.name
    if isinstance(base, CppTemplateParameter):
        return f"T{base.nested_level}_{base.index}"
    if isinstance(base, CppFunctionPointer):
        return CppType(base=base).to_cpp_code()
    raise TypeError(f"unexpected C++ type base: {base!r}")


def _base_to_dict(base: CppTypeBase) -> Dict:
    if isinstance(base, CppVoid):
        return {"kind": "void"}
    if isinstance(base, CppBuiltInNumeric):
        return {"kind": "builtin", "type": base.kind.value}
    if isinstance(base, CppSpecificNumeric):
        return {"kind": "specific_numeric", "name": base.name, "bits": base.bits, "numeric_kind": base.kind.value}
    if isinstance(base, CppPointerSizedInteger):
        return {"kind": "pointer_sized_integer", "name": base.name, "is_signed": base.is_signed}
    if isinstance(base, CppEnumType):
        return {"kind": "enum", "name": base.name}
    if isinstance(base, CppClassType):
        return {
            "kind": "class",
            "name": base.name,
            "template_arguments": [a.to_dict() for a in base.template_arguments]
            if base.template_arguments is not None else None,
        }
    if isinstance(base, CppTemplateParameter):
        return {"kind": "template_parameter", "nested_level": base.nested_level, "index": base.index}
    if isinstance(base, CppFunctionPointer):
        return {
            "kind": "function_pointer",
            "return_type": base.return_type.to_dict(),
            "arguments": [a.to_dict() for a in base.arguments],
            "allows_variadic_arguments": base.allows_variadic_arguments,
        }
    raise TypeError(f"unexpected C++ type base: {base!r}")


def _optional_types(data: Optional[Sequence[Dict]]) -> Optional[Tuple[CppType, ...]]:
    if data is None:
        return None
    return tuple(CppType.from_dict(a) for a in data)


def _require_mapping(data: Any, what: str) -> Dict:
    if not isinstance(data, dict):
        raise InputFormatError(f"expected a mapping for {what}, got {type(data).__name__}: {data!r}")
    return data


def _require_list(value: Any, what: str) -> List[Any]:
    if not isinstance(value, list):
        raise InputFormatError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _entries(data: Dict, key: str) -> List[Any]:
    """List-valued field `key` of `data`; missing means empty."""
    return _require_list(data.get(key, []), f"field {key!r}")


def _base_from_dict(data: Dict) -> CppTypeBase:
    kind = data["kind"]
    if kind == "void":
        return CppVoid()
    if kind == "builtin":
        return CppBuiltInNumeric(CppBuiltInNumericType(data["type"]))
    if kind == "specific_numeric":
        return CppSpecificNumeric(
            name=data["name"],
            bits=int(data["bits"]),
            kind=CppSpecificNumericKind(data["numeric_kind"]),
        )
    if kind == "pointer_sized_integer":
        return CppPointerSizedInteger(name=data["name"], is_signed=bool(data["is_signed"]))
    if kind == "enum":
        return CppEnumType(name=data["name"])
    if kind == "class":
        return CppClassType(name=data["name"], template_arguments=_optional_types(data.get("template_arguments")))
    if kind == "template_parameter":
        return CppTemplateParameter(nested_level=int(data["nested_level"]), index=int(data["index"]))
    if kind == "function_pointer":
        return CppFunctionPointer(
            return_type=CppType.from_dict(data["return_type"]),
            arguments=tuple(CppType.from_dict(a) for a in data.get("arguments", [])),
            allows_variadic_arguments=bool(data.get("allows_variadic_arguments", False)),
        )
    raise InputFormatError(f"unknown type base kind: {kind!r}")


def contains_template_parameter(t: CppType) -> bool:
    """
    True if a template parameter occurs anywhere inside `t` (template arguments and
    function pointer signatures included).
    """
    base = t.base
    if isinstance(base, CppTemplateParameter):
        return True
    if isinstance(base, CppClassType):
        return any(contains_template_parameter(a) for a in base.template_arguments or ())
    if isinstance(base, CppFunctionPointer):
        return contains_template_parameter(base.return_type) or any(
            contains_template_parameter(a) for a in base.arguments
        )
    return False


# --------------------------
# Method/argument models
# --------------------------

@dataclass(frozen=True)
class CppFunctionArgument:
    name: str
    argument_type: CppType
    has_default_value: bool = False

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "argument_type": self.argument_type.to_dict(),
            "has_default_value": self.has_default_value,
        }

    @staticmethod
    def from_dict(data: Dict) -> CppFunctionArgument:
        return CppFunctionArgument(
            name=data.get("name", ""),
            argument_type=CppType.from_dict(data["argument_type"]),
            has_default_value=bool(data.get("has_default_value", False)),
        )


@dataclass(frozen=True)
class CppFieldAccessor:
    """Marks a method synthesized to read or write a public field."""
    accessor_type: CppFieldAccessorType
    field_name: str


@dataclass(frozen=True)
class TemplateArgumentsDeclaration:
    nested_level: int
    names: Tuple[str, ...]

    def to_dict(self) -> Dict:
        return {"nested_level": self.nested_level, "names": list(self.names)}

    @staticmethod
    def from_dict(data: Optional[Dict]) -> Optional[TemplateArgumentsDeclaration]:
        if data is None:
            return None
        return TemplateArgumentsDeclaration(nested_level=int(data.get("nested_level", 0)), names=tuple(data.get("names", [])))


@dataclass(frozen=True)
class CppBaseSpecifier:
    base_type: CppType
    is_virtual: bool = False
    visibility: CppVisibility = CppVisibility.PUBLIC

    def to_dict(self) -> Dict:
        return {
            "base_type": self.base_type.to_dict(),
            "is_virtual": self.is_virtual,
            "visibility": self.visibility.value,
        }

    @staticmethod
    def from_dict(data: Dict) -> CppBaseSpecifier:
        return CppBaseSpecifier(
            base_type=CppType.from_dict(data["base_type"]),
            is_virtual=bool(data.get("is_virtual", False)),
            visibility=CppVisibility(data.get("visibility", "public")),
        )


@dataclass(frozen=True)
class CppMethodClassMembership:
    class_type: CppClassType
    kind: CppMethodKind = CppMethodKind.REGULAR
    is_virtual: bool = False
    is_pure_virtual: bool = False
    is_const: bool = False
    is_static: bool = False
    visibility: CppVisibility = CppVisibility.PUBLIC
    is_signal: bool = False
    is_slot: bool = False
    fake: Optional[CppFieldAccessor] = None

    def to_dict(self) -> Dict:
        return {
            "class_type": _base_to_dict(self.class_type),
            "kind": self.kind.value,
            "is_virtual": self.is_virtual,
            "is_pure_virtual": self.is_pure_virtual,
            "is_const": self.is_const,
            "is_static": self.is_static,
            "visibility": self.visibility.value,
            "is_signal": self.is_signal,
            "is_slot": self.is_slot,
            "fake": {"accessor_type": self.fake.accessor_type.value, "field_name": self.fake.field_name}
            if self.fake else None,
        }

    @staticmethod
    def from_dict(data: Dict) -> CppMethodClassMembership:
        class_type = data["class_type"]
        fake = data.get("fake")
        membership = CppMethodClassMembership(
            class_type=CppClassType(
                name=class_type["name"],
                template_arguments=_optional_types(class_type.get("template_arguments")),
            ),
            kind=CppMethodKind(data.get("kind", "regular")),
            is_virtual=bool(data.get("is_virtual", False)),
            is_pure_virtual=bool(data.get("is_pure_virtual", False)),
            is_const=bool(data.get("is_const", False)),
            is_static=bool(data.get("is_static", False)),
            visibility=CppVisibility(data.get("visibility", "public")),
            is_signal=bool(data.get("is_signal", False)),
            is_slot=bool(data.get("is_slot", False)),
            fake=CppFieldAccessor(CppFieldAccessorType(fake["accessor_type"]), fake["field_name"]) if fake else None,
        )
        if membership.is_pure_virtual and not membership.is_virtual:
            raise InputFormatError(f"pure virtual method of {membership.class_type.name} is not virtual")
        return membership


@dataclass(frozen=True)
class CppMethod:
    """
    A C++ function or class method. Overloads are separate instances.

    `arguments_before_omitting` is set on variants synthesized by dropping trailing
    arguments with default values and records the full original argument list.
    `inheritance_chain` lists the base specifiers the method was pulled through,
    most-base first.
    """
    name: str
    return_type: CppType = field(default_factory=CppType.void)
    arguments: Tuple[CppFunctionArgument, ...] = ()
    class_membership: Optional[CppMethodClassMembership] = None
    operator: Optional[CppOperator] = None
    arguments_before_omitting: Optional[Tuple[CppFunctionArgument, ...]] = None
    allows_variadic_arguments: bool = False
    include_file: str = ""
    template_arguments: Optional[TemplateArgumentsDeclaration] = None
    template_arguments_values: Optional[Tuple[CppType, ...]] = None
    declaration_code: Optional[str] = None
    inheritance_chain: Tuple[CppBaseSpecifier, ...] = ()
    is_unsafe_static_cast: bool = False

    def class_name(self) -> Optional[str]:
        return self.class_membership.class_type.name if self.class_membership else None

    @property
    def is_constructor(self) -> bool:
        return bool(self.class_membership and self.class_membership.kind == CppMethodKind.CONSTRUCTOR)

    @property
    def is_destructor(self) -> bool:
        return bool(self.class_membership and self.class_membership.kind == CppMethodKind.DESTRUCTOR)

    @property
    def is_static(self) -> bool:
        return bool(self.class_membership and self.class_membership.is_static)

    @property
    def is_const(self) -> bool:
        return bool(self.class_membership and self.class_membership.is_const)

    @property
    def is_pure_virtual(self) -> bool:
        return bool(self.class_membership and self.class_membership.is_pure_virtual)

    @property
    def has_this(self) -> bool:
        """True if the shim function receives the object pointer."""
        return bool(self.class_membership and not self.class_membership.is_static and not self.is_constructor)

    def argument_types(self) -> Tuple[CppType, ...]:
        return tuple(a.argument_type for a in self.arguments)

    def argument_types_equal(self, other: CppMethod) -> bool:
        return self.argument_types() == other.argument_types()

    def overrides(self, other: CppMethod) -> bool:
        """Same name and identical argument types: `self` shadows `other`."""
        return self.name == other.name and self.argument_types_equal(other)

    @property
    def signature_key(self) -> Tuple:
        """
        Identity of an overload: owning class, name, argument types, constness, staticness
        and template instantiation.
        """
        return (
            self.class_name(),
            self.name,
            self.argument_types(),
            self.is_const,
            self.is_static,
            self.template_arguments_values,
        )

    def short_text(self) -> str:
        """
        Single line C++ declaration, used in diagnostics.
        """
        parts: List[str] = []
        m = self.class_membership
        if m is not None:
            if m.is_static:
                parts.append("static")
            if m.is_virtual:
                parts.append("virtual")
            if m.visibility != CppVisibility.PUBLIC:
                parts.append(m.visibility.value + ":")
            if m.is_signal:
                parts.append("[signal]")
        if not (self.is_constructor or self.is_destructor):
            parts.append(self.return_type.to_cpp_code())
        scope = f"{self.class_name()}::" if m is not None else ""
        args = []
        for a in self.arguments:
            text = f"{a.argument_type.to_cpp_code()} {a.name}".strip()
            if a.has_default_value:
                text += " = ?"
            args.append(text)
        if self.allows_variadic_arguments:
            args.append("...")
        signature = f"{scope}{self.name}({', '.join(args)})"
        if m is not None and m.is_const:
            signature += " const"
        if m is not None and m.is_pure_virtual:
            signature += " = 0"
        parts.append(signature)
        return " ".join(parts)

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "class_membership": self.class_membership.to_dict() if self.class_membership else None,
            "operator": self.operator.name.lower() if self.operator else None,
            "return_type": self.return_type.to_dict(),
            "arguments": [a.to_dict() for a in self.arguments],
            "arguments_before_omitting": [a.to_dict() for a in self.arguments_before_omitting]
            if self.arguments_before_omitting is not None else None,
            "allows_variadic_arguments": self.allows_variadic_arguments,
            "include_file": self.include_file,
            "template_arguments": self.template_arguments.to_dict() if self.template_arguments else None,
            "template_arguments_values": [t.to_dict() for t in self.template_arguments_values]
            if self.template_arguments_values is not None else None,
            "declaration_code": self.declaration_code,
            "inheritance_chain": [b.to_dict() for b in self.inheritance_chain],
            "is_unsafe_static_cast": self.is_unsafe_static_cast,
        }

    @staticmethod
    def from_dict(data: Dict) -> CppMethod:
        _require_mapping(data, "a method description")
        try:
            before = data.get("arguments_before_omitting")
            operator = data.get("operator")
            return CppMethod(
                name=data["name"],
                return_type=CppType.from_dict(data["return_type"]) if data.get("return_type") else CppType.void(),
                arguments=tuple(CppFunctionArgument.from_dict(a) for a in _entries(data, "arguments")),
                class_membership=CppMethodClassMembership.from_dict(data["class_membership"])
                if data.get("class_membership") else None,
                operator=CppOperator[operator.upper()] if operator else None,
                arguments_before_omitting=tuple(CppFunctionArgument.from_dict(a) for a in before)
                if before is not None else None,
                allows_variadic_arguments=bool(data.get("allows_variadic_arguments", False)),
                include_file=data.get("include_file", ""),
                template_arguments=TemplateArgumentsDeclaration.from_dict(data.get("template_arguments")),
                template_arguments_values=_optional_types(data.get("template_arguments_values")),
                declaration_code=data.get("declaration_code"),
                inheritance_chain=tuple(CppBaseSpecifier.from_dict(b) for b in _entries(data, "inheritance_chain")),
                is_unsafe_static_cast=bool(data.get("is_unsafe_static_cast", False)),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise InputFormatError(f"invalid method description {data.get('name')!r}: {e}") from e


# --------------------------
# Type declaration models
# --------------------------

@dataclass(frozen=True)
class CppEnumValue:
    name: str
    value: int


@dataclass(frozen=True)
class CppClassField:
    name: str
    field_type: CppType
    visibility: CppVisibility = CppVisibility.PUBLIC


@dataclass(frozen=True)
class CppEnumKind:
    values: Tuple[CppEnumValue, ...] = ()


@dataclass(frozen=True)
class CppClassKind:
    bases: Tuple[CppBaseSpecifier, ...] = ()
    fields: Tuple[CppClassField, ...] = ()
    template_arguments: Optional[TemplateArgumentsDeclaration] = None


CppTypeKind = Union[CppEnumKind, CppClassKind]


@dataclass(frozen=True)
class CppTypeData:
    name: str
    include_file: str
    kind: CppTypeKind

    @property
    def is_class(self) -> bool:
        return isinstance(self.kind, CppClassKind)

    def to_dict(self) -> Dict:
        if isinstance(self.kind, CppEnumKind):
            kind = {"kind": "enum", "values": [{"name": v.name, "value": v.value} for v in self.kind.values]}
        elif isinstance(self.kind, CppClassKind):
            kind = {
                "kind": "class",
                "bases": [b.to_dict() for b in self.kind.bases],
                "fields": [
                    {"name": f.name, "field_type": f.field_type.to_dict(), "visibility": f.visibility.value}
                    for f in self.kind.fields
                ],
                "template_arguments": self.kind.template_arguments.to_dict() if self.kind.template_arguments else None,
            }
        else:
            raise TypeError(f"unexpected type kind: {self.kind!r}")
        return {"name": self.name, "include_file": self.include_file, "kind": kind}

    @staticmethod
    def from_dict(data: Dict) -> CppTypeData:
        _require_mapping(data, "a type declaration")
        try:
            kind_data = _require_mapping(data["kind"], "a type declaration kind")
            kind_name = kind_data["kind"]
            kind: CppTypeKind
            if kind_name == "enum":
                kind = CppEnumKind(values=tuple(
                    CppEnumValue(v["name"], int(v["value"])) for v in _entries(kind_data, "values")
                ))
            elif kind_name == "class":
                kind = CppClassKind(
                    bases=tuple(CppBaseSpecifier.from_dict(b) for b in _entries(kind_data, "bases")),
                    fields=tuple(
                        CppClassField(
                            name=f["name"],
                            field_type=CppType.from_dict(f["field_type"]),
                            visibility=CppVisibility(f.get("visibility", "public")),
                        )
                        for f in _entries(kind_data, "fields")
                    ),
                    template_arguments=TemplateArgumentsDeclaration.from_dict(kind_data.get("template_arguments")),
                )
            else:
                raise InputFormatError(f"unknown type declaration kind: {kind_name!r}")
            return CppTypeData(name=data["name"], include_file=data.get("include_file", ""), kind=kind)
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            raise InputFormatError(f"invalid type declaration {data.get('name')!r}: {e}") from e


@dataclass(frozen=True)
class CppTemplateInstantiations:
    class_name: str
    instantiations: Tuple[Tuple[CppType, ...], ...] = ()


# --------------------------
# Aggregate parser output
# --------------------------

@dataclass(frozen=True)
class CppData:
    """
    Everything the parsing collaborator discovered for one library, plus the data of
    the libraries it links against. Identifiers may repeat across dependencies; lookups
    search this library first, then dependencies depth-first in declaration order.
    """
    types: Tuple[CppTypeData, ...] = ()
    methods: Tuple[CppMethod, ...] = ()
    template_instantiations: Tuple[CppTemplateInstantiations, ...] = ()
    signal_argument_types: Tuple[Tuple[CppType, ...], ...] = ()
    dependencies: Tuple["CppData", ...] = ()
    library_name: str = ""

    def iter_levels(self) -> Iterator[CppData]:
        """Yield this data, then every dependency (depth-first, declaration order)."""
        stack: List[CppData] = [self]
        while stack:
            data = stack.pop()
            yield data
            stack.extend(reversed(data.dependencies))

    def find_type_info(self, name: str) -> Optional[CppTypeData]:
        owner = self.find_type_owner(name)
        if owner is None:
            return None
        return next(t for t in owner.types if t.name == name)

    def find_type_owner(self, name: str) -> Optional[CppData]:
        for level in self.iter_levels():
            if any(t.name == name for t in level.types):
                return level
        return None

    def is_template_class(self, name: str) -> bool:
        """
        True for a class declaring template parameters, or deriving from a base whose
        template arguments still mention template parameters.
        """
        info = self.find_type_info(name)
        if info is None or not isinstance(info.kind, CppClassKind):
            return False
        if info.kind.template_arguments is not None:
            return True
        for base in info.kind.bases:
            if contains_template_parameter(base.base_type):
                return True
        return False

    def template_instantiations_of(self, class_name: str) -> List[Tuple[CppType, ...]]:
        found: List[Tuple[CppType, ...]] = []
        for level in self.iter_levels():
            for record in level.template_instantiations:
                if record.class_name == class_name:
                    found.extend(record.instantiations)
        return found

    def split_by_headers(self) -> Dict[str, CppData]:
        """
        Partition own types and methods by declaring header. Keys are sorted.
        """
        types: Dict[str, List[CppTypeData]] = {}
        methods: Dict[str, List[CppMethod]] = {}
        for t in self.types:
            types.setdefault(t.include_file, []).append(t)
        for m in self.methods:
            methods.setdefault(m.include_file, []).append(m)
        result: Dict[str, CppData] = {}
        for include_file in sorted(set(types) | set(methods)):
            result[include_file] = CppData(
                types=tuple(types.get(include_file, [])),
                methods=tuple(methods.get(include_file, [])),
                library_name=self.library_name,
            )
        return result

    def to_dict(self) -> Dict:
        return {
            "library_name": self.library_name,
            "types": [t.to_dict() for t in self.types],
            "methods": [m.to_dict() for m in self.methods],
            "template_instantiations": [
                {
                    "class_name": r.class_name,
                    "instantiations": [
                        {"template_arguments": [a.to_dict() for a in inst]} for inst in r.instantiations
                    ],
                }
                for r in self.template_instantiations
            ],
            "signal_argument_types": [[a.to_dict() for a in sig] for sig in self.signal_argument_types],
            "dependencies": [d.to_dict() for d in self.dependencies],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> CppData:
        if not isinstance(data, dict):
            raise InputFormatError(f"expected a mapping at the top level, got {type(data).__name__}")
        try:
            instantiations = tuple(
                CppTemplateInstantiations(
                    class_name=r["class_name"],
                    instantiations=tuple(
                        tuple(CppType.from_dict(a) for a in inst.get("template_arguments", []))
                        for inst in _entries(r, "instantiations")
                    ),
                )
                for r in _entries(data, "template_instantiations")
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InputFormatError(f"invalid template instantiation record: {e}") from e
        return CppData(
            types=tuple(CppTypeData.from_dict(t) for t in _entries(data, "types")),
            methods=tuple(CppMethod.from_dict(m) for m in _entries(data, "methods")),
            template_instantiations=instantiations,
            signal_argument_types=tuple(
                tuple(CppType.from_dict(a) for a in _require_list(sig, "a signal signature"))
                for sig in _entries(data, "signal_argument_types")
            ),
            dependencies=tuple(CppData.from_dict(d) for d in _entries(data, "dependencies")),
            library_name=data.get("library_name", ""),
        )


# --------------------------
# Generation context
# --------------------------

@dataclass
class GenerationContext:
    """
    Parameters for a single command line run.

    Paths are absolute. Writers should rely on these rather than guessing.
    """
    output_dir: Path
    templates_dir: Optional[Path]
    crate_name: str
    input_path: Optional[Path] = None
    dry_run: bool = False

    def to_dict(self) -> Dict:
        return {
            "output_dir": str(self.output_dir),
            "templates_dir": str(self.templates_dir) if self.templates_dir else None,
            "crate_name": self.crate_name,
            "input_path": str(self.input_path) if self.input_path else None,
            "dry_run": self.dry_run,
        }


__all__ = [
    "CppTypeIndirection",
    "CppBuiltInNumericType",
    "CppSpecificNumericKind",
    "CppVisibility",
    "CppMethodKind",
    "CppFieldAccessorType",
    "CppOperator",
    "CppVoid",
    "CppBuiltInNumeric",
    "CppSpecificNumeric",
    "CppPointerSizedInteger",
    "CppEnumType",
    "CppClassType",
    "CppTemplateParameter",
    "CppFunctionPointer",
    "CppTypeBase",
    "CppType",
    "contains_template_parameter",
    "CppFunctionArgument",
    "CppFieldAccessor",
    "TemplateArgumentsDeclaration",
    "CppBaseSpecifier",
    "CppMethodClassMembership",
    "CppMethod",
    "CppEnumValue",
    "CppClassField",
    "CppEnumKind",
    "CppClassKind",
    "CppTypeKind",
    "CppTypeData",
    "CppTemplateInstantiations",
    "CppData",
    "GenerationContext",
]
