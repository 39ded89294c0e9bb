#!/usr/bin/env python3
import pytest

from builders import DOUBLE, INT, PTR, REF, VOID, arg, class_decl, constructor, destructor, enum_decl, library, method
from cpp_binding_generator.diagnostics import DiagnosticKind, Diagnostics
from cpp_binding_generator.errors import TypeConversionError
from cpp_binding_generator.host_types import (
    HostName,
    HostToShimConversion,
    IndirectionChange,
)
from cpp_binding_generator.models import (
    CppBuiltInNumericType,
    CppClassType,
    CppFunctionPointer,
    CppPointerSizedInteger,
    CppSpecificNumeric,
    CppSpecificNumericKind,
    CppTemplateParameter,
    CppType,
    CppTypeIndirection,
    CppVisibility,
)
from cpp_binding_generator.type_mapping import MappingConfig, TypeMapper, TypeRole, expand_default_arguments

POINT = CppType.of_class("QPoint")
FLAGS = CppType.of_class("QFlags", template_arguments=[CppType.of_enum("Qt::AlignmentFlag")])


@pytest.fixture
def mapper():
    data = library(
        types=[
            class_decl("QPoint", "qpoint.h"),
            class_decl("QObject", "qobject.h"),
            class_decl("QFlags", "qflags.h", template_params=["Enum"]),
            enum_decl("Qt::AlignmentFlag", "qnamespace.h"),
        ],
        methods=[destructor("QObject", visibility=CppVisibility.PROTECTED)],
    )
    return TypeMapper(data, MappingConfig(crate_name="qt_core"))


def _code(t):
    return t.to_code()


def test_numbers_pass_unchanged(mapper):
    t = mapper.complete_type(INT, TypeRole.ARGUMENT)
    assert t.cpp_to_shim_conversion == IndirectionChange.NO_CHANGE
    assert t.cpp_shim_type == INT
    assert _code(t.host_shim_type) == "libc::c_int"
    assert _code(t.host_api_type) == "libc::c_int"
    assert t.host_api_to_shim_conversion == HostToShimConversion.NONE


def test_typedef_numbers(mapper):
    qint64 = CppType(base=CppSpecificNumeric("qint64", 64, CppSpecificNumericKind.SIGNED_INTEGER))
    quint8 = CppType(base=CppSpecificNumeric("quint8", 8, CppSpecificNumericKind.UNSIGNED_INTEGER))
    qreal = CppType(base=CppSpecificNumeric("qreal", 64, CppSpecificNumericKind.FLOATING_POINT))
    qintptr = CppType(base=CppPointerSizedInteger("qintptr", True))
    assert _code(mapper.complete_type(qint64, TypeRole.ARGUMENT).host_shim_type) == "i64"
    assert _code(mapper.complete_type(quint8, TypeRole.ARGUMENT).host_shim_type) == "u8"
    assert _code(mapper.complete_type(qreal, TypeRole.ARGUMENT).host_shim_type) == "f64"
    assert _code(mapper.complete_type(qintptr, TypeRole.ARGUMENT).host_shim_type) == "isize"

    half = CppType(base=CppSpecificNumeric("qfloat16", 16, CppSpecificNumericKind.FLOATING_POINT))
    with pytest.raises(TypeConversionError):
        mapper.complete_type(half, TypeRole.ARGUMENT)
    with pytest.raises(TypeConversionError):
        mapper.complete_type(CppType.builtin(CppBuiltInNumericType.LONG_DOUBLE), TypeRole.ARGUMENT)


def test_class_by_value_argument_is_borrowed(mapper):
    t = mapper.complete_type(POINT, TypeRole.ARGUMENT)
    assert t.cpp_to_shim_conversion == IndirectionChange.VALUE_TO_POINTER
    assert t.cpp_shim_type == POINT.with_indirection(PTR, is_const=True)
    assert _code(t.host_shim_type) == "*const qt_core::qpoint::QPoint"
    assert _code(t.host_api_type) == "&qt_core::qpoint::QPoint"
    assert t.host_api_to_shim_conversion == HostToShimConversion.REF_TO_PTR


def test_class_by_value_return_is_boxed(mapper):
    t = mapper.complete_type(POINT, TypeRole.RETURN_VALUE)
    assert t.cpp_shim_type == POINT.with_indirection(PTR)
    assert _code(t.host_shim_type) == "*mut qt_core::qpoint::QPoint"
    assert _code(t.host_api_type) == "cpp_utils::CppBox<qt_core::qpoint::QPoint>"
    assert t.host_api_to_shim_conversion == HostToShimConversion.CPP_BOX_TO_PTR
    assert t.host_api_type.to_code("qt_core") == "cpp_utils::CppBox<crate::qpoint::QPoint>"


def test_non_deletable_return_stays_a_raw_pointer(mapper):
    t = mapper.complete_type(CppType.of_class("QObject"), TypeRole.RETURN_VALUE)
    assert t.cpp_to_shim_conversion == IndirectionChange.VALUE_TO_POINTER
    assert _code(t.host_api_type) == "*mut qt_core::qobject::QObject"
    assert t.host_api_to_shim_conversion == HostToShimConversion.NONE


def test_references_become_pointers(mapper):
    const_ref = mapper.complete_type(POINT.with_indirection(REF, is_const=True), TypeRole.ARGUMENT)
    assert const_ref.cpp_to_shim_conversion == IndirectionChange.REFERENCE_TO_POINTER
    assert const_ref.cpp_shim_type == POINT.with_indirection(PTR, is_const=True)
    assert _code(const_ref.host_api_type) == "&qt_core::qpoint::QPoint"

    mut_ref = mapper.complete_type(POINT.with_indirection(REF), TypeRole.RETURN_VALUE)
    assert _code(mut_ref.host_shim_type) == "*mut qt_core::qpoint::QPoint"
    assert _code(mut_ref.host_api_type) == "&mut qt_core::qpoint::QPoint"
    assert mut_ref.host_api_to_shim_conversion == HostToShimConversion.REF_TO_PTR

    ptr_ref = mapper.complete_type(POINT.with_indirection(CppTypeIndirection.PTR_REF), TypeRole.ARGUMENT)
    assert ptr_ref.cpp_shim_type.indirection == CppTypeIndirection.PTR_PTR
    assert _code(ptr_ref.host_api_type) == "&mut *mut qt_core::qpoint::QPoint"


def test_class_pointer_argument_is_optional(mapper):
    t = mapper.complete_type(POINT.with_indirection(PTR), TypeRole.ARGUMENT)
    assert t.cpp_to_shim_conversion == IndirectionChange.NO_CHANGE
    assert _code(t.host_api_type) == "std::option::Option<&mut qt_core::qpoint::QPoint>"
    assert t.host_api_to_shim_conversion == HostToShimConversion.OPTION_REF_TO_PTR

    returned = mapper.complete_type(POINT.with_indirection(PTR), TypeRole.RETURN_VALUE)
    assert _code(returned.host_api_type) == "*mut qt_core::qpoint::QPoint"


def test_flags_cross_as_unsigned_int(mapper):
    for cpp_type in (FLAGS, FLAGS.with_indirection(REF, is_const=True)):
        t = mapper.complete_type(cpp_type, TypeRole.ARGUMENT)
        assert t.cpp_to_shim_conversion == IndirectionChange.FLAGS_TO_INTEGER
        assert t.cpp_shim_type == CppType.builtin(CppBuiltInNumericType.UINT)
        assert _code(t.host_shim_type) == "libc::c_uint"
        assert _code(t.host_api_type) == "cpp_utils::Flags<qt_core::qnamespace::QtAlignmentFlag>"
        assert t.host_api_to_shim_conversion == HostToShimConversion.FLAGS_TO_UINT

    # a mutable reference is not a flags value
    t = mapper.complete_type(FLAGS.with_indirection(REF), TypeRole.ARGUMENT)
    assert t.cpp_to_shim_conversion == IndirectionChange.REFERENCE_TO_POINTER


def test_function_pointers(mapper):
    callback = CppType(base=CppFunctionPointer(return_type=VOID, arguments=(INT,)))
    t = mapper.complete_type(callback, TypeRole.ARGUMENT)
    assert t.cpp_to_shim_conversion == IndirectionChange.NO_CHANGE
    assert _code(t.host_api_type) == 'extern "C" fn(libc::c_int)'

    by_value = CppType(base=CppFunctionPointer(return_type=INT, arguments=(POINT,)))
    with pytest.raises(TypeConversionError):
        mapper.complete_type(by_value, TypeRole.ARGUMENT)


@pytest.mark.parametrize("cpp_type", [
    CppType.builtin(CppBuiltInNumericType.INT, CppTypeIndirection.RVALUE_REF),
    CppType(base=CppTemplateParameter(0, 0)),
    CppType.of_class("QList", template_arguments=[CppType(base=CppTemplateParameter(0, 0))]),
    CppType.of_class("QUnknown"),
])
def test_unsupported_types(mapper, cpp_type):
    with pytest.raises(TypeConversionError):
        mapper.complete_type(cpp_type, TypeRole.ARGUMENT)


def test_conversions_preserve_the_cpp_type(mapper):
    samples = [
        INT, INT.with_indirection(PTR), DOUBLE.with_indirection(REF, is_const=True),
        POINT, POINT.with_indirection(PTR), POINT.with_indirection(REF),
        POINT.with_indirection(CppTypeIndirection.PTR_REF), CppType.of_enum("Qt::AlignmentFlag"),
    ]
    for cpp_type in samples:
        for role in (TypeRole.ARGUMENT, TypeRole.RETURN_VALUE):
            t = mapper.complete_type(cpp_type, role)
            if t.cpp_to_shim_conversion == IndirectionChange.NO_CHANGE:
                assert t.cpp_shim_type == t.cpp_type
            elif t.cpp_to_shim_conversion == IndirectionChange.VALUE_TO_POINTER:
                assert t.cpp_type.indirection == CppTypeIndirection.NONE
                assert isinstance(t.cpp_type.base, CppClassType)
                assert t.cpp_shim_type.base == t.cpp_type.base
                assert t.cpp_shim_type.indirection == CppTypeIndirection.PTR
            elif t.cpp_to_shim_conversion == IndirectionChange.REFERENCE_TO_POINTER:
                assert t.cpp_type.indirection in (CppTypeIndirection.REF, CppTypeIndirection.PTR_REF)
                assert t.cpp_shim_type.base == t.cpp_type.base
                assert t.cpp_shim_type.indirection in (CppTypeIndirection.PTR, CppTypeIndirection.PTR_PTR)


def test_member_signature_starts_with_this(mapper):
    m = method("QPoint", "manhattanLength", return_type=INT, is_const=True)
    signature = mapper.map_method(m)
    assert signature.has_this()
    this = signature.arguments[0]
    assert this.name == "this_ptr"
    assert _code(this.argument_type.host_shim_type) == "*const qt_core::qpoint::QPoint"
    assert _code(this.argument_type.host_api_type) == "&qt_core::qpoint::QPoint"

    setter = mapper.map_method(method("QPoint", "setX", [arg("x", INT)]))
    assert _code(setter.arguments[0].argument_type.host_api_type) == "&mut qt_core::qpoint::QPoint"


def test_static_and_constructor_signatures(mapper):
    static = mapper.map_method(method("QPoint", "dotProduct", [arg("p1", POINT), arg("p2", POINT)], return_type=INT, is_static=True))
    assert not static.has_this()
    assert [a.name for a in static.arguments] == ["p1", "p2"]

    ctor = mapper.map_method(constructor("QPoint", [arg("xpos", INT), arg("ypos", INT)]))
    assert not ctor.has_this()
    assert _code(ctor.return_type.host_api_type) == "cpp_utils::CppBox<qt_core::qpoint::QPoint>"

    dtor = mapper.map_method(destructor("QPoint"))
    assert dtor.has_this()
    assert _code(dtor.return_type.host_api_type) == "()"


def test_argument_names_are_host_identifiers(mapper):
    signature = mapper.map_method(method(None, "make", [arg("xPos", INT), arg("type", INT), arg("", INT)]))
    assert [a.name for a in signature.arguments] == ["x_pos", "type_", "arg3"]
    assert [a.index for a in signature.arguments] == [0, 1, 2]


def test_argument_names_are_unique_within_a_signature(mapper):
    signature = mapper.map_method(method("QPoint", "f", [arg("fooBar", INT), arg("foo_bar", DOUBLE), arg("this_ptr", INT)]))
    assert [a.name for a in signature.arguments] == ["this_ptr", "foo_bar", "foo_bar_2", "this_ptr_2"]

    static = mapper.map_method(method(None, "g", [arg("this_ptr", INT), arg("", INT), arg("arg2", INT)]))
    assert [a.name for a in static.arguments] == ["this_ptr_2", "arg2", "arg2_2"]


def test_method_level_failures(mapper):
    with pytest.raises(TypeConversionError):
        mapper.map_method(method(None, "qDebug", [arg("format", INT)], allows_variadic_arguments=True))
    with pytest.raises(TypeConversionError):
        mapper.map_method(method(None, "broken", [arg("v", VOID)]))
    with pytest.raises(TypeConversionError, match="argument 1"):
        mapper.map_method(method(None, "take", [arg("v", INT.with_indirection(CppTypeIndirection.RVALUE_REF))]))


def test_dependency_types_use_their_crate():
    base = library(types=[class_decl("QPoint", "qpoint.h")], name="qt_gui")
    data = library(name="qt_widgets", dependencies=(base,))
    t = TypeMapper(data, MappingConfig(crate_name="qt_widgets")).complete_type(POINT, TypeRole.ARGUMENT)
    assert _code(t.host_api_type) == "&qt_gui::qpoint::QPoint"

    renamed = MappingConfig(crate_name="qt_widgets", crate_names={"qt_gui": "qt_gui_rs"})
    t = TypeMapper(data, renamed).complete_type(POINT, TypeRole.ARGUMENT)
    assert _code(t.host_api_type) == "&qt_gui_rs::qpoint::QPoint"


def test_host_name_rendering():
    name = HostName.of("qt_core", "qpoint", "QPoint")
    assert name.crate_name == "qt_core"
    assert name.last_name == "QPoint"
    assert name.full_name() == "qt_core::qpoint::QPoint"
    assert name.full_name("qt_core") == "crate::qpoint::QPoint"
    assert HostName.of("i32").full_name("i32") == "i32"


def test_default_arguments_expand_to_trimmed_variants():
    h = method(None, "h", [arg("a", INT), arg("b", INT, default=True)])
    variants = expand_default_arguments([h])
    assert [len(m.arguments) for m in variants] == [2, 1]
    assert variants[1].arguments_before_omitting == h.arguments

    all_default = method(None, "h", [arg("a", INT, default=True), arg("b", INT, default=True)])
    assert [len(m.arguments) for m in expand_default_arguments([all_default])] == [2, 1, 0]


def test_default_argument_variant_matching_a_declaration_is_dropped():
    diagnostics = Diagnostics()
    declared = method(None, "h", [arg("a", INT)])
    with_default = method(None, "h", [arg("a", INT), arg("b", INT, default=True)], include_file="qmath.h")
    result = expand_default_arguments([declared, with_default], diagnostics)
    assert result == [declared, with_default]
    (d,) = diagnostics
    assert d.kind == DiagnosticKind.DUPLICATE_OVERLOAD
    assert d.include_file == "qmath.h"
