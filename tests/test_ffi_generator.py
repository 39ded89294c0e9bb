#!/usr/bin/env python3
import pytest

from builders import DOUBLE, INT, arg, class_decl, constructor, destructor, library, method
from cpp_binding_generator.diagnostics import DiagnosticKind
from cpp_binding_generator.errors import DisambiguationError, InheritanceCycleError
from cpp_binding_generator.ffi_generator import FfiGenerator, GeneratorConfig, generate_ffi
from cpp_binding_generator.models import CppType, CppTypeIndirection, CppVisibility


def _qt_like_library():
    return library(
        types=[
            class_decl("QPoint", "qpoint.h"),
            class_decl("Shape", "shape.h"),
            class_decl("Polygon", "shape.h", bases=["Shape"]),
            class_decl("Triangle", "shape.h", bases=["Polygon"]),
            class_decl("QFlags", "QFlags", template_params=["Enum"]),
        ],
        methods=[
            constructor("QPoint", include_file="qpoint.h"),
            constructor("QPoint", [arg("xpos", INT), arg("ypos", INT)], include_file="qpoint.h"),
            destructor("QPoint", include_file="qpoint.h"),
            method("QPoint", "x", return_type=INT, is_const=True, include_file="qpoint.h"),
            method("QPoint", "setX", [arg("x", INT)], include_file="qpoint.h"),
            method("QPoint", "secret", include_file="qpoint.h", visibility=CppVisibility.PRIVATE),
            method(
                "QPoint",
                "swap",
                [arg("other", CppType.of_class("QPoint", CppTypeIndirection.RVALUE_REF))],
                include_file="qpoint.h",
            ),
            constructor("Shape", include_file="shape.h"),
            method("Shape", "area", return_type=DOUBLE, is_pure_virtual=True, is_const=True, include_file="shape.h"),
            method("Shape", "g", [arg("x", INT)], is_virtual=True, include_file="shape.h"),
            constructor("Polygon", include_file="shape.h"),
            method("Polygon", "g", [arg("x", INT)], is_virtual=True, include_file="shape.h"),
            constructor("Triangle", include_file="shape.h"),
            method(None, "h", [arg("a", INT), arg("b", INT, default=True)], return_type=INT, include_file="qmath.h"),
            method(None, "f", [arg("v", INT)], return_type=INT, include_file="qmath.h"),
            method(None, "f", [arg("v", DOUBLE)], return_type=DOUBLE, include_file="qmath.h"),
            method("QFlags", "testFlag", return_type=INT, include_file="QFlags"),
        ],
    )


def _symbols(result):
    return {h.include_file: h.symbol_names() for h in result.cpp_ffi_headers}


def test_symbol_table():
    result = generate_ffi(_qt_like_library())
    assert _symbols(result) == {
        "qmath.h": ["qmath_G_f_double", "qmath_G_f_int", "qmath_G_h_int", "qmath_G_h_int_int"],
        "qpoint.h": [
            "QPoint_constructor_int_int",
            "QPoint_constructor_no_args",
            "QPoint_destructor",
            "QPoint_setX",
            "QPoint_x",
        ],
        "shape.h": ["Polygon_g", "Shape_area", "Shape_g"],
    }


def test_headers_are_in_name_order_and_excluded_headers_skipped():
    result = generate_ffi(_qt_like_library())
    assert [h.include_file for h in result.cpp_ffi_headers] == ["qmath.h", "qpoint.h", "shape.h"]
    assert result.find_header("QFlags") is None
    assert result.diagnostics.of_kind(DiagnosticKind.EXCLUDED_HEADER)[0].subject == "QFlags"
    assert set(result.cpp_data_by_headers) == {"QFlags", "qmath.h", "qpoint.h", "shape.h"}


def test_private_methods_never_reach_the_output():
    result = generate_ffi(_qt_like_library())
    names = [m.cpp_method.name for h in result.cpp_ffi_headers for m in h.methods]
    assert "secret" not in names


def test_abstract_classes_get_no_constructors():
    result = generate_ffi(_qt_like_library())
    assert result.abstract_classes == ("Polygon", "Shape", "Triangle")
    shape = result.find_header("shape.h")
    assert not any(m.cpp_method.is_constructor for m in shape.methods)
    (info,) = result.diagnostics.of_kind(DiagnosticKind.ABSTRACT_CLASSES)
    assert info.subject == "Polygon, Shape, Triangle"


def test_default_argument_variant_records_the_full_list():
    header = generate_ffi(_qt_like_library()).find_header("qmath.h")
    by_name = {m.c_name: m for m in header.methods}
    trimmed = by_name["qmath_G_h_int"].cpp_method
    assert [a.name for a in trimmed.arguments] == ["a"]
    assert [a.name for a in trimmed.arguments_before_omitting] == ["a", "b"]
    assert by_name["qmath_G_h_int_int"].cpp_method.arguments_before_omitting is None


def test_unconvertible_method_is_dropped_with_a_warning():
    result = generate_ffi(_qt_like_library())
    (warning,) = result.diagnostics.of_kind(DiagnosticKind.TYPE_CONVERSION)
    assert "swap" in warning.subject
    assert warning.include_file == "qpoint.h"
    assert warning.message.startswith("Unable to produce C function for method")


def test_every_symbol_is_unique_within_a_header():
    for header in generate_ffi(_qt_like_library()).cpp_ffi_headers:
        names = header.symbol_names()
        assert len(names) == len(set(names))
        assert names == sorted(names)


def test_output_is_deterministic():
    data = _qt_like_library()
    first = generate_ffi(data)
    second = generate_ffi(data)
    threaded = generate_ffi(data, GeneratorConfig(crate_name="qt_core", max_workers=4))
    sequential = generate_ffi(data, GeneratorConfig(crate_name="qt_core"))
    assert first.to_dict() == second.to_dict()
    assert threaded.to_dict("qt_core") == sequential.to_dict("qt_core")
    assert threaded.diagnostics.to_list() == sequential.diagnostics.to_list()


def test_duplicate_overload_aborts_the_run():
    data = library(
        methods=[
            method(None, "f", [arg("v", INT)], include_file="qmath.h"),
            method(None, "f", [arg("v", INT)], include_file="qmath.h"),
        ]
    )
    with pytest.raises(DisambiguationError) as exc:
        generate_ffi(data)
    assert exc.value.include_file == "qmath.h"
    assert exc.value.base_name == "qmath_G_f"


def test_inheritance_cycle_aborts_the_run():
    data = library(types=[class_decl("A", "a.h", bases=["B"]), class_decl("B", "a.h", bases=["A"])])
    with pytest.raises(InheritanceCycleError):
        generate_ffi(data)


def test_crate_name_flows_into_host_paths():
    result = FfiGenerator(_qt_like_library(), GeneratorConfig(crate_name="qt_core")).generate_all()
    header = result.find_header("qpoint.h")
    ctor = next(m for m in header.methods if m.c_name == "QPoint_constructor_no_args")
    assert ctor.signature.return_type.host_api_type.to_code("qt_core") == "cpp_utils::CppBox<crate::qpoint::QPoint>"
    assert result.method_count() == 12
    assert result.symbol_table()["shape.h"] == ["Polygon_g", "Shape_area", "Shape_g"]
