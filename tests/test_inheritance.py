#!/usr/bin/env python3
import pytest

from builders import DOUBLE, INT, arg, class_decl, constructor, destructor, library, method
from cpp_binding_generator.diagnostics import DiagnosticKind, Diagnostics
from cpp_binding_generator.errors import InconsistentInputError, InheritanceCycleError
from cpp_binding_generator.inheritance import InheritanceResolver
from cpp_binding_generator.models import (
    CppBaseSpecifier,
    CppClassKind,
    CppType,
    CppTypeData,
    CppVisibility,
)


def _shapes():
    return library(
        types=[
            class_decl("Shape", "shape.h"),
            class_decl("Polygon", "shape.h", bases=["Shape"]),
            class_decl("Triangle", "shape.h", bases=["Polygon"]),
        ],
        methods=[
            method("Shape", "area", return_type=DOUBLE, is_pure_virtual=True, is_const=True),
            method("Shape", "g", [arg("x", INT)], is_virtual=True),
            method("Shape", "name", return_type=INT),
            constructor("Shape"),
            method("Polygon", "g", [arg("x", INT)], is_virtual=True),
            constructor("Polygon"),
            constructor("Triangle"),
        ],
    )


def test_abstractness_propagates_down_the_hierarchy():
    resolver = InheritanceResolver(_shapes())
    assert resolver.abstract_classes() == ["Polygon", "Shape", "Triangle"]
    assert [m.name for m in resolver.pure_virtual_methods("Triangle")] == ["area"]


def test_implementing_the_pure_method_ends_abstractness():
    data = library(
        types=[class_decl("Shape", "shape.h"), class_decl("Circle", "circle.h", bases=["Shape"])],
        methods=[
            method("Shape", "area", return_type=DOUBLE, is_pure_virtual=True, is_const=True),
            method("Circle", "area", return_type=DOUBLE, is_virtual=True, is_const=True),
        ],
    )
    resolver = InheritanceResolver(data)
    assert resolver.is_abstract("Shape")
    assert not resolver.is_abstract("Circle")
    assert resolver.abstract_classes() == ["Shape"]


def test_overridden_method_is_not_duplicated():
    resolver = InheritanceResolver(_shapes())
    methods = resolver.all_methods("Polygon")
    g = [m for m in methods if m.name == "g"]
    assert len(g) == 1
    assert g[0].class_name() == "Polygon"
    assert g[0].inheritance_chain == ()


def test_inherited_methods_are_rebased_and_keep_their_chain():
    resolver = InheritanceResolver(_shapes())
    methods = resolver.all_methods("Triangle")
    name = next(m for m in methods if m.name == "name")
    assert name.class_name() == "Triangle"
    assert [spec.base_type.base.name for spec in name.inheritance_chain] == ["Shape", "Polygon"]
    # inherited first, then own declarations
    assert [m.name for m in methods] == ["area", "name", "g", "Triangle"]


def test_constructors_and_destructors_are_not_inherited():
    data = library(
        types=[class_decl("Base", "base.h"), class_decl("Derived", "base.h", bases=["Base"])],
        methods=[constructor("Base"), destructor("Base"), method("Base", "run")],
    )
    methods = InheritanceResolver(data).all_methods("Derived")
    assert [m.name for m in methods] == ["run"]


def test_diamond_yields_each_method_once():
    data = library(
        types=[
            class_decl("A", "a.h"),
            class_decl("B", "a.h", bases=["A"]),
            class_decl("C", "a.h", bases=["A"]),
            class_decl("D", "a.h", bases=["B", "C"]),
        ],
        methods=[method("A", "a")],
    )
    methods = InheritanceResolver(data).all_methods("D")
    assert len(methods) == 1
    assert methods[0].inheritance_chain[-1].base_type.base.name == "B"


def test_cycle_is_reported_with_its_path():
    data = library(types=[class_decl("A", "a.h", bases=["B"]), class_decl("B", "b.h", bases=["A"])])
    with pytest.raises(InheritanceCycleError) as exc:
        InheritanceResolver(data).all_methods("A")
    assert exc.value.path == ["A", "B", "A"]
    assert "A -> B -> A" in str(exc.value)


def test_non_class_base_is_inconsistent():
    bad = CppTypeData(name="Bad", include_file="bad.h", kind=CppClassKind(bases=(CppBaseSpecifier(INT),)))
    with pytest.raises(InconsistentInputError):
        InheritanceResolver(library(types=[bad])).all_methods("Bad")


def test_missing_base_is_a_warning():
    diagnostics = Diagnostics()
    data = library(types=[class_decl("Widget", "widget.h", bases=["Hidden"])], methods=[method("Widget", "show")])
    methods = InheritanceResolver(data, diagnostics).all_methods("Widget")
    assert [m.name for m in methods] == ["show"]
    missing = diagnostics.of_kind(DiagnosticKind.MISSING_BASE)
    assert [d.subject for d in missing] == ["Hidden"]


def test_bases_are_found_in_dependencies():
    base = library(types=[class_decl("QObject", "qobject.h")], methods=[method("QObject", "deleteLater")], name="base")
    data = library(types=[class_decl("QTimer", "qtimer.h", bases=["QObject"])], dependencies=(base,))
    methods = InheritanceResolver(data).all_methods("QTimer")
    assert [(m.name, m.class_name()) for m in methods] == [("deleteLater", "QTimer")]


def test_destructor_visibility_decides_deletability():
    data = library(
        types=[class_decl("Open", "a.h"), class_decl("Closed", "a.h"), class_decl("Implicit", "a.h")],
        methods=[destructor("Open"), destructor("Closed", visibility=CppVisibility.PROTECTED)],
    )
    resolver = InheritanceResolver(data)
    assert resolver.has_public_destructor("Open")
    assert not resolver.has_public_destructor("Closed")
    assert resolver.has_public_destructor("Implicit")
