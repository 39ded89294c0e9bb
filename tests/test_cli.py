#!/usr/bin/env python3
import json

import pytest
import yaml

from builders import INT, arg, class_decl, constructor, library, method
from cpp_binding_generator.models import CppType
from cpp_binding_generator.generate_bindings import main
from cpp_binding_generator.manifest import MANIFEST_FILE_NAME


def _write_input(tmp_path, data=None, name="qt_core.json"):
    data = data or library(
        types=[class_decl("QPoint", "qpoint.h")],
        methods=[
            constructor("QPoint", include_file="qpoint.h"),
            method("QPoint", "setX", [arg("x", INT)], include_file="qpoint.h"),
            method(None, "qAbs", [arg("t", INT)], return_type=INT, include_file="qglobal.h"),
        ],
    )
    path = tmp_path / name
    if name.endswith((".yaml", ".yml")):
        path.write_text(yaml.safe_dump(data.to_dict()), encoding="utf-8")
    else:
        path.write_text(json.dumps(data.to_dict()), encoding="utf-8")
    return path


def test_generates_manifest_and_report(tmp_path):
    src = _write_input(tmp_path)
    out = tmp_path / "out"
    rc = main(["--input", str(src), "--output-dir", str(out), "--crate-name", "qt_core", "--report", "-q"])
    assert rc == 0

    manifest = json.loads((out / MANIFEST_FILE_NAME).read_text(encoding="utf-8"))
    assert manifest["generator"]["name"] == "cpp-binding-generator"
    assert manifest["library_name"] == "qt_core"
    assert manifest["method_count"] == 3
    assert manifest["symbols"] == {
        "qglobal.h": ["qglobal_G_qAbs"],
        "qpoint.h": ["QPoint_constructor", "QPoint_setX"],
    }
    assert manifest["config"]["crate_name"] == "qt_core"
    assert manifest["build"] is None

    report = (out / "binding_report.md").read_text(encoding="utf-8")
    assert report.startswith("# Binding report: qt_core")
    assert "`QPoint_setX`" in report
    assert "self: &mut crate::qpoint::QPoint" in report


def test_yaml_input_and_default_crate_name(tmp_path):
    src = _write_input(tmp_path, name="qt_gui.yaml")
    out = tmp_path / "out"
    assert main(["--input", str(src), "--output-dir", str(out), "-q"]) == 0
    manifest = json.loads((out / MANIFEST_FILE_NAME).read_text(encoding="utf-8"))
    # the library name stored in the file wins over the file stem
    assert manifest["context"]["crate_name"] == "qt_core"


def test_dry_run_writes_nothing(tmp_path):
    src = _write_input(tmp_path)
    out = tmp_path / "out"
    assert main(["--input", str(src), "--output-dir", str(out), "--report", "--dry-run", "-q"]) == 0
    assert not out.exists()


def test_missing_input(tmp_path):
    assert main(["--input", str(tmp_path / "nope.json"), "--output-dir", str(tmp_path), "-q"]) == 2


def test_malformed_input(tmp_path):
    src = tmp_path / "broken.json"
    src.write_text("{ not json", encoding="utf-8")
    assert main(["--input", str(src), "--output-dir", str(tmp_path / "out"), "-qq"]) == 3


@pytest.mark.parametrize("content", [{"methods": ["oops"]}, {"types": 5}])
def test_malformed_entries(tmp_path, content):
    src = tmp_path / "broken.json"
    src.write_text(json.dumps(content), encoding="utf-8")
    assert main(["--input", str(src), "--output-dir", str(tmp_path / "out"), "-qq"]) == 3


def test_build_configuration_is_recorded(tmp_path):
    src = _write_input(tmp_path)
    cfg = tmp_path / "build.yaml"
    cfg.write_text("- condition: true\n  data: {linked_libs: [Qt5Core], library_type: shared}\n", encoding="utf-8")
    out = tmp_path / "out"
    assert main(["--input", str(src), "--output-dir", str(out), "--build-config", str(cfg), "-q"]) == 0
    manifest = json.loads((out / MANIFEST_FILE_NAME).read_text(encoding="utf-8"))
    assert manifest["build"]["data"]["linked_libs"] == ["Qt5Core"]
    assert manifest["build"]["data"]["library_type"] == "shared"
    assert "arch" in manifest["build"]["target"]


def test_conflicting_build_configuration(tmp_path):
    src = _write_input(tmp_path)
    cfg = tmp_path / "build.json"
    cfg.write_text(json.dumps([
        {"condition": True, "data": {"library_type": "shared"}},
        {"condition": True, "data": {"library_type": "static"}},
    ]), encoding="utf-8")
    assert main(["--input", str(src), "--output-dir", str(tmp_path / "out"), "--build-config", str(cfg), "-qq"]) == 4


def test_disambiguation_failure(tmp_path):
    duplicate = library(methods=[
        method(None, "f", [arg("v", INT)], include_file="qmath.h"),
        method(None, "f", [arg("v", INT)], include_file="qmath.h"),
    ])
    src = _write_input(tmp_path, duplicate)
    assert main(["--input", str(src), "--output-dir", str(tmp_path / "out"), "-qq"]) == 4


def test_dependencies_from_separate_files(tmp_path):
    base = library(types=[class_decl("QPoint", "qpoint.h")], name="qt_gui")
    widgets = library(
        types=[class_decl("QWidget", "qwidget.h")],
        methods=[method("QWidget", "move", [arg("pos", CppType.of_class("QPoint"))], include_file="qwidget.h")],
        name="qt_widgets",
    )
    dep = _write_input(tmp_path, base, name="qt_gui.json")
    src = _write_input(tmp_path, widgets, name="qt_widgets.json")
    out = tmp_path / "out"
    rc = main(["--input", str(src), "--dependency", str(dep), "--output-dir", str(out), "--report", "-q"])
    assert rc == 0
    report = (out / "binding_report.md").read_text(encoding="utf-8")
    assert "pos: &qt_gui::qpoint::QPoint" in report
