#!/usr/bin/env python3
"""
C++ binding generator: command line entry point.

This entrypoint wires together:
- Loading the serialized C++ API description (and its dependencies)
- The FFI generator: inheritance resolution, method filtering, type conversion
  and overload disambiguation
- Optional evaluation of the conditional build configuration for this machine
- Outputs for inspection (JSON manifest, optional Markdown report)

Outputs:
- <output_dir>/manifest.json (unless --no-manifest)
- <optional> <output_dir>/binding_report.md (with --report)

Usage (example):
  python -m cpp_binding_generator.generate_bindings \
    --input qt_core.json \
    --dependency qt_base.json \
    --crate-name qt_core \
    --build-config build.yaml \
    --output-dir generated --report

Exit codes:
  0 success, 1 setup failure, 2 missing input, 3 load failure,
  4 generation failure, 5 manifest/report failure
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

# Local modules
from .build_config import current_target, load_build_config
from .emitters.report_emitter import EMBEDDED_TEMPLATES, ReportEmitter
from .errors import BindingGeneratorError, ConflictingSettingsError
from .ffi_generator import FfiGenerator, GeneratorConfig
from .manifest import emit_manifest
from .models import GenerationContext
from .parsing.api_loader import load_cpp_data
from .type_mapping import MappingConfig
from .utils import TemplateRenderer, configure_logging


# --------------------------
# CLI
# --------------------------

def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Generate C ABI shims and safe wrapper signatures for a C++ library")

    p.add_argument(
        "--input",
        required=True,
        help="Serialized C++ API description (.json, .yaml or .yml) produced by the parser.",
    )
    p.add_argument(
        "--dependency",
        action="append",
        default=[],
        help="API description of a linked-against library (repeatable, searched in order).",
    )
    p.add_argument(
        "--library-name",
        default=None,
        help="Override the library name recorded in the input (defaults to the file stem).",
    )
    p.add_argument(
        "--crate-name",
        default=None,
        help="Host crate name of the generated bindings (defaults to the library name).",
    )
    p.add_argument(
        "--utils-crate",
        default="cpp_utils",
        help="Host crate providing CppBox and Flags.",
    )
    p.add_argument(
        "--flags-class",
        action="append",
        default=[],
        help="Class template treated as a bit-flag wrapper (repeatable, default: QFlags).",
    )
    p.add_argument(
        "--exclude-header",
        action="append",
        default=[],
        help="Header base name to skip (repeatable, default: QFlags, QFlag).",
    )
    p.add_argument(
        "--jobs",
        type=int,
        default=1,
        help="Process headers on this many worker threads.",
    )
    p.add_argument(
        "--build-config",
        default=None,
        help="Conditional build configuration (.yaml/.json) to evaluate for the current machine.",
    )
    p.add_argument(
        "--output-dir",
        default="generated",
        help="Output directory for the manifest and report.",
    )
    p.add_argument(
        "--templates-dir",
        default=None,
        help="Optional templates directory overriding the built-in report template.",
    )
    p.add_argument(
        "--report",
        action="store_true",
        help="Also write a Markdown binding report.",
    )
    p.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not emit the JSON manifest.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the generator and report results without writing files.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for DEBUG)."
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease verbosity (-q for WARNING, -qq for ERROR)."
    )
    p.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET",
                 "critical", "error", "warning", "info", "debug", "notset"],
        default=None,
        help="Explicit log level (overrides -v/-q)."
    )
    p.add_argument(
        "--log-format",
        default="%(levelname)s: %(message)s",
        help="Logging format string."
    )
    p.add_argument(
        "--log-file",
        default=None,
        help="Optional file to write logs to."
    )

    return p.parse_args(argv)


def _resolve_log_level(ns: argparse.Namespace) -> int:
    if ns.log_level:
        return getattr(logging, str(ns.log_level).upper(), logging.INFO)
    if ns.verbose >= 1:
        return logging.DEBUG
    if ns.quiet >= 2:
        return logging.ERROR
    if ns.quiet == 1:
        return logging.WARNING
    return logging.INFO


# --------------------------
# Main
# --------------------------

def main(argv: Optional[Sequence[str]] = None) -> int:
    ns = parse_args(argv)

    configure_logging(
        level=_resolve_log_level(ns),
        to_file=ns.log_file,
        fmt=ns.log_format,
    )

    input_path = Path(ns.input).resolve()
    ctx = GenerationContext(
        output_dir=Path(ns.output_dir).resolve(),
        templates_dir=Path(ns.templates_dir).resolve() if ns.templates_dir else None,
        crate_name=ns.crate_name or "",
        input_path=input_path,
        dry_run=ns.dry_run,
    )

    renderer = None
    if ns.report:
        try:
            renderer = TemplateRenderer(ctx.templates_dir, embedded=EMBEDDED_TEMPLATES)
        except Exception:
            logger.exception("Failed to initialize templating")
            return 1

    if not input_path.is_file():
        logger.error("API description not found: %s", input_path)
        return 2

    # Load the API description
    try:
        data = load_cpp_data(input_path, dependencies=ns.dependency, library_name=ns.library_name)
    except (OSError, BindingGeneratorError) as e:
        logger.error("Failed to load API description: %s", e)
        return 3

    if not ctx.crate_name:
        ctx.crate_name = data.library_name

    # Evaluate the build configuration
    build: Optional[Dict] = None
    if ns.build_config:
        try:
            build_config = load_build_config(ns.build_config)
        except (OSError, BindingGeneratorError) as e:
            logger.error("Failed to load build configuration: %s", e)
            return 3
        target = current_target()
        try:
            build_data = build_config.eval(target)
        except ConflictingSettingsError as e:
            logger.error("Invalid build configuration for %s-%s: %s", target.arch, target.os, e)
            return 4
        build = {"target": target.to_dict(), "data": build_data.to_dict()}
        logger.debug("Build configuration for %s-%s: %s", target.arch, target.os, build["data"])

    config = GeneratorConfig(
        crate_name=ctx.crate_name,
        mapping=MappingConfig(
            crate_name=ctx.crate_name,
            flags_class_names=tuple(ns.flags_class) or MappingConfig().flags_class_names,
            utils_crate=ns.utils_crate,
        ),
        max_workers=max(1, ns.jobs),
    )
    if ns.exclude_header:
        config.excluded_include_files = tuple(ns.exclude_header)

    # Generate
    try:
        result = FfiGenerator(data, config).generate_all()
    except BindingGeneratorError as e:
        logger.error("Generation failed: %s", e)
        return 4

    result.diagnostics.log_to(logger)
    logger.info(
        "Generated %d shim function(s) in %d header(s); %d abstract class(es)",
        result.method_count(),
        len(result.cpp_ffi_headers),
        len(result.abstract_classes),
    )
    for header in result.cpp_ffi_headers:
        logger.debug("%s: %d function(s)", header.include_file, len(header.methods))

    if ctx.dry_run:
        logger.info("Dry-run complete (no files written).")
        return 0

    if renderer is not None:
        try:
            ReportEmitter(ctx, renderer).emit(result)
        except Exception:
            logger.exception("Failed to emit binding report")
            return 5

    if not ns.no_manifest:
        try:
            emit_manifest(ctx, config, result, build=build)
        except Exception:
            logger.exception("Failed to emit generation manifest")
            return 5

    return 0


if __name__ == "__main__":
    sys.exit(main())
