#!/usr/bin/env python3
"""
JSON manifest of a generation run: generator metadata, invocation, environment,
configuration snapshot, the per-header shim symbol table and all diagnostics.

Two manifests of runs over identical input differ only in the `invocation` and
`environment` sections, which makes them convenient to diff across regenerations.
"""

from __future__ import annotations

import json
import os
import platform
import shlex
import sys
from datetime import datetime, timezone
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Dict, Optional
import logging

from .ffi_generator import GeneratorConfig
from .ffi_types import CppAndFfiData
from .models import GenerationContext
from .utils import write_text

logger = logging.getLogger(__name__)

MANIFEST_FILE_NAME = "manifest.json"


def generator_version() -> str:
    try:
        return importlib_metadata.version("cpp-binding-generator")
    except importlib_metadata.PackageNotFoundError:
        # Running from a source checkout
        return "unknown"


def build_manifest(
    ctx: GenerationContext,
    config: GeneratorConfig,
    result: CppAndFfiData,
    build: Optional[Dict] = None,
) -> Dict:
    argv = list(getattr(sys, "argv", []) or [])
    command_line = " ".join(shlex.quote(a) for a in argv) if argv else ""

    env_info = {
        "python_version": sys.version,
        "python_executable": sys.executable,
        "platform": platform.platform(),
        "system": platform.system(),
        "machine": platform.machine(),
        "cwd": os.getcwd(),
        "timestamp_utc": datetime.now(timezone.utc).isoformat(),
    }

    return {
        "generator": {
            "name": "cpp-binding-generator",
            "version": generator_version(),
        },
        "invocation": {
            "argv": argv,
            "command_line": command_line,
        },
        "environment": env_info,
        "context": ctx.to_dict(),
        "config": config.to_dict(),
        "library_name": result.cpp_data.library_name,
        "abstract_classes": list(result.abstract_classes),
        "header_count": len(result.cpp_ffi_headers),
        "method_count": result.method_count(),
        "symbols": result.symbol_table(),
        "headers": [h.to_dict(ctx.crate_name) for h in result.cpp_ffi_headers],
        "diagnostic_counts": result.diagnostics.counts_by_kind(),
        "build": build,
        "diagnostics": result.diagnostics.to_list(),
    }


def emit_manifest(
    ctx: GenerationContext,
    config: GeneratorConfig,
    result: CppAndFfiData,
    path: Optional[Path] = None,
    build: Optional[Dict] = None,
) -> Path:
    """
    Write the manifest (default: <output_dir>/manifest.json). Write errors propagate.
    """
    manifest_path = path or ctx.output_dir / MANIFEST_FILE_NAME
    content = json.dumps(build_manifest(ctx, config, result, build), indent=2) + "\n"
    write_text(manifest_path, content, dry_run=ctx.dry_run)
    return manifest_path


__all__ = [
    "MANIFEST_FILE_NAME",
    "generator_version",
    "build_manifest",
    "emit_manifest",
]
