#!/usr/bin/env python3
"""
Utilities shared by the binding generator: logging setup, identifier helpers,
templating (Jinja2) and file I/O.

This module provides:
- Logging configuration for the command line entry point.
- Identifier conversions used to derive shim symbol names and host paths
  (snake_case, ClassCase, filesystem-safe header base names).
- A layered Jinja2 environment (user templates first, embedded templates as fallback).
- Atomic, idempotent file writing helpers with dry-run support.
"""

from __future__ import annotations

import json
import os
import re
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TextIO, Union
import logging

import yaml
from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

logger = logging.getLogger(__name__)

PACKAGE_LOGGER_NAME = "cpp_binding_generator"


def configure_logging(
    level: Optional[Union[int, str]] = None,
    *,
    to_file: Optional[Union[str, Path]] = None,
    fmt: Optional[str] = None,
    stream: Optional[TextIO] = None,
    propagate_package_loggers: bool = True,
) -> None:
    """
    Configure project-wide logging with consistent formatting and optional file output.

    Parameters:
    - level: int or name (e.g., 'INFO', 'DEBUG'). Defaults to INFO.
    - to_file: path to a log file; if provided, logs are also written there.
    - fmt: logging format string. Defaults to '%(levelname)s: %(message)s'.
    - stream: stream for console logs (defaults to sys.stderr).
    - propagate_package_loggers: whether the package logger propagates to root.
    """
    if level is None:
        resolved_level = logging.INFO
    elif isinstance(level, str):
        resolved_level = getattr(logging, level.upper(), logging.INFO)
    else:
        resolved_level = int(level)

    log_format = fmt or "%(levelname)s: %(message)s"
    stream = stream or sys.stderr

    # Reset root handlers for deterministic setup
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(resolved_level)

    handlers: List[logging.Handler] = []

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setLevel(resolved_level)
    stream_handler.setFormatter(logging.Formatter(log_format))
    handlers.append(stream_handler)

    if to_file:
        file_handler = logging.FileHandler(str(to_file), mode="w")
        file_handler.setLevel(resolved_level)
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    for h in handlers:
        root.addHandler(h)

    pkg_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    pkg_logger.setLevel(resolved_level)
    pkg_logger.propagate = propagate_package_loggers


# ----------------------------------------
# Identifier helpers
# ----------------------------------------

# Keywords of the host language; identifiers colliding with them get a trailing underscore.
_HOST_RESERVED = frozenset({
    "abstract", "as", "async", "await", "become", "box", "break", "const", "continue",
    "crate", "do", "dyn", "else", "enum", "extern", "false", "final", "fn", "for", "if",
    "impl", "in", "let", "loop", "macro", "match", "mod", "move", "mut", "override",
    "priv", "pub", "ref", "return", "self", "Self", "static", "struct", "super", "trait",
    "true", "try", "type", "typeof", "unsafe", "unsized", "use", "virtual", "where",
    "while", "yield",
})

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]")


def camel_to_snake(name: str) -> str:
    """
    'QTextCodec' -> 'q_text_codec', 'toUtf8' -> 'to_utf8', 'already_snake' unchanged.
    """
    out: List[str] = []
    prev_lower = False
    for i, ch in enumerate(name):
        if ch.isupper():
            next_lower = i + 1 < len(name) and name[i + 1].islower()
            if out and out[-1] != "_" and (prev_lower or (next_lower and out[-1].isalpha())):
                out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
        prev_lower = ch.islower() or ch.isdigit()
    return "".join(out)


def snake_to_class_case(name: str) -> str:
    """
    'QVector_int' -> 'QVectorInt', 'unsigned_int' -> 'UnsignedInt'.
    Existing capitals inside a word are preserved.
    """
    parts = [p for p in name.split("_") if p]
    return "".join(p[0].upper() + p[1:] for p in parts)


def sanitize_identifier(name: str) -> str:
    """
    Make `name` usable as a host identifier: invalid characters become '_',
    a leading digit is prefixed, host keywords get a trailing '_'.
    """
    s = _NON_IDENTIFIER.sub("_", name)
    if not s:
        return "_"
    if s[0].isdigit():
        s = "_" + s
    if s in _HOST_RESERVED:
        return f"{s}_"
    return s


def include_file_base_name(include_file: str) -> str:
    """
    Filesystem-safe base name of a header: 'qvector.h' -> 'qvector',
    'QtCore/qobject.hpp' -> 'QtCore_qobject', 'QFlags' -> 'QFlags'.
    """
    name = include_file
    for ext in (".h", ".hh", ".hpp", ".hxx"):
        if name.endswith(ext):
            name = name[: -len(ext)]
            break
    return _NON_IDENTIFIER.sub("_", name)


# ----------------------------------------
# Jinja environment helpers
# ----------------------------------------

class TemplateRenderer:
    """
    A thin wrapper over a Jinja2 Environment with layered loaders.
    - templates_dir: user-provided templates directory (highest precedence)
    - embedded: built-in templates shipped as strings by the emitters
    """

    def __init__(self, templates_dir: Optional[Path], embedded: Optional[Mapping[str, str]] = None) -> None:
        loaders: List[Any] = []

        if templates_dir:
            p = Path(templates_dir)
            if p.is_dir():
                loaders.append(FileSystemLoader(str(p)))
            else:
                logger.warning(f"Templates directory not found, using built-in templates: {p}")

        if embedded:
            loaders.append(DictLoader(dict(embedded)))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
            autoescape=False,
            keep_trailing_newline=True,
        )

        self._register_filters()
        self._register_globals()

    # ---- Filters and globals registration ----

    def _register_filters(self) -> None:
        self.env.filters["to_snake"] = camel_to_snake
        self.env.filters["class_case"] = snake_to_class_case
        self.env.filters["sanitize"] = sanitize_identifier

    def _register_globals(self) -> None:
        self.env.globals["len"] = len

    # ---- Rendering ----

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound as e:
            raise RuntimeError(f"Template not found: {template_name}") from e
        return template.render(**context)


# ----------------------------------------
# File I/O helpers
# ----------------------------------------

def ensure_dir(p: Path) -> None:
    Path(p).mkdir(parents=True, exist_ok=True)


def normalize_newlines(text: str) -> str:
    """
    Normalize to Unix newlines for reproducible diffs.
    """
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_structured_file(path: Union[str, Path]) -> Any:
    """
    Load a YAML (.yml/.yaml) or JSON file. An empty YAML document loads as {}.
    """
    p = Path(path)
    with open(p, "r", encoding="utf-8") as f:
        if p.suffix.lower() in (".yml", ".yaml"):
            return yaml.safe_load(f) or {}
        return json.load(f)


def _read_text_if_exists(path: Path, encoding: str = "utf-8") -> Optional[str]:
    try:
        with open(path, "r", encoding=encoding, newline="") as f:
            return f.read()
    except FileNotFoundError:
        return None


def atomic_write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    make_parents: bool = True,
    mode: Optional[int] = 0o644,
    log: bool = True,
    only_if_changed: bool = True,
) -> bool:
    """
    Write text atomically: write a temp file in the target directory, then os.replace it.
    Skips the write when the content is unchanged (if `only_if_changed`).

    Returns True if a write occurred, False if skipped.
    """
    content = normalize_newlines(content)
    if make_parents:
        ensure_dir(path.parent)

    if only_if_changed:
        old = _read_text_if_exists(path, encoding=encoding)
        if old is not None and normalize_newlines(old) == content:
            if log:
                logger.debug(f"[skip] {path} (unchanged)")
            return False

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            f.write(content)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
        tmp_path = None
        if log:
            logger.info(f"[write] {path}")
        return True
    finally:
        # temp file is left only if something failed before the replace
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)


def write_text(
    path: Path,
    content: str,
    encoding: str = "utf-8",
    dry_run: bool = False,
    log: bool = True,
) -> bool:
    """
    Convenience wrapper over atomic_write_text with optional dry-run support.
    """
    if dry_run:
        if log:
            logger.info(f"[dry-run] write {path}")
        return False
    return atomic_write_text(path, content, encoding=encoding, log=log)


__all__ = [
    "PACKAGE_LOGGER_NAME",
    "configure_logging",
    "camel_to_snake",
    "snake_to_class_case",
    "sanitize_identifier",
    "include_file_base_name",
    "TemplateRenderer",
    "ensure_dir",
    "normalize_newlines",
    "read_structured_file",
    "atomic_write_text",
    "write_text",
]
