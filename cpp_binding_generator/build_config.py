#!/usr/bin/env python3
"""
Build configuration boundary: conditional fragments merged for a concrete target.

A `CppBuildConfig` is a list of (condition, data) fragments. Evaluating it against a
`Target` merges every fragment whose condition holds, in declaration order:

- list fields (linked libraries, frameworks, compiler flags) concatenate;
- the single-valued library type must agree across matching fragments, otherwise
  `ConflictingSettingsError` is raised.

Fragments can be written in YAML or JSON:

    items:
      - condition: true
        data: {linked_libs: [Qt5Core]}
      - condition: {os: macos}
        data: {linked_frameworks: [QtCore], library_type: shared}
      - condition: {and: [{family: unix}, {not: {os: macos}}]}
        data: {compiler_flags: [-fPIC]}

Search paths (`CppBuildPaths`) are kept apart and can be overridden from the
environment with CPP_BINDGEN_LIB_PATHS, CPP_BINDGEN_FRAMEWORK_PATHS and
CPP_BINDGEN_INCLUDE_PATHS.
"""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import logging

from .errors import ConflictingSettingsError, InputFormatError
from .utils import read_structured_file

logger = logging.getLogger(__name__)

# --------------------------
# Target
# --------------------------


@dataclass(frozen=True)
class Target:
    arch: str
    os: str
    family: str
    env: str = ""
    pointer_width: int = 64
    endian: str = "little"

    def to_dict(self) -> Dict:
        return {
            "arch": self.arch,
            "os": self.os,
            "family": self.family,
            "env": self.env,
            "pointer_width": self.pointer_width,
            "endian": self.endian,
        }


_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "i386": "x86",
    "i686": "x86",
    "arm64": "aarch64",
    "armv7l": "arm",
}

_OS_NAMES = {
    "linux": "linux",
    "darwin": "macos",
    "win32": "windows",
    "cygwin": "windows",
}


def current_target() -> Target:
    machine = platform.machine().lower()
    os_name = next((v for k, v in _OS_NAMES.items() if sys.platform.startswith(k)), sys.platform)
    if os_name == "windows":
        env = "msvc"
    elif os_name == "linux":
        libc, _ = platform.libc_ver()
        env = "gnu" if libc == "glibc" else (libc or "")
    else:
        env = ""
    return Target(
        arch=_ARCH_ALIASES.get(machine, machine),
        os=os_name,
        family="windows" if os_name == "windows" else "unix",
        env=env,
        pointer_width=64 if sys.maxsize > 2 ** 32 else 32,
        endian=sys.byteorder,
    )


# --------------------------
# Conditions
# --------------------------

@dataclass(frozen=True)
class CondTrue:
    pass


@dataclass(frozen=True)
class CondFalse:
    pass


@dataclass(frozen=True)
class CondArch:
    arch: str


@dataclass(frozen=True)
class CondOS:
    os: str


@dataclass(frozen=True)
class CondFamily:
    family: str


@dataclass(frozen=True)
class CondEnv:
    env: str


@dataclass(frozen=True)
class CondPointerWidth:
    pointer_width: int


@dataclass(frozen=True)
class CondEndian:
    endian: str


@dataclass(frozen=True)
class CondAnd:
    conditions: Tuple["Condition", ...]


@dataclass(frozen=True)
class CondOr:
    conditions: Tuple["Condition", ...]


@dataclass(frozen=True)
class CondNot:
    condition: "Condition"


Condition = Union[
    CondTrue, CondFalse, CondArch, CondOS, CondFamily, CondEnv,
    CondPointerWidth, CondEndian, CondAnd, CondOr, CondNot,
]


def eval_condition(cond: Condition, target: Target) -> bool:
    if isinstance(cond, CondTrue):
        return True
    if isinstance(cond, CondFalse):
        return False
    if isinstance(cond, CondArch):
        return target.arch == cond.arch
    if isinstance(cond, CondOS):
        return target.os == cond.os
    if isinstance(cond, CondFamily):
        return target.family == cond.family
    if isinstance(cond, CondEnv):
        return target.env == cond.env
    if isinstance(cond, CondPointerWidth):
        return target.pointer_width == cond.pointer_width
    if isinstance(cond, CondEndian):
        return target.endian == cond.endian
    if isinstance(cond, CondAnd):
        return all(eval_condition(c, target) for c in cond.conditions)
    if isinstance(cond, CondOr):
        return any(eval_condition(c, target) for c in cond.conditions)
    if isinstance(cond, CondNot):
        return not eval_condition(cond.condition, target)
    raise TypeError(f"unexpected condition: {cond!r}")


def parse_condition(data: Any) -> Condition:
    """
    `true`/`false`, or a mapping with exactly one key: arch, os, family, env,
    pointer_width, endian, and (list), or (list), not (condition).
    """
    if isinstance(data, bool):
        return CondTrue() if data else CondFalse()
    if not isinstance(data, Mapping) or len(data) != 1:
        raise InputFormatError(f"invalid build condition: {data!r}")
    (key, value), = data.items()
    if key == "arch":
        return CondArch(str(value))
    if key == "os":
        return CondOS(str(value))
    if key == "family":
        return CondFamily(str(value))
    if key == "env":
        return CondEnv(str(value))
    if key == "pointer_width":
        return CondPointerWidth(int(value))
    if key == "endian":
        return CondEndian(str(value))
    if key in ("and", "or"):
        if not isinstance(value, list):
            raise InputFormatError(f"'{key}' expects a list of conditions: {value!r}")
        parts = tuple(parse_condition(v) for v in value)
        return CondAnd(parts) if key == "and" else CondOr(parts)
    if key == "not":
        return CondNot(parse_condition(value))
    raise InputFormatError(f"unknown build condition key: {key!r}")


# --------------------------
# Configuration data
# --------------------------

class CppLibraryType(Enum):
    SHARED = "shared"
    STATIC = "static"


@dataclass
class CppBuildConfigData:
    linked_libs: List[str] = field(default_factory=list)
    linked_frameworks: List[str] = field(default_factory=list)
    compiler_flags: List[str] = field(default_factory=list)
    library_type: Optional[CppLibraryType] = None

    def add_from(self, other: CppBuildConfigData) -> None:
        self.linked_libs.extend(other.linked_libs)
        self.linked_frameworks.extend(other.linked_frameworks)
        self.compiler_flags.extend(other.compiler_flags)
        if self.library_type is None:
            self.library_type = other.library_type
        elif other.library_type is not None and other.library_type != self.library_type:
            raise ConflictingSettingsError(
                f"conflicting library types specified: {self.library_type.value} and {other.library_type.value}"
            )

    def to_dict(self) -> Dict:
        return {
            "linked_libs": list(self.linked_libs),
            "linked_frameworks": list(self.linked_frameworks),
            "compiler_flags": list(self.compiler_flags),
            "library_type": self.library_type.value if self.library_type else None,
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> CppBuildConfigData:
        try:
            library_type = data.get("library_type")
            return CppBuildConfigData(
                linked_libs=[str(x) for x in data.get("linked_libs", [])],
                linked_frameworks=[str(x) for x in data.get("linked_frameworks", [])],
                compiler_flags=[str(x) for x in data.get("compiler_flags", [])],
                library_type=CppLibraryType(library_type) if library_type else None,
            )
        except (ValueError, TypeError, AttributeError) as e:
            raise InputFormatError(f"invalid build configuration data: {data!r}") from e


@dataclass
class CppBuildConfig:
    items: List[Tuple[Condition, CppBuildConfigData]] = field(default_factory=list)

    def add(self, condition: Condition, data: CppBuildConfigData) -> None:
        self.items.append((condition, data))

    def eval(self, target: Target) -> CppBuildConfigData:
        """
        Merge all fragments matching `target`. Raises ConflictingSettingsError.
        """
        result = CppBuildConfigData()
        for condition, data in self.items:
            if eval_condition(condition, target):
                result.add_from(data)
        return result

    @staticmethod
    def from_dict(data: Any) -> CppBuildConfig:
        items = data.get("items", []) if isinstance(data, Mapping) else data
        if not isinstance(items, list):
            raise InputFormatError("build configuration must be a list of fragments or a mapping with 'items'")
        config = CppBuildConfig()
        for item in items:
            if not isinstance(item, Mapping):
                raise InputFormatError(f"invalid build configuration fragment: {item!r}")
            config.add(parse_condition(item.get("condition", True)), CppBuildConfigData.from_dict(item.get("data", {})))
        return config


def load_build_config(path: Union[str, Path]) -> CppBuildConfig:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Build configuration file not found: {path}")
    config = CppBuildConfig.from_dict(read_structured_file(path))
    logger.debug(f"Loaded {len(config.items)} build configuration fragment(s) from {path}")
    return config


# --------------------------
# Search paths
# --------------------------

ENV_LIB_PATHS = "CPP_BINDGEN_LIB_PATHS"
ENV_FRAMEWORK_PATHS = "CPP_BINDGEN_FRAMEWORK_PATHS"
ENV_INCLUDE_PATHS = "CPP_BINDGEN_INCLUDE_PATHS"


def _split_paths(value: str) -> List[Path]:
    return [Path(p) for p in value.split(os.pathsep) if p]


@dataclass
class CppBuildPaths:
    lib_paths: List[Path] = field(default_factory=list)
    framework_paths: List[Path] = field(default_factory=list)
    include_paths: List[Path] = field(default_factory=list)

    @staticmethod
    def _add(paths: List[Path], path: Union[str, Path]) -> None:
        p = Path(path)
        if p not in paths:
            paths.append(p)

    def add_lib_path(self, path: Union[str, Path]) -> None:
        self._add(self.lib_paths, path)

    def add_framework_path(self, path: Union[str, Path]) -> None:
        self._add(self.framework_paths, path)

    def add_include_path(self, path: Union[str, Path]) -> None:
        self._add(self.include_paths, path)

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> None:
        """Replace each path list by its environment override, when set."""
        env = os.environ if environ is None else environ
        if ENV_LIB_PATHS in env:
            self.lib_paths = _split_paths(env[ENV_LIB_PATHS])
        if ENV_FRAMEWORK_PATHS in env:
            self.framework_paths = _split_paths(env[ENV_FRAMEWORK_PATHS])
        if ENV_INCLUDE_PATHS in env:
            self.include_paths = _split_paths(env[ENV_INCLUDE_PATHS])

    def to_dict(self) -> Dict:
        return {
            "lib_paths": [str(p) for p in self.lib_paths],
            "framework_paths": [str(p) for p in self.framework_paths],
            "include_paths": [str(p) for p in self.include_paths],
        }


__all__ = [
    "Target",
    "current_target",
    "CondTrue",
    "CondFalse",
    "CondArch",
    "CondOS",
    "CondFamily",
    "CondEnv",
    "CondPointerWidth",
    "CondEndian",
    "CondAnd",
    "CondOr",
    "CondNot",
    "Condition",
    "eval_condition",
    "parse_condition",
    "CppLibraryType",
    "CppBuildConfigData",
    "CppBuildConfig",
    "load_build_config",
    "CppBuildPaths",
    "ENV_LIB_PATHS",
    "ENV_FRAMEWORK_PATHS",
    "ENV_INCLUDE_PATHS",
]
