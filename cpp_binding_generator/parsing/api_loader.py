#!/usr/bin/env python3
"""
Loading of serialized C++ API descriptions.

Header parsing itself happens elsewhere: the parsing collaborator writes the
library's `CppData` as JSON (or YAML) using the layout of `CppData.to_dict()`.
This module reads such files back, attaches the API descriptions of linked-against
libraries as dependencies, and performs the basic structural checks the pipeline
relies on.

Key features:
- JSON and YAML input (chosen by file extension).
- Dependencies given as separate files, or embedded under "dependencies".
- Library name defaulting to the file stem when the file does not carry one.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Iterable, List, Optional, Union
import logging

import yaml

from ..errors import InputFormatError
from ..models import CppData
from ..utils import read_structured_file

logger = logging.getLogger(__name__)


def _read(path: Path) -> CppData:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"API description not found: {path}")
    try:
        raw = read_structured_file(path)
    except (ValueError, yaml.YAMLError) as e:
        raise InputFormatError(f"{path}: {e}") from e
    data = CppData.from_dict(raw)
    if not data.library_name:
        data = replace(data, library_name=path.stem)
    return data


def check_class_references(data: CppData) -> List[str]:
    """
    Names of classes referenced by method memberships that no level of `data`
    declares. The pipeline tolerates them but they usually indicate a partial dump.
    """
    missing = set()
    for method in data.methods:
        class_name = method.class_name()
        if class_name is not None and data.find_type_info(class_name) is None:
            missing.add(class_name)
    return sorted(missing)


def load_cpp_data(
    path: Union[str, Path],
    dependencies: Iterable[Union[str, Path]] = (),
    library_name: Optional[str] = None,
) -> CppData:
    """
    Load the API description at `path` and append the descriptions at `dependencies`
    (in the given order, after any embedded ones).

    Raises:
    - FileNotFoundError for missing files.
    - InputFormatError for undecodable content.
    """
    p = Path(path)
    data = _read(p)
    extra = tuple(_read(Path(d)) for d in dependencies)
    if extra:
        data = replace(data, dependencies=data.dependencies + extra)
    if library_name:
        data = replace(data, library_name=library_name)

    logger.info(
        "Loaded %s: %d types, %d methods, %d dependencies",
        p.name,
        len(data.types),
        len(data.methods),
        len(data.dependencies),
    )
    for name in check_class_references(data):
        logger.warning("Methods reference undeclared class '%s'", name)
    return data


__all__ = [
    "load_cpp_data",
    "check_class_references",
]
