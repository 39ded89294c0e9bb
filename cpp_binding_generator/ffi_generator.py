#!/usr/bin/env python3
"""
Binding orchestrator: turns a parsed `CppData` into per-header shim method lists.

Pipeline for one run:

1. Resolve inheritance once for the whole library and collect the abstract classes
   (abstractness depends on the global hierarchy, not on a single header).
2. Partition the library by declaring header, skipping infrastructure headers.
3. For each header: eligibility filter, default-argument expansion, type conversion,
   grouping by shim base name, overload disambiguation, sort by symbol name.

Headers are independent once step 1 is done, so step 3 may run on a thread pool.
Results and diagnostics are always merged in header-name order.

A run either returns the full `CppAndFfiData` or raises: a `DisambiguationError`
(or an inconsistency found by the resolver) aborts the whole run, while a
`TypeConversionError` only drops the method concerned.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from .captions import OverloadDisambiguator, c_base_name
from .diagnostics import DiagnosticKind, Diagnostics
from .errors import TypeConversionError
from .ffi_types import CppAndFfiData, CppAndFfiMethod, CppFfiHeaderData
from .filtering import MethodFilter
from .inheritance import InheritanceResolver
from .models import CppData
from .type_mapping import MappingConfig, TypeMapper, expand_default_arguments
from .utils import include_file_base_name


@dataclass
class GeneratorConfig:
    crate_name: str = "cpp_lib"
    # Header base names carrying no bindable declarations
    excluded_include_files: Tuple[str, ...] = ("QFlags", "QFlag")
    mapping: MappingConfig = field(default_factory=MappingConfig)
    max_workers: int = 1

    def to_dict(self) -> Dict:
        return {
            "crate_name": self.crate_name,
            "excluded_include_files": list(self.excluded_include_files),
            "flags_class_names": list(self.mapping.flags_class_names),
            "utils_crate": self.mapping.utils_crate,
            "max_workers": self.max_workers,
        }


class FfiGenerator:
    def __init__(self, data: CppData, config: Optional[GeneratorConfig] = None) -> None:
        self.data = data
        self.config = config or GeneratorConfig()
        self.mapping = replace(self.config.mapping, crate_name=self.config.crate_name)

    # ---- Public API ----

    def generate_all(self) -> CppAndFfiData:
        diagnostics = Diagnostics()
        resolver = InheritanceResolver(self.data, diagnostics)
        abstract_classes = resolver.abstract_classes()
        if abstract_classes:
            diagnostics.info(DiagnosticKind.ABSTRACT_CLASSES, "Abstract classes", ", ".join(abstract_classes))

        mapper = TypeMapper(self.data, config=self.mapping, resolver=resolver)
        by_headers = self.data.split_by_headers()

        jobs: List[Tuple[str, CppData]] = []
        for include_file, header_data in by_headers.items():
            if include_file_base_name(include_file) in self.config.excluded_include_files:
                diagnostics.debug(DiagnosticKind.EXCLUDED_HEADER, "Skipping excluded header", include_file)
                continue
            jobs.append((include_file, header_data))

        def run(job: Tuple[str, CppData]) -> Tuple[CppFfiHeaderData, Diagnostics]:
            header_diagnostics = Diagnostics()
            header = self.process_header(job[0], job[1], set(abstract_classes), mapper, header_diagnostics)
            return header, header_diagnostics

        if self.config.max_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                results = list(pool.map(run, jobs))
        else:
            results = [run(job) for job in jobs]

        headers: List[CppFfiHeaderData] = []
        for header, header_diagnostics in results:
            headers.append(header)
            diagnostics.extend(header_diagnostics)

        return CppAndFfiData(
            cpp_data=self.data,
            cpp_data_by_headers=by_headers,
            cpp_ffi_headers=headers,
            diagnostics=diagnostics,
            abstract_classes=tuple(abstract_classes),
        )

    def process_header(
        self,
        include_file: str,
        header_data: CppData,
        abstract_classes: Set[str],
        mapper: TypeMapper,
        diagnostics: Diagnostics,
    ) -> CppFfiHeaderData:
        base_name = include_file_base_name(include_file)
        method_filter = MethodFilter(self.data, abstract_classes, diagnostics)
        methods = method_filter.filter(header_data.methods, include_file)
        methods = expand_default_arguments(methods, diagnostics)
        return CppFfiHeaderData(
            include_file=include_file,
            include_file_base_name=base_name,
            methods=tuple(self.process_methods(include_file, methods, mapper, diagnostics)),
        )

    def process_methods(self, include_file: str, methods, mapper: TypeMapper, diagnostics: Diagnostics) -> List[CppAndFfiMethod]:
        """
        Convert eligible methods and give each a unique shim name, sorted by that name.
        """
        base_name = include_file_base_name(include_file)
        groups: Dict[str, List[CppAndFfiMethod]] = {}
        for method in methods:
            try:
                signature = mapper.map_method(method)
            except TypeConversionError as e:
                diagnostics.warning(
                    DiagnosticKind.TYPE_CONVERSION,
                    f"Unable to produce C function for method ({e})",
                    method.short_text(),
                    include_file,
                )
                continue
            c_base = c_base_name(method, base_name)
            groups.setdefault(c_base, []).append(
                CppAndFfiMethod(cpp_method=method, signature=signature, c_base_name=c_base, c_name="")
            )
        named = OverloadDisambiguator(include_file).assign_names(groups)
        return sorted(named, key=lambda m: m.c_name)


def generate_ffi(data: CppData, config: Optional[GeneratorConfig] = None) -> CppAndFfiData:
    return FfiGenerator(data, config).generate_all()


__all__ = [
    "GeneratorConfig",
    "FfiGenerator",
    "generate_ffi",
]
