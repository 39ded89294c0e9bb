#!/usr/bin/env python3
"""
Inheritance resolution: which methods a class exposes, and whether it is abstract.

For a class, its transitive method set is built from its bases (declaration order,
each base fully resolved first) followed by the class's own declarations. An
inherited method is suppressed when the class itself, or a base processed earlier,
already provides a method with the same name and identical argument types. A class
is abstract when pure virtual methods remain in that set.

Resolution walks an explicit worklist rather than recursing, keeps a "visiting"
marker per class, and fails with `InheritanceCycleError` if a class turns out to be
its own base. Results are memoized for the lifetime of the resolver, so the
orchestrator builds one resolver per run and shares it (read-only) across headers.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from .diagnostics import DiagnosticKind, Diagnostics
from .errors import InconsistentInputError, InheritanceCycleError
from .models import (
    CppBaseSpecifier,
    CppClassKind,
    CppClassType,
    CppData,
    CppMethod,
    CppMethodKind,
    CppVisibility,
)


class InheritanceResolver:
    def __init__(self, data: CppData, diagnostics: Optional[Diagnostics] = None) -> None:
        self.data = data
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self._own_methods: Dict[str, List[CppMethod]] = {}
        for level in data.iter_levels():
            for method in level.methods:
                class_name = method.class_name()
                if class_name is not None:
                    self._own_methods.setdefault(class_name, []).append(method)
        self._resolved: Dict[str, Tuple[CppMethod, ...]] = {}
        self._bases: Dict[str, List[Tuple[str, CppBaseSpecifier]]] = {}

    # --------------------------
    # Queries
    # --------------------------

    def all_methods(self, class_name: str) -> Tuple[CppMethod, ...]:
        """
        Transitive method set of `class_name`: inherited methods first (rebased onto
        `class_name`, with the base specifier appended to their inheritance chain),
        own methods last.
        """
        self._resolve(class_name)
        return self._resolved[class_name]

    def pure_virtual_methods(self, class_name: str) -> List[CppMethod]:
        return [m for m in self.all_methods(class_name) if m.is_pure_virtual]

    def is_abstract(self, class_name: str) -> bool:
        return bool(self.pure_virtual_methods(class_name))

    def abstract_classes(self) -> List[str]:
        """Abstract classes declared by the top-level library, sorted by name."""
        names = [t.name for t in self.data.types if isinstance(t.kind, CppClassKind)]
        return sorted(name for name in names if self.is_abstract(name))

    def has_public_destructor(self, class_name: str) -> bool:
        """
        True if the class can be deleted from outside: no destructor declared
        (implicitly public) or a public one.
        """
        for method in self._own_methods.get(class_name, []):
            if method.is_destructor:
                return method.class_membership.visibility == CppVisibility.PUBLIC
        return True

    # --------------------------
    # Resolution
    # --------------------------

    def _resolve(self, class_name: str) -> None:
        if class_name in self._resolved:
            return
        stack: List[Tuple[str, bool]] = [(class_name, False)]
        path: List[str] = []
        visiting: Set[str] = set()
        while stack:
            name, expanded = stack.pop()
            if expanded:
                self._resolved[name] = self._combine(name)
                path.pop()
                visiting.discard(name)
                continue
            if name in self._resolved:
                continue
            if name in visiting:
                raise InheritanceCycleError(path[path.index(name):] + [name])
            visiting.add(name)
            path.append(name)
            stack.append((name, True))
            for base_name, _ in reversed(self._base_names(name, is_root=name == class_name)):
                if base_name not in self._resolved:
                    stack.append((base_name, False))

    def _base_names(self, class_name: str, is_root: bool) -> List[Tuple[str, CppBaseSpecifier]]:
        if class_name in self._bases:
            return self._bases[class_name]
        bases: List[Tuple[str, CppBaseSpecifier]] = []
        info = self.data.find_type_info(class_name)
        if info is None:
            if is_root:
                self.diagnostics.warning(
                    DiagnosticKind.MISSING_CLASS,
                    "class not found, only its own methods are considered",
                    class_name,
                )
        elif isinstance(info.kind, CppClassKind):
            for spec in info.kind.bases:
                base = spec.base_type.base
                if not isinstance(base, CppClassType):
                    raise InconsistentInputError(
                        f"base of {class_name} is not a class type: {spec.base_type.to_cpp_code()}"
                    )
                if self.data.find_type_info(base.name) is None:
                    self.diagnostics.warning(
                        DiagnosticKind.MISSING_BASE,
                        f"base class of {class_name} not found, its methods are not inherited",
                        base.name,
                    )
                    continue
                bases.append((base.name, spec))
        self._bases[class_name] = bases
        return bases

    def _combine(self, class_name: str) -> Tuple[CppMethod, ...]:
        own = self._own_methods.get(class_name, [])
        inherited: List[CppMethod] = []
        for base_name, spec in self._bases.get(class_name, []):
            for method in self._resolved[base_name]:
                if method.class_membership is None:
                    continue
                if method.class_membership.kind != CppMethodKind.REGULAR:
                    continue
                if any(o.overrides(method) for o in own):
                    continue
                if any(i.overrides(method) for i in inherited):
                    continue
                inherited.append(_rebase(method, class_name, spec))
        return tuple(inherited) + tuple(own)


def _rebase(method: CppMethod, class_name: str, spec: CppBaseSpecifier) -> CppMethod:
    membership = replace(method.class_membership, class_type=CppClassType(class_name))
    return replace(
        method,
        class_membership=membership,
        inheritance_chain=method.inheritance_chain + (spec,),
    )


__all__ = [
    "InheritanceResolver",
]
