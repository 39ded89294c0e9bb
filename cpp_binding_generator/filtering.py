#!/usr/bin/env python3
"""
Method eligibility filter.

Decides which parsed methods are offered to the conversion synthesizer. Rules are
checked in a fixed order and the first matching rule drops the method:

1. constructor of an abstract class
2. private member (debug record only)
3. protected member
4. signal
5. method with its own, uninstantiated template parameters
6. member of a template class that is not a registered instantiation

The filter only selects. It never rewrites a method.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional, Set

from .diagnostics import DiagnosticKind, Diagnostics
from .models import CppClassKind, CppData, CppMethod, CppVisibility, contains_template_parameter


class MethodFilter:
    def __init__(
        self,
        data: CppData,
        abstract_classes: AbstractSet[str],
        diagnostics: Optional[Diagnostics] = None,
    ) -> None:
        self.data = data
        self.abstract_classes = frozenset(abstract_classes)
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.template_classes: Set[str] = set()
        for level in data.iter_levels():
            for t in level.types:
                if isinstance(t.kind, CppClassKind) and data.is_template_class(t.name):
                    self.template_classes.add(t.name)

    def is_template_class_member(self, class_name: str) -> bool:
        return any(class_name == t or class_name.startswith(t + "::") for t in self.template_classes)

    def is_registered_instantiation(self, method: CppMethod) -> bool:
        """
        True if the method belongs to a concrete instantiation of a template class
        (e.g. `QVector<int>`) that the parser recorded.
        """
        class_type = method.class_membership.class_type
        args = class_type.template_arguments
        if not args or any(contains_template_parameter(a) for a in args):
            return False
        return tuple(args) in self.data.template_instantiations_of(class_type.name)

    def accepts(self, method: CppMethod, include_file: Optional[str] = None) -> bool:
        subject = method.short_text()
        membership = method.class_membership
        if membership is not None:
            if method.is_constructor and membership.class_type.name in self.abstract_classes:
                self.diagnostics.debug(
                    DiagnosticKind.ABSTRACT_CONSTRUCTOR,
                    "Constructors are not allowed for abstract classes",
                    subject,
                    include_file,
                )
                return False
            if membership.visibility == CppVisibility.PRIVATE:
                self.diagnostics.debug(DiagnosticKind.PRIVATE_METHOD, "Skipping private method", subject, include_file)
                return False
            if membership.visibility == CppVisibility.PROTECTED:
                self.diagnostics.debug(
                    DiagnosticKind.PROTECTED_METHOD, "Skipping protected method", subject, include_file
                )
                return False
            if membership.is_signal:
                self.diagnostics.warning(DiagnosticKind.SIGNAL, "Skipping signal", subject, include_file)
                return False
        if method.template_arguments is not None and method.template_arguments_values is None:
            self.diagnostics.warning(DiagnosticKind.TEMPLATE_METHOD, "Skipping template method", subject, include_file)
            return False
        class_name = method.class_name()
        if class_name is not None and self.is_template_class_member(class_name):
            if not self.is_registered_instantiation(method):
                self.diagnostics.warning(
                    DiagnosticKind.TEMPLATE_CLASS_METHOD,
                    "Skipping method of template class",
                    subject,
                    include_file,
                )
                return False
        return True

    def filter(self, methods: Iterable[CppMethod], include_file: Optional[str] = None) -> List[CppMethod]:
        return [m for m in methods if self.accepts(m, include_file)]


__all__ = [
    "MethodFilter",
]
