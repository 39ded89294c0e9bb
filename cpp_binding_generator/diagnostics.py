#!/usr/bin/env python3
"""
Structured diagnostics for the generation pipeline.

The core components (inheritance resolver, method filter, type mapper, orchestrator)
never write to a process-wide log. Instead they record `Diagnostic` values into a
`Diagnostics` collection that is returned with their result. The command line entry
point forwards the collected records to `logging` once the run has finished, which
keeps the pipeline a pure function of its input and easy to assert on in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional


class Severity(Enum):
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING


class DiagnosticKind(Enum):
    ABSTRACT_CLASSES = "abstract_classes"
    ABSTRACT_CONSTRUCTOR = "abstract_constructor"
    PRIVATE_METHOD = "private_method"
    PROTECTED_METHOD = "protected_method"
    SIGNAL = "signal"
    TEMPLATE_METHOD = "template_method"
    TEMPLATE_CLASS_METHOD = "template_class_method"
    TYPE_CONVERSION = "type_conversion"
    DUPLICATE_OVERLOAD = "duplicate_overload"
    MISSING_CLASS = "missing_class"
    MISSING_BASE = "missing_base"
    EXCLUDED_HEADER = "excluded_header"


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    kind: DiagnosticKind
    message: str
    subject: str = ""
    include_file: Optional[str] = None

    def format(self) -> str:
        where = f"<{self.include_file}> " if self.include_file else ""
        if self.subject:
            return f"{where}{self.message}: {self.subject}"
        return f"{where}{self.message}"

    def to_dict(self) -> Dict:
        return {
            "severity": self.severity.name.lower(),
            "kind": self.kind.value,
            "message": self.message,
            "subject": self.subject,
            "include_file": self.include_file,
        }


class Diagnostics:
    """
    Ordered, append-only collection of diagnostics.

    Order is insertion order; the orchestrator merges per-header collections in
    header-name order so two runs over the same input produce identical sequences.
    """

    def __init__(self, items: Optional[Iterable[Diagnostic]] = None) -> None:
        self._items: List[Diagnostic] = list(items or [])

    def add(
        self,
        severity: Severity,
        kind: DiagnosticKind,
        message: str,
        subject: str = "",
        include_file: Optional[str] = None,
    ) -> Diagnostic:
        item = Diagnostic(severity=severity, kind=kind, message=message, subject=subject, include_file=include_file)
        self._items.append(item)
        return item

    def debug(self, kind: DiagnosticKind, message: str, subject: str = "", include_file: Optional[str] = None) -> Diagnostic:
        return self.add(Severity.DEBUG, kind, message, subject, include_file)

    def info(self, kind: DiagnosticKind, message: str, subject: str = "", include_file: Optional[str] = None) -> Diagnostic:
        return self.add(Severity.INFO, kind, message, subject, include_file)

    def warning(self, kind: DiagnosticKind, message: str, subject: str = "", include_file: Optional[str] = None) -> Diagnostic:
        return self.add(Severity.WARNING, kind, message, subject, include_file)

    def extend(self, other: Iterable[Diagnostic]) -> None:
        self._items.extend(other)

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [d for d in self._items if d.kind == kind]

    def counts_by_kind(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for d in self._items:
            counts[d.kind.value] = counts.get(d.kind.value, 0) + 1
        return dict(sorted(counts.items()))

    def log_to(self, logger: logging.Logger) -> None:
        """
        Forward every record to `logger` at the level matching its severity.
        """
        for d in self._items:
            logger.log(d.severity.value, "%s", d.format())

    def to_list(self) -> List[Dict]:
        return [d.to_dict() for d in self._items]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Diagnostics({len(self._items)} item(s))"


__all__ = [
    "Severity",
    "DiagnosticKind",
    "Diagnostic",
    "Diagnostics",
]
