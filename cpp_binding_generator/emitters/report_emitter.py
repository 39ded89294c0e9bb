#!/usr/bin/env python3
"""
Emitter for a human-readable binding report.

The report is a Markdown summary of one generation run, rendered with Jinja2:

- abstract classes (no constructors generated for them)
- per header, every shim symbol with its C++ declaration and host API signature
- diagnostic counts by kind and the full list of warnings

It is a debugging aid for reviewing what a regeneration changed; the generated
sources themselves are produced by the rendering collaborator from `CppAndFfiData`.

The built-in template is embedded below; a file with the same name in the user's
templates directory takes precedence (see utils.TemplateRenderer).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from ..diagnostics import Severity
from ..ffi_types import CppAndFfiData, CppAndFfiMethod, ShimArgumentMeaning
from ..host_types import host_type_to_code
from ..models import GenerationContext
from ..utils import TemplateRenderer, ensure_dir, write_text

logger = logging.getLogger(__name__)


REPORT_TEMPLATE = """\
# Binding report: {{ crate_name }}

Library: `{{ library_name }}` | headers: {{ headers|length }} | shim functions: {{ method_count }}

## Abstract classes

{% if abstract_classes %}
{% for name in abstract_classes %}
- `{{ name }}`
{% endfor %}
{% else %}
None.
{% endif %}

{% for header in headers %}
## {{ header.include_file }} (`{{ header.base_name }}`)

{% if header.methods %}
| Symbol | C++ | Host API |
|---|---|---|
{% for m in header.methods %}
| `{{ m.c_name }}` | `{{ m.cpp }}` | `fn({{ m.arguments|join(', ') }}){% if m.return_type != '()' %} -> {{ m.return_type }}{% endif %}` |
{% endfor %}
{% else %}
No bindable methods.
{% endif %}

{% endfor %}
## Diagnostics

{% for kind, count in diagnostic_counts.items() %}
- {{ kind }}: {{ count }}
{% endfor %}
{% if warnings %}

### Warnings

{% for w in warnings %}
- {{ w }}
{% endfor %}
{% endif %}
"""

EMBEDDED_TEMPLATES: Dict[str, str] = {
    "binding_report.md.j2": REPORT_TEMPLATE,
}


# --------------------------
# Configuration
# --------------------------

@dataclass(frozen=True)
class ReportConfig:
    template: str = "binding_report.md.j2"
    file_name: str = "binding_report.md"


# --------------------------
# Emitter
# --------------------------

class ReportEmitter:
    """
    Render the Markdown report of a generation run.

    Usage:
        renderer = TemplateRenderer(ctx.templates_dir, embedded=EMBEDDED_TEMPLATES)
        ReportEmitter(ctx, renderer).emit(result)
    """

    def __init__(self, ctx: GenerationContext, renderer: TemplateRenderer, config: Optional[ReportConfig] = None) -> None:
        self.ctx = ctx
        self.renderer = renderer
        self.config = config or ReportConfig()

    # ---- Public API ----

    def render(self, result: CppAndFfiData) -> str:
        return self.renderer.render(self.config.template, self.build_context(result))

    def emit(self, result: CppAndFfiData) -> Path:
        ensure_dir(self.ctx.output_dir)
        path = self.ctx.output_dir / self.config.file_name
        try:
            content = self.render(result)
        except Exception:
            logger.exception("Failed to render binding report template %s", self.config.template)
            raise
        write_text(path, content, dry_run=self.ctx.dry_run)
        return path

    def build_context(self, result: CppAndFfiData) -> Dict:
        crate = self.ctx.crate_name
        return {
            "crate_name": crate,
            "library_name": result.cpp_data.library_name,
            "method_count": result.method_count(),
            "abstract_classes": list(result.abstract_classes),
            "headers": [
                {
                    "include_file": h.include_file,
                    "base_name": h.include_file_base_name,
                    "methods": [self._method_row(m, crate) for m in h.methods],
                }
                for h in result.cpp_ffi_headers
            ],
            "diagnostic_counts": result.diagnostics.counts_by_kind(),
            "warnings": [d.format() for d in result.diagnostics if d.severity == Severity.WARNING],
        }

    # ---- Internals ----

    @staticmethod
    def _method_row(m: CppAndFfiMethod, crate: str) -> Dict:
        arguments: List[str] = []
        for a in m.signature.arguments:
            api = host_type_to_code(a.argument_type.host_api_type, crate)
            name = "self" if a.meaning == ShimArgumentMeaning.THIS else a.name
            arguments.append(f"{name}: {api}")
        return {
            "c_name": m.c_name,
            "cpp": m.cpp_method.short_text().replace("|", "\\|"),
            "arguments": arguments,
            "return_type": host_type_to_code(m.signature.return_type.host_api_type, crate),
        }


__all__ = [
    "EMBEDDED_TEMPLATES",
    "ReportConfig",
    "ReportEmitter",
]
