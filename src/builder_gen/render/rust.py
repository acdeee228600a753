"""Render a ``GeneratedUnit`` as Rust source.

Prelude items are spelled with their full ``std`` paths so that a crate which
shadows ``Option``, ``Some``, ``Vec`` or ``Result`` still compiles.
"""

import json
from pathlib import Path

from builder_gen.ir import BuildStepKind, GeneratedUnit, MethodDecl, MethodKind, SlotKind, StorageField
from builder_gen.models import Diagnostic

OPTION = "std::option::Option"
VEC = "std::vec::Vec"
RESULT = "std::result::Result"
BOX = "std::boxed::Box"

_INDENT = "    "


def _slot_type(slot: StorageField) -> str:
    if slot.kind is SlotKind.SEQUENCE:
        return f"{VEC}<{slot.value_type.text}>"
    return f"{OPTION}<{slot.value_type.text}>"


def _slot_init(slot: StorageField) -> str:
    if slot.kind is SlotKind.SEQUENCE:
        return f"{VEC}::new()"
    return f"{OPTION}::None"


def _slot_kinds(unit: GeneratedUnit) -> dict[str, SlotKind]:
    return {slot.name: slot.kind for slot in unit.storage_fields}


def _render_method(method: MethodDecl, slot_kind: SlotKind) -> list[str]:
    lines = [f"pub fn {method.name}(&mut self, {method.param_name}: {method.param_type.text}) -> &mut Self {{"]
    if method.kind is MethodKind.APPEND_ONE:
        lines.append(f"{_INDENT}self.{method.field}.push({method.param_name});")
    elif slot_kind is SlotKind.SEQUENCE:
        lines.append(f"{_INDENT}self.{method.field} = {method.param_name};")
    else:
        lines.append(f"{_INDENT}self.{method.field} = {OPTION}::Some({method.param_name});")
    lines.append(f"{_INDENT}self")
    lines.append("}")
    return lines


def _render_build(unit: GeneratedUnit) -> list[str]:
    routine = unit.build_routine
    lines = [
        f"pub fn {routine.name}(&mut self) -> {RESULT}<{routine.record_name}, {BOX}<dyn std::error::Error>> {{",
        f"{_INDENT}{RESULT}::Ok({routine.record_name} {{",
    ]
    for step in routine.steps:
        if step.kind is BuildStepKind.REQUIRE:
            message = json.dumps(step.error_message, ensure_ascii=False)
            lines.append(f"{_INDENT * 2}{step.field}: self.{step.field}.clone().ok_or({message})?,")
        else:
            lines.append(f"{_INDENT * 2}{step.field}: self.{step.field}.clone(),")
    lines.append(f"{_INDENT}}})")
    lines.append("}")
    return lines


def render_unit(unit: GeneratedUnit) -> str:
    """Render the builder struct, its impl block and the ``builder()`` factory."""
    lines: list[str] = [f"pub struct {unit.builder_type_name} {{"]
    for slot in unit.storage_fields:
        lines.append(f"{_INDENT}{slot.name}: {_slot_type(slot)},")
    lines.append("}")
    lines.append("")

    kinds = _slot_kinds(unit)
    lines.append(f"impl {unit.builder_type_name} {{")
    for method in unit.methods:
        lines.extend(_INDENT + line for line in _render_method(method, kinds[method.field]))
        lines.append("")
    lines.extend(_INDENT + line for line in _render_build(unit))
    lines.append("}")
    lines.append("")

    ctor = unit.zero_value_ctor
    lines.append(f"impl {ctor.record_name} {{")
    lines.append(f"{_INDENT}pub fn {ctor.name}() -> {ctor.builder_type_name} {{")
    lines.append(f"{_INDENT * 2}{ctor.builder_type_name} {{")
    for slot in ctor.slots:
        lines.append(f"{_INDENT * 3}{slot.name}: {_slot_init(slot)},")
    lines.append(f"{_INDENT * 2}}}")
    lines.append(f"{_INDENT}}}")
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_diagnostic(diagnostic: Diagnostic) -> str:
    """Render a diagnostic as a ``compile_error!`` invocation."""
    return f"compile_error!({json.dumps(diagnostic.message, ensure_ascii=False)});\n"


def format_diagnostic(diagnostic: Diagnostic, path: str | Path | None = None) -> str:
    """Format a diagnostic as ``path:line:col: error: message`` (1-based line and column)."""
    where = str(path) if path is not None else "<source>"
    if diagnostic.location is not None:
        point = diagnostic.location.start_point
        where = f"{where}:{point.row + 1}:{point.column + 1}"
    return f"{where}: error: {diagnostic.message}"
