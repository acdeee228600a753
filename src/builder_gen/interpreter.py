"""Executable semantics for a ``GeneratedUnit``.

``materialize`` turns the unit into a Python class whose instances behave
like the generated Rust builder: chained setters, appenders, and a ``build``
that fails on the first unset required field. Slots live in a private dict so
that method names and field names never clash.
"""

from collections.abc import Callable
from typing import Any

from builder_gen.errors import MissingFieldError
from builder_gen.ir import BuildStepKind, GeneratedUnit, MethodDecl, MethodKind, SlotKind

_ABSENT = object()


class MaterializedBuilder:
    _unit: GeneratedUnit

    def __init__(self) -> None:
        self._slots: dict[str, Any] = {}
        for slot in self._unit.zero_value_ctor.slots:
            self._slots[slot.name] = [] if slot.kind is SlotKind.SEQUENCE else _ABSENT

    def build(self) -> dict[str, Any]:
        kinds = {slot.name: slot.kind for slot in self._unit.storage_fields}
        record: dict[str, Any] = {}
        for step in self._unit.build_routine.steps:
            value = self._slots[step.field]
            if step.kind is BuildStepKind.REQUIRE:
                if value is _ABSENT:
                    raise MissingFieldError(step.field)
                record[step.field] = value
            elif kinds[step.field] is SlotKind.SEQUENCE:
                record[step.field] = list(value)
            else:
                record[step.field] = None if value is _ABSENT else value
        return record

    def __repr__(self) -> str:
        shown = {k: v for k, v in self._slots.items() if v is not _ABSENT}
        return f"{type(self).__name__}({shown})"


def _make_method(method: MethodDecl, slot_kind: SlotKind) -> Callable[..., Any]:
    field = method.field

    if method.kind is MethodKind.APPEND_ONE:

        def append(self: MaterializedBuilder, value: Any) -> MaterializedBuilder:
            self._slots[field].append(value)
            return self

        fn = append
    elif slot_kind is SlotKind.SEQUENCE:

        def replace(self: MaterializedBuilder, values: Any) -> MaterializedBuilder:
            self._slots[field] = list(values)
            return self

        fn = replace
    else:

        def assign(self: MaterializedBuilder, value: Any) -> MaterializedBuilder:
            self._slots[field] = value
            return self

        fn = assign

    fn.__name__ = method.name
    fn.__qualname__ = method.name
    return fn


def materialize(unit: GeneratedUnit) -> type[MaterializedBuilder]:
    """Create a builder class named ``unit.builder_type_name``; instantiate it for a zero-valued builder."""
    kinds = {slot.name: slot.kind for slot in unit.storage_fields}
    namespace: dict[str, Any] = {"_unit": unit}
    for method in unit.methods:
        namespace[method.name] = _make_method(method, kinds[method.field])
    return type(unit.builder_type_name, (MaterializedBuilder,), namespace)
