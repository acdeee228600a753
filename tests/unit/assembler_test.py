"""Unit tests for the builder assembler."""

import pytest
from conftest import make_field, string_type

from builder_gen.core.assembler import assemble, builder_type_name
from builder_gen.core.attributes import EXPECTED_EACH_MESSAGE
from builder_gen.errors import UnsupportedRecordError
from builder_gen.ir import BuildStep, BuildStepKind, GeneratedUnit, MethodKind, SlotKind
from builder_gen.models import Diagnostic, RecordSchema, TypeExpr


def _assemble_ok(schema: RecordSchema) -> GeneratedUnit:
    result = assemble(schema)
    assert isinstance(result, GeneratedUnit)
    return result


class TestCommandRecord:
    def test_builder_type_name(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        assert unit.builder_type_name == "CommandBuilder"
        assert unit.zero_value_ctor.name == "builder"
        assert unit.zero_value_ctor.builder_type_name == "CommandBuilder"

    def test_storage_layout_preserves_order(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        assert [(s.name, s.kind, s.value_type.text) for s in unit.storage_fields] == [
            ("executable", SlotKind.OPTIONAL, "String"),
            ("args", SlotKind.SEQUENCE, "String"),
            ("env", SlotKind.SEQUENCE, "String"),
            ("current_dir", SlotKind.OPTIONAL, "String"),
        ]

    def test_method_order(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        assert [(m.name, m.kind) for m in unit.methods] == [
            ("executable", MethodKind.SET_WHOLE),
            ("args", MethodKind.SET_WHOLE),
            ("arg", MethodKind.APPEND_ONE),
            ("env", MethodKind.APPEND_ONE),
            ("current_dir", MethodKind.SET_WHOLE),
        ]

    def test_self_named_field_has_no_whole_setter(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        env_methods = [m for m in unit.methods if m.field == "env"]
        assert [m.kind for m in env_methods] == [MethodKind.APPEND_ONE]
        assert unit.method("env") is not None
        assert unit.method("env").kind is MethodKind.APPEND_ONE  # type: ignore[union-attr]

    def test_build_steps(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        assert unit.build_routine.steps == (
            BuildStep(field="executable", kind=BuildStepKind.REQUIRE, error_message="executable is not set"),
            BuildStep(field="args", kind=BuildStepKind.PASS_THROUGH),
            BuildStep(field="env", kind=BuildStepKind.PASS_THROUGH),
            BuildStep(field="current_dir", kind=BuildStepKind.PASS_THROUGH),
        )

    def test_zero_value_ctor_seeds_every_slot(self, command_schema: RecordSchema) -> None:
        unit = _assemble_ok(command_schema)
        assert unit.zero_value_ctor.slots == unit.storage_fields


class TestDiagnostics:
    def test_malformed_decorator_replaces_unit(self) -> None:
        schema = RecordSchema(
            name="Command",
            fields=(
                make_field("executable", string_type()),
                make_field("args", TypeExpr.path("Vec", string_type()), "builder(eac = 1)"),
            ),
        )
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == EXPECTED_EACH_MESSAGE

    def test_first_malformed_decorator_wins(self) -> None:
        schema = RecordSchema(
            name="Command",
            fields=(
                make_field("args", TypeExpr.path("Vec", string_type()), "builder(each = )"),
                make_field("env", TypeExpr.path("Vec", string_type()), "builder(each)"),
            ),
        )
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == "unexpected end of input, expected literal"

    def test_each_on_non_vec_field(self) -> None:
        schema = RecordSchema(
            name="Command",
            fields=(make_field("name", string_type(), 'builder(each = "n")'),),
        )
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == "`each` requires a field of type `Vec<T>`"

    def test_appender_named_build_is_rejected(self) -> None:
        schema = RecordSchema(
            name="Job",
            fields=(make_field("steps", TypeExpr.path("Vec", string_type()), 'builder(each = "build")'),),
        )
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == "`build` conflicts with another builder method"

    def test_appender_clashing_with_other_setter(self) -> None:
        schema = RecordSchema(
            name="Command",
            fields=(
                make_field("arg", string_type()),
                make_field("args", TypeExpr.path("Vec", string_type()), 'builder(each = "arg")'),
            ),
        )
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == "`arg` conflicts with another builder method"

    def test_plain_field_named_build_is_rejected(self) -> None:
        schema = RecordSchema(name="Target", fields=(make_field("build", string_type()),))
        result = assemble(schema)
        assert isinstance(result, Diagnostic)
        assert result.message == "`build` conflicts with another builder method"


class TestRecordShapes:
    def test_empty_named_record(self) -> None:
        unit = _assemble_ok(RecordSchema(name="Empty"))
        assert unit.builder_type_name == "EmptyBuilder"
        assert unit.methods == ()
        assert unit.build_routine.steps == ()

    @pytest.mark.parametrize("kind", ["tuple", "unit"])
    def test_records_without_named_fields_are_rejected(self, kind: str) -> None:
        with pytest.raises(UnsupportedRecordError):
            assemble(RecordSchema(name="Point", kind=kind))  # type: ignore[arg-type]

    def test_builder_type_name_suffix(self) -> None:
        assert builder_type_name("Command") == "CommandBuilder"

    def test_assembly_is_deterministic(self, command_schema: RecordSchema) -> None:
        assert assemble(command_schema) == assemble(command_schema)
