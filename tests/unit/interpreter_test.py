"""Behavioral tests for generated builders, run through the reference interpreter."""

import pytest
from conftest import make_field, string_type

from builder_gen.core.assembler import assemble
from builder_gen.errors import MissingFieldError
from builder_gen.interpreter import MaterializedBuilder, materialize
from builder_gen.ir import GeneratedUnit
from builder_gen.models import RecordSchema, TypeExpr


def _builder_class(schema: RecordSchema) -> type[MaterializedBuilder]:
    unit = assemble(schema)
    assert isinstance(unit, GeneratedUnit)
    return materialize(unit)


@pytest.fixture
def command_builder(command_schema: RecordSchema) -> type[MaterializedBuilder]:
    return _builder_class(command_schema)


class TestCommandExample:
    def test_end_to_end_success(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder()
        builder.executable("cat").arg("-lh").arg("/tmp")  # type: ignore[attr-defined]

        assert builder.build() == {
            "executable": "cat",
            "args": ["-lh", "/tmp"],
            "env": [],
            "current_dir": None,
        }

    def test_missing_executable_fails(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder()
        builder.arg("-lh")  # type: ignore[attr-defined]

        with pytest.raises(MissingFieldError) as excinfo:
            builder.build()
        assert excinfo.value.field == "executable"
        assert str(excinfo.value) == "executable is not set"

    def test_class_is_named_after_builder_type(self, command_builder: type[MaterializedBuilder]) -> None:
        assert command_builder.__name__ == "CommandBuilder"


class TestPlainFields:
    def test_last_value_wins(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder()
        builder.executable("cat").executable("ls")  # type: ignore[attr-defined]
        assert builder.build()["executable"] == "ls"

    def test_setters_chain(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder()
        assert builder.executable("cat") is builder  # type: ignore[attr-defined]
        assert builder.arg("x") is builder  # type: ignore[attr-defined]

    def test_first_missing_field_is_reported(self) -> None:
        schema = RecordSchema(
            name="Pair",
            fields=(make_field("left", string_type()), make_field("right", string_type())),
        )
        builder = _builder_class(schema)()
        with pytest.raises(MissingFieldError) as excinfo:
            builder.build()
        assert excinfo.value.field == "left"


class TestOptionalFields:
    def test_unset_is_absent(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        assert builder.build()["current_dir"] is None

    def test_set_is_present(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat").current_dir("/tmp")  # type: ignore[attr-defined]
        assert builder.build()["current_dir"] == "/tmp"

    def test_last_value_wins(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        builder.current_dir("/a").current_dir("/b")
        assert builder.build()["current_dir"] == "/b"

    def test_record_with_only_optional_fields_always_builds(self) -> None:
        schema = RecordSchema(name="Opts", fields=(make_field("x", TypeExpr.path("Option", string_type())),))
        assert _builder_class(schema)().build() == {"x": None}


class TestRepeatedFields:
    def test_appends_keep_call_order(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        for value in ["b", "a", "b"]:
            builder.arg(value)
        assert builder.build()["args"] == ["b", "a", "b"]

    def test_whole_setter_replaces_sequence(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        builder.arg("-lh").args(["x", "y"])
        assert builder.build()["args"] == ["x", "y"]

    def test_append_after_whole_setter_extends(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        builder.args(["x"]).arg("y")
        assert builder.build()["args"] == ["x", "y"]

    def test_self_named_method_appends(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        builder.env("A=1").env("B=2")
        assert builder.build()["env"] == ["A=1", "B=2"]

    def test_build_does_not_share_sequences(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat").arg("a")  # type: ignore[attr-defined]
        first = builder.build()
        builder.arg("b")
        assert first["args"] == ["a"]
        assert builder.build()["args"] == ["a", "b"]


class TestIsolation:
    def test_builders_do_not_share_state(self, command_builder: type[MaterializedBuilder]) -> None:
        one = command_builder().executable("one").arg("1")  # type: ignore[attr-defined]
        two = command_builder().executable("two")  # type: ignore[attr-defined]
        assert two.build()["args"] == []
        assert one.build()["args"] == ["1"]

    def test_setter_touches_only_its_slot(self, command_builder: type[MaterializedBuilder]) -> None:
        builder = command_builder().executable("cat")  # type: ignore[attr-defined]
        before = builder.build()
        builder.current_dir("/tmp")
        after = builder.build()
        assert {k: v for k, v in after.items() if k != "current_dir"} == {
            k: v for k, v in before.items() if k != "current_dir"
        }
