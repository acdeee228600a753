"""Typed output tree produced by the assembler and consumed by renderers."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from builder_gen.models import TypeExpr

BUILDER_SUFFIX = "Builder"
FACTORY_NAME = "builder"
BUILD_NAME = "build"


class ShapeKind(StrEnum):
    PLAIN = "plain"
    OPTIONAL = "optional"
    REPEATED = "repeated"


class FieldShape(BaseModel):
    """How a field is stored and set.

    ``inner`` is the value a single setter call carries: the declared type for
    plain fields, the wrapped type for ``Option<T>`` and the element type for
    repeated ``Vec<T>`` fields.
    """

    model_config = ConfigDict(frozen=True)

    kind: ShapeKind
    inner: TypeExpr
    method_name: str | None = None
    is_self_named: bool = False


class MethodKind(StrEnum):
    SET_WHOLE = "set_whole"
    APPEND_ONE = "append_one"


class MethodDecl(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: MethodKind
    name: str
    field: str
    param_name: str
    param_type: TypeExpr


class MethodPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    methods: tuple[MethodDecl, ...]

    @property
    def kinds(self) -> frozenset[MethodKind]:
        return frozenset(m.kind for m in self.methods)


class SlotKind(StrEnum):
    OPTIONAL = "optional"
    SEQUENCE = "sequence"


class StorageField(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: SlotKind
    value_type: TypeExpr


class BuildStepKind(StrEnum):
    REQUIRE = "require"
    PASS_THROUGH = "pass_through"


class BuildStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    kind: BuildStepKind
    error_message: str | None = None


class BuildRoutine(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = BUILD_NAME
    record_name: str
    steps: tuple[BuildStep, ...]


class ZeroValueCtor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = FACTORY_NAME
    record_name: str
    builder_type_name: str
    slots: tuple[StorageField, ...]


class GeneratedUnit(BaseModel):
    model_config = ConfigDict(frozen=True)

    record_name: str
    builder_type_name: str
    storage_fields: tuple[StorageField, ...]
    methods: tuple[MethodDecl, ...]
    zero_value_ctor: ZeroValueCtor
    build_routine: BuildRoutine

    def method(self, name: str) -> MethodDecl | None:
        return next((m for m in self.methods if m.name == name), None)
