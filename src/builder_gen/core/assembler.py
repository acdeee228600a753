import logging

from builder_gen.core.attributes import ATTRIBUTE_NAME, parse_decorator
from builder_gen.core.methods import plan_methods
from builder_gen.core.shapes import classify_field
from builder_gen.errors import UnsupportedRecordError
from builder_gen.ir import (
    BUILD_NAME,
    BUILDER_SUFFIX,
    BuildRoutine,
    BuildStep,
    BuildStepKind,
    GeneratedUnit,
    MethodDecl,
    MethodKind,
    ShapeKind,
    SlotKind,
    StorageField,
    ZeroValueCtor,
)
from builder_gen.models import Diagnostic, FieldSchema, RecordSchema

logger = logging.getLogger(__name__)


def builder_type_name(record_name: str) -> str:
    return f"{record_name}{BUILDER_SUFFIX}"


def _method_conflict(field: FieldSchema, method: MethodDecl, taken: set[str]) -> Diagnostic | None:
    if method.name not in taken:
        return None
    location = field.span
    if method.kind is MethodKind.APPEND_ONE and field.raw_decorator is not None:
        location = field.raw_decorator.span
    return Diagnostic(message=f"`{method.name}` conflicts with another builder method", location=location)


def assemble(schema: RecordSchema, attribute_name: str = ATTRIBUTE_NAME) -> GeneratedUnit | Diagnostic:
    """Assemble the builder for ``schema``.

    Fields are processed in declaration order and the first malformed decorator
    or clashing method name is returned in place of the unit. Records without named fields are a caller
    error and raise ``UnsupportedRecordError``.
    """
    if schema.kind != "named":
        raise UnsupportedRecordError(f"{schema.name}: builders can only be derived for structs with named fields")

    storage: list[StorageField] = []
    methods: list[MethodDecl] = []
    steps: list[BuildStep] = []
    taken = {BUILD_NAME}

    for field in schema.fields:
        decorator = parse_decorator(field, attribute_name)
        if isinstance(decorator, Diagnostic):
            logger.info("Decorator on %s.%s rejected: %s", schema.name, field.name, decorator.message)
            return decorator

        shape = classify_field(field, decorator.method_name, decorator.is_self_named)
        if isinstance(shape, Diagnostic):
            logger.info("Field %s.%s rejected: %s", schema.name, field.name, shape.message)
            return shape

        for method in plan_methods(field, shape).methods:
            if (conflict := _method_conflict(field, method, taken)) is not None:
                logger.info("Method on %s.%s rejected: %s", schema.name, field.name, conflict.message)
                return conflict
            taken.add(method.name)
            methods.append(method)

        if shape.kind is ShapeKind.REPEATED:
            storage.append(StorageField(name=field.name, kind=SlotKind.SEQUENCE, value_type=shape.inner))
        else:
            storage.append(StorageField(name=field.name, kind=SlotKind.OPTIONAL, value_type=shape.inner))

        if shape.kind is ShapeKind.PLAIN:
            steps.append(
                BuildStep(field=field.name, kind=BuildStepKind.REQUIRE, error_message=f"{field.name} is not set")
            )
        else:
            steps.append(BuildStep(field=field.name, kind=BuildStepKind.PASS_THROUGH))

    builder_name = builder_type_name(schema.name)
    logger.debug("Assembled %s with %d method(s)", builder_name, len(methods))
    return GeneratedUnit(
        record_name=schema.name,
        builder_type_name=builder_name,
        storage_fields=tuple(storage),
        methods=tuple(methods),
        zero_value_ctor=ZeroValueCtor(
            record_name=schema.name,
            builder_type_name=builder_name,
            slots=tuple(storage),
        ),
        build_routine=BuildRoutine(record_name=schema.name, steps=tuple(steps)),
    )
