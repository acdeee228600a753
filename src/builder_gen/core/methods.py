from builder_gen.ir import FieldShape, MethodDecl, MethodKind, MethodPlan, ShapeKind
from builder_gen.models import FieldSchema


def plan_methods(field: FieldSchema, shape: FieldShape) -> MethodPlan:
    """Decide which setters a field gets.

    Plain and optional fields get one setter taking the (unwrapped) value.
    Repeated fields get an appender, plus a whole-sequence setter unless the
    appender already uses the field's name.
    """
    if shape.kind is not ShapeKind.REPEATED:
        setter = MethodDecl(
            kind=MethodKind.SET_WHOLE,
            name=field.name,
            field=field.name,
            param_name=field.name,
            param_type=shape.inner,
        )
        return MethodPlan(field=field.name, methods=(setter,))

    if shape.method_name is None:
        raise ValueError(f"repeated field {field.name} has no appender name")
    appender = MethodDecl(
        kind=MethodKind.APPEND_ONE,
        name=shape.method_name,
        field=field.name,
        param_name=shape.method_name,
        param_type=shape.inner,
    )
    if shape.is_self_named:
        return MethodPlan(field=field.name, methods=(appender,))

    setter = MethodDecl(
        kind=MethodKind.SET_WHOLE,
        name=field.name,
        field=field.name,
        param_name=field.name,
        param_type=field.declared_type,
    )
    return MethodPlan(field=field.name, methods=(setter, appender))
