import logging

from builder_gen.ir import FieldShape, ShapeKind
from builder_gen.models import Diagnostic, FieldSchema, TypeExpr

logger = logging.getLogger(__name__)

OPTION = "Option"
VEC = "Vec"


def classify_wrapper(wrapper_name: str, type_expr: TypeExpr) -> TypeExpr | None:
    """Return ``T`` if ``type_expr`` is exactly ``<wrapper_name><T>``, otherwise ``None``."""
    return type_expr.inner_type_if_generic_wrapper(wrapper_name)


def classify_field(field: FieldSchema, each: str | None = None, is_self_named: bool = False) -> FieldShape | Diagnostic:
    """Classify a field given the appender name parsed from its decorator, if any.

    A decorator on a field that is not ``Vec<T>`` has no element type to append
    and is reported against the decorator.
    """
    if each is not None:
        element = classify_wrapper(VEC, field.declared_type)
        if element is None:
            span = field.raw_decorator.span if field.raw_decorator else field.span
            return Diagnostic(message="`each` requires a field of type `Vec<T>`", location=span)
        shape = FieldShape(kind=ShapeKind.REPEATED, inner=element, method_name=each, is_self_named=is_self_named)
    else:
        inner = classify_wrapper(OPTION, field.declared_type)
        if inner is not None:
            shape = FieldShape(kind=ShapeKind.OPTIONAL, inner=inner)
        else:
            shape = FieldShape(kind=ShapeKind.PLAIN, inner=field.declared_type)

    logger.debug("Field %s classified as %s", field.name, shape.kind)
    return shape
