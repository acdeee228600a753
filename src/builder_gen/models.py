from typing import Literal

from pydantic import BaseModel, ConfigDict


class Position(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    column: int


class SourceSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position


class GenericArg(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["type", "lifetime", "const", "binding"]
    text: str
    type: "TypeExpr | None" = None


class PathSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    ident: str
    generic_args: tuple[GenericArg, ...] | None = None


class TypeExpr(BaseModel):
    """A field type as written in the source.

    ``segments`` is set for path types (``String``, ``std::vec::Vec<u8>``) and
    left empty for every other kind of type (references, tuples, arrays, ...).
    """

    model_config = ConfigDict(frozen=True)

    text: str
    segments: tuple[PathSegment, ...] | None = None

    def inner_type_if_generic_wrapper(self, name: str) -> "TypeExpr | None":
        if self.segments is None or len(self.segments) != 1:
            return None
        segment = self.segments[0]
        if segment.ident != name or segment.generic_args is None or len(segment.generic_args) != 1:
            return None
        arg = segment.generic_args[0]
        if arg.kind != "type":
            return None
        return arg.type

    @classmethod
    def path(cls, ident: str, *args: "TypeExpr") -> "TypeExpr":
        """Build a single-segment path type, e.g. ``TypeExpr.path("Vec", TypeExpr.path("String"))``."""
        if not args:
            return cls(text=ident, segments=(PathSegment(ident=ident),))
        generic_args = tuple(GenericArg(kind="type", text=a.text, type=a) for a in args)
        text = f"{ident}<{', '.join(a.text for a in args)}>"
        return cls(text=text, segments=(PathSegment(ident=ident, generic_args=generic_args),))


GenericArg.model_rebuild()  # necessary for recursive types
PathSegment.model_rebuild()
TypeExpr.model_rebuild()


class RawAttribute(BaseModel):
    """Attribute text without the surrounding ``#[...]``, e.g. ``builder(each = "arg")``."""

    model_config = ConfigDict(frozen=True)

    text: str
    span: SourceSpan | None = None


class FieldSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: TypeExpr
    raw_decorator: RawAttribute | None = None
    span: SourceSpan | None = None


class RecordSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: Literal["named", "tuple", "unit"] = "named"
    fields: tuple[FieldSchema, ...] = ()
    span: SourceSpan | None = None


class Diagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    location: SourceSpan | None = None
