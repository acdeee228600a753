import logging
from pathlib import Path
from typing import cast

from tree_sitter import Node, Query, QueryCursor
from tree_sitter_language_pack import SupportedLanguage, get_language, get_parser

from builder_gen.errors import UnsupportedRecordError
from builder_gen.models import (
    FieldSchema,
    GenericArg,
    PathSegment,
    Position,
    RawAttribute,
    RecordSchema,
    SourceSpan,
    TypeExpr,
)
from builder_gen.settings import get_settings

logger = logging.getLogger(__name__)

LANGUAGE = "rust"
SOURCE_SUFFIX = ".rs"

_COMMENT_NODES = frozenset({"line_comment", "block_comment"})
_PATH_LEAF_NODES = frozenset(
    {"identifier", "type_identifier", "primitive_type", "self", "crate", "super", "metavariable"}
)
_CONST_ARG_NODES = frozenset(
    {
        "block",
        "integer_literal",
        "float_literal",
        "string_literal",
        "char_literal",
        "boolean_literal",
        "negative_literal",
    }
)


def _load_query(query_type: str) -> Query:
    queries_dir = Path(__file__).parent.parent / "queries"
    query_path = queries_dir / f"{LANGUAGE}_{query_type}.scm"
    if not query_path.exists():
        raise FileNotFoundError(f"Query file not found: {query_path}")
    query_text = query_path.read_text(encoding="utf-8")
    return Query(get_language(cast(SupportedLanguage, LANGUAGE)), query_text)


def _text(source: bytes, node: Node) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8")


def _span(node: Node) -> SourceSpan:
    return SourceSpan(
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        start_point=Position(row=node.start_point[0], column=node.start_point[1]),
        end_point=Position(row=node.end_point[0], column=node.end_point[1]),
    )


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


def _path_segments(source: bytes, node: Node) -> list[PathSegment]:
    if node.type in ("scoped_identifier", "scoped_type_identifier"):
        path = node.child_by_field_name("path")
        name = node.child_by_field_name("name")
        segments = _path_segments(source, path) if path is not None else []
        if name is not None:
            segments.extend(_path_segments(source, name))
        return segments
    if node.type == "generic_type":
        return _generic_segments(source, node)
    return [PathSegment(ident=_text(source, node))]


def _generic_segments(source: bytes, node: Node) -> list[PathSegment]:
    base = node.child_by_field_name("type")
    arguments = node.child_by_field_name("type_arguments")
    segments = _path_segments(source, base) if base is not None else []
    if segments and arguments is not None:
        last = segments[-1]
        segments[-1] = PathSegment(ident=last.ident, generic_args=_generic_args(source, arguments))
    return segments


def _generic_args(source: bytes, arguments: Node) -> tuple[GenericArg, ...]:
    args: list[GenericArg] = []
    for child in arguments.named_children:
        text = _text(source, child)
        if child.type in _COMMENT_NODES:
            continue
        if child.type == "lifetime":
            args.append(GenericArg(kind="lifetime", text=text))
        elif child.type == "type_binding":
            args.append(GenericArg(kind="binding", text=text))
        elif child.type in _CONST_ARG_NODES:
            args.append(GenericArg(kind="const", text=text))
        else:
            args.append(GenericArg(kind="type", text=text, type=type_expr_from_node(source, child)))
    return tuple(args)


def type_expr_from_node(source: bytes, node: Node) -> TypeExpr:
    """Convert a tree-sitter Rust type node into a ``TypeExpr``."""
    text = _text(source, node)
    if node.type in _PATH_LEAF_NODES or node.type in ("scoped_type_identifier", "generic_type"):
        return TypeExpr(text=text, segments=tuple(_path_segments(source, node)))
    return TypeExpr(text=text)


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


def _attribute_of(item: Node) -> Node | None:
    return next((c for c in item.named_children if c.type == "attribute"), None)


def _attribute_path(source: bytes, attribute: Node) -> str:
    return _text(source, attribute.named_children[0]) if attribute.named_children else ""


def _outer_attributes(node: Node) -> list[Node]:
    attributes: list[Node] = []
    sibling = node.prev_named_sibling
    while sibling is not None and (sibling.type == "attribute_item" or sibling.type in _COMMENT_NODES):
        if sibling.type == "attribute_item":
            attributes.append(sibling)
        sibling = sibling.prev_named_sibling
    attributes.reverse()
    return attributes


def _derives(source: bytes, attribute_items: list[Node], derive_name: str) -> bool:
    for item in attribute_items:
        attribute = _attribute_of(item)
        if attribute is None or _attribute_path(source, attribute) != "derive":
            continue
        arguments = attribute.child_by_field_name("arguments")
        if arguments is None:
            continue
        last_ident: str | None = None
        for child in arguments.children:
            if child.type == "identifier":
                last_ident = _text(source, child)
            elif child.type in (",", ")") and last_ident is not None:
                if last_ident == derive_name:
                    return True
                last_ident = None
    return False


def _field_decorator(source: bytes, record: str, field: str, items: list[Node], name: str) -> RawAttribute | None:
    matching = [a for a in (_attribute_of(i) for i in items) if a is not None and _attribute_path(source, a) == name]
    if not matching:
        return None
    if len(matching) > 1:
        logger.warning("%s.%s has %d `%s` attributes; only the first is used", record, field, len(matching), name)
    attribute = matching[0]
    return RawAttribute(text=_text(source, attribute), span=_span(attribute))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def _record_from_node(source: bytes, node: Node, name: str, attribute_name: str) -> RecordSchema:
    if node.child_by_field_name("type_parameters") is not None:
        raise UnsupportedRecordError(f"{name}: builders cannot be derived for generic structs")

    body = node.child_by_field_name("body")
    if body is None:
        return RecordSchema(name=name, kind="unit", span=_span(node))
    if body.type != "field_declaration_list":
        return RecordSchema(name=name, kind="tuple", span=_span(node))

    fields: list[FieldSchema] = []
    pending: list[Node] = []
    for child in body.named_children:
        if child.type == "attribute_item":
            pending.append(child)
        elif child.type == "field_declaration":
            pending.extend(c for c in child.named_children if c.type == "attribute_item")
            name_node = child.child_by_field_name("name")
            type_node = child.child_by_field_name("type")
            if name_node is None or type_node is None:
                raise UnsupportedRecordError(f"{name}: cannot read field at {child.start_point}")
            field_name = _text(source, name_node)
            fields.append(
                FieldSchema(
                    name=field_name,
                    declared_type=type_expr_from_node(source, type_node),
                    raw_decorator=_field_decorator(source, name, field_name, pending, attribute_name),
                    span=_span(child),
                )
            )
            pending = []

    return RecordSchema(name=name, kind="named", fields=tuple(fields), span=_span(node))


def extract_records(
    source_bytes: bytes, derive_name: str | None = None, attribute_name: str | None = None
) -> list[RecordSchema]:
    """Return a schema for every struct in ``source_bytes`` that derives the builder."""
    settings = get_settings()
    derive_name = derive_name or settings.derive_name
    attribute_name = attribute_name or settings.attribute_name

    parser = get_parser(cast(SupportedLanguage, LANGUAGE))
    tree = parser.parse(source_bytes)
    if tree.root_node.has_error:
        logger.warning("Source contains syntax errors; extracted records may be incomplete")

    records: list[RecordSchema] = []
    cursor = QueryCursor(_load_query("records"))
    for _, captures in cursor.matches(tree.root_node):
        node = captures["record"][0]
        name = _text(source_bytes, captures["record.name"][0])
        if not _derives(source_bytes, _outer_attributes(node), derive_name):
            continue
        records.append(_record_from_node(source_bytes, node, name, attribute_name))

    records.sort(key=lambda r: r.span.start_byte if r.span else 0)
    logger.debug("Found %d record(s) deriving %s", len(records), derive_name)
    return records


def extract_records_from_file(path: str | Path, derive_name: str | None = None) -> list[RecordSchema]:
    file_path = Path(path)
    if file_path.suffix.lower() != SOURCE_SUFFIX:
        raise ValueError(f"Unsupported file extension: {file_path.suffix}")

    try:
        source_bytes = file_path.read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {path}") from None

    return extract_records(source_bytes, derive_name=derive_name)
