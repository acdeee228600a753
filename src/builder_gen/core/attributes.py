"""Parsing of ``#[builder(...)]`` field attributes.

The attribute text is first tokenized with the tree-sitter Rust grammar, which
rejects unbalanced delimiters and other lexical damage. The resulting token
trees are then read by a small recursive-descent parser into the three meta
forms Rust attributes take: a bare path (``builder``), a list
(``builder(each = "arg")``) and a name-value pair (``each = "arg"``). Only the
list form with a single ``each = "<name>"`` item is accepted.
"""

import logging
import re
from dataclasses import dataclass
from typing import cast

from pydantic import BaseModel, ConfigDict
from tree_sitter import Node
from tree_sitter_language_pack import SupportedLanguage, get_parser

from builder_gen.models import Diagnostic, FieldSchema, Position, RawAttribute, SourceSpan

logger = logging.getLogger(__name__)

ATTRIBUTE_NAME = "builder"
EACH_KEY = "each"
EXPECTED_EACH_MESSAGE = 'expected `builder(each = "...")`'

_HOST_PREFIX = b"#["
_HOST_SUFFIX = b"]\nstruct __BuilderAttributeHost;\n"

_LITERAL_NODES = frozenset(
    {
        "string_literal",
        "raw_string_literal",
        "char_literal",
        "integer_literal",
        "float_literal",
        "boolean_literal",
    }
)
_RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else", "enum",
        "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
        "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct", "super",
        "trait", "true", "type", "unsafe", "use", "where", "while",
    }
)  # fmt: skip
_COMMENT_NODES = frozenset({"line_comment", "block_comment"})
_STRING_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "0": "\0", "\\": "\\", '"': '"', "'": "'"}
_ESCAPE_RE = re.compile(r"\\(?:u\{([0-9A-Fa-f_]{1,8})\}|x([0-7][0-9A-Fa-f])|\n\s*|(.))", re.DOTALL)


class ParsedDecorator(BaseModel):
    model_config = ConfigDict(frozen=True)

    method_name: str | None = None
    is_self_named: bool = False


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    kind: str  # ident | punct | lit | group
    text: str
    start: int
    end: int
    children: tuple["Token", ...] = ()

    @property
    def delimiter(self) -> str:
        return self.text[:1] if self.kind == "group" else ""


class AttributeSyntaxError(Exception):
    def __init__(self, message: str, start: int, end: int) -> None:
        super().__init__(message)
        self.message = message
        self.start = start
        self.end = end


def _node_text(source: bytes, node: Node) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _first_error(node: Node) -> Node | None:
    if node.is_missing or node.type == "ERROR":
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error(child)
        if found is not None:
            return found
    return node


def _leaf_tokens(source: bytes, node: Node, offset: int) -> list[Token]:
    if node.type in _COMMENT_NODES:
        return []
    start, end = node.start_byte - offset, node.end_byte - offset
    text = _node_text(source, node)
    if node.type in _LITERAL_NODES:
        return [Token("lit", text, start, end)]
    if node.type == "token_tree":
        inner: list[Token] = []
        for child in node.children[1:-1]:
            inner.extend(_leaf_tokens(source, child, offset))
        return [Token("group", text, start, end, tuple(inner))]
    if node.child_count == 0:
        kind = "ident" if text.isidentifier() else "punct"
        return [Token(kind, text, start, end)]
    tokens: list[Token] = []
    for child in node.children:
        tokens.extend(_leaf_tokens(source, child, offset))
    return tokens


def tokenize_attribute(text: str) -> list[Token]:
    """Tokenize attribute text (without ``#[`` and ``]``) into token trees.

    Offsets are byte offsets into ``text``.
    """
    body = text.encode("utf-8")
    host = _HOST_PREFIX + body + _HOST_SUFFIX
    offset = len(_HOST_PREFIX)
    body_end = offset + len(body)

    parser = get_parser(cast(SupportedLanguage, "rust"))
    tree = parser.parse(host)
    root = tree.root_node

    error = _first_error(root)
    if error is not None:
        start = min(max(error.start_byte - offset, 0), len(body))
        end = min(max(error.end_byte - offset, start), len(body))
        if error.is_missing:
            message = f"cannot parse attribute: expected `{error.type}`"
        else:
            snippet = _node_text(host, error).strip() or host[body_end : body_end + 1].decode()
            message = f"cannot parse attribute: unexpected `{snippet[:40]}`"
        raise AttributeSyntaxError(message, start, end)

    items = [child for child in root.named_children if child.type == "attribute_item"]
    if len(items) != 1 or items[0].start_byte != 0 or items[0].end_byte != body_end + 1:
        raise AttributeSyntaxError("cannot parse attribute: unexpected token", 0, len(body))

    attribute = next((c for c in items[0].named_children if c.type == "attribute"), None)
    if attribute is None:
        raise AttributeSyntaxError("cannot parse attribute: expected attribute", 0, len(body))
    return _leaf_tokens(host, attribute, offset)


# ---------------------------------------------------------------------------
# Meta
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetaPath:
    path: str
    start: int
    end: int


@dataclass(frozen=True)
class MetaNameValue:
    path: str
    value: Token
    start: int
    end: int


@dataclass(frozen=True)
class MetaList:
    path: str
    nested: tuple["MetaPath | MetaNameValue | MetaList | Token", ...]
    start: int
    end: int


Meta = MetaPath | MetaNameValue | MetaList


class _MetaParser:
    def __init__(self, tokens: list[Token] | tuple[Token, ...], end: int) -> None:
        self._tokens = list(tokens)
        self._pos = 0
        self._end = end

    def _peek(self) -> Token | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> Token | None:
        token = self._peek()
        if token is not None:
            self._pos += 1
        return token

    def _error(self, message: str, token: Token | None) -> AttributeSyntaxError:
        if token is None:
            return AttributeSyntaxError(f"unexpected end of input, {message}", self._end, self._end)
        return AttributeSyntaxError(message, token.start, token.end)

    def at_end(self) -> bool:
        return self._peek() is None

    def leftover(self) -> AttributeSyntaxError | None:
        if self.at_end():
            return None
        return self._error("unexpected token", self._peek())

    def parse_path(self) -> tuple[str, int, int]:
        token = self._next()
        if token is None or token.kind != "ident":
            raise self._error("expected identifier", token)
        parts, start, end = [token.text], token.start, token.end
        while (sep := self._peek()) is not None and sep.kind == "punct" and sep.text == "::":
            self._next()
            segment = self._next()
            if segment is None or segment.kind != "ident":
                raise self._error("expected identifier", segment)
            parts.append(segment.text)
            end = segment.end
        return "::".join(parts), start, end

    def parse_meta(self) -> Meta:
        path, start, end = self.parse_path()
        token = self._peek()
        if token is not None and token.kind == "group":
            self._next()
            if token.delimiter != "(":
                raise self._error("expected parentheses", token)
            nested = _MetaParser(token.children, token.end - 1).parse_nested()
            return MetaList(path, nested, start, token.end)
        if token is not None and token.kind == "punct" and token.text == "=":
            self._next()
            value = self._next()
            if value is None or value.kind != "lit":
                raise self._error("expected literal", value)
            return MetaNameValue(path, value, start, value.end)
        return MetaPath(path, start, end)

    def parse_nested(self) -> tuple[Meta | Token, ...]:
        items: list[Meta | Token] = []
        while not self.at_end():
            token = self._peek()
            if token is not None and token.kind == "lit":
                self._next()
                items.append(token)
            else:
                items.append(self.parse_meta())
            if self.at_end():
                break
            comma = self._next()
            if comma is None or comma.kind != "punct" or comma.text != ",":
                raise self._error("expected `,`", comma)
        return tuple(items)


def parse_meta(text: str) -> Meta:
    """Parse attribute text into a meta tree, raising ``AttributeSyntaxError`` on malformed syntax."""
    tokens = tokenize_attribute(text)
    parser = _MetaParser(tokens, len(text.encode("utf-8")))
    meta = parser.parse_meta()
    if (error := parser.leftover()) is not None:
        raise error
    return meta


# ---------------------------------------------------------------------------
# Literals and locations
# ---------------------------------------------------------------------------


def string_literal_value(token: Token) -> str | None:
    """Return the contents of a (raw) string literal token, or ``None`` for any other literal."""
    text = token.text
    if text.startswith('"') and text.endswith('"') and len(text) >= 2:
        return _unescape(text[1:-1])
    if text.startswith("r"):
        body = text[1:].strip("#")
        if len(body) >= 2 and body.startswith('"') and body.endswith('"'):
            return body[1:-1]
    return None


def _decode_escape(match: re.Match[str]) -> str:
    unicode, byte, simple = match.groups()
    if unicode is not None:
        code = int(unicode.replace("_", ""), 16)
        return chr(code) if code <= 0x10FFFF else match.group(0)
    if byte is not None:
        return chr(int(byte, 16))
    if simple is None:
        # line continuation
        return ""
    return _STRING_ESCAPES.get(simple, match.group(0))


def _unescape(value: str) -> str:
    return _ESCAPE_RE.sub(_decode_escape, value)


def is_valid_method_name(name: str) -> bool:
    """Identifiers follow Unicode XID rules, as ``str.isidentifier`` does."""
    return name.isidentifier() and name != "_" and name not in _RUST_KEYWORDS


def _point(base: Position, body: bytes, offset: int) -> Position:
    prefix = body[:offset]
    newlines = prefix.count(b"\n")
    if newlines == 0:
        return Position(row=base.row, column=base.column + offset)
    return Position(row=base.row + newlines, column=offset - prefix.rfind(b"\n") - 1)


def locate(attribute: RawAttribute, start: int, end: int) -> SourceSpan:
    """Map byte offsets inside ``attribute.text`` onto the source the attribute came from."""
    body = attribute.text.encode("utf-8")
    span = attribute.span
    base_byte = span.start_byte if span else 0
    base_point = span.start_point if span else Position(row=0, column=0)
    return SourceSpan(
        start_byte=base_byte + start,
        end_byte=base_byte + end,
        start_point=_point(base_point, body, start),
        end_point=_point(base_point, body, end),
    )


# ---------------------------------------------------------------------------
# Decorator
# ---------------------------------------------------------------------------


def parse_decorator(field: FieldSchema, attribute_name: str = ATTRIBUTE_NAME) -> ParsedDecorator | Diagnostic:
    """Extract the appender name from a field's ``builder(each = "...")`` decorator.

    Returns a ``Diagnostic`` instead of raising when the decorator is malformed.
    """
    attribute = field.raw_decorator
    if attribute is None:
        return ParsedDecorator()

    try:
        meta = parse_meta(attribute.text)
    except AttributeSyntaxError as exc:
        logger.debug("Unparsable decorator on field %s: %s", field.name, exc.message)
        return Diagnostic(message=exc.message, location=locate(attribute, exc.start, exc.end))

    def expected() -> Diagnostic:
        return Diagnostic(message=EXPECTED_EACH_MESSAGE, location=locate(attribute, meta.start, meta.end))

    if not isinstance(meta, MetaList) or meta.path != attribute_name or len(meta.nested) != 1:
        return expected()
    item = meta.nested[0]
    if not isinstance(item, MetaNameValue) or item.path != EACH_KEY:
        return expected()
    method_name = string_literal_value(item.value)
    if method_name is None:
        return expected()
    if not is_valid_method_name(method_name):
        return Diagnostic(
            message=f"`{method_name}` is not a valid method name",
            location=locate(attribute, item.value.start, item.value.end),
        )

    return ParsedDecorator(method_name=method_name, is_self_named=method_name == field.name)
