"""Shared fixtures and helpers for tests."""

from pathlib import Path

import pytest
from tree_sitter import Language, Parser, Query
from tree_sitter_language_pack import get_language, get_parser

from builder_gen.models import FieldSchema, RawAttribute, RecordSchema, TypeExpr

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Schema helpers
# ---------------------------------------------------------------------------

COMMAND_SOURCE = """\
use builder_derive::Builder;

#[derive(Builder)]
pub struct Command {
    executable: String,
    #[builder(each = "arg")]
    args: Vec<String>,
    #[builder(each = "env")]
    env: Vec<String>,
    current_dir: Option<String>,
}
"""


def string_type() -> TypeExpr:
    return TypeExpr.path("String")


def make_field(name: str, type_expr: TypeExpr, decorator: str | None = None) -> FieldSchema:
    raw = RawAttribute(text=decorator) if decorator is not None else None
    return FieldSchema(name=name, declared_type=type_expr, raw_decorator=raw)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def queries_dir() -> Path:
    """Return the path to the queries directory."""
    return _REPO_ROOT / "src" / "builder_gen" / "queries"


@pytest.fixture
def rust_parser() -> Parser:
    """Return a tree-sitter parser for Rust."""
    return get_parser("rust")


@pytest.fixture
def rust_language() -> Language:
    """Return the tree-sitter Rust language."""
    return get_language("rust")


@pytest.fixture
def records_query(queries_dir: Path, rust_language: Language) -> Query:
    """Load the Rust records query."""
    query_text = (queries_dir / "rust_records.scm").read_text()
    return Query(rust_language, query_text)


@pytest.fixture
def command_source() -> str:
    return COMMAND_SOURCE


@pytest.fixture
def command_schema() -> RecordSchema:
    """The ``Command`` record: a plain, two repeated and one optional field."""
    return RecordSchema(
        name="Command",
        fields=(
            make_field("executable", string_type()),
            make_field("args", TypeExpr.path("Vec", string_type()), 'builder(each = "arg")'),
            make_field("env", TypeExpr.path("Vec", string_type()), 'builder(each = "env")'),
            make_field("current_dir", TypeExpr.path("Option", string_type())),
        ),
    )
