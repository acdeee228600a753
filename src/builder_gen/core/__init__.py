from builder_gen.core.assembler import assemble, builder_type_name
from builder_gen.core.attributes import (
    EXPECTED_EACH_MESSAGE,
    ParsedDecorator,
    parse_decorator,
)
from builder_gen.core.methods import plan_methods
from builder_gen.core.records import extract_records, extract_records_from_file
from builder_gen.core.shapes import classify_field, classify_wrapper

__all__ = [
    "EXPECTED_EACH_MESSAGE",
    "ParsedDecorator",
    "assemble",
    "builder_type_name",
    "classify_field",
    "classify_wrapper",
    "extract_records",
    "extract_records_from_file",
    "parse_decorator",
    "plan_methods",
]
