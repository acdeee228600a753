import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from builder_gen.core.assembler import assemble
from builder_gen.core.records import extract_records, extract_records_from_file
from builder_gen.ir import GeneratedUnit
from builder_gen.models import Diagnostic, RecordSchema
from builder_gen.render.rust import render_diagnostic, render_unit
from builder_gen.settings import get_settings

logger = logging.getLogger(__name__)

OUTPUT_SUFFIX = "_builders.rs"


class Expansion(BaseModel):
    model_config = ConfigDict(frozen=True)

    record: RecordSchema
    unit: GeneratedUnit | None = None
    diagnostic: Diagnostic | None = None

    @property
    def ok(self) -> bool:
        return self.diagnostic is None

    @property
    def code(self) -> str:
        if self.unit is not None:
            return render_unit(self.unit)
        if self.diagnostic is not None:
            return render_diagnostic(self.diagnostic)
        raise ValueError(f"Expansion of {self.record.name} has neither a unit nor a diagnostic")


def expand_records(records: list[RecordSchema]) -> list[Expansion]:
    attribute_name = get_settings().attribute_name
    expansions: list[Expansion] = []
    for record in records:
        result = assemble(record, attribute_name)
        if isinstance(result, Diagnostic):
            expansions.append(Expansion(record=record, diagnostic=result))
        else:
            expansions.append(Expansion(record=record, unit=result))
    return expansions


def expand_source(source: str | bytes) -> list[Expansion]:
    """Generate builders for every record in a Rust source string."""
    source_bytes = source.encode("utf-8") if isinstance(source, str) else source
    return expand_records(extract_records(source_bytes))


def expand_file(path: str | Path) -> list[Expansion]:
    return expand_records(extract_records_from_file(path))


def render_expansions(expansions: list[Expansion]) -> str:
    return "\n".join(e.code for e in expansions)


def output_path_for(path: str | Path, output_dir: str | Path | None = None) -> Path:
    source_path = Path(path)
    directory = Path(output_dir) if output_dir is not None else source_path.parent
    return directory / f"{source_path.stem}{OUTPUT_SUFFIX}"


def write_expansion(path: str | Path, output_dir: str | Path | None = None) -> tuple[Path, list[Expansion]]:
    """Expand ``path`` and write the generated code next to it (or into ``output_dir``).

    Nothing is written when no record derives a builder, and a previously
    generated file for ``path`` is removed. Diagnostics are written as
    ``compile_error!`` invocations.
    """
    expansions = expand_file(path)
    target = output_path_for(path, output_dir)
    if not expansions:
        logger.debug("No records derive a builder in %s", path)
        if target.exists():
            target.unlink()
            logger.info("Removed stale %s", target)
        return target, expansions
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_expansions(expansions), encoding="utf-8")
    logger.info("Wrote %d builder(s) for %s to %s", len(expansions), path, target)
    return target, expansions
