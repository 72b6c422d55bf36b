"""
generate_package: project JSON -> .pbit template.

Stages run strictly in order (map, validate, measures, schema, assemble,
write, repack) and each consumes the previous stage's output. Errors carry
the stage name in their message; see pbit_template.errors.
"""
import logging
from pathlib import Path
from typing import NamedTuple, Optional

from pbit_template.assembler import assemble, write_package
from pbit_template.config import GeneratorConfig
from pbit_template.errors import RepackageWarning
from pbit_template.mapper import map_project_data
from pbit_template.measures import build_measure_catalog
from pbit_template.repackage import verify
from pbit_template.schema import build_schema
from pbit_template.validator import validate_mapped_data

_log = logging.getLogger("pbit_template.pipeline")


class GenerationResult(NamedTuple):
    output_path: Path
    verified_path: Optional[Path]
    size_bytes: int


def generate_package(project_data, output_path, measure_overrides_path=None,
                     config: Optional[GeneratorConfig] = None, logger=None) -> GenerationResult:
    config = config or GeneratorConfig()
    log = logger or _log

    mapped = map_project_data(project_data)
    log.info(
        "Mapped %d tasks, %d resources, %d assignments, %d properties",
        len(mapped.tasks), len(mapped.resources), len(mapped.assignments), len(mapped.properties),
    )

    validate_mapped_data(mapped, require_resources=config.require_resources)

    measures = build_measure_catalog(measure_overrides_path, logger=log)
    schema = build_schema(mapped, measures, logger=log, compatibility_level=config.compatibility_level)
    data = assemble(mapped, schema, measures, config, logger=log)
    output_path = write_package(data, output_path)
    log.info("Wrote %s (%d bytes)", output_path, len(data))

    verified_path = None
    if config.repackage:
        try:
            verified_path = verify(output_path, scratch_root=config.scratch_root, logger=log)
        except RepackageWarning as exc:
            if config.require_repackage:
                raise
            log.warning("Repackage verification failed, keeping primary archive: %s", exc)

    return GenerationResult(output_path, verified_path, len(data))
