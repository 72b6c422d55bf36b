"""Power BI template (.pbit) generator for project schedule data."""
from pbit_template.config import GeneratorConfig
from pbit_template.errors import (
    DataValidationError,
    MissingCoreDataError,
    PackageWriteError,
    PbitGenerationError,
    RepackageWarning,
    SchemaBuildError,
)
from pbit_template.pipeline import GenerationResult, generate_package

__all__ = [
    "DataValidationError",
    "GenerationResult",
    "GeneratorConfig",
    "MissingCoreDataError",
    "PackageWriteError",
    "PbitGenerationError",
    "RepackageWarning",
    "SchemaBuildError",
    "generate_package",
]
