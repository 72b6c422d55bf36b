"""Error types raised by the template generator, one per pipeline stage."""


class PbitGenerationError(Exception):
    stage = "generation"

    def __init__(self, message: str):
        self.detail = message
        super().__init__(f"[{self.stage}] {message}")


class MissingCoreDataError(PbitGenerationError):
    stage = "mapping"


class DataValidationError(PbitGenerationError):
    stage = "validation"

    def __init__(self, errors):
        self.errors = list(errors)
        lines = "\n".join(f"- {err}" for err in self.errors)
        super().__init__(f"Data validation failed with {len(self.errors)} error(s):\n{lines}")


class SchemaBuildError(PbitGenerationError):
    stage = "schema"


class PackageWriteError(PbitGenerationError):
    stage = "packaging"


class RepackageWarning(UserWarning):
    stage = "repackage"

    def __init__(self, message: str):
        self.detail = message
        super().__init__(f"[{self.stage}] {message}")
