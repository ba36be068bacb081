from __future__ import annotations


class ComplianceError(Exception):
    """Base class for request-level failures of the analysis pipeline."""


class RequestValidationError(ComplianceError):
    """Caller input rejected before any external call is made."""


class InvalidSectorError(RequestValidationError):
    def __init__(self, sector: str, valid: list[str]):
        self.sector = sector
        self.valid = valid
        super().__init__(f"Invalid sector {sector!r}. Must be one of: {', '.join(valid)}")


class UpstreamGenerationError(ComplianceError):
    """The completion provider failed or timed out. Safe to retry."""


class OutputIntegrityError(ComplianceError):
    """The model replied, but with output the guardrail could not accept."""

    def __init__(self, message: str, warnings: list[str] | None = None):
        self.warnings = list(warnings or [])
        super().__init__(message)
