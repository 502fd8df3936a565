from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    UNKNOWN_SUB_TYPE = "UNKNOWN_SUB_TYPE"
    INVALID_PAGE_KEY = "INVALID_PAGE_KEY"
    CATALOG_UNAVAILABLE = "CATALOG_UNAVAILABLE"
    JOB_RUNNER_UNAVAILABLE = "JOB_RUNNER_UNAVAILABLE"


class SitemapError(Exception):
    """Raised for caller contract violations and collaborator failures.

    Contract violations (unknown sub-type, malformed page key) propagate to
    the immediate caller. Catalog and job runner failures are caught at the
    scheduler and provider boundaries and logged with their code; they never
    reach the read path.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str = "",
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
