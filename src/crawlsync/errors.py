from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    VECTOR_STORE_FAILED = "VECTOR_STORE_FAILED"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    RUN_FAILED = "RUN_FAILED"


class IngestError(Exception):
    """Raised for expected failure conditions inside the ingestion pipeline.

    Per-item failures (one page, one post) are caught by the pipeline that
    owns the item and logged. Anything that escapes a pipeline is caught by
    the scheduler and folded into a ``RunFailedError``.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }


class RunFailedError(IngestError):
    """One or more top-level tasks of a scheduled run failed.

    Raised only after every dispatched task has finished, so partial results
    are already committed. ``failures`` maps task name to the exception.
    """

    def __init__(self, period: str, failures: dict[str, BaseException]) -> None:
        names = ", ".join(sorted(failures))
        super().__init__(
            code=ErrorCode.RUN_FAILED,
            message=f"Ingestion run failed (period={period}): {names}",
            recoverable=True,
        )
        self.period = period
        self.failures = failures

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["error"]["failures"] = {
            name: f"{type(exc).__name__}: {exc}" for name, exc in sorted(self.failures.items())
        }
        return data
