from __future__ import annotations

from typing import Any


class EvaluationError(RuntimeError):
    """Base error for the evaluation pipeline; rendered as {"ok": false, "error", "message"}."""

    status_code = 500
    code = "evaluation_failed"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict[str, Any]:
        return {"ok": False, "error": self.code, "message": self.message}


class ValidationError(EvaluationError):
    status_code = 400
    code = "validation_error"


class NotFoundError(EvaluationError):
    status_code = 404
    code = "not_found"


class CredentialError(EvaluationError):
    status_code = 400
    code = "credentials_unavailable"


class StorageError(EvaluationError):
    status_code = 500
    code = "database_error"


class UpstreamError(EvaluationError):
    status_code = 500
    code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        details: str | None = None,
        code: str | None = None,
    ):
        super().__init__(message, code=code)
        self.upstream_status = upstream_status
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.upstream_status is not None:
            payload["upstream_status"] = self.upstream_status
        if self.details:
            payload["details"] = self.details
        return payload


class ParseError(EvaluationError):
    status_code = 500
    code = "parse_error"
