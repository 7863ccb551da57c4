"""HTTP errors that carry extra fields into the JSON error body."""

from __future__ import annotations

from typing import Any

from werkzeug.exceptions import BadGateway, BadRequest, Forbidden, ServiceUnavailable


class _PayloadMixin:
    """Attach keyword fields to an HTTP exception for the JSON error handler."""

    def __init__(
        self,
        description: str | None = None,
        status_code: int | None = None,
        **payload: Any,
    ) -> None:
        super().__init__(description=description)
        if status_code is not None:
            self.code = status_code
        self.payload = {key: value for key, value in payload.items() if value is not None}


class ValidationFailed(_PayloadMixin, BadRequest):
    """Input rejected with a list of field problems in ``errors``."""


class VerificationFailed(_PayloadMixin, BadRequest):
    """An email verification token could not be redeemed."""


class AccountNotVerified(_PayloadMixin, Forbidden):
    """Credentials were valid but the email address is not verified yet."""


class UpstreamServiceError(_PayloadMixin, BadGateway):
    """A Google API or the SMTP provider failed."""


class DatabaseUnavailable(ServiceUnavailable):
    description = "Database connection error. Please try again later."


def error_payload(error: Exception) -> dict[str, Any]:
    return dict(getattr(error, "payload", None) or {})
