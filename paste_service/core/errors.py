# paste_service/core/errors.py
from __future__ import annotations


class PasteError(Exception):
    """
    Basis voor alle fouten die de lifecycle engine naar boven geeft.
    De transport laag vertaalt `status_code` + `message` naar een response;
    de engine zelf bouwt nooit HTTP responses.
    """

    kind = "error"
    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(PasteError):
    kind = "not_found"
    status_code = 404
    default_message = "Paste not found."


class Expired(NotFound):
    # index entry bestond nog, object niet meer (reap on read)
    kind = "expired"
    status_code = 410
    default_message = "Paste expired."


class Unauthorized(PasteError):
    kind = "unauthorized"
    status_code = 401
    default_message = "This paste requires password."

    def __init__(self, message: str | None = None, challenge: bool = True, status_code: int | None = None):
        super().__init__(message)
        self.challenge = challenge
        if status_code is not None:
            self.status_code = status_code


class PreconditionFailed(PasteError):
    kind = "precondition_failed"
    status_code = 409
    default_message = "Invalid operation."


class LimitExceeded(PasteError):
    kind = "limit_exceeded"
    status_code = 422
    default_message = "Paste size limit exceeded."


class AccessLimitReached(LimitExceeded):
    kind = "access_limit_reached"
    status_code = 410
    default_message = "Paste expired."


class ValidationFailed(PasteError):
    kind = "validation_failed"
    status_code = 422
    default_message = "Invalid request."


class UpstreamFailure(PasteError):
    kind = "upstream_failure"
    status_code = 500
    default_message = "Internal server error."


class ConfigurationError(PasteError):
    kind = "configuration_error"
    status_code = 501
    default_message = "This endpoint is disabled."


class InvalidUUID(ValidationFailed):
    kind = "invalid_uuid"
    status_code = 442
    default_message = "Invalid UUID."
