"""Domain errors raised by toolgate services.

Services raise these; ``toolgate.main`` translates them into JSON responses
with the matching HTTP status. Routers never catch them.
"""

from typing import Optional


class ToolgateError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    code = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class BadRequestError(ToolgateError):
    status_code = 400
    code = "bad_request"


class ForbiddenError(ToolgateError):
    status_code = 403
    code = "forbidden"


class NotFoundError(ToolgateError):
    status_code = 404
    code = "not_found"


class DuplicateError(ToolgateError):
    status_code = 409
    code = "duplicate"


class MissingCredentialError(BadRequestError):
    """A required credential field was not supplied and has no fallback."""

    code = "missing_credential"

    def __init__(self, field_name: str, toolkit_slug: Optional[str] = None):
        where = f" for toolkit {toolkit_slug}" if toolkit_slug else ""
        super().__init__(f"Missing required credential field '{field_name}'{where}")
        self.field_name = field_name
        self.toolkit_slug = toolkit_slug

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field_name
        return data


class ProviderError(ToolgateError):
    """The provider platform failed (transport error or 5xx)."""

    status_code = 502
    code = "provider_error"

    def __init__(self, message: str, provider_status: Optional[int] = None):
        super().__init__(message)
        self.provider_status = provider_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.provider_status is not None:
            data["provider_status"] = self.provider_status
        return data


class ProviderRejectedError(ProviderError):
    """The provider rejected the request (config or credential problem)."""

    status_code = 400
    code = "provider_rejected"


class PartialWriteError(ToolgateError):
    """A bulk preference write failed; nothing from the batch was applied."""

    code = "partial_write"

    def __init__(self, message: str, attempted: int):
        super().__init__(message)
        self.attempted = attempted

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["attempted"] = self.attempted
        return data
