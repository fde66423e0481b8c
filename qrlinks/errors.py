class QrLinksError(Exception):
    """Base error. ``status_code`` is the HTTP status the API answers with."""

    status_code = 500
    detail = "Internal error"

    def __init__(self, detail: str | None = None):
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class NotFound(QrLinksError):
    status_code = 404
    detail = "Not found"


class Forbidden(QrLinksError):
    status_code = 403
    detail = "Forbidden"


class Unauthenticated(QrLinksError):
    status_code = 401
    detail = "Not authenticated"


class DuplicateCode(QrLinksError):
    status_code = 409
    detail = "Short code already in use"

    def __init__(self, code: str):
        super().__init__(f"Short code '{code}' already in use")
        self.code = code


class DuplicateEmail(QrLinksError):
    status_code = 409
    detail = "Email already registered"


class InvalidLink(QrLinksError):
    status_code = 422
    detail = "original_url is required"


class CodeExhausted(QrLinksError):
    status_code = 503
    detail = "Could not allocate a unique short code"


class StorageUnavailable(QrLinksError):
    status_code = 503
    detail = "QR storage unavailable"


class ConfigurationError(RuntimeError):
    """Missing or invalid startup configuration. Raised at import, never per request."""


class ConstraintViolation(QrLinksError):
    status_code = 409
    detail = "Request conflicts with stored data"


class InvalidEmail(QrLinksError):
    status_code = 422
    detail = "email is required"
