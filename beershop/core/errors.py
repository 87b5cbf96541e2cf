"""Typed request failures raised by gates, resolvers and services.

Every error carries the HTTP status and the public message rendered to the
client. Internal detail (paths, queries, upstream bodies) never goes into
``message``; log it server-side instead.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One rejected field and the reason it was rejected."""

    field: str
    reason: str


class ShopError(Exception):
    """Base class for failures that map to a client-facing error response."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        self.message = message or self.default_message
        self.headers = headers or {}
        super().__init__(self.message)

    def to_body(self) -> dict[str, object]:
        return {"error": self.message}


class ValidationError(ShopError):
    """Payload failed its declared schema."""

    status_code = 400
    default_message = "Validation error"

    def __init__(self, errors: list[FieldError], message: str | None = None) -> None:
        self.errors = errors
        super().__init__(message)

    @classmethod
    def single(cls, field: str, reason: str) -> "ValidationError":
        return cls([FieldError(field, reason)])

    def to_body(self) -> dict[str, object]:
        return {
            "error": self.message,
            "details": [{"field": e.field, "reason": e.reason} for e in self.errors],
        }


class InvalidCredentials(ShopError):
    status_code = 400
    default_message = "Invalid email or password"


class DuplicateCredential(ShopError):
    status_code = 400
    default_message = "Email is already in use"


class UnsupportedFileType(ShopError):
    status_code = 400
    default_message = "Invalid file type"


class ContentTypeMismatch(ShopError):
    status_code = 400
    default_message = "Invalid file content"


class UnsafeDocumentRejected(ShopError):
    status_code = 400
    default_message = "XML documents may not declare DTDs or entities"


class MalformedDocument(ShopError):
    status_code = 400
    default_message = "Invalid XML file"


class InvalidUrl(ShopError):
    status_code = 400
    default_message = "Invalid URL"


class Unauthorized(ShopError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(ShopError):
    status_code = 403
    default_message = "Forbidden"


class InvalidCsrfToken(Forbidden):
    default_message = "Invalid CSRF token"


class PathTraversalRejected(Forbidden):
    default_message = "Access denied"


class RedirectNotAllowed(Forbidden):
    default_message = "Redirect not allowed"


class SchemeNotAllowed(Forbidden):
    default_message = "Protocol not allowed"


class SsrfBlocked(Forbidden):
    default_message = "SSRF blocked"


class NotFound(ShopError):
    status_code = 404
    default_message = "Not found"


class PayloadTooLarge(ShopError):
    status_code = 413
    default_message = "Payload too large"


class TooManyRequests(ShopError):
    status_code = 429
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: int | None = None, message: str | None = None) -> None:
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        self.retry_after = retry_after
        super().__init__(message, headers=headers)


class UpstreamTimeout(ShopError):
    status_code = 502
    default_message = "Upstream request timed out"


class UpstreamResponseTooLarge(ShopError):
    status_code = 502
    default_message = "Upstream response too large"


class UpstreamUnavailable(ShopError):
    status_code = 503
    default_message = "Service unavailable"


class SessionStoreUnavailable(ShopError):
    status_code = 503
    default_message = "Session store unavailable"
