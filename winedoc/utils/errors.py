"""Exception hierarchy for the wine document pipeline.

``InputError`` and ``UpstreamError`` fail the current request.
``ParseError`` is caught per extracted field and ``CacheError`` inside
the cache; neither reaches the caller.
"""

from enum import StrEnum


class WinedocError(Exception):
    """Base class for all pipeline errors."""


class InputError(WinedocError):
    """The caller supplied an unusable image reference or text."""


class UpstreamErrorKind(StrEnum):
    """Stable categories of text source failures."""

    NOT_FOUND = "not_found"
    UNSUPPORTED_FORMAT = "unsupported_format"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAVAILABLE = "unavailable"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    CREDENTIALS_MISSING = "credentials_missing"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[UpstreamErrorKind, str] = {
    UpstreamErrorKind.NOT_FOUND: "File not found: {ref}",
    UpstreamErrorKind.UNSUPPORTED_FORMAT: "Invalid image format or corrupted file.",
    UpstreamErrorKind.QUOTA_EXCEEDED: "OCR quota exceeded. Please try again later.",
    UpstreamErrorKind.UNAVAILABLE: (
        "OCR service is temporarily unavailable. Please try again later."
    ),
    UpstreamErrorKind.PAYLOAD_TOO_LARGE: (
        "Image file is too large. Please use a smaller image."
    ),
    UpstreamErrorKind.RATE_LIMITED: "API rate limit exceeded. Please try again later.",
    UpstreamErrorKind.CREDENTIALS_MISSING: "OCR credentials are not configured.",
    UpstreamErrorKind.UNKNOWN: "OCR failed: {detail}",
}


class UpstreamError(WinedocError):
    """The text source failed to produce text for an image.

    Args:
        kind: Failure category.
        image_ref: The image reference that was being processed.
        detail: Original error text, kept for logs.
    """

    def __init__(
        self, kind: UpstreamErrorKind, image_ref: str = "", detail: str = ""
    ) -> None:
        self.kind = kind
        self.image_ref = image_ref
        self.detail = detail
        super().__init__(USER_MESSAGES[kind].format(ref=image_ref, detail=detail))


class ParseError(WinedocError):
    """A field extraction rule produced an invalid value.

    Args:
        field: Name of the field being extracted.
        message: What went wrong.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class CacheError(WinedocError):
    """The cache store rejected a read or write."""


# (error code, message fragment) pairs checked in order; codes come from
# gRPC-style clients, fragments from everything else.
_UPSTREAM_SIGNATURES: list[tuple[UpstreamErrorKind, tuple[str, ...], tuple[str, ...]]] = [
    (
        UpstreamErrorKind.CREDENTIALS_MISSING,
        ("UNAUTHENTICATED", "PERMISSION_DENIED"),
        ("credentials", "google_application_credentials"),
    ),
    (UpstreamErrorKind.NOT_FOUND, ("ENOENT", "NOT_FOUND"), ("no such file", "not found")),
    (
        UpstreamErrorKind.UNSUPPORTED_FORMAT,
        ("INVALID_ARGUMENT",),
        ("unsupported image format", "cannot identify image"),
    ),
    (UpstreamErrorKind.QUOTA_EXCEEDED, ("QUOTA_EXCEEDED", "RESOURCE_EXHAUSTED"), ("quota",)),
    (UpstreamErrorKind.UNAVAILABLE, ("UNAVAILABLE",), ("unavailable", "timeout", "timed out")),
    (
        UpstreamErrorKind.PAYLOAD_TOO_LARGE,
        ("REQUEST_TOO_LARGE",),
        ("payload size exceeds", "too large", "decompression bomb"),
    ),
    (UpstreamErrorKind.RATE_LIMITED, ("RATE_LIMIT_EXCEEDED",), ("rate limit",)),
]


def map_upstream_error(exc: BaseException, image_ref: str = "") -> UpstreamError:
    """Translate an arbitrary text source exception into an ``UpstreamError``.

    Args:
        exc: Exception raised by the text source.
        image_ref: The image reference being processed.

    Returns:
        An ``UpstreamError`` with a stable kind.
    """
    if isinstance(exc, UpstreamError):
        return exc
    if isinstance(exc, FileNotFoundError):
        return UpstreamError(UpstreamErrorKind.NOT_FOUND, image_ref, str(exc))

    code = str(getattr(exc, "code", "") or "").upper()
    message = str(exc).lower()
    for kind, codes, fragments in _UPSTREAM_SIGNATURES:
        if code in codes or any(fragment in message for fragment in fragments):
            return UpstreamError(kind, image_ref, str(exc))
    return UpstreamError(UpstreamErrorKind.UNKNOWN, image_ref, str(exc))
