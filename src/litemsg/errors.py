"""Exceptions raised by litemsg."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

__all__ = [
    "APIStatusError",
    "Cancelled",
    "DecodeError",
    "LitemsgError",
    "PartialBlockFailure",
    "ProtocolViolation",
    "StreamError",
    "TransportError",
    "decode_error_from_validation",
]


class LitemsgError(Exception):
    """Base exception for all litemsg errors."""


class DecodeError(LitemsgError):
    """Malformed or schema-violating JSON at a codec boundary.

    Not a ``ValueError`` subclass: pydantic would otherwise re-wrap it inside
    a ``ValidationError`` and the diagnostics below would be lost.
    """

    def __init__(
        self, message: str, *, key: str | None = None, type_: str | None = None
    ) -> None:
        super().__init__(message)
        self.key = key
        self.type_ = type_


class PartialBlockFailure(LitemsgError):
    """A streamed tool-use block whose accumulated input is not a JSON object."""

    def __init__(self, message: str, *, index: int, raw: str) -> None:
        super().__init__(message)
        self.index = index
        self.raw = raw


class StreamError(LitemsgError):
    """Base for errors that terminate a stream."""


class ProtocolViolation(StreamError):
    """Stream events arrived out of order or with an invalid index."""


class TransportError(StreamError):
    """The HTTP transport failed."""


class APIStatusError(TransportError):
    """The server answered with an error status or an ``error`` event."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: str | None = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_type = error_type
        self.body = body


class Cancelled(StreamError):
    """The caller cancelled the stream."""


def decode_error_from_validation(
    exc: ValidationError, *, what: str, type_: str | None = None
) -> DecodeError:
    """Build a ``DecodeError`` naming the first offending field of `exc`."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = first.get("loc", ())
    key = ".".join(str(part) for part in loc) or None
    if first.get("type") == "missing":
        message = f"Missing field {key!r} in {what}"
    else:
        message = f"Invalid field {key!r} in {what}: {first.get('msg', exc)}"
    return DecodeError(message, key=key, type_=type_)
