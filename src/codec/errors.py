from __future__ import annotations


class CodecError(RuntimeError):
    """Base error for the private record codec."""


class SigningFailed(CodecError):
    """The signing capability failed or returned an unusable signature."""


class MalformedEnvelope(CodecError):
    """Envelope is shorter than its fixed header or is not valid hex."""


class AuthenticationFailed(CodecError):
    """Tag mismatch: wrong key or tampered envelope (indistinguishable)."""


class InvalidRecordFormat(CodecError):
    """Authenticated plaintext does not parse into a private record."""


__all__ = [
    "CodecError",
    "SigningFailed",
    "MalformedEnvelope",
    "AuthenticationFailed",
    "InvalidRecordFormat",
]
