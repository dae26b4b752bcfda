"""Stored password-hash codec."""

from __future__ import annotations

import base64
import binascii


class PasswordDecodeError(ValueError):
    pass


def decode_password_hash(encoded: str) -> bytes:
    """Decode a base64-encoded password hash from the config into raw bytes.

    An empty hash decodes to ``b""``.
    """
    if not isinstance(encoded, str):
        raise PasswordDecodeError("password hash must be a string")
    try:
        return base64.b64decode(encoded.strip(), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PasswordDecodeError(f"password hash is not valid base64: {exc}") from exc
