"""Content addressing: a blob's address is the SHA-256 digest of its bytes.

Hex is the canonical encoding. The URL-safe base64 form (unpadded) is kept
for deployments that want shorter keys; both are pure and deterministic.
"""

from __future__ import annotations

import base64
import hashlib
import re
from typing import Literal

AddressEncoding = Literal["hex", "base64url"]

_HEX_ADDRESS = re.compile(r"[0-9a-f]{64}")
_B64_ADDRESS = re.compile(r"[A-Za-z0-9_-]{43}")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_base64url(data: bytes) -> str:
    """Return the unpadded URL-safe base64 SHA-256 digest of raw bytes."""
    digest = hashlib.sha256(data).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def content_address(data: bytes, encoding: AddressEncoding = "hex") -> str:
    """Content-address a payload.

    Parameters
    ----------
    data:
        The raw payload.
    encoding:
        ``"hex"`` (64 lowercase characters, default) or ``"base64url"``.
    """
    if encoding == "hex":
        return sha256_hex(data)
    if encoding == "base64url":
        return sha256_base64url(data)
    raise ValueError(f"unknown address encoding: {encoding!r}")


def is_valid_address(text: str, encoding: AddressEncoding = "hex") -> bool:
    """Whether *text* has the shape of an address in *encoding*."""
    pattern = _HEX_ADDRESS if encoding == "hex" else _B64_ADDRESS
    return pattern.fullmatch(text) is not None


class StreamingHasher:
    """Incremental addresser for payloads fed in chunks."""

    def __init__(self, encoding: AddressEncoding = "hex") -> None:
        self._digest = hashlib.sha256()
        self._encoding = encoding
        self.size = 0

    def update(self, chunk: bytes) -> None:
        self._digest.update(chunk)
        self.size += len(chunk)

    def address(self) -> str:
        raw = self._digest.digest()
        if self._encoding == "hex":
            return raw.hex()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")
