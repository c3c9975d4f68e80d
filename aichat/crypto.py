"""Hashing and encoding helpers."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from urllib.parse import quote


def sha256(text: str) -> str:
    """Hex digest of the SHA-256 of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def hex_encode(data: bytes) -> str:
    return bytes(data).hex()


def encode_uri(uri: str) -> str:
    """Percent-encode every segment of a slash-separated path."""
    return "/".join(quote(segment, safe="") for segment in uri.split("/"))


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def base64_encode(data: bytes | str) -> str:
    return base64.b64encode(_as_bytes(data)).decode("ascii")


def base64_decode(data: bytes | str) -> bytes:
    """Decode standard padded base64; raises ``ValueError`` on bad input."""
    try:
        return base64.b64decode(_as_bytes(data), validate=True)
    except binascii.Error as err:
        raise ValueError(f"Invalid base64: {err}") from err