"""
HMAC-signed device tokens.

    token = base64url(device_id) + "." + hex(HMAC-SHA256(secret, device_id))[:32]

The base64url half is unpadded. Only UUID device ids are accepted back.
"""

import base64
import binascii
import hashlib
import hmac
import re

_SIGNATURE_HEX_CHARS = 32
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I)


def _sign(secret: str, device_id: str) -> str:
    digest = hmac.new(secret.encode(), device_id.encode(), hashlib.sha256).hexdigest()
    return digest[:_SIGNATURE_HEX_CHARS]


def _b64url_encode(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode()).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> str:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


def create_device_token(secret: str, device_id: str) -> str:
    return f"{_b64url_encode(device_id)}.{_sign(secret, device_id)}"


def verify_device_token(token: str, secret: str) -> str | None:
    """Return the device id a token was issued for, or None if it does not verify."""
    encoded_id, sep, provided_sig = token.partition(".")
    if not sep or not encoded_id or not provided_sig:
        return None

    try:
        device_id = _b64url_decode(encoded_id)
    except (binascii.Error, UnicodeError, ValueError):
        return None

    if not _UUID_RE.match(device_id):
        return None

    expected_sig = _sign(secret, device_id)
    if len(provided_sig) != len(expected_sig):
        return None
    if not hmac.compare_digest(provided_sig.encode(), expected_sig.encode()):
        return None
    return device_id


def bearer_token(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw.lower().startswith("bearer "):
        return None
    return raw[7:].strip() or None
