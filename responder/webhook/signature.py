"""HMAC-SHA256 verification of Meta webhook deliveries.

Meta signs the exact request body with the app secret and sends the result in
``X-Hub-Signature-256`` as ``sha256=<hex>``. Verification must run over the
raw bytes received; re-serialized JSON is not guaranteed to match.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(raw_body: bytes, secret: bytes) -> str:
    """Return the header value Meta would send for ``raw_body``."""
    digest = hmac.new(secret, raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(
    raw_body: bytes, header_value: str | None, secret: bytes,
) -> bool:
    """Return True iff ``header_value`` is a valid signature of ``raw_body``.

    Never raises on malformed input. Digests are decoded and length-checked
    before the comparison, which goes through ``hmac.compare_digest``.
    """
    if not header_value:
        logger.warning("Signature rejected: header missing")
        return False
    if not header_value.startswith(SIGNATURE_PREFIX):
        logger.warning("Signature rejected: unexpected algorithm tag")
        return False

    claimed_hex = header_value[len(SIGNATURE_PREFIX):]
    if not claimed_hex:
        logger.warning("Signature rejected: empty digest")
        return False

    expected = hmac.new(secret, raw_body, hashlib.sha256).digest()
    try:
        claimed = binascii.unhexlify(claimed_hex)
    except (binascii.Error, ValueError):
        logger.warning("Signature rejected: digest is not valid hex")
        return False

    if len(claimed) != len(expected):
        logger.warning("Signature rejected: digest length mismatch")
        return False

    return hmac.compare_digest(claimed, expected)
