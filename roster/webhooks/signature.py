"""Svix-style HMAC verification for Clerk webhooks.

Clerk signs each delivery with the Svix scheme: the signed content is
``{svix-id}.{svix-timestamp}.{body}`` and the ``svix-signature`` header
carries one or more space-separated ``v1,<base64>`` tokens.  The signing
secret is published as ``whsec_<base64 key>``.

Message age is not bounded here; ``svix-timestamp`` only participates in
the signed content.

Usage
-----
Check a delivery before touching its payload::

    if not verify_svix_signature(body, secret, svix_id, svix_ts, svix_sig):
        raise WebhookSignatureError

"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac

__all__ = [
    "SIGNATURE_VERSION",
    "InvalidWebhookSecretError",
    "compute_svix_signature",
    "verify_svix_signature",
]

SIGNATURE_VERSION = "v1"
_SECRET_SEPARATOR = "_"
_TOKEN_SEPARATOR = ","


class InvalidWebhookSecretError(ValueError):
    """Raised when a signing secret is not of the form ``<prefix>_<base64>``."""

    def __init__(self, reason: str) -> None:
        """Describe why the secret could not be used as an HMAC key."""
        super().__init__(f"invalid webhook secret: {reason}")


def _decode_secret(secret: str) -> bytes:
    _prefix, sep, payload = secret.partition(_SECRET_SEPARATOR)
    if not sep:
        msg = "missing prefix separator"
        raise InvalidWebhookSecretError(msg)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = "key is not valid base64"
        raise InvalidWebhookSecretError(msg) from exc


def compute_svix_signature(
    body: bytes,
    secret: str,
    svix_id: str,
    svix_timestamp: str,
) -> str:
    """Return the base64 HMAC-SHA256 signature expected for a delivery.

    Parameters
    ----------
    body
        Raw request body exactly as received.
    secret
        Signing secret in ``<prefix>_<base64>`` form.
    svix_id
        Value of the ``svix-id`` header.
    svix_timestamp
        Value of the ``svix-timestamp`` header.

    Returns
    -------
    str
        Standard base64 encoding of the HMAC digest.

    Raises
    ------
    InvalidWebhookSecretError
        If the secret lacks the separator or its key is not base64.

    """
    key = _decode_secret(secret)
    message = b".".join(
        (svix_id.encode("utf-8"), svix_timestamp.encode("utf-8"), body)
    )
    digest = hmac.new(key, message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_svix_signature(
    body: bytes,
    secret: str,
    svix_id: str | None,
    svix_timestamp: str | None,
    svix_signature: str | None,
) -> bool:
    """Return whether any ``v1`` token in the header signs ``body``.

    Fails closed: an empty secret, a missing header, or a malformed secret
    all yield ``False``.  Candidate signatures are compared with
    :func:`hmac.compare_digest`.
    """
    if not (secret and svix_id and svix_timestamp and svix_signature):
        return False

    try:
        expected = compute_svix_signature(body, secret, svix_id, svix_timestamp)
    except InvalidWebhookSecretError:
        return False

    expected_bytes = expected.encode("ascii")
    matched = False
    for token in svix_signature.split(" "):
        version, sep, candidate = token.partition(_TOKEN_SEPARATOR)
        if not sep or version != SIGNATURE_VERSION:
            continue
        # Keep scanning after a match so timing does not depend on position.
        if hmac.compare_digest(candidate.encode("utf-8"), expected_bytes):
            matched = True
    return matched
