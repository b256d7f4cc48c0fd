"""
Confirmation tokens.

A token is a URL-safe random string handed to the receiving unit inside a
link/QR code.  Only its SHA-256 digest is stored; the raw value exists in
memory just long enough to build the ConfirmationLink.
"""

import hashlib
import secrets
from uuid import UUID

from distribution_kernel.domain.dtos import ConfirmationLink

DEFAULT_TOKEN_BYTES = 32


def generate_token(nbytes: int = DEFAULT_TOKEN_BYTES) -> str:
    if nbytes < 16:
        raise ValueError(f"token_bytes must be at least 16, got {nbytes}")
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a token (64 chars)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def build_link(
    receipt_id: UUID,
    receipt_number: str,
    token: str,
    base_url: str,
    path: str,
) -> ConfirmationLink:
    """
    Build the public confirmation link for a receipt.

    url = base_url + path + "/" + token, with exactly one slash at each
    joint.  The QR payload is the url itself.
    """
    url = "/".join(
        part for part in (base_url.rstrip("/"), path.strip("/"), token) if part
    )
    return ConfirmationLink(
        receipt_id=receipt_id,
        receipt_number=receipt_number,
        token=token,
        url=url,
        qr_payload=url,
    )
