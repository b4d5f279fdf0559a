"""Crypto bridge — Ed25519 detached signatures via PyNaCl (libsodium).

Release files are signed by the producer pipeline; each ``<file>`` ships
with a ``<file>.sig`` holding the raw 64-byte detached signature.  Consumers
verify with the 32-byte public key from ``xforge.yaml``.

Verification is fail-closed: a malformed key, a truncated signature or any
libsodium error is reported as "not valid", never as an exception that a
caller might accidentally treat as success.
"""

from __future__ import annotations

import hashlib
import logging

import nacl.signing
from nacl.exceptions import BadSignatureError, CryptoError

logger = logging.getLogger(__name__)

PUBLIC_KEY_SIZE = 32
SEED_SIZE = 32
SIGNATURE_SIZE = 64


def generate_keypair() -> tuple[str, str]:
    """Generate a signing key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)``.  The private key is the
        64-byte ``seed + public`` form other consumers' keygen tools emit.
    """
    sk = nacl.signing.SigningKey.generate()
    pub = sk.verify_key.encode()
    return ((sk.encode() + pub).hex(), pub.hex())


def _signing_key(private_key: str) -> nacl.signing.SigningKey:
    raw = bytes.fromhex(private_key)
    if len(raw) not in (SEED_SIZE, SEED_SIZE + PUBLIC_KEY_SIZE):
        raise ValueError(
            f"private key must be {SEED_SIZE} or {SEED_SIZE + PUBLIC_KEY_SIZE} bytes, "
            f"got {len(raw)}"
        )
    return nacl.signing.SigningKey(raw[:SEED_SIZE])


def sign_data(data: bytes, private_key: str) -> bytes:
    """Sign *data* and return the raw detached signature (64 bytes)."""
    return _signing_key(private_key).sign(data).signature


def verify_signature(message: bytes, signature: bytes, public_key: bytes) -> bool:
    """Verify a detached Ed25519 *signature* over *message*.

    Parameters
    ----------
    message:
        The exact bytes that were signed.
    signature:
        Raw signature bytes as stored in the ``.sig`` file.
    public_key:
        Raw 32-byte Ed25519 public key.

    Returns
    -------
    bool
        ``True`` only if the signature is valid for this key.
    """
    if len(public_key) != PUBLIC_KEY_SIZE:
        logger.debug("verify_signature: public key is %d bytes", len(public_key))
        return False
    if len(signature) != SIGNATURE_SIZE:
        logger.debug("verify_signature: signature is %d bytes", len(signature))
        return False
    try:
        nacl.signing.VerifyKey(public_key).verify(message, signature)
    except BadSignatureError:
        return False
    except (CryptoError, ValueError, TypeError) as exc:
        logger.debug("verify_signature: rejected malformed input: %s", exc)
        return False
    return True


def key_fingerprint(public_key: bytes) -> str:
    """First 16 hex characters of SHA-256(public_key), for log lines."""
    if not public_key:
        return ""
    return hashlib.sha256(public_key).hexdigest()[:16]
