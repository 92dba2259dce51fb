# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Central crypto module.  All cryptographic primitives except JWT live here.
No other module should touch raw crypto directly.

Responsibilities
----------------
1. Password hashing / verification          (passlib pbkdf2_sha256)
2. One-shot secret digests                  (SHA-256 for tokens and codes)
3. Wallet-backup wrapping                   (AES-256-GCM)
4. Client IP extraction for activity logs
"""

import base64
import hashlib
import secrets
from typing import Tuple

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from fastapi import Request
from passlib.hash import pbkdf2_sha256 as _pbkdf2  # pure Python, no binary deps

# ---------------------------------------------------------------------------
# 1.  pbkdf2_sha256 – password hashing  (pure Python, no glibc constraint)
# ---------------------------------------------------------------------------
# passlib's pbkdf2_sha256 embeds the salt and round count in the hash string,
# so a change of work factor only affects newly written hashes.
# ---------------------------------------------------------------------------


class PasswordHasher:
    """Salted, adaptive one-way password hashing with a configurable work factor."""

    def __init__(self, rounds: int = 600_000):
        self._handler = _pbkdf2.using(rounds=rounds)
        # Verified against when the email is unknown so that a failed login
        # costs one KDF evaluation whichever branch it takes.
        self._dummy_hash = self._handler.hash(secrets.token_urlsafe(16))

    def hash(self, plain: str) -> str:
        """Return the full passlib hash string  e.g. "$pbkdf2-sha256$..."."""
        return self._handler.hash(plain)

    def verify(self, plain: str, stored_hash: str) -> bool:
        """
        Constant-time verification.  A corrupt or foreign stored hash counts
        as a mismatch rather than an error.
        """
        try:
            return self._handler.verify(plain, stored_hash)
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> bool:
        """Burn one verification; always False."""
        self._handler.verify(plain, self._dummy_hash)
        return False


# ---------------------------------------------------------------------------
# 2.  SHA-256 digests for bearer tokens and one-time codes
# ---------------------------------------------------------------------------


def digest(secret: str) -> str:
    """Hex SHA-256 of *secret*.  Used wherever we must look a secret up later."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def new_reset_code() -> str:
    return secrets.token_urlsafe(32)


def new_verification_code() -> str:
    """Six decimal digits, as typed by a human from an e-mail."""
    return f"{secrets.randbelow(900_000) + 100_000}"


# ---------------------------------------------------------------------------
# 3.  AES-256-GCM – wallet backup wrapping
# ---------------------------------------------------------------------------


class BackupCipher:
    """
    Wraps the client-encrypted mnemonic with the server master key so that a
    database dump alone never yields even the client ciphertext.
    """

    def __init__(self, master_key_b64: str):
        if not master_key_b64:
            raise RuntimeError("MASTER_ENCRYPTION_KEY is not configured")
        key = base64.b64decode(master_key_b64)
        if len(key) != 32:
            raise RuntimeError("MASTER_ENCRYPTION_KEY must decode to exactly 32 bytes")
        self._aesgcm = AESGCM(key)

    def encrypt(self, plaintext: str) -> Tuple[str, str]:
        """
        Encrypt *plaintext* with a fresh 12-byte nonce.

        Returns
        -------
        encrypted_b64 : str   base64( ciphertext || 16-byte GCM tag )
        iv_b64        : str   base64( 12-byte nonce )
        """
        iv = secrets.token_bytes(12)          # 96-bit nonce per NIST SP 800-38D
        ct_and_tag = self._aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
        return (
            base64.b64encode(ct_and_tag).decode("ascii"),
            base64.b64encode(iv).decode("ascii"),
        )

    def decrypt(self, encrypted_b64: str, iv_b64: str) -> str:
        """
        Reverse :meth:`encrypt`.  Raises ``ValueError`` if the GCM tag does not
        match (tampered data or wrong key).
        """
        iv = base64.b64decode(iv_b64)
        ct_and_tag = base64.b64decode(encrypted_b64)
        try:
            plaintext_bytes = self._aesgcm.decrypt(iv, ct_and_tag, None)
        except Exception as exc:
            raise ValueError("Decryption failed – data may be tampered") from exc
        return plaintext_bytes.decode("utf-8")


# ---------------------------------------------------------------------------
# 4.  IP address extraction
# ---------------------------------------------------------------------------


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from the request.
    Checks X-Forwarded-For header first (for proxies), then falls back to client host.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first (original client)
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"
