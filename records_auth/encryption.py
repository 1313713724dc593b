"""
Encryption gateway: authenticated encryption keyed to a principal.

Ciphertexts are URL-safe base64 of::

    version (1 byte) | timestamp ms (8 bytes, big-endian) | nonce (12 bytes) | sealed

The 9-byte header is authenticated as associated data, so the freshness
marker cannot be altered, and a key derived for another principal fails
authentication.
"""

import asyncio
import base64
import binascii
import logging
import secrets
import struct
from datetime import datetime, timezone
from typing import Callable, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .audit_log import AuditLog
from .errors import DecryptionFailed
from .key_derivation import KeyDerivation
from .models import EventInput, RequestContext, RiskLevel
from .utils import utcnow

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
_HEADER = struct.Struct(">BQ")
NONCE_SIZE = 12


def _split(ciphertext: str):
    """Return (header, timestamp_ms, nonce, sealed) or raise DecryptionFailed."""
    try:
        blob = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
    except (AttributeError, UnicodeEncodeError, binascii.Error, ValueError) as e:
        raise DecryptionFailed("Ciphertext is not valid base64") from e

    if len(blob) < _HEADER.size + NONCE_SIZE + 16:
        raise DecryptionFailed("Ciphertext is truncated")
    header = blob[:_HEADER.size]
    version, timestamp_ms = _HEADER.unpack(header)
    if version != FORMAT_VERSION:
        raise DecryptionFailed(f"Unsupported ciphertext version {version}")
    nonce = blob[_HEADER.size:_HEADER.size + NONCE_SIZE]
    sealed = blob[_HEADER.size + NONCE_SIZE:]
    return header, timestamp_ms, nonce, sealed


def encrypted_at(ciphertext: str) -> datetime:
    """
    Read the freshness marker without decrypting.

    The marker is only trustworthy after a successful ``decrypt``.

    Raises:
        DecryptionFailed: if the ciphertext is malformed
    """
    _, timestamp_ms, _, _ = _split(ciphertext)
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)


class EncryptionGateway:
    """Encrypts and decrypts opaque payloads for a principal, auditing both."""

    def __init__(
        self,
        key_derivation: KeyDerivation,
        audit_log: AuditLog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.key_derivation = key_derivation
        self.audit_log = audit_log
        self.clock = clock

    async def encrypt(
        self,
        plaintext: str,
        principal: str,
        context: Optional[RequestContext] = None,
    ) -> str:
        """
        Encrypt ``plaintext`` with the key derived for ``principal``.

        Failures are audited as high risk and re-raised unchanged.
        """
        try:
            key = await asyncio.to_thread(self.key_derivation.derive_key, principal)
            timestamp_ms = int(self.clock().timestamp() * 1000)
            header = _HEADER.pack(FORMAT_VERSION, timestamp_ms)
            nonce = secrets.token_bytes(NONCE_SIZE)
            sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), header)
        except Exception as e:
            self.audit_log.record(EventInput(
                action="Encryption Failed",
                principal=principal if isinstance(principal, str) else "",
                success=False,
                risk_level=RiskLevel.HIGH,
                details=str(e) or type(e).__name__,
                context=context,
            ))
            raise

        self.audit_log.record(EventInput(
            action="Data Encrypted",
            principal=principal,
            success=True,
            risk_level=RiskLevel.LOW,
            context=context,
        ))
        return base64.urlsafe_b64encode(header + nonce + sealed).decode("ascii")

    async def decrypt(
        self,
        ciphertext: str,
        principal: str,
        context: Optional[RequestContext] = None,
    ) -> str:
        """
        Decrypt a ciphertext produced by ``encrypt`` for the same principal.

        Raises:
            DecryptionFailed: wrong principal, tampered or malformed ciphertext
        """
        try:
            header, _, nonce, sealed = _split(ciphertext)
            key = await asyncio.to_thread(self.key_derivation.derive_key, principal)
            try:
                plaintext = AESGCM(key).decrypt(nonce, sealed, header)
            except InvalidTag as e:
                raise DecryptionFailed("Invalid decryption key or corrupted data") from e
            message = plaintext.decode("utf-8")
        except Exception as e:
            self.audit_log.record(EventInput(
                action="Decryption Failed",
                principal=principal if isinstance(principal, str) else "",
                success=False,
                risk_level=RiskLevel.HIGH,
                details=str(e) or type(e).__name__,
                context=context,
            ))
            if isinstance(e, DecryptionFailed):
                raise
            raise DecryptionFailed() from e

        self.audit_log.record(EventInput(
            action="Data Decrypted",
            principal=principal,
            success=True,
            risk_level=RiskLevel.LOW,
            context=context,
        ))
        return message
