"""
Deterministic per-principal key material.
"""

from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import SecuritySettings
from .errors import InvalidArgument
from .utils import normalize_principal

KEY_LENGTH = 32  # AES-256


class KeyDerivation:
    """
    Derive a 256-bit key from a principal and the service-wide salt.

    The derivation is pure: the same principal (compared case-insensitively)
    and salt always give the same key. Keys are never stored.
    """

    def __init__(self, settings: Optional[SecuritySettings] = None):
        self.settings = settings or SecuritySettings()

    def derive_key(self, principal: str) -> bytes:
        """
        Raises:
            InvalidArgument: if ``principal`` is empty
        """
        if not isinstance(principal, str) or not principal.strip():
            raise InvalidArgument("principal is required for key derivation")
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=self.settings.service_salt.encode("utf-8"),
            iterations=self.settings.kdf_iterations,
        )
        return kdf.derive(normalize_principal(principal).encode("utf-8"))
