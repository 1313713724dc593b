"""
Error taxonomy for the security core.

Expected negative outcomes (a denied check, a low score) are results,
not errors, and never raise.
"""


class SecurityError(Exception):
    """Base class for all errors raised by the security core."""


class InvalidArgument(SecurityError, ValueError):
    """Malformed caller input. Fatal to the call; retrying will not help."""


class NotFoundOrUnauthorized(SecurityError):
    """
    Raised when revoking a permission that does not exist or that the
    caller did not grant. The two cases are deliberately indistinguishable
    so that callers cannot probe for the existence of other principals' grants.
    """

    def __init__(self, permission_id: str):
        super().__init__("Permission not found or unauthorized")
        self.permission_id = permission_id


class DecryptionFailed(SecurityError):
    """Wrong key, tampered payload or malformed ciphertext."""

    def __init__(self, message: str = "Failed to decrypt data"):
        super().__init__(message)


class PersistenceFailure(SecurityError):
    """A write to the key-value persistence surface failed."""

    def __init__(self, key: str, message: str = ""):
        super().__init__(message or f"Failed to persist collection {key!r}")
        self.key = key
