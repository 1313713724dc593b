"""
Security service facade used by the presentation and record-management layers.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, MutableMapping, Optional

from .access_control import AccessControlService
from .audit_log import AuditLog
from .config import SecuritySettings
from .encryption import EncryptionGateway
from .errors import PersistenceFailure
from .integrity import generate_data_hash, verify_data_integrity
from .key_derivation import KeyDerivation
from .models import (
    AuditEvent,
    Permission,
    PermissionType,
    RequestContext,
    ResourceType,
    ScoreBand,
)
from .permissions import PermissionStore
from .scoring import SecurityScorer, describe_score
from .storage import JsonFileStore
from .utils import utcnow

logger = logging.getLogger(__name__)


class SecurityService:
    """
    Owns the audit log, permission store and the components built on them.

    Construct one explicitly and pass it to callers; there is no global
    instance. Call ``load_stored_data`` at session start and ``close``
    at the end, or use the service as an async context manager.
    """

    def __init__(
        self,
        store: Optional[MutableMapping] = None,
        settings: Optional[SecuritySettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            store: Key-value persistence surface; an in-memory dict if omitted
            settings: Service settings; read from the environment if omitted
            clock: Source of aware UTC timestamps, injectable for tests
        """
        self.settings = settings or SecuritySettings()
        self.store = store if store is not None else {}
        self.clock = clock or utcnow
        self._closed = False

        self.audit_log = AuditLog(self.store, self.settings, self.clock)
        self.permission_store = PermissionStore(self.store, self.settings)
        self.key_derivation = KeyDerivation(self.settings)
        self.access_control = AccessControlService(
            self.permission_store, self.audit_log, self.settings, self.clock
        )
        self.encryption = EncryptionGateway(self.key_derivation, self.audit_log, self.clock)
        self.scorer = SecurityScorer(
            self.audit_log, self.permission_store, self.settings, self.clock
        )

    @classmethod
    def from_settings(cls, settings: Optional[SecuritySettings] = None, **kwargs) -> "SecurityService":
        """Build a service persisting to ``settings.storage_dir`` when it is set."""
        settings = settings or SecuritySettings()
        store = JsonFileStore(settings.storage_dir) if settings.storage_dir else None
        return cls(store=store, settings=settings, **kwargs)

    # Lifecycle

    def load_stored_data(self) -> None:
        """Rehydrate both collections from the store. Safe to call repeatedly."""
        self._ensure_open()
        events = self.audit_log.load()
        permissions = self.permission_store.load()
        logger.info(f"Loaded {events} audit events and {permissions} permissions")

    def close(self) -> None:
        """Flush both collections best-effort and refuse further calls."""
        if self._closed:
            return
        self.audit_log.flush()
        try:
            self.permission_store.flush()
        except PersistenceFailure as e:
            logger.error(f"Permissions not flushed on close: {e}")
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "SecurityService":
        self.load_stored_data()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("SecurityService is closed")

    # Access control

    async def grant(
        self,
        granter: str,
        grantee: str,
        resource_id: str,
        resource_type: ResourceType,
        permissions: Iterable[PermissionType],
        ttl_hours: Optional[float] = None,
        context: Optional[RequestContext] = None,
    ) -> str:
        self._ensure_open()
        return await self.access_control.grant(
            granter, grantee, resource_id, resource_type, permissions, ttl_hours, context
        )

    async def revoke(
        self,
        granter: str,
        permission_id: str,
        context: Optional[RequestContext] = None,
    ) -> None:
        self._ensure_open()
        await self.access_control.revoke(granter, permission_id, context)

    async def check(
        self,
        principal: str,
        resource_id: str,
        required_permission: PermissionType,
        context: Optional[RequestContext] = None,
    ) -> bool:
        self._ensure_open()
        return await self.access_control.check(principal, resource_id, required_permission, context)

    def list_for_principal(self, principal: str) -> List[Permission]:
        self._ensure_open()
        return self.access_control.list_for_principal(principal)

    # Encryption

    async def encrypt(
        self,
        plaintext: str,
        principal: str,
        context: Optional[RequestContext] = None,
    ) -> str:
        self._ensure_open()
        return await self.encryption.encrypt(plaintext, principal, context)

    async def decrypt(
        self,
        ciphertext: str,
        principal: str,
        context: Optional[RequestContext] = None,
    ) -> str:
        self._ensure_open()
        return await self.encryption.decrypt(ciphertext, principal, context)

    # Monitoring

    def query(self, principal: Optional[str] = None, limit: Optional[int] = None) -> List[AuditEvent]:
        self._ensure_open()
        return self.audit_log.query(principal, limit)

    def score(self, principal: str) -> int:
        self._ensure_open()
        return self.scorer.score(principal)

    def describe_score(self, score: int) -> ScoreBand:
        return describe_score(score)

    # Integrity

    def generate_data_hash(self, data: str) -> str:
        return generate_data_hash(data)

    def verify_data_integrity(self, data: str, expected_hash: str) -> bool:
        return verify_data_integrity(data, expected_hash)
