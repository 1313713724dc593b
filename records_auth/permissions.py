"""
Permission store: grant records and their lifecycle state.
"""

import dataclasses
import logging
import threading
from datetime import datetime
from typing import List, MutableMapping, Optional, Tuple

from .config import SecuritySettings
from .errors import NotFoundOrUnauthorized, PersistenceFailure
from .models import Permission, PermissionType
from .storage import read_collection, write_collection
from .utils import same_principal

logger = logging.getLogger(__name__)


class PermissionStore:
    """
    Holds every permission ever granted. Permissions are never deleted,
    only deactivated; effectiveness is recomputed on every read.

    Mutations are persisted before they become visible. If the write
    fails the in-memory change is rolled back and ``PersistenceFailure``
    propagates, since a grant or revoke that is not durable is wrong.
    """

    def __init__(self, store: MutableMapping, settings: Optional[SecuritySettings] = None):
        self.store = store
        self.settings = settings or SecuritySettings()
        self._permissions: List[Permission] = []
        self._lock = threading.Lock()

    def load(self) -> int:
        """Replace the in-memory permissions with the persisted ones."""
        permissions = []
        for raw in read_collection(self.store, self.settings.permissions_key):
            try:
                permissions.append(Permission.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed permission {raw.get('id')!r}: {e}")
        with self._lock:
            self._permissions = permissions
            return len(permissions)

    def add(self, permission: Permission) -> None:
        with self._lock:
            self._permissions.append(permission)
            try:
                self._persist()
            except PersistenceFailure:
                self._permissions.pop()
                raise

    def deactivate(self, granter: str, permission_id: str) -> Tuple[Permission, bool]:
        """
        Mark a permission inactive.

        Returns:
            The permission after the call and whether it changed state
            (False when it was already revoked)

        Raises:
            NotFoundOrUnauthorized: no permission with this id was granted by ``granter``
            PersistenceFailure: the change could not be persisted
        """
        with self._lock:
            for index, current in enumerate(self._permissions):
                if current.id == permission_id and same_principal(current.granter, granter):
                    break
            else:
                raise NotFoundOrUnauthorized(permission_id)

            if not current.active:
                return current, False

            revoked = dataclasses.replace(current, active=False)
            self._permissions[index] = revoked
            try:
                self._persist()
            except PersistenceFailure:
                self._permissions[index] = current
                raise
            return revoked, True

    def get(self, permission_id: str) -> Optional[Permission]:
        with self._lock:
            for permission in self._permissions:
                if permission.id == permission_id:
                    return permission
        return None

    def effective_for(
        self,
        principal: str,
        resource_id: str,
        required: PermissionType,
        now: datetime,
    ) -> List[Permission]:
        """Effective permissions granting ``required`` on ``resource_id`` to ``principal``."""
        return [
            p for p in self.snapshot()
            if same_principal(p.grantee, principal)
            and p.resource_id == resource_id
            and p.is_effective(now)
            and required in p.permissions
        ]

    def effective_involving(self, principal: str, now: datetime) -> List[Permission]:
        """Effective permissions where ``principal`` is the granter or the grantee."""
        return [
            p for p in self.snapshot()
            if (same_principal(p.granter, principal) or same_principal(p.grantee, principal))
            and p.is_effective(now)
        ]

    def snapshot(self) -> List[Permission]:
        with self._lock:
            return list(self._permissions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._permissions)

    def flush(self) -> None:
        with self._lock:
            self._persist()

    def _persist(self) -> None:
        # Caller holds the lock
        try:
            write_collection(
                self.store,
                self.settings.permissions_key,
                [p.to_dict() for p in self._permissions],
            )
        except PersistenceFailure as e:
            logger.error(f"Failed to persist permissions: {e}")
            raise
