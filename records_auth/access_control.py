"""
Access control: grant, check and revoke time-bounded permissions.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from .audit_log import AuditLog
from .config import SecuritySettings
from .errors import InvalidArgument
from .models import (
    EventInput,
    Permission,
    PermissionType,
    RequestContext,
    ResourceType,
    RiskLevel,
)
from .permissions import PermissionStore
from .utils import generate_id, utcnow

logger = logging.getLogger(__name__)


def _coerce_enum(enum_cls, value, name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidArgument(f"{name} must be one of: {allowed}; got {value!r}") from None


class AccessControlService:
    """
    Service for managing access between resource owners and other principals.

    This service handles:
    - Granting a principal time-bounded operations on a resource
    - Checking whether a principal currently holds an operation
    - Revoking grants (deactivation only; grants are never deleted)

    A permission moves from active to revoked on ``revoke`` or to expired
    once its expiry passes. Both are terminal. Expiry is never written
    back; it is recomputed at every read.
    """

    def __init__(
        self,
        permission_store: PermissionStore,
        audit_log: AuditLog,
        settings: Optional[SecuritySettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the access control service.

        Args:
            permission_store: Where grants are kept
            audit_log: Where grant, revoke and check events are recorded
            settings: Default TTL
            clock: Source of aware UTC timestamps
        """
        self.permission_store = permission_store
        self.audit_log = audit_log
        self.settings = settings or SecuritySettings()
        self.clock = clock

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
        """
        Grant ``grantee`` a set of operations on a resource owned by ``granter``.

        Args:
            granter: Principal granting access
            grantee: Principal receiving access
            resource_id: Resource the grant covers
            resource_type: record, profile or full_access
            permissions: Non-empty set of operations (read, write, share, delete)
            ttl_hours: Lifetime in hours; defaults to the configured TTL (24)
            context: Request origin for the audit trail

        Returns:
            permission_id: The created permission ID

        Raises:
            InvalidArgument: empty permissions, non-positive TTL or unknown enum values
            PersistenceFailure: the grant could not be made durable
        """
        if not granter or not grantee:
            raise InvalidArgument("granter and grantee are required")
        if not resource_id:
            raise InvalidArgument("resource_id is required")
        if ttl_hours is None:
            ttl_hours = self.settings.default_ttl_hours
        if isinstance(ttl_hours, bool) or not isinstance(ttl_hours, (int, float)) or not ttl_hours > 0:
            raise InvalidArgument(f"ttl_hours must be a positive number, got {ttl_hours!r}")

        resource_type = _coerce_enum(ResourceType, resource_type, "resource_type")
        if isinstance(permissions, (str, PermissionType)):
            permissions = [permissions]
        operations = frozenset(_coerce_enum(PermissionType, p, "permission") for p in permissions)
        if not operations:
            raise InvalidArgument("permissions must not be empty")

        created_at = self.clock()
        try:
            expires_at = created_at + timedelta(hours=ttl_hours)
        except OverflowError:
            raise InvalidArgument(f"ttl_hours is too large: {ttl_hours!r}") from None
        if expires_at <= created_at:
            raise InvalidArgument(f"ttl_hours is too small to outlast the grant instant: {ttl_hours!r}")

        permission = Permission(
            id=generate_id("perm"),
            granter=granter,
            grantee=grantee,
            resource_id=resource_id,
            resource_type=resource_type,
            permissions=operations,
            created_at=created_at,
            expires_at=expires_at,
            active=True,
        )
        self.permission_store.add(permission)

        granted = ", ".join(sorted(p.value for p in operations))
        logger.info(f"{granter} granted {granted} on {resource_id} to {grantee} ({permission.id})")
        self.audit_log.record(EventInput(
            action="Access Granted",
            principal=granter,
            resource_id=resource_id,
            success=True,
            risk_level=RiskLevel.MEDIUM,
            details=f"Granted {granted} to {grantee}",
            context=context,
        ))

        return permission.id

    async def revoke(
        self,
        granter: str,
        permission_id: str,
        context: Optional[RequestContext] = None,
    ) -> None:
        """
        Revoke a permission. Only its original granter may do so.

        Revoking a permission that is already revoked succeeds without
        changing anything or writing a second audit event.

        Raises:
            NotFoundOrUnauthorized: no such permission granted by ``granter``
            PersistenceFailure: the revocation could not be made durable
        """
        permission, changed = self.permission_store.deactivate(granter, permission_id)
        if not changed:
            logger.debug(f"Permission {permission_id} was already revoked")
            return

        logger.info(f"{granter} revoked {permission_id} from {permission.grantee}")
        self.audit_log.record(EventInput(
            action="Access Revoked",
            principal=granter,
            resource_id=permission.resource_id,
            success=True,
            risk_level=RiskLevel.MEDIUM,
            details=f"Revoked access from {permission.grantee}",
            context=context,
        ))

    async def check(
        self,
        principal: str,
        resource_id: str,
        required_permission: PermissionType,
        context: Optional[RequestContext] = None,
    ) -> bool:
        """
        Check if ``principal`` currently holds ``required_permission`` on a resource.

        A denial is a normal outcome, not an error. Every check is audited:
        granted checks at low risk, denied checks at medium risk. An unknown
        operation can never have been granted, so it is simply denied.
        """
        try:
            required = PermissionType(required_permission)
        except ValueError:
            required = None

        has_access = False
        if required is not None:
            matches = self.permission_store.effective_for(principal, resource_id, required, self.clock())
            has_access = len(matches) > 0
        operation = required.value if required is not None else str(required_permission)

        logger.debug(f"Access check {principal} {operation} {resource_id}: {has_access}")
        self.audit_log.record(EventInput(
            action="Access Check",
            principal=principal,
            resource_id=resource_id,
            success=has_access,
            risk_level=RiskLevel.LOW if has_access else RiskLevel.MEDIUM,
            details=f"Checked {operation} permission",
            context=context,
        ))

        return has_access

    def list_for_principal(self, principal: str) -> List[Permission]:
        """Currently effective permissions where ``principal`` is granter or grantee."""
        return self.permission_store.effective_involving(principal, self.clock())
