"""
Data models for the security core.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from .utils import coerce_timestamp, format_timestamp


class RiskLevel(str, Enum):
    """Coarse severity attached to an audit event."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResourceType(str, Enum):
    RECORD = "record"
    PROFILE = "profile"
    FULL_ACCESS = "full_access"


class PermissionType(str, Enum):
    READ = "read"
    WRITE = "write"
    SHARE = "share"
    DELETE = "delete"


@dataclass(frozen=True)
class RequestContext:
    """Where a request came from, as reported by the presentation layer."""
    ip_address: str
    user_agent: str


@dataclass(frozen=True)
class EventInput:
    """Caller-supplied part of an audit event; the log assigns id and timestamp."""
    action: str
    principal: str
    success: bool
    risk_level: RiskLevel
    resource_id: Optional[str] = None
    details: Optional[str] = None
    context: Optional[RequestContext] = None


@dataclass(frozen=True)
class AuditEvent:
    """Represents a stored, immutable security event."""
    id: str
    timestamp: datetime
    action: str  # "Access Granted", "Access Check", "Data Decrypted", ...
    principal: str
    ip_address: str
    user_agent: str
    success: bool
    risk_level: RiskLevel
    resource_id: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "action": self.action,
            "principal": self.principal,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "success": self.success,
            "riskLevel": self.risk_level.value,
        }
        if self.resource_id is not None:
            data["resourceId"] = self.resource_id
        if self.details is not None:
            data["details"] = self.details
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        """
        Build an event from its persisted form.

        Accepts the legacy ``userAddress`` key and epoch-millisecond
        timestamps written by older clients.

        Raises:
            KeyError, TypeError, ValueError: if the record is malformed
        """
        principal = data.get("principal", data.get("userAddress"))
        if not isinstance(principal, str):
            raise ValueError("audit event has no principal")
        success = data["success"]
        if not isinstance(success, bool):
            raise ValueError("audit event success flag must be a boolean")
        return cls(
            id=str(data["id"]),
            timestamp=coerce_timestamp(data["timestamp"]),
            action=str(data["action"]),
            principal=principal,
            ip_address=str(data.get("ipAddress", "")),
            user_agent=str(data.get("userAgent", "")),
            success=success,
            risk_level=RiskLevel(data["riskLevel"]),
            resource_id=data.get("resourceId"),
            details=data.get("details"),
        )


@dataclass(frozen=True)
class Permission:
    """A grant from one principal to another over a single resource."""
    id: str
    granter: str
    grantee: str
    resource_id: str
    resource_type: ResourceType
    permissions: FrozenSet[PermissionType]
    created_at: datetime
    expires_at: datetime
    active: bool = True

    def __post_init__(self):
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be later than created_at")
        if not self.permissions:
            raise ValueError("a permission must carry at least one operation")

    def is_effective(self, now: datetime) -> bool:
        """Active and not yet expired at ``now``."""
        return self.active and self.expires_at > now

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "granter": self.granter,
            "grantee": self.grantee,
            "resourceId": self.resource_id,
            "resourceType": self.resource_type.value,
            # Sorted so the persisted form is stable between writes
            "permissions": sorted(p.value for p in self.permissions),
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Permission":
        """
        Build a permission from its persisted form.

        Accepts the legacy ``granterAddress``/``granteeAddress``/``isActive``
        keys and epoch-millisecond timestamps.

        Raises:
            KeyError, TypeError, ValueError: if the record is malformed
        """
        granter = data.get("granter", data.get("granterAddress"))
        grantee = data.get("grantee", data.get("granteeAddress"))
        if not isinstance(granter, str) or not isinstance(grantee, str):
            raise ValueError("permission has no granter or grantee")
        active = data.get("active", data.get("isActive"))
        if not isinstance(active, bool):
            raise ValueError("permission active flag must be a boolean")
        raw_permissions = data["permissions"]
        if not isinstance(raw_permissions, list):
            raise ValueError("permissions must be a list")
        return cls(
            id=str(data["id"]),
            granter=granter,
            grantee=grantee,
            resource_id=str(data["resourceId"]),
            resource_type=ResourceType(data["resourceType"]),
            permissions=frozenset(PermissionType(p) for p in raw_permissions),
            created_at=coerce_timestamp(data["createdAt"]),
            expires_at=coerce_timestamp(data["expiresAt"]),
            active=active,
        )


@dataclass(frozen=True)
class ScoreBand:
    """Human-readable interpretation of a security score."""
    label: str
    description: str
