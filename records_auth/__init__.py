"""
Records Auth - security policy core for a personal-records application

This package grants, checks and revokes time-bounded access permissions
between a resource owner and other principals, keeps an append-only audit
trail of every security-relevant action, and derives an advisory security
score from that trail.
"""

from .access_control import AccessControlService
from .audit_log import AuditLog
from .config import SecuritySettings
from .encryption import EncryptionGateway, encrypted_at
from .errors import (
    DecryptionFailed,
    InvalidArgument,
    NotFoundOrUnauthorized,
    PersistenceFailure,
    SecurityError,
)
from .gateway import AuthorizationError, AuthorizationGateway
from .integrity import generate_data_hash, verify_data_integrity
from .key_derivation import KeyDerivation
from .models import (
    AuditEvent,
    EventInput,
    Permission,
    PermissionType,
    RequestContext,
    ResourceType,
    RiskLevel,
    ScoreBand,
)
from .permissions import PermissionStore
from .scoring import SecurityScorer, describe_score
from .service import SecurityService
from .storage import JsonFileStore

__version__ = "0.1.0"
__all__ = [
    "SecurityService",
    "SecuritySettings",
    "AccessControlService",
    "AuditLog",
    "PermissionStore",
    "KeyDerivation",
    "EncryptionGateway",
    "SecurityScorer",
    "AuthorizationGateway",
    "JsonFileStore",
    "AuditEvent",
    "EventInput",
    "Permission",
    "PermissionType",
    "RequestContext",
    "ResourceType",
    "RiskLevel",
    "ScoreBand",
    "SecurityError",
    "InvalidArgument",
    "NotFoundOrUnauthorized",
    "DecryptionFailed",
    "PersistenceFailure",
    "AuthorizationError",
    "describe_score",
    "encrypted_at",
    "generate_data_hash",
    "verify_data_integrity",
]
