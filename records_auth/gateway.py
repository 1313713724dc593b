"""
Authorization gateway that wraps record-management operations with access checks.
"""

from functools import wraps
from typing import Any, Callable, Dict

from .errors import SecurityError
from .models import PermissionType


class AuthorizationError(SecurityError):
    """Raised when a guarded operation is called without the required permission."""

    def __init__(self, message: str, principal: str, resource_id: str, permission: PermissionType):
        super().__init__(message)
        self.principal = principal
        self.resource_id = resource_id
        self.permission = permission


class AuthorizationGateway:
    """
    Gateway that checks access before a record-management operation runs.

    Every call goes through ``check``, so every attempt, allowed or not,
    lands in the audit trail.
    """

    def __init__(self, security_service):
        """
        Initialize the authorization gateway.

        Args:
            security_service: A ``SecurityService`` (or anything with an async ``check``)
        """
        self.security_service = security_service

    def authorized_resource(
        self,
        resource_extractor: Callable[[Dict[str, Any]], str],
        permission: PermissionType = PermissionType.READ
    ):
        """
        Decorator that guards an async operation on a resource.

        Args:
            resource_extractor: Function to extract the resource ID from the call's kwargs
            permission: Operation the caller must hold on the resource

        Example:
            @gateway.authorized_resource(
                resource_extractor=lambda args: args["record_id"],
                permission=PermissionType.READ
            )
            async def read_record(record_id: str) -> str:
                return await record_store.get(record_id)

            await read_record(principal="0xabc", record_id="rec1")
        """
        permission = PermissionType(permission)

        def decorator(operation: Callable):
            @wraps(operation)
            async def wrapper(principal: str, **kwargs) -> Any:
                resource_id = resource_extractor(kwargs)

                authorized = await self.security_service.check(
                    principal,
                    resource_id,
                    permission,
                )
                if not authorized:
                    raise AuthorizationError(
                        f"Unauthorized: {principal} lacks {permission.value} on {resource_id}",
                        principal=principal,
                        resource_id=resource_id,
                        permission=permission,
                    )

                return await operation(**kwargs)

            return wrapper
        return decorator
