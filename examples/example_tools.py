"""
Example record-management operations guarded by the authorization gateway.
"""

from records_auth import PermissionType
from records_auth.gateway import AuthorizationGateway


# Example record store (in production, this would be the record-management service)
class RecordStore:
    """Mock record store for demonstration."""

    def __init__(self):
        self.records = {
            "rec-123": "Blood panel 2024-02-14: within normal range",
            "rec-456": "Vaccination: influenza, 2023-10-02",
        }

    async def get(self, record_id: str) -> str:
        """Get a record by ID."""
        return self.records.get(record_id, "")

    async def update(self, record_id: str, content: str) -> bool:
        """Update a record."""
        if record_id in self.records:
            self.records[record_id] = content
            return True
        return False


record_store = RecordStore()


async def example_read_record(
    gateway: AuthorizationGateway,
    record_id: str,
    principal: str
) -> str:
    """
    Read a record on behalf of ``principal``.

    In production, you'd decorate the operation once at module level:

    @gateway.authorized_resource(
        resource_extractor=lambda args: args["record_id"],
        permission=PermissionType.READ
    )
    async def read_record(record_id: str) -> str:
        return await record_store.get(record_id)
    """
    @gateway.authorized_resource(
        resource_extractor=lambda args: args["record_id"],
        permission=PermissionType.READ
    )
    async def read_record(record_id: str) -> str:
        """Read a record from the record store."""
        return await record_store.get(record_id)

    return await read_record(principal=principal, record_id=record_id)


async def example_update_record(
    gateway: AuthorizationGateway,
    record_id: str,
    content: str,
    principal: str
) -> bool:
    """
    Update a record on behalf of ``principal``; requires write access.
    """
    @gateway.authorized_resource(
        resource_extractor=lambda args: args["record_id"],
        permission=PermissionType.WRITE
    )
    async def update_record(record_id: str, content: str) -> bool:
        """Update a record in the record store."""
        return await record_store.update(record_id, content)

    return await update_record(principal=principal, record_id=record_id, content=content)
