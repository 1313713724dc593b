"""
Example usage of the records security core.

This demonstrates the flow a dashboard goes through: share a record,
read it through the gateway, encrypt a payload, revoke, and show the score.
"""

import asyncio
import logging

from records_auth import (
    AuthorizationError,
    AuthorizationGateway,
    PermissionType,
    RequestContext,
    ResourceType,
    SecurityService,
    SecuritySettings,
)

from examples.example_tools import example_read_record


async def example_complete_flow():
    """
    Example of the complete flow.

    This shows:
    1. Building the service from settings and loading stored data
    2. Sharing a record and reading it through the gateway
    3. Encrypting a payload for its owner
    4. Revoking the share and reading the security score
    """
    # Persists under RECORDS_AUTH_STORAGE_DIR when set, in memory otherwise
    settings = SecuritySettings()
    context = RequestContext(ip_address="127.0.0.1", user_agent="example-usage/0.1")

    owner = "0xA11CE"
    doctor = "0xD0C"

    async with SecurityService.from_settings(settings) as service:
        gateway = AuthorizationGateway(service)

        permission_id = await service.grant(
            granter=owner,
            grantee=doctor,
            resource_id="rec-123",
            resource_type=ResourceType.RECORD,
            permissions={PermissionType.READ},
            ttl_hours=1,
            context=context,
        )
        print(f"Access granted: {permission_id}")

        content = await example_read_record(gateway, record_id="rec-123", principal=doctor)
        print(f"Doctor read: {content}")

        ciphertext = await service.encrypt("private note", owner, context)
        print(f"Decrypted: {await service.decrypt(ciphertext, owner, context)}")

        await service.revoke(owner, permission_id, context)
        try:
            await example_read_record(gateway, record_id="rec-123", principal=doctor)
        except AuthorizationError as e:
            print(f"After revoke: {e}")

        score = service.score(owner)
        band = service.describe_score(score)
        print(f"Security score for {owner}: {score}% ({band.label}: {band.description})")

        for event in service.query(owner, limit=5):
            print(f"  {event.timestamp:%H:%M:%S} {event.action} success={event.success} risk={event.risk_level.value}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(example_complete_flow())
