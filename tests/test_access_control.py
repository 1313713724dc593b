"""Tests for granting, checking and revoking access."""

import json

import pytest

from records_auth import (
    InvalidArgument,
    NotFoundOrUnauthorized,
    PermissionType,
    PersistenceFailure,
    ResourceType,
    RiskLevel,
    SecurityService,
)

from .conftest import FailingStore


async def _grant_read(service, ttl_hours=1):
    return await service.grant(
        "A", "B", "rec1", ResourceType.RECORD, {PermissionType.READ}, ttl_hours=ttl_hours
    )


class TestGrant:
    @pytest.mark.asyncio
    async def test_grant_then_check(self, service):
        await _grant_read(service)
        assert await service.check("B", "rec1", PermissionType.READ) is True

    @pytest.mark.asyncio
    async def test_grant_creates_active_permission(self, service, clock):
        permission_id = await service.grant(
            "A", "B", "rec1", "record", ["read", "write"], ttl_hours=2
        )
        permission = service.permission_store.get(permission_id)

        assert permission_id.startswith("perm_")
        assert permission.active is True
        assert permission.permissions == frozenset({PermissionType.READ, PermissionType.WRITE})
        assert permission.resource_type is ResourceType.RECORD
        assert permission.created_at == clock.now
        assert (permission.expires_at - permission.created_at).total_seconds() == 7200

    @pytest.mark.asyncio
    async def test_default_ttl_is_24_hours(self, service):
        permission_id = await service.grant("A", "B", "rec1", ResourceType.RECORD, [PermissionType.READ])
        permission = service.permission_store.get(permission_id)
        assert (permission.expires_at - permission.created_at).total_seconds() == 24 * 3600

    @pytest.mark.asyncio
    async def test_grant_is_audited(self, service):
        await service.grant("A", "B", "rec1", ResourceType.RECORD, [PermissionType.SHARE, PermissionType.READ])

        event = service.query("A")[0]
        assert event.action == "Access Granted"
        assert event.risk_level is RiskLevel.MEDIUM
        assert event.success is True
        assert event.resource_id == "rec1"
        assert event.details == "Granted read, share to B"

    @pytest.mark.asyncio
    async def test_grant_persists_permissions(self, service, store):
        permission_id = await _grant_read(service)
        persisted = json.loads(store["access_permissions"])
        assert [p["id"] for p in persisted] == [permission_id]
        assert persisted[0]["active"] is True
        assert persisted[0]["permissions"] == ["read"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("permissions", [set(), [], ()])
    async def test_rejects_empty_permissions(self, service, permissions):
        with pytest.raises(InvalidArgument):
            await service.grant("A", "B", "rec1", ResourceType.RECORD, permissions)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, -1, float("nan"), "24", True])
    async def test_rejects_invalid_ttl(self, service, ttl):
        with pytest.raises(InvalidArgument):
            await service.grant("A", "B", "rec1", ResourceType.RECORD, [PermissionType.READ], ttl_hours=ttl)

    @pytest.mark.asyncio
    async def test_rejects_ttl_below_clock_resolution(self, service):
        with pytest.raises(InvalidArgument):
            await _grant_read(service, ttl_hours=1e-10)
        assert len(service.permission_store) == 0

    @pytest.mark.asyncio
    async def test_rejects_unknown_operation(self, service):
        with pytest.raises(InvalidArgument):
            await service.grant("A", "B", "rec1", ResourceType.RECORD, ["admin"])

    @pytest.mark.asyncio
    async def test_rejects_unknown_resource_type(self, service):
        with pytest.raises(InvalidArgument):
            await service.grant("A", "B", "rec1", "folder", [PermissionType.READ])

    @pytest.mark.asyncio
    async def test_invalid_grant_records_nothing(self, service):
        with pytest.raises(InvalidArgument):
            await service.grant("A", "B", "rec1", ResourceType.RECORD, [])
        assert service.query() == []
        assert len(service.permission_store) == 0

    @pytest.mark.asyncio
    async def test_persistence_failure_rolls_back(self, settings, clock):
        store = FailingStore(fail_keys={"access_permissions"})
        service = SecurityService(store=store, settings=settings, clock=clock)

        with pytest.raises(PersistenceFailure):
            await _grant_read(service)

        assert len(service.permission_store) == 0
        assert service.query() == []
        assert await service.check("B", "rec1", PermissionType.READ) is False


class TestCheck:
    @pytest.mark.asyncio
    async def test_principal_is_case_insensitive(self, service):
        await service.grant("0xAAA", "0xBbB", "rec1", ResourceType.RECORD, [PermissionType.READ])
        assert await service.check("0xbbb", "rec1", PermissionType.READ) is True

    @pytest.mark.asyncio
    async def test_resource_id_is_exact(self, service):
        await _grant_read(service)
        assert await service.check("B", "REC1", PermissionType.READ) is False

    @pytest.mark.asyncio
    async def test_requires_the_operation(self, service):
        await _grant_read(service)
        assert await service.check("B", "rec1", PermissionType.WRITE) is False

    @pytest.mark.asyncio
    async def test_granter_is_not_grantee(self, service):
        await _grant_read(service)
        assert await service.check("A", "rec1", PermissionType.READ) is False

    @pytest.mark.asyncio
    async def test_expires_without_revoke(self, service, clock):
        await _grant_read(service, ttl_hours=1)

        clock.advance(minutes=59)
        assert await service.check("B", "rec1", PermissionType.READ) is True

        clock.advance(minutes=1)
        assert await service.check("B", "rec1", PermissionType.READ) is False

    @pytest.mark.asyncio
    async def test_fractional_ttl(self, service, clock):
        await _grant_read(service, ttl_hours=0.5)
        clock.advance(minutes=31)
        assert await service.check("B", "rec1", PermissionType.READ) is False

    @pytest.mark.asyncio
    async def test_any_effective_permission_suffices(self, service, clock):
        await _grant_read(service, ttl_hours=1)
        await _grant_read(service, ttl_hours=5)
        clock.advance(hours=2)
        assert await service.check("B", "rec1", PermissionType.READ) is True

    @pytest.mark.asyncio
    async def test_granted_check_is_low_risk(self, service):
        await _grant_read(service)
        await service.check("B", "rec1", PermissionType.READ)

        event = service.query("B")[0]
        assert event.action == "Access Check"
        assert event.success is True
        assert event.risk_level is RiskLevel.LOW
        assert event.details == "Checked read permission"

    @pytest.mark.asyncio
    async def test_denied_check_is_medium_risk(self, service):
        assert await service.check("B", "rec1", PermissionType.DELETE) is False

        event = service.query("B")[0]
        assert event.success is False
        assert event.risk_level is RiskLevel.MEDIUM

    @pytest.mark.asyncio
    async def test_unknown_operation_is_denied(self, service):
        await _grant_read(service)
        assert await service.check("B", "rec1", "admin") is False
        assert service.query("B")[0].details == "Checked admin permission"


class TestRevoke:
    @pytest.mark.asyncio
    async def test_scenario_grant_check_revoke(self, service):
        permission_id = await _grant_read(service)
        assert await service.check("B", "rec1", "read") is True

        await service.revoke("A", permission_id)

        assert await service.check("B", "rec1", "read") is False
        assert service.permission_store.get(permission_id).active is False

    @pytest.mark.asyncio
    async def test_revoke_is_audited(self, service):
        permission_id = await _grant_read(service)
        await service.revoke("A", permission_id)

        event = service.query("A")[0]
        assert event.action == "Access Revoked"
        assert event.risk_level is RiskLevel.MEDIUM
        assert event.success is True
        assert event.resource_id == "rec1"
        assert event.details == "Revoked access from B"

    @pytest.mark.asyncio
    async def test_only_original_granter_may_revoke(self, service):
        permission_id = await _grant_read(service)

        with pytest.raises(NotFoundOrUnauthorized):
            await service.revoke("B", permission_id)

        assert service.permission_store.get(permission_id).active is True
        assert await service.check("B", "rec1", PermissionType.READ) is True

    @pytest.mark.asyncio
    async def test_granter_match_is_case_insensitive(self, service):
        permission_id = await service.grant("0xAbC", "B", "rec1", ResourceType.RECORD, [PermissionType.READ])
        await service.revoke("0xabc", permission_id)
        assert service.permission_store.get(permission_id).active is False

    @pytest.mark.asyncio
    async def test_unknown_id(self, service):
        with pytest.raises(NotFoundOrUnauthorized) as excinfo:
            await service.revoke("A", "perm_missing")
        assert str(excinfo.value) == "Permission not found or unauthorized"

    @pytest.mark.asyncio
    async def test_second_revoke_is_a_no_op(self, service):
        permission_id = await _grant_read(service)
        await service.revoke("A", permission_id)
        await service.revoke("A", permission_id)

        revokes = [e for e in service.query("A") if e.action == "Access Revoked"]
        assert len(revokes) == 1

    @pytest.mark.asyncio
    async def test_revoke_persists(self, service, store):
        permission_id = await _grant_read(service)
        await service.revoke("A", permission_id)
        assert json.loads(store["access_permissions"])[0]["active"] is False

    @pytest.mark.asyncio
    async def test_persistence_failure_restores_permission(self, settings, clock):
        store = FailingStore()
        service = SecurityService(store=store, settings=settings, clock=clock)
        permission_id = await _grant_read(service)

        store.fail_keys.add("access_permissions")
        with pytest.raises(PersistenceFailure):
            await service.revoke("A", permission_id)

        assert service.permission_store.get(permission_id).active is True
        assert await service.check("B", "rec1", PermissionType.READ) is True


class TestListForPrincipal:
    @pytest.mark.asyncio
    async def test_includes_granted_and_received(self, service):
        given = await service.grant("A", "B", "rec1", ResourceType.RECORD, [PermissionType.READ])
        received = await service.grant("C", "a", "rec2", ResourceType.PROFILE, [PermissionType.READ])
        await service.grant("C", "D", "rec3", ResourceType.RECORD, [PermissionType.READ])

        ids = {p.id for p in service.list_for_principal("A")}
        assert ids == {given, received}

    @pytest.mark.asyncio
    async def test_excludes_revoked_and_expired(self, service, clock):
        revoked = await _grant_read(service, ttl_hours=10)
        await _grant_read(service, ttl_hours=1)
        live = await _grant_read(service, ttl_hours=10)
        await service.revoke("A", revoked)
        clock.advance(hours=2)

        assert [p.id for p in service.list_for_principal("B")] == [live]

    @pytest.mark.asyncio
    async def test_list_is_not_audited(self, service):
        await _grant_read(service)
        before = len(service.audit_log)
        service.list_for_principal("B")
        assert len(service.audit_log) == before
