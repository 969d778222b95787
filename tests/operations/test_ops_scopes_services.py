"""Tests for device-scope and key-business-service operations."""

import pytest
from uuid_extensions import uuid7

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.models.common import ActivityType, DeviceScopeStatus, Priority
from povsync.models.engagement import DeviceSpecifications
from povsync.models.inputs import (
    BusinessServiceCreate,
    BusinessServiceUpdate,
    DeviceScopeCreate,
    DeviceScopeUpdate,
)


class TestDeviceScopes:

    @pytest.mark.anyio
    async def test_add_with_specifications(self, sync, store, engagement) -> None:
        scope = await sync.device_scopes.add(DeviceScopeCreate(
            engagement_id=engagement.id, device_type="Windows laptops", category="Endpoint",
            count=250, priority=Priority.HIGH,
            specifications=DeviceSpecifications(os="Windows", version="11"),
        ))
        assert scope.specifications.os == "Windows"
        assert store.engagement.device_scopes == [scope]
        entry = store.engagement.activity_log[0]
        assert entry.type == ActivityType.STATUS
        assert entry.reference_id == scope.id

        refetched = await sync.engagements.load(engagement.id, force=True)
        assert refetched.device_scopes[0].specifications.version == "11"

    @pytest.mark.anyio
    async def test_add_many_from_template(self, sync, store, engagement) -> None:
        log_size = len(store.engagement.activity_log)
        scopes = await sync.device_scopes.add_many(engagement.id, [
            DeviceScopeCreate(device_type="Linux servers"),
            DeviceScopeCreate(device_type="macOS laptops"),
        ])
        assert all(s.from_onboarding_template for s in scopes)
        assert len(store.engagement.device_scopes) == 2
        assert len(store.engagement.activity_log) == log_size + 2

    @pytest.mark.anyio
    async def test_add_many_needs_rows(self, sync, engagement) -> None:
        with pytest.raises(ValidationFailure):
            await sync.device_scopes.add_many(engagement.id, [])

    @pytest.mark.anyio
    async def test_update_status_and_delete(self, sync, store, engagement) -> None:
        scope = await sync.device_scopes.add(
            DeviceScopeCreate(engagement_id=engagement.id, device_type="Linux servers"),
        )
        await sync.device_scopes.update(scope.id, DeviceScopeUpdate(
            engagement_id=engagement.id, count=12,
        ))
        await sync.device_scopes.update_status(engagement.id, scope.id, DeviceScopeStatus.ONBOARDED)
        cached = store.engagement.device_scopes[0]
        assert cached.count == 12
        assert cached.status == DeviceScopeStatus.ONBOARDED
        assert store.engagement.activity_log[0].description == '"Linux servers" marked as complete'

        await sync.device_scopes.delete(engagement.id, scope.id)
        assert store.engagement.device_scopes == []
        with pytest.raises(NotFound):
            await sync.device_scopes.delete(engagement.id, scope.id)


class TestBusinessServices:

    @pytest.mark.anyio
    async def test_lifecycle(self, sync, store, engagement) -> None:
        service = await sync.business_services.add(BusinessServiceCreate(
            engagement_id=engagement.id, name="Payments", tech_owner="Sam",
            desired_kpis=["MTTR < 1h", "MTTR < 1h", "Zero breaches"],
        ))
        assert service.desired_kpis == ["MTTR < 1h", "Zero breaches"]
        assert store.engagement.business_services == [service]

        updated = await sync.business_services.update(service.id, BusinessServiceUpdate(
            engagement_id=engagement.id, desired_kpis=["MTTD < 5m"],
        ))
        assert updated.desired_kpis == ["MTTD < 5m"]
        assert updated.tech_owner == "Sam"

        await sync.business_services.delete(engagement.id, service.id)
        assert store.engagement.business_services == []
        assert store.engagement.activity_log[0].title == "Business Service Removed"

    @pytest.mark.anyio
    async def test_update_unknown(self, sync, engagement) -> None:
        with pytest.raises(NotFound):
            await sync.business_services.update(uuid7(), BusinessServiceUpdate(
                engagement_id=engagement.id, name="Ghost",
            ))
