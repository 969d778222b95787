"""Key business service operations."""

from uuid import UUID

from povsync.core.exceptions import NotFound
from povsync.models.common import ActivityType, new_uuid7
from povsync.models.engagement import KeyBusinessService
from povsync.models.inputs import BusinessServiceCreate, BusinessServiceUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.device_scopes import BusinessServiceRepository
from povsync.store.actions import AddItem, Collection, DeleteItem, UpdateItem


class BusinessServiceOperations(OperationBase):

    @notify(
        loading="Adding business service...",
        success=lambda s: f'Business service "{s.name}" added',
        failure="Failed to add business service",
    )
    async def add(self, payload: BusinessServiceCreate) -> KeyBusinessService:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            repo = BusinessServiceRepository(mutation.session)
            service_id = new_uuid7()
            await repo.create(
                service_id=service_id,
                engagement_id=engagement_id,
                name=payload.name,
                description=payload.description,
                tech_owner=payload.tech_owner,
                desired_kpis=payload.desired_kpis,
                created_by=actor.id,
            )
            service = await repo.get_model(service_id)
            if service is None:
                raise NotFound("KeyBusinessService", service_id)
            mutation.after_commit(AddItem(Collection.BUSINESS_SERVICES, service))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="Business Service Added",
                description=f'"{service.name}" business service added',
                reference_id=service.id,
            )
        return service

    @notify(
        loading="Updating business service...",
        success=lambda s: f'Business service "{s.name}" updated',
        failure="Failed to update business service",
    )
    async def update(self, service_id: UUID, payload: BusinessServiceUpdate) -> KeyBusinessService:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(payload)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = BusinessServiceRepository(mutation.session)
            self._require_owned(
                await repo.get(service_id), "KeyBusinessService", service_id, engagement_id,
            )
            await repo.update(service_id, **changes)
            service = await repo.get_model(service_id)
            if service is None:
                raise NotFound("KeyBusinessService", service_id)
            mutation.after_commit(UpdateItem(Collection.BUSINESS_SERVICES, service))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="Business Service Updated",
                description=f'"{service.name}" business service updated',
                reference_id=service.id,
            )
        return service

    @notify(
        loading="Removing business service...",
        success="Business service removed",
        failure="Failed to remove business service",
    )
    async def delete(self, engagement_id: UUID | None, service_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = BusinessServiceRepository(mutation.session)
            row = await repo.get(service_id)
            self._require_owned(row, "KeyBusinessService", service_id, engagement_id)
            name = row.name
            await repo.delete(service_id)
            mutation.after_commit(DeleteItem(Collection.BUSINESS_SERVICES, service_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="Business Service Removed",
                description=f'"{name}" business service removed',
                reference_id=service_id,
            )
