"""Device-scope operations."""

from uuid import UUID

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.core.unit_of_work import Mutation
from povsync.models.common import ActivityType, DeviceScopeStatus, new_uuid7, status_verb
from povsync.models.engagement import DeviceScope
from povsync.models.inputs import DeviceScopeCreate, DeviceScopeUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.device_scopes import DeviceScopeRepository
from povsync.store.actions import AddItem, Collection, DeleteItem, UpdateItem


class DeviceScopeOperations(OperationBase):

    @notify(
        loading="Adding device scope...",
        success=lambda d: f'Device scope "{d.device_type}" added',
        failure="Failed to add device scope",
    )
    async def add(self, payload: DeviceScopeCreate) -> DeviceScope:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            [scope] = await self._insert(mutation, engagement_id, [payload])
        return scope

    @notify(
        loading="Adding device scopes...",
        success=lambda scopes: f"{len(scopes)} device scopes added",
        failure="Failed to add device scopes",
    )
    async def add_many(self, engagement_id: UUID | None, payloads: list[DeviceScopeCreate], *,
                       from_onboarding_template: bool = True) -> list[DeviceScope]:
        """Seed several device scopes at once, typically from an onboarding template.

        Every row gets its own log entry, like a single add.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        if not payloads:
            raise ValidationFailure("At least one device scope is required", {"payloads": "empty"})
        payloads = [
            p.model_copy(update={"from_onboarding_template": from_onboarding_template})
            for p in payloads
        ]
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            scopes = await self._insert(mutation, engagement_id, payloads)
        return scopes

    async def _insert(self, mutation: Mutation, engagement_id: UUID,
                      payloads: list[DeviceScopeCreate]) -> list[DeviceScope]:
        repo = DeviceScopeRepository(mutation.session)
        rows = await repo.create_many([
            {
                **p.model_dump(exclude={"engagement_id"}),
                "id": new_uuid7(),
                "engagement_id": engagement_id,
                "created_by": mutation.actor.id,
            }
            for p in payloads
        ])
        scopes = [DeviceScope.model_validate(row) for row in rows]
        for scope in scopes:
            mutation.after_commit(AddItem(Collection.DEVICE_SCOPES, scope))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="Device Scope Added",
                description=f'"{scope.device_type}" device scope added',
                reference_id=scope.id,
            )
        return scopes

    @notify(
        loading="Updating device scope...",
        success=lambda d: f'Device scope "{d.device_type}" updated',
        failure="Failed to update device scope",
    )
    async def update(self, scope_id: UUID, payload: DeviceScopeUpdate) -> DeviceScope:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(payload, nullable=("notes",))
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            scope = await self._update(mutation, engagement_id, scope_id, changes, payload.status)
        return scope

    @notify(
        loading="Updating device scope status...",
        success=lambda d: f'Device scope "{d.device_type}" {status_verb(d.status)}',
        failure="Failed to update device scope status",
    )
    async def update_status(self, engagement_id: UUID | None, scope_id: UUID,
                            status: DeviceScopeStatus) -> DeviceScope:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            scope = await self._update(mutation, engagement_id, scope_id, {"status": status}, status)
        return scope

    async def _update(self, mutation: Mutation, engagement_id: UUID, scope_id: UUID,
                      changes: dict, status: DeviceScopeStatus | None) -> DeviceScope:
        repo = DeviceScopeRepository(mutation.session)
        self._require_owned(await repo.get(scope_id), "DeviceScope", scope_id, engagement_id)
        await repo.update(scope_id, **changes)
        scope = await repo.get_model(scope_id)
        if scope is None:
            raise NotFound("DeviceScope", scope_id)
        mutation.after_commit(UpdateItem(Collection.DEVICE_SCOPES, scope))
        await self._log.append(
            mutation,
            engagement_id=engagement_id,
            type=ActivityType.STATUS,
            title="Device Scope Updated",
            description=f'"{scope.device_type}" {status_verb(status)}',
            reference_id=scope.id,
        )
        return scope

    @notify(
        loading="Removing device scope...",
        success="Device scope removed",
        failure="Failed to remove device scope",
    )
    async def delete(self, engagement_id: UUID | None, scope_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = DeviceScopeRepository(mutation.session)
            row = await repo.get(scope_id)
            self._require_owned(row, "DeviceScope", scope_id, engagement_id)
            device_type = row.device_type
            await repo.delete(scope_id)
            mutation.after_commit(DeleteItem(Collection.DEVICE_SCOPES, scope_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="Device Scope Removed",
                description=f'"{device_type}" device scope removed',
                reference_id=scope_id,
            )
