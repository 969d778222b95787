"""Engagement (aggregate root) operations: create, load, list, update, delete."""

from uuid import UUID

from povsync.core.exceptions import NotFound
from povsync.models.common import (
    ActivityType,
    EngagementStatus,
    MembershipStatus,
    Organization,
    new_uuid7,
    status_verb,
)
from povsync.models.engagement import Engagement, EngagementSummary
from povsync.models.inputs import EngagementCreate, EngagementUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.engagements import EngagementRepository
from povsync.repositories.team import PersonRepository, TeamMemberRepository
from povsync.store.actions import (
    LoadEngagement,
    RemoveEngagementSummary,
    ReplaceEngagement,
    SetEngagements,
    SetError,
    SetLoading,
    UnloadEngagement,
    UpsertEngagementSummary,
)

OWNER_ROLE = "Engagement Owner"


class EngagementOperations(OperationBase):

    @notify(
        loading="Creating POV...",
        success=lambda e: f'POV "{e.title}" created',
        failure="Failed to create POV",
    )
    async def create(self, payload: EngagementCreate) -> Engagement:
        """Create the root, make the creator its owner and log the creation.

        The new aggregate becomes the loaded one.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = new_uuid7()
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            session = mutation.session
            await EngagementRepository(session).create(
                engagement_id=engagement_id,
                title=payload.title,
                customer_name=payload.customer_name,
                customer_industry=payload.customer_industry,
                customer_region=payload.customer_region,
                business_unit=payload.business_unit,
                status=payload.status,
                notes=payload.notes,
                start_date=payload.start_date,
                end_date=payload.end_date,
                created_by=actor.id,
            )
            person, _ = await PersonRepository(session).upsert_by_email(
                name=actor.display_name,
                email=actor.email,
                role=OWNER_ROLE,
                organization=Organization.INTERNAL,
            )
            await TeamMemberRepository(session).upsert(
                engagement_id=engagement_id,
                person_id=person.id,
                name=actor.display_name,
                email=actor.email,
                role=OWNER_ROLE,
                organization=Organization.INTERNAL,
                status=MembershipStatus.ACTIVE,
                created_by=actor.id,
            )
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="POV Created",
                description=f'"{payload.title}" POV created for {payload.customer_name}',
                reference_id=engagement_id,
            )
            engagement = await self._read_aggregate(session, engagement_id)
            mutation.after_commit(LoadEngagement(engagement))
            mutation.after_commit(UpsertEngagementSummary(engagement.summary()))
        return engagement

    @notify(
        loading="Loading POV...",
        success=lambda e: f'POV "{e.title}" loaded',
        failure="Failed to load POV",
    )
    async def load(self, engagement_id: UUID | None, *, force: bool = False) -> Engagement:
        """Load the whole aggregate into the store.

        Returns the cached aggregate without a round trip when it is already
        loaded, unless ``force`` is set.
        """
        await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        store = self._ctx.store
        cached = store.loaded(engagement_id)
        if cached is not None and not force:
            return cached

        store.dispatch(SetLoading(True))
        try:
            async with self._ctx.locks.hold(engagement_id):
                async with self._ctx.reading() as session:
                    engagement = await EngagementRepository(session).get_aggregate(engagement_id)
            if engagement is None:
                raise NotFound("Engagement", engagement_id)
        except Exception as exc:
            store.dispatch(SetError(str(exc) or "Failed to load POV"))
            raise
        finally:
            store.dispatch(SetLoading(False))
        store.dispatch(LoadEngagement(engagement))
        return engagement

    @notify(
        loading="Loading POVs...",
        success=lambda rows: f"{len(rows)} POVs loaded",
        failure="Failed to load POVs",
    )
    async def list(self) -> list[EngagementSummary]:
        await self._ctx.resolve_actor()
        store = self._ctx.store
        store.dispatch(SetLoading(True))
        try:
            async with self._ctx.reading() as session:
                summaries = await EngagementRepository(session).list_summaries()
        except Exception as exc:
            store.dispatch(SetError(str(exc) or "Failed to load POVs"))
            raise
        finally:
            store.dispatch(SetLoading(False))
        store.dispatch(SetEngagements(tuple(summaries)))
        return summaries

    @notify(
        loading="Updating POV...",
        success=lambda e: f'POV "{e.title}" updated',
        failure="Failed to update POV",
    )
    async def update(self, engagement_id: UUID | None, payload: EngagementUpdate) -> Engagement:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        changes = self._changes(payload, nullable=("start_date", "end_date"))
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = EngagementRepository(mutation.session)
            row = await repo.update(engagement_id, **changes)
            if row is None:
                raise NotFound("Engagement", engagement_id)
            engagement = Engagement.model_validate(row)
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="POV Updated",
                description=f'"{engagement.title}" details updated',
                reference_id=engagement_id,
            )
            summary = await repo.get_summary(engagement_id)
            mutation.after_commit(ReplaceEngagement(engagement))
            if summary is not None:
                mutation.after_commit(UpsertEngagementSummary(summary))
        return engagement

    @notify(
        loading="Updating POV status...",
        success=lambda e: f"POV status set to {e.status}",
        failure="Failed to update POV status",
    )
    async def update_status(self, engagement_id: UUID | None,
                            status: EngagementStatus) -> Engagement:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = EngagementRepository(mutation.session)
            row = await repo.update(engagement_id, status=status)
            if row is None:
                raise NotFound("Engagement", engagement_id)
            engagement = Engagement.model_validate(row)
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.STATUS,
                title="POV Status Updated",
                description=f'"{engagement.title}" {status_verb(status)}',
                reference_id=engagement_id,
            )
            summary = await repo.get_summary(engagement_id)
            mutation.after_commit(ReplaceEngagement(engagement))
            if summary is not None:
                mutation.after_commit(UpsertEngagementSummary(summary))
        return engagement

    @notify(
        loading="Deleting POV...",
        success="POV deleted",
        failure="Failed to delete POV",
    )
    async def delete(self, engagement_id: UUID | None) -> None:
        """Delete the root; the database cascades every owned row.

        The activity log goes with the engagement, so nothing is logged.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            if not await EngagementRepository(mutation.session).delete(engagement_id):
                raise NotFound("Engagement", engagement_id)
            mutation.after_commit(UnloadEngagement(engagement_id))
            mutation.after_commit(RemoveEngagementSummary(engagement_id))
        self._ctx.locks.discard(engagement_id)
