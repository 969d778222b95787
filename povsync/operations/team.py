"""Team-member operations.

Adding a member upserts the global Person by email and then the
(engagement, person) association, so repeating the call is a no-op.
Updates touch only the association's snapshot; removal never deletes
the Person.
"""

from uuid import UUID

from povsync.models.common import ActivityType, MembershipStatus
from povsync.models.engagement import TeamMemberAssociation
from povsync.models.inputs import TeamMemberCreate, TeamMemberUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.team import PersonRepository, TeamMemberRepository
from povsync.store.actions import AddItem, Collection, DeleteItem, UpdateItem


def _member_label(name: str, role: str) -> str:
    return f"{name} ({role})" if role else name


class TeamOperations(OperationBase):

    @notify(
        loading="Adding team member...",
        success=lambda m: f"{m.name} added to the team",
        failure="Failed to add team member",
    )
    async def add(self, payload: TeamMemberCreate) -> TeamMemberAssociation:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            person, _ = await PersonRepository(mutation.session).upsert_by_email(
                name=payload.name,
                email=payload.email,
                role=payload.role,
                organization=payload.organization,
            )
            member, created = await TeamMemberRepository(mutation.session).upsert(
                engagement_id=engagement_id,
                person_id=person.id,
                name=payload.name,
                email=payload.email,
                role=payload.role,
                organization=payload.organization,
                status=MembershipStatus.ACTIVE,
                created_by=actor.id,
            )
            if created:
                mutation.after_commit(AddItem(Collection.TEAM_MEMBERS, member))
                await self._log.append(
                    mutation,
                    engagement_id=engagement_id,
                    type=ActivityType.TEAM,
                    title="Team Member Added",
                    description=f"{_member_label(member.name, member.role)} added to the team",
                    reference_id=member.id,
                )
        return member

    @notify(
        loading="Updating team member...",
        success=lambda m: f"{m.name} updated",
        failure="Failed to update team member",
    )
    async def update(self, association_id: UUID, payload: TeamMemberUpdate) -> TeamMemberAssociation:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(payload)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = TeamMemberRepository(mutation.session)
            self._require_owned(
                await repo.get(association_id), "TeamMember", association_id, engagement_id,
            )
            row = await repo.update(association_id, updated_by=actor.id, **changes)
            member = TeamMemberAssociation.model_validate(row)
            mutation.after_commit(UpdateItem(Collection.TEAM_MEMBERS, member))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.TEAM,
                title="Team Member Updated",
                description=f"{_member_label(member.name, member.role)} details updated",
                reference_id=member.id,
            )
        return member

    @notify(
        loading="Removing team member...",
        success="Team member removed",
        failure="Failed to remove team member",
    )
    async def delete(self, engagement_id: UUID | None, association_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = TeamMemberRepository(mutation.session)
            row = await repo.get(association_id)
            self._require_owned(row, "TeamMember", association_id, engagement_id)
            label = _member_label(row.name, row.role)
            await repo.delete(association_id)
            mutation.after_commit(DeleteItem(Collection.TEAM_MEMBERS, association_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.TEAM,
                title="Team Member Removed",
                description=f"{label} removed from the team",
                reference_id=association_id,
            )
