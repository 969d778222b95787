"""Person directory and engagement team-member repositories.

Persons are global and deduplicated by email (ON CONFLICT (email) DO
NOTHING). Associations are unique on (engagement_id, person_id).
"""

import logging
from uuid import UUID

from sqlalchemy import delete, select

from povsync.db.tables import PersonRow, TeamMemberRow
from povsync.models.common import new_uuid7, utc_now
from povsync.models.engagement import Person, TeamMemberAssociation
from povsync.repositories.base import SessionRepository

logger = logging.getLogger(__name__)


class PersonRepository(SessionRepository):

    async def get_by_email(self, email: str) -> PersonRow | None:
        result = await self._session.execute(
            select(PersonRow).where(PersonRow.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def upsert_by_email(self, *, name: str, email: str, role: str,
                              organization: str) -> tuple[Person, bool]:
        """Return the person for ``email``, inserting it when unknown.

        Returns:
            (person, created); created is False when the email already existed.
        """
        email = email.lower()
        existing = await self.get_by_email(email)
        if existing is not None:
            return Person.model_validate(existing), False
        await self.insert_or_ignore(
            PersonRow,
            {
                "id": new_uuid7(), "name": name, "email": email, "role": role,
                "organization": organization, "created_at": utc_now(),
            },
            index_elements=["email"],
        )
        row = await self.get_by_email(email)
        logger.debug("Person upserted email=%s id=%s", email, row.id if row else None)
        return Person.model_validate(row), True


class TeamMemberRepository(SessionRepository):

    async def get(self, association_id: UUID) -> TeamMemberRow | None:
        return await self._session.get(TeamMemberRow, association_id)

    async def get_by_person(self, engagement_id: UUID, person_id: UUID) -> TeamMemberRow | None:
        result = await self._session.execute(
            select(TeamMemberRow).where(
                TeamMemberRow.engagement_id == engagement_id,
                TeamMemberRow.person_id == person_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(self, *, engagement_id: UUID, person_id: UUID, name: str,
                     email: str, role: str, organization: str, status: str,
                     created_by: UUID | None) -> tuple[TeamMemberAssociation, bool]:
        """Insert the association unless (engagement_id, person_id) already exists.

        Returns:
            (association, created); an existing association is returned untouched.
        """
        existing = await self.get_by_person(engagement_id, person_id)
        if existing is not None:
            return TeamMemberAssociation.model_validate(existing), False
        now = utc_now()
        await self.insert_or_ignore(
            TeamMemberRow,
            {
                "id": new_uuid7(), "engagement_id": engagement_id,
                "person_id": person_id, "name": name, "email": email.lower(),
                "role": role, "organization": organization, "status": status,
                "created_by": created_by, "updated_by": created_by,
                "created_at": now, "updated_at": now,
            },
            index_elements=["engagement_id", "person_id"],
        )
        row = await self.get_by_person(engagement_id, person_id)
        return TeamMemberAssociation.model_validate(row), True

    async def update(self, association_id: UUID, *, updated_by: UUID,
                     **fields: object) -> TeamMemberRow | None:
        row = await self.get(association_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_by = updated_by
        row.updated_at = utc_now()
        await self._session.flush()
        return row

    async def delete(self, association_id: UUID) -> bool:
        result = await self._session.execute(
            delete(TeamMemberRow).where(TeamMemberRow.id == association_id)
        )
        return result.rowcount > 0

    async def list_by_engagement(self, engagement_id: UUID) -> list[TeamMemberAssociation]:
        result = await self._session.execute(
            select(TeamMemberRow)
            .where(TeamMemberRow.engagement_id == engagement_id)
            .order_by(TeamMemberRow.created_at, TeamMemberRow.id)
        )
        return [TeamMemberAssociation.model_validate(r) for r in result.scalars().all()]
