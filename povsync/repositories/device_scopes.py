"""Device-scope and key-business-service repositories (flat owned rows)."""

from uuid import UUID

from sqlalchemy import delete, select

from povsync.db.tables import BusinessServiceRow, DeviceScopeRow
from povsync.models.common import utc_now
from povsync.models.engagement import DeviceScope, KeyBusinessService
from povsync.repositories.base import SessionRepository


class DeviceScopeRepository(SessionRepository):

    async def create_many(self, items: list[dict]) -> list[DeviceScopeRow]:
        now = utc_now()
        rows = [DeviceScopeRow(created_at=now, **item) for item in items]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def get(self, scope_id: UUID) -> DeviceScopeRow | None:
        return await self._session.get(DeviceScopeRow, scope_id)

    async def get_model(self, scope_id: UUID) -> DeviceScope | None:
        row = await self.get(scope_id)
        return DeviceScope.model_validate(row) if row is not None else None

    async def update(self, scope_id: UUID, **fields: object) -> DeviceScopeRow | None:
        row = await self.get(scope_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, scope_id: UUID) -> bool:
        result = await self._session.execute(
            delete(DeviceScopeRow).where(DeviceScopeRow.id == scope_id)
        )
        return result.rowcount > 0

    async def list_by_engagement(self, engagement_id: UUID) -> list[DeviceScope]:
        result = await self._session.execute(
            select(DeviceScopeRow)
            .where(DeviceScopeRow.engagement_id == engagement_id)
            .order_by(DeviceScopeRow.created_at, DeviceScopeRow.id)
        )
        return [DeviceScope.model_validate(r) for r in result.scalars().all()]


class BusinessServiceRepository(SessionRepository):

    async def create(self, *, service_id: UUID, engagement_id: UUID, name: str,
                     description: str, tech_owner: str, desired_kpis: list[str],
                     created_by: UUID | None) -> BusinessServiceRow:
        row = BusinessServiceRow(
            id=service_id, engagement_id=engagement_id, name=name,
            description=description, tech_owner=tech_owner,
            desired_kpis=list(desired_kpis), created_by=created_by,
            created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, service_id: UUID) -> BusinessServiceRow | None:
        return await self._session.get(BusinessServiceRow, service_id)

    async def get_model(self, service_id: UUID) -> KeyBusinessService | None:
        row = await self.get(service_id)
        return KeyBusinessService.model_validate(row) if row is not None else None

    async def update(self, service_id: UUID, **fields: object) -> BusinessServiceRow | None:
        row = await self.get(service_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, service_id: UUID) -> bool:
        result = await self._session.execute(
            delete(BusinessServiceRow).where(BusinessServiceRow.id == service_id)
        )
        return result.rowcount > 0

    async def list_by_engagement(self, engagement_id: UUID) -> list[KeyBusinessService]:
        result = await self._session.execute(
            select(BusinessServiceRow)
            .where(BusinessServiceRow.engagement_id == engagement_id)
            .order_by(BusinessServiceRow.created_at, BusinessServiceRow.id)
        )
        return [KeyBusinessService.model_validate(r) for r in result.scalars().all()]
