"""Shared repository plumbing for the povsync persistence layer.

Repositories call add()/flush()/execute() only, never commit().
The Operation Layer owns the transaction (one per operation).
"""

from collections import defaultdict
from collections.abc import Iterable
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class SessionRepository:
    """Base repository holding the caller's session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @property
    def dialect(self) -> str:
        return self._session.get_bind().dialect.name

    async def insert_or_ignore(
        self,
        table: Any,
        values: dict[str, Any],
        *,
        index_elements: list[str],
    ) -> None:
        """INSERT ... ON CONFLICT (index_elements) DO NOTHING.

        Only PostgreSQL and SQLite are supported, matching the deployment
        and test databases.
        """
        if self.dialect == "postgresql":
            stmt = postgresql.insert(table).values(**values)
        elif self.dialect == "sqlite":
            stmt = sqlite.insert(table).values(**values)
        else:
            msg = f"Upsert is not supported on dialect {self.dialect!r}."
            raise NotImplementedError(msg)
        await self._session.execute(
            stmt.on_conflict_do_nothing(index_elements=index_elements),
        )


def group_by(rows: Iterable[T], key: str) -> dict[UUID, list[T]]:
    """Group child rows by their parent id attribute, keeping row order."""
    grouped: dict[UUID, list[T]] = defaultdict(list)
    for row in rows:
        grouped[getattr(row, key)].append(row)
    return grouped
