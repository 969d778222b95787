"""Comment and document repositories."""

from uuid import UUID

from sqlalchemy import delete, or_, select

from povsync.db.tables import CommentRow, DocumentRow
from povsync.models.common import utc_now
from povsync.models.engagement import Comment, Document
from povsync.repositories.base import SessionRepository


class CommentRepository(SessionRepository):

    async def create(self, *, comment_id: UUID, engagement_id: UUID, content: str,
                     parent_id: UUID | None, created_by: UUID,
                     created_by_email: str) -> Comment:
        now = utc_now()
        row = CommentRow(
            id=comment_id, engagement_id=engagement_id, content=content,
            parent_id=parent_id, created_by=created_by,
            created_by_email=created_by_email, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return Comment.model_validate(row)

    async def get(self, comment_id: UUID) -> CommentRow | None:
        return await self._session.get(CommentRow, comment_id)

    async def update_content(self, comment_id: UUID, content: str) -> Comment | None:
        row = await self.get(comment_id)
        if row is None:
            return None
        row.content = content
        row.updated_at = utc_now()
        await self._session.flush()
        return Comment.model_validate(row)

    async def delete(self, comment_id: UUID) -> list[UUID]:
        """Delete a comment and its direct replies. Returns every deleted id."""
        result = await self._session.execute(
            select(CommentRow.id).where(
                or_(CommentRow.id == comment_id, CommentRow.parent_id == comment_id)
            )
        )
        ids = list(result.scalars().all())
        if not ids:
            return []
        await self._session.execute(delete(CommentRow).where(CommentRow.parent_id == comment_id))
        await self._session.execute(delete(CommentRow).where(CommentRow.id == comment_id))
        return ids

    async def list_by_engagement(self, engagement_id: UUID) -> list[Comment]:
        result = await self._session.execute(
            select(CommentRow)
            .where(CommentRow.engagement_id == engagement_id)
            .order_by(CommentRow.created_at, CommentRow.id)
        )
        return [Comment.model_validate(r) for r in result.scalars().all()]


class DocumentRepository(SessionRepository):

    async def create(self, *, document_id: UUID, engagement_id: UUID, name: str,
                     description: str | None, bucket_id: str, storage_path: str,
                     content_type: str, size_bytes: int, created_by: UUID,
                     created_by_email: str) -> Document:
        now = utc_now()
        row = DocumentRow(
            id=document_id, engagement_id=engagement_id, name=name,
            description=description, bucket_id=bucket_id, storage_path=storage_path,
            content_type=content_type, size_bytes=size_bytes, created_by=created_by,
            created_by_email=created_by_email, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return Document.model_validate(row)

    async def get(self, document_id: UUID) -> Document | None:
        row = await self._session.get(DocumentRow, document_id)
        return Document.model_validate(row) if row is not None else None

    async def delete(self, document_id: UUID) -> bool:
        result = await self._session.execute(
            delete(DocumentRow).where(DocumentRow.id == document_id)
        )
        return result.rowcount > 0

    async def list_by_engagement(self, engagement_id: UUID) -> list[Document]:
        result = await self._session.execute(
            select(DocumentRow)
            .where(DocumentRow.engagement_id == engagement_id)
            .order_by(DocumentRow.created_at.desc(), DocumentRow.id.desc())
        )
        return [Document.model_validate(r) for r in result.scalars().all()]
