"""Document operations.

Blobs live outside the database transaction. Upload writes the blob first
and registers its removal as the rollback compensation; delete removes the
blob before the row.
"""

from uuid import UUID

from povsync.core.exceptions import NotFound, RemoteFailure, ValidationFailure
from povsync.models.common import ActivityType, new_uuid7
from povsync.models.engagement import Document
from povsync.operations.base import OperationBase, notify
from povsync.repositories.comments import DocumentRepository
from povsync.storage import BlobStorage
from povsync.store.actions import AddItem, Collection, DeleteItem


class DocumentOperations(OperationBase):

    @property
    def storage(self) -> BlobStorage:
        if self._ctx.storage is None:
            self._ctx.storage = BlobStorage(self._ctx.settings.OBJECT_STORAGE_PATH)
        return self._ctx.storage

    @notify(
        loading="Uploading document...",
        success=lambda d: f'Document "{d.name}" uploaded',
        failure="Failed to upload document",
    )
    async def upload(self, engagement_id: UUID | None, *, name: str, content: bytes,
                     content_type: str = "application/octet-stream",
                     description: str | None = None) -> Document:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        if not content:
            raise ValidationFailure("Document content must not be empty", {"content": "empty"})
        bucket = self._ctx.settings.DOCUMENTS_BUCKET
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            document_id = new_uuid7()
            path = BlobStorage.document_path(engagement_id, document_id, name)
            storage = self.storage
            try:
                size = storage.upload(bucket=bucket, path=path, content=content)
            except OSError as exc:
                raise RemoteFailure(f"Failed to store {name}: {exc}", cause=exc) from exc
            mutation.on_rollback(lambda: storage.remove(bucket=bucket, path=path))
            document = await DocumentRepository(mutation.session).create(
                document_id=document_id,
                engagement_id=engagement_id,
                name=name,
                description=description,
                bucket_id=bucket,
                storage_path=path,
                content_type=content_type,
                size_bytes=size,
                created_by=actor.id,
                created_by_email=actor.email,
            )
            mutation.after_commit(AddItem(Collection.DOCUMENTS, document))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.DOCUMENT,
                title="Document Uploaded",
                description=f'"{document.name}" uploaded',
                reference_id=document.id,
            )
        return document

    @notify(
        loading="Downloading document...",
        success="Document downloaded",
        failure="Failed to download document",
    )
    async def download(self, engagement_id: UUID | None, document_id: UUID) -> bytes:
        await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.reading() as session:
            document = await DocumentRepository(session).get(document_id)
        self._require_owned(document, "Document", document_id, engagement_id)
        try:
            return self.storage.retrieve(bucket=document.bucket_id, path=document.storage_path)
        except OSError as exc:
            raise RemoteFailure(f"Failed to read {document.name}: {exc}", cause=exc) from exc

    @notify(
        loading="Removing document...",
        success="Document removed",
        failure="Failed to remove document",
    )
    async def delete(self, engagement_id: UUID | None, document_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = DocumentRepository(mutation.session)
            document = await repo.get(document_id)
            self._require_owned(document, "Document", document_id, engagement_id)
            try:
                self.storage.remove(bucket=document.bucket_id, path=document.storage_path)
            except OSError as exc:
                raise RemoteFailure(f"Failed to remove {document.name}: {exc}", cause=exc) from exc
            if not await repo.delete(document_id):
                raise NotFound("Document", document_id)
            mutation.after_commit(DeleteItem(Collection.DOCUMENTS, document_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.DOCUMENT,
                title="Document Removed",
                description=f'"{document.name}" removed',
                reference_id=document_id,
            )
