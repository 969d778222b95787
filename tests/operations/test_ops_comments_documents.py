"""Tests for comment and document operations."""

import pytest
from sqlalchemy.exc import OperationalError
from uuid_extensions import uuid7

from povsync.collaborators import Actor
from povsync.core.exceptions import NotFound, RemoteFailure, Unauthorized, ValidationFailure
from povsync.models.common import ActivityType
from povsync.repositories.comments import DocumentRepository


class TestComments:

    @pytest.mark.anyio
    async def test_add_and_reply(self, sync, store, engagement) -> None:
        top = await sync.comments.add(engagement.id, "  Kickoff went well  ")
        reply = await sync.comments.add(engagement.id, "Agreed", parent_id=top.id)
        nested = await sync.comments.add(engagement.id, "Same", parent_id=reply.id)

        assert top.content == "Kickoff went well"
        assert reply.parent_id == top.id
        assert nested.parent_id == top.id
        assert len(store.engagement.comments) == 3
        entry = store.engagement.activity_log[0]
        assert entry.type == ActivityType.COMMENT
        assert entry.reference_id == nested.id

    @pytest.mark.anyio
    async def test_empty_content(self, sync, engagement) -> None:
        with pytest.raises(ValidationFailure):
            await sync.comments.add(engagement.id, "   ")

    @pytest.mark.anyio
    async def test_only_author_may_edit_or_delete(self, sync, identity, engagement) -> None:
        comment = await sync.comments.add(engagement.id, "Mine")
        identity.sign_in(Actor(id=uuid7(), email="other@example.com", display_name="Other"))
        with pytest.raises(Unauthorized):
            await sync.comments.update(engagement.id, comment.id, "Hijacked")
        with pytest.raises(Unauthorized):
            await sync.comments.delete(engagement.id, comment.id)

    @pytest.mark.anyio
    async def test_edit_and_delete_thread(self, sync, store, engagement) -> None:
        top = await sync.comments.add(engagement.id, "Draft")
        await sync.comments.add(engagement.id, "Reply", parent_id=top.id)

        edited = await sync.comments.update(engagement.id, top.id, "Final")
        assert edited.content == "Final"
        assert store.engagement.activity_log[0].title == "Comment Edited"

        await sync.comments.delete(engagement.id, top.id)
        assert store.engagement.comments == []
        assert store.engagement.activity_log[0].title == "Comment Removed"

    @pytest.mark.anyio
    async def test_reply_to_unknown_parent(self, sync, engagement) -> None:
        with pytest.raises(NotFound):
            await sync.comments.add(engagement.id, "Orphan", parent_id=uuid7())


class TestDocuments:

    @pytest.mark.anyio
    async def test_upload_download_delete(self, sync, store, engagement) -> None:
        document = await sync.documents.upload(
            engagement.id, name="architecture.pdf", content=b"%PDF-1.7",
            content_type="application/pdf",
        )
        assert document.size_bytes == 8
        assert document.bucket_id == "test-documents"
        assert store.engagement.documents == [document]
        assert store.engagement.activity_log[0].type == ActivityType.DOCUMENT

        assert await sync.documents.download(engagement.id, document.id) == b"%PDF-1.7"

        await sync.documents.delete(engagement.id, document.id)
        assert store.engagement.documents == []
        assert store.engagement.activity_log[0].title == "Document Removed"
        with pytest.raises(NotFound):
            await sync.documents.download(engagement.id, document.id)

    @pytest.mark.anyio
    async def test_empty_upload(self, sync, engagement) -> None:
        with pytest.raises(ValidationFailure):
            await sync.documents.upload(engagement.id, name="empty.txt", content=b"")

    @pytest.mark.anyio
    async def test_failed_row_insert_removes_blob(self, sync, store, settings, tmp_path,
                                                  engagement, monkeypatch) -> None:
        async def _broken_create(self, **kwargs):
            raise OperationalError("INSERT INTO documents", {}, Exception("disk full"))

        monkeypatch.setattr(DocumentRepository, "create", _broken_create)
        log_size = len(store.engagement.activity_log)

        with pytest.raises(RemoteFailure) as excinfo:
            await sync.documents.upload(engagement.id, name="a.txt", content=b"data")

        assert isinstance(excinfo.value.cause, OperationalError)
        root = tmp_path / "blobs" / settings.DOCUMENTS_BUCKET
        assert not any(p.is_file() for p in root.rglob("*"))
        assert store.engagement.documents == []
        assert len(store.engagement.activity_log) == log_size

    @pytest.mark.anyio
    async def test_dot_dot_name_keeps_engagement_uploadable(self, sync, store, engagement) -> None:
        odd = await sync.documents.upload(engagement.id, name="..", content=b"one")
        plan = await sync.documents.upload(engagement.id, name="plan.pdf", content=b"two")

        assert odd.storage_path.endswith("/document")
        assert await sync.documents.download(engagement.id, odd.id) == b"one"
        assert await sync.documents.download(engagement.id, plan.id) == b"two"
        assert len(store.engagement.documents) == 2

    @pytest.mark.anyio
    async def test_missing_blob_is_remote_failure(self, sync, ctx, engagement) -> None:
        document = await sync.documents.upload(engagement.id, name="a.txt", content=b"data")
        ctx.storage.remove(bucket=document.bucket_id, path=document.storage_path)
        with pytest.raises(RemoteFailure):
            await sync.documents.download(engagement.id, document.id)
