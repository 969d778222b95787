"""Comment operations. Only a comment's author may edit or remove it."""

from uuid import UUID

from povsync.activity_log import excerpt
from povsync.collaborators import Actor
from povsync.core.exceptions import NotFound, Unauthorized, ValidationFailure
from povsync.db.tables import CommentRow
from povsync.models.common import ActivityType, new_uuid7
from povsync.models.engagement import Comment
from povsync.operations.base import OperationBase, notify
from povsync.repositories.comments import CommentRepository
from povsync.store.actions import AddItem, Collection, DeleteItem, UpdateItem


def _require_content(content: str) -> str:
    text = content.strip()
    if not text:
        raise ValidationFailure("Comment content is required", {"content": "empty"})
    return text


def _require_author(row: CommentRow, actor: Actor) -> None:
    if row.created_by != actor.id:
        raise Unauthorized("Only the author can change this comment")


class CommentOperations(OperationBase):

    @notify(
        loading="Posting comment...",
        success="Comment added",
        failure="Failed to add comment",
    )
    async def add(self, engagement_id: UUID | None, content: str, *,
                  parent_id: UUID | None = None) -> Comment:
        """Post a comment, or a reply when ``parent_id`` is given.

        Replies attach to the top-level comment of the thread.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        text = _require_content(content)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            repo = CommentRepository(mutation.session)
            if parent_id is not None:
                parent = await repo.get(parent_id)
                self._require_owned(parent, "Comment", parent_id, engagement_id)
                parent_id = parent.parent_id or parent.id
            comment = await repo.create(
                comment_id=new_uuid7(),
                engagement_id=engagement_id,
                content=text,
                parent_id=parent_id,
                created_by=actor.id,
                created_by_email=actor.email,
            )
            mutation.after_commit(AddItem(Collection.COMMENTS, comment))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.COMMENT,
                title="Comment Added",
                description=excerpt(text),
                reference_id=comment.id,
            )
        return comment

    @notify(
        loading="Saving comment...",
        success="Comment updated",
        failure="Failed to update comment",
    )
    async def update(self, engagement_id: UUID | None, comment_id: UUID, content: str) -> Comment:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        text = _require_content(content)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = CommentRepository(mutation.session)
            row = await repo.get(comment_id)
            self._require_owned(row, "Comment", comment_id, engagement_id)
            _require_author(row, actor)
            comment = await repo.update_content(comment_id, text)
            if comment is None:
                raise NotFound("Comment", comment_id)
            mutation.after_commit(UpdateItem(Collection.COMMENTS, comment))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.COMMENT,
                title="Comment Edited",
                description=excerpt(text),
                reference_id=comment.id,
            )
        return comment

    @notify(
        loading="Removing comment...",
        success="Comment removed",
        failure="Failed to remove comment",
    )
    async def delete(self, engagement_id: UUID | None, comment_id: UUID) -> None:
        """Remove a comment together with its replies."""
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = CommentRepository(mutation.session)
            row = await repo.get(comment_id)
            self._require_owned(row, "Comment", comment_id, engagement_id)
            _require_author(row, actor)
            text = row.content
            for deleted_id in await repo.delete(comment_id):
                mutation.after_commit(DeleteItem(Collection.COMMENTS, deleted_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.COMMENT,
                title="Comment Removed",
                description=excerpt(text),
                reference_id=comment_id,
            )
