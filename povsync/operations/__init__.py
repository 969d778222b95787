"""Operation Layer: one class per entity family behind the ``EngagementSync`` facade.

Usage:
    ctx = OperationContext(store=AggregateStore(), session_factory=factory,
                           identity=StaticIdentity(actor))
    sync = EngagementSync(ctx)
    engagement = await sync.engagements.create(EngagementCreate(...))
    await sync.challenges.add(ChallengeCreate(engagement_id=engagement.id, ...))
"""

from povsync.activity_log import ActivityLogWriter
from povsync.core.unit_of_work import OperationContext
from povsync.operations.business_services import BusinessServiceOperations
from povsync.operations.challenges import ChallengeOperations
from povsync.operations.comments import CommentOperations
from povsync.operations.criteria import DecisionCriterionOperations
from povsync.operations.device_scopes import DeviceScopeOperations
from povsync.operations.documents import DocumentOperations
from povsync.operations.engagements import EngagementOperations
from povsync.operations.sessions import WorkingSessionOperations
from povsync.operations.team import TeamOperations


class EngagementSync:
    """Every operation family, sharing one context and one activity log writer."""

    def __init__(self, ctx: OperationContext) -> None:
        self.ctx = ctx
        self.log = ActivityLogWriter(ctx)
        self.engagements = EngagementOperations(ctx, self.log)
        self.challenges = ChallengeOperations(ctx, self.log)
        self.criteria = DecisionCriterionOperations(ctx, self.log)
        self.team = TeamOperations(ctx, self.log)
        self.device_scopes = DeviceScopeOperations(ctx, self.log)
        self.sessions = WorkingSessionOperations(ctx, self.log)
        self.comments = CommentOperations(ctx, self.log)
        self.documents = DocumentOperations(ctx, self.log)
        self.business_services = BusinessServiceOperations(ctx, self.log)

    @property
    def store(self):
        return self.ctx.store


__all__ = [
    "BusinessServiceOperations",
    "ChallengeOperations",
    "CommentOperations",
    "DecisionCriterionOperations",
    "DeviceScopeOperations",
    "DocumentOperations",
    "EngagementOperations",
    "EngagementSync",
    "TeamOperations",
    "WorkingSessionOperations",
]
