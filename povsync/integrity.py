"""Referential integrity guard.

The backing store does not enforce every application-level reference.
Before a destructive operation, the guard enumerates the aggregate's
collections that may reference the candidate's children and blocks the
operation while any reference is live.

Deterministic, no I/O: rules run against an ``Engagement`` snapshot.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from uuid import UUID

from povsync.core.exceptions import IntegrityViolation
from povsync.models.engagement import DecisionCriterion, Engagement


@dataclass(frozen=True)
class Reference:
    """A live reference from a dependent record to a protected id."""

    holder_id: UUID
    holder_label: str
    target_id: UUID


@dataclass(frozen=True)
class ReferenceRule:
    """Protects the children of one entity kind against dangling references.

    Attributes:
        name: Short rule name used in logs.
        references: Yields every reference held anywhere in the aggregate.
        explain: Builds the user-facing message from the blocking references.
    """

    name: str
    references: Callable[[Engagement], Iterable[Reference]]
    explain: Callable[[list[Reference]], str]

    def blocking(self, engagement: Engagement, protected_ids: set[UUID]) -> list[Reference]:
        return [r for r in self.references(engagement) if r.target_id in protected_ids]


def _session_activity_references(engagement: Engagement) -> Iterable[Reference]:
    for session in engagement.working_sessions:
        for activity in session.session_activities:
            if activity.decision_criterion_activity_id is not None:
                yield Reference(
                    holder_id=session.id,
                    holder_label=session.title,
                    target_id=activity.decision_criterion_activity_id,
                )


def _explain_scheduled(references: list[Reference]) -> str:
    sessions = sorted({r.holder_label for r in references})
    quoted = ", ".join(f'"{s}"' for s in sessions)
    return (
        "This decision criterion has activities scheduled in working sessions "
        f"({quoted}). Remove them from those sessions first."
    )


SCHEDULED_CRITERION_ACTIVITIES = ReferenceRule(
    name="criterion_activity_scheduled",
    references=_session_activity_references,
    explain=_explain_scheduled,
)


class IntegrityGuard:
    """Runs reference rules before destructive operations."""

    def __init__(self, rules: dict[str, ReferenceRule] | None = None) -> None:
        self._rules = rules or {
            SCHEDULED_CRITERION_ACTIVITIES.name: SCHEDULED_CRITERION_ACTIVITIES,
        }

    def check(self, rule_name: str, engagement: Engagement, protected_ids: set[UUID]) -> None:
        """Raise IntegrityViolation if any protected id is still referenced."""
        rule = self._rules[rule_name]
        blocking = rule.blocking(engagement, protected_ids)
        if blocking:
            raise IntegrityViolation(
                rule.explain(blocking),
                dependents=sorted({r.holder_id for r in blocking}, key=str),
            )

    def check_criterion_delete(self, engagement: Engagement, criterion: DecisionCriterion) -> None:
        self.check(SCHEDULED_CRITERION_ACTIVITIES.name, engagement, criterion.activity_ids)

    def check_criterion_activities_removed(
        self, engagement: Engagement, removed_activity_ids: set[UUID],
    ) -> None:
        """Dropping activities from a criterion must not orphan session activities."""
        self.check(SCHEDULED_CRITERION_ACTIVITIES.name, engagement, removed_activity_ids)

    def check_single_schedule(
        self,
        engagement: Engagement,
        *,
        session_id: UUID | None,
        criterion_activity_ids: list[UUID],
    ) -> None:
        """A criterion activity may appear in at most one session activity.

        ``session_id`` is the session being written; its own current rows
        are replaced, so they do not count as conflicts.
        """
        duplicates = {i for i in criterion_activity_ids if criterion_activity_ids.count(i) > 1}
        if duplicates:
            raise IntegrityViolation(
                "A decision criterion activity can only be scheduled once.",
                dependents=sorted(duplicates, key=str),
            )
        others = [
            r for r in _session_activity_references(engagement)
            if r.holder_id != session_id and r.target_id in set(criterion_activity_ids)
        ]
        if others:
            sessions = ", ".join(sorted({f'"{r.holder_label}"' for r in others}))
            raise IntegrityViolation(
                f"Activity is already scheduled in working session {sessions}.",
                dependents=sorted({r.holder_id for r in others}, key=str),
            )
