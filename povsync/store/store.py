"""Explicit aggregate store object, constructed once and injected."""

from collections.abc import Callable
from uuid import UUID

from povsync.models.engagement import Engagement
from povsync.store.actions import Action
from povsync.store.reducer import AggregateState, apply

Listener = Callable[[AggregateState, Action], None]


class AggregateStore:
    """Holds the single loaded aggregate and the engagement summaries.

    Single-threaded and synchronous: ``dispatch`` runs ``apply`` and then
    notifies listeners. Dispatching from inside a listener is rejected.
    """

    def __init__(self, state: AggregateState | None = None) -> None:
        self._state = state or AggregateState()
        self._listeners: list[Listener] = []
        self._dispatching = False

    @property
    def state(self) -> AggregateState:
        return self._state

    @property
    def engagement(self) -> Engagement | None:
        return self._state.engagement

    def loaded(self, engagement_id: UUID) -> Engagement | None:
        """The cached aggregate if it is the one with ``engagement_id``."""
        engagement = self._state.engagement
        if engagement is not None and engagement.id == engagement_id:
            return engagement
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, action: Action) -> AggregateState:
        if self._dispatching:
            msg = "AggregateStore.dispatch is not re-entrant."
            raise RuntimeError(msg)
        self._dispatching = True
        try:
            self._state = apply(self._state, action)
            for listener in list(self._listeners):
                listener(self._state, action)
        finally:
            self._dispatching = False
        return self._state
