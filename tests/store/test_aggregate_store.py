"""Tests for the AggregateStore holder."""

import pytest

from povsync.models.engagement import Engagement
from povsync.store import AggregateStore, LoadEngagement, SetLoading


def _engagement() -> Engagement:
    return Engagement(title="Acme POV", customer_name="Acme Corp")


class TestAggregateStore:

    def test_dispatch_advances_state(self) -> None:
        store = AggregateStore()
        engagement = _engagement()
        store.dispatch(LoadEngagement(engagement))
        assert store.engagement == engagement
        assert store.loaded(engagement.id) == engagement
        assert store.loaded(_engagement().id) is None

    def test_listeners_and_unsubscribe(self) -> None:
        store = AggregateStore()
        seen = []
        unsubscribe = store.subscribe(lambda state, action: seen.append(action))
        store.dispatch(SetLoading(True))
        unsubscribe()
        store.dispatch(SetLoading(False))
        assert seen == [SetLoading(True)]

    def test_dispatch_from_listener_is_rejected(self) -> None:
        store = AggregateStore()
        store.subscribe(lambda state, action: store.dispatch(SetLoading(False)))
        with pytest.raises(RuntimeError):
            store.dispatch(SetLoading(True))
