"""Tests for the session change feed."""
from lappeleken.services.change_feed import ChangeFeed, ChangeKind, SessionChange


def change(kind=ChangeKind.EVENT_RECORDED) -> SessionChange:
    return SessionChange(session_id="s1", kind=kind, payload={"event_id": "e1"})


class TestChangeFeed:

    def test_delivers_to_every_subscriber(self):
        feed = ChangeFeed()
        first, second = [], []
        feed.subscribe(first.append)
        feed.subscribe(second.append)

        feed.publish(change())

        assert len(first) == len(second) == 1
        assert first[0].payload == {"event_id": "e1"}

    def test_unsubscribe(self):
        feed = ChangeFeed()
        received = []
        unsubscribe = feed.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        feed.publish(change())

        assert received == []
        assert feed.subscriber_count == 0

    def test_failing_subscriber_is_isolated(self):
        """Should keep delivering after one subscriber raises."""
        feed = ChangeFeed()
        received = []

        def broken(_):
            raise RuntimeError("subscriber bug")

        feed.subscribe(broken)
        feed.subscribe(received.append)

        feed.publish(change(ChangeKind.ENDED))

        assert [c.kind for c in received] == [ChangeKind.ENDED]
