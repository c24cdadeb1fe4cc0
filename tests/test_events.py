"""Tests for the observation feeds."""

from triage_sim.events import EventFeed, LiveValueFeed


def test_feed_delivers_to_current_subscribers_only():
    feed = EventFeed("test")
    early = []
    feed.emit("before")
    feed.subscribe(early.append)
    feed.emit("after")
    assert early == ["after"]


def test_unsubscribe_stops_delivery_and_is_idempotent():
    feed = EventFeed("test")
    received = []
    subscription = feed.subscribe(received.append)
    feed.emit(1)
    subscription.unsubscribe()
    subscription.unsubscribe()
    feed.emit(2)
    assert received == [1]
    assert feed.subscriber_count == 0
    assert subscription.active is False


def test_subscriber_may_unsubscribe_while_being_notified():
    feed = EventFeed("test")
    received = []
    holder = {}

    def once(value):
        received.append(value)
        holder["sub"].unsubscribe()

    holder["sub"] = feed.subscribe(once)
    other = []
    feed.subscribe(other.append)

    feed.emit("a")
    feed.emit("b")
    assert received == ["a"]
    assert other == ["a", "b"]


def test_failing_subscriber_is_logged_and_others_still_run(capsys):
    feed = EventFeed("Noisy")
    received = []

    def broken(_):
        raise RuntimeError("nope")

    feed.subscribe(broken)
    feed.subscribe(received.append)
    feed.emit(42)

    assert received == [42]
    assert "[Noisy] Subscriber failed: nope" in capsys.readouterr().out


def test_live_value_feed_replays_latest():
    feed = LiveValueFeed("live", initial=0)
    first = []
    feed.subscribe(first.append)
    feed.emit(5)

    late = []
    feed.subscribe(late.append)

    assert first == [0, 5]
    assert late == [5]
    assert feed.latest == 5


def test_live_value_feed_without_initial_value_does_not_replay():
    feed = LiveValueFeed("live")
    received = []
    feed.subscribe(received.append)
    assert received == []
    assert feed.latest is None
