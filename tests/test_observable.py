#!/usr/bin/env python3
"""Tests for the Subject and Observable primitives."""
from src.storesync.observable import Observable, Subject


class TestSubject:
    """Test event broadcasting."""

    def test_publishes_to_all_listeners(self):
        subject = Subject("events")
        first, second = [], []
        subject.subscribe(first.append)
        subject.subscribe(second.append)

        subject.publish("a")

        assert first == ["a"]
        assert second == ["a"]
        assert subject.subscriber_count == 2

    def test_cancel_stops_delivery(self):
        subject = Subject()
        received = []
        subscription = subject.subscribe(received.append)

        subscription.cancel()
        subscription.cancel()
        subject.publish("ignored")

        assert received == []
        assert subscription.active is False
        assert subject.subscriber_count == 0

    def test_failing_listener_does_not_block_others(self):
        subject = Subject()
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        subject.subscribe(broken)
        subject.subscribe(received.append)

        subject.publish(1)

        assert received == [1]

    def test_listener_may_unsubscribe_while_publishing(self):
        subject = Subject()
        received = []
        subscription = None

        def once(event):
            received.append(event)
            subscription.cancel()

        subscription = subject.subscribe(once)
        subject.publish(1)
        subject.publish(2)

        assert received == [1]


class TestObservable:
    """Test value holders."""

    def test_replays_current_value(self):
        observable = Observable(5)
        received = []

        observable.subscribe(received.append)

        assert received == [5]

    def test_subscribe_without_replay(self):
        observable = Observable(5)
        received = []

        observable.subscribe(received.append, replay=False)
        observable.value = 6

        assert received == [6]

    def test_publishes_only_on_change(self):
        observable = Observable([1, 2])
        received = []
        observable.subscribe(received.append, replay=False)

        observable.value = [1, 2]
        observable.value = [1, 2, 3]

        assert received == [[1, 2, 3]]
        assert observable.value == [1, 2, 3]
