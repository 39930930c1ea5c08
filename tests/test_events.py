"""Tests for event classification and the restart channel."""
from __future__ import annotations

import signal
import threading

from nightwatch.core.channel import RestartChannel
from nightwatch.core.events import EventKind, RestartSignal, WatchEvent, classify


def test_modification_restarts_with_sigterm():
    result = classify(WatchEvent("/a/b.txt", EventKind.MODIFIED))

    assert result.restart
    assert result.signal == RestartSignal(signal.SIGTERM)
    assert not result.unsubscribe


def test_creation_only_restarts_when_tracking_directories():
    event = WatchEvent("/a/new.txt", EventKind.CREATED)

    assert not classify(event, track_directories=False).restart
    assert classify(event, track_directories=True).restart


def test_removal_unsubscribes_and_restarts():
    result = classify(WatchEvent("/a/b.txt", EventKind.REMOVED))

    assert result.restart
    assert result.unsubscribe


def test_other_events_are_ignored():
    result = classify(WatchEvent("/a", EventKind.OTHER, is_directory=True), track_directories=True)

    assert not result.restart
    assert not result.unsubscribe


def test_channel_coalesces_bursts():
    channel = RestartChannel()

    accepted = [channel.offer(RestartSignal()) for _ in range(5)]

    assert accepted == [True, False, False, False, False]
    assert channel.get(timeout=0) == RestartSignal()
    assert channel.get(timeout=0) is None


def test_channel_put_replaces_pending_signal():
    channel = RestartChannel()
    channel.offer(RestartSignal(signal.SIGTERM))

    channel.put(RestartSignal(signal.SIGINT))

    assert channel.get(timeout=0) == RestartSignal(signal.SIGINT)


def test_channel_get_wakes_up_on_offer():
    channel = RestartChannel()
    received = []

    reader = threading.Thread(target=lambda: received.append(channel.get(timeout=5)))
    reader.start()
    channel.offer(RestartSignal())
    reader.join(5)

    assert received == [RestartSignal()]


def test_channel_clear_empties_slot():
    channel = RestartChannel()
    channel.offer(RestartSignal())

    assert channel.clear() == RestartSignal()
    assert not channel.pending
