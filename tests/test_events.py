"""Tests for the typed event channel."""

import pytest

from screensense.events import (
    EVENT_TYPES,
    AnalysisStarted,
    AppChanged,
    EventChannel,
    IssueDetected,
)
from screensense.models import ApplicationContext, DetectedIssue, IssueType, Severity


def _issue():
    return IssueDetected(DetectedIssue(type=IssueType.OTHER, severity=Severity.INFO, title="t"))


def test_every_event_has_a_distinct_kind():
    kinds = [cls.kind for cls in EVENT_TYPES]
    assert len(set(kinds)) == len(kinds) == 7
    assert AnalysisStarted("c1").kind == "analysis:started"


def test_unfiltered_listener_gets_everything(recorder):
    channel = EventChannel()
    channel.subscribe(recorder)
    channel.emit(AnalysisStarted("c1"))
    channel.emit(_issue())
    assert recorder.kinds == ["AnalysisStarted", "IssueDetected"]


def test_filtered_listener(recorder):
    channel = EventChannel()
    channel.subscribe(recorder, kinds=[AppChanged])
    channel.emit(AnalysisStarted("c1"))
    channel.emit(AppChanged(ApplicationContext(name="code")))
    assert recorder.kinds == ["AppChanged"]


def test_unknown_event_type_rejected():
    with pytest.raises(ValueError):
        EventChannel().subscribe(print, kinds=[str])


def test_raising_listener_does_not_stop_fan_out(recorder):
    channel = EventChannel()

    def broken(event):
        raise RuntimeError("boom")

    channel.subscribe(broken)
    channel.subscribe(recorder)
    channel.emit(AnalysisStarted("c1"))
    assert len(recorder.events) == 1


def test_unsubscribe_bound_method(recorder):
    channel = EventChannel()
    channel.subscribe(recorder.__call__)
    channel.unsubscribe(recorder.__call__)
    assert len(channel) == 0


def test_clear(recorder):
    channel = EventChannel()
    channel.subscribe(recorder)
    channel.clear()
    channel.emit(AnalysisStarted("c1"))
    assert recorder.events == []


def test_events_are_immutable():
    event = AnalysisStarted("c1")
    with pytest.raises(AttributeError):
        event.capture_id = "c2"
