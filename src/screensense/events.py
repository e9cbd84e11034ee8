"""Typed vision events and the channel that fans them out to listeners."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, ClassVar, Iterable

import structlog

from .models import (
    ApplicationContext,
    DetectedIssue,
    ProactiveSuggestion,
    ScreenAnalysisResult,
    ScreenCapture,
)

log = structlog.get_logger()


@dataclass(frozen=True)
class CaptureCompleted:
    kind: ClassVar[str] = "capture:completed"
    capture: ScreenCapture


@dataclass(frozen=True)
class AnalysisStarted:
    kind: ClassVar[str] = "analysis:started"
    capture_id: str


@dataclass(frozen=True)
class AnalysisCompleted:
    kind: ClassVar[str] = "analysis:completed"
    result: ScreenAnalysisResult


@dataclass(frozen=True)
class IssueDetected:
    kind: ClassVar[str] = "issue:detected"
    issue: DetectedIssue


@dataclass(frozen=True)
class SuggestionCreated:
    kind: ClassVar[str] = "suggestion:created"
    suggestion: ProactiveSuggestion


@dataclass(frozen=True)
class AppChanged:
    kind: ClassVar[str] = "app:changed"
    app: ApplicationContext


@dataclass(frozen=True)
class ContextUpdated:
    kind: ClassVar[str] = "context:updated"
    result: ScreenAnalysisResult


VisionEvent = (
    CaptureCompleted
    | AnalysisStarted
    | AnalysisCompleted
    | IssueDetected
    | SuggestionCreated
    | AppChanged
    | ContextUpdated
)

EVENT_TYPES: tuple[type, ...] = (
    CaptureCompleted,
    AnalysisStarted,
    AnalysisCompleted,
    IssueDetected,
    SuggestionCreated,
    AppChanged,
    ContextUpdated,
)

Listener = Callable[[VisionEvent], None]


class EventChannel:
    """Synchronous fan-out of VisionEvents, optionally filtered by event type."""

    def __init__(self) -> None:
        self._listeners: list[tuple[Listener, frozenset[type] | None]] = []

    def subscribe(self, listener: Listener, kinds: Iterable[type] | None = None) -> None:
        wanted = frozenset(kinds) if kinds is not None else None
        if wanted is not None and not wanted <= set(EVENT_TYPES):
            raise ValueError(f"unknown event types: {sorted(t.__name__ for t in wanted)}")
        self._listeners.append((listener, wanted))

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners = [(l, k) for l, k in self._listeners if l != listener]

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

    def emit(self, event: VisionEvent) -> None:
        for listener, kinds in list(self._listeners):
            if kinds is not None and type(event) not in kinds:
                continue
            try:
                listener(event)
            except Exception as e:
                log.warning("event_listener_failed", kind=event.kind, error=str(e))
