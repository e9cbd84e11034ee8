"""Parse analysis-service replies into issues, suggestions and entities.

The reply is expected to embed one JSON object. Parsing is tolerant: unknown
enum values map to a default, malformed list items are dropped, and a reply
without a usable object becomes a plain scene description.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

import structlog

from ..models import (
    DetectedIssue,
    EntityType,
    ExtractedEntity,
    IssueType,
    Priority,
    ProactiveSuggestion,
    Severity,
    SuggestedFix,
    SuggestionAction,
    SuggestionType,
)

log = structlog.get_logger()

FALLBACK_DESCRIPTION_CHARS = 200
ANALYSIS_FAILED = "Analysis failed"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class AnalysisPayload:
    scene_description: str = ""
    issues: tuple[DetectedIssue, ...] = ()
    suggestions: tuple[ProactiveSuggestion, ...] = ()
    entities: tuple[ExtractedEntity, ...] = ()


EMPTY_PAYLOAD = AnalysisPayload()
FAILED_PAYLOAD = AnalysisPayload(scene_description=ANALYSIS_FAILED)


def _coerce(enum_cls: type[E], value: object, default: E) -> E:
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    return default


def _text(value: object, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip() or default
    return str(value)


def _confidence(value: object, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and 0.0 <= value <= 1.0:
        return float(value)
    return default


def extract_json_object(content: str) -> dict | None:
    """Return the JSON object embedded in ``content``, or None."""
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    match = _JSON_OBJECT.search(content)
    if match:
        try:
            data = json.loads(match.group())
        except json.JSONDecodeError:
            return None
        if isinstance(data, dict):
            return data
    return None


def _parse_fix(value: object) -> SuggestedFix | None:
    if isinstance(value, str) and value.strip():
        return SuggestedFix(description=value.strip())
    if isinstance(value, dict) and _text(value.get("description")):
        return SuggestedFix(
            description=_text(value.get("description")),
            automated=bool(value.get("automated", False)),
            confidence=_confidence(value.get("confidence"), 0.7),
        )
    return None


def _parse_issue(item: dict) -> DetectedIssue:
    return DetectedIssue(
        type=_coerce(IssueType, item.get("type"), IssueType.OTHER),
        severity=_coerce(Severity, item.get("severity"), Severity.INFO),
        title=_text(item.get("title"), "Unknown issue"),
        description=_text(item.get("description")),
        suggested_fix=_parse_fix(item.get("suggestedFix")),
        confidence=_confidence(item.get("confidence"), 0.8),
    )


def _parse_suggestion(item: dict, scene: str) -> ProactiveSuggestion:
    action = _text(item.get("action"))
    return ProactiveSuggestion(
        type=_coerce(SuggestionType, item.get("type"), SuggestionType.OTHER),
        priority=_coerce(Priority, item.get("priority"), Priority.MEDIUM),
        title=_text(item.get("title"), "Suggestion"),
        description=_text(item.get("description")),
        actions=[SuggestionAction(label=action or "Apply", payload=action or None)],
        context=scene,
    )


def _parse_entity(item: dict) -> ExtractedEntity | None:
    value = _text(item.get("value"))
    if not value:
        return None
    return ExtractedEntity(
        type=_coerce(EntityType, item.get("type"), EntityType.OTHER),
        value=value,
        confidence=_confidence(item.get("confidence"), 0.8),
    )


def _items(data: dict, key: str) -> list[dict]:
    value = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def fallback_payload(content: str) -> AnalysisPayload:
    return AnalysisPayload(scene_description=content.strip()[:FALLBACK_DESCRIPTION_CHARS])


def parse_analysis_response(content: str) -> AnalysisPayload:
    """Parse a reply; falls back to the truncated raw text as scene description."""
    data = extract_json_object(content)
    if data is None:
        log.warning("analysis_parse_failed", content=content[:200])
        return fallback_payload(content)

    scene = _text(data.get("sceneDescription"))
    entities = (_parse_entity(item) for item in _items(data, "entities"))
    return AnalysisPayload(
        scene_description=scene,
        issues=tuple(_parse_issue(item) for item in _items(data, "issues")),
        suggestions=tuple(_parse_suggestion(item, scene) for item in _items(data, "suggestions")),
        entities=tuple(e for e in entities if e is not None),
    )
