"""Conversational context aggregation.

Folds the latest analysis result and active app into a ConversationContext
snapshot and renders it as a natural-language summary for the agent.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

import structlog

from .config import ContextConfig
from .events import AppChanged, ContextUpdated, SuggestionCreated, VisionEvent
from .models import (
    ApplicationContext,
    BrowserMetadata,
    ConversationContext,
    EntityType,
    IDEMetadata,
    OfficeMetadata,
    ProactiveSuggestion,
    ScreenAnalysisResult,
    TerminalMetadata,
)

if TYPE_CHECKING:
    from .analyzer import ScreenAnalyzer

log = structlog.get_logger()

NO_CONTEXT = "No context available."

_FILE_TRIGGERS = re.compile(r"\b(file|files|code)\b", re.IGNORECASE)
_ERROR_TRIGGERS = re.compile(r"\b(error|errors|fix|problem|problems|bug|bugs|issue|issues)\b", re.IGNORECASE)


class RecencyList:
    """Bounded most-recent-first list without duplicates."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._items: list[str] = []

    def add(self, item: str) -> None:
        if not item:
            return
        if item in self._items:
            self._items.remove(item)
        self._items.insert(0, item)
        del self._items[self.max_size:]

    def extend(self, items: Iterable[str]) -> None:
        for item in items:
            self.add(item)

    def clear(self) -> None:
        self._items.clear()

    def snapshot(self) -> tuple[str, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))


def build_app_context(app: ApplicationContext | None) -> str:
    """App-type-specific context fragment."""
    if app is None:
        return ""
    meta = app.metadata
    parts = []
    if isinstance(meta, IDEMetadata):
        if meta.current_file:
            parts.append(f"Editing: {meta.current_file}.")
        if meta.language:
            parts.append(f"Language: {meta.language}.")
        if meta.project:
            parts.append(f"Project: {meta.project}.")
    elif isinstance(meta, BrowserMetadata):
        if meta.page_title:
            parts.append(f"Browsing: {meta.page_title}.")
        if meta.url:
            parts.append(f"URL: {meta.url}.")
    elif isinstance(meta, TerminalMetadata):
        if meta.directory:
            parts.append(f"Terminal in: {meta.directory}.")
        if meta.last_command:
            parts.append(f"Running: {meta.last_command}.")
    elif isinstance(meta, OfficeMetadata):
        if meta.document:
            parts.append(f"Working on: {meta.document}.")
    return " ".join(parts)


class ContextBuilder:
    def __init__(self, config: ContextConfig | None = None) -> None:
        self.config = config or ContextConfig()
        self.recent_apps = RecencyList(self.config.max_recent_apps)
        self.recent_files = RecencyList(self.config.max_recent_files)
        self.recent_urls = RecencyList(self.config.max_recent_urls)
        self._result: ScreenAnalysisResult | None = None
        self._app: ApplicationContext | None = None
        self._suggestions: list[ProactiveSuggestion] = []
        self._context = ConversationContext(summary=NO_CONTEXT)

    @property
    def context(self) -> ConversationContext:
        return self._context

    def attach(self, analyzer: ScreenAnalyzer) -> None:
        """Keep this builder current from an analyzer's event stream.

        Pending suggestions then come from SuggestionCreated events, so
        suggestions the analyzer's cooldown suppressed never show up.
        """
        analyzer.subscribe(self._on_event, kinds=(ContextUpdated, AppChanged, SuggestionCreated))

    def _on_event(self, event: VisionEvent) -> None:
        if isinstance(event, ContextUpdated):
            self.update(result=event.result, suggestions=())
        elif isinstance(event, SuggestionCreated):
            self.add_suggestion(event.suggestion)
        elif isinstance(event, AppChanged):
            self.update(app=event.app)

    def update(
        self,
        result: ScreenAnalysisResult | None = None,
        app: ApplicationContext | None = None,
        suggestions: Iterable[ProactiveSuggestion] | None = None,
    ) -> ConversationContext:
        """Fold in a new result and/or app and rebuild the snapshot.

        A result replaces the pending suggestions with `suggestions`, or with
        the result's own when none are given. A result without an app clears
        the previous one unless `app` is passed.
        """
        if result is not None:
            self._result = result
            self._suggestions = list(result.suggestions if suggestions is None else suggestions)
            if app is None:
                self._app = result.active_app
                app = result.active_app
            for entity in result.entities:
                if entity.type is EntityType.FILE_PATH:
                    self.recent_files.add(entity.value)
                elif entity.type is EntityType.URL:
                    self.recent_urls.add(entity.value)

        if app is not None:
            self._app = app
            self._track_app(app)

        self._context = self._build()
        return self._context

    def add_suggestion(self, suggestion: ProactiveSuggestion) -> ConversationContext:
        self._suggestions.append(suggestion)
        self._context = self._build()
        return self._context

    def _track_app(self, app: ApplicationContext) -> None:
        self.recent_apps.add(app.name)
        meta = app.metadata
        if isinstance(meta, IDEMetadata) and meta.current_file:
            self.recent_files.add(meta.current_file)
        elif isinstance(meta, BrowserMetadata) and meta.url:
            self.recent_urls.add(meta.url)

    def _build(self) -> ConversationContext:
        result = self._result
        app = self._app
        app_context = build_app_context(app)
        scene = result.scene_description if result else ""
        issues = result.detected_issues if result else ()
        summary = self._summary(app, app_context, scene, issues)
        return ConversationContext(
            active_app=app,
            app_context=app_context,
            scene_description=scene,
            visible_text=result.visible_text if result else "",
            active_issues=issues,
            pending_suggestions=tuple(s for s in self._suggestions if s.is_pending()),
            entities=result.entities if result else (),
            recent_apps=self.recent_apps.snapshot(),
            recent_files=self.recent_files.snapshot(),
            recent_urls=self.recent_urls.snapshot(),
            summary=summary,
            updated_at=datetime.now(),
        )

    def _summary(self, app, app_context, scene, issues) -> str:
        parts = []
        if app is not None:
            parts.append(f"User is using {app.name} ({app.app_type.value}): \"{app.window_title}\"")
        if app_context:
            parts.append(app_context)
        if scene:
            parts.append(f"Screen: {scene}")
        if issues:
            lines = "\n".join(f"- [{i.severity.value.upper()}] {i.title}" for i in issues)
            parts.append(f"Active issues:\n{lines}")
        recent = self.recent_files.snapshot()[:5]
        if recent:
            parts.append(f"Recent files: {', '.join(recent)}")
        return "\n".join(parts) or NO_CONTEXT

    def get_summary(self) -> str:
        return self._context.summary

    def get_context_for_query(self, query: str) -> str:
        """Summary plus extra detail for queries mentioning files or errors."""
        ctx = self._context
        parts = [ctx.summary]

        if _FILE_TRIGGERS.search(query):
            files = [e.value for e in ctx.entities if e.type is EntityType.FILE_PATH]
            if files:
                parts.append("Visible files:\n" + "\n".join(f"- {f}" for f in files))

        if _ERROR_TRIGGERS.search(query) and ctx.active_issues:
            details = []
            for issue in ctx.active_issues:
                line = f"- [{issue.severity.value.upper()}] {issue.title}: {issue.description}"
                if issue.suggested_fix is not None:
                    line += f"\n  Suggested fix: {issue.suggested_fix.description}"
                details.append(line)
            parts.append("Error details:\n" + "\n".join(details))

        return "\n\n".join(parts)

    def reset(self) -> None:
        self.recent_apps.clear()
        self.recent_files.clear()
        self.recent_urls.clear()
        self._result = None
        self._app = None
        self._suggestions = []
        self._context = ConversationContext(summary=NO_CONTEXT)
