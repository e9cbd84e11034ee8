"""Active application detection and change tracking."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable

import structlog

from ..capture.active_window import WindowProbe, default_probe
from ..models import AppMetadata, ApplicationContext, WindowInfo
from .patterns import classify_app
from .titles import parse_title

log = structlog.get_logger()

AppChangeListener = Callable[[ApplicationContext], None]


class AppDetector:
    """Queries the foreground window through a platform probe and classifies it."""

    def __init__(self, probe: WindowProbe | None = None) -> None:
        self.probe = probe or default_probe()
        self._last_app: ApplicationContext | None = None
        self._has_baseline = False
        self._listeners: list[AppChangeListener] = []

    @property
    def last_app(self) -> ApplicationContext | None:
        return self._last_app

    async def get_active_app(self) -> ApplicationContext | None:
        """Detect the foreground app. Returns None when detection fails."""
        try:
            result = await self.probe.active_window()
        except Exception as e:
            log.warning("active_app_probe_failed", platform=self.probe.platform, error=str(e))
            return None
        if result is None or not result.process_name:
            log.debug("active_app_unavailable", platform=self.probe.platform)
            return None

        app_type = classify_app(result.process_name, result.executable)
        app = ApplicationContext(
            name=result.process_name,
            window_title=result.title,
            pid=result.pid,
            app_type=app_type,
            executable=result.executable,
        )
        return replace(app, metadata=self.extract_app_metadata(app))

    async def get_visible_windows(self) -> list[WindowInfo]:
        try:
            return await self.probe.visible_windows()
        except Exception as e:
            log.warning("visible_windows_probe_failed", platform=self.probe.platform, error=str(e))
            return []

    def extract_app_metadata(self, app: ApplicationContext) -> AppMetadata:
        """Type-specific metadata parsed from the window title."""
        return parse_title(app.app_type, app.window_title)

    async def check_for_app_change(self) -> ApplicationContext | None:
        """Detect the active app and notify listeners if (name, title) changed.

        The first call only records a baseline. The remembered app is replaced
        on every call, including with None: repeated failed detections never
        signal a change, and the first successful detection after a failure
        always does.
        """
        current = await self.get_active_app()
        previous = self._last_app
        first = not self._has_baseline
        self._last_app = current
        self._has_baseline = True

        if first or current is None or current.same_window(previous):
            return current
        log.info(
            "app_changed",
            app=current.name,
            title=current.window_title,
            app_type=current.app_type.value,
        )
        self._notify(current)
        return current

    def on_change(self, listener: AppChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AppChangeListener) -> None:
        self._listeners = [l for l in self._listeners if l != listener]

    def _notify(self, app: ApplicationContext) -> None:
        for listener in list(self._listeners):
            try:
                listener(app)
            except Exception as e:
                log.warning("app_change_listener_failed", error=str(e))
