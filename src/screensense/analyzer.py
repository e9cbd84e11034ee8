"""Continuous screen capture and analysis.

The capture loop is a chain of deferred callbacks on the running asyncio loop:
each cycle is scheduled with ``call_later`` only after the previous one has
fully settled, so captures and analysis calls never overlap.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque

import structlog

from .capture.monitor import resolve_display
from .capture.screenshot import ScreenGrabber
from .config import Config
from .detection.detector import AppDetector
from .events import (
    AnalysisCompleted,
    AnalysisStarted,
    AppChanged,
    CaptureCompleted,
    ContextUpdated,
    EventChannel,
    IssueDetected,
    Listener,
    SuggestionCreated,
    VisionEvent,
)
from .limits import Clock, Cooldown, SlidingWindowRateLimiter
from .models import (
    ApplicationContext,
    Display,
    OCRLine,
    ScreenAnalysisResult,
    ScreenCapture,
)
from .processing.ocr import OCREngine
from .processing.parser import (
    EMPTY_PAYLOAD,
    FAILED_PAYLOAD,
    AnalysisPayload,
    parse_analysis_response,
)
from .processing.prompts import SYSTEM_PROMPT, build_analysis_prompt
from .processing.service import AnalysisService

log = structlog.get_logger()

NO_SCREEN_CONTEXT = "No screen context available."


def build_context_summary(app: ApplicationContext | None, scene_description: str) -> str:
    parts = []
    if app is not None:
        parts.append(f'Using {app.name}: "{app.window_title}"')
    if scene_description:
        parts.append(scene_description)
    return ". ".join(parts) or "No context available"


class ScreenAnalyzer:
    def __init__(
        self,
        config: Config,
        app_detector: AppDetector,
        grabber: ScreenGrabber,
        ocr: OCREngine | None = None,
        service: AnalysisService | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config
        self.app_detector = app_detector
        self.grabber = grabber
        self.ocr = ocr
        self.service = service
        self.events = EventChannel()

        self._running = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._cycle_task: asyncio.Task | None = None
        self._target_display_id = config.capture.target_display_id
        self._last_capture: ScreenCapture | None = None
        self._history: deque[ScreenAnalysisResult] = deque(maxlen=config.context.history_size)
        self._rate_limiter = SlidingWindowRateLimiter(config.capture.max_per_minute, clock=clock)
        self._cooldown = Cooldown(config.suggestions.cooldown_ms / 1000, clock=clock)
        self._excluded = {name.lower() for name in config.capture.excluded_apps}
        self._capture_count = 0
        self._skip_count = 0

    # --- lifecycle ---

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the capture loop on the running event loop. No-op if running."""
        if self._running:
            log.warning("analyzer_already_running")
            return
        self._loop = asyncio.get_running_loop()
        self._running = True
        self.app_detector.on_change(self._forward_app_change)
        log.info(
            "analyzer_started",
            interval_ms=self.config.capture.interval_ms,
            max_per_minute=self.config.capture.max_per_minute,
        )
        if self._cycle_task is not None and not self._cycle_task.done():
            # The in-flight cycle reschedules itself once it settles
            log.debug("analyzer_resumed_during_cycle")
            return
        self._run_cycle()

    def stop(self) -> None:
        """Cancel the pending cycle and detach all listeners.

        A cycle already in flight runs to completion but is not rescheduled.
        """
        if not self._running:
            return
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.app_detector.remove_listener(self._forward_app_change)
        self.events.clear()
        log.info("analyzer_stopped", captured=self._capture_count, skipped=self._skip_count)

    async def join(self) -> None:
        """Wait for the in-flight cycle, if any, to settle."""
        task = self._cycle_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    def _run_cycle(self) -> None:
        self._timer = None
        if not self._running or self._loop is None:
            return
        self._cycle_task = self._loop.create_task(self._capture_loop())

    def _schedule_next(self) -> None:
        if not self._running or self._loop is None or self._timer is not None:
            return
        self._timer = self._loop.call_later(self.config.capture.interval, self._run_cycle)

    async def _capture_loop(self) -> None:
        try:
            if not self._rate_limiter.try_acquire():
                self._skip_count += 1
                log.debug("rate_limit_reached, skipping capture", in_window=self._rate_limiter.in_window)
                return
            await self.capture_and_analyze()
        except Exception as e:
            log.error("capture_loop_error", error=str(e))
        finally:
            self._schedule_next()

    # --- events ---

    def subscribe(self, listener: Listener, kinds=None) -> None:
        self.events.subscribe(listener, kinds)

    def unsubscribe(self, listener: Listener) -> None:
        self.events.unsubscribe(listener)

    def _emit(self, event: VisionEvent) -> None:
        self.events.emit(event)

    def _forward_app_change(self, app: ApplicationContext) -> None:
        self._emit(AppChanged(app))

    # --- capture + analysis ---

    async def capture_and_analyze(self) -> ScreenAnalysisResult | None:
        """Capture and analyze the screen once. Returns None if nothing was captured."""
        try:
            app = await self.app_detector.check_for_app_change()
            if self.is_excluded(app):
                log.debug("capture_skipped_excluded_app", app=app.name)
                return None

            capture = await self._capture_screen()
            if capture is None:
                return None
            self._capture_count += 1
            self._emit(CaptureCompleted(capture))

            result = await self._analyze_capture(capture, app)
            self._record(result)
            return result
        except Exception as e:
            log.error("capture_and_analyze_failed", error=str(e))
            return None

    def is_excluded(self, app: ApplicationContext | None) -> bool:
        return app is not None and app.name.lower() in self._excluded

    async def _capture_screen(self) -> ScreenCapture | None:
        display = await self.get_target_display()
        if display is None:
            log.warning("no_displays_available")
            return None

        fmt = self.config.capture.capture_format
        quality = self.config.capture.quality
        try:
            data = await self.grabber.capture(display.bounds, fmt, quality)
        except Exception as e:
            log.warning("screen_capture_failed", error=str(e))
            return None
        if not data:
            log.warning("no_screen_sources_available", display=display.id)
            return None

        capture = ScreenCapture(
            display_id=display.id,
            bounds=display.bounds,
            image_data=data,
            format=fmt,
            quality=quality,
        )
        self._last_capture = capture
        return capture

    async def _analyze_capture(
        self, capture: ScreenCapture, app: ApplicationContext | None
    ) -> ScreenAnalysisResult:
        self._emit(AnalysisStarted(capture.id))

        windows, ocr_lines = await asyncio.gather(
            self.app_detector.get_visible_windows(),
            self._run_ocr(capture),
        )
        payload = await self._run_analysis(capture, app, ocr_lines)

        return ScreenAnalysisResult(
            capture_id=capture.id,
            active_app=app,
            visible_windows=tuple(windows),
            ocr_lines=tuple(ocr_lines),
            scene_description=payload.scene_description,
            detected_issues=payload.issues,
            suggestions=payload.suggestions,
            entities=payload.entities,
            context_summary=build_context_summary(app, payload.scene_description),
        )

    async def _run_ocr(self, capture: ScreenCapture) -> list[OCRLine]:
        if not self.config.analysis.enable_ocr or self.ocr is None:
            return []
        try:
            return await self.ocr.recognize(capture.image_data)
        except Exception as e:
            log.warning("ocr_failed", error=str(e))
            return []

    async def _run_analysis(
        self,
        capture: ScreenCapture,
        app: ApplicationContext | None,
        ocr_lines: list[OCRLine],
    ) -> AnalysisPayload:
        cfg = self.config.analysis
        if not cfg.enable_llm or self.service is None:
            return EMPTY_PAYLOAD

        prompt = build_analysis_prompt(capture, app, ocr_lines)
        image = (capture.image_data, capture.mime_type) if cfg.attach_image else None
        try:
            content = await asyncio.wait_for(
                self.service.complete(
                    prompt,
                    SYSTEM_PROMPT,
                    temperature=cfg.temperature,
                    max_tokens=cfg.max_tokens,
                    image=image,
                ),
                timeout=cfg.timeout,
            )
        except asyncio.TimeoutError:
            log.warning("analysis_timeout", timeout_ms=cfg.timeout_ms, capture_id=capture.id)
            return FAILED_PAYLOAD
        except Exception as e:
            log.warning("analysis_failed", error=str(e)[:200], capture_id=capture.id)
            return FAILED_PAYLOAD
        return parse_analysis_response(content)

    def _record(self, result: ScreenAnalysisResult) -> None:
        self._history.appendleft(result)

        self._emit(AnalysisCompleted(result))
        self._emit(ContextUpdated(result))
        for issue in result.detected_issues:
            self._emit(IssueDetected(issue))

        if not self.config.suggestions.enabled:
            return
        # Cooldown is keyed by suggestion type, not content
        for suggestion in result.suggestions:
            if self._cooldown.try_fire(suggestion.type):
                self._emit(SuggestionCreated(suggestion))
            else:
                log.debug("suggestion_suppressed_cooldown", type=suggestion.type.value)

    # --- queries ---

    @property
    def last_capture(self) -> ScreenCapture | None:
        return self._last_capture

    def get_current_context(self) -> ScreenAnalysisResult | None:
        return self._history[0] if self._history else None

    def get_history(self) -> list[ScreenAnalysisResult]:
        """Analysis history, most recent first."""
        return list(self._history)

    def get_context_summary(self) -> str:
        current = self.get_current_context()
        if current is None:
            return NO_SCREEN_CONTEXT

        parts = []
        if current.active_app is not None:
            parts.append(f'Active app: {current.active_app.name} - "{current.active_app.window_title}"')
        if current.scene_description:
            parts.append(f"Scene: {current.scene_description}")
        if current.detected_issues:
            issues = "\n".join(
                f"- {i.severity.value}: {i.title}" for i in current.detected_issues[:3]
            )
            parts.append(f"Detected issues:\n{issues}")
        return "\n\n".join(parts) or NO_SCREEN_CONTEXT

    # --- displays ---

    async def get_available_displays(self) -> list[Display]:
        try:
            return await self.grabber.displays()
        except Exception as e:
            log.warning("display_enumeration_failed", error=str(e))
            return []

    def set_target_display(self, display_id: int | None) -> None:
        self._target_display_id = display_id
        log.info("target_display_updated", display_id=display_id if display_id is not None else "primary")

    async def get_target_display(self) -> Display | None:
        """The configured display, falling back to the primary one."""
        displays = await self.get_available_displays()
        return resolve_display(displays, self._target_display_id)
