"""
Shared pytest fixtures for the ScreenSense test suite.

Provides in-memory stand-ins for the window probe, screen grabber, OCR engine
and analysis service so the analyzer runs without a display, Tesseract or a
model endpoint, plus a manual clock for rate-limit and cooldown tests.
"""

import asyncio
import json

import pytest

from screensense.analyzer import ScreenAnalyzer
from screensense.capture.active_window import ProbeResult, WindowProbe
from screensense.config import Config
from screensense.detection.detector import AppDetector
from screensense.models import Bounds, Display, OCRLine, WindowInfo


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProbe(WindowProbe):
    platform = "test"

    def __init__(self, active=None, windows=None):
        self.active = active
        self.windows = windows or []
        self.error: Exception | None = None
        self.calls = 0

    def show(self, process_name: str, title: str = "", pid: int = 100, executable=None) -> None:
        self.active = ProbeResult(title=title, pid=pid, process_name=process_name, executable=executable)

    async def active_window(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.active

    async def visible_windows(self):
        return list(self.windows)


class FakeGrabber:
    def __init__(self, displays=None, data: bytes | None = b"\xff\xd8fake-jpeg"):
        self._displays = displays if displays is not None else [
            Display(id=1, name="DP-1", bounds=Bounds(0, 0, 1920, 1080), primary=True, index=0),
            Display(id=2, name="HDMI-1", bounds=Bounds(1920, 0, 2560, 1440), index=1),
        ]
        self.data = data
        self.captured: list[Bounds] = []

    async def displays(self):
        return list(self._displays)

    async def capture(self, bounds, fmt, quality):
        self.captured.append(bounds)
        return self.data


class FakeOCR:
    def __init__(self, lines=None):
        self.lines = lines if lines is not None else [OCRLine(text="Traceback (most recent call last):", confidence=91.0)]
        self.calls = 0

    async def recognize(self, image_data: bytes):
        self.calls += 1
        return list(self.lines)


class FakeService:
    """Analysis service returning canned replies, optionally after a delay."""

    def __init__(self, reply: str = "{}", delay: float = 0.0):
        self.reply = reply
        self.delay = delay
        self.prompts: list[str] = []
        self.images: list = []

    async def complete(self, prompt, system_prompt, *, temperature, max_tokens, image=None):
        self.prompts.append(prompt)
        self.images.append(image)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.reply


def analysis_reply(scene="Editing Python code", issues=(), suggestions=(), entities=()) -> str:
    return json.dumps({
        "sceneDescription": scene,
        "issues": list(issues),
        "suggestions": list(suggestions),
        "entities": list(entities),
    })


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def probe():
    p = FakeProbe(windows=[WindowInfo(id="0x1", title="main.py - app - Visual Studio Code", app_name="code", is_active=True)])
    p.show("code", "main.py - app - Visual Studio Code", executable="/usr/share/code/code")
    return p


@pytest.fixture
def detector(probe):
    return AppDetector(probe)


@pytest.fixture
def grabber():
    return FakeGrabber()


@pytest.fixture
def ocr():
    return FakeOCR()


@pytest.fixture
def service():
    return FakeService(analysis_reply())


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def make_analyzer(config, detector, grabber, ocr, service, clock):
    """Build a ScreenAnalyzer over the fakes; keyword overrides win."""

    def _make(**overrides) -> ScreenAnalyzer:
        kwargs = dict(
            config=config,
            app_detector=detector,
            grabber=grabber,
            ocr=ocr,
            service=service,
            clock=clock,
        )
        kwargs.update(overrides)
        return ScreenAnalyzer(**kwargs)

    return _make


@pytest.fixture
def recorder():
    """Listener that records every event it receives."""

    class Recorder:
        def __init__(self):
            self.events = []

        def __call__(self, event):
            self.events.append(event)

        @property
        def kinds(self):
            return [type(e).__name__ for e in self.events]

        def of(self, cls):
            return [e for e in self.events if isinstance(e, cls)]

    return Recorder()
