"""Component graph, built once at startup."""

from __future__ import annotations

from dataclasses import dataclass

from .analyzer import ScreenAnalyzer
from .capture.active_window import WindowProbe, default_probe
from .capture.screenshot import ToolScreenGrabber
from .config import Config
from .context import ContextBuilder
from .detection.detector import AppDetector
from .processing.ocr import OCREngine
from .processing.service import OpenAIAnalysisService


@dataclass
class Components:
    config: Config
    detector: AppDetector
    analyzer: ScreenAnalyzer
    context: ContextBuilder


def build_components(config: Config, probe: WindowProbe | None = None) -> Components:
    detector = AppDetector(probe or default_probe())
    analyzer = ScreenAnalyzer(
        config,
        app_detector=detector,
        grabber=ToolScreenGrabber(config.capture.tool),
        ocr=OCREngine(config.ocr) if config.analysis.enable_ocr else None,
        service=OpenAIAnalysisService(config.analysis) if config.analysis.enable_llm else None,
    )
    context = ContextBuilder(config.context)
    context.attach(analyzer)
    return Components(config=config, detector=detector, analyzer=analyzer, context=context)
