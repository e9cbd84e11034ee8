"""Tesseract OCR wrapper."""

from __future__ import annotations

import asyncio
import io
import os

import pytesseract
import structlog
from PIL import Image

from ..config import OCRConfig
from ..models import Bounds, OCRLine

log = structlog.get_logger()

# Limit Tesseract's internal OpenMP threads
os.environ.setdefault("OMP_THREAD_LIMIT", "1")

_OCR_MAX_WIDTH = 2000


def _prepare_image(image: Image.Image) -> tuple[Image.Image, float]:
    """Downscale and convert to grayscale for faster OCR. Returns (image, scale)."""
    scale = 1.0
    if image.width > _OCR_MAX_WIDTH:
        scale = image.width / _OCR_MAX_WIDTH
        image = image.resize(
            (_OCR_MAX_WIDTH, int(image.height / scale)),
            Image.LANCZOS,
        )
    if image.mode != "L":
        image = image.convert("L")
    return image, scale


def group_lines(data: dict, scale: float = 1.0, min_confidence: float = 0.0) -> list[OCRLine]:
    """Group pytesseract ``image_to_data`` words into text lines."""
    lines: dict[tuple[int, int, int], list[int]] = {}
    for i, text in enumerate(data["text"]):
        if not str(text).strip():
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(i)

    result = []
    for key in sorted(lines):
        idxs = lines[key]
        confs = [float(data["conf"][i]) for i in idxs if float(data["conf"][i]) >= 0]
        confidence = sum(confs) / len(confs) if confs else 0.0
        if confidence < min_confidence:
            continue
        left = min(data["left"][i] for i in idxs)
        top = min(data["top"][i] for i in idxs)
        right = max(data["left"][i] + data["width"][i] for i in idxs)
        bottom = max(data["top"][i] + data["height"][i] for i in idxs)
        result.append(OCRLine(
            text=" ".join(str(data["text"][i]).strip() for i in idxs),
            confidence=confidence,
            bounds=Bounds(
                x=int(left * scale),
                y=int(top * scale),
                width=int((right - left) * scale),
                height=int((bottom - top) * scale),
            ),
        ))
    return result


class OCREngine:
    def __init__(self, config: OCRConfig | None = None) -> None:
        self.config = config or OCRConfig()

    def recognize_sync(self, image_data: bytes) -> list[OCRLine]:
        """Run Tesseract on encoded image bytes. Never raises; [] on failure."""
        try:
            image = Image.open(io.BytesIO(image_data))
            image.load()
            prepared, scale = _prepare_image(image)
            data = pytesseract.image_to_data(
                prepared,
                lang=self.config.languages,
                config=f"--psm {self.config.psm}",
                output_type=pytesseract.Output.DICT,
            )
            return group_lines(data, scale, self.config.min_confidence)
        except Exception as e:
            log.warning("ocr_error", error=str(e))
            return []

    async def recognize(self, image_data: bytes) -> list[OCRLine]:
        """Async wrapper for OCR (runs in thread pool)."""
        return await asyncio.to_thread(self.recognize_sync, image_data)
