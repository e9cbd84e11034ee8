"""Screen capture via an external screenshot tool + Pillow crop/encode."""

from __future__ import annotations

import asyncio
import io
import tempfile
from pathlib import Path
from typing import Protocol

import structlog
from PIL import Image

from ..models import Bounds, CaptureFormat, Display
from .monitor import detect_displays

log = structlog.get_logger()

# Command line per supported tool; "{path}" is replaced by the output file.
_TOOL_ARGS: dict[str, list[str]] = {
    "spectacle": ["--background", "--nonotify", "--fullscreen", "--output", "{path}"],
    "grim": ["{path}"],
    "scrot": ["--overwrite", "{path}"],
    "gnome-screenshot": ["-f", "{path}"],
    "screencapture": ["-x", "{path}"],
}

# Used when no display layout can be detected: the whole screenshot.
FULL_SCREEN = Display(id=0, name="screen", bounds=Bounds(), primary=True)


class ScreenGrabber(Protocol):
    async def displays(self) -> list[Display]:
        ...

    async def capture(self, bounds: Bounds, fmt: CaptureFormat, quality: int) -> bytes | None:
        ...


def encode_image(image: Image.Image, fmt: CaptureFormat, quality: int = 80) -> bytes:
    """Encode a PIL image as PNG (lossless), JPEG or WebP (lossy)."""
    buf = io.BytesIO()
    if fmt is CaptureFormat.PNG:
        image.save(buf, "PNG", optimize=True)
    elif fmt is CaptureFormat.JPEG:
        image.convert("RGB").save(buf, "JPEG", quality=quality)
    else:
        image.save(buf, "WEBP", quality=quality)
    return buf.getvalue()


def crop_to(image: Image.Image, bounds: Bounds) -> Image.Image:
    """Crop a full-desktop screenshot to one display. Empty bounds keep it whole."""
    if bounds.width <= 0 or bounds.height <= 0:
        return image
    return image.crop(bounds.box)


async def _gui_running(tool: str) -> bool:
    """Check if the user has the tool's GUI open (not our background call)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "pgrep", "-x", tool,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await proc.communicate()
        return proc.returncode == 0
    except OSError:
        return False


async def take_screenshot(tool: str) -> Image.Image | None:
    """Take a fullscreen screenshot with ``tool``. Returns PIL Image or None on failure."""
    if tool == "spectacle" and await _gui_running(tool):
        log.debug("screenshot_skipped_spectacle_gui")
        return None

    with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as tmp:
        tmp_path = tmp.name

    args = [a.replace("{path}", tmp_path) for a in _TOOL_ARGS.get(tool, ["{path}"])]
    try:
        proc = await asyncio.create_subprocess_exec(
            tool, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()

        if proc.returncode != 0:
            log.warning("screenshot_failed", tool=tool, returncode=proc.returncode, stderr=stderr.decode())
            return None

        # Some tools leave an empty file when interrupted
        tmp = Path(tmp_path)
        if not tmp.exists() or tmp.stat().st_size == 0:
            log.warning("screenshot_empty", path=tmp_path)
            return None

        img = Image.open(tmp_path)
        img.load()
        return img
    except Exception as e:
        log.warning("screenshot_error", tool=tool, error=str(e))
        return None
    finally:
        Path(tmp_path).unlink(missing_ok=True)


class ToolScreenGrabber:
    """ScreenGrabber backed by a screenshot CLI tool and xrandr."""

    def __init__(self, tool: str = "spectacle") -> None:
        self.tool = tool

    async def displays(self) -> list[Display]:
        displays = await detect_displays()
        return displays or [FULL_SCREEN]

    async def capture(self, bounds: Bounds, fmt: CaptureFormat, quality: int) -> bytes | None:
        image = await take_screenshot(self.tool)
        if image is None:
            return None
        cropped = crop_to(image, bounds)
        return await asyncio.to_thread(encode_image, cropped, fmt, quality)
