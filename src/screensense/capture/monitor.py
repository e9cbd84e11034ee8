"""Display detection via xrandr and target-display resolution."""

from __future__ import annotations

import asyncio
import re
import zlib

import structlog

from ..models import Bounds, Display

log = structlog.get_logger()

_XRANDR_PATTERN = re.compile(
    r"^(\S+)\s+connected\s+(primary\s+)?(\d+)x(\d+)\+(\d+)\+(\d+)"
)


def parse_xrandr(output: str) -> list[Display]:
    """Parse ``xrandr --query`` output into displays ordered left to right.

    Display ids are stable per output name, so a configured target id keeps
    pointing at the same connector across reconnects.
    """
    displays = []
    for line in output.splitlines():
        m = _XRANDR_PATTERN.match(line)
        if m:
            displays.append(Display(
                id=_display_id(m.group(1)),
                name=m.group(1),
                primary=m.group(2) is not None,
                bounds=Bounds(
                    width=int(m.group(3)),
                    height=int(m.group(4)),
                    x=int(m.group(5)),
                    y=int(m.group(6)),
                ),
            ))

    displays.sort(key=lambda d: d.bounds.x)
    for i, display in enumerate(displays):
        display.index = i
    if displays and not any(d.primary for d in displays):
        displays[0].primary = True
    return displays


def _display_id(name: str) -> int:
    return zlib.crc32(name.encode())


async def detect_displays() -> list[Display]:
    """Detect connected displays using xrandr. Returns [] on failure."""
    try:
        proc = await asyncio.create_subprocess_exec(
            "xrandr", "--query",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.warning("xrandr_unavailable", error=str(e))
        return []
    stdout, stderr = await proc.communicate()

    if proc.returncode != 0:
        log.warning("xrandr_failed", stderr=stderr.decode().strip())
        return []

    displays = parse_xrandr(stdout.decode())
    log.debug("displays_detected", count=len(displays), displays=[
        f"{d.name}:{d.bounds.width}x{d.bounds.height}+{d.bounds.x}+{d.bounds.y}" for d in displays
    ])
    return displays


def primary_display(displays: list[Display]) -> Display | None:
    for display in displays:
        if display.primary:
            return display
    return displays[0] if displays else None


def resolve_display(displays: list[Display], target_id: int | None) -> Display | None:
    """Pick the capture target: the configured display, else the primary one."""
    primary = primary_display(displays)
    if target_id is None:
        return primary
    for display in displays:
        if display.id == target_id:
            return display
    log.warning(
        "target_display_not_found, using primary",
        configured_id=target_id,
        primary_id=primary.id if primary else None,
    )
    return primary
