"""Foreground-window probes, one implementation per platform.

Every probe shells out to a platform utility (PowerShell, osascript,
xdotool/wmctrl, or a KWin script on Wayland). All queries are best-effort:
a missing utility, a non-zero exit or unparsable output yields None / [].
"""

from __future__ import annotations

import abc
import asyncio
import json
import os
import shutil
import sys
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path

import structlog

from ..models import Bounds, WindowInfo

log = structlog.get_logger()

_TIMEOUT_S = 2.0


@dataclass(frozen=True)
class ProbeResult:
    title: str
    pid: int
    process_name: str
    executable: str | None = None


async def _run(cmd: list[str], timeout: float = _TIMEOUT_S) -> tuple[int, str, str]:
    """Run a command and return (returncode, stdout, stderr)."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return -1, "", str(e)
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.communicate()
        return -1, "", "timeout"
    return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


class WindowProbe(abc.ABC):
    """Queries the OS for the foreground window and the visible window list."""

    platform: str = ""

    @abc.abstractmethod
    async def active_window(self) -> ProbeResult | None:
        ...

    @abc.abstractmethod
    async def visible_windows(self) -> list[WindowInfo]:
        ...


# --- Windows ---

_PS_ACTIVE = r"""
Add-Type @"
using System;
using System.Runtime.InteropServices;
using System.Text;
public class SSWin {
  [DllImport("user32.dll")] public static extern IntPtr GetForegroundWindow();
  [DllImport("user32.dll")] public static extern int GetWindowText(IntPtr h, StringBuilder s, int n);
  [DllImport("user32.dll")] public static extern uint GetWindowThreadProcessId(IntPtr h, out uint pid);
}
"@
$h = [SSWin]::GetForegroundWindow()
$sb = New-Object System.Text.StringBuilder 1024
[void][SSWin]::GetWindowText($h, $sb, $sb.Capacity)
$procId = 0
[void][SSWin]::GetWindowThreadProcessId($h, [ref]$procId)
$p = Get-Process -Id $procId -ErrorAction SilentlyContinue
@{ title = $sb.ToString(); pid = [int]$procId; name = $p.ProcessName; path = $p.Path } | ConvertTo-Json -Compress
"""

_PS_WINDOWS = (
    "Get-Process | Where-Object { $_.MainWindowTitle } | "
    "Select-Object Id, ProcessName, MainWindowTitle, @{n='Handle';e={[int64]$_.MainWindowHandle}} | "
    "ConvertTo-Json -Compress"
)


class WindowsProbe(WindowProbe):
    platform = "win32"

    async def _powershell(self, script: str) -> str | None:
        rc, out, err = await _run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", script],
            timeout=_TIMEOUT_S * 2,
        )
        if rc != 0 or not out.strip():
            log.debug("powershell_failed", rc=rc, err=err.strip()[:200])
            return None
        return out

    async def active_window(self) -> ProbeResult | None:
        out = await self._powershell(_PS_ACTIVE)
        if out is None:
            return None
        try:
            data = json.loads(out)
        except json.JSONDecodeError:
            log.debug("powershell_json_error", payload=out[:200])
            return None
        name = data.get("name") or ""
        if not name:
            return None
        return ProbeResult(
            title=data.get("title") or "",
            pid=int(data.get("pid") or 0),
            process_name=name,
            executable=data.get("path") or None,
        )

    async def visible_windows(self) -> list[WindowInfo]:
        out = await self._powershell(_PS_WINDOWS)
        if out is None:
            return []
        try:
            data = json.loads(out)
        except json.JSONDecodeError:
            return []
        if isinstance(data, dict):
            data = [data]
        active = await self.active_window()
        windows = []
        for z, item in enumerate(data):
            title = item.get("MainWindowTitle") or ""
            windows.append(WindowInfo(
                id=str(item.get("Handle", "")),
                title=title,
                app_name=item.get("ProcessName") or "",
                is_active=active is not None and active.pid == item.get("Id"),
                z_order=z,
            ))
        return windows


# --- macOS ---

_OSA_ACTIVE = """\
tell application "System Events"
    set frontProc to first application process whose frontmost is true
    set appName to name of frontProc
    set appPid to unix id of frontProc
    set appPath to ""
    try
        set appPath to POSIX path of (application file of frontProc as alias)
    end try
    set winTitle to ""
    try
        set winTitle to name of front window of frontProc
    end try
end tell
return appName & "||" & appPid & "||" & winTitle & "||" & appPath
"""

_OSA_WINDOWS = """\
set out to ""
tell application "System Events"
    set frontName to name of first application process whose frontmost is true
    repeat with p in (application processes whose visible is true)
        set pName to name of p
        repeat with w in windows of p
            try
                set {px, py} to position of w
                set {sw, sh} to size of w
                set isMin to false
                try
                    set isMin to value of attribute "AXMinimized" of w
                end try
                set out to out & pName & "||" & (name of w) & "||" & px & "||" & py & "||" & sw & "||" & sh & "||" & isMin & "||" & (pName is frontName) & linefeed
            end try
        end repeat
    end repeat
end tell
return out
"""


class MacProbe(WindowProbe):
    platform = "darwin"

    async def active_window(self) -> ProbeResult | None:
        rc, out, err = await _run(["osascript", "-e", _OSA_ACTIVE])
        if rc != 0 or "||" not in out:
            log.debug("osascript_failed", rc=rc, err=err.strip()[:200])
            return None
        name, pid, title, path = (out.strip().split("||", 3) + ["", "", ""])[:4]
        if not name:
            return None
        return ProbeResult(
            title=title.strip(),
            pid=int(pid) if pid.strip().isdigit() else 0,
            process_name=name.strip(),
            executable=path.strip() or None,
        )

    async def visible_windows(self) -> list[WindowInfo]:
        rc, out, _ = await _run(["osascript", "-e", _OSA_WINDOWS], timeout=_TIMEOUT_S * 2)
        if rc != 0:
            return []
        windows = []
        for z, line in enumerate(out.strip().splitlines()):
            parts = line.split("||")
            if len(parts) != 8:
                continue
            app_name, title, x, y, w, h, minimized, frontmost = parts
            try:
                bounds = Bounds(int(float(x)), int(float(y)), int(float(w)), int(float(h)))
            except ValueError:
                bounds = Bounds()
            windows.append(WindowInfo(
                id=f"{app_name}:{z}",
                title=title,
                app_name=app_name,
                bounds=bounds,
                is_active=frontmost.strip() == "true",
                is_minimized=minimized.strip() == "true",
                z_order=z,
            ))
        return windows


# --- Linux ---

# KWin script that prints active window info with a unique prefix
_KWIN_SCRIPT_TEMPLATE = """\
(function() {{
    var w = workspace.activeWindow;
    if (w) {{
        print("{prefix}" + JSON.stringify({{
            caption: w.caption || "",
            resourceClass: w.resourceClass || "",
            pid: w.pid || 0
        }}));
    }} else {{
        print("{prefix}null");
    }}
}})();
"""

_DBUS_SERVICE = "org.kde.KWin"
_DBUS_PATH = "/Scripting"
_DBUS_IFACE = "org.kde.kwin.Scripting"


def _proc_details(pid: int) -> tuple[str, str | None]:
    """Process name and executable for ``pid`` from /proc."""
    if pid <= 0:
        return "", None
    name = ""
    exe = None
    try:
        name = Path(f"/proc/{pid}/comm").read_text().strip()
    except OSError:
        pass
    try:
        exe = os.readlink(f"/proc/{pid}/exe")
    except OSError:
        pass
    return name, exe


class LinuxProbe(WindowProbe):
    platform = "linux"

    def __init__(self) -> None:
        self._has_xdotool = shutil.which("xdotool") is not None
        self._has_wmctrl = shutil.which("wmctrl") is not None

    async def active_window(self) -> ProbeResult | None:
        if self._has_xdotool:
            result = await self._xdotool_active()
            if result is not None:
                return result
        return await self._kwin_active()

    async def _xdotool_active(self) -> ProbeResult | None:
        rc, wid, _ = await _run(["xdotool", "getactivewindow"])
        wid = wid.strip()
        if rc != 0 or not wid:
            return None
        (_, title, _), (rc_pid, pid_out, _) = await asyncio.gather(
            _run(["xdotool", "getwindowname", wid]),
            _run(["xdotool", "getwindowpid", wid]),
        )
        pid = int(pid_out.strip()) if rc_pid == 0 and pid_out.strip().isdigit() else 0
        name, exe = _proc_details(pid)
        if not name:
            return None
        return ProbeResult(title=title.strip(), pid=pid, process_name=name, executable=exe)

    async def _kwin_active(self) -> ProbeResult | None:
        """Detect the active window via a temporary KWin script + journalctl."""
        prefix = f"SCREENSENSE_WINDOW:{uuid.uuid4().hex[:12]}:"
        tmp = tempfile.NamedTemporaryFile(suffix=".js", prefix="ss_kwin_", delete=False, mode="w")
        try:
            tmp.write(_KWIN_SCRIPT_TEMPLATE.format(prefix=prefix))
            tmp.close()

            rc, out, err = await _run([
                "gdbus", "call", "--session",
                "--dest", _DBUS_SERVICE,
                "--object-path", _DBUS_PATH,
                "--method", f"{_DBUS_IFACE}.loadScript",
                tmp.name,
            ])
            if rc != 0:
                log.debug("kwin_load_failed", rc=rc, err=err.strip())
                return None

            # "(int32 N,)"
            script_id = out.strip().strip("()").split(",")[0].replace("int32 ", "").strip()
            try:
                rc, _, err = await _run([
                    "gdbus", "call", "--session",
                    "--dest", _DBUS_SERVICE,
                    "--object-path", f"/Scripting/Script{script_id}",
                    "--method", "org.kde.kwin.Script.run",
                ])
                if rc != 0:
                    log.debug("kwin_run_failed", rc=rc, err=err.strip())
                    return None
                await asyncio.sleep(0.05)
                rc, journal_out, _ = await _run([
                    "journalctl", "--user", "--since", "-3s",
                    "--no-pager", "-o", "cat", "--grep", prefix,
                ])
            finally:
                await self._unload_kwin_script(script_id)

            if rc != 0:
                return None
            return self._parse_kwin_output(journal_out, prefix)
        finally:
            Path(tmp.name).unlink(missing_ok=True)

    @staticmethod
    def _parse_kwin_output(output: str, prefix: str) -> ProbeResult | None:
        for line in output.strip().splitlines():
            idx = line.find(prefix)
            if idx == -1:
                continue
            payload = line[idx + len(prefix):].strip()
            if payload == "null":
                return None
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                log.debug("kwin_json_parse_error", payload=payload[:200])
                return None
            pid = int(data.get("pid") or 0)
            name, exe = _proc_details(pid)
            return ProbeResult(
                title=data.get("caption", ""),
                pid=pid,
                process_name=name or data.get("resourceClass", ""),
                executable=exe,
            )
        return None

    async def _unload_kwin_script(self, script_id: str) -> None:
        await _run([
            "gdbus", "call", "--session",
            "--dest", _DBUS_SERVICE,
            "--object-path", f"/Scripting/Script{script_id}",
            "--method", "org.kde.kwin.Script.stop",
        ])
        await _run([
            "gdbus", "call", "--session",
            "--dest", _DBUS_SERVICE,
            "--object-path", _DBUS_PATH,
            "--method", f"{_DBUS_IFACE}.unloadScript",
            script_id,
        ])

    async def visible_windows(self) -> list[WindowInfo]:
        if not self._has_wmctrl:
            return []
        rc, out, _ = await _run(["wmctrl", "-lpG"])
        if rc != 0:
            return []
        active_id = None
        if self._has_xdotool:
            rc_a, wid, _ = await _run(["xdotool", "getactivewindow"])
            if rc_a == 0 and wid.strip().isdigit():
                active_id = int(wid.strip())
        return parse_wmctrl(out, active_id)


def parse_wmctrl(output: str, active_id: int | None = None) -> list[WindowInfo]:
    """Parse ``wmctrl -lpG`` output: id desktop pid x y w h host title."""
    windows = []
    for z, line in enumerate(output.splitlines()):
        parts = line.split(None, 8)
        if len(parts) < 8:
            continue
        wid, _desktop, pid, x, y, w, h, _host = parts[:8]
        title = parts[8] if len(parts) == 9 else ""
        try:
            pid_int = int(pid)
            bounds = Bounds(int(x), int(y), int(w), int(h))
            numeric_id = int(wid, 16)
        except ValueError:
            continue
        name, _ = _proc_details(pid_int)
        windows.append(WindowInfo(
            id=wid,
            title=title,
            app_name=name,
            bounds=bounds,
            is_active=active_id is not None and numeric_id == active_id,
            z_order=z,
        ))
    return windows


class UnsupportedProbe(WindowProbe):
    """Null probe for platforms without an implementation."""

    def __init__(self, platform: str) -> None:
        self.platform = platform
        log.warning("window_probe_unsupported_platform", platform=platform)

    async def active_window(self) -> ProbeResult | None:
        return None

    async def visible_windows(self) -> list[WindowInfo]:
        return []


def default_probe(platform: str | None = None) -> WindowProbe:
    """Select the probe for the running platform, once."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsProbe()
    if platform == "darwin":
        return MacProbe()
    if platform.startswith("linux"):
        return LinuxProbe()
    return UnsupportedProbe(platform)
