"""Tests for platform window probes, with the platform utilities stubbed out."""

import pytest

from screensense.capture import active_window
from screensense.capture.active_window import (
    LinuxProbe,
    MacProbe,
    ProbeResult,
    UnsupportedProbe,
    WindowsProbe,
    default_probe,
    parse_wmctrl,
)
from screensense.models import Bounds


@pytest.fixture
def stub_run(monkeypatch):
    """Replace the subprocess runner with canned (rc, stdout, stderr) replies."""
    calls = []
    replies = []

    async def fake_run(cmd, timeout=2.0):
        calls.append(cmd)
        return replies.pop(0) if replies else (1, "", "no reply")

    monkeypatch.setattr(active_window, "_run", fake_run)
    return replies, calls


@pytest.mark.parametrize("platform,cls", [
    ("win32", WindowsProbe),
    ("darwin", MacProbe),
    ("linux", LinuxProbe),
])
def test_default_probe(platform, cls):
    assert isinstance(default_probe(platform), cls)


async def test_unsupported_platform():
    probe = default_probe("sunos5")
    assert isinstance(probe, UnsupportedProbe)
    assert probe.platform == "sunos5"
    assert await probe.active_window() is None
    assert await probe.visible_windows() == []


class TestMacProbe:

    async def test_active_window(self, stub_run):
        replies, calls = stub_run
        replies.append((0, "Safari||812||Apple Developer||/Applications/Safari.app\n", ""))
        result = await MacProbe().active_window()
        assert result == ProbeResult(
            title="Apple Developer", pid=812, process_name="Safari", executable="/Applications/Safari.app",
        )
        assert calls[0][0] == "osascript"

    async def test_osascript_failure(self, stub_run):
        replies, _ = stub_run
        replies.append((1, "", "not authorized"))
        assert await MacProbe().active_window() is None

    async def test_visible_windows(self, stub_run):
        replies, _ = stub_run
        replies.append((0, "Terminal||zsh||0||25||800||600||false||true\nNotes||Todo||10||10||400||300||true||false\nbroken line\n", ""))
        windows = await MacProbe().visible_windows()
        assert [w.app_name for w in windows] == ["Terminal", "Notes"]
        assert windows[0].is_active and not windows[0].is_minimized
        assert windows[1].is_minimized
        assert windows[0].bounds == Bounds(0, 25, 800, 600)


class TestWindowsProbe:

    async def test_active_window(self, stub_run):
        replies, calls = stub_run
        replies.append((0, '{"name": "Code", "pid": 4711, "title": "app.py - api - Visual Studio Code", "path": "C:\\\\Code.exe"}', ""))
        result = await WindowsProbe().active_window()
        assert result == ProbeResult(
            title="app.py - api - Visual Studio Code", pid=4711, process_name="Code", executable="C:\\Code.exe",
        )
        assert calls[0][0] == "powershell"

    async def test_powershell_failure(self, stub_run):
        replies, _ = stub_run
        replies.append((1, "", "powershell missing"))
        assert await WindowsProbe().active_window() is None


class TestLinuxParsing:

    def test_parse_wmctrl(self):
        output = (
            "0x03a00007  0 0      0    0    1920 1080 box Visual Studio Code\n"
            "0x04200003  0 0      1920 0    1280 720  box Terminal - dev@box: ~\n"
            "garbage\n"
        )
        windows = parse_wmctrl(output, active_id=0x04200003)
        assert [w.title for w in windows] == ["Visual Studio Code", "Terminal - dev@box: ~"]
        assert windows[1].is_active and not windows[0].is_active
        assert windows[1].bounds == Bounds(1920, 0, 1280, 720)
        assert [w.z_order for w in windows] == [0, 1]

    def test_kwin_output(self):
        out = 'Jan 01 kwin_wayland[1]: js: SS_abc{"caption": "notes.txt - Kate", "resourceClass": "kate", "pid": 0}\n'
        result = LinuxProbe._parse_kwin_output(out, "SS_abc")
        assert result == ProbeResult(title="notes.txt - Kate", pid=0, process_name="kate", executable=None)

    def test_kwin_no_active_window(self):
        assert LinuxProbe._parse_kwin_output("kwin: js: SS_abcnull\n", "SS_abc") is None

    def test_kwin_prefix_missing(self):
        assert LinuxProbe._parse_kwin_output("unrelated journal line\n", "SS_abc") is None
