"""App classification table: process name / executable path -> AppType."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..models import AppType


@dataclass(frozen=True)
class AppPattern:
    name: str
    app_type: AppType
    patterns: tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def _entry(name: str, app_type: AppType, *patterns: str) -> AppPattern:
    return AppPattern(name, app_type, tuple(re.compile(p, re.IGNORECASE) for p in patterns))


# Order matters: first match wins. Entries with generic patterns go last.
APP_PATTERNS: tuple[AppPattern, ...] = (
    # --- IDEs and editors ---
    _entry("vscode", AppType.IDE, r"\bcode\b", r"visual studio code", r"vscodium", r"\bcodium\b"),
    _entry("cursor", AppType.IDE, r"^cursor(\.exe)?$", r"cursor\.app"),
    _entry("visual-studio", AppType.IDE, r"devenv", r"visual studio"),
    _entry(
        "jetbrains", AppType.IDE,
        r"idea", r"intellij", r"pycharm", r"webstorm", r"clion", r"goland",
        r"rider", r"phpstorm", r"rustrover", r"android studio",
    ),
    _entry("sublime", AppType.IDE, r"sublime_text", r"sublime text"),
    _entry("vim", AppType.IDE, r"^n?vim$", r"neovim", r"\bgvim\b"),
    _entry("xcode", AppType.IDE, r"xcode"),
    _entry("zed", AppType.IDE, r"^zed$", r"zed\.app"),
    _entry("kate", AppType.IDE, r"^kate$", r"gedit", r"notepad\+\+"),
    # --- Browsers ---
    _entry("chrome", AppType.BROWSER, r"chrome", r"chromium"),
    _entry("firefox", AppType.BROWSER, r"firefox", r"librewolf", r"navigator"),
    _entry("edge", AppType.BROWSER, r"msedge", r"microsoft edge"),
    _entry("safari", AppType.BROWSER, r"safari"),
    _entry("brave", AppType.BROWSER, r"brave"),
    _entry("other-browsers", AppType.BROWSER, r"opera", r"vivaldi", r"\barc\b", r"epiphany"),
    # --- Terminals ---
    _entry("windows-terminal", AppType.TERMINAL, r"windowsterminal", r"wt\.exe"),
    _entry("powershell", AppType.TERMINAL, r"powershell", r"pwsh", r"^cmd(\.exe)?$"),
    _entry("macos-terminal", AppType.TERMINAL, r"^terminal$", r"terminal\.app", r"iterm"),
    _entry(
        "linux-terminals", AppType.TERMINAL,
        r"konsole", r"alacritty", r"kitty", r"wezterm", r"gnome-terminal",
        r"xterm", r"terminator", r"tilix", r"yakuake", r"^foot$", r"warp",
    ),
    # --- Office ---
    _entry("ms-office", AppType.OFFICE, r"winword", r"excel", r"powerpnt", r"outlook", r"onenote"),
    _entry("libreoffice", AppType.OFFICE, r"libreoffice", r"soffice"),
    _entry("documents", AppType.OFFICE, r"okular", r"evince", r"acrobat", r"^preview$", r"pages", r"numbers", r"keynote"),
    _entry("notes", AppType.OFFICE, r"notion", r"obsidian"),
    # --- Communication ---
    _entry(
        "chat", AppType.COMMUNICATION,
        r"slack", r"discord", r"teams", r"telegram", r"signal", r"whatsapp",
        r"zoom", r"skype", r"thunderbird", r"element", r"^mail$",
    ),
    # --- Design ---
    _entry("design", AppType.DESIGN, r"figma", r"sketch", r"photoshop", r"illustrator", r"gimp", r"inkscape", r"blender", r"krita"),
    # --- Media ---
    _entry("media", AppType.MEDIA, r"spotify", r"vlc", r"\bmpv\b", r"music", r"itunes", r"quicktime", r"rhythmbox", r"elisa"),
    # --- File managers ---
    _entry("file-manager", AppType.FILE_MANAGER, r"explorer", r"finder", r"dolphin", r"nautilus", r"thunar", r"nemo", r"pcmanfm"),
)


def classify_app(process_name: str, executable: str | None = None) -> AppType:
    """Classify an app by its process name, then its executable path."""
    candidates = [c for c in (process_name, executable) if c]
    for entry in APP_PATTERNS:
        if any(entry.matches(c) for c in candidates):
            return entry.app_type
    return AppType.OTHER
