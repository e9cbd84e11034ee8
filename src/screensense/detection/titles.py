"""Window-title parsers, one pure function per app type.

Titles are heuristic: every parser is best-effort and leaves a field as None
when its pattern does not match.
"""

from __future__ import annotations

import re
from pathlib import PurePath

from ..models import (
    AppType,
    BrowserMetadata,
    GenericMetadata,
    IDEMetadata,
    OfficeMetadata,
    TerminalMetadata,
)

# "main.py - myproject - Visual Studio Code", optionally prefixed by a dirty marker
_IDE_TITLE = re.compile(r"^[●•*]?\s*(?P<file>[^-–—]+?)\s+[-–—]\s+(?P<project>.+?)\s+[-–—]\s+(?P<editor>[^-–—]+)$")
# "main.py - Visual Studio Code" (no project segment)
_IDE_TITLE_SHORT = re.compile(r"^[●•*]?\s*(?P<file>[^-\s–—][^-–—]*?\.\w+)\s+[-–—]\s+(?P<editor>[^-–—]+)$")
# JetBrains: "myproject – src/main.py"
_JETBRAINS_TITLE = re.compile(r"^(?P<project>[^–]+?)\s+–\s+(?P<file>.+\.\w+)$")

_BROWSER_TITLE = re.compile(r"^(?P<title>.+?)\s+[-–—]\s+(?P<browser>[^-–—]+)$")
_URL = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)
_DOMAIN_ONLY = re.compile(r"^(?:[a-z0-9-]+\.)+[a-z]{2,}(?:/\S*)?$", re.IGNORECASE)

_WINDOWS_PATH = re.compile(r"(?P<path>[A-Za-z]:\\(?:[^\\/:*?\"<>|\r\n]+\\?)*)")
_USER_AT_HOST = re.compile(r"^[\w.-]+@[\w.-]+:\s*(?P<path>~?[^\s]*)(?:\s*[-–—]\s*(?P<rest>.*))?$")
_POSIX_PATH = re.compile(r"(?P<path>~(?:/[^\s:]*)?|/(?:[^\s/:]+/?)+)")
_PROMPT_COMMAND = re.compile(r"[$#>]\s+(?P<command>\S.*)$")

_OFFICE_TITLE = re.compile(r"^(?P<document>.+?)\s+[-–—]\s+(?P<suite>[^-–—]+)$")

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    ".py": "Python",
    ".pyi": "Python",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".go": "Go",
    ".rs": "Rust",
    ".java": "Java",
    ".kt": "Kotlin",
    ".c": "C",
    ".h": "C",
    ".cpp": "C++",
    ".cc": "C++",
    ".hpp": "C++",
    ".cs": "C#",
    ".rb": "Ruby",
    ".php": "PHP",
    ".swift": "Swift",
    ".sh": "Shell",
    ".sql": "SQL",
    ".html": "HTML",
    ".css": "CSS",
    ".scss": "SCSS",
    ".json": "JSON",
    ".yaml": "YAML",
    ".yml": "YAML",
    ".toml": "TOML",
    ".md": "Markdown",
}


def detect_language(filename: str) -> str | None:
    suffix = PurePath(filename).suffix.lower()
    return LANGUAGE_BY_EXTENSION.get(suffix)


def parse_ide_title(title: str) -> IDEMetadata:
    """Parse "<file> - <project> - <editor>" style titles."""
    title = title.strip()
    m = _IDE_TITLE.match(title)
    if m:
        current_file = m.group("file").strip()
        return IDEMetadata(
            current_file=current_file,
            language=detect_language(current_file),
            project=m.group("project").strip(),
        )
    m = _IDE_TITLE_SHORT.match(title)
    if m:
        current_file = m.group("file").strip()
        return IDEMetadata(current_file=current_file, language=detect_language(current_file))
    m = _JETBRAINS_TITLE.match(title)
    if m:
        current_file = PurePath(m.group("file").strip()).name
        return IDEMetadata(
            current_file=current_file,
            language=detect_language(current_file),
            project=m.group("project").strip(),
        )
    return IDEMetadata()


def parse_browser_title(title: str) -> BrowserMetadata:
    """Parse "<page title> - <browser>" style titles."""
    title = title.strip()
    if not title:
        return BrowserMetadata()
    url_match = _URL.search(title)
    url = url_match.group(0) if url_match else None

    m = _BROWSER_TITLE.match(title)
    page_title = m.group("title").strip() if m else title
    if url is None and _DOMAIN_ONLY.match(page_title):
        url = f"https://{page_title}"
    return BrowserMetadata(page_title=page_title, url=url)


def parse_terminal_title(title: str) -> TerminalMetadata:
    """Extract a working directory (and a running command) from a terminal title."""
    title = title.strip()
    if not title:
        return TerminalMetadata()

    directory = None
    last_command = None

    m = _WINDOWS_PATH.search(title)
    if m:
        directory = m.group("path").rstrip("\\") or m.group("path")
        if len(directory) == 2:
            directory += "\\"
    else:
        m = _USER_AT_HOST.match(title)
        if m:
            directory = m.group("path") or None
            rest = (m.group("rest") or "").strip()
            last_command = rest or None
        else:
            m = _POSIX_PATH.search(title)
            if m:
                directory = m.group("path").rstrip("/") or "/"

    m = _PROMPT_COMMAND.search(title)
    if m:
        last_command = m.group("command").strip()

    return TerminalMetadata(directory=directory, last_command=last_command)


def parse_office_title(title: str) -> OfficeMetadata:
    """Parse "<document> - <suite>" style titles."""
    m = _OFFICE_TITLE.match(title.strip())
    if not m:
        return OfficeMetadata(document=title.strip() or None)
    return OfficeMetadata(document=m.group("document").strip())


def parse_title(app_type: AppType, title: str):
    """Dispatch to the parser for ``app_type``."""
    if app_type is AppType.IDE:
        return parse_ide_title(title)
    if app_type is AppType.BROWSER:
        return parse_browser_title(title)
    if app_type is AppType.TERMINAL:
        return parse_terminal_title(title)
    if app_type is AppType.OFFICE:
        return parse_office_title(title)
    return GenericMetadata()
