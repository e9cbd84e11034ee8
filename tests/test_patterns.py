"""Tests for the app classification table."""

import pytest

from screensense.detection.patterns import APP_PATTERNS, classify_app
from screensense.models import AppType


@pytest.mark.parametrize("process_name,expected", [
    ("code", AppType.IDE),
    ("Code.exe", AppType.IDE),
    ("pycharm64.exe", AppType.IDE),
    ("nvim", AppType.IDE),
    ("firefox", AppType.BROWSER),
    ("Google Chrome", AppType.BROWSER),
    ("msedge.exe", AppType.BROWSER),
    ("konsole", AppType.TERMINAL),
    ("WindowsTerminal.exe", AppType.TERMINAL),
    ("iTerm2", AppType.TERMINAL),
    ("soffice.bin", AppType.OFFICE),
    ("WINWORD.EXE", AppType.OFFICE),
    ("Slack", AppType.COMMUNICATION),
    ("figma", AppType.DESIGN),
    ("spotify", AppType.MEDIA),
    ("dolphin", AppType.FILE_MANAGER),
])
def test_classify_by_process_name(process_name, expected):
    assert classify_app(process_name) is expected


@pytest.mark.parametrize("process_name", ["Editor", "Unknown", "xyzzy", ""])
def test_unmatched_names_are_other(process_name):
    assert classify_app(process_name) is AppType.OTHER


def test_executable_path_is_consulted():
    assert classify_app("electron", "/usr/share/code/code") is AppType.IDE


def test_process_name_and_path_both_unmatched():
    assert classify_app("electron", "/opt/custom/bin/electron") is AppType.OTHER


def test_code_is_word_bounded():
    assert classify_app("unicode-viewer") is AppType.OTHER


def test_first_match_wins():
    """'Visual Studio Code' matches both the VS Code and Visual Studio rows."""
    assert APP_PATTERNS[0].name == "vscode"
    assert classify_app("Visual Studio Code") is AppType.IDE
