"""Tests for the click command-line interface."""

import pytest
from click.testing import CliRunner

from conftest import FakeService, analysis_reply
from screensense import components as components_module
from screensense.__main__ import cli
from screensense.components import Components
from screensense.context import ContextBuilder


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[logging]\nlevel = "ERROR"\n')
    return str(path)


@pytest.fixture
def wired(monkeypatch, make_analyzer, detector, config):
    """Route the CLI's component graph to the in-memory fakes."""
    reply = analysis_reply(scene="Reviewing a pull request", issues=[
        {"type": "lint-warning", "severity": "warning", "title": "Unused import", "suggestedFix": "Remove it"},
    ])
    analyzer = make_analyzer(service=FakeService(reply))
    context = ContextBuilder(config.context)
    context.attach(analyzer)
    graph = Components(config=config, detector=detector, analyzer=analyzer, context=context)
    monkeypatch.setattr(components_module, "build_components", lambda cfg, probe=None: graph)
    return graph


def test_app(wired, config_file):
    result = CliRunner().invoke(cli, ["-c", config_file, "app"])
    assert result.exit_code == 0, result.output
    assert "App:     code" in result.output
    assert "Type:    ide" in result.output
    assert "main.py" in result.output


def test_app_not_detected(wired, probe, config_file):
    probe.active = None
    result = CliRunner().invoke(cli, ["-c", config_file, "app"])
    assert result.exit_code == 1


def test_windows(wired, config_file):
    result = CliRunner().invoke(cli, ["-c", config_file, "windows"])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("* code")


def test_displays_marks_target(wired, config_file):
    result = CliRunner().invoke(cli, ["-c", config_file, "displays"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("*") and "DP-1 (primary)" in lines[0]
    assert lines[1].startswith(" ") and "2560x1440+1920+0" in lines[1]


def test_snapshot(wired, config_file):
    result = CliRunner().invoke(cli, ["-c", config_file, "snapshot"])
    assert result.exit_code == 0, result.output
    assert "Screen: Reviewing a pull request" in result.output
    assert "[WARNING] Unused import" in result.output


def test_snapshot_with_query(wired, config_file):
    result = CliRunner().invoke(cli, ["-c", config_file, "snapshot", "--query", "how do I fix this?"])
    assert result.exit_code == 0, result.output
    assert "Suggested fix: Remove it" in result.output


def test_missing_config_file(tmp_path):
    result = CliRunner().invoke(cli, ["-c", str(tmp_path / "absent.toml"), "app"])
    assert result.exit_code != 0
    assert isinstance(result.exception, FileNotFoundError)
