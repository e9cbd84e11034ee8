"""Prompts for the screen analysis service."""

from __future__ import annotations

from ..models import ApplicationContext, OCRLine, ScreenCapture

SYSTEM_PROMPT = "You are a screen analysis AI. Analyze application state and provide insights."

SCREEN_ANALYSIS_PROMPT = """You are analyzing a screenshot of a user's computer screen.
Extract the following information:

1. Scene description: what is on screen, in one or two sentences
2. Detected issues: errors, warnings or problems that are visible (especially in editors and terminals)
3. Suggestions: helpful next steps based on what you see
4. Entities: file paths, URLs, error messages and code symbols that are visible

Issue types: compilation-error, runtime-error, lint-warning, type-error, syntax-error,
test-failure, git-conflict, build-failure, network-error, permission-error, other.
Severities: info, warning, error, critical.
Suggestion types: fix-error, explain-code, refactor, documentation, test-suggestion,
optimization, security, workflow, learning, other.
Priorities: low, medium, high.

Respond with JSON only:
{
  "sceneDescription": "...",
  "activeApp": "...",
  "activity": "...",
  "issues": [
    {"type": "...", "severity": "...", "title": "...", "description": "...", "suggestedFix": "..."}
  ],
  "suggestions": [
    {"type": "...", "priority": "...", "title": "...", "description": "...", "action": "..."}
  ],
  "entities": [
    {"type": "file-path|url|error-message|code-symbol|command", "value": "..."}
  ]
}"""

_MAX_OCR_CHARS = 4000


def build_analysis_prompt(
    capture: ScreenCapture,
    app: ApplicationContext | None,
    ocr_lines: list[OCRLine] | None = None,
) -> str:
    """Build the user prompt for one capture."""
    parts = [SCREEN_ANALYSIS_PROMPT, "", "Analyze this screenshot."]

    if app is not None:
        parts += [
            "",
            "Context:",
            f"Active application: {app.name}",
            f"Window title: {app.window_title}",
            f"App type: {app.app_type.value}",
        ]

    if ocr_lines:
        text = "\n".join(line.text for line in ocr_lines)[:_MAX_OCR_CHARS]
        parts += ["", "Visible text (OCR):", text]

    parts += [
        "",
        f"[Image: {capture.format.value} screenshot, {capture.bounds.width}x{capture.bounds.height}]",
    ]
    return "\n".join(parts)
