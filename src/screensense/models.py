"""Data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def new_id() -> str:
    return uuid.uuid4().hex


class CaptureFormat(str, Enum):
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"


class AppType(str, Enum):
    IDE = "ide"
    BROWSER = "browser"
    TERMINAL = "terminal"
    OFFICE = "office"
    COMMUNICATION = "communication"
    DESIGN = "design"
    MEDIA = "media"
    FILE_MANAGER = "file-manager"
    OTHER = "other"


class IssueType(str, Enum):
    COMPILATION_ERROR = "compilation-error"
    RUNTIME_ERROR = "runtime-error"
    LINT_WARNING = "lint-warning"
    TYPE_ERROR = "type-error"
    SYNTAX_ERROR = "syntax-error"
    TEST_FAILURE = "test-failure"
    GIT_CONFLICT = "git-conflict"
    BUILD_FAILURE = "build-failure"
    NETWORK_ERROR = "network-error"
    PERMISSION_ERROR = "permission-error"
    OTHER = "other"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class SuggestionType(str, Enum):
    FIX_ERROR = "fix-error"
    EXPLAIN_CODE = "explain-code"
    REFACTOR = "refactor"
    DOCUMENTATION = "documentation"
    TEST_SUGGESTION = "test-suggestion"
    OPTIMIZATION = "optimization"
    SECURITY = "security"
    WORKFLOW = "workflow"
    LEARNING = "learning"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EntityType(str, Enum):
    FILE_PATH = "file-path"
    URL = "url"
    ERROR_MESSAGE = "error-message"
    CODE_SYMBOL = "code-symbol"
    COMMAND = "command"
    OTHER = "other"


@dataclass(frozen=True)
class Bounds:
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Pillow crop box (left, top, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


@dataclass
class Display:
    id: int
    name: str
    bounds: Bounds
    primary: bool = False
    index: int = 0


@dataclass(frozen=True)
class ScreenCapture:
    display_id: int
    bounds: Bounds
    image_data: bytes
    format: CaptureFormat
    quality: int
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def mime_type(self) -> str:
        return f"image/{self.format.value}"


# --- App metadata, one variant per app type ---

@dataclass(frozen=True)
class IDEMetadata:
    current_file: str | None = None
    language: str | None = None
    project: str | None = None


@dataclass(frozen=True)
class BrowserMetadata:
    page_title: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class TerminalMetadata:
    directory: str | None = None
    last_command: str | None = None


@dataclass(frozen=True)
class OfficeMetadata:
    document: str | None = None


@dataclass(frozen=True)
class GenericMetadata:
    pass


AppMetadata = IDEMetadata | BrowserMetadata | TerminalMetadata | OfficeMetadata | GenericMetadata


@dataclass(frozen=True)
class ApplicationContext:
    name: str
    window_title: str = ""
    pid: int = 0
    app_type: AppType = AppType.OTHER
    executable: str | None = None
    metadata: AppMetadata = field(default_factory=GenericMetadata)
    detected_at: datetime = field(default_factory=datetime.now)

    def same_window(self, other: ApplicationContext | None) -> bool:
        if other is None:
            return False
        return self.name == other.name and self.window_title == other.window_title


@dataclass(frozen=True)
class WindowInfo:
    id: str
    title: str
    app_name: str
    bounds: Bounds = field(default_factory=Bounds)
    is_active: bool = False
    is_minimized: bool = False
    z_order: int = 0


@dataclass(frozen=True)
class OCRLine:
    text: str
    confidence: float = 0.0
    bounds: Bounds = field(default_factory=Bounds)


@dataclass(frozen=True)
class SuggestedFix:
    description: str
    automated: bool = False
    confidence: float = 0.7


@dataclass(frozen=True)
class DetectedIssue:
    type: IssueType
    severity: Severity
    title: str
    description: str = ""
    suggested_fix: SuggestedFix | None = None
    confidence: float = 0.8
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class SuggestionAction:
    label: str
    type: str = "voice-command"
    payload: str | None = None
    id: str = field(default_factory=new_id)


@dataclass
class ProactiveSuggestion:
    type: SuggestionType
    priority: Priority
    title: str
    description: str = ""
    actions: list[SuggestionAction] = field(default_factory=list)
    context: str = ""
    trigger: str = "screen-analysis"
    dismissed: bool = False
    accepted: bool = False
    expires_at: datetime | None = None
    id: str = field(default_factory=new_id)

    def dismiss(self) -> None:
        self.dismissed = True

    def accept(self) -> None:
        self.accepted = True

    def is_pending(self, now: datetime | None = None) -> bool:
        if self.dismissed or self.accepted:
            return False
        if self.expires_at is not None and (now or datetime.now()) >= self.expires_at:
            return False
        return True


@dataclass(frozen=True)
class ExtractedEntity:
    type: EntityType
    value: str
    confidence: float = 0.8


@dataclass(frozen=True)
class ScreenAnalysisResult:
    capture_id: str
    active_app: ApplicationContext | None = None
    visible_windows: tuple[WindowInfo, ...] = ()
    ocr_lines: tuple[OCRLine, ...] = ()
    scene_description: str = ""
    detected_issues: tuple[DetectedIssue, ...] = ()
    suggestions: tuple[ProactiveSuggestion, ...] = ()
    entities: tuple[ExtractedEntity, ...] = ()
    context_summary: str = ""
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def visible_text(self) -> str:
        return "\n".join(line.text for line in self.ocr_lines)


@dataclass(frozen=True)
class ConversationContext:
    active_app: ApplicationContext | None = None
    app_context: str = ""
    scene_description: str = ""
    visible_text: str = ""
    active_issues: tuple[DetectedIssue, ...] = ()
    pending_suggestions: tuple[ProactiveSuggestion, ...] = ()
    entities: tuple[ExtractedEntity, ...] = ()
    recent_apps: tuple[str, ...] = ()
    recent_files: tuple[str, ...] = ()
    recent_urls: tuple[str, ...] = ()
    summary: str = ""
    updated_at: datetime = field(default_factory=datetime.now)
