"""
Configuration models and defaults for source-pack.

`PackConfig` is immutable and built once per run; the remaining dataclasses describe
the values flowing through a pack run.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ConfigError


class OutputFormat(str, Enum):
    """Syntax of the output document."""

    MARKDOWN = "markdown"
    XML = "xml"

    @property
    def suffix(self) -> str:
        """File suffix conventionally used for this format."""
        return ".xml" if self is OutputFormat.XML else ".md"


class OutputMode(str, Enum):
    """Granularity of the output document.

    `FULL` embeds file bodies. `STRUCTURE` lists paths and sizes only.
    """

    FULL = "full"
    STRUCTURE = "structure"


# Directory names excluded by the built-in toggles
GIT_DIRS: frozenset[str] = frozenset({".git"})
BUILD_DIRS: frozenset[str] = frozenset({"build"})
GRADLE_DIRS: frozenset[str] = frozenset({".gradle", "gradle"})

DEFAULT_IGNORE_EXTS: frozenset[str] = frozenset({"log", "tmp"})

# Bytes sampled from the head of a file for binary detection
BINARY_SAMPLE_BYTES = 8192

# Seconds a remote fetch may stall before it is aborted
DEFAULT_CLONE_TIMEOUT = 300

FALLBACK_OUTPUT_NAME = "SourcePack_Output"


def parse_list(value: str | None) -> frozenset[str]:
    """Split a comma-separated user string into trimmed, non-empty items.

    Args:
        value: Raw user input such as ``"log, tmp"``.

    Returns:
        A frozenset of the items (empty when `value` is blank or None).
    """
    if not value:
        return frozenset()
    return frozenset(item.strip() for item in value.split(",") if item.strip())


def _normalize_names(values: Iterable[Any], what: str) -> frozenset[str]:
    result = set()
    for value in values:
        if not isinstance(value, str):
            raise ConfigError(f"Invalid {what} entry (expected a string): {value!r}")
        name = value.strip()
        if not name:
            continue
        if "/" in name or "\\" in name:
            raise ConfigError(f"Invalid {what} entry (must be a bare name): {value!r}")
        result.add(name)
    return frozenset(result)


def _normalize_extensions(values: Iterable[Any]) -> frozenset[str]:
    names = _normalize_names(values, "ignore extension")
    return frozenset(ext.lstrip(".") for ext in names if ext.lstrip("."))


@dataclass(frozen=True)
class PackConfig:
    """Configuration for a single pack run.

    Attributes:
        compress: Apply the lossy whitespace reduction to text content.
        ignore_git: Skip `.git` directories.
        ignore_build: Skip `build` directories.
        ignore_gradle: Skip Gradle wrapper/cache directories (`gradle`, `.gradle`).
        format: Output document syntax.
        mode: Output content granularity.
        user_ignore_files: Exact basenames (files or directories) to skip.
        user_ignore_exts: File extensions, without the leading dot, to skip.
        max_file_bytes: Text files above this size are rendered as a placeholder.
        clone_timeout: Seconds a remote fetch may stall before being aborted.
    """

    compress: bool = False
    ignore_git: bool = True
    ignore_build: bool = True
    ignore_gradle: bool = True
    format: OutputFormat = OutputFormat.MARKDOWN
    mode: OutputMode = OutputMode.FULL
    user_ignore_files: frozenset[str] = field(default_factory=frozenset)
    user_ignore_exts: frozenset[str] = field(default_factory=frozenset)
    max_file_bytes: int | None = None
    clone_timeout: int = DEFAULT_CLONE_TIMEOUT

    def __post_init__(self) -> None:
        """Normalize enums and ignore lists.

        Raises:
            ConfigError: If a value cannot be normalized.
        """
        try:
            object.__setattr__(self, "format", OutputFormat(self.format))
            object.__setattr__(self, "mode", OutputMode(self.mode))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if isinstance(self.user_ignore_files, str) or isinstance(self.user_ignore_exts, str):
            raise ConfigError("Ignore lists must be collections, not strings")

        object.__setattr__(
            self, "user_ignore_files", _normalize_names(self.user_ignore_files, "ignore file")
        )
        object.__setattr__(self, "user_ignore_exts", _normalize_extensions(self.user_ignore_exts))

        if self.max_file_bytes is not None and self.max_file_bytes < 0:
            raise ConfigError(f"max_file_bytes must be >= 0, got {self.max_file_bytes}")
        if self.clone_timeout <= 0:
            raise ConfigError(f"clone_timeout must be > 0, got {self.clone_timeout}")

    def builtin_ignore_dirs(self) -> frozenset[str]:
        """Return the directory names excluded by the enabled built-in toggles."""
        names: set[str] = set()
        if self.ignore_git:
            names |= GIT_DIRS
        if self.ignore_build:
            names |= BUILD_DIRS
        if self.ignore_gradle:
            names |= GRADLE_DIRS
        return frozenset(names)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary with deterministic ordering."""
        return {
            "clone_timeout": self.clone_timeout,
            "compress": self.compress,
            "format": self.format.value,
            "ignore_build": self.ignore_build,
            "ignore_git": self.ignore_git,
            "ignore_gradle": self.ignore_gradle,
            "max_file_bytes": self.max_file_bytes,
            "mode": self.mode.value,
            "user_ignore_exts": sorted(self.user_ignore_exts),
            "user_ignore_files": sorted(self.user_ignore_files),
        }


@dataclass(frozen=True)
class FileEntry:
    """A file selected for packing.

    Attributes:
        path: Absolute path used for reading.
        relative_path: Root-relative path using forward slashes.
        size_bytes: File size in bytes.
        extension: Substring after the last `.` of the basename (empty if none).
        language: Code fence label derived from the extension or filename.
    """

    path: Path
    relative_path: str
    size_bytes: int
    extension: str
    language: str


@dataclass(frozen=True)
class WalkIssue:
    """An entry skipped during a pack run."""

    relative_path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.relative_path}: {self.reason}"


@dataclass
class PackResult:
    """Terminal outcome of a pack run.

    Attributes:
        destination: Output document path.
        ok: Whether the run completed successfully.
        source_name: Display name of the packed source.
        files_included: Number of file sections written.
        bytes_included: Sum of the on-disk sizes of the included files.
        issues: Entries skipped without aborting the run.
        error_kind: Error category on failure (`config`, `acquisition`, `emit`).
        message: Human-readable failure message.
        cancelled: Whether the run stopped on a cancellation request.
        elapsed_seconds: Wall-clock duration of the run.
    """

    destination: Path
    ok: bool = True
    source_name: str = ""
    files_included: int = 0
    bytes_included: int = 0
    issues: list[WalkIssue] = field(default_factory=list)
    error_kind: str | None = None
    message: str = ""
    cancelled: bool = False
    elapsed_seconds: float = 0.0

    @property
    def files_skipped(self) -> int:
        return len(self.issues)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "bytes_included": self.bytes_included,
            "cancelled": self.cancelled,
            "destination": str(self.destination),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "error_kind": self.error_kind,
            "files_included": self.files_included,
            "issues": [{"path": i.relative_path, "reason": i.reason} for i in self.issues],
            "message": self.message,
            "ok": self.ok,
            "source_name": self.source_name,
        }


# Language detection by extension
EXTENSION_TO_LANGUAGE: dict[str, str] = {
    "py": "python",
    "pyi": "python",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "go": "go",
    "java": "java",
    "kt": "kotlin",
    "kts": "kotlin",
    "gradle": "groovy",
    "groovy": "groovy",
    "rs": "rust",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "hpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "cs": "csharp",
    "rb": "ruby",
    "php": "php",
    "swift": "swift",
    "scala": "scala",
    "sh": "bash",
    "bash": "bash",
    "zsh": "zsh",
    "md": "markdown",
    "rst": "rst",
    "yaml": "yaml",
    "yml": "yaml",
    "toml": "toml",
    "json": "json",
    "xml": "xml",
    "ini": "ini",
    "cfg": "ini",
    "properties": "properties",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "vue": "vue",
    "sql": "sql",
    "graphql": "graphql",
    "proto": "protobuf",
}


def get_language(extension: str, filename: str = "") -> str:
    """Get a code fence label from a file extension or special filename.

    Args:
        extension: Extension without the leading dot.
        filename: Basename, used for extensionless files like `Dockerfile`.

    Returns:
        A language label, or an empty string when unknown.
    """
    ext_lower = extension.lower()
    if ext_lower in EXTENSION_TO_LANGUAGE:
        return EXTENSION_TO_LANGUAGE[ext_lower]

    name_lower = filename.lower()
    if name_lower == "dockerfile":
        return "dockerfile"
    if name_lower == "makefile":
        return "makefile"
    if name_lower in ("gradlew", "mvnw"):
        return "bash"

    return ""
