"""
Utility functions for source-pack.

Includes encoding detection, binary sniffing, line ending normalization and path
helpers shared by the walker, processor and emitters.
"""

from __future__ import annotations

from pathlib import Path

import chardet

from .config import BINARY_SAMPLE_BYTES

# Bytes treated as text by the printable-ratio check: printable ASCII + tab, LF, CR, FF
_TEXT_BYTES = frozenset(range(32, 127)) | {9, 10, 12, 13}

# Text files typically have >70% printable bytes
_MIN_PRINTABLE_RATIO = 0.70


def normalize_path(path: str) -> str:
    """Normalize a path for consistent cross-platform comparisons.

    Args:
        path: Path string that may contain platform-specific separators.

    Returns:
        Normalized path using forward slashes.
    """
    return path.replace("\\", "/")


def basename(path: str) -> str:
    """Return the final segment of a path, tolerating either separator style."""
    return normalize_path(path).rstrip("/").rsplit("/", 1)[-1]


def file_extension(name: str) -> str:
    """Return the substring after the last `.` of a basename.

    Args:
        name: File basename.

    Returns:
        The extension without the dot, or an empty string when the name has none.
        A dotfile such as `.gitignore` has the extension `gitignore`.
    """
    _, dot, ext = name.rpartition(".")
    return ext if dot else ""


def looks_binary(sample: bytes) -> bool:
    """Heuristically decide whether a byte sample comes from a binary file.

    A null byte is a strong binary signal; otherwise the ratio of printable bytes
    decides. Samples that decode cleanly as UTF-8 are text regardless of the ratio, so
    non-Latin source files are not misclassified.

    Args:
        sample: Leading bytes of a file.

    Returns:
        True if the sample is likely binary, otherwise False.
    """
    if not sample:
        return False

    if b"\x00" in sample:
        return True

    try:
        sample.decode("utf-8")
        return False
    except UnicodeDecodeError as e:
        # A multi-byte sequence cut off by the sample boundary is still UTF-8
        if e.start >= len(sample) - 3 and e.reason == "unexpected end of data":
            return False

    printable_count = sum(1 for b in sample if b in _TEXT_BYTES)
    return printable_count / len(sample) < _MIN_PRINTABLE_RATIO


def is_binary_file(file_path: Path, sample_size: int = BINARY_SAMPLE_BYTES) -> bool:
    """Check whether a file is binary by sniffing its first bytes.

    Raises:
        OSError: If the file cannot be read.
    """
    with open(file_path, "rb") as f:
        sample = f.read(sample_size)
    return looks_binary(sample)


def detect_encoding(data: bytes) -> str:
    """Detect a likely text encoding for raw file content.

    Prefers UTF-8 and only uses `chardet` when strict UTF-8 decoding fails. This avoids
    UTF-8 being misdetected as Latin-1/CP1252 and producing mojibake.

    Args:
        data: Raw bytes (typically the whole file).

    Returns:
        A normalized encoding label (e.g., `"utf-8"`, `"utf-8-sig"`, `"utf-16-le"`).
    """
    if not data:
        return "utf-8"

    # Check for BOM markers first (most reliable)
    if data.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if data.startswith(b"\xff\xfe"):
        return "utf-16-le"
    if data.startswith(b"\xfe\xff"):
        return "utf-16-be"

    try:
        data.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    result = chardet.detect(data)
    encoding_any = result.get("encoding")

    if not isinstance(encoding_any, str) or not encoding_any:
        return "utf-8"

    encoding = encoding_any.lower()
    if encoding in ("ascii", "utf-8", "utf8"):
        return "utf-8"

    return encoding


def decode_text(data: bytes) -> tuple[str, str]:
    """Decode raw file content robustly.

    Args:
        data: Raw bytes.

    Returns:
        A tuple `(text, encoding_used)`. Undecodable bytes are replaced.
    """
    encoding = detect_encoding(data)
    try:
        return data.decode(encoding, errors="replace"), encoding
    except LookupError:
        # chardet reported a codec Python does not know
        return data.decode("utf-8", errors="replace"), "utf-8"


def normalize_line_endings(content: str) -> str:
    """Normalize line endings to LF (Unix-style).

    Args:
        content: Input text that may contain CRLF/CR/mixed endings.

    Returns:
        Content with all line endings normalized to LF.
    """
    # Replace CRLF first, then remaining CR, to avoid double-transforming CRLF.
    return content.replace("\r\n", "\n").replace("\r", "\n")


def longest_run(text: str, char: str) -> int:
    """Return the length of the longest consecutive run of `char` in `text`."""
    best = current = 0
    for c in text:
        if c == char:
            current += 1
            if current > best:
                best = current
        else:
            current = 0
    return best


def display_path(path: str) -> str:
    """Return a path that can always be encoded as UTF-8.

    Undecodable bytes in file names surface as surrogates from `os.scandir`; they are
    replaced with U+FFFD.
    """
    return path.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
