"""
Content processing for source-pack.

Classifies each file as text or binary, decodes text and optionally applies the lossy
whitespace reduction used to shrink token counts.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .config import FileEntry, OutputMode, PackConfig
from .utils import decode_text, is_binary_file, normalize_line_endings

_TRAILING_WS = re.compile(r"[ \t\f\v]+$", re.MULTILINE)
_BLANK_RUNS = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class ProcessedContent:
    """Renderable content of one file.

    Attributes:
        text: File body, or the placeholder when `omitted` is set.
        is_binary: Whether the file was classified as binary.
        encoding: Encoding used to decode the body (empty when not decoded).
        omitted: Whether `text` is a placeholder instead of the body.
    """

    text: str
    is_binary: bool = False
    encoding: str = ""
    omitted: bool = False


def binary_placeholder(size_bytes: int) -> str:
    return f"[binary file omitted: {size_bytes:,} bytes]"


def oversize_placeholder(size_bytes: int, limit: int) -> str:
    return f"[file omitted: {size_bytes:,} bytes exceeds limit of {limit:,} bytes]"


def compress_text(text: str) -> str:
    """Reduce whitespace in text content without touching anything else.

    - line endings are normalized to LF
    - trailing whitespace is stripped from every line
    - runs of blank lines collapse to a single blank line
    - leading and trailing blank lines are dropped

    Applying it twice gives the same result as applying it once.

    Args:
        text: Decoded file content.

    Returns:
        The reduced content.
    """
    text = normalize_line_endings(text)
    text = _TRAILING_WS.sub("", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip("\n")


def process(entry: FileEntry, config: PackConfig) -> ProcessedContent:
    """Produce the renderable content of a file.

    Line endings of text content are always normalized to LF (CRLF and lone CR
    alike), whether or not compression is enabled.

    Args:
        entry: File to process.
        config: Run configuration (`compress`, `mode`, `max_file_bytes`).

    Returns:
        The processed content. In `STRUCTURE` mode the body is never read, and a file
        whose leading bytes cannot be read is listed without a binary marker.

    Raises:
        OSError: If the file cannot be read in `FULL` mode.
    """
    if config.mode is OutputMode.STRUCTURE:
        try:
            is_binary = is_binary_file(entry.path)
        except OSError:
            is_binary = False
        return ProcessedContent(text="", is_binary=is_binary, omitted=True)

    if is_binary_file(entry.path):
        return ProcessedContent(
            text=binary_placeholder(entry.size_bytes), is_binary=True, omitted=True
        )

    if config.max_file_bytes is not None and entry.size_bytes > config.max_file_bytes:
        return ProcessedContent(
            text=oversize_placeholder(entry.size_bytes, config.max_file_bytes), omitted=True
        )

    with open(entry.path, "rb") as f:
        data = f.read()

    text, encoding = decode_text(data)
    text = normalize_line_endings(text)
    if config.compress:
        text = compress_text(text)

    return ProcessedContent(text=text, encoding=encoding)
