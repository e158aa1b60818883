"""
Document emitters for source-pack.

An emitter writes the output document incrementally: the header when it is opened,
one section per file as entries arrive, and the footer when it is closed. Nothing is
buffered beyond the current file.
"""

from __future__ import annotations

import re
from pathlib import Path
from types import TracebackType
from typing import IO
from xml.sax.saxutils import escape, quoteattr

from .config import FileEntry, OutputFormat, OutputMode, PackConfig
from .errors import EmitError
from .processor import ProcessedContent
from .utils import display_path, longest_run

# Characters not allowed in XML 1.0 documents
_XML_INVALID = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_safe(text: str) -> str:
    """Escape `&`, `<`, `>` and replace characters XML 1.0 cannot represent."""
    return escape(_XML_INVALID.sub("\ufffd", text))


class DocumentEmitter:
    """
    Base class for streaming document writers.

    Use as a context manager: entering opens the destination and writes the header,
    `write()` appends one file section, exiting writes the footer and closes the file.
    Any OS or encoding failure is raised as `EmitError`; partial output is left on disk.
    """

    def __init__(self, destination: Path, config: PackConfig, source_name: str):
        self.destination = Path(destination)
        self.config = config
        self.source_name = source_name
        self.files_written = 0
        self._fh: IO[str] | None = None

    def __enter__(self) -> DocumentEmitter:
        try:
            self._fh = open(self.destination, "w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise EmitError(f"Cannot open output file {self.destination}: {e}") from e
        try:
            self._emit(self.header())
        except BaseException:
            self._close(suppress=True)
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is None:
                self._emit(self.footer())
        finally:
            self._close(suppress=exc_type is not None)

    def _close(self, suppress: bool) -> None:
        if self._fh is None:
            return
        fh, self._fh = self._fh, None
        try:
            fh.close()
        except OSError as e:
            if not suppress:
                raise EmitError(f"Failed to write {self.destination}: {e}") from e

    def _emit(self, text: str) -> None:
        if self._fh is None:
            raise EmitError("Emitter is not open")
        try:
            self._fh.write(text)
        except (OSError, UnicodeError) as e:
            raise EmitError(f"Failed to write {self.destination}: {e}") from e

    def write(self, entry: FileEntry, content: ProcessedContent) -> None:
        """Append the section for one file and flush it to disk."""
        if self.config.mode is OutputMode.STRUCTURE:
            self._emit(self.structure_section(entry, content))
        else:
            self._emit(self.file_section(entry, content))
        try:
            self._fh.flush()  # type: ignore[union-attr]
        except OSError as e:
            raise EmitError(f"Failed to write {self.destination}: {e}") from e
        self.files_written += 1

    def header(self) -> str:
        raise NotImplementedError

    def footer(self) -> str:
        raise NotImplementedError

    def file_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        raise NotImplementedError

    def structure_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        raise NotImplementedError


class MarkdownEmitter(DocumentEmitter):
    """Markdown: a `##` heading per file followed by a fenced code block."""

    def header(self) -> str:
        title = self.source_name or "Source Pack"
        if self.config.mode is OutputMode.STRUCTURE:
            return f"# {title}\n\n## Files\n\n"
        return f"# {title}\n\n"

    def footer(self) -> str:
        return ""

    def file_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        body = content.text
        # The fence must be longer than any backtick run inside the body
        fence = "`" * max(3, longest_run(body, "`") + 1)
        language = "" if content.omitted else entry.language
        if body and not body.endswith("\n"):
            body += "\n"
        return f"## {display_path(entry.relative_path)}\n\n{fence}{language}\n{body}{fence}\n\n"

    def structure_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        suffix = ", binary" if content.is_binary else ""
        return f"- {display_path(entry.relative_path)} ({entry.size_bytes:,} bytes{suffix})\n"


class XmlEmitter(DocumentEmitter):
    """XML: a `<source>` root element with one `<file>` child per file."""

    def header(self) -> str:
        name = quoteattr(_XML_INVALID.sub("\ufffd", self.source_name))
        return f'<?xml version="1.0" encoding="UTF-8"?>\n<source name={name}>\n'

    def footer(self) -> str:
        return "</source>\n"

    def _attributes(self, entry: FileEntry, content: ProcessedContent) -> str:
        path = quoteattr(_XML_INVALID.sub("\ufffd", entry.relative_path))
        attrs = f"path={path} size=\"{entry.size_bytes}\""
        if content.is_binary:
            attrs += ' binary="true"'
        if content.omitted and self.config.mode is OutputMode.FULL:
            attrs += ' omitted="true"'
        return attrs

    def file_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        body = xml_safe(content.text)
        if body and not body.endswith("\n"):
            body += "\n"
        return f"<file {self._attributes(entry, content)}>\n{body}</file>\n"

    def structure_section(self, entry: FileEntry, content: ProcessedContent) -> str:
        return f"<file {self._attributes(entry, content)}/>\n"


def open_emitter(destination: Path, config: PackConfig, source_name: str) -> DocumentEmitter:
    """Create the emitter for the configured output format.

    The destination is only opened when the returned emitter is entered.
    """
    if config.format is OutputFormat.XML:
        return XmlEmitter(destination, config, source_name)
    return MarkdownEmitter(destination, config, source_name)
