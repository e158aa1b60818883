"""Tests for the processor module."""

from pathlib import Path

import pytest

from source_pack.config import FileEntry, OutputMode, PackConfig
from source_pack.processor import compress_text, process
from source_pack.utils import is_binary_file, looks_binary


def make_entry(path: Path) -> FileEntry:
    ext = path.name.rpartition(".")[2] if "." in path.name else ""
    return FileEntry(
        path=path,
        relative_path=path.name,
        size_bytes=path.stat().st_size,
        extension=ext,
        language="",
    )


class TestCompressText:
    """Tests for the whitespace reduction."""
    
    def test_strips_trailing_whitespace(self):
        """Test trailing whitespace removal."""
        assert compress_text("a = 1   \nb = 2\t\n") == "a = 1\nb = 2"
    
    def test_collapses_blank_line_runs(self):
        """Test that runs of blank lines become one."""
        assert compress_text("a\n\n\n\n  \n\nb\n") == "a\n\nb"
    
    def test_keeps_indentation(self):
        """Test that leading whitespace is preserved."""
        text = "def f():\n    return 1\n"
        
        assert compress_text(text) == "def f():\n    return 1"
    
    def test_normalizes_line_endings(self):
        """Test CRLF handling."""
        assert compress_text("a\r\n\r\n\r\nb\r\n") == "a\n\nb"
    
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "\n\n\n",
            "  x  \n\n\n\n y \t\n",
            "a\r\n \r\n\r\n\tb  \r",
            "\n\n  leading\n\n\n\ntrailing  \n\n\n",
            "tabs\t\t\n\x0b\n\n\nform\x0c\n",
        ],
    )
    def test_idempotent(self, text):
        """Test that compressing twice equals compressing once."""
        once = compress_text(text)
        
        assert compress_text(once) == once
    
    def test_only_removes_whitespace(self):
        """Test that all non-whitespace characters survive in order."""
        text = "x = 1  # comment   \n\n\n\n// other\n  y\t\n"
        
        def non_ws(s):
            return [c for c in s if not c.isspace()]
        
        assert non_ws(compress_text(text)) == non_ws(text)


class TestLooksBinary:
    """Tests for binary detection."""
    
    def test_null_byte(self):
        """Test that a null byte means binary."""
        assert looks_binary(b"abc\x00def")
    
    def test_plain_text(self):
        """Test ASCII text."""
        assert not looks_binary(b"hello world\n")
    
    def test_empty(self):
        """Test that empty content is text."""
        assert not looks_binary(b"")
    
    def test_utf8_text(self):
        """Test that non-Latin UTF-8 text is not binary."""
        assert not looks_binary("打包项目源码 — ünïcödé\n".encode("utf-8") * 50)
    
    def test_utf8_cut_at_sample_boundary(self):
        """Test a multi-byte character split by the sample size."""
        sample = ("é" * 10).encode("utf-8")[:-1]
        
        assert not looks_binary(sample)
    
    def test_mostly_non_printable(self):
        """Test the printable-ratio fallback."""
        assert looks_binary(bytes(range(128, 256)) * 4)


class TestProcess:
    """Tests for per-file processing."""
    
    def test_text_file(self, tmp_path):
        """Test that text content is returned as-is."""
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello\r\nworld  \n")
        
        content = process(make_entry(path), PackConfig())
        
        assert content.text == "hello\nworld  \n"
        assert not content.is_binary
        assert not content.omitted
        assert content.encoding == "utf-8"
    
    def test_compression_applied(self, tmp_path):
        """Test that compression runs when enabled."""
        path = tmp_path / "a.txt"
        path.write_text("hello  \n\n\n\nworld\n")
        
        content = process(make_entry(path), PackConfig(compress=True))
        
        assert content.text == "hello\n\nworld"
    
    def test_binary_file_placeholder(self, tmp_path):
        """Test that binary files are never embedded."""
        path = tmp_path / "img.png"
        path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + bytes(100))
        
        content = process(make_entry(path), PackConfig(compress=True))
        
        assert content.is_binary
        assert content.omitted
        assert content.text == f"[binary file omitted: {path.stat().st_size:,} bytes]"
    
    def test_non_utf8_text(self, tmp_path):
        """Test decoding of legacy encodings."""
        path = tmp_path / "legacy.txt"
        path.write_bytes("Grüße aus Köln, café crème\n".encode("latin-1") * 20)
        
        content = process(make_entry(path), PackConfig())
        
        assert not content.is_binary
        assert content.text.startswith("Gr")
        assert " aus K" in content.text
    
    def test_oversize_placeholder(self, tmp_path):
        """Test the size limit for text files."""
        path = tmp_path / "big.txt"
        path.write_text("x" * 100)
        
        content = process(make_entry(path), PackConfig(max_file_bytes=10))
        
        assert content.omitted
        assert "exceeds limit of 10 bytes" in content.text
    
    def test_structure_mode_skips_body(self, tmp_path):
        """Test that structure mode does not embed content."""
        path = tmp_path / "a.txt"
        path.write_text("hello")
        
        content = process(make_entry(path), PackConfig(mode=OutputMode.STRUCTURE))
        
        assert content.text == ""
        assert content.omitted
    
    def test_missing_file_raises(self, tmp_path):
        """Test that read failures propagate as OSError."""
        path = tmp_path / "gone.txt"
        path.write_text("x")
        entry = make_entry(path)
        path.unlink()
        
        with pytest.raises(OSError):
            process(entry, PackConfig())
    
    def test_line_endings_normalized_without_compression(self, tmp_path):
        """Test that CRLF and lone CR become LF even when compression is off."""
        path = tmp_path / "mac.txt"
        path.write_bytes(b"one\rtwo\r\nthree  \n")
        
        content = process(make_entry(path), PackConfig(compress=False))
        
        assert content.text == "one\ntwo\nthree  \n"
    
    def test_structure_mode_marks_binary(self, tmp_path):
        """Test that structure mode still flags binary files."""
        path = tmp_path / "img.png"
        path.write_bytes(b"\x89PNG\x00\x00")
        
        content = process(make_entry(path), PackConfig(mode=OutputMode.STRUCTURE))
        
        assert content.is_binary
        assert content.text == ""
    
    def test_structure_mode_lists_unreadable_file(self, tmp_path, monkeypatch):
        """Test that structure mode does not need to read the file."""
        path = tmp_path / "secret.txt"
        path.write_text("hidden")
        entry = make_entry(path)
        
        def denied(file_path, *args):
            raise PermissionError(13, "Permission denied", str(file_path))
        
        monkeypatch.setattr("source_pack.processor.is_binary_file", denied)
        
        content = process(entry, PackConfig(mode=OutputMode.STRUCTURE))
        
        assert content.omitted
        assert not content.is_binary
        with pytest.raises(PermissionError):
            process(entry, PackConfig())


class TestIsBinaryFile:
    """Tests for sniffing files on disk."""
    
    def test_text_and_binary(self, tmp_path):
        """Test both classifications."""
        text = tmp_path / "a.py"
        text.write_text("print('hi')\n")
        blob = tmp_path / "a.bin"
        blob.write_bytes(b"\x00\x01\x02\x03")
        
        assert not is_binary_file(text)
        assert is_binary_file(blob)
    
    def test_reads_only_the_sample(self, tmp_path):
        """Test that bytes past the sample size are not inspected."""
        path = tmp_path / "late.dat"
        path.write_bytes(b"a" * 100 + b"\x00")
        
        assert not is_binary_file(path, sample_size=100)
        assert is_binary_file(path)
    
    def test_missing_file_raises(self, tmp_path):
        """Test that read failures propagate."""
        with pytest.raises(OSError):
            is_binary_file(tmp_path / "missing.bin")
