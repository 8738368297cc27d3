"""Tests for binary file detection."""

import logging

import pytest

from repo_broadcast.binary import BinaryTransformer, is_binary, is_binary_content, is_binary_extension
from repo_broadcast.config import BINARY_SAMPLE_SIZE
from repo_broadcast.context import TransformContext


class TestIsBinaryExtension:
    """Tests for the extension table."""

    @pytest.mark.parametrize(
        "path", ["logo.png", "dist/app.ZIP", "lib/tool.so", "Main.class", "mod.pyc", "data.sqlite"]
    )
    def test_known_binary(self, path):
        """Test that known binary extensions are detected case-insensitively."""
        assert is_binary_extension(path)

    @pytest.mark.parametrize("path", ["main.go", "README.md", "Makefile", "archive.tar.txt"])
    def test_text(self, path):
        """Test that text extensions and extensionless files are not binary."""
        assert not is_binary_extension(path)


class TestIsBinaryContent:
    """Tests for content sniffing."""

    def test_empty_is_not_binary(self):
        """Test that empty content is never binary."""
        assert not is_binary_content(b"")

    def test_null_byte(self):
        """Test that a single null byte means binary."""
        assert is_binary_content(b"plain text\x00more text")

    def test_plain_text(self):
        """Test ordinary text with tabs and newlines."""
        assert not is_binary_content(b"line one\n\tindented\r\nline three\n")

    def test_utf8_text_below_threshold(self):
        """Test that a little non-ASCII text stays under the threshold."""
        content = ("café " * 10 + "plain ascii text " * 10).encode("utf-8")
        assert not is_binary_content(content)

    def test_mostly_high_bytes(self):
        """Test that content dominated by high bytes is binary."""
        assert is_binary_content(bytes(range(128, 256)) * 4)

    def test_control_characters(self):
        """Test that non-whitespace control characters count as non-text."""
        assert is_binary_content(b"\x01\x02\x03\x04abc")

    def test_threshold_boundary(self):
        """Test that exactly 30% non-text is not binary, just over is."""
        assert not is_binary_content(b"\x80" * 30 + b"a" * 70)
        assert is_binary_content(b"\x80" * 31 + b"a" * 69)

    def test_only_sample_inspected(self):
        """Test that bytes past the sample size are ignored."""
        content = b"a" * BINARY_SAMPLE_SIZE + b"\x00" * 100
        assert not is_binary_content(content)


class TestIsBinary:
    """Tests for the combined check."""

    def test_png_extension_any_content(self):
        """Test that a .png file is binary regardless of content."""
        assert is_binary("image.png", b"just text")

    def test_empty_png_is_not_binary(self):
        """Test that empty content wins over the extension."""
        assert not is_binary("image.png", b"")

    def test_unknown_extension_uses_content(self):
        """Test falling back to content sniffing."""
        assert is_binary("blob.dat", b"\x00\x01")
        assert not is_binary("notes.dat", b"hello")


class TestBinaryTransformer:
    """Tests for the pass-through transformer."""

    def test_never_modifies(self):
        """Test that content is returned unchanged for text and binary."""
        transformer = BinaryTransformer()
        for path, content in [("a.png", b"\x89PNG\x00"), ("a.txt", b"text")]:
            ctx = TransformContext(file_path=path)
            assert transformer.transform(content, ctx) is content

    def test_logs_detection(self, caplog):
        """Test that detected binary files are logged."""
        transformer = BinaryTransformer()
        with caplog.at_level(logging.DEBUG, logger="repo_broadcast.binary"):
            transformer.transform(b"\x00\x00", TransformContext(file_path="blob.bin"))

        assert "blob.bin" in caplog.text

    def test_name(self):
        """Test transformer name."""
        assert BinaryTransformer().name == "binary-detector"
