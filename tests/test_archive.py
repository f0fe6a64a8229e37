"""Tests for archive assembly."""

import io
import zipfile

import pytest
from wikipull.archive import INDEX_FILE_NAME, ArchiveAssembler, build_index
from wikipull.models.pages import ConvertedPage


@pytest.fixture
def outputs():
    return [
        ConvertedPage(file_name="01-Overview", content="# Overview\n"),
        ConvertedPage(file_name="02-Setup", content="# Setup\n"),
    ]


class TestBuildIndex:
    """Tests for the README index."""

    def test_index_lists_pages_in_order(self, outputs):
        """Test the index layout."""
        index = build_index("owner-repo", outputs)

        assert index == (
            "# owner-repo\n\n## Content Index\n\n- [01-Overview](01-Overview.md)\n- [02-Setup](02-Setup.md)\n"
        )


class TestArchiveAssembler:
    """Tests for ArchiveAssembler."""

    def test_assemble_contents(self, tmp_path, outputs):
        """Test that every page and the index are in the archive."""
        data = ArchiveAssembler(tmp_path).assemble("owner-repo", outputs)

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["01-Overview.md", "02-Setup.md", INDEX_FILE_NAME]
            assert zf.read("02-Setup.md").decode() == "# Setup\n"
            assert zf.getinfo("01-Overview.md").compress_type == zipfile.ZIP_DEFLATED
            assert zf.read(INDEX_FILE_NAME).decode().startswith("# owner-repo")

    def test_save_creates_directory(self, tmp_path):
        """Test that the output directory is created on demand."""
        assembler = ArchiveAssembler(tmp_path / "nested" / "wikis")

        path = assembler.save(b"zip-bytes", "owner-repo.zip")

        assert path == tmp_path / "nested" / "wikis" / "owner-repo.zip"
        assert path.read_bytes() == b"zip-bytes"

    def test_save_never_overwrites(self, tmp_path):
        """Test that an existing archive gets a numbered sibling."""
        assembler = ArchiveAssembler(tmp_path)

        first = assembler.save(b"one", "owner-repo.zip")
        second = assembler.save(b"two", "owner-repo.zip")
        third = assembler.save(b"three", "owner-repo.zip")

        assert [p.name for p in (first, second, third)] == [
            "owner-repo.zip",
            "owner-repo-1.zip",
            "owner-repo-2.zip",
        ]
        assert first.read_bytes() == b"one"
