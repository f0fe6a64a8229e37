"""Tests for file and folder naming."""

from wikipull.naming import (
    MAX_NAME_LENGTH,
    sanitize_folder_name,
    sanitize_name,
    single_page_file_name,
    unique_file_name,
)


class TestSanitizeName:
    """Tests for sanitize_name."""

    def test_reserved_characters(self):
        """Test that path and shell reserved characters become dashes."""
        assert sanitize_name('a/b\\c:d*e?f"g<h>i|j') == "a-b-c-d-e-f-g-h-i-j"

    def test_whitespace_and_dash_runs(self):
        """Test that whitespace and repeated dashes collapse."""
        assert sanitize_name("  Getting   Started -- Guide  ") == "Getting-Started-Guide"

    def test_fallback(self):
        """Test that empty or unusable titles use the fallback."""
        assert sanitize_name(None) == "page"
        assert sanitize_name("") == "page"
        assert sanitize_name("///", fallback="untitled") == "untitled"

    def test_long_names_truncated_with_hash(self):
        """Test that overlong names are shortened with a stable hash."""
        name = sanitize_name("x" * 300)

        assert len(name) == 189
        assert len(name) <= MAX_NAME_LENGTH
        assert name == sanitize_name("x" * 300)
        assert name != sanitize_name("x" * 299 + "y")

    def test_unicode_preserved(self):
        """Test that non-ASCII titles survive."""
        assert sanitize_name("Überblick und Architektur") == "Überblick-und-Architektur"


class TestFolderName:
    """Tests for sanitize_folder_name."""

    def test_site_title(self):
        """Test a typical document title."""
        assert sanitize_folder_name("owner/repo | DeepWiki") == "owner-repo-DeepWiki"

    def test_missing_title(self):
        """Test the default archive name."""
        assert sanitize_folder_name(None) == "deepwiki"


class TestUniqueFileName:
    """Tests for unique_file_name."""

    def test_collisions_suffixed(self):
        """Test that repeated titles get numeric suffixes."""
        used = set()

        names = [unique_file_name("Overview", used) for _ in range(3)]

        assert names == ["Overview", "Overview-1", "Overview-2"]
        assert used == {"Overview", "Overview-1", "Overview-2"}

    def test_sanitized_before_dedup(self):
        """Test that titles differing only in punctuation collide."""
        used = set()

        assert unique_file_name("A/B", used) == "A-B"
        assert unique_file_name("A:B", used) == "A-B-1"


class TestSinglePageFileName:
    """Tests for single_page_file_name."""

    def test_head_and_page_title(self):
        """Test that both titles are sanitized and joined."""
        assert single_page_file_name("owner/repo | DeepWiki", "Getting Started") == "owner-repo-DeepWiki-Getting-Started.md"

    def test_without_head_title(self):
        """Test that a missing head title leaves just the page title."""
        assert single_page_file_name(None, "Overview") == "Overview.md"
        assert single_page_file_name("  ", "Overview") == "Overview.md"

    def test_without_page_title(self):
        """Test the fallback page name."""
        assert single_page_file_name("repo", None) == "repo-page.md"
