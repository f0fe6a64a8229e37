"""ZIP archives of converted wiki pages."""

import io
import logging
import zipfile
from collections.abc import Sequence
from pathlib import Path

from .models.pages import ConvertedPage

logger = logging.getLogger(__name__)

INDEX_FILE_NAME = "README.md"


def build_index(folder_name: str, outputs: Sequence[ConvertedPage]) -> str:
    """Build the README index linking every page of the archive."""
    lines = [f"# {folder_name}", "", "## Content Index", ""]
    lines.extend(f"- [{page.file_name}]({page.file_name}.md)" for page in outputs)
    return "\n".join(lines) + "\n"


class ArchiveAssembler:
    """Bundle converted pages into one ZIP archive and save it."""

    def __init__(self, output_dir: Path):
        """Initialize assembler.

        Args:
            output_dir: Directory archives are saved into
        """
        self.output_dir = Path(output_dir)

    def assemble(self, folder_name: str, outputs: Sequence[ConvertedPage]) -> bytes:
        """Create the archive in memory.

        One ``{file_name}.md`` per page, in run order, followed by the
        ``README.md`` index.

        Args:
            folder_name: Title used in the index heading
            outputs: Converted pages in run order

        Returns:
            ZIP archive bytes
        """
        buffer = io.BytesIO()

        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
            for page in outputs:
                zf.writestr(f"{page.file_name}.md", page.content)
            zf.writestr(INDEX_FILE_NAME, build_index(folder_name, outputs))

        logger.info(f"Assembled archive with {len(outputs)} pages for {folder_name}")
        return buffer.getvalue()

    def save(self, data: bytes, filename: str) -> Path:
        """Write an archive (or a single page export) into the output directory.

        Existing files are never overwritten; a numeric suffix is added
        instead (``name-1.zip``, ``name-2.zip``).

        Returns:
            Path to the saved archive
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)

        candidate = self.output_dir / filename
        counter = 1
        while candidate.exists():
            candidate = self.output_dir / f"{Path(filename).stem}-{counter}{Path(filename).suffix}"
            counter += 1

        candidate.write_bytes(data)

        size_kb = len(data) / 1024
        logger.info(f"Saved {candidate} ({size_kb:.1f} KB)")
        return candidate
