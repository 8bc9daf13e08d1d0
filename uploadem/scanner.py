"""
Module for validating the files given on the command line.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger(__name__)


class FileScanner:
    """Checks input paths and keeps the ones that can be uploaded."""

    def is_uploadable(self, path: Path) -> bool:
        """Check that a path names an existing regular file.

        Args:
            path: Path to check

        Returns:
            True if the file can be uploaded, False otherwise
        """
        if not path.exists():
            logger.warning(f"File not found, skipping: {path}")
            return False
        if not path.is_file():
            logger.warning(f"Not a regular file, skipping: {path}")
            return False
        return True

    def scan(self, paths: Iterable[Union[str, Path]]) -> List[Path]:
        """Return the uploadable files among `paths`, in the given order.

        Args:
            paths: Paths from the command line

        Returns:
            List of existing file paths
        """
        files = []
        for raw in paths:
            path = Path(raw).expanduser()
            if self.is_uploadable(path):
                files.append(path.resolve())
        return files
