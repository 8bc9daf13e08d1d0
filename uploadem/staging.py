"""
Module for ephemeral copies of input files.
"""
import logging
import os
import secrets
import shutil
import string
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

_ALPHABET = string.ascii_lowercase + string.digits


def simplified_name(path: Path, length: int = 8) -> str:
    """Return a short random alphanumeric name keeping the file's extension."""
    token = "".join(secrets.choice(_ALPHABET) for _ in range(length))
    return f"{token}{path.suffix.lower()}"


class EphemeralFiles:
    """Tracks temporary copies made for one input file.

    Use as a context manager: every copy and throwaway directory is removed
    on exit, whatever the outcome of the uploads.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize the tracker.

        Args:
            base_dir: Directory for temporary copies (defaults to system temp)
        """
        self.base_dir = Path(base_dir or tempfile.gettempdir())
        self._paths: List[Path] = []

    def __enter__(self) -> "EphemeralFiles":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    def randomized_copy(self, source: Path) -> Path:
        """Copy `source` to a process-unique name that keeps its extension.

        Args:
            source: File to copy

        Returns:
            Path of the copy
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)
        target = self.base_dir / f"uploadem_{os.getpid()}_{uuid.uuid4().hex[:12]}{source.suffix}"
        self._paths.append(target)
        shutil.copy2(source, target)
        logger.debug(f"Copied {source} to {target}")
        return target

    def simplified_copy(self, source: Path) -> Path:
        """Copy `source` into a throwaway directory under a short name.

        Args:
            source: File to copy

        Returns:
            Path of the copy
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)
        workspace = Path(tempfile.mkdtemp(prefix="uploadem_", dir=self.base_dir))
        self._paths.append(workspace)
        target = workspace / simplified_name(source)
        shutil.copy2(source, target)
        logger.debug(f"Copied {source} to {target}")
        return target

    def cleanup(self) -> None:
        """Remove every tracked copy."""
        while self._paths:
            path = self._paths.pop()
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                elif path.exists():
                    path.unlink()
                logger.debug(f"Removed {path}")
            except OSError as e:
                logger.error(f"Failed to remove {path}: {e}")
