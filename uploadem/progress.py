"""
Module for capturing transfer output and reporting body progress.
"""
import io
import logging
import threading
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .exceptions import TransferCancelled

logger = logging.getLogger(__name__)

BodyPart = Union[bytes, Path]


class TransferLog:
    """Append-only transcript of a single transfer.

    Written only by the transfer worker; the monitor and resolver read it.
    """

    def __init__(self):
        self._chunks: List[str] = []
        self._length = 0
        self._lock = threading.Lock()

    def write(self, text: str) -> None:
        """Append text to the transcript.

        Args:
            text: Text to append
        """
        with self._lock:
            self._chunks.append(text)
            self._length += len(text)

    def writeline(self, text: str) -> None:
        self.write(text + "\n")

    def text(self) -> str:
        """Return everything written so far."""
        with self._lock:
            return "".join(self._chunks)

    def tail(self, size: int = 256) -> str:
        """Return the last `size` characters of the transcript."""
        with self._lock:
            parts = []
            remaining = size
            for chunk in reversed(self._chunks):
                if remaining <= 0:
                    break
                parts.append(chunk[-remaining:])
                remaining -= len(chunk)
            return "".join(reversed(parts))

    def __len__(self) -> int:
        return self._length


class ProgressReader:
    """File-like request body that writes percent markers as it is read.

    The body is the concatenation of `parts`; byte strings are sent as is and
    paths are streamed from disk. `requests` sends objects exposing `read` and
    `__len__` with a fixed Content-Length.
    """

    def __init__(self, parts: Sequence[BodyPart], transcript: TransferLog,
                 cancelled: Optional[threading.Event] = None,
                 step: float = 0.1):
        """Initialize the reader.

        Args:
            parts: Byte strings and file paths making up the body
            transcript: Transcript that receives progress lines
            cancelled: Event that aborts the transfer when set
            step: Minimum percent advance between progress lines
        """
        self._parts = list(parts)
        self._transcript = transcript
        self._cancelled = cancelled
        self._step = step
        self._total = sum(
            len(p) if isinstance(p, bytes) else p.stat().st_size
            for p in self._parts
        )
        self._index = 0
        self._current = None
        self._sent = 0
        self._last_reported = -1.0

    def __len__(self) -> int:
        return self._total

    def __enter__(self) -> "ProgressReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def bytes_sent(self) -> int:
        return self._sent

    def _open_next(self) -> bool:
        if self._index >= len(self._parts):
            return False
        part = self._parts[self._index]
        self._index += 1
        if isinstance(part, bytes):
            self._current = io.BytesIO(part)
        else:
            self._current = open(part, "rb")
        return True

    def read(self, size: int = -1) -> bytes:
        if self._cancelled is not None and self._cancelled.is_set():
            self.close()
            logger.debug(f"Body read cancelled after {self._sent} bytes")
            raise TransferCancelled("transfer cancelled")

        if size is None or size < 0:
            size = self._total - self._sent

        data = b""
        while len(data) < size:
            if self._current is None and not self._open_next():
                break
            chunk = self._current.read(size - len(data))
            if not chunk:
                self._current.close()
                self._current = None
                continue
            data += chunk

        self._sent += len(data)
        self._report()
        return data

    def _report(self) -> None:
        if not self._total:
            percent = 100.0
        else:
            percent = self._sent * 100.0 / self._total
        if percent >= 100.0 or percent - self._last_reported >= self._step:
            if percent != self._last_reported:
                self._transcript.writeline(f"{percent:.2f}%")
                self._last_reported = percent

    def close(self) -> None:
        if self._current is not None:
            self._current.close()
            self._current = None

