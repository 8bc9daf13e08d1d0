"""
Module for rendering live progress of in-flight transfers.
"""
import re
import sys
import threading
import time
import logging
from typing import Callable, Dict, Optional, TextIO

from .formatting import (
    render_active,
    render_complete,
    render_progress,
    render_starting,
)
from .models import TransferJob

logger = logging.getLogger(__name__)

PERCENT_PATTERN = re.compile(r"(\d{1,3}(?:\.\d{1,2})?)%")


def parse_percent(text: str) -> Optional[float]:
    """Return the last percentage token in `text`, if any.

    Args:
        text: Transcript excerpt

    Returns:
        Percent in [0, 100], or None when no token is present
    """
    matches = PERCENT_PATTERN.findall(text)
    if not matches:
        return None
    return min(float(matches[-1]), 100.0)


class StatusLine:
    """Single, continuously overwritten console line shared by monitors."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stderr
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    def update(self, key: str, text: str) -> None:
        with self._lock:
            self._entries[key] = text
            self._redraw()

    def complete(self, key: str, text: str) -> None:
        """Print a permanent line for `key` and drop it from the live line."""
        with self._lock:
            self._entries.pop(key, None)
            self._stream.write(f"\r\033[2K{text}\n")
            if self._entries:
                self._redraw()
            else:
                self._stream.flush()

    def _redraw(self) -> None:
        self._stream.write("\r\033[2K" + " | ".join(self._entries.values()))
        self._stream.flush()


class TransferMonitor:
    """Samples an in-flight transfer's transcript and renders its status.

    The monitor only observes completion: the transfer worker sets
    `job.done` when it exits.
    """

    def __init__(self, job: TransferJob, status: StatusLine,
                 poll_interval: float = 0.2,
                 rate_interval: float = 0.5,
                 min_duration: float = 1.5,
                 active_threshold: int = 64,
                 clock: Callable[[], float] = time.monotonic):
        """Initialize the monitor.

        Args:
            job: Job to observe
            status: Console line to render into
            poll_interval: Seconds between samples
            rate_interval: Minimum seconds between throughput updates
            min_duration: Minimum seconds the status stays visible
            active_threshold: Transcript size above which the transfer is
                reported as active before any percentage is seen
            clock: Monotonic time source
        """
        self.job = job
        self.status = status
        self.poll_interval = poll_interval
        self.rate_interval = rate_interval
        self.min_duration = min_duration
        self.active_threshold = active_threshold
        self._clock = clock
        self._started: Optional[float] = None
        self._percent = 0.0
        self._seen_percent = False
        self._rate = 0.0
        self._last_sample: Optional[tuple] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def service(self) -> str:
        return self.job.destination.value

    @property
    def transferred_bytes(self) -> int:
        return int(self.job.size_bytes * self._percent / 100)

    def sample(self) -> str:
        """Take one sample of the transcript and return the status line."""
        now = self._clock()
        if self._started is None:
            self._started = now

        percent = parse_percent(self.job.transcript.tail())
        if percent is None and not self._seen_percent:
            if len(self.job.transcript) > self.active_threshold:
                return render_active(self.service, now - self._started)
            return render_starting(self.service)

        if percent is not None:
            self._seen_percent = True
            self._percent = max(self._percent, percent)

        transferred = self.transferred_bytes
        if self._last_sample is None:
            self._last_sample = (now, transferred)
        else:
            last_time, last_bytes = self._last_sample
            elapsed = now - last_time
            if elapsed > self.rate_interval:
                self._rate = (transferred - last_bytes) / elapsed
                self._last_sample = (now, transferred)

        return render_progress(self.service, self._rate, transferred,
                               self.job.size_bytes, self._percent)

    def run(self) -> None:
        """Render status lines until the job completes."""
        key = self.service
        start = self._clock()
        try:
            self.status.update(key, self.sample())
            while not self.job.done.wait(self.poll_interval):
                self.status.update(key, self.sample())

            remaining = self.min_duration - (self._clock() - start)
            if remaining > 0:
                time.sleep(remaining)
        except Exception as e:
            logger.debug(f"Monitor for {key} stopped rendering: {e}")
        self.status.complete(key, render_complete(self.service))

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self.run,
            name=f"monitor-{self.service.lower()}",
            daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
