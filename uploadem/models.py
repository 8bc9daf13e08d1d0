"""
Module containing data models for the uploader.
"""
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from .progress import TransferLog


class Destination(Enum):
    """Remote services every file is uploaded to."""
    GOFILE = "Gofile"
    BUZZHEAVIER = "BuzzHeavier"


class JobState(Enum):
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureMarker(Enum):
    """Typed failure shown in place of a URL in the final report."""
    UPLOAD_FAILED = "[Upload Failed]"
    INVALID_RESPONSE = "[Invalid Response]"
    NO_RESPONSE = "[No Response]"

    def __str__(self) -> str:
        return self.value


Result = Union[str, FailureMarker]


@dataclass
class TransferResponse:
    """Terminal state of a transfer as seen by the worker."""
    status_code: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    error: Optional[str] = None
    timed_out: bool = False


@dataclass
class TransferJob:
    """One upload attempt of one file to one destination."""
    file_path: Path
    size_bytes: int
    destination: Destination
    use_ephemeral_name: bool = False
    simplified_name: bool = False
    state: JobState = JobState.PENDING
    endpoint: Optional[str] = None
    transcript: TransferLog = field(default_factory=TransferLog)
    response: Optional[TransferResponse] = None
    result: Optional[Result] = None
    done: threading.Event = field(default_factory=threading.Event)
    cancelled: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def for_file(cls, file_path: Path, destination: Destination,
                 **kwargs) -> "TransferJob":
        """Create a job, capturing the file size once."""
        return cls(
            file_path=file_path,
            size_bytes=file_path.stat().st_size,
            destination=destination,
            **kwargs
        )

    def resolve(self, result: Result) -> None:
        """Assign the job's result and move it to its terminal state.

        Args:
            result: Canonical URL or failure marker

        Raises:
            RuntimeError: If the job already has a result
        """
        if self.result is not None:
            raise RuntimeError(
                f"{self.destination.value} job for {self.file_path} already resolved"
            )
        self.result = result
        if isinstance(result, FailureMarker):
            self.state = JobState.FAILED
        else:
            self.state = JobState.COMPLETED


@dataclass
class FileResult:
    """Results of both destinations for a single input file."""
    stem: str
    gofile: Result
    buzzheavier: Result

    def lines(self) -> List[str]:
        return [self.stem, str(self.gofile), str(self.buzzheavier)]


@dataclass
class UploadBatch:
    """Ordered results of one invocation."""
    results: List[FileResult] = field(default_factory=list)

    def add(self, result: FileResult) -> None:
        self.results.append(result)

    @property
    def total_files(self) -> int:
        return len(self.results)

    @property
    def failed_uploads(self) -> int:
        return sum(
            1 for r in self.results
            for value in (r.gofile, r.buzzheavier)
            if isinstance(value, FailureMarker)
        )

    def render(self) -> str:
        """Render the report: three lines per file, blank line between files."""
        return "\n\n".join("\n".join(r.lines()) for r in self.results)
