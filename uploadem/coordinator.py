"""
Module for coordinating the paired uploads of each input file.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .config import UploaderConfig
from .formatting import format_size
from .models import (
    Destination,
    FailureMarker,
    FileResult,
    JobState,
    TransferJob,
    UploadBatch,
)
from .monitor import StatusLine, TransferMonitor
from .resolver import resolve
from .scanner import FileScanner
from .staging import EphemeralFiles
from .tracker import UploadTracker
from .uploader import BaseUploader, BuzzheavierUploader, GofileUploader

logger = logging.getLogger(__name__)


class UploadCoordinator:
    """Uploads files one at a time, each to Gofile and BuzzHeavier at once."""

    def __init__(self, config: Optional[UploaderConfig] = None,
                 randomize: bool = False,
                 gofile: Optional[BaseUploader] = None,
                 buzzheavier: Optional[BaseUploader] = None,
                 tracker: Optional[UploadTracker] = None,
                 status: Optional[StatusLine] = None):
        """Initialize the upload coordinator.

        Args:
            config: Uploader settings
            randomize: Upload ephemeral copies with random names
            gofile: Uploader for Gofile
            buzzheavier: Uploader for BuzzHeavier
            tracker: Debug log writer
            status: Console line for progress
        """
        self.config = config or UploaderConfig()
        self.randomize = randomize

        read_timeout = self.config.transfer_timeout or None
        self.gofile = gofile or GofileUploader(
            api_base=self.config.gofile_api,
            connect_timeout=self.config.connect_timeout,
            read_timeout=read_timeout
        )
        self.buzzheavier = buzzheavier or BuzzheavierUploader(
            upload_host=self.config.buzzheavier_upload_host,
            location_id=self.config.buzzheavier_location_id,
            connect_timeout=self.config.connect_timeout,
            read_timeout=read_timeout
        )
        self.scanner = FileScanner()
        self.tracker = tracker or UploadTracker(log_dir=self.config.log_dir)
        self.status = status or StatusLine()
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="transfer")

    def __enter__(self) -> "UploadCoordinator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def upload_files(self, paths: Iterable[Union[str, Path]]) -> UploadBatch:
        """Upload every file in order, skipping the ones that do not exist.

        Args:
            paths: Paths given on the command line

        Returns:
            UploadBatch with one result per uploaded file
        """
        batch = UploadBatch()
        for path in self.scanner.scan(paths):
            batch.add(self.process_file(path))

        self.tracker.log_batch_summary(batch)
        return batch

    def process_file(self, source: Path) -> FileResult:
        """Upload one file to both destinations.

        Args:
            source: File to upload

        Returns:
            FileResult with the Gofile and BuzzHeavier results
        """
        with EphemeralFiles(self.config.scratch_dir) as ephemeral:
            try:
                logger.info(f"Uploading {source.name} ({format_size(source.stat().st_size)})")
                jobs = self._prepare_jobs(source, ephemeral)
            except OSError as e:
                logger.error(f"Could not prepare {source.name} for upload: {e}")
                return FileResult(
                    stem=source.stem,
                    gofile=FailureMarker.UPLOAD_FAILED,
                    buzzheavier=FailureMarker.UPLOAD_FAILED
                )

            finished = self._run(jobs)

            for job, completed in zip(jobs, finished):
                job.resolve(resolve(job) if completed else FailureMarker.NO_RESPONSE)
                self.tracker.log_transfer(source.stem, job)

        gofile_job, buzzheavier_job = jobs
        return FileResult(
            stem=source.stem,
            gofile=gofile_job.result,
            buzzheavier=buzzheavier_job.result
        )

    def _prepare_jobs(self, source: Path,
                      ephemeral: EphemeralFiles) -> List[TransferJob]:
        transfer_path = source
        if self.randomize:
            transfer_path = ephemeral.randomized_copy(source)

        gofile_job = TransferJob.for_file(
            transfer_path, Destination.GOFILE,
            use_ephemeral_name=self.randomize
        )

        if source.suffix.lower() in self.config.simplify_extensions:
            buzzheavier_job = TransferJob.for_file(
                ephemeral.simplified_copy(transfer_path), Destination.BUZZHEAVIER,
                use_ephemeral_name=True,
                simplified_name=True
            )
        else:
            buzzheavier_job = TransferJob.for_file(
                transfer_path, Destination.BUZZHEAVIER,
                use_ephemeral_name=self.randomize
            )

        return [gofile_job, buzzheavier_job]

    def _uploader_for(self, job: TransferJob) -> BaseUploader:
        if job.destination is Destination.GOFILE:
            return self.gofile
        return self.buzzheavier

    def _run(self, jobs: List[TransferJob]) -> List[bool]:
        """Run the jobs concurrently, each with its own monitor.

        Args:
            jobs: Jobs for a single file

        Returns:
            For each job, whether its transfer finished before the timeout
        """
        monitors = [
            TransferMonitor(
                job, self.status,
                poll_interval=self.config.poll_interval,
                rate_interval=self.config.rate_interval,
                min_duration=self.config.min_display_seconds
            )
            for job in jobs
        ]

        futures: List[Future] = []
        try:
            for job, monitor in zip(jobs, monitors):
                job.state = JobState.IN_FLIGHT
                futures.append(self._executor.submit(self._uploader_for(job).transfer, job))
                monitor.start()

            timeout = self.config.transfer_timeout or None
            deadline = time.monotonic() + timeout if timeout else None
            finished = []
            for job, future in zip(jobs, futures):
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                try:
                    future.result(timeout=remaining)
                    finished.append(True)
                except FutureTimeout:
                    logger.warning(
                        f"No response from {job.destination.value} for "
                        f"{job.file_path.name} after {timeout}s"
                    )
                    self._abandon(job, future)
                    finished.append(False)
        except BaseException:
            for job in jobs:
                job.cancelled.set()
                job.done.set()
            raise
        finally:
            for monitor in monitors:
                monitor.join()

        return finished

    def _abandon(self, job: TransferJob, future: Future) -> None:
        """Cancel a transfer and give its worker a moment to exit."""
        job.cancelled.set()
        future.cancel()
        job.done.wait(self.config.connect_timeout)
        job.done.set()
