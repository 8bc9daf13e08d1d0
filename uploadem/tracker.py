"""
Module for writing per-upload debug logs and batch summaries.
"""
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from .models import TransferJob, UploadBatch

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class UploadTracker:
    """Records what each transfer sent and received for troubleshooting."""

    def __init__(self, log_dir: Optional[Path] = None):
        """Initialize the upload tracker.

        Args:
            log_dir: Directory to store debug logs. If None, nothing is written.
        """
        self.log_dir = log_dir
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_path(self, name: str) -> Optional[Path]:
        """Get the path for a new debug log.

        Args:
            name: Identifying part of the file name

        Returns:
            Path to the log file, or None if not logging to disk
        """
        if not self.log_dir:
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return self.log_dir / f"upload_{_UNSAFE.sub('_', name)}_{timestamp}.json"

    def _write(self, log_path: Optional[Path], log_data: dict) -> None:
        if not log_path:
            return
        try:
            with open(log_path, 'w') as f:
                json.dump(log_data, f, indent=2)
        except OSError as e:
            logger.error(f"Error writing debug log {log_path}: {e}")

    def log_transfer(self, stem: str, job: TransferJob) -> Optional[Path]:
        """Write the debug log of a finished transfer.

        Args:
            stem: Original file name without extension
            job: Resolved transfer job

        Returns:
            Path of the log written, if any
        """
        response = job.response
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "file": stem,
            "transfer_path": str(job.file_path),
            "size_bytes": job.size_bytes,
            "destination": job.destination.value,
            "ephemeral_name": job.use_ephemeral_name,
            "simplified_name": job.simplified_name,
            "endpoint": job.endpoint,
            "result": str(job.result) if job.result is not None else None,
            "status_code": response.status_code if response else None,
            "error": response.error if response else None,
            "timed_out": response.timed_out if response else False,
            "raw_response": response.body if response else None,
            "transcript": job.transcript.text()
        }

        log_path = self._get_log_path(f"{stem}_{job.destination.value.lower()}")
        self._write(log_path, log_data)
        logger.debug(f"{job.destination.value} result for {stem}: {job.result}")
        return log_path

    def log_batch_summary(self, batch: UploadBatch) -> None:
        """Log the summary of a completed batch.

        Args:
            batch: UploadBatch of the invocation
        """
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "total_files": batch.total_files,
            "failed_uploads": batch.failed_uploads,
            "results": [
                {
                    "file": r.stem,
                    "gofile": str(r.gofile),
                    "buzzheavier": str(r.buzzheavier)
                }
                for r in batch.results
            ]
        }

        self._write(self._get_log_path("summary"), log_data)

        successful = batch.total_files * 2 - batch.failed_uploads
        logger.info(
            f"Completed batch: {successful}/{batch.total_files * 2} "
            f"uploads succeeded for {batch.total_files} files"
        )
