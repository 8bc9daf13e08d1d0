"""
Tests for the upload tracker component.
"""
import json
from pathlib import Path

from uploadem.models import (
    Destination,
    FailureMarker,
    FileResult,
    TransferJob,
    TransferResponse,
    UploadBatch,
)
from uploadem.tracker import UploadTracker


def resolved_job(path: Path) -> TransferJob:
    job = TransferJob.for_file(path, Destination.BUZZHEAVIER, simplified_name=True)
    job.endpoint = "https://w.buzzheavier.com/ab12cd34.zip?locationId=x"
    job.transcript.writeline("> PUT https://w.buzzheavier.com/ab12cd34.zip?locationId=x")
    job.response = TransferResponse(status_code=201, body='{"data": {"id": "q1"}}')
    job.resolve("https://buzzheavier.com/q1")
    return job


def test_log_transfer_writes_debug_record(tmp_log_dir, sample_file):
    """Test that the debug log holds file identity, URL and raw response."""
    tracker = UploadTracker(log_dir=tmp_log_dir)

    log_path = tracker.log_transfer("my archive", resolved_job(sample_file))

    assert log_path.parent == tmp_log_dir
    assert log_path.name.startswith("upload_my_archive_buzzheavier_")
    data = json.loads(log_path.read_text())
    assert data["file"] == "my archive"
    assert data["destination"] == "BuzzHeavier"
    assert data["size_bytes"] == sample_file.stat().st_size
    assert data["endpoint"].startswith("https://w.buzzheavier.com/")
    assert data["result"] == "https://buzzheavier.com/q1"
    assert data["status_code"] == 201
    assert data["raw_response"] == '{"data": {"id": "q1"}}'
    assert data["simplified_name"] is True
    assert "> PUT" in data["transcript"]


def test_log_transfer_without_log_dir(sample_file):
    tracker = UploadTracker()
    assert tracker.log_transfer("test", resolved_job(sample_file)) is None


def test_log_dir_is_created(tmp_path):
    log_dir = tmp_path / "nested" / "logs"
    UploadTracker(log_dir=log_dir)
    assert log_dir.is_dir()


def test_batch_summary_is_logged(tmp_log_dir, caplog):
    tracker = UploadTracker(log_dir=tmp_log_dir)
    batch = UploadBatch()
    batch.add(FileResult("a", "https://gofile.io/d/1", "https://buzzheavier.com/1"))
    batch.add(FileResult("b", FailureMarker.NO_RESPONSE, "https://buzzheavier.com/2"))

    with caplog.at_level("INFO", logger="uploadem.tracker"):
        tracker.log_batch_summary(batch)

    summary = json.loads(next(tmp_log_dir.glob("upload_summary_*.json")).read_text())
    assert summary["total_files"] == 2
    assert summary["failed_uploads"] == 1
    assert summary["results"][1] == {
        "file": "b",
        "gofile": "[No Response]",
        "buzzheavier": "https://buzzheavier.com/2"
    }
    assert "3/4 uploads succeeded for 2 files" in caplog.text
