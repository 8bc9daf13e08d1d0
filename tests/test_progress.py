"""
Tests for the transfer transcript and progress-reporting body.
"""
import re
import threading

import pytest

from uploadem.exceptions import TransferCancelled
from uploadem.progress import ProgressReader, TransferLog


def test_transfer_log_appends_and_tails():
    """Test that the transcript keeps everything and tails the end."""
    log = TransferLog()
    log.write("abc")
    log.writeline("def")
    log.write("ghij")

    assert log.text() == "abcdef\nghij"
    assert len(log) == len("abcdef\nghij")
    assert log.tail(6) == "f\nghij"
    assert log.tail(100) == "abcdef\nghij"


def test_reader_concatenates_parts(tmp_path):
    """Test that the body is the head, the file and the tail in order."""
    path = tmp_path / "data.bin"
    path.write_bytes(b"0123456789")
    reader = ProgressReader([b"<", path, b">"], TransferLog())

    assert len(reader) == 12
    chunks = []
    while True:
        chunk = reader.read(5)
        if not chunk:
            break
        chunks.append(chunk)

    assert b"".join(chunks) == b"<0123456789>"
    assert reader.bytes_sent == 12


def test_reader_reports_increasing_percentages(tmp_path):
    """Test that percent markers are written and never go backwards."""
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 1000)
    transcript = TransferLog()
    reader = ProgressReader([path], transcript)

    while reader.read(100):
        pass

    percents = [float(p) for p in re.findall(r"([\d.]+)%", transcript.text())]
    assert percents[-1] == 100.0
    assert percents == sorted(percents)


def test_reader_read_all_at_once(tmp_path):
    """Test that read() without a size returns the whole body."""
    path = tmp_path / "data.bin"
    path.write_bytes(b"payload")
    reader = ProgressReader([b"--", path], TransferLog())

    assert reader.read() == b"--payload"
    assert reader.read() == b""


def test_reader_stops_when_cancelled(tmp_path):
    """Test that a cancelled transfer aborts on the next read."""
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 100)
    cancelled = threading.Event()
    reader = ProgressReader([path], TransferLog(), cancelled)

    assert reader.read(10) == b"x" * 10
    cancelled.set()
    with pytest.raises(TransferCancelled):
        reader.read(10)


def test_reader_closes_file_on_exit(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"x" * 100)

    with pytest.raises(OSError):
        with ProgressReader([path], TransferLog()) as reader:
            reader.read(10)
            handle = reader._current
            raise OSError("broken pipe")

    assert handle.closed
