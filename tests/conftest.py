"""
Test fixtures for the uploader.
"""
import io
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from uploadem.config import UploaderConfig
from uploadem.coordinator import UploadCoordinator
from uploadem.monitor import StatusLine
from uploadem.tracker import UploadTracker
from uploadem.uploader import BuzzheavierUploader, GofileUploader

GOFILE_PAGE = "https://gofile.io/d/abc123"
BUZZHEAVIER_ID = "bh12345"


def make_response(status_code=200, body="", headers=None, reason="OK"):
    """Build a real requests.Response with the given content."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


def ok(data):
    return make_response(body=json.dumps({"status": "ok", "data": data}))


def drain(body):
    """Read a request body to the end, as the HTTP stack would."""
    while body.read(8192):
        pass


def gofile_api(method, url, **kwargs):
    if url.endswith("/accounts"):
        return ok({"token": "tok123", "id": "acc1", "rootFolder": "root1"})
    if url.endswith("/servers"):
        return ok({"servers": [{"name": "store1", "zone": "eu"}]})
    if url.endswith("/contents/createFolder"):
        return ok({"id": "folder1"})
    if url.endswith("/update"):
        return ok({})
    return make_response(status_code=404, body='{"status":"error-notFound"}')


@pytest.fixture
def tmp_upload_dir(tmp_path):
    """Create a temporary directory for test files."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    return upload_dir


@pytest.fixture
def tmp_log_dir(tmp_path):
    """Create a temporary directory for logs."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def tmp_scratch_dir(tmp_path):
    """Directory receiving ephemeral copies."""
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return scratch


@pytest.fixture
def sample_file(tmp_upload_dir):
    path = tmp_upload_dir / "test.txt"
    path.write_text("test content")
    return path


@pytest.fixture
def fast_config(tmp_log_dir, tmp_scratch_dir):
    """Config with short intervals for tests."""
    return UploaderConfig(
        log_dir=tmp_log_dir,
        scratch_dir=tmp_scratch_dir,
        transfer_timeout=5,
        poll_interval=0.01,
        rate_interval=0.02,
        min_display_seconds=0,
        connect_timeout=1
    )


@pytest.fixture
def gofile_session():
    """Mock Gofile HTTP session answering every call with ok."""
    session = MagicMock()
    session.request.side_effect = gofile_api

    def post(url, data=None, **kwargs):
        drain(data)
        return ok({"downloadPage": GOFILE_PAGE, "id": "file1"})

    session.post.side_effect = post
    return session


@pytest.fixture
def buzzheavier_session():
    """Mock BuzzHeavier HTTP session answering with a JSON id."""
    session = MagicMock()

    def put(url, data=None, **kwargs):
        drain(data)
        return make_response(status_code=201, body=json.dumps({"data": {"id": BUZZHEAVIER_ID}}))

    session.put.side_effect = put
    return session


@pytest.fixture
def status_stream():
    return io.StringIO()


@pytest.fixture
def upload_coordinator(fast_config, gofile_session, buzzheavier_session, status_stream):
    """Create a test upload coordinator with mocked HTTP sessions."""
    coordinator = UploadCoordinator(
        config=fast_config,
        gofile=GofileUploader(session=gofile_session, connect_timeout=1),
        buzzheavier=BuzzheavierUploader(session=buzzheavier_session, connect_timeout=1),
        tracker=UploadTracker(log_dir=fast_config.log_dir),
        status=StatusLine(stream=status_stream)
    )
    yield coordinator
    coordinator.shutdown()
