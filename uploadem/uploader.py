"""
Module for transferring files to Gofile and BuzzHeavier.
"""
import logging
import mimetypes
import random
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_log,
    after_log
)

from .exceptions import ServiceError
from .models import TransferJob, TransferResponse
from .progress import ProgressReader, TransferLog

logger = logging.getLogger(__name__)

DEFAULT_GOFILE_API = "https://api.gofile.io"
DEFAULT_BUZZHEAVIER_HOST = "https://w.buzzheavier.com"
DEFAULT_LOCATION_ID = "12brteedoy0f"


def is_retryable_error(exception: BaseException) -> bool:
    """Check if an exception should trigger a retry.

    Args:
        exception: The exception to check

    Returns:
        True if the error is retryable, False otherwise
    """
    if isinstance(exception, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(exception, requests.HTTPError):
        response = exception.response
        return response is not None and response.status_code >= 500
    return False


def record_response(transcript: TransferLog,
                    response: requests.Response) -> TransferResponse:
    """Append a response's status, headers and body to the transcript.

    Args:
        transcript: Transcript of the transfer
        response: Response returned by the service

    Returns:
        TransferResponse holding the same data
    """
    transcript.writeline(f"< HTTP {response.status_code} {response.reason or ''}".rstrip())
    headers = dict(response.headers)
    for name, value in headers.items():
        transcript.writeline(f"< {name}: {value}")
    body = response.text
    transcript.writeline("")
    transcript.writeline(body)
    return TransferResponse(
        status_code=response.status_code,
        headers=headers,
        body=body
    )


class BaseUploader:
    """Runs one transfer and records its outcome on the job.

    Subclasses implement `_send`, which performs the requests and returns the
    final response. Every exit path sets `job.response` and `job.done`.
    """

    def __init__(self, session: Optional[requests.Session] = None,
                 connect_timeout: float = 30,
                 read_timeout: Optional[float] = None):
        self.session = session or requests.Session()
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout

    @property
    def timeout(self) -> Tuple[float, Optional[float]]:
        return (self.connect_timeout, self.read_timeout)

    def _send(self, job: TransferJob) -> requests.Response:
        raise NotImplementedError

    def transfer(self, job: TransferJob) -> TransferResponse:
        """Upload the job's file, recording the response on the job.

        Args:
            job: Job to run

        Returns:
            The recorded TransferResponse
        """
        name = job.destination.value
        record = TransferResponse()
        try:
            response = self._send(job)
            record = record_response(job.transcript, response)
            logger.debug(f"{name} answered {response.status_code} for {job.file_path.name}")
        except Exception as e:
            timed_out = job.cancelled.is_set() or isinstance(e, requests.Timeout)
            job.transcript.writeline(f"* {type(e).__name__}: {e}")
            record = TransferResponse(error=str(e), timed_out=timed_out)
            if timed_out:
                logger.warning(f"{name} transfer of {job.file_path.name} timed out")
            else:
                logger.error(f"Error uploading {job.file_path.name} to {name}: {e}")
        finally:
            job.response = record
            job.done.set()
        return record


@dataclass
class GofileSession:
    token: str
    root_folder: str


class GofileUploader(BaseUploader):
    """Uploads into a fresh public folder of an anonymous Gofile account."""

    def __init__(self, api_base: str = DEFAULT_GOFILE_API, **kwargs):
        super().__init__(**kwargs)
        self.api_base = api_base.rstrip("/")

    @retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        before=before_log(logger, logging.DEBUG),
        after=after_log(logger, logging.DEBUG),
        reraise=True
    )
    def _api(self, method: str, path: str, token: Optional[str] = None,
             **kwargs) -> Dict[str, Any]:
        """Call a Gofile API endpoint with retries.

        Args:
            method: HTTP method
            path: Path below the API base
            token: Bearer token, if the call is authenticated

        Returns:
            The `data` member of the response envelope

        Raises:
            ServiceError: If the envelope status is not "ok"
        """
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        response = self.session.request(
            method,
            f"{self.api_base}{path}",
            headers=headers,
            timeout=(self.connect_timeout, self.connect_timeout),
            **kwargs
        )
        if response.status_code >= 500:
            response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise ServiceError(f"{method} {path}: response is not JSON") from e
        if not isinstance(payload, dict) or payload.get("status") != "ok":
            status = payload.get("status") if isinstance(payload, dict) else None
            raise ServiceError(f"{method} {path}: status {status!r}")
        return payload.get("data") or {}

    def create_session(self) -> GofileSession:
        """Create an anonymous account and find its root folder."""
        data = self._api("POST", "/accounts")
        token = data.get("token")
        if not token:
            raise ServiceError("account creation returned no token")

        root_folder = data.get("rootFolder")
        if not root_folder and data.get("id"):
            account = self._api("GET", f"/accounts/{data['id']}", token=token)
            root_folder = account.get("rootFolder")
        if not root_folder:
            raise ServiceError("account has no root folder")
        return GofileSession(token=token, root_folder=root_folder)

    def pick_server(self) -> str:
        """Pick an upload server from the pool the service reports."""
        data = self._api("GET", "/servers")
        servers = [s.get("name") for s in data.get("servers", []) if s.get("name")]
        if not servers:
            raise ServiceError("no upload servers available")
        return random.choice(servers)

    def create_public_folder(self, session: GofileSession) -> str:
        data = self._api(
            "POST", "/contents/createFolder",
            token=session.token,
            json={"parentFolderId": session.root_folder}
        )
        folder_id = data.get("id")
        if not folder_id:
            raise ServiceError("folder creation returned no id")

        self._api(
            "PUT", f"/contents/{folder_id}/update",
            token=session.token,
            json={"attribute": "public", "attributeValue": "true"}
        )
        return folder_id

    def _send(self, job: TransferJob) -> requests.Response:
        transcript = job.transcript
        transcript.writeline(f"* Creating {job.destination.value} session")
        session = self.create_session()
        server = self.pick_server()
        folder_id = self.create_public_folder(session)

        url = f"https://{server}.gofile.io/contents/uploadfile"
        job.endpoint = url
        boundary = uuid.uuid4().hex
        head, tail = multipart_envelope(boundary, job.file_path.name, folder_id)
        transcript.writeline(f"> POST {url}")
        with ProgressReader([head, job.file_path, tail], transcript, job.cancelled) as body:
            return self.session.post(
                url,
                data=body,
                headers={
                    "Authorization": f"Bearer {session.token}",
                    "Content-Type": f"multipart/form-data; boundary={boundary}"
                },
                timeout=self.timeout
            )


def multipart_envelope(boundary: str, filename: str,
                       folder_id: str) -> Tuple[bytes, bytes]:
    """Build the parts of a multipart body surrounding the file content.

    Args:
        boundary: Multipart boundary
        filename: File name announced to the server
        folder_id: Target folder

    Returns:
        (bytes before the file content, bytes after it)
    """
    content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
    safe_name = filename.replace('"', "%22")
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="folderId"\r\n\r\n'
        f"{folder_id}\r\n"
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="file"; filename="{safe_name}"\r\n'
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head, tail


class BuzzheavierUploader(BaseUploader):
    """Streams the raw file to BuzzHeavier with a single PUT."""

    def __init__(self, upload_host: str = DEFAULT_BUZZHEAVIER_HOST,
                 location_id: str = DEFAULT_LOCATION_ID, **kwargs):
        super().__init__(**kwargs)
        self.upload_host = upload_host.rstrip("/")
        self.location_id = location_id

    def upload_url(self, filename: str) -> str:
        return f"{self.upload_host}/{quote(filename, safe='')}?locationId={self.location_id}"

    def _send(self, job: TransferJob) -> requests.Response:
        url = self.upload_url(job.file_path.name)
        job.endpoint = url
        job.transcript.writeline(f"> PUT {url}")
        with ProgressReader([job.file_path], job.transcript, job.cancelled) as body:
            # Location headers are read by the resolver; do not follow them.
            return self.session.put(
                url,
                data=body,
                headers={"Content-Type": "application/octet-stream"},
                timeout=self.timeout,
                allow_redirects=False
            )
