"""
Module for turning raw transfer output into a canonical link.

Gofile answers with a stable JSON envelope. BuzzHeavier may answer with a
redirect, an inline JSON body, a bare id or a bare URL, so its response is run
through an ordered chain of extractors where the first match wins.
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from .models import Destination, FailureMarker, Result, TransferJob

logger = logging.getLogger(__name__)

BUZZHEAVIER_BASE_URL = "https://buzzheavier.com"

PUBLIC_URL_PATTERN = re.compile(
    r"https?://(?:www\.)?buzzheavier\.com/([A-Za-z0-9][A-Za-z0-9_-]*)"
)
BARE_ID_PATTERN = re.compile(r'"id"\s*:\s*"([A-Za-z0-9_-]+)"')
LOCATION_PATTERN = re.compile(r"^<\s*location:\s*(\S+)", re.IGNORECASE | re.MULTILINE)
RELATIVE_PATH_PATTERN = re.compile(r"^/([A-Za-z0-9][A-Za-z0-9_-]*)/?$")
UPLOAD_SEQUENCE_PATTERN = re.compile(
    r"upload[-_ ]?seq(?:uence)?(?:[-_ ]?(?:number|no|id))?[\"']?\s*[:=#]\s*[\"']?([A-Za-z0-9]+)",
    re.IGNORECASE
)

# Paths on the public host that belong to the site or its API, never a file.
RESERVED_PATHS = frozenset({"api", "upload", "uploads", "login", "register", "help", "faq", "tos"})


@dataclass(frozen=True)
class ResponseContext:
    """Inputs shared by all extractors."""
    body: str
    transcript: str
    simplified_name: bool = False
    status_code: Optional[int] = None


Extractor = Callable[[ResponseContext], Optional[Result]]


def public_url(token: str) -> str:
    return f"{BUZZHEAVIER_BASE_URL}/{token}"


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def find_public_url(text: str) -> Optional[str]:
    """Return the first public file URL in `text`, skipping reserved paths."""
    for match in PUBLIC_URL_PATTERN.finditer(text):
        token = match.group(1)
        if token.lower() in RESERVED_PATHS:
            continue
        return public_url(token)
    return None


def url_in_body(ctx: ResponseContext) -> Optional[Result]:
    return find_public_url(ctx.body)


def json_object_id(ctx: ResponseContext) -> Optional[Result]:
    """Synthesize the URL from an `id` or `data.id` field of a JSON body.

    A present but null or empty id means the service answered without a file.
    """
    payload = _load_json(ctx.body)
    if not isinstance(payload, dict):
        return None

    for container in (payload.get("data"), payload):
        if isinstance(container, dict) and "id" in container:
            object_id = container["id"]
            if object_id is None or not str(object_id).strip():
                return FailureMarker.INVALID_RESPONSE
            return public_url(str(object_id).strip())
    return None


def url_in_transcript(ctx: ResponseContext) -> Optional[Result]:
    return find_public_url(ctx.transcript)


def bare_id(ctx: ResponseContext) -> Optional[Result]:
    match = BARE_ID_PATTERN.search(ctx.body)
    if match:
        return public_url(match.group(1))
    return None


def redirect_header(ctx: ResponseContext) -> Optional[Result]:
    """Follow a `Location:` header line recorded in the transcript."""
    for match in LOCATION_PATTERN.finditer(ctx.transcript):
        target = match.group(1)
        url = find_public_url(target)
        if url:
            return url
        relative = RELATIVE_PATH_PATTERN.match(target)
        if relative and relative.group(1).lower() not in RESERVED_PATHS:
            return public_url(relative.group(1))
    return None


def upload_sequence(ctx: ResponseContext) -> Optional[Result]:
    """Last resort for archives uploaded under a simplified name.

    Best effort: the service has been seen to only echo an upload sequence
    token for these files.
    """
    if not ctx.simplified_name:
        return None
    match = UPLOAD_SEQUENCE_PATTERN.search(ctx.transcript)
    if match:
        return public_url(match.group(1))
    return FailureMarker.UPLOAD_FAILED


BUZZHEAVIER_CHAIN: Sequence[Extractor] = (
    url_in_body,
    json_object_id,
    url_in_transcript,
    bare_id,
    redirect_header,
    upload_sequence,
)


def resolve_buzzheavier(ctx: ResponseContext,
                        chain: Sequence[Extractor] = BUZZHEAVIER_CHAIN) -> Result:
    """Run the extractor chain, returning the first match.

    Args:
        ctx: Response body and transcript of the transfer
        chain: Ordered extractors

    Returns:
        Canonical URL or failure marker
    """
    if ctx.status_code is not None and ctx.status_code >= 400:
        # Error pages link to site paths; only an explicit id counts.
        result = json_object_id(ctx)
        logger.debug(f"BuzzHeavier answered {ctx.status_code}, id lookup gave {result}")
        return result or FailureMarker.UPLOAD_FAILED

    for extractor in chain:
        result = extractor(ctx)
        if result is not None:
            logger.debug(f"BuzzHeavier result from {extractor.__name__}: {result}")
            return result
    return FailureMarker.UPLOAD_FAILED


def resolve_gofile(body: Optional[str]) -> Result:
    """Extract the download page from a Gofile upload response.

    Args:
        body: Raw response body

    Returns:
        Download page URL, `UPLOAD_FAILED` when the body is not an ok envelope,
        `INVALID_RESPONSE` when an ok envelope carries no download page
    """
    payload = _load_json(body) if body else None
    if not isinstance(payload, dict) or payload.get("status") != "ok":
        return FailureMarker.UPLOAD_FAILED

    data = payload.get("data")
    page = data.get("downloadPage") if isinstance(data, dict) else None
    if not page:
        return FailureMarker.INVALID_RESPONSE
    return page


def resolve(job: TransferJob) -> Result:
    """Compute the result of a finished job without assigning it."""
    response = job.response
    if response is None or response.timed_out:
        return FailureMarker.NO_RESPONSE

    if job.destination is Destination.GOFILE:
        return resolve_gofile(response.body)

    ctx = ResponseContext(
        body=response.body or "",
        transcript=job.transcript.text(),
        simplified_name=job.simplified_name,
        status_code=response.status_code
    )
    return resolve_buzzheavier(ctx)
