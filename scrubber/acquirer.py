"""
ACQUIRER: gets raw image bytes from a multipart upload or a remote URL.
"""
import logging
from dataclasses import dataclass
from typing import Optional
import requests
from fastapi import UploadFile
from scrubber import settings
from scrubber.errors import (
    FetchFailedError,
    FileTooLargeError,
    NoFileProvidedError,
    NoUrlProvidedError,
    UnsupportedTypeError,
)
from scrubber.validation import check_content_type

logger = logging.getLogger("metadata-remover.acquirer")


@dataclass
class ImagePayload:
    data: bytes
    mime_type: str
    source: str

    @property
    def size(self) -> int:
        return len(self.data)


def too_large_message() -> str:
    mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
    return f"Image must be smaller than {mb:g}MB"


async def read_upload(upload: Optional[UploadFile]) -> ImagePayload:
    """
    Buffer an uploaded file after checking its declared type.

    The type check happens before any byte is read, and reading stops as soon
    as the running total passes MAX_UPLOAD_BYTES.
    """
    if upload is None:
        raise NoFileProvidedError()

    check = check_content_type(upload.content_type)
    if not check.accepted:
        raise UnsupportedTypeError(check.reason)

    buf = bytearray()
    while True:
        chunk = await upload.read(settings.UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > settings.MAX_UPLOAD_BYTES:
            raise FileTooLargeError(too_large_message())

    logger.info(f"Upload {upload.filename!r}: {len(buf)} bytes ({check.mime_type})")
    return ImagePayload(data=bytes(buf), mime_type=check.mime_type, source="upload")


def fetch_remote_image(url: Optional[str]) -> ImagePayload:
    """Download url with requests. Blocking; call it from a threadpool."""
    if not url or not url.strip():
        raise NoUrlProvidedError()
    url = url.strip()

    try:
        resp = requests.get(
            url,
            headers={"User-Agent": settings.FETCH_USER_AGENT},
            timeout=settings.FETCH_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise FetchFailedError(f"Failed to fetch image: {e}") from e

    if not resp.ok:
        raise FetchFailedError(f"Failed to fetch image: {resp.reason}")

    # No type or size check on fetched bodies; the transcoder is the only gate.
    logger.info(f"Fetched {url}: {len(resp.content)} bytes (status={resp.status_code})")
    return ImagePayload(data=resp.content, mime_type=resp.headers.get("Content-Type", ""), source="url")
