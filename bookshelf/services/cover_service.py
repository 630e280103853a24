"""
Cover image upload and retrieval
"""

from dataclasses import dataclass
from typing import Tuple
import base64
import binascii
import logging
import re
import uuid

from bookshelf.core.errors import BadRequest, NotFound, UpstreamFailure
from bookshelf.services.storage import DEFAULT_CONTENT_TYPE, Storage, StoredBlob


logger = logging.getLogger(__name__)

COVER_PREFIX = "covers/"
COVER_ROUTE = "/r2"

# data:[<mediatype>][;param=value]*;base64,<payload>
_DATA_URI = re.compile(r"^data:(?P<type>[^;,]*)(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass
class UploadedCover:
    key: str
    url: str


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Return (content_type, payload bytes). Only base64 data URIs are accepted."""
    match = _DATA_URI.match(data_uri.strip())
    if not match:
        raise BadRequest("malformed data URI")
    params = [p.strip().lower() for p in match.group("params").split(";") if p.strip()]
    if "base64" not in params:
        raise BadRequest("data URI must be base64 encoded")
    payload = re.sub(r"\s+", "", match.group("payload"))
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BadRequest("invalid base64 payload") from e
    content_type = match.group("type").strip() or DEFAULT_CONTENT_TYPE
    return content_type, data


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename)


def cover_url(key: str) -> str:
    return f"{COVER_ROUTE}/{key}"


def upload_cover(storage: Storage, filename: str, data_uri: str) -> UploadedCover:
    content_type, data = decode_data_uri(data_uri)
    key = f"{COVER_PREFIX}{uuid.uuid4().hex}-{sanitize_filename(filename)}"
    try:
        storage.put_bytes(key, data, content_type=content_type)
    except Exception as e:
        logger.error(f"Cover upload failed for {key}: {e}")
        raise UpstreamFailure("could not store cover") from e
    logger.info(f"Stored cover {key} ({len(data)} bytes, {content_type})")
    return UploadedCover(key=key, url=cover_url(key))


def fetch_cover(storage: Storage, key: str) -> StoredBlob:
    """Absent keys and storage errors both read as not-found"""
    try:
        blob = storage.get_bytes(key)
    except Exception as e:
        logger.warning(f"Cover fetch failed for {key}: {e}")
        raise NotFound("cover not found") from e
    if blob is None:
        raise NotFound("cover not found")
    return blob
