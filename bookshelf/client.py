"""
HTTP client for the library, reader and editor flows
"""

from typing import Any, Callable, Dict, List, Optional
import base64
import logging
import mimetypes

import requests

from bookshelf.reader.session import reader_url


logger = logging.getLogger(__name__)

DEFAULT_SPINE = "/default-spine.png"
DEFAULT_TIMEOUT = 30


class EditorError(Exception):
    pass


class AuthFailed(EditorError):
    def __init__(self, message: str = "auth-failed") -> None:
        super().__init__(message)


def _ok(resp) -> bool:
    return 200 <= resp.status_code < 300


def _error_message(resp, default: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


def to_data_uri(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def library_tiles(summaries: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Shelf tiles: cover image (or the default spine) linking to the reader"""
    return [
        {
            "id": s["id"],
            "title": s.get("title") or "",
            "image": s.get("cover") or DEFAULT_SPINE,
            "href": reader_url(s["id"]),
        }
        for s in summaries
    ]


class ShelfClient:
    """Read-only access: listing and fetching books"""

    def __init__(self, base_url: str, http: Optional[Any] = None, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def list_books(self) -> List[Dict[str, Any]]:
        resp = self.http.get(self._url("/api/books"), timeout=self.timeout)
        if not _ok(resp):
            raise EditorError(_error_message(resp, "Failed to load"))
        return resp.json()

    def get_book(self, book_id: str) -> Dict[str, Any]:
        """Full book record; usable as ReaderSession.load's fetcher"""
        resp = self.http.get(self._url(f"/api/books/{book_id}"), timeout=self.timeout)
        if not _ok(resp):
            raise EditorError(_error_message(resp, "Book not found"))
        return resp.json()


class EditorClient(ShelfClient):
    """
    Publishing flow: open a session with the password, upload the cover,
    then publish the chapter with the X-SESSION header.

    The token is cached in memory and never cleared on failure; an expired
    token simply fails verification on next use. Call forget_session() to
    force a new password prompt.
    """

    def __init__(
        self,
        base_url: str,
        password_provider: Callable[[], Optional[str]],
        http: Optional[Any] = None,
        timeout: float = DEFAULT_TIMEOUT,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> None:
        super().__init__(base_url, http=http, timeout=timeout)
        self.password_provider = password_provider
        self.on_status = on_status
        self.token: Optional[str] = None

    def _status(self, text: str) -> None:
        if self.on_status:
            self.on_status(text)

    def forget_session(self) -> None:
        self.token = None

    def ensure_session(self) -> str:
        if self.token:
            return self.token
        password = self.password_provider()
        if not password:
            raise EditorError("no-password")
        resp = self.http.post(self._url("/api/session"), json={"password": password}, timeout=self.timeout)
        if not _ok(resp):
            raise AuthFailed()
        self.token = resp.json()["token"]
        return self.token

    def upload_cover(self, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Upload cover bytes as a data URI; returns the retrieval URL"""
        token = self.ensure_session()
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        payload = {"filename": filename, "data": to_data_uri(data, content_type)}
        resp = self.http.post(
            self._url("/api/upload-cover"),
            json=payload,
            headers={"X-SESSION": token},
            timeout=self.timeout,
        )
        if not _ok(resp):
            raise EditorError(_error_message(resp, "upload failed"))
        return resp.json()["url"]

    def publish(
        self,
        book_title: str,
        chapter_title: str,
        body: str,
        *,
        book_id: str = "",
        book_desc: str = "",
        mode: str = "scroll",
        cover_filename: Optional[str] = None,
        cover_data: Optional[bytes] = None,
        cover_content_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        book_title, chapter_title, body = book_title.strip(), chapter_title.strip(), body.strip()
        if not book_title or not chapter_title or not body:
            raise EditorError("Missing fields")

        self._status("Preparing…")
        try:
            token = self.ensure_session()

            cover_url = ""
            if cover_data is not None:
                self._status("Uploading cover…")
                cover_url = self.upload_cover(cover_filename or "cover", cover_data, cover_content_type)

            self._status("Publishing…")
            payload = {
                "bookId": book_id.strip(),
                "bookTitle": book_title,
                "bookDesc": book_desc.strip(),
                "cover": cover_url,
                "chapterTitle": chapter_title,
                "body": body,
                "mode": mode,
            }
            resp = self.http.post(
                self._url("/api/books"),
                json=payload,
                headers={"X-SESSION": token},
                timeout=self.timeout,
            )
            if not _ok(resp):
                raise EditorError(_error_message(resp, "publish failed"))
        except EditorError as e:
            self._status(f"Error: {e}")
            raise
        result = resp.json()
        logger.info(f"Published {result.get('publicUrl')}")
        self._status("Published ✓")
        return result
