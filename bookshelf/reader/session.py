"""
Reader state machine: load a book, navigate chapters, flip pages.

Rendering is left to the caller. This module decides what is shown:
the current chapter, its pages, the presentation mode and which page
flips are allowed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qs, urlencode, urlparse
import html
import logging
import time

from .paginator import CHARS_PER_PAGE, paginate


logger = logging.getLogger(__name__)

MODES = ("scroll", "novel")
DEFAULT_MODE = "scroll"
FLIP_TIMEOUT = 1.5
LOAD_ERROR_MESSAGE = "Failed to load book."
READER_PATH = "/reader.html"


class ReaderState(str, Enum):
    LOADING = "loading"
    OPEN = "open"
    NAVIGATING = "navigating"
    CLOSED = "closed"
    ERROR = "error"


class FlipState(str, Enum):
    IDLE = "idle"
    FLIPPING = "flipping"


class ReaderLoadError(Exception):
    pass


@dataclass
class PageView:
    index: int
    text: str
    z_index: Optional[int]
    flipped: bool = False


def reader_url(book_id: str, chapter_id: Optional[str] = None, mode: Optional[str] = None) -> str:
    params = [("id", book_id)]
    if chapter_id:
        params.append(("chapter", chapter_id))
    if mode:
        params.append(("mode", mode))
    return f"{READER_PATH}?{urlencode(params)}"


def parse_reader_query(url: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """(book id, chapter id, mode override) from a reader URL or bare query string"""
    query = urlparse(url).query if ("?" in url or "://" in url) else url
    params = parse_qs(query.lstrip("?"))

    def first(name: str) -> Optional[str]:
        values = params.get(name)
        return values[0] if values else None

    return first("id"), first("chapter"), first("mode")


def resolve_mode(override: Optional[str], chapter_mode: Optional[str]) -> str:
    if override in MODES:
        return override
    if chapter_mode in MODES:
        return chapter_mode
    return DEFAULT_MODE


class ReaderSession:
    """One open book in the reader.

    States: loading -> open <-> navigating, then closed; a failed load
    ends in error. Pages are re-derived on every chapter change.

    Only one page flip runs at a time. A flip ends on animation_complete();
    if that signal never arrives, the flip is treated as finished once
    flip_timeout seconds have passed.
    """

    def __init__(
        self,
        book_id: str,
        *,
        initial_chapter: Optional[str] = None,
        mode_override: Optional[str] = None,
        chars_per_page: int = CHARS_PER_PAGE,
        flip_timeout: float = FLIP_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.book_id = book_id
        self.initial_chapter = initial_chapter
        self.mode_override = mode_override if mode_override in MODES else None
        self.chars_per_page = chars_per_page
        self.flip_timeout = flip_timeout
        self._clock = clock

        self.state = ReaderState.LOADING
        self.error: Optional[str] = None
        self.book: Dict[str, Any] = {}
        self.current_chapter_index = 0
        self.pages: List[str] = []
        self.flip_state = FlipState.IDLE
        self.flipped_count = 0
        self._flip_started = 0.0

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "ReaderSession":
        book_id, chapter_id, mode = parse_reader_query(url)
        if not book_id:
            raise ReaderLoadError("reader URL has no book id")
        return cls(book_id, initial_chapter=chapter_id, mode_override=mode, **kwargs)

    # loading

    def load(self, fetch_book: Callable[[str], Mapping[str, Any]]) -> bool:
        """Fetch the book and open it at the initial chapter"""
        try:
            book = dict(fetch_book(self.book_id))
            if not isinstance(book.get("chapters", []), list):
                raise ReaderLoadError("book has no chapter list")
        except Exception as e:
            logger.error(f"Failed to load book {self.book_id}: {e}")
            self.state = ReaderState.ERROR
            self.error = LOAD_ERROR_MESSAGE
            return False

        self.book = book
        index = 0
        if self.initial_chapter:
            for i, chapter in enumerate(self.chapters):
                if chapter.get("id") == self.initial_chapter:
                    index = i
                    break
        self.state = ReaderState.OPEN
        self._show_chapter(index)
        return True

    # book view

    @property
    def chapters(self) -> List[Dict[str, Any]]:
        return self.book.get("chapters") or []

    @property
    def chapter(self) -> Optional[Dict[str, Any]]:
        if 0 <= self.current_chapter_index < len(self.chapters):
            return self.chapters[self.current_chapter_index]
        return None

    @property
    def mode(self) -> str:
        chapter = self.chapter or {}
        return resolve_mode(self.mode_override, chapter.get("mode"))

    @property
    def layout(self) -> str:
        return "stacked" if self.mode == "novel" else "vertical"

    @property
    def can_go_prev(self) -> bool:
        return self.current_chapter_index > 0

    @property
    def can_go_next(self) -> bool:
        return self.current_chapter_index < len(self.chapters) - 1

    @property
    def url(self) -> str:
        chapter = self.chapter or {}
        return reader_url(self.book_id, chapter.get("id"), self.mode)

    def toc(self) -> List[Tuple[int, str]]:
        return [
            (i, f"{i + 1}. {html.escape(str(c.get('title') or ''), quote=False)}")
            for i, c in enumerate(self.chapters)
        ]

    def cover_captions(self) -> Dict[str, Tuple[str, str]]:
        chapter = self.chapter or {}
        return {
            "front": (str(self.book.get("title") or ""), str(self.book.get("description") or "")),
            "back": (str(chapter.get("title") or ""), f"Chapter {self.current_chapter_index + 1}"),
        }

    def page_views(self) -> List[PageView]:
        if self.mode == "novel":
            # earlier pages sit on top so they flip first
            return [
                PageView(index=i, text=text, z_index=100 - i, flipped=i < self.flipped_count)
                for i, text in enumerate(self.pages)
            ]
        return [PageView(index=i, text=text, z_index=None) for i, text in enumerate(self.pages)]

    # navigation

    def _show_chapter(self, index: int) -> None:
        chapter = self.chapters[index] if index < len(self.chapters) else {}
        self.current_chapter_index = index
        self.pages = paginate(chapter.get("body") or "", self.chars_per_page)
        self.flip_state = FlipState.IDLE
        self.flipped_count = 0

    def jump_to(self, index: int) -> bool:
        """Out-of-range targets are ignored"""
        if self.state != ReaderState.OPEN:
            return False
        if index < 0 or index >= len(self.chapters):
            return False
        self.state = ReaderState.NAVIGATING
        self._show_chapter(index)
        self.state = ReaderState.OPEN
        return True

    def next_chapter(self) -> bool:
        return self.jump_to(self.current_chapter_index + 1)

    def prev_chapter(self) -> bool:
        return self.jump_to(self.current_chapter_index - 1)

    def close(self) -> None:
        self.state = ReaderState.CLOSED

    # page flips

    def _flip_busy(self) -> bool:
        if self.flip_state != FlipState.FLIPPING:
            return False
        if self._clock() - self._flip_started < self.flip_timeout:
            return True
        logger.debug("Flip animation never completed; releasing flip guard")
        self.flip_state = FlipState.IDLE
        return False

    def _start_flip(self) -> None:
        self.flip_state = FlipState.FLIPPING
        self._flip_started = self._clock()

    def _can_flip(self) -> bool:
        return self.state == ReaderState.OPEN and self.mode == "novel" and not self._flip_busy()

    def flip_forward(self) -> bool:
        if not self._can_flip() or self.flipped_count >= len(self.pages):
            return False
        self.flipped_count += 1
        self._start_flip()
        return True

    def flip_backward(self) -> bool:
        if not self._can_flip() or self.flipped_count == 0:
            return False
        self.flipped_count -= 1
        self._start_flip()
        return True

    def click_page(self, index: int) -> bool:
        """Only the top-most unflipped page responds to a click"""
        if index != self.flipped_count:
            return False
        return self.flip_forward()

    def animation_complete(self) -> None:
        self.flip_state = FlipState.IDLE
