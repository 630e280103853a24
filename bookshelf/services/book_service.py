"""
Book services: publish, list and retrieve
"""

from datetime import datetime
from typing import List, Optional
import json
import logging
import uuid

from pydantic import ValidationError

from bookshelf.core.config import settings
from bookshelf.core.errors import NotFound, UpstreamFailure
from bookshelf.core.kv import KeyValueStore
from bookshelf.core.timeutil import format_timestamp, utcnow
from bookshelf.reader.session import reader_url
from bookshelf.schemas.book import (
    DEFAULT_MODE,
    Book,
    BookSummary,
    Chapter,
    PublishRequest,
    PublishResponse,
)


logger = logging.getLogger(__name__)

BOOK_PREFIX = "book:"


def book_key(book_id: str) -> str:
    return f"{BOOK_PREFIX}{book_id}"


def public_reader_url(book_id: str, chapter_id: str) -> str:
    base = (settings.PUBLIC_BASE_URL or "").rstrip("/")
    return f"{base}{reader_url(book_id, chapter_id)}"


async def _read_raw(kv: KeyValueStore, key: str) -> Optional[str]:
    try:
        return await kv.get(key)
    except Exception as e:
        logger.error(f"KV read failed for {key}: {e}")
        raise UpstreamFailure("could not read book") from e


async def get_book(kv: KeyValueStore, book_id: str) -> dict:
    """Return the full stored record"""
    raw = await _read_raw(kv, book_key(book_id))
    if raw is None:
        raise NotFound("book not found")
    try:
        record = json.loads(raw)
    except ValueError as e:
        logger.error(f"Stored book {book_id} is not valid JSON: {e}")
        raise UpstreamFailure("stored book record is corrupt") from e
    if not isinstance(record, dict):
        raise UpstreamFailure("stored book record is corrupt")
    return record


async def list_books(kv: KeyValueStore) -> List[BookSummary]:
    """Summaries of every stored book, most recently updated first.

    Records that fail to parse are skipped rather than failing the listing.
    """
    try:
        keys = await kv.list_keys(BOOK_PREFIX)
    except Exception as e:
        logger.error(f"KV listing failed: {e}")
        raise UpstreamFailure("could not list books") from e

    summaries: List[BookSummary] = []
    for key in keys:
        raw = await _read_raw(kv, key)
        if raw is None:
            continue
        try:
            record = json.loads(raw)
            if not isinstance(record, dict) or not record.get("id"):
                raise ValueError("not a book record")
            chapters = record.get("chapters") or []
            summary = BookSummary(
                id=str(record["id"]),
                title=record.get("title") or "",
                description=record.get("description") or "",
                cover=record.get("cover") or "",
                chapter_count=len(chapters) if isinstance(chapters, list) else 0,
                updated_at=record.get("updated_at") or "",
            )
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed book record {key}: {e}")
            continue
        summaries.append(summary)

    # ISO-8601 strings in a fixed format sort the same as the instants they name
    summaries.sort(key=lambda s: s.updated_at, reverse=True)
    return summaries


async def publish_chapter(kv: KeyValueStore, req: PublishRequest, *, now: Optional[datetime] = None) -> PublishResponse:
    """Append a chapter to a book, creating the book when needed (upsert).

    The whole record is read, modified and written back with no version
    check, so concurrent publishes to one book id race and the last writer
    wins.
    """
    stamp = format_timestamp(now or utcnow())
    book_id = req.book_id or uuid.uuid4().hex

    book: Optional[Book] = None
    if req.book_id:
        raw = await _read_raw(kv, book_key(book_id))
        if raw is not None:
            try:
                book = Book.model_validate_json(raw)
            except ValidationError as e:
                logger.error(f"Stored book {book_id} cannot be merged: {e}")
                raise UpstreamFailure("stored book record is corrupt") from e

    if book is None:
        book = Book(
            id=book_id,
            title=req.book_title.strip(),
            description=req.book_desc or "",
            cover=req.cover or "",
            created_at=stamp,
            updated_at=stamp,
        )
        logger.info(f"Creating book {book_id}")
    else:
        book.title = req.book_title.strip()
        if req.cover:
            book.cover = req.cover
        # description is overwritten whenever supplied, even when empty
        if req.book_desc is not None:
            book.description = req.book_desc
        book.updated_at = stamp

    chapter = Chapter(
        id=uuid.uuid4().hex,
        title=req.chapter_title.strip(),
        body=req.body,
        mode=req.mode or DEFAULT_MODE,
        created_at=stamp,
    )
    book.chapters.append(chapter)

    try:
        await kv.put(book_key(book_id), book.model_dump_json())
    except Exception as e:
        logger.error(f"KV write failed for book {book_id}: {e}")
        raise UpstreamFailure("could not save book") from e

    logger.info(f"Published chapter {chapter.id} to book {book_id} ({len(book.chapters)} chapters)")
    return PublishResponse(
        book_id=book_id,
        chapter_id=chapter.id,
        public_url=public_reader_url(book_id, chapter.id),
    )
