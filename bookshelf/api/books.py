"""
Book API: listing, retrieval and publishing
"""

from fastapi import APIRouter, Depends, status
from typing import List

from bookshelf.core.kv import KeyValueStore
from bookshelf.dependencies import get_kv, require_session
from bookshelf.schemas.book import BookSummary, PublishRequest, PublishResponse
from bookshelf.services import book_service

router = APIRouter()


@router.get("", response_model=List[BookSummary])
async def list_books(kv: KeyValueStore = Depends(get_kv)):
    """Book summaries, most recently updated first"""
    return await book_service.list_books(kv)


@router.get("/{book_id}")
async def get_book(book_id: str, kv: KeyValueStore = Depends(get_kv)):
    return await book_service.get_book(kv, book_id)


@router.post("", response_model=PublishResponse, status_code=status.HTTP_201_CREATED)
async def publish(
    payload: PublishRequest,
    _session: str = Depends(require_session),
    kv: KeyValueStore = Depends(get_kv),
):
    """Append a chapter, creating or updating the book record"""
    return await book_service.publish_chapter(kv, payload)
