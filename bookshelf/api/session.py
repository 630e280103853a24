"""
Session API
"""

from fastapi import APIRouter, Depends, status

from bookshelf.core.kv import KeyValueStore
from bookshelf.core.security import create_session
from bookshelf.dependencies import get_kv
from bookshelf.schemas.session import SessionCreate, SessionRecord

router = APIRouter()


@router.post("", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
async def open_session(payload: SessionCreate, kv: KeyValueStore = Depends(get_kv)):
    """Exchange the publishing password for a short-lived token"""
    return await create_session(kv, payload.password)
