"""
Cover upload and retrieval API
"""

from fastapi import APIRouter, Depends, Response, status

from bookshelf.dependencies import get_storage, require_session
from bookshelf.schemas.upload import CoverUploadRequest, CoverUploadResponse
from bookshelf.services import cover_service
from bookshelf.services.storage import DEFAULT_CONTENT_TYPE, Storage

# Plain def endpoints: the storage clients block, so FastAPI runs these in its threadpool.
upload_router = APIRouter()
blob_router = APIRouter()


@upload_router.post("", response_model=CoverUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_cover(
    payload: CoverUploadRequest,
    _session: str = Depends(require_session),
    storage: Storage = Depends(get_storage),
):
    uploaded = cover_service.upload_cover(storage, payload.filename, payload.data)
    return CoverUploadResponse(key=uploaded.key, url=uploaded.url)


@blob_router.get("/{key:path}")
def get_cover(key: str, storage: Storage = Depends(get_storage)):
    """Raw cover bytes with the content type recorded at upload"""
    blob = cover_service.fetch_cover(storage, key)
    return Response(content=blob.data, media_type=blob.content_type or DEFAULT_CONTENT_TYPE)
