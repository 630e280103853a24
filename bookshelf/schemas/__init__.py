"""
Pydantic schema package
"""

from .book import (
    Book,
    BookSummary,
    Chapter,
    ChapterMode,
    DEFAULT_MODE,
    PublishRequest,
    PublishResponse,
)
from .session import SessionCreate, SessionRecord
from .upload import CoverUploadRequest, CoverUploadResponse
