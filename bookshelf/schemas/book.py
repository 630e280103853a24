"""
Book and chapter Pydantic schemas
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional
import re


ChapterMode = Literal["scroll", "novel"]
DEFAULT_MODE: ChapterMode = "scroll"
BOOK_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class Chapter(BaseModel):
    """Stored chapter record. Immutable once written."""
    id: str
    title: str
    body: str
    mode: ChapterMode = DEFAULT_MODE
    created_at: str


class Book(BaseModel):
    """Stored book record, written back as a single unit"""
    id: str
    title: str
    description: str = ""
    cover: str = ""
    created_at: str
    updated_at: str
    chapters: List[Chapter] = Field(default_factory=list)


class BookSummary(BaseModel):
    """Listing item (lightweight fields only)"""
    id: str
    title: str
    description: str = ""
    cover: str = ""
    chapter_count: int = 0
    updated_at: str = ""


class PublishRequest(BaseModel):
    """Publish request: a chapter plus book metadata to merge"""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    book_id: Optional[str] = Field(None, alias="bookId")
    book_title: str = Field(..., alias="bookTitle")
    book_desc: Optional[str] = Field(None, alias="bookDesc")
    cover: Optional[str] = None
    chapter_title: str = Field(..., alias="chapterTitle")
    body: str
    mode: Optional[ChapterMode] = None

    @field_validator("book_title", "chapter_title", "body")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("book_id")
    @classmethod
    def _blank_id_is_absent(cls, value: Optional[str]) -> Optional[str]:
        # the editor always sends the (trimmed) form field, possibly empty
        if value is None:
            return None
        value = value.strip()
        if value and not BOOK_ID_PATTERN.match(value):
            raise ValueError("book id may only contain letters, digits, dot, dash and underscore")
        return value or None


class PublishResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: str = Field(..., alias="bookId")
    chapter_id: str = Field(..., alias="chapterId")
    public_url: str = Field(..., alias="publicUrl")
