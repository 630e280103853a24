"""
Split chapter markdown into pages bounded by a character budget
"""

from typing import List
import re


PARAGRAPH_SEPARATOR = "\n\n"
CHARS_PER_PAGE = 1600

_BLANK_LINE = re.compile(r"\n\s*\n")


def split_paragraphs(markdown: str) -> List[str]:
    """Trimmed, non-empty paragraphs in order"""
    return [p.strip() for p in _BLANK_LINE.split(markdown or "") if p.strip()]


def paginate(markdown: str, chars_per_page: int = CHARS_PER_PAGE) -> List[str]:
    """
    Greedy first-fit packing of paragraphs into pages.

    A paragraph joins the current page while the page stays within
    chars_per_page (separator included); otherwise it starts a new page.
    Paragraphs are never split, so a paragraph longer than the budget
    becomes an oversized page of its own. Always returns at least one page.
    """
    if chars_per_page < 1:
        raise ValueError("chars_per_page must be a positive integer")

    pages: List[str] = []
    current = ""
    for paragraph in split_paragraphs(markdown):
        if not current:
            current = paragraph
        elif len(current) + len(paragraph) + len(PARAGRAPH_SEPARATOR) <= chars_per_page:
            current += PARAGRAPH_SEPARATOR + paragraph
        else:
            pages.append(current)
            current = paragraph
    if current or not pages:
        pages.append(current)
    return pages
