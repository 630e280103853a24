from .paginator import CHARS_PER_PAGE, PARAGRAPH_SEPARATOR, paginate, split_paragraphs
from .session import FlipState, ReaderLoadError, ReaderSession, ReaderState, parse_reader_query, reader_url
