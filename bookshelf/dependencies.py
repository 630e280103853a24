from bookshelf.core.kv import get_kv
from bookshelf.core.security import require_session
from bookshelf.services.storage import get_storage

# Shared FastAPI dependencies. Tests override get_kv/get_storage with in-memory fakes.

__all__ = ["get_kv", "get_storage", "require_session"]
