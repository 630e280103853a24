import os

from bookshelf.core.config import settings


def get_project_root() -> str:
    """Return the absolute path of the repository root.
    This file lives at bookshelf/core/paths.py, so the root is three levels up.
    """
    package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.dirname(package_dir)


def get_upload_dir() -> str:
    """Return the absolute upload directory.
    - UPLOAD_DIRECTORY wins when it is set.
    - Otherwise data/uploads under the repository root is used.
    The directory is created if missing.
    """
    env_dir = settings.UPLOAD_DIRECTORY
    if env_dir:
        os.makedirs(env_dir, exist_ok=True)
        return env_dir

    uploads = os.path.join(get_project_root(), "data", "uploads")
    os.makedirs(uploads, exist_ok=True)
    return uploads
