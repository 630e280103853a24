"""
Publishing sessions: password check, token issuance and verification
"""

from datetime import datetime, timedelta
from typing import Optional
import hmac
import json
import logging
import re
import secrets

from fastapi import Depends, Header

from bookshelf.core.config import settings
from bookshelf.core.errors import Unauthorized, UpstreamFailure
from bookshelf.core.kv import KeyValueStore, get_kv
from bookshelf.core.timeutil import format_timestamp, parse_timestamp, utcnow
from bookshelf.schemas.session import SessionRecord


logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def _session_key(token: str) -> str:
    return f"{SESSION_PREFIX}{token}"


def password_matches(candidate: str, secret: Optional[str]) -> bool:
    """Exact string equality against the server-held secret"""
    if not secret:
        logger.warning("PUBLISH_PASSWORD is not configured; refusing session request")
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), secret.encode("utf-8"))


async def create_session(kv: KeyValueStore, password: str, *, now: Optional[datetime] = None) -> SessionRecord:
    """Issue a session token when the password matches.

    The record expires SESSION_TTL_MINUTES after creation and the store is
    told to drop it at that moment. The lifetime is never extended.
    """
    if not password_matches(password, settings.PUBLISH_PASSWORD):
        raise Unauthorized("invalid password")

    now = now or utcnow()
    expires_at = now + timedelta(minutes=settings.SESSION_TTL_MINUTES)
    record = SessionRecord(token=secrets.token_urlsafe(32), expires=format_timestamp(expires_at))
    try:
        await kv.put(_session_key(record.token), record.model_dump_json(), expires_at=expires_at)
    except Exception as e:
        logger.error(f"Failed to store session: {e}")
        raise UpstreamFailure("could not create session") from e
    logger.info(f"Session issued, expires {record.expires}")
    return record


async def verify_session(kv: KeyValueStore, token: Optional[str], *, now: Optional[datetime] = None) -> bool:
    """Fail closed: anything other than a live, well-formed record is invalid."""
    if not token or not TOKEN_PATTERN.match(token):
        return False
    key = _session_key(token)
    try:
        raw = await kv.get(key)
    except Exception as e:
        logger.error(f"Session lookup failed: {e}")
        raise UpstreamFailure("could not verify session") from e
    if not raw:
        return False
    try:
        expires_at = parse_timestamp(json.loads(raw)["expires"])
    except (ValueError, KeyError, TypeError):
        logger.warning("Discarding unreadable session record")
        return False
    if (now or utcnow()) >= expires_at:
        # the store may not have collected it yet
        try:
            await kv.delete(key)
        except Exception as e:
            logger.warning(f"Failed to delete expired session: {e}")
        return False
    return True


async def require_session(
    x_session: Optional[str] = Header(None, alias="X-SESSION"),
    kv: KeyValueStore = Depends(get_kv),
) -> str:
    """Dependency guarding privileged endpoints"""
    if not await verify_session(kv, x_session):
        raise Unauthorized("invalid or expired session")
    return x_session
