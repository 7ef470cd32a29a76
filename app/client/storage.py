# app/client/storage.py

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from app.models.session import Session

log = logging.getLogger(__name__)

# stored sessions older than this are dropped even if the token is still valid
MAX_STORED_AGE_SECONDS = 30 * 24 * 60 * 60


class StoredSession(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: int = 0
    user_id: str = ""
    timestamp: float

    @classmethod
    def from_session(cls, session: Session) -> "StoredSession":
        return cls(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            expires_at=session.expires_at,
            user_id=session.user.id,
            timestamp=time.time(),
        )

    def is_expired(self, now: float) -> bool:
        return bool(self.expires_at) and self.expires_at < now

    def is_stale(self, now: float) -> bool:
        return self.timestamp < now - MAX_STORED_AGE_SECONDS


class SessionStorage:
    """
    Durable slot for one session.

    Subclasses implement `_read`, `_write` and `_delete`. Storage problems are
    logged and reported as "nothing stored"; they never reach the caller.
    Records older than MAX_STORED_AGE_SECONDS are dropped on load.
    """

    name = "storage"

    async def _read(self) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def _write(self, record: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def _delete(self) -> None:
        raise NotImplementedError

    async def save(self, session: Session) -> None:
        record = StoredSession.from_session(session).model_dump()
        try:
            await self._write(record)
        except (OSError, TypeError, ValueError) as exc:
            log.error("[%s] failed to save session: %s", self.name, exc)

    async def load(self, now: Optional[float] = None) -> Optional[StoredSession]:
        now = time.time() if now is None else now
        try:
            raw = await self._read()
        except (OSError, ValueError) as exc:
            log.error("[%s] failed to read session: %s", self.name, exc)
            return None
        if not raw:
            return None

        try:
            stored = StoredSession.model_validate(raw)
        except ValidationError:
            log.warning("[%s] discarding malformed session record", self.name)
            await self.clear()
            return None

        # an expired access token is kept: the refresh token may still be good
        if stored.is_stale(now):
            log.info("[%s] stored session too old, clearing", self.name)
            await self.clear()
            return None
        return stored

    async def clear(self) -> None:
        try:
            await self._delete()
        except OSError as exc:
            log.error("[%s] failed to clear session: %s", self.name, exc)


class MemorySessionStorage(SessionStorage):
    name = "memory"

    def __init__(self):
        self._record: Optional[Dict[str, Any]] = None

    async def _read(self):
        return dict(self._record) if self._record else None

    async def _write(self, record):
        self._record = dict(record)

    async def _delete(self):
        self._record = None


class FileSessionStorage(SessionStorage):
    """JSON file on disk; file I/O runs in a worker thread."""

    name = "file"

    def __init__(self, path):
        self.path = Path(path)

    def _read_sync(self):
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write_sync(self, record):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(record), encoding="utf-8")
        tmp.replace(self.path)

    def _delete_sync(self):
        self.path.unlink(missing_ok=True)

    async def _read(self):
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, record):
        await asyncio.to_thread(self._write_sync, record)

    async def _delete(self):
        await asyncio.to_thread(self._delete_sync)


class MultiSessionStorage(SessionStorage):
    """Writes to both slots and reads the primary before the backup."""

    name = "multi"

    def __init__(self, primary: SessionStorage, backup: SessionStorage):
        self.primary = primary
        self.backup = backup

    async def save(self, session: Session) -> None:
        await self.primary.save(session)
        await self.backup.save(session)

    async def load(self, now: Optional[float] = None) -> Optional[StoredSession]:
        stored = await self.primary.load(now)
        if stored is not None:
            return stored
        stored = await self.backup.load(now)
        if stored is not None:
            log.info("[multi] session recovered from %s backup", self.backup.name)
        return stored

    async def clear(self) -> None:
        await self.primary.clear()
        await self.backup.clear()
