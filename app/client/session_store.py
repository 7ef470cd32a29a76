# app/client/session_store.py

import asyncio
import inspect
import logging
import time
from typing import Awaitable, Callable, List, Optional, Union

import httpx
from jose import JWTError, jwt

from app.client.storage import MemorySessionStorage, SessionStorage
from app.models.session import Session
from app.services.supabase_auth import SupabaseAuthClient, SupabaseAuthError

log = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"

# refresh proactively when the token has less than this left
REFRESH_THRESHOLD_SECONDS = 300

AuthChangeCallback = Callable[[str, Optional[Session]], Union[None, Awaitable[None]]]
RestorationCallback = Callable[[bool], None]

AUTH_ERRORS = (SupabaseAuthError, httpx.HTTPError)


def token_expiry(access_token: str) -> int:
    try:
        return int(jwt.get_unverified_claims(access_token).get("exp") or 0)
    except (JWTError, TypeError, ValueError):
        return 0


class SessionStore:
    """
    Owns the device's one session: the auth client is the source of truth,
    `storage` keeps a copy that survives restarts.

    A consumer must not read "no session" as "signed out" until restoration
    has reported completion (see `wait_for_restoration`).
    """

    def __init__(self, auth_client: SupabaseAuthClient, storage: Optional[SessionStorage] = None):
        self._auth = auth_client
        self._storage = storage or MemorySessionStorage()
        self._session: Optional[Session] = None
        self._listeners: List[AuthChangeCallback] = []

        self._restored = asyncio.Event()
        self._restoration_task: Optional[asyncio.Task] = None
        self._restoration_listeners: List[RestorationCallback] = []
        self.restoration_success = False

    # ------------------------------------------------------------------
    # session access
    # ------------------------------------------------------------------
    async def get_session(self) -> Optional[Session]:
        return self._session

    def on_auth_state_change(self, callback: AuthChangeCallback) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        try:
            identity = await self._auth.get_user(access_token)
            session = Session(
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=token_expiry(access_token),
                user=identity,
            )
        except AUTH_ERRORS as exc:
            # access token is dead, the refresh token may not be
            log.info("Access token rejected (%s), refreshing", exc)
            session = await self._auth.refresh_session(refresh_token)

        await self._establish(session)
        return session

    async def _establish(self, session: Session) -> None:
        self._session = session
        await self._emit(SIGNED_IN, session)

    async def refresh_session(self) -> Optional[Session]:
        if self._session is None:
            return None
        session = await self._auth.refresh_session(self._session.refresh_token)
        self._session = session
        await self._emit(TOKEN_REFRESHED, session)
        return session

    async def ensure_fresh(self, threshold: float = REFRESH_THRESHOLD_SECONDS) -> Optional[Session]:
        """Refresh a session that is about to expire, e.g. when the app resumes."""
        session = self._session
        if session is not None and session.expires_at and session.expires_in() < threshold:
            try:
                return await self.refresh_session()
            except AUTH_ERRORS as exc:
                log.warning("Proactive refresh failed: %s", exc)
        return self._session

    async def sign_out(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            try:
                await self._auth.sign_out(session.access_token)
            except AUTH_ERRORS as exc:
                log.warning("Remote sign-out failed: %s", exc)
        await self._emit(SIGNED_OUT, None)

    async def _emit(self, event: str, session: Optional[Session]) -> None:
        if event in (SIGNED_IN, TOKEN_REFRESHED) and session is not None:
            await self._storage.save(session)
        elif event == SIGNED_OUT:
            await self._storage.clear()

        for callback in list(self._listeners):
            try:
                result = callback(event, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("Auth state listener failed on %s", event)

    # ------------------------------------------------------------------
    # restoration
    # ------------------------------------------------------------------
    @property
    def restoration_complete(self) -> bool:
        return self._restored.is_set()

    def start_restoration(self) -> asyncio.Task:
        """Kick off restoration once; later calls return the same task."""
        if self._restoration_task is None:
            self._restoration_task = asyncio.ensure_future(self._restore())
        return self._restoration_task

    async def restore(self) -> bool:
        return await asyncio.shield(self.start_restoration())

    def on_restoration_complete(self, callback: RestorationCallback) -> None:
        if self.restoration_complete:
            callback(self.restoration_success)
        else:
            self._restoration_listeners.append(callback)

    async def wait_for_restoration(self, timeout: Optional[float] = None) -> bool:
        """True once restoration has finished; False if `timeout` ran out first."""
        try:
            await asyncio.wait_for(self._restored.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def _restore(self) -> bool:
        success = False
        try:
            if self._session is not None:
                success = True
            else:
                stored = await self._storage.load()
                if stored is None:
                    log.info("No stored session to restore")
                else:
                    try:
                        if stored.is_expired(time.time()):
                            log.info("Stored access token expired, refreshing")
                            await self._establish(await self._auth.refresh_session(stored.refresh_token))
                        else:
                            await self.set_session(stored.access_token, stored.refresh_token)
                        success = True
                        log.info("Session restored for %s", self._session.user.id)
                    except AUTH_ERRORS as exc:
                        log.error("Failed to restore session: %s", exc)
                        await self._storage.clear()
        except Exception:
            # waiters are released below whatever happened
            log.exception("Session restoration crashed")
        finally:
            self.restoration_success = success
            self._restored.set()
            callbacks, self._restoration_listeners = self._restoration_listeners, []
            for callback in callbacks:
                try:
                    callback(success)
                except Exception:
                    log.exception("Restoration listener failed")
            log.info("Restoration complete, success=%s", success)
        return success
