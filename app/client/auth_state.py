# app/client/auth_state.py

import asyncio
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from app.client.session_store import SessionStore
from app.models.session import Identity, Session
from app.models.user import ProfileRead

log = logging.getLogger(__name__)

ProfileFetcher = Callable[[Session], Awaitable[Optional[ProfileRead]]]


class RestProfileFetcher:
    """
    Reads the profile row straight from the REST endpoint
    (`/rest/v1/users?id=eq.<id>`) without going through any client library.
    Every failure comes back as None.
    """

    def __init__(
        self,
        *,
        url: Optional[str],
        anon_key: Optional[str],
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url.rstrip("/") if url else None
        self._anon_key = anon_key
        self._timeout = timeout_seconds
        self._transport = transport

    async def __call__(self, session: Session) -> Optional[ProfileRead]:
        if not self._url or not self._anon_key:
            return None
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {session.access_token or self._anon_key}",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(
                    f"{self._url}/rest/v1/users",
                    params={"id": f"eq.{session.user.id}", "select": "*"},
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            log.warning("Profile fetch failed: %s", exc)
            return None
        if resp.status_code >= 400:
            log.warning("Profile fetch failed: HTTP %s", resp.status_code)
            return None

        try:
            rows = resp.json()
            return ProfileRead.model_validate(rows[0]) if isinstance(rows, list) and rows else None
        except (ValueError, ValidationError) as exc:
            log.warning("Unreadable profile payload: %s", exc)
            return None


class AuthState:
    """
    Identity + profile for one mounted consumer.

    `mount()` waits for restoration (bounded by `restoration_timeout`), reads the
    session, fetches the profile and keeps both current on every auth change
    until `unmount()`. Results that arrive after unmount are dropped. Overlapping
    refetches are not ordered: the last one to finish wins.
    """

    def __init__(self, store: SessionStore, fetch_profile: ProfileFetcher, restoration_timeout: float = 10.0):
        self._store = store
        self._fetch_profile = fetch_profile
        self._restoration_timeout = restoration_timeout
        self._active = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._settled = asyncio.Event()

        self.identity: Optional[Identity] = None
        self.profile: Optional[ProfileRead] = None
        self.is_loading = True

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def has_profile(self) -> bool:
        return bool(self.profile and self.profile.name)

    async def mount(self) -> None:
        self._active = True
        self._unsubscribe = self._store.on_auth_state_change(self._on_auth_change)
        self._store.start_restoration()
        try:
            if not await self._store.wait_for_restoration(self._restoration_timeout):
                log.warning("Restoration still running after %ss, continuing", self._restoration_timeout)

            session = await self._store.get_session()
            if not self._active:
                return
            self.identity = session.user if session else None
            if session is not None:
                profile = await self._fetch_profile(session)
                if self._active:
                    self.profile = profile
        finally:
            if self._active:
                self.is_loading = False
            self._settled.set()

    def unmount(self) -> None:
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def wait_until_settled(self, timeout: Optional[float] = None) -> bool:
        try:
            await asyncio.wait_for(self._settled.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def refresh_profile(self) -> None:
        session = await self._store.get_session()
        if session is None:
            return
        profile = await self._fetch_profile(session)
        if self._active:
            self.profile = profile

    async def sign_out(self) -> None:
        await self._store.sign_out()
        self.identity = None
        self.profile = None

    async def _on_auth_change(self, event: str, session: Optional[Session]) -> None:
        if not self._active:
            return
        log.debug("Auth state changed: %s", event)
        self.identity = session.user if session else None
        if session is None:
            self.profile = None
            return
        profile = await self._fetch_profile(session)
        if self._active:
            self.profile = profile
