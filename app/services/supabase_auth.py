# app/services/supabase_auth.py

import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.models.session import Identity, Session

log = logging.getLogger(__name__)


class SupabaseAuthError(RuntimeError):
    pass


class SupabaseAuthClient:
    """Minimal GoTrue (Supabase Auth) REST client."""

    def __init__(
        self,
        *,
        url: str,
        anon_key: str,
        timeout_seconds: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._anon_key = anon_key
        self._timeout = timeout_seconds
        self._transport = transport

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def get_user(self, access_token: str) -> Identity:
        async with self._client() as client:
            resp = await client.get(f"{self._url}/auth/v1/user", headers=self._headers(access_token))
        data = _json_best_effort(resp)
        if resp.status_code >= 400:
            raise SupabaseAuthError(f"get_user failed: HTTP {resp.status_code}: {data}")
        return _identity_from(data)

    async def refresh_session(self, refresh_token: str) -> Session:
        async with self._client() as client:
            resp = await client.post(
                f"{self._url}/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": refresh_token},
                headers=self._headers(),
            )
        data = _json_best_effort(resp)
        if resp.status_code >= 400:
            raise SupabaseAuthError(f"refresh_session failed: HTTP {resp.status_code}: {data}")
        return session_from_token_response(data)

    async def sign_out(self, access_token: str) -> None:
        async with self._client() as client:
            resp = await client.post(f"{self._url}/auth/v1/logout", headers=self._headers(access_token))
        if resp.status_code >= 400 and resp.status_code != 401:
            raise SupabaseAuthError(f"sign_out failed: HTTP {resp.status_code}")


def session_from_token_response(data: Dict[str, Any]) -> Session:
    access_token = data.get("access_token")
    refresh_token = data.get("refresh_token")
    if not access_token or not refresh_token or not isinstance(data.get("user"), dict):
        raise SupabaseAuthError(f"unexpected token response: {data}")
    expires_at = data.get("expires_at")
    if not expires_at and data.get("expires_in"):
        expires_at = int(time.time()) + int(data["expires_in"])
    return Session(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=int(expires_at or 0),
        user=_identity_from(data["user"]),
    )


def _identity_from(data: Dict[str, Any]) -> Identity:
    user_id = str(data.get("id") or "").strip()
    if not user_id:
        raise SupabaseAuthError(f"user payload without id: {data}")
    return Identity(
        id=user_id,
        email=data.get("email") or None,
        phone=data.get("phone") or None,
        user_metadata=data.get("user_metadata") or {},
    )


def _json_best_effort(resp: httpx.Response) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {"_raw": resp.text}
    return data if isinstance(data, dict) else {"_data": data}
