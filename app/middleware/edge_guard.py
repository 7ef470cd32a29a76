# app/middleware/edge_guard.py

import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

import httpx
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from app.common.cookies import clear_session_cookies, set_session_cookies
from app.common.deps import get_auth_client, resolve_dependency
from app.core.config import settings
from app.core.security import TokenExpired, TokenInvalid, decode_access_token
from app.db.session import get_db
from app.models.session import Session
from app.models.user import UserProfile
from app.services.supabase_auth import SupabaseAuthError

log = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
CALLBACK_PATH = "/auth/callback"
ONBOARDING_PATH = "/onboarding"

PUBLIC_PREFIXES = (LOGIN_PATH, CALLBACK_PATH)
EXCLUDED_PREFIXES = ("/api/", "/static/", "/_next/", "/docs", "/redoc", "/openapi.json", "/favicon.ico")
IMAGE_SUFFIXES = (".svg", ".png", ".jpg", ".jpeg", ".gif", ".webp")


def _under(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_excluded(path: str) -> bool:
    if path == "/api" or any(path.startswith(p) for p in EXCLUDED_PREFIXES):
        return True
    return path.lower().endswith(IMAGE_SUFFIXES)


def is_public(path: str) -> bool:
    return path == "/" or any(_under(path, p) for p in PUBLIC_PREFIXES)


def skips_profile_check(path: str) -> bool:
    return _under(path, CALLBACK_PATH) or _under(path, ONBOARDING_PATH)


def login_redirect_url(path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({'redirectTo': path}, safe='/')}"


@dataclass
class CookieAction:
    """Cookie writes to apply to whatever response leaves the guard."""

    session: Optional[Session] = None
    clear: bool = False

    def apply(self, response: Response) -> None:
        if self.session is not None:
            set_session_cookies(response, self.session.access_token, self.session.refresh_token)
        elif self.clear:
            clear_session_cookies(response)


class EdgeGuardMiddleware(BaseHTTPMiddleware):
    """
    Server-side route guard for page requests.

    | session | path                    | profile    | action                |
    |---------|-------------------------|------------|-----------------------|
    | absent  | public                  |            | pass through          |
    | absent  | other                   |            | login + redirectTo    |
    | present | callback / onboarding   |            | pass through          |
    | present | other                   | incomplete | redirect onboarding   |
    | present | other                   | complete   | pass through          |
    """

    _warned_unconfigured = False

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if is_excluded(path):
            return await call_next(request)

        if not settings.SUPABASE_JWT_SECRET:
            if not EdgeGuardMiddleware._warned_unconfigured:
                log.error("Supabase JWT secret is not configured; page guard disabled")
                EdgeGuardMiddleware._warned_unconfigured = True
            return await call_next(request)

        identity, cookies = await self._resolve_session(request)

        if identity is None:
            if is_public(path):
                response = await call_next(request)
            else:
                log.info("No session for %s, redirecting to login", path)
                response = RedirectResponse(login_redirect_url(path), status_code=302)
        elif skips_profile_check(path):
            response = await call_next(request)
        elif await run_in_threadpool(self._profile_complete, request, identity.id):
            response = await call_next(request)
        else:
            log.info("Profile incomplete for %s, redirecting to onboarding", identity.id)
            response = RedirectResponse(ONBOARDING_PATH, status_code=302)

        cookies.apply(response)
        return response

    async def _resolve_session(self, request: Request):
        access_token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
        refresh_token = request.cookies.get(settings.REFRESH_TOKEN_COOKIE)
        if not access_token and not refresh_token:
            return None, CookieAction()

        if access_token:
            try:
                return decode_access_token(access_token), CookieAction()
            except TokenInvalid as exc:
                log.info("Dropping invalid session cookie: %s", exc)
                return None, CookieAction(clear=True)
            except TokenExpired:
                if not refresh_token:
                    return None, CookieAction(clear=True)

        session = await self._refresh(request, refresh_token)
        if session is None:
            return None, CookieAction(clear=True)
        return session.user, CookieAction(session=session)

    async def _refresh(self, request: Request, refresh_token: str) -> Optional[Session]:
        auth_client = resolve_dependency(request.app, get_auth_client)()
        if auth_client is None:
            return None
        try:
            return await auth_client.refresh_session(refresh_token)
        except (SupabaseAuthError, httpx.HTTPError) as exc:
            log.warning("Session refresh failed: %s", exc)
            return None

    @staticmethod
    def _profile_complete(request: Request, user_id: str) -> bool:
        provider = resolve_dependency(request.app, get_db)
        db_gen = provider()
        db = next(db_gen)
        try:
            profile = db.get(UserProfile, user_id)
            return bool(profile and profile.is_complete)
        finally:
            db_gen.close()


