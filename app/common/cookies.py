# app/common/cookies.py

from starlette.responses import Response

from app.core.config import settings


def _cookie_kwargs(max_age: int) -> dict:
    # every write carries SameSite=Lax, Secure and Path=/
    return {
        "max_age": max_age,
        "path": "/",
        "secure": settings.COOKIE_SECURE,
        "httponly": True,
        "samesite": "lax",
    }


def set_session_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    response.set_cookie(settings.ACCESS_TOKEN_COOKIE, access_token, **_cookie_kwargs(settings.COOKIE_MAX_AGE))
    response.set_cookie(settings.REFRESH_TOKEN_COOKIE, refresh_token, **_cookie_kwargs(settings.COOKIE_MAX_AGE))


def clear_session_cookies(response: Response) -> None:
    response.set_cookie(settings.ACCESS_TOKEN_COOKIE, "", **_cookie_kwargs(0))
    response.set_cookie(settings.REFRESH_TOKEN_COOKIE, "", **_cookie_kwargs(0))
