# app/client/route_guard.py

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from app.client.auth_state import AuthState
from app.client.session_store import SessionStore
from app.core.config import settings

log = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
ONBOARDING_PATH = "/onboarding"


class GuardState(enum.Enum):
    WAITING_RESTORATION = "waiting_restoration"
    CHECKING = "checking"
    PASSED = "passed"
    REDIRECTING = "redirecting"


@dataclass(frozen=True)
class GuardTimeouts:
    restoration_fallback: float
    auth_loading: float

    @classmethod
    def from_settings(cls) -> "GuardTimeouts":
        return cls(
            restoration_fallback=settings.GUARD_FALLBACK_SECONDS,
            auth_loading=settings.RESTORATION_TIMEOUT_SECONDS,
        )


# installed web apps can lose storage on cold start; native secure storage doesn't
WEB_TIMEOUTS = GuardTimeouts(restoration_fallback=5.0, auth_loading=10.0)
MOBILE_TIMEOUTS = GuardTimeouts(restoration_fallback=1.0, auth_loading=10.0)


@dataclass(frozen=True)
class GuardDecision:
    state: GuardState
    redirect_to: Optional[str] = None


class RouteGuard:
    """
    WAITING_RESTORATION -> CHECKING -> PASSED | REDIRECTING

    Protected content may render only in PASSED. A redirect is final for the
    lifetime of the guard.
    """

    def __init__(
        self,
        auth_state: AuthState,
        store: SessionStore,
        *,
        require_auth: bool = True,
        require_profile: bool = True,
        timeouts: GuardTimeouts = WEB_TIMEOUTS,
        login_path: str = LOGIN_PATH,
        onboarding_path: str = ONBOARDING_PATH,
        navigate: Optional[Callable[[str], None]] = None,
    ):
        self._auth = auth_state
        self._store = store
        self.require_auth = require_auth
        self.require_profile = require_profile
        self.timeouts = timeouts
        self.login_path = login_path
        self.onboarding_path = onboarding_path
        self._navigate = navigate

        self.state = GuardState.WAITING_RESTORATION
        self.redirect_to: Optional[str] = None

    @property
    def can_render(self) -> bool:
        return self.state is GuardState.PASSED

    @property
    def decision(self) -> GuardDecision:
        return GuardDecision(self.state, self.redirect_to)

    async def run(self) -> GuardDecision:
        if self.state in (GuardState.PASSED, GuardState.REDIRECTING):
            return self.decision

        # whichever comes first: the restoration signal or the fallback timer
        if not await self._store.wait_for_restoration(self.timeouts.restoration_fallback):
            log.warning("Restoration fallback timer elapsed")
        if not await self._auth.wait_until_settled(self.timeouts.auth_loading):
            log.warning("Auth state did not settle in %ss", self.timeouts.auth_loading)
        self.state = GuardState.CHECKING

        if self.require_auth and not self._auth.is_authenticated:
            log.info("No authenticated user, redirecting to login")
            return self._redirect(self.login_path)
        if self.require_profile and self._auth.is_authenticated and not self._auth.has_profile:
            log.info("Profile incomplete, redirecting to onboarding")
            return self._redirect(self.onboarding_path)

        self.state = GuardState.PASSED
        return self.decision

    def _redirect(self, path: str) -> GuardDecision:
        self.state = GuardState.REDIRECTING
        self.redirect_to = path
        if self._navigate is not None:
            self._navigate(path)
        return self.decision
