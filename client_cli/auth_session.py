"""
Authenticated session: ties the token store, the relay client and the refresh scheduler together.
Consumers hold one AuthSession and read state through it; only the token store writes state.
"""
import logging
import time
from typing import Callable

from client_cli.config import REFRESH_LEAD_SECONDS
from client_cli.errors import AuthError, MissingCredential, NetworkFailure, ProviderRejection
from client_cli.gateway import RelayClient
from client_cli.scheduler import RefreshScheduler
from client_cli.token_store import LoadOutcome, Profile, Session, TokenStore

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(
        self,
        store: TokenStore,
        gateway: RelayClient,
        lead_seconds: float = REFRESH_LEAD_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.gateway = gateway
        self.scheduler = RefreshScheduler(self._refresh, lead_seconds=lead_seconds, clock=clock)
        self.is_loading = True

    @property
    def session(self) -> Session:
        return self.store.session

    @property
    def is_authenticated(self) -> bool:
        return self.store.session.is_authenticated

    def require_token(self) -> str:
        token = self.store.session.access_token
        if not token:
            raise MissingCredential("Not logged in")
        return token

    async def initialize(self) -> LoadOutcome:
        """Hydrate from durable storage, then arm the timer or refresh a stale token right away."""
        try:
            outcome = self.store.load_persisted()
            if outcome is LoadOutcome.RESTORED:
                self._schedule_current()
            elif outcome is LoadOutcome.EXPIRED:
                await self.refresh_now()
            return outcome
        finally:
            self.is_loading = False

    async def login_url(self) -> str:
        return await self.gateway.get_auth_url()

    async def complete_login(self, code: str) -> Session:
        """
        Exchange the code from the provider redirect. Exchange failures propagate;
        a failed profile fetch does not undo the login.
        """
        code = (code or "").strip()
        if not code:
            raise MissingCredential("No authorization code received")
        grant = await self.gateway.exchange_code(code)
        self.store.set_session(grant.access_token, grant.expires_in)
        self._schedule_current()
        await self.load_profile()
        return self.session

    async def load_profile(self) -> Profile | None:
        """Fetch and store the profile. None (and a log line) if it can't be fetched."""
        token = self.store.session.access_token
        if not token:
            return None
        try:
            data = await self.gateway.get_user_profile(token)
        except AuthError as e:
            logger.warning("Error fetching user profile: %s", e)
            return None
        profile = Profile.from_api(data)
        self.store.set_profile(profile)
        return profile

    async def profile(self) -> Profile | None:
        """Stored profile, fetched lazily on first use."""
        return self.store.session.user or await self.load_profile()

    async def refresh_now(self) -> bool:
        """Refresh immediately, outside the timer. Re-arms the timer on success."""
        self.scheduler.cancel()
        expiry = await self._refresh()
        if expiry is None:
            return False
        self.scheduler.schedule(expiry)
        return True

    async def logout(self) -> None:
        """Stop the timer, clear the relay cookie (best effort), forget the session."""
        self.scheduler.cancel()
        try:
            await self.gateway.logout()
        except AuthError as e:
            logger.warning("Logout error: %s", e)
        self.store.clear_session()

    async def close(self) -> None:
        self.scheduler.cancel()
        await self.gateway.aclose()

    def _schedule_current(self) -> None:
        expiry = self.store.session.expiry_instant
        if expiry is None:
            self.scheduler.cancel()
        else:
            self.scheduler.schedule(expiry)

    async def _refresh(self) -> float | None:
        """
        Refresh callback. Rejection or missing cookie clears the session (hard logout);
        a network failure leaves it alone. Returns the new expiry instant or None.
        """
        try:
            grant = await self.gateway.refresh()
        except NetworkFailure as e:
            logger.warning("Token refresh failed (network), keeping session: %s", e)
            return None
        except (MissingCredential, ProviderRejection) as e:
            logger.warning("Token refresh rejected, logging out: %s", e)
            self.gateway.forget_credentials()
            self.store.clear_session()
            return None
        session = self.store.set_session(grant.access_token, grant.expires_in)
        logger.info("Access token refreshed")
        return session.expiry_instant
