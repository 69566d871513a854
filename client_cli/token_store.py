"""
Token store: the single writer of session state.
Holds access token, expiry instant and profile in memory, mirrors them to the durable store
once hydrated (load_persisted has run). Readers use TokenStore.session.
"""
import enum
import json
import logging
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from client_cli.errors import MalformedPersistedState
from client_cli.storage import DurableStore

logger = logging.getLogger(__name__)

KEY_ACCESS_TOKEN = "access_token"
KEY_EXPIRY_INSTANT = "expiry_instant"
KEY_USER = "user"
ALL_KEYS = (KEY_ACCESS_TOKEN, KEY_EXPIRY_INSTANT, KEY_USER)


@dataclass(frozen=True)
class Profile:
    id: str
    display_name: str
    image_urls: list[str] = field(default_factory=list)
    email: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Profile":
        """Build from a Spotify /me payload as proxied by the relay."""
        return cls(
            id=str(data.get("id") or ""),
            display_name=data.get("display_name") or "Spotify User",
            image_urls=[img["url"] for img in data.get("images") or [] if img.get("url")],
            email=data.get("email") or "",
        )

    @classmethod
    def from_json(cls, raw: str) -> "Profile":
        try:
            data = json.loads(raw)
            urls = data.get("image_urls") or []
            if not isinstance(urls, list):
                raise TypeError("image_urls must be a list")
            return cls(
                id=str(data["id"]),
                display_name=str(data["display_name"]),
                image_urls=[str(u) for u in urls],
                email=str(data.get("email") or ""),
            )
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise MalformedPersistedState(f"stored profile unreadable: {e}") from e

    def to_json(self) -> str:
        return json.dumps(asdict(self))


@dataclass(frozen=True)
class Session:
    access_token: str | None = None
    expiry_instant: float | None = None
    user: Profile | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def seconds_left(self, now: float) -> float | None:
        if self.expiry_instant is None:
            return None
        return self.expiry_instant - now


EMPTY_SESSION = Session()


class LoadOutcome(enum.Enum):
    RESTORED = "restored"
    EXPIRED = "expired"  # caller should attempt a refresh
    ABSENT = "absent"


class TokenStore:
    def __init__(self, storage: DurableStore, clock: Callable[[], float] = time.time):
        self._storage = storage
        self._clock = clock
        self._session = EMPTY_SESSION
        self._hydrated = False

    @property
    def session(self) -> Session:
        return self._session

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    def set_session(self, token: str, expires_in: float) -> Session:
        """Replace token and expiry (profile kept). Persisted only after hydration."""
        if not token:
            raise ValueError("access token must be non-empty")
        if expires_in < 0:
            raise ValueError("expires_in must be >= 0")
        expiry = self._clock() + expires_in
        self._session = replace(self._session, access_token=token, expiry_instant=expiry)
        if self._hydrated:
            self._storage.set_many({KEY_ACCESS_TOKEN: token, KEY_EXPIRY_INSTANT: repr(expiry)})
        return self._session

    def set_profile(self, profile: Profile) -> None:
        self._session = replace(self._session, user=profile)
        if self._hydrated:
            self._storage.set_many({KEY_USER: profile.to_json()})

    def clear_session(self) -> None:
        """Forget token, expiry and profile in memory and on disk. Idempotent."""
        self._session = EMPTY_SESSION
        if self._hydrated:
            self._storage.remove(*ALL_KEYS)

    def load_persisted(self) -> LoadOutcome:
        """
        One-time hydration. Marks the store hydrated, then restores a still-valid session.
        Expired state is not restored (EXPIRED tells the caller to refresh).
        Missing or malformed state starts unauthenticated; nothing is raised.
        """
        self._hydrated = True
        try:
            stored = self._storage.get_many(*ALL_KEYS)
        except SQLAlchemyError:
            logger.exception("Could not read persisted session; starting unauthenticated")
            return LoadOutcome.ABSENT

        try:
            return self._restore(stored)
        except MalformedPersistedState as e:
            logger.warning("Discarding malformed persisted session: %s", e)
            self._session = EMPTY_SESSION
            self._storage.remove(*ALL_KEYS)
            return LoadOutcome.ABSENT

    def _restore(self, stored: dict[str, str]) -> LoadOutcome:
        token = stored.get(KEY_ACCESS_TOKEN)
        raw_expiry = stored.get(KEY_EXPIRY_INSTANT)
        if raw_expiry is None:
            if token is not None:
                raise MalformedPersistedState("access token stored without expiry")
            return LoadOutcome.ABSENT
        try:
            expiry = float(raw_expiry)
        except ValueError as e:
            raise MalformedPersistedState(f"bad expiry {raw_expiry!r}") from e

        if not token:
            raise MalformedPersistedState("expiry stored without access token")
        if self._clock() >= expiry:
            logger.info("Persisted access token expired; refresh needed")
            return LoadOutcome.EXPIRED

        user = None
        raw_user = stored.get(KEY_USER)
        if raw_user is not None:
            try:
                user = Profile.from_json(raw_user)
            except MalformedPersistedState as e:
                # Profile is optional; keep the valid token
                logger.warning("Dropping stored profile: %s", e)
                self._storage.remove(KEY_USER)
        self._session = Session(access_token=token, expiry_instant=expiry, user=user)
        return LoadOutcome.RESTORED
