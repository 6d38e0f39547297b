import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Protocol

import httpx
from pydantic import ValidationError

from storefront_gateway.core.credentials import get_role_from_token, get_user_id_from_token
from storefront_gateway.core.exceptions import SessionProviderUnavailable
from storefront_gateway.core.storage import CREDENTIAL_KEY, PROFILE_KEY, KeyValueStore
from storefront_gateway.models.schemas import UserProfile

logger = logging.getLogger(__name__)


class AuthVerdict(str, Enum):
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    INCONCLUSIVE = "inconclusive"


AuthCheck = Callable[[], Awaitable[AuthVerdict]]


async def resolve_verdicts(checks: Iterable[AuthCheck]) -> bool:
    """
    Evaluate authentication sources in order.

    AUTHENTICATED short-circuits; any other verdict defers to the next
    source. Later sources are not consulted once one confirms.
    """
    for check in checks:
        if await check() is AuthVerdict.AUTHENTICATED:
            return True
    return False


class SessionProvider(Protocol):
    async def get_session(self) -> Optional[Dict[str, Any]]: ...


class UnconfiguredSessionProvider:
    """Stand-in used when no federated session endpoint is configured."""

    async def get_session(self) -> Optional[Dict[str, Any]]:
        raise SessionProviderUnavailable("Federated session lookup is not configured")


class HttpSessionProvider:
    """
    Looks up a federated session over HTTP.

    The endpoint is expected to answer with the session object, or an empty
    object when the caller has no session. The inbound request's cookies are
    passed along so the identity provider can recognise the browser.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        session_url: str,
        cookies: Optional[Dict[str, str]] = None,
        timeout: float = 5.0,
    ):
        self.client = client
        self.session_url = session_url
        self.cookies = dict(cookies or {})
        self.timeout = timeout

    async def get_session(self) -> Optional[Dict[str, Any]]:
        cookie_header = "; ".join(f"{name}={value}" for name, value in self.cookies.items())
        headers = {"accept": "application/json"}
        if cookie_header:
            headers["cookie"] = cookie_header

        try:
            response = await self.client.get(self.session_url, headers=headers, timeout=self.timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise SessionProviderUnavailable(f"Session lookup failed: {e}") from e

        if response.status_code >= 400:
            raise SessionProviderUnavailable(
                f"Session lookup returned HTTP {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SessionProviderUnavailable("Session lookup returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise SessionProviderUnavailable("Session lookup returned a non-object payload")
        if not payload.get("user"):
            return None
        return payload


class AuthSessionResolver:
    """
    Single answer to "is this user signed in", built from two sources.

    The federated session is asked first; a failing or unconfigured provider
    is inconclusive, never a logout. The locally stored credential is the
    fallback and is read from storage on every query.
    """

    def __init__(
        self,
        store: KeyValueStore,
        session_provider: Optional[SessionProvider] = None,
        session_timeout: float = 5.0,
    ):
        self.store = store
        self.session_provider = session_provider or UnconfiguredSessionProvider()
        self.session_timeout = session_timeout

    async def is_authenticated(self) -> bool:
        return await resolve_verdicts([self._federated_verdict, self._local_verdict])

    async def _federated_verdict(self) -> AuthVerdict:
        try:
            session = await asyncio.wait_for(
                self.session_provider.get_session(),
                timeout=self.session_timeout,
            )
        except SessionProviderUnavailable as e:
            logger.warning("Federated session check inconclusive: %s", e)
            return AuthVerdict.INCONCLUSIVE
        except asyncio.TimeoutError:
            logger.warning("Federated session check timed out after %.1fs", self.session_timeout)
            return AuthVerdict.INCONCLUSIVE
        except Exception:
            logger.error("Unexpected error in federated session check", exc_info=True)
            return AuthVerdict.INCONCLUSIVE

        return AuthVerdict.AUTHENTICATED if session else AuthVerdict.UNAUTHENTICATED

    async def _local_verdict(self) -> AuthVerdict:
        if await asyncio.to_thread(self.get_local_credential):
            return AuthVerdict.AUTHENTICATED
        return AuthVerdict.UNAUTHENTICATED

    def set_local_credential(self, token: str) -> None:
        self.store.set(CREDENTIAL_KEY, token)

    def get_local_credential(self) -> Optional[str]:
        token = self.store.get(CREDENTIAL_KEY)
        if not isinstance(token, str) or not token:
            return None
        return token

    def get_role(self) -> Optional[str]:
        return get_role_from_token(self.get_local_credential())

    def get_user_id(self) -> Optional[int]:
        return get_user_id_from_token(self.get_local_credential())

    def get_profile(self) -> Optional[UserProfile]:
        raw = self.store.get(PROFILE_KEY)
        if raw is None:
            return None
        try:
            return UserProfile.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Discarding unreadable cached profile: %s", e)
            return None

    def set_profile(self, profile: UserProfile) -> None:
        self.store.set(PROFILE_KEY, profile.model_dump_json(by_alias=True))

    def logout(self) -> None:
        """Drop the credential and the cached profile in one write."""
        self.store.delete_many([CREDENTIAL_KEY, PROFILE_KEY])
        logger.info("Local credential and cached profile cleared")
