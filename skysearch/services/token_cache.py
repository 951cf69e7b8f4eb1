import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from skysearch.config import settings
from skysearch.exceptions import AuthError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"


class TokenCache:
    """
    Holds the Amadeus bearer token and its absolute expiry.

    The cached token is returned while ``now < expiry - safety_margin``.
    Refreshes are single-flight: concurrent callers that find the token
    stale wait on one lock and the first one through performs the exchange.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 client_id: Optional[str] = None,
                 client_secret: Optional[str] = None,
                 safety_margin: Optional[float] = None,
                 timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url or settings.amadeus_base_url
        self.client_id = client_id if client_id is not None else settings.amadeus_api_key
        self.client_secret = client_secret if client_secret is not None else settings.amadeus_api_secret
        self.safety_margin = max(60.0, safety_margin if safety_margin is not None
                                 else settings.token_safety_margin_seconds)
        self.timeout = timeout or settings.auth_timeout_seconds
        self._clock = clock
        self._transport = transport

        # Replaced together, as a pair, once a refresh has succeeded
        self._state: Optional[tuple] = None
        self._lock = asyncio.Lock()

    def _cached(self) -> Optional[str]:
        state = self._state
        if state is None:
            return None
        token, expiry = state
        if self._clock() < expiry - self.safety_margin:
            return token
        return None

    async def get_token(self) -> str:
        token = self._cached()
        if token is not None:
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._cached()
            if token is not None:
                return token
            return await self._exchange()

    async def refresh(self, stale_token: Optional[str] = None) -> str:
        """
        Force a new credential exchange, e.g. after the provider answered 401.

        If ``stale_token`` is given and the cache already holds a different
        token, someone else refreshed in the meantime and that token is reused.
        """
        async with self._lock:
            state = self._state
            if stale_token is not None and state is not None and state[0] != stale_token:
                return state[0]
            return await self._exchange()

    async def _exchange(self) -> str:
        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret
        }

        try:
            async with httpx.AsyncClient(base_url=self.base_url,
                                         timeout=self.timeout,
                                         transport=self._transport) as client:
                response = await client.post(TOKEN_PATH, data=data)
                response.raise_for_status()
                auth_data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Amadeus authentication failed with status code: {e.response.status_code}")
            raise AuthError(f"Token endpoint returned {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            logger.error("Amadeus token request timed out")
            raise AuthError("Token endpoint timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Failed to reach Amadeus token endpoint: {e}")
            raise AuthError(f"Token endpoint unreachable: {e}") from e
        except ValueError as e:
            raise AuthError("Token endpoint returned invalid JSON") from e

        if not isinstance(auth_data, dict) or not auth_data.get("access_token"):
            logger.error("Amadeus token response had no access_token")
            raise AuthError("Token response missing access_token")
        access_token = auth_data["access_token"]

        expires_in = auth_data.get("expires_in", 1799)
        try:
            lifetime = float(expires_in)
        except (TypeError, ValueError) as e:
            logger.error(f"Amadeus token response had an unreadable expires_in: {expires_in!r}")
            raise AuthError(f"Token response has invalid expires_in: {expires_in!r}") from e
        self._state = (access_token, self._clock() + lifetime)
        logger.info(f"Refreshed Amadeus access token (expires in {expires_in}s)")
        return access_token
