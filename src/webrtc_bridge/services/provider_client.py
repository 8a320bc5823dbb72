"""Shared aiohttp transport for the call-control and WebRTC provider APIs."""

import asyncio
import json
import logging
from typing import Any

import aiohttp

from ..errors import ProviderError, ProviderNotFound

logger = logging.getLogger(__name__)


class ProviderClient:
    """Minimal JSON-over-HTTP client with basic auth scoped to one account."""

    def __init__(
        self,
        base_url: str,
        account_id: str,
        username: str,
        password: str,
        timeout: float = 15.0,
    ):
        """Initialize provider client.

        Args:
            base_url: API base URL, without the account path
            account_id: Provider account id
            username: Basic-auth user name
            password: Basic-auth password
            timeout: Total timeout for a single request in seconds
        """
        self.base_url = f"{base_url.rstrip('/')}/accounts/{account_id}"
        self._auth = aiohttp.BasicAuth(username, password)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        # Opened lazily so it binds to the running event loop.
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(auth=self._auth, timeout=self._timeout)
        return self._session

    async def request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        """Send a request and return the decoded body.

        Args:
            method: HTTP method
            path: Path relative to the account URL
            payload: Optional JSON body

        Returns:
            Decoded JSON body, raw text for non-JSON bodies, or None when empty

        Raises:
            ProviderNotFound: If the provider answers 404
            ProviderError: For any other non-2xx answer or transport failure
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            async with self._get_session().request(method, url, json=payload) as response:
                body = self._decode(await response.text())
                if response.status == 404:
                    raise ProviderNotFound(f"{method} {path} not found", status=404, body=body)
                if response.status >= 400:
                    raise ProviderError(
                        f"{method} {path} failed with HTTP {response.status}",
                        status=response.status,
                        body=body,
                    )
                return body
        except aiohttp.ClientError as e:
            raise ProviderError(f"{method} {path} failed: {e}") from e
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{method} {path} timed out") from e

    @staticmethod
    def _decode(text: str) -> Any:
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
