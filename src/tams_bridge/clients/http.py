"""
HTTP Transport

Thin aiohttp wrapper shared by every backend client. It owns the
session, builds absolute URLs and maps transport failures to
``TamsApiError``. Status codes are not interpreted here.
"""

import asyncio
import json as jsonlib
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from multidict import CIMultiDict
from yarl import URL

from ..errors import TamsApiError

logger = logging.getLogger(__name__)


@dataclass
class HttpResponse:
    """
    A fully read HTTP response.

    Attributes:
        status: HTTP status code
        reason: Status text
        headers: Case-insensitive response headers
        body: Raw response body
        url: Requested URL
    """
    status: int
    reason: str = ""
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: bytes = b""
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_empty(self) -> bool:
        """True for 204 responses and zero-length bodies."""
        return self.status == 204 or not self.body.strip()

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        """
        Decode the body as JSON.

        Returns:
            Decoded value, or None for an empty body

        Raises:
            TamsApiError: If the body is not valid JSON
        """
        if self.is_empty:
            return None
        try:
            return jsonlib.loads(self.body)
        except ValueError as e:
            raise TamsApiError(f"Invalid JSON in response from {self.url}: {e}") from e


class HttpTransport:
    """
    aiohttp-backed request executor.

    The session is created lazily on first use and must be released with
    ``close()``.

    Example:
        transport = HttpTransport("http://localhost:8000", timeout=10)
        response = await transport.request("GET", "/flows?limit=10")
        await transport.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        backend: str | None = None,
    ):
        """
        Initialize the transport.

        Args:
            base_url: Base address prepended to relative paths
            timeout: Total timeout per request in seconds
            headers: Default headers sent with every request
            backend: Backend identifier used in error messages
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Accept": "application/json", **(headers or {})}
        self.backend = backend
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create an aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session:
            await self._session.close()
            self._session = None

    def build_url(self, path: str) -> str:
        """Resolve a path against the base address; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        """
        Execute a request and read the whole response.

        Args:
            method: HTTP method
            path: Path (with an already encoded query string) or absolute URL
            json: JSON body
            data: Raw or multipart body (``aiohttp.FormData``)
            headers: Extra request headers

        Returns:
            HttpResponse for any status code

        Raises:
            TamsApiError: On connection failures and timeouts
        """
        url = self.build_url(path)
        session = await self._get_session()
        logger.debug(f"{method} {url}")

        try:
            async with session.request(
                method,
                URL(url, encoded=True),
                json=json,
                data=data,
                headers=headers,
            ) as response:
                body = await response.read()
                return HttpResponse(
                    status=response.status,
                    reason=response.reason or "",
                    headers=CIMultiDict(response.headers),
                    body=body,
                    url=url,
                )
        except aiohttp.ClientConnectorError as e:
            raise TamsApiError(
                f"Cannot connect to {self.base_url}: {e}",
                backend=self.backend,
            ) from e
        except asyncio.TimeoutError as e:
            raise TamsApiError(
                f"Request to {url} timed out after {self.timeout}s",
                backend=self.backend,
            ) from e
        except aiohttp.ClientError as e:
            raise TamsApiError(
                f"Request to {url} failed: {e}",
                backend=self.backend,
            ) from e
