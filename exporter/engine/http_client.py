# Path: exporter/engine/http_client.py
"""
Export HTTP Client

Shared aiohttp session and JSON request helpers for the export server.

Architecture:
- One lazily created ClientSession per client
- Bearer token from a pluggable credential provider
- JSON replies wrapped in ApiResponse (status, data, text)
- Transport errors propagate; callers decide what is retryable
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional
import aiohttp

from exporter.core.logger import get_logger
from exporter.core.config_loader import ConfigLoader
from exporter.constants import (
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    LOG_PROCESS,
)
from exporter.engine.constants import (
    MAX_CONCURRENT_CONNECTIONS,
    FORCE_CLOSE_CONNECTIONS,
    HEADER_AUTHORIZATION,
    HEADER_ACCEPT,
    HEADER_CONTENT_TYPE,
    BEARER_PREFIX,
    ACCEPT_JSON,
    CONTENT_TYPE_JSON,
)

logger = get_logger(__name__, 'engine')


class StaticTokenProvider:
    """
    Credential provider returning a fixed bearer token.

    Any object with an async get_token() method can replace it.

    Example:
        provider = StaticTokenProvider(os.environ['EXPORTER_API_TOKEN'])
        token = await provider.get_token()
    """

    def __init__(self, token: Optional[str]):
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token


@dataclass
class ApiResponse:
    """
    Reply from a JSON endpoint.

    Attributes:
        status: HTTP status code
        data: Decoded JSON body, None when empty or not JSON
        text: Raw body text
    """
    status: int
    data: Any = None
    text: str = ''

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class ExportHttpClient:
    """
    HTTP client for the export server.

    Features:
    - Lazy aiohttp session with connection pooling
    - Bearer authentication via token provider
    - Relative paths resolved against the server base URL
    - Async context manager support

    Example:
        async with ExportHttpClient('https://tenant.example.com', provider) as http:
            reply = await http.get_json('/api/users/me')
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[Any] = None,
        timeout: Optional[float] = None,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Server root URL (from config if None)
            token_provider: Object with async get_token() (from config token if None)
            timeout: Total request timeout in seconds (from config if None)
            config: Optional ConfigLoader instance

        Raises:
            ValueError: If no base URL is configured
        """
        self.config = config if config else ConfigLoader()

        base_url = base_url if base_url is not None else self.config.get('base_url')
        if not base_url:
            raise ValueError("Export server base URL not configured")
        self.base_url = base_url.rstrip('/')

        self.token_provider = token_provider if token_provider is not None else \
            StaticTokenProvider(self.config.get('api_token'))

        self.timeout = timeout if timeout is not None else \
            self.config.get('request_timeout', DEFAULT_TIMEOUT)
        self.connect_timeout = self.config.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)

        self._session: Optional[aiohttp.ClientSession] = None

    def url_for(self, path: str) -> str:
        """
        Resolve a server path to an absolute URL.

        Args:
            path: Absolute URL or path starting with '/'

        Returns:
            Absolute URL
        """
        if path.startswith('http://') or path.startswith('https://'):
            return path
        if not path.startswith('/'):
            path = '/' + path
        return f"{self.base_url}{path}"

    async def auth_headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        """
        Build request headers with the current bearer token.

        Args:
            extra: Additional headers

        Returns:
            Dictionary of headers
        """
        headers = {HEADER_ACCEPT: ACCEPT_JSON}
        token = await self.token_provider.get_token()
        if token:
            headers[HEADER_AUTHORIZATION] = f"{BEARER_PREFIX}{token}"
        if extra:
            headers.update(extra)
        return headers

    async def get_json(self, path: str, timeout: Optional[float] = None) -> ApiResponse:
        """
        GET a JSON endpoint.

        Args:
            path: Server path or URL
            timeout: Override of the total request timeout

        Returns:
            ApiResponse

        Raises:
            aiohttp.ClientError: Transport failure
            asyncio.TimeoutError: Request timed out
        """
        return await self._request('GET', path, timeout=timeout)

    async def post_json(
        self,
        path: str,
        body: Any,
        headers: Optional[dict[str, str]] = None,
        raise_for_status: bool = False
    ) -> ApiResponse:
        """
        POST a JSON body.

        Args:
            path: Server path or URL
            body: JSON-serializable request body
            headers: Additional headers
            raise_for_status: Raise aiohttp.ClientResponseError on non-2xx

        Returns:
            ApiResponse
        """
        extra = {HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON}
        if headers:
            extra.update(headers)
        return await self._request(
            'POST', path, json_body=body, headers=extra, raise_for_status=raise_for_status
        )

    async def delete(self, path: str) -> ApiResponse:
        """DELETE a resource."""
        return await self._request('DELETE', path)

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
        raise_for_status: bool = False
    ) -> ApiResponse:
        session = await self._get_session()
        url = self.url_for(path)
        request_headers = await self.auth_headers(headers)

        logger.debug(f"{LOG_PROCESS} {method} {url}")

        async with session.request(
            method,
            url,
            json=json_body,
            headers=request_headers,
            timeout=aiohttp.ClientTimeout(
                total=timeout if timeout is not None else self.timeout,
                connect=self.connect_timeout
            )
        ) as response:
            if raise_for_status:
                response.raise_for_status()

            text = await response.text()
            data = None
            if text.strip():
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None

            return ApiResponse(status=response.status, data=data, text=text)

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session.

        Returns:
            Active ClientSession
        """
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=MAX_CONCURRENT_CONNECTIONS,
                force_close=FORCE_CLOSE_CONNECTIONS
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(
                    total=self.timeout,
                    connect=self.connect_timeout
                )
            )
        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            # Let the connector finish closing transports
            await asyncio.sleep(0)
        self._session = None

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = ['ExportHttpClient', 'StaticTokenProvider', 'ApiResponse']
