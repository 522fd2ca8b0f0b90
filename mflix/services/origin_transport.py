"""
Outbound transports for the origin relay, selected per request from the origin URL scheme.
Plain and TLS origins get separate httpx clients so their connection pools and TLS settings stay apart.
Connecting and waiting for response headers are bounded; reading the body is not.
"""
import logging
import anyio
import httpx
from fastapi import Request
from mflix.config import Settings

logger = logging.getLogger(__name__)


class UpstreamConnectError(Exception):
    """The origin could not be reached before response headers arrived."""


class OriginTransport:
    scheme = ""
    default_port = 0

    def __init__(self, client: httpx.AsyncClient, headers_timeout: float | None = None):
        self.client = client
        self.headers_timeout = headers_timeout

    def address(self, url: httpx.URL) -> str:
        return f"{url.host}:{url.port or self.default_port}"

    async def open(self, url: str, headers: dict[str, str]) -> httpx.Response:
        """Send one GET and return the response as soon as headers are in. Body stays unread."""
        try:
            request = self.client.build_request("GET", url, headers=headers)
        except httpx.InvalidURL as e:
            raise UpstreamConnectError(f"Invalid origin URL: {e}") from e
        address = self.address(request.url)
        try:
            with anyio.fail_after(self.headers_timeout):
                return await self.client.send(request, stream=True)
        except TimeoutError as e:
            logger.warning("Origin %s did not answer within %ss", address, self.headers_timeout)
            raise UpstreamConnectError(f"Timed out waiting for origin {address}") from e
        except httpx.HTTPError as e:
            logger.warning("Origin %s unreachable: %s", address, e)
            raise UpstreamConnectError(f"Failed to reach origin {address}") from e


class PlainOriginTransport(OriginTransport):
    scheme = "http"
    default_port = 80


class TlsOriginTransport(OriginTransport):
    scheme = "https"
    default_port = 443


class OriginTransports:
    """Scheme -> transport registry. Built once per app, injected into each stream request."""

    def __init__(self, transports: list[OriginTransport]):
        self._by_scheme = {t.scheme: t for t in transports}

    def for_url(self, url: str) -> OriginTransport:
        try:
            scheme = httpx.URL(url).scheme
        except httpx.InvalidURL as e:
            raise UpstreamConnectError(f"Invalid origin URL: {e}") from e
        transport = self._by_scheme.get(scheme)
        if transport is None:
            raise UpstreamConnectError(f"Unsupported origin scheme: {scheme or '(none)'}")
        return transport

    async def aclose(self) -> None:
        for transport in self._by_scheme.values():
            await transport.client.aclose()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "OriginTransports":
        """`transport` replaces the network layer of both clients (tests pass httpx.MockTransport)."""
        timeout = httpx.Timeout(None, connect=settings.origin_connect_timeout_seconds)

        def make_client(verify: bool) -> httpx.AsyncClient:
            return httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=False,
                # Relay must be byte-exact: never ask the origin for a compressed representation
                headers={"Accept-Encoding": "identity"},
                verify=verify,
                transport=transport,
            )

        headers_timeout = settings.origin_headers_timeout_seconds
        return cls([
            PlainOriginTransport(make_client(True), headers_timeout),
            TlsOriginTransport(make_client(settings.origin_verify_tls), headers_timeout),
        ])


def get_origin_transports(request: Request) -> OriginTransports:
    return request.app.state.origin_transports
