"""
Range-aware relay from the video origin to the player.

The Range header goes to the origin verbatim and the origin's status and headers come back
unchanged, so 200/206/416 and Content-Range are the origin's own. Access and origin resolution
are decided before any upstream connection is opened.

Body bytes are pulled from the origin one chunk at a time, and the next chunk is only read once
the ASGI server has accepted the previous one, so a slow player slows the upstream read.
"""
import enum
import logging
from typing import AsyncIterator, Protocol

import anyio
import anyio.to_thread
import httpx
from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from mflix.models.content import Content
from mflix.services.access_gate import AccessDecision, SubscriptionVerifier, check_access
from mflix.services.origin_resolver import resolve, resolve_episode
from mflix.services.origin_transport import OriginTransports

logger = logging.getLogger(__name__)

# Connection-scoped headers; the ASGI server frames the downstream response itself
HOP_BY_HOP_HEADERS = frozenset({
    b"connection",
    b"keep-alive",
    b"proxy-authenticate",
    b"proxy-authorization",
    b"proxy-connection",
    b"te",
    b"trailer",
    b"trailers",
    b"transfer-encoding",
    b"upgrade",
})
ALLOW_ORIGIN_HEADER = b"access-control-allow-origin"


class StreamState(str, enum.Enum):
    IDLE = "idle"
    ACCESS_CHECKED = "access_checked"
    ORIGIN_RESOLVED = "origin_resolved"
    UPSTREAM_CONNECTING = "upstream_connecting"
    UPSTREAM_HEADERS_RECEIVED = "upstream_headers_received"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


class ContentNotFound(Exception):
    pass


class AccessDenied(Exception):
    def __init__(self, decision: AccessDecision):
        super().__init__(decision.message)
        self.reason = decision.reason
        self.message = decision.message


class UpstreamMidStreamError(Exception):
    """Origin failed after headers were committed to the caller. The caller connection must be dropped."""


class ContentCatalog(Protocol):
    def get_content_by_id(self, content_id: str) -> Content | None: ...


class ProxySession:
    """State of one relayed request, from access check until the upstream response is closed."""

    def __init__(self, content_id: str, chunk_size: int, allow_origin: str):
        self.content_id = content_id
        self.chunk_size = chunk_size
        self.allow_origin = allow_origin
        self.state = StreamState.IDLE
        self.upstream: httpx.Response | None = None
        self.bytes_relayed = 0

    def advance(self, state: StreamState) -> None:
        logger.debug("Stream %s: %s -> %s", self.content_id, self.state.value, state.value)
        self.state = state

    @property
    def status_code(self) -> int:
        return self.upstream.status_code

    def response_headers(self) -> list[tuple[bytes, bytes]]:
        headers = [
            (name.lower(), value)
            for name, value in self.upstream.headers.raw
            if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != ALLOW_ORIGIN_HEADER
        ]
        headers.append((ALLOW_ORIGIN_HEADER, self.allow_origin.encode("latin-1")))
        return headers

    async def relay(self) -> AsyncIterator[bytes]:
        """Yield upstream body bytes in arrival order. Always closes the upstream response."""
        self.advance(StreamState.STREAMING)
        try:
            async for chunk in self.upstream.aiter_raw(self.chunk_size):
                self.bytes_relayed += len(chunk)
                yield chunk
            logger.info("Relayed %d bytes for content %s", self.bytes_relayed, self.content_id)
        except httpx.HTTPError as e:
            logger.warning(
                "Origin dropped stream for content %s after %d bytes: %s",
                self.content_id, self.bytes_relayed, e,
            )
            raise UpstreamMidStreamError(str(e)) from e
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self.upstream is not None and not self.upstream.is_closed:
            # Released even while the relay task is being cancelled
            with anyio.CancelScope(shield=True):
                await self.upstream.aclose()
        if self.state not in (StreamState.CLOSED, StreamState.FAILED):
            self.advance(StreamState.CLOSED)


class StreamProxy:
    def __init__(
        self,
        catalog: ContentCatalog,
        verifier: SubscriptionVerifier,
        transports: OriginTransports,
        chunk_size: int = 64 * 1024,
        allow_origin: str = "*",
    ):
        self.catalog = catalog
        self.verifier = verifier
        self.transports = transports
        self.chunk_size = chunk_size
        self.allow_origin = allow_origin

    @staticmethod
    def forward_headers(range_header: str | None, user_agent: str | None) -> dict[str, str]:
        headers = {}
        if range_header:
            headers["Range"] = range_header
        if user_agent:
            headers["User-Agent"] = user_agent
        return headers

    def _authorize(
        self,
        session: ProxySession,
        credential: str | None,
        episode: int | None,
    ) -> str:
        """Blocking part of open: catalog and subscription lookups, access decision, origin URL."""
        record = self.catalog.get_content_by_id(session.content_id)
        if record is None:
            raise ContentNotFound("Content not found")

        decision = check_access(record.access, credential, self.verifier)
        if not decision.granted:
            logger.warning("Stream access denied for content %s: %s", session.content_id, decision.reason.value)
            raise AccessDenied(decision)
        session.advance(StreamState.ACCESS_CHECKED)

        origin_url = resolve(record) if episode is None else resolve_episode(record, episode)
        if not origin_url:
            raise ContentNotFound("No video available for this content")
        session.advance(StreamState.ORIGIN_RESOLVED)
        return origin_url

    async def open(
        self,
        content_id: str,
        range_header: str | None = None,
        credential: str | None = None,
        user_agent: str | None = None,
        episode: int | None = None,
    ) -> ProxySession:
        """
        Check access, resolve the origin and connect. Returns once upstream headers are in.
        Raises ContentNotFound, AccessDenied or UpstreamConnectError; nothing is opened on the first two.
        Database lookups run in a worker thread and hold no connection once they return.
        """
        session = ProxySession(content_id, self.chunk_size, self.allow_origin)
        try:
            origin_url = await anyio.to_thread.run_sync(self._authorize, session, credential, episode)
            transport = self.transports.for_url(origin_url)
            session.advance(StreamState.UPSTREAM_CONNECTING)
            session.upstream = await transport.open(origin_url, self.forward_headers(range_header, user_agent))
        except Exception:
            session.advance(StreamState.FAILED)
            raise
        session.advance(StreamState.UPSTREAM_HEADERS_RECEIVED)
        return session


class RelayResponse(StreamingResponse):
    """Streams a ProxySession and closes it however the exchange ends (done, caller gone, or error)."""

    def __init__(self, session: ProxySession):
        super().__init__(session.relay(), status_code=session.status_code)
        self.raw_headers = session.response_headers()
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            if self.session.state == StreamState.STREAMING:
                logger.debug(
                    "Caller left stream for content %s after %d bytes",
                    self.session.content_id, self.session.bytes_relayed,
                )
            await self.session.aclose()
