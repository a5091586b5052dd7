"""
Direct Relay - Relay Module

Streams a single media URL to the caller chunk by chunk, so the payload is
never held in memory. The upstream response is opened (and its status
checked) before anything is handed to the HTTP layer, so an unreachable
source still becomes a proper error response.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional
from urllib.parse import quote, unquote, urlparse

import aiohttp

from .. import config
from ..errors import MissingURLError, UpstreamTransferError

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = 'video.mp4'
DEFAULT_EXTENSION = 'mp4'
DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def _extension_for(content_type: Optional[str]) -> Optional[str]:
    """'video/webm; codecs=vp9' -> 'webm'. Only media types count."""
    if not content_type:
        return None
    mime = content_type.split(';')[0].strip().lower()
    major, _, subtype = mime.partition('/')
    if major in ('video', 'audio') and subtype:
        return subtype
    return None


def infer_filename(source_url: str, filename: Optional[str] = None,
                   content_type: Optional[str] = None) -> str:
    """
    Pick the download filename for a source.

    Args:
        source_url: The media URL being relayed
        filename: Caller-supplied name, preferred when given
        content_type: Upstream Content-Type, used to add a missing extension

    Returns:
        A filename that always carries an extension
    """
    name = (filename or '').strip()
    if not name:
        segments = [s for s in unquote(urlparse(source_url).path).split('/') if s]
        name = segments[-1] if segments else ''
    if not name:
        return DEFAULT_FILENAME

    if '.' not in name.strip('.'):
        name = f"{name.rstrip('.')}.{_extension_for(content_type) or DEFAULT_EXTENSION}"
    return name


def infer_content_type(filename: str, upstream: Optional[str] = None) -> str:
    """Upstream Content-Type if present, else a guess from the filename."""
    if upstream:
        return upstream
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_CONTENT_TYPE


def content_disposition(filename: str) -> str:
    ascii_name = filename.encode('ascii', 'ignore').decode().replace('"', '') or DEFAULT_FILENAME
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@dataclass
class RelayStream:
    """An opened relay: response metadata plus the body iterator."""

    filename: str
    content_type: str
    body: AsyncIterator[bytes]
    content_length: Optional[int] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)
    on_close: Optional[Callable[[], Awaitable[None]]] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {'Content-Disposition': content_disposition(self.filename)}
        if self.content_length is not None:
            headers['Content-Length'] = str(self.content_length)
        headers.update(self.extra_headers)
        return headers

    async def close(self):
        """
        Release the upstream even if the body was never iterated.

        Idempotent; the body generator releases the same resources when it
        finishes.
        """
        if self.on_close is not None:
            await self.on_close()


class DirectRelay:
    """
    Direct Relay - aiohttp Pass-Through

    Usage:
        stream = await DirectRelay().open(url, filename='clip.mp4')
        async for chunk in stream.body:
            ...
    """

    def __init__(self, chunk_size: int = config.RELAY_CHUNK_SIZE,
                 timeout: float = config.RELAY_TIMEOUT):
        self.chunk_size = chunk_size
        # No total deadline: a long video is fine as long as bytes keep coming
        self.timeout = aiohttp.ClientTimeout(total=None, sock_connect=timeout, sock_read=timeout)

    async def open(self, source_url: str, filename: Optional[str] = None) -> RelayStream:
        """
        Open the upstream response.

        Args:
            source_url: Media URL chosen by the caller
            filename: Optional download name

        Returns:
            RelayStream whose body yields the upstream bytes

        Raises:
            MissingURLError: No source URL
            UpstreamTransferError: Source unreachable or answered non-2xx
        """
        if not source_url:
            raise MissingURLError("Missing sourceUrl")

        logger.info(f"Relaying: {source_url[:80]}")
        session = aiohttp.ClientSession(timeout=self.timeout)
        try:
            response = await session.get(source_url, allow_redirects=True)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await session.close()
            logger.error(f"Upstream unreachable: {source_url[:80]} ({e})")
            raise UpstreamTransferError(f"Could not reach source: {e}") from e

        if not 200 <= response.status < 300:
            response.release()
            await session.close()
            logger.error(f"Upstream returned HTTP {response.status}: {source_url[:80]}")
            raise UpstreamTransferError(f"Source returned HTTP {response.status}")

        upstream_type = response.headers.get('Content-Type')
        name = infer_filename(source_url, filename, upstream_type)

        return RelayStream(
            filename=name,
            content_type=infer_content_type(name, upstream_type),
            body=self._iter_body(session, response),
            content_length=response.content_length,
            on_close=lambda: self._release(session, response),
        )

    async def _iter_body(self, session: aiohttp.ClientSession,
                         response: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.content.iter_chunked(self.chunk_size):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            # Headers are already out; all that is left is to cut the stream
            logger.error(f"Upstream failed mid-transfer, stream truncated: {e}")
            raise UpstreamTransferError(f"Transfer interrupted: {e}") from e
        finally:
            await self._release(session, response)

    async def _release(self, session: aiohttp.ClientSession,
                       response: aiohttp.ClientResponse):
        response.release()
        await session.close()
