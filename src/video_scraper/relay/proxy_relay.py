"""
Proxy Relay - Relay Module

Forwards an arbitrary HTTP request server-side and hands back the raw
response body as text. Only the configured methods are forwarded, and the
whole forwarder can be switched off.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import aiohttp

from .. import config
from ..errors import MissingURLError, RelayDisabledError, UpstreamTransferError

logger = logging.getLogger(__name__)

# Set by aiohttp for the new connection; forwarding the caller's would be wrong
DROPPED_HEADERS = {'host', 'content-length', 'connection', 'transfer-encoding', 'accept-encoding'}


@dataclass
class ProxyResponse:
    status: int
    text: str
    content_type: str = 'text/plain'


class ProxyRelay:
    """Forward a request and return the upstream body as text"""

    def __init__(self, enabled: bool = config.ENABLE_PROXY_RELAY,
                 methods: Iterable[str] = config.PROXY_RELAY_METHODS,
                 timeout: float = config.RELAY_TIMEOUT):
        self.enabled = enabled
        self.methods = {m.upper() for m in methods}
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def forward(self, target_url: str, method: str = 'GET',
                      headers: Optional[Dict[str, str]] = None,
                      body: Optional[str] = None) -> ProxyResponse:
        """
        Forward one request.

        Args:
            target_url: Where to send it
            method: HTTP method, must be allow-listed
            headers: Request headers to pass along
            body: Request body, sent as-is

        Returns:
            ProxyResponse with the upstream status and body text

        Raises:
            MissingURLError: No target URL
            RelayDisabledError: Forwarder switched off or method not allowed
            UpstreamTransferError: Target unreachable
        """
        if not self.enabled:
            raise RelayDisabledError("Proxy relay is disabled")
        if not target_url:
            raise MissingURLError("Missing targetUrl")

        method = (method or 'GET').upper()
        if method not in self.methods:
            raise RelayDisabledError(f"Method {method} is not allowed")

        forwarded = {k: v for k, v in (headers or {}).items() if k.lower() not in DROPPED_HEADERS}
        logger.info(f"Proxy relay: {method} {target_url[:80]}")

        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.request(method, target_url, headers=forwarded,
                                           data=body, allow_redirects=True) as response:
                    text = await response.text(errors='replace')
                    content_type = response.headers.get('Content-Type', 'text/plain')
                    return ProxyResponse(status=response.status, text=text,
                                         content_type=content_type)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Proxy relay failed for {target_url[:80]}: {e}")
            raise UpstreamTransferError(f"Could not reach target: {e}") from e
