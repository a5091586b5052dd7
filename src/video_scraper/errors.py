"""
Errors - Video Scraper

Exception taxonomy shared by extractors, relays and the HTTP layer.
Every error carries a wire name (``kind``) and the HTTP status it maps to.
"""

from typing import Dict, List


class ScraperError(Exception):
    """Base exception for scraper errors."""

    kind = 'ScraperError'
    status_code = 500

    def to_dict(self) -> Dict:
        return {'kind': self.kind, 'detail': str(self)}


# === Input errors (4xx, never retried) ===

class InputError(ScraperError):
    """Raised when a request is missing data or malformed."""

    kind = 'InputError'
    status_code = 400


class MissingURLError(InputError):
    """Raised when an extraction or relay request has no URL."""

    kind = 'MissingURLError'


# === Static extractor errors ===

class FetchError(ScraperError):
    """Raised when a page cannot be fetched (network failure, non-2xx)."""

    kind = 'FetchError'
    status_code = 502


class ParseError(ScraperError):
    """Raised when markup cannot be parsed at all."""

    kind = 'ParseError'


# === Rendering infrastructure errors (fallback triggers) ===

class TransientInfraError(ScraperError):
    """Rendering engine trouble: triggers fallback to the next strategy."""

    kind = 'TransientInfra'
    status_code = 503


class BrowserLaunchError(TransientInfraError):
    """Raised when the rendering engine fails to start."""

    kind = 'BrowserLaunchError'


class RenderTimeout(TransientInfraError):
    """Raised when a page never reaches its content-loaded signal."""

    kind = 'RenderTimeout'


class NavigationError(TransientInfraError):
    """Raised when navigation fails (DNS, connection reset, aborted...)."""

    kind = 'NavigationError'


class NavigationTimeout(NavigationError):
    """Raised when navigation exceeds its deadline."""

    kind = 'NavigationTimeout'


# === Orchestrator ===

class AllStrategiesExhausted(ScraperError):
    """
    Raised when every strategy in the selected chain returned nothing
    or hard-failed.

    ``attempts`` is the ordered list of StrategyResult objects. When the
    last strategy hard-failed the failure is reported as a service error
    rather than "nothing found".
    """

    kind = 'AllStrategiesExhausted'

    def __init__(self, url: str, attempts: List):
        self.url = url
        self.attempts = list(attempts)
        names = ', '.join(a.strategy for a in self.attempts) or 'none'
        super().__init__(f"No videos found for {url} (tried: {names})")

    @property
    def attempted(self) -> List[str]:
        return [a.strategy for a in self.attempts]

    @property
    def transient(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].hard_failed

    @property
    def status_code(self) -> int:
        return TransientInfraError.status_code if self.transient else 404

    def to_dict(self) -> Dict:
        if self.transient:
            kind = TransientInfraError.kind
        else:
            kind = self.kind
        return {
            'kind': kind,
            'detail': str(self),
            'attempted': [a.to_dict() for a in self.attempts],
        }


# === Relay ===

class UpstreamTransferError(ScraperError):
    """Raised when the chosen source cannot be relayed."""

    kind = 'UpstreamTransferError'
    status_code = 502


class ProbeError(ScraperError):
    """Raised when media metadata cannot be loaded for a candidate."""

    kind = 'ProbeError'


class RelayDisabledError(ScraperError):
    """Raised when the request forwarder is switched off or the method is not allowed."""

    kind = 'RelayDisabled'
    status_code = 403
