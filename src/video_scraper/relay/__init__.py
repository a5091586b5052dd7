"""
Relay Module - Video Scraper

Streams a chosen media source back to the caller: plain HTTP pass-through,
ffmpeg audio/video merge, and the server-side request forwarder.
"""

from .direct_relay import DirectRelay, RelayStream, infer_content_type, infer_filename
from .merge_relay import MergeRelay
from .proxy_relay import ProxyRelay, ProxyResponse

__all__ = [
    'DirectRelay',
    'MergeRelay',
    'ProxyRelay',
    'ProxyResponse',
    'RelayStream',
    'infer_content_type',
    'infer_filename',
]
