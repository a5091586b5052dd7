"""
Configuration - Video Scraper

Loads environment variables and app configuration.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


# Server configuration
HOST = os.getenv('HOST', '0.0.0.0')
PORT = int(os.getenv('PORT', '4000'))
CORS_ORIGINS = [o.strip() for o in os.getenv('CORS_ORIGINS', '*').split(',') if o.strip()]

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Playwright / rendering session settings (seconds)
BROWSER_HEADLESS = _flag('BROWSER_HEADLESS', 'true')
PAGE_LOAD_TIMEOUT = float(os.getenv('PAGE_LOAD_TIMEOUT', '40'))
RENDER_GRACE_PERIOD = float(os.getenv('RENDER_GRACE_PERIOD', '5'))

# Platform (short-video) extraction settings (seconds)
BLOB_WAIT_TIMEOUT = float(os.getenv('BLOB_WAIT_TIMEOUT', '10'))
NAVIGATION_ATTEMPTS = int(os.getenv('NAVIGATION_ATTEMPTS', '2'))
NAVIGATION_RETRY_DELAY = float(os.getenv('NAVIGATION_RETRY_DELAY', '2'))
SNIFF_WINDOW = float(os.getenv('SNIFF_WINDOW', '3'))

# Static extraction settings (seconds)
STATIC_FETCH_TIMEOUT = float(os.getenv('STATIC_FETCH_TIMEOUT', '15'))

# Per-strategy watchdog budgets (seconds)
STATIC_STRATEGY_TIMEOUT = float(os.getenv('STATIC_STRATEGY_TIMEOUT', '20'))
RENDERED_STRATEGY_TIMEOUT = float(os.getenv('RENDERED_STRATEGY_TIMEOUT', '60'))
PLATFORM_STRATEGY_TIMEOUT = float(os.getenv('PLATFORM_STRATEGY_TIMEOUT', '65'))
RESOLVER_STRATEGY_TIMEOUT = float(os.getenv('RESOLVER_STRATEGY_TIMEOUT', '60'))

# Policy switches
ENABLE_NETWORK_SNIFF = _flag('ENABLE_NETWORK_SNIFF', 'true')
ENABLE_RESOLVER_FALLBACK = _flag('ENABLE_RESOLVER_FALLBACK', 'false')
ENABLE_PROXY_RELAY = _flag('ENABLE_PROXY_RELAY', 'true')
PROXY_RELAY_METHODS = {
    m.strip().upper()
    for m in os.getenv('PROXY_RELAY_METHODS', 'GET,POST,HEAD').split(',')
    if m.strip()
}

# Deduplication / metadata probing
PROBE_METADATA = _flag('PROBE_METADATA', 'false')
PROBE_TIMEOUT = float(os.getenv('PROBE_TIMEOUT', '10'))

# External tools
FFMPEG_PATH = os.getenv('FFMPEG_PATH', 'ffmpeg')
FFPROBE_PATH = os.getenv('FFPROBE_PATH', 'ffprobe')

# Relay settings
RELAY_CHUNK_SIZE = int(os.getenv('RELAY_CHUNK_SIZE', str(64 * 1024)))
RELAY_TIMEOUT = float(os.getenv('RELAY_TIMEOUT', '30'))
MERGE_FIRST_BYTE_TIMEOUT = float(os.getenv('MERGE_FIRST_BYTE_TIMEOUT', '30'))

# How often a running extraction checks whether the client went away
DISCONNECT_POLL_INTERVAL = float(os.getenv('DISCONNECT_POLL_INTERVAL', '0.5'))
