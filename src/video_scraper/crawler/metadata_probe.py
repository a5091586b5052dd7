"""
Metadata Probe - Video Scraper

Loads container metadata (duration, size) for a media URL with ffprobe,
without downloading the stream.
"""

import asyncio
import json
import logging
from typing import Dict, Optional

from ..errors import ProbeError

logger = logging.getLogger(__name__)


class MetadataProbe:
    """Read duration/size of a remote media file via ffprobe."""

    def __init__(self, ffprobe_path: str = 'ffprobe', timeout: float = 10.0):
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    async def probe(self, url: str) -> Dict[str, Optional[float]]:
        """
        Probe a media URL.

        Args:
            url: Media URL

        Returns:
            Dictionary with 'duration' (seconds) and 'size' (bytes), either may be None

        Raises:
            ProbeError: URL unreachable, expired, not media, or probe timed out
        """
        cmd = [
            self.ffprobe_path,
            '-v', 'error',
            '-show_entries', 'format=duration,size',
            '-of', 'json',
            url,
        ]

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            raise ProbeError(f"Could not start ffprobe: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise ProbeError(f"Metadata probe timed out for {url[:60]}") from e

        if process.returncode != 0:
            error_msg = stderr.decode(errors='replace').strip()
            raise ProbeError(f"Metadata probe failed: {error_msg[:100]}")

        try:
            fmt = json.loads(stdout.decode() or '{}').get('format', {})
        except ValueError as e:
            raise ProbeError(f"Unreadable ffprobe output: {e}") from e

        duration = fmt.get('duration')
        size = fmt.get('size')
        return {
            'duration': round(float(duration)) if duration not in (None, 'N/A') else None,
            'size': int(size) if size not in (None, 'N/A') else None,
        }
