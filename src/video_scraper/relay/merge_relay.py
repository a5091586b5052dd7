"""
Merge Relay - Relay Module

For adaptive sources (separate video and audio tracks) ffmpeg muxes both
inputs into fragmented MP4 on stdout, which is piped straight to the caller.

open() waits for the first chunk, so ffmpeg failing on its inputs surfaces as
an error response. Once that chunk has been handed over a failing ffmpeg can
no longer become one; the stream simply ends early and the failure is logged.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional

from .. import config
from ..errors import MissingURLError, UpstreamTransferError
from .direct_relay import RelayStream, infer_filename

logger = logging.getLogger(__name__)

MERGED_CONTENT_TYPE = 'video/mp4'


class MergeRelay:
    """Mux a video and an audio URL with ffmpeg and stream the result."""

    def __init__(self, ffmpeg_path: str = config.FFMPEG_PATH,
                 chunk_size: int = config.RELAY_CHUNK_SIZE,
                 first_byte_timeout: float = config.MERGE_FIRST_BYTE_TIMEOUT):
        self.ffmpeg_path = ffmpeg_path
        self.chunk_size = chunk_size
        self.first_byte_timeout = first_byte_timeout

    def build_command(self, video_url: str, audio_url: str) -> List[str]:
        return [
            self.ffmpeg_path,
            '-hide_banner',
            '-loglevel', 'error',
            '-i', video_url,
            '-i', audio_url,
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-c', 'copy',
            '-f', 'mp4',
            # Fragmented output, since stdout is not seekable
            '-movflags', 'frag_keyframe+empty_moov',
            'pipe:1',
        ]

    async def open(self, video_url: str, audio_url: str,
                   filename: Optional[str] = None) -> RelayStream:
        """
        Start ffmpeg for a video/audio pair.

        Raises:
            MissingURLError: Either URL missing
            UpstreamTransferError: ffmpeg could not be started, or exited
                or stalled before producing any output
        """
        if not video_url or not audio_url:
            raise MissingURLError("Merging needs both a video and an audio URL")

        logger.info(f"Merging: {video_url[:60]} + {audio_url[:60]}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(video_url, audio_url),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            logger.error(f"Could not start ffmpeg: {e}")
            raise UpstreamTransferError(f"Could not start merge tool: {e}") from e

        # Hold the response until ffmpeg has produced something, so a dead
        # source still becomes an error instead of an empty download
        try:
            first = await asyncio.wait_for(process.stdout.read(self.chunk_size),
                                           timeout=self.first_byte_timeout)
        except asyncio.TimeoutError as e:
            await self._reap(process)
            logger.error(f"ffmpeg produced no output within {self.first_byte_timeout:.0f}s")
            raise UpstreamTransferError("Merge tool produced no output in time") from e
        except BaseException:
            await self._reap(process)
            raise

        if not first:
            returncode = await process.wait()
            stderr = (await process.stderr.read()).decode(errors='replace').strip()
            logger.error(f"ffmpeg exited with {returncode} before any output: {stderr[-300:]}")
            raise UpstreamTransferError(f"Merge failed (exit {returncode}): {stderr[-200:]}")

        return RelayStream(
            filename=infer_filename(video_url, filename, MERGED_CONTENT_TYPE),
            content_type=MERGED_CONTENT_TYPE,
            body=self._iter_output(process, first),
            on_close=lambda: self._reap(process),
        )

    async def _iter_output(self, process, first: bytes) -> AsyncIterator[bytes]:
        try:
            yield first
            while True:
                chunk = await process.stdout.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk

            returncode = await process.wait()
            if returncode != 0:
                stderr = (await process.stderr.read()).decode(errors='replace').strip()
                logger.error(f"ffmpeg exited with {returncode}, stream truncated: {stderr[-300:]}")
        finally:
            # Client went away or the loop was cancelled
            await self._reap(process)

    async def _reap(self, process):
        if process.returncode is None:
            process.kill()
            await process.wait()
