"""
Tests for candidate deduplication and metadata probing.
"""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, Mock, patch

from video_scraper.crawler.metadata_probe import MetadataProbe
from video_scraper.crawler.video_detector import VideoDetector
from video_scraper.errors import ProbeError
from video_scraper.models import Candidate


def c(url):
    return Candidate.from_url(url)


class TestDedupe:
    """Test cases for VideoDetector.dedupe."""

    @pytest.fixture
    def detector(self):
        return VideoDetector()

    def test_identical_urls_collapse(self, detector):
        result = detector.dedupe([c('https://a/x.mp4'), c('https://a/x.mp4')])

        assert [r.url for r in result] == ['https://a/x.mp4']

    def test_matching_hints_collapse_keeping_first(self, detector):
        first = c('https://cdn1/v.mp4?size=500&duration=10')
        second = c('https://cdn2/v.mp4?length=10&size=500')

        result = detector.dedupe([first, second])

        assert result == [first]

    def test_partial_hints_never_collapse(self, detector):
        candidates = [
            c('https://cdn1/v.mp4?size=500'),
            c('https://cdn2/v.mp4?size=500'),
            c('https://cdn3/v.mp4?duration=10'),
            c('https://cdn4/v.mp4?duration=10'),
            c('https://cdn5/v.mp4'),
        ]

        assert detector.dedupe(candidates) == candidates

    def test_different_hints_kept(self, detector):
        candidates = [c('https://a/v.mp4?size=1&duration=2'), c('https://b/v.mp4?size=1&duration=3')]

        assert detector.dedupe(candidates) == candidates

    def test_order_preserved(self, detector):
        candidates = [c('https://a/3.mp4'), c('https://a/1.mp4'), c('https://a/3.mp4'), c('https://a/2.mp4')]

        assert [r.url for r in detector.dedupe(candidates)] == [
            'https://a/3.mp4', 'https://a/1.mp4', 'https://a/2.mp4',
        ]

    def test_idempotent(self, detector):
        candidates = [
            c('https://a/v.mp4?size=5&duration=1'),
            c('https://b/v.mp4?size=5&duration=1'),
            c('https://c/w.mp4'),
            c('https://c/w.mp4'),
        ]

        once = detector.dedupe(candidates)

        assert detector.dedupe(once) == once

    def test_empty(self, detector):
        assert detector.dedupe([]) == []


class TestRefine:
    """Test cases for probing and filtering."""

    @pytest.fixture
    def probe(self):
        probe = Mock()
        probe.probe = AsyncMock()
        return probe

    @pytest.mark.asyncio
    async def test_no_probe_without_request(self, probe):
        detector = VideoDetector(probe=probe)

        await detector.refine([c('https://a/x.mp4')])

        probe.probe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_probe_fills_hints_and_collapses(self, probe):
        probe.probe.return_value = {'duration': 30, 'size': 900}
        detector = VideoDetector(probe=probe, always_probe=True)

        result = await detector.refine([c('https://a/x.mp4'), c('https://b/y.mp4')])

        assert len(result) == 1
        assert result[0].url == 'https://a/x.mp4'
        assert result[0].duration_hint == 30
        assert result[0].size_hint == 900
        assert result[0].playable is True

    @pytest.mark.asyncio
    async def test_known_duration_not_probed(self, probe):
        detector = VideoDetector(probe=probe, always_probe=True)

        result = await detector.refine([c('https://a/x.mp4?duration=5')])

        probe.probe.assert_not_awaited()
        assert result[0].playable is None

    @pytest.mark.asyncio
    async def test_probe_failure_keeps_candidate(self, probe):
        probe.probe.side_effect = ProbeError('expired')
        detector = VideoDetector(probe=probe, always_probe=True)

        result = await detector.refine([c('https://a/x.mp4')])

        assert len(result) == 1
        assert result[0].playable is False
        assert result[0].duration_hint is None

    @pytest.mark.asyncio
    async def test_filter_unplayable(self, probe):
        async def fake_probe(url):
            if 'dead' in url:
                raise ProbeError('404')
            return {'duration': 12, 'size': None}

        probe.probe.side_effect = fake_probe
        detector = VideoDetector(probe=probe)

        result = await detector.refine(
            [c('https://a/dead.mp4'), c('https://a/live.mp4')],
            filter_unplayable=True,
        )

        assert [r.url for r in result] == ['https://a/live.mp4']
        assert result[0].duration_hint == 12


class TestMetadataProbe:
    """Test cases for the ffprobe wrapper."""

    def make_process(self, stdout=b'', stderr=b'', returncode=0):
        process = Mock()
        process.returncode = returncode
        process.communicate = AsyncMock(return_value=(stdout, stderr))
        process.wait = AsyncMock(return_value=returncode)
        return process

    @pytest.mark.asyncio
    async def test_reads_duration_and_size(self):
        output = json.dumps({'format': {'duration': '12.6', 'size': '4096'}}).encode()
        process = self.make_process(stdout=output)

        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=process)) as spawn:
            meta = await MetadataProbe(ffprobe_path='ffprobe').probe('https://a/x.mp4')

        assert meta == {'duration': 13, 'size': 4096}
        args = spawn.call_args[0]
        assert args[0] == 'ffprobe'
        assert args[-1] == 'https://a/x.mp4'

    @pytest.mark.asyncio
    async def test_missing_values(self):
        output = json.dumps({'format': {'duration': 'N/A'}}).encode()
        process = self.make_process(stdout=output)

        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=process)):
            meta = await MetadataProbe().probe('https://a/x.mp4')

        assert meta == {'duration': None, 'size': None}

    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        process = self.make_process(stderr=b'Server returned 403 Forbidden', returncode=1)

        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=process)):
            with pytest.raises(ProbeError, match='403'):
                await MetadataProbe().probe('https://a/x.mp4')

    @pytest.mark.asyncio
    async def test_missing_binary(self):
        with patch('asyncio.create_subprocess_exec', AsyncMock(side_effect=FileNotFoundError('ffprobe'))):
            with pytest.raises(ProbeError):
                await MetadataProbe().probe('https://a/x.mp4')

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        async def hang():
            await asyncio.sleep(3600)

        process = self.make_process()
        process.communicate = hang
        process.kill = Mock()

        with patch('asyncio.create_subprocess_exec', AsyncMock(return_value=process)):
            with pytest.raises(ProbeError, match='timed out'):
                await MetadataProbe(timeout=0.01).probe('https://a/x.mp4')

        process.kill.assert_called_once()
