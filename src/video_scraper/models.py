"""
Core types for the extraction pipeline.

Everything here is request-scoped: built once per inbound call and
discarded when the response is sent.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

SIZE_PARAM = re.compile(r'[?&]size=(\d+)')
DURATION_PARAM = re.compile(r'[?&](?:duration|length)=(\d+(?:\.\d+)?)')


def parse_size_hint(url: str) -> Optional[int]:
    match = SIZE_PARAM.search(url)
    return int(match.group(1)) if match else None


def parse_duration_hint(url: str) -> Optional[float]:
    match = DURATION_PARAM.search(url)
    return float(match.group(1)) if match else None


# ──────────────────────────────
#  Request
# ──────────────────────────────
@dataclass(frozen=True)
class ExtractionRequest:
    url: str
    debug: bool = False
    proxy: Optional[str] = None             # forwarded to the browser launch
    filter_unplayable: bool = False         # drop candidates whose probe failed


# ──────────────────────────────
#  Candidate
# ──────────────────────────────
@dataclass(frozen=True)
class Candidate:
    url: str
    size_hint: Optional[int] = None         # bytes
    duration_hint: Optional[float] = None   # seconds
    playable: Optional[bool] = None         # None = never probed

    @classmethod
    def from_url(cls, url: str) -> Candidate:
        """Build a candidate, reading size/duration hints from the query string."""
        return cls(
            url=url,
            size_hint=parse_size_hint(url),
            duration_hint=parse_duration_hint(url),
        )

    def to_dict(self):
        d = {"url": self.url}
        if self.size_hint is not None:
            d["sizeHint"] = self.size_hint
        if self.duration_hint is not None:
            d["durationHint"] = self.duration_hint
        if self.playable is not None:
            d["playable"] = self.playable
        return d


# ──────────────────────────────
#  Strategy outcome
# ──────────────────────────────
class StrategyOutcome(str, Enum):
    SUCCEEDED = "succeeded"          # >= 1 candidate
    EMPTY = "empty"                  # ran to completion, found nothing
    EXHAUSTED = "exhausted"          # timed out or crashed without output
    LAUNCH_FAILED = "launch_failed"  # rendering engine never started


@dataclass
class StrategyResult:
    strategy: str
    candidates: Tuple[Candidate, ...] = ()
    outcome: StrategyOutcome = StrategyOutcome.EMPTY
    error: Optional[str] = None

    @classmethod
    def found(cls, strategy: str, candidates) -> StrategyResult:
        candidates = tuple(candidates)
        outcome = StrategyOutcome.SUCCEEDED if candidates else StrategyOutcome.EMPTY
        return cls(strategy=strategy, candidates=candidates, outcome=outcome)

    @classmethod
    def failed(cls, strategy: str, error: BaseException,
               outcome: StrategyOutcome = StrategyOutcome.EXHAUSTED) -> StrategyResult:
        detail = str(error) or type(error).__name__
        return cls(strategy=strategy, outcome=outcome, error=detail)

    @property
    def succeeded(self) -> bool:
        return self.outcome is StrategyOutcome.SUCCEEDED

    @property
    def hard_failed(self) -> bool:
        return self.outcome in (StrategyOutcome.EXHAUSTED, StrategyOutcome.LAUNCH_FAILED)

    def to_dict(self):
        d = {"strategy": self.strategy, "outcome": self.outcome.value}
        if self.error:
            d["error"] = self.error
        return d


# ──────────────────────────────
#  Final orchestrator output
# ──────────────────────────────
@dataclass
class ExtractionResult:
    candidates: list[Candidate] = field(default_factory=list)
    strategy_used: str = ""
    attempts: list[StrategyResult] = field(default_factory=list)

    @property
    def urls(self) -> list[str]:
        return [c.url for c in self.candidates]

    def to_dict(self):
        return {
            "candidates": self.urls,
            "strategyUsed": self.strategy_used,
            "details": [c.to_dict() for c in self.candidates],
        }
