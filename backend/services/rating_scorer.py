"""
Rating logic for package trustworthiness.
"""

import math
from dataclasses import asdict, dataclass
from typing import Dict, Optional

from services.github_client import RepositorySignals
from services.version_range import is_pinned


@dataclass(frozen=True)
class RatingScores:
    """Seven sub-scores in [0, 1] plus their weighted net score."""

    bus_factor: float
    correctness: float
    ramp_up: float
    responsive_maintainer: float
    license_score: float
    good_pinning_practice: float
    pull_request: float
    net_score: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class RatingScorer:
    """
    Rating engine. Pure: no network or storage access.

    Net score weights:
    - Responsive maintainer: 0.20
    - Bus factor: 0.15
    - Correctness: 0.15
    - Ramp up: 0.15
    - Pull request review: 0.15
    - License compatibility: 0.10
    - Good pinning practice: 0.10

    Missing signals fall back to fixed defaults so the net score is always
    computable once signals have been fetched.
    """

    WEIGHTS = {
        "bus_factor": 0.15,
        "correctness": 0.15,
        "ramp_up": 0.15,
        "responsive_maintainer": 0.20,
        "license_score": 0.10,
        "good_pinning_practice": 0.10,
        "pull_request": 0.15,
    }

    # Licenses compatible with LGPL-2.1 (SPDX ids)
    COMPATIBLE_LICENSES = {
        "MIT",
        "ISC",
        "BSD-2-Clause",
        "BSD-3-Clause",
        "Apache-2.0",
        "LGPL-2.1",
        "LGPL-2.1-only",
        "LGPL-2.1-or-later",
        "LGPL-3.0",
        "LGPL-3.0-only",
        "Zlib",
        "Unlicense",
        "0BSD",
        "CC0-1.0",
        "MPL-2.0",
        "Artistic-2.0",
    }

    README_FULL_CREDIT_BYTES = 5000
    BUS_FACTOR_TARGET = 5  # contributors covering half the commits for full credit
    PUSH_DECAY_DAYS = 180
    CLOSE_TIME_GOOD_DAYS = 7
    CLOSE_TIME_BAD_DAYS = 90
    CORRECTNESS_DEFAULT = 0.5

    def compute(self, signals: RepositorySignals) -> RatingScores:
        """
        Compute every sub-score and the weighted net score.

        Args:
            signals: Repository signals

        Returns:
            RatingScores
        """
        scores = {
            "bus_factor": self._bus_factor(signals),
            "correctness": self._correctness(signals),
            "ramp_up": self._ramp_up(signals),
            "responsive_maintainer": self._responsive_maintainer(signals),
            "license_score": self._license(signals),
            "good_pinning_practice": self._good_pinning_practice(signals),
            "pull_request": self._pull_request(signals),
        }
        scores = {name: round(_clamp(value), 3) for name, value in scores.items()}
        net = sum(scores[name] * weight for name, weight in self.WEIGHTS.items())
        return RatingScores(net_score=round(_clamp(net), 3), **scores)

    def _ramp_up(self, signals: RepositorySignals) -> float:
        """Half README depth, half popularity (log scale, 10k stars+forks saturates)."""
        readme = min(signals.readme_size / self.README_FULL_CREDIT_BYTES, 1.0)
        popularity = min(math.log10(max(signals.stars + signals.forks, 0) + 1) / 4, 1.0)
        return 0.5 * readme + 0.5 * popularity

    def _correctness(self, signals: RepositorySignals) -> float:
        total = signals.open_issues + signals.closed_issues
        if total <= 0:
            return self.CORRECTNESS_DEFAULT
        return signals.closed_issues / total

    def _bus_factor(self, signals: RepositorySignals) -> float:
        """Fewest contributors whose commits cover half the history."""
        commits = sorted((c for c in signals.contributor_commits if c > 0), reverse=True)
        total = sum(commits)
        if total == 0:
            return 0.0

        covered, needed = 0, 0
        for count in commits:
            covered += count
            needed += 1
            if covered * 2 >= total:
                break
        return min(needed / self.BUS_FACTOR_TARGET, 1.0)

    def _responsive_maintainer(self, signals: RepositorySignals) -> float:
        """Push recency (exponential decay) blended with issue close time."""
        recency: Optional[float] = None
        if signals.days_since_last_push is not None:
            recency = math.exp(-signals.days_since_last_push / self.PUSH_DECAY_DAYS)

        close_time: Optional[float] = None
        if signals.avg_issue_close_days is not None:
            days = signals.avg_issue_close_days
            if days <= self.CLOSE_TIME_GOOD_DAYS:
                close_time = 1.0
            elif days >= self.CLOSE_TIME_BAD_DAYS:
                close_time = 0.0
            else:
                span = self.CLOSE_TIME_BAD_DAYS - self.CLOSE_TIME_GOOD_DAYS
                close_time = 1.0 - (days - self.CLOSE_TIME_GOOD_DAYS) / span

        parts = [part for part in (recency, close_time) if part is not None]
        if not parts:
            return 0.0
        return sum(parts) / len(parts)

    def _license(self, signals: RepositorySignals) -> float:
        if not signals.license:
            return 0.0
        return 1.0 if signals.license in self.COMPATIBLE_LICENSES else 0.0

    def _good_pinning_practice(self, signals: RepositorySignals) -> float:
        """Share of dependencies pinned to one major.minor."""
        if not signals.dependencies:
            return 1.0
        pinned = sum(1 for spec in signals.dependencies.values() if is_pinned(spec))
        return pinned / len(signals.dependencies)

    def _pull_request(self, signals: RepositorySignals) -> float:
        """Share of merged pull requests that went through an approving review."""
        if signals.merged_pull_requests <= 0:
            return 0.0
        return signals.reviewed_pull_requests / signals.merged_pull_requests


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))
