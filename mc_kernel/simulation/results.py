"""
Summary statistics over collected lane outputs.

Statistics are computed over finite outputs only; non-finite trial results
(IEEE sentinels from the kernel) are counted and reported separately.
"""

import numpy as np
import pandas as pd
from scipy import stats
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


PERCENTILE_POINTS = (1, 5, 10, 25, 50, 75, 90, 95, 99)

MAX_HISTOGRAM_BINS = 1000


@dataclass
class SimulationStatistics:
    """Moments and extremes of the finite outputs."""
    count: int
    mean: float
    std: float
    variance: float
    min: float
    max: float
    median: float
    skewness: float
    kurtosis: float  # excess
    n_nonfinite: int = 0

    def to_dict(self) -> Dict:
        return {
            'count': self.count,
            'mean': self.mean,
            'std': self.std,
            'variance': self.variance,
            'min': self.min,
            'max': self.max,
            'median': self.median,
            'skewness': self.skewness,
            'kurtosis': self.kurtosis,
            'n_nonfinite': self.n_nonfinite,
        }


@dataclass
class SimulationResults:
    """
    Output distribution of a simulation run.

    Attributes:
        values: [n] raw trial outputs, including non-finite ones
        finite: [n_finite] finite outputs used for every statistic
        statistics: Moments and extremes
        percentiles: Percentile point -> value
    """
    values: np.ndarray
    finite: np.ndarray
    statistics: SimulationStatistics
    percentiles: Dict[int, float] = field(default_factory=dict)

    @classmethod
    def from_outputs(cls, values: np.ndarray) -> 'SimulationResults':
        """
        Summarise raw lane outputs.

        Raises:
            ValueError: If there are no finite outputs to summarise
        """
        values = np.asarray(values, dtype=np.float64)
        mask = np.isfinite(values)
        finite = values[mask]
        n_nonfinite = int(values.size - finite.size)

        if finite.size == 0:
            raise ValueError(
                f"No finite outputs to summarise ({n_nonfinite} non-finite)"
            )
        if n_nonfinite:
            logger.warning(
                "Excluding %d non-finite outputs from statistics (%.2f%%)",
                n_nonfinite, 100.0 * n_nonfinite / values.size
            )

        n = int(finite.size)
        mean = float(finite.mean())
        std = float(finite.std(ddof=1)) if n > 1 else 0.0
        spread = float(finite.max() - finite.min())

        # Constant data has undefined higher moments
        if spread > 0 and n > 2:
            skewness = float(stats.skew(finite))
            kurtosis = float(stats.kurtosis(finite))
        else:
            skewness = 0.0
            kurtosis = 0.0

        statistics = SimulationStatistics(
            count=n,
            mean=mean,
            std=std,
            variance=std ** 2,
            min=float(finite.min()),
            max=float(finite.max()),
            median=float(np.median(finite)),
            skewness=skewness,
            kurtosis=kurtosis,
            n_nonfinite=n_nonfinite,
        )

        pct_values = np.percentile(finite, PERCENTILE_POINTS)
        percentiles = {p: float(v) for p, v in zip(PERCENTILE_POINTS, pct_values)}

        return cls(
            values=values,
            finite=finite,
            statistics=statistics,
            percentiles=percentiles,
        )

    # =========================================================================
    # Probabilities
    # =========================================================================

    def probability_above(self, threshold: float) -> float:
        """P(X > threshold)."""
        return float(np.count_nonzero(self.finite > threshold)) / self.finite.size

    def probability_below(self, threshold: float) -> float:
        """P(X < threshold)."""
        return float(np.count_nonzero(self.finite < threshold)) / self.finite.size

    def probability_between(self, lower: float, upper: float) -> float:
        """P(lower <= X <= upper)."""
        inside = (self.finite >= lower) & (self.finite <= upper)
        return float(np.count_nonzero(inside)) / self.finite.size

    @property
    def interquartile_range(self) -> float:
        return self.percentiles[75] - self.percentiles[25]

    def confidence_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """
        Normal-approximation confidence interval for the mean.

        Raises:
            ValueError: If level is not in (0, 1)
        """
        if not 0.0 < level < 1.0:
            raise ValueError(f"Confidence level must be in (0, 1), got {level}")
        z = stats.norm.ppf(0.5 + level / 2.0)
        half_width = z * self.statistics.std / np.sqrt(self.statistics.count)
        return (self.statistics.mean - half_width, self.statistics.mean + half_width)

    # =========================================================================
    # Histogram
    # =========================================================================

    def histogram(self, bins: Optional[int] = None) -> List[Tuple[float, float, int]]:
        """
        Histogram of the finite outputs.

        Bin count defaults to max(Sturges, Freedman-Diaconis), clamped to
        [1, MAX_HISTOGRAM_BINS]. Constant data yields one bin [v, v + 1).

        Returns:
            List of (lower, upper, count)
        """
        if bins is not None and bins <= 0:
            raise ValueError(f"bins must be positive, got {bins}")

        lo = self.statistics.min
        hi = self.statistics.max
        if lo == hi:
            return [(lo, lo + 1.0, int(self.finite.size))]

        n_bins = bins if bins is not None else self._optimal_bins()
        counts, edges = np.histogram(self.finite, bins=n_bins, range=(lo, hi))
        return [
            (float(edges[i]), float(edges[i + 1]), int(counts[i]))
            for i in range(n_bins)
        ]

    def _optimal_bins(self) -> int:
        n = self.finite.size
        sturges = int(np.ceil(np.log2(n) + 1.0))

        bin_width = 2.0 * self.interquartile_range / n ** (1.0 / 3.0)
        if bin_width > 0:
            fd = int(np.ceil((self.statistics.max - self.statistics.min) / bin_width))
        else:
            fd = sturges

        return max(1, min(max(sturges, fd), MAX_HISTOGRAM_BINS))

    # =========================================================================
    # Export
    # =========================================================================

    def to_dict(self, bins: Optional[int] = None) -> Dict:
        """Convert to serializable dict."""
        ci_low, ci_high = self.confidence_interval(0.95)
        return {
            'statistics': self.statistics.to_dict(),
            'percentiles': {f"p{p}": v for p, v in self.percentiles.items()},
            'confidence_interval_95': [ci_low, ci_high],
            'histogram': [
                {'lower': lower, 'upper': upper, 'count': count}
                for lower, upper, count in self.histogram(bins)
            ],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """Raw outputs, one row per lane."""
        return pd.DataFrame({'value': self.values})
