"""Score distribution value object."""

import math
import statistics
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Sequence, Tuple

import numpy as np
from scipy import stats

from ..exceptions import ValidationError
from .precision import SCORE_SCALE, to_decimal

NEGLIGIBLE_SPREAD = 1e-9


@dataclass(frozen=True)
class ScoreDistribution:
    """Descriptive statistics of the retained scores of one criterion."""

    count: int
    mean: Decimal
    median: Decimal
    mode: Decimal
    stddev: Decimal  # population standard deviation
    variance: Decimal  # population variance
    q1: Decimal
    q2: Decimal
    q3: Decimal
    minimum: Decimal
    maximum: Decimal
    skewness: Decimal
    kurtosis: Decimal  # excess kurtosis
    histogram: Tuple[int, ...]  # fixed bins over 0-100

    def __post_init__(self):
        """Validate distribution."""
        object.__setattr__(self, "histogram", tuple(self.histogram))

        if self.count < 0:
            raise ValidationError("Distribution count cannot be negative")

        if sum(self.histogram) != self.count:
            raise ValidationError("Histogram counts must add up to the sample count")

        if self.variance < 0 or self.stddev < 0:
            raise ValidationError("Variance and standard deviation cannot be negative")

    @classmethod
    def from_scores(cls, scores: Sequence[float], bins: int = 10) -> "ScoreDistribution":
        """Compute the distribution of normalized scores."""
        if not scores:
            return cls.empty(bins)

        values = np.asarray(scores, dtype=float)
        variance = statistics.pvariance(scores)
        stddev = math.sqrt(variance)

        q1, q2, q3 = (float(q) for q in np.percentile(values, [25, 50, 75]))

        skewness = 0.0
        kurtosis = 0.0
        # Spread at float rounding level has no shape
        if stddev > NEGLIGIBLE_SPREAD * max(1.0, abs(float(values.mean()))):
            skewness = float(stats.skew(values, bias=True))
            kurtosis = float(stats.kurtosis(values, fisher=True, bias=True))
            if not (math.isfinite(skewness) and math.isfinite(kurtosis)):
                skewness = kurtosis = 0.0

        counts, _ = np.histogram(values, bins=bins, range=(0.0, SCORE_SCALE))

        return cls(
            count=len(scores),
            mean=to_decimal(statistics.fmean(scores)),
            median=to_decimal(statistics.median(scores)),
            mode=to_decimal(min(statistics.multimode(scores))),
            stddev=to_decimal(stddev),
            variance=to_decimal(variance),
            q1=to_decimal(q1),
            q2=to_decimal(q2),
            q3=to_decimal(q3),
            minimum=to_decimal(min(scores)),
            maximum=to_decimal(max(scores)),
            skewness=to_decimal(skewness),
            kurtosis=to_decimal(kurtosis),
            histogram=tuple(int(count) for count in counts),
        )

    @classmethod
    def empty(cls, bins: int = 10) -> "ScoreDistribution":
        """Distribution of a criterion nobody scored."""
        zero = Decimal("0.000")
        return cls(
            count=0,
            mean=zero,
            median=zero,
            mode=zero,
            stddev=zero,
            variance=zero,
            q1=zero,
            q2=zero,
            q3=zero,
            minimum=zero,
            maximum=zero,
            skewness=zero,
            kurtosis=zero,
            histogram=(0,) * bins,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "count": self.count,
            "mean": str(self.mean),
            "median": str(self.median),
            "mode": str(self.mode),
            "stddev": str(self.stddev),
            "variance": str(self.variance),
            "q1": str(self.q1),
            "q2": str(self.q2),
            "q3": str(self.q3),
            "minimum": str(self.minimum),
            "maximum": str(self.maximum),
            "skewness": str(self.skewness),
            "kurtosis": str(self.kurtosis),
            "histogram": list(self.histogram),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreDistribution":
        """Create from dictionary representation."""
        decimal_fields = (
            "mean",
            "median",
            "mode",
            "stddev",
            "variance",
            "q1",
            "q2",
            "q3",
            "minimum",
            "maximum",
            "skewness",
            "kurtosis",
        )
        return cls(
            count=int(data["count"]),
            histogram=tuple(int(c) for c in data["histogram"]),
            **{name: Decimal(data[name]) for name in decimal_fields},
        )
