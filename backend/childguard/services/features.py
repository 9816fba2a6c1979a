"""Feature extraction for one telemetry window.

Turns raw heart-rate and accelerometer sequences into the four signals the
risk classifier consumes:

  hr_mean       mean of heart_rate_raw (1 dp)
  hr_gradient   largest jump between consecutive HR readings (2 dp)
  acc_mean      mean of accelerometer_raw (3 dp)
  acc_variance  population variance of accelerometer_raw (3 dp)
"""

import statistics
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from childguard.core.errors import ValidationError
from childguard.schemas.risk import FeatureVector


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round exact ties away from zero instead of to the even digit."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values)


def variance(values: Sequence[float]) -> float:
    """Population variance (divides by N)."""
    if len(values) < 2:
        return 0.0
    # Exact arithmetic: a constant window gives exactly 0
    return float(statistics.pvariance(values))


def max_gradient(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return max(abs(values[i] - values[i - 1]) for i in range(1, len(values)))


def extract_features(heart_rate_raw: Sequence[float], accelerometer_raw: Sequence[float]) -> FeatureVector:
    if not heart_rate_raw or not accelerometer_raw:
        raise ValidationError(
            "heart_rate_raw and accelerometer_raw must be non-empty",
            details={
                "heart_rate_raw": len(heart_rate_raw or []),
                "accelerometer_raw": len(accelerometer_raw or []),
            },
        )

    hr = [float(v) for v in heart_rate_raw]
    acc = [float(v) for v in accelerometer_raw]
    return FeatureVector(
        hr_mean=round_half_up(mean(hr), 1),
        hr_gradient=round_half_up(max_gradient(hr), 2),
        acc_mean=round_half_up(mean(acc), 3),
        acc_variance=round_half_up(variance(acc), 3),
    )
