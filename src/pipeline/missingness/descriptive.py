"""Descriptive statistics for a single ratio/interval column.

Every statistic takes the location ``mu`` as an explicit argument; ``summarize``
always passes the mean of the values actually used.
"""

import logging
from dataclasses import dataclass

import numpy as np

from src.pipeline.missingness.errors import DataFormatError, DegenerateSampleError
from src.pipeline.missingness.missing_policies import CompleteCaseDeletion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DescriptiveSummary:
    mean: float
    variance: float
    skewness: float
    skewness_corrected: float
    n_used: int
    n_removed: int
    bessel_correction: bool
    policy: str

    def as_dict(self):
        return {
            'mean': self.mean,
            'variance': self.variance,
            'skewness': self.skewness,
            'skewness_corrected': self.skewness_corrected,
            'n_used': self.n_used,
            'n_removed': self.n_removed,
            'bessel_correction': self.bessel_correction,
            'policy': self.policy,
        }


def arithmetic_mean(values):
    values = np.asarray(values, dtype=np.float64)
    return float(values.sum() / len(values))


def least_squares_mean(values):
    """
    The constant mu minimizing sum((x_i - mu)^2), found as a least-squares fit
    of an intercept-only model. Agrees with ``arithmetic_mean``.
    """
    values = np.asarray(values, dtype=np.float64)
    design = np.ones((len(values), 1))
    solution, _, _, _ = np.linalg.lstsq(design, values, rcond=None)
    return float(solution[0])


def population_variance(values, mu):
    """
    Population variance (1/n) * sum((x_i - mu)^2) about the given ``mu``.

    Parameters:
    -----------
    values : array-like
        Complete-case values
    mu : float
        Location, normally the mean of ``values``

    Returns:
    --------
    float : Variance value
    """
    values = np.asarray(values, dtype=np.float64)
    return float(np.mean((values - mu) ** 2))


def third_central_moment(values, mu):
    values = np.asarray(values, dtype=np.float64)
    return float(np.mean((values - mu) ** 3))


def skewness(values, mu, variance):
    """Population skewness g1 = m3 / m2^(3/2)."""
    return third_central_moment(values, mu) / variance ** 1.5


def corrected_skewness(values, mu, variance, bessel_correction):
    """
    Small-sample skewness estimate.

    - bessel_correction=True: b1 = ((n-1)/n)^(3/2) * g1
    - bessel_correction=False: G1 = k3 / k2^(3/2), with k2 the unbiased
      (n-1) variance and k3 = n^2 m3 / ((n-1)(n-2)). For n = 2 the third
      central moment is identically zero and G1 is 0.
    """
    n = len(values)
    g1 = skewness(values, mu, variance)
    if bessel_correction:
        return ((n - 1) / n) ** 1.5 * g1
    if n < 3:
        return 0.0
    k2 = variance * n / (n - 1)
    k3 = n ** 2 * third_central_moment(values, mu) / ((n - 1) * (n - 2))
    return k3 / k2 ** 1.5


def summarize(column_values, bessel_correction=False, policy=None):
    """
    Mean, population variance and skewness of one column.

    Parameters:
    -----------
    column_values : array-like
        Column values with NaN for missing entries
    bessel_correction : bool
        Selects the small-sample branch used for ``skewness_corrected``
    policy : MissingDataPolicy, optional
        How to handle missing values; defaults to complete-case deletion

    Returns:
    --------
    DescriptiveSummary

    Raises:
    -------
    DegenerateSampleError : fewer than two usable values, or zero variance
    """
    policy = policy if policy is not None else CompleteCaseDeletion()
    values, n_removed = policy.apply(column_values)
    n = len(values)
    if n < 2:
        raise DegenerateSampleError(f"Need at least 2 values after {policy.name}, got {n}")
    if np.all(values == values[0]):
        raise DegenerateSampleError("All values are identical; variance is zero and skewness is undefined")

    mu = arithmetic_mean(values)
    variance = population_variance(values, mu)
    if variance == 0.0:
        raise DegenerateSampleError("Variance is zero; skewness is undefined")

    return DescriptiveSummary(
        mean=mu,
        variance=variance,
        skewness=skewness(values, mu, variance),
        skewness_corrected=corrected_skewness(values, mu, variance, bessel_correction),
        n_used=n,
        n_removed=n_removed,
        bessel_correction=bool(bessel_correction),
        policy=policy.name,
    )


def summarize_columns(table, columns, bessel_correction=False, policy=None):
    """
    Summarize several columns; a failing column does not stop the others.

    Parameters:
    - table: Table
    - columns: Column names to summarize
    - bessel_correction: Passed through to ``summarize``
    - policy: Passed through to ``summarize``

    Returns:
    - summaries: dict column -> DescriptiveSummary
    - skipped: dict column -> reason
    """
    summaries = {}
    skipped = {}
    for column in columns:
        column_type = table.column_type(column)
        try:
            if not column_type.supports_moments:
                raise DataFormatError(f"Column '{column}' is {column_type.value}; moments need an interval or ratio scale")
            summaries[column] = summarize(table.values(column), bessel_correction, policy)
        except (DegenerateSampleError, DataFormatError) as e:
            skipped[column] = f"{type(e).__name__}: {e}"
            logger.warning(f"Skipping summary of '{column}': {e}")
    return summaries, skipped
