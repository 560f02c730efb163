"""Missingness profiling: per-column rates and per-record patterns."""

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class MissingnessProfile:
    n_records: int
    missing_counts: pd.Series
    missing_rates: pd.Series
    record_patterns: tuple
    pattern_counts: pd.Series
    co_occurrence: pd.DataFrame

    @property
    def columns_with_missing(self):
        return [c for c, n in self.missing_counts.items() if n > 0]

    def to_frame(self):
        return pd.DataFrame({'missing_count': self.missing_counts, 'missing_rate': self.missing_rates})


def profile(table):
    """
    Compute the missingness profile of a table snapshot.

    Parameters:
    - table: Table

    Returns:
    - MissingnessProfile with per-column counts/rates, the set of missing
      columns for every record, how often each pattern occurs and how often
      each pair of columns is missing together.
    """
    mask = table.missing_mask()
    n_records = len(mask)
    counts = mask.sum().astype(int)
    rates = counts / n_records if n_records else counts.astype(float) * 0.0

    columns = list(mask.columns)
    patterns = tuple(
        frozenset(c for c, is_missing in zip(columns, row) if is_missing)
        for row in mask.itertuples(index=False, name=None)
    )
    labels = pd.Series([pattern_label(p, columns) for p in patterns], dtype=object)
    pattern_counts = labels.value_counts(sort=True) if n_records else pd.Series(dtype=int)

    as_int = mask.astype(int)
    co_occurrence = as_int.T @ as_int

    return MissingnessProfile(
        n_records=n_records,
        missing_counts=counts,
        missing_rates=rates,
        record_patterns=patterns,
        pattern_counts=pattern_counts,
        co_occurrence=co_occurrence,
    )


def pattern_label(pattern, columns):
    """Readable label for a missing-column set, in table column order."""
    missing = [c for c in columns if c in pattern]
    return '+'.join(missing) if missing else '(complete)'
