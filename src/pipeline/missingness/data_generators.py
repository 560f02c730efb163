"""Synthetic survey tables for validation runs and demos."""

import pandas as pd
from numpy.random import default_rng

REGIONS = ['North', 'south', 'EAST', 'West']


def generate_survey_data(n=200, n_categories=3, rng=None):
    """
    Generate a complete survey-style table.

    Parameters:
    - n: Number of records
    - n_categories: Number of distinct regions (at most len(REGIONS))
    - rng: numpy Generator; defaults to default_rng(123)

    Returns:
    - data: DataFrame with a numeric driver 'A', a categorical 'Region' with
      mixed-case spellings and a numeric 'Target' related to 'A'
    """
    if rng is None:
        rng = default_rng(123)
    if not 1 <= n_categories <= len(REGIONS):
        raise ValueError(f"n_categories must be between 1 and {len(REGIONS)}. Got {n_categories}.")

    a = rng.normal(50, 10, n)
    region = rng.choice(REGIONS[:n_categories], size=n)
    spelled = [r.upper() if rng.uniform() < 0.2 else r for r in region]
    target = 0.5 * a + rng.normal(0, 5, n)
    return pd.DataFrame({'A': a, 'Region': spelled, 'Target': target})

