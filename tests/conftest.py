import os
import sys

import numpy as np
import pandas as pd
import pytest
from numpy.random import default_rng

# Add parent directory to path to import from src and run_analysis
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.pipeline.missingness.data_generators import generate_survey_data
from src.pipeline.missingness.loader import load


def balanced_mcar_data(block, missing_column, copies=5):
    """
    Repeat ``block`` ``copies`` times and blank ``missing_column`` in one copy.

    Every covariate has exactly the same distribution among records with and
    without the missing value, so the global test statistic is zero up to
    rounding.
    """
    frames = [block.copy() for _ in range(copies)]
    frames[0][missing_column] = np.nan
    return pd.concat(frames, ignore_index=True)


@pytest.fixture(scope="module")
def mcar_table():
    """Target is missing in one of five identical copies (20% missing)."""
    block = generate_survey_data(n=40, rng=default_rng(2))
    return load(balanced_mcar_data(block, 'Target', copies=5), ['A', 'Region', 'Target'],
                categorical_column='Region')
