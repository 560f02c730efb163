"""
Demo script for the survey missingness pipeline.

Generates a synthetic survey table, applies three different missingness
mechanisms to its 'Target' column and shows how the classifier labels each of
them, followed by the descriptive summary of 'Target'.
"""

import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from src.pipeline.missingness.data_generators import generate_survey_data
from src.pipeline.missingness.missingness_patterns import (
    MCARPattern, MARThresholdPattern, MNARPattern
)
from src.pipeline.missingness.loader import load
from src.pipeline.missingness.classifier import classify
from src.pipeline.missingness.descriptive import summarize
from numpy.random import default_rng

COLUMNS = ['A', 'Region', 'Target']


def demo_patterns():
    """
    Classify the same table under MCAR, MAR and MNAR missingness.
    """
    print("=" * 70)
    print("DEMO: Classifying Missingness Mechanisms")
    print("=" * 70)
    print()

    data = generate_survey_data(n=300, rng=default_rng(42))
    patterns = [
        MCARPattern('Target', rate=0.2),
        MARThresholdPattern('Target', driver='A', threshold=60),
        MNARPattern('Target', quantile=0.8),
    ]

    verdicts = {}
    for pattern in patterns:
        dat_miss = pattern.apply(data, rng=default_rng(7))
        table = load(dat_miss, COLUMNS, categorical_column='Region')
        verdict = classify(table, ['Target'])['Target']
        verdicts[pattern.name] = verdict
        print(f"  {pattern.name:15s}: {verdict.mechanism.value:5s} "
              f"(p_global={verdict.p_global:.4g}, missing={verdict.missing_count})")
        for covariate, p_value in verdict.covariate_pvalues.items():
            print(f"      {covariate:12s} p={p_value:.4g}")
    print()

    return verdicts


def demo_summary():
    """
    Complete-case summary of a column with missing values.
    """
    print("=" * 70)
    print("DEMO: Descriptive Statistics (complete cases)")
    print("=" * 70)
    print()

    values = [10, 20, 30, float('nan'), 40]
    for bessel in (False, True):
        summary = summarize(values, bessel_correction=bessel)
        print(f"  bessel_correction={bessel}:")
        for key, value in summary.as_dict().items():
            print(f"    {key}: {value}")
    print()


def main():
    print()
    print("This demo shows the pipeline on synthetic data.")
    print("For real data, use 'run_analysis.py <config.json>'.")
    print()

    demo_patterns()
    demo_summary()

    print("=" * 70)
    print("Demo complete!")
    print("=" * 70)


if __name__ == "__main__":
    main()
