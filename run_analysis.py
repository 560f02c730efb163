import json
import logging
from pathlib import Path

from src.pipeline.missingness.loader import load, NotEmpty, ExcludeRows
from src.pipeline.missingness.profiler import profile
from src.pipeline.missingness.classifier import classify, DEFAULT_ALPHA
from src.pipeline.missingness.descriptive import summarize_columns
from src.analysis.report import build_report, write_report

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('analysis.log.txt'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger()

REQUIRED_KEYS = ['source', 'columns', 'categorical_column', 'target_columns']

LIST_PARAMS = ['columns', 'target_columns', 'ratio_columns', 'excluded_row_indices', 'non_empty_columns']

DEFAULTS = {
    'ratio_columns': [],
    'significance_level': DEFAULT_ALPHA,
    'bessel_correction': False,
    'excluded_row_indices': [],
    'exclusion_reason': 'known bad record',
    'non_empty_columns': [],
    'column_types': {},
    'output_dir': 'results/report/',
    'n_jobs': 1,
    'make_plots': True,
}


def as_list(value):
    """Wrap a scalar (a single column name or row index) in a list."""
    if value is None:
        return []
    if isinstance(value, (str, int)):
        return [value]
    return list(value)


def load_config(config_path):
    """
    Load analysis configuration from a JSON file.

    Parameters:
    -----------
    config_path : str or Path
        Path to the JSON configuration file

    Returns:
    --------
    dict : Configuration with defaults filled in

    Example JSON structure:
    {
        "source": "data/schools.csv",
        "columns": ["Region", "NumberOfPupils", "PercentageFSM"],
        "categorical_column": "Region",
        "target_columns": ["PercentageFSM", "NumberOfPupils"],
        "ratio_columns": ["NumberOfPupils"],
        "significance_level": 0.05,
        "bessel_correction": false,
        "excluded_row_indices": [412],
        "exclusion_reason": "encoding-corrupted record",
        "non_empty_columns": ["Region"]
    }
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = json.load(f)

    missing_keys = [key for key in REQUIRED_KEYS if key not in config]
    if missing_keys:
        raise ValueError(f"Missing required configuration keys: {missing_keys}")

    # Ensure list types for parameters that should be lists
    for param in LIST_PARAMS:
        if param in config:
            config[param] = as_list(config[param])

    config = {**DEFAULTS, **config}
    logger.info(f"Loaded configuration from {config_path}")
    return config


def build_row_filters(non_empty_columns, excluded_row_indices, exclusion_reason):
    """NotEmpty filters first, then the explicit exclusion of known bad records."""
    filters = [NotEmpty(column) for column in non_empty_columns]
    if excluded_row_indices:
        filters.append(ExcludeRows(excluded_row_indices, exclusion_reason))
    return filters


def run_analysis(
    config_file=None,
    source=None,
    columns=None,
    categorical_column=None,
    target_columns=None,
    ratio_columns=(),
    significance_level=DEFAULT_ALPHA,
    bessel_correction=False,
    excluded_row_indices=(),
    exclusion_reason='known bad record',
    non_empty_columns=(),
    column_types=None,
    output_dir='results/report/',
    n_jobs=1,
    make_plots=True
):
    """
    Run the full pipeline: load, profile, classify, summarize, report.

    Parameters can be provided either via a JSON config file or directly as function arguments.
    If config_file is provided, it takes precedence over direct arguments.

    Parameters:
    -----------
    config_file : str or Path, optional
        Path to JSON configuration file. If provided, other parameters are ignored.
    source : str, Path, file-like or DataFrame
        Raw data source
    columns : list
        Columns to retain
    categorical_column : str
        Column to normalize and encode
    target_columns : list
        Columns whose missingness mechanism is classified
    ratio_columns : list
        Columns to summarize
    significance_level : float, default=0.05
        Alpha for the MCAR / MAR decisions
    bessel_correction : bool, default=False
        Small-sample branch for the corrected skewness
    excluded_row_indices : list
        Source row ordinals to drop
    exclusion_reason : str
        Why those rows are dropped; logged and kept in the report
    non_empty_columns : list
        Columns that must be non-empty for a row to be kept
    column_types : dict, optional
        Column type overrides
    output_dir : str
        Report destination
    n_jobs : int, default=1
        Processes for the per-covariate fits
    make_plots : bool, default=True
        Render figures

    Returns:
    --------
    report : AnalysisReport
    written : dict of artifact name -> path

    Example:
    --------
    # Using JSON config file
    report, written = run_analysis(config_file='config.json')

    # Using direct parameters
    report, written = run_analysis(source='survey.csv', columns=['A', 'Region', 'Target'],
                                   categorical_column='Region', target_columns=['Target'])
    """
    if config_file is not None:
        config = load_config(config_file)
        source = config['source']
        columns = config['columns']
        categorical_column = config['categorical_column']
        target_columns = config['target_columns']
        ratio_columns = config['ratio_columns']
        significance_level = config['significance_level']
        bessel_correction = config['bessel_correction']
        excluded_row_indices = config['excluded_row_indices']
        exclusion_reason = config['exclusion_reason']
        non_empty_columns = config['non_empty_columns']
        column_types = config['column_types']
        output_dir = config['output_dir']
        n_jobs = config['n_jobs']
        make_plots = config['make_plots']

    columns = as_list(columns)
    target_columns = as_list(target_columns)
    ratio_columns = as_list(ratio_columns)
    excluded_row_indices = as_list(excluded_row_indices)
    non_empty_columns = as_list(non_empty_columns)

    if source is None or not columns or not target_columns:
        raise ValueError("source, columns and target_columns are required.")
    if not (0 < significance_level < 1):
        raise ValueError(f"significance_level must be between 0 and 1. Got {significance_level}.")

    logger.info(f"Starting analysis with alpha={significance_level}, bessel_correction={bessel_correction}")

    row_filters = build_row_filters(non_empty_columns, excluded_row_indices, exclusion_reason)
    table = load(source, columns, row_filters, categorical_column, column_types)

    missing_profile = profile(table)
    logger.info(f"Missing counts: {missing_profile.missing_counts.to_dict()}")

    verdicts = classify(table, target_columns, alpha=significance_level, n_jobs=n_jobs)
    summaries, skipped_summaries = summarize_columns(table, ratio_columns, bessel_correction)

    report = build_report(table, missing_profile, verdicts, summaries, skipped_summaries,
                          summary_columns=ratio_columns)
    written = write_report(report, output_dir, make_plots=make_plots)

    logger.info(f"Analysis complete. Results saved in {output_dir}")
    return report, written


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Missingness classification and descriptive statistics.")
    parser.add_argument('config', help="Path to a JSON configuration file")
    args = parser.parse_args()
    report, written = run_analysis(config_file=args.config)
    for target, verdict in report.verdicts.items():
        print(f"{target}: {verdict.mechanism.value}")
