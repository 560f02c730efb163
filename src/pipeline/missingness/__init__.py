"""Missingness classification and descriptive statistics for survey tables.

This package loads survey-style tables with missing values, profiles their
missingness, classifies the missingness mechanism of selected columns
(MCAR / MAR / MNAR) and computes descriptive statistics under an explicit
missing-data policy.

Basic Usage
-----------
>>> from src.pipeline.missingness import load, NotEmpty, classify, summarize
>>>
>>> table = load('survey.csv', columns=['A', 'Region', 'Target'],
...              row_filters=[NotEmpty('Region')], categorical_column='Region')
>>> verdicts = classify(table, ['Target'])
>>> print(verdicts['Target'].mechanism)
>>> print(summarize(table.values('Target')))

Modules
-------
errors : Error hierarchy
table : Table, tagged cells, column types and category codes
loader : CSV loading, row filters and categorical encoding
profiler : Missingness profile
mcar_test : Little's MCAR test
classifier : Missingness mechanism classification
missing_policies : Missing-data handling strategies
descriptive : Mean, variance and skewness
data_generators : Synthetic survey tables
missingness_patterns : Missingness application classes
"""

from .errors import (
    AnalysisError,
    DataFormatError,
    EncodingError,
    InsufficientDataError,
    SeparationError,
    DegenerateSampleError
)
from .table import Table, ColumnType, CategoryCode, Numeric, Category, Missing, MISSING
from .loader import load, RowFilter, NotEmpty, ExcludeRows
from .profiler import profile, MissingnessProfile
from .mcar_test import littles_mcar_test, LittleTestResult
from .classifier import classify, decide_mechanism, Mechanism, MissingnessVerdict
from .missing_policies import MissingDataPolicy, CompleteCaseDeletion
from .descriptive import summarize, summarize_columns, DescriptiveSummary
from .data_generators import generate_survey_data
from .missingness_patterns import MissingnessPattern, MCARPattern, MARThresholdPattern, MNARPattern

__version__ = '1.0.0'

__all__ = [
    # Errors
    'AnalysisError',
    'DataFormatError',
    'EncodingError',
    'InsufficientDataError',
    'SeparationError',
    'DegenerateSampleError',

    # Data model
    'Table',
    'ColumnType',
    'CategoryCode',
    'Numeric',
    'Category',
    'Missing',
    'MISSING',

    # Loading
    'load',
    'RowFilter',
    'NotEmpty',
    'ExcludeRows',

    # Missingness analysis
    'profile',
    'MissingnessProfile',
    'littles_mcar_test',
    'LittleTestResult',
    'classify',
    'decide_mechanism',
    'Mechanism',
    'MissingnessVerdict',

    # Descriptive statistics
    'MissingDataPolicy',
    'CompleteCaseDeletion',
    'summarize',
    'summarize_columns',
    'DescriptiveSummary',

    # Synthetic data
    'generate_survey_data',
    'MissingnessPattern',
    'MCARPattern',
    'MARThresholdPattern',
    'MNARPattern',
]
