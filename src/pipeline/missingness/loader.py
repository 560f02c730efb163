"""Loading raw survey rows into a typed, encoded Table."""

import logging
from abc import ABC, abstractmethod

import numpy as np
import pandas as pd

from src.pipeline.missingness.errors import DataFormatError, EncodingError
from src.pipeline.missingness.table import CategoryCode, ColumnType, Table

logger = logging.getLogger(__name__)

NA_TOKENS = {'', 'na', 'n/a', 'nan', 'null', 'none'}


# ============================================================================
# ROW FILTERS
# ============================================================================

class RowFilter(ABC):
    """Abstract row predicate.

    All filters must implement:
    - mask(frame): boolean Series, True for rows to keep
    - description: Property used in logs and report notes
    """

    @abstractmethod
    def mask(self, frame):
        pass

    @property
    @abstractmethod
    def description(self):
        pass


class NotEmpty(RowFilter):
    """Keep rows whose value in ``column`` is present and not an empty string."""

    def __init__(self, column):
        self.column = column

    def mask(self, frame):
        if self.column not in frame.columns:
            raise DataFormatError(f"Filter column '{self.column}' not found in source.")
        values = frame[self.column]
        return values.notna() & (values.astype(str).str.strip() != '')

    @property
    def description(self):
        return f"{self.column} is not empty"


class ExcludeRows(RowFilter):
    """Drop rows at fixed 0-based source ordinals (known bad records).

    The reason is mandatory so that every dropped record stays documented.
    """

    def __init__(self, indices, reason):
        if not reason:
            raise ValueError("ExcludeRows requires a reason for dropping records.")
        self.indices = frozenset(int(i) for i in indices)
        self.reason = reason

    def mask(self, frame):
        return ~frame.index.isin(list(self.indices))

    @property
    def description(self):
        return f"exclude source rows {sorted(self.indices)} ({self.reason})"


# ============================================================================
# LOADING
# ============================================================================

def read_source(source):
    """Read raw rows as strings. Accepts a path, a file-like object or a DataFrame."""
    if isinstance(source, pd.DataFrame):
        frame = source.copy()
    else:
        frame = pd.read_csv(source, dtype=str, keep_default_na=False)
    frame.index = pd.RangeIndex(len(frame))
    return frame


def _parse_numeric(series, column):
    as_text = series.astype(str).str.strip()
    is_na = series.isna() | as_text.str.lower().isin(NA_TOKENS)
    parsed = pd.to_numeric(as_text.where(~is_na), errors='coerce')
    malformed = parsed.isna() & ~is_na
    if malformed.any():
        examples = as_text[malformed].unique()[:3].tolist()
        raise DataFormatError(f"Column '{column}' has non-numeric values, e.g. {examples}")
    return parsed.astype(float)


def encode_categorical(series, column):
    """
    Lower-case a categorical column and replace its values with dense codes.

    Parameters:
    - series: Raw string values
    - column: Column name, for error messages

    Returns:
    - codes: Float Series of integer codes (NaN where missing)
    - category_codes: CategoryCode mapping
    """
    as_text = series.astype(str).str.strip()
    is_na = series.isna() | as_text.str.lower().isin(NA_TOKENS)
    raw = as_text.where(~is_na, None)
    category_codes = CategoryCode.from_values(raw.tolist())
    normalized = raw.str.lower()
    codes = normalized.map(lambda v: category_codes.encode(v) if v is not None and v == v else np.nan)
    observed = codes.dropna().astype(int)
    if observed.nunique() != normalized.dropna().nunique():
        raise EncodingError(f"Ambiguous category codes in column '{column}'.")
    logger.info(f"Encoded '{column}' into {len(category_codes)} categories")
    return codes.astype(float), category_codes


def load(source, columns, row_filters=(), categorical_column=None, column_types=None):
    """
    Load a raw source into an immutable, typed Table.

    Parameters:
    -----------
    source : str, Path, file-like or pd.DataFrame
        Delimited text with a header row, or already-read raw rows
    columns : list
        Column names to retain, in output order
    row_filters : sequence of RowFilter
        Applied in order; a row failing one filter is not seen by later ones
    categorical_column : str, optional
        Column to lower-case and encode into integer codes
    column_types : dict, optional
        Column name -> ColumnType (or its string value). Defaults to NOMINAL
        for the categorical column and RATIO for everything else.

    Returns:
    --------
    Table
    """
    raw = read_source(source)
    absent = [c for c in columns if c not in raw.columns]
    if absent:
        raise DataFormatError(f"Requested columns not in source: {absent}")
    if categorical_column is not None and categorical_column not in columns:
        raise DataFormatError(f"Categorical column '{categorical_column}' is not among the retained columns.")

    notes = []
    frame = raw
    for row_filter in row_filters:
        before = len(frame)
        frame = frame[row_filter.mask(frame)]
        removed = before - len(frame)
        notes.append(f"{row_filter.description}: removed {removed} rows")
        logger.info(f"Filter '{row_filter.description}' removed {removed} of {before} rows")
    frame = frame[list(columns)]

    types = {}
    for column in columns:
        declared = (column_types or {}).get(column)
        if declared is not None:
            types[column] = ColumnType(declared)
        elif column == categorical_column:
            types[column] = ColumnType.NOMINAL
        else:
            types[column] = ColumnType.RATIO

    data = {}
    category_codes = None
    for column in columns:
        if column == categorical_column:
            data[column], category_codes = encode_categorical(frame[column], column)
        else:
            data[column] = _parse_numeric(frame[column], column)
    encoded = pd.DataFrame(data, index=frame.index, columns=list(columns))

    logger.info(f"Loaded table with {len(encoded)} rows and {len(columns)} columns")
    return Table(encoded, types, categorical_column, category_codes, tuple(notes))
