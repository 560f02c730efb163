"""Tabular data model: typed columns, tagged cells and categorical codes."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

import numpy as np
import pandas as pd

from src.pipeline.missingness.errors import DataFormatError, EncodingError


class ColumnType(Enum):
    NOMINAL = 'nominal'
    ORDINAL = 'ordinal'
    INTERVAL = 'interval'
    RATIO = 'ratio'

    @property
    def supports_moments(self):
        """Mean, variance and skewness are only meaningful on these scales."""
        return self in (ColumnType.INTERVAL, ColumnType.RATIO)


# --- Tagged cell values ---

@dataclass(frozen=True)
class Numeric:
    value: float


@dataclass(frozen=True)
class Category:
    code: int


@dataclass(frozen=True)
class Missing:
    pass


MISSING = Missing()


class CategoryCode:
    """Dense, injective mapping from normalized category values to 0..k-1.

    Codes are assigned in first-seen order, so the same source always yields
    the same mapping. The first spelling seen for each normalized value is kept
    for reporting.
    """

    def __init__(self, codes, labels):
        self._codes = dict(codes)
        self._labels = dict(labels)
        self._validate()

    @classmethod
    def from_values(cls, raw_values, normalize=str.lower):
        """
        Build a mapping from a sequence of raw category strings.

        Parameters:
        - raw_values: Iterable of strings; missing entries (None/NaN) are ignored
        - normalize: Callable applied to each raw value before coding

        Returns:
        - CategoryCode
        """
        codes = {}
        labels = {}
        for raw in raw_values:
            if raw is None or (isinstance(raw, float) and np.isnan(raw)):
                continue
            key = normalize(raw)
            if key not in codes:
                code = len(codes)
                codes[key] = code
                labels[code] = raw
        return cls(codes, labels)

    def _validate(self):
        values = list(self._codes.values())
        if len(set(values)) != len(values):
            raise EncodingError(f"Category codes are not injective: {self._codes}")
        if sorted(values) != list(range(len(values))):
            raise EncodingError(f"Category codes are not dense 0..{len(values) - 1}: {sorted(values)}")
        if set(self._labels) != set(values):
            raise EncodingError("Every code must keep exactly one original label.")

    def encode(self, key):
        try:
            return self._codes[key]
        except KeyError:
            raise EncodingError(f"Value {key!r} has no category code") from None

    def decode(self, code):
        return self._labels[int(code)]

    @property
    def mapping(self):
        return dict(self._codes)

    @property
    def labels(self):
        return dict(self._labels)

    def __len__(self):
        return len(self._codes)

    def __repr__(self):
        return f"CategoryCode({self._codes})"


@dataclass(frozen=True)
class Table:
    """Immutable table of typed columns.

    The backing DataFrame uses NaN as the missing marker and keeps the source
    row ordinal as its index. Accessors hand out copies.
    """
    _frame: pd.DataFrame
    column_types: MappingProxyType
    categorical_column: str = None
    category_codes: CategoryCode = None
    notes: tuple = field(default_factory=tuple)

    def __post_init__(self):
        missing = [c for c in self._frame.columns if c not in self.column_types]
        if missing:
            raise DataFormatError(f"Columns without a type tag: {missing}")
        object.__setattr__(self, 'column_types', MappingProxyType(dict(self.column_types)))

    @property
    def columns(self):
        return list(self._frame.columns)

    @property
    def row_ordinals(self):
        return list(self._frame.index)

    def __len__(self):
        return len(self._frame)

    def to_frame(self):
        return self._frame.copy()

    def column_type(self, column):
        self._require(column)
        return self.column_types[column]

    def values(self, column):
        """Return a float array of the column with NaN for missing entries."""
        self._require(column)
        return self._frame[column].to_numpy(dtype=float, copy=True)

    def missing_mask(self):
        return self._frame.isna()

    def numeric_matrix(self, columns=None):
        """All requested columns as floats; category codes are used as numbers."""
        columns = self.columns if columns is None else columns
        for column in columns:
            self._require(column)
        return self._frame[columns].to_numpy(dtype=float, copy=True)

    def cell(self, row, column):
        """Return the tagged value at positional ``row`` of ``column``."""
        self._require(column)
        value = self._frame[column].iloc[row]
        if pd.isna(value):
            return MISSING
        if self.column_types[column] == ColumnType.NOMINAL:
            return Category(int(value))
        return Numeric(float(value))

    def _require(self, column):
        if column not in self._frame.columns:
            raise DataFormatError(f"Column '{column}' not found. Available: {self.columns}")
