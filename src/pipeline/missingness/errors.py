"""Error hierarchy for the missingness analysis pipeline."""


class AnalysisError(Exception):
    """Base class for all pipeline errors."""


class DataFormatError(AnalysisError):
    """A requested column is absent, malformed, or of the wrong type."""


class EncodingError(AnalysisError):
    """A categorical code mapping is not injective or not dense."""


class InsufficientDataError(AnalysisError):
    """A column is degenerate for the statistical test being run."""


class SeparationError(AnalysisError):
    """A logistic fit did not converge, typically due to separation."""


class DegenerateSampleError(AnalysisError):
    """Too few values, or zero variance, for descriptive statistics."""
