"""Strategies for handling missing values before descriptive statistics."""

from abc import ABC, abstractmethod

import numpy as np


class MissingDataPolicy(ABC):
    """Abstract base class for missing-data handling.

    All policies must implement:
    - apply(values): Return (usable values, number of entries removed)
    - name: Property for descriptive name
    """

    @abstractmethod
    def apply(self, values):
        pass

    @property
    @abstractmethod
    def name(self):
        pass


class CompleteCaseDeletion(MissingDataPolicy):
    """Discard missing entries; statistics use the remaining n - m values."""

    def apply(self, values):
        values = np.asarray(values, dtype=float)
        observed = values[~np.isnan(values)]
        return observed, int(len(values) - len(observed))

    @property
    def name(self):
        return 'complete_case'
