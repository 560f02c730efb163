"""Missingness pattern classes for synthetic survey tables."""

import numpy as np
from abc import ABC, abstractmethod
from numpy.random import default_rng


class MissingnessPattern(ABC):
    """Abstract base class for missingness patterns.

    All missingness patterns must implement:
    - apply(data, rng=None): Return a copy of data with missing values
    - name: Property for descriptive name
    """

    @abstractmethod
    def apply(self, data, rng=None):
        pass

    @property
    @abstractmethod
    def name(self):
        pass


class MCARPattern(MissingnessPattern):
    """Each value of ``column`` is missing with probability ``rate``."""

    def __init__(self, column, rate=0.2):
        self.column = column
        self.rate = rate

    def apply(self, data, rng=None):
        rng = rng if rng is not None else default_rng(123)
        dat_miss = data.copy()
        dat_miss[self.column] = dat_miss[self.column].where(rng.uniform(size=len(dat_miss)) >= self.rate, np.nan)
        return dat_miss

    @property
    def name(self):
        return 'mcar'


class MARThresholdPattern(MissingnessPattern):
    """``column`` is missing exactly when the observed ``driver`` exceeds ``threshold``."""

    def __init__(self, column, driver, threshold):
        self.column = column
        self.driver = driver
        self.threshold = threshold

    def apply(self, data, rng=None):
        dat_miss = data.copy()
        dat_miss[self.column] = dat_miss[self.column].where(dat_miss[self.driver] <= self.threshold, np.nan)
        return dat_miss

    @property
    def name(self):
        return 'mar_threshold'


class MNARPattern(MissingnessPattern):
    """Values of ``column`` above its ``quantile`` are missing with probability ``rate``."""

    def __init__(self, column, quantile=0.8, rate=0.9):
        self.column = column
        self.quantile = quantile
        self.rate = rate

    def apply(self, data, rng=None):
        rng = rng if rng is not None else default_rng(123)
        dat_miss = data.copy()
        cutoff = dat_miss[self.column].quantile(self.quantile)
        drop = (dat_miss[self.column] > cutoff) & (rng.uniform(size=len(dat_miss)) < self.rate)
        dat_miss[self.column] = dat_miss[self.column].where(~drop, np.nan)
        return dat_miss

    @property
    def name(self):
        return 'mnar'
