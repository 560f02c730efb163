"""Classification of missingness mechanisms (MCAR / MAR / MNAR).

For every target column the classifier combines two kinds of evidence:

1. Little's MCAR test over the whole table (one p-value shared by all targets).
2. One univariate logistic regression per covariate, regressing the target's
   missingness indicator on the covariate. The covariate p-value is the
   likelihood-ratio test of its coefficient.

Category codes enter the logistic fits as plain numbers. This treats a nominal
column as if its codes were ordered and equally spaced; it is an approximation
kept for simplicity and is reported as such.
"""

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from multiprocessing import Pool

import numpy as np
import statsmodels.api as sm
from scipy.stats import chi2
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning, PerfectSeparationError, PerfectSeparationWarning
)
from tqdm import tqdm

from src.pipeline.missingness.errors import DataFormatError, InsufficientDataError, SeparationError
from src.pipeline.missingness.mcar_test import littles_mcar_test

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.05
LOGIT_MAX_ITER = 100


class Mechanism(Enum):
    MCAR = 'MCAR'
    MAR = 'MAR'
    MNAR = 'MNAR'


@dataclass(frozen=True)
class CovariateResult:
    covariate: str
    p_value: float
    coefficient: float = np.nan
    wald_p_value: float = np.nan
    skip_reason: str = None

    @property
    def skipped(self):
        return self.skip_reason is not None


@dataclass(frozen=True)
class MissingnessVerdict:
    column: str
    mechanism: Mechanism
    p_global: float
    alpha: float
    missing_count: int
    covariate_pvalues: dict = field(default_factory=dict)
    skipped_covariates: dict = field(default_factory=dict)
    global_test: object = None

    @property
    def significant_covariates(self):
        return [c for c, p in self.covariate_pvalues.items() if not np.isnan(p) and p < self.alpha]


# ============================================================================
# DECISION RULE
# ============================================================================

def decide_mechanism(p_global, covariate_pvalues, alpha=DEFAULT_ALPHA):
    """
    Apply the MCAR / MAR / MNAR decision rule.

    A p-value exactly equal to alpha is not significant. NaN covariate
    p-values (failed fits) are ignored.

    Parameters:
    - p_global: p-value of the global MCAR test
    - covariate_pvalues: Iterable of per-covariate p-values
    - alpha: Significance level

    Returns:
    - Mechanism
    """
    if p_global >= alpha:
        return Mechanism.MCAR
    defined = [p for p in covariate_pvalues if not np.isnan(p)]
    if any(p < alpha for p in defined):
        return Mechanism.MAR
    return Mechanism.MNAR


# ============================================================================
# PER-COVARIATE LOGISTIC TEST
# ============================================================================

def separation_kind(x, y):
    """
    Detect separation of a binary outcome by a single regressor.

    Returns 'complete' when a threshold on x predicts y perfectly with no tie,
    'quasi' when the two groups only touch at one value, otherwise None.
    """
    x1 = x[y == 1]
    x0 = x[y == 0]
    if x0.max() < x1.min() or x1.max() < x0.min():
        return 'complete'
    if x0.max() == x1.min() or x1.max() == x0.min():
        return 'quasi'
    return None


def _null_log_likelihood(y):
    n1 = y.sum()
    n0 = len(y) - n1
    rate = n1 / len(y)
    return n1 * np.log(rate) + n0 * np.log(1 - rate)


def logistic_lr_test(x, y, name='x', max_iter=LOGIT_MAX_ITER):
    """
    Likelihood-ratio test of the slope in logit(P(y=1)) = b0 + b1 * x.

    Under complete separation the maximized log-likelihood of the full model
    is 0, so the statistic is -2 * llf_null and no fit is attempted.

    Parameters:
    -----------
    x : np.ndarray
        Regressor values, no NaN
    y : np.ndarray
        Binary outcome (0/1), not constant
    name : str
        Regressor name, used in error messages only
    max_iter : int
        Iteration cap for the Newton fit

    Returns:
    --------
    dict : {'p_value', 'coefficient', 'wald_p_value'}

    Raises:
    -------
    SeparationError : quasi-complete separation or a non-converging fit
    """
    kind = separation_kind(x, y)
    if kind == 'complete':
        statistic = -2.0 * _null_log_likelihood(y)
        slope = np.inf if x[y == 1].min() > x[y == 0].max() else -np.inf
        return {'p_value': float(chi2.sf(statistic, 1)), 'coefficient': slope, 'wald_p_value': np.nan}
    if kind == 'quasi':
        raise SeparationError(f"Quasi-complete separation of the missingness indicator by '{name}'")

    X = np.column_stack([np.ones(len(x)), x])
    try:
        with warnings.catch_warnings():
            warnings.simplefilter('error', ConvergenceWarning)
            warnings.simplefilter('error', PerfectSeparationWarning)
            result = sm.Logit(y, X).fit(disp=0, maxiter=max_iter)
    except (ConvergenceWarning, PerfectSeparationWarning, PerfectSeparationError, np.linalg.LinAlgError) as e:
        raise SeparationError(f"Logistic fit on '{name}' failed: {e}") from e

    if not result.mle_retvals.get('converged', False) or not np.isfinite(result.llr_pvalue):
        raise SeparationError(f"Logistic fit on '{name}' did not converge within {max_iter} iterations")
    return {
        'p_value': float(result.llr_pvalue),
        'coefficient': float(result.params[1]),
        'wald_p_value': float(result.pvalues[1]),
    }


def covariate_test(args):
    """Test one covariate. Takes a single tuple so it can be used with Pool.imap."""
    covariate, values, indicator = args
    observed = ~np.isnan(values)
    x = values[observed]
    y = indicator[observed]
    try:
        if len(np.unique(x)) < 2:
            raise InsufficientDataError(f"Covariate '{covariate}' has fewer than two distinct observed values")
        if y.min() == y.max():
            raise InsufficientDataError(f"Missingness indicator is constant where '{covariate}' is observed")
        fit = logistic_lr_test(x, y, name=covariate)
    except (InsufficientDataError, SeparationError) as e:
        return CovariateResult(covariate, np.nan, skip_reason=f"{type(e).__name__}: {e}")
    return CovariateResult(covariate, fit['p_value'], fit['coefficient'], fit['wald_p_value'])


def _run_covariate_tests(tasks, n_jobs, target):
    if n_jobs > 1 and len(tasks) > 1:
        with Pool(processes=min(n_jobs, len(tasks))) as pool:
            return list(tqdm(pool.imap(covariate_test, tasks), total=len(tasks), desc=f"Covariates for {target}"))
    return [covariate_test(task) for task in tasks]


# ============================================================================
# CLASSIFICATION
# ============================================================================

def covariates_for(table, target_columns):
    """Every requested target is excluded from every target's covariate set."""
    excluded = set(target_columns)
    return [c for c in table.columns if c not in excluded]


def classify(table, target_columns, alpha=DEFAULT_ALPHA, n_jobs=1):
    """
    Classify the missingness mechanism of each target column.

    Parameters:
    -----------
    table : Table
        Loaded table
    target_columns : list
        Columns whose missingness mechanism is to be classified
    alpha : float
        Significance level for both the global and the per-covariate tests
    n_jobs : int
        Processes used for the per-covariate fits (1 = sequential)

    Returns:
    --------
    dict : target column -> MissingnessVerdict
    """
    absent = [c for c in target_columns if c not in table.columns]
    if absent:
        raise DataFormatError(f"Target columns not in table: {absent}")

    n = len(table)
    indicators = {}
    for target in target_columns:
        indicator = np.isnan(table.values(target)).astype(int)
        missing = int(indicator.sum())
        if missing == 0 or missing == n:
            state = 'no' if missing == 0 else 'only'
            raise InsufficientDataError(f"Target '{target}' has {state} missing values; the indicator is degenerate")
        indicators[target] = indicator

    empty = [c for c in table.columns if np.isnan(table.values(c)).all()]
    if empty:
        logger.warning(f"Columns with no observed values are left out of Little's test: {empty}")
    test_columns = [c for c in table.columns if c not in empty]
    global_test = littles_mcar_test(table.numeric_matrix(test_columns), test_columns)
    covariates = covariates_for(table, target_columns)
    if not covariates:
        logger.warning("No covariates remain after excluding target columns")

    verdicts = {}
    for target in target_columns:
        indicator = indicators[target]
        tasks = [(c, table.values(c), indicator) for c in covariates]
        results = _run_covariate_tests(tasks, n_jobs, target)

        pvalues = {r.covariate: r.p_value for r in results}
        skipped = {r.covariate: r.skip_reason for r in results if r.skipped}
        for covariate, reason in skipped.items():
            logger.warning(f"Skipping covariate '{covariate}' for target '{target}': {reason}")

        mechanism = decide_mechanism(global_test.p_value, pvalues.values(), alpha)
        logger.info(f"Target '{target}': {mechanism.value} (p_global={global_test.p_value:.4g}, "
                    f"{len(pvalues) - len(skipped)} covariates tested, {len(skipped)} skipped)")
        verdicts[target] = MissingnessVerdict(
            column=target,
            mechanism=mechanism,
            p_global=global_test.p_value,
            alpha=alpha,
            missing_count=int(indicator.sum()),
            covariate_pvalues=pvalues,
            skipped_covariates=skipped,
            global_test=global_test,
        )
    return verdicts
