"""Little's MCAR test.

Reference: Little, R. J. A. (1988). A test of missing completely at random for
multivariate data with missing values. Journal of the American Statistical
Association, 83(404), 1198-1202.

The mean vector and covariance matrix are maximum-likelihood estimates obtained
by EM under multivariate normality, as in the original paper.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.stats import chi2

from src.pipeline.missingness.errors import InsufficientDataError

logger = logging.getLogger(__name__)

EM_MAX_ITER = 500
EM_TOL = 1e-8


@dataclass(frozen=True)
class LittleTestResult:
    statistic: float
    dof: int
    p_value: float
    n_patterns: int
    n_used: int


def _group_patterns(observed):
    """Map each distinct observed-column pattern to the row indices sharing it."""
    groups = {}
    for i, row in enumerate(observed):
        groups.setdefault(tuple(row), []).append(i)
    return [(np.array(key, dtype=bool), np.array(rows)) for key, rows in groups.items()]


def em_mean_covariance(X, max_iter=EM_MAX_ITER, tol=EM_TOL):
    """
    Maximum-likelihood mean and covariance of incomplete normal data by EM.

    Parameters:
    -----------
    X : np.ndarray
        (n, p) matrix with NaN for missing values; every row must have at
        least one observed value
    max_iter : int
        Iteration cap
    tol : float
        Convergence threshold on the largest absolute parameter change

    Returns:
    --------
    mu : np.ndarray of shape (p,)
    sigma : np.ndarray of shape (p, p)
    converged : bool
    """
    n, p = X.shape
    observed = ~np.isnan(X)
    groups = _group_patterns(observed)

    mu = np.nanmean(X, axis=0)
    var = np.nanvar(X, axis=0)
    sigma = np.diag(np.where(var > 0, var, 1.0))

    converged = False
    for iteration in range(max_iter):
        sum_x = np.zeros(p)
        sum_xx = np.zeros((p, p))
        for obs, rows in groups:
            mis = ~obs
            X_j = X[np.ix_(rows, np.flatnonzero(obs))]
            if not mis.any():
                filled = X_j
                sum_x += filled.sum(axis=0)
                sum_xx += filled.T @ filled
                continue
            s_oo = sigma[np.ix_(obs, obs)]
            s_mo = sigma[np.ix_(mis, obs)]
            coef = s_mo @ np.linalg.pinv(s_oo)
            filled = np.empty((len(rows), p))
            filled[:, obs] = X_j
            filled[:, mis] = mu[mis] + (X_j - mu[obs]) @ coef.T
            conditional = sigma[np.ix_(mis, mis)] - coef @ s_mo.T
            sum_x += filled.sum(axis=0)
            sum_xx += filled.T @ filled
            sum_xx[np.ix_(mis, mis)] += len(rows) * conditional

        new_mu = sum_x / n
        new_sigma = sum_xx / n - np.outer(new_mu, new_mu)
        change = max(np.max(np.abs(new_mu - mu)), np.max(np.abs(new_sigma - sigma)))
        mu, sigma = new_mu, new_sigma
        if change < tol:
            converged = True
            break

    if not converged:
        logger.warning(f"EM did not converge within {max_iter} iterations (last change {change:.3e})")
    else:
        logger.debug(f"EM converged after {iteration + 1} iterations")
    return mu, sigma, converged


def littles_mcar_test(X, columns=None):
    """
    Little's chi-square test of the hypothesis that data are MCAR.

    d2 = sum_j n_j (ybar_j - mu_j)' Sigma_j^{-1} (ybar_j - mu_j), summed over
    missingness patterns j restricted to their observed columns, with
    sum_j p_j - p degrees of freedom.

    Parameters:
    -----------
    X : np.ndarray
        (n, p) float matrix with NaN for missing values
    columns : list, optional
        Column names, only used in log and error messages

    Returns:
    --------
    LittleTestResult
    """
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got shape {X.shape}")
    columns = columns if columns is not None else [f'col{i}' for i in range(X.shape[1])]

    observed = ~np.isnan(X)
    keep = observed.any(axis=1)
    if not keep.all():
        logger.info(f"Little's test: excluding {int((~keep).sum())} records with no observed values")
    X = X[keep]
    observed = observed[keep]
    n, p = X.shape

    empty = [c for c, has in zip(columns, observed.any(axis=0)) if not has]
    if empty:
        raise InsufficientDataError(f"Little's test: columns with no observed values: {empty}")
    if n < 2:
        raise InsufficientDataError("Little's test needs at least two records with observed values.")

    groups = _group_patterns(observed)
    if len(groups) == 1:
        return LittleTestResult(statistic=0.0, dof=0, p_value=1.0, n_patterns=1, n_used=n)

    mu, sigma, _ = em_mean_covariance(X)

    d2 = 0.0
    dof = 0
    for obs, rows in groups:
        diff = X[np.ix_(rows, np.flatnonzero(obs))].mean(axis=0) - mu[obs]
        s_oo = sigma[np.ix_(obs, obs)]
        d2 += len(rows) * float(diff @ np.linalg.pinv(s_oo) @ diff)
        dof += int(obs.sum())
    dof -= p

    p_value = float(chi2.sf(d2, dof)) if dof > 0 else 1.0
    logger.info(f"Little's MCAR test: d2={d2:.4f}, df={dof}, p={p_value:.4g} over {len(groups)} patterns")
    return LittleTestResult(statistic=float(d2), dof=dof, p_value=p_value, n_patterns=len(groups), n_used=n)
