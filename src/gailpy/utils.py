r"""
gailpy.utils
============

Standard normal helpers shared by the solvers and estimators.
"""

from __future__ import annotations

import numpy as np
from scipy.stats import norm


def stdnorm_cdf(x):
    r"""
    Standard normal CDF :math:`\Phi(x)`.

    Parameters
    ----------
    x : float or ndarray

    Returns
    -------
    float or ndarray
    """
    out = norm.cdf(x)
    return float(out) if np.ndim(out) == 0 else out


def stdnorm_inv(p):
    r"""
    Standard normal quantile :math:`\Phi^{-1}(p)`.

    Parameters
    ----------
    p : float or ndarray
        Probabilities in :math:`(0, 1)`.

    Returns
    -------
    float or ndarray
    """
    out = norm.ppf(p)
    return float(out) if np.ndim(out) == 0 else out


def z_crit(alpha: float) -> float:
    r"""
    Two-sided critical value :math:`z_{1-\alpha/2}`.

    Parameters
    ----------
    alpha : float
        Uncertainty in :math:`(0, 1)`.

    Returns
    -------
    float

    Examples
    --------
    >>> round(z_crit(0.05), 3)
    1.96
    """
    if not 0.0 < alpha < 1.0:
        raise ValueError("alpha must be in (0,1)")
    return stdnorm_inv(1.0 - alpha / 2.0)


__all__ = ["stdnorm_cdf", "stdnorm_inv", "z_crit"]
