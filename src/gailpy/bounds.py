r"""
gailpy.bounds
=============

Non-asymptotic sample-size and tolerance bounds for the sample mean.

For i.i.d. :math:`Y_i` with standard deviation :math:`\sigma` the sample mean
:math:`\hat\mu_n` satisfies :math:`\Pr(|\hat\mu_n-\mu| > \varepsilon) \le \alpha`
when either of the following holds.

Chebyshev
    .. math:: n \ge \frac{1}{(\varepsilon/\sigma)^2 \alpha}

Berry-Esseen (with :math:`M_3 \le \kappa_{\max}^{3/4}`)
    .. math::
       \Phi\!\left(-\sqrt{n}\,\tfrac{\varepsilon}{\sigma}\right)
       + \frac{1}{\sqrt{n}} \min\!\left(A_1 (M_3 + A_2),
         \frac{A M_3}{1 + (\sqrt{n}\,\varepsilon/\sigma)^3}\right)
       \le \frac{\alpha}{2}

The Berry-Esseen condition is transcendental; it is solved on a log scale with
:func:`scipy.optimize.brentq` after bracketing around the CLT estimate. Both
solvers return the tighter of the two bounds.

This module provides:

* :func:`sample_size_for_tolerance` – smallest :math:`n` for a given :math:`\varepsilon/\sigma`.
* :func:`tolerance_for_sample_size` – smallest :math:`\varepsilon/\sigma` for a given :math:`n`.
* :func:`kurtosis_upper_bound` – the :math:`\kappa_{\max}` implied by the variance stage.
* :func:`hoeffding_sample_size` – fixed sample size for bounded (Bernoulli) variables.
"""

from __future__ import annotations

import math
from typing import Callable

import numpy as np
from scipy.optimize import brentq

from .errors import NumericConvergenceError
from .utils import stdnorm_cdf, z_crit

# Berry-Esseen constants
BE_A = 18.1139
BE_A1 = 0.3328
BE_A2 = 0.429

_MAX_BRACKET_EXPANSIONS = 60
_MAX_ROOT_ITER = 200
# exp() overflows just above 709
_LOG_LIMIT = 700.0


def _berry_esseen_tail(sqrt_n, tol_over_sig, m3upper):
    """Berry-Esseen upper bound on one tail of the standardized sample mean."""
    with np.errstate(over="ignore"):
        z = np.float64(sqrt_n) * tol_over_sig
        moment_term = BE_A * m3upper / (1.0 + z**3)
    return float(stdnorm_cdf(-z) + min(BE_A1 * (m3upper + BE_A2), moment_term) / sqrt_n)


def _solve_decreasing(fun: Callable[[float], float], seed: float, step: float = 1.0) -> float:
    r"""
    Find the root of a decreasing function of one variable.

    The bracket ``[seed - d, seed + d]`` is doubled until ``fun`` changes sign,
    then refined by Brent's method.

    Raises
    ------
    NumericConvergenceError
        If no sign change is found within the expansion limit, or if
        :func:`scipy.optimize.brentq` does not converge.
    """
    if not np.isfinite(seed):
        raise NumericConvergenceError(f"root finder seeded with non-finite value {seed!r}")
    lo = hi = seed
    f_lo = f_hi = fun(seed)
    if f_lo == 0.0:
        return seed
    width = step
    for _ in range(_MAX_BRACKET_EXPANSIONS):
        if f_lo > 0.0 > f_hi or f_lo < 0.0 < f_hi:
            break
        lo = max(seed - width, -_LOG_LIMIT)
        hi = min(seed + width, _LOG_LIMIT)
        f_lo, f_hi = fun(lo), fun(hi)
        width *= 2.0
    else:
        raise NumericConvergenceError(
            f"could not bracket a root around {seed:.6g} after {_MAX_BRACKET_EXPANSIONS} expansions"
        )
    if not (f_lo > 0.0 > f_hi or f_lo < 0.0 < f_hi):
        raise NumericConvergenceError(f"could not bracket a root around {seed:.6g}")
    try:
        root, info = brentq(fun, lo, hi, maxiter=_MAX_ROOT_ITER, full_output=True, disp=False)
    except (RuntimeError, ValueError) as e:
        raise NumericConvergenceError(f"root finder failed on [{lo:.6g}, {hi:.6g}]: {e}") from e
    if not info.converged:
        raise NumericConvergenceError(
            f"root finder did not converge on [{lo:.6g}, {hi:.6g}] ({info.flag})"
        )
    return float(root)


def kurtosis_upper_bound(n_sig: int, alpha_sig: float, fudge: float) -> float:
    r"""
    Upper bound on the modified kurtosis implied by the variance stage.

    .. math::
       \kappa_{\max} = \frac{n_\sigma - 3}{n_\sigma - 1}
       + \frac{\alpha_\sigma n_\sigma}{1 - \alpha_\sigma}
         \left(1 - \frac{1}{\mathfrak{C}^2}\right)^2

    where :math:`\mathfrak{C}` is the fudge factor.

    Parameters
    ----------
    n_sig : int
        Sample size of the variance stage (``>= 2``).
    alpha_sig : float
        Uncertainty allotted to the variance stage.
    fudge : float
        Standard deviation inflation factor (``> 1``).

    Returns
    -------
    float
    """
    if n_sig < 2:
        raise ValueError("n_sig must be at least 2")
    return (n_sig - 3) / (n_sig - 1) + (alpha_sig * n_sig / (1.0 - alpha_sig)) * (1.0 - 1.0 / fudge**2) ** 2


def chebyshev_sample_size(tol_over_sig: float, alpha: float) -> int:
    r"""Chebyshev sample size :math:`\lceil 1/((\varepsilon/\sigma)^2 \alpha) \rceil`."""
    return max(1, math.ceil(1.0 / (tol_over_sig**2 * alpha)))


def berry_esseen_sample_size(tol_over_sig: float, alpha: float, kurtmax: float) -> int:
    r"""
    Berry-Esseen sample size.

    Solves for :math:`L = \log\sqrt{n}` starting from the CLT value
    :math:`\log(z_{1-\alpha/2}\,\sigma/\varepsilon)`.

    Raises
    ------
    NumericConvergenceError
        If the root cannot be found.
    """
    m3upper = kurtmax**0.75

    def fun(logsqrtn: float) -> float:
        return _berry_esseen_tail(math.exp(logsqrtn), tol_over_sig, m3upper) - alpha / 2.0

    seed = math.log(z_crit(alpha) / tol_over_sig)
    root = _solve_decreasing(fun, seed)
    return max(1, math.ceil(math.exp(2.0 * root)))


def sample_size_for_tolerance(tol_over_sig: float, alpha: float, kurtmax: float) -> int:
    r"""
    Smallest sample size guaranteeing the tolerance under Chebyshev and
    Berry-Esseen, whichever is tighter.

    Parameters
    ----------
    tol_over_sig : float
        Target tolerance divided by (an upper bound on) the standard deviation.
    alpha : float
        Uncertainty in :math:`(0, 1)`.
    kurtmax : float
        Upper bound on the modified kurtosis.

    Returns
    -------
    int

    Raises
    ------
    ValueError
        If ``tol_over_sig`` is not positive.
    NumericConvergenceError
        If the Berry-Esseen root cannot be found.

    Examples
    --------
    >>> sample_size_for_tolerance(0.1, 0.01, 3.0) <= 10_000
    True
    """
    if not tol_over_sig > 0.0:
        raise ValueError("tol_over_sig must be positive")
    ncheb = chebyshev_sample_size(tol_over_sig, alpha)
    nbe = berry_esseen_sample_size(tol_over_sig, alpha, kurtmax)
    return min(ncheb, nbe)


def tolerance_for_sample_size(n: int, alpha: float, kurtmax: float) -> float:
    r"""
    Tolerance (as a multiple of :math:`\sigma`) guaranteed by ``n`` samples.

    Inverts :func:`sample_size_for_tolerance`: the Chebyshev tolerance is
    :math:`1/\sqrt{n\alpha}`, the Berry-Esseen tolerance is found by root
    finding in :math:`\log\varepsilon` seeded at
    :math:`z_{1-\alpha/2}/\sqrt{n}`. The smaller one is returned.

    Parameters
    ----------
    n : int
        Sample size (positive).
    alpha : float
        Uncertainty in :math:`(0, 1)`.
    kurtmax : float
        Upper bound on the modified kurtosis.

    Returns
    -------
    float

    Raises
    ------
    NumericConvergenceError
        If the Berry-Esseen root cannot be found.
    """
    if n < 1:
        raise ValueError("n must be positive")
    sqrt_n = math.sqrt(n)
    eps_cheb = 1.0 / math.sqrt(n * alpha)
    m3upper = kurtmax**0.75

    def fun(logeps: float) -> float:
        return _berry_esseen_tail(sqrt_n, math.exp(logeps), m3upper) - alpha / 2.0

    seed = math.log(z_crit(alpha) / sqrt_n)
    eps_be = math.exp(_solve_decreasing(fun, seed))
    return min(eps_cheb, eps_be)


def hoeffding_sample_size(abstol: float, alpha: float) -> int:
    r"""
    Hoeffding sample size for a variable bounded in :math:`[0, 1]`.

    .. math:: n = \left\lceil \frac{\log(2/\alpha)}{2\varepsilon^2} \right\rceil

    Examples
    --------
    >>> hoeffding_sample_size(1e-2, 0.01)
    26492
    """
    if not abstol > 0.0:
        raise ValueError("abstol must be positive")
    return math.ceil(math.log(2.0 / alpha) / (2.0 * abstol**2))


__all__ = [
    "BE_A",
    "BE_A1",
    "BE_A2",
    "kurtosis_upper_bound",
    "chebyshev_sample_size",
    "berry_esseen_sample_size",
    "sample_size_for_tolerance",
    "tolerance_for_sample_size",
    "hoeffding_sample_size",
]
