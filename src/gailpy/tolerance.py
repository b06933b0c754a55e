r"""
gailpy.tolerance
================

Generalized error tolerance.

The mean estimators accept an absolute tolerance :math:`\varepsilon_a` and a
relative tolerance :math:`\varepsilon_r`. For a concrete value :math:`\mu`
they are combined into a single bound:

``"max"``
    :math:`\max(\varepsilon_a, \varepsilon_r |\mu|)`
``"sum"``
    :math:`\varepsilon_a + \varepsilon_r |\mu|`
``"comb"``
    :math:`\theta \varepsilon_a + (1-\theta) \varepsilon_r |\mu|`
"""

from __future__ import annotations

from enum import Enum

import numpy as np


class ToleranceMode(str, Enum):
    r"""
    Rules for combining absolute and relative tolerances.

    Attributes
    ----------
    max : str
        Either tolerance suffices.
    sum : str
        Tolerances add up.
    comb : str
        Convex combination weighted by ``theta``.
    """

    max = "max"
    sum = "sum"
    comb = "comb"


def combined_tolerance(abstol, reltol, estimate, mode="max", theta: float = 0.0):
    r"""
    Translate a generalized tolerance into a bound for a specific estimate.

    Parameters
    ----------
    abstol : float
        Absolute error tolerance.
    reltol : float
        Relative error tolerance.
    estimate : float or ndarray
        Value the relative tolerance is measured against. Only
        :math:`|\text{estimate}|` enters the bound.
    mode : {"max", "sum", "comb"}, default ``"max"``
        Combination rule, see :class:`ToleranceMode`.
    theta : float, default ``0.0``
        Weight on ``abstol`` for ``mode="comb"``.

    Returns
    -------
    float or ndarray
        Tolerance with the same shape as ``estimate``.

    Raises
    ------
    ValueError
        If ``mode`` is unknown or ``theta`` is outside :math:`[0, 1]`.

    Examples
    --------
    >>> combined_tolerance(1e-3, 0.0, -5.0)
    0.001
    >>> combined_tolerance(0.0, 0.1, -5.0)
    0.5
    >>> combined_tolerance(1e-3, 0.1, 2.0, mode="sum")
    0.201
    """
    mode = ToleranceMode(mode)
    magnitude = np.abs(estimate)
    if mode is ToleranceMode.max:
        out = np.maximum(abstol, reltol * magnitude)
    elif mode is ToleranceMode.sum:
        out = abstol + reltol * magnitude
    else:
        if not 0.0 <= theta <= 1.0:
            raise ValueError("theta must be in [0,1]")
        out = theta * abstol + (1.0 - theta) * reltol * magnitude
    return float(out) if np.ndim(out) == 0 else out


__all__ = ["ToleranceMode", "combined_tolerance"]
