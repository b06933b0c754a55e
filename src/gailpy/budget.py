r"""
gailpy.budget
=============

Sample-budget accounting for the adaptive mean estimators.

The number of further samples an estimator may draw is limited both by the
sample budget ``nbudget`` and by what is left of the time budget ``tbudget``.
The time limit is converted into a sample count by linear extrapolation of
the cost observed in timed trial batches:

.. math::
   c = \frac{\sum_k t_k}{\sum_k n_k}, \qquad
   n_{\max} = \min\!\left(n_\text{budget} - n_\text{so far},\;
   \left\lfloor \frac{t_\text{budget} - t_\text{elapsed}}{c} \right\rfloor\right)^+
"""

from __future__ import annotations

import math
import time
from typing import Iterable, Optional


def cost_per_sample(trials: Iterable[tuple[int, float]]) -> float:
    r"""
    Average wall-clock cost of one sample over the observed trials.

    Parameters
    ----------
    trials : iterable of (int, float)
        ``(n, seconds)`` pairs of timed batches.

    Returns
    -------
    float
        Seconds per sample, ``0.0`` when no samples (or no time) were observed.
    """
    n_total = 0
    t_total = 0.0
    for n, t in trials:
        n_total += int(n)
        t_total += float(t)
    if n_total <= 0 or t_total <= 0.0:
        return 0.0
    return t_total / n_total


def estimate_sample_budget(
    tbudget: float,
    nbudget: int,
    trials: Iterable[tuple[int, float]],
    n_so_far: int,
    t_start: float,
    now: Optional[float] = None,
) -> int:
    r"""
    Maximum number of additional samples affordable under both budgets.

    Parameters
    ----------
    tbudget : float
        Time budget in seconds for the whole call.
    nbudget : int
        Sample budget for the whole call.
    trials : iterable of (int, float)
        Timed batches observed so far as ``(n, seconds)`` pairs.
    n_so_far : int
        Samples already drawn.
    t_start : float
        :func:`time.perf_counter` reading taken when the call started.
    now : float, optional
        Current :func:`time.perf_counter` reading; taken on entry if omitted.

    Returns
    -------
    int
        Non-negative sample count. When the trials carry no timing
        information only the sample budget applies.

    Examples
    --------
    >>> estimate_sample_budget(10.0, 1000, [(128, 0.125)], 0, t_start=0.0, now=5.0)
    1000
    >>> estimate_sample_budget(10.0, 10**9, [(128, 0.125)], 0, t_start=0.0, now=5.0)
    5120
    """
    if now is None:
        now = time.perf_counter()
    n_left = int(nbudget) - int(n_so_far)
    cost = cost_per_sample(trials)
    if cost > 0.0:
        t_left = float(tbudget) - (now - t_start)
        n_left = min(n_left, math.floor(max(t_left, 0.0) / cost))
    return max(0, n_left)


__all__ = ["cost_per_sample", "estimate_sample_budget"]
