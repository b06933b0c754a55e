r"""
gailpy.funappx
==============

Guaranteed one-dimensional function recovery on a closed interval.

:func:`funappx_g` builds a piecewise-linear interpolant of a black-box
function :math:`f` on :math:`[a, b]` from function values on nested uniform
grids, refining until a data-driven error bound falls below ``abstol``.

Guarantee
---------

If :math:`f` lies in the cone

.. math::

   \|f''\|_\infty \le \frac{2 n^*}{b-a}
   \left\| f' - \frac{f(b)-f(a)}{b-a} \right\|_\infty,

then the returned approximant satisfies :math:`\|f - \hat f\|_\infty \le`
``abstol``, provided ``exceedbudget`` is ``False``. The cone parameter
:math:`n^*` starts at ``ninit - 2`` and is widened when the data show the
current cone is too narrow. Membership in the cone cannot be verified from
finitely many samples, so the guarantee is conditional.

Error bound
-----------

With :math:`n` points, spacing :math:`h = (b-a)/(n-1)` and

.. math::

   g_n = \max_i \left| \frac{y_{i+1}-y_i}{h} - \frac{f(b)-f(a)}{b-a} \right|,
   \qquad
   f_n = \max_i \frac{|y_{i+2} - 2 y_{i+1} + y_i|}{h^2},

the interpolation error of any :math:`f` in the cone is at most

.. math::

   \frac{(b-a)\, n^*\, g_n}{4 (n-1) (n-1-n^*)}.

References
----------
N. Clancy, Y. Ding, C. Hamilton, F. J. Hickernell, and Y. Zhang, The cost of
deterministic, adaptive, automatic algorithms: cones, not balls, Journal of
Complexity 30 (2014) 21-45.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable

import numpy as np

from .errors import ContractError
from .params import Diagnostic, FunAppxParams, _ensure_params

logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


@dataclass(frozen=True, eq=False)
class PiecewiseLinear:
    r"""
    Continuous piecewise-linear function in local form.

    On piece :math:`k` (between ``breaks[k]`` and ``breaks[k+1]``) the
    function is ``coefs[k, 0] * (x - breaks[k]) + coefs[k, 1]``: column 0
    holds the slope, column 1 the intercept at the left breakpoint.

    Attributes
    ----------
    breaks : ndarray
        Strictly increasing breakpoints, length ``pieces + 1``.
    coefs : ndarray
        Array of shape ``(pieces, 2)``.

    Examples
    --------
    >>> pp = PiecewiseLinear.from_values(np.array([0.0, 1.0, 2.0]), np.array([0.0, 1.0, 4.0]))
    >>> float(pp(1.5))
    2.5
    """

    breaks: np.ndarray
    coefs: np.ndarray

    form = "pp"
    order = 2
    dim = 1

    @classmethod
    def from_values(cls, x: np.ndarray, y: np.ndarray) -> "PiecewiseLinear":
        r"""
        Interpolant of the points ``(x[i], y[i])``.

        Parameters
        ----------
        x : ndarray
            Strictly increasing abscissae, at least two.
        y : ndarray
            Ordinates, same length as ``x``.

        Returns
        -------
        PiecewiseLinear
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if x.ndim != 1 or x.size < 2 or x.shape != y.shape:
            raise ValueError("x and y must be 1-D arrays of equal length >= 2")
        dx = np.diff(x)
        if np.any(dx <= 0):
            raise ValueError("breaks must be strictly increasing")
        slopes = np.diff(y) / dx
        return cls(breaks=x, coefs=np.column_stack([slopes, y[:-1]]))

    @property
    def pieces(self) -> int:
        return int(self.coefs.shape[0])

    def __call__(self, x):
        r"""
        Evaluate at ``x``.

        Points outside ``[breaks[0], breaks[-1]]`` are extrapolated from the
        first or last piece.

        Parameters
        ----------
        x : float or array_like

        Returns
        -------
        float or ndarray
            Same shape as ``x``.
        """
        xa = np.asarray(x, dtype=float)
        idx = np.clip(np.searchsorted(self.breaks, xa, side="right") - 1, 0, self.pieces - 1)
        out = self.coefs[idx, 0] * (xa - self.breaks[idx]) + self.coefs[idx, 1]
        return float(out) if out.ndim == 0 else out


@dataclass(frozen=True, eq=False)
class FunAppxResult:
    r"""
    Report of a :func:`funappx_g` call.

    Attributes
    ----------
    pp : PiecewiseLinear
        The approximant.
    ninit : int
        Initial number of points.
    npoints : int
        Number of points of the final grid.
    nstar : int
        Final cone parameter :math:`n^*`.
    errorbound : float
        Data-driven upper bound on the error, valid for functions in the cone
        (``inf`` if the final data lie outside the current cone).
    exceedbudget : bool
        ``True`` if the budget ``nmax`` stopped the refinement.
    iterations : int
        Number of grids examined.
    cost_bound : float
        Upper bound on the cost,
        :math:`\sqrt{n^*(b-a)^2 f_n / (2\,\text{abstol})} + 2n^* + 4`.
    time : float
        Wall-clock time in seconds.
    params : FunAppxParams
        Validated parameters.
    diagnostics : tuple of Diagnostic
        Parameter corrections and budget warnings.
    """

    pp: PiecewiseLinear
    ninit: int
    npoints: int
    nstar: int
    errorbound: float
    exceedbudget: bool
    iterations: int
    cost_bound: float
    time: float
    params: FunAppxParams
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def guaranteed(self) -> bool:
        """``True`` when the error bound was met within budget (cone condition assumed)."""
        return not self.exceedbudget and self.errorbound <= self.params.abstol

    def __call__(self, x):
        return self.pp(x)

    def result_to_string(self) -> str:
        p = self.params
        lines = [
            "=" * 20 + " FUNCTION APPROXIMATION " + "=" * 20,
            f"  Interval: [{p.a:g}, {p.b:g}]   abstol: {p.abstol:g}",
            f"  Points: {self.ninit} initial, {self.npoints} final ({self.iterations} iterations)",
            f"  Cone parameter nstar: {self.nstar}",
            f"  Error bound: {self.errorbound:.4g}",
            f"  Exceeded budget ({p.nmax}): {self.exceedbudget}",
            f"  Execution time: {self.time:.2f} seconds",
        ]
        if self.diagnostics:
            lines.append("Diagnostics:")
        for d in self.diagnostics:
            lines.append(f"  {d}")
        lines.append("=" * 20 + " END " + "=" * 20)
        return "\n".join(lines)


def _evaluate(f: Callable[[np.ndarray], Any], x: np.ndarray) -> np.ndarray:
    try:
        y = np.asarray(f(x), dtype=float)
    except (TypeError, ValueError) as e:
        raise ContractError(f"function output is not real-valued: {e}") from e
    if y.shape != x.shape:
        if y.size == x.size and y.ndim <= 2:
            y = y.reshape(x.shape)
        else:
            raise ContractError(f"function must return {x.size} values for {x.size} points, got shape {y.shape}")
    if not np.all(np.isfinite(y)):
        raise ContractError("function returned non-finite values")
    return y


def _initial_points(params: FunAppxParams) -> int:
    r"""
    Initial grid size between ``nlo`` and ``nhi``.

    Short intervals start near ``nlo``; long ones approach ``nhi``.
    """
    h = params.b - params.a
    ninit = math.ceil(params.nhi * (params.nlo / params.nhi) ** (1.0 / (1.0 + h)))
    return int(min(max(ninit, params.nlo), params.nhi, params.nmax))


def _refine(f: Callable[[np.ndarray], Any], a: float, b: float, y: np.ndarray, k: int) -> np.ndarray:
    """Values on the grid with ``k`` times as many intervals, reusing ``y``."""
    n_new = k * (y.size - 1) + 1
    x = np.linspace(a, b, n_new)
    fresh = np.arange(n_new) % k != 0
    y_new = np.empty(n_new)
    y_new[::k] = y
    y_new[fresh] = _evaluate(f, x[fresh])
    return y_new


def _required_intervals(width: float, nstar: int, gn: float, abstol: float) -> float:
    r"""Smallest :math:`m = n-1` with :math:`m(m-n^*) \ge (b-a) n^* g_n / (4\,\text{abstol})`."""
    rhs = width * nstar * gn / (4.0 * abstol)
    return (nstar + math.sqrt(nstar**2 + 4.0 * rhs)) / 2.0


def funappx_g(f: Callable[[np.ndarray], Any], params: Any = None, **overrides: Any) -> FunAppxResult:
    r"""
    Approximate ``f`` on ``[a, b]`` to within ``abstol``.

    Parameters
    ----------
    f : callable
        Vectorized function: ``f(x)`` returns an array of the same shape as
        the 1-D array ``x``.
    params : FunAppxParams, mapping, or object, optional
        Configuration; see :class:`~gailpy.params.FunAppxParams` for defaults.
    **overrides :
        Individual fields applied on top of ``params``.

    Returns
    -------
    FunAppxResult
        The approximant and the diagnostics of the run.

    Raises
    ------
    ContractError
        If ``f`` returns the wrong number of values or non-finite values.

    Notes
    -----
    Each iteration:

    1. Computes :math:`g_n` and :math:`f_n` on the current grid.
    2. If :math:`n^*(2 g_n + f_n h) < f_n (b-a)` the data contradict the
       cone; :math:`n^*` is widened to the smallest value consistent with
       the data and the grid is refined.
    3. Otherwise, stops when the error bound is at most ``abstol``, or
       refines the grid to the size the bound asks for.

    Grids are refined by an integer factor of at least 2 so every
    previously computed value is reused. If the refined grid would need
    more than ``nmax`` points, the current approximant is returned with
    ``exceedbudget=True``.
    The same happens when the required grid size is not representable,
    e.g. for a subnormal ``abstol`` or function values so large that the
    divided differences overflow.

    Examples
    --------
    >>> res = funappx_g(lambda x: x**2, a=-2, b=2, abstol=1e-6)
    >>> res.exceedbudget
    False
    """
    t0 = time.perf_counter()
    params, diags = _ensure_params(params, FunAppxParams, overrides).validated()
    diagnostics = list(diags)
    for d in diags:
        logger.warning(d.message)

    a, b, abstol = params.a, params.b, params.abstol
    width = b - a
    ninit = _initial_points(params)
    n = ninit
    nstar = ninit - 2
    logger.info(f"Approximating function on [{a:g}, {b:g}] to tolerance {abstol:g} starting from {ninit} points...")

    y = _evaluate(f, np.linspace(a, b, n))
    exceedbudget = False
    errorbound = math.inf
    fn = 0.0
    iterations = 0
    while True:
        iterations += 1
        h = width / (n - 1)
        with np.errstate(over="ignore", invalid="ignore"):
            diff_y = np.diff(y)
            gn = float(np.max(np.abs(diff_y / h - (y[-1] - y[0]) / width)))
            fn = float(np.max(np.abs(np.diff(diff_y)))) / (h * h) if n > 2 else 0.0

        if not (math.isfinite(gn) and math.isfinite(fn)):
            errorbound = math.inf
            m_needed = math.inf
        elif nstar * (2.0 * gn + fn * h) >= fn * width and n - 1 > nstar:
            errorbound = width * nstar * gn / (4.0 * (n - 1) * (n - 1 - nstar))
            logger.debug(f"n={n}: gn={gn:.6g}, fn={fn:.6g}, nstar={nstar}, errorbound={errorbound:.4g}")
            if errorbound <= abstol:
                break
            m_needed = _required_intervals(width, nstar, gn, abstol)
        else:
            errorbound = math.inf
            m_needed = max(2 * (n - 1), nstar + 1)
            if nstar * (2.0 * gn + fn * h) < fn * width:
                widened = fn * width / (2.0 * gn + fn * h)
                if math.isfinite(widened):
                    nstar = math.ceil(widened)
                    m_needed = max(2 * (n - 1), nstar + 1)
                    logger.debug(f"n={n}: data outside the cone, widening to nstar={nstar}")
                else:
                    m_needed = math.inf

        if math.isfinite(m_needed):
            k = max(2, math.ceil(m_needed / (n - 1)))
            n_next = k * (n - 1) + 1
        else:
            n_next = math.inf
        if n_next > params.nmax:
            needed = n_next if math.isfinite(n_next) else "too many"
            msg = (
                f"Need {needed} points to reach the error tolerance, which is more than the cost budget of "
                f"{params.nmax}; returning the approximant built from {n} points without guarantee."
            )
            logger.warning(msg)
            diagnostics.append(Diagnostic("exceed_budget", msg))
            exceedbudget = True
            break
        y = _refine(f, a, b, y, k)
        n = n_next

    x = np.linspace(a, b, n)
    if math.isfinite(fn):
        cost_bound = math.sqrt(nstar * width * width * fn / (2.0 * abstol)) + 2 * nstar + 4
    else:
        cost_bound = math.inf
    elapsed = time.perf_counter() - t0
    logger.info(f"Used {n} points in {elapsed:.2f} seconds (error bound {errorbound:.4g})")
    return FunAppxResult(
        pp=PiecewiseLinear.from_values(x, y),
        ninit=ninit,
        npoints=n,
        nstar=nstar,
        errorbound=errorbound,
        exceedbudget=exceedbudget,
        iterations=iterations,
        cost_bound=cost_bound,
        time=elapsed,
        params=params,
        diagnostics=tuple(diagnostics),
    )


__all__ = ["PiecewiseLinear", "FunAppxResult", "funappx_g"]
