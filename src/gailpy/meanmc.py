r"""

gailpy.meanmc
=============

Monte Carlo estimation of a mean with guaranteed accuracy.

This module provides:

* :func:`~gailpy.meanmc.mean_mc_g` – two-stage adaptive estimator with a
  non-asymptotic guarantee.
* :func:`~gailpy.meanmc.mean_mc_clt` – one-shot CLT heuristic.
* :func:`~gailpy.meanmc.mean_mc_ber_g` – fixed-cost Hoeffding estimator for
  Bernoulli variables.
* :class:`~gailpy.meanmc.MeanMCResult` and friends – read-only reports.

Guarantee
---------

If :func:`mean_mc_g` exits with :attr:`ExitStatus.SUCCESS`, the returned
estimate :math:`\tilde\mu` satisfies

.. math::

   \Pr\left(|\mu - \tilde\mu| \le \max(\varepsilon_a, \varepsilon_r |\mu|)\right) \ge 1 - \alpha

for every random variable whose modified kurtosis does not exceed
:math:`\kappa_{\max}` (see :func:`~gailpy.bounds.kurtosis_upper_bound`).
Any other exit status means a budget ran out first and the estimate carries
no guarantee.

References
----------
F. J. Hickernell, L. Jiang, Y. Liu, and A. B. Owen, Guaranteed conservative
fixed width confidence intervals via Monte Carlo sampling, Monte Carlo and
Quasi-Monte Carlo Methods 2012, Springer-Verlag, Berlin, 2014.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from .bounds import (
    hoeffding_sample_size,
    kurtosis_upper_bound,
    sample_size_for_tolerance,
    tolerance_for_sample_size,
)
from .budget import cost_per_sample, estimate_sample_budget
from .errors import ContractError, SampleSizeCeilingError
from .params import (
    Diagnostic,
    MeanMCBerParams,
    MeanMCCLTParams,
    MeanMCParams,
    _ensure_params,
)
from .sampling import Sampler, check_sampler, draw, eval_mean
from .tolerance import combined_tolerance
from .utils import z_crit

logger = logging.getLogger(__name__)  # pragma: no cover
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)


_N_WARMUP = 2  # Samples drawn to load data and warm up the sampler
_N_TRY = 20  # Samples in the first timed trial
_TRYOUT_SHARE = 0.1  # Share of the time budget the try-out may use
_VARIANCE_SHARE = 0.5  # Share of the remaining time the variance stage may use
_DELTA_T = 0.7  # Next tolerance: at most this share of the observed margin
_DELTA_H = 0.5  # ... and at most this share of the previous tolerance
_DELTA = 0.3  # ... but at least this share of the previous tolerance


class ExitStatus(int, Enum):
    r"""
    Outcome of an estimation call.

    Attributes
    ----------
    SUCCESS : int
        The stopping rule was met; the guarantee holds.
    SAMPLE_BUDGET_EXCEEDED : int
        The next sample size exceeded the remaining sample or time budget.
    TRYOUT_TIME_EXCEEDED : int
        The initial try-out alone used more than 10% of the time budget.
    VARIANCE_TIME_EXCEEDED : int
        Estimating the variance was predicted to take more than half of the
        remaining time budget.
    """

    SUCCESS = 0
    SAMPLE_BUDGET_EXCEEDED = 1
    TRYOUT_TIME_EXCEEDED = 2
    VARIANCE_TIME_EXCEEDED = 3


@dataclass(frozen=True)
class MeanMCResult:
    r"""
    Report of a :func:`mean_mc_g` call.

    Attributes
    ----------
    estimate : float
        Estimated mean :math:`\tilde\mu`.
    exit_status : ExitStatus
        How the call ended.
    n_total : int
        Total samples drawn, including warm-up and try-out.
    time : float
        Wall-clock time in seconds.
    var : float
        Sample variance of the variance stage (``nan`` if it was skipped).
    kurtmax : float
        Upper bound on the modified kurtosis (``nan`` if not computed).
    tau : int
        Number of refinement iterations started.
    nmax : int
        Samples still affordable at the last budget check.
    n : tuple of int
        Sample size of each iteration.
    tol : tuple of float
        Tolerance of each iteration.
    hmu : tuple of float
        Sample mean of each completed iteration.
    params : MeanMCParams
        Validated parameters actually used.
    diagnostics : tuple of Diagnostic
        Parameter corrections and budget warnings.
    """

    estimate: float
    exit_status: ExitStatus
    n_total: int
    time: float
    var: float
    kurtmax: float
    tau: int
    nmax: int
    n: tuple[int, ...]
    tol: tuple[float, ...]
    hmu: tuple[float, ...]
    params: MeanMCParams
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def guaranteed(self) -> bool:
        """``True`` only when the stopping rule was met."""
        return self.exit_status is ExitStatus.SUCCESS

    def result_to_string(self) -> str:
        r"""
        Human-readable summary of the estimation.

        Returns
        -------
        str
            Multiline textual summary.
        """
        p = self.params
        lines = [
            "=" * 20 + " MEAN ESTIMATE " + "=" * 20,
            f"  Estimate: {self.estimate:.8g}",
            f"  Tolerance: max({p.abstol:g}, {p.reltol:g}|mu|) with confidence {1 - p.alpha:.4g}",
            f"  Exit status: {self.exit_status.name} ({int(self.exit_status)})",
            f"  Guaranteed: {self.guaranteed}",
            f"  Total samples: {self.n_total}",
            f"  Execution time: {self.time:.2f} seconds",
            f"  Sample variance: {self.var:.6g}   (kurtmax: {self.kurtmax:.6g})",
        ]
        if self.n:
            lines.append("  Iterations:")
        for i, n_i in enumerate(self.n):
            tol_i = self.tol[i] if i < len(self.tol) else float("nan")
            hmu_i = f"{self.hmu[i]:.8g}" if i < len(self.hmu) else "-"
            lines.append(f"    {i + 1}: n={n_i}  tol={tol_i:.4g}  hmu={hmu_i}")
        if self.diagnostics:
            lines.append("Diagnostics:")
        for d in self.diagnostics:
            lines.append(f"  {d}")
        lines.append("=" * 20 + " END " + "=" * 20)
        return "\n".join(lines)


@dataclass(frozen=True)
class MeanMCCLTResult:
    r"""
    Report of a :func:`mean_mc_clt` call.

    Attributes
    ----------
    estimate : float
        Estimated mean.
    n_total : int
        ``n_sig + n_mu``.
    n_mu : int
        Samples used for the mean.
    var : float
        Sample variance of the first stage.
    time : float
        Wall-clock time in seconds.
    params : MeanMCCLTParams
        Validated parameters.
    diagnostics : tuple of Diagnostic
        Parameter corrections.
    """

    estimate: float
    n_total: int
    n_mu: int
    var: float
    time: float
    params: MeanMCCLTParams
    diagnostics: tuple[Diagnostic, ...] = ()


@dataclass(frozen=True)
class MeanMCBerResult:
    r"""
    Report of a :func:`mean_mc_ber_g` call.

    Attributes
    ----------
    estimate : float
        Estimated probability :math:`\hat p`.
    exit_status : ExitStatus
        ``SUCCESS`` or ``SAMPLE_BUDGET_EXCEEDED``.
    n_total : int
        Samples averaged into the estimate (the warm-up probe is not counted).
    n_required : int
        Hoeffding sample size for the requested tolerance.
    time : float
        Wall-clock time in seconds.
    params : MeanMCBerParams
        Validated parameters.
    diagnostics : tuple of Diagnostic
        Parameter corrections and budget warnings.
    """

    estimate: float
    exit_status: ExitStatus
    n_total: int
    n_required: int
    time: float
    params: MeanMCBerParams
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def guaranteed(self) -> bool:
        return self.exit_status is ExitStatus.SUCCESS


@dataclass
class _EstimationState:
    """Mutable bookkeeping of a single :func:`mean_mc_g` call."""

    t_start: float
    n_so_far: int = 0
    trials: list[tuple[int, float]] = field(default_factory=list)
    tau: int = 0
    nmax: int = 0
    var: float = float("nan")
    kurtmax: float = float("nan")
    n: list[int] = field(default_factory=list)
    tol: list[float] = field(default_factory=list)
    hmu: list[float] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def record(self, n: int, seconds: float) -> None:
        self.n_so_far += int(n)
        self.trials.append((int(n), float(seconds)))

    def warn(self, code: str, message: str) -> None:
        logger.warning(message)
        self.diagnostics.append(Diagnostic(code, message))


def _timed_draw(sampler: Sampler, n: int) -> tuple[np.ndarray, float]:
    t0 = time.perf_counter()
    values = draw(sampler, n)
    return values, time.perf_counter() - t0


def _timed_mean(sampler: Sampler, n: int, npcmax: int) -> tuple[float, float]:
    t0 = time.perf_counter()
    mu = eval_mean(sampler, n, npcmax)
    return mu, time.perf_counter() - t0


def _booster(tpern: float) -> int:
    r"""
    Size multiplier of the second timed trial.

    Cheap samplers get a larger second trial so that call overhead does not
    dominate the timing; expensive ones a smaller one.
    """
    if tpern < 1e-6:
        return 8
    if tpern >= 1e-3:
        return 2
    return 5


def _finish(
    state: _EstimationState,
    params: MeanMCParams,
    estimate: float,
    status: ExitStatus,
) -> MeanMCResult:
    elapsed = time.perf_counter() - state.t_start
    logger.info(
        f"Mean estimate {estimate:.8g} from {state.n_so_far} samples in {elapsed:.2f} seconds "
        f"(exit status {status.name})"
    )
    return MeanMCResult(
        estimate=float(estimate),
        exit_status=status,
        n_total=state.n_so_far,
        time=elapsed,
        var=state.var,
        kurtmax=state.kurtmax,
        tau=state.tau,
        nmax=state.nmax,
        n=tuple(state.n),
        tol=tuple(state.tol),
        hmu=tuple(state.hmu),
        params=params,
        diagnostics=tuple(state.diagnostics),
    )


def mean_mc_g(sampler: Sampler, params: Any = None, **overrides: Any) -> MeanMCResult:
    r"""
    Estimate :math:`\mu = \mathbb{E}[Y]` to within
    :math:`\max(\varepsilon_a, \varepsilon_r|\mu|)` with confidence :math:`1-\alpha`.

    Parameters
    ----------
    sampler : callable
        ``sampler(n)`` returning ``n`` i.i.d. instances of :math:`Y`.
    params : MeanMCParams, mapping, or object, optional
        Configuration; see :class:`~gailpy.params.MeanMCParams` for defaults.
    **overrides :
        Individual fields of :class:`~gailpy.params.MeanMCParams`, applied
        on top of ``params``.

    Returns
    -------
    MeanMCResult

    Raises
    ------
    ContractError
        If ``sampler`` does not return ``n`` real values for a request of ``n``.
    NumericConvergenceError
        If a Berry-Esseen sample size cannot be solved for.

    Notes
    -----
    The procedure has three stages.

    1. *Try-out.* A warm-up draw, then two timed trials of ``20`` and
       ``20 * booster`` samples measure the cost per sample.
    2. *Variance.* ``n_sig`` samples give :math:`\hat\sigma`, inflated to
       :math:`\hat\sigma_{up} = \mathfrak{C}\hat\sigma`. Half of :math:`\alpha`
       is spent here.
    3. *Refinement.* At iteration :math:`i` draw :math:`n_i` fresh samples
       with mean :math:`\hat\mu_i` and tolerance :math:`\varepsilon_i`. Let
       :math:`\Delta_\pm = \frac12[\mathrm{tol}(\hat\mu_i-\varepsilon_i) \pm
       \mathrm{tol}(\hat\mu_i+\varepsilon_i)]`. Stop once
       :math:`\Delta_+ \ge \varepsilon_i` and return :math:`\hat\mu_i + \Delta_-`.
       Otherwise shrink the tolerance and size the next sample with
       :func:`~gailpy.bounds.sample_size_for_tolerance` at uncertainty
       :math:`\frac{\alpha - \alpha_\sigma}{1 - \alpha_\sigma} 2^{-i}`.

    Budgets are checked before every batch from the variance stage on; a
    single batch is never interrupted. The warm-up and try-out batches
    (at most 182 samples) are always drawn.

    Examples
    --------
    >>> from gailpy.sampling import SeededSampler
    >>> y = SeededSampler(lambda rng, n: rng.random(n) ** 2, seed=7)
    >>> res = mean_mc_g(y, abstol=1e-3, reltol=0, alpha=0.05)  # doctest: +SKIP
    >>> round(res.estimate, 2)  # doctest: +SKIP
    0.33
    """
    state = _EstimationState(t_start=time.perf_counter())
    params, diags = _ensure_params(params, MeanMCParams, overrides).validated()
    for d in diags:
        state.warn(d.code, d.message)

    state.n_so_far += check_sampler(sampler, _N_WARMUP)
    logger.info(
        f"Estimating mean to tolerance max({params.abstol:g}, {params.reltol:g}|mu|) "
        f"with uncertainty {params.alpha:g}..."
    )

    # ---- Try-out ----
    y_try, t_try = _timed_draw(sampler, _N_TRY)
    state.record(_N_TRY, t_try)
    booster = _booster(t_try / _N_TRY)
    y_boost, t_boost = _timed_draw(sampler, _N_TRY * booster)
    state.record(_N_TRY * booster, t_boost)
    tryout_mean = float(np.mean(np.concatenate([y_try, y_boost])))
    logger.debug(f"Try-out: {t_try / _N_TRY:.3g} s per sample, booster {booster}")

    elapsed = time.perf_counter() - state.t_start
    if elapsed > _TRYOUT_SHARE * params.tbudget:
        state.warn(
            "tryout_budget_reached",
            "initial try costs more than 10 percent of time budget, stop try and return an answer without guarantee.",
        )
        return _finish(state, params, tryout_mean, ExitStatus.TRYOUT_TIME_EXCEEDED)

    t_sig_predicted = params.n_sig * cost_per_sample(state.trials)
    if t_sig_predicted > _VARIANCE_SHARE * (params.tbudget - elapsed):
        state.warn(
            "variance_time_budget_reached",
            "the estimated time using n_sig samples is bigger than half of the time budget, "
            "could not afford estimating variance, use all the time left to estimate the mean.",
        )
        state.nmax = estimate_sample_budget(
            params.tbudget, params.nbudget, state.trials, state.n_so_far, state.t_start
        )
        estimate = tryout_mean
        if state.nmax > 0:
            estimate, t_mu = _timed_mean(sampler, state.nmax, params.npcmax)
            state.record(state.nmax, t_mu)
        return _finish(state, params, estimate, ExitStatus.VARIANCE_TIME_EXCEEDED)

    state.nmax = estimate_sample_budget(
        params.tbudget, params.nbudget, state.trials, state.n_so_far, state.t_start
    )
    if params.n_sig > state.nmax:
        state.warn(
            "max_reached",
            f"the variance stage needs {params.n_sig} samples, which is more than the allowed maximum of "
            f"{state.nmax} samples. Just use the maximum sample budget.",
        )
        estimate = tryout_mean
        if state.nmax > 0:
            estimate, t_mu = _timed_mean(sampler, state.nmax, params.npcmax)
            state.record(state.nmax, t_mu)
        return _finish(state, params, estimate, ExitStatus.SAMPLE_BUDGET_EXCEEDED)

    # ---- Variance ----
    y_sig, t_sig = _timed_draw(sampler, params.n_sig)
    state.record(params.n_sig, t_sig)
    state.var = float(np.var(y_sig, ddof=1))
    sig0up = params.fudge * math.sqrt(state.var)
    fallback_mean = float(np.mean(y_sig))
    alpha_sig = params.alpha / 2
    alpha_i = (params.alpha - alpha_sig) / (2 * (1 - alpha_sig))
    state.kurtmax = kurtosis_upper_bound(params.n_sig, alpha_sig, params.fudge)
    state.tol.append(sig0up * tolerance_for_sample_size(params.n1, alpha_i, state.kurtmax))
    state.n.append(params.n1)
    logger.debug(f"Variance stage: var={state.var:.6g}, kurtmax={state.kurtmax:.6g}, tol1={state.tol[0]:.6g}")

    # ---- Refinement ----
    i = 1
    while True:
        state.tau = i
        state.nmax = estimate_sample_budget(
            params.tbudget, params.nbudget, state.trials, state.n_so_far, state.t_start
        )
        n_i = state.n[-1]
        if n_i > state.nmax:
            state.warn(
                "max_reached",
                f"tried to evaluate at {n_i} samples, which is more than the allowed maximum of "
                f"{state.nmax} samples. Just use the maximum sample budget.",
            )
            state.n[-1] = state.nmax
            estimate = state.hmu[-1] if state.hmu else fallback_mean
            if state.nmax > 0:
                estimate, t_mu = _timed_mean(sampler, state.nmax, params.npcmax)
                state.record(state.nmax, t_mu)
            return _finish(state, params, estimate, ExitStatus.SAMPLE_BUDGET_EXCEEDED)

        hmu_i, t_mu = _timed_mean(sampler, n_i, params.npcmax)
        state.record(n_i, t_mu)
        state.hmu.append(hmu_i)
        tol_i = state.tol[-1]
        tol_lo = combined_tolerance(params.abstol, params.reltol, hmu_i - tol_i)
        tol_hi = combined_tolerance(params.abstol, params.reltol, hmu_i + tol_i)
        deltaplus = (tol_lo + tol_hi) / 2
        logger.debug(f"Iteration {i}: n={n_i}, hmu={hmu_i:.8g}, tol={tol_i:.4g}, deltaplus={deltaplus:.4g}")
        if deltaplus >= tol_i:
            deltaminus = (tol_lo - tol_hi) / 2
            return _finish(state, params, hmu_i + deltaminus, ExitStatus.SUCCESS)

        i += 1
        tol_next = max(min(deltaplus * _DELTA_T, _DELTA_H * tol_i), _DELTA * tol_i)
        alpha_i = (params.alpha - alpha_sig) / (1 - alpha_sig) * 2.0 ** (-i)
        state.tol.append(tol_next)
        state.n.append(sample_size_for_tolerance(tol_next / sig0up, alpha_i, state.kurtmax))


def mean_mc_clt(sampler: Sampler, params: Any = None, **overrides: Any) -> MeanMCCLTResult:
    r"""
    Estimate a mean with a Central Limit Theorem sample size.

    The variance is estimated from ``n_sig`` samples and the mean from

    .. math::
       n_\mu = \max\!\left(1, \left\lceil \left(
       \frac{z_{1-\alpha/2}\,\mathfrak{C}\hat\sigma}{\varepsilon_a}\right)^2 \right\rceil\right)

    fresh samples. This is a heuristic: it carries no finite-sample guarantee.
    The critical value is the two-sided :math:`z_{1-\alpha/2}`, so ``alpha``
    means the same total uncertainty as in :func:`mean_mc_g`, rather than the
    one-sided :math:`z_{1-\alpha}` of the classical formulation.

    Parameters
    ----------
    sampler : callable
        ``sampler(n)`` returning ``n`` i.i.d. instances of :math:`Y`.
    params : MeanMCCLTParams, mapping, or object, optional
        Configuration; see :class:`~gailpy.params.MeanMCCLTParams`.
    **overrides :
        Individual fields applied on top of ``params``.

    Returns
    -------
    MeanMCCLTResult

    Raises
    ------
    SampleSizeCeilingError
        If :math:`n_\mu` reaches ``n_max``.
    ContractError
        If ``sampler`` violates the sampler contract.
    """
    t0 = time.perf_counter()
    params, diags = _ensure_params(params, MeanMCCLTParams, overrides).validated()
    for d in diags:
        logger.warning(d.message)
    y_sig = draw(sampler, params.n_sig)
    var = float(np.var(y_sig, ddof=1))
    sig0up = params.fudge * math.sqrt(var)
    n_mu = max(1, math.ceil((z_crit(params.alpha) * sig0up / params.abstol) ** 2))
    if n_mu >= params.n_max:
        raise SampleSizeCeilingError(n_mu, params.n_max)
    logger.info(f"Computing mean of {n_mu} samples...")
    estimate = eval_mean(sampler, n_mu)
    return MeanMCCLTResult(
        estimate=estimate,
        n_total=params.n_sig + n_mu,
        n_mu=n_mu,
        var=var,
        time=time.perf_counter() - t0,
        params=params,
        diagnostics=tuple(diags),
    )


class _BernoulliSampler:
    """Wrap a sampler and reject values outside ``{0, 1}``."""

    def __init__(self, sampler: Sampler):
        self.sampler = sampler

    def __call__(self, n: int) -> np.ndarray:
        values = draw(self.sampler, n)
        if not np.all((values == 0.0) | (values == 1.0)):
            raise ContractError("sampler for a Bernoulli random variable must return only 0 or 1")
        return values


def mean_mc_ber_g(sampler: Sampler, params: Any = None, **overrides: Any) -> MeanMCBerResult:
    r"""
    Estimate the success probability of a Bernoulli variable at fixed cost.

    The sample size follows from Hoeffding's inequality,
    :math:`n = \lceil \log(2/\alpha) / (2\varepsilon_a^2) \rceil`, which yields

    .. math:: \Pr(|p - \hat p| \le \varepsilon_a) \ge 1 - \alpha

    with a cost known in advance.

    Parameters
    ----------
    sampler : callable
        ``sampler(n)`` returning ``n`` values in ``{0, 1}``.
    params : MeanMCBerParams, mapping, or object, optional
        Configuration; see :class:`~gailpy.params.MeanMCBerParams`.
    **overrides :
        Individual fields applied on top of ``params``.

    Returns
    -------
    MeanMCBerResult
        If the Hoeffding sample size exceeds ``nmax`` only ``nmax`` samples
        are drawn and the status is ``SAMPLE_BUDGET_EXCEEDED``.

    Raises
    ------
    ContractError
        If ``sampler`` is not callable, returns the wrong number of values,
        or returns values other than 0 and 1.

    Examples
    --------
    >>> from gailpy.sampling import SeededSampler
    >>> y = SeededSampler(lambda rng, n: rng.random(n) < 1 / 9, seed=1)
    >>> mean_mc_ber_g(y, abstol=1e-2).n_total
    26492
    """
    t0 = time.perf_counter()
    params, diags = _ensure_params(params, MeanMCBerParams, overrides).validated()
    diagnostics = list(diags)
    for d in diags:
        logger.warning(d.message)
    check_sampler(sampler, _N_WARMUP)
    n_required = hoeffding_sample_size(params.abstol, params.alpha)
    n = n_required
    status = ExitStatus.SUCCESS
    if n_required > params.nmax:
        msg = (
            f"tried to evaluate at {n_required} samples, which is more than the allowed maximum of "
            f"{params.nmax} samples. Just use the maximum sample budget."
        )
        logger.warning(msg)
        diagnostics.append(Diagnostic("max_reached", msg))
        n = params.nmax
        status = ExitStatus.SAMPLE_BUDGET_EXCEEDED
    logger.info(f"Computing Bernoulli mean of {n} samples...")
    estimate = eval_mean(_BernoulliSampler(sampler), n, params.npcmax)
    return MeanMCBerResult(
        estimate=estimate,
        exit_status=status,
        n_total=n,
        n_required=n_required,
        time=time.perf_counter() - t0,
        params=params,
        diagnostics=tuple(diagnostics),
    )


__all__ = [
    "ExitStatus",
    "MeanMCResult",
    "MeanMCCLTResult",
    "MeanMCBerResult",
    "mean_mc_g",
    "mean_mc_clt",
    "mean_mc_ber_g",
]
