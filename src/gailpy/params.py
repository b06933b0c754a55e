r"""
gailpy.params
=============

Parameter records for the guaranteed algorithms.

Each estimator takes one frozen record with documented defaults:

- :class:`MeanMCParams` for :func:`~gailpy.meanmc.mean_mc_g`.
- :class:`MeanMCCLTParams` for :func:`~gailpy.meanmc.mean_mc_clt`.
- :class:`MeanMCBerParams` for :func:`~gailpy.meanmc.mean_mc_ber_g`.
- :class:`FunAppxParams` for :func:`~gailpy.funappx.funappx_g`.

Out-of-range values never abort a call. :meth:`validated` returns a corrected
copy together with a list of :class:`Diagnostic` entries describing every
correction; the estimators attach that list to their result.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    r"""
    A correction or warning produced while running an algorithm.

    Attributes
    ----------
    code : str
        Stable machine-readable identifier, e.g. ``"alpha_not_in_01"``.
    message : str
        Human-readable explanation.
    """

    code: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


def _finite(value: Any) -> bool:
    return math.isfinite(float(value))


def _is_posint(value: Any) -> bool:
    return _finite(value) and float(value) > 0 and float(value).is_integer()


def _check_posint(value, default: int, name: str, diags: list[Diagnostic], minimum: int = 1) -> int:
    if _is_posint(value) and value >= minimum:
        return int(value)
    fixed = math.ceil(abs(float(value))) if _finite(value) else 0
    if fixed < 1:
        fixed = default
    fixed = max(fixed, minimum)
    diags.append(
        Diagnostic(
            f"{name}_not_posint",
            f"{name} should be a positive integer of at least {minimum}, got {value!r}; using {fixed}.",
        )
    )
    return fixed


def _check_abstol(value, default: float, diags: list[Diagnostic], allow_zero: bool = True) -> float:
    if not _finite(value):
        diags.append(Diagnostic("abstol_invalid", f"abstol must be finite, got {value!r}; using {default}."))
        return default
    value = float(value)
    if value < 0:
        diags.append(
            Diagnostic(
                "abstol_negative",
                "Absolute error tolerance should be greater than 0, using the absolute value of the error tolerance.",
            )
        )
        value = abs(value)
    if value == 0 and not allow_zero:
        diags.append(Diagnostic("abstol_zero", f"abstol must be positive; using the default {default}."))
        value = default
    return value


def _check_alpha(value, default: float, diags: list[Diagnostic]) -> float:
    if _finite(value) and 0.0 < float(value) < 1.0:
        return float(value)
    diags.append(
        Diagnostic("alpha_not_in_01", f"the uncertainty should be between 0 and 1, got {value!r}; using {default}.")
    )
    return default


class _Params:
    """Behaviour shared by all parameter records."""

    def with_overrides(self, **changes):
        r"""
        Return a copy with selected fields replaced.

        Parameters
        ----------
        **changes :
            Field overrides passed to :func:`dataclasses.replace`.
        """
        return replace(self, **changes)


@dataclass(frozen=True)
class MeanMCParams(_Params):
    r"""
    Configuration of :func:`~gailpy.meanmc.mean_mc_g`.

    Attributes
    ----------
    abstol : float, default ``1e-2``
        Absolute error tolerance (``>= 0``).
    reltol : float, default ``1e-1``
        Relative error tolerance in :math:`[0, 1]`.
    alpha : float, default ``0.01``
        Uncertainty; the guarantee holds with probability :math:`1-\alpha`.
    fudge : float, default ``1.2``
        Standard deviation inflation factor (``> 1``).
    n_sig : int, default ``10_000``
        Sample size of the variance stage (``>= 10``).
    n1 : int, default ``10_000``
        Initial sample size of the mean stage.
    tbudget : float, default ``100.0``
        Time budget in seconds.
    nbudget : int, default ``1_000_000_000``
        Sample budget.
    npcmax : int, default ``1_000_000``
        Largest batch requested from the sampler at once.
    """

    abstol: float = 1e-2
    reltol: float = 1e-1
    alpha: float = 0.01
    fudge: float = 1.2
    n_sig: int = 10_000
    n1: int = 10_000
    tbudget: float = 100.0
    nbudget: int = 1_000_000_000
    npcmax: int = 1_000_000

    def validated(self) -> tuple["MeanMCParams", list[Diagnostic]]:
        r"""
        Correct out-of-range fields.

        Returns
        -------
        tuple
            ``(params, diagnostics)`` where ``params`` is internally consistent.
        """
        d = MeanMCParams()
        diags: list[Diagnostic] = []
        abstol = _check_abstol(self.abstol, d.abstol, diags)
        reltol = self.reltol
        if not (_finite(reltol) and 0.0 <= float(reltol) <= 1.0):
            diags.append(
                Diagnostic(
                    "reltol_not_in_01",
                    f"Relative error tolerance should be between 0 and 1, got {reltol!r}; using {d.reltol}.",
                )
            )
            reltol = d.reltol
        alpha = _check_alpha(self.alpha, d.alpha, diags)
        fudge = self.fudge
        if not (_finite(fudge) and float(fudge) > 1.0):
            diags.append(
                Diagnostic("fudge_le_1", f"the fudge factor should be larger than 1, got {fudge!r}; using {d.fudge}.")
            )
            fudge = d.fudge
        tbudget = self.tbudget
        if not (_finite(tbudget) and float(tbudget) > 0.0):
            fixed = abs(float(tbudget)) if _finite(tbudget) and tbudget != 0 else d.tbudget
            diags.append(
                Diagnostic("tbudget_not_positive", f"Time budget should be bigger than 0, got {tbudget!r}; using {fixed}.")
            )
            tbudget = fixed
        out = replace(
            self,
            abstol=abstol,
            reltol=float(reltol),
            alpha=alpha,
            fudge=float(fudge),
            n_sig=_check_posint(self.n_sig, d.n_sig, "n_sig", diags, minimum=10),
            n1=_check_posint(self.n1, d.n1, "n1", diags),
            tbudget=float(tbudget),
            nbudget=_check_posint(self.nbudget, d.nbudget, "nbudget", diags),
            npcmax=_check_posint(self.npcmax, d.npcmax, "npcmax", diags),
        )
        return out, diags


@dataclass(frozen=True)
class MeanMCCLTParams(_Params):
    r"""
    Configuration of :func:`~gailpy.meanmc.mean_mc_clt`.

    Attributes
    ----------
    abstol : float, default ``1e-2``
        Absolute error tolerance (``> 0``).
    alpha : float, default ``0.01``
        Uncertainty.
    n_sig : int, default ``100``
        Samples used to estimate the variance.
    fudge : float, default ``1.2``
        Standard deviation inflation factor.
    n_max : int, default ``100_000_000``
        Ceiling on the sample size of the mean stage.
    """

    abstol: float = 1e-2
    alpha: float = 0.01
    n_sig: int = 100
    fudge: float = 1.2
    n_max: int = 100_000_000

    def validated(self) -> tuple["MeanMCCLTParams", list[Diagnostic]]:
        d = MeanMCCLTParams()
        diags: list[Diagnostic] = []
        fudge = self.fudge
        if not (_finite(fudge) and float(fudge) > 1.0):
            diags.append(
                Diagnostic("fudge_le_1", f"the fudge factor should be larger than 1, got {fudge!r}; using {d.fudge}.")
            )
            fudge = d.fudge
        out = replace(
            self,
            abstol=_check_abstol(self.abstol, d.abstol, diags, allow_zero=False),
            alpha=_check_alpha(self.alpha, d.alpha, diags),
            n_sig=_check_posint(self.n_sig, d.n_sig, "n_sig", diags, minimum=2),
            fudge=float(fudge),
            n_max=_check_posint(self.n_max, d.n_max, "n_max", diags),
        )
        return out, diags


@dataclass(frozen=True)
class MeanMCBerParams(_Params):
    r"""
    Configuration of :func:`~gailpy.meanmc.mean_mc_ber_g`.

    Attributes
    ----------
    abstol : float, default ``1e-2``
        Absolute error tolerance (``> 0``).
    alpha : float, default ``0.01``
        Uncertainty.
    nmax : int, default ``1_000_000_000``
        Sample budget.
    npcmax : int, default ``1_000_000``
        Largest batch requested from the sampler at once.
    """

    abstol: float = 1e-2
    alpha: float = 0.01
    nmax: int = 1_000_000_000
    npcmax: int = 1_000_000

    def validated(self) -> tuple["MeanMCBerParams", list[Diagnostic]]:
        d = MeanMCBerParams()
        diags: list[Diagnostic] = []
        out = replace(
            self,
            abstol=_check_abstol(self.abstol, d.abstol, diags, allow_zero=False),
            alpha=_check_alpha(self.alpha, d.alpha, diags),
            nmax=_check_posint(self.nmax, d.nmax, "nmax", diags),
            npcmax=_check_posint(self.npcmax, d.npcmax, "npcmax", diags),
        )
        return out, diags


@dataclass(frozen=True)
class FunAppxParams(_Params):
    r"""
    Configuration of :func:`~gailpy.funappx.funappx_g`.

    Attributes
    ----------
    a, b : float, default ``0.0``, ``1.0``
        Interval end points, ``a < b``.
    abstol : float, default ``1e-6``
        Absolute error tolerance (``> 0``).
    nlo, nhi : int, default ``10``, ``100``
        Bounds on the initial number of points, ``3 <= nlo <= nhi``.
    nmax : int, default ``10_000_000``
        Cost budget (number of function values).
    """

    a: float = 0.0
    b: float = 1.0
    abstol: float = 1e-6
    nlo: int = 10
    nhi: int = 100
    nmax: int = 10_000_000

    def validated(self) -> tuple["FunAppxParams", list[Diagnostic]]:
        d = FunAppxParams()
        diags: list[Diagnostic] = []
        a, b = float(self.a), float(self.b)
        if not (math.isfinite(a) and math.isfinite(b)):
            diags.append(Diagnostic("interval_not_finite", f"[a,b] must be finite; using [{d.a}, {d.b}]."))
            a, b = d.a, d.b
        if b < a:
            diags.append(Diagnostic("b_lt_a", "b is smaller than a; switching a and b."))
            a, b = b, a
        elif b == a:
            diags.append(Diagnostic("a_eq_b", f"a and b must differ; using b = a + 1 = {a + 1.0}."))
            b = a + 1.0
        abstol = _check_abstol(self.abstol, d.abstol, diags, allow_zero=False)
        nlo = _check_posint(self.nlo, d.nlo, "nlo", diags)
        nhi = _check_posint(self.nhi, d.nhi, "nhi", diags)
        if nlo > nhi:
            diags.append(Diagnostic("nlo_gt_nhi", "nlo is larger than nhi; switching nlo and nhi."))
            nlo, nhi = nhi, nlo
        if nlo < 3:
            diags.append(Diagnostic("nlo_lt_3", "at least 3 initial points are needed; using nlo = 3."))
            nlo = 3
            nhi = max(nhi, nlo)
        nmax = _check_posint(self.nmax, d.nmax, "nmax", diags)
        if nmax < nhi:
            diags.append(
                Diagnostic("nmax_lt_nhi", f"the cost budget should be at least nhi; using nmax = {nhi}.")
            )
            nmax = nhi
        out = replace(self, a=a, b=b, abstol=abstol, nlo=nlo, nhi=nhi, nmax=nmax)
        return out, diags


P = TypeVar("P", bound=_Params)

# camelCase spellings accepted for compatibility
_ALIASES = {"nSig": "n_sig", "nMax": "n_max"}


def _ensure_params(params: Any, cls: type[P], overrides: Optional[Mapping[str, Any]] = None) -> P:
    r"""
    Normalize arbitrary parameter inputs into a ``cls`` record.

    Parameters
    ----------
    params : Any
        A ``cls`` instance, a mapping, an object with attributes, or ``None``.
        Keys that are not fields of ``cls`` are ignored.
    cls : type
        Target parameter record.
    overrides : mapping, optional
        Keyword overrides applied last. Unknown names raise :class:`TypeError`.

    Returns
    -------
    cls
        Unvalidated record; call :meth:`validated` on it.

    Raises
    ------
    TypeError
        If ``params`` cannot be interpreted as configuration data, or an
        override names an unknown field.
    """
    if params is None:
        base = cls()
    elif isinstance(params, cls):
        base = params
    else:
        if isinstance(params, Mapping):
            data = dict(params)
        else:
            try:
                data = dict(vars(params))
            except TypeError:
                raise TypeError(f"params must be a {cls.__name__}, mapping, None, or an object with attributes")
        names = {f.name for f in fields(cls)}
        data = {_ALIASES.get(k, k): v for k, v in data.items()}
        unknown = set(data) - names
        if unknown:
            logger.debug(f"Ignoring unknown parameters for {cls.__name__}: {sorted(unknown)}")
        base = cls(**{k: v for k, v in data.items() if k in names})
    if overrides:
        base = replace(base, **{_ALIASES.get(k, k): v for k, v in overrides.items()})
    return base


__all__ = [
    "Diagnostic",
    "MeanMCParams",
    "MeanMCCLTParams",
    "MeanMCBerParams",
    "FunAppxParams",
]
