r"""
gailpy.errors
=============

Exception types raised by the guaranteed algorithms.

Out-of-range parameters are never raised: they are corrected and reported as
:class:`~gailpy.params.Diagnostic` entries. Budget exhaustion is reported
through an exit status on the result. The exceptions below cover the
remaining failures that abort a call.
"""

from __future__ import annotations


class GailError(Exception):
    """Base class for all errors raised by :mod:`gailpy`."""


class NumericConvergenceError(GailError, RuntimeError):
    r"""
    A root finder could not bracket or converge on a solution.

    Raised by the Berry-Esseen solvers in :mod:`gailpy.bounds`.
    """


class ContractError(GailError, ValueError):
    r"""
    A user callable returned output of the wrong shape or kind.

    Samplers must return exactly ``n`` real values for a request of ``n``;
    functions passed to :func:`~gailpy.funappx.funappx_g` must return one
    finite value per abscissa.
    """


class SampleSizeCeilingError(GailError):
    r"""
    The sample size required by :func:`~gailpy.meanmc.mean_mc_clt` reaches
    its absolute ceiling.

    Attributes
    ----------
    n_required : int
        Sample size the CLT rule asked for.
    n_max : int
        Ceiling that was reached.
    """

    def __init__(self, n_required: int, n_max: int):
        self.n_required = int(n_required)
        self.n_max = int(n_max)
        super().__init__(f"nmu = {self.n_required}, which is not below the ceiling of {self.n_max} samples")


__all__ = [
    "GailError",
    "NumericConvergenceError",
    "ContractError",
    "SampleSizeCeilingError",
]
