"""gailpy package public API."""

from .bounds import (
    hoeffding_sample_size,
    kurtosis_upper_bound,
    sample_size_for_tolerance,
    tolerance_for_sample_size,
)
from .budget import estimate_sample_budget
from .errors import (
    ContractError,
    GailError,
    NumericConvergenceError,
    SampleSizeCeilingError,
)
from .funappx import FunAppxResult, PiecewiseLinear, funappx_g
from .meanmc import (
    ExitStatus,
    MeanMCBerResult,
    MeanMCCLTResult,
    MeanMCResult,
    mean_mc_ber_g,
    mean_mc_clt,
    mean_mc_g,
)
from .params import (
    Diagnostic,
    FunAppxParams,
    MeanMCBerParams,
    MeanMCCLTParams,
    MeanMCParams,
)
from .sampling import SeededSampler, eval_mean
from .tolerance import ToleranceMode, combined_tolerance

__all__ = [
    "mean_mc_g",
    "mean_mc_clt",
    "mean_mc_ber_g",
    "funappx_g",
    "MeanMCResult",
    "MeanMCCLTResult",
    "MeanMCBerResult",
    "FunAppxResult",
    "PiecewiseLinear",
    "ExitStatus",
    "MeanMCParams",
    "MeanMCCLTParams",
    "MeanMCBerParams",
    "FunAppxParams",
    "Diagnostic",
    "SeededSampler",
    "eval_mean",
    "combined_tolerance",
    "ToleranceMode",
    "estimate_sample_budget",
    "sample_size_for_tolerance",
    "tolerance_for_sample_size",
    "kurtosis_upper_bound",
    "hoeffding_sample_size",
    "GailError",
    "NumericConvergenceError",
    "ContractError",
    "SampleSizeCeilingError",
]

__version__ = "0.1.0"
