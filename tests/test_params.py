from types import SimpleNamespace

import pytest

from gailpy.params import (
    Diagnostic,
    FunAppxParams,
    MeanMCBerParams,
    MeanMCCLTParams,
    MeanMCParams,
    _ensure_params,
)


def _codes(diags):
    return {d.code for d in diags}


class TestMeanMCParams:
    """Test validation of the adaptive estimator parameters"""

    def test_defaults_are_valid(self):
        params, diags = MeanMCParams().validated()
        assert diags == []
        assert params == MeanMCParams()

    def test_with_overrides(self):
        params = MeanMCParams().with_overrides(abstol=1e-3, reltol=0)
        assert params.abstol == 1e-3
        assert params.reltol == 0
        assert params.alpha == MeanMCParams().alpha

    def test_negative_abstol_uses_absolute_value(self):
        params, diags = MeanMCParams(abstol=-1e-3).validated()
        assert params.abstol == 1e-3
        assert "abstol_negative" in _codes(diags)

    @pytest.mark.parametrize("reltol", [-0.1, 1.5, float("nan")])
    def test_reltol_out_of_range(self, reltol):
        params, diags = MeanMCParams(reltol=reltol).validated()
        assert params.reltol == MeanMCParams().reltol
        assert "reltol_not_in_01" in _codes(diags)

    @pytest.mark.parametrize("alpha", [0.0, 1.0, -0.2, 3.0])
    def test_alpha_out_of_range(self, alpha):
        params, diags = MeanMCParams(alpha=alpha).validated()
        assert params.alpha == 0.01
        assert "alpha_not_in_01" in _codes(diags)

    @pytest.mark.parametrize("fudge", [1.0, 0.5, -2.0])
    def test_fudge_not_above_one(self, fudge):
        params, diags = MeanMCParams(fudge=fudge).validated()
        assert params.fudge == 1.2
        assert "fudge_le_1" in _codes(diags)

    def test_non_integer_sizes_are_ceiled(self):
        params, diags = MeanMCParams(n_sig=-1234.5, n1=99.2, nbudget=1e6 + 0.5).validated()
        assert params.n_sig == 1235
        assert params.n1 == 100
        assert params.nbudget == 1_000_001
        assert {"n_sig_not_posint", "n1_not_posint", "nbudget_not_posint"} <= _codes(diags)

    def test_small_n_sig_is_raised(self):
        params, diags = MeanMCParams(n_sig=3).validated()
        assert params.n_sig == 10
        assert "n_sig_not_posint" in _codes(diags)

    def test_zero_sizes_fall_back_to_defaults(self):
        params, _ = MeanMCParams(n1=0, nbudget=0).validated()
        assert params.n1 == MeanMCParams().n1
        assert params.nbudget == MeanMCParams().nbudget

    @pytest.mark.parametrize(("tbudget", "expected"), [(-5.0, 5.0), (0.0, 100.0)])
    def test_tbudget_not_positive(self, tbudget, expected):
        params, diags = MeanMCParams(tbudget=tbudget).validated()
        assert params.tbudget == expected
        assert "tbudget_not_positive" in _codes(diags)

    def test_integer_fields_become_int(self):
        params, diags = MeanMCParams(n_sig=1e3, n1=2e4).validated()
        assert diags == []
        assert isinstance(params.n_sig, int) and params.n_sig == 1000
        assert isinstance(params.n1, int) and params.n1 == 20000

    def test_validation_does_not_mutate(self):
        raw = MeanMCParams(alpha=2.0)
        raw.validated()
        assert raw.alpha == 2.0


class TestOtherParams:
    """Test validation of the CLT, Bernoulli and approximation parameters"""

    def test_clt_zero_abstol(self):
        params, diags = MeanMCCLTParams(abstol=0.0).validated()
        assert params.abstol == 1e-2
        assert "abstol_zero" in _codes(diags)

    def test_bernoulli_nmax(self):
        params, diags = MeanMCBerParams(nmax=-10).validated()
        assert params.nmax == 10
        assert "nmax_not_posint" in _codes(diags)

    def test_funappx_swaps_interval(self):
        params, diags = FunAppxParams(a=3, b=-1).validated()
        assert (params.a, params.b) == (-1.0, 3.0)
        assert "b_lt_a" in _codes(diags)

    def test_funappx_degenerate_interval(self):
        params, diags = FunAppxParams(a=2, b=2).validated()
        assert (params.a, params.b) == (2.0, 3.0)
        assert "a_eq_b" in _codes(diags)

    def test_funappx_point_bounds(self):
        params, diags = FunAppxParams(nlo=50, nhi=2, nmax=20).validated()
        assert (params.nlo, params.nhi) == (3, 50)
        assert params.nmax == 50
        assert {"nlo_gt_nhi", "nlo_lt_3", "nmax_lt_nhi"} <= _codes(diags)


class TestEnsureParams:
    """Test normalization of flexible parameter inputs"""

    def test_none_gives_defaults(self):
        assert _ensure_params(None, MeanMCParams) == MeanMCParams()

    def test_instance_passthrough(self):
        p = MeanMCParams(abstol=0.5)
        assert _ensure_params(p, MeanMCParams) is p

    def test_mapping_with_aliases_and_unknown_keys(self):
        p = _ensure_params({"abstol": 0.5, "nSig": 300, "checked": 1}, MeanMCParams)
        assert p.abstol == 0.5
        assert p.n_sig == 300

    def test_object_with_attributes(self):
        p = _ensure_params(SimpleNamespace(a=-1, b=1), FunAppxParams)
        assert (p.a, p.b) == (-1, 1)

    def test_overrides_win(self):
        p = _ensure_params({"abstol": 0.5}, MeanMCParams, {"abstol": 0.25})
        assert p.abstol == 0.25

    def test_unknown_override_raises(self):
        with pytest.raises(TypeError):
            _ensure_params(None, MeanMCParams, {"bogus": 1})

    def test_uninterpretable_input(self):
        with pytest.raises(TypeError, match="MeanMCParams"):
            _ensure_params(42, MeanMCParams)


def test_diagnostic_str():
    assert str(Diagnostic("code", "message")) == "[code] message"
