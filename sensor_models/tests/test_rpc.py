"""
Tests for the RPC sensor model.

These tests verify the correctness of:
    - The 20-term polynomial basis and its ordering
    - Forward projection (LLA/ECEF to line/sample)
    - Iterative inverse projection and its failure modes
    - Parsing GDAL-style RPC metadata
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from sensor_models.rpc import (
    RpcCoefficients,
    RpcModel,
    rpc_basis,
    eval_polynomial,
)
from sensor_models.transforms import LlaCoord, lla_to_ecef
from sensor_models.errors import InvalidRpcError, NoConvergenceError, ProjectionError


def make_rpc_coefficients(**overrides) -> RpcCoefficients:
    """Linear RPC: line follows latitude, sample follows longitude."""
    line_num = [0.0] * 20
    line_den = [0.0] * 20
    samp_num = [0.0] * 20
    samp_den = [0.0] * 20
    line_num[1] = 1.0  # L term
    line_den[0] = 1.0
    samp_num[2] = 1.0  # P term
    samp_den[0] = 1.0

    params = dict(
        line_num_coeff=line_num,
        line_den_coeff=line_den,
        samp_num_coeff=samp_num,
        samp_den_coeff=samp_den,
        lat_off=39.0,
        lat_scale=1.0,
        lon_off=-77.0,
        lon_scale=1.0,
        height_off=100.0,
        height_scale=500.0,
        line_off=5000.0,
        line_scale=5000.0,
        samp_off=5000.0,
        samp_scale=5000.0,
    )
    params.update(overrides)
    return RpcCoefficients(**params)


@pytest.fixture
def rpc():
    return RpcModel(make_rpc_coefficients())


class TestPolynomial:
    """Tests for the RPC monomial basis."""

    def test_basis_order(self):
        """Basis order: 1, L, P, H, LP, LH, PH, L², P², H², PLH, L³, LP², LH², L²P, P³, PH², L²H, P²H, H³."""
        p, l, h = 2.0, 3.0, 5.0
        expected = (1, 3, 2, 5, 6, 15, 10, 9, 4, 25, 30, 27, 12, 75, 18, 8, 50, 45, 20, 125)

        assert rpc_basis(p, l, h) == tuple(float(v) for v in expected)

    def test_constant_term_only_at_origin(self):
        coeffs = [float(i) for i in range(1, 21)]
        assert eval_polynomial(coeffs, 0.0, 0.0, 0.0) == 1.0

    def test_single_term_selects_monomial(self):
        """Coefficient i multiplies the i-th basis term."""
        p, l, h = 0.5, -0.25, 2.0
        basis = rpc_basis(p, l, h)

        for i in range(20):
            coeffs = [0.0] * 20
            coeffs[i] = 1.0
            assert eval_polynomial(coeffs, p, l, h) == basis[i]

    def test_matches_dot_product(self):
        rng = np.random.default_rng(7)
        coeffs = rng.normal(size=20)
        p, l, h = 0.3, -0.7, 0.1

        assert_allclose(
            eval_polynomial(coeffs, p, l, h),
            np.dot(coeffs, rpc_basis(p, l, h)),
            rtol=1e-12,
        )


class TestForwardProjection:
    """Tests for ground-to-image projection."""

    def test_offsets_map_to_image_offsets(self, rpc):
        """The normalization center projects to (LINE_OFF, SAMP_OFF)."""
        line, samp = rpc.lla_to_image(LlaCoord(39.0, -77.0, 100.0))

        assert line == 5000.0
        assert samp == 5000.0

    def test_linear_model(self, rpc):
        line, samp = rpc.lla_to_image(LlaCoord(39.1, -76.9, 100.0))

        assert_allclose(line, 5500.0, atol=1e-6)
        assert_allclose(samp, 5500.0, atol=1e-6)

    def test_height_ignored_by_linear_model(self, rpc):
        low = rpc.lla_to_image(LlaCoord(38.95, -77.02, 0.0))
        high = rpc.lla_to_image(LlaCoord(38.95, -77.02, 1000.0))

        assert_allclose(low, high, atol=1e-9)

    def test_height_term(self):
        """A height coefficient shifts the line with elevation."""
        line_num = [0.0] * 20
        line_num[1] = 1.0
        line_num[3] = 0.01
        rpc = RpcModel(make_rpc_coefficients(line_num_coeff=line_num))

        line_low, _ = rpc.lla_to_image(LlaCoord(39.0, -77.0, 100.0))
        line_high, _ = rpc.lla_to_image(LlaCoord(39.0, -77.0, 600.0))

        # H goes from 0 to 1: 0.01 * LINE_SCALE
        assert_allclose(line_high - line_low, 50.0, atol=1e-9)

    def test_ground_to_image(self, rpc):
        ecef = lla_to_ecef(LlaCoord(39.0, -77.0, 100.0))
        line, samp = rpc.ground_to_image(ecef)

        assert_allclose([line, samp], [5000.0, 5000.0], atol=1e-3)

    def test_ground_to_image_matches_lla(self, rpc):
        lla = LlaCoord(39.2, -76.85, 250.0)

        assert_allclose(
            rpc.ground_to_image(lla_to_ecef(lla)),
            rpc.lla_to_image(lla),
            atol=1e-4,
        )

    def test_zero_denominator(self):
        """All-zero denominators make the RPC invalid."""
        rpc = RpcModel(make_rpc_coefficients(
            line_den_coeff=[0.0] * 20,
            samp_den_coeff=[0.0] * 20,
        ))

        with pytest.raises(InvalidRpcError):
            rpc.lla_to_image(LlaCoord(39.0, -77.0, 100.0))

    def test_zero_sample_denominator_only(self):
        rpc = RpcModel(make_rpc_coefficients(samp_den_coeff=[0.0] * 20))

        with pytest.raises(ProjectionError):
            rpc.lla_to_image(LlaCoord(39.0, -77.0, 100.0))


class TestInverseProjection:
    """Tests for image-to-ground projection."""

    def test_round_trip(self, rpc):
        lla = LlaCoord(39.1, -76.9, 100.0)
        line, samp = rpc.lla_to_image(lla)
        result = rpc.image_to_lla(line, samp, 100.0)

        assert abs(result.lat - lla.lat) < 1e-3
        assert abs(result.lon - lla.lon) < 1e-3

    def test_multiple_points(self, rpc):
        points = [
            LlaCoord(38.8, -77.1, 100.0),
            LlaCoord(39.0, -77.0, 100.0),
            LlaCoord(39.2, -76.9, 100.0),
        ]

        for lla in points:
            line, samp = rpc.lla_to_image(lla)
            result = rpc.image_to_lla(line, samp, lla.alt)

            assert abs(result.lat - lla.lat) < 1e-3
            assert abs(result.lon - lla.lon) < 1e-3

    def test_different_heights(self, rpc):
        for height in (0.0, 100.0, 500.0, 1000.0):
            lla = LlaCoord(39.0, -77.0, height)
            line, samp = rpc.lla_to_image(lla)
            result = rpc.image_to_lla(line, samp, height)

            assert abs(result.lat - lla.lat) < 1e-3
            assert abs(result.lon - lla.lon) < 1e-3
            assert result.alt == height

    def test_round_trip_nonlinear(self):
        """Round trip with cross terms and a non-constant denominator."""
        line_num = [0.0] * 20
        line_num[1] = 1.0
        line_num[4] = 0.05
        line_num[7] = -0.02
        line_den = [0.0] * 20
        line_den[0] = 1.0
        line_den[2] = 0.01
        samp_num = [0.0] * 20
        samp_num[2] = 1.0
        samp_num[3] = 0.02
        samp_num[8] = 0.03
        rpc = RpcModel(make_rpc_coefficients(
            line_num_coeff=line_num,
            line_den_coeff=line_den,
            samp_num_coeff=samp_num,
        ))

        for lla in (LlaCoord(39.3, -76.8, 400.0), LlaCoord(38.7, -77.25, -50.0)):
            line, samp = rpc.lla_to_image(lla)
            result = rpc.image_to_lla(line, samp, lla.alt)

            assert_allclose([result.lat, result.lon], [lla.lat, lla.lon], atol=1e-6)

    def test_image_to_ground(self, rpc):
        ecef = rpc.image_to_ground(5000.0, 5000.0, 100.0)

        magnitude = np.linalg.norm(ecef)
        assert 6_000_000.0 < magnitude < 7_000_000.0
        assert_allclose(ecef, lla_to_ecef(LlaCoord(39.0, -77.0, 100.0)), atol=1e-3)

    def test_singular_jacobian(self):
        """If neither output depends on longitude the solver stops at once."""
        samp_num = [0.0] * 20
        samp_num[1] = 1.0  # sample follows latitude too
        rpc = RpcModel(make_rpc_coefficients(samp_num_coeff=samp_num))

        with pytest.raises(NoConvergenceError) as exc_info:
            rpc.image_to_lla(5500.0, 5500.0, 100.0)

        assert exc_info.value.iterations == 0

    def test_exhausted_budget(self):
        """A line function with no root exhausts all 20 iterations."""
        line_num = [0.0] * 20
        line_num[0] = 1.0
        line_num[7] = 1.0  # 1 + L² never reaches zero
        rpc = RpcModel(make_rpc_coefficients(line_num_coeff=line_num))

        with pytest.raises(NoConvergenceError) as exc_info:
            rpc.image_to_lla(5000.0, 5000.0, 100.0)

        assert exc_info.value.iterations == 20

    def test_invalid_rpc_propagates(self):
        rpc = RpcModel(make_rpc_coefficients(line_den_coeff=[0.0] * 20))

        with pytest.raises(InvalidRpcError):
            rpc.image_to_lla(5000.0, 5000.0, 100.0)


class TestCoefficients:
    """Tests for the RPC parameter block."""

    @pytest.fixture
    def metadata(self):
        """GDAL RPC domain with indexed coefficient keys, values as strings."""
        coeffs = make_rpc_coefficients()
        data = {
            'LAT_OFF': '39.0', 'LAT_SCALE': '1.0',
            'LONG_OFF': '-77.0', 'LONG_SCALE': '1.0',
            'HEIGHT_OFF': '100.0', 'HEIGHT_SCALE': '500.0',
            'LINE_OFF': '5000.0', 'LINE_SCALE': '5000.0',
            'SAMP_OFF': '5000.0', 'SAMP_SCALE': '5000.0',
        }
        for prefix, values in [
            ('LINE_NUM_COEFF', coeffs.line_num_coeff),
            ('LINE_DEN_COEFF', coeffs.line_den_coeff),
            ('SAMP_NUM_COEFF', coeffs.samp_num_coeff),
            ('SAMP_DEN_COEFF', coeffs.samp_den_coeff),
        ]:
            for i, value in enumerate(values, start=1):
                data[f"{prefix}_{i}"] = f" {value!r} "
        return data

    def test_coefficient_access(self, rpc):
        coeffs = make_rpc_coefficients()

        assert rpc.coefficients.lat_off == coeffs.lat_off
        assert rpc.coefficients.lon_off == coeffs.lon_off
        assert rpc.coefficients.height_off == coeffs.height_off

    def test_from_indexed_keys(self, metadata):
        assert RpcCoefficients.from_gdal_metadata(metadata) == make_rpc_coefficients()

    def test_from_space_separated_keys(self, metadata):
        coeffs = make_rpc_coefficients()
        for prefix in ('LINE_NUM_COEFF', 'LINE_DEN_COEFF', 'SAMP_NUM_COEFF', 'SAMP_DEN_COEFF'):
            for i in range(1, 21):
                del metadata[f"{prefix}_{i}"]
        metadata['LINE_NUM_COEFF'] = ' '.join(str(v) for v in coeffs.line_num_coeff)
        metadata['LINE_DEN_COEFF'] = ' '.join(str(v) for v in coeffs.line_den_coeff)
        metadata['SAMP_NUM_COEFF'] = ' '.join(str(v) for v in coeffs.samp_num_coeff)
        metadata['SAMP_DEN_COEFF'] = ' '.join(str(v) for v in coeffs.samp_den_coeff)

        assert RpcCoefficients.from_gdal_metadata(metadata) == coeffs

    def test_model_from_metadata(self, metadata):
        rpc = RpcModel.from_gdal_metadata(metadata)
        line, samp = rpc.lla_to_image(LlaCoord(39.1, -76.9, 100.0))

        assert_allclose([line, samp], [5500.0, 5500.0], atol=1e-6)

    def test_to_gdal_metadata_round_trip(self):
        coeffs = make_rpc_coefficients(lat_off=12.5, samp_scale=1234.0)
        data = coeffs.to_gdal_metadata()

        assert data['LONG_OFF'] == -77.0
        assert len(data['SAMP_NUM_COEFF']) == 20
        assert RpcCoefficients.from_gdal_metadata(data) == coeffs

    def test_missing_parameter(self, metadata):
        del metadata['LAT_OFF']

        with pytest.raises(ValueError, match="Missing RPC parameter: LAT_OFF"):
            RpcCoefficients.from_gdal_metadata(metadata)

    def test_missing_coefficient(self, metadata):
        del metadata['SAMP_DEN_COEFF_20']

        with pytest.raises(ValueError, match="Missing RPC parameter: SAMP_DEN_COEFF_20"):
            RpcCoefficients.from_gdal_metadata(metadata)

    def test_unparseable_parameter(self, metadata):
        metadata['LINE_SCALE'] = 'not-a-number'

        with pytest.raises(ValueError, match="Failed to parse RPC parameter: LINE_SCALE"):
            RpcCoefficients.from_gdal_metadata(metadata)

    def test_scalar_coefficient_value(self, metadata):
        """A single number where 20 coefficients belong is a parse error."""
        metadata['LINE_NUM_COEFF'] = 1.0

        with pytest.raises(ValueError, match="Failed to parse RPC parameter: LINE_NUM_COEFF"):
            RpcCoefficients.from_gdal_metadata(metadata)

    def test_mapping_coefficient_value(self, metadata):
        metadata['SAMP_DEN_COEFF'] = {'a': 1.0}

        with pytest.raises(ValueError, match="Failed to parse RPC parameter: SAMP_DEN_COEFF"):
            RpcCoefficients.from_gdal_metadata(metadata)

    def test_scalars_stored_as_float(self):
        """numpy scalars are converted so the block serializes as plain YAML."""
        coeffs = make_rpc_coefficients(lat_off=np.float64(39.0), line_scale=5000)

        assert type(coeffs.lat_off) is float
        assert type(coeffs.line_scale) is float
        assert coeffs == make_rpc_coefficients()

    def test_wrong_coefficient_count(self):
        with pytest.raises(ValueError):
            make_rpc_coefficients(line_num_coeff=[0.0] * 19)

    def test_zero_normalization_scale(self):
        with pytest.raises(ValueError):
            make_rpc_coefficients(lat_scale=0.0)

    def test_immutable(self):
        coeffs = make_rpc_coefficients()
        with pytest.raises(AttributeError):
            coeffs.lat_off = 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
