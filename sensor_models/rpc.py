"""
Rational Polynomial Coefficient (RPC) sensor model.

Image line and sample are ratios of two cubic polynomials in normalized
ground coordinates:

    P = (lon - LONG_OFF) / LONG_SCALE
    L = (lat - LAT_OFF) / LAT_SCALE
    H = (alt - HEIGHT_OFF) / HEIGHT_SCALE

    line   = LINE_NUM(P, L, H) / LINE_DEN(P, L, H) * LINE_SCALE + LINE_OFF
    sample = SAMP_NUM(P, L, H) / SAMP_DEN(P, L, H) * SAMP_SCALE + SAMP_OFF

Each polynomial has 20 coefficients over the fixed monomial basis

    1, L, P, H, LP, LH, PH, L², P², H²,
    PLH, L³, LP², LH², L²P, P³, PH², L²H, P²H, H³

Coefficient index i is only meaningful relative to this order.

Metadata Keys (GDAL RPC domain):
    LINE_NUM_COEFF, LINE_DEN_COEFF, SAMP_NUM_COEFF, SAMP_DEN_COEFF
        (either one key holding 20 values, or KEY_1 .. KEY_20)
    LAT_OFF, LAT_SCALE, LONG_OFF, LONG_SCALE, HEIGHT_OFF, HEIGHT_SCALE,
    LINE_OFF, LINE_SCALE, SAMP_OFF, SAMP_SCALE
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple
import logging

from .errors import InvalidRpcError, NoConvergenceError
from .transforms import LlaCoord, ecef_to_lla, lla_to_ecef

logger = logging.getLogger(__name__)

RPC_TERMS = 20
MIN_DENOMINATOR = 1e-10

IMAGE_TO_LLA_MAX_ITERATIONS = 20
IMAGE_TO_LLA_TOL = 1e-6  # pixels
IMAGE_TO_LLA_STEP = 1e-7  # degrees
IMAGE_TO_LLA_SINGULAR_DET = 1e-10

_COEFF_KEYS = {
    'line_num_coeff': 'LINE_NUM_COEFF',
    'line_den_coeff': 'LINE_DEN_COEFF',
    'samp_num_coeff': 'SAMP_NUM_COEFF',
    'samp_den_coeff': 'SAMP_DEN_COEFF',
}

_SCALAR_KEYS = {
    'lat_off': 'LAT_OFF',
    'lat_scale': 'LAT_SCALE',
    'lon_off': 'LONG_OFF',
    'lon_scale': 'LONG_SCALE',
    'height_off': 'HEIGHT_OFF',
    'height_scale': 'HEIGHT_SCALE',
    'line_off': 'LINE_OFF',
    'line_scale': 'LINE_SCALE',
    'samp_off': 'SAMP_OFF',
    'samp_scale': 'SAMP_SCALE',
}


def rpc_basis(p: float, l: float, h: float) -> Tuple[float, ...]:
    """The 20 RPC monomials at normalized (P, L, H), in coefficient order."""
    return (
        1.0,
        l,
        p,
        h,
        l * p,
        l * h,
        p * h,
        l * l,
        p * p,
        h * h,
        p * l * h,
        l * l * l,
        l * p * p,
        l * h * h,
        l * l * p,
        p * p * p,
        p * h * h,
        l * l * h,
        p * p * h,
        h * h * h,
    )


def eval_polynomial(coeffs: Sequence[float], p: float, l: float, h: float) -> float:
    """Evaluate one 20-term RPC polynomial, summing terms in basis order."""
    terms = rpc_basis(p, l, h)
    total = coeffs[0]
    for c, t in zip(coeffs[1:], terms[1:]):
        total += c * t
    return total


def _parse_value(key: str, value: Any) -> float:
    try:
        return float(str(value).strip())
    except ValueError:
        raise ValueError(f"Failed to parse RPC parameter: {key}") from None


def _parse_coeff_array(metadata: Mapping[str, Any], prefix: str) -> Tuple[float, ...]:
    if prefix in metadata:
        raw = metadata[prefix]
        if isinstance(raw, str):
            values = raw.split()
        elif isinstance(raw, (list, tuple, np.ndarray)):
            values = list(raw)
        else:
            raise ValueError(f"Failed to parse RPC parameter: {prefix}")
        if len(values) != RPC_TERMS:
            raise ValueError(
                f"RPC parameter {prefix} needs {RPC_TERMS} values, got {len(values)}"
            )
        return tuple(_parse_value(prefix, v) for v in values)

    coeffs = []
    for i in range(1, RPC_TERMS + 1):
        key = f"{prefix}_{i}"
        if key not in metadata:
            raise ValueError(f"Missing RPC parameter: {key}")
        coeffs.append(_parse_value(key, metadata[key]))
    return tuple(coeffs)


@dataclass(frozen=True)
class RpcCoefficients:
    """
    RPC parameter block.

    Coefficient arrays are stored as 20-tuples in basis order.
    Offsets and scales are in degrees (lat, lon), meters (height)
    and pixels (line, sample).
    """
    line_num_coeff: Tuple[float, ...]
    line_den_coeff: Tuple[float, ...]
    samp_num_coeff: Tuple[float, ...]
    samp_den_coeff: Tuple[float, ...]
    lat_off: float
    lat_scale: float
    lon_off: float
    lon_scale: float
    height_off: float
    height_scale: float
    line_off: float
    line_scale: float
    samp_off: float
    samp_scale: float

    def __post_init__(self):
        for name in _COEFF_KEYS:
            values = tuple(float(v) for v in getattr(self, name))
            if len(values) != RPC_TERMS:
                raise ValueError(f"{name} needs {RPC_TERMS} coefficients, got {len(values)}")
            object.__setattr__(self, name, values)
        for name in _SCALAR_KEYS:
            object.__setattr__(self, name, float(getattr(self, name)))
        for name in ('lat_scale', 'lon_scale', 'height_scale'):
            if getattr(self, name) == 0:
                raise ValueError(f"{name} must be non-zero")

    @classmethod
    def from_gdal_metadata(cls, metadata: Mapping[str, Any]) -> "RpcCoefficients":
        """
        Build coefficients from a GDAL-style RPC metadata mapping.

        Args:
            metadata: Key/value mapping using the GDAL RPC key names. Values
                may be strings or numbers; coefficient arrays may be a single
                key (whitespace-separated string or list) or KEY_1 .. KEY_20.

        Raises:
            ValueError: a parameter is missing or cannot be parsed
        """
        fields: Dict[str, Any] = {}
        for name, key in _COEFF_KEYS.items():
            fields[name] = _parse_coeff_array(metadata, key)
        for name, key in _SCALAR_KEYS.items():
            if key not in metadata:
                raise ValueError(f"Missing RPC parameter: {key}")
            fields[name] = _parse_value(key, metadata[key])
        return cls(**fields)

    def to_gdal_metadata(self) -> Dict[str, Any]:
        """GDAL-style metadata with coefficient arrays as lists."""
        data: Dict[str, Any] = {}
        for name, key in _COEFF_KEYS.items():
            data[key] = list(getattr(self, name))
        for name, key in _SCALAR_KEYS.items():
            data[key] = getattr(self, name)
        return data


class RpcModel:
    """
    RPC sensor model for ground-to-image and image-to-ground projection.

    Example usage:
        rpc = RpcModel(RpcCoefficients.from_gdal_metadata(metadata))
        line, sample = rpc.lla_to_image(LlaCoord(39.1, -76.9, 100.0))
        ground = rpc.image_to_lla(line, sample, 100.0)
    """

    def __init__(self, coeffs: RpcCoefficients):
        self._coeffs = coeffs
        logger.debug(
            f"RPC model initialized: lat_off={coeffs.lat_off}, lon_off={coeffs.lon_off}, "
            f"height_off={coeffs.height_off}"
        )

    @classmethod
    def from_gdal_metadata(cls, metadata: Mapping[str, Any]) -> "RpcModel":
        return cls(RpcCoefficients.from_gdal_metadata(metadata))

    @property
    def coefficients(self) -> RpcCoefficients:
        return self._coeffs

    def lla_to_image(self, lla: LlaCoord) -> Tuple[float, float]:
        """
        Project a geodetic point to image coordinates.

        Args:
            lla: Ground point (degrees, degrees, meters)

        Returns:
            (line, sample) in pixels

        Raises:
            InvalidRpcError: a denominator magnitude is below 1e-10
        """
        c = self._coeffs

        p = (lla.lon - c.lon_off) / c.lon_scale
        l = (lla.lat - c.lat_off) / c.lat_scale
        h = (lla.alt - c.height_off) / c.height_scale

        line_num = eval_polynomial(c.line_num_coeff, p, l, h)
        line_den = eval_polynomial(c.line_den_coeff, p, l, h)
        samp_num = eval_polynomial(c.samp_num_coeff, p, l, h)
        samp_den = eval_polynomial(c.samp_den_coeff, p, l, h)

        if abs(line_den) < MIN_DENOMINATOR or abs(samp_den) < MIN_DENOMINATOR:
            logger.debug(f"Vanishing RPC denominator: line={line_den}, sample={samp_den}")
            raise InvalidRpcError()

        line = line_num / line_den * c.line_scale + c.line_off
        samp = samp_num / samp_den * c.samp_scale + c.samp_off

        return line, samp

    def ground_to_image(self, ground_ecef) -> Tuple[float, float]:
        """Project an ECEF ground point (meters) to (line, sample)."""
        return self.lla_to_image(ecef_to_lla(ground_ecef))

    def image_to_lla(self, line: float, sample: float, height: float) -> LlaCoord:
        """
        Locate the ground point imaged at (line, sample) at a fixed height.

        Newton-Raphson over (lat, lon), seeded at the RPC normalization
        offsets, with a forward finite-difference Jacobian.

        Args:
            line: Image line (pixels)
            sample: Image sample (pixels)
            height: Ellipsoidal height of the ground point (meters)

        Returns:
            Ground point with alt == height

        Raises:
            NoConvergenceError: the Jacobian became singular (carries the
                iteration index) or the iteration budget ran out
            InvalidRpcError: a forward evaluation hit a vanishing denominator
        """
        lat = self._coeffs.lat_off
        lon = self._coeffs.lon_off
        delta = IMAGE_TO_LLA_STEP

        for iteration in range(IMAGE_TO_LLA_MAX_ITERATIONS):
            lla = LlaCoord(lat, lon, height)
            proj_line, proj_samp = self.lla_to_image(lla)

            line_err = line - proj_line
            samp_err = sample - proj_samp

            if abs(line_err) < IMAGE_TO_LLA_TOL and abs(samp_err) < IMAGE_TO_LLA_TOL:
                return lla

            line_lat, samp_lat = self.lla_to_image(LlaCoord(lat + delta, lon, height))
            dline_dlat = (line_lat - proj_line) / delta
            dsamp_dlat = (samp_lat - proj_samp) / delta

            line_lon, samp_lon = self.lla_to_image(LlaCoord(lat, lon + delta, height))
            dline_dlon = (line_lon - proj_line) / delta
            dsamp_dlon = (samp_lon - proj_samp) / delta

            det = dline_dlat * dsamp_dlon - dline_dlon * dsamp_dlat
            if abs(det) < IMAGE_TO_LLA_SINGULAR_DET:
                logger.debug(f"Singular RPC Jacobian at iteration {iteration}: det={det}")
                raise NoConvergenceError(iteration)

            dlat = (dsamp_dlon * line_err - dline_dlon * samp_err) / det
            dlon = (dline_dlat * samp_err - dsamp_dlat * line_err) / det

            lat += dlat
            lon += dlon

        logger.debug(f"RPC inverse for ({line}, {sample}) exhausted its iteration budget")
        raise NoConvergenceError(IMAGE_TO_LLA_MAX_ITERATIONS)

    def image_to_ground(self, line: float, sample: float, height: float) -> np.ndarray:
        """Locate (line, sample) at a fixed height and return it in ECEF (meters)."""
        return lla_to_ecef(self.image_to_lla(line, sample, height))
