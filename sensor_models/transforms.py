"""
WGS84 ellipsoid coordinate conversions.

Coordinate System Definitions:
    - ECEF: Earth-Centered, Earth-Fixed (X towards 0°lon, Y towards 90°E, Z towards North Pole)
    - LLA: geodetic latitude/longitude in degrees, altitude in meters above the ellipsoid

LLA → ECEF is closed form. ECEF → LLA uses a fixed 10-iteration
fixed-point scheme for latitude and altitude with no early exit, so that
results are reproducible bit for bit.

Latitude is validated at both boundaries; longitude is accepted
unrestricted and wraps geometrically.
"""

import numpy as np
from dataclasses import dataclass
import logging

from .errors import InvalidLatitudeError

logger = logging.getLogger(__name__)

# WGS84 ellipsoid parameters
WGS84_A = 6378137.0  # Semi-major axis (m)
WGS84_E2 = 0.00669437999014  # First eccentricity squared
WGS84_B = WGS84_A * np.sqrt(1.0 - WGS84_E2)  # Semi-minor axis

ECEF_TO_LLA_ITERATIONS = 10


@dataclass(frozen=True)
class LlaCoord:
    """
    Geodetic position on the WGS84 ellipsoid.

    Attributes:
        lat: Geodetic latitude in degrees
        lon: Longitude in degrees (any range)
        alt: Ellipsoidal height in meters
    """
    lat: float
    lon: float
    alt: float = 0.0

    def as_array(self) -> np.ndarray:
        """Return (lat, lon, alt) as numpy array."""
        return np.array([self.lat, self.lon, self.alt])


def _check_latitude(lat_deg: float) -> None:
    # NaN fails the comparison and is rejected too
    if not -90.0 <= lat_deg <= 90.0:
        logger.debug(f"Rejecting latitude {lat_deg}")
        raise InvalidLatitudeError(float(lat_deg))


def lla_to_ecef(lla: LlaCoord) -> np.ndarray:
    """
    Convert geodetic coordinates (WGS84) to ECEF.

    Args:
        lla: Geodetic position, latitude within [-90, 90]

    Returns:
        ECEF coordinates as (X, Y, Z) in meters

    Raises:
        InvalidLatitudeError: latitude outside [-90, 90]

    Reference:
        NIMA TR8350.2, "Department of Defense World Geodetic System 1984"
    """
    _check_latitude(lla.lat)

    lat_rad = np.deg2rad(lla.lat)
    lon_rad = np.deg2rad(lla.lon)

    sin_lat = np.sin(lat_rad)
    cos_lat = np.cos(lat_rad)

    # Radius of curvature in the prime vertical
    N = WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)

    X = (N + lla.alt) * cos_lat * np.cos(lon_rad)
    Y = (N + lla.alt) * cos_lat * np.sin(lon_rad)
    Z = (N * (1.0 - WGS84_E2) + lla.alt) * sin_lat

    return np.array([X, Y, Z])


def geodetic_to_ecef(lat: float, lon: float, h: float = 0.0) -> np.ndarray:
    """Shortcut for lla_to_ecef(LlaCoord(lat, lon, h))."""
    return lla_to_ecef(LlaCoord(lat, lon, h))


def ecef_to_lla(ecef) -> LlaCoord:
    """
    Convert ECEF to geodetic coordinates (WGS84).

    Args:
        ecef: (X, Y, Z) in meters

    Returns:
        Geodetic position; longitude in (-180, 180]

    Raises:
        InvalidLatitudeError: the iteration produced a latitude outside
            [-90, 90] or NaN (e.g. a point on the polar axis)
    """
    x, y, z = np.asarray(ecef, dtype=np.float64).reshape(3)

    # Division by zero on the polar axis must follow IEEE semantics
    with np.errstate(divide='ignore', invalid='ignore'):
        p = np.sqrt(x * x + y * y)
        lon = np.rad2deg(np.arctan2(y, x))

        lat = np.arctan(z / p)
        alt = np.float64(0.0)

        for _ in range(ECEF_TO_LLA_ITERATIONS):
            sin_lat = np.sin(lat)
            N = WGS84_A / np.sqrt(1.0 - WGS84_E2 * sin_lat * sin_lat)
            alt = p / np.cos(lat) - N
            lat = np.arctan(z / p / (1.0 - WGS84_E2 * N / (N + alt)))

    lat_deg = float(np.rad2deg(lat))
    _check_latitude(lat_deg)

    return LlaCoord(lat=lat_deg, lon=float(lon), alt=float(alt))
