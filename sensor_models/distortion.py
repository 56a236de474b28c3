"""
Lens distortion models.

Each model maps normalized image coordinates (X/Z, Y/Z) to distorted
normalized coordinates and back.

Models:
    - NoDistortion: identity
    - BrownConrady: radial (k1, k2, k3) + tangential (p1, p2), OpenCV convention
    - FisheyeDistortion: equidistant polynomial in the incidence angle (k1..k4)

Brown-Conrady:
    r² = x² + y²
    x' = x(1 + k1*r² + k2*r⁴ + k3*r⁶) + 2*p1*x*y + p2*(r² + 2*x²)
    y' = y(1 + k1*r² + k2*r⁴ + k3*r⁶) + p1*(r² + 2*y²) + 2*p2*x*y

Equidistant fisheye:
    θ = atan(r)
    θd = θ(1 + k1*θ² + k2*θ⁴ + k3*θ⁶ + k4*θ⁸)
    (x', y') = (x, y) * θd / r

Inversion has no closed form and is done by Newton-Raphson with a
forward finite-difference Jacobian. The tolerances below decide which
inputs converge, so they must not be tuned.
"""

import math
from dataclasses import dataclass
from typing import Tuple
import logging

from .errors import NonConvergentError, SingularJacobianError

logger = logging.getLogger(__name__)

UNDISTORT_MAX_ITERATIONS = 10
UNDISTORT_TOL_X = 1e-8
UNDISTORT_TOL_Y = 1e-10
JACOBIAN_STEP = 1e-6
SINGULAR_DET = 1e-18

# Below this radius the fisheye scale θd/r is numerically undefined
FISHEYE_MIN_RADIUS = 1e-8


class DistortionModel:
    """
    Base class for the fixed set of distortion models.

    Subclasses implement distort(); undistort() inverts it numerically.
    """

    def distort(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        raise NotImplementedError

    def undistort(self, x_dist: float, y_dist: float) -> Tuple[float, float]:
        """
        Remove distortion from normalized coordinates.

        Newton-Raphson starting at the distorted point. Each step solves
        the 2x2 system J * [dx, dy] = residual by Cramer's rule.

        Args:
            x_dist: Distorted normalized x coordinate
            y_dist: Distorted normalized y coordinate

        Returns:
            Undistorted (x, y) normalized coordinates

        Raises:
            SingularJacobianError: |det J| fell below SINGULAR_DET
            NonConvergentError: no convergence within UNDISTORT_MAX_ITERATIONS
        """
        x = x_dist
        y = y_dist

        for _ in range(UNDISTORT_MAX_ITERATIONS):
            fx, fy = self.distort(x, y)
            rx = x_dist - fx
            ry = y_dist - fy

            if abs(rx) < UNDISTORT_TOL_X and abs(ry) < UNDISTORT_TOL_Y:
                return x, y

            eps = JACOBIAN_STEP
            fx_x, fy_x = self.distort(x + eps, y)
            fx_y, fy_y = self.distort(x, y + eps)

            j11 = (fx_x - fx) / eps
            j21 = (fy_x - fy) / eps
            j12 = (fx_y - fx) / eps
            j22 = (fy_y - fy) / eps

            det = j11 * j22 - j12 * j21
            if abs(det) < SINGULAR_DET:
                logger.debug(f"Singular Jacobian at ({x}, {y}): det={det}")
                raise SingularJacobianError()

            dx = (j22 * rx - j12 * ry) / det
            dy = (-j21 * rx + j11 * ry) / det

            x += dx
            y += dy

        logger.debug(
            f"Undistort of ({x_dist}, {y_dist}) did not converge "
            f"in {UNDISTORT_MAX_ITERATIONS} iterations"
        )
        raise NonConvergentError()


@dataclass(frozen=True)
class NoDistortion(DistortionModel):
    """Ideal lens."""

    def distort(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        return x_norm, y_norm

    def undistort(self, x_dist: float, y_dist: float) -> Tuple[float, float]:
        return x_dist, y_dist


@dataclass(frozen=True)
class BrownConrady(DistortionModel):
    """Brown-Conrady radial and tangential distortion."""
    k1: float = 0.0  # Radial distortion coefficient
    k2: float = 0.0  # Radial distortion coefficient
    k3: float = 0.0  # Radial distortion coefficient
    p1: float = 0.0  # Tangential distortion coefficient
    p2: float = 0.0  # Tangential distortion coefficient

    def distort(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        # Products rather than ** so overflow yields inf instead of raising
        r2 = x_norm * x_norm + y_norm * y_norm
        r4 = r2 * r2
        r6 = r4 * r2

        radial = 1.0 + self.k1 * r2 + self.k2 * r4 + self.k3 * r6

        x_dist = (x_norm * radial
                  + 2.0 * self.p1 * x_norm * y_norm
                  + self.p2 * (r2 + 2.0 * x_norm * x_norm))
        y_dist = (y_norm * radial
                  + self.p1 * (r2 + 2.0 * y_norm * y_norm)
                  + 2.0 * self.p2 * x_norm * y_norm)

        return x_dist, y_dist


@dataclass(frozen=True)
class FisheyeDistortion(DistortionModel):
    """Equidistant fisheye distortion."""
    k1: float = 0.0
    k2: float = 0.0
    k3: float = 0.0
    k4: float = 0.0

    def distort(self, x_norm: float, y_norm: float) -> Tuple[float, float]:
        r = math.sqrt(x_norm * x_norm + y_norm * y_norm)
        if r < FISHEYE_MIN_RADIUS:
            return x_norm, y_norm

        theta = math.atan(r)
        theta2 = theta * theta
        theta4 = theta2 * theta2
        theta6 = theta4 * theta2
        theta8 = theta4 * theta4

        theta_d = theta * (1.0 + self.k1 * theta2 + self.k2 * theta4
                           + self.k3 * theta6 + self.k4 * theta8)
        scale = theta_d / r

        return x_norm * scale, y_norm * scale
