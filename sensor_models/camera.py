"""
Camera model module for projecting 3D points to image coordinates.

Implements pinhole and fisheye cameras on top of the distortion models.

Coordinate System:
    - Camera frame: looking along +Z, X and Y spanning the image plane
    - Image frame: u along X, v along Y, origin at the top-left pixel corner

Projection Model:
    1. Perspective projection: x' = X/Z, y' = Y/Z
    2. Distortion: x'', y'' = distort(x', y')
    3. Pixel mapping: u = fx*x'' + cx, v = fy*y'' + cy

Unprojection runs the chain backwards and returns a unit ray in the
camera frame with positive Z.
"""

import numpy as np
from typing import Optional, Tuple
from dataclasses import dataclass
import logging

from .distortion import (
    DistortionModel,
    NoDistortion,
    BrownConrady,
    FisheyeDistortion,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraModel:
    """
    Camera projection model: intrinsics plus one distortion model.

    Only PinholeCamera and FisheyeCamera are meant to be instantiated.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        fx: Focal length in x (pixels)
        fy: Focal length in y (pixels)
        cx: Principal point x (pixels)
        cy: Principal point y (pixels)
        distortion: Lens distortion model
    """
    width: int
    height: int
    fx: float
    fy: float
    cx: float
    cy: float
    distortion: DistortionModel = NoDistortion()

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Image size must be positive, got {self.width}x{self.height}"
            )
        if self.fx == 0 or self.fy == 0:
            raise ValueError(f"Focal lengths must be non-zero, got fx={self.fx}, fy={self.fy}")

        logger.debug(f"{type(self).__name__} initialized: fx={self.fx}, fy={self.fy}")
        logger.debug(f"Principal point: ({self.cx}, {self.cy})")
        logger.debug(f"Distortion: {self.distortion}")

    @property
    def camera_matrix(self) -> np.ndarray:
        """3x3 intrinsic matrix K."""
        return np.array([
            [self.fx, 0, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ], dtype=np.float64)

    def focal_length(self) -> Tuple[float, float]:
        return self.fx, self.fy

    def principal_point(self) -> Tuple[float, float]:
        return self.cx, self.cy

    def image_size(self) -> Tuple[int, int]:
        """Image dimensions (width, height) the camera is calibrated for."""
        return self.width, self.height

    def contains(self, u: float, v: float) -> bool:
        """True if the pixel lies inside the image."""
        return (0 <= u < self.width) and (0 <= v < self.height)

    def project(self, point_camera) -> Optional[Tuple[float, float]]:
        """
        Project a 3D point in camera frame to image coordinates.

        Args:
            point_camera: 3D point in camera frame (X, Y, Z)

        Returns:
            (u, v) pixel coordinates, or None if the point is behind the camera
        """
        X, Y, Z = (float(c) for c in point_camera)

        if Z <= 0:
            logger.debug(f"Point behind camera: Z={Z}")
            return None

        # Perspective projection to normalized coordinates
        x_norm = X / Z
        y_norm = Y / Z

        x_dist, y_dist = self.distortion.distort(x_norm, y_norm)

        u = self.fx * x_dist + self.cx
        v = self.fy * y_dist + self.cy

        return u, v

    def unproject(self, pixel: Tuple[float, float]) -> np.ndarray:
        """
        Unproject pixel coordinates to a unit ray in camera frame.

        Args:
            pixel: (u, v) pixel coordinates

        Returns:
            Unit 3-vector with positive Z

        Raises:
            DistortionError: if the distortion model cannot be inverted here
        """
        u, v = pixel

        # Pixel to distorted normalized coordinates
        x_dist = (u - self.cx) / self.fx
        y_dist = (v - self.cy) / self.fy

        x_norm, y_norm = self.distortion.undistort(x_dist, y_dist)

        ray = np.array([x_norm, y_norm, 1.0])
        return ray / np.linalg.norm(ray)

    def project_points_batch(
        self,
        points_camera: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Project multiple 3D points to image coordinates.

        Args:
            points_camera: Nx3 array of camera frame coordinates

        Returns:
            Tuple of:
                - u_coords: N-element array of u coordinates (NaN if invalid)
                - v_coords: N-element array of v coordinates (NaN if invalid)
                - valid: N-element boolean array, False behind the camera
        """
        points_camera = np.asarray(points_camera, dtype=np.float64).reshape(-1, 3)
        n_points = len(points_camera)
        u_coords = np.full(n_points, np.nan)
        v_coords = np.full(n_points, np.nan)
        valid = np.zeros(n_points, dtype=bool)

        for i, point in enumerate(points_camera):
            pixel = self.project(point)
            if pixel is not None:
                u_coords[i], v_coords[i] = pixel
                valid[i] = True

        return u_coords, v_coords, valid

    def reprojection_error(
        self,
        point_camera,
        measured_u: float,
        measured_v: float,
    ) -> float:
        """
        Compute reprojection error for a single point.

        Args:
            point_camera: 3D point in camera frame
            measured_u: Measured u pixel coordinate
            measured_v: Measured v pixel coordinate

        Returns:
            Euclidean distance between projected and measured points (pixels),
            inf if the point is behind the camera
        """
        pixel = self.project(point_camera)
        if pixel is None:
            return float('inf')

        u_proj, v_proj = pixel
        return float(np.hypot(u_proj - measured_u, v_proj - measured_v))


@dataclass(frozen=True)
class PinholeCamera(CameraModel):
    """Pinhole camera, ideal or with Brown-Conrady distortion."""

    def __post_init__(self):
        if not isinstance(self.distortion, (NoDistortion, BrownConrady)):
            raise ValueError(
                f"Pinhole camera needs NoDistortion or BrownConrady, "
                f"got {type(self.distortion).__name__}"
            )
        super().__post_init__()

    @classmethod
    def ideal(
        cls, width: int, height: int, fx: float, fy: float, cx: float, cy: float,
    ) -> "PinholeCamera":
        """Pinhole camera with no distortion."""
        return cls(width, height, fx, fy, cx, cy, NoDistortion())

    @classmethod
    def brown_conrady(
        cls,
        width: int,
        height: int,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        k1: float = 0.0,
        k2: float = 0.0,
        k3: float = 0.0,
        p1: float = 0.0,
        p2: float = 0.0,
    ) -> "PinholeCamera":
        """Pinhole camera with Brown-Conrady distortion."""
        return cls(width, height, fx, fy, cx, cy, BrownConrady(k1, k2, k3, p1, p2))


@dataclass(frozen=True)
class FisheyeCamera(CameraModel):
    """Fisheye camera with equidistant distortion."""
    distortion: DistortionModel = FisheyeDistortion()

    def __post_init__(self):
        if not isinstance(self.distortion, FisheyeDistortion):
            raise ValueError(
                f"Fisheye camera needs FisheyeDistortion, "
                f"got {type(self.distortion).__name__}"
            )
        super().__post_init__()

    @classmethod
    def equidistant(
        cls,
        width: int,
        height: int,
        fx: float,
        fy: float,
        cx: float,
        cy: float,
        k1: float = 0.0,
        k2: float = 0.0,
        k3: float = 0.0,
        k4: float = 0.0,
    ) -> "FisheyeCamera":
        return cls(width, height, fx, fy, cx, cy, FisheyeDistortion(k1, k2, k3, k4))
