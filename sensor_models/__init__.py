"""
Sensor Models Package

Geometric sensor models for photogrammetry: mappings between 3D world
geometry and 2D image coordinates, plus the WGS84 datum conversions they
depend on.

Models:
    - Lens distortion: none, Brown-Conrady, equidistant fisheye
    - Frame cameras: pinhole and fisheye projection / unprojection
    - RPC: rational polynomial satellite sensor model, forward and inverse
    - WGS84: ECEF ↔ geodetic (lat, lon, alt) conversion

Conventions:
    - Normalized image coordinates are (X/Z, Y/Z) in the camera frame
    - Pixels are (u, v) for frame cameras and (line, sample) for RPC
    - Latitude and longitude are in degrees, heights in meters above WGS84

Inverse mappings are solved iteratively with bounded iteration counts;
failures raise subclasses of SensorModelError.
"""

from .errors import (
    SensorModelError,
    DistortionError,
    SingularJacobianError,
    NonConvergentError,
    ProjectionError,
    InvalidRpcError,
    NoConvergenceError,
    CoordinateError,
    InvalidLatitudeError,
)
from .distortion import DistortionModel, NoDistortion, BrownConrady, FisheyeDistortion
from .camera import CameraModel, PinholeCamera, FisheyeCamera
from .transforms import LlaCoord, lla_to_ecef, ecef_to_lla, geodetic_to_ecef, WGS84_A, WGS84_E2
from .rpc import RpcCoefficients, RpcModel, rpc_basis, eval_polynomial
from .config import Config, CameraIntrinsics

__version__ = "0.1.0"
__all__ = [
    "SensorModelError",
    "DistortionError",
    "SingularJacobianError",
    "NonConvergentError",
    "ProjectionError",
    "InvalidRpcError",
    "NoConvergenceError",
    "CoordinateError",
    "InvalidLatitudeError",
    "DistortionModel",
    "NoDistortion",
    "BrownConrady",
    "FisheyeDistortion",
    "CameraModel",
    "PinholeCamera",
    "FisheyeCamera",
    "LlaCoord",
    "lla_to_ecef",
    "ecef_to_lla",
    "geodetic_to_ecef",
    "WGS84_A",
    "WGS84_E2",
    "RpcCoefficients",
    "RpcModel",
    "rpc_basis",
    "eval_polynomial",
    "Config",
    "CameraIntrinsics",
]
